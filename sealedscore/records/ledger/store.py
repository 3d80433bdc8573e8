"""Development record ledger.

Keeps ledger entries in memory, keyed by record key, in the same field
layout the remote ledger serves. Optionally persists to a JSON file
(tmp + rename) so a local ledger survives restarts.

Write rules mirror the on-chain contract:
- create: key must be new and the input proof must bind to the submitter
- verify: record must exist, must not be verified yet, proof must check out
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any

import bittensor as bt

from sealedscore.crypto.proofs import canonical_hash
from sealedscore.records.errors import AlreadyVerifiedError, LedgerError, NotFoundError
from sealedscore.records.ledger.checker import ProofChecker
from sealedscore.records.models import TransactionReceipt, parse_record_key


def _hk(identity: str | None) -> str:
    """Truncate identity for log readability."""
    if not identity:
        return "none"
    return identity[:16]


class InMemoryRecordLedger:
    """Record storage with contract-style write checks."""

    def __init__(
        self,
        checker: ProofChecker,
        state_path: str | None = None,
        available: bool = True,
    ):
        self.checker = checker
        self.state_path = Path(state_path) if state_path else None
        self.available = available

        # key -> ledger payload (name, creator, timestamp, ...)
        self._entries: dict[str, dict[str, Any]] = {}
        # handle -> ciphertext
        self._ciphertexts: dict[str, str] = {}
        self._tx_counter = 0

        self._load_state()

    # -- State persistence --

    def _load_state(self) -> None:
        """Load entries from disk. If missing/corrupt, start empty."""
        if self.state_path is None or not self.state_path.exists():
            return

        try:
            with open(self.state_path) as f:
                data = json.load(f)
            self._entries = data.get("entries", {})
            self._tx_counter = int(data.get("tx_counter", 0))
            self._ciphertexts = data.get("ciphertexts", {})
            bt.logging.info({"record_ledger": {"state_loaded": len(self._entries)}})
        except Exception as e:
            bt.logging.warning({"record_ledger": f"state_corrupt, starting empty: {e}"})
            self._entries = {}
            self._ciphertexts = {}

    def _save_state(self) -> None:
        """Atomically write entries to disk (tmp + rename)."""
        if self.state_path is None:
            return

        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "entries": self._entries,
            "ciphertexts": self._ciphertexts,
            "tx_counter": self._tx_counter,
        }
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(self.state_path.parent), suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w") as f:
                json.dump(data, f, sort_keys=True)
            os.rename(tmp_path, str(self.state_path))
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _receipt(self, op: str, key: str) -> TransactionReceipt:
        self._tx_counter += 1
        tx_hash = "0x" + canonical_hash({"op": op, "key": key, "n": self._tx_counter})
        return TransactionReceipt(tx_hash=tx_hash, record_key=key)

    # -- Reads --

    def list_keys(self) -> list[str]:
        return list(self._entries.keys())

    def get(self, key: str) -> dict[str, Any]:
        entry = self._entries.get(key)
        if entry is None:
            raise NotFoundError(f"record not found: {key}", code="not_found")
        return dict(entry)

    def get_handle(self, key: str) -> str:
        return self.get(key)["encryptedValue"]

    def ciphertext_for(self, handle: str) -> str:
        """Ciphertext a handle refers to, as the decryption oracle reads it."""
        ciphertext = self._ciphertexts.get(handle)
        if ciphertext is None:
            raise NotFoundError(f"unknown handle: {handle}", code="not_found")
        return ciphertext

    # -- Writes --

    def create(
        self,
        key: str,
        owner: str,
        label: str,
        ciphertext: str,
        proof: str,
        public_value1: int,
        public_value2: int,
        category: str,
    ) -> TransactionReceipt:
        """Store a new record. The handle is derived from key + ciphertext."""
        parse_record_key(key)
        if key in self._entries:
            raise LedgerError(f"record already exists: {key}", code="duplicate_key")
        if not label:
            raise LedgerError("label must not be empty", code="invalid_label")
        if not self.checker.check_input(ciphertext, proof, owner):
            bt.logging.warning({"record_ledger": {"event": "create_rejected", "key": key, "owner": _hk(owner), "reason": "invalid_input_proof"}})
            raise LedgerError("input proof rejected", code="invalid_input_proof")

        handle = "0x" + canonical_hash({"key": key, "ciphertext": ciphertext})
        self._entries[key] = {
            "name": label,
            "creator": owner,
            "timestamp": int(time.time()),
            "publicValue1": int(public_value1),
            "publicValue2": int(public_value2),
            "encryptedValue": handle,
            "category": category,
            "isVerified": False,
            "decryptedValue": 0,
        }
        self._ciphertexts[handle] = ciphertext
        receipt = self._receipt("create", key)
        self._save_state()

        bt.logging.info({"record_ledger": {"event": "created", "key": key, "owner": _hk(owner)}})
        return receipt

    def verify(self, key: str, encoded_clear_values: str, proof: str) -> TransactionReceipt:
        """Publish a record's cleartext if the decryption proof checks out."""
        entry = self._entries.get(key)
        if entry is None:
            raise NotFoundError(f"record not found: {key}", code="not_found")
        if entry["isVerified"]:
            raise AlreadyVerifiedError("Data already verified", code="already_verified")

        value = self.checker.check_decryption(entry["encryptedValue"], encoded_clear_values, proof)
        if value is None:
            bt.logging.warning({"record_ledger": {"event": "verify_rejected", "key": key, "reason": "invalid_decryption_proof"}})
            raise LedgerError("decryption proof rejected", code="invalid_decryption_proof")

        entry["isVerified"] = True
        entry["decryptedValue"] = int(value)
        receipt = self._receipt("verify", key)
        self._save_state()

        bt.logging.info({"record_ledger": {"event": "verified", "key": key}})
        return receipt


__all__ = ["InMemoryRecordLedger"]
