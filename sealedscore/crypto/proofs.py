"""Canonical hashing and keypair signatures for input and decryption proofs.

Input proofs bind a ciphertext to the contract (context address) and the
identity submitting it. Decryption proofs bind a set of clear values to the
handles they were decrypted from. Both are keypair signatures over a
canonical SHA-256 hash, produced by the relayer and checked by the ledger.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, Mapping


def canonical_hash(data: Any) -> str:
    """SHA-256 hex digest of sorted-key compact JSON."""
    raw = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode()).hexdigest()


def input_proof_payload(ciphertext: str, context_address: str, owner: str) -> str:
    """Hash an input proof signs over."""
    return canonical_hash({
        "ciphertext": ciphertext,
        "context_address": context_address,
        "owner": owner,
    })


def encode_clear_values(handles: Iterable[str], clear_values: Mapping[str, int]) -> str:
    """Encode clear values in handle order, as the ledger expects them.

    Raises ValueError if a handle has no clear value.
    """
    pairs = []
    for handle in handles:
        if handle not in clear_values:
            raise ValueError(f"no clear value for handle {handle}")
        pairs.append([handle, int(clear_values[handle])])
    return json.dumps(pairs, separators=(",", ":"))


def decode_clear_values(encoded: str) -> dict[str, int]:
    """Inverse of encode_clear_values(). Raises ValueError on malformed input."""
    try:
        pairs = json.loads(encoded)
    except json.JSONDecodeError as e:
        raise ValueError(f"clear values are not valid JSON: {e}") from e
    if not isinstance(pairs, list):
        raise ValueError("clear values must be a list of [handle, value] pairs")

    decoded: dict[str, int] = {}
    for pair in pairs:
        if not isinstance(pair, list) or len(pair) != 2:
            raise ValueError(f"malformed clear value pair: {pair!r}")
        handle, value = pair
        if not isinstance(handle, str) or not isinstance(value, int):
            raise ValueError(f"malformed clear value pair: {pair!r}")
        decoded[handle] = value
    return decoded


def decryption_proof_payload(encoded_clear_values: str, context_address: str) -> str:
    """Hash a decryption proof signs over."""
    return canonical_hash({
        "clear_values": encoded_clear_values,
        "context_address": context_address,
    })


def sign_payload(payload_hash: str, keypair: Any) -> str:
    """Sign a payload hash with a bittensor keypair (e.g. wallet.hotkey).

    Returns:
        Hex-encoded signature string.
    """
    signature = keypair.sign(payload_hash.encode())
    return signature.hex() if isinstance(signature, bytes) else str(signature)


def verify_payload(payload_hash: str, signature: str, signer_ss58: str) -> bool:
    """Check a hex signature over payload_hash against an ss58 address."""
    import bittensor as bt

    if not signature:
        return False

    try:
        sig_bytes = bytes.fromhex(signature.removeprefix("0x"))
    except ValueError:
        return False

    try:
        keypair = bt.Keypair(ss58_address=signer_ss58)
        return keypair.verify(payload_hash.encode(), sig_bytes)
    except Exception:
        return False


__all__ = [
    "canonical_hash",
    "decode_clear_values",
    "decryption_proof_payload",
    "encode_clear_values",
    "input_proof_payload",
    "sign_payload",
    "verify_payload",
]
