"""Shared fixtures: test wallets, a relayer-signing fake SDK and a scriptable gateway."""

import asyncio
import secrets
from datetime import datetime, timezone

import pytest

from sealedscore.crypto.proofs import (
    decode_clear_values,
    decryption_proof_payload,
    encode_clear_values,
    input_proof_payload,
    sign_payload,
)
from sealedscore.records.errors import AlreadyVerifiedError, ConnectivityError, NotFoundError
from sealedscore.records.ledger import InMemoryRecordLedger, KeypairProofChecker
from sealedscore.records.models import DecryptionResult, EncryptedInput, Record, TransactionReceipt

CONTEXT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def _wallet(name: str, hotkey: str):
    import bittensor as bt
    wallet = bt.Wallet(name=name, hotkey=hotkey)
    wallet.create_if_non_existent(coldkey_use_password=False, hotkey_use_password=False)
    return wallet


@pytest.fixture(scope="session")
def relayer_wallet():
    return _wallet("test_sealedscore_relayer", "relayer_hk")


@pytest.fixture(scope="session")
def owner_wallet():
    return _wallet("test_sealedscore_owner", "owner_hk")


@pytest.fixture(scope="session")
def other_wallet():
    return _wallet("test_sealedscore_other", "other_hk")


@pytest.fixture
def ledger(relayer_wallet):
    checker = KeypairProofChecker(relayer_wallet.hotkey.ss58_address, CONTEXT_ADDRESS)
    return InMemoryRecordLedger(checker=checker)


class FakeSDK:
    """Stands in for the relayer: signs proofs with the relayer hotkey.

    Ciphertexts carry their plaintext ("enc:<value>:<salt>") so decryption
    can be answered by looking the handle up on the ledger.
    """

    def __init__(self, relayer_wallet, ledger=None):
        self.keypair = relayer_wallet.hotkey
        self.ledger = ledger
        self.init_calls = 0
        self.encrypt_calls = 0
        self.decrypt_calls = 0
        self.decrypt_delay = 0.0
        self.fail_initialize = False
        self.fail_decrypt: Exception | None = None
        self.drop_clear_values = False
        self.values: dict[str, int] = {}

    async def initialize(self) -> None:
        self.init_calls += 1
        if self.fail_initialize:
            raise ConnectivityError("relayer unreachable")

    async def encrypt(self, context_address: str, identity: str, value: int) -> EncryptedInput:
        self.encrypt_calls += 1
        ciphertext = f"enc:{value}:{secrets.token_hex(8)}"
        proof = sign_payload(input_proof_payload(ciphertext, context_address, identity), self.keypair)
        return EncryptedInput(
            ciphertext=ciphertext,
            proof=proof,
            context_address=context_address,
            owner=identity,
        )

    def _plaintext(self, handle: str) -> int:
        if handle in self.values:
            return self.values[handle]
        ciphertext = self.ledger.ciphertext_for(handle)
        return int(ciphertext.split(":")[1])

    async def request_decryption(self, handles, context_address: str) -> DecryptionResult:
        self.decrypt_calls += 1
        if self.decrypt_delay:
            await asyncio.sleep(self.decrypt_delay)
        if self.fail_decrypt is not None:
            raise self.fail_decrypt
        clear_values = {} if self.drop_clear_values else {h: self._plaintext(h) for h in handles}
        encoded = encode_clear_values(clear_values.keys(), clear_values)
        proof = sign_payload(decryption_proof_payload(encoded, context_address), self.keypair)
        return DecryptionResult(clear_values=clear_values, encoded_clear_values=encoded, proof=proof)


class FakeGateway:
    """Scriptable RecordGateway holding Records directly."""

    def __init__(self, identity: str = "owner"):
        self.identity = identity
        self.records: dict[int, Record] = {}
        self.failing_ids: set[int] = set()
        self.list_error: Exception | None = None
        self.submit_error: Exception | None = None
        self.submit_delay = 0.0
        self.verify_race = False
        self.confirm_verification = True
        self.available = True
        self.submitted: list[dict] = []
        self.verifications: list[tuple[int, str, str]] = []
        self.get_record_calls = 0

    def add(self, record: Record) -> None:
        self.records[record.id] = record

    async def list_ids(self) -> list[int]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.records)

    async def get_record(self, record_id: int) -> Record:
        self.get_record_calls += 1
        if record_id in self.failing_ids:
            raise ConnectivityError(f"timeout reading {record_id}")
        if record_id not in self.records:
            raise NotFoundError(f"record not found: {record_id}")
        return self.records[record_id]

    async def get_encrypted_handle(self, record_id: int) -> str:
        return (await self.get_record(record_id)).encrypted_handle

    async def submit(self, record_id, label, ciphertext, proof, public_value1, public_value2, category):
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append({
            "record_id": record_id,
            "label": label,
            "ciphertext": ciphertext,
            "proof": proof,
            "public_value1": public_value1,
            "public_value2": public_value2,
            "category": category,
        })
        self.records[record_id] = Record(
            id=record_id,
            label=label,
            owner=self.identity,
            created_at=datetime.now(timezone.utc),
            public_value1=public_value1,
            public_value2=public_value2,
            encrypted_handle=f"0xhandle{record_id}",
            category=category,
        )
        return TransactionReceipt(tx_hash=f"0xtx{record_id}", record_key=f"practice-{record_id}")

    async def submit_verification(self, record_id, encoded_clear_values, decryption_proof):
        self.verifications.append((record_id, encoded_clear_values, decryption_proof))
        record = self.records[record_id]
        if self.verify_race:
            # another client published first
            self.records[record_id] = record.model_copy(update={"is_verified": True, "verified_value": 55})
            raise AlreadyVerifiedError("Data already verified", code="already_verified")
        if self.confirm_verification:
            value = next(iter(decode_clear_values(encoded_clear_values).values()))
            self.records[record_id] = record.model_copy(update={"is_verified": True, "verified_value": value})
        return TransactionReceipt(tx_hash=f"0xverify{record_id}", record_key=f"practice-{record_id}")

    async def is_available(self) -> bool:
        if isinstance(self.available, Exception):
            raise self.available
        return self.available


@pytest.fixture
def fake_sdk(relayer_wallet, ledger):
    return FakeSDK(relayer_wallet, ledger)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def make_record():
    def _make(
        record_id: int = 1,
        label: str = "Hello",
        owner: str = "owner",
        created_at: datetime | None = None,
        public_value1: int = 0,
        is_verified: bool = False,
        verified_value: int | None = None,
        encrypted_handle: str | None = None,
    ) -> Record:
        return Record(
            id=record_id,
            label=label,
            owner=owner,
            created_at=created_at or datetime.now(timezone.utc),
            public_value1=public_value1,
            encrypted_handle=encrypted_handle or f"0xhandle{record_id}",
            is_verified=is_verified,
            verified_value=verified_value,
        )

    return _make
