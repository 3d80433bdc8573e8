"""In-process RecordGateway over an InMemoryRecordLedger.

Writes are attributed to a fixed identity, standing in for a signer that
has already authenticated.
"""

from __future__ import annotations

from sealedscore.records.ledger.store import InMemoryRecordLedger
from sealedscore.records.models import Record, TransactionReceipt, parse_record_key, record_key


class LocalRecordGateway:
    """RecordGateway backed directly by a development ledger."""

    def __init__(self, ledger: InMemoryRecordLedger, identity: str):
        self.ledger = ledger
        self.identity = identity

    async def list_ids(self) -> list[int]:
        return [parse_record_key(k) for k in self.ledger.list_keys()]

    async def get_record(self, record_id: int) -> Record:
        key = record_key(record_id)
        return Record.from_ledger(key, self.ledger.get(key))

    async def get_encrypted_handle(self, record_id: int) -> str:
        return self.ledger.get_handle(record_key(record_id))

    async def submit(
        self,
        record_id: int,
        label: str,
        ciphertext: str,
        proof: str,
        public_value1: int,
        public_value2: int,
        category: str,
    ) -> TransactionReceipt:
        return self.ledger.create(
            key=record_key(record_id),
            owner=self.identity,
            label=label,
            ciphertext=ciphertext,
            proof=proof,
            public_value1=public_value1,
            public_value2=public_value2,
            category=category,
        )

    async def submit_verification(
        self, record_id: int, encoded_clear_values: str, decryption_proof: str,
    ) -> TransactionReceipt:
        return self.ledger.verify(record_key(record_id), encoded_clear_values, decryption_proof)

    async def is_available(self) -> bool:
        return bool(self.ledger.available)


__all__ = ["LocalRecordGateway"]
