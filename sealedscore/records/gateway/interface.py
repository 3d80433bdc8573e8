"""RecordGateway protocol - pluggable ledger access.

Implementations: HTTPRecordGateway (remote ledger over HTTP),
LocalRecordGateway (in-process development ledger, also used in tests).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sealedscore.records.models import Record, TransactionReceipt


@runtime_checkable
class RecordGateway(Protocol):
    """Read-only and authenticated access to the ledger's record storage."""

    async def list_ids(self) -> list[int]:
        """All record ids currently on the ledger."""
        ...

    async def get_record(self, record_id: int) -> Record:
        """Fetch one record. Raises NotFoundError if absent."""
        ...

    async def get_encrypted_handle(self, record_id: int) -> str:
        """Opaque ciphertext reference of the record's encrypted score."""
        ...

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
        """Authenticated write of a new record."""
        ...

    async def submit_verification(
        self, record_id: int, encoded_clear_values: str, decryption_proof: str,
    ) -> TransactionReceipt:
        """Publish cleartext under a decryption proof.

        Raises AlreadyVerifiedError if the record was verified first.
        """
        ...

    async def is_available(self) -> bool:
        """Whether the confidential-compute backend is up."""
        ...


__all__ = ["RecordGateway"]
