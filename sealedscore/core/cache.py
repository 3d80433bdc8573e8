"""In-memory view of the ledger's records.

A refresh reads every id from the gateway and fetches each record.
Failures on individual records are isolated: logged, skipped, and the
refresh still succeeds. Overlapping refreshes may race; the last one to
finish wins, since all of them read the same ledger.
"""

from __future__ import annotations

import time

import bittensor as bt

from sealedscore.records.gateway.interface import RecordGateway
from sealedscore.records.models import Record


class RecordCache:
    """Records fetched from a RecordGateway, refreshed on demand."""

    def __init__(self, gateway: RecordGateway):
        self.gateway = gateway
        self._records: list[Record] = []
        self._by_id: dict[int, Record] = {}
        self._refreshing = 0
        self.last_refreshed_at: float | None = None

    @property
    def busy(self) -> bool:
        """True while at least one fetch is in flight."""
        return self._refreshing > 0

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    def get(self, record_id: int) -> Record | None:
        return self._by_id.get(record_id)

    def owned_records(self, identity: str | None) -> list[Record]:
        """Records created by identity. Empty when no identity is connected."""
        if not identity:
            return []
        return [r for r in self._records if r.owner == identity]

    def search(self, term: str) -> list[Record]:
        """Records whose label or owner contains term (case-insensitive)."""
        needle = term.strip().lower()
        if not needle:
            return self.records
        return [
            r for r in self._records
            if needle in r.label.lower() or needle in r.owner.lower()
        ]

    def replace(self, records: list[Record]) -> None:
        self._records = list(records)
        self._by_id = {r.id: r for r in self._records}
        self.last_refreshed_at = time.time()

    def clear(self) -> None:
        self._records = []
        self._by_id = {}
        self.last_refreshed_at = None

    async def fetch(self) -> list[Record]:
        """Read the full record set without touching the cache.

        Raises whatever list_ids() raises (e.g. ConnectivityError).
        """
        self._refreshing += 1
        try:
            ids = await self.gateway.list_ids()
            fetched: list[Record] = []
            skipped = 0
            for record_id in ids:
                try:
                    fetched.append(await self.gateway.get_record(record_id))
                except Exception as e:
                    skipped += 1
                    bt.logging.warning({"record_cache": {"record_id": record_id, "skipped": str(e)}})
            bt.logging.debug({"record_cache": {"listed": len(ids), "fetched": len(fetched), "skipped": skipped}})
            return fetched
        finally:
            self._refreshing -= 1

    async def refresh(self) -> list[Record]:
        """fetch() and apply the result."""
        records = await self.fetch()
        self.replace(records)
        return records


__all__ = ["RecordCache"]
