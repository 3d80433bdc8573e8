"""End-to-end session flows against the development ledger."""

import pytest

from conftest import CONTEXT_ADDRESS
from sealedscore.core.identity import SessionIdentity, wallet_identity
from sealedscore.core.session import ScoreSession
from sealedscore.core.status import StatusKind
from sealedscore.records.gateway import LocalRecordGateway
from sealedscore.records.models import record_key


def _session(ledger, sdk, wallet, start_id: int = 1718000000000):
    ids = iter(range(start_id, start_id + 100))
    gateway = LocalRecordGateway(ledger, wallet.hotkey.ss58_address)
    return ScoreSession(
        gateway=gateway,
        sdk=sdk,
        identity_provider=wallet_identity(wallet),
        context_address=CONTEXT_ADDRESS,
        id_factory=lambda: next(ids),
    )


class TestSessionAgainstLedger:

    @pytest.mark.asyncio
    async def test_create_then_decrypt(self, ledger, fake_sdk, owner_wallet):
        session = _session(ledger, fake_sdk, owner_wallet)
        assert await session.connect()

        record_id = await session.create_record("Hello", 87)
        assert record_id == 1718000000000
        record = session.cache.get(record_id)
        assert record.owner == owner_wallet.hotkey.ss58_address
        assert not record.is_verified
        assert session.displayed_score(record_id).value is None

        assert await session.decrypt_record(record_id) == 87
        assert ledger.get(record_key(record_id))["isVerified"] is True
        assert session.cache.get(record_id).verified_value == 87

        # second decrypt reads the published value, no oracle round-trip
        calls = fake_sdk.decrypt_calls
        assert await session.decrypt_record(record_id) == 87
        assert fake_sdk.decrypt_calls == calls

    @pytest.mark.asyncio
    async def test_stats_after_two_creates(self, ledger, fake_sdk, owner_wallet):
        session = _session(ledger, fake_sdk, owner_wallet)
        await session.connect()
        await session.create_record("Hello", 80)
        await session.create_record("World", 50)

        stats = session.stats
        assert stats.total_count == 2
        assert stats.average_score == 65
        assert stats.recent_count == 2
        assert stats.improvement_rate == 100
        assert stats.best_label == "Hello"

    @pytest.mark.asyncio
    async def test_other_identity_sees_but_does_not_own(self, ledger, fake_sdk, owner_wallet, other_wallet):
        mine = _session(ledger, fake_sdk, owner_wallet)
        await mine.connect()
        await mine.create_record("Hello", 80)

        theirs = _session(ledger, fake_sdk, other_wallet, start_id=1)
        await theirs.connect()
        assert len(theirs.records) == 1
        assert theirs.owned_records == []
        assert theirs.stats.total_count == 0

    @pytest.mark.asyncio
    async def test_duplicate_id_surfaces_error(self, ledger, fake_sdk, owner_wallet):
        gateway = LocalRecordGateway(ledger, owner_wallet.hotkey.ss58_address)
        session = ScoreSession(
            gateway=gateway,
            sdk=fake_sdk,
            identity_provider=SessionIdentity(owner_wallet.hotkey.ss58_address),
            context_address=CONTEXT_ADDRESS,
            id_factory=lambda: 42,
        )
        assert await session.create_record("Hello", 80) == 42
        assert await session.create_record("Again", 70) is None
        assert session.transaction_status.kind == StatusKind.ERROR
        assert session.transaction_status.message.startswith("Submission failed:")

    @pytest.mark.asyncio
    async def test_availability_follows_ledger(self, ledger, fake_sdk, owner_wallet):
        session = _session(ledger, fake_sdk, owner_wallet)
        assert await session.check_availability()
        ledger.available = False
        assert not await session.check_availability()
