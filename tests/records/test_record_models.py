"""Tests for record models and the ledger field mapping."""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from sealedscore.records.models import (
    DEFAULT_CATEGORY,
    Record,
    ScoreView,
    TransactionReceipt,
    parse_record_key,
    record_key,
)


def _payload(**overrides):
    payload = {
        "name": "Hello",
        "creator": "5Owner",
        "timestamp": 1718000000,
        "publicValue1": 87,
        "publicValue2": 0,
        "encryptedValue": "0xabc",
        "category": DEFAULT_CATEGORY,
        "isVerified": False,
        "decryptedValue": 0,
    }
    payload.update(overrides)
    return payload


class TestRecordKey:

    def test_key_format(self):
        assert record_key(1718000000000) == "practice-1718000000000"

    def test_parse_inverts(self):
        assert parse_record_key(record_key(42)) == 42

    @pytest.mark.parametrize("key", ["", "practice-", "practice-abc", "other-12", "practice--1", None])
    def test_parse_rejects_malformed(self, key):
        with pytest.raises(ValueError):
            parse_record_key(key)

    def test_negative_id_rejected(self):
        with pytest.raises(ValueError):
            record_key(-1)


class TestRecordFromLedger:

    def test_maps_field_names(self):
        record = Record.from_ledger("practice-7", _payload())
        assert record.id == 7
        assert record.label == "Hello"
        assert record.owner == "5Owner"
        assert record.created_at == datetime.fromtimestamp(1718000000, tz=timezone.utc)
        assert record.public_value1 == 87
        assert record.encrypted_handle == "0xabc"
        assert record.category == DEFAULT_CATEGORY
        assert not record.is_verified

    def test_unverified_drops_decrypted_value(self):
        record = Record.from_ledger("practice-7", _payload(decryptedValue=55))
        assert record.verified_value is None
        assert record.best_known_value == 87

    def test_verified_value_used(self):
        record = Record.from_ledger("practice-7", _payload(isVerified=True, decryptedValue=92))
        assert record.is_verified
        assert record.verified_value == 92
        assert record.best_known_value == 92

    def test_verified_zero_is_a_value(self):
        record = Record.from_ledger("practice-7", _payload(isVerified=True, decryptedValue=0))
        assert record.verified_value == 0
        assert record.best_known_value == 0

    def test_missing_label_rejected(self):
        with pytest.raises(ValidationError):
            Record.from_ledger("practice-7", _payload(name=""))

    def test_out_of_range_verified_value_rejected(self):
        with pytest.raises(ValidationError):
            Record.from_ledger("practice-7", _payload(isVerified=True, decryptedValue=101))

    def test_bad_key_rejected(self):
        with pytest.raises(ValueError):
            Record.from_ledger("nope", _payload())

    def test_to_ledger_roundtrip(self):
        payload = _payload(isVerified=True, decryptedValue=92)
        record = Record.from_ledger("practice-7", payload)
        assert record.to_ledger() == payload


class TestRecordInvariants:

    def test_verified_without_value_rejected(self):
        with pytest.raises(ValidationError):
            Record(id=1, label="x", owner="o", created_at=datetime.now(timezone.utc), is_verified=True)

    def test_naive_created_at_is_utc(self):
        record = Record(id=1, label="x", owner="o", created_at=datetime(2024, 1, 1, 12, 0))
        assert record.created_at.tzinfo == timezone.utc
        assert record.created_at.hour == 12

    def test_aware_created_at_converted(self):
        plus_two = timezone(timedelta(hours=2))
        record = Record(id=1, label="x", owner="o", created_at=datetime(2024, 1, 1, 12, 0, tzinfo=plus_two))
        assert record.created_at.hour == 10

    def test_frozen(self):
        record = Record(id=1, label="x", owner="o", created_at=datetime.now(timezone.utc))
        with pytest.raises(ValidationError):
            record.label = "y"

    def test_key_property(self):
        record = Record(id=3, label="x", owner="o", created_at=datetime.now(timezone.utc))
        assert record.key == "practice-3"


class TestWireModels:

    def test_receipt_status(self):
        assert TransactionReceipt(tx_hash="0x1", record_key="practice-1").status == "confirmed"
        with pytest.raises(ValidationError):
            TransactionReceipt(tx_hash="0x1", record_key="practice-1", status="maybe")

    def test_score_view_defaults_unknown(self):
        view = ScoreView()
        assert view.value is None
        assert not view.provisional
