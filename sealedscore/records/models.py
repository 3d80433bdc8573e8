"""Pydantic models for confidential score records.

The ledger stores one entry per practice attempt:
- plaintext label, owner, timestamp and auxiliary values
- an opaque handle to the encrypted score
- a one-way verification flag plus the published cleartext
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Ledger conventions
# ---------------------------------------------------------------------------

RECORD_KEY_PREFIX = "practice-"
DEFAULT_CATEGORY = "Pronunciation Practice"

SCORE_MIN = 0
SCORE_MAX = 100


def record_key(record_id: int) -> str:
    """Ledger key for a numeric record id."""
    if record_id < 0:
        raise ValueError(f"record id must be non-negative, got {record_id}")
    return f"{RECORD_KEY_PREFIX}{record_id}"


def parse_record_key(key: str) -> int:
    """Inverse of record_key(). Raises ValueError on malformed keys."""
    if not isinstance(key, str) or not key.startswith(RECORD_KEY_PREFIX):
        raise ValueError(f"malformed record key: {key!r}")
    suffix = key[len(RECORD_KEY_PREFIX):]
    if not suffix.isdigit():
        raise ValueError(f"malformed record key: {key!r}")
    return int(suffix)


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


class Record(BaseModel):
    """One confidential learning attempt as read from the ledger.

    verified_value is authoritative only when is_verified is set. Unverified
    records never carry a verified_value, whatever the ledger reports.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    label: str = Field(min_length=1, max_length=64)
    owner: str = Field(min_length=1)
    created_at: datetime
    public_value1: int = Field(default=0, ge=0)
    public_value2: int = Field(default=0, ge=0)
    encrypted_handle: str = ""
    category: str = DEFAULT_CATEGORY
    is_verified: bool = False
    verified_value: int | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)

    @model_validator(mode="before")
    @classmethod
    def _drop_unverified_value(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("is_verified"):
            data = {**data, "verified_value": None}
        return data

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _verified_needs_value(self) -> Record:
        if self.is_verified and self.verified_value is None:
            raise ValueError("verified record is missing its verified_value")
        return self

    @property
    def key(self) -> str:
        return record_key(self.id)

    @property
    def best_known_value(self) -> int:
        """Published cleartext if verified, else the public fallback."""
        if self.is_verified and self.verified_value is not None:
            return self.verified_value
        return self.public_value1

    @classmethod
    def from_ledger(cls, key: str, payload: dict[str, Any]) -> Record:
        """Validate a raw ledger entry.

        This is the only place ledger field names are mapped. Malformed
        entries raise (ValueError / pydantic.ValidationError) here rather
        than being patched up further down.
        """
        return cls.model_validate({
            "id": parse_record_key(key),
            "label": payload.get("name"),
            "owner": payload.get("creator"),
            "created_at": payload.get("timestamp"),
            "public_value1": payload.get("publicValue1", 0),
            "public_value2": payload.get("publicValue2", 0),
            "encrypted_handle": payload.get("encryptedValue", ""),
            "category": payload.get("category", DEFAULT_CATEGORY),
            "is_verified": bool(payload.get("isVerified", False)),
            "verified_value": payload.get("decryptedValue"),
        })

    def to_ledger(self) -> dict[str, Any]:
        """Serialize back to the ledger's field names."""
        return {
            "name": self.label,
            "creator": self.owner,
            "timestamp": int(self.created_at.timestamp()),
            "publicValue1": self.public_value1,
            "publicValue2": self.public_value2,
            "encryptedValue": self.encrypted_handle,
            "category": self.category,
            "isVerified": self.is_verified,
            "decryptedValue": self.verified_value if self.is_verified else 0,
        }


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class TransactionReceipt(BaseModel):
    """Acknowledgement of an authenticated ledger write."""

    tx_hash: str
    record_key: str
    status: str = Field(default="confirmed", pattern=r"^(confirmed|reverted)$")


class EncryptedInput(BaseModel):
    """Ciphertext plus an input proof bound to a contract and identity."""

    ciphertext: str = Field(min_length=1)
    proof: str = Field(min_length=1)
    context_address: str
    owner: str


class DecryptionResult(BaseModel):
    """Oracle answer for a set of ciphertext handles."""

    clear_values: dict[str, int]
    encoded_clear_values: str
    proof: str = Field(min_length=1)


class ScoreView(BaseModel):
    """What may be shown for a record's score.

    provisional=True marks a decrypted value the ledger has not confirmed.
    value=None means the score is unknown (still encrypted).
    """

    value: int | None = None
    provisional: bool = False


__all__ = [
    "DEFAULT_CATEGORY",
    "RECORD_KEY_PREFIX",
    "SCORE_MAX",
    "SCORE_MIN",
    "DecryptionResult",
    "EncryptedInput",
    "Record",
    "ScoreView",
    "TransactionReceipt",
    "parse_record_key",
    "record_key",
]
