"""Confidential score records and ledger access.

Records keep their score encrypted on the ledger; plaintext label, owner
and auxiliary values sit alongside. A record is verified exactly once, when
a decryption proof for its handle is checked and the cleartext published.
"""

from .errors import (
    AlreadyVerifiedError,
    ConnectivityError,
    LedgerError,
    NotFoundError,
    RejectedError,
    SealedScoreError,
)
from .models import (
    DEFAULT_CATEGORY,
    DecryptionResult,
    EncryptedInput,
    Record,
    ScoreView,
    TransactionReceipt,
    parse_record_key,
    record_key,
)

__all__ = [
    "DEFAULT_CATEGORY",
    "AlreadyVerifiedError",
    "ConnectivityError",
    "DecryptionResult",
    "EncryptedInput",
    "LedgerError",
    "NotFoundError",
    "Record",
    "RejectedError",
    "ScoreView",
    "SealedScoreError",
    "TransactionReceipt",
    "parse_record_key",
    "record_key",
]
