"""Error taxonomy for ledger and confidential-compute calls.

Gateway and crypto layers raise these; only the session layer turns them
into user-facing status messages.
"""

from __future__ import annotations


class SealedScoreError(Exception):
    """Base class for all client errors."""


class LedgerError(SealedScoreError):
    """A ledger write or read failed for a reason not covered below."""

    def __init__(self, message: str = "", code: str = ""):
        super().__init__(message or code or "ledger error")
        self.code = code


class ConnectivityError(LedgerError):
    """Ledger or decryption oracle unreachable. Safe to retry manually."""


class RejectedError(LedgerError):
    """The signer declined an authenticated action."""


class NotFoundError(LedgerError):
    """Referenced record or ciphertext handle does not exist."""


class AlreadyVerifiedError(LedgerError):
    """Another caller published the decryption first. Benign."""


__all__ = [
    "AlreadyVerifiedError",
    "ConnectivityError",
    "LedgerError",
    "NotFoundError",
    "RejectedError",
    "SealedScoreError",
]
