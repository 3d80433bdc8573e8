"""Write access to the development ledger.

An identity proves control of its hotkey by signing a nonce and receives a
bearer token. Each identity holds at most one live token: signing in again
revokes the previous one. The token's identity is recorded as the owner of
every record created with it, so a token is the write capability for that
owner's records and nothing else.
"""

from __future__ import annotations

import secrets
import time

import bittensor as bt

from sealedscore.crypto.proofs import verify_payload


class AccessPolicy:
    """Nonce sign-in for ledger writers, with an optional allow-list."""

    def __init__(
        self,
        allowed_identities: set[str] | None = None,
        challenge_ttl: float = 120.0,
        token_ttl: float = 3600.0,
    ):
        self.allowed_identities = allowed_identities
        self.challenge_ttl = challenge_ttl
        self.token_ttl = token_ttl

        # identity -> (nonce, deadline); a new challenge replaces the old one
        self._nonces: dict[str, tuple[str, float]] = {}
        # token -> (identity, deadline)
        self._writers: dict[str, tuple[str, float]] = {}
        # identity -> its live token
        self._token_of: dict[str, str] = {}

    def is_allowed(self, identity: str) -> bool:
        if not identity:
            return False
        return self.allowed_identities is None or identity in self.allowed_identities

    def issue_challenge(self, identity: str) -> str:
        nonce = secrets.token_hex(32)
        self._nonces[identity] = (nonce, time.time() + self.challenge_ttl)
        return nonce

    def verify_response(self, identity: str, nonce: str, signature: str) -> str | None:
        """Token for identity if it signed its outstanding nonce, else None."""
        outstanding = self._nonces.get(identity)
        if outstanding is None or outstanding[0] != nonce:
            bt.logging.warning({"ledger_auth": {"identity": identity[:16], "rejected": "unknown_nonce"}})
            return None
        del self._nonces[identity]
        if time.time() > outstanding[1]:
            bt.logging.warning({"ledger_auth": {"identity": identity[:16], "rejected": "expired_nonce"}})
            return None
        if not verify_payload(nonce, signature, identity):
            bt.logging.warning({"ledger_auth": {"identity": identity[:16], "rejected": "bad_signature"}})
            return None

        self.revoke(identity)
        token = secrets.token_hex(32)
        self._writers[token] = (identity, time.time() + self.token_ttl)
        self._token_of[identity] = token
        bt.logging.info({"ledger_auth": {"identity": identity[:16], "signed_in": True}})
        return token

    def validate_token(self, token: str) -> str | None:
        """Identity that owns token, or None if unknown, revoked or expired."""
        writer = self._writers.get(token)
        if writer is None:
            return None
        identity, deadline = writer
        if time.time() > deadline:
            self.revoke(identity)
            return None
        return identity

    def revoke(self, identity: str) -> None:
        token = self._token_of.pop(identity, None)
        if token is not None:
            self._writers.pop(token, None)


__all__ = ["AccessPolicy"]
