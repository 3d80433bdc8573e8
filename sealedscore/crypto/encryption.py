"""Score encryption ahead of a ledger submit."""

from __future__ import annotations

import asyncio

import bittensor as bt

from sealedscore.crypto.sdk import ConfidentialComputeSDK
from sealedscore.records.errors import LedgerError
from sealedscore.records.models import SCORE_MAX, SCORE_MIN, EncryptedInput


def clamp_score(value: int) -> int:
    """Clamp a raw score into the score domain [0, 100]."""
    return max(SCORE_MIN, min(SCORE_MAX, int(value)))


class EncryptionClient:
    """Turns a plaintext score into (ciphertext, proof) for one contract and identity.

    Never retries: encrypting the same value twice yields diverging
    ciphertexts, so a retry is always the caller's explicit decision.
    """

    def __init__(self, sdk: ConfidentialComputeSDK):
        self.sdk = sdk
        self._ready = False
        self._lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    async def ensure_ready(self) -> None:
        """Initialize the SDK once; concurrent callers wait for the same run."""
        if self._ready:
            return
        async with self._lock:
            if self._ready:
                return
            await self.sdk.initialize()
            self._ready = True

    async def encrypt(self, context_address: str, owner: str, plaintext: int) -> EncryptedInput:
        """Encrypt an already-clamped score.

        Raises:
            ValueError: plaintext outside [0, 100].
            LedgerError: the SDK returned a proof bound elsewhere.
        """
        if not SCORE_MIN <= plaintext <= SCORE_MAX:
            raise ValueError(f"score {plaintext} outside [{SCORE_MIN}, {SCORE_MAX}]")

        await self.ensure_ready()
        result = await self.sdk.encrypt(context_address, owner, plaintext)

        if result.context_address != context_address or result.owner != owner:
            bt.logging.error({
                "encryption_client": {
                    "event": "proof_binding_mismatch",
                    "expected_context": context_address,
                    "got_context": result.context_address,
                }
            })
            raise LedgerError("input proof is not bound to this contract and identity", code="proof_binding_mismatch")

        bt.logging.debug({"encryption_client": {"event": "encrypted", "owner": owner[:16]}})
        return result


__all__ = ["EncryptionClient", "clamp_score"]
