"""Decrypt-and-publish: oracle decryption followed by on-chain verification.

The verifier does not know which record a handle belongs to. The caller
passes a publish callback that performs the ledger's verification write.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Sequence

import bittensor as bt

from sealedscore.crypto.sdk import ConfidentialComputeSDK
from sealedscore.records.errors import LedgerError
from sealedscore.records.models import DecryptionResult

PublishFn = Callable[[str, str], Awaitable[object]]


class DecryptionVerifier:
    """Obtains clear values plus proof, then publishes them via publish_fn."""

    def __init__(self, sdk: ConfidentialComputeSDK):
        self.sdk = sdk

    async def verify(
        self,
        handles: Sequence[str],
        context_address: str,
        publish_fn: PublishFn,
    ) -> DecryptionResult:
        """Decrypt handles and publish the result.

        Returns the oracle's result once publish_fn has completed. Errors
        from publish_fn (including AlreadyVerifiedError) propagate
        unchanged so the caller can decide how to treat them.
        """
        if not handles:
            raise ValueError("at least one ciphertext handle is required")

        result = await self.sdk.request_decryption(list(handles), context_address)

        missing = [h for h in handles if h not in result.clear_values]
        if missing:
            raise LedgerError(f"oracle returned no clear value for {len(missing)} handle(s)", code="incomplete_decryption")

        bt.logging.debug({"decryption_verifier": {"event": "decrypted", "handles": len(handles)}})
        await publish_fn(result.encoded_clear_values, result.proof)
        bt.logging.info({"decryption_verifier": {"event": "published", "handles": len(handles)}})
        return result


__all__ = ["DecryptionVerifier", "PublishFn"]
