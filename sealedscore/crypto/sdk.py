"""Confidential-compute SDK interface and an HTTP relayer implementation.

The SDK owns the cryptography: producing ciphertexts with input proofs,
and asking the decryption oracle for clear values plus a decryption proof.
This package only orchestrates calls to it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, Sequence, runtime_checkable

import bittensor as bt
import httpx

from sealedscore.crypto.proofs import encode_clear_values
from sealedscore.records.errors import ConnectivityError, LedgerError
from sealedscore.records.models import DecryptionResult, EncryptedInput


@runtime_checkable
class ConfidentialComputeSDK(Protocol):
    """Operations the client needs from the confidential-compute SDK."""

    async def initialize(self) -> None:
        """Idempotent. Must complete before encrypt/request_decryption."""
        ...

    async def encrypt(self, context_address: str, identity: str, value: int) -> EncryptedInput:
        """Encrypt value with an input proof bound to context_address and identity."""
        ...

    async def request_decryption(
        self, handles: Sequence[str], context_address: str,
    ) -> DecryptionResult:
        """Clear values for handles, with a proof the ledger can check."""
        ...


class HTTPRelayerSDK:
    """SDK backed by a relayer service reachable over HTTP."""

    def __init__(
        self,
        relayer_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.relayer_url = relayer_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._lock = asyncio.Lock()
        self._key_info: dict[str, Any] | None = None

    @property
    def initialized(self) -> bool:
        return self._key_info is not None

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, f"{self.relayer_url}{path}", **kwargs)
        except httpx.TransportError as e:
            raise ConnectivityError(f"relayer unreachable: {e}") from e
        if resp.status_code >= 400:
            raise LedgerError(f"relayer returned {resp.status_code}: {resp.text}", code="relayer_error")
        return resp.json()

    async def initialize(self) -> None:
        async with self._lock:
            if self._key_info is not None:
                return
            self._key_info = await self._request("GET", "/v1/keyurl")
            bt.logging.info({"relayer_sdk": {"initialized": True, "url": self.relayer_url}})

    def _require_initialized(self) -> None:
        if self._key_info is None:
            raise RuntimeError("confidential-compute SDK used before initialize()")

    async def encrypt(self, context_address: str, identity: str, value: int) -> EncryptedInput:
        self._require_initialized()
        data = await self._request("POST", "/v1/input-proof", json={
            "contract_address": context_address,
            "user_address": identity,
            "values": [int(value)],
            "type": "euint32",
        })
        return EncryptedInput(
            ciphertext=data["ciphertext"],
            proof=data["proof"],
            context_address=data.get("contract_address", context_address),
            owner=data.get("user_address", identity),
        )

    async def request_decryption(
        self, handles: Sequence[str], context_address: str,
    ) -> DecryptionResult:
        self._require_initialized()
        data = await self._request("POST", "/v1/public-decrypt", json={
            "handles": list(handles),
            "contract_address": context_address,
        })
        clear_values = {h: int(v) for h, v in data["clear_values"].items()}
        return DecryptionResult(
            clear_values=clear_values,
            encoded_clear_values=data.get("encoded_clear_values")
            or encode_clear_values(handles, clear_values),
            proof=data["proof"],
        )


__all__ = ["ConfidentialComputeSDK", "HTTPRelayerSDK"]
