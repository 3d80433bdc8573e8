"""HTTP-based RecordGateway client.

Reads are public and retried with backoff on transport errors. Writes are
authenticated with a challenge-response bearer token signed by the wallet
hotkey and are never retried automatically.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import bittensor as bt
import httpx

from sealedscore.records.errors import (
    AlreadyVerifiedError,
    ConnectivityError,
    LedgerError,
    NotFoundError,
    RejectedError,
)
from sealedscore.records.models import Record, TransactionReceipt, parse_record_key, record_key


def _error_code(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("error", ""))
    except Exception:
        return ""


def _raise_for_status(resp: httpx.Response) -> None:
    """Map ledger HTTP errors onto the error taxonomy."""
    if resp.status_code < 400:
        return
    code = _error_code(resp)
    if resp.status_code == 404:
        raise NotFoundError(f"not found: {resp.request.url.path}", code=code or "not_found")
    if resp.status_code == 409 and code == "already_verified":
        raise AlreadyVerifiedError("Data already verified", code=code)
    raise LedgerError(f"ledger returned {resp.status_code}: {code or resp.text}", code=code)


class HTTPRecordGateway:
    """Client for a record ledger served over HTTP."""

    def __init__(
        self,
        ledger_url: str,
        wallet: Any = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.ledger_url = ledger_url.rstrip("/")
        self.wallet = wallet
        self._identity = wallet.hotkey.ss58_address if wallet is not None else None
        self._token: str | None = None
        self._token_expires: float = 0.0
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._max_retries = max(1, max_retries)
        self._backoff_base = backoff_base

    @property
    def identity(self) -> str | None:
        return self._identity

    async def close(self) -> None:
        await self._client.aclose()

    # -- Auth --

    def _sign(self, nonce: str) -> str:
        try:
            signature = self.wallet.hotkey.sign(nonce.encode())
        except Exception as e:
            raise RejectedError(f"signer declined: {e}") from e
        return signature.hex() if isinstance(signature, bytes) else str(signature)

    async def _ensure_auth(self) -> str:
        """Ensure we have a valid bearer token, refreshing if needed."""
        if self.wallet is None:
            raise LedgerError("no signer configured for ledger writes", code="no_signer")
        if self._token and time.time() < self._token_expires - 60:
            return self._token

        try:
            resp = await self._client.post(
                f"{self.ledger_url}/ledger/auth/challenge",
                json={"identity": self._identity},
            )
            if resp.status_code != 200:
                raise LedgerError(f"auth challenge failed: {resp.status_code} {resp.text}", code="auth_failed")
            nonce = resp.json()["nonce"]

            sig_hex = self._sign(nonce)

            resp = await self._client.post(
                f"{self.ledger_url}/ledger/auth/respond",
                json={"identity": self._identity, "nonce": nonce, "signature": sig_hex},
            )
        except httpx.TransportError as e:
            raise ConnectivityError(f"ledger unreachable: {e}") from e
        if resp.status_code != 200:
            raise LedgerError(f"auth respond failed: {resp.status_code} {resp.text}", code="auth_failed")

        self._token = resp.json()["token"]
        self._token_expires = time.time() + 3500  # ~1 hour minus buffer
        return self._token

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    # -- Transport --

    async def _get(self, path: str) -> httpx.Response:
        """Public GET with retry."""
        for attempt in range(self._max_retries):
            try:
                return await self._client.get(f"{self.ledger_url}{path}")
            except httpx.TransportError as e:
                if attempt == self._max_retries - 1:
                    raise ConnectivityError(f"ledger unreachable: {e}") from e
                wait = self._backoff_base * 2 ** attempt
                bt.logging.warning({"record_gateway": {"retry": attempt, "wait": wait, "error": str(e)}})
                await asyncio.sleep(wait)
        raise ConnectivityError("Max retries exceeded")

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        """Authenticated POST. Re-authenticates once on 401, never retries otherwise."""
        for _ in range(2):
            token = await self._ensure_auth()
            try:
                resp = await self._client.post(
                    f"{self.ledger_url}{path}",
                    json=body,
                    headers=self._auth_headers(token),
                )
            except httpx.TransportError as e:
                raise ConnectivityError(f"ledger unreachable: {e}") from e
            if resp.status_code == 401:
                self._token = None  # Force re-auth
                continue
            return resp
        raise LedgerError("ledger rejected bearer token", code="unauthorized")

    # -- RecordGateway interface --

    async def list_ids(self) -> list[int]:
        resp = await self._get("/ledger/records")
        _raise_for_status(resp)
        ids: list[int] = []
        for key in resp.json().get("records", []):
            try:
                ids.append(parse_record_key(key))
            except ValueError:
                bt.logging.warning({"record_gateway": {"skipped_key": str(key)[:64]}})
        return ids

    async def get_record(self, record_id: int) -> Record:
        key = record_key(record_id)
        resp = await self._get(f"/ledger/records/{key}")
        _raise_for_status(resp)
        return Record.from_ledger(key, resp.json())

    async def get_encrypted_handle(self, record_id: int) -> str:
        resp = await self._get(f"/ledger/records/{record_key(record_id)}/handle")
        _raise_for_status(resp)
        return resp.json()["handle"]

    async def submit(
        self,
        record_id: int,
        label: str,
        ciphertext: str,
        proof: str,
        public_value1: int,
        public_value2: int,
        category: str,
    ) -> TransactionReceipt:
        resp = await self._post("/ledger/records", {
            "key": record_key(record_id),
            "label": label,
            "ciphertext": ciphertext,
            "proof": proof,
            "public_value1": public_value1,
            "public_value2": public_value2,
            "category": category,
        })
        _raise_for_status(resp)
        return TransactionReceipt(**resp.json())

    async def submit_verification(
        self, record_id: int, encoded_clear_values: str, decryption_proof: str,
    ) -> TransactionReceipt:
        resp = await self._post(
            f"/ledger/records/{record_key(record_id)}/verify",
            {"clear_values": encoded_clear_values, "proof": decryption_proof},
        )
        _raise_for_status(resp)
        return TransactionReceipt(**resp.json())

    async def is_available(self) -> bool:
        resp = await self._get("/ledger/health")
        _raise_for_status(resp)
        return bool(resp.json().get("available", False))


__all__ = ["HTTPRecordGateway"]
