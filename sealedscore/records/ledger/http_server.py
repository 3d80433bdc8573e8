"""HTTP endpoint serving the development record ledger.

Routes:
  POST /ledger/auth/challenge        - request auth challenge
  POST /ledger/auth/respond          - submit signed challenge for bearer token
  GET  /ledger/health                - confidential-compute availability
  GET  /ledger/records               - list record keys
  GET  /ledger/records/{key}         - fetch one record
  GET  /ledger/records/{key}/handle  - fetch the encrypted score handle
  POST /ledger/records               - create a record (bearer token)
  POST /ledger/records/{key}/verify  - publish a decryption (bearer token)

Reads are public; writes are owned by the token's identity.
"""

from __future__ import annotations

from typing import Any

import bittensor as bt
from aiohttp import web

from sealedscore.records.errors import AlreadyVerifiedError, LedgerError, NotFoundError
from sealedscore.records.ledger.auth import AccessPolicy
from sealedscore.records.ledger.store import InMemoryRecordLedger
from sealedscore.records.models import DEFAULT_CATEGORY


def _hk(identity: str | None) -> str:
    """Truncate identity for log readability."""
    if not identity:
        return "none"
    return identity[:16]


def _error_response(e: LedgerError) -> web.Response:
    if isinstance(e, NotFoundError):
        return web.json_response({"error": "not_found", "message": str(e)}, status=404)
    if isinstance(e, AlreadyVerifiedError):
        return web.json_response({"error": "already_verified", "message": str(e)}, status=409)
    return web.json_response({"error": e.code or "ledger_error", "message": str(e)}, status=400)


class LedgerHTTPServer:
    """Lightweight async HTTP server for the record ledger."""

    def __init__(
        self,
        ledger: InMemoryRecordLedger,
        access_policy: AccessPolicy,
        host: str = "0.0.0.0",
        port: int = 8300,
    ):
        self.ledger = ledger
        self.access_policy = access_policy
        self.host = host
        self.port = port
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    def _build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/ledger/auth/challenge", self._handle_challenge)
        app.router.add_post("/ledger/auth/respond", self._handle_respond)
        app.router.add_get("/ledger/health", self._handle_health)
        app.router.add_get("/ledger/records", self._handle_list_records)
        app.router.add_post("/ledger/records", self._handle_create_record)
        app.router.add_get("/ledger/records/{key}", self._handle_get_record)
        app.router.add_get("/ledger/records/{key}/handle", self._handle_get_handle)
        app.router.add_post("/ledger/records/{key}/verify", self._handle_verify)
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self._build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        bt.logging.info({"ledger_http": {"status": "started", "port": self.port}})

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            bt.logging.info({"ledger_http": "stopped"})

    # -- Auth routes --

    async def _handle_challenge(self, request: web.Request) -> web.Response:
        """Issue a challenge nonce for an identity."""
        try:
            body = await request.json()
            identity = body.get("identity", "")
        except Exception:
            bt.logging.warning({"ledger_request": {"endpoint": "auth/challenge", "status": 400, "error": "invalid_body"}})
            return web.json_response({"error": "invalid_body"}, status=400)

        if not self.access_policy.is_allowed(identity):
            bt.logging.info({"ledger_request": {"endpoint": "auth/challenge", "identity": _hk(identity), "status": 403}})
            return web.json_response({"error": "ineligible"}, status=403)

        nonce = self.access_policy.issue_challenge(identity)
        bt.logging.debug({"ledger_request": {"endpoint": "auth/challenge", "identity": _hk(identity), "status": 200}})
        return web.json_response({"nonce": nonce})

    async def _handle_respond(self, request: web.Request) -> web.Response:
        """Verify signed challenge and issue bearer token."""
        try:
            body = await request.json()
            identity = body.get("identity", "")
            nonce = body.get("nonce", "")
            signature = body.get("signature", "")
        except Exception:
            bt.logging.warning({"ledger_request": {"endpoint": "auth/respond", "status": 400, "error": "invalid_body"}})
            return web.json_response({"error": "invalid_body"}, status=400)

        token = self.access_policy.verify_response(identity, nonce, signature)
        if token is None:
            bt.logging.warning({"ledger_request": {"endpoint": "auth/respond", "identity": _hk(identity), "status": 403}})
            return web.json_response({"error": "auth_failed"}, status=403)

        return web.json_response({"token": token})

    def _check_auth(self, request: web.Request) -> str | None:
        """Validate bearer token from Authorization header. Returns identity or None."""
        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return None
        return self.access_policy.validate_token(auth[7:])

    def _authorize_write(self, request: web.Request, endpoint: str) -> tuple[str | None, web.Response | None]:
        identity = self._check_auth(request)
        if identity is None:
            bt.logging.debug({"ledger_request": {"endpoint": endpoint, "status": 401}})
            return None, web.json_response({"error": "unauthorized"}, status=401)
        return identity, None

    # -- Read routes --

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"available": bool(self.ledger.available)})

    async def _handle_list_records(self, request: web.Request) -> web.Response:
        keys = self.ledger.list_keys()
        bt.logging.debug({"ledger_request": {"endpoint": "records", "status": 200, "count": len(keys)}})
        return web.json_response({"records": keys})

    async def _handle_get_record(self, request: web.Request) -> web.Response:
        key = request.match_info["key"]
        try:
            entry = self.ledger.get(key)
        except LedgerError as e:
            return _error_response(e)
        return web.json_response(entry)

    async def _handle_get_handle(self, request: web.Request) -> web.Response:
        key = request.match_info["key"]
        try:
            handle = self.ledger.get_handle(key)
        except LedgerError as e:
            return _error_response(e)
        return web.json_response({"handle": handle})

    # -- Write routes --

    async def _handle_create_record(self, request: web.Request) -> web.Response:
        identity, denied = self._authorize_write(request, "records")
        if denied is not None:
            return denied

        try:
            body: dict[str, Any] = await request.json()
            key = body["key"]
            label = body["label"]
            ciphertext = body["ciphertext"]
            proof = body["proof"]
            public_value1 = int(body.get("public_value1", 0))
            public_value2 = int(body.get("public_value2", 0))
            category = body.get("category", DEFAULT_CATEGORY)
        except (KeyError, TypeError, ValueError) as e:
            return web.json_response({"error": f"invalid_body: {e}"}, status=400)

        try:
            receipt = self.ledger.create(
                key=key,
                owner=identity,
                label=label,
                ciphertext=ciphertext,
                proof=proof,
                public_value1=public_value1,
                public_value2=public_value2,
                category=category,
            )
        except ValueError:
            return web.json_response({"error": "invalid_key"}, status=400)
        except LedgerError as e:
            return _error_response(e)

        bt.logging.info({"ledger_request": {"endpoint": "records", "identity": _hk(identity), "status": 200, "key": key}})
        return web.json_response(receipt.model_dump(mode="json"))

    async def _handle_verify(self, request: web.Request) -> web.Response:
        identity, denied = self._authorize_write(request, "records/{key}/verify")
        if denied is not None:
            return denied

        key = request.match_info["key"]
        try:
            body: dict[str, Any] = await request.json()
            encoded = body["clear_values"]
            proof = body["proof"]
        except (KeyError, TypeError, ValueError) as e:
            return web.json_response({"error": f"invalid_body: {e}"}, status=400)

        try:
            receipt = self.ledger.verify(key, encoded, proof)
        except LedgerError as e:
            bt.logging.info({"ledger_request": {"endpoint": "records/{key}/verify", "identity": _hk(identity), "key": key, "error": e.code}})
            return _error_response(e)

        bt.logging.info({"ledger_request": {"endpoint": "records/{key}/verify", "identity": _hk(identity), "status": 200, "key": key}})
        return web.json_response(receipt.model_dump(mode="json"))


__all__ = ["LedgerHTTPServer"]
