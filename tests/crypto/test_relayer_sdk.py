"""Tests for the HTTP relayer SDK against a mocked relayer."""

import json
import httpx
import pytest

from conftest import CONTEXT_ADDRESS
from sealedscore.crypto.proofs import decode_clear_values
from sealedscore.crypto.sdk import ConfidentialComputeSDK, HTTPRelayerSDK
from sealedscore.records.errors import ConnectivityError, LedgerError


def _relayer(calls: list):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/v1/keyurl":
            return httpx.Response(200, json={"publicKey": "pk"})
        body = json.loads(request.content)
        if request.url.path == "/v1/input-proof":
            return httpx.Response(200, json={
                "ciphertext": f"ct{body['values'][0]}",
                "proof": "proof",
                "contract_address": body["contract_address"],
                "user_address": body["user_address"],
            })
        if request.url.path == "/v1/public-decrypt":
            return httpx.Response(200, json={
                "clear_values": {h: 42 for h in body["handles"]},
                "proof": "dproof",
            })
        return httpx.Response(404)

    return handler


class TestHTTPRelayerSDK:

    @pytest.mark.asyncio
    async def test_encrypt_and_decrypt(self):
        calls = []
        sdk = HTTPRelayerSDK("http://relayer/", transport=httpx.MockTransport(_relayer(calls)))
        assert isinstance(sdk, ConfidentialComputeSDK)

        await sdk.initialize()
        await sdk.initialize()
        assert sdk.initialized
        assert calls.count("/v1/keyurl") == 1

        encrypted = await sdk.encrypt(CONTEXT_ADDRESS, "5Owner", 87)
        assert encrypted.ciphertext == "ct87"
        assert encrypted.context_address == CONTEXT_ADDRESS
        assert encrypted.owner == "5Owner"

        result = await sdk.request_decryption(["0xa", "0xb"], CONTEXT_ADDRESS)
        assert result.clear_values == {"0xa": 42, "0xb": 42}
        assert decode_clear_values(result.encoded_clear_values) == {"0xa": 42, "0xb": 42}
        assert result.proof == "dproof"
        await sdk.close()

    @pytest.mark.asyncio
    async def test_use_before_initialize(self):
        sdk = HTTPRelayerSDK("http://relayer", transport=httpx.MockTransport(_relayer([])))
        with pytest.raises(RuntimeError):
            await sdk.encrypt(CONTEXT_ADDRESS, "5Owner", 1)
        await sdk.close()

    @pytest.mark.asyncio
    async def test_unreachable_relayer(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        sdk = HTTPRelayerSDK("http://relayer", transport=httpx.MockTransport(handler))
        with pytest.raises(ConnectivityError):
            await sdk.initialize()
        assert not sdk.initialized
        await sdk.close()

    @pytest.mark.asyncio
    async def test_relayer_error_status(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        sdk = HTTPRelayerSDK("http://relayer", transport=httpx.MockTransport(handler))
        with pytest.raises(LedgerError) as exc:
            await sdk.initialize()
        assert exc.value.code == "relayer_error"
        await sdk.close()
