"""Tests for the JSON-RPC ChainQuery client."""

import json

import httpx
import pytest

from assoc_verifier.core.config import UNIVERSAL_VALIDATOR_ADDRESS
from assoc_verifier.erc8092.signatures import JsonRpcChainClient, validator_address_for
from assoc_verifier.erc8092.signatures.exceptions import ChainQueryError

RPC = "https://rpc.test"
ADDRESS = "0x" + "ab" * 20


def client_for(handler) -> JsonRpcChainClient:
    transport = httpx.MockTransport(handler)
    return JsonRpcChainClient(RPC, client=httpx.AsyncClient(transport=transport))


def rpc_result(result):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
    return handler


class TestGetCode:

    @pytest.mark.asyncio
    async def test_returns_code(self):
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x6080"})

        async with client_for(handler) as chain:
            assert await chain.get_code(ADDRESS) == b"\x60\x80"
        assert seen["method"] == "eth_getCode"
        assert seen["params"] == [ADDRESS, "latest"]

    @pytest.mark.asyncio
    async def test_empty_code_is_none(self):
        async with client_for(rpc_result("0x")) as chain:
            assert await chain.get_code(ADDRESS) is None


class TestCall:

    @pytest.mark.asyncio
    async def test_read_contract_concatenates_selector_and_args(self):
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x01"})

        async with client_for(handler) as chain:
            result = await chain.read_contract(ADDRESS, b"\x16\x26\xba\x7e", b"\x00\x01")

        assert result == b"\x01"
        assert seen["method"] == "eth_call"
        assert seen["params"] == [{"to": ADDRESS, "data": "0x1626ba7e0001"}, "latest"]

    @pytest.mark.asyncio
    async def test_revert_carries_data(self):
        def handler(request):
            return httpx.Response(200, json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": 3, "message": "execution reverted", "data": "0xdeadbeef"},
            })

        async with client_for(handler) as chain:
            with pytest.raises(ChainQueryError) as exc:
                await chain.call(ADDRESS, b"\x00")
        assert exc.value.revert_data == b"\xde\xad\xbe\xef"
        assert "execution reverted" in exc.value.message

    @pytest.mark.asyncio
    async def test_http_error(self):
        async with client_for(lambda request: httpx.Response(503)) as chain:
            with pytest.raises(ChainQueryError, match="HTTP 503"):
                await chain.call(ADDRESS, b"\x00")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as chain:
            with pytest.raises(ChainQueryError, match="transport error"):
                await chain.get_code(ADDRESS)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with client_for(handler) as chain:
            with pytest.raises(ChainQueryError, match="timed out"):
                await chain.get_code(ADDRESS)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async with client_for(lambda request: httpx.Response(200, text="<html>")) as chain:
            with pytest.raises(ChainQueryError, match="non-JSON"):
                await chain.get_code(ADDRESS)

    @pytest.mark.asyncio
    async def test_non_hex_result(self):
        async with client_for(rpc_result(12)) as chain:
            with pytest.raises(ChainQueryError, match="not a hex string"):
                await chain.call(ADDRESS, b"\x00")


@pytest.mark.asyncio
async def test_injected_client_not_closed():
    http = httpx.AsyncClient(transport=httpx.MockTransport(rpc_result("0x")))
    async with JsonRpcChainClient(RPC, client=http):
        pass
    assert not http.is_closed
    await http.aclose()


class TestValidatorAddress:

    def test_defaults_to_configured_validator(self):
        chain = JsonRpcChainClient(RPC, client=httpx.AsyncClient())
        assert chain.validator_address == UNIVERSAL_VALIDATOR_ADDRESS
        assert validator_address_for(chain) == UNIVERSAL_VALIDATOR_ADDRESS

    def test_override(self):
        chain = JsonRpcChainClient(RPC, client=httpx.AsyncClient(), validator_address=ADDRESS)
        assert validator_address_for(chain) == ADDRESS

    def test_disabled(self):
        chain = JsonRpcChainClient(RPC, client=httpx.AsyncClient(), validator_address=None)
        assert validator_address_for(chain) is None
