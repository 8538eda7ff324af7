import asyncio
import json

import httpx
import pytest

from solana_trade_stream.errors import GatewayError, RateLimitedError
from solana_trade_stream.gateway import SolanaRpcGateway

RPC_URL = "https://rpc.example.com"


def _gateway(handler) -> SolanaRpcGateway:
    return SolanaRpcGateway(RPC_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _run(gateway: SolanaRpcGateway, coro_factory):
    async def scenario():
        try:
            return await coro_factory(gateway)
        finally:
            await gateway.close()

    return asyncio.run(scenario())


def test_signatures_page_passes_cursor() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": [{"signature": "s"}]})

    page = _run(_gateway(handler), lambda g: g.signatures_for_address("addr", before="cursor", limit=10))

    assert page == [{"signature": "s"}]
    assert requests[0]["method"] == "getSignaturesForAddress"
    assert requests[0]["params"][1]["before"] == "cursor"
    assert requests[0]["params"][1]["limit"] == 10


def test_http_429_is_rate_limited() -> None:
    gateway = _gateway(lambda request: httpx.Response(429, text="slow down"))
    with pytest.raises(RateLimitedError):
        _run(gateway, lambda g: g.current_slot())


def test_json_rpc_error_carries_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad"}})

    with pytest.raises(GatewayError) as info:
        _run(_gateway(handler), lambda g: g.transaction_by_signature("sig"))
    assert info.value.code == -32602
    assert not isinstance(info.value, RateLimitedError)


def test_skipped_block_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32007, "message": "Slot was skipped"}}
        )

    assert _run(_gateway(handler), lambda g: g.block_by_slot(42)) is None


def test_null_slot_is_gateway_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None})

    with pytest.raises(GatewayError):
        _run(_gateway(handler), lambda g: g.current_slot())


def test_transport_failure_is_gateway_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GatewayError):
        _run(_gateway(handler), lambda g: g.current_slot())
