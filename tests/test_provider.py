"""JSON-RPC wallet provider against a mocked node."""

import json

import httpx
import pytest

from conftest import OWNER, TX_HASH, VISITOR
from coffee_console.config import ConsoleSettings
from coffee_console.provider import JsonRpcWalletProvider, ProviderRpcError, build_provider

RPC_URL = "http://127.0.0.1:8545"


def _node(handler_results: dict, seen: list):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        result = handler_results[body["method"]]
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_request_accounts_maps_to_node_accounts() -> None:
    seen: list = []
    provider = JsonRpcWalletProvider(
        RPC_URL, transport=_node({"eth_accounts": [OWNER, VISITOR]}, seen)
    )
    changes: list = []
    provider.on("accountsChanged", changes.append)

    accounts = await provider.request("eth_requestAccounts")
    await provider.request("eth_requestAccounts")

    assert accounts == [OWNER, VISITOR]
    assert [body["method"] for body in seen] == ["eth_accounts", "eth_accounts"]
    assert provider.selected_address == OWNER
    assert changes == [[OWNER, VISITOR]]
    await provider.aclose()


@pytest.mark.asyncio
async def test_send_transaction_passes_params_through() -> None:
    seen: list = []
    provider = JsonRpcWalletProvider(RPC_URL, transport=_node({"eth_sendTransaction": TX_HASH}, seen))
    params = [{"to": "0xc0ffee", "from": OWNER, "data": "0x3ccfd60b"}]

    assert await provider.request("eth_sendTransaction", params) == TX_HASH
    assert seen[0]["params"] == params
    assert seen[0]["jsonrpc"] == "2.0"
    await provider.aclose()


@pytest.mark.asyncio
async def test_rpc_error_carries_code() -> None:
    error = {"error": {"code": -32000, "message": "insufficient funds"}}
    provider = JsonRpcWalletProvider(RPC_URL, transport=_node({"eth_getBalance": error}, []))

    with pytest.raises(ProviderRpcError, match="insufficient funds") as info:
        await provider.request("eth_getBalance", ["0xc0ffee", "latest"])
    assert info.value.code == -32000
    await provider.aclose()


@pytest.mark.asyncio
async def test_http_failure_becomes_rpc_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502))
    provider = JsonRpcWalletProvider(RPC_URL, transport=transport)

    with pytest.raises(ProviderRpcError, match="eth_getBalance failed"):
        await provider.request("eth_getBalance", ["0xc0ffee", "latest"])
    await provider.aclose()


def test_build_provider_from_settings() -> None:
    assert build_provider(ConsoleSettings(_env_file=None, rpc_url="")) is None

    provider = build_provider(
        ConsoleSettings(_env_file=None, rpc_url=RPC_URL, rpc_timeout_seconds=3, accounts_method="eth_requestAccounts")
    )
    assert isinstance(provider, JsonRpcWalletProvider)
    assert provider.rpc_url == RPC_URL
    assert provider.timeout_s == 3
    assert provider.accounts_method == "eth_requestAccounts"
