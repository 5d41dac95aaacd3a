"""Handshake and error translation for the wallet session."""

import pytest

from conftest import OWNER, VISITOR, ScriptedProvider
from coffee_console.provider import ProviderRpcError
from coffee_console.wallet import (
    NoAccountsReturned,
    NoProviderError,
    ProviderCallFailed,
    ProviderRejected,
    WalletSession,
)


def test_availability_and_selected_address() -> None:
    assert not WalletSession(None).is_provider_available()
    assert WalletSession(None).current_selected_address() is None

    session = WalletSession(ScriptedProvider(selected_address=OWNER))
    assert session.is_provider_available()
    assert session.current_selected_address() == OWNER


@pytest.mark.asyncio
async def test_request_accounts_records_identity(provider) -> None:
    provider.responses["eth_requestAccounts"] = [VISITOR, OWNER]
    session = WalletSession(provider)

    accounts = await session.request_accounts()

    assert accounts == [VISITOR, OWNER]
    assert session.identity == VISITOR


@pytest.mark.asyncio
async def test_request_accounts_without_provider() -> None:
    with pytest.raises(NoProviderError):
        await WalletSession(None).request_accounts()


@pytest.mark.asyncio
async def test_rejection_and_empty_accounts(provider) -> None:
    session = WalletSession(provider)

    provider.responses["eth_requestAccounts"] = ProviderRpcError("User rejected the request.", code=4001)
    with pytest.raises(ProviderRejected, match="User rejected"):
        await session.request_accounts()

    provider.responses["eth_requestAccounts"] = []
    with pytest.raises(NoAccountsReturned):
        await session.request_accounts()
    assert session.identity is None


@pytest.mark.asyncio
async def test_call_translates_provider_errors(provider) -> None:
    session = WalletSession(provider)

    provider.responses["eth_sendTransaction"] = ProviderRpcError("denied", code=4001)
    with pytest.raises(ProviderRejected):
        await session.call("eth_sendTransaction", [{}])

    provider.responses["eth_sendTransaction"] = ProviderRpcError("insufficient funds", code=-32000)
    with pytest.raises(ProviderCallFailed, match="insufficient funds") as info:
        await session.call("eth_sendTransaction", [{}])
    assert isinstance(info.value.__cause__, ProviderRpcError)


def test_watch_accounts_forwards_primary_account(provider) -> None:
    session = WalletSession(provider)
    seen = []

    assert session.watch_accounts(seen.append)
    provider.emit("accountsChanged", [VISITOR])
    provider.emit("accountsChanged", [])

    assert seen == [VISITOR, None]
    assert session.identity is None


def test_watch_accounts_without_events() -> None:
    class Bare:
        selected_address = None

        async def request(self, method, params=None):
            return None

    assert not WalletSession(Bare()).watch_accounts(lambda account: None)
    assert not WalletSession(None).watch_accounts(lambda account: None)
