"""Wallet provider interface and a JSON-RPC backed implementation."""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

import httpx

if TYPE_CHECKING:
    from .config import ConsoleSettings

logger = logging.getLogger(__name__)

USER_REJECTED = 4001  # EIP-1193


@runtime_checkable
class WalletProvider(Protocol):
    """Subset of the EIP-1193 provider surface the console relies on."""

    selected_address: Optional[str]

    async def request(self, method: str, params: Optional[list[Any]] = None) -> Any:
        ...


class ProviderRpcError(Exception):
    """Error raised by a provider request, carrying the JSON-RPC code."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={str(self)!r})"


class JsonRpcWalletProvider:
    """Wallet provider that talks to a development node over HTTP.

    The node is expected to hold unlocked accounts, so "approval" of
    eth_requestAccounts is answered by the node's account list and
    eth_sendTransaction is signed node-side.
    """

    is_metamask = False
    timeout_s = 10.0

    def __init__(
        self,
        rpc_url: str,
        accounts_method: str = "eth_accounts",
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.accounts_method = accounts_method
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self.selected_address: Optional[str] = None
        self._client = httpx.AsyncClient(timeout=self.timeout_s, transport=transport)
        self._ids = itertools.count(1)
        self._listeners: dict[str, list[Callable[..., None]]] = {}

    def on(self, event: str, callback: Callable[..., None]) -> None:
        self._listeners.setdefault(event, []).append(callback)

    async def request(self, method: str, params: Optional[list[Any]] = None) -> Any:
        if method == "eth_requestAccounts" and self.accounts_method != method:
            accounts = await self._call(self.accounts_method, [])
            self._select(accounts)
            return accounts

        result = await self._call(method, params or [])
        if method in ("eth_requestAccounts", "eth_accounts"):
            self._select(result)
        return result

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("RPC %s -> %s", method, self.rpc_url)
        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise ProviderRpcError(f"{method} failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderRpcError(f"{method} returned invalid JSON") from exc

        if data.get("error"):
            error = data["error"]
            raise ProviderRpcError(
                error.get("message", "Unknown RPC error"),
                code=error.get("code"),
                data=error.get("data"),
            )
        return data.get("result")

    def _select(self, accounts: Any) -> None:
        primary = accounts[0] if accounts else None
        if primary == self.selected_address:
            return
        self.selected_address = primary
        for callback in self._listeners.get("accountsChanged", []):
            callback(list(accounts or []))


def build_provider(settings: ConsoleSettings) -> Optional[JsonRpcWalletProvider]:
    """Return the configured provider, or None when no wallet is available."""

    if not settings.has_provider:
        logger.warning("No RPC endpoint configured; wallet actions are unavailable")
        return None
    return JsonRpcWalletProvider(
        settings.rpc_url,
        accounts_method=settings.accounts_method,
        timeout_s=settings.rpc_timeout_seconds,
    )
