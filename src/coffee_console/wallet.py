"""Wallet session, owner policy, and amount conversion helpers."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .provider import USER_REJECTED, WalletProvider

logger = logging.getLogger(__name__)

WEI_PER_ETH = 10**18

FUND_SELECTOR = "0xb60d4288"  # fund()
WITHDRAW_SELECTOR = "0x3ccfd60b"  # withdraw()


class WalletError(Exception):
    """Base class for failures surfaced by a wallet action."""


class NoProviderError(WalletError):
    """No wallet provider is present in the runtime."""

    def __init__(self, message: str = "MetaMask not installed!") -> None:
        super().__init__(message)


class ProviderRejected(WalletError):
    """The user declined the request or the provider refused it."""


class NoAccountsReturned(WalletError):
    """The provider approved the request but handed back no accounts."""

    def __init__(self, message: str = "No accounts returned from MetaMask") -> None:
        super().__init__(message)


class InvalidAmount(WalletError):
    """A user-entered amount is empty, non-numeric, or not positive."""


class NotAuthorized(WalletError):
    """The active account is not the configured owner."""


class ProviderCallFailed(WalletError):
    """Transport or RPC failure from a send or balance call."""


def is_authorized(candidate: Optional[str], owner: str) -> bool:
    """Return True when candidate is the owner address, ignoring case."""

    if not candidate:
        return False
    return candidate.lower() == owner.lower()


def to_wire(amount: str) -> str:
    """Convert a decimal ETH amount into a 0x-prefixed hex wei string."""

    text = (amount or "").strip()
    try:
        value = float(text)
    except ValueError:
        raise InvalidAmount(f"Not a number: {amount!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidAmount(f"Amount must be greater than zero: {amount!r}")
    wei = value * WEI_PER_ETH
    if not math.isfinite(wei):
        raise InvalidAmount(f"Amount is too large: {amount!r}")
    wei = math.floor(wei)
    if wei == 0:
        raise InvalidAmount(f"Amount is smaller than one wei: {amount!r}")
    return hex(wei)


def from_wire_balance(hex_wei: str) -> float:
    """Convert a hex wei quantity into ETH."""

    return int(hex_wei, 16) / WEI_PER_ETH


@dataclass(frozen=True)
class TransactionRequest:
    """Parameters for a single eth_sendTransaction call."""

    to: str
    sender: str
    value: Optional[str] = None
    data: Optional[str] = None

    def to_params(self) -> dict[str, str]:
        params = {"to": self.to, "from": self.sender}
        if self.value is not None:
            params["value"] = self.value
        if self.data is not None:
            params["data"] = self.data
        return params


@dataclass
class WalletState:
    """Minimal visible state for the connected wallet and contract."""

    account: Optional[str] = None
    is_owner: bool = False
    contract_balance: Optional[float] = None

    def status_line(self) -> str:
        if not self.account:
            return "Not connected"
        short = f"{self.account[:6]}…{self.account[-4:]}"
        role = "owner" if self.is_owner else "visitor"
        return f"Connected · {short} · {role}"

    def balance_line(self) -> str:
        if self.contract_balance is None:
            return "Contract balance: —"
        return f"Contract balance: {self.contract_balance:.6f} ETH"


class WalletSession:
    """Manage the connect handshake with the injected wallet provider."""

    def __init__(self, provider: Optional[WalletProvider]) -> None:
        self.provider = provider
        self._identity: Optional[str] = None

    @property
    def identity(self) -> Optional[str]:
        """Return the account seen on the most recent handshake or change event."""

        return self._identity

    def is_provider_available(self) -> bool:
        return self.provider is not None

    def current_selected_address(self) -> Optional[str]:
        """Best-effort read of the account the provider already has selected."""

        if self.provider is None:
            return None
        return getattr(self.provider, "selected_address", None)

    async def request_accounts(self) -> list[str]:
        """Ask the provider for accounts, waiting on the user's approval.

        Raises
        ------
        NoProviderError
            No provider is installed.
        ProviderRejected
            The request was declined or failed inside the provider.
        NoAccountsReturned
            The provider resolved with an empty list.
        """

        provider = self._require_provider()
        try:
            accounts = await provider.request("eth_requestAccounts")
        except Exception as exc:  # noqa: BLE001 - any provider failure is a rejection here
            raise ProviderRejected(str(exc) or exc.__class__.__name__) from exc

        accounts = list(accounts or [])
        if not accounts:
            raise NoAccountsReturned()

        self._identity = accounts[0]
        logger.debug("Provider returned %d account(s); primary %s", len(accounts), accounts[0])
        return accounts

    async def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Forward a request, translating provider errors into the wallet taxonomy."""

        provider = self._require_provider()
        try:
            return await provider.request(method, params)
        except WalletError:
            raise
        except Exception as exc:  # noqa: BLE001 - wrapped with original message preserved
            message = str(exc) or exc.__class__.__name__
            if getattr(exc, "code", None) == USER_REJECTED:
                raise ProviderRejected(message) from exc
            raise ProviderCallFailed(message) from exc

    def watch_accounts(self, callback: Callable[[Optional[str]], None]) -> bool:
        """Subscribe to account switches made outside the console.

        Returns False when the provider cannot emit events.
        """

        subscribe = getattr(self.provider, "on", None)
        if subscribe is None:
            return False

        def _on_accounts_changed(accounts: list[str]) -> None:
            self._identity = accounts[0] if accounts else None
            callback(self._identity)

        subscribe("accountsChanged", _on_accounts_changed)
        return True

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise NoProviderError()
        return self.provider
