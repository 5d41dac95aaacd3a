"""Transaction controller: the fund, withdraw, balance, and connect actions.

Each action is a short state machine over :class:`ActionState`. Every run
starts and ends in ``IDLE``; failures never escape an action and are turned
into a status message plus a restored affordance instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

from .config import ConsoleSettings, get_settings
from .status import StatusReporter
from .wallet import (
    FUND_SELECTOR,
    WITHDRAW_SELECTOR,
    InvalidAmount,
    NoProviderError,
    NotAuthorized,
    ProviderCallFailed,
    TransactionRequest,
    WalletError,
    WalletSession,
    WalletState,
    from_wire_balance,
    is_authorized,
    to_wire,
)

logger = logging.getLogger(__name__)

INSTALL_PROMPT = "Please install MetaMask!"
READY_MESSAGE = "Ready to connect. Please click 'Connect' to start."


class Action(str, Enum):
    CONNECT = "connect"
    FUND = "fund"
    WITHDRAW = "withdraw"
    BALANCE = "balance"


class ActionState(str, Enum):
    IDLE = "idle"
    AWAITING_WALLET = "awaiting_wallet"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# (idle label, busy label)
LABELS: dict[Action, tuple[str, str]] = {
    Action.CONNECT: ("Connect", "Connecting..."),
    Action.FUND: ("Buy Coffee", "Processing..."),
    Action.WITHDRAW: ("Withdraw", "Processing..."),
    Action.BALANCE: ("Get Balance", "Loading..."),
}


class Affordance(Protocol):
    """A clickable control the controller can relabel and toggle."""

    @property
    def label(self) -> str:
        ...

    @property
    def enabled(self) -> bool:
        ...

    def set_label(self, label: str) -> None:
        ...

    def set_enabled(self, enabled: bool) -> None:
        ...


@dataclass
class ActionResult:
    """Outcome of one action invocation."""

    action: Action
    state: ActionState
    value: Any = None
    error: Optional[WalletError] = None

    @property
    def ok(self) -> bool:
        return self.state is ActionState.SUCCEEDED


@dataclass
class ActionTracker:
    """Current state of one action plus every transition it has made."""

    action: Action
    state: ActionState = ActionState.IDLE
    transitions: list[ActionState] = field(default_factory=list)
    listeners: list[Callable[[Action, ActionState], None]] = field(default_factory=list)

    @property
    def busy(self) -> bool:
        return self.state in (ActionState.AWAITING_WALLET, ActionState.SUBMITTING)

    def move(self, state: ActionState) -> None:
        logger.debug("%s: %s -> %s", self.action.value, self.state.value, state.value)
        self.state = state
        self.transitions.append(state)
        for listener in self.listeners:
            listener(self.action, state)


class AffordanceBinder:
    """Push (label, enabled) pairs onto the UI controls for each action."""

    def __init__(self, affordances: Mapping[Action, Affordance]) -> None:
        self.affordances = dict(affordances)

    def enabled(self, action: Action) -> bool:
        return self.affordances[action].enabled

    def set_label(self, action: Action, label: str) -> None:
        self.affordances[action].set_label(label)

    def set_enabled(self, action: Action, enabled: bool) -> None:
        self.affordances[action].set_enabled(enabled)

    def busy(self, action: Action) -> None:
        self.set_label(action, LABELS[action][1])
        self.set_enabled(action, False)

    def restore(self, action: Action, enabled: bool = True) -> None:
        self.set_label(action, LABELS[action][0])
        self.set_enabled(action, enabled)


@dataclass
class ControllerContext:
    """UI handles handed to the controller at construction."""

    affordances: Mapping[Action, Optional[Affordance]]
    status: StatusReporter = field(default_factory=StatusReporter)
    notify: Callable[[str], None] = lambda message: None

    def missing_affordances(self) -> list[Action]:
        return [action for action in Action if self.affordances.get(action) is None]


class TransactionController:
    """Drive the four wallet actions against a :class:`WalletSession`."""

    def __init__(
        self,
        context: ControllerContext,
        session: WalletSession,
        settings: Optional[ConsoleSettings] = None,
        wallet_state: Optional[WalletState] = None,
    ) -> None:
        missing = context.missing_affordances()
        if missing:
            raise ValueError(
                "Missing affordances: " + ", ".join(action.value for action in missing)
            )
        self.context = context
        self.session = session
        self.settings = settings or get_settings()
        self.wallet_state = wallet_state or WalletState()
        self.binder = AffordanceBinder(context.affordances)  # type: ignore[arg-type]
        self.status = context.status
        self.trackers = {action: ActionTracker(action) for action in Action}
        self._tasks: set[asyncio.Future] = set()

    def subscribe_transitions(self, listener: Callable[[Action, ActionState], None]) -> None:
        for tracker in self.trackers.values():
            tracker.listeners.append(listener)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def connect(self) -> ActionResult:
        tracker = self.trackers[Action.CONNECT]
        try:
            if not self.session.is_provider_available():
                self.binder.set_label(Action.CONNECT, INSTALL_PROMPT)
                return self._fail(tracker, NoProviderError())

            self._enter(tracker, ActionState.AWAITING_WALLET)
            self.status.report("Connecting to wallet...")
            accounts = await self.session.request_accounts()

            account = accounts[0]
            self.binder.set_label(Action.CONNECT, "Connected!")
            self.status.report(f"Connected with account: {account}")
            if self._apply_identity(account):
                self.status.report("You are the owner. Withdraw button enabled.")
            else:
                self.status.report("You are not the owner. Withdraw button disabled.")
            return self._succeed(tracker, account)
        except Exception as exc:  # noqa: BLE001 - surfaced as status
            self.binder.set_label(Action.CONNECT, "Connection Failed")
            return self._fail(tracker, exc, "Connection failed")
        finally:
            self.binder.set_enabled(Action.CONNECT, True)
            tracker.move(ActionState.IDLE)

    async def fund(self, amount_input: str) -> ActionResult:
        tracker = self.trackers[Action.FUND]
        try:
            value = to_wire(amount_input)
        except InvalidAmount as exc:
            return self._reject(tracker, exc, "Please enter a valid ETH amount")
        if not self.session.is_provider_available():
            return self._reject(tracker, NoProviderError(), INSTALL_PROMPT)

        self.status.report(f"Funding with {amount_input.strip()} ETH...")
        try:
            self._enter(tracker, ActionState.AWAITING_WALLET)
            accounts = await self.session.request_accounts()
            request = TransactionRequest(
                to=self.settings.contract_address,
                sender=accounts[0],
                value=value,
                data=FUND_SELECTOR,
            )

            self._enter(tracker, ActionState.SUBMITTING)
            tx_hash = await self.session.call("eth_sendTransaction", [request.to_params()])
            self.status.report(f"Transaction submitted! Hash: {tx_hash}")
            self._schedule_balance_refresh()
            return self._succeed(tracker, tx_hash)
        except Exception as exc:  # noqa: BLE001 - surfaced as status
            return self._fail(tracker, exc, "Funding failed")
        finally:
            self.binder.restore(Action.FUND)
            tracker.move(ActionState.IDLE)

    async def withdraw(self) -> ActionResult:
        tracker = self.trackers[Action.WITHDRAW]
        if not self.session.is_provider_available():
            return self._reject(tracker, NoProviderError(), INSTALL_PROMPT)

        self.status.report("Attempting to withdraw funds...")
        was_enabled = self.binder.enabled(Action.WITHDRAW)
        try:
            self._enter(tracker, ActionState.AWAITING_WALLET)
            accounts = await self.session.request_accounts()
            sender = accounts[0]

            # The wallet may have switched accounts since connect().
            if not self._apply_identity(sender):
                raise NotAuthorized("Only the contract owner can withdraw funds!")

            request = TransactionRequest(
                to=self.settings.contract_address,
                sender=sender,
                data=WITHDRAW_SELECTOR,
            )
            self._enter(tracker, ActionState.SUBMITTING)
            tx_hash = await self.session.call("eth_sendTransaction", [request.to_params()])
            self.status.report(f"Withdrawal transaction submitted! Hash: {tx_hash}")
            self._schedule_balance_refresh()
            return self._succeed(tracker, tx_hash)
        except NotAuthorized as exc:
            return self._fail(tracker, exc)
        except Exception as exc:  # noqa: BLE001 - surfaced as status
            return self._fail(tracker, exc, "Withdrawal failed")
        finally:
            self.binder.restore(Action.WITHDRAW, enabled=was_enabled)
            tracker.move(ActionState.IDLE)

    async def query_balance(self) -> ActionResult:
        tracker = self.trackers[Action.BALANCE]
        if not self.session.is_provider_available():
            return self._reject(tracker, NoProviderError(), INSTALL_PROMPT)

        try:
            self._enter(tracker, ActionState.SUBMITTING)
            raw = await self.session.call(
                "eth_getBalance", [self.settings.contract_address, "latest"]
            )
            balance = from_wire_balance(raw)
            self.wallet_state.contract_balance = balance
            self.status.report(f"Contract balance: {balance:.6f} ETH")
            self.context.notify(f"Current contract balance: {balance:.6f} ETH")
            return self._succeed(tracker, balance)
        except Exception as exc:  # noqa: BLE001 - surfaced as status
            return self._fail(tracker, exc, "Failed to get balance")
        finally:
            self.binder.restore(Action.BALANCE)
            tracker.move(ActionState.IDLE)

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Future:
        """Run a coroutine on the loop and keep a reference until it finishes."""

        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_for_pending(self) -> None:
        """Wait for auto-connects and scheduled balance refreshes to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def _schedule_balance_refresh(self) -> None:
        delay = self.settings.balance_refresh_delay_seconds
        logger.debug("Refreshing contract balance in %.1fs", delay)
        self.spawn(self._refresh_after(delay))

    async def _refresh_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.trackers[Action.BALANCE].busy:
            logger.debug("Balance query already in flight; skipping refresh")
            return
        await self.query_balance()

    def handle_accounts_changed(self, account: Optional[str]) -> None:
        """React to an account switch made inside the wallet."""

        # connect() applies the identity itself once the handshake resolves.
        if self.trackers[Action.CONNECT].busy or account == self.wallet_state.account:
            return
        is_owner = self._apply_identity(account)
        if account is None:
            self.status.report("Wallet disconnected.")
        else:
            role = "owner" if is_owner else "not the owner"
            self.status.report(f"Active account changed to {account} ({role}).")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply_identity(self, account: Optional[str]) -> bool:
        is_owner = is_authorized(account, self.settings.owner_address)
        self.wallet_state.account = account
        self.wallet_state.is_owner = is_owner
        if not self.trackers[Action.WITHDRAW].busy:
            self.binder.set_enabled(Action.WITHDRAW, is_owner)
        return is_owner

    def _enter(self, tracker: ActionTracker, state: ActionState) -> None:
        if not tracker.busy:
            self.binder.busy(tracker.action)
        tracker.move(state)

    def _succeed(self, tracker: ActionTracker, value: Any) -> ActionResult:
        tracker.move(ActionState.SUCCEEDED)
        return ActionResult(tracker.action, ActionState.SUCCEEDED, value=value)

    def _fail(
        self, tracker: ActionTracker, exc: Exception, prefix: Optional[str] = None
    ) -> ActionResult:
        error = self._classify(exc)
        logger.error("%s failed: %s", tracker.action.value, error)
        self.status.report(f"{prefix}: {error}" if prefix else str(error))
        tracker.move(ActionState.FAILED)
        return ActionResult(tracker.action, ActionState.FAILED, error=error)

    def _reject(self, tracker: ActionTracker, error: WalletError, message: str) -> ActionResult:
        """Fail an action before any wallet interaction took place."""

        logger.warning("%s rejected: %s", tracker.action.value, error)
        self.status.report(message)
        tracker.move(ActionState.FAILED)
        tracker.move(ActionState.IDLE)
        return ActionResult(tracker.action, ActionState.FAILED, error=error)

    @staticmethod
    def _classify(exc: Exception) -> WalletError:
        if isinstance(exc, WalletError):
            return exc
        logger.exception("Unexpected error during wallet action")
        wrapped = ProviderCallFailed(str(exc) or exc.__class__.__name__)
        wrapped.__cause__ = exc
        return wrapped


def initialize(
    context: ControllerContext,
    session: WalletSession,
    settings: Optional[ConsoleSettings] = None,
    wallet_state: Optional[WalletState] = None,
) -> Optional[TransactionController]:
    """Wire a controller to its UI once the window is ready.

    Returns None, without touching any control, when a required
    affordance is missing. Must be called with an event loop running when
    the provider already has a selected account, since that triggers an
    automatic connect.
    """

    missing = context.missing_affordances()
    if missing:
        logger.error(
            "Required UI affordances not found: %s",
            ", ".join(action.value for action in missing),
        )
        return None

    controller = TransactionController(context, session, settings, wallet_state)
    controller.binder.set_enabled(Action.WITHDRAW, False)
    session.watch_accounts(controller.handle_accounts_changed)

    if session.is_provider_available() and session.current_selected_address():
        controller.spawn(controller.connect())

    context.status.report(READY_MESSAGE)
    return controller
