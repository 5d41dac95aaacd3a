"""Shared fixtures: a scripted wallet provider and recording UI controls."""

import sys
from pathlib import Path
from typing import Any, Optional

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from coffee_console.config import ConsoleSettings
from coffee_console.controller import LABELS, Action, ControllerContext, TransactionController
from coffee_console.status import StatusReporter
from coffee_console.wallet import WalletSession

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
VISITOR = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
TX_HASH = "0x" + "ab" * 32


class ScriptedProvider:
    """Wallet provider whose answers are set per RPC method."""

    def __init__(self, selected_address: Optional[str] = None) -> None:
        self.selected_address = selected_address
        self.calls: list[tuple[str, Any]] = []
        self.responses: dict[str, Any] = {
            "eth_requestAccounts": [OWNER],
            "eth_sendTransaction": TX_HASH,
            "eth_getBalance": "0xde0b6b3a7640000",
        }
        self.listeners: dict[str, list] = {}

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        self.calls.append((method, params))
        response = self.responses[method]
        if isinstance(response, Exception):
            raise response
        return response

    def on(self, event: str, callback) -> None:
        self.listeners.setdefault(event, []).append(callback)

    def emit(self, event: str, *args) -> None:
        for callback in self.listeners.get(event, []):
            callback(*args)

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


class RecordingAffordance:
    """Button stand-in that remembers every (label, enabled) change."""

    def __init__(self, label: str, enabled: bool = True) -> None:
        self.label = label
        self.enabled = enabled
        self.history: list[tuple[str, bool]] = []

    def set_label(self, label: str) -> None:
        self.label = label
        self.history.append((self.label, self.enabled))

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        self.history.append((self.label, self.enabled))


@pytest.fixture
def settings() -> ConsoleSettings:
    return ConsoleSettings(
        _env_file=None,
        contract_address=CONTRACT,
        owner_address=OWNER,
        balance_refresh_delay_seconds=0.01,
    )


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def affordances() -> dict:
    return {action: RecordingAffordance(LABELS[action][0]) for action in Action}


@pytest.fixture
def notifications() -> list:
    return []


@pytest.fixture
def context(affordances, notifications) -> ControllerContext:
    return ControllerContext(
        affordances=affordances,
        status=StatusReporter(),
        notify=notifications.append,
    )


@pytest.fixture
def controller(context, provider, settings) -> TransactionController:
    return TransactionController(context, WalletSession(provider), settings)


@pytest.fixture
def offline_controller(context, settings) -> TransactionController:
    return TransactionController(context, WalletSession(None), settings)
