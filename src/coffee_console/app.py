"""Entry point for the Coffee console desktop UI."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Awaitable, Optional

from PySide6 import QtAsyncio
from PySide6.QtGui import QCloseEvent, QColor, QPalette
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QMessageBox,
    QVBoxLayout,
    QWidget,
)

from .components import ButtonAffordance, create_action_buttons
from .config import ConsoleSettings, get_settings
from .controller import Action, ControllerContext, TransactionController, initialize
from .provider import WalletProvider, build_provider
from .status import StatusReporter
from .theme import BACKGROUND, FONT_FAMILY, FONT_SIZE, PALETTE, SURFACE, SURFACE_ALT, TEXT_MUTED, TEXT_PRIMARY, muted
from .wallet import WalletSession, WalletState

logger = logging.getLogger(__name__)


def configure_palette(app: QApplication) -> None:
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor(BACKGROUND))
    palette.setColor(QPalette.ColorRole.Base, QColor(SURFACE))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor(SURFACE_ALT))
    palette.setColor(QPalette.ColorRole.Text, QColor(TEXT_PRIMARY))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor(TEXT_PRIMARY))
    palette.setColor(QPalette.ColorRole.WindowText, QColor(TEXT_PRIMARY))
    palette.setColor(QPalette.ColorRole.Highlight, QColor(PALETTE["crema"]))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor(BACKGROUND))
    app.setPalette(palette)

    app.setStyleSheet(
        f"""
        QWidget {{
            color: {TEXT_PRIMARY};
            font-family: '{FONT_FAMILY}';
            font-size: {FONT_SIZE}pt;
        }}
        QLineEdit, QPushButton, QListWidget {{
            background-color: {SURFACE};
            border: 1px solid {PALETTE['roast']};
            border-radius: 8px;
            padding: 8px;
        }}
        QPushButton {{
            background-color: {PALETTE['crema']};
            color: {BACKGROUND};
            font-weight: 600;
        }}
        QPushButton:disabled {{
            background-color: {SURFACE_ALT};
            color: {TEXT_MUTED};
        }}
        QPushButton#danger {{
            background-color: {PALETTE['cherry']};
            color: {PALETTE['white']};
        }}
        QLabel#muted {{
            color: {TEXT_MUTED};
            font-size: 11pt;
        }}
        QFrame#card {{
            background-color: {SURFACE};
            border: 1px solid {PALETTE['roast']};
            border-radius: 10px;
            padding: 12px;
        }}
        """
    )


class CoffeeConsole(QWidget):
    def __init__(
        self,
        settings: Optional[ConsoleSettings] = None,
        provider: Optional[WalletProvider] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or get_settings()
        self.wallet_state = WalletState()
        self.session = WalletSession(provider)
        self.status = StatusReporter()
        self.status.subscribe(self._handle_status)
        self.controller: Optional[TransactionController] = None
        self._shutdown_task: Optional[asyncio.Future] = None
        self.setWindowTitle("Buy Me a Coffee")
        self.setMinimumSize(560, 560)
        self._build()

    def _build(self) -> None:
        layout = QVBoxLayout()
        header = QLabel("Buy Me a Coffee")
        header.setStyleSheet("font-size: 20pt; font-weight: 700;")
        layout.addWidget(header)

        layout.addLayout(self._contract_card())
        layout.addLayout(self._actions_row())
        layout.addLayout(self._activity_panel())
        self.setLayout(layout)

    def _contract_card(self) -> QHBoxLayout:
        row = QHBoxLayout()
        card = QFrame()
        card.setObjectName("card")

        layout = QGridLayout()
        title = QLabel("Coffee contract")
        title.setStyleSheet("font-size: 13pt; font-weight: 600;")
        subtitle = QLabel(muted("Fund the jar, check its balance, or withdraw as owner."))
        wallet_status = QLabel(self.wallet_state.status_line())
        wallet_status.setStyleSheet("font-size: 12pt; font-weight: 600;")

        contract_label = QLabel(f"Contract: {self.settings.contract_address}")
        contract_label.setObjectName("muted")
        owner_label = QLabel(f"Owner: {self.settings.owner_address}")
        owner_label.setObjectName("muted")
        balance_label = QLabel(self.wallet_state.balance_line())
        balance_label.setObjectName("muted")

        self.wallet_status = wallet_status
        self.balance_label = balance_label

        layout.addWidget(title, 0, 0)
        layout.addWidget(subtitle, 1, 0)
        layout.addWidget(wallet_status, 2, 0)
        layout.addWidget(contract_label, 3, 0)
        layout.addWidget(owner_label, 4, 0)
        layout.addWidget(balance_label, 5, 0)

        card.setLayout(layout)
        row.addWidget(card)
        return row

    def _actions_row(self) -> QGridLayout:
        grid = QGridLayout()
        grid.setVerticalSpacing(10)
        grid.setHorizontalSpacing(10)

        amount_label = QLabel("ETH amount")
        amount_label.setObjectName("muted")
        amount_input = QLineEdit()
        amount_input.setPlaceholderText("0.1")
        self.amount_input = amount_input

        buttons = create_action_buttons(self)
        buttons[Action.CONNECT].clicked.connect(lambda: self._dispatch(Action.CONNECT))
        buttons[Action.FUND].clicked.connect(lambda: self._dispatch(Action.FUND))
        buttons[Action.BALANCE].clicked.connect(lambda: self._dispatch(Action.BALANCE))
        buttons[Action.WITHDRAW].clicked.connect(lambda: self._dispatch(Action.WITHDRAW))
        self.buttons = buttons

        grid.addWidget(buttons[Action.CONNECT], 0, 0, 1, 3)
        grid.addWidget(amount_label, 1, 0)
        grid.addWidget(amount_input, 1, 1)
        grid.addWidget(buttons[Action.FUND], 1, 2)
        grid.addWidget(buttons[Action.BALANCE], 2, 0, 1, 2)
        grid.addWidget(buttons[Action.WITHDRAW], 2, 2)
        return grid

    def _activity_panel(self) -> QVBoxLayout:
        column = QVBoxLayout()
        label = QLabel("Activity")
        label.setStyleSheet("font-size: 14pt; font-weight: 700;")
        status_label = QLabel(muted("Waiting for the window to load."))
        status_label.setWordWrap(True)
        activity_list = QListWidget()
        activity_list.setAlternatingRowColors(True)
        self.status_label = status_label
        self.activity_list = activity_list

        column.addWidget(label)
        column.addWidget(status_label)
        column.addWidget(activity_list)
        return column

    async def start(self) -> Optional[TransactionController]:
        """Bind the controller once the event loop is running."""

        context = ControllerContext(
            affordances={
                action: ButtonAffordance(button) for action, button in self.buttons.items()
            },
            status=self.status,
            notify=lambda message: self._show_message("Contract balance", message),
        )
        self.controller = initialize(context, self.session, self.settings, self.wallet_state)
        return self.controller

    def _dispatch(self, action: Action) -> Optional[asyncio.Future]:
        if self.controller is None:
            logger.warning("Ignoring %s before the console finished loading", action.value)
            return None

        coro: Awaitable[Any]
        if action is Action.CONNECT:
            coro = self.controller.connect()
        elif action is Action.FUND:
            coro = self.controller.fund(self.amount_input.text())
        elif action is Action.WITHDRAW:
            coro = self.controller.withdraw()
        else:
            coro = self.controller.query_balance()
        return self.controller.spawn(coro)

    def _handle_status(self, message: str) -> None:
        self.status_label.setText(message)
        self.activity_list.addItem(message)
        self.activity_list.scrollToBottom()
        self.wallet_status.setText(self.wallet_state.status_line())
        self.balance_label.setText(self.wallet_state.balance_line())

    async def shutdown(self) -> None:
        """Cancel in-flight actions and release the provider's HTTP client."""

        if self.controller is not None:
            self.controller.close()
        aclose = getattr(self.session.provider, "aclose", None)
        if aclose is not None:
            await aclose()

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        self._shutdown_task = asyncio.ensure_future(self.shutdown())
        super().closeEvent(event)

    def _show_message(self, title: str, message: str) -> None:
        QMessageBox.information(self, title, message)


def build_window(settings: Optional[ConsoleSettings] = None) -> CoffeeConsole:
    settings = settings or get_settings()
    return CoffeeConsole(settings, build_provider(settings))


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Coffee console with %s", settings.get_safe_dict())

    app = QApplication(sys.argv)
    configure_palette(app)
    window = build_window(settings)
    window.show()
    QtAsyncio.run(window.start(), keep_running=True, quit_qapp=True)


if __name__ == "__main__":
    main()
