"""Qt push buttons exposed to the controller as affordances."""
from __future__ import annotations

from typing import Optional

from PySide6.QtWidgets import QPushButton, QWidget

from ..controller import LABELS, Action


class ButtonAffordance:
    """Adapt a QPushButton to the controller's label/enabled interface."""

    def __init__(self, button: QPushButton) -> None:
        self.button = button

    @property
    def label(self) -> str:
        return self.button.text()

    @property
    def enabled(self) -> bool:
        return self.button.isEnabled()

    def set_label(self, label: str) -> None:
        self.button.setText(label)

    def set_enabled(self, enabled: bool) -> None:
        self.button.setEnabled(enabled)


def create_action_buttons(parent: Optional[QWidget] = None) -> dict[Action, QPushButton]:
    buttons: dict[Action, QPushButton] = {}
    for action in Action:
        button = QPushButton(LABELS[action][0], parent)
        if action is Action.WITHDRAW:
            button.setObjectName("danger")
        else:
            button.setObjectName(f"{action.value}Button")
        buttons[action] = button
    return buttons
