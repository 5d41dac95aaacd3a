"""Single-channel status reporting."""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class StatusReporter:
    """Keep the latest human-readable status and fan it out to listeners."""

    def __init__(self, history_size: int = 50) -> None:
        self.history_size = history_size
        self._latest: Optional[str] = None
        self._history: list[str] = []
        self._listeners: list[Callable[[str], None]] = []

    @property
    def latest(self) -> Optional[str]:
        return self._latest

    @property
    def history(self) -> list[str]:
        return list(self._history)

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def report(self, message: str) -> None:
        self._latest = message
        self._history.append(message)
        if len(self._history) > self.history_size:
            del self._history[: -self.history_size]
        logger.info(message)
        for listener in self._listeners:
            listener(message)
