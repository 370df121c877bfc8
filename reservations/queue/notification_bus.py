"""In-process change notifications for the offline queue."""

from __future__ import annotations

import logging
from typing import Callable, List

Listener = Callable[[], None]


class QueueNotifier:
    """Synchronous fan-out of a zero-argument "queue changed" signal."""

    def __init__(self) -> None:
        self.logger = logging.getLogger('QueueNotifier')
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""

        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        """Call every listener; failures are logged and never propagated."""

        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                self.logger.exception("Queue listener %r raised", listener)

    def __len__(self) -> int:
        return len(self._listeners)
