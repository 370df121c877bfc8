"""Offline booking queue and sync services."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .offline_queue import OfflineBookingQueue
    from .queue_store import QueueStore
    from .sync_orchestrator import SyncOrchestrator
    from .notification_bus import QueueNotifier

__all__ = [
    "OfflineBookingQueue",
    "QueueStore",
    "SyncOrchestrator",
    "QueueNotifier",
]


def __getattr__(name: str):
    if name in {"OfflineBookingQueue"}:
        module = import_module("reservations.queue.offline_queue")
    elif name in {"QueueStore"}:
        module = import_module("reservations.queue.queue_store")
    elif name in {"SyncOrchestrator"}:
        module = import_module("reservations.queue.sync_orchestrator")
    elif name in {"QueueNotifier"}:
        module = import_module("reservations.queue.notification_bus")
    else:
        raise AttributeError(name)
    return getattr(module, name)
