"""Exceptions raised by the offline booking queue."""

from __future__ import annotations


class OfflineQueueError(Exception):
    """Base class for queue errors."""


class BookingValidationError(OfflineQueueError, ValueError):
    """Booking payload is malformed or missing required fields."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid booking data")


class DuplicateQueueIdError(OfflineQueueError, KeyError):
    """An entry with the same queue id already exists."""

    def __init__(self, queue_id: str):
        self.queue_id = queue_id
        super().__init__(queue_id)

    def __str__(self) -> str:
        return f"Queued request {self.queue_id} already exists"


class QueuedRequestNotFoundError(OfflineQueueError, LookupError):
    """No entry exists for the requested queue id."""

    def __init__(self, queue_id: str):
        self.queue_id = queue_id
        super().__init__(f"Queued request {queue_id} not found")


class InvalidTransitionError(OfflineQueueError):
    """The entry's current status does not allow the requested action."""
