"""
Offline Booking Queue

Entry point for everything the rest of the application does with bookings
made while disconnected: queueing them durably, checking them against
each other, syncing them once the connection returns and reporting on
their state.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import pytz

from infrastructure.constants import QUEUE_ID_PREFIX
from infrastructure.settings import QueueSettings, get_settings
from reservations.models import (
    BookingData,
    QueueStats,
    QueueStatus,
    QueuedBookingRequest,
    SyncResult,
)
from reservations.queue.booking_validation import ensure_valid_booking, ensure_valid_slot
from reservations.queue.conflict_detection import has_local_conflict
from reservations.queue.errors import InvalidTransitionError, QueuedRequestNotFoundError
from reservations.queue.notification_bus import QueueNotifier
from reservations.queue.queue_repository import JsonQueueRepository, MemoryQueueRepository
from reservations.queue.queue_store import QueueStore
from reservations.queue.queue_transitions import retry_patch
from reservations.queue.sync import RetryPolicy
from reservations.queue.sync_orchestrator import (
    ConflictCheckCallback,
    SubmitCallback,
    SyncOrchestrator,
)

BookingInput = Union[BookingData, Mapping[str, Any]]


class OfflineBookingQueue:
    """
    Queue, inspect and sync bookings created while offline.

    Construct one per session and share it with whatever reacts to
    connectivity changes and renders queue status.

    Attributes:
        settings (QueueSettings): Configuration snapshot
        store (QueueStore): Durable entry storage
        orchestrator (SyncOrchestrator): Runs sync cycles over ``store``
        logger (logging.Logger): Logger instance for this class
    """

    def __init__(
        self,
        settings: Optional[QueueSettings] = None,
        *,
        repository: Any = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.logger = logging.getLogger('OfflineQueue')
        self.settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(pytz.UTC))

        if repository is None:
            repository = JsonQueueRepository(self.settings.queue_file, logger=self.logger)
        self.store = QueueStore(repository, notifier=QueueNotifier())
        self.policy = RetryPolicy.from_settings(self.settings)
        self.orchestrator = SyncOrchestrator(
            self.store,
            policy=self.policy,
            revalidate_on_retry=self.settings.revalidate_on_retry,
            clock=self._clock,
        )

    @classmethod
    def in_memory(
        cls,
        settings: Optional[QueueSettings] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "OfflineBookingQueue":
        """Build a queue backed by a volatile repository."""

        return cls(settings or QueueSettings(), repository=MemoryQueueRepository(), clock=clock)

    def _new_queue_id(self) -> str:
        millis = int(self._clock().timestamp() * 1000)
        return f"{QUEUE_ID_PREFIX}-{millis}-{uuid.uuid4().hex[:9]}"

    async def queue_booking(self, booking_data: BookingInput) -> QueuedBookingRequest:
        """
        Validate a booking and add it to the queue as ``pending-validation``.

        Args:
            booking_data: Booking payload (dataclass or mapping of its fields)

        Returns:
            QueuedBookingRequest: The stored record

        Raises:
            BookingValidationError: If the payload is malformed; nothing is stored
        """

        booking = ensure_valid_booking(booking_data, logger=self.logger)
        queued = QueuedBookingRequest(
            queue_id=self._new_queue_id(),
            booking_data=booking,
            queued_at=self._clock(),
        )
        await self.store.add(queued)

        self.logger.info(f"""BOOKING QUEUED OFFLINE
        Queue ID: {queued.queue_id}
        Room: {booking.room_id}
        Date: {booking.date}
        Time: {booking.start_time} - {booking.end_time}
        Requester: {booking.requester_id}
        """)
        return queued

    async def get_queued_requests(
        self,
        status: Optional[Union[QueueStatus, str]] = None,
    ) -> List[QueuedBookingRequest]:
        return await self.store.get_all(status)

    async def get_queued_request(self, queue_id: str) -> Optional[QueuedBookingRequest]:
        return await self.store.get(queue_id)

    async def update_queued_request(self, queue_id: str, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into a queued request; raises if it does not exist."""

        try:
            await self.store.update(queue_id, patch)
        except QueuedRequestNotFoundError:
            self.logger.error("Queued request %s not found for update", queue_id)
            raise

    async def remove_queued_request(self, queue_id: str) -> None:
        """Remove a queued request. Removing an unknown id is a no-op."""

        if await self.store.remove(queue_id):
            self.logger.info("Removed %s from queue", queue_id)
        else:
            self.logger.debug("Queued request %s already absent", queue_id)

    async def check_local_conflicts(
        self,
        booking_data: BookingInput,
        exclude_queue_id: Optional[str] = None,
    ) -> bool:
        """Whether ``booking_data`` overlaps another active queued request."""

        candidate = ensure_valid_slot(booking_data, logger=self.logger)
        return has_local_conflict(
            candidate,
            await self.store.get_all(),
            exclude_queue_id=exclude_queue_id,
        )

    async def sync_queue(
        self,
        submit: SubmitCallback,
        check_conflicts: ConflictCheckCallback,
    ) -> List[SyncResult]:
        """
        Sync every eligible queued request.

        Args:
            submit: Sends a booking to the backend and returns its remote id;
                raises on failure
            check_conflicts: ``(room_id, date, start_time, end_time)`` -> whether
                the backend already holds a clashing booking

        Returns:
            List[SyncResult]: One result per processed request; empty when a
            cycle is already running
        """

        return await self.orchestrator.run(submit, check_conflicts)

    async def sync_on_reconnect(
        self,
        submit: SubmitCallback,
        check_conflicts: ConflictCheckCallback,
    ) -> List[SyncResult]:
        """Connectivity hook: sync only when something is waiting."""

        if not await self.has_pending():
            self.logger.debug("Reconnected with nothing to sync")
            return []
        return await self.sync_queue(submit, check_conflicts)

    async def clear_synced(self) -> int:
        """Remove every ``synced`` request and return how many were removed."""

        synced = await self.store.get_all(QueueStatus.SYNCED)
        for queued in synced:
            await self.store.remove(queued.queue_id)
        if synced:
            self.logger.info("Cleared %s synced requests", len(synced))
        return len(synced)

    async def get_queue_stats(self) -> QueueStats:
        entries = await self.store.get_all()
        counts: Dict[QueueStatus, int] = {status: 0 for status in QueueStatus}
        exhausted = 0
        for entry in entries:
            counts[entry.queue_status] += 1
            if (
                entry.queue_status is QueueStatus.FAILED
                and entry.next_retry is None
                and self.policy.is_exhausted(entry.attempts)
            ):
                exhausted += 1

        return QueueStats(
            total=len(entries),
            pending_validation=counts[QueueStatus.PENDING_VALIDATION],
            pending_sync=counts[QueueStatus.PENDING_SYNC],
            syncing=counts[QueueStatus.SYNCING],
            conflict=counts[QueueStatus.CONFLICT],
            failed=counts[QueueStatus.FAILED],
            synced=counts[QueueStatus.SYNCED],
            retry_exhausted=exhausted,
        )

    async def has_pending(self) -> bool:
        stats = await self.get_queue_stats()
        return stats.pending_total > 0

    async def take_for_resubmission(self, queue_id: str) -> BookingData:
        """
        Remove a conflicted or failed request and hand back its booking data
        so the caller can adjust it and queue it again.
        """

        queued = await self._require(queue_id)
        if queued.queue_status not in {QueueStatus.CONFLICT, QueueStatus.FAILED}:
            raise InvalidTransitionError(
                f"Queued request {queue_id} is {queued.queue_status.value}; "
                "only conflict or failed requests can be resubmitted"
            )
        await self.store.remove(queue_id)
        self.logger.info("Removed %s for resubmission", queue_id)
        return queued.booking_data

    async def retry_request(self, queue_id: str) -> QueuedBookingRequest:
        """Send a failed request back through validation on the next cycle."""

        queued = await self._require(queue_id)
        if queued.queue_status is not QueueStatus.FAILED:
            raise InvalidTransitionError(
                f"Queued request {queue_id} is {queued.queue_status.value}; "
                "only failed requests can be retried"
            )
        updated = await self.store.update(queue_id, retry_patch())
        self.logger.info("Manual retry requested for %s", queue_id)
        return updated

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Be told whenever the queue changes. Returns an unsubscribe function."""

        return self.store.notifier.subscribe(listener)

    async def _require(self, queue_id: str) -> QueuedBookingRequest:
        queued = await self.store.get(queue_id)
        if queued is None:
            raise QueuedRequestNotFoundError(queue_id)
        return queued
