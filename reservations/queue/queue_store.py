"""
Persistent Queue Store

Durable, keyed storage for offline booking requests. Entries are cached in
memory keyed by ``queue_id`` and every mutation rewrites the backing
repository before it becomes visible. Each successful add, update or remove
fires the change notifier.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from infrastructure.constants import INTERRUPTED_SYNC_MESSAGE
from reservations.models import (
    BookingData,
    ConflictDetails,
    QueueStatus,
    QueuedBookingRequest,
)
from reservations.models.booking import status_breakdown
from reservations.queue.errors import DuplicateQueueIdError, QueuedRequestNotFoundError
from reservations.queue.notification_bus import QueueNotifier
from reservations.queue.queue_transitions import apply_patch, coerce_timestamp


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return coerce_timestamp(value) if value else None


class QueueRecordSerializer:
    """Serialize and hydrate queue records."""

    def to_storage(self, entry: QueuedBookingRequest) -> Dict[str, Any]:
        return {
            "queue_id": entry.queue_id,
            "booking_data": entry.booking_data.to_payload(),
            "queued_at": _format_timestamp(entry.queued_at),
            "queue_status": entry.queue_status.value,
            "attempts": entry.attempts,
            "last_attempt": _format_timestamp(entry.last_attempt),
            "error": entry.error,
            "conflict_details": (
                entry.conflict_details.to_payload() if entry.conflict_details else None
            ),
            "next_retry": _format_timestamp(entry.next_retry),
        }

    def from_storage(self, payload: Mapping[str, Any]) -> QueuedBookingRequest:
        conflict = payload.get("conflict_details")
        queued_at = _parse_timestamp(payload["queued_at"])
        if queued_at is None:
            raise ValueError("queued_at is required")
        return QueuedBookingRequest(
            queue_id=payload["queue_id"],
            booking_data=BookingData.from_payload(payload["booking_data"]),
            queued_at=queued_at,
            queue_status=QueueStatus(payload.get("queue_status", QueueStatus.PENDING_VALIDATION.value)),
            attempts=int(payload.get("attempts") or 0),
            last_attempt=_parse_timestamp(payload.get("last_attempt")),
            error=payload.get("error"),
            conflict_details=ConflictDetails.from_payload(conflict) if conflict else None,
            next_retry=_parse_timestamp(payload.get("next_retry")),
        )


class QueueStore:
    """
    Async keyed store for :class:`QueuedBookingRequest` entries.

    Attributes:
        repository: Backend with ``load()``/``save(records)``
        notifier (QueueNotifier): Fired after every successful mutation
        logger (logging.Logger): Logger instance for this class
    """

    def __init__(
        self,
        repository: Any,
        *,
        notifier: Optional[QueueNotifier] = None,
    ) -> None:
        self.logger = logging.getLogger('QueueStore')
        self.repository = repository
        self.notifier = notifier or QueueNotifier()
        self._serializer = QueueRecordSerializer()
        self._entries: Optional[Dict[str, QueuedBookingRequest]] = None
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        """Load entries from the repository once, repairing stale records."""

        if self._entries is not None:
            return
        async with self._lock:
            if self._entries is not None:
                return
            raw = await self._run_io(self.repository.load)
            entries, repaired = self._hydrate(raw)
            if repaired:
                self.logger.warning(
                    "Repaired %s queued requests left in an inconsistent state", repaired
                )
                await self._run_io(self.repository.save, self._dump(entries))
            self._entries = entries
        self.logger.info(f"""OFFLINE QUEUE LOADED
        Existing requests: {len(self._entries)}
        Status breakdown: {status_breakdown(list(self._entries.values()))}
        """)

    async def add(self, entry: QueuedBookingRequest) -> None:
        await self.open()
        async with self._lock:
            if entry.queue_id in self._entries:
                raise DuplicateQueueIdError(entry.queue_id)
            await self._commit(entry.queue_id, entry)
        self.notifier.notify()

    async def get(self, queue_id: str) -> Optional[QueuedBookingRequest]:
        await self.open()
        return self._entries.get(queue_id)

    async def get_all(
        self,
        status: Optional[Union[QueueStatus, str]] = None,
    ) -> List[QueuedBookingRequest]:
        """Return all entries, optionally restricted to one status. Unordered."""

        await self.open()
        if status is None:
            return list(self._entries.values())
        wanted = QueueStatus.coerce(status)
        return [entry for entry in self._entries.values() if entry.queue_status is wanted]

    async def update(self, queue_id: str, patch: Mapping[str, Any]) -> QueuedBookingRequest:
        """Merge ``patch`` into the stored entry and persist it."""

        await self.open()
        async with self._lock:
            existing = self._entries.get(queue_id)
            if existing is None:
                raise QueuedRequestNotFoundError(queue_id)
            updated = apply_patch(existing, patch)
            await self._commit(queue_id, updated)
        if existing.queue_status is not updated.queue_status:
            self.logger.debug(
                "Queued request %s: %s -> %s",
                queue_id,
                existing.queue_status.value,
                updated.queue_status.value,
            )
        self.notifier.notify()
        return updated

    async def remove(self, queue_id: str) -> bool:
        """Delete an entry. Returns ``False`` when nothing was stored."""

        await self.open()
        async with self._lock:
            if queue_id not in self._entries:
                return False
            await self._commit(queue_id, None)
        self.notifier.notify()
        return True

    async def _commit(self, queue_id: str, entry: Optional[QueuedBookingRequest]) -> None:
        """Persist the mutated mapping, then publish it. Caller holds ``_lock``."""

        entries = dict(self._entries)
        if entry is None:
            entries.pop(queue_id, None)
        else:
            entries[queue_id] = entry
        await self._run_io(self.repository.save, self._dump(entries))
        self._entries = entries

    def _dump(self, entries: Dict[str, QueuedBookingRequest]) -> List[Dict[str, Any]]:
        return [self._serializer.to_storage(entry) for entry in entries.values()]

    def _hydrate(self, raw: List[Any]) -> Tuple[Dict[str, QueuedBookingRequest], int]:
        entries: Dict[str, QueuedBookingRequest] = {}
        repaired = 0
        for record in raw:
            try:
                entry = self._serializer.from_storage(record)
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.error("Dropping unreadable queue record %r: %s", record, exc)
                repaired += 1
                continue

            if entry.queue_status is QueueStatus.SYNCING:
                # The process stopped mid-attempt; make it eligible again.
                entry = apply_patch(
                    entry,
                    {
                        "queue_status": QueueStatus.FAILED,
                        "error": INTERRUPTED_SYNC_MESSAGE,
                        "next_retry": None,
                    },
                )
                repaired += 1

            if entry.queue_id in entries:
                self.logger.warning("Duplicate queue id %s in storage; keeping last", entry.queue_id)
                repaired += 1
            entries[entry.queue_id] = entry
        return entries, repaired

    @staticmethod
    async def _run_io(func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)
