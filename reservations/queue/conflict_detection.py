"""Local conflict detection among still-queued booking requests.

The check only sees entries held in the local queue. Bookings already
confirmed on the backend are invisible here, which is why the sync cycle
asks the backend again before submitting.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Tuple

from reservations.models import (
    BookingData,
    QueueStatus,
    QueuedBookingRequest,
    TimeOfDay,
    intervals_overlap,
)

_IGNORED_STATUSES = {QueueStatus.SYNCED, QueueStatus.FAILED}

_logger = logging.getLogger('ConflictDetector')


def booking_interval(booking: BookingData) -> Tuple[TimeOfDay, TimeOfDay]:
    """Return the parsed ``(start, end)`` of a booking."""

    return TimeOfDay.parse(booking.start_time), TimeOfDay.parse(booking.end_time)


def has_local_conflict(
    candidate: BookingData,
    entries: Iterable[QueuedBookingRequest],
    *,
    exclude_queue_id: Optional[str] = None,
    logger: Any = None,
) -> bool:
    """Return ``True`` if ``candidate`` overlaps another active queued booking."""

    logger = logger or _logger
    new_start, new_end = booking_interval(candidate)

    for queued in entries:
        if queued.queue_id == exclude_queue_id:
            continue
        if queued.queue_status in _IGNORED_STATUSES:
            continue
        existing = queued.booking_data
        if existing.room_id != candidate.room_id or existing.date != candidate.date:
            continue

        try:
            start, end = booking_interval(existing)
        except ValueError as exc:
            logger.warning(
                "Skipping queued request %s with unparseable times: %s",
                queued.queue_id,
                exc,
            )
            continue

        if intervals_overlap(new_start, new_end, start, end):
            logger.info(
                "Local conflict: room %s on %s %s-%s overlaps queued request %s (%s-%s)",
                candidate.room_id,
                candidate.date,
                candidate.start_time,
                candidate.end_time,
                queued.queue_id,
                existing.start_time,
                existing.end_time,
            )
            return True

    return False
