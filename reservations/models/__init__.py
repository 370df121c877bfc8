"""Domain model definitions for the offline booking queue."""

from .time_of_day import TimeOfDay, intervals_overlap
from .booking import (
    BookingData,
    ConflictDetails,
    QueueStats,
    QueueStatus,
    QueuedBookingRequest,
    SyncResult,
)

__all__ = [
    "TimeOfDay",
    "intervals_overlap",
    "BookingData",
    "ConflictDetails",
    "QueueStats",
    "QueueStatus",
    "QueuedBookingRequest",
    "SyncResult",
]
