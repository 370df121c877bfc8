"""Domain dataclasses for offline booking queue entries and sync results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


class QueueStatus(Enum):
    """Lifecycle states of a queued booking request."""

    PENDING_VALIDATION = "pending-validation"  # Waiting for the remote conflict check
    PENDING_SYNC = "pending-sync"              # Validated, waiting to be submitted
    SYNCING = "syncing"                        # Attempt in progress
    CONFLICT = "conflict"                      # Remote conflict, needs a user decision
    FAILED = "failed"                          # Submission failed, may retry
    SYNCED = "synced"                          # Submitted, eligible for pruning

    @classmethod
    def coerce(cls, value: Union["QueueStatus", str]) -> "QueueStatus":
        if isinstance(value, cls):
            return value
        return cls(value)


@dataclass(frozen=True)
class BookingData:
    """Reservation payload captured while offline.

    Mirrors a remote booking request without the server-assigned id,
    submission timestamp and approval status.
    """

    room_id: str
    date: str
    start_time: str
    end_time: str
    requester_id: str
    purpose: str
    room_name: Optional[str] = None
    requester_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "room_id": self.room_id,
            "room_name": self.room_name,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "requester_id": self.requester_id,
            "requester_name": self.requester_name,
            "purpose": self.purpose,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BookingData":
        return cls(
            room_id=payload["room_id"],
            room_name=payload.get("room_name"),
            date=payload["date"],
            start_time=payload["start_time"],
            end_time=payload["end_time"],
            requester_id=payload["requester_id"],
            requester_name=payload.get("requester_name"),
            purpose=payload.get("purpose", ""),
        )


@dataclass(frozen=True)
class ConflictDetails:
    """Why a queued booking clashes with an existing booking."""

    message: str
    conflicting_bookings: Tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "conflicting_bookings": list(self.conflicting_bookings),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ConflictDetails":
        return cls(
            message=payload.get("message", ""),
            conflicting_bookings=tuple(payload.get("conflicting_bookings") or ()),
        )


@dataclass(frozen=True)
class QueuedBookingRequest:
    """One offline-created reservation attempt and its sync state."""

    queue_id: str
    booking_data: BookingData
    queued_at: datetime
    queue_status: QueueStatus = QueueStatus.PENDING_VALIDATION
    attempts: int = 0
    last_attempt: Optional[datetime] = None
    error: Optional[str] = None
    conflict_details: Optional[ConflictDetails] = None
    next_retry: Optional[datetime] = None


# Fields that may never be changed once an entry exists.
IMMUTABLE_FIELDS = frozenset({"queue_id", "queued_at"})


@dataclass(frozen=True)
class SyncResult:
    """Per-entry outcome of one sync cycle. Never persisted."""

    queue_id: str
    success: bool
    booking_id: Optional[str] = None
    error: Optional[str] = None
    conflict: bool = False
    conflict_details: Optional[ConflictDetails] = None


@dataclass(frozen=True)
class QueueStats:
    """Counts of queued requests by lifecycle status."""

    total: int = 0
    pending_validation: int = 0
    pending_sync: int = 0
    syncing: int = 0
    conflict: int = 0
    failed: int = 0
    synced: int = 0
    retry_exhausted: int = 0

    @property
    def awaiting_retry(self) -> int:
        """Failed requests that a later sync cycle will retry automatically."""
        return self.failed - self.retry_exhausted

    @property
    def needs_attention(self) -> int:
        """Requests that require a user decision before anything else happens."""
        return self.conflict + self.retry_exhausted

    @property
    def pending_total(self) -> int:
        """Requests a reconnect should attempt to sync."""
        return self.pending_validation + self.pending_sync + self.awaiting_retry

    def as_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "pending_validation": self.pending_validation,
            "pending_sync": self.pending_sync,
            "syncing": self.syncing,
            "conflict": self.conflict,
            "failed": self.failed,
            "synced": self.synced,
            "retry_exhausted": self.retry_exhausted,
            "awaiting_retry": self.awaiting_retry,
            "needs_attention": self.needs_attention,
            "pending_total": self.pending_total,
        }


def status_breakdown(entries: List[QueuedBookingRequest]) -> Dict[str, int]:
    """Return ``{status value: count}`` for log summaries."""

    from collections import Counter

    return dict(Counter(entry.queue_status.value for entry in entries))
