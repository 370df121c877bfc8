"""State transition helpers for offline queue entries.

Each helper returns a patch dict for :meth:`QueueStore.update`;
:func:`apply_patch` merges a patch into an entry and keeps the
status-dependent fields consistent.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

import pytz

from reservations.models import BookingData, ConflictDetails, QueueStatus, QueuedBookingRequest
from reservations.models.booking import IMMUTABLE_FIELDS

_PATCHABLE_FIELDS = {
    f.name for f in dataclasses.fields(QueuedBookingRequest)
} - IMMUTABLE_FIELDS


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """Return ``value`` as a UTC-aware datetime; naive values are taken as UTC."""

    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise ValueError(f"Expected a datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    return value


def _coerce_attempts(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"attempts must be an integer, got {value!r}")
    return value


def _coerce_error(value: Any) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValueError(f"error must be a string, got {type(value).__name__}")
    return value


def _coerce_conflict_details(value: Any) -> Optional[ConflictDetails]:
    if value is None or isinstance(value, ConflictDetails):
        return value
    if isinstance(value, Mapping):
        return ConflictDetails.from_payload(value)
    raise ValueError(f"conflict_details must be a mapping, got {type(value).__name__}")


def _coerce_booking_data(value: Any) -> BookingData:
    if isinstance(value, BookingData):
        return value
    if isinstance(value, Mapping):
        try:
            return BookingData.from_payload(value)
        except KeyError as exc:
            raise ValueError(f"booking_data is missing {exc}") from exc
    raise ValueError(f"booking_data must be a mapping, got {type(value).__name__}")


_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "queue_status": QueueStatus.coerce,
    "attempts": _coerce_attempts,
    "last_attempt": coerce_timestamp,
    "next_retry": coerce_timestamp,
    "error": _coerce_error,
    "conflict_details": _coerce_conflict_details,
    "booking_data": _coerce_booking_data,
}


def apply_patch(
    entry: QueuedBookingRequest,
    patch: Mapping[str, Any],
) -> QueuedBookingRequest:
    """Return ``entry`` with ``patch`` merged in.

    Values are converted to the entry's field types, so storage-format
    values (ISO strings, plain dicts) are accepted; anything else raises
    ``ValueError``. ``error`` and ``next_retry`` only survive on failed
    entries and ``conflict_details`` only on conflicted ones.
    """

    unknown = set(patch) - _PATCHABLE_FIELDS
    if unknown & IMMUTABLE_FIELDS:
        raise ValueError(f"Cannot modify immutable fields: {sorted(unknown & IMMUTABLE_FIELDS)}")
    if unknown:
        raise ValueError(f"Unknown queue entry fields: {sorted(unknown)}")

    changes: Dict[str, Any] = {name: _COERCERS[name](value) for name, value in patch.items()}
    if "attempts" in changes and changes["attempts"] < entry.attempts:
        raise ValueError(
            f"attempts may not decrease ({entry.attempts} -> {changes['attempts']})"
        )

    updated = dataclasses.replace(entry, **changes)

    if updated.queue_status is not QueueStatus.FAILED and (
        updated.error is not None or updated.next_retry is not None
    ):
        updated = dataclasses.replace(updated, error=None, next_retry=None)
    if updated.queue_status is not QueueStatus.CONFLICT and updated.conflict_details is not None:
        updated = dataclasses.replace(updated, conflict_details=None)
    return updated


def syncing_patch(entry: QueuedBookingRequest, now: datetime) -> Dict[str, Any]:
    """Mark the start of a sync attempt."""

    return {
        "queue_status": QueueStatus.SYNCING,
        "attempts": entry.attempts + 1,
        "last_attempt": now,
    }


def validated_patch() -> Dict[str, Any]:
    return {"queue_status": QueueStatus.PENDING_SYNC}


def conflict_patch(details: ConflictDetails) -> Dict[str, Any]:
    return {"queue_status": QueueStatus.CONFLICT, "conflict_details": details}


def synced_patch() -> Dict[str, Any]:
    return {"queue_status": QueueStatus.SYNCED}


def failed_patch(error: str, next_retry: Optional[datetime]) -> Dict[str, Any]:
    return {"queue_status": QueueStatus.FAILED, "error": error, "next_retry": next_retry}


def retry_patch() -> Dict[str, Any]:
    """Send an entry back through validation; ``attempts`` is kept."""

    return {"queue_status": QueueStatus.PENDING_VALIDATION}
