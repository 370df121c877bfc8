"""Validation helpers for offline booking payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Union

from infrastructure.constants import BOOKING_DATE_FORMAT
from reservations.models import BookingData, TimeOfDay
from reservations.queue.errors import BookingValidationError

_SLOT_FIELDS = ("room_id", "date", "start_time", "end_time")
_REQUIRED_FIELDS = _SLOT_FIELDS + ("requester_id",)

BookingInput = Union[BookingData, Mapping[str, Any]]


def _as_payload(booking: BookingInput) -> Dict[str, Any]:
    return booking.to_payload() if isinstance(booking, BookingData) else dict(booking)


def _missing_fields(payload: Dict[str, Any], required: Sequence[str]) -> List[str]:
    errors: List[str] = []
    for name in required:
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"{name} is required")
        elif not isinstance(value, str):
            payload[name] = str(value)
    return errors


def _slot_errors(payload: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []
    try:
        datetime.strptime(payload["date"], BOOKING_DATE_FORMAT)
    except ValueError:
        errors.append(f"date '{payload['date']}' is not YYYY-MM-DD")

    start = end = None
    try:
        start = TimeOfDay.parse(payload["start_time"])
    except ValueError as exc:
        errors.append(f"start_time: {exc}")
    try:
        end = TimeOfDay.parse(payload["end_time"])
    except ValueError as exc:
        errors.append(f"end_time: {exc}")
    if start is not None and end is not None and not start < end:
        errors.append(
            f"start_time {payload['start_time']} must be before end_time {payload['end_time']}"
        )
    return errors


def _reject(payload: Mapping[str, Any], errors: List[str], logger: Any) -> None:
    logger.warning(
        "BOOKING REJECTED\n        Room: %s\n        Date: %s\n        Errors: %s",
        payload.get("room_id"),
        payload.get("date"),
        errors,
    )
    raise BookingValidationError(errors)


def ensure_valid_booking(booking: BookingInput, *, logger: Any) -> BookingData:
    """Return a :class:`BookingData`, raising ``BookingValidationError`` if malformed."""

    payload = _as_payload(booking)
    errors = _missing_fields(payload, _REQUIRED_FIELDS)

    purpose = payload.get("purpose")
    if purpose is None:
        payload["purpose"] = ""
    elif not isinstance(purpose, str):
        errors.append("purpose must be a string")

    if not errors:
        errors.extend(_slot_errors(payload))
    if errors:
        _reject(payload, errors, logger)

    return BookingData.from_payload(payload)


def ensure_valid_slot(booking: BookingInput, *, logger: Any) -> BookingData:
    """Validate only room, date and times; other booking fields may be absent."""

    payload = _as_payload(booking)
    errors = _missing_fields(payload, _SLOT_FIELDS)
    if not errors:
        errors.extend(_slot_errors(payload))
    if errors:
        _reject(payload, errors, logger)

    payload["requester_id"] = payload.get("requester_id") or ""
    if not isinstance(payload.get("purpose"), str):
        payload["purpose"] = ""
    return BookingData.from_payload(payload)
