"""Shared fakes and utilities for unit tests."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytz

from reservations.models import BookingData


class DummyLogger:
    """Lightweight stand-in for ``logging.Logger`` that records calls."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.records.append((level, args, kwargs))

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self._record("debug", *args, **kwargs)

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    def levels(self) -> List[str]:
        return [level for level, _, _ in self.records]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2025, 3, 1, 12, 0, 0, tzinfo=pytz.UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeBackend:
    """Records calls to the submit and conflict-check callbacks."""

    def __init__(
        self,
        *,
        conflict: bool = False,
        submit_error: Optional[Exception] = None,
    ) -> None:
        self.conflict = conflict
        self.submit_error = submit_error
        self.submitted: List[BookingData] = []
        self.checked: List[Tuple[str, str, str, str]] = []

    async def submit(self, booking: BookingData) -> str:
        self.submitted.append(booking)
        if self.submit_error is not None:
            raise self.submit_error
        return f"remote-{len(self.submitted)}"

    async def check_conflicts(self, room_id: str, date: str, start: str, end: str) -> bool:
        self.checked.append((room_id, date, start, end))
        return self.conflict


def make_booking(
    room_id: str = "room-101",
    date: str = "2025-03-10",
    start_time: str = "09:00",
    end_time: str = "10:00",
    **overrides: Any,
) -> BookingData:
    payload = {
        "room_id": room_id,
        "room_name": "Room 101",
        "date": date,
        "start_time": start_time,
        "end_time": end_time,
        "requester_id": "faculty-7",
        "requester_name": "Test Faculty",
        "purpose": "Lecture",
    }
    payload.update(overrides)
    return BookingData(**payload)
