"""Retry schedule for failed submissions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from infrastructure.constants import (
    INITIAL_RETRY_DELAY_SECONDS,
    MAX_RETRY_DELAY_SECONDS,
    MAX_SYNC_ATTEMPTS,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff, doubling per attempt and capped at ``max_delay``.

    ``attempts`` is always the count *after* the failed attempt was
    recorded, so the first failure waits ``initial_delay``.
    """

    initial_delay: float = INITIAL_RETRY_DELAY_SECONDS
    max_delay: float = MAX_RETRY_DELAY_SECONDS
    max_attempts: int = MAX_SYNC_ATTEMPTS

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            initial_delay=settings.initial_retry_delay,
            max_delay=settings.max_retry_delay,
            max_attempts=settings.max_attempts,
        )

    def delay_for(self, attempts: int) -> timedelta:
        exponent = max(attempts - 1, 0)
        # Cap the exponent so large attempt counts never overflow the float.
        seconds = min(self.initial_delay * (2 ** min(exponent, 64)), self.max_delay)
        return timedelta(seconds=seconds)

    def is_exhausted(self, attempts: int) -> bool:
        """True once the attempt started with ``max_attempts`` already used."""

        return attempts > self.max_attempts

    def next_retry(self, attempts: int, now: datetime) -> Optional[datetime]:
        """When a request that failed its ``attempts``-th try may run again."""

        if self.is_exhausted(attempts):
            return None
        return now + self.delay_for(attempts)
