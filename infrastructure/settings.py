"""Centralized settings for the offline booking queue.

Configuration is read from the environment (and a ``.env`` file during
development) into an immutable :class:`QueueSettings` snapshot. Modules take
settings as constructor arguments; :func:`get_settings` provides the cached
process-wide default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv

from . import constants


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _to_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class QueueSettings:
    """Immutable snapshot of queue configuration values."""

    queue_file: str = constants.DEFAULT_QUEUE_FILE
    max_attempts: int = constants.MAX_SYNC_ATTEMPTS
    initial_retry_delay: float = constants.INITIAL_RETRY_DELAY_SECONDS
    max_retry_delay: float = constants.MAX_RETRY_DELAY_SECONDS
    revalidate_on_retry: bool = True
    production_mode: bool = False
    log_directory: str = constants.DEFAULT_LOG_DIRECTORY


def load_settings(env: Optional[Mapping[str, str]] = None) -> QueueSettings:
    """Load configuration from the environment and fall back to defaults."""

    if env is None:
        load_dotenv(override=False)
        env = os.environ

    max_attempts = _to_int(env.get("OFFLINE_QUEUE_MAX_ATTEMPTS"), constants.MAX_SYNC_ATTEMPTS)
    if max_attempts < 1:
        max_attempts = constants.MAX_SYNC_ATTEMPTS

    initial_delay = _to_float(
        env.get("OFFLINE_QUEUE_INITIAL_RETRY_DELAY"),
        constants.INITIAL_RETRY_DELAY_SECONDS,
    )
    max_delay = _to_float(
        env.get("OFFLINE_QUEUE_MAX_RETRY_DELAY"),
        constants.MAX_RETRY_DELAY_SECONDS,
    )
    if initial_delay <= 0:
        initial_delay = constants.INITIAL_RETRY_DELAY_SECONDS
    max_delay = max(max_delay, initial_delay)

    return QueueSettings(
        queue_file=env.get("OFFLINE_QUEUE_FILE", constants.DEFAULT_QUEUE_FILE),
        max_attempts=max_attempts,
        initial_retry_delay=initial_delay,
        max_retry_delay=max_delay,
        revalidate_on_retry=_to_bool(
            env.get("OFFLINE_QUEUE_REVALIDATE_ON_RETRY"), default=True
        ),
        production_mode=_to_bool(env.get("PRODUCTION_MODE"), default=False),
        log_directory=env.get("LOG_DIRECTORY", constants.DEFAULT_LOG_DIRECTORY),
    )


@lru_cache(maxsize=1)
def get_settings() -> QueueSettings:
    """Return a cached :class:`QueueSettings` instance."""

    return load_settings()
