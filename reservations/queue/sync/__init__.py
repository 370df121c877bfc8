"""Sync cycle helpers for the offline booking queue."""

from .backoff import RetryPolicy
from .gathering import SyncBatch, gather_sync_candidates
from .metrics import SyncStats

__all__ = [
    "RetryPolicy",
    "SyncBatch",
    "gather_sync_candidates",
    "SyncStats",
]
