"""Select which queued requests a sync cycle should process."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from reservations.models import QueueStatus, QueuedBookingRequest
from reservations.queue.sync.backoff import RetryPolicy


@dataclass
class SyncBatch:
    """Buckets produced after evaluating the queue for one cycle."""

    pending_validation: List[QueuedBookingRequest] = field(default_factory=list)
    pending_sync: List[QueuedBookingRequest] = field(default_factory=list)
    retry_due: List[QueuedBookingRequest] = field(default_factory=list)
    waiting_retry: List[QueuedBookingRequest] = field(default_factory=list)
    exhausted: List[QueuedBookingRequest] = field(default_factory=list)
    skipped: List[QueuedBookingRequest] = field(default_factory=list)

    @property
    def candidates(self) -> List[QueuedBookingRequest]:
        """Entries to process, in gathering order."""

        return [*self.pending_validation, *self.pending_sync, *self.retry_due]


def _by_queued_at(entries: List[QueuedBookingRequest]) -> List[QueuedBookingRequest]:
    return sorted(entries, key=lambda entry: entry.queued_at)


async def gather_sync_candidates(
    store: Any,
    *,
    now: datetime,
    policy: RetryPolicy,
    logger: Optional[Any] = None,
) -> SyncBatch:
    """Collect pending entries and failed entries whose retry is due."""

    batch = SyncBatch(
        pending_validation=_by_queued_at(await store.get_all(QueueStatus.PENDING_VALIDATION)),
        pending_sync=_by_queued_at(await store.get_all(QueueStatus.PENDING_SYNC)),
    )

    for entry in _by_queued_at(await store.get_all(QueueStatus.FAILED)):
        try:
            if policy.is_exhausted(entry.attempts) and entry.next_retry is None:
                batch.exhausted.append(entry)
            elif entry.next_retry is None or entry.next_retry <= now:
                batch.retry_due.append(entry)
            else:
                batch.waiting_retry.append(entry)
        except (TypeError, ValueError) as exc:
            batch.skipped.append(entry)
            if logger:
                logger.warning(
                    "Skipping queued request %s: cannot evaluate retry schedule (%s)",
                    entry.queue_id,
                    exc,
                )

    if logger:
        logger.debug(
            "Sync candidates: %s pending validation, %s pending sync, %s retries due "
            "(%s waiting, %s exhausted, %s skipped)",
            len(batch.pending_validation),
            len(batch.pending_sync),
            len(batch.retry_due),
            len(batch.waiting_retry),
            len(batch.exhausted),
            len(batch.skipped),
        )
    return batch
