"""
Sync Orchestrator

Drives queued booking requests through validation and submission once the
client is back online. Entries are processed one at a time; every outcome
is written back through the queue store and reported as a ``SyncResult``.

State machine::

    pending-validation --conflict--> conflict
           |
           +--no conflict--> pending-sync --> syncing --> synced
                                                 |
                                                 +--error--> failed --(retry due)--> syncing
"""

from __future__ import annotations

import inspect
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Union

import pytz

from infrastructure.constants import REMOTE_CONFLICT_MESSAGE
from reservations.models import (
    BookingData,
    ConflictDetails,
    QueueStatus,
    QueuedBookingRequest,
    SyncResult,
)
from reservations.queue.errors import QueuedRequestNotFoundError
from reservations.queue.queue_store import QueueStore
from reservations.queue.queue_transitions import (
    conflict_patch,
    failed_patch,
    synced_patch,
    syncing_patch,
    validated_patch,
)
from reservations.queue.sync import RetryPolicy, SyncStats, gather_sync_candidates

SubmitCallback = Callable[[BookingData], Union[Awaitable[Any], Any]]
ConflictCheckCallback = Callable[[str, str, str, str], Union[Awaitable[bool], bool]]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class SyncOrchestrator:
    """
    Runs sync cycles over a :class:`QueueStore`.

    Only one cycle runs at a time per orchestrator; a call made while a cycle
    is in flight returns an empty result immediately.

    Attributes:
        store (QueueStore): Queue the cycles read from and write to
        policy (RetryPolicy): Backoff schedule for failed submissions
        revalidate_on_retry (bool): Re-run the remote conflict check before
            resubmitting a failed request
        stats (SyncStats): Running counters across cycles
    """

    def __init__(
        self,
        store: QueueStore,
        *,
        policy: Optional[RetryPolicy] = None,
        revalidate_on_retry: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.logger = logging.getLogger('SyncOrchestrator')
        self.store = store
        self.policy = policy or RetryPolicy()
        self.revalidate_on_retry = revalidate_on_retry
        self.stats = SyncStats()
        self._clock = clock or (lambda: datetime.now(pytz.UTC))
        self._sync_in_progress = False

    @property
    def is_syncing(self) -> bool:
        return self._sync_in_progress

    async def run(
        self,
        submit: SubmitCallback,
        check_conflicts: ConflictCheckCallback,
    ) -> List[SyncResult]:
        """Process every eligible queued request once and return the outcomes."""

        if self._sync_in_progress:
            self.logger.warning("Sync already in progress")
            self.stats.record_skipped_cycle()
            return []

        self._sync_in_progress = True
        results: List[SyncResult] = []
        try:
            batch = await gather_sync_candidates(
                self.store,
                now=self._clock(),
                policy=self.policy,
                logger=self.logger,
            )
            candidates = batch.candidates
            self.logger.info("Syncing %s queued requests", len(candidates))

            for queued in candidates:
                try:
                    result = await self._sync_single(queued, submit, check_conflicts)
                except QueuedRequestNotFoundError as exc:
                    self.logger.warning(
                        "Queued request %s was removed during sync", queued.queue_id
                    )
                    result = SyncResult(queue_id=queued.queue_id, success=False, error=str(exc))
                except Exception as exc:
                    self.logger.exception(
                        "Unexpected error while syncing %s", queued.queue_id
                    )
                    self.stats.record_unexpected_error()
                    result = SyncResult(
                        queue_id=queued.queue_id,
                        success=False,
                        error=str(exc) or type(exc).__name__,
                    )
                results.append(result)

            self.stats.record_cycle()
            if results:
                self.store.notifier.notify()
            self.logger.info(f"""SYNC CYCLE COMPLETE
        Processed: {len(results)}
        Synced: {sum(1 for r in results if r.success)}
        Conflicts: {sum(1 for r in results if r.conflict)}
        Failed: {sum(1 for r in results if not r.success and not r.conflict)}
        """)
            self.logger.debug(self.stats.format_report())
            return results
        finally:
            self._sync_in_progress = False

    async def _sync_single(
        self,
        queued: QueuedBookingRequest,
        submit: SubmitCallback,
        check_conflicts: ConflictCheckCallback,
    ) -> SyncResult:
        queue_id = queued.queue_id
        booking = queued.booking_data
        needs_validation = queued.queue_status is QueueStatus.PENDING_VALIDATION or (
            self.revalidate_on_retry and queued.queue_status is QueueStatus.FAILED
        )

        current = await self.store.update(queue_id, syncing_patch(queued, self._clock()))
        self.stats.record_attempt()

        try:
            if needs_validation:
                has_conflict = await _resolve(
                    check_conflicts(
                        booking.room_id,
                        booking.date,
                        booking.start_time,
                        booking.end_time,
                    )
                )
                if has_conflict:
                    details = ConflictDetails(message=REMOTE_CONFLICT_MESSAGE)
                    await self.store.update(queue_id, conflict_patch(details))
                    self.stats.record_conflict()
                    self.logger.info(
                        "Remote conflict for %s: room %s on %s %s-%s",
                        queue_id,
                        booking.room_id,
                        booking.date,
                        booking.start_time,
                        booking.end_time,
                    )
                    return SyncResult(
                        queue_id=queue_id,
                        success=False,
                        conflict=True,
                        conflict_details=details,
                    )

                await self.store.update(queue_id, validated_patch())

            booking_id = await _resolve(submit(booking))
        except QueuedRequestNotFoundError:
            raise
        except Exception as exc:
            return await self._record_failure(current, exc)

        remote_id = str(booking_id) if booking_id is not None else None
        try:
            await self.store.update(queue_id, synced_patch())
        except Exception as exc:
            return self._record_unconfirmed(queue_id, remote_id, exc)

        self.stats.record_synced()
        self.logger.info("Successfully synced %s -> %s", queue_id, remote_id)
        return SyncResult(queue_id=queue_id, success=True, booking_id=remote_id)

    def _record_unconfirmed(
        self,
        queue_id: str,
        remote_id: Optional[str],
        exc: Exception,
    ) -> SyncResult:
        """The backend accepted the booking but the queue could not mark it synced."""

        if isinstance(exc, QueuedRequestNotFoundError):
            self.logger.warning(
                "Queued request %s was removed during sync after being submitted as %s",
                queue_id,
                remote_id,
            )
        else:
            self.stats.record_unexpected_error()
            self.logger.exception(
                "Submitted %s as %s but could not mark it synced; "
                "reconcile before the next cycle resubmits it",
                queue_id,
                remote_id,
            )
        reason = str(exc) or type(exc).__name__
        return SyncResult(
            queue_id=queue_id,
            success=False,
            booking_id=remote_id,
            error=f"Submitted as {remote_id} but not marked synced: {reason}",
        )

    async def _record_failure(
        self,
        current: QueuedBookingRequest,
        exc: Exception,
    ) -> SyncResult:
        error_message = str(exc) or type(exc).__name__
        next_retry = self.policy.next_retry(current.attempts, self._clock())
        exhausted = next_retry is None

        await self.store.update(current.queue_id, failed_patch(error_message, next_retry))
        self.stats.record_failure(exhausted=exhausted)

        if exhausted:
            self.logger.error(
                "Failed to sync %s after %s attempts; no further automatic retries: %s",
                current.queue_id,
                current.attempts,
                error_message,
            )
        else:
            self.logger.warning(
                "Failed to sync %s (attempt %s), retrying after %s: %s",
                current.queue_id,
                current.attempts,
                next_retry.isoformat(),
                error_message,
            )
        return SyncResult(queue_id=current.queue_id, success=False, error=error_message)
