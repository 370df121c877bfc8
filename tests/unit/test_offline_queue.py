import re
from datetime import timedelta

import pytest

from infrastructure.settings import QueueSettings
from reservations.models import QueueStatus
from reservations.queue.errors import (
    BookingValidationError,
    InvalidTransitionError,
    QueuedRequestNotFoundError,
)
from reservations.queue.offline_queue import OfflineBookingQueue
from tests.helpers import FakeBackend, FakeClock, make_booking


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    return OfflineBookingQueue.in_memory(clock=clock)


@pytest.mark.asyncio
async def test_queue_booking_stores_pending_validation_entry(queue, clock):
    booking = make_booking()

    queued = await queue.queue_booking(booking)

    assert re.match(r"^offline-\d+-[0-9a-f]{9}$", queued.queue_id)
    assert queued.queue_status is QueueStatus.PENDING_VALIDATION
    assert queued.attempts == 0
    assert queued.queued_at == clock.now
    assert await queue.get_queued_request(queued.queue_id) == queued
    assert (await queue.get_queued_request(queued.queue_id)).booking_data == booking


@pytest.mark.asyncio
async def test_queue_booking_accepts_mappings(queue):
    queued = await queue.queue_booking(make_booking().to_payload())

    assert queued.booking_data == make_booking()


@pytest.mark.asyncio
async def test_queue_ids_are_unique(queue):
    first = await queue.queue_booking(make_booking())
    second = await queue.queue_booking(make_booking(start_time="11:00", end_time="12:00"))

    assert first.queue_id != second.queue_id


@pytest.mark.asyncio
async def test_invalid_booking_is_rejected_and_not_stored(queue):
    with pytest.raises(BookingValidationError) as excinfo:
        await queue.queue_booking(make_booking(start_time="10:00", end_time="09:00"))

    assert "must be before" in str(excinfo.value)
    assert await queue.get_queued_requests() == []


@pytest.mark.asyncio
async def test_get_queued_requests_filters_by_status(queue):
    first = await queue.queue_booking(make_booking())
    await queue.queue_booking(make_booking(start_time="11:00", end_time="12:00"))
    await queue.update_queued_request(first.queue_id, {"queue_status": "pending-sync"})

    pending_sync = await queue.get_queued_requests(QueueStatus.PENDING_SYNC)

    assert [entry.queue_id for entry in pending_sync] == [first.queue_id]
    assert len(await queue.get_queued_requests()) == 2


@pytest.mark.asyncio
async def test_update_unknown_request_raises(queue):
    with pytest.raises(QueuedRequestNotFoundError):
        await queue.update_queued_request("offline-missing", {"queue_status": "synced"})


@pytest.mark.asyncio
async def test_remove_is_idempotent(queue):
    queued = await queue.queue_booking(make_booking())

    await queue.remove_queued_request(queued.queue_id)
    await queue.remove_queued_request(queued.queue_id)

    assert await queue.get_queued_request(queued.queue_id) is None


@pytest.mark.asyncio
async def test_local_conflict_with_overlapping_entry(queue):
    await queue.queue_booking(make_booking(start_time="09:00", end_time="10:00"))

    assert await queue.check_local_conflicts(
        make_booking(start_time="09:30", end_time="10:30")
    ) is True


@pytest.mark.asyncio
async def test_adjacent_slots_do_not_conflict(queue):
    await queue.queue_booking(make_booking(start_time="09:00", end_time="10:00"))

    assert await queue.check_local_conflicts(
        make_booking(start_time="10:00", end_time="11:00")
    ) is False


@pytest.mark.asyncio
async def test_local_conflict_can_exclude_the_entry_being_edited(queue):
    queued = await queue.queue_booking(make_booking())

    assert await queue.check_local_conflicts(
        make_booking(start_time="09:15", end_time="09:45"),
        exclude_queue_id=queued.queue_id,
    ) is False


@pytest.mark.asyncio
async def test_clear_synced_only_removes_synced(queue):
    backend = FakeBackend()
    await queue.queue_booking(make_booking())
    await queue.sync_queue(backend.submit, backend.check_conflicts)
    waiting = await queue.queue_booking(make_booking(start_time="11:00", end_time="12:00"))

    assert await queue.clear_synced() == 1
    assert await queue.clear_synced() == 0
    assert [e.queue_id for e in await queue.get_queued_requests()] == [waiting.queue_id]


@pytest.mark.asyncio
async def test_queue_stats_and_pending_flag(queue, clock):
    assert await queue.has_pending() is False

    await queue.queue_booking(make_booking())
    conflicted = await queue.queue_booking(make_booking(start_time="13:00", end_time="14:00"))
    await queue.update_queued_request(
        conflicted.queue_id,
        {"queue_status": "conflict", "conflict_details": None},
    )

    stats = await queue.get_queue_stats()

    assert stats.total == 2
    assert stats.pending_validation == 1
    assert stats.conflict == 1
    assert stats.needs_attention == 1
    assert stats.pending_total == 1
    assert stats.as_dict()["total"] == 2
    assert await queue.has_pending() is True


@pytest.mark.asyncio
async def test_sync_on_reconnect_skips_when_nothing_pending(queue):
    backend = FakeBackend()

    assert await queue.sync_on_reconnect(backend.submit, backend.check_conflicts) == []
    assert queue.orchestrator.stats.cycles_run == 0


@pytest.mark.asyncio
async def test_sync_on_reconnect_syncs_pending(queue):
    backend = FakeBackend()
    await queue.queue_booking(make_booking())

    results = await queue.sync_on_reconnect(backend.submit, backend.check_conflicts)

    assert [r.success for r in results] == [True]


@pytest.mark.asyncio
async def test_take_for_resubmission_returns_booking_and_removes_entry(queue):
    backend = FakeBackend(conflict=True)
    queued = await queue.queue_booking(make_booking())
    await queue.sync_queue(backend.submit, backend.check_conflicts)

    booking = await queue.take_for_resubmission(queued.queue_id)

    assert booking == make_booking()
    assert await queue.get_queued_request(queued.queue_id) is None


@pytest.mark.asyncio
async def test_take_for_resubmission_rejects_active_entries(queue):
    queued = await queue.queue_booking(make_booking())

    with pytest.raises(InvalidTransitionError):
        await queue.take_for_resubmission(queued.queue_id)

    with pytest.raises(QueuedRequestNotFoundError):
        await queue.take_for_resubmission("offline-missing")


@pytest.mark.asyncio
async def test_retry_request_sends_failed_entry_back_to_validation(queue):
    backend = FakeBackend(submit_error=RuntimeError("offline"))
    queued = await queue.queue_booking(make_booking())
    await queue.sync_queue(backend.submit, backend.check_conflicts)

    retried = await queue.retry_request(queued.queue_id)

    assert retried.queue_status is QueueStatus.PENDING_VALIDATION
    assert retried.attempts == 1
    assert retried.error is None
    assert retried.next_retry is None


@pytest.mark.asyncio
async def test_retry_request_rejects_non_failed_entries(queue):
    queued = await queue.queue_booking(make_booking())

    with pytest.raises(InvalidTransitionError):
        await queue.retry_request(queued.queue_id)


@pytest.mark.asyncio
async def test_subscribers_hear_about_changes(queue):
    calls = []
    unsubscribe = queue.subscribe(lambda: calls.append(1))

    queued = await queue.queue_booking(make_booking())
    unsubscribe()
    await queue.remove_queued_request(queued.queue_id)

    assert calls == [1]


@pytest.mark.asyncio
async def test_queue_persists_across_instances(tmp_path, clock):
    settings = QueueSettings(queue_file=str(tmp_path / "offline_queue.json"))
    queued = await OfflineBookingQueue(settings, clock=clock).queue_booking(make_booking())

    reopened = OfflineBookingQueue(settings, clock=clock)

    assert await reopened.get_queued_request(queued.queue_id) == queued


@pytest.mark.asyncio
async def test_update_accepts_storage_format_values(tmp_path, clock):
    settings = QueueSettings(queue_file=str(tmp_path / "offline_queue.json"))
    queue = OfflineBookingQueue(settings, clock=clock)
    failed = await queue.queue_booking(make_booking())
    conflicted = await queue.queue_booking(make_booking(start_time="11:00", end_time="12:00"))

    await queue.update_queued_request(
        failed.queue_id,
        {"queue_status": "failed", "error": "x", "next_retry": "2025-03-01T12:00:05+00:00"},
    )
    await queue.update_queued_request(
        conflicted.queue_id,
        {"queue_status": "conflict", "conflict_details": {"message": "taken"}},
    )

    reopened = OfflineBookingQueue(settings, clock=clock)
    stored_failed = await reopened.get_queued_request(failed.queue_id)
    stored_conflict = await reopened.get_queued_request(conflicted.queue_id)
    assert stored_failed.next_retry == clock.now + timedelta(seconds=5)
    assert stored_conflict.conflict_details.message == "taken"


@pytest.mark.asyncio
async def test_update_with_badly_typed_value_raises_value_error(queue):
    queued = await queue.queue_booking(make_booking())

    with pytest.raises(ValueError):
        await queue.update_queued_request(queued.queue_id, {"conflict_details": "taken"})

    assert (await queue.get_queued_request(queued.queue_id)) == queued


@pytest.mark.asyncio
async def test_local_conflict_check_needs_only_the_slot(queue):
    await queue.queue_booking(make_booking())

    assert await queue.check_local_conflicts(
        {"room_id": "room-101", "date": "2025-03-10", "start_time": "9:30 AM", "end_time": "10:30 AM"}
    ) is True
