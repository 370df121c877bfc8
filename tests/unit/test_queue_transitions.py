from datetime import datetime, timedelta

import pytest
import pytz

from reservations.models import ConflictDetails, QueueStatus, QueuedBookingRequest
from reservations.queue.queue_transitions import (
    apply_patch,
    conflict_patch,
    failed_patch,
    retry_patch,
    synced_patch,
    syncing_patch,
)
from tests.helpers import make_booking

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=pytz.UTC)


def make_entry(**overrides):
    fields = {
        "queue_id": "offline-1",
        "booking_data": make_booking(),
        "queued_at": NOW,
    }
    fields.update(overrides)
    return QueuedBookingRequest(**fields)


def test_syncing_patch_increments_attempts_and_stamps_time():
    entry = make_entry(attempts=2)

    updated = apply_patch(entry, syncing_patch(entry, NOW))

    assert updated.queue_status is QueueStatus.SYNCING
    assert updated.attempts == 3
    assert updated.last_attempt == NOW
    # Original entry is untouched
    assert entry.attempts == 2


def test_failed_patch_sets_error_and_retry():
    retry_at = NOW + timedelta(seconds=2)

    updated = apply_patch(make_entry(), failed_patch("network down", retry_at))

    assert updated.queue_status is QueueStatus.FAILED
    assert updated.error == "network down"
    assert updated.next_retry == retry_at


def test_leaving_failed_clears_error_and_retry():
    failed = apply_patch(make_entry(), failed_patch("boom", NOW))

    synced = apply_patch(failed, synced_patch())

    assert synced.error is None
    assert synced.next_retry is None


def test_conflict_details_only_kept_while_in_conflict():
    conflicted = apply_patch(make_entry(), conflict_patch(ConflictDetails(message="taken")))
    assert conflicted.conflict_details.message == "taken"

    retried = apply_patch(conflicted, retry_patch())

    assert retried.queue_status is QueueStatus.PENDING_VALIDATION
    assert retried.conflict_details is None


def test_status_strings_are_coerced():
    updated = apply_patch(make_entry(), {"queue_status": "pending-sync"})

    assert updated.queue_status is QueueStatus.PENDING_SYNC


@pytest.mark.parametrize("field", ["queue_id", "queued_at"])
def test_immutable_fields_cannot_be_patched(field):
    with pytest.raises(ValueError):
        apply_patch(make_entry(), {field: "other"})


def test_unknown_fields_are_rejected():
    with pytest.raises(ValueError):
        apply_patch(make_entry(), {"priority": 1})


def test_attempts_never_decrease():
    with pytest.raises(ValueError):
        apply_patch(make_entry(attempts=3), {"attempts": 1})


def test_iso_timestamps_are_parsed():
    updated = apply_patch(
        make_entry(),
        {"queue_status": "failed", "error": "x", "next_retry": "2025-03-01T12:00:05+00:00"},
    )

    assert updated.next_retry == NOW + timedelta(seconds=5)
    assert updated.next_retry.tzinfo is not None


def test_naive_timestamps_are_treated_as_utc():
    updated = apply_patch(
        make_entry(),
        {"queue_status": "failed", "next_retry": datetime(2025, 3, 1, 11, 0)},
    )

    assert updated.next_retry == NOW - timedelta(hours=1)
    assert updated.next_retry.tzinfo is not None


def test_mappings_become_dataclasses():
    updated = apply_patch(
        make_entry(),
        {
            "queue_status": "conflict",
            "conflict_details": {"message": "taken"},
            "booking_data": make_booking(room_id="room-202").to_payload(),
        },
    )

    assert updated.conflict_details == ConflictDetails(message="taken")
    assert updated.booking_data.room_id == "room-202"


@pytest.mark.parametrize(
    "patch",
    [
        {"next_retry": "not a date"},
        {"last_attempt": 1234},
        {"conflict_details": "taken"},
        {"booking_data": {"room_id": "room-1"}},
        {"attempts": "3"},
        {"error": 500},
        {"queue_status": "lost"},
    ],
)
def test_badly_typed_values_are_rejected(patch):
    with pytest.raises(ValueError):
        apply_patch(make_entry(), patch)
