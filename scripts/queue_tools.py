"""Utility entrypoints for the offline booking queue.

Provides quick CLI hooks into the queue file for manual inspection.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
from typing import List, Optional

from infrastructure.settings import QueueSettings, get_settings
from logging_config import setup_logging
from reservations.models import QueueStatus
from reservations.queue.offline_queue import OfflineBookingQueue


def _build_queue(settings: QueueSettings, queue_file: Optional[str]) -> OfflineBookingQueue:
    if queue_file:
        settings = dataclasses.replace(settings, queue_file=queue_file)
    return OfflineBookingQueue(settings)


async def show_stats(queue: OfflineBookingQueue) -> None:
    stats = await queue.get_queue_stats()
    print(f"Queue file: {queue.store.repository.path}")
    for name, value in stats.as_dict().items():
        print(f"{name:>20}: {value}")


async def list_queue(queue: OfflineBookingQueue, status: Optional[str]) -> None:
    requests = await queue.get_queued_requests(status)
    if not requests:
        print("Queue is empty.")
        return
    for request in sorted(requests, key=lambda item: item.queued_at):
        booking = request.booking_data
        line = (
            f"{request.queue_id}: [{request.queue_status.value}] room {booking.room_id} "
            f"{booking.date} {booking.start_time}-{booking.end_time} "
            f"(attempts {request.attempts})"
        )
        if request.error:
            line += f" error={request.error!r}"
        if request.next_retry:
            line += f" next_retry={request.next_retry.isoformat()}"
        print(line)


async def clear_synced(queue: OfflineBookingQueue) -> None:
    removed = await queue.clear_synced()
    print(f"Removed {removed} synced requests.")


async def retry(queue: OfflineBookingQueue, queue_id: str) -> None:
    await queue.retry_request(queue_id)
    print(f"{queue_id} will be revalidated on the next sync.")


async def remove(queue: OfflineBookingQueue, queue_id: str) -> None:
    await queue.remove_queued_request(queue_id)
    print(f"Removed {queue_id}.")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline booking queue helpers")
    parser.add_argument("--queue-file", help="Override OFFLINE_QUEUE_FILE")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Show counts per status")
    list_parser = subparsers.add_parser("list", help="List queued requests")
    list_parser.add_argument(
        "--status",
        choices=[status.value for status in QueueStatus],
        help="Only show requests in this status",
    )
    subparsers.add_parser("clear-synced", help="Remove synced requests")
    retry_parser = subparsers.add_parser("retry", help="Retry a failed request")
    retry_parser.add_argument("queue_id")
    remove_parser = subparsers.add_parser("remove", help="Remove a queued request")
    remove_parser.add_argument("queue_id")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings, clear_previous=False)
    queue = _build_queue(settings, args.queue_file)

    if args.command == "stats":
        asyncio.run(show_stats(queue))
    elif args.command == "list":
        asyncio.run(list_queue(queue, args.status))
    elif args.command == "clear-synced":
        asyncio.run(clear_synced(queue))
    elif args.command == "retry":
        asyncio.run(retry(queue, args.queue_id))
    elif args.command == "remove":
        asyncio.run(remove(queue, args.queue_id))


if __name__ == "__main__":
    main()
