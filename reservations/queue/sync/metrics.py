"""Statistics helpers for the sync orchestrator."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SyncStats:
    """Mutable counters tracking sync cycle outcomes."""

    cycles_run: int = 0
    cycles_skipped: int = 0
    total_attempts: int = 0
    synced: int = 0
    conflicts: int = 0
    failures: int = 0
    retries_exhausted: int = 0
    unexpected_errors: int = 0

    def record_cycle(self) -> None:
        self.cycles_run += 1

    def record_skipped_cycle(self) -> None:
        self.cycles_skipped += 1

    def record_attempt(self) -> None:
        self.total_attempts += 1

    def record_synced(self) -> None:
        self.synced += 1

    def record_conflict(self) -> None:
        self.conflicts += 1

    def record_failure(self, exhausted: bool = False) -> None:
        self.failures += 1
        if exhausted:
            self.retries_exhausted += 1

    def record_unexpected_error(self) -> None:
        self.unexpected_errors += 1

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return (self.synced / self.total_attempts) * 100

    def format_report(self) -> str:
        lines = [
            "Offline Queue Sync Report",
            f"Cycles: {self.cycles_run} (skipped while busy: {self.cycles_skipped})",
            f"Attempts: {self.total_attempts}",
            f"Synced: {self.synced}",
            f"Conflicts: {self.conflicts}",
            f"Failures: {self.failures}",
            f"Success Rate: {self.success_rate:.2f}%",
        ]
        if self.retries_exhausted:
            lines.append(f"Retries Exhausted: {self.retries_exhausted}")
        if self.unexpected_errors:
            lines.append(f"Unexpected Errors: {self.unexpected_errors}")
        return "\n".join(lines)
