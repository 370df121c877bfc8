"""Persistence backends for offline queue records."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Iterable, List, Optional


class JsonQueueRepository:
    """Read/write queue records to a JSON backing file.

    Saves replace the whole file through a temporary file so a crash never
    leaves a half-written queue behind.
    """

    def __init__(self, file_path: str, *, logger: Any) -> None:
        self._path = Path(file_path)
        self._logger = logger

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[dict]:
        """Load records from disk; a missing file is an empty queue."""

        if not self._path.exists():
            self._logger.debug("Queue file %s does not exist; starting empty", self._path)
            return []

        try:
            with self._path.open('r', encoding='utf-8') as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            self._logger.error("Failed to load queue from %s: %s", self._path, exc)
            raise

        if not isinstance(payload, list):
            self._logger.error(
                "Invalid queue format in %s; expected list, received %s",
                self._path,
                type(payload).__name__,
            )
            raise ValueError(f"Queue file {self._path} does not contain a list")

        self._logger.debug("Loaded %s queued requests from %s", len(payload), self._path)
        return payload

    def save(self, records: Iterable[dict]) -> None:
        """Persist records to disk, ensuring parent directories exist."""

        tmp_path: Optional[Path] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                'w', encoding='utf-8', dir=self._path.parent, delete=False, suffix='.tmp'
            ) as handle:
                tmp_path = Path(handle.name)
                json.dump(list(records), handle, indent=2, ensure_ascii=False)
                handle.write('\n')
                handle.flush()
            tmp_path.replace(self._path)
            self._logger.debug("Queue saved to %s", self._path)
        except OSError as exc:
            self._logger.error("Failed to save queue to %s: %s", self._path, exc)
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise


class MemoryQueueRepository:
    """Volatile repository used by tests and throwaway sessions."""

    def __init__(self, records: Optional[Iterable[dict]] = None) -> None:
        self.records: List[dict] = copy.deepcopy(list(records or []))
        self.save_count = 0

    def load(self) -> List[dict]:
        return copy.deepcopy(self.records)

    def save(self, records: Iterable[dict]) -> None:
        self.records = copy.deepcopy(list(records))
        self.save_count += 1
