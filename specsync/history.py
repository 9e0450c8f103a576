"""Change history: the last known spec fingerprint plus a capped entry log."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from .config import HISTORY_LIMIT
from .schemas import ChangeHistory, ChangeHistoryEntry, ChangeItem
from .utils import write_text_atomic

log = logging.getLogger(__name__)


class HistoryCorruption(Exception):
    """Persisted history exists but cannot be read back."""


class PersistenceFailure(Exception):
    """Pass bookkeeping (history or config snapshot) could not be written."""


class HistoryStore(ABC):
    """Ring buffer of change entries behind a pluggable storage backend."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"history limit must be at least 1, got {limit}")
        self.limit = limit

    @abstractmethod
    def _load(self) -> ChangeHistory:
        """Return the stored history, or an empty one if there is none."""

    @abstractmethod
    def _save(self, history: ChangeHistory) -> None:
        """Persist the whole history, raising ``PersistenceFailure`` on error."""

    def get_last_fingerprint(self) -> str:
        """Empty string when no history exists (first run)."""
        return self._load().last_fingerprint

    def entries(self) -> list[ChangeHistoryEntry]:
        return list(self._load().entries)

    def record_entry(self, fingerprint: str, changes: Iterable[ChangeItem]) -> ChangeHistoryEntry:
        history = self._load()
        entry = ChangeHistoryEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            fingerprint=fingerprint,
            changes=list(changes),
            processed=False,
        )
        kept = (history.entries + [entry])[-self.limit:]
        self._save(ChangeHistory(last_fingerprint=fingerprint, last_analysis=entry.timestamp, entries=kept))
        log.info("Recorded history entry %s (%d changes, %d entries kept)", fingerprint[:12], len(entry.changes), len(kept))
        return entry

    def mark_processed(self, fingerprint: str) -> bool:
        """Flag the newest entry for ``fingerprint`` as processed."""
        history = self._load()
        for entry in reversed(history.entries):
            if entry.fingerprint == fingerprint:
                if not entry.processed:
                    entry.processed = True
                    self._save(history)
                return True
        log.warning("No history entry for fingerprint %s", fingerprint[:12])
        return False


class FileHistoryStore(HistoryStore):
    def __init__(self, path: str | Path, limit: int = HISTORY_LIMIT):
        super().__init__(limit)
        self.path = Path(path)

    def _read(self) -> ChangeHistory:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise HistoryCorruption(f"cannot read {self.path}: {e}") from e
        try:
            return ChangeHistory.model_validate_json(text)
        except ValidationError as e:
            raise HistoryCorruption(f"malformed history in {self.path}: {e}") from e

    def _load(self) -> ChangeHistory:
        if not self.path.exists():
            return ChangeHistory()
        try:
            return self._read()
        except HistoryCorruption as e:
            log.warning("Treating change history as empty: %s", e)
            return ChangeHistory()

    def _save(self, history: ChangeHistory) -> None:
        try:
            write_text_atomic(self.path, history.model_dump_json(indent=2))
        except OSError as e:
            raise PersistenceFailure(f"Cannot write change history {self.path}: {e}") from e


class MemoryHistoryStore(HistoryStore):
    """Keeps the serialized history in memory; used by tests."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        super().__init__(limit)
        self._data: str | None = None

    def _load(self) -> ChangeHistory:
        if self._data is None:
            return ChangeHistory()
        return ChangeHistory.model_validate_json(self._data)

    def _save(self, history: ChangeHistory) -> None:
        self._data = history.model_dump_json()
