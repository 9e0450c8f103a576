"""Persisted structured-config snapshot from the previous pass."""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .history import PersistenceFailure
from .utils import write_text_atomic

log = logging.getLogger(__name__)


class SnapshotStore(ABC):
    @abstractmethod
    def load(self) -> dict[str, Any]:
        """Return the last saved snapshot, ``{}`` if there is none."""

    @abstractmethod
    def save(self, snapshot: dict[str, Any]) -> None:
        """Persist ``snapshot``, raising ``PersistenceFailure`` on error."""


class FileSnapshotStore(SnapshotStore):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            log.warning("Treating config snapshot %s as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Treating config snapshot %s as empty: not a JSON object", self.path)
            return {}
        return data

    def save(self, snapshot: dict[str, Any]) -> None:
        try:
            write_text_atomic(self.path, json.dumps(snapshot, indent=2, sort_keys=True) + "\n")
        except (OSError, TypeError) as e:
            raise PersistenceFailure(f"Cannot write config snapshot {self.path}: {e}") from e


class MemorySnapshotStore(SnapshotStore):
    def __init__(self, snapshot: dict[str, Any] | None = None):
        self._data = json.dumps(snapshot) if snapshot is not None else None

    def load(self) -> dict[str, Any]:
        return json.loads(self._data) if self._data is not None else {}

    def save(self, snapshot: dict[str, Any]) -> None:
        self._data = json.dumps(snapshot)
