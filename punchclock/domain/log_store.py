"""Bounded, reverse-chronological outcome log."""

import sys
from typing import List, Optional

from punchclock.domain.errors import PersistenceFailure
from punchclock.domain.models import OutcomeLogEntry
from punchclock.ports.outbound import StoragePort


def _log(msg: str):
    print(msg, file=sys.stderr)


class OutcomeLog:
    """Newest-first list capped at ``capacity``; oldest entries are evicted.

    Without a storage port the log lives in memory only (the interactive view).
    With one, it is loaded from and saved to a single key.
    """

    def __init__(self, capacity: int, storage: Optional[StoragePort] = None, key: str = "logs"):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._storage = storage
        self._key = key
        self._entries: List[OutcomeLogEntry] = []
        self._load()

    def append(self, entry: OutcomeLogEntry) -> None:
        self._entries.insert(0, entry)
        del self._entries[self.capacity:]
        self._save()

    def entries(self) -> List[OutcomeLogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self):
        if self._storage is None:
            return
        try:
            raw = self._storage.get([self._key], {self._key: []})[self._key]
        except PersistenceFailure as e:
            _log(f"[OutcomeLog:{self._key}] load failed, starting empty: {e}")
            return
        if not isinstance(raw, list):
            return
        for item in raw[: self.capacity]:
            if isinstance(item, dict):
                try:
                    self._entries.append(OutcomeLogEntry.from_dict(item))
                except ValueError as e:
                    _log(f"[OutcomeLog:{self._key}] skipping bad entry: {e}")

    def _save(self):
        if self._storage is None:
            return
        try:
            self._storage.set({self._key: [e.to_dict() for e in self._entries]})
        except PersistenceFailure as e:
            _log(f"[OutcomeLog:{self._key}] save failed, keeping in memory: {e}")
