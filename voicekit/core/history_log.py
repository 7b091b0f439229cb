"""In-memory command log shared by the HTTP surface."""

from __future__ import annotations

import threading
from functools import lru_cache
from typing import Iterable

from .config import get_settings
from .history import HistoryEntry, append_entry, clear_history, remove_entry, replay_command


class HistoryLog:
    """Newest-first log of :class:`HistoryEntry`.

    Every mutation swaps the whole list under a lock, so concurrent removals
    of different ids all take effect and readers always see a consistent
    snapshot.
    """

    def __init__(self, entries: Iterable[HistoryEntry] = (), max_items: int | None = None) -> None:
        self._lock = threading.Lock()
        self._max_items = max_items
        self._entries: tuple[HistoryEntry, ...] = tuple(entries)[: max_items or None]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_items(self) -> int | None:
        return self._max_items

    def snapshot(self) -> list[HistoryEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> HistoryEntry | None:
        return replay_command(self._entries, entry_id)

    def append(self, entry: HistoryEntry) -> list[HistoryEntry]:
        """Add ``entry`` at the front; returns the entries dropped by the size cap."""
        with self._lock:
            updated = append_entry(self._entries, entry, self._max_items)
            kept = {item.id for item in updated}
            dropped = [item for item in self._entries if item.id not in kept]
            self._entries = tuple(updated)
        return dropped

    def remove(self, entry_id: str) -> bool:
        with self._lock:
            updated = remove_entry(self._entries, entry_id)
            removed = len(updated) != len(self._entries)
            self._entries = tuple(updated)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries = tuple(clear_history(self._entries))

    def replace_all(self, entries: Iterable[HistoryEntry]) -> None:
        with self._lock:
            self._entries = tuple(entries)[: self._max_items or None]


@lru_cache()
def get_history_log() -> HistoryLog:
    """Process-wide log, capped at ``history_max_items``."""
    return HistoryLog(max_items=get_settings().history_max_items)
