"""Bounded, deduplicated recent-search history."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from pydantic import ValidationError

from portal_sync.models.history import HistoryEntry, HistoryList, dump_entries
from portal_sync.services.storage import SafeStorage

logger = logging.getLogger(__name__)

HISTORY_KEY = "history"
DEFAULT_LIMIT = 50


class HistoryStore:
    """Most-recent-first list of past searches, capped at ``limit`` entries.

    The persisted list is the source of truth: every operation re-reads it, so
    writes from another task or another store on the same backend are picked
    up (last write wins).
    """

    def __init__(self, storage: SafeStorage, limit: int = DEFAULT_LIMIT) -> None:
        self._storage = storage
        self._limit = limit

    @property
    def limit(self) -> int:
        return self._limit

    def _load(self) -> list[HistoryEntry]:
        raw = self._storage.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            return HistoryList.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError, RecursionError):
            logger.warning("Invalid history data, treating as empty", exc_info=True)
            return []

    def _save(self, entries: list[HistoryEntry]) -> None:
        data = dump_entries(entries[: self._limit])
        self._storage.set(HISTORY_KEY, json.dumps(data, ensure_ascii=False))

    def list(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._load())

    def __len__(self) -> int:
        return len(self._load())

    def push(self, entry: HistoryEntry) -> None:
        """Move ``entry`` to the front, dropping any same-query entries."""
        key = entry.normalized_query
        items = [item for item in self._load() if item.normalized_query != key]
        items.insert(0, entry)
        self._save(items)

    def prepend(self, entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
        """Put ``entries`` ahead of the current list without deduplicating.

        Used for sync pulls and imports. Duplicates survive until the next
        push() collapses them.
        """
        merged = [*entries, *self._load()][: self._limit]
        self._save(merged)
        return merged

    def remove(self, index: int) -> None:
        items = self._load()
        if index < 0 or index >= len(items):
            return
        del items[index]
        self._save(items)

    def clear(self) -> None:
        self._storage.remove(HISTORY_KEY)
