"""Search history and draft records."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def normalize_query(query: str) -> str:
    """Dedup identity of a query: trimmed and lowercased."""
    return (query or "").strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    query: str
    url: str
    timestamp: datetime

    @property
    def normalized_query(self) -> str:
        return normalize_query(self.query)


class DraftRecord(BaseModel):
    """In-progress query text. One per client, fully replaced on each save."""

    model_config = ConfigDict(extra="ignore")

    query: str = ""
    updated_at: datetime = Field(default_factory=_utcnow)


HistoryList = TypeAdapter(list[HistoryEntry])


def dump_entries(entries: list[HistoryEntry] | tuple[HistoryEntry, ...]) -> list[dict[str, Any]]:
    """JSON-ready dicts for a sequence of entries (timestamps as ISO-8601)."""
    return [entry.model_dump(mode="json") for entry in entries]


def entries_to_json(entries: list[HistoryEntry] | tuple[HistoryEntry, ...]) -> str:
    """Canonical compact JSON text of a history list."""
    return json.dumps(dump_entries(entries), separators=(",", ":"), ensure_ascii=False)
