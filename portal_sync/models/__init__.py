from __future__ import annotations

from portal_sync.models.kv import KeyValue  # noqa: F401
from portal_sync.models.history import DraftRecord, HistoryEntry  # noqa: F401
