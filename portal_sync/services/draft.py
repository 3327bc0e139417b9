"""Debounced autosave of in-progress query text."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import ValidationError

from portal_sync.models.history import DraftRecord
from portal_sync.services.storage import SafeStorage

logger = logging.getLogger(__name__)

DRAFT_KEY = "draft"
DEFAULT_QUIET_PERIOD = 0.6  # seconds


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DraftAutosaver:
    """Idle -> Pending(timer) -> Idle.

    schedule() re-arms a single timer on the running event loop; only the
    last text scheduled inside one quiet period is written. flush() writes
    immediately. Every save replaces the stored record wholesale.
    """

    def __init__(
        self,
        storage: SafeStorage,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._quiet_period = quiet_period
        self._clock = clock
        self._timer: asyncio.TimerHandle | None = None
        self._latest: str | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, text: str) -> None:
        """Arm (or re-arm) the quiet-period timer for ``text``.

        Must be called from within a running event loop.
        """
        self._cancel()
        self._latest = text
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._quiet_period, self._on_timer, text)

    def flush(self, text: str | None = None) -> DraftRecord | None:
        """Cancel any pending timer and persist now.

        Saves ``text`` when given, else the last scheduled text. Returns the
        record written, or None when there was nothing to save.
        """
        self._cancel()
        value = text if text is not None else self._latest
        if value is None:
            return None
        return self._save(value)

    def load(self) -> DraftRecord | None:
        raw = self._storage.get(DRAFT_KEY)
        if not raw:
            return None
        try:
            return DraftRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError, RecursionError):
            logger.warning("Invalid draft data", exc_info=True)
            return None

    def discard(self) -> None:
        """Drop any pending save and delete the stored draft."""
        self._cancel()
        self._latest = None
        self._storage.remove(DRAFT_KEY)

    def _on_timer(self, text: str) -> None:
        self._timer = None
        self._save(text)

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _save(self, text: str) -> DraftRecord:
        record = DraftRecord(query=text, updated_at=self._clock())
        if not self._storage.set(DRAFT_KEY, record.model_dump_json()):
            logger.warning("Draft not saved; continuing without persistence")
        return record
