"""Search submission: resolve, record in history, drop the draft."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from portal_sync.models.history import HistoryEntry
from portal_sync.services.draft import DraftAutosaver
from portal_sync.services.history import HistoryStore
from portal_sync.services.search import SearchService

logger = logging.getLogger(__name__)


class SearchPortal:
    def __init__(
        self,
        search: SearchService,
        history: HistoryStore,
        draft: DraftAutosaver,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._search = search
        self._history = history
        self._draft = draft
        self._clock = clock

    async def submit(self, query: str) -> HistoryEntry:
        """Resolve ``query`` and record it.

        A search failure propagates before history or draft are touched.
        """
        url = await self._search.resolve(query)
        entry = HistoryEntry(query=query, url=url, timestamp=self._clock())
        self._history.push(entry)
        self._draft.discard()
        logger.info("Search submitted: %s", url)
        return entry
