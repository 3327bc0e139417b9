"""Tests for the search submission flow (history + draft lifecycle)."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from portal_sync.exceptions import NetworkError
from portal_sync.services.draft import DraftAutosaver
from portal_sync.services.history import HistoryStore
from portal_sync.services.portal import SearchPortal
from portal_sync.services.search import SearchService
from portal_sync.services.storage import SafeStorage

NOW = datetime(2024, 2, 2, 8, 30, tzinfo=timezone.utc)


@pytest.fixture(name="draft")
def draft_fixture(storage: SafeStorage) -> DraftAutosaver:
    return DraftAutosaver(storage, quiet_period=0.01)


@pytest.fixture(name="search")
def search_fixture() -> SearchService:
    service = SearchService("http://portal.test/api/search")
    service.resolve = AsyncMock(return_value="https://docs.python.org/")
    return service


@pytest.fixture(name="portal")
def portal_fixture(search: SearchService, history: HistoryStore, draft: DraftAutosaver) -> SearchPortal:
    return SearchPortal(search, history, draft, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_submit_records_history_and_drops_draft(portal: SearchPortal, history: HistoryStore, draft: DraftAutosaver) -> None:
    draft.flush("python do")
    entry = await portal.submit("python docs")

    assert entry.url == "https://docs.python.org/"
    assert entry.timestamp == NOW
    assert history.list() == (entry,)
    assert draft.load() is None


@pytest.mark.asyncio
async def test_resubmit_moves_to_front(portal: SearchPortal, history: HistoryStore) -> None:
    await portal.submit("Python Docs")
    await portal.submit("other")
    await portal.submit("python docs ")
    assert [e.query for e in history.list()] == ["python docs ", "other"]


@pytest.mark.asyncio
async def test_search_failure_leaves_state(portal: SearchPortal, search: SearchService, history: HistoryStore, draft: DraftAutosaver) -> None:
    draft.flush("unsent query")
    search.resolve.side_effect = NetworkError("Search error: 500")
    with pytest.raises(NetworkError):
        await portal.submit("unsent query")
    assert history.list() == ()
    assert draft.load().query == "unsent query"
