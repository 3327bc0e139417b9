"""Wiring of portal-sync services from Settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import make_url

from portal_sync.config import Settings, get_settings
from portal_sync.services.draft import DraftAutosaver
from portal_sync.services.encryption import CryptoEnvelope, CryptoProvider, SystemCryptoProvider
from portal_sync.services.history import HistoryStore
from portal_sync.services.portal import SearchPortal
from portal_sync.services.prompts import InteractionPort
from portal_sync.services.search import SearchService
from portal_sync.services.storage import PersistenceBackend, SafeStorage, SqliteBackend
from portal_sync.services.sync import SyncClient
from portal_sync.services.transfer import HistoryTransfer


@dataclass
class Services:
    storage: SafeStorage
    history: HistoryStore
    draft: DraftAutosaver
    envelope: CryptoEnvelope
    sync: SyncClient
    transfer: HistoryTransfer
    search: SearchService
    portal: SearchPortal


def get_backend(settings: Settings) -> PersistenceBackend:
    """SQLite backend at db_url. The database file's directory is created on demand."""
    url = make_url(settings.db_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return SqliteBackend.from_url(settings.db_url)


def build_services(
    settings: Settings | None = None,
    backend: PersistenceBackend | None = None,
    crypto: CryptoProvider | None = None,
    prompts: InteractionPort | None = None,
) -> Services:
    """Construct the full service graph. Any collaborator can be injected."""
    settings = settings or get_settings()
    backend = backend if backend is not None else get_backend(settings)
    crypto = crypto or SystemCryptoProvider(iterations=settings.kdf_iterations)

    storage = SafeStorage(backend, namespace=settings.storage_namespace)
    history = HistoryStore(storage, limit=settings.history_limit)
    draft = DraftAutosaver(storage, quiet_period=settings.draft_debounce_ms / 1000)
    envelope = CryptoEnvelope(crypto)
    sync = SyncClient(
        storage=storage,
        history=history,
        envelope=envelope,
        crypto=crypto,
        sync_url=settings.sync_url,
        prompts=prompts,
        timeout=settings.http_timeout_seconds,
    )
    search = SearchService(
        search_url=settings.search_url,
        fallback_url=settings.fallback_search_url,
        timeout=settings.http_timeout_seconds,
    )
    return Services(
        storage=storage,
        history=history,
        draft=draft,
        envelope=envelope,
        sync=sync,
        transfer=HistoryTransfer(history, envelope),
        search=search,
        portal=SearchPortal(search, history, draft),
    )
