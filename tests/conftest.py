from __future__ import annotations

import pytest

from portal_sync.services.encryption import CryptoEnvelope, SystemCryptoProvider
from portal_sync.services.history import HistoryStore
from portal_sync.services.storage import MemoryBackend, SafeStorage
from portal_sync.services.sync import SyncClient

SYNC_URL = "http://sync.test/api/sync"

# Far below the production floor; only the dedicated test uses the real default.
TEST_KDF_ITERATIONS = 1_000


class ScriptedPrompt:
    """InteractionPort double that records what it was asked."""

    def __init__(self, passphrase: str | None = None, confirm: bool = False) -> None:
        self.passphrase = passphrase
        self.confirm_answer = confirm
        self.passphrase_requests: list[str] = []
        self.confirm_requests: list[str] = []

    async def request_passphrase(self, message: str) -> str | None:
        self.passphrase_requests.append(message)
        return self.passphrase

    async def confirm(self, message: str) -> bool:
        self.confirm_requests.append(message)
        return self.confirm_answer


class CountingBackend(MemoryBackend):
    """MemoryBackend that records every write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[str, str]] = []

    def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        super().set(key, value)


class FailingBackend:
    """Backend whose every operation blows up."""

    def get(self, key: str) -> str | None:
        raise OSError("disk on fire")

    def set(self, key: str, value: str) -> None:
        raise OSError("disk on fire")

    def remove(self, key: str) -> None:
        raise OSError("disk on fire")


# ── Storage fixtures ──────────────────────────────────────────────────


@pytest.fixture(name="backend")
def backend_fixture() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture(name="storage")
def storage_fixture(backend: MemoryBackend) -> SafeStorage:
    return SafeStorage(backend, namespace="clever_portal")


@pytest.fixture(name="history")
def history_fixture(storage: SafeStorage) -> HistoryStore:
    return HistoryStore(storage, limit=50)


# ── Crypto fixtures ───────────────────────────────────────────────────


@pytest.fixture(name="crypto")
def crypto_fixture() -> SystemCryptoProvider:
    return SystemCryptoProvider(iterations=TEST_KDF_ITERATIONS)


@pytest.fixture(name="envelope")
def envelope_fixture(crypto: SystemCryptoProvider) -> CryptoEnvelope:
    return CryptoEnvelope(crypto)


# ── Sync fixtures ─────────────────────────────────────────────────────


@pytest.fixture(name="prompts")
def prompts_fixture() -> ScriptedPrompt:
    return ScriptedPrompt()


@pytest.fixture(name="sync_client")
def sync_client_fixture(
    storage: SafeStorage,
    history: HistoryStore,
    envelope: CryptoEnvelope,
    crypto: SystemCryptoProvider,
    prompts: ScriptedPrompt,
) -> SyncClient:
    return SyncClient(
        storage=storage,
        history=history,
        envelope=envelope,
        crypto=crypto,
        sync_url=SYNC_URL,
        prompts=prompts,
        timeout=5.0,
    )
