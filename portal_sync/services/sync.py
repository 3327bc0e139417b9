"""Push/pull of search history against the remote sync store.

The wire payload is always an opaque base64 string, encrypted or not, sent
with the sync token as a bearer credential. Pull merges remote-first without
deduplication; see HistoryStore.prepend().
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from portal_sync.exceptions import (
    ConfigurationError,
    FormatError,
    NetworkError,
    PassphraseRequiredError,
    SyncError,
)
from portal_sync.models.history import HistoryEntry, HistoryList, dump_entries, entries_to_json
from portal_sync.services.encryption import CryptoEnvelope, CryptoProvider
from portal_sync.services.history import HistoryStore
from portal_sync.services.prompts import InteractionPort, NullPrompt
from portal_sync.services.storage import SafeStorage
from portal_sync.utils.crypto import b64decode, b64encode

logger = logging.getLogger(__name__)

SYNC_TOKEN_KEY = "sync_token"


@dataclass(frozen=True, slots=True)
class SyncTokenResult:
    token: str
    created: bool


@dataclass(frozen=True, slots=True)
class SyncPullResult:
    received: int = 0
    total: int = 0


def generate_token(crypto: CryptoProvider) -> str:
    """128 random bits formatted as a version-4 UUID string."""
    return str(uuid.UUID(bytes=crypto.random_bytes(16), version=4))


def _decode_plaintext(payload: str) -> Any:
    """base64 -> UTF-8 -> JSON. Raises ValueError on any step."""
    return json.loads(b64decode(payload).decode("utf-8"))


class SyncClient:
    """Token-gated push/pull of a HistoryStore.

    Overlapping push/pull calls are not serialized; whichever finishes last
    decides what ends up in local storage.
    """

    def __init__(
        self,
        storage: SafeStorage,
        history: HistoryStore,
        envelope: CryptoEnvelope,
        crypto: CryptoProvider,
        sync_url: str,
        prompts: InteractionPort | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._storage = storage
        self._history = history
        self._envelope = envelope
        self._crypto = crypto
        self._sync_url = sync_url
        self._prompts = prompts or NullPrompt()
        self._timeout = timeout

    # ── token lifecycle ──────────────────────────────────────────

    @property
    def token(self) -> str | None:
        return self._storage.get(SYNC_TOKEN_KEY) or None

    @property
    def enabled(self) -> bool:
        return self.token is not None

    async def enable_sync(self, regenerate: bool = False) -> SyncTokenResult:
        """Create the sync token, or surface the existing one.

        An existing token is only replaced when ``regenerate`` is set and the
        user confirms. Devices linked with the old token are not notified.
        """
        existing = self.token
        if existing:
            if not regenerate:
                return SyncTokenResult(token=existing, created=False)
            confirmed = await self._prompts.confirm(
                "Generate a new sync token and overwrite the local one? "
                "Other devices will need the new token to keep syncing."
            )
            if not confirmed:
                return SyncTokenResult(token=existing, created=False)

        token = generate_token(self._crypto)
        self._storage.set(SYNC_TOKEN_KEY, token)
        logger.info("Sync token %s", "regenerated" if existing else "created")
        return SyncTokenResult(token=token, created=True)

    async def disable_sync(self) -> bool:
        """Remove the local token after confirmation. Remote data is kept."""
        if not self.enabled:
            return False
        confirmed = await self._prompts.confirm(
            "Disable sync locally? This removes the local sync token "
            "(it does not delete server data)."
        )
        if not confirmed:
            return False
        self._storage.remove(SYNC_TOKEN_KEY)
        logger.info("Sync token removed locally")
        return True

    def _require_token(self) -> str:
        token = self.token
        if not token:
            raise ConfigurationError("Sync token not found. Enable sync first.")
        return token

    # ── transport ────────────────────────────────────────────────

    async def _get(self, token: str) -> httpx.Response:
        """Make an authenticated GET request to the sync endpoint."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.get(
                    self._sync_url,
                    headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Sync pull failed: {exc}") from exc

    async def _post(self, token: str, payload: str) -> httpx.Response:
        """Make an authenticated POST request to the sync endpoint."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.post(
                    self._sync_url,
                    json={"payload": payload},
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Sync push failed: {exc}") from exc

    # ── push / pull ──────────────────────────────────────────────

    async def push(self, passphrase: str | None = None) -> bool:
        """Upload local history. Returns False (no request) when it is empty."""
        token = self._require_token()
        items = self._history.list()
        if not items:
            logger.info("No history to sync")
            return False

        if passphrase:
            payload = await self._envelope.encrypt(dump_entries(items), passphrase)
        else:
            payload = b64encode(entries_to_json(items).encode("utf-8"))

        resp = await self._post(token, payload)
        if not resp.is_success:
            raise SyncError(resp.status_code, resp.text)
        logger.info("Sync push successful (%d entries, encrypted=%s)", len(items), bool(passphrase))
        return True

    async def pull(self, passphrase: str | None = None) -> SyncPullResult:
        """Fetch remote history and merge it ahead of local history.

        Local history is only written after the remote payload has been fully
        decoded and validated.
        """
        token = self._require_token()
        resp = await self._get(token)
        if not resp.is_success:
            raise SyncError(resp.status_code, resp.text)
        try:
            body = resp.json()
        except (ValueError, RecursionError) as exc:
            raise FormatError("Sync endpoint returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise FormatError("Sync endpoint returned an unexpected body")

        payload = body.get("payload")
        if not payload:
            logger.info("No remote data found")
            return SyncPullResult(received=0, total=len(self._history))
        if not isinstance(payload, str):
            raise FormatError("Remote payload is not a string")

        data = await self._decode(payload, passphrase)
        try:
            remote: list[HistoryEntry] = HistoryList.validate_python(data)
        except ValidationError as exc:
            raise FormatError("Invalid remote payload format") from exc

        merged = self._history.prepend(remote)
        logger.info("Sync pull complete: %d remote entries, %d total", len(remote), len(merged))
        return SyncPullResult(received=len(remote), total=len(merged))

    async def _decode(self, payload: str, passphrase: str | None) -> Any:
        if passphrase:
            return await self._envelope.decrypt(payload, passphrase)
        try:
            return _decode_plaintext(payload)
        except (ValueError, RecursionError):
            logger.info("Remote payload is not plaintext; asking for a passphrase")
        # Not plaintext: assume the remote copy is encrypted
        maybe = await self._prompts.request_passphrase(
            "Remote data may be encrypted. Enter your passphrase to decrypt:"
        )
        if not maybe:
            raise PassphraseRequiredError("Cannot decrypt remote data without passphrase.")
        return await self._envelope.decrypt(payload, maybe)
