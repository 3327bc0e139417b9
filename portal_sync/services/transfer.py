"""History export/import as portable JSON documents.

Two shapes are produced and accepted:
  - a bare JSON array of history entries (plaintext export)
  - {"encrypted": true, "payload": <envelope>} (passphrase export)
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from portal_sync.exceptions import FormatError, PassphraseRequiredError
from portal_sync.models.history import HistoryEntry, HistoryList, dump_entries
from portal_sync.services.encryption import CryptoEnvelope
from portal_sync.services.history import HistoryStore

logger = logging.getLogger(__name__)

PLAINTEXT_FILENAME = "clever-history.json"
ENCRYPTED_FILENAME = "clever-history.encrypted.json"


def suggested_filename(encrypted: bool) -> str:
    return ENCRYPTED_FILENAME if encrypted else PLAINTEXT_FILENAME


class HistoryTransfer:
    def __init__(self, history: HistoryStore, envelope: CryptoEnvelope) -> None:
        self._history = history
        self._envelope = envelope

    async def export_document(self, passphrase: str | None = None) -> str | None:
        """Serialize history for download. Returns None when history is empty."""
        items = self._history.list()
        if not items:
            logger.info("No history to export")
            return None
        data = dump_entries(items)
        if passphrase:
            envelope = await self._envelope.encrypt(data, passphrase)
            return json.dumps({"encrypted": True, "payload": envelope})
        return json.dumps(data, indent=2, ensure_ascii=False)

    async def import_document(self, text: str, passphrase: str | None = None) -> int:
        """Merge an exported document ahead of current history.

        Follows the pull policy: imported entries first, no dedup, capped.
        Nothing is written unless the whole document decodes and validates.
        Returns the number of entries imported.
        """
        try:
            parsed: Any = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise FormatError("Import file is not valid JSON") from exc

        if isinstance(parsed, dict) and parsed.get("encrypted") and parsed.get("payload"):
            if not passphrase:
                raise PassphraseRequiredError("Passphrase required to import encrypted file")
            data = await self._envelope.decrypt(parsed["payload"], passphrase)
        elif isinstance(parsed, list):
            data = parsed
        else:
            raise FormatError("Invalid import format")

        try:
            entries: list[HistoryEntry] = HistoryList.validate_python(data)
        except ValidationError as exc:
            raise FormatError("Import file does not contain history entries") from exc

        self._history.prepend(entries)
        logger.info("Imported %d history entries", len(entries))
        return len(entries)
