"""Passphrase envelope encryption for portal-sync.

Envelope format: base64( salt(16B) || iv(12B) || AES-256-GCM ciphertext+tag ).
The key is re-derived from the passphrase and the embedded salt with
PBKDF2-HMAC-SHA256, so an envelope plus its passphrase is all a device needs.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

from cryptography.exceptions import InvalidTag

from portal_sync.config import MIN_KDF_ITERATIONS
from portal_sync.exceptions import AuthenticationError, FormatError, PassphraseRequiredError
from portal_sync.utils.crypto import (
    IV_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    aes_gcm_decrypt,
    aes_gcm_encrypt,
    b64decode,
    b64encode,
    derive_key_pbkdf2,
    random_bytes,
)


class CryptoProvider(Protocol):
    """Capability interface over randomness, key derivation and AEAD.

    aead_decrypt must raise AuthenticationError on a tag mismatch.
    """

    def random_bytes(self, n: int) -> bytes: ...

    async def derive_key(self, passphrase: str, salt: bytes) -> bytes: ...

    def aead_encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes: ...

    def aead_decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes: ...


class SystemCryptoProvider:
    """OS randomness + PBKDF2-HMAC-SHA256 + AES-256-GCM."""

    __slots__ = ("iterations",)

    def __init__(self, iterations: int = MIN_KDF_ITERATIONS) -> None:
        self.iterations = iterations

    def random_bytes(self, n: int) -> bytes:
        return random_bytes(n)

    async def derive_key(self, passphrase: str, salt: bytes) -> bytes:
        # PBKDF2 is CPU-bound; run it off the loop so other tasks keep going
        return await asyncio.to_thread(derive_key_pbkdf2, passphrase, salt, self.iterations)

    def aead_encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        return aes_gcm_encrypt(key, iv, plaintext)

    def aead_decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        try:
            return aes_gcm_decrypt(key, iv, ciphertext)
        except InvalidTag as exc:
            raise AuthenticationError(
                "Decryption failed: wrong passphrase or corrupted data"
            ) from exc


def canonical_json(payload: Any) -> bytes:
    """Compact UTF-8 JSON encoding used for everything that gets encrypted."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class CryptoEnvelope:
    """Build and open self-contained passphrase envelopes."""

    _MIN_LENGTH = SALT_LENGTH + IV_LENGTH + TAG_LENGTH

    __slots__ = ("_provider",)

    def __init__(self, provider: CryptoProvider) -> None:
        self._provider = provider

    async def encrypt(self, payload: Any, passphrase: str) -> str:
        """Encrypt a JSON-serializable payload under ``passphrase``.

        Salt and IV are drawn fresh on every call, so identical inputs never
        produce identical envelopes.
        """
        if not passphrase:
            raise PassphraseRequiredError("A passphrase is required to encrypt")
        salt = self._provider.random_bytes(SALT_LENGTH)
        iv = self._provider.random_bytes(IV_LENGTH)
        key = await self._provider.derive_key(passphrase, salt)
        ciphertext = self._provider.aead_encrypt(key, iv, canonical_json(payload))
        return b64encode(salt + iv + ciphertext)

    async def decrypt(self, envelope: str, passphrase: str) -> Any:
        """Open an envelope produced by encrypt().

        Raises FormatError for bad base64, truncated envelopes or plaintext
        that is not JSON. Raises AuthenticationError on tag mismatch.
        """
        if not passphrase:
            raise PassphraseRequiredError("A passphrase is required to decrypt")
        try:
            data = b64decode(envelope)
        except ValueError as exc:
            raise FormatError("Envelope is not valid base64") from exc
        if len(data) < self._MIN_LENGTH:
            raise FormatError(
                f"Envelope too short: {len(data)} bytes, need at least {self._MIN_LENGTH}"
            )
        salt = data[:SALT_LENGTH]
        iv = data[SALT_LENGTH : SALT_LENGTH + IV_LENGTH]
        ciphertext = data[SALT_LENGTH + IV_LENGTH :]

        key = await self._provider.derive_key(passphrase, salt)
        plaintext = self._provider.aead_decrypt(key, iv, ciphertext)
        try:
            return json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
            raise FormatError("Decrypted payload is not valid JSON") from exc
