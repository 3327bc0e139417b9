"""Tests for the passphrase envelope (portal_sync/services/encryption.py).

Covers round-trips, salt/IV freshness, the fixed byte layout, and the
AuthenticationError / FormatError split on failure.
"""

from __future__ import annotations

import base64
import itertools

import pytest

from portal_sync.exceptions import AuthenticationError, FormatError, PassphraseRequiredError
from portal_sync.services.encryption import CryptoEnvelope, SystemCryptoProvider, canonical_json

PAYLOAD = [
    {"query": "python asyncio", "url": "https://docs.python.org/3/library/asyncio.html",
     "timestamp": "2024-05-01T10:00:00Z"},
    {"query": "café ☕", "url": "https://example.com/?q=caf%C3%A9", "timestamp": "2024-05-01T09:00:00Z"},
]


class CountingRandomProvider(SystemCryptoProvider):
    """Deterministic randomness: bytes 0,1,2,... so offsets are checkable."""

    def __init__(self) -> None:
        super().__init__(iterations=1_000)
        self._counter = itertools.count()

    def random_bytes(self, n: int) -> bytes:
        return bytes(next(self._counter) % 256 for _ in range(n))


# ── round-trips ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_roundtrip(envelope: CryptoEnvelope) -> None:
    token = await envelope.encrypt(PAYLOAD, "correct horse")
    assert await envelope.decrypt(token, "correct horse") == PAYLOAD


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [[], {"a": [1, 2, {"b": None}]}, "text", 42])
async def test_roundtrip_any_json(envelope: CryptoEnvelope, payload) -> None:
    token = await envelope.encrypt(payload, "p")
    assert await envelope.decrypt(token, "p") == payload


@pytest.mark.asyncio
async def test_roundtrip_with_default_iterations() -> None:
    """Production KDF settings (200k rounds) round-trip."""
    provider = SystemCryptoProvider()
    assert provider.iterations == 200_000
    env = CryptoEnvelope(provider)
    token = await env.encrypt(PAYLOAD, "pw")
    assert await env.decrypt(token, "pw") == PAYLOAD


# ── freshness & layout ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_identical_inputs_give_different_envelopes(envelope: CryptoEnvelope) -> None:
    t1 = await envelope.encrypt(PAYLOAD, "pw")
    t2 = await envelope.encrypt(PAYLOAD, "pw")
    assert t1 != t2
    raw1, raw2 = base64.b64decode(t1), base64.b64decode(t2)
    assert raw1[:16] != raw2[:16]  # salt
    assert raw1[16:28] != raw2[16:28]  # iv


@pytest.mark.asyncio
async def test_layout_salt_iv_ciphertext() -> None:
    env = CryptoEnvelope(CountingRandomProvider())
    token = await env.encrypt(PAYLOAD, "pw")
    raw = base64.b64decode(token)
    assert raw[:16] == bytes(range(16))
    assert raw[16:28] == bytes(range(16, 28))
    assert len(raw) == 16 + 12 + len(canonical_json(PAYLOAD)) + 16


# ── failures ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_wrong_passphrase(envelope: CryptoEnvelope) -> None:
    token = await envelope.encrypt(PAYLOAD, "right")
    with pytest.raises(AuthenticationError):
        await envelope.decrypt(token, "wrong")


@pytest.mark.asyncio
@pytest.mark.parametrize("offset", [0, 15, 16, 27, 28, -1])
async def test_tampered_byte(envelope: CryptoEnvelope, offset: int) -> None:
    """Flipping a byte in salt, IV, ciphertext or tag fails authentication."""
    token = await envelope.encrypt(PAYLOAD, "pw")
    raw = bytearray(base64.b64decode(token))
    raw[offset] ^= 0x80
    with pytest.raises(AuthenticationError):
        await envelope.decrypt(base64.b64encode(bytes(raw)).decode(), "pw")


@pytest.mark.asyncio
async def test_different_iteration_count_cannot_decrypt() -> None:
    token = await CryptoEnvelope(SystemCryptoProvider(iterations=1_000)).encrypt(PAYLOAD, "pw")
    with pytest.raises(AuthenticationError):
        await CryptoEnvelope(SystemCryptoProvider(iterations=1_001)).decrypt(token, "pw")


@pytest.mark.asyncio
async def test_invalid_base64(envelope: CryptoEnvelope) -> None:
    with pytest.raises(FormatError):
        await envelope.decrypt("%%% not base64 %%%", "pw")


@pytest.mark.asyncio
async def test_truncated_envelope(envelope: CryptoEnvelope) -> None:
    short = base64.b64encode(b"\x00" * 40).decode()
    with pytest.raises(FormatError):
        await envelope.decrypt(short, "pw")


@pytest.mark.asyncio
async def test_non_json_plaintext(envelope: CryptoEnvelope, crypto: SystemCryptoProvider) -> None:
    """A valid envelope around non-JSON bytes is a FormatError, not an auth error."""
    salt, iv = b"s" * 16, b"i" * 12
    key = await crypto.derive_key("pw", salt)
    ciphertext = crypto.aead_encrypt(key, iv, b"\xff\xfe definitely not json")
    token = base64.b64encode(salt + iv + ciphertext).decode()
    with pytest.raises(FormatError):
        await envelope.decrypt(token, "pw")


@pytest.mark.asyncio
async def test_empty_passphrase_rejected(envelope: CryptoEnvelope) -> None:
    with pytest.raises(PassphraseRequiredError):
        await envelope.encrypt(PAYLOAD, "")
    with pytest.raises(PassphraseRequiredError):
        await envelope.decrypt("AAAA", "")
