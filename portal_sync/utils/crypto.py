"""Low-level cryptographic primitives for portal-sync.

Pure functions with no domain knowledge; reusable building blocks.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

KEY_LENGTH = 32  # AES-256
SALT_LENGTH = 16
IV_LENGTH = 12
TAG_LENGTH = 16


def random_bytes(n: int) -> bytes:
    """Return n bytes from the OS CSPRNG."""
    return os.urandom(n)


def derive_key_pbkdf2(passphrase: str, salt: bytes, iterations: int) -> bytes:
    """Derive a 256-bit key from a passphrase using PBKDF2-HMAC-SHA256.

    The iteration count is not recorded anywhere in the output; encrypt and
    decrypt paths must agree on it out of band.
    """
    kdf = PBKDF2HMAC(
        algorithm=SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def aes_gcm_encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """Encrypt plaintext with AES-256-GCM under an explicit IV.

    Returns ciphertext || tag (the IV is not prepended).
    """
    return AESGCM(key).encrypt(iv, plaintext, None)


def aes_gcm_decrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    """Decrypt ciphertext || tag produced by aes_gcm_encrypt.

    Raises cryptography.exceptions.InvalidTag on tampered data or wrong key.
    """
    return AESGCM(key).decrypt(iv, data, None)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """Strict standard-alphabet base64 decode.

    Raises ValueError on anything that is not valid base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise ValueError(f"Invalid base64 data: {exc}") from exc
