"""Error taxonomy for portal-sync.

Every failure a caller can see derives from PortalSyncError so a driver can
report "not enabled", "network/server problem", "wrong passphrase" and
"corrupt data" distinctly.
"""

from __future__ import annotations


class PortalSyncError(Exception):
    """Base class for all portal-sync errors."""


class ConfigurationError(PortalSyncError):
    """Sync is not enabled on this client (no sync token)."""


class NetworkError(PortalSyncError):
    """Transport failure talking to a remote endpoint."""


class SyncError(NetworkError):
    """The sync endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail or f"Sync request failed: {status_code}")


class AuthenticationError(PortalSyncError):
    """AEAD tag mismatch: wrong passphrase or tampered data (indistinguishable)."""


class FormatError(PortalSyncError):
    """Payload is malformed or has an unexpected shape."""


class PassphraseRequiredError(PortalSyncError):
    """Encrypted data was supplied without a passphrase to open it."""


class StorageError(PortalSyncError):
    """Local persistence failed. Always swallowed by SafeStorage."""
