"""Request/response port for asking the user things.

The core never blocks on a UI. It awaits an InteractionPort, and the driver
decides how to answer (terminal, dialog, test double).
"""

from __future__ import annotations

from typing import Protocol


class InteractionPort(Protocol):
    async def request_passphrase(self, message: str) -> str | None:
        """Return a passphrase, or None/"" if the user declined."""
        ...

    async def confirm(self, message: str) -> bool: ...


class NullPrompt:
    """Port for headless use: never supplies a passphrase, never confirms."""

    async def request_passphrase(self, message: str) -> str | None:
        return None

    async def confirm(self, message: str) -> bool:
        return False
