#!/usr/bin/env python3
"""Command-line driver for portal-sync.

Wires the services to a terminal: passphrases come from getpass, confirmations
from input(). Useful for scripting sync between machines.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

from portal_sync.config import get_settings
from portal_sync.dependencies import Services, build_services
from portal_sync.exceptions import (
    AuthenticationError,
    ConfigurationError,
    FormatError,
    NetworkError,
    PassphraseRequiredError,
    PortalSyncError,
)
from portal_sync.services.transfer import suggested_filename

logger = logging.getLogger(__name__)


class TerminalPrompt:
    """InteractionPort backed by the controlling terminal."""

    async def request_passphrase(self, message: str) -> str | None:
        value = await asyncio.to_thread(getpass.getpass, f"{message} ")
        return value or None

    async def confirm(self, message: str) -> bool:
        answer = await asyncio.to_thread(input, f"{message} [y/N] ")
        return answer.strip().lower() in ("y", "yes")


def _ask_passphrase(enabled: bool) -> str | None:
    if not enabled:
        return None
    return getpass.getpass("Passphrase: ") or None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portal-sync",
        description="Local search history with optional encrypted sync.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p_search = sub.add_parser("search", help="Resolve a query and record it in history")
    p_search.add_argument("query")

    p_history = sub.add_parser("history", help="List or edit recent searches")
    group = p_history.add_mutually_exclusive_group()
    group.add_argument("--remove", type=int, metavar="INDEX", help="Remove entry at INDEX")
    group.add_argument("--clear", action="store_true", help="Delete all history")

    p_draft = sub.add_parser("draft", help="Show or save the query draft")
    p_draft.add_argument("--save", metavar="TEXT", help="Save TEXT as the draft now")

    p_sync = sub.add_parser("sync", help="Sync history with the remote store")
    sync_sub = p_sync.add_subparsers(dest="action", required=True)
    p_enable = sync_sub.add_parser("enable", help="Create or show the sync token")
    p_enable.add_argument("--regenerate", action="store_true", help="Replace the existing token")
    sync_sub.add_parser("disable", help="Remove the local sync token")
    for name in ("push", "pull"):
        p = sync_sub.add_parser(name, help=f"Sync {name}")
        p.add_argument("--encrypt", action="store_true", help="Prompt for a passphrase")

    p_export = sub.add_parser("export", help="Write history to a JSON file")
    p_export.add_argument("path", nargs="?", default=None)
    p_export.add_argument("--encrypt", action="store_true", help="Encrypt with a passphrase")

    p_import = sub.add_parser("import", help="Merge history from an exported file")
    p_import.add_argument("path")
    return parser


async def _run(args: argparse.Namespace, services: Services) -> int:
    if args.command == "search":
        entry = await services.portal.submit(args.query)
        print(entry.url)
    elif args.command == "history":
        if args.clear:
            services.history.clear()
        elif args.remove is not None:
            services.history.remove(args.remove)
        for idx, item in enumerate(services.history.list()):
            print(f"{idx:>2}  {item.timestamp.isoformat()}  {item.query}  {item.url}")
    elif args.command == "draft":
        if args.save is not None:
            services.draft.flush(args.save)
        record = services.draft.load()
        print(record.query if record else "")
    elif args.command == "sync":
        return await _run_sync(args, services)
    elif args.command == "export":
        passphrase = _ask_passphrase(args.encrypt)
        document = await services.transfer.export_document(passphrase)
        if document is None:
            print("No history to export")
            return 0
        path = Path(args.path or suggested_filename(bool(passphrase)))
        path.write_text(document, encoding="utf-8")
        print(f"Exported to {path}")
    elif args.command == "import":
        text = Path(args.path).read_text(encoding="utf-8")
        try:
            count = await services.transfer.import_document(text)
        except PassphraseRequiredError:
            passphrase = _ask_passphrase(True)
            count = await services.transfer.import_document(text, passphrase)
        print(f"Imported {count} entries")
    return 0


async def _run_sync(args: argparse.Namespace, services: Services) -> int:
    sync = services.sync
    if args.action == "enable":
        result = await sync.enable_sync(regenerate=args.regenerate)
        label = "New sync token" if result.created else "Existing sync token"
        print(f"{label} (keep it secret): {result.token}")
    elif args.action == "disable":
        if await sync.disable_sync():
            print("Sync token removed locally. Server data was not deleted.")
        else:
            print("Sync left unchanged.")
    elif args.action == "push":
        sent = await sync.push(_ask_passphrase(args.encrypt))
        print("Sync push successful." if sent else "No history to sync.")
    elif args.action == "pull":
        result = await sync.pull(_ask_passphrase(args.encrypt))
        print(f"Sync pull complete: {result.received} received, {result.total} in history.")
    return 0


def describe_error(exc: PortalSyncError) -> str:
    """One line telling apart the failure classes a user can act on."""
    if isinstance(exc, ConfigurationError):
        return f"Sync not enabled: {exc}"
    if isinstance(exc, AuthenticationError):
        return "Wrong passphrase or corrupted data."
    if isinstance(exc, PassphraseRequiredError):
        return f"Passphrase required: {exc}"
    if isinstance(exc, FormatError):
        return f"Corrupt data: {exc}"
    if isinstance(exc, NetworkError):
        return f"Network/server problem: {exc}"
    return str(exc)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    services = build_services(get_settings(), prompts=TerminalPrompt())
    try:
        return asyncio.run(_run(args, services))
    except PortalSyncError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {describe_error(exc)}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
