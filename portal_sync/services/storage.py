"""Local persistence for drafts, history and the sync token.

Backends store opaque strings by key and may raise. Callers never talk to a
backend directly: SafeStorage namespaces the keys and turns every failure into
a logged warning plus a default value, so a broken disk degrades the client
instead of halting it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from portal_sync.db import create_db_and_tables, make_engine
from portal_sync.exceptions import StorageError
from portal_sync.models.kv import KeyValue

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistenceBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryBackend:
    """Dict-backed backend for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteBackend:
    """Key/value rows in a local SQLite file via SQLModel."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        create_db_and_tables(engine)

    @classmethod
    def from_url(cls, db_url: str) -> SqliteBackend:
        return cls(make_engine(db_url))

    def get(self, key: str) -> str | None:
        try:
            with Session(self._engine) as session:
                row = session.get(KeyValue, key)
                return row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key!r}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        try:
            with Session(self._engine) as session:
                row = session.get(KeyValue, key)
                if row is None:
                    row = KeyValue(key=key, value=value)
                else:
                    row.value = value
                    row.updated_at = datetime.now(timezone.utc)
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to write {key!r}: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            with Session(self._engine) as session:
                row = session.get(KeyValue, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to remove {key!r}: {exc}") from exc


class SafeStorage:
    """Namespaced, fail-soft view over a PersistenceBackend."""

    def __init__(self, backend: PersistenceBackend, namespace: str = "clever_portal") -> None:
        self._backend = backend
        self._namespace = namespace

    def key(self, name: str) -> str:
        return f"{self._namespace}:{name}"

    def get(self, name: str) -> str | None:
        try:
            return self._backend.get(self.key(name))
        except Exception:
            logger.warning("Storage read failed for %s", self.key(name), exc_info=True)
            return None

    def set(self, name: str, value: str) -> bool:
        try:
            self._backend.set(self.key(name), value)
            return True
        except Exception:
            logger.warning("Storage write failed for %s", self.key(name), exc_info=True)
            return False

    def remove(self, name: str) -> bool:
        try:
            self._backend.remove(self.key(name))
            return True
        except Exception:
            logger.warning("Storage remove failed for %s", self.key(name), exc_info=True)
            return False
