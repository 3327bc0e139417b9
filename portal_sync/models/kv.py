"""KeyValue model: opaque string storage behind SqliteBackend."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class KeyValue(SQLModel, table=True):
    __tablename__ = "kv_store"

    key: str = Field(primary_key=True)  # e.g. "clever_portal:history"
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
