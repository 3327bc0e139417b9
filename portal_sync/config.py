from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_KDF_ITERATIONS = 200_000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PORTAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    data_dir: Path = Path.home() / ".clever_portal"
    db_url: str = ""  # empty -> sqlite file inside data_dir
    storage_namespace: str = "clever_portal"

    # Remote endpoints (sync store + search proxy share one origin)
    sync_base_url: str = "http://localhost:8000"
    sync_path: str = "/api/sync"
    search_path: str = "/api/search"
    fallback_search_url: str = "https://www.google.com/search"
    http_timeout_seconds: float = 30.0

    history_limit: int = 50
    draft_debounce_ms: int = 600
    # PBKDF2-HMAC-SHA256 rounds; not stored in envelopes, so every device must agree
    kdf_iterations: int = MIN_KDF_ITERATIONS

    @model_validator(mode="after")
    def _check_limits(self) -> Settings:
        if self.kdf_iterations < MIN_KDF_ITERATIONS:
            raise ValueError(
                f"KDF_ITERATIONS must be at least {MIN_KDF_ITERATIONS}, "
                f"got {self.kdf_iterations}."
            )
        if self.history_limit < 1:
            raise ValueError(f"HISTORY_LIMIT must be > 0, got {self.history_limit}")
        if self.draft_debounce_ms < 0:
            raise ValueError(
                f"DRAFT_DEBOUNCE_MS must be >= 0, got {self.draft_debounce_ms}"
            )
        if not self.db_url:
            self.db_url = f"sqlite:///{self.data_dir / 'portal.db'}"
        return self

    @property
    def sync_url(self) -> str:
        return f"{self.sync_base_url.rstrip('/')}{self.sync_path}"

    @property
    def search_url(self) -> str:
        return f"{self.sync_base_url.rstrip('/')}{self.search_path}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
