"""Process-wide configuration, read once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

_DEFAULT_DATABASE_URL = "postgresql+asyncpg://localhost/ghrecap"
_DEFAULT_SUMMARY_MODEL = "anthropic/claude-3-opus-20240229"
_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_list(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    """Explicit configuration handed to each component at construction.

    Environment variables:
        GITHUB_TOKEN                  — bearer token for api.github.com
        GHRECAP_DATABASE_URL          — SQLAlchemy async URL for snapshots
        GHRECAP_BATCH_SIZE            — repositories fetched concurrently (3)
        GHRECAP_BATCH_DELAY           — seconds slept between batches (1.0)
        GHRECAP_ISOLATE_REPO_FAILURES — keep going when one repo fails (true)
        GHRECAP_SUMMARY_MODEL         — litellm model id for summaries
        GHRECAP_CORS_ORIGINS          — comma-separated allowed origins
        GHRECAP_APP_URL               — public base URL used in share links
    """

    github_token: str | None = None
    database_url: str = _DEFAULT_DATABASE_URL
    batch_size: int = 3
    batch_delay: float = 1.0
    isolate_repo_failures: bool = True
    summary_model: str = _DEFAULT_SUMMARY_MODEL
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    app_url: str = "http://localhost:3000"

    @classmethod
    def from_env(cls) -> Settings:
        batch_size = int(os.environ.get("GHRECAP_BATCH_SIZE", "3"))
        if batch_size < 1:
            raise ValueError(f"GHRECAP_BATCH_SIZE must be >= 1, got {batch_size}")
        return cls(
            github_token=os.environ.get("GITHUB_TOKEN") or None,
            database_url=os.environ.get("GHRECAP_DATABASE_URL", _DEFAULT_DATABASE_URL),
            batch_size=batch_size,
            batch_delay=float(os.environ.get("GHRECAP_BATCH_DELAY", "1.0")),
            isolate_repo_failures=_env_bool("GHRECAP_ISOLATE_REPO_FAILURES", True),
            summary_model=os.environ.get("GHRECAP_SUMMARY_MODEL", _DEFAULT_SUMMARY_MODEL),
            cors_origins=_env_list("GHRECAP_CORS_ORIGINS", "http://localhost:3000"),
            app_url=os.environ.get("GHRECAP_APP_URL", "http://localhost:3000").rstrip("/"),
        )
