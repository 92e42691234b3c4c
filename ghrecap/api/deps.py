"""Dependency injection — session, GitHub client, and service singletons."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ghrecap.core.config import Settings
from ghrecap.core.database import create_session_factory
from ghrecap.dao.snapshot_dao import SnapshotDAO
from ghrecap.engines.activity_collector.github_client import GitHubClient
from ghrecap.engines.activity_collector.runner import ActivityRunner
from ghrecap.engines.summarizer.generator import SummaryGenerator
from ghrecap.services.snapshot_service import SnapshotService

# ---------------------------------------------------------------------------
# DAO / service singletons
# ---------------------------------------------------------------------------
_snapshot_dao = SnapshotDAO()
_snapshot_service = SnapshotService(_snapshot_dao)

# ---------------------------------------------------------------------------
# Process-scoped collaborators (initialised by app lifespan)
# ---------------------------------------------------------------------------
_settings: Settings | None = None
_github_client: GitHubClient | None = None
_activity_runner: ActivityRunner | None = None
_summary_generator: SummaryGenerator | None = None
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_settings(settings: Settings | None = None) -> Settings:
    """Read settings from the environment once. Called at startup."""
    global _settings  # noqa: PLW0603
    _settings = settings or Settings.from_env()
    return _settings


def init_engines(settings: Settings) -> None:
    """Build the GitHub client, pipeline runner and summary generator."""
    global _github_client, _activity_runner, _summary_generator  # noqa: PLW0603
    _github_client = GitHubClient(settings.github_token)
    _activity_runner = ActivityRunner(_github_client, settings)
    _summary_generator = SummaryGenerator(settings.summary_model)


async def close_engines() -> None:
    """Close the GitHub client's connection pool."""
    global _github_client, _activity_runner, _summary_generator  # noqa: PLW0603
    if _github_client is not None:
        await _github_client.close()
    _github_client = None
    _activity_runner = None
    _summary_generator = None


def init_session_factory(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine, _session_factory = create_session_factory(
        database_url or get_settings().database_url
    )
    return _session_factory


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback."""
    if _session_factory is None:
        raise RuntimeError("call init_session_factory() before handling requests")
    async with _session_factory() as session:
        async with session.begin():
            yield session


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_settings() -> Settings:
    return _settings or init_settings()


def get_activity_runner() -> ActivityRunner:
    if _activity_runner is None:
        raise RuntimeError("call init_engines() before handling requests")
    return _activity_runner


def get_summary_generator() -> SummaryGenerator:
    if _summary_generator is None:
        raise RuntimeError("call init_engines() before handling requests")
    return _summary_generator


def get_snapshot_service() -> SnapshotService:
    return _snapshot_service
