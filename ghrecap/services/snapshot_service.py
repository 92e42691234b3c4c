"""SnapshotService — export and read back shareable activity snapshots."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ghrecap.core.timeframe import snapshot_key, timeframe_phrase
from ghrecap.dao.snapshot_dao import SnapshotDAO
from ghrecap.engines.activity_collector.models import CommitBuckets, EnrichedCommit, IssueOrPR
from ghrecap.engines.timeline import TimelineView
from ghrecap.models.activity_snapshot import ActivitySnapshot
from ghrecap.services import NotFoundError, ServiceError, ValidationError

log = structlog.get_logger("ghrecap.service")


class PersistenceError(ServiceError):
    """The snapshot store rejected a read or write."""


def _check_items(
    commits: list[dict[str, Any]] | None,
    issues: list[dict[str, Any]] | None,
    pull_requests: list[dict[str, Any]] | None,
) -> None:
    """Reject items the timeline could not read back later."""
    try:
        for commit in commits or []:
            EnrichedCommit.from_wire(commit)
        for item in [*(issues or []), *(pull_requests or [])]:
            IssueOrPR.from_wire(item)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(f"invalid activity payload: {exc!r}") from exc


class SnapshotService:
    """Stateless service over :class:`SnapshotDAO`."""

    def __init__(self, snapshot_dao: SnapshotDAO) -> None:
        self._snapshot_dao = snapshot_dao

    async def export(
        self,
        session: AsyncSession,
        *,
        username: str,
        start_time: datetime,
        end_time: datetime,
        summary: str = "",
        commits: list[dict[str, Any]] | None = None,
        issues: list[dict[str, Any]] | None = None,
        pull_requests: list[dict[str, Any]] | None = None,
        snapshot_id: str | None = None,
    ) -> ActivitySnapshot:
        """Upsert the snapshot for ``username`` and the window.

        The key defaults to ``<username>-<start>-to-<end>``, so exporting the
        same actor and window twice overwrites the first export.
        """
        if not username:
            raise ValidationError("username is required")
        if end_time < start_time:
            raise ValidationError("end_time must not be before start_time")
        _check_items(commits, issues, pull_requests)
        key = snapshot_id or snapshot_key(username, start_time, end_time)
        try:
            snapshot = await self._snapshot_dao.upsert(
                session,
                id=key,
                username=username,
                start_time=start_time,
                end_time=end_time,
                summary=summary or "",
                commits=commits or [],
                issues=issues or [],
                pull_requests=pull_requests or [],
            )
        except SQLAlchemyError as exc:
            log.error("snapshot.export_failed", snapshot_id=key, error=str(exc))
            raise PersistenceError(f"failed to save activity: {exc}") from exc
        log.info("snapshot.exported", snapshot_id=key, commits=len(commits or []))
        return snapshot

    async def get(self, session: AsyncSession, snapshot_id: str) -> ActivitySnapshot:
        """Return the snapshot stored under *snapshot_id*.

        Raises :class:`NotFoundError` if there is none.
        """
        snapshot = await self._snapshot_dao.get_by_id(session, snapshot_id)
        if snapshot is None:
            raise NotFoundError("activity not found")
        return snapshot

    async def list_recent(
        self,
        session: AsyncSession,
        username: str | None = None,
        limit: int = 10,
    ) -> list[ActivitySnapshot]:
        return await self._snapshot_dao.list_recent(session, username, limit)

    # ── views over a stored snapshot ──────────────────────────────────────

    @staticmethod
    def timeline(snapshot: ActivitySnapshot) -> TimelineView:
        """Rebuild the timeline view from a snapshot's stored lists."""
        commits = [EnrichedCommit.from_wire(c) for c in snapshot.commits or []]
        stored = [*(snapshot.issues or []), *(snapshot.pull_requests or [])]
        items = [IssueOrPR.from_wire(i) for i in stored]
        return TimelineView.from_buckets(CommitBuckets(default_branch=commits), items)

    @staticmethod
    def card(snapshot: ActivitySnapshot, app_url: str) -> dict[str, Any]:
        """Share-card metadata: title, description, counts and image params."""
        stats = SnapshotService.timeline(snapshot).stats()
        phrase = timeframe_phrase(snapshot.start_time, snapshot.end_time)
        return {
            "id": snapshot.id,
            "title": f"What did {snapshot.username} do?",
            "description": f"What did {snapshot.username} get done {phrase}?",
            "timeframe": phrase,
            "url": f"{app_url}/share/{snapshot.id}",
            "username": snapshot.username,
            "commits": stats.commits,
            "issues": stats.issues,
            "pull_requests": stats.pull_requests,
            "repositories": stats.repositories,
            "start_date": snapshot.start_time.date().isoformat(),
            "end_date": snapshot.end_time.date().isoformat(),
        }
