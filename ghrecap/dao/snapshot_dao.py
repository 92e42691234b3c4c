"""SnapshotDAO — activity_snapshots table operations."""

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ghrecap.dao.base import BaseDAO
from ghrecap.models.activity_snapshot import ActivitySnapshot

# columns rewritten when an export hits an existing key
_UPSERT_COLUMNS = (
    "username",
    "start_time",
    "end_time",
    "summary",
    "commits",
    "issues",
    "pull_requests",
)


class SnapshotDAO(BaseDAO[ActivitySnapshot]):
    model = ActivitySnapshot

    # ── read ──────────────────────────────────────────────────────────────

    async def list_recent(
        self,
        session: AsyncSession,
        username: str | None = None,
        limit: int = 10,
    ) -> list[ActivitySnapshot]:
        """Latest snapshots by window start, optionally for one username."""
        query = select(ActivitySnapshot)
        if username is not None:
            query = query.where(ActivitySnapshot.username == username)
        query = query.order_by(ActivitySnapshot.start_time.desc(), ActivitySnapshot.id)
        return await self.list(session, query, limit)

    # ── write ─────────────────────────────────────────────────────────────

    def upsert_statement(
        self,
        *,
        id: str,
        username: str,
        start_time: datetime,
        end_time: datetime,
        summary: str,
        commits: list[dict[str, Any]],
        issues: list[dict[str, Any]],
        pull_requests: list[dict[str, Any]],
    ):
        """INSERT … ON CONFLICT (id) DO UPDATE, returning the stored row."""
        stmt = insert(ActivitySnapshot).values(
            id=id,
            username=username,
            start_time=start_time,
            end_time=end_time,
            summary=summary,
            commits=commits,
            issues=issues,
            pull_requests=pull_requests,
        )
        update_set = {col: stmt.excluded[col] for col in _UPSERT_COLUMNS}
        update_set["updated_at"] = func.now()
        return (
            stmt.on_conflict_do_update(index_elements=[ActivitySnapshot.id], set_=update_set)
            .returning(ActivitySnapshot)
            .execution_options(populate_existing=True)
        )

    async def upsert(self, session: AsyncSession, **values: Any) -> ActivitySnapshot:
        """Create the snapshot or overwrite the one stored under the same id."""
        self._require_pk(values.get("id"))
        result = await session.execute(self.upsert_statement(**values))
        return result.scalar_one()
