"""Tests for snapshot persistence: upsert statement, service rules, views."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from factories import MemorySnapshotDAO
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from ghrecap.dao.snapshot_dao import SnapshotDAO
from ghrecap.engines.activity_collector.models import EnrichedCommit, IssueOrPR
from ghrecap.models.activity_snapshot import ActivitySnapshot
from ghrecap.services import NotFoundError, ServiceError, ValidationError
from ghrecap.services.snapshot_service import PersistenceError, SnapshotService

START = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)
END = datetime(2024, 3, 8, 8, 30, tzinfo=timezone.utc)
NOW = datetime(2024, 3, 8, 9, 0, tzinfo=timezone.utc)


def _commit_wire(oid: str, branch: str = "main", hours: int = 0) -> dict:
    return EnrichedCommit(
        oid=oid,
        message_headline=f"commit {oid}",
        committed_date=datetime(2024, 3, 2, hours, tzinfo=timezone.utc),
        repository_name="app",
        repository_name_with_owner="acme/app",
        branch=branch,
        author_login="alice",
    ).to_wire()


def _item_wire(item_id: int, kind: str, repo: str = "acme/app") -> dict:
    return IssueOrPR(
        id=item_id,
        number=item_id,
        title=f"{kind} {item_id}",
        state="open",
        repository=repo,
        created_at=START,
        updated_at=datetime(2024, 3, 3, item_id, tzinfo=timezone.utc),
        url=f"https://github.com/{repo}/issues/{item_id}",
        type=kind,
    ).to_wire()


def _snapshot(**overrides) -> ActivitySnapshot:
    values = dict(
        id="alice-2024-03-01-to-2024-03-08",
        username="alice",
        start_time=START,
        end_time=END,
        summary="## Overview",
        commits=[_commit_wire("a", hours=1), _commit_wire("a", "dev", 1), _commit_wire("b", hours=2)],
        issues=[_item_wire(1, "issue")],
        pull_requests=[_item_wire(2, "pr", repo="oss/lib")],
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return ActivitySnapshot(**values)


# ── DAO ───────────────────────────────────────────────────────────────────


class TestSnapshotDAO:
    def test_upsert_statement_is_on_conflict_update(self):
        stmt = SnapshotDAO().upsert_statement(
            id="alice-2024-03-01-to-2024-03-08",
            username="alice",
            start_time=START,
            end_time=END,
            summary="",
            commits=[],
            issues=[],
            pull_requests=[],
        )
        sql = str(stmt.compile(dialect=postgresql.dialect()))

        assert "INSERT INTO activity_snapshots" in sql
        assert "ON CONFLICT (id) DO UPDATE SET" in sql
        assert "updated_at = now()" in sql
        assert "summary = excluded.summary" in sql
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_list_recent_query(self):
        session = AsyncMock()
        session.execute.return_value = MagicMock()
        session.execute.return_value.scalars.return_value.all.return_value = []

        await SnapshotDAO().list_recent(session, "alice", limit=500)

        query = session.execute.call_args.args[0]
        sql = str(query.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))
        assert "WHERE activity_snapshots.username = 'alice'" in sql
        assert "ORDER BY activity_snapshots.start_time DESC" in sql
        assert "LIMIT 100" in sql

    @pytest.mark.asyncio
    async def test_upsert_requires_id(self):
        with pytest.raises(ValueError):
            await SnapshotDAO().upsert(AsyncMock(), id=None, username="alice")


# ── export / read ─────────────────────────────────────────────────────────


class TestExport:
    @pytest.mark.asyncio
    async def test_key_is_actor_and_window_dates(self):
        svc = SnapshotService(MemorySnapshotDAO())
        snapshot = await svc.export(AsyncMock(), username="alice", start_time=START, end_time=END)
        assert snapshot.id == "alice-2024-03-01-to-2024-03-08"
        assert snapshot.commits == []
        assert snapshot.summary == ""

    @pytest.mark.asyncio
    async def test_export_twice_overwrites(self):
        dao = MemorySnapshotDAO()
        svc = SnapshotService(dao)
        await svc.export(AsyncMock(), username="alice", start_time=START, end_time=END, summary="v1")
        later_start = START.replace(hour=20)  # same calendar day, same key
        await svc.export(
            AsyncMock(), username="alice", start_time=later_start, end_time=END, summary="v2"
        )

        assert list(dao.rows) == ["alice-2024-03-01-to-2024-03-08"]
        assert dao.rows["alice-2024-03-01-to-2024-03-08"].summary == "v2"

    @pytest.mark.asyncio
    async def test_explicit_id(self):
        dao = MemorySnapshotDAO()
        snapshot = await SnapshotService(dao).export(
            AsyncMock(), username="alice", start_time=START, end_time=END, snapshot_id="custom"
        )
        assert snapshot.id == "custom"

    @pytest.mark.asyncio
    async def test_rejects_missing_username(self):
        dao = AsyncMock()
        with pytest.raises(ValidationError):
            await SnapshotService(dao).export(
                AsyncMock(), username="", start_time=START, end_time=END
            )
        dao.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejects_inverted_window(self):
        with pytest.raises(ValidationError):
            await SnapshotService(AsyncMock()).export(
                AsyncMock(), username="alice", start_time=END, end_time=START
            )

    @pytest.mark.asyncio
    async def test_store_failure_is_service_error(self):
        dao = AsyncMock()
        dao.upsert.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        with pytest.raises(PersistenceError) as exc_info:
            await SnapshotService(dao).export(
                AsyncMock(), username="alice", start_time=START, end_time=END
            )
        assert isinstance(exc_info.value, ServiceError)


class TestRead:
    @pytest.mark.asyncio
    async def test_get_missing(self):
        with pytest.raises(NotFoundError):
            await SnapshotService(MemorySnapshotDAO()).get(AsyncMock(), "nope")

    @pytest.mark.asyncio
    async def test_list_recent_newest_first(self):
        dao = MemorySnapshotDAO()
        svc = SnapshotService(dao)
        for day in (1, 15, 8):
            start = START.replace(day=day)
            await svc.export(AsyncMock(), username="alice", start_time=start, end_time=start)
        await svc.export(AsyncMock(), username="bob", start_time=START, end_time=END)

        rows = await svc.list_recent(AsyncMock(), "alice")
        assert [r.start_time.day for r in rows] == [15, 8, 1]
        assert len(await svc.list_recent(AsyncMock())) == 4


# ── views ─────────────────────────────────────────────────────────────────


class TestViews:
    def test_timeline_dedupes_stored_commits(self):
        view = SnapshotService.timeline(_snapshot())
        stats = view.stats()
        assert stats.commits == 2
        assert stats.issues == 1
        assert stats.pull_requests == 1
        assert stats.repositories == 2
        assert stats.branches == 2
        assert view.total_items == 4

    def test_card(self):
        card = SnapshotService.card(_snapshot(), "https://recap.example")
        assert card["title"] == "What did alice do?"
        assert card["timeframe"] == "this week"
        assert card["description"] == "What did alice get done this week?"
        assert card["url"] == "https://recap.example/share/alice-2024-03-01-to-2024-03-08"
        assert (card["commits"], card["issues"], card["pull_requests"]) == (2, 1, 1)
        assert card["start_date"] == "2024-03-01"
        assert card["end_date"] == "2024-03-08"

    def test_timeline_with_offsetless_commit_dates(self):
        naive = _commit_wire("c", hours=5)
        naive["committedDate"] = "2024-03-05T10:00:00"
        view = SnapshotService.timeline(_snapshot(commits=[naive]))

        items = view.page_items()
        assert items[0].oid == "c"
        assert items[0].sort_date.tzinfo is not None


class TestExportValidation:
    @pytest.mark.asyncio
    async def test_commit_without_oid_is_rejected(self):
        dao = MemorySnapshotDAO()
        broken = _commit_wire("a")
        del broken["oid"]
        with pytest.raises(ValidationError):
            await SnapshotService(dao).export(
                AsyncMock(), username="alice", start_time=START, end_time=END, commits=[broken]
            )
        assert dao.rows == {}

    @pytest.mark.asyncio
    async def test_item_without_dates_is_rejected(self):
        dao = MemorySnapshotDAO()
        broken = _item_wire(2, "pr")
        del broken["createdAt"]
        del broken["updatedAt"]
        with pytest.raises(ValidationError):
            await SnapshotService(dao).export(
                AsyncMock(),
                username="alice",
                start_time=START,
                end_time=END,
                pull_requests=[broken],
            )
        assert dao.rows == {}

    @pytest.mark.asyncio
    async def test_offsetless_dates_are_accepted(self):
        dao = MemorySnapshotDAO()
        commit = _commit_wire("a")
        commit["committedDate"] = "2024-03-05T10:00:00"
        snapshot = await SnapshotService(dao).export(
            AsyncMock(), username="alice", start_time=START, end_time=END, commits=[commit]
        )
        assert SnapshotService.timeline(snapshot).total_items == 1
