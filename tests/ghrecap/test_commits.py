"""Tests for the commit fetcher: GraphQL paging, author filter, bucket split."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from factories import commit_node, make_client, repository_payload

from ghrecap.engines.activity_collector.batching import BatchScheduler
from ghrecap.engines.activity_collector.commits import (
    CommitCollector,
    fetch_repo_commits,
    split_commits,
)
from ghrecap.engines.activity_collector.models import ActorKind, CommitBuckets, ProgressEvent

# ── split_commits ─────────────────────────────────────────────────────────


class TestSplitCommits:
    def test_user_keeps_only_own_commits(self):
        repo = repository_payload(
            {
                "main": [
                    commit_node("a1", "alice"),
                    commit_node("b1", "bob"),
                    commit_node("a2", "alice"),
                ]
            }
        )
        buckets = split_commits(repo, "alice", ActorKind.USER)

        assert [c.oid for c in buckets.default_branch] == ["a1", "a2"]
        assert buckets.other_branches == []

    def test_login_match_is_case_insensitive(self):
        repo = repository_payload({"main": [commit_node("a1", "Alice")]})
        buckets = split_commits(repo, "aLiCe", ActorKind.USER)
        assert [c.oid for c in buckets.default_branch] == ["a1"]

    def test_commits_without_github_user_are_dropped_for_users(self):
        repo = repository_payload({"main": [commit_node("x1", None)]})
        assert split_commits(repo, "alice", ActorKind.USER).default_branch == []

    def test_org_keeps_every_author(self):
        repo = repository_payload(
            {"main": [commit_node("a1", "alice"), commit_node("b1", "bob"), commit_node("x1", None)]}
        )
        buckets = split_commits(repo, "acme", ActorKind.ORGANIZATION)
        assert [c.oid for c in buckets.default_branch] == ["a1", "b1", "x1"]

    def test_default_vs_other_branches(self):
        repo = repository_payload(
            {
                "main": [commit_node("m1", "alice")],
                "feature/x": [commit_node("f1", "alice")],
            }
        )
        buckets = split_commits(repo, "alice", ActorKind.USER)

        assert [c.oid for c in buckets.default_branch] == ["m1"]
        assert [c.oid for c in buckets.other_branches] == ["f1"]
        assert buckets.default_branch[0].is_default_branch is True
        assert buckets.other_branches[0].is_default_branch is False
        assert buckets.other_branches[0].branch == "feature/x"

    def test_commit_on_two_branches_lands_once_in_each(self):
        shared = commit_node("s1", "alice")
        repo = repository_payload({"main": [shared], "dev": [dict(shared)]})
        buckets = split_commits(repo, "alice", ActorKind.USER)

        assert [c.oid for c in buckets.default_branch] == ["s1"]
        assert [c.oid for c in buckets.other_branches] == ["s1"]

    def test_enriches_repository_fields(self):
        repo = repository_payload({"main": [commit_node("a1", "alice")]}, name_with_owner="acme/api")
        commit = split_commits(repo, "alice", ActorKind.USER).default_branch[0]

        assert commit.repository_name == "api"
        assert commit.repository_name_with_owner == "acme/api"
        assert commit.additions == 3
        assert commit.deletions == 1
        assert commit.author_login == "alice"

    def test_non_commit_targets_are_skipped(self):
        repo = repository_payload({"main": [commit_node("a1", "alice")]})
        repo["refs"]["nodes"].append({"name": "tag-like", "target": {}})
        buckets = split_commits(repo, "alice", ActorKind.USER)
        assert len(buckets.default_branch) == 1
        assert buckets.other_branches == []


# ── fetch_repo_commits ────────────────────────────────────────────────────


class TestFetchRepoCommits:
    @pytest.mark.asyncio
    async def test_single_query(self, since):
        payload = repository_payload({"main": [commit_node("a1", "alice")]})
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"repository": payload}})

        async with make_client(handler) as client:
            repository = await fetch_repo_commits(client, "acme/app", since)

        assert repository["nameWithOwner"] == "acme/app"
        assert len(seen) == 1
        assert seen[0]["variables"]["owner"] == "acme"
        assert seen[0]["variables"]["name"] == "app"
        assert seen[0]["variables"]["since"] == since.isoformat()

    @pytest.mark.asyncio
    async def test_follows_branch_history_pages(self, since):
        payload = repository_payload({"main": [commit_node("a1", "alice")]})
        payload["refs"]["nodes"][0]["target"]["history"]["pageInfo"] = {
            "hasNextPage": True,
            "endCursor": "c1",
        }
        follow_up = {
            "repository": {
                "ref": {
                    "target": {
                        "history": {
                            "pageInfo": {"hasNextPage": False, "endCursor": None},
                            "nodes": [commit_node("a2", "alice")],
                        }
                    }
                }
            }
        }
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            bodies.append(body)
            if "after" in body["variables"]:
                return httpx.Response(200, json={"data": follow_up})
            return httpx.Response(200, json={"data": {"repository": payload}})

        async with make_client(handler) as client:
            repository = await fetch_repo_commits(client, "acme/app", since)

        nodes = repository["refs"]["nodes"][0]["target"]["history"]["nodes"]
        assert [n["oid"] for n in nodes] == ["a1", "a2"]
        assert bodies[1]["variables"]["after"] == "c1"
        assert bodies[1]["variables"]["ref"] == "refs/heads/main"

    @pytest.mark.asyncio
    async def test_missing_repository_raises(self, since):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"repository": None}})

        async with make_client(handler) as client:
            with pytest.raises(LookupError):
                await fetch_repo_commits(client, "acme/gone", since)

    @pytest.mark.asyncio
    async def test_bad_ref_raises(self, since):
        async with make_client(lambda r: httpx.Response(200, json={})) as client:
            with pytest.raises(ValueError):
                await fetch_repo_commits(client, "not-a-repo", since)


# ── CommitCollector ───────────────────────────────────────────────────────


def _payloads() -> dict[str, dict]:
    return {
        "acme/one": repository_payload(
            {"main": [commit_node("o1", "alice", "2024-03-02T00:00:00Z")]},
            name_with_owner="acme/one",
        ),
        "acme/two": repository_payload(
            {
                "main": [commit_node("t1", "alice", "2024-03-09T00:00:00Z")],
                "wip": [commit_node("t2", "alice", "2024-03-05T00:00:00Z")],
            },
            name_with_owner="acme/two",
        ),
        "acme/three": repository_payload(
            {"main": [commit_node("h1", "alice", "2024-03-07T00:00:00Z")]},
            name_with_owner="acme/three",
        ),
        "acme/four": repository_payload(
            {"main": [commit_node("f1", "bob", "2024-03-08T00:00:00Z")]},
            name_with_owner="acme/four",
        ),
    }


class TestCommitCollector:
    @pytest.mark.asyncio
    async def test_progress_then_sorted_buckets(self, since):
        payloads = _payloads()

        async def fake_fetch(client, repo, since):
            return payloads[repo]

        collector = CommitCollector(AsyncMock(), BatchScheduler(batch_size=3, delay=0))
        with patch(
            "ghrecap.engines.activity_collector.commits.fetch_repo_commits", side_effect=fake_fetch
        ):
            messages = [
                m async for m in collector.stream(list(payloads), "alice", ActorKind.USER, since)
            ]

        assert messages[:-1] == [ProgressEvent(3, 4), ProgressEvent(4, 4)]
        buckets = messages[-1]
        assert isinstance(buckets, CommitBuckets)
        assert [c.oid for c in buckets.default_branch] == ["t1", "h1", "o1"]
        assert [c.oid for c in buckets.other_branches] == ["t2"]

    @pytest.mark.asyncio
    async def test_failed_repository_is_isolated(self, since):
        payloads = _payloads()

        async def fake_fetch(client, repo, since):
            if repo == "acme/two":
                raise httpx.ConnectError("reset")
            return payloads[repo]

        collector = CommitCollector(AsyncMock(), BatchScheduler(batch_size=2, delay=0))
        with patch(
            "ghrecap.engines.activity_collector.commits.fetch_repo_commits", side_effect=fake_fetch
        ):
            messages = [
                m async for m in collector.stream(list(payloads), "alice", ActorKind.USER, since)
            ]

        assert [m for m in messages if isinstance(m, ProgressEvent)] == [
            ProgressEvent(2, 4),
            ProgressEvent(4, 4),
        ]
        assert collector.failed_repositories == ["acme/two"]
        assert [c.oid for c in messages[-1].default_branch] == ["h1", "o1"]

    @pytest.mark.asyncio
    async def test_failure_aborts_without_isolation(self, since):
        async def fake_fetch(client, repo, since):
            raise httpx.ConnectError("reset")

        scheduler = BatchScheduler(batch_size=2, delay=0, isolate_failures=False)
        collector = CommitCollector(AsyncMock(), scheduler)
        with patch(
            "ghrecap.engines.activity_collector.commits.fetch_repo_commits", side_effect=fake_fetch
        ):
            with pytest.raises(httpx.ConnectError):
                async for _ in collector.stream(["acme/one"], "alice", ActorKind.USER, since):
                    pass
