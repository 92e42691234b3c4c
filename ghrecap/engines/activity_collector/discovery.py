"""Repository discovery — which repositories did the actor touch?

No single GitHub endpoint lists every repository a user touched, so user
discovery triangulates three overlapping signals and unions them. The
result is a best-effort heuristic; later stages deduplicate anyway.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from ghrecap.engines.activity_collector.github_client import GitHubClient
from ghrecap.engines.activity_collector.models import ActorKind, parse_datetime
from ghrecap.services import NotFoundError

log = structlog.get_logger("ghrecap.engine")

_REPO_LIST_MAX_PAGES = 10
_EVENTS_MAX_PAGES = 3  # the public events feed only goes back 300 events
_COMMIT_SEARCH_MAX_PAGES = 3


class NoRepositoriesError(NotFoundError):
    """Discovery found nothing to fetch commits from."""

    def __init__(self, actor: str) -> None:
        self.actor = actor
        super().__init__("no repositories with recent activity")


async def discover_repositories(
    client: GitHubClient,
    login: str,
    kind: ActorKind,
    since: datetime,
) -> set[str]:
    """Return the ``owner/name`` set of repositories with activity since *since*.

    Raises :class:`NoRepositoriesError` when the set is empty.
    """
    if kind.is_org:
        repos = await _org_repositories(client, login, since)
    else:
        repos = await _user_repositories(client, login, since)

    log.info("discovery.done", actor=login, kind=kind.value, repositories=len(repos))
    if not repos:
        raise NoRepositoriesError(login)
    return repos


# ── organization ──────────────────────────────────────────────────────────


async def _org_repositories(client: GitHubClient, login: str, since: datetime) -> set[str]:
    """GET /orgs/{org}/repos, newest push first."""
    return await _pushed_since(client, f"/orgs/{login}/repos", since, {"type": "all"})


# ── user ──────────────────────────────────────────────────────────────────


async def _user_repositories(client: GitHubClient, login: str, since: datetime) -> set[str]:
    signal_names = ["events", "owned", "commit_search"]
    results = await asyncio.gather(
        _from_events(client, login, since),
        _pushed_since(client, f"/users/{login}/repos", since, {"type": "owner"}),
        _from_commit_search(client, login, since),
        return_exceptions=True,
    )

    repos: set[str] = set()
    for name, result in zip(signal_names, results, strict=True):
        if isinstance(result, BaseException):
            # a failed signal contributes nothing
            log.warning(
                "discovery.signal_failed",
                actor=login,
                signal=name,
                error=f"{type(result).__name__}: {result}",
            )
            continue
        log.debug("discovery.signal", actor=login, signal=name, repositories=len(result))
        repos |= result
    return repos


async def _from_events(client: GitHubClient, login: str, since: datetime) -> set[str]:
    """GET /users/{user}/events/public — catches pushes the repo list lags on."""
    repos: set[str] = set()
    async for event in client.get_paginated(
        f"/users/{login}/events/public", max_pages=_EVENTS_MAX_PAGES
    ):
        created_at = parse_datetime(event.get("created_at"))
        if created_at is None or created_at < since:
            # the feed is newest-first
            break
        name = (event.get("repo") or {}).get("name")
        if name:
            repos.add(name)
    return repos


async def _from_commit_search(client: GitHubClient, login: str, since: datetime) -> set[str]:
    """GET /search/commits — repositories the user committed to but does not own."""
    stamp = since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    query = f"author:{login} committer-date:>={stamp}"
    repos: set[str] = set()
    async for item in client.search(
        "commits", query, max_pages=_COMMIT_SEARCH_MAX_PAGES, sort="committer-date", order="desc"
    ):
        name = (item.get("repository") or {}).get("full_name")
        if name:
            repos.add(name)
    return repos


# ── shared ────────────────────────────────────────────────────────────────


async def _pushed_since(
    client: GitHubClient,
    path: str,
    since: datetime,
    extra_params: dict[str, str],
) -> set[str]:
    """Page through a repository list sorted by push time, keep recent ones.

    The list is newest-pushed first, so the first stale repository ends the
    scan early.
    """
    params = {"sort": "pushed", "direction": "desc", **extra_params}
    repos: set[str] = set()
    async for item in client.get_paginated(path, params, max_pages=_REPO_LIST_MAX_PAGES):
        pushed_at = parse_datetime(item.get("pushed_at"))
        if pushed_at is None:
            continue
        if pushed_at < since:
            break
        name = item.get("full_name")
        if name:
            repos.add(name)
    return repos
