"""Issue / pull-request fetcher over the search API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from ghrecap.core.github import repo_from_search_item
from ghrecap.engines.activity_collector.github_client import GitHubClient
from ghrecap.engines.activity_collector.models import ActorKind, IssueOrPR, parse_datetime

log = structlog.get_logger("ghrecap.engine")

_SEARCH_MAX_PAGES = 10


def build_query(login: str, kind: ActorKind, since: datetime) -> str:
    """Search qualifier for the actor's issues and PRs in the window.

    Organizations: everything updated in the org. Users: items they authored,
    created in the window.
    """
    stamp = since.strftime("%Y-%m-%dT%H:%M:%SZ")
    if kind.is_org:
        return f"org:{login} updated:>={stamp}"
    return f"author:{login} created:>={stamp}"


def to_issue_or_pr(item: dict[str, Any]) -> IssueOrPR | None:
    """Map one search result; None if it lacks a repository or timestamps."""
    repository = repo_from_search_item(item)
    created = parse_datetime(item.get("created_at"))
    updated = parse_datetime(item.get("updated_at")) or created
    if repository is None or created is None or updated is None:
        return None
    return IssueOrPR(
        id=item["id"],
        number=item["number"],
        title=item.get("title", ""),
        state=item.get("state", ""),
        repository=repository,
        created_at=created,
        updated_at=updated,
        url=item.get("html_url", ""),
        type="pr" if "pull_request" in item else "issue",
    )


async def fetch_issues_and_prs(
    client: GitHubClient,
    login: str,
    kind: ActorKind,
    since: datetime,
) -> list[IssueOrPR]:
    """GET /search/issues for the actor; flat list, newest update first."""
    query = build_query(login, kind, since)
    items: list[IssueOrPR] = []
    seen: set[int] = set()
    async for raw in client.search(
        "issues", query, max_pages=_SEARCH_MAX_PAGES, sort="updated", order="desc"
    ):
        item = to_issue_or_pr(raw)
        if item is None:
            log.debug("issues.skipped", id=raw.get("id"))
            continue
        # results can shift between pages while paginating
        if item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)

    log.info(
        "issues.done",
        actor=login,
        issues=sum(1 for i in items if i.type == "issue"),
        prs=sum(1 for i in items if i.type == "pr"),
    )
    return items
