"""Commit fetcher — every branch's history since the window start."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from datetime import datetime
from typing import Any

import structlog

from ghrecap.core.github import split_repo_ref
from ghrecap.engines.activity_collector.batching import BatchScheduler
from ghrecap.engines.activity_collector.github_client import GitHubClient
from ghrecap.engines.activity_collector.models import (
    ActorKind,
    CommitBuckets,
    EnrichedCommit,
    ProgressEvent,
    parse_datetime,
)

log = structlog.get_logger("ghrecap.engine")

_BRANCHES_PER_REPO = 100
_COMMITS_PER_PAGE = 100
_MAX_HISTORY_PAGES = 10  # per branch, after the first page

_COMMIT_FIELDS = """
  oid
  messageHeadline
  committedDate
  additions
  deletions
  url
  author { name user { login } }
"""

REPO_COMMITS_QUERY = f"""
query RepoCommits($owner: String!, $name: String!, $since: GitTimestamp!,
                  $branches: Int!, $commits: Int!) {{
  repository(owner: $owner, name: $name) {{
    name
    nameWithOwner
    defaultBranchRef {{ name }}
    refs(refPrefix: "refs/heads/", first: $branches,
         orderBy: {{field: TAG_COMMIT_DATE, direction: DESC}}) {{
      nodes {{
        name
        target {{
          ... on Commit {{
            history(first: $commits, since: $since) {{
              pageInfo {{ hasNextPage endCursor }}
              nodes {{ {_COMMIT_FIELDS} }}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""

BRANCH_HISTORY_QUERY = f"""
query BranchHistory($owner: String!, $name: String!, $ref: String!,
                    $since: GitTimestamp!, $commits: Int!, $after: String) {{
  repository(owner: $owner, name: $name) {{
    ref(qualifiedName: $ref) {{
      target {{
        ... on Commit {{
          history(first: $commits, since: $since, after: $after) {{
            pageInfo {{ hasNextPage endCursor }}
            nodes {{ {_COMMIT_FIELDS} }}
          }}
        }}
      }}
    }}
  }}
}}
"""


async def fetch_repo_commits(
    client: GitHubClient,
    repo: str,
    since: datetime,
) -> dict[str, Any]:
    """Fetch the ``repository`` object for *repo* with full branch histories.

    Branch histories longer than one page are completed with follow-up
    queries, so every ``refs.nodes[].target.history.nodes`` holds the whole
    window (bounded by ``_MAX_HISTORY_PAGES``).
    """
    owner, name = split_repo_ref(repo)
    variables = {
        "owner": owner,
        "name": name,
        "since": since.isoformat(),
        "branches": _BRANCHES_PER_REPO,
        "commits": _COMMITS_PER_PAGE,
    }
    data = await client.graphql(REPO_COMMITS_QUERY, variables)
    repository = data.get("repository")
    if repository is None:
        raise LookupError(f"repository {repo} not found")

    for branch in (repository.get("refs") or {}).get("nodes") or []:
        history = (branch.get("target") or {}).get("history")
        if not history:
            continue
        page_info = history.get("pageInfo") or {}
        pages = 0
        while page_info.get("hasNextPage") and pages < _MAX_HISTORY_PAGES:
            more = await client.graphql(
                BRANCH_HISTORY_QUERY,
                {
                    "owner": owner,
                    "name": name,
                    "ref": f"refs/heads/{branch['name']}",
                    "since": since.isoformat(),
                    "commits": _COMMITS_PER_PAGE,
                    "after": page_info.get("endCursor"),
                },
            )
            next_history = (
                ((more.get("repository") or {}).get("ref") or {}).get("target") or {}
            ).get("history") or {}
            history["nodes"].extend(next_history.get("nodes") or [])
            page_info = next_history.get("pageInfo") or {}
            pages += 1
        if page_info.get("hasNextPage"):
            log.warning("commits.history_truncated", repository=repo, branch=branch["name"])

    return repository


def split_commits(repository: dict[str, Any], login: str, kind: ActorKind) -> CommitBuckets:
    """Classify one repository's commits into default vs other branches.

    Organizations keep every author; users keep only commits whose GitHub
    login matches *login*, case-insensitively. A commit reachable from two
    branches lands once per branch.
    """
    buckets = CommitBuckets()
    default_ref = repository.get("defaultBranchRef") or {}
    default_name = default_ref.get("name")
    wanted = login.lower()

    for branch in (repository.get("refs") or {}).get("nodes") or []:
        history = (branch.get("target") or {}).get("history")
        if not history:
            # annotated tags / non-commit targets
            continue
        is_default = branch["name"] == default_name
        for node in history.get("nodes") or []:
            commit = _enrich(node, repository, branch["name"], is_default)
            if commit is None:
                continue
            if not kind.is_org and (commit.author_login or "").lower() != wanted:
                continue
            if is_default:
                buckets.default_branch.append(commit)
            else:
                buckets.other_branches.append(commit)
    return buckets


def _enrich(
    node: dict[str, Any],
    repository: dict[str, Any],
    branch: str,
    is_default: bool,
) -> EnrichedCommit | None:
    committed = parse_datetime(node.get("committedDate"))
    if committed is None:
        return None
    author = node.get("author") or {}
    user = author.get("user") or {}
    return EnrichedCommit(
        oid=node["oid"],
        message_headline=node.get("messageHeadline", ""),
        committed_date=committed,
        repository_name=repository.get("name", ""),
        repository_name_with_owner=repository.get("nameWithOwner", ""),
        branch=branch,
        additions=node.get("additions") or 0,
        deletions=node.get("deletions") or 0,
        url=node.get("url"),
        author_login=user.get("login"),
        author_name=author.get("name"),
        is_default_branch=is_default,
    )


class CommitCollector:
    """Drive :func:`fetch_repo_commits` over many repositories in batches."""

    def __init__(self, client: GitHubClient, scheduler: BatchScheduler) -> None:
        self._client = client
        self._scheduler = scheduler
        self.failed_repositories: list[str] = []

    async def stream(
        self,
        repos: Sequence[str],
        login: str,
        kind: ActorKind,
        since: datetime,
    ) -> AsyncIterator[ProgressEvent | CommitBuckets]:
        """Yield a :class:`ProgressEvent` per batch, then the sorted buckets.

        Repositories that fail (when the scheduler isolates failures) are
        recorded in :attr:`failed_repositories` and contribute nothing.
        """
        buckets = CommitBuckets()
        self.failed_repositories = []

        async def _fetch(repo: str) -> dict[str, Any]:
            return await fetch_repo_commits(self._client, repo, since)

        async for batch in self._scheduler.run(list(repos), _fetch):
            for _repo, repository in batch.results:
                buckets.extend(split_commits(repository, login, kind))
            for repo, exc in batch.failures:
                log.error(
                    "commits.repo_failed",
                    repository=repo,
                    error=f"{type(exc).__name__}: {exc}",
                )
                self.failed_repositories.append(repo)
            yield ProgressEvent(processed=batch.processed, total=batch.total)

        buckets.sort()
        log.info(
            "commits.done",
            actor=login,
            repositories=len(repos),
            failed=len(self.failed_repositories),
            default_branch=len(buckets.default_branch),
            other_branches=len(buckets.other_branches),
        )
        yield buckets
