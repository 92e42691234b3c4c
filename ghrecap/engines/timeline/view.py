"""Merged activity view: dedup, aggregate counts, filtered pagination."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Union

from ghrecap.engines.activity_collector.models import (
    CommitBuckets,
    EnrichedCommit,
    IssueOrPR,
    ItemType,
)

PAGE_SIZE = 20
ALL_TYPES: tuple[ItemType, ...] = ("commit", "issue", "pr")

TimelineItem = Union[EnrichedCommit, IssueOrPR]


def dedupe_commits(buckets: CommitBuckets) -> list[EnrichedCommit]:
    """One commit per ``oid``, newest first.

    Default-branch commits come first in the concatenation, so a commit that
    is on both the default and a feature branch keeps its default-branch
    instance.
    """
    seen: set[str] = set()
    unique: list[EnrichedCommit] = []
    for commit in [*buckets.default_branch, *buckets.other_branches]:
        if commit.oid in seen:
            continue
        seen.add(commit.oid)
        unique.append(commit)
    unique.sort(key=lambda c: c.committed_date, reverse=True)
    return unique


def item_type(item: TimelineItem) -> ItemType:
    if isinstance(item, EnrichedCommit):
        return "commit"
    return item.type


@dataclass(frozen=True)
class ActivityStats:
    commits: int
    issues: int
    pull_requests: int
    repositories: int
    branches: int


def compute_stats(
    commits: Sequence[EnrichedCommit],
    issues_and_prs: Sequence[IssueOrPR],
    *,
    raw_commits: Iterable[EnrichedCommit] | None = None,
) -> ActivityStats:
    """Aggregate counts over the merged activity.

    *commits* should already be deduplicated. ``branches`` counts distinct
    ``(repository, branch)`` pairs and is taken from *raw_commits* when
    given, since dedup keeps only one branch per commit.
    """
    repositories = {c.repository for c in commits} | {i.repository for i in issues_and_prs}
    branch_source = commits if raw_commits is None else raw_commits
    return ActivityStats(
        commits=len(commits),
        issues=sum(1 for i in issues_and_prs if i.type == "issue"),
        pull_requests=sum(1 for i in issues_and_prs if i.type == "pr"),
        repositories=len(repositories),
        branches=len({(c.repository, c.branch) for c in branch_source}),
    )


class TimelineView:
    """Filterable, paginated timeline over commits, issues and PRs.

    The type filter is never empty: turning off the last active type is
    ignored. Any change to the filters, the actor or the window sends the
    view back to page 1.
    """

    def __init__(
        self,
        commits: Sequence[EnrichedCommit],
        issues_and_prs: Sequence[IssueOrPR],
        *,
        raw_commits: Sequence[EnrichedCommit] | None = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._commits = list(commits)
        self._issues_and_prs = list(issues_and_prs)
        self._raw_commits = list(raw_commits) if raw_commits is not None else None
        self.page_size = page_size
        self.types: set[ItemType] = set(ALL_TYPES)
        self.repository: str | None = None
        self.page = 1

    @classmethod
    def from_buckets(
        cls, buckets: CommitBuckets, issues_and_prs: Sequence[IssueOrPR], **kwargs
    ) -> TimelineView:
        raw = [*buckets.default_branch, *buckets.other_branches]
        return cls(dedupe_commits(buckets), issues_and_prs, raw_commits=raw, **kwargs)

    # ── filter state ──────────────────────────────────────────────────────

    def toggle_type(self, kind: ItemType) -> None:
        if kind not in ALL_TYPES:
            raise ValueError(f"unknown item type {kind!r}")
        if kind in self.types:
            if len(self.types) == 1:
                return
            self.types.discard(kind)
        else:
            self.types.add(kind)
        self.page = 1

    def set_types(self, kinds: Iterable[ItemType]) -> None:
        """Replace the type filter; an empty selection leaves it unchanged."""
        wanted = {k for k in kinds if k in ALL_TYPES}
        if wanted:
            self.types = wanted
        self.page = 1

    def select_repository(self, repository: str | None) -> None:
        """Restrict to one ``owner/name``; ``None`` or ``"all"`` clears it."""
        self.repository = None if repository in (None, "", "all") else repository
        self.page = 1

    def reset(
        self,
        commits: Sequence[EnrichedCommit],
        issues_and_prs: Sequence[IssueOrPR],
        *,
        raw_commits: Sequence[EnrichedCommit] | None = None,
    ) -> None:
        """Load the result of a new actor, timeframe or custom-days query.

        Filters stay as they are; the page goes back to 1.
        """
        self._commits = list(commits)
        self._issues_and_prs = list(issues_and_prs)
        self._raw_commits = list(raw_commits) if raw_commits is not None else None
        self.page = 1

    def go_to(self, page: int) -> None:
        if page < 1:
            raise ValueError(f"page is 1-based, got {page}")
        self.page = page

    # ── derived ───────────────────────────────────────────────────────────

    def repositories(self) -> list[str]:
        names = {c.repository for c in self._commits} | {
            i.repository for i in self._issues_and_prs
        }
        return sorted(names)

    def filtered(self) -> list[TimelineItem]:
        items: list[TimelineItem] = []
        if "commit" in self.types:
            items.extend(self._commits)
        items.extend(i for i in self._issues_and_prs if i.type in self.types)
        if self.repository is not None:
            items = [i for i in items if i.repository == self.repository]
        items.sort(key=lambda i: i.sort_date, reverse=True)
        return items

    @property
    def total_items(self) -> int:
        return len(self.filtered())

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.page_size)

    def page_items(self, page: int | None = None) -> list[TimelineItem]:
        """Items on *page* (default: current page); past the end → ``[]``."""
        page = self.page if page is None else page
        if page < 1:
            raise ValueError(f"page is 1-based, got {page}")
        start = (page - 1) * self.page_size
        return self.filtered()[start : start + self.page_size]

    def stats(self) -> ActivityStats:
        return compute_stats(self._commits, self._issues_and_prs, raw_commits=self._raw_commits)
