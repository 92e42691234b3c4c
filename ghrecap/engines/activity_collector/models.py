"""Data models for the activity collector — plain dataclasses, no DB."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

ItemType = Literal["commit", "issue", "pr"]


class ActorKind(str, enum.Enum):
    USER = "user"
    ORGANIZATION = "organization"

    @property
    def is_org(self) -> bool:
        return self is ActorKind.ORGANIZATION


class AggregationStage(str, enum.Enum):
    CLASSIFYING = "classifying"
    DISCOVERING = "discovering"
    FETCHING_COMMITS = "fetching_commits"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


def parse_datetime(value: str | None) -> datetime | None:
    """ISO-8601 to an aware datetime; values without an offset are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


@dataclass
class EnrichedCommit:
    """One commit on one branch, tagged with where it was found."""

    oid: str
    message_headline: str
    committed_date: datetime
    repository_name: str
    repository_name_with_owner: str
    branch: str
    additions: int = 0
    deletions: int = 0
    url: str | None = None
    author_login: str | None = None  # None when the author has no GitHub account
    author_name: str | None = None
    is_default_branch: bool = False

    @property
    def repository(self) -> str:
        return self.repository_name_with_owner

    @property
    def sort_date(self) -> datetime:
        return self.committed_date

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict, the shape clients and stored snapshots use."""
        return {
            "oid": self.oid,
            "messageHeadline": self.message_headline,
            "committedDate": _format_datetime(self.committed_date),
            "additions": self.additions,
            "deletions": self.deletions,
            "url": self.url,
            "author": {
                "name": self.author_name,
                "user": {"login": self.author_login} if self.author_login else None,
            },
            "repository": {
                "name": self.repository_name,
                "nameWithOwner": self.repository_name_with_owner,
            },
            "branch": self.branch,
            "isDefaultBranch": self.is_default_branch,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> EnrichedCommit:
        author = data.get("author") or {}
        user = author.get("user") or {}
        repository = data.get("repository") or {}
        committed = parse_datetime(data.get("committedDate"))
        if committed is None:
            raise ValueError(f"commit {data.get('oid')!r} has no valid committedDate")
        return cls(
            oid=data["oid"],
            message_headline=data.get("messageHeadline", ""),
            committed_date=committed,
            repository_name=repository.get("name", ""),
            repository_name_with_owner=repository.get("nameWithOwner", ""),
            branch=data.get("branch", ""),
            additions=data.get("additions") or 0,
            deletions=data.get("deletions") or 0,
            url=data.get("url"),
            author_login=user.get("login"),
            author_name=author.get("name"),
            is_default_branch=bool(data.get("isDefaultBranch", False)),
        )


@dataclass
class IssueOrPR:
    """An issue or pull request touched in the window."""

    id: int
    number: int
    title: str
    state: str
    repository: str  # owner/name
    created_at: datetime
    updated_at: datetime
    url: str
    type: Literal["issue", "pr"]

    @property
    def sort_date(self) -> datetime:
        return self.updated_at

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "title": self.title,
            "state": self.state,
            "createdAt": _format_datetime(self.created_at),
            "updatedAt": _format_datetime(self.updated_at),
            "url": self.url,
            "repository": {"nameWithOwner": self.repository},
            "type": self.type,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> IssueOrPR:
        created = parse_datetime(data.get("createdAt"))
        updated = parse_datetime(data.get("updatedAt")) or created
        if created is None or updated is None:
            raise ValueError(f"item {data.get('id')!r} has no valid timestamps")
        repository = data.get("repository") or {}
        return cls(
            id=data["id"],
            number=data["number"],
            title=data.get("title", ""),
            state=data.get("state", ""),
            repository=repository.get("nameWithOwner", ""),
            created_at=created,
            updated_at=updated,
            url=data.get("url", ""),
            type="pr" if data.get("type") == "pr" else "issue",
        )


@dataclass
class CommitBuckets:
    """Raw two-bucket split; a commit may sit in both."""

    default_branch: list[EnrichedCommit] = field(default_factory=list)
    other_branches: list[EnrichedCommit] = field(default_factory=list)

    def extend(self, other: CommitBuckets) -> None:
        self.default_branch.extend(other.default_branch)
        self.other_branches.extend(other.other_branches)

    def sort(self) -> None:
        """Newest first, in place."""
        self.default_branch.sort(key=lambda c: c.committed_date, reverse=True)
        self.other_branches.sort(key=lambda c: c.committed_date, reverse=True)

    def to_wire(self) -> dict[str, Any]:
        return {
            "defaultBranch": [c.to_wire() for c in self.default_branch],
            "otherBranches": [c.to_wire() for c in self.other_branches],
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> CommitBuckets:
        return cls(
            default_branch=[EnrichedCommit.from_wire(c) for c in data.get("defaultBranch", [])],
            other_branches=[EnrichedCommit.from_wire(c) for c in data.get("otherBranches", [])],
        )


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after each batch of repositories completes."""

    processed: int
    total: int

    def message(self) -> str:
        return f"{self.processed} of {self.total} repositories processed"


@dataclass(frozen=True)
class StreamFailure:
    """Terminal message of an aborted commit stream."""

    error: str


@dataclass
class AggregationProgress:
    """Live status of one run, for UI feedback only."""

    stage: AggregationStage = AggregationStage.CLASSIFYING
    repos_processed: int = 0
    total_repos: int = 0
    error: str | None = None

    def advance(self, stage: AggregationStage) -> None:
        self.stage = stage

    def fail(self, error: str) -> None:
        self.stage = AggregationStage.FAILED
        self.error = error


@dataclass
class ActivityResult:
    """Everything one completed run produced."""

    actor: str
    kind: ActorKind
    since: datetime
    until: datetime
    repositories: list[str]
    commits: CommitBuckets
    issues_and_prs: list[IssueOrPR]
    failed_repositories: list[str] = field(default_factory=list)

    @property
    def issues(self) -> list[IssueOrPR]:
        return [i for i in self.issues_and_prs if i.type == "issue"]

    @property
    def pull_requests(self) -> list[IssueOrPR]:
        return [i for i in self.issues_and_prs if i.type == "pr"]
