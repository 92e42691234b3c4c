"""Activity collector engine — GitHub aggregation without DB access."""

from ghrecap.engines.activity_collector.batching import BatchResult, BatchScheduler
from ghrecap.engines.activity_collector.classifier import classify_actor
from ghrecap.engines.activity_collector.commits import CommitCollector, split_commits
from ghrecap.engines.activity_collector.discovery import (
    NoRepositoriesError,
    discover_repositories,
)
from ghrecap.engines.activity_collector.github_client import (
    GitHubClient,
    GraphQLError,
    RateLimitError,
)
from ghrecap.engines.activity_collector.issues import fetch_issues_and_prs
from ghrecap.engines.activity_collector.models import (
    ActivityResult,
    ActorKind,
    AggregationProgress,
    AggregationStage,
    CommitBuckets,
    EnrichedCommit,
    IssueOrPR,
    ProgressEvent,
    StreamFailure,
)
from ghrecap.engines.activity_collector.runner import ActivityRunner

__all__ = [
    "ActivityResult",
    "ActivityRunner",
    "ActorKind",
    "AggregationProgress",
    "AggregationStage",
    "BatchResult",
    "BatchScheduler",
    "CommitBuckets",
    "CommitCollector",
    "EnrichedCommit",
    "GitHubClient",
    "GraphQLError",
    "IssueOrPR",
    "NoRepositoriesError",
    "ProgressEvent",
    "RateLimitError",
    "StreamFailure",
    "classify_actor",
    "discover_repositories",
    "fetch_issues_and_prs",
    "split_commits",
]
