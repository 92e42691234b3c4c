"""ActivityRunner — classifier → discovery → batched commits ‖ issues/PRs."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from datetime import datetime, timezone

import httpx
import structlog

from ghrecap.core.config import Settings
from ghrecap.engines.activity_collector.batching import BatchScheduler
from ghrecap.engines.activity_collector.classifier import classify_actor
from ghrecap.engines.activity_collector.commits import CommitCollector
from ghrecap.engines.activity_collector.discovery import discover_repositories
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
    IssueOrPR,
    ProgressEvent,
    StreamFailure,
)
from ghrecap.services import UpstreamError

log = structlog.get_logger("ghrecap.engine")

StreamMessage = ProgressEvent | CommitBuckets | StreamFailure

# failures of a GitHub call that surface to callers as UpstreamError
UPSTREAM_ERRORS = (httpx.HTTPError, GraphQLError, RateLimitError)


class ActivityRunner:
    """Run the aggregation pipeline for one actor and window.

    Holds only process-scoped collaborators (the GitHub client and batch
    settings); all per-run state lives in local variables.
    """

    def __init__(self, client: GitHubClient, settings: Settings | None = None) -> None:
        settings = settings or Settings()
        self._client = client
        self._batch_size = settings.batch_size
        self._batch_delay = settings.batch_delay
        self._isolate_failures = settings.isolate_repo_failures

    def _scheduler(self) -> BatchScheduler:
        return BatchScheduler(
            self._batch_size, self._batch_delay, isolate_failures=self._isolate_failures
        )

    # ── individual stages ─────────────────────────────────────────────────

    async def classify(self, login: str) -> ActorKind:
        return await classify_actor(self._client, login)

    async def discover(self, login: str, kind: ActorKind, since: datetime) -> list[str]:
        """Sorted repository list; raises ``NoRepositoriesError`` when empty."""
        try:
            return sorted(await discover_repositories(self._client, login, kind, since))
        except UPSTREAM_ERRORS as exc:
            raise UpstreamError(f"failed to list repositories: {exc}") from exc

    async def issues(self, login: str, kind: ActorKind, since: datetime) -> list[IssueOrPR]:
        try:
            return await fetch_issues_and_prs(self._client, login, kind, since)
        except UPSTREAM_ERRORS as exc:
            raise UpstreamError(f"failed to fetch issues and pull requests: {exc}") from exc

    async def commit_stream(
        self,
        repos: Sequence[str],
        login: str,
        kind: ActorKind,
        since: datetime,
        *,
        collector: CommitCollector | None = None,
    ) -> AsyncIterator[StreamMessage]:
        """Progress events, then exactly one terminal message.

        The terminal message is the sorted :class:`CommitBuckets`, or a
        :class:`StreamFailure` if the run aborted part-way. Consumers can
        always read until the terminal message and stop.
        """
        collector = collector or CommitCollector(self._client, self._scheduler())
        try:
            async for message in collector.stream(repos, login, kind, since):
                yield message
        except Exception as exc:
            log.error("commits.stream_failed", actor=login, error=f"{type(exc).__name__}: {exc}")
            yield StreamFailure(error=f"failed to fetch commits: {exc}")
        finally:
            log.debug("commits.stream_closed", actor=login)

    # ── whole pipeline ────────────────────────────────────────────────────

    async def run(
        self,
        login: str,
        since: datetime,
        *,
        until: datetime | None = None,
        on_progress: Callable[[AggregationProgress], None] | None = None,
    ) -> ActivityResult:
        """Run every stage and return the merged raw results.

        The issue/PR search runs concurrently with the commit batches.
        Raises ``NoRepositoriesError`` when discovery finds nothing and
        :class:`UpstreamError` when commits or issues fail; nothing partial
        is returned in either case.
        """
        until = until or datetime.now(timezone.utc)
        progress = AggregationProgress()

        def _report(stage: AggregationStage | None = None) -> None:
            if stage is not None:
                progress.advance(stage)
            if on_progress is not None:
                on_progress(progress)

        try:
            _report(AggregationStage.CLASSIFYING)
            kind = await self.classify(login)

            _report(AggregationStage.DISCOVERING)
            repos = await self.discover(login, kind, since)
            progress.total_repos = len(repos)

            _report(AggregationStage.FETCHING_COMMITS)
            issues_task = asyncio.create_task(self.issues(login, kind, since))
            collector = CommitCollector(self._client, self._scheduler())
            buckets: CommitBuckets | None = None
            try:
                async for message in self.commit_stream(
                    repos, login, kind, since, collector=collector
                ):
                    if isinstance(message, ProgressEvent):
                        progress.repos_processed = message.processed
                        _report()
                    elif isinstance(message, StreamFailure):
                        raise UpstreamError(message.error)
                    else:
                        buckets = message
                issues_and_prs = await issues_task
            except BaseException:
                issues_task.cancel()
                raise

            _report(AggregationStage.MERGING)
            result = ActivityResult(
                actor=login,
                kind=kind,
                since=since,
                until=until,
                repositories=repos,
                commits=buckets or CommitBuckets(),
                issues_and_prs=issues_and_prs,
                failed_repositories=list(collector.failed_repositories),
            )
        except UPSTREAM_ERRORS as exc:
            progress.fail(str(exc))
            _report()
            raise UpstreamError(f"GitHub request failed: {exc}") from exc
        except Exception as exc:
            progress.fail(str(exc))
            _report()
            raise

        _report(AggregationStage.DONE)
        return result

