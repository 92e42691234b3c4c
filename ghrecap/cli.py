"""CLI entry point: ghrecap.

Subcommands:
    ghrecap recap octocat --timeframe week      # Aggregate and print a recap
    ghrecap recap octocat --days 12 --summary   # ... plus a streamed summary
    ghrecap recap my-org --timeframe month --export
    ghrecap serve --port 8000                   # Run the HTTP API
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime

import click
from dotenv import load_dotenv

from ghrecap.core.config import Settings
from ghrecap.core.logging import setup_logging
from ghrecap.core.timeframe import (
    CUSTOM,
    TIMEFRAME_DAYS,
    InvalidWindowError,
    resolve_window,
    timeframe_phrase,
)
from ghrecap.engines.activity_collector.github_client import GitHubClient
from ghrecap.engines.activity_collector.models import (
    ActivityResult,
    AggregationProgress,
    AggregationStage,
)
from ghrecap.engines.activity_collector.runner import ActivityRunner
from ghrecap.engines.summarizer.generator import SummaryGenerator
from ghrecap.engines.timeline import TimelineView, item_type
from ghrecap.services import ServiceError, SummaryError

_STAGE_LABELS = {
    AggregationStage.CLASSIFYING: "Checking account type",
    AggregationStage.DISCOVERING: "Finding repositories",
    AggregationStage.FETCHING_COMMITS: "Fetching commits",
    AggregationStage.MERGING: "Merging activity",
}


class _ProgressPrinter:
    """Echo stage changes and batch progress to stderr."""

    def __init__(self) -> None:
        self._stage: AggregationStage | None = None
        self._processed = -1

    def __call__(self, progress: AggregationProgress) -> None:
        if progress.stage != self._stage:
            self._stage = progress.stage
            label = _STAGE_LABELS.get(progress.stage)
            if label:
                click.echo(f"{label}...", err=True)
        if (
            progress.stage is AggregationStage.FETCHING_COMMITS
            and progress.repos_processed != self._processed
        ):
            self._processed = progress.repos_processed
            click.echo(
                f"  {progress.repos_processed} of {progress.total_repos} repositories processed",
                err=True,
            )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """ghrecap: what did a GitHub user or organization get done?"""
    load_dotenv()
    setup_logging(level="DEBUG" if verbose else None)


@main.command("recap")
@click.argument("login")
@click.option(
    "--timeframe",
    type=click.Choice([*TIMEFRAME_DAYS, CUSTOM]),
    default="week",
    show_default=True,
    help="Window to look back over",
)
@click.option("--days", type=int, default=None, help="Custom window in days (1-365)")
@click.option("--summary", "with_summary", is_flag=True, help="Stream an AI summary")
@click.option("--export", "with_export", is_flag=True, help="Save a shareable snapshot")
@click.option("--limit", default=20, show_default=True, help="Timeline items to print")
def recap(
    login: str,
    timeframe: str,
    days: int | None,
    with_summary: bool,
    with_export: bool,
    limit: int,
) -> None:
    """Aggregate LOGIN's commits, issues and pull requests."""
    if days is not None:
        timeframe = CUSTOM
    try:
        since, until = resolve_window(timeframe, days)
    except InvalidWindowError as e:
        raise click.BadParameter(str(e), param_hint="--days") from e

    settings = Settings.from_env()
    try:
        asyncio.run(
            _recap(settings, login, since, until, with_summary, with_export, limit)
        )
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


async def _recap(
    settings: Settings,
    login: str,
    since: datetime,
    until: datetime,
    with_summary: bool,
    with_export: bool,
    limit: int,
) -> None:
    async with GitHubClient(settings.github_token) as client:
        runner = ActivityRunner(client, settings)
        result = await runner.run(login, since, until=until, on_progress=_ProgressPrinter())

    view = TimelineView.from_buckets(result.commits, result.issues_and_prs)
    _print_recap(result, view, limit)

    summary = ""
    if with_summary:
        click.echo("\nSummary:\n")
        generator = SummaryGenerator(settings.summary_model)
        commits = [c for c in view.filtered() if item_type(c) == "commit"]
        parts: list[str] = []
        try:
            async for text in generator.stream(login, commits, result.issues_and_prs):
                parts.append(text)
                click.echo(text, nl=False)
        except SummaryError as e:
            # the recap above stays valid; a partial summary is not kept
            click.echo()
            click.echo(f"Summary failed: {e}", err=True)
        else:
            click.echo()
            summary = "".join(parts)

    if with_export:
        snapshot_id = await _export(settings, result, view, summary)
        click.echo(f"\nSaved snapshot: {settings.app_url}/share/{snapshot_id}")


def _print_recap(result: ActivityResult, view: TimelineView, limit: int) -> None:
    stats = view.stats()
    phrase = timeframe_phrase(result.since, result.until)
    click.echo(f"\n{result.actor} ({result.kind.value}) {phrase}:")
    click.echo(f"  Commits: {stats.commits}")
    click.echo(f"  Issues: {stats.issues}")
    click.echo(f"  Pull requests: {stats.pull_requests}")
    click.echo(f"  Repositories: {stats.repositories}")
    click.echo(f"  Branches: {stats.branches}")
    if result.failed_repositories:
        click.echo(f"  Skipped (fetch failed): {', '.join(result.failed_repositories)}")

    items = view.filtered()[:limit]
    if items:
        click.echo("\nLatest activity:")
    for item in items:
        kind = item_type(item)
        date = item.sort_date.date().isoformat()
        if kind == "commit":
            click.echo(f"  [commit] {date} {item.repository}@{item.branch}: {item.message_headline}")
        else:
            click.echo(f"  [{kind}] {date} {item.repository}#{item.number}: {item.title} ({item.state})")


async def _export(
    settings: Settings,
    result: ActivityResult,
    view: TimelineView,
    summary: str,
) -> str:
    from ghrecap.core.database import create_session_factory
    from ghrecap.dao.snapshot_dao import SnapshotDAO
    from ghrecap.services.snapshot_service import SnapshotService

    engine, factory = create_session_factory(settings.database_url, pooled=False)
    svc = SnapshotService(SnapshotDAO())
    commits = [c.to_wire() for c in view.filtered() if item_type(c) == "commit"]
    try:
        async with factory() as session:
            async with session.begin():
                snapshot = await svc.export(
                    session,
                    username=result.actor,
                    start_time=result.since,
                    end_time=result.until,
                    summary=summary,
                    commits=commits,
                    issues=[i.to_wire() for i in result.issues],
                    pull_requests=[p.to_wire() for p in result.pull_requests],
                )
        return snapshot.id
    finally:
        await engine.dispose()


@main.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "ghrecap.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
