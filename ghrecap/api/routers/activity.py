"""Activity router — live aggregation stream and exported snapshots."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ghrecap.api.deps import (
    get_activity_runner,
    get_session,
    get_settings,
    get_snapshot_service,
)
from ghrecap.api.schemas.activity import (
    CardResponse,
    ExportSnapshotRequest,
    SnapshotResponse,
    StatsResponse,
    TimelineResponse,
)
from ghrecap.api.schemas.common import PageMeta
from ghrecap.api.streaming import event_stream_response
from ghrecap.core.config import Settings
from ghrecap.core.timeframe import resolve_window
from ghrecap.engines.activity_collector.runner import ActivityRunner
from ghrecap.engines.timeline import ALL_TYPES
from ghrecap.services import ValidationError
from ghrecap.services.snapshot_service import SnapshotService

router = APIRouter()


@router.get("/stream")
async def stream_activity(
    username: str = Query(..., min_length=1),
    timeframe: str = Query("week"),
    days: int | None = Query(None),
    runner: ActivityRunner = Depends(get_activity_runner),
) -> StreamingResponse:
    """Classify, discover, then stream commits.

    Discovery finishes before the response starts, so an actor with no
    recent repositories gets a 404 instead of an empty stream.
    """
    since, _until = resolve_window(timeframe, days)
    kind = await runner.classify(username)
    repos = await runner.discover(username, kind, since)
    return event_stream_response(runner.commit_stream(repos, username, kind, since))


@router.post("", response_model=SnapshotResponse)
async def export_snapshot(
    body: ExportSnapshotRequest,
    session: AsyncSession = Depends(get_session),
    svc: SnapshotService = Depends(get_snapshot_service),
) -> SnapshotResponse:
    snapshot = await svc.export(
        session,
        username=body.username,
        start_time=body.start_time,
        end_time=body.end_time,
        summary=body.summary,
        commits=body.commits,
        issues=body.issues,
        pull_requests=body.pull_requests,
        snapshot_id=body.id,
    )
    return SnapshotResponse.model_validate(snapshot)


@router.get("", response_model=SnapshotResponse | list[SnapshotResponse])
async def read_snapshots(
    id: str | None = Query(None),
    username: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
    svc: SnapshotService = Depends(get_snapshot_service),
) -> SnapshotResponse | list[SnapshotResponse]:
    """One snapshot by ``id``, else the 10 latest (optionally per username)."""
    if id:
        return SnapshotResponse.model_validate(await svc.get(session, id))
    snapshots = await svc.list_recent(session, username or None)
    return [SnapshotResponse.model_validate(s) for s in snapshots]


@router.get("/{snapshot_id}/timeline", response_model=TimelineResponse)
async def snapshot_timeline(
    snapshot_id: str,
    page: int = Query(1, ge=1),
    types: str | None = Query(None, description="comma-separated: commit,issue,pr"),
    repo: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
    svc: SnapshotService = Depends(get_snapshot_service),
) -> TimelineResponse:
    snapshot = await svc.get(session, snapshot_id)
    view = svc.timeline(snapshot)
    if types:
        wanted = [t.strip() for t in types.split(",") if t.strip()]
        unknown = [t for t in wanted if t not in ALL_TYPES]
        if unknown:
            raise ValidationError(f"unknown item types: {', '.join(unknown)}")
        view.set_types(wanted)
    view.select_repository(repo)
    view.go_to(page)

    stats = view.stats()
    return TimelineResponse(
        data=[item.to_wire() for item in view.page_items()],
        meta=PageMeta(
            page=view.page,
            page_size=view.page_size,
            total=view.total_items,
            total_pages=view.total_pages,
            has_more=view.page < view.total_pages,
        ),
        stats=StatsResponse(
            commits=stats.commits,
            issues=stats.issues,
            pull_requests=stats.pull_requests,
            repositories=stats.repositories,
            branches=stats.branches,
        ),
        repositories=view.repositories(),
        types=sorted(view.types),
    )


@router.get("/{snapshot_id}/card", response_model=CardResponse)
async def snapshot_card(
    snapshot_id: str,
    session: AsyncSession = Depends(get_session),
    svc: SnapshotService = Depends(get_snapshot_service),
    settings: Settings = Depends(get_settings),
) -> CardResponse:
    snapshot = await svc.get(session, snapshot_id)
    return CardResponse(**svc.card(snapshot, settings.app_url))
