"""Issues router — issues and pull requests touched in the window."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ghrecap.api.deps import get_activity_runner
from ghrecap.api.schemas.activity import IssuesResponse
from ghrecap.core.timeframe import parse_timestamp
from ghrecap.engines.activity_collector.models import ActorKind
from ghrecap.engines.activity_collector.runner import ActivityRunner

router = APIRouter()


@router.get("", response_model=IssuesResponse)
async def list_issues(
    username: str = Query(..., min_length=1),
    from_: str = Query(..., alias="from"),
    is_org: bool = Query(False),
    runner: ActivityRunner = Depends(get_activity_runner),
) -> IssuesResponse:
    since = parse_timestamp(from_)
    kind = ActorKind.ORGANIZATION if is_org else ActorKind.USER
    items = await runner.issues(username, kind, since)
    return IssuesResponse(username=username, items=[i.to_wire() for i in items])
