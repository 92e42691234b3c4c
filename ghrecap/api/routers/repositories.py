"""Repositories router — discovery only."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ghrecap.api.deps import get_activity_runner
from ghrecap.api.schemas.activity import RepositoriesResponse
from ghrecap.core.timeframe import parse_timestamp
from ghrecap.engines.activity_collector.runner import ActivityRunner

router = APIRouter()


@router.get("", response_model=RepositoriesResponse)
async def list_repositories(
    username: str = Query(..., min_length=1),
    from_: str = Query(..., alias="from"),
    runner: ActivityRunner = Depends(get_activity_runner),
) -> RepositoriesResponse:
    since = parse_timestamp(from_)
    kind = await runner.classify(username)
    repos = await runner.discover(username, kind, since)
    return RepositoriesResponse(username=username, repositories=repos)
