"""Actors router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ghrecap.api.deps import get_activity_runner
from ghrecap.api.schemas.activity import ActorResponse
from ghrecap.engines.activity_collector.runner import ActivityRunner

router = APIRouter()


@router.get("/{login}", response_model=ActorResponse)
async def classify(
    login: str,
    runner: ActivityRunner = Depends(get_activity_runner),
) -> ActorResponse:
    kind = await runner.classify(login)
    return ActorResponse(login=login, kind=kind.value, is_org=kind.is_org)
