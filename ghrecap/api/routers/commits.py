"""Commits router — batched commit fetch streamed as server-sent events."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ghrecap.api.deps import get_activity_runner
from ghrecap.api.streaming import event_stream_response
from ghrecap.core.github import parse_repo_ref
from ghrecap.core.timeframe import parse_timestamp
from ghrecap.engines.activity_collector.models import ActorKind
from ghrecap.engines.activity_collector.runner import ActivityRunner
from ghrecap.services import ValidationError

router = APIRouter()


def parse_repos_param(raw: str) -> list[str]:
    """Decode the ``repos`` query value: a JSON array of repository refs."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"repos must be a JSON array: {exc.msg}") from exc
    if not isinstance(value, list) or not value:
        raise ValidationError("repos must be a non-empty JSON array")

    repos: list[str] = []
    for entry in value:
        ref = parse_repo_ref(entry) if isinstance(entry, str) else None
        if ref is None:
            raise ValidationError(f"invalid repository reference: {entry!r}")
        if ref not in repos:
            repos.append(ref)
    return repos


@router.get("")
async def stream_commits(
    username: str = Query(..., min_length=1),
    from_: str = Query(..., alias="from"),
    repos: str = Query(...),
    is_org: bool = Query(False),
    runner: ActivityRunner = Depends(get_activity_runner),
) -> StreamingResponse:
    since = parse_timestamp(from_)
    repo_list = parse_repos_param(repos)
    kind = ActorKind.ORGANIZATION if is_org else ActorKind.USER
    return event_stream_response(runner.commit_stream(repo_list, username, kind, since))
