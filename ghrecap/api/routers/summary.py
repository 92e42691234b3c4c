"""Summary router — streamed markdown summary of merged activity."""

from __future__ import annotations

from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ghrecap.api.deps import get_summary_generator
from ghrecap.api.schemas.summary import SummaryRequest
from ghrecap.api.streaming import SSE_HEADERS
from ghrecap.engines.activity_collector.models import EnrichedCommit, IssueOrPR
from ghrecap.engines.summarizer.generator import SummaryGenerator
from ghrecap.services import SummaryError, ValidationError

router = APIRouter()
log = structlog.get_logger("ghrecap.api")


def _parse_body(body: SummaryRequest) -> tuple[list[EnrichedCommit], list[IssueOrPR]]:
    try:
        commits = [EnrichedCommit.from_wire(c) for c in body.commits]
        items = [IssueOrPR.from_wire(i) for i in body.issues_and_prs]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(f"invalid activity payload: {exc}") from exc
    return commits, items


async def _relay(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
    yield first
    try:
        async for text in rest:
            yield text
    except SummaryError:
        # headers are already sent; the client sees the stream end without [DONE]
        log.warning("summary.stream_aborted")


@router.post("")
async def summarize(
    body: SummaryRequest,
    generator: SummaryGenerator = Depends(get_summary_generator),
) -> StreamingResponse:
    commits, items = _parse_body(body)
    chunks = generator.stream_with_sentinel(body.username, commits, items)
    # pull the first fragment here so a failing model call is a 502, not an empty stream
    first = await anext(chunks)
    return StreamingResponse(
        _relay(first, chunks), media_type="text/event-stream", headers=SSE_HEADERS
    )
