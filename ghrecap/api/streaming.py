"""Server-sent event responses for the commit stream."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi.responses import StreamingResponse

from ghrecap.engines.activity_collector.runner import StreamMessage
from ghrecap.engines.activity_collector.sse import encode_message

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _encoded(messages: AsyncIterator[StreamMessage]) -> AsyncIterator[str]:
    async for message in messages:
        yield encode_message(message)


def event_stream_response(messages: AsyncIterator[StreamMessage]) -> StreamingResponse:
    """Wrap typed stream messages as ``text/event-stream``."""
    return StreamingResponse(
        _encoded(messages), media_type="text/event-stream", headers=SSE_HEADERS
    )
