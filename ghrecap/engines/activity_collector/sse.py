"""Text-event-stream codec for the commit progress protocol.

Every event is one ``data: <payload>`` line followed by a blank line. A
payload is either a progress line (``"3 of 7 repositories processed"``) or
the terminal JSON document — ``{"defaultBranch": [...], "otherBranches":
[...]}`` on success, ``{"error": "..."}`` when the run aborted.
"""

from __future__ import annotations

import codecs
import json
import re
from collections.abc import AsyncIterator, Iterator
from typing import Any

from ghrecap.engines.activity_collector.models import CommitBuckets, ProgressEvent, StreamFailure

PROGRESS_RE = re.compile(r"^(\d+) of (\d+) repositories processed$")
_DATA_PREFIX = "data: "


def encode_event(payload: str) -> str:
    return f"{_DATA_PREFIX}{payload}\n\n"


def encode_message(message: ProgressEvent | CommitBuckets | StreamFailure) -> str:
    if isinstance(message, ProgressEvent):
        return encode_event(message.message())
    if isinstance(message, StreamFailure):
        return encode_event(json.dumps({"error": message.error}))
    return encode_event(json.dumps(message.to_wire()))


def decode_payload(payload: str) -> ProgressEvent | CommitBuckets | StreamFailure:
    """Classify one payload; the progress pattern is tried first.

    Raises ValueError if the payload is neither kind.
    """
    match = PROGRESS_RE.match(payload.strip())
    if match:
        return ProgressEvent(processed=int(match.group(1)), total=int(match.group(2)))
    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError(f"unrecognised stream payload: {payload[:80]!r}") from exc
    if isinstance(data, dict) and "error" in data:
        return StreamFailure(error=str(data["error"]))
    if isinstance(data, dict):
        return CommitBuckets.from_wire(data)
    raise ValueError(f"unrecognised stream payload: {payload[:80]!r}")


class SSEDecoder:
    """Incremental decoder; chunks may split lines anywhere."""

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: str | bytes) -> Iterator[ProgressEvent | CommitBuckets | StreamFailure]:
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            if line.startswith(_DATA_PREFIX):
                yield decode_payload(line[len(_DATA_PREFIX) :])

    def flush(self) -> Iterator[ProgressEvent | CommitBuckets | StreamFailure]:
        """Decode a trailing line the producer did not terminate."""
        rest, self._buffer = self._buffer, ""
        if rest.startswith(_DATA_PREFIX):
            yield decode_payload(rest[len(_DATA_PREFIX) :])


async def decode_stream(
    chunks: AsyncIterator[str | bytes],
) -> AsyncIterator[ProgressEvent | CommitBuckets | StreamFailure]:
    """Decode an async byte/text stream (e.g. ``httpx.Response.aiter_text()``)."""
    decoder = SSEDecoder()
    async for chunk in chunks:
        for message in decoder.feed(chunk):
            yield message
    for message in decoder.flush():
        yield message
