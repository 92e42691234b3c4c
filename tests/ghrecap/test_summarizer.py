"""Tests for the summary prompt and the streaming generator (litellm mocked)."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from ghrecap.engines.activity_collector.models import EnrichedCommit, IssueOrPR
from ghrecap.engines.summarizer import DONE_SENTINEL, SummaryGenerator, build_summary_prompt
from ghrecap.services import SummaryError, UpstreamError

COMMIT = EnrichedCommit(
    oid="abc",
    message_headline="feat: add timeline filters",
    committed_date=datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc),
    repository_name="app",
    repository_name_with_owner="acme/app",
    branch="main",
    additions=120,
    deletions=8,
    author_login="alice",
)
PR = IssueOrPR(
    id=1,
    number=42,
    title="Add timeline filters",
    state="closed",
    repository="acme/app",
    created_at=datetime(2024, 3, 4, tzinfo=timezone.utc),
    updated_at=datetime(2024, 3, 6, tzinfo=timezone.utc),
    url="https://github.com/acme/app/pull/42",
    type="pr",
)


def _chunk(text: str | None):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def _stream(*texts: str | None):
    async def gen():
        for text in texts:
            yield _chunk(text)

    return gen()


class TestPrompt:
    def test_deterministic(self):
        assert build_summary_prompt("alice", [COMMIT], [PR]) == build_summary_prompt(
            "alice", [COMMIT], [PR]
        )

    def test_contents(self):
        prompt = build_summary_prompt("alice", [COMMIT], [PR])
        assert "GitHub activity for alice" in prompt
        assert "Repository: acme/app\nMessage: feat: add timeline filters" in prompt
        assert "Changes: +120 -8 lines" in prompt
        assert "Date: 2024-03-05" in prompt
        assert "Type: PR" in prompt
        assert "Number: #42" in prompt
        assert "Updated: 2024-03-06" in prompt
        assert "1. A brief overview of total activity" in prompt

    def test_empty_sections(self):
        prompt = build_summary_prompt("alice", [], [])
        assert "COMMITS:\n(none)" in prompt
        assert "ISSUES AND PULL REQUESTS:\n(none)" in prompt

    def test_entries_are_separated(self):
        prompt = build_summary_prompt("alice", [COMMIT, COMMIT], [])
        assert prompt.count("\n---\n") == 1


class TestGenerator:
    @pytest.mark.asyncio
    async def test_streams_fragments(self):
        mock = AsyncMock(return_value=_stream("## Overview", None, "\n- shipped filters"))
        with patch("litellm.acompletion", mock):
            gen = SummaryGenerator("anthropic/claude-3-opus-20240229")
            parts = [t async for t in gen.stream("alice", [COMMIT], [PR])]

        assert parts == ["## Overview", "\n- shipped filters"]
        kwargs = mock.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 4000
        assert kwargs["messages"][0]["content"] == build_summary_prompt("alice", [COMMIT], [PR])

    @pytest.mark.asyncio
    async def test_sentinel_comes_last(self):
        with patch("litellm.acompletion", AsyncMock(return_value=_stream("a", "b"))):
            gen = SummaryGenerator("m")
            parts = [t async for t in gen.stream_with_sentinel("alice", [], [])]
        assert parts == ["a", "b", DONE_SENTINEL]

    @pytest.mark.asyncio
    async def test_generate_joins(self):
        with patch("litellm.acompletion", AsyncMock(return_value=_stream("a", "b"))):
            assert await SummaryGenerator("m").generate("alice", [], []) == "ab"

    @pytest.mark.asyncio
    async def test_api_key_forwarded(self):
        mock = AsyncMock(return_value=_stream())
        with patch("litellm.acompletion", mock):
            await SummaryGenerator("m", api_key="sk-test").generate("alice", [], [])
        assert mock.call_args.kwargs["api_key"] == "sk-test"

    @pytest.mark.asyncio
    async def test_call_failure_raises_summary_error(self):
        with patch("litellm.acompletion", AsyncMock(side_effect=RuntimeError("overloaded"))):
            gen = SummaryGenerator("m")
            with pytest.raises(SummaryError, match="overloaded") as exc_info:
                await gen.generate("alice", [COMMIT], [])
        assert isinstance(exc_info.value, UpstreamError)

    @pytest.mark.asyncio
    async def test_no_sentinel_after_failure(self):
        async def broken():
            yield _chunk("partial")
            raise RuntimeError("connection dropped")

        parts: list[str] = []
        with patch("litellm.acompletion", AsyncMock(return_value=broken())):
            with pytest.raises(SummaryError):
                async for text in SummaryGenerator("m").stream_with_sentinel("alice", [], []):
                    parts.append(text)
        assert parts == ["partial"]
