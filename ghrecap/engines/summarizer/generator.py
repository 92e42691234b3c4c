"""Streaming summary generation through litellm."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

import litellm
import structlog

from ghrecap.engines.activity_collector.models import EnrichedCommit, IssueOrPR
from ghrecap.engines.summarizer.prompt import build_summary_prompt
from ghrecap.services import SummaryError

log = structlog.get_logger("ghrecap.engine.summarizer")

DONE_SENTINEL = "[DONE]"


class SummaryGenerator:
    """Async wrapper around ``litellm.acompletion(stream=True)``.

    Usage::

        generator = SummaryGenerator(model="anthropic/claude-3-opus-20240229")
        async for text in generator.stream("octocat", commits, items):
            ...
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        temperature: float = 0.5,
        max_tokens: int = 4000,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def stream(
        self,
        actor: str,
        commits: Sequence[EnrichedCommit],
        issues_and_prs: Sequence[IssueOrPR],
    ) -> AsyncIterator[str]:
        """Yield markdown fragments as the model produces them.

        Raises :class:`SummaryError` if the model call fails at any point.
        """
        prompt = build_summary_prompt(actor, commits, issues_and_prs)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": True,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key

        t0 = time.monotonic()
        chars = 0
        try:
            response = await litellm.acompletion(**kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    chars += len(text)
                    yield text
        except Exception as exc:
            log.error("summary.failed", actor=actor, model=self.model, error=str(exc))
            raise SummaryError(f"failed to generate summary: {exc}") from exc

        log.info(
            "summary.done",
            actor=actor,
            model=self.model,
            chars=chars,
            latency_ms=int((time.monotonic() - t0) * 1000),
        )

    async def stream_with_sentinel(
        self,
        actor: str,
        commits: Sequence[EnrichedCommit],
        issues_and_prs: Sequence[IssueOrPR],
    ) -> AsyncIterator[str]:
        """:meth:`stream` followed by :data:`DONE_SENTINEL` once exhausted."""
        async for text in self.stream(actor, commits, issues_and_prs):
            yield text
        yield DONE_SENTINEL

    async def generate(
        self,
        actor: str,
        commits: Sequence[EnrichedCommit],
        issues_and_prs: Sequence[IssueOrPR],
    ) -> str:
        parts = [text async for text in self.stream(actor, commits, issues_and_prs)]
        return "".join(parts)
