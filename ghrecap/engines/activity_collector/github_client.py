"""Async GitHub REST + GraphQL client with pagination and retries."""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import structlog

log = structlog.get_logger("ghrecap.engine")

_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')

_API_BASE = "https://api.github.com"
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds


class RateLimitError(Exception):
    """Raised when GitHub keeps answering with a rate-limit 403."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class GraphQLError(Exception):
    """A GraphQL response carried an ``errors`` array."""

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        self.errors = errors
        messages = "; ".join(str(e.get("message", e)) for e in errors) or "unknown error"
        super().__init__(f"graphql error: {messages}")


class GitHubClient:
    """Thin async wrapper around api.github.com.

    One instance is created per process and shared by every run; it holds no
    per-run state.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = _API_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single GET, returns parsed JSON. Non-2xx raises ``httpx.HTTPStatusError``."""
        response = await self._request_with_retry("GET", path, params=params)
        await self._check_rate_limit(response)
        return response.json()

    async def get_paginated(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        max_pages: int = 10,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Yield items of a list endpoint, following ``Link: rel="next"``.

        Stops when there is no next link, when a page comes back empty, or
        after *max_pages* pages.
        """
        url: str | None = path
        params = dict(params or {})
        params.setdefault("per_page", 100)
        page = 0

        while url and page < max_pages:
            # the next link already carries the query string
            response = await self._request_with_retry(
                "GET", url, params=params if page == 0 else None
            )
            await self._check_rate_limit(response)

            data = response.json()
            items = data if isinstance(data, list) else data.get("items", [])
            if not items:
                return
            for item in items:
                yield item

            url = self._parse_next_link(response.headers.get("Link", ""))
            page += 1

    async def search(
        self,
        kind: str,
        query: str,
        *,
        max_pages: int = 10,
        **params: Any,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Yield ``items`` from ``/search/{kind}`` (``issues``, ``commits``…).

        The search API never returns more than 1000 results, i.e. 10 pages.
        """
        async for item in self.get_paginated(
            f"/search/{kind}", {"q": query, **params}, max_pages=min(max_pages, 10)
        ):
            yield item

    async def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` object.

        Raises :class:`GraphQLError` when the response carries ``errors``.
        """
        response = await self._request_with_retry(
            "POST", "/graphql", json={"query": query, "variables": variables or {}}
        )
        await self._check_rate_limit(response)
        body = response.json()
        if body.get("errors"):
            raise GraphQLError(body["errors"])
        return body.get("data") or {}

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send with exponential backoff on 5xx, rate-limit 403 and timeouts."""
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._client.request(method, url, params=params, json=json)

                if resp.status_code in (403, 429) and self._is_rate_limited(resp):
                    wait = self._get_rate_limit_wait(resp)
                    log.warning(
                        "github.rate_limit",
                        url=url,
                        wait_seconds=wait,
                        attempt=attempt + 1,
                        max_retries=_MAX_RETRIES,
                    )
                    last_exc = RateLimitError(wait)
                    if attempt < _MAX_RETRIES - 1:
                        await asyncio.sleep(wait)
                    continue

                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp

                log.warning(
                    "github.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code} from {url}", request=resp.request, response=resp
                )
            except httpx.TimeoutException as exc:
                log.warning("github.timeout", url=url, attempt=attempt + 1, max_retries=_MAX_RETRIES)
                last_exc = exc

            if attempt < _MAX_RETRIES - 1:
                await asyncio.sleep(_RETRY_BASE_DELAY * (2**attempt))

        raise last_exc  # type: ignore[misc]

    async def _check_rate_limit(self, response: httpx.Response) -> None:
        """Sleep until the window resets when the last call used the final request."""
        remaining = self._parse_header_int(response.headers.get("X-RateLimit-Remaining"))
        if remaining == 0:
            wait = self._get_rate_limit_wait(response)
            log.warning("github.rate_limit_wait", wait_seconds=wait)
            await asyncio.sleep(wait)

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if GitHubClient._parse_header_int(response.headers.get("X-RateLimit-Remaining")) == 0:
            return True
        # secondary (abuse) limits only send Retry-After
        return "Retry-After" in response.headers

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        retry_after = GitHubClient._parse_header_int(response.headers.get("Retry-After"))
        if retry_after is not None:
            return max(retry_after, 1)
        reset_ts = GitHubClient._parse_header_int(response.headers.get("X-RateLimit-Reset"))
        if reset_ts is not None:
            return max(reset_ts - int(time.time()), 1)
        return 60

    @staticmethod
    def _parse_header_int(value: str | None) -> int | None:
        if value is None:
            return None
        try:
            return int(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        match = _NEXT_LINK_RE.search(link_header)
        return match.group(1) if match else None
