"""Actor classification — organization or user."""

from __future__ import annotations

import httpx
import structlog

from ghrecap.engines.activity_collector.github_client import GitHubClient, RateLimitError
from ghrecap.engines.activity_collector.models import ActorKind

log = structlog.get_logger("ghrecap.engine")


async def classify_actor(client: GitHubClient, login: str) -> ActorKind:
    """Return ORGANIZATION if ``/orgs/{login}`` answers, USER otherwise.

    Fails open: any error, including a 404, means USER since most actors are
    individual accounts.
    """
    try:
        await client.get(f"/orgs/{login}")
    except (httpx.HTTPError, RateLimitError, ValueError) as exc:
        log.debug("classifier.user", actor=login, reason=str(exc))
        return ActorKind.USER
    log.debug("classifier.organization", actor=login)
    return ActorKind.ORGANIZATION
