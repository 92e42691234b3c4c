"""GitHub identifier helpers."""

from __future__ import annotations

from typing import Any

_API_REPOS_MARKER = "/repos/"


def parse_repo_ref(value: str) -> str | None:
    """Return ``owner/name`` from any of the forms GitHub hands back.

    Handles:
      - owner/name
      - https://api.github.com/repos/owner/name
      - https://github.com/owner/name[.git]
      - https://github.com/owner/name/issues/12 (html_url of an issue or PR)
      - git@github.com:owner/name.git
    """
    value = value.strip().rstrip("/")
    if not value:
        return None
    if value.endswith(".git"):
        value = value[:-4]

    if value.startswith("git@"):
        _, _, value = value.partition(":")
        parts = value.split("/")
    elif "://" in value:
        _, _, rest = value.partition("://")
        if _API_REPOS_MARKER in rest:
            rest = rest.split(_API_REPOS_MARKER, 1)[1]
            parts = rest.split("/")
        else:
            # drop the host, keep owner/name and whatever follows
            parts = rest.split("/")[1:]
    else:
        parts = value.split("/")

    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return f"{parts[0]}/{parts[1]}"


def repo_from_search_item(item: dict[str, Any]) -> str | None:
    """Owning repository of an issue/PR search result.

    The search API sometimes nests a ``repository`` object and sometimes only
    carries ``repository_url``; fall back to ``html_url`` as a last resort.
    """
    repository = item.get("repository")
    if isinstance(repository, dict):
        for key in ("full_name", "nameWithOwner"):
            name = repository.get(key)
            if name:
                return parse_repo_ref(name)
    elif isinstance(repository, str) and repository:
        return parse_repo_ref(repository)

    for key in ("repository_url", "html_url"):
        url = item.get(key)
        if url:
            parsed = parse_repo_ref(url)
            if parsed:
                return parsed
    return None


def split_repo_ref(ref: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts.

    Raises ValueError if *ref* is not of that form.
    """
    parsed = parse_repo_ref(ref)
    if parsed is None:
        raise ValueError(f"cannot parse repository reference: {ref!r}")
    owner, name = parsed.split("/", 1)
    return owner, name
