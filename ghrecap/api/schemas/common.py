"""Shared schema base and pagination metadata."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase, serialises camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PageMeta(CamelModel):
    """Offset pagination metadata (1-based pages)."""

    page: int
    page_size: int
    total: int
    total_pages: int
    has_more: bool


# Commits and issues travel in their camelCase wire form, untouched.
WireItem = dict[str, Any]
