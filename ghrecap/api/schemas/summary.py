"""Summary request schema."""

from __future__ import annotations

from pydantic import Field

from ghrecap.api.schemas.common import CamelModel, WireItem


class SummaryRequest(CamelModel):
    username: str = Field(min_length=1)
    commits: list[WireItem]
    issues_and_prs: list[WireItem] = Field(alias="issuesAndPRs")
