"""Activity, snapshot, timeline and share-card schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from ghrecap.api.schemas.common import CamelModel, PageMeta, WireItem


class ActorResponse(CamelModel):
    login: str
    kind: str
    is_org: bool


class RepositoriesResponse(CamelModel):
    username: str
    repositories: list[str]


class IssuesResponse(CamelModel):
    username: str
    items: list[WireItem]


class ExportSnapshotRequest(CamelModel):
    id: str | None = None
    username: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    summary: str = ""
    commits: list[WireItem] = Field(default_factory=list)
    issues: list[WireItem] = Field(default_factory=list)
    pull_requests: list[WireItem] = Field(default_factory=list)


class SnapshotResponse(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    username: str
    start_time: datetime
    end_time: datetime
    summary: str
    commits: list[WireItem]
    issues: list[WireItem]
    pull_requests: list[WireItem]
    created_at: datetime
    updated_at: datetime


class StatsResponse(CamelModel):
    commits: int
    issues: int
    pull_requests: int
    repositories: int
    branches: int


class TimelineResponse(CamelModel):
    data: list[WireItem]
    meta: PageMeta
    stats: StatsResponse
    repositories: list[str]
    types: list[str]


class CardResponse(CamelModel):
    id: str
    title: str
    description: str
    timeframe: str
    url: str
    username: str
    commits: int
    issues: int
    pull_requests: int
    repositories: int
    start_date: str
    end_date: str
