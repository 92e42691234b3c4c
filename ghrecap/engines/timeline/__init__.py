"""Merged activity timeline — pure, no I/O."""

from ghrecap.engines.timeline.view import (
    ALL_TYPES,
    PAGE_SIZE,
    ActivityStats,
    TimelineItem,
    TimelineView,
    compute_stats,
    dedupe_commits,
    item_type,
)

__all__ = [
    "ALL_TYPES",
    "PAGE_SIZE",
    "ActivityStats",
    "TimelineItem",
    "TimelineView",
    "compute_stats",
    "dedupe_commits",
    "item_type",
]
