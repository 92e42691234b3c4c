"""activity_snapshots table."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Text, desc, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ghrecap.core.database import Base, TimestampMixin


class ActivitySnapshot(TimestampMixin, Base):
    """A shareable, exported aggregation run plus its summary.

    Keyed by ``<actor>-<start>-to-<end>``; exporting the same actor and
    window again overwrites the row.
    """

    __tablename__ = "activity_snapshots"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))

    # wire-format (camelCase) lists
    commits: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )
    issues: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )
    pull_requests: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )

    __table_args__ = (
        Index("idx_activity_snapshots_username_start", "username", desc("start_time")),
        Index("idx_activity_snapshots_start", desc("start_time")),
    )
