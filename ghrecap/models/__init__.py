"""SQLAlchemy ORM models — one file per table."""

from ghrecap.models.activity_snapshot import ActivitySnapshot

__all__ = ["ActivitySnapshot"]
