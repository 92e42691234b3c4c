"""Snapshot store plumbing: declarative base, timestamps, engine factory."""

from datetime import datetime

from sqlalchemy import DateTime, MetaData, func
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "pk": "pk_%(table_name)s",
        }
    )


class TimestampMixin:
    """created_at / updated_at; upserts bump updated_at explicitly."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


def create_session_factory(
    database_url: str, *, pooled: bool = True
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Engine plus session factory for *database_url*.

    ``pooled=False`` is for one-shot callers such as the CLI export, which
    open a single connection and dispose the engine right after.
    """
    if pooled:
        engine = create_async_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            pool_recycle=1800,
        )
    else:
        engine = create_async_engine(database_url, pool_size=1, max_overflow=0)
    return engine, async_sessionmaker(engine, expire_on_commit=False)
