"""Generic base DAO — primary-key reads and simple ordered listing."""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from ghrecap.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)

LIMIT_MIN = 1
LIMIT_MAX = 100


def _clamp_limit(limit: int) -> int:
    return max(LIMIT_MIN, min(limit, LIMIT_MAX))


class BaseDAO(Generic[ModelT]):
    """Base data-access object. Subclasses set the ``model`` class attribute."""

    model: type[ModelT]

    @staticmethod
    def _require_pk(pk: Any) -> None:
        if pk is None or pk == "":
            raise ValueError("pk must not be empty")

    async def get_by_id(self, session: AsyncSession, pk: Any) -> ModelT | None:
        self._require_pk(pk)
        return await session.get(self.model, pk)

    async def list(self, session: AsyncSession, query: Select, limit: int) -> list[ModelT]:
        """Run *query* (already ordered by the caller) with a clamped LIMIT."""
        result = await session.execute(query.limit(_clamp_limit(limit)))
        return list(result.scalars().all())
