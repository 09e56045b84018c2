"""Generic async repository.

A repository wraps one ``AsyncSession`` and owns the primary-key
operations every table needs. Table-specific queries live on subclasses,
which bind their model through the generic parameter:

    class ShareRepository(BaseRepository[Share, UUID]):
        ...
"""

from typing import Any, Generic, TypeVar, get_args
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tempshare.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Primary-key operations shared by all repositories.

    Writes commit immediately; each store operation runs in its own session.
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for generic_base in getattr(cls, "__orig_bases__", ()):
            model = next(iter(get_args(generic_base)), None)
            if isinstance(model, type) and issubclass(model, Base):
                cls.model = model
                break

    @property
    def pk(self) -> Any:
        """Primary key column of the bound model."""
        return self.model.__mapper__.primary_key[0]

    async def get(self, pk: PKType) -> ModelType | None:
        return await self.db.get(self.model, pk)

    async def create(self, obj: ModelType) -> ModelType:
        """Insert ``obj`` and return it refreshed with database defaults."""
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def delete_by_pk(self, pk: PKType) -> bool:
        """Delete by primary key.

        Returns:
            True if a row was deleted. A missing row is not an error.
        """
        result = await self.db.execute(delete(self.model).where(self.pk == pk))
        await self.db.commit()
        return (result.rowcount or 0) > 0

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(self.pk)))
        return result.scalar() or 0
