"""Generic repository shared by the tenant, invitation and entity repositories.

Every bizcore table has a UUID primary key, so the repository is generic over
the model only::

    class WorkspaceRepository(BaseRepository[Workspace]):
        ...

Repositories never commit. Writes are flushed so generated ids and defaults
are visible, and the calling service (or router) decides when the unit of
work ends.
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from bizcore.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """CRUD helpers bound to one session and one model.

    Attributes:
        model: Model class, taken from the generic parameter
        db: The session all reads and writes go through
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession):
        self.db = db

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", ()):
            for arg in getattr(base, "__args__", ()):
                if isinstance(arg, type) and issubclass(arg, Base):
                    cls.model = arg
                    return

    @property
    def pk(self) -> InstrumentedAttribute:
        return getattr(self.model, self.model.__mapper__.primary_key[0].key)

    async def get(self, pk: UUID) -> ModelType | None:
        return await self.db.get(self.model, pk)

    async def get_many(self, pks: Sequence[UUID]) -> list[ModelType]:
        """Load several rows; ids that match nothing are skipped."""
        if not pks:
            return []
        result = await self.db.execute(select(self.model).where(self.pk.in_(pks)))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def exists(self, pk: UUID) -> bool:
        result = await self.db.execute(select(self.pk).where(self.pk == pk).limit(1))
        return result.first() is not None

    async def create(self, obj: ModelType) -> ModelType:
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def update(self, obj: ModelType, updates: dict[str, Any]) -> ModelType:
        """Apply ``updates`` to mapped attributes; unknown keys are ignored."""
        columns = self.model.__mapper__.attrs.keys()
        for field, value in updates.items():
            if field in columns:
                setattr(obj, field, value)
        await self.db.flush()
        return obj

    async def delete(self, obj: ModelType) -> None:
        await self.db.delete(obj)
        await self.db.flush()
