from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import object_session

from src.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Base repository implementing common CRUD operations for tenant models.

    Lookups always take the tenant ID so a record from another tenant is
    indistinguishable from a missing one.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: str, tenant_id: str) -> ModelType | None:
        """Get a single record by ID within a tenant"""
        # Cast to Any for SQLAlchemy dynamic attribute access (columns come from mixins)
        model: Any = self.model
        result = await self.db.execute(
            select(self.model).where(model.id == id, model.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def create(self, obj: ModelType) -> ModelType:
        """Create a new record"""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """
        Update an existing record.

        Handles potentially detached objects by merging back to session.
        """
        if object_session(obj) is None:
            obj = await self.db.merge(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        """Delete a record"""
        # delete() is awaitable on AsyncSession
        await self.db.delete(obj)
        await self.db.flush()
