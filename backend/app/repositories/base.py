from typing import Any, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import BaseModel

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common persistence operations.

    Domain-specific repositories extend this with their own queries.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize the repository.

        Args:
            model: The SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def save(self, instance: ModelType) -> ModelType:
        """
        Insert or update an entity.

        Args:
            instance: New or already-attached entity

        Returns:
            The persisted entity with generated fields refreshed
        """
        self.db.add(instance)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """
        Retrieve an entity by its ID.

        Args:
            id: The UUID of the entity

        Returns:
            The entity if found, None otherwise
        """
        stmt = select(self.model).where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        """
        Retrieve entities with pagination, oldest first.

        Args:
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return

        Returns:
            List of entities
        """
        stmt = (
            select(self.model)
            .order_by(self.model.created_at, self.model.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, instance: ModelType) -> None:
        """
        Delete an entity.

        Args:
            instance: Attached entity to remove
        """
        await self.db.delete(instance)
        await self.db.flush()

    async def count(self, **filters: Any) -> int:
        """
        Count entities matching field equality filters.

        Args:
            **filters: Field equality filters (e.g., status=PolicyStatus.ACTIVE)

        Returns:
            Count of matching entities
        """
        stmt = select(func.count()).select_from(self.model)

        for field, value in filters.items():
            if hasattr(self.model, field):
                stmt = stmt.where(getattr(self.model, field) == value)

        result = await self.db.execute(stmt)
        return result.scalar_one()
