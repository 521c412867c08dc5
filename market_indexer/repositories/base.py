"""
Base repository.

Keyed lookups and writes shared by every indexed entity.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.base import Base

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository for indexed entities.

    Writes only flush; the event pipeline owns the commit so that a log
    and everything derived from it land together.

    Type Parameters:
        ModelType: SQLAlchemy model class

    Example:
        class PositionRepository(BaseRepository[Position]):
            def __init__(self, session: AsyncSession):
                super().__init__(Position, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Get entity by primary key."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Get single entity by column values.

        Args:
            **filters: Column filters

        Returns:
            First matching entity or None
        """
        stmt = select(self.model).filter_by(**filters).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(self, **data: Any) -> ModelType:
        """
        Insert an entity and flush it so its id is assigned.

        Args:
            **data: Entity data

        Returns:
            Created entity
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity: ModelType, **data: Any) -> ModelType:
        """Apply changes to a loaded entity and flush."""
        for key, value in data.items():
            setattr(entity, key, value)

        await self.session.flush()
        return entity

    async def blocks_in_range(
        self,
        from_block: int,
        to_block: int,
        *criteria: ColumnElement[bool],
    ) -> set[int]:
        """
        Block numbers in [from_block, to_block] holding matching rows.

        Args:
            from_block: First block, inclusive
            to_block: Last block, inclusive
            *criteria: Extra WHERE clauses

        Returns:
            Distinct block numbers
        """
        block_number = self.model.block_number
        stmt = (
            select(block_number)
            .where(
                block_number >= from_block,
                block_number <= to_block,
                *criteria,
            )
            .distinct()
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())
