"""
Key-value repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.key_value import KeyValue
from market_indexer.repositories.base import BaseRepository


class KeyValueRepository(BaseRepository[KeyValue]):
    """Repository for KeyValue entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(KeyValue, session)

    async def get_value(self, key: str) -> str | None:
        entry = await self.get_by_id(key)
        return entry.value if entry else None

    async def set_value(self, key: str, value: str) -> None:
        entry = await self.get_by_id(key)
        if entry is None:
            self.session.add(KeyValue(key=key, value=value))
        else:
            entry.value = value
        await self.session.flush()
