"""
IndexerCursor repository.

Resume points for backfill and live catch-up.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.indexer_cursor import IndexerCursor
from market_indexer.repositories.base import BaseRepository


class IndexerCursorRepository(BaseRepository[IndexerCursor]):
    """Repository for IndexerCursor entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(IndexerCursor, session)

    async def get_or_create(
        self, chain_id: int, contract_address: str, indexer: str
    ) -> IndexerCursor:
        """Get the cursor for an indexer instance, creating it at block 0."""
        cursor = await self.get_by(
            chain_id=chain_id,
            contract_address=contract_address,
            indexer=indexer,
        )
        if cursor is None:
            cursor = await self.create(
                chain_id=chain_id,
                contract_address=contract_address,
                indexer=indexer,
                last_processed_block=0,
            )
        return cursor

    async def advance(self, cursor: IndexerCursor, block_number: int) -> None:
        """
        Move the cursor forward.

        Cursors never move backwards: a manual replay of an older range
        leaves the resume point alone.
        """
        if block_number > cursor.last_processed_block:
            cursor.last_processed_block = block_number
        cursor.last_error = None
        await self.session.flush()

    async def record_error(self, cursor: IndexerCursor, error: str) -> None:
        cursor.error_count += 1
        cursor.last_error = error[:2000]
        await self.session.flush()
