"""
Attestation repository.

Data access layer for Attestation model.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.attestation import Attestation
from market_indexer.repositories.base import BaseRepository


class AttestationRepository(BaseRepository[Attestation]):
    """Repository for Attestation entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Attestation, session)

    async def find_by_uid(self, uid: str) -> Attestation | None:
        return await self.get_by(uid=uid)

    async def upsert(self, uid: str, **data: Any) -> tuple[Attestation, bool]:
        """
        Create or refresh an attestation keyed by uid.

        Returns:
            Tuple of (attestation, created)
        """
        existing = await self.find_by_uid(uid)
        if existing is None:
            return await self.create(uid=uid, **data), True
        return await self.update(existing, **data), False

    async def blocks_with_attestations(
        self, chain_id: int, from_block: int, to_block: int
    ) -> set[int]:
        """Block numbers in range that already hold attestations."""
        return await self.blocks_in_range(
            from_block, to_block, Attestation.chain_id == chain_id
        )
