"""
Attestation Indexer.

Indexes prediction attestations from the chain's attestation registry.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from web3 import Web3

from market_indexer.config.constants import PREDICTION_SCHEMA_ID
from market_indexer.config.settings import settings
from market_indexer.repositories import AttestationRepository
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.events.schema import ATTESTATION_SPECS, ATTESTED
from market_indexer.services.indexer.base import BaseIndexer
from market_indexer.services.projector.attestation import AttestationProjector
from market_indexer.utils.exceptions import UnsupportedChainError


class AttestationIndexer(BaseIndexer):
    """Indexer for Attested events of the prediction schema."""

    indexer_name = "attestation"

    def __init__(
        self,
        chain_id: int,
        session: AsyncSession,
        client: ChainClient,
        registry_address: str | None = None,
        schema_id: str = PREDICTION_SCHEMA_ID,
    ) -> None:
        registry_address = registry_address or settings.attestation_contracts.get(
            chain_id
        )
        if not registry_address:
            raise UnsupportedChainError(
                f"No attestation registry configured for chain {chain_id}"
            )

        super().__init__(
            chain_id=chain_id,
            session=session,
            client=client,
            contract_address=registry_address,
            addresses=[registry_address],
            specs=ATTESTATION_SPECS,
            projector=AttestationProjector(
                session, chain_id, client, registry_address, schema_id
            ),
            log_prefix=f"[AttestationIndexer:{chain_id}]",
            batch_delay=settings.batch_delay_seconds,
            # Attested(recipient, attester, uid, schemaUID): filter on the schema
            log_topics=[Web3.to_hex(ATTESTED.topic), None, None, schema_id],
        )
        self.schema_id = schema_id
        self.start_block = settings.attestation_start_blocks.get(chain_id, 0)
        self.attestations = AttestationRepository(session)

    def clamp_start_block(self, block_number: int) -> int:
        return max(block_number, self.start_block)

    async def existing_blocks(self, from_block: int, to_block: int) -> set[int]:
        return await self.attestations.blocks_with_attestations(
            self.chain_id, from_block, to_block
        )
