"""
Attestation Projector.

Stores prediction attestations. The Attested log only carries the uid,
so the full record is read from the registry and its schema data is
decoded into the exploded columns.
"""

import json
from typing import Any

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from web3 import Web3

from market_indexer.config.constants import PREDICTION_SCHEMA_ID
from market_indexer.repositories import AttestationRepository
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.events.schema import (
    GET_ATTESTATION_ABI,
    PREDICTION_SCHEMA_FIELDS,
)
from market_indexer.services.events.types import Attested
from market_indexer.services.projector.core import ProjectorBase
from market_indexer.utils.exceptions import EventDecodeError

# Index of the schema-encoded payload in the getAttestation tuple
_ATTESTATION_DATA_INDEX = 9


def decode_prediction_data(data: bytes) -> list[dict[str, Any]]:
    """
    Decode prediction schema data into ``[{name, type, value}, ...]``.

    Raises:
        ValueError: Empty or malformed payload
    """
    if not data:
        raise ValueError("empty attestation data")
    try:
        values = decode([t for _, t in PREDICTION_SCHEMA_FIELDS], data)
    except DecodingError as e:
        raise ValueError(str(e)) from e

    decoded = []
    for (name, abi_type), value in zip(PREDICTION_SCHEMA_FIELDS, values):
        if isinstance(value, bytes):
            value = Web3.to_hex(value)
        elif abi_type == "address":
            value = str(value).lower()
        elif isinstance(value, int):
            value = str(value)
        decoded.append({"name": name, "type": abi_type, "value": value})
    return decoded


class AttestationProjector(ProjectorBase):
    """Projector for attestation registry events."""

    def __init__(
        self,
        session: AsyncSession,
        chain_id: int,
        client: ChainClient,
        registry_address: str,
        schema_id: str = PREDICTION_SCHEMA_ID,
    ) -> None:
        self.session = session
        self.chain_id = chain_id
        self.client = client
        self.registry_address = registry_address
        self.schema_id = schema_id.lower()
        self.log_prefix = f"[AttestationIndexer:{chain_id}]"
        self.attestations = AttestationRepository(session)

        self.handlers = {Attested: self.apply_attested}
        self.presence_checks = {Attested: self.attestation_projected}

    async def apply_attested(self, event: Attested) -> None:
        if event.schema_uid.lower() != self.schema_id:
            logger.debug(
                f"{self.log_prefix} Skipping attestation {event.uid} "
                f"with schema {event.schema_uid}"
            )
            return

        record = await self.client.read_contract(
            self.registry_address,
            GET_ATTESTATION_ABI,
            "getAttestation",
            [bytes.fromhex(event.uid[2:])],
        )
        data = bytes(record[_ATTESTATION_DATA_INDEX])

        try:
            decoded = decode_prediction_data(data)
        except ValueError as e:
            raise EventDecodeError(
                "Attested",
                event.context.transaction_hash,
                event.context.log_index,
                f"prediction data for {event.uid}: {e}",
            ) from e

        fields = {item["name"]: item["value"] for item in decoded}
        _, created = await self.attestations.upsert(
            event.uid,
            chain_id=self.chain_id,
            attester=event.attester,
            recipient=event.recipient,
            time=event.context.timestamp,
            block_number=event.context.block_number,
            transaction_hash=event.context.transaction_hash,
            schema_id=event.schema_uid,
            data=Web3.to_hex(data),
            decoded_data_json=json.dumps(decoded),
            market_address=fields["marketAddress"],
            market_id=fields["marketId"],
            question_id=fields["questionId"],
            prediction=fields["prediction"],
            comment=fields["comment"] or None,
        )

        logger.info(
            f"{self.log_prefix} {'Stored' if created else 'Refreshed'} "
            f"attestation {event.uid} for market {fields['marketAddress']} "
            f"(questionId: {fields['questionId']}) "
            f"with prediction {fields['prediction']}"
        )

    async def attestation_projected(self, event: Attested) -> bool:
        if event.schema_uid.lower() != self.schema_id:
            return True
        return await self.attestations.find_by_uid(event.uid) is not None
