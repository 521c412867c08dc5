"""
Event Decoder.

Routes a raw log to its typed event through a topic lookup table built
once per decoder.
"""

from collections.abc import Iterable, Sequence

from eth_abi.exceptions import DecodingError
from loguru import logger

from market_indexer.services.chain.types import RawLog
from market_indexer.services.events.schema import EventSpec
from market_indexer.services.events.types import DecodedEvent, EventContext
from market_indexer.utils.exceptions import EventDecodeError


def build_topic_table(specs: Iterable[EventSpec]) -> dict[bytes, EventSpec]:
    """
    Map each event topic to its spec.

    Raises:
        ValueError: If two specs hash to the same topic
    """
    table: dict[bytes, EventSpec] = {}
    for spec in specs:
        topic = spec.topic
        if topic in table:
            raise ValueError(
                f"Duplicate event topic for {spec.signature} "
                f"and {table[topic].signature}"
            )
        table[topic] = spec
    return table


class EventDecoder:
    """
    Decoder for one contract family on one chain.

    Logs from untracked addresses, logs without topics and logs whose
    signature is not in the table are ignored (``decode`` returns None).
    A recognised signature with a malformed payload raises
    ``EventDecodeError``.
    """

    def __init__(
        self,
        chain_id: int,
        tracked_addresses: Iterable[str],
        specs: Sequence[EventSpec],
    ) -> None:
        self.chain_id = chain_id
        self.tracked_addresses = {a.lower() for a in tracked_addresses}
        self.specs = tuple(specs)
        self._table = build_topic_table(self.specs)

    @property
    def event_classes(self) -> tuple[type[DecodedEvent], ...]:
        return tuple(spec.event_class for spec in self.specs)

    def is_tracked(self, address: str) -> bool:
        return address.lower() in self.tracked_addresses

    def spec_for(self, log: RawLog) -> EventSpec | None:
        if not log.topics:
            return None
        return self._table.get(log.topics[0])

    def decode(self, log: RawLog, timestamp: int) -> DecodedEvent | None:
        """
        Decode a log into its typed event.

        Args:
            log: Raw log from the chain client
            timestamp: Timestamp of the log's block

        Returns:
            Typed event, or None when the log is not ours to handle

        Raises:
            EventDecodeError: Recognised signature, malformed payload
        """
        if not self.is_tracked(log.address):
            return None

        spec = self.spec_for(log)
        if spec is None:
            logger.debug(
                f"[Decoder:{self.chain_id}] Ignoring unknown topic "
                f"{log.topics[0].hex() if log.topics else '-'} "
                f"from {log.address}"
            )
            return None

        context = EventContext(
            chain_id=self.chain_id,
            contract_address=log.address.lower(),
            block_number=log.block_number,
            transaction_hash=log.transaction_hash,
            log_index=log.log_index,
            timestamp=timestamp,
        )
        try:
            return spec.decode(log.topics, log.data, context)
        except (DecodingError, ValueError, IndexError, TypeError, OverflowError) as e:
            raise EventDecodeError(
                spec.name, log.transaction_hash, log.log_index, str(e)
            ) from e
