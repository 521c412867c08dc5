"""
Event decoding.

Schema tables, typed events, the legs codec and the topic-dispatching
decoder.
"""

from market_indexer.services.events.decoder import EventDecoder, build_topic_table
from market_indexer.services.events.legs import Leg, decode_legs, encode_legs
from market_indexer.services.events.schema import (
    ATTESTATION_SPECS,
    PREDICTION_MARKET_SPECS,
    RESOLVER_SPECS,
    EventInput,
    EventSpec,
)
from market_indexer.services.events.types import (
    Attested,
    DecodedEvent,
    EventContext,
    MarketResolved,
    MarketSubmitted,
    OrderCancelled,
    OrderFilled,
    OrderPlaced,
    PredictionBurned,
    PredictionConsolidated,
    PredictionMinted,
    event_from_payload,
)

__all__ = [
    "ATTESTATION_SPECS",
    "Attested",
    "DecodedEvent",
    "EventContext",
    "EventDecoder",
    "EventInput",
    "EventSpec",
    "Leg",
    "MarketResolved",
    "MarketSubmitted",
    "OrderCancelled",
    "OrderFilled",
    "OrderPlaced",
    "PREDICTION_MARKET_SPECS",
    "PredictionBurned",
    "PredictionConsolidated",
    "PredictionMinted",
    "RESOLVER_SPECS",
    "build_topic_table",
    "decode_legs",
    "encode_legs",
    "event_from_payload",
]
