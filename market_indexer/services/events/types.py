"""
Typed contract events.

Each decoded log becomes one frozen dataclass. ``to_payload`` gives the
JSON stored on RawEvent and ``from_payload`` rebuilds the event from a
stored row without touching the chain.
"""

from dataclasses import dataclass, fields
from typing import Any, ClassVar

from market_indexer.services.events.legs import Leg

EVENT_TYPE_KEY = "event_type"


@dataclass(frozen=True)
class EventContext:
    """Where and when a log was observed."""

    chain_id: int
    contract_address: str
    block_number: int
    transaction_hash: str
    log_index: int
    timestamp: int


@dataclass(frozen=True)
class DecodedEvent:
    """Base class of the event union."""

    event_type: ClassVar[str] = ""

    context: EventContext

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {EVENT_TYPE_KEY: self.event_type}
        for f in fields(self):
            if f.name == "context":
                continue
            value = getattr(self, f.name)
            if f.name == "legs":
                payload[f.name] = [leg.to_dict() for leg in value]
            elif isinstance(value, bool):
                payload[f.name] = value
            elif isinstance(value, int):
                payload[f.name] = str(value)
            else:
                payload[f.name] = value
        return payload

    @classmethod
    def from_payload(
        cls, context: EventContext, payload: dict[str, Any]
    ) -> "DecodedEvent":
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "context":
                continue
            raw = payload[f.name]
            if f.name == "legs":
                values[f.name] = tuple(Leg(**leg) for leg in raw)
            elif f.type is bool:
                values[f.name] = bool(raw)
            elif f.type is int:
                values[f.name] = int(raw)
            else:
                values[f.name] = raw
        return cls(context=context, **values)


# ========================================================================
# PREDICTION MARKET
# ========================================================================


@dataclass(frozen=True)
class PredictionMinted(DecodedEvent):
    event_type: ClassVar[str] = "PredictionMinted"

    maker: str
    taker: str
    legs: tuple[Leg, ...]
    maker_token_id: int
    taker_token_id: int
    maker_collateral: int
    taker_collateral: int
    total_collateral: int
    ref_code: str


@dataclass(frozen=True)
class PredictionBurned(DecodedEvent):
    event_type: ClassVar[str] = "PredictionBurned"

    maker: str
    taker: str
    legs: tuple[Leg, ...]
    maker_token_id: int
    taker_token_id: int
    total_collateral: int
    maker_won: bool
    ref_code: str


@dataclass(frozen=True)
class PredictionConsolidated(DecodedEvent):
    event_type: ClassVar[str] = "PredictionConsolidated"

    maker_token_id: int
    taker_token_id: int
    total_collateral: int
    ref_code: str


@dataclass(frozen=True)
class OrderPlaced(DecodedEvent):
    event_type: ClassVar[str] = "OrderPlaced"

    maker: str
    order_id: int
    legs: tuple[Leg, ...]
    resolver: str
    maker_collateral: int
    taker_collateral: int
    ref_code: str


@dataclass(frozen=True)
class OrderFilled(DecodedEvent):
    event_type: ClassVar[str] = "OrderFilled"

    order_id: int
    maker: str
    taker: str
    legs: tuple[Leg, ...]
    maker_collateral: int
    taker_collateral: int
    ref_code: str


@dataclass(frozen=True)
class OrderCancelled(DecodedEvent):
    event_type: ClassVar[str] = "OrderCancelled"

    order_id: int
    maker: str
    legs: tuple[Leg, ...]
    maker_collateral: int
    taker_collateral: int


# ========================================================================
# CONDITION RESOLVER
# ========================================================================


@dataclass(frozen=True)
class MarketSubmitted(DecodedEvent):
    event_type: ClassVar[str] = "MarketSubmittedToUMA"

    condition_id: str
    assertion_id: str
    asserter: str
    claim: str
    resolved_to_yes: bool


@dataclass(frozen=True)
class MarketResolved(DecodedEvent):
    event_type: ClassVar[str] = "MarketResolvedFromUMA"

    condition_id: str
    assertion_id: str
    resolved_to_yes: bool
    asserted_truthfully: bool


# ========================================================================
# ATTESTATION REGISTRY
# ========================================================================


@dataclass(frozen=True)
class Attested(DecodedEvent):
    event_type: ClassVar[str] = "Attested"

    recipient: str
    attester: str
    uid: str
    schema_uid: str


PREDICTION_MARKET_EVENT_TYPES: tuple[type[DecodedEvent], ...] = (
    PredictionMinted,
    PredictionBurned,
    PredictionConsolidated,
    OrderPlaced,
    OrderFilled,
    OrderCancelled,
)
RESOLVER_EVENT_TYPES: tuple[type[DecodedEvent], ...] = (
    MarketSubmitted,
    MarketResolved,
)

EVENT_CLASSES: dict[str, type[DecodedEvent]] = {
    cls.event_type: cls
    for cls in (*PREDICTION_MARKET_EVENT_TYPES, *RESOLVER_EVENT_TYPES, Attested)
}


def event_from_payload(
    context: EventContext, payload: dict[str, Any]
) -> DecodedEvent:
    """Rebuild a typed event from a stored payload."""
    cls = EVENT_CLASSES[payload[EVENT_TYPE_KEY]]
    return cls.from_payload(context, payload)
