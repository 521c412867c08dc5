"""
Event schema tables.

Static ABI descriptions of every tracked event, one table per contract
family. Topic hashes are computed once at import.
"""

from dataclasses import dataclass
from typing import Any

from eth_abi import decode
from web3 import Web3

from market_indexer.services.events.legs import decode_legs
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
)


@dataclass(frozen=True)
class EventInput:
    """One ABI event parameter, named after the event field it fills."""

    name: str
    type: str
    indexed: bool = False


@dataclass(frozen=True)
class EventSpec:
    """ABI shape of one event and the typed class it decodes into."""

    name: str
    inputs: tuple[EventInput, ...]
    event_class: type[DecodedEvent]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(i.type for i in self.inputs)})"

    @property
    def topic(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature))

    def decode(
        self,
        topics: tuple[bytes, ...],
        data: bytes,
        context: EventContext,
    ) -> DecodedEvent:
        """
        Decode topics and data into the typed event.

        Raises:
            eth_abi DecodingError, ValueError or IndexError on payloads
            that do not match this shape
        """
        indexed = [i for i in self.inputs if i.indexed]
        plain = [i for i in self.inputs if not i.indexed]

        if len(topics) != len(indexed) + 1:
            raise ValueError(
                f"expected {len(indexed) + 1} topics, got {len(topics)}"
            )

        values: dict[str, Any] = {}
        for param, topic in zip(indexed, topics[1:]):
            (values[param.name],) = decode([param.type], topic)
        decoded = decode([p.type for p in plain], data)
        for param, value in zip(plain, decoded):
            values[param.name] = value

        return self.event_class(
            context=context,
            **{
                param.name: _normalize(param, values[param.name])
                for param in self.inputs
            },
        )


def _normalize(param: EventInput, value: Any) -> Any:
    if param.name == "legs":
        return decode_legs(value)
    if param.type == "address":
        return str(value).lower()
    if param.type.startswith("bytes"):
        return Web3.to_hex(value)
    if param.type == "bool":
        return bool(value)
    return value


# ========================================================================
# PREDICTION MARKET
# ========================================================================

PREDICTION_MINTED = EventSpec(
    "PredictionMinted",
    (
        EventInput("maker", "address", indexed=True),
        EventInput("taker", "address", indexed=True),
        EventInput("legs", "bytes"),
        EventInput("maker_token_id", "uint256"),
        EventInput("taker_token_id", "uint256"),
        EventInput("maker_collateral", "uint256"),
        EventInput("taker_collateral", "uint256"),
        EventInput("total_collateral", "uint256"),
        EventInput("ref_code", "bytes32"),
    ),
    PredictionMinted,
)

PREDICTION_BURNED = EventSpec(
    "PredictionBurned",
    (
        EventInput("maker", "address", indexed=True),
        EventInput("taker", "address", indexed=True),
        EventInput("legs", "bytes"),
        EventInput("maker_token_id", "uint256"),
        EventInput("taker_token_id", "uint256"),
        EventInput("total_collateral", "uint256"),
        EventInput("maker_won", "bool"),
        EventInput("ref_code", "bytes32"),
    ),
    PredictionBurned,
)

PREDICTION_CONSOLIDATED = EventSpec(
    "PredictionConsolidated",
    (
        EventInput("maker_token_id", "uint256", indexed=True),
        EventInput("taker_token_id", "uint256", indexed=True),
        EventInput("total_collateral", "uint256"),
        EventInput("ref_code", "bytes32"),
    ),
    PredictionConsolidated,
)

ORDER_PLACED = EventSpec(
    "OrderPlaced",
    (
        EventInput("maker", "address", indexed=True),
        EventInput("order_id", "uint256", indexed=True),
        EventInput("legs", "bytes"),
        EventInput("resolver", "address"),
        EventInput("maker_collateral", "uint256"),
        EventInput("taker_collateral", "uint256"),
        EventInput("ref_code", "bytes32"),
    ),
    OrderPlaced,
)

ORDER_FILLED = EventSpec(
    "OrderFilled",
    (
        EventInput("order_id", "uint256", indexed=True),
        EventInput("maker", "address", indexed=True),
        EventInput("taker", "address", indexed=True),
        EventInput("legs", "bytes"),
        EventInput("maker_collateral", "uint256"),
        EventInput("taker_collateral", "uint256"),
        EventInput("ref_code", "bytes32"),
    ),
    OrderFilled,
)

ORDER_CANCELLED = EventSpec(
    "OrderCancelled",
    (
        EventInput("order_id", "uint256", indexed=True),
        EventInput("maker", "address", indexed=True),
        EventInput("legs", "bytes"),
        EventInput("maker_collateral", "uint256"),
        EventInput("taker_collateral", "uint256"),
    ),
    OrderCancelled,
)

PREDICTION_MARKET_SPECS = (
    PREDICTION_MINTED,
    PREDICTION_BURNED,
    PREDICTION_CONSOLIDATED,
    ORDER_PLACED,
    ORDER_FILLED,
    ORDER_CANCELLED,
)

# ========================================================================
# CONDITION RESOLVER
# ========================================================================

MARKET_SUBMITTED = EventSpec(
    "MarketSubmittedToUMA",
    (
        EventInput("condition_id", "bytes32", indexed=True),
        EventInput("assertion_id", "bytes32", indexed=True),
        EventInput("asserter", "address"),
        EventInput("claim", "bytes"),
        EventInput("resolved_to_yes", "bool"),
    ),
    MarketSubmitted,
)

MARKET_RESOLVED = EventSpec(
    "MarketResolvedFromUMA",
    (
        EventInput("condition_id", "bytes32", indexed=True),
        EventInput("assertion_id", "bytes32", indexed=True),
        EventInput("resolved_to_yes", "bool"),
        EventInput("asserted_truthfully", "bool"),
    ),
    MarketResolved,
)

RESOLVER_SPECS = (MARKET_SUBMITTED, MARKET_RESOLVED)

# ========================================================================
# ATTESTATION REGISTRY
# ========================================================================

ATTESTED = EventSpec(
    "Attested",
    (
        EventInput("recipient", "address", indexed=True),
        EventInput("attester", "address", indexed=True),
        EventInput("uid", "bytes32"),
        EventInput("schema_uid", "bytes32", indexed=True),
    ),
    Attested,
)

ATTESTATION_SPECS = (ATTESTED,)

GET_ATTESTATION_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "getAttestation",
        "stateMutability": "view",
        "inputs": [{"type": "bytes32", "name": "uid"}],
        "outputs": [
            {
                "type": "tuple",
                "name": "",
                "components": [
                    {"type": "bytes32", "name": "uid"},
                    {"type": "bytes32", "name": "schema"},
                    {"type": "uint64", "name": "time"},
                    {"type": "uint64", "name": "expirationTime"},
                    {"type": "uint64", "name": "revocationTime"},
                    {"type": "bytes32", "name": "refUID"},
                    {"type": "address", "name": "recipient"},
                    {"type": "address", "name": "attester"},
                    {"type": "bool", "name": "revocable"},
                    {"type": "bytes", "name": "data"},
                ],
            }
        ],
    }
]

# address marketAddress,uint256 marketId,bytes32 questionId,uint160 prediction,string comment
PREDICTION_SCHEMA_FIELDS: tuple[tuple[str, str], ...] = (
    ("marketAddress", "address"),
    ("marketId", "uint256"),
    ("questionId", "bytes32"),
    ("prediction", "uint160"),
    ("comment", "string"),
)
