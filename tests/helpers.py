"""
Test helpers.

An in-memory chain client and builders for ABI-encoded contract logs.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from eth_abi import encode
from web3 import Web3

from market_indexer.services.chain.types import BlockCache, BlockInfo, RawLog
from market_indexer.services.events.legs import Leg, encode_legs
from market_indexer.services.events.schema import (
    ATTESTED,
    MARKET_RESOLVED,
    MARKET_SUBMITTED,
    ORDER_CANCELLED,
    ORDER_FILLED,
    ORDER_PLACED,
    PREDICTION_BURNED,
    PREDICTION_CONSOLIDATED,
    PREDICTION_MINTED,
    EventSpec,
)
from market_indexer.utils.exceptions import ChainRPCError

CHAIN_ID = 42161
MARKET = "0xa1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1"
RESOLVER = "0xb2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2"
REGISTRY = "0xbd75f629a22dc1ced33dda0b68c546a1c035c458"
MAKER = "0x1111111111111111111111111111111111111111"
TAKER = "0x2222222222222222222222222222222222222222"
OTHER = "0x9999999999999999999999999999999999999999"

COND_A = "0x" + "aa" * 32
COND_B = "0x" + "bb" * 32
REF_CODE = b"\x00" * 32

GENESIS_TS = 1_700_000_000
BLOCK_TIME = 12


def tx_hash_for(block_number: int, log_index: int) -> str:
    return "0x" + f"{block_number:032x}{log_index:032x}"


def block_timestamp(block_number: int) -> int:
    return GENESIS_TS + block_number * BLOCK_TIME


def make_log(
    spec: EventSpec,
    values: dict[str, Any],
    *,
    address: str = MARKET,
    block_number: int = 100,
    log_index: int = 0,
    transaction_hash: str | None = None,
) -> RawLog:
    """ABI-encode ``values`` into a log of ``spec``."""
    topics = [spec.topic]
    plain_types, plain_values = [], []
    for param in spec.inputs:
        value = values[param.name]
        if param.name == "legs":
            value = encode_legs(value)
        if param.indexed:
            topics.append(encode([param.type], [value]))
        else:
            plain_types.append(param.type)
            plain_values.append(value)

    return RawLog(
        address=address.lower(),
        topics=tuple(topics),
        data=encode(plain_types, plain_values),
        block_number=block_number,
        transaction_hash=transaction_hash or tx_hash_for(block_number, log_index),
        log_index=log_index,
    )


def minted_log(
    maker_token_id: int = 1,
    taker_token_id: int = 2,
    maker_collateral: int = 600,
    taker_collateral: int = 400,
    legs: Sequence[Leg] = (Leg(COND_A, True),),
    **kwargs: Any,
) -> RawLog:
    return make_log(
        PREDICTION_MINTED,
        {
            "maker": MAKER,
            "taker": TAKER,
            "legs": legs,
            "maker_token_id": maker_token_id,
            "taker_token_id": taker_token_id,
            "maker_collateral": maker_collateral,
            "taker_collateral": taker_collateral,
            "total_collateral": maker_collateral + taker_collateral,
            "ref_code": REF_CODE,
        },
        **kwargs,
    )


def burned_log(
    maker_token_id: int = 1,
    taker_token_id: int = 2,
    maker_won: bool = True,
    total_collateral: int = 1000,
    **kwargs: Any,
) -> RawLog:
    return make_log(
        PREDICTION_BURNED,
        {
            "maker": MAKER,
            "taker": TAKER,
            "legs": (Leg(COND_A, True),),
            "maker_token_id": maker_token_id,
            "taker_token_id": taker_token_id,
            "total_collateral": total_collateral,
            "maker_won": maker_won,
            "ref_code": REF_CODE,
        },
        **kwargs,
    )


def consolidated_log(
    maker_token_id: int = 1, taker_token_id: int = 2, **kwargs: Any
) -> RawLog:
    return make_log(
        PREDICTION_CONSOLIDATED,
        {
            "maker_token_id": maker_token_id,
            "taker_token_id": taker_token_id,
            "total_collateral": 1000,
            "ref_code": REF_CODE,
        },
        **kwargs,
    )


def order_placed_log(
    order_id: int = 7,
    legs: Sequence[Leg] = (Leg(COND_A, True), Leg(COND_B, False)),
    maker_collateral: int = 300,
    **kwargs: Any,
) -> RawLog:
    return make_log(
        ORDER_PLACED,
        {
            "maker": MAKER,
            "order_id": order_id,
            "legs": legs,
            "resolver": RESOLVER,
            "maker_collateral": maker_collateral,
            "taker_collateral": 200,
            "ref_code": REF_CODE,
        },
        **kwargs,
    )


def order_filled_log(order_id: int = 7, **kwargs: Any) -> RawLog:
    return make_log(
        ORDER_FILLED,
        {
            "order_id": order_id,
            "maker": MAKER,
            "taker": TAKER,
            "legs": (Leg(COND_A, True), Leg(COND_B, False)),
            "maker_collateral": 300,
            "taker_collateral": 200,
            "ref_code": REF_CODE,
        },
        **kwargs,
    )


def order_cancelled_log(order_id: int = 7, **kwargs: Any) -> RawLog:
    return make_log(
        ORDER_CANCELLED,
        {
            "order_id": order_id,
            "maker": MAKER,
            "legs": (Leg(COND_A, True), Leg(COND_B, False)),
            "maker_collateral": 300,
            "taker_collateral": 200,
        },
        **kwargs,
    )


def market_submitted_log(
    condition_id: str = COND_A,
    assertion_id: str = "0x" + "01" * 32,
    **kwargs: Any,
) -> RawLog:
    kwargs.setdefault("address", RESOLVER)
    return make_log(
        MARKET_SUBMITTED,
        {
            "condition_id": bytes.fromhex(condition_id[2:]),
            "assertion_id": bytes.fromhex(assertion_id[2:]),
            "asserter": OTHER,
            "claim": b"resolved yes",
            "resolved_to_yes": True,
        },
        **kwargs,
    )


def market_resolved_log(
    condition_id: str = COND_A,
    resolved_to_yes: bool = True,
    **kwargs: Any,
) -> RawLog:
    kwargs.setdefault("address", RESOLVER)
    return make_log(
        MARKET_RESOLVED,
        {
            "condition_id": bytes.fromhex(condition_id[2:]),
            "assertion_id": b"\x01" * 32,
            "resolved_to_yes": resolved_to_yes,
            "asserted_truthfully": True,
        },
        **kwargs,
    )


def attested_log(uid: str, schema_uid: str, **kwargs: Any) -> RawLog:
    kwargs.setdefault("address", REGISTRY)
    return make_log(
        ATTESTED,
        {
            "recipient": OTHER,
            "attester": MAKER,
            "uid": bytes.fromhex(uid[2:]),
            "schema_uid": bytes.fromhex(schema_uid[2:]),
        },
        **kwargs,
    )


class FakeSubscription:
    """Stands in for LogSubscription; tests drive delivery explicitly."""

    def __init__(
        self,
        addresses: Sequence[str],
        on_logs: Callable[[list[RawLog]], Awaitable[None]],
        on_error: Callable[[Exception], Awaitable[None]],
        from_block: int | None,
        topics: list[Any] | None,
    ) -> None:
        self.addresses = list(addresses)
        self.on_logs = on_logs
        self.on_error = on_error
        self.next_block = from_block
        self.topics = topics
        self.active = True
        self.restarts = 0
        self.unsubscribed = False
        self.closed = False

    def restart(self) -> None:
        self.restarts += 1
        self.active = True

    def unsubscribe(self) -> None:
        self.unsubscribed = True
        self.active = False

    async def aclose(self) -> None:
        self.closed = True
        self.active = False

    async def deliver(self, logs: list[RawLog]) -> None:
        await self.on_logs(logs)
        if logs:
            self.next_block = logs[-1].block_number + 1

    async def fail(self, error: Exception) -> None:
        self.active = False
        await self.on_error(error)


class FakeChainClient:
    """
    In-memory chain.

    Attributes:
        logs: Every log on the chain
        fail_ranges: Exact (from, to) get_logs ranges that raise
        fail_blocks: Blocks whose single-block get_logs raises
        fail_block_fetch: Blocks whose header lookup raises
        get_logs_calls: (from, to) of every get_logs call
        contract_results: (method, first arg) -> read_contract result
    """

    def __init__(self, chain_id: int = CHAIN_ID, head: int = 1_000) -> None:
        self.chain_id = chain_id
        self.head = head
        self.logs: list[RawLog] = []
        self.fail_ranges: set[tuple[int, int]] = set()
        self.fail_blocks: set[int] = set()
        self.fail_block_fetch: set[int] = set()
        self.get_logs_calls: list[tuple[int, int]] = []
        self.get_block_calls: list[int] = []
        self.contract_results: dict[tuple[str, Any], Any] = {}
        self.subscriptions: list[FakeSubscription] = []

    def add_logs(self, *logs: RawLog) -> None:
        self.logs.extend(logs)
        self.logs.sort(key=lambda log: log.position)

    async def get_block_number(self) -> int:
        return self.head

    async def get_block_by_number(self, number: int) -> BlockInfo:
        self.get_block_calls.append(number)
        if number in self.fail_block_fetch:
            raise ChainRPCError(f"block {number} unavailable")
        return BlockInfo(number=number, timestamp=block_timestamp(number))

    async def get_latest_block(self) -> BlockInfo:
        return await self.get_block_by_number(self.head)

    async def get_block_by_timestamp(self, timestamp: int) -> BlockInfo:
        number = -(-(timestamp - GENESIS_TS) // BLOCK_TIME)
        return BlockInfo(
            number=min(max(number, 0), self.head),
            timestamp=block_timestamp(min(max(number, 0), self.head)),
        )

    async def get_logs(
        self,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
        topics: list[Any] | None = None,
    ) -> list[RawLog]:
        self.get_logs_calls.append((from_block, to_block))
        if (from_block, to_block) in self.fail_ranges:
            raise ChainRPCError(f"getLogs {from_block}-{to_block} failed")
        if from_block == to_block and from_block in self.fail_blocks:
            raise ChainRPCError(f"getLogs {from_block} failed")

        wanted = {a.lower() for a in addresses}
        return [
            log
            for log in self.logs
            if log.address in wanted
            and from_block <= log.block_number <= to_block
            and _topics_match(log, topics)
        ]

    async def read_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        return self.contract_results[(method, args[0] if args else None)]

    def subscribe_logs(
        self,
        addresses: Sequence[str],
        on_logs: Callable[[list[RawLog]], Awaitable[None]],
        on_error: Callable[[Exception], Awaitable[None]],
        from_block: int | None = None,
        topics: list[Any] | None = None,
    ) -> FakeSubscription:
        subscription = FakeSubscription(addresses, on_logs, on_error, from_block, topics)
        self.subscriptions.append(subscription)
        return subscription

    def block_cache(self) -> BlockCache:
        return BlockCache(fetch=self.get_block_by_number)


def _topics_match(log: RawLog, topics: list[Any] | None) -> bool:
    if not topics:
        return True
    for i, wanted in enumerate(topics):
        if wanted is None:
            continue
        if i >= len(log.topics) or Web3.to_hex(log.topics[i]) != wanted.lower():
            return False
    return True
