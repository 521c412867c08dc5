"""
Integration tests for prediction market indexing.

Runs the whole decode -> dedup -> project path against an in-memory
chain and SQLite. State is always read back through a fresh session.

Tests cover:
- Position lifecycle (mint, burn, consolidation)
- Limit order lifecycle and out-of-order events
- Condition submission, resolution and open interest
- Replay, overwrite and self-healing of derived state
- Batch fallback and cursor handling
- Same final state whichever path delivers unrelated events
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select

from market_indexer.models.condition import Condition
from market_indexer.models.indexer_cursor import IndexerCursor
from market_indexer.models.limit_order import LimitOrder
from market_indexer.models.market_transaction import MarketTransaction
from market_indexer.models.position import Position
from market_indexer.models.raw_event import RawEvent
from market_indexer.services.events.legs import Leg
from market_indexer.services.events.types import PredictionMinted
from market_indexer.services.indexer import (
    LogOutcome,
    PredictionMarketIndexer,
    WatchLoop,
)
from tests.helpers import (
    CHAIN_ID,
    COND_A,
    COND_B,
    GENESIS_TS,
    MAKER,
    MARKET,
    TAKER,
    block_timestamp,
    burned_log,
    consolidated_log,
    market_resolved_log,
    market_submitted_log,
    minted_log,
    order_cancelled_log,
    order_filled_log,
    order_placed_log,
)


async def fetch_all(session_maker, model, *criteria):
    async with session_maker() as session:
        result = await session.execute(select(model).where(*criteria))
        return list(result.scalars().all())


@pytest.fixture
def indexer(session, fake_client):
    """Prediction market indexer on the default test chain."""
    return PredictionMarketIndexer(CHAIN_ID, session, fake_client)


@pytest_asyncio.fixture
async def conditions(session_maker):
    """Seed conditions A (ends first) and B (ends last)."""
    async with session_maker() as session:
        session.add_all(
            [
                Condition(
                    id=COND_A,
                    chain_id=CHAIN_ID,
                    question="Will A happen?",
                    end_time=GENESIS_TS + 86_400,
                ),
                Condition(
                    id=COND_B,
                    chain_id=CHAIN_ID,
                    question="Will B happen?",
                    end_time=GENESIS_TS + 172_800,
                ),
            ]
        )
        await session.commit()


class TestPositionLifecycle:
    """Test positions from mint to settlement."""

    @pytest.mark.asyncio
    async def test_mint_then_burn_settles_position(
        self, indexer, fake_client, session_maker
    ):
        """Mint creates an active position, burn settles it."""
        fake_client.add_logs(
            minted_log(block_number=100),
            burned_log(maker_won=True, block_number=105),
        )

        result = await indexer.scanner.scan(100, 110)

        assert result.processed == 2
        positions = await fetch_all(session_maker, Position)
        assert len(positions) == 1
        position = positions[0]
        assert position.status == "settled"
        assert position.predictor_won is True
        assert position.predictor == MAKER
        assert position.counterparty == TAKER
        assert position.market_address == MARKET
        assert position.predictor_token_id == "1"
        assert position.counterparty_token_id == "2"
        assert position.predictor_collateral == "600"
        assert position.counterparty_collateral == "400"
        assert position.total_collateral == "1000"
        assert position.minted_at == block_timestamp(100)
        assert position.settled_at == block_timestamp(105)
        assert [(p.condition_id, p.outcome_yes) for p in position.legs] == [
            (COND_A, True)
        ]

    @pytest.mark.asyncio
    async def test_burn_records_counterparty_win(
        self, indexer, fake_client, session_maker
    ):
        """makerWon=false is stored as predictor_won False."""
        fake_client.add_logs(
            minted_log(block_number=100),
            burned_log(maker_won=False, block_number=101),
        )

        await indexer.scanner.scan(100, 101)

        (position,) = await fetch_all(session_maker, Position)
        assert position.status == "settled"
        assert position.predictor_won is False

    @pytest.mark.asyncio
    async def test_consolidation(self, indexer, fake_client, session_maker):
        """Consolidation closes the position in favour of the predictor."""
        fake_client.add_logs(
            minted_log(block_number=100),
            consolidated_log(block_number=102),
        )

        await indexer.scanner.scan(100, 102)

        (position,) = await fetch_all(session_maker, Position)
        assert position.status == "consolidated"
        assert position.predictor_won is True
        assert position.settled_at == block_timestamp(102)

    @pytest.mark.asyncio
    async def test_burn_for_unknown_position_warns(
        self, indexer, fake_client, session_maker, log_messages
    ):
        """A burn without its mint leaves nothing behind but the raw event."""
        fake_client.add_logs(burned_log(block_number=100))

        result = await indexer.scanner.scan(100, 100)

        assert result.outcomes[LogOutcome.PROJECTED] == 1
        assert await fetch_all(session_maker, Position) == []
        assert len(await fetch_all(session_maker, RawEvent)) == 1
        assert any("No position for burned NFTs" in m for m in log_messages)

    @pytest.mark.asyncio
    async def test_mint_records_market_transaction(
        self, indexer, fake_client, session_maker
    ):
        """Each new mint writes one mint transaction with its collateral."""
        fake_client.add_logs(minted_log(block_number=100))

        await indexer.scanner.scan(100, 100)

        (transaction,) = await fetch_all(session_maker, MarketTransaction)
        (raw_event,) = await fetch_all(session_maker, RawEvent)
        assert transaction.raw_event_id == raw_event.id
        assert transaction.collateral == "1000"


class TestDedup:
    """Test that every log is recorded and projected exactly once."""

    @pytest.mark.asyncio
    async def test_duplicate_mint(self, indexer, fake_client, session_maker):
        """The same log delivered twice creates one raw event and one position."""
        fake_client.add_logs(minted_log(block_number=100))

        first = await indexer.scanner.scan(100, 100)
        second = await indexer.scanner.scan(100, 100, overwrite_existing=True)

        assert first.outcomes[LogOutcome.PROJECTED] == 1
        assert second.outcomes[LogOutcome.DUPLICATE] == 1
        assert len(await fetch_all(session_maker, RawEvent)) == 1
        assert len(await fetch_all(session_maker, Position)) == 1
        assert len(await fetch_all(session_maker, MarketTransaction)) == 1

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(
        self, indexer, fake_client, session_maker, conditions
    ):
        """Replaying a processed range leaves derived state unchanged."""
        fake_client.add_logs(
            minted_log(block_number=100),
            order_placed_log(block_number=101),
            order_filled_log(block_number=102),
            market_resolved_log(block_number=103),
            burned_log(block_number=104),
        )
        await indexer.scanner.scan(100, 110)

        async def snapshot():
            positions = await fetch_all(session_maker, Position)
            orders = await fetch_all(session_maker, LimitOrder)
            conds = await fetch_all(session_maker, Condition)
            return (
                [(p.status, p.predictor_won, p.settled_at) for p in positions],
                [(o.status, o.counterparty, o.filled_at) for o in orders],
                sorted((c.id, c.settled, c.open_interest) for c in conds),
            )

        before = await snapshot()
        result = await indexer.index_blocks(range(100, 111))

        assert result.outcomes[LogOutcome.DUPLICATE] == 5
        assert result.processed == 0
        assert await snapshot() == before
        assert len(await fetch_all(session_maker, RawEvent)) == 5

    @pytest.mark.asyncio
    async def test_late_log_in_indexed_block_projected(
        self, indexer, fake_client, session_maker
    ):
        """A log added to an indexed block is projected without overwriting."""
        fake_client.add_logs(minted_log(block_number=100))
        await indexer.scanner.scan(100, 100)

        late = minted_log(
            maker_token_id=3, taker_token_id=4, block_number=100, log_index=1
        )
        fake_client.add_logs(late)

        result = await indexer.scanner.scan(100, 100)

        assert result.skipped_logs == 0
        assert result.outcomes[LogOutcome.PROJECTED] == 1
        assert result.outcomes[LogOutcome.DUPLICATE] == 1
        assert len(await fetch_all(session_maker, Position)) == 2

    @pytest.mark.asyncio
    async def test_partially_failed_block_retried(
        self, indexer, fake_client, session_maker
    ):
        """A log rolled back while its neighbour committed is indexed on rescan."""
        fake_client.add_logs(
            minted_log(block_number=100),
            minted_log(
                maker_token_id=3, taker_token_id=4, block_number=100, log_index=1
            ),
        )
        apply_mint = indexer.projector.handlers[PredictionMinted]
        failures = []

        async def fail_token_3_once(event):
            if event.maker_token_id == 3 and not failures:
                failures.append(event)
                raise RuntimeError("connection reset")
            await apply_mint(event)

        indexer.projector.handlers[PredictionMinted] = fail_token_3_once

        first = await indexer.scanner.scan(100, 100)
        assert first.outcomes[LogOutcome.PROJECTED] == 1
        assert first.outcomes[LogOutcome.FAILED] == 1
        assert len(await fetch_all(session_maker, RawEvent)) == 1

        retry = await indexer.scanner.scan(100, 100)

        assert retry.outcomes[LogOutcome.PROJECTED] == 1
        assert retry.outcomes[LogOutcome.DUPLICATE] == 1
        positions = await fetch_all(session_maker, Position)
        assert sorted(p.predictor_token_id for p in positions) == ["1", "3"]
        assert len(await fetch_all(session_maker, MarketTransaction)) == 2


class TestSelfHealing:
    """Test that recorded events re-project missing derived state."""

    @pytest.mark.asyncio
    async def test_deleted_position_is_recreated(
        self, indexer, fake_client, session, session_maker, conditions
    ):
        """index_blocks restores a deleted position without a second raw event."""
        fake_client.add_logs(minted_log(block_number=100))
        await indexer.scanner.scan(100, 100)

        position = (await session.execute(select(Position))).scalar_one()
        await session.delete(position)
        await session.commit()
        assert await fetch_all(session_maker, Position) == []

        result = await indexer.index_blocks([100])

        assert result.outcomes[LogOutcome.HEALED] == 1
        (position,) = await fetch_all(session_maker, Position)
        assert position.predictor_token_id == "1"
        assert position.status == "active"
        assert len(await fetch_all(session_maker, RawEvent)) == 1

    @pytest.mark.asyncio
    async def test_heal_does_not_double_open_interest(
        self, indexer, fake_client, session, session_maker, conditions
    ):
        """Re-projecting a mint leaves open interest as recorded."""
        fake_client.add_logs(minted_log(block_number=100))
        await indexer.scanner.scan(100, 100)

        position = (await session.execute(select(Position))).scalar_one()
        await session.delete(position)
        await session.commit()

        await indexer.index_blocks([100])

        (condition,) = await fetch_all(session_maker, Condition, Condition.id == COND_A)
        assert condition.open_interest == Decimal(1000)

    @pytest.mark.asyncio
    async def test_reindex_without_overwrite_restores_position(
        self, indexer, fake_client, session, session_maker, conditions
    ):
        """A plain rescan heals a missing position in an already indexed block."""
        fake_client.add_logs(minted_log(block_number=100))
        await indexer.scanner.scan(100, 100)

        position = (await session.execute(select(Position))).scalar_one()
        await session.delete(position)
        await session.commit()

        result = await indexer.scanner.scan(100, 100)

        assert result.outcomes[LogOutcome.HEALED] == 1
        (position,) = await fetch_all(session_maker, Position)
        assert position.predictor_token_id == "1"
        (condition,) = await fetch_all(session_maker, Condition, Condition.id == COND_A)
        assert condition.open_interest == Decimal(1000)

    @pytest.mark.asyncio
    async def test_burn_before_mint_heals_on_rescan(
        self, indexer, fake_client, session_maker
    ):
        """A burn indexed ahead of its mint settles the position on rescan."""
        fake_client.add_logs(
            minted_log(block_number=100),
            burned_log(maker_won=False, block_number=105),
        )
        await indexer.scanner.scan(105, 105)
        await indexer.scanner.scan(100, 100)

        (position,) = await fetch_all(session_maker, Position)
        assert position.status == "active"

        result = await indexer.scanner.scan(100, 105)

        assert result.outcomes[LogOutcome.DUPLICATE] == 1
        assert result.outcomes[LogOutcome.HEALED] == 1
        (position,) = await fetch_all(session_maker, Position)
        assert position.status == "settled"
        assert position.predictor_won is False
        assert position.settled_at == block_timestamp(105)
        assert len(await fetch_all(session_maker, RawEvent)) == 2


class TestLimitOrders:
    """Test the limit order state machine."""

    @pytest.mark.asyncio
    async def test_placed_then_filled(self, indexer, fake_client, session_maker):
        fake_client.add_logs(
            order_placed_log(order_id=7, block_number=100),
            order_filled_log(order_id=7, block_number=101),
        )

        await indexer.scanner.scan(100, 101)

        (order,) = await fetch_all(session_maker, LimitOrder)
        assert order.order_id == "7"
        assert order.status == "filled"
        assert order.counterparty == TAKER
        assert order.placed_at == block_timestamp(100)
        assert order.filled_at == block_timestamp(101)
        assert order.predictor_collateral == "300"
        assert sorted((p.condition_id, p.outcome_yes) for p in order.legs) == [
            (COND_A, True),
            (COND_B, False),
        ]

    @pytest.mark.asyncio
    async def test_fill_after_cancel_is_ignored(
        self, indexer, fake_client, session_maker, log_messages
    ):
        """Only pending orders transition; the late fill only warns."""
        fake_client.add_logs(
            order_placed_log(order_id=7, block_number=100),
            order_cancelled_log(order_id=7, block_number=101),
            order_filled_log(order_id=7, block_number=102),
        )

        await indexer.scanner.scan(100, 102)

        (order,) = await fetch_all(session_maker, LimitOrder)
        assert order.status == "cancelled"
        assert order.cancelled_at == block_timestamp(101)
        assert order.filled_at is None
        assert any("no matching pending order" in m for m in log_messages)

    @pytest.mark.asyncio
    async def test_fill_before_placement_heals_on_replay(
        self, indexer, fake_client, session_maker
    ):
        """A fill seen before its order is applied once the order exists."""
        fake_client.add_logs(order_filled_log(order_id=9, block_number=101))
        await indexer.scanner.scan(101, 101)
        assert await fetch_all(session_maker, LimitOrder) == []

        fake_client.add_logs(order_placed_log(order_id=9, block_number=100))
        await indexer.scanner.scan(100, 100)

        (order,) = await fetch_all(session_maker, LimitOrder)
        assert order.status == "pending"

        result = await indexer.index_blocks([101])

        assert result.outcomes[LogOutcome.HEALED] == 1
        (order,) = await fetch_all(session_maker, LimitOrder)
        assert order.status == "filled"

    @pytest.mark.asyncio
    async def test_replacement_keeps_terminal_status(
        self, indexer, fake_client, session_maker
    ):
        """Re-placing a filled order id refreshes placement, not status."""
        fake_client.add_logs(
            order_placed_log(order_id=7, block_number=100),
            order_filled_log(order_id=7, block_number=101),
            order_placed_log(
                order_id=7,
                legs=(Leg(COND_B, True),),
                maker_collateral=500,
                block_number=102,
            ),
        )

        await indexer.scanner.scan(100, 102)

        (order,) = await fetch_all(session_maker, LimitOrder)
        assert order.status == "filled"
        assert order.predictor_collateral == "500"
        assert [(p.condition_id, p.outcome_yes) for p in order.legs] == [
            (COND_B, True)
        ]


class TestConditions:
    """Test resolver events and open interest."""

    @pytest.mark.asyncio
    async def test_mint_increments_open_interest_and_ends_at(
        self, indexer, fake_client, session_maker, conditions
    ):
        """Each referenced condition gets the full collateral once."""
        fake_client.add_logs(
            minted_log(
                legs=(Leg(COND_A, True), Leg(COND_B, False), Leg(COND_A, True)),
                block_number=100,
            ),
            minted_log(
                maker_token_id=3,
                taker_token_id=4,
                maker_collateral=50,
                taker_collateral=50,
                block_number=101,
            ),
        )

        await indexer.scanner.scan(100, 101)

        conds = {c.id: c for c in await fetch_all(session_maker, Condition)}
        assert conds[COND_A].open_interest == Decimal(1100)
        assert conds[COND_B].open_interest == Decimal(1000)

        positions = {
            p.predictor_token_id: p for p in await fetch_all(session_maker, Position)
        }
        assert positions["1"].ends_at == GENESIS_TS + 172_800
        assert positions["3"].ends_at == GENESIS_TS + 86_400
        assert len(positions["1"].legs) == 2

    @pytest.mark.asyncio
    async def test_submission_and_resolution_write_once(
        self, indexer, fake_client, session_maker, conditions
    ):
        fake_client.add_logs(
            market_submitted_log(assertion_id="0x" + "01" * 32, block_number=100),
            market_submitted_log(assertion_id="0x" + "02" * 32, block_number=101),
            market_resolved_log(resolved_to_yes=True, block_number=102),
            market_resolved_log(resolved_to_yes=False, block_number=103),
        )

        result = await indexer.scanner.scan(100, 103)

        assert result.outcomes[LogOutcome.PROJECTED] == 4
        (condition,) = await fetch_all(
            session_maker, Condition, Condition.id == COND_A
        )
        assert condition.assertion_id == "0x" + "01" * 32
        assert condition.assertion_timestamp == block_timestamp(100)
        assert condition.settled is True
        assert condition.resolved_to_yes is True
        assert condition.settled_at == block_timestamp(102)

    @pytest.mark.asyncio
    async def test_resolution_for_unknown_condition(
        self, indexer, fake_client, session_maker, log_messages
    ):
        """Unknown conditions are skipped and not healed on replay."""
        fake_client.add_logs(market_resolved_log(block_number=100))

        await indexer.scanner.scan(100, 100)
        replay = await indexer.index_blocks([100])

        assert await fetch_all(session_maker, Condition) == []
        assert replay.outcomes[LogOutcome.DUPLICATE] == 1
        assert any("Resolution for unknown condition" in m for m in log_messages)

    @pytest.mark.asyncio
    async def test_resolution_applied_once_condition_exists(
        self, indexer, fake_client, session_maker
    ):
        """A stored resolution settles a condition created after it."""
        fake_client.add_logs(
            market_resolved_log(resolved_to_yes=False, block_number=100)
        )
        await indexer.scanner.scan(100, 100)

        async with session_maker() as session:
            session.add(
                Condition(
                    id=COND_A,
                    chain_id=CHAIN_ID,
                    question="Will A happen?",
                    end_time=GENESIS_TS + 86_400,
                )
            )
            await session.commit()

        result = await indexer.scanner.scan(100, 100)

        assert result.outcomes[LogOutcome.HEALED] == 1
        (condition,) = await fetch_all(session_maker, Condition)
        assert condition.settled is True
        assert condition.resolved_to_yes is False
        assert condition.settled_at == block_timestamp(100)


class TestScanning:
    """Test range scanning, fallbacks and the cursor."""

    @pytest.mark.asyncio
    async def test_failed_batch_falls_back_to_single_blocks(
        self, indexer, fake_client, session_maker
    ):
        """A failing 100-block batch is re-read block by block."""
        fake_client.fail_ranges.add((100, 199))
        fake_client.add_logs(
            minted_log(block_number=120),
            minted_log(maker_token_id=3, taker_token_id=4, block_number=150),
        )

        result = await indexer.scanner.scan(100, 199)

        assert fake_client.get_logs_calls[0] == (100, 199)
        assert fake_client.get_logs_calls[1:] == [(b, b) for b in range(100, 200)]
        assert result.processed == 2
        assert result.failed_blocks == []
        assert len(await fetch_all(session_maker, Position)) == 2
        assert len(await fetch_all(session_maker, RawEvent)) == 2

    @pytest.mark.asyncio
    async def test_failed_single_block_is_reported(
        self, indexer, fake_client, session_maker
    ):
        """A block that still fails is skipped and noted on the cursor."""
        fake_client.fail_ranges.add((100, 199))
        fake_client.fail_blocks.add(150)
        fake_client.add_logs(
            minted_log(block_number=120),
            minted_log(maker_token_id=3, taker_token_id=4, block_number=150),
        )

        result = await indexer.scanner.scan(100, 199)

        assert result.failed_blocks == [150]
        assert result.processed == 1
        (cursor,) = await fetch_all(session_maker, IndexerCursor)
        assert cursor.last_processed_block == 199
        assert "150" in cursor.last_error
        assert cursor.error_count == 1

    @pytest.mark.asyncio
    async def test_blocks_fetched_lazily(self, indexer, fake_client):
        """Only blocks that carry logs are fetched, each once."""
        fake_client.add_logs(
            minted_log(block_number=300, log_index=0),
            minted_log(
                maker_token_id=3, taker_token_id=4, block_number=300, log_index=1
            ),
            minted_log(maker_token_id=5, taker_token_id=6, block_number=2_500),
        )
        fake_client.head = 5_000

        result = await indexer.scanner.scan(0, 4_999)

        assert result.processed == 3
        assert sorted(fake_client.get_block_calls) == [300, 2_500]

    @pytest.mark.asyncio
    async def test_cursor_never_moves_backwards(
        self, indexer, fake_client, session_maker
    ):
        fake_client.add_logs(minted_log(block_number=120))
        await indexer.scanner.scan(100, 199)
        await indexer.index_blocks([120])

        (cursor,) = await fetch_all(session_maker, IndexerCursor)
        assert cursor.last_processed_block == 199
        assert cursor.indexer == "prediction_market"
        assert cursor.contract_address == MARKET

    @pytest.mark.asyncio
    async def test_index_from_timestamp(self, indexer, fake_client, session_maker):
        """Timestamps resolve to the first block at or after them."""
        fake_client.add_logs(
            minted_log(block_number=99),
            minted_log(maker_token_id=3, taker_token_id=4, block_number=100),
            minted_log(maker_token_id=5, taker_token_id=6, block_number=110),
        )

        result = await indexer.index_from_timestamp(
            block_timestamp(100), block_timestamp(105)
        )

        assert (result.from_block, result.to_block) == (100, 105)
        (position,) = await fetch_all(session_maker, Position)
        assert position.predictor_token_id == "3"

    @pytest.mark.asyncio
    async def test_catch_up_scans_from_cursor(
        self, indexer, fake_client, session_maker
    ):
        """Catch-up resumes after the cursor and hands the next block to live mode."""
        await indexer.scanner.scan(0, 900)
        fake_client.add_logs(minted_log(block_number=950))

        next_block = await indexer.catch_up()

        assert next_block == fake_client.head + 1
        assert len(await fetch_all(session_maker, Position)) == 1
        (cursor,) = await fetch_all(session_maker, IndexerCursor)
        assert cursor.last_processed_block == fake_client.head

    @pytest.mark.asyncio
    async def test_catch_up_without_cursor(self, indexer, fake_client):
        assert await indexer.catch_up() is None
        assert fake_client.get_logs_calls == []

    @pytest.mark.asyncio
    async def test_clear_existing(self, indexer, fake_client, session_maker):
        """Clearing removes market data for the chain but keeps resolver events."""
        fake_client.add_logs(
            minted_log(block_number=100),
            market_resolved_log(block_number=101),
        )
        await indexer.scanner.scan(100, 101)

        await indexer.clear_existing()

        assert await fetch_all(session_maker, Position) == []
        assert await fetch_all(session_maker, MarketTransaction) == []
        remaining = await fetch_all(session_maker, RawEvent)
        assert [e.event_type for e in remaining] == ["MarketResolvedFromUMA"]

    @pytest.mark.asyncio
    async def test_clear_then_reindex_keeps_open_interest(
        self, indexer, fake_client, session_maker, conditions
    ):
        """Clearing hands back mint collateral so a rescan counts it once."""
        fake_client.add_logs(
            minted_log(legs=(Leg(COND_A, True), Leg(COND_B, True)), block_number=100)
        )
        await indexer.scanner.scan(100, 100)
        await indexer.scanner.scan(100, 100)

        await indexer.clear_existing()
        conds = await fetch_all(session_maker, Condition)
        assert {c.id: c.open_interest for c in conds} == {
            COND_A: Decimal(0),
            COND_B: Decimal(0),
        }

        await indexer.scanner.scan(100, 100)

        conds = await fetch_all(session_maker, Condition)
        assert {c.id: c.open_interest for c in conds} == {
            COND_A: Decimal(1000),
            COND_B: Decimal(1000),
        }
        assert len(await fetch_all(session_maker, Position)) == 1


async def scan_batched(indexer, fake_client, logs):
    await indexer.scanner.scan(100, 110)


async def scan_chunked(indexer, fake_client, logs):
    indexer.scanner.large_range_threshold = 4
    indexer.scanner.chunk_size = 3
    await indexer.scanner.scan(100, 110)


async def process_reversed(indexer, fake_client, logs):
    for log in reversed(logs):
        block = await fake_client.get_block_by_number(log.block_number)
        await indexer.process_log(log, block)


async def deliver_live(indexer, fake_client, logs):
    loop = WatchLoop(indexer, reconnect_delay=0, recreate_on_error=False)
    loop.start(from_block=100)
    await fake_client.subscriptions[0].deliver(logs)
    await loop.shutdown()


class TestOrderIndependence:
    """Test that unrelated events give the same state however they arrive."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "deliver",
        [scan_batched, scan_chunked, process_reversed, deliver_live],
        ids=["batched", "chunked", "reversed", "live"],
    )
    async def test_same_state_for_every_path(
        self, indexer, fake_client, session_maker, conditions, deliver
    ):
        logs = [
            minted_log(block_number=100),
            minted_log(
                maker_token_id=3,
                taker_token_id=4,
                legs=(Leg(COND_B, False),),
                block_number=101,
            ),
            order_placed_log(block_number=102),
            market_submitted_log(condition_id=COND_B, block_number=103),
            market_resolved_log(
                condition_id=COND_B, resolved_to_yes=False, block_number=104
            ),
        ]
        fake_client.add_logs(*logs)

        await deliver(indexer, fake_client, logs)

        positions = await fetch_all(session_maker, Position)
        orders = await fetch_all(session_maker, LimitOrder)
        conds = await fetch_all(session_maker, Condition)
        assert sorted(
            (p.predictor_token_id, p.status, p.ends_at) for p in positions
        ) == [
            ("1", "active", GENESIS_TS + 86_400),
            ("3", "active", GENESIS_TS + 172_800),
        ]
        assert [(o.order_id, o.status) for o in orders] == [("7", "pending")]
        assert sorted(
            (c.id, c.open_interest, c.assertion_id, c.settled, c.resolved_to_yes)
            for c in conds
        ) == sorted(
            [
                (COND_A, Decimal(1000), None, False, False),
                (COND_B, Decimal(1000), "0x" + "01" * 32, True, False),
            ]
        )
        assert len(await fetch_all(session_maker, RawEvent)) == 5
