"""
Chain Client.

Read-only RPC access for one chain: blocks, logs, live log delivery and
contract point lookups.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3, Web3

from market_indexer.config.settings import settings
from market_indexer.services.chain.rpc import rpc_call_with_retry
from market_indexer.services.chain.types import BlockCache, BlockInfo, RawLog

OnLogs = Callable[[list[RawLog]], Awaitable[None]]
OnError = Callable[[Exception], Awaitable[None] | None]


class LogSubscription:
    """
    Live log delivery handle.

    Polls the chain head and delivers every new log in block order.
    A polling failure stops the handle and is passed to ``on_error``;
    ``restart()`` resumes from the first undelivered block, while a
    fresh handle created with ``from_block=None`` starts at the head.
    """

    def __init__(
        self,
        client: "ChainClient",
        addresses: Sequence[str],
        on_logs: OnLogs,
        on_error: OnError,
        poll_interval: float,
        from_block: int | None = None,
        topics: list[Any] | None = None,
    ) -> None:
        self.client = client
        self.addresses = list(addresses)
        self.topics = topics
        self.on_logs = on_logs
        self.on_error = on_error
        self.poll_interval = poll_interval
        self.next_block = from_block
        self._task: asyncio.Task | None = None
        self._delivering = False
        self._closing = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._closing = False
        self._task = asyncio.create_task(self._run())

    def restart(self) -> None:
        """Resume polling on the same handle."""
        self.start()

    def unsubscribe(self) -> None:
        """Stop polling immediately. Safe to call more than once."""
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def aclose(self) -> None:
        """Stop polling after the batch being delivered, if any, completes."""
        self._closing = True
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        if not self._delivering:
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        try:
            if self.next_block is None:
                self.next_block = await self.client.get_block_number() + 1

            while not self._closing:
                head = await self.client.get_block_number()
                if head >= self.next_block:
                    logs = await self.client.get_logs(
                        self.addresses, self.next_block, head, self.topics
                    )
                    if logs:
                        self._delivering = True
                        try:
                            await self.on_logs(logs)
                        finally:
                            self._delivering = False
                    self.next_block = head + 1
                if self._closing:
                    break
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            result = self.on_error(e)
            if inspect.isawaitable(result):
                await result


class ChainClient:
    """
    Chain RPC client backed by web3 ``AsyncWeb3``.

    Every call goes through ``rpc_call_with_retry`` so timeouts surface
    as ``ChainTimeoutError`` and exhausted retries as ``ChainRPCError``.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_url: str,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.chain_id = chain_id
        self.rpc_url = rpc_url
        self.timeout = timeout or settings.rpc_timeout
        self.max_retries = max_retries or settings.rpc_max_retries
        self.w3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc_url, request_kwargs={"timeout": self.timeout}
            )
        )

    async def _call(
        self, factory: Callable[[], Awaitable[Any]], operation: str
    ) -> Any:
        return await rpc_call_with_retry(
            factory,
            max_retries=self.max_retries,
            timeout=self.timeout,
            operation_name=f"[Chain:{self.chain_id}] {operation}",
            delay_base=settings.rpc_retry_delay_base,
        )

    async def get_block_number(self) -> int:
        return await self._call(
            lambda: self.w3.eth.block_number, "eth_blockNumber"
        )

    async def get_block_by_number(self, number: int | str) -> BlockInfo:
        block = await self._call(
            lambda: self.w3.eth.get_block(number), f"eth_getBlock({number})"
        )
        return BlockInfo(number=int(block["number"]), timestamp=int(block["timestamp"]))

    async def get_latest_block(self) -> BlockInfo:
        return await self.get_block_by_number("latest")

    async def get_block_by_timestamp(self, timestamp: int) -> BlockInfo:
        """
        Find the first block at or after ``timestamp``.

        Timestamps past the head resolve to the latest block.

        Args:
            timestamp: Unix timestamp in seconds

        Returns:
            Matching block
        """
        latest = await self.get_latest_block()
        if timestamp >= latest.timestamp:
            return latest

        low, high = 0, latest.number
        result = latest
        while low <= high:
            mid = (low + high) // 2
            block = await self.get_block_by_number(mid)
            if block.timestamp >= timestamp:
                result = block
                high = mid - 1
            else:
                low = mid + 1

        return result

    async def get_logs(
        self,
        addresses: Iterable[str],
        from_block: int,
        to_block: int,
        topics: list[Any] | None = None,
    ) -> list[RawLog]:
        """
        Fetch logs emitted by ``addresses`` in [from_block, to_block].

        Args:
            addresses: Contract addresses
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            topics: Optional topic filter

        Returns:
            Logs in chain order
        """
        params: dict[str, Any] = {
            "address": [to_checksum_address(a) for a in addresses],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        if topics:
            params["topics"] = topics

        entries = await self._call(
            lambda: self.w3.eth.get_logs(params),
            f"eth_getLogs({from_block}-{to_block})",
        )
        logs = [self._to_raw_log(entry) for entry in entries]
        logs.sort(key=lambda log: log.position)
        return logs

    async def read_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Call a view function and return its decoded result."""
        contract = self.w3.eth.contract(
            address=to_checksum_address(address), abi=abi
        )
        function = getattr(contract.functions, method)
        return await self._call(
            lambda: function(*args).call(), f"eth_call({method})"
        )

    def subscribe_logs(
        self,
        addresses: Sequence[str],
        on_logs: OnLogs,
        on_error: OnError,
        from_block: int | None = None,
        topics: list[Any] | None = None,
    ) -> LogSubscription:
        """
        Start delivering new logs for ``addresses``.

        Returns:
            Running subscription handle; call ``unsubscribe()`` to stop
        """
        subscription = LogSubscription(
            self,
            addresses,
            on_logs,
            on_error,
            poll_interval=settings.watch_poll_interval,
            from_block=from_block,
            topics=topics,
        )
        subscription.start()
        logger.info(
            f"[Chain:{self.chain_id}] Subscribed to logs of "
            f"{len(subscription.addresses)} contract(s)"
        )
        return subscription

    def block_cache(self) -> BlockCache:
        return BlockCache(fetch=self.get_block_by_number)

    @staticmethod
    def _to_raw_log(entry: Any) -> RawLog:
        return RawLog(
            address=str(entry["address"]).lower(),
            topics=tuple(bytes(topic) for topic in entry["topics"]),
            data=bytes(entry["data"]),
            block_number=int(entry["blockNumber"]),
            transaction_hash=Web3.to_hex(entry["transactionHash"]).lower(),
            log_index=int(entry["logIndex"]),
        )
