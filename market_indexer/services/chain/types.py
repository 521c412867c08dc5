"""
Chain data types.

Plain containers the pipeline works with, independent of the RPC
library's receipt types.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class BlockInfo:
    """Block number and timestamp."""

    number: int
    timestamp: int


@dataclass(frozen=True)
class RawLog:
    """
    A contract log as delivered by the RPC node.

    Attributes:
        address: Emitting contract, lowercase 0x-hex
        topics: Topic words, topics[0] is the event signature hash
        data: Non-indexed ABI-encoded payload
        block_number: Block containing the log
        transaction_hash: Emitting transaction, lowercase 0x-hex
        log_index: Position of the log within the block
    """

    address: str
    topics: tuple[bytes, ...]
    data: bytes
    block_number: int
    transaction_hash: str
    log_index: int

    @property
    def position(self) -> tuple[int, int]:
        """Sort key giving chain order."""
        return (self.block_number, self.log_index)


@dataclass
class BlockCache:
    """
    Per-run block cache.

    Fetches each block at most once, so timestamps are looked up lazily
    per log instead of per scanned block.
    """

    fetch: Callable[[int], Awaitable[BlockInfo]]
    blocks: dict[int, BlockInfo] = field(default_factory=dict)

    async def get(self, block_number: int) -> BlockInfo:
        block = self.blocks.get(block_number)
        if block is None:
            block = await self.fetch(block_number)
            self.blocks[block_number] = block
        return block

    def __len__(self) -> int:
        return len(self.blocks)
