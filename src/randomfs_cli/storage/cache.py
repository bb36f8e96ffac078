"""Byte-budgeted LRU cache for engine blocks."""

from collections import OrderedDict
from typing import Optional


class BlockCache:
    """
    In-memory LRU cache keyed by block hash.

    Holds at most ``max_bytes`` of block data. Blocks larger than the whole
    budget are never cached. Hit and miss counts are kept so the engine can
    fold them into its statistics.
    """

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        self.size = 0
        self.hits = 0
        self.misses = 0
        self._blocks: "OrderedDict[str, bytes]" = OrderedDict()

    def get(self, block_hash: str) -> Optional[bytes]:
        block = self._blocks.get(block_hash)
        if block is None:
            self.misses += 1
            return None
        self._blocks.move_to_end(block_hash)
        self.hits += 1
        return block

    def put(self, block_hash: str, block: bytes) -> None:
        if len(block) > self.max_bytes:
            return
        if block_hash in self._blocks:
            self._blocks.move_to_end(block_hash)
            return
        self._blocks[block_hash] = block
        self.size += len(block)
        while self.size > self.max_bytes:
            _, evicted = self._blocks.popitem(last=False)
            self.size -= len(evicted)

    def __contains__(self, block_hash: str) -> bool:
        return block_hash in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)
