"""
Per-block pool state memoization
"""

import logging
from collections import OrderedDict
from typing import Generic, Hashable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

CacheKey = Tuple[str, Optional[int]]


class BlockCache(Generic[V]):
    """
    LRU keyed by (pool address, block number)

    Owned by one adapter instance. Writes are last-write-wins, the least
    recently used entry is evicted past ``max_entries``, and nothing expires
    on a timer: entries leave only by eviction or ``invalidate()``.

    Entries for block None ("latest") are never stored since they would
    not describe a fixed block.
    """

    def __init__(self, max_entries: int = 128):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._max_entries = max_entries
        self._entries: "OrderedDict[Hashable, V]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _key(address: str, block_number: Optional[int]) -> Hashable:
        return (address.lower(), block_number)

    def get(self, address: str, block_number: Optional[int]) -> Optional[V]:
        if block_number is None:
            return None
        key = self._key(address, block_number)
        value = self._entries.get(key)
        if value is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def put(self, address: str, block_number: Optional[int], value: V):
        if block_number is None:
            return
        key = self._key(address, block_number)
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted pool state {evicted}")

    def invalidate(self):
        """Drop every entry (new refresh epoch)"""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        address, block_number = key
        return self._key(address, block_number) in self._entries
