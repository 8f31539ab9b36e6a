"""
Infrastructure unit tests

Tests the per-block cache, correlation ids and the refresh epoch counter.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from liquidity_adapter.infra.cache import BlockCache
from liquidity_adapter.infra.tracing import (
    CorrelationContext,
    EpochCounter,
    generate_correlation_id,
    get_correlation_id,
    log_with_correlation,
)

POOL_A = "0x8ad599c3A0ff1De082011EFDDc58f1908eb6e6D8"
POOL_B = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"


class TestBlockCache:
    """Tests for BlockCache"""

    def test_put_get(self):
        cache = BlockCache(max_entries=4)
        cache.put(POOL_A, 100, "state")
        assert cache.get(POOL_A, 100) == "state"
        assert cache.get(POOL_A.lower(), 100) == "state"
        assert (POOL_A, 100) in cache
        assert cache.hits == 2

    def test_keyed_by_block(self):
        cache = BlockCache()
        cache.put(POOL_A, 100, "old")
        assert cache.get(POOL_A, 101) is None
        assert cache.misses == 1

    def test_latest_never_cached(self):
        cache = BlockCache()
        cache.put(POOL_A, None, "state")
        assert len(cache) == 0
        assert cache.get(POOL_A, None) is None

    def test_last_write_wins(self):
        cache = BlockCache()
        cache.put(POOL_A, 100, "first")
        cache.put(POOL_A, 100, "second")
        assert cache.get(POOL_A, 100) == "second"
        assert len(cache) == 1

    def test_lru_eviction(self):
        cache = BlockCache(max_entries=2)
        cache.put(POOL_A, 1, "a1")
        cache.put(POOL_B, 1, "b1")
        # Touch A so B is least recently used
        cache.get(POOL_A, 1)
        cache.put(POOL_A, 2, "a2")
        assert (POOL_B, 1) not in cache
        assert (POOL_A, 1) in cache
        assert (POOL_A, 2) in cache

    def test_invalidate(self):
        cache = BlockCache()
        cache.put(POOL_A, 1, "a1")
        cache.invalidate()
        assert len(cache) == 0

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            BlockCache(max_entries=0)


class TestCorrelation:
    """Tests for correlation ids"""

    def test_generate_unique(self):
        assert generate_correlation_id() != generate_correlation_id()
        assert len(generate_correlation_id()) == 12

    def test_context_scoping(self):
        assert get_correlation_id() is None
        with CorrelationContext("refresh") as cid:
            assert cid.startswith("refresh_")
            assert get_correlation_id() == cid
            with CorrelationContext() as inner:
                assert get_correlation_id() == inner
            assert get_correlation_id() == cid
        assert get_correlation_id() is None

    def test_log_format(self, caplog):
        test_logger = logging.getLogger("test.tracing")
        with caplog.at_level(logging.INFO, logger="test.tracing"):
            with CorrelationContext("refresh") as cid:
                log_with_correlation(logging.INFO, "done", "refresh", epoch=3, target_logger=test_logger)

        record = caplog.records[-1]
        assert record.getMessage() == f"[{cid}] [refresh] [epoch 3] done"
        assert record.correlation_id == cid
        assert record.epoch == 3

    def test_log_without_context(self, caplog):
        test_logger = logging.getLogger("test.tracing")
        with caplog.at_level(logging.INFO, logger="test.tracing"):
            log_with_correlation(logging.INFO, "hello", "positions", target_logger=test_logger)
        assert caplog.records[-1].getMessage() == "[positions] hello"


class TestEpochCounter:
    """Tests for EpochCounter"""

    def test_next_is_monotonic(self):
        epochs = EpochCounter()
        assert epochs.current == 0
        assert epochs.next() == 1
        assert epochs.next() == 2
        assert epochs.current == 2

    def test_superseded(self):
        epochs = EpochCounter(start=10)
        first = epochs.next()
        assert epochs.is_current(first)
        second = epochs.next()
        assert not epochs.is_current(first)
        assert epochs.is_current(second)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v", "--tb=short"]))
