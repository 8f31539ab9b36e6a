"""
Adapter registry unit tests

AdapterFactory construction and AdapterSet refresh epochs: one block per
refresh, partial results, superseded refreshes.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add project root and this directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from chain_fakes import (
    HOLDER,
    UNISWAP_MANAGER,
    USDC,
    USDC_WETH_3000,
    WETH,
    FakeRpc,
    positions_data,
    stage_pool,
    stage_positions,
)
from liquidity_adapter.config import ChainOverrides, Config, RpcConfig
from liquidity_adapter.errors import (
    ConfigurationError,
    ErrorCode,
    PartialResult,
    RefreshSuperseded,
    RpcError,
    UnsupportedPlatform,
)
from liquidity_adapter.protocols import AdapterFactory, AdapterSet, get_adapter, register_adapter
from liquidity_adapter.protocols.chains import ChainRegistry
from liquidity_adapter.protocols.pancakeswap_v3 import PancakeSwapV3Adapter
from liquidity_adapter.protocols.uniswap_v3 import UniswapV3Adapter
from liquidity_adapter.protocols.uniswap_v3.math import Q96

PANCAKE_MANAGER = "0x46A15B0b27311cedF172AB29E4f4766fbE7F4364"
L = 10 ** 18


class YieldingRpc(FakeRpc):
    """FakeRpc whose block_number yields to the event loop"""

    async def block_number(self) -> int:
        await asyncio.sleep(0)
        return await super().block_number()


@pytest.fixture
def registry():
    app_config = Config(rpc=RpcConfig(endpoint_overrides={}), chains=ChainOverrides(executor_addresses={}))
    return ChainRegistry(app_config=app_config)


def stage_holder(rpc, pancake_positions=None):
    """One in-range Uniswap position; Pancake holdings as given"""
    stage_pool(rpc, USDC_WETH_3000, Q96, 0, ticks={-60: (0, 0), 60: (0, 0)})
    stage_positions(rpc, UNISWAP_MANAGER, HOLDER, {11: positions_data(USDC, WETH, 3000, -60, 60, L)})
    if pancake_positions is not None:
        stage_positions(rpc, PANCAKE_MANAGER, HOLDER, pancake_positions)


class TestAdapterFactory:
    """Tests for AdapterFactory"""

    def test_builtin_platforms(self):
        platforms = AdapterFactory.list()
        assert "uniswap_v3" in platforms
        assert "pancakeswap_v3" in platforms
        assert AdapterFactory.is_registered("UNISWAP_V3")

    def test_get(self, registry):
        adapter = AdapterFactory.get("uniswap_v3", 1, FakeRpc(), registry)
        assert isinstance(adapter, UniswapV3Adapter)
        assert adapter.chain_id == 1

    def test_get_is_case_insensitive(self, registry):
        adapter = AdapterFactory.get("PancakeSwap_V3", 56, FakeRpc(chain_id=56), registry)
        assert isinstance(adapter, PancakeSwapV3Adapter)

    def test_unknown_platform(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            AdapterFactory.get("sushiswap_v3", 1, FakeRpc(), registry)
        assert "Available platforms" in exc_info.value.message

    def test_platform_not_on_chain(self, registry):
        with pytest.raises(UnsupportedPlatform):
            AdapterFactory.get("pancakeswap_v3", 8453, FakeRpc(chain_id=8453), registry)

    def test_unknown_chain(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            AdapterFactory.get("uniswap_v3", 999, FakeRpc(chain_id=999), registry)
        assert exc_info.value.code == ErrorCode.UNKNOWN_CHAIN

    def test_register_custom_adapter(self, registry):
        class ForkAdapter(UniswapV3Adapter):
            pass

        AdapterFactory.list()
        original = AdapterFactory._adapters["uniswap_v3"]
        try:
            register_adapter("uniswap_v3", ForkAdapter)
            assert isinstance(AdapterFactory.get("uniswap_v3", 1, FakeRpc(), registry), ForkAdapter)
        finally:
            AdapterFactory.register("uniswap_v3", original)

    def test_get_adapter_uses_default_registry(self):
        adapter = get_adapter("uniswap_v3", 1, FakeRpc())
        assert adapter.platform_config.position_manager == UNISWAP_MANAGER

    def test_for_chain(self, registry):
        adapters = AdapterFactory.for_chain(1, FakeRpc(), registry)
        assert [adapter.name for adapter in adapters.adapters] == ["uniswap_v3", "pancakeswap_v3"]
        assert adapters.failures == []
        assert isinstance(adapters.get("pancakeswap_v3"), PancakeSwapV3Adapter)

    def test_for_chain_single_platform(self, registry):
        adapters = AdapterFactory.for_chain(56, FakeRpc(chain_id=56), registry)
        assert [adapter.name for adapter in adapters.adapters] == ["pancakeswap_v3"]
        with pytest.raises(ConfigurationError):
            adapters.get("uniswap_v3")

    def test_for_chain_records_failures(self, registry):
        # Reader scoped to the wrong chain: every adapter fails to build
        adapters = AdapterFactory.for_chain(1, FakeRpc(chain_id=56), registry)
        assert adapters.adapters == []
        assert [failure.platform for failure in adapters.failures] == ["uniswap_v3", "pancakeswap_v3"]

    def test_for_unknown_chain(self, registry):
        with pytest.raises(ConfigurationError):
            AdapterFactory.for_chain(999, FakeRpc(chain_id=999), registry)


class TestRefresh:
    """Tests for AdapterSet.refresh"""

    def test_merges_platforms(self, registry):
        rpc = FakeRpc()
        stage_holder(rpc, pancake_positions={})
        adapters = AdapterFactory.for_chain(1, rpc, registry)

        snapshot = asyncio.run(adapters.refresh(HOLDER))

        assert snapshot.epoch == 1
        assert snapshot.block_number == 100
        assert not snapshot.partial
        assert [view.token_id for view in snapshot.positions] == [11]
        assert snapshot.positions[0].platform == "uniswap_v3"
        assert USDC_WETH_3000 in snapshot.pools
        # One block for the whole epoch
        assert rpc.block_requests == 1
        assert {block for _, block in rpc.batches} == {100}

    def test_epochs_increase(self, registry):
        rpc = FakeRpc()
        stage_holder(rpc, pancake_positions={})
        adapters = AdapterFactory.for_chain(1, rpc, registry)

        asyncio.run(adapters.refresh(HOLDER))
        snapshot = asyncio.run(adapters.refresh(HOLDER))
        assert snapshot.epoch == 2
        assert adapters.current_epoch == 2

    def test_refresh_rereads_pools(self, registry):
        rpc = FakeRpc()
        stage_holder(rpc, pancake_positions={})
        adapters = AdapterFactory.for_chain(1, rpc, registry)

        asyncio.run(adapters.refresh(HOLDER))
        first = len(rpc.batches)
        asyncio.run(adapters.refresh(HOLDER))
        assert len(rpc.batches) == 2 * first

    def test_failed_platform_is_partial(self, registry):
        # Pancake holdings not staged: its balanceOf reverts
        rpc = FakeRpc()
        stage_holder(rpc)
        adapters = AdapterFactory.for_chain(1, rpc, registry)

        snapshot = asyncio.run(adapters.refresh(HOLDER))

        assert snapshot.partial
        assert [view.token_id for view in snapshot.positions] == [11]
        failure = snapshot.failures[0]
        assert failure.token_id is None
        assert failure.platform == "pancakeswap_v3"
        assert failure.error.code == ErrorCode.RPC_CALL_REVERTED

    def test_raise_on_partial(self, registry):
        rpc = FakeRpc()
        stage_holder(rpc)
        adapters = AdapterFactory.for_chain(1, rpc, registry)

        with pytest.raises(PartialResult) as exc_info:
            asyncio.run(adapters.refresh(HOLDER, raise_on_partial=True))
        assert exc_info.value.code == ErrorCode.PARTIAL_RESULT
        assert len(exc_info.value.snapshot.positions) == 1

    def test_adapter_build_failures_are_partial(self, registry):
        adapters = AdapterFactory.for_chain(1, FakeRpc(chain_id=56), registry)
        snapshot = asyncio.run(adapters.refresh(HOLDER))
        assert snapshot.partial
        assert len(snapshot.failures) == 2
        assert snapshot.positions == []

    def test_superseded_refresh_is_dropped(self, registry):
        rpc = YieldingRpc()
        stage_holder(rpc, pancake_positions={})
        adapters = AdapterFactory.for_chain(1, rpc, registry)

        async def run_both():
            return await asyncio.gather(
                adapters.refresh(HOLDER),
                adapters.refresh(HOLDER),
                return_exceptions=True,
            )

        first, second = asyncio.run(run_both())

        assert isinstance(first, RefreshSuperseded)
        assert first.epoch == 1
        assert first.current_epoch == 2
        assert second.epoch == 2
        assert [view.token_id for view in second.positions] == [11]

    def test_block_failure_propagates(self, registry):
        class DownRpc(FakeRpc):
            async def block_number(self) -> int:
                raise RpcError.connection_failed("fake://node", ConnectionError("down"))

        adapters = AdapterSet(1, DownRpc(), [UniswapV3Adapter(1, FakeRpc(), registry)])
        with pytest.raises(RpcError) as exc_info:
            asyncio.run(adapters.refresh(HOLDER))
        assert exc_info.value.code == ErrorCode.RPC_CONNECTION_FAILED


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v", "--tb=short"]))
