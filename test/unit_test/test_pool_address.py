"""
Pool address derivation unit tests

CREATE2 derivation is pure: no network access is needed.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from liquidity_adapter.config import ChainOverrides, Config, RpcConfig
from liquidity_adapter.errors import ConfigurationError, ErrorCode, UnsupportedPlatform, ValidationError
from liquidity_adapter.protocols.chains import (
    PANCAKESWAP_V3,
    UNISWAP_V3,
    UNISWAP_V3_INIT_CODE_HASH,
    ChainRegistry,
)
from liquidity_adapter.protocols.uniswap_v3.pool_address import (
    compute_pool_address,
    derive_pool_address,
    sort_addresses,
)

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
UNISWAP_FACTORY = "0x1F98431c8aD98523631AE4a59f267346ea31F984"

USDC_WETH_3000 = "0x8ad599c3A0ff1De082011EFDDc58f1908eb6e6D8"


@pytest.fixture
def registry():
    """Registry without environment overrides"""
    app_config = Config(rpc=RpcConfig(endpoint_overrides={}), chains=ChainOverrides(executor_addresses={}))
    return ChainRegistry(app_config=app_config)


class TestComputePoolAddress:
    """Tests for compute_pool_address"""

    def test_usdc_weth_030(self):
        address = compute_pool_address(UNISWAP_FACTORY, USDC, WETH, 3000, UNISWAP_V3_INIT_CODE_HASH)
        assert address == USDC_WETH_3000

    def test_commutative(self):
        forward = compute_pool_address(UNISWAP_FACTORY, USDC, WETH, 3000, UNISWAP_V3_INIT_CODE_HASH)
        reverse = compute_pool_address(UNISWAP_FACTORY, WETH, USDC, 3000, UNISWAP_V3_INIT_CODE_HASH)
        assert forward == reverse

    def test_case_insensitive_inputs(self):
        address = compute_pool_address(
            UNISWAP_FACTORY.lower(), USDC.lower(), WETH.lower(), 3000, UNISWAP_V3_INIT_CODE_HASH
        )
        assert address == USDC_WETH_3000

    def test_fee_changes_address(self):
        address = compute_pool_address(UNISWAP_FACTORY, USDC, WETH, 500, UNISWAP_V3_INIT_CODE_HASH)
        assert address != USDC_WETH_3000

    def test_same_token_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_pool_address(UNISWAP_FACTORY, USDC, USDC.lower(), 3000, UNISWAP_V3_INIT_CODE_HASH)
        assert exc_info.value.code == ErrorCode.SAME_TOKEN

    def test_sort_addresses(self):
        assert sort_addresses(WETH, USDC) == (USDC, WETH)
        assert sort_addresses(USDC, WETH) == (USDC, WETH)


class TestDerivePoolAddress:
    """Tests for registry-backed derivation"""

    def test_uniswap_mainnet(self, registry):
        assert derive_pool_address(UNISWAP_V3, 1, WETH, USDC, 3000, registry) == USDC_WETH_3000

    def test_commutative_on_every_platform(self, registry):
        for chain_id in registry.list_chains():
            for platform in registry.platforms_for(chain_id):
                fee = registry.get_platform(platform, chain_id).fee_tiers[0]
                forward = derive_pool_address(platform, chain_id, USDC, WETH, fee, registry)
                reverse = derive_pool_address(platform, chain_id, WETH, USDC, fee, registry)
                assert forward == reverse

    def test_pancake_uses_own_deployer(self, registry):
        uniswap = derive_pool_address(UNISWAP_V3, 1, USDC, WETH, 500, registry)
        pancake = derive_pool_address(PANCAKESWAP_V3, 1, USDC, WETH, 500, registry)
        assert uniswap != pancake

    def test_unknown_fee_tier(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            derive_pool_address(UNISWAP_V3, 1, USDC, WETH, 2500, registry)
        assert exc_info.value.code == ErrorCode.UNKNOWN_FEE_TIER

    def test_unsupported_platform(self, registry):
        with pytest.raises(UnsupportedPlatform):
            derive_pool_address(PANCAKESWAP_V3, 42161, USDC, WETH, 500, registry)

    def test_unknown_chain(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            derive_pool_address(UNISWAP_V3, 999999, USDC, WETH, 3000, registry)
        assert exc_info.value.code == ErrorCode.UNKNOWN_CHAIN


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v", "--tb=short"]))
