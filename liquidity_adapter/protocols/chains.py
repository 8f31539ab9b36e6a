"""
Chain registry

Single source of truth for chain-specific constants: factories, position
managers, pool init-code hashes, fee tiers and tick spacings, known tokens,
RPC endpoints and explorers. Read-only once built and safe to share.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import ConfigurationError, UnsupportedPlatform
from ..types import Token, same_address

logger = logging.getLogger(__name__)

UNISWAP_V3 = "uniswap_v3"
PANCAKESWAP_V3 = "pancakeswap_v3"


@dataclass(frozen=True)
class PlatformConfig:
    """
    One concentrated-liquidity deployment on one chain

    Attributes:
        platform: Platform id
        factory: Factory contract (getPool lookups, owner of fee tiers)
        deployer: CREATE2 deployer of pools (the factory itself on Uniswap,
            a separate PoolDeployer on PancakeSwap)
        position_manager: NonfungiblePositionManager
        init_code_hash: Pool init-code hash used in CREATE2 derivation
        tick_spacing_by_fee: Exhaustive fee tier -> tick spacing map
        supports_multicall: Position manager implements multicall(bytes[])
    """
    platform: str
    factory: str
    deployer: str
    position_manager: str
    init_code_hash: str
    tick_spacing_by_fee: Dict[int, int]
    supports_multicall: bool = True

    def __post_init__(self):
        if not self.init_code_hash:
            raise ConfigurationError.missing(f"pool init code hash for {self.platform}")
        if not self.deployer:
            raise ConfigurationError.missing(f"pool deployer for {self.platform}")
        hash_hex = self.init_code_hash[2:] if self.init_code_hash.startswith("0x") else self.init_code_hash
        if len(hash_hex) != 64:
            raise ConfigurationError.invalid(
                "init_code_hash", f"{self.platform} hash must be 32 bytes, got {self.init_code_hash}"
            )
        if not self.tick_spacing_by_fee:
            raise ConfigurationError.missing(f"fee tiers for {self.platform}")

    @property
    def fee_tiers(self) -> List[int]:
        return sorted(self.tick_spacing_by_fee)


@dataclass(frozen=True)
class ChainConfig:
    """Everything the adapters need to know about one chain"""
    chain_id: int
    name: str
    platforms: Dict[str, PlatformConfig]
    tokens: Dict[str, Token]
    rpc_endpoints: List[str]
    explorer_url: str
    executor_address: Optional[str] = None
    native_symbol: str = "ETH"


# =============================================================================
# Platform deployments
# =============================================================================

UNISWAP_V3_INIT_CODE_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"
PANCAKESWAP_V3_INIT_CODE_HASH = "0x6ce8eb472fa82df5469c6ab6d485f17c3ad13c8cd7af59b3d4a8026c5ce0f7e2"

UNISWAP_V3_TICK_SPACINGS = {100: 1, 500: 10, 3000: 60, 10000: 200}
PANCAKESWAP_V3_TICK_SPACINGS = {100: 1, 500: 10, 2500: 50, 10000: 200}

_UNISWAP_V3_CANONICAL = PlatformConfig(
    platform=UNISWAP_V3,
    factory="0x1F98431c8aD98523631AE4a59f267346ea31F984",
    deployer="0x1F98431c8aD98523631AE4a59f267346ea31F984",
    position_manager="0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
    init_code_hash=UNISWAP_V3_INIT_CODE_HASH,
    tick_spacing_by_fee=UNISWAP_V3_TICK_SPACINGS,
)

_UNISWAP_V3_BASE = PlatformConfig(
    platform=UNISWAP_V3,
    factory="0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
    deployer="0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
    position_manager="0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1",
    init_code_hash=UNISWAP_V3_INIT_CODE_HASH,
    tick_spacing_by_fee=UNISWAP_V3_TICK_SPACINGS,
)

_PANCAKESWAP_V3 = PlatformConfig(
    platform=PANCAKESWAP_V3,
    factory="0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    deployer="0x41ff9AA7e16B8B1a8a8dc4f0eFacd93D02d071c9",
    position_manager="0x46A15B0b27311cedF172AB29E4f4766fbE7F4364",
    init_code_hash=PANCAKESWAP_V3_INIT_CODE_HASH,
    tick_spacing_by_fee=PANCAKESWAP_V3_TICK_SPACINGS,
)


def _tokens(chain_id: int, entries) -> Dict[str, Token]:
    return {
        symbol: Token(chain_id=chain_id, address=address, symbol=symbol, decimals=decimals, name=name)
        for symbol, address, decimals, name in entries
    }


# =============================================================================
# Chains
# =============================================================================

ETHEREUM = ChainConfig(
    chain_id=1,
    name="Ethereum",
    platforms={UNISWAP_V3: _UNISWAP_V3_CANONICAL, PANCAKESWAP_V3: _PANCAKESWAP_V3},
    tokens=_tokens(1, [
        ("WETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18, "Wrapped Ether"),
        ("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6, "USD Coin"),
        ("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 6, "Tether USD"),
        ("WBTC", "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 8, "Wrapped BTC"),
        ("DAI", "0x6B175474E89094C44Da98b954EedeaC495271d0F", 18, "Dai Stablecoin"),
    ]),
    rpc_endpoints=["https://eth.llamarpc.com", "https://rpc.ankr.com/eth"],
    explorer_url="https://etherscan.io",
)

ARBITRUM = ChainConfig(
    chain_id=42161,
    name="Arbitrum One",
    platforms={UNISWAP_V3: _UNISWAP_V3_CANONICAL},
    tokens=_tokens(42161, [
        ("WETH", "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18, "Wrapped Ether"),
        ("USDC", "0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6, "USD Coin"),
        ("USDT", "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", 6, "Tether USD"),
        ("ARB", "0x912CE59144191C1204E64559FE8253a0e49E6548", 18, "Arbitrum"),
        ("WBTC", "0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f", 8, "Wrapped BTC"),
    ]),
    rpc_endpoints=["https://arb1.arbitrum.io/rpc"],
    explorer_url="https://arbiscan.io",
)

BASE = ChainConfig(
    chain_id=8453,
    name="Base",
    platforms={UNISWAP_V3: _UNISWAP_V3_BASE},
    tokens=_tokens(8453, [
        ("WETH", "0x4200000000000000000000000000000000000006", 18, "Wrapped Ether"),
        ("USDC", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6, "USD Coin"),
    ]),
    rpc_endpoints=["https://mainnet.base.org"],
    explorer_url="https://basescan.org",
)

BSC = ChainConfig(
    chain_id=56,
    name="BNB Smart Chain",
    platforms={PANCAKESWAP_V3: _PANCAKESWAP_V3},
    tokens=_tokens(56, [
        ("WBNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", 18, "Wrapped BNB"),
        ("USDT", "0x55d398326f99059fF775485246999027B3197955", 18, "Tether USD"),
        ("USDC", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18, "USD Coin"),
    ]),
    rpc_endpoints=["https://bsc-dataseed.binance.org"],
    explorer_url="https://bscscan.com",
    native_symbol="BNB",
)

DEFAULT_CHAINS: List[ChainConfig] = [ETHEREUM, ARBITRUM, BASE, BSC]


class ChainRegistry:
    """
    Lookup over ChainConfigs

    Environment overrides from the global config are applied on top of the
    static tables: RPC_URLS_<chainId> replaces the endpoint list and
    EXECUTOR_ADDRESS_<chainId> sets the executor.

    Usage:
        registry = get_chain_registry()
        platform = registry.get_platform("uniswap_v3", 1)
        spacing = registry.tick_spacing("uniswap_v3", 1, 3000)   # 60
    """

    def __init__(self, chains: Optional[List[ChainConfig]] = None, app_config=None):
        if app_config is None:
            from ..config import config as app_config

        self._chains: Dict[int, ChainConfig] = {}
        for chain in (chains if chains is not None else DEFAULT_CHAINS):
            if chain.chain_id in self._chains:
                raise ConfigurationError.invalid("chains", f"duplicate chain id {chain.chain_id}")
            self._chains[chain.chain_id] = chain

        self._endpoint_overrides = {
            chain_id: app_config.rpc.endpoints_for(chain_id) for chain_id in self._chains
        }
        self._executor_overrides = dict(app_config.chains.executor_addresses)

    def get_chain(self, chain_id: int) -> ChainConfig:
        try:
            return self._chains[chain_id]
        except KeyError:
            raise ConfigurationError.unknown_chain(chain_id)

    def list_chains(self) -> List[int]:
        return sorted(self._chains)

    def platforms_for(self, chain_id: int) -> List[str]:
        return list(self.get_chain(chain_id).platforms)

    def get_platform(self, platform: str, chain_id: int) -> PlatformConfig:
        """
        Raises:
            ConfigurationError: Unknown chain
            UnsupportedPlatform: Platform not deployed on the chain
        """
        chain = self.get_chain(chain_id)
        platform_config = chain.platforms.get(platform)
        if platform_config is None:
            raise UnsupportedPlatform(platform, chain_id)
        return platform_config

    def tick_spacing(self, platform: str, chain_id: int, fee: int) -> int:
        spacing = self.get_platform(platform, chain_id).tick_spacing_by_fee.get(fee)
        if spacing is None:
            raise ConfigurationError.unknown_fee_tier(platform, chain_id, fee)
        return spacing

    def get_token(self, chain_id: int, symbol: str) -> Token:
        tokens = self.get_chain(chain_id).tokens
        token = tokens.get(symbol) or tokens.get(symbol.upper())
        if token is None:
            raise ConfigurationError.invalid("token", f"Unknown token {symbol} on chain {chain_id}")
        return token

    def find_token_by_address(self, chain_id: int, address: str) -> Optional[Token]:
        for token in self.get_chain(chain_id).tokens.values():
            if same_address(token.address, address):
                return token
        return None

    def rpc_endpoints(self, chain_id: int) -> List[str]:
        """Ordered fallback list; the environment override wins when set"""
        chain = self.get_chain(chain_id)
        return self._endpoint_overrides.get(chain_id) or list(chain.rpc_endpoints)

    def executor_address(self, chain_id: int) -> Optional[str]:
        chain = self.get_chain(chain_id)
        return self._executor_overrides.get(chain_id) or chain.executor_address

    def supports_automation(self, chain_id: int) -> bool:
        """Automation toggle is available only where an executor is deployed"""
        return bool(self.executor_address(chain_id))

    def explorer_tx_url(self, chain_id: int, tx_hash: str) -> str:
        return f"{self.get_chain(chain_id).explorer_url}/tx/{tx_hash}"

    def explorer_address_url(self, chain_id: int, address: str) -> str:
        return f"{self.get_chain(chain_id).explorer_url}/address/{address}"


_default_registry: Optional[ChainRegistry] = None


def get_chain_registry() -> ChainRegistry:
    """Process-wide default registry (built on first use)"""
    global _default_registry
    if _default_registry is None:
        _default_registry = ChainRegistry()
    return _default_registry


def reset_chain_registry():
    """Drop the default registry so the next lookup re-reads the environment"""
    global _default_registry
    _default_registry = None
