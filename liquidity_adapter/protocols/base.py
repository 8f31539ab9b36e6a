"""
Base platform adapter interface

Every concentrated-liquidity platform adapter implements this interface so
callers get one face for reads (pools, positions, fees) and writes
(calldata) regardless of the fork behind it.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from ..infra.rpc import RpcReader
from ..types import (
    ClosePlan,
    PoolState,
    Position,
    PositionSnapshot,
    PositionView,
    Price,
    PriceRange,
    Token,
    TxRequest,
)
from .chains import ChainRegistry, PlatformConfig, get_chain_registry


class PlatformAdapter(ABC):
    """
    Abstract base class for platform adapters

    One instance is bound to one (platform, chain) pair and one RpcReader.
    Instances keep their own per-block cache; nothing is shared at module
    level.
    """

    # Platform identifier (e.g., "uniswap_v3")
    name: str = "base"

    def __init__(self, chain_id: int, rpc: RpcReader, registry: Optional[ChainRegistry] = None):
        """
        Args:
            chain_id: Chain the adapter serves
            rpc: Reader scoped to the same chain
            registry: Chain registry (process default if None)

        Raises:
            ConfigurationError: Unknown chain
            UnsupportedPlatform: Platform not deployed on the chain
        """
        self._chain_id = chain_id
        self._rpc = rpc
        self._registry = registry or get_chain_registry()
        self._platform_config = self._registry.get_platform(self.name, chain_id)

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def rpc(self) -> RpcReader:
        return self._rpc

    @property
    def registry(self) -> ChainRegistry:
        return self._registry

    @property
    def platform_config(self) -> PlatformConfig:
        return self._platform_config

    @property
    def fee_tiers(self) -> List[int]:
        return self._platform_config.fee_tiers

    def tick_spacing(self, fee: int) -> int:
        """
        Raises:
            ConfigurationError: Fee tier not offered by the platform
        """
        return self._registry.tick_spacing(self.name, self._chain_id, fee)

    @staticmethod
    def is_position_in_range(tick: int, tick_lower: int, tick_upper: int) -> bool:
        """tick_lower <= tick < tick_upper"""
        return tick_lower <= tick < tick_upper

    # ========== Pure conversions ==========

    @abstractmethod
    def price_to_tick(self, price, base: Token, quote: Token) -> int:
        """Tick for a quote-per-base price, orientation handled internally"""
        ...

    @abstractmethod
    def tick_to_price(self, tick: int, base: Token, quote: Token) -> Price:
        ...

    @abstractmethod
    def range_to_ticks(
        self,
        price_range: PriceRange,
        fee: int,
        base: Token,
        quote: Token,
        pool_state: Optional[PoolState] = None,
    ) -> Tuple[int, int]:
        """Aligned (tick_lower, tick_upper) for a price range specification"""
        ...

    @abstractmethod
    def get_pool_address(self, token_a: str, token_b: str, fee: int) -> str:
        ...

    # ========== Reads ==========

    @abstractmethod
    async def load_pool(self, pool_address: str, fee: int, block_number: Optional[int] = None) -> PoolState:
        ...

    @abstractmethod
    async def get_position(self, token_id: int, block_number: Optional[int] = None) -> Position:
        ...

    @abstractmethod
    async def get_position_view(self, position: Position, block_number: Optional[int] = None) -> PositionView:
        ...

    @abstractmethod
    async def get_positions(
        self,
        holder: str,
        block_number: Optional[int] = None,
        epoch: int = 0,
    ) -> PositionSnapshot:
        """
        All positions of ``holder`` with amounts and uncollected fees

        Per-position failures are recorded in the snapshot, never raised.
        """
        ...

    def invalidate_cache(self):
        """Drop per-block memoized state (new refresh epoch)"""

    # ========== Calldata ==========

    @abstractmethod
    def build_mint(
        self,
        token0: str,
        token1: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        recipient: str,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        ...

    @abstractmethod
    def build_increase(
        self,
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        ...

    @abstractmethod
    async def build_decrease(
        self,
        token_id: int,
        percentage_bps: int,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        ...

    @abstractmethod
    def build_collect(self, token_id: int, recipient: str) -> TxRequest:
        ...

    @abstractmethod
    async def build_close(
        self,
        token_id: int,
        recipient: str,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
        burn: bool = True,
        require_atomic: bool = False,
    ) -> ClosePlan:
        ...

    def describe(self) -> dict:
        return {
            "platform": self.name,
            "chain_id": self._chain_id,
            "factory": self._platform_config.factory,
            "position_manager": self._platform_config.position_manager,
            "fee_tiers": self.fee_tiers,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chain_id={self._chain_id})"


def unique_addresses(addresses: Sequence[str]) -> List[str]:
    """Preserve order, drop case-insensitive duplicates"""
    seen = set()
    result = []
    for address in addresses:
        key = address.lower()
        if key not in seen:
            seen.add(key)
            result.append(address)
    return result
