"""
Pool type definitions
"""

from dataclasses import dataclass, field
from typing import Optional

from .common import Token, sort_tokens


@dataclass(frozen=True)
class PoolKey:
    """
    Canonical pool identity

    token0 always sorts before token1 (numeric address order); build keys
    with ``PoolKey.from_tokens`` to get the ordering for free.

    Attributes:
        platform: Platform id (e.g., "uniswap_v3")
        chain_id: Chain id
        token0: Lower-address token
        token1: Higher-address token
        fee: Fee tier in hundredths of a bip (3000 = 0.30%)
    """
    platform: str
    chain_id: int
    token0: Token
    token1: Token
    fee: int

    def __post_init__(self):
        from ..errors import ValidationError

        if self.token0 == self.token1:
            raise ValidationError.same_token(self.token0.address)
        if not self.token0.sorts_before(self.token1):
            raise ValidationError.unordered_tokens(self.token0.address, self.token1.address)

    @classmethod
    def from_tokens(cls, platform: str, chain_id: int, token_a: Token, token_b: Token, fee: int) -> "PoolKey":
        """Create a key from tokens in any order"""
        token0, token1 = sort_tokens(token_a, token_b)
        return cls(platform, chain_id, token0, token1, fee)

    @property
    def symbol(self) -> str:
        return f"{self.token0.symbol}/{self.token1.symbol}"

    def __str__(self) -> str:
        return f"{self.symbol} {self.fee / 10000:.2f}% ({self.platform})"


@dataclass(frozen=True)
class TickInfo:
    """
    Per-tick fee growth accumulators (Q128, wrap modulo 2^256)

    ``fee_growth_outside*`` hold the fees accumulated on the side of the
    tick opposite to the current tick as of the last crossing.
    """
    tick: int
    fee_growth_outside0: int
    fee_growth_outside1: int
    liquidity_gross: int = 0
    initialized: bool = False


@dataclass(frozen=True)
class PoolState:
    """
    Pool state as of one block

    Attributes:
        address: Pool contract address
        sqrt_price_x96: Current sqrt price, Q64.96
        tick: Current tick (consistent with sqrt_price_x96)
        liquidity: Active in-range liquidity
        fee: Fee tier
        fee_growth_global0: Q128 accumulator for token0 (None if not loaded)
        fee_growth_global1: Q128 accumulator for token1 (None if not loaded)
        block_number: Block the state was read at (None for "latest")
    """
    address: str
    sqrt_price_x96: int
    tick: int
    liquidity: int
    fee: int
    fee_growth_global0: Optional[int] = None
    fee_growth_global1: Optional[int] = None
    block_number: Optional[int] = None
    metadata: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def has_fee_growth(self) -> bool:
        return self.fee_growth_global0 is not None and self.fee_growth_global1 is not None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dictionary (big ints as strings)"""
        return {
            "address": self.address,
            "sqrt_price_x96": str(self.sqrt_price_x96),
            "tick": self.tick,
            "liquidity": str(self.liquidity),
            "fee": self.fee,
            "fee_growth_global0": None if self.fee_growth_global0 is None else str(self.fee_growth_global0),
            "fee_growth_global1": None if self.fee_growth_global1 is None else str(self.fee_growth_global1),
            "block_number": self.block_number,
        }
