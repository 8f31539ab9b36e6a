"""
Position type definitions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .common import Token
from .pool import PoolState
from .price import Price


class PositionStatus(Enum):
    """
    Lifecycle state observed from read data

    ACTIVE: liquidity > 0
    EMPTY: liquidity == 0, tokens still owed (collectable, not burnable)
    DRAINED: liquidity == 0 and nothing owed (burnable)
    BURNED: the NFT no longer exists (terminal)
    """
    ACTIVE = "active"
    EMPTY = "empty"
    DRAINED = "drained"
    BURNED = "burned"


@dataclass(frozen=True)
class Position:
    """
    Raw position record as returned by ``positions(tokenId)``

    Attributes:
        token_id: NFT token id
        owner: Holder address (wallet or vault contract; never interpreted)
        token0, token1: Pool token addresses (canonical order)
        fee: Pool fee tier
        tick_lower, tick_upper: Range bounds
        liquidity: Position liquidity (uint128)
        fee_growth_inside0_last, fee_growth_inside1_last: Q128 snapshots
        tokens_owed0, tokens_owed1: Settled but uncollected amounts
    """
    token_id: int
    owner: str
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside0_last: int
    fee_growth_inside1_last: int
    tokens_owed0: int
    tokens_owed1: int
    nonce: int = 0
    operator: str = ""

    @property
    def status(self) -> PositionStatus:
        if self.liquidity > 0:
            return PositionStatus.ACTIVE
        if self.tokens_owed0 > 0 or self.tokens_owed1 > 0:
            return PositionStatus.EMPTY
        return PositionStatus.DRAINED

    @property
    def is_noise(self) -> bool:
        """Zero liquidity and nothing owed; dropped from listings"""
        return self.status == PositionStatus.DRAINED

    @property
    def is_burnable(self) -> bool:
        return self.status == PositionStatus.DRAINED

    def in_range(self, tick: int) -> bool:
        """Half-open range check: tick_lower <= tick < tick_upper"""
        return self.tick_lower <= tick < self.tick_upper

    def __repr__(self) -> str:
        return f"Position(id={self.token_id}, [{self.tick_lower}, {self.tick_upper}), L={self.liquidity})"


@dataclass
class PositionView:
    """
    Normalized, display-ready position

    Amounts and fees are raw integers; use ``token.ui_amount`` to render.
    """
    position: Position
    platform: str
    chain_id: int
    pool_address: str
    token0: Token
    token1: Token
    amount0: int
    amount1: int
    fees0: int
    fees1: int
    in_range: bool
    price_lower: Price
    price_upper: Price
    current_price: Price
    block_number: Optional[int] = None
    metadata: dict = field(default_factory=dict)

    @property
    def token_id(self) -> int:
        return self.position.token_id

    @property
    def status(self) -> PositionStatus:
        return self.position.status

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dictionary"""
        return {
            "id": str(self.token_id),
            "platform": self.platform,
            "chain_id": self.chain_id,
            "pool": self.pool_address,
            "owner": self.position.owner,
            "token0": self.token0.to_dict(),
            "token1": self.token1.to_dict(),
            "tick_lower": self.position.tick_lower,
            "tick_upper": self.position.tick_upper,
            "liquidity": str(self.position.liquidity),
            "amount0": str(self.token0.ui_amount(self.amount0)),
            "amount1": str(self.token1.ui_amount(self.amount1)),
            "fees0": str(self.token0.ui_amount(self.fees0)),
            "fees1": str(self.token1.ui_amount(self.fees1)),
            "in_range": self.in_range,
            "status": self.status.value,
            "price_lower": self.price_lower.to_decimal_string(),
            "price_upper": self.price_upper.to_decimal_string(),
            "current_price": self.current_price.to_decimal_string(),
            "block_number": self.block_number,
        }


@dataclass(frozen=True)
class PositionFailure:
    """Error marker for a position whose reads failed"""
    token_id: Optional[int]
    error: Exception
    platform: str = ""

    def __str__(self) -> str:
        return f"Position {self.token_id}: {self.error}"


@dataclass
class PositionSnapshot:
    """
    Result of one refresh epoch

    All views were derived from reads pinned to ``block_number``. ``partial``
    is set whenever any read failed; failed ids are listed in ``failures``.
    """
    epoch: int
    chain_id: int
    holder: str
    block_number: Optional[int]
    positions: List[PositionView] = field(default_factory=list)
    failures: List[PositionFailure] = field(default_factory=list)
    pools: Dict[str, PoolState] = field(default_factory=dict)
    tokens: Dict[str, Token] = field(default_factory=dict)
    partial: bool = False

    def mark_partial(self, failure: PositionFailure):
        self.failures.append(failure)
        self.partial = True

    def merge(self, other: "PositionSnapshot"):
        """Fold another platform's snapshot of the same epoch into this one"""
        self.positions.extend(other.positions)
        self.failures.extend(other.failures)
        self.pools.update(other.pools)
        self.tokens.update(other.tokens)
        self.partial = self.partial or other.partial

    def by_id(self) -> Dict[int, PositionView]:
        return {view.token_id: view for view in self.positions}

    def __len__(self) -> int:
        return len(self.positions)
