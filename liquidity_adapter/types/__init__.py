"""
Type definitions for the liquidity adapter
"""

from .common import Token, ZERO_ADDRESS, sort_tokens, same_address
from .pool import PoolKey, PoolState, TickInfo
from .position import (
    Position,
    PositionStatus,
    PositionView,
    PositionFailure,
    PositionSnapshot,
)
from .price import Price, PriceRange, RangeMode, to_fraction
from .result import TxRequest, ClosePlan, TxResult, TxStatus

__all__ = [
    # Common
    "Token",
    "ZERO_ADDRESS",
    "sort_tokens",
    "same_address",
    # Pool
    "PoolKey",
    "PoolState",
    "TickInfo",
    # Position
    "Position",
    "PositionStatus",
    "PositionView",
    "PositionFailure",
    "PositionSnapshot",
    # Price
    "Price",
    "PriceRange",
    "RangeMode",
    "to_fraction",
    # Result
    "TxRequest",
    "ClosePlan",
    "TxResult",
    "TxStatus",
]
