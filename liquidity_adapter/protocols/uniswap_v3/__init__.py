"""
Uniswap V3 adapter and concentrated liquidity math
"""

from .adapter import UniswapV3Adapter
from .calldata import CalldataBuilder, slippage_min
from .pool_address import compute_pool_address, derive_pool_address
from .reader import PoolStateReader, PositionReader, TokenReader

__all__ = [
    "UniswapV3Adapter",
    "CalldataBuilder",
    "slippage_min",
    "compute_pool_address",
    "derive_pool_address",
    "PoolStateReader",
    "PositionReader",
    "TokenReader",
]
