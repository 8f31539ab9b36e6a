"""
Liquidity Adapter - Unified interface for concentrated-liquidity platforms

Provides read and calldata operations for:
- Uniswap V3 (Ethereum, Arbitrum, Base)
- PancakeSwap V3 (Ethereum, BSC)

Reads are batched and pinned to one block per refresh; writes are returned
as unsigned TxRequests for an external signer.
"""

from .types import (
    Token,
    PoolKey,
    PoolState,
    TickInfo,
    Position,
    PositionStatus,
    PositionView,
    PositionFailure,
    PositionSnapshot,
    Price,
    PriceRange,
    RangeMode,
    TxRequest,
    ClosePlan,
    TxResult,
    TxStatus,
)
from .errors import (
    AdapterError,
    RpcError,
    ConfigurationError,
    UnsupportedPlatform,
    ValidationError,
    InconsistentPoolState,
    PositionNotFound,
    PartialResult,
    RefreshSuperseded,
    ErrorCode,
)
from .infra import HttpRpcReader, RpcReader, Signer, submit_plan
from .protocols import (
    AdapterFactory,
    AdapterSet,
    ChainRegistry,
    PlatformAdapter,
    get_chain_registry,
)
from .protocols.uniswap_v3 import UniswapV3Adapter
from .protocols.pancakeswap_v3 import PancakeSwapV3Adapter

__version__ = "0.1.0"

__all__ = [
    # Types
    "Token",
    "PoolKey",
    "PoolState",
    "TickInfo",
    "Position",
    "PositionStatus",
    "PositionView",
    "PositionFailure",
    "PositionSnapshot",
    "Price",
    "PriceRange",
    "RangeMode",
    "TxRequest",
    "ClosePlan",
    "TxResult",
    "TxStatus",
    # Errors
    "AdapterError",
    "RpcError",
    "ConfigurationError",
    "UnsupportedPlatform",
    "ValidationError",
    "InconsistentPoolState",
    "PositionNotFound",
    "PartialResult",
    "RefreshSuperseded",
    "ErrorCode",
    # Infrastructure
    "HttpRpcReader",
    "RpcReader",
    "Signer",
    "submit_plan",
    # Adapters
    "AdapterFactory",
    "AdapterSet",
    "ChainRegistry",
    "PlatformAdapter",
    "get_chain_registry",
    "UniswapV3Adapter",
    "PancakeSwapV3Adapter",
]
