"""
Error definitions for the liquidity adapter
"""

from .exceptions import (
    ErrorCode,
    AdapterError,
    RpcError,
    ConfigurationError,
    UnsupportedPlatform,
    ValidationError,
    TickUnaligned,
    TickOutOfRange,
    SlippageOutOfRange,
    DeadlineInPast,
    AmountsZero,
    InconsistentPoolState,
    PositionNotFound,
    PartialResult,
    OperationNotSupported,
    RefreshSuperseded,
    is_user_rejection,
)

__all__ = [
    "ErrorCode",
    "AdapterError",
    "RpcError",
    "ConfigurationError",
    "UnsupportedPlatform",
    "ValidationError",
    "TickUnaligned",
    "TickOutOfRange",
    "SlippageOutOfRange",
    "DeadlineInPast",
    "AmountsZero",
    "InconsistentPoolState",
    "PositionNotFound",
    "PartialResult",
    "OperationNotSupported",
    "RefreshSuperseded",
    "is_user_rejection",
]
