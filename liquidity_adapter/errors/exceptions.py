"""
Exception definitions for the liquidity adapter layer
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """
    Unified error codes for adapter operations

    1xxx - RPC errors
    2xxx - Transaction / signer outcomes
    3xxx - Validation errors (caller bugs)
    4xxx - Pool errors
    5xxx - Position errors
    7xxx - Operation errors
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"
    RPC_CALL_REVERTED = "1005"

    # Transaction / signer outcomes
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_FAILED = "2003"
    TX_REJECTED_BY_USER = "2010"

    # Validation errors
    VALIDATION_FAILED = "3100"
    TICK_UNALIGNED = "3101"
    TICK_OUT_OF_RANGE = "3102"
    SLIPPAGE_OUT_OF_RANGE = "3103"
    DEADLINE_IN_PAST = "3104"
    AMOUNTS_ZERO = "3105"
    SAME_TOKEN = "3106"

    # Pool errors
    POOL_NOT_FOUND = "4001"
    POOL_INVALID_STATE = "4003"

    # Position errors
    POSITION_NOT_FOUND = "5001"
    PARTIAL_RESULT = "5004"

    # Operation errors
    OPERATION_NOT_SUPPORTED = "7001"
    REFRESH_SUPERSEDED = "7003"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"
    UNKNOWN_CHAIN = "9003"
    UNSUPPORTED_PLATFORM = "9004"
    UNKNOWN_FEE_TIER = "9005"


class AdapterError(Exception):
    """
    Base exception for all adapter errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class RpcError(AdapterError):
    """
    RPC-related errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - Response cannot be decoded
    - The eth_call reverted (not recoverable)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
        recoverable: bool = True,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )

    @classmethod
    def reverted(cls, endpoint: str, reason: str) -> "RpcError":
        return cls(
            f"eth_call reverted: {reason}",
            ErrorCode.RPC_CALL_REVERTED,
            endpoint=endpoint,
            recoverable=False,
        )

    @classmethod
    def malformed(cls, what: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Malformed return data for {what}",
            ErrorCode.RPC_INVALID_RESPONSE,
            original_error=error,
            recoverable=False,
        )


class ConfigurationError(AdapterError):
    """
    Configuration-related errors - caller bugs, never retried

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    - Chain or fee tier is unknown to the registry
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)

    @classmethod
    def unknown_chain(cls, chain_id: int) -> "ConfigurationError":
        return cls(f"Unknown chain: {chain_id}", ErrorCode.UNKNOWN_CHAIN)

    @classmethod
    def unknown_fee_tier(cls, platform: str, chain_id: int, fee: int) -> "ConfigurationError":
        return cls(
            f"Fee tier {fee} is not supported by {platform} on chain {chain_id}",
            ErrorCode.UNKNOWN_FEE_TIER,
        )


class UnsupportedPlatform(ConfigurationError):
    """Platform has no registry entry for the requested chain"""

    def __init__(self, platform: str, chain_id: int):
        super().__init__(
            f"Platform '{platform}' is not supported on chain {chain_id}",
            ErrorCode.UNSUPPORTED_PLATFORM,
        )
        self.platform = platform
        self.chain_id = chain_id
        self.details = {"platform": platform, "chain_id": chain_id}


class ValidationError(AdapterError):
    """
    Input validation errors - caller bugs, surfaced immediately

    No calldata is ever produced once one of these is raised.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, recoverable=False, details=details)

    @classmethod
    def same_token(cls, token: str) -> "ValidationError":
        return cls(f"Pool tokens must differ, got {token} twice", ErrorCode.SAME_TOKEN)

    @classmethod
    def unordered_tokens(cls, token0: str, token1: str) -> "ValidationError":
        return cls(f"Tokens are not in canonical order: {token0} >= {token1}")

    @classmethod
    def invalid_range(cls, tick_lower: int, tick_upper: int) -> "ValidationError":
        return cls(
            f"tickLower must be below tickUpper, got [{tick_lower}, {tick_upper}]",
            details={"tick_lower": tick_lower, "tick_upper": tick_upper},
        )

    @classmethod
    def invalid_percentage(cls, percentage_bps: int) -> "ValidationError":
        return cls(
            f"Percentage must be within [1, 10000] bps, got {percentage_bps}",
            details={"percentage_bps": percentage_bps},
        )


class TickUnaligned(ValidationError):
    """Tick is not a multiple of the fee tier's tick spacing"""

    def __init__(self, tick: int, tick_spacing: int):
        super().__init__(
            f"Tick {tick} is not aligned to tick spacing {tick_spacing}",
            ErrorCode.TICK_UNALIGNED,
            details={"tick": tick, "tick_spacing": tick_spacing},
        )
        self.tick = tick
        self.tick_spacing = tick_spacing


class TickOutOfRange(ValidationError):
    """Tick or sqrt price outside the representable range"""

    def __init__(self, message: str, value: Optional[Any] = None):
        super().__init__(message, ErrorCode.TICK_OUT_OF_RANGE, details={"value": value})
        self.value = value

    @classmethod
    def tick(cls, tick: int) -> "TickOutOfRange":
        return cls(f"Tick {tick} outside [-887272, 887272]", tick)

    @classmethod
    def sqrt_price(cls, sqrt_price_x96: int) -> "TickOutOfRange":
        return cls(f"sqrtPriceX96 {sqrt_price_x96} outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)", sqrt_price_x96)

    @classmethod
    def price(cls, price: Any) -> "TickOutOfRange":
        return cls(f"Price {price} maps outside the tick range", str(price))


class SlippageOutOfRange(ValidationError):
    """Slippage outside the accepted [min, max] bps window"""

    def __init__(self, slippage_bps: int, min_bps: int, max_bps: int):
        super().__init__(
            f"Slippage {slippage_bps} bps outside [{min_bps}, {max_bps}] bps",
            ErrorCode.SLIPPAGE_OUT_OF_RANGE,
            details={"slippage_bps": slippage_bps, "min_bps": min_bps, "max_bps": max_bps},
        )
        self.slippage_bps = slippage_bps


class DeadlineInPast(ValidationError):
    """Deadline is not in the future"""

    def __init__(self, deadline: int, now: int):
        super().__init__(
            f"Deadline {deadline} is not after current time {now}",
            ErrorCode.DEADLINE_IN_PAST,
            details={"deadline": deadline, "now": now},
        )
        self.deadline = deadline


class AmountsZero(ValidationError):
    """Nothing to deposit or withdraw"""

    def __init__(self, operation: str):
        super().__init__(
            f"{operation}: amounts are zero",
            ErrorCode.AMOUNTS_ZERO,
            details={"operation": operation},
        )


class InconsistentPoolState(AdapterError):
    """
    Pool state failed a consistency check - fatal for the snapshot

    Raised when:
    - The tick derived from sqrtPriceX96 disagrees with slot0.tick
    - A position references a pool that does not exist
    """

    def __init__(self, message: str, pool_address: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.POOL_INVALID_STATE,
            recoverable=False,
            details={"pool_address": pool_address},
        )
        self.pool_address = pool_address

    @classmethod
    def tick_mismatch(cls, pool_address: str, returned_tick: int, derived_tick: int) -> "InconsistentPoolState":
        return cls(
            f"Pool {pool_address} reported tick {returned_tick} but sqrtPriceX96 implies {derived_tick}",
            pool_address,
        )

    @classmethod
    def pool_missing(cls, pool_address: str) -> "InconsistentPoolState":
        error = cls(f"Pool not found: {pool_address}", pool_address)
        error.code = ErrorCode.POOL_NOT_FOUND
        return error


class PositionNotFound(AdapterError):
    """Position id does not exist (or was burned)"""

    def __init__(self, token_id: int):
        super().__init__(
            f"Position not found: {token_id}",
            ErrorCode.POSITION_NOT_FOUND,
            recoverable=False,
            details={"token_id": token_id},
        )
        self.token_id = token_id


class PartialResult(AdapterError):
    """
    Some reads in a batch failed; the rest are carried in ``snapshot``

    Callers decide whether to render a degraded view or alert.
    """

    def __init__(self, message: str, snapshot: Any = None):
        super().__init__(message, ErrorCode.PARTIAL_RESULT, recoverable=True)
        self.snapshot = snapshot


class OperationNotSupported(AdapterError):
    """
    Operation not supported by the adapter

    Raised when:
    - A platform lacks a feature the caller requested
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        platform: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.OPERATION_NOT_SUPPORTED,
            recoverable=False,
            details={"operation": operation, "platform": platform},
        )
        self.operation = operation
        self.platform = platform

    @classmethod
    def not_implemented(cls, operation: str, platform: str) -> "OperationNotSupported":
        return cls(
            f"Operation '{operation}' is not supported by {platform} adapter",
            operation=operation,
            platform=platform,
        )


class RefreshSuperseded(AdapterError):
    """A newer refresh epoch started while this one was in flight"""

    def __init__(self, epoch: int, current_epoch: int):
        super().__init__(
            f"Refresh epoch {epoch} superseded by epoch {current_epoch}",
            ErrorCode.REFRESH_SUPERSEDED,
            recoverable=True,
            details={"epoch": epoch, "current_epoch": current_epoch},
        )
        self.epoch = epoch
        self.current_epoch = current_epoch


# Wallet rejection markers (EIP-1193 4001, ethers ACTION_REJECTED)
USER_REJECTION_CODES = (4001, "4001", "ACTION_REJECTED")
USER_REJECTION_KEYWORDS = ("user rejected", "user denied", "rejected by user", "action_rejected")


def is_user_rejection(error: BaseException) -> bool:
    """Return True when a signer error means the user declined to sign."""
    code = getattr(error, "code", None)
    if isinstance(code, ErrorCode):
        return code == ErrorCode.TX_REJECTED_BY_USER
    if code in USER_REJECTION_CODES:
        return True
    text = str(error).lower()
    return any(keyword in text for keyword in USER_REJECTION_KEYWORDS)
