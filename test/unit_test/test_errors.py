"""
Test Errors Module

Tests for liquidity_adapter.errors package.
"""

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


def test_error_code():
    """Test ErrorCode enum"""
    from liquidity_adapter.errors import ErrorCode

    print("Testing ErrorCode...")

    assert ErrorCode.RPC_CONNECTION_FAILED.value == "1001"
    assert ErrorCode.RPC_CALL_REVERTED.value == "1005"
    assert ErrorCode.TX_REJECTED_BY_USER.value == "2010"
    assert ErrorCode.TICK_UNALIGNED.value == "3101"
    assert ErrorCode.POOL_NOT_FOUND.value == "4001"
    assert ErrorCode.POSITION_NOT_FOUND.value == "5001"
    assert ErrorCode.UNKNOWN_FEE_TIER.value == "9005"

    print("  ErrorCode: PASSED")


def test_adapter_error():
    """Test AdapterError base class"""
    from liquidity_adapter.errors import AdapterError, ErrorCode

    print("Testing AdapterError...")

    error = AdapterError(
        message="Test error",
        code=ErrorCode.RPC_CONNECTION_FAILED,
        recoverable=True,
    )

    # __str__ returns "[code] message" format
    assert "[1001] Test error" == str(error)
    assert error.code == ErrorCode.RPC_CONNECTION_FAILED
    assert error.recoverable == True
    assert error.should_retry == True
    assert error.details == {}

    print("  AdapterError: PASSED")


def test_rpc_error():
    """Test RpcError exception"""
    from liquidity_adapter.errors import RpcError, ErrorCode

    print("Testing RpcError...")

    # Connection failed
    cause = ConnectionError("refused")
    error1 = RpcError.connection_failed("https://rpc.example.com", cause)
    assert error1.code == ErrorCode.RPC_CONNECTION_FAILED
    assert error1.recoverable == True
    assert error1.endpoint == "https://rpc.example.com"
    assert error1.original_error is cause
    assert error1.details == {"endpoint": "https://rpc.example.com"}

    # Timeout
    error2 = RpcError.timeout("https://rpc.example.com", 20.0)
    assert error2.code == ErrorCode.RPC_TIMEOUT
    assert error2.recoverable == True

    # Rate limited
    error3 = RpcError.rate_limited("https://rpc.example.com")
    assert error3.code == ErrorCode.RPC_RATE_LIMITED
    assert error3.recoverable == True

    # Reverts and bad data are not worth retrying
    error4 = RpcError.reverted("https://rpc.example.com", "execution reverted")
    assert error4.code == ErrorCode.RPC_CALL_REVERTED
    assert error4.recoverable == False

    error5 = RpcError.malformed("slot0()")
    assert error5.code == ErrorCode.RPC_INVALID_RESPONSE
    assert error5.recoverable == False
    assert error5.endpoint is None

    print("  RpcError: PASSED")


def test_configuration_error():
    """Test ConfigurationError and UnsupportedPlatform"""
    from liquidity_adapter.errors import ConfigurationError, ErrorCode, UnsupportedPlatform

    print("Testing ConfigurationError...")

    assert ConfigurationError.missing("RPC_URL").code == ErrorCode.CONFIG_MISSING
    assert ConfigurationError.invalid("rpc", "bad").code == ErrorCode.CONFIG_INVALID
    assert ConfigurationError.unknown_chain(999).code == ErrorCode.UNKNOWN_CHAIN

    error = ConfigurationError.unknown_fee_tier("uniswap_v3", 1, 2500)
    assert error.code == ErrorCode.UNKNOWN_FEE_TIER
    assert "2500" in error.message
    assert error.recoverable == False

    unsupported = UnsupportedPlatform("pancakeswap_v3", 42161)
    assert unsupported.code == ErrorCode.UNSUPPORTED_PLATFORM
    assert unsupported.platform == "pancakeswap_v3"
    assert unsupported.chain_id == 42161
    assert isinstance(unsupported, ConfigurationError)

    print("  ConfigurationError: PASSED")


def test_validation_errors():
    """Test ValidationError and its subclasses"""
    from liquidity_adapter.errors import (
        AmountsZero,
        DeadlineInPast,
        ErrorCode,
        SlippageOutOfRange,
        TickOutOfRange,
        TickUnaligned,
        ValidationError,
    )

    print("Testing ValidationError...")

    assert ValidationError.same_token("0xabc").code == ErrorCode.SAME_TOKEN
    assert ValidationError.unordered_tokens("0xb", "0xa").code == ErrorCode.VALIDATION_FAILED
    assert ValidationError.invalid_range(60, -60).details == {"tick_lower": 60, "tick_upper": -60}
    assert ValidationError.invalid_percentage(0).details == {"percentage_bps": 0}

    unaligned = TickUnaligned(61, 60)
    assert unaligned.code == ErrorCode.TICK_UNALIGNED
    assert (unaligned.tick, unaligned.tick_spacing) == (61, 60)

    assert TickOutOfRange.tick(887273).value == 887273
    assert TickOutOfRange.sqrt_price(0).code == ErrorCode.TICK_OUT_OF_RANGE

    slippage = SlippageOutOfRange(5, 10, 500)
    assert slippage.code == ErrorCode.SLIPPAGE_OUT_OF_RANGE
    assert slippage.details == {"slippage_bps": 5, "min_bps": 10, "max_bps": 500}

    assert DeadlineInPast(100, 200).deadline == 100
    assert AmountsZero("mint").code == ErrorCode.AMOUNTS_ZERO

    for error in (unaligned, slippage, DeadlineInPast(1, 2), AmountsZero("mint")):
        assert isinstance(error, ValidationError)
        assert error.recoverable == False

    print("  ValidationError: PASSED")


def test_pool_and_position_errors():
    """Test InconsistentPoolState and PositionNotFound"""
    from liquidity_adapter.errors import ErrorCode, InconsistentPoolState, PositionNotFound

    print("Testing pool/position errors...")

    mismatch = InconsistentPoolState.tick_mismatch("0xpool", 10, 12)
    assert mismatch.code == ErrorCode.POOL_INVALID_STATE
    assert mismatch.pool_address == "0xpool"
    assert mismatch.recoverable == False

    missing = InconsistentPoolState.pool_missing("0xpool")
    assert missing.code == ErrorCode.POOL_NOT_FOUND

    error = PositionNotFound(42)
    assert error.token_id == 42
    assert error.recoverable == False

    print("  Pool/position errors: PASSED")


def test_refresh_errors():
    """Test PartialResult and RefreshSuperseded"""
    from liquidity_adapter.errors import ErrorCode, PartialResult, RefreshSuperseded

    print("Testing refresh errors...")

    snapshot = object()
    partial = PartialResult("2 reads failed", snapshot)
    assert partial.code == ErrorCode.PARTIAL_RESULT
    assert partial.snapshot is snapshot

    superseded = RefreshSuperseded(3, 4)
    assert superseded.code == ErrorCode.REFRESH_SUPERSEDED
    assert (superseded.epoch, superseded.current_epoch) == (3, 4)
    assert superseded.recoverable == True

    print("  Refresh errors: PASSED")


def test_operation_not_supported():
    """Test OperationNotSupported exception"""
    from liquidity_adapter.errors import ErrorCode, OperationNotSupported

    print("Testing OperationNotSupported...")

    error = OperationNotSupported.not_implemented("swap", "uniswap_v3")
    assert error.code == ErrorCode.OPERATION_NOT_SUPPORTED
    assert error.operation == "swap"
    assert error.platform == "uniswap_v3"

    print("  OperationNotSupported: PASSED")


def test_user_rejection():
    """Test is_user_rejection classification"""
    from liquidity_adapter.errors import AdapterError, ErrorCode, is_user_rejection

    print("Testing is_user_rejection...")

    class WalletError(Exception):
        def __init__(self, message, code=None):
            super().__init__(message)
            self.code = code

    assert is_user_rejection(WalletError("denied", 4001))
    assert is_user_rejection(WalletError("denied", "ACTION_REJECTED"))
    assert is_user_rejection(Exception("MetaMask Tx Signature: User denied transaction signature."))
    assert is_user_rejection(AdapterError("rejected", ErrorCode.TX_REJECTED_BY_USER))
    assert not is_user_rejection(AdapterError("user rejected", ErrorCode.TX_SEND_FAILED))
    assert not is_user_rejection(Exception("nonce too low"))

    print("  is_user_rejection: PASSED")


def test_error_inheritance():
    """Test error class inheritance"""
    from liquidity_adapter.errors import (
        AdapterError,
        ConfigurationError,
        InconsistentPoolState,
        PartialResult,
        PositionNotFound,
        RpcError,
        ValidationError,
    )

    print("Testing Error Inheritance...")

    assert issubclass(RpcError, AdapterError)
    assert issubclass(ConfigurationError, AdapterError)
    assert issubclass(ValidationError, AdapterError)
    assert issubclass(InconsistentPoolState, AdapterError)
    assert issubclass(PositionNotFound, AdapterError)
    assert issubclass(PartialResult, AdapterError)

    # All should be catchable as AdapterError
    try:
        raise RpcError.connection_failed("test")
    except AdapterError:
        pass  # Expected

    print("  Error Inheritance: PASSED")


def main():
    """Run all error tests"""
    print("=" * 60)
    print("Liquidity Adapter Errors Tests")
    print("=" * 60)

    tests = [
        test_error_code,
        test_adapter_error,
        test_rpc_error,
        test_configuration_error,
        test_validation_errors,
        test_pool_and_position_errors,
        test_refresh_errors,
        test_operation_not_supported,
        test_user_rejection,
        test_error_inheritance,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAILED: {e}")
            failed += 1

    print("=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
