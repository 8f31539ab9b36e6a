"""
Configuration unit tests

Environment overrides, per-chain collection and logging setup.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from liquidity_adapter.config import (
    CacheConfig,
    ChainOverrides,
    Config,
    EVMConfig,
    LoggingConfig,
    RpcConfig,
    TradingConfig,
    setup_logging,
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "RPC_TIMEOUT_SECONDS",
        "RPC_MAX_ENDPOINT_ATTEMPTS",
        "RPC_BATCH_SIZE",
        "EVM_TX_DEADLINE_SECONDS",
        "DEFAULT_LP_SLIPPAGE_BPS",
        "POOL_CACHE_MAX_POOLS",
        "LOG_LEVEL",
        "LOG_CONSOLE",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestDefaults:
    """Tests for default values"""

    def test_defaults(self, clean_env):
        assert RpcConfig().timeout_seconds == 20.0
        assert RpcConfig().max_endpoint_attempts == 2
        assert RpcConfig().batch_size == 50
        assert EVMConfig().tx_deadline_seconds == 1200
        assert CacheConfig().max_pools == 128

        trading = TradingConfig()
        assert trading.default_lp_slippage_bps == 50
        assert (trading.min_slippage_bps, trading.max_slippage_bps) == (10, 500)

    def test_config_container(self, clean_env):
        config = Config()
        assert isinstance(config.rpc, RpcConfig)
        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(Config.reload(), Config)


class TestEnvOverrides:
    """Tests for environment variable overrides"""

    def test_numeric_overrides(self, clean_env):
        clean_env.setenv("RPC_TIMEOUT_SECONDS", "7.5")
        clean_env.setenv("RPC_BATCH_SIZE", "10")
        clean_env.setenv("DEFAULT_LP_SLIPPAGE_BPS", "100")

        assert RpcConfig().timeout_seconds == 7.5
        assert RpcConfig().batch_size == 10
        assert TradingConfig().default_lp_slippage_bps == 100

    def test_invalid_number_falls_back(self, clean_env, caplog):
        clean_env.setenv("RPC_MAX_ENDPOINT_ATTEMPTS", "three")
        with caplog.at_level(logging.WARNING):
            assert RpcConfig().max_endpoint_attempts == 2
        assert "RPC_MAX_ENDPOINT_ATTEMPTS" in caplog.text

    def test_per_chain_endpoints(self, clean_env):
        clean_env.setenv("RPC_URLS_1", "https://a.example, https://b.example,")
        clean_env.setenv("RPC_URLS_56", "https://bsc.example")
        clean_env.setenv("RPC_URLS_BAD", "https://ignored.example")

        rpc = RpcConfig()
        assert rpc.endpoints_for(1) == ["https://a.example", "https://b.example"]
        assert rpc.endpoints_for(56) == ["https://bsc.example"]
        assert rpc.endpoints_for(8453) == []
        assert "https://ignored.example" not in rpc.endpoint_overrides.values()

    def test_executor_addresses(self, clean_env):
        clean_env.setenv("EXECUTOR_ADDRESS_42161", "0x2222222222222222222222222222222222222222")
        assert ChainOverrides().executor_addresses[42161] == "0x2222222222222222222222222222222222222222"

    def test_empty_values_ignored(self, clean_env):
        clean_env.setenv("RPC_URLS_10", "")
        assert 10 not in RpcConfig().endpoint_overrides


class TestLogging:
    """Tests for logging setup"""

    def test_level(self, clean_env):
        assert LoggingConfig(log_level="debug").level == logging.DEBUG
        assert LoggingConfig(log_level="nonsense").level == logging.INFO

    def test_console_bool(self, clean_env):
        clean_env.setenv("LOG_CONSOLE", "off")
        assert LoggingConfig().console_output is False

    def test_setup_console_only(self, clean_env):
        logger = setup_logging(LoggingConfig(log_file="", log_level="WARNING"), "liquidity_adapter_test")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_setup_file(self, clean_env, tmp_path):
        log_file = tmp_path / "nested" / "adapter.log"
        config = LoggingConfig(log_file=str(log_file), log_level="INFO", console_output=False)

        logger = setup_logging(config, "liquidity_adapter_file_test")
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello" in log_file.read_text(encoding="utf-8")

        # Re-running replaces handlers instead of stacking them
        logger = setup_logging(config, "liquidity_adapter_file_test")
        assert len(logger.handlers) == 1
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v", "--tb=short"]))
