"""
Configuration management for the liquidity adapter

Loads settings from environment variables and .env file.
Includes logging configuration with file output and correlation ID support.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # liquidity_adapter package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid float value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid int value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _get_env_list(key: str) -> List[str]:
    """Get comma separated environment variable as list (empty entries dropped)"""
    value = os.getenv(key)
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _collect_chain_env(prefix: str) -> Dict[int, str]:
    """Collect `<PREFIX><chainId>` variables into {chainId: value}"""
    result: Dict[int, str] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix) or not value:
            continue
        suffix = key[len(prefix):]
        if suffix.isdigit():
            result[int(suffix)] = value
    return result


@dataclass
class RpcConfig:
    """
    RPC reader configuration

    Endpoints per chain come from the chain registry; RPC_URLS_<chainId>
    (comma separated) replaces them for that chain.
    """
    timeout_seconds: float = field(default_factory=lambda: _get_env_float("RPC_TIMEOUT_SECONDS", 20.0))
    # First attempt plus one retry on a different endpoint
    max_endpoint_attempts: int = field(default_factory=lambda: _get_env_int("RPC_MAX_ENDPOINT_ATTEMPTS", 2))
    batch_size: int = field(default_factory=lambda: _get_env_int("RPC_BATCH_SIZE", 50))
    endpoint_overrides: Dict[int, str] = field(default_factory=lambda: _collect_chain_env("RPC_URLS_"))

    def endpoints_for(self, chain_id: int) -> List[str]:
        """Endpoint override list for a chain (empty when not overridden)"""
        raw = self.endpoint_overrides.get(chain_id, "")
        return [url.strip() for url in raw.split(",") if url.strip()]


@dataclass
class EVMConfig:
    """EVM-specific configuration"""
    # Transaction deadline in seconds (default: 20 minutes)
    tx_deadline_seconds: int = field(default_factory=lambda: _get_env_int("EVM_TX_DEADLINE_SECONDS", 1200))


@dataclass
class TradingConfig:
    """Default liquidity parameters"""
    default_lp_slippage_bps: int = field(default_factory=lambda: _get_env_int("DEFAULT_LP_SLIPPAGE_BPS", 50))
    # Accepted slippage window: 0.1% - 5%
    min_slippage_bps: int = 10
    max_slippage_bps: int = 500


@dataclass
class CacheConfig:
    """Per-adapter pool state cache"""
    max_pools: int = field(default_factory=lambda: _get_env_int("POOL_CACHE_MAX_POOLS", 128))


@dataclass
class ChainOverrides:
    """Per-chain values that are deployment specific"""
    executor_addresses: Dict[int, str] = field(default_factory=lambda: _collect_chain_env("EXECUTOR_ADDRESS_"))


def _get_default_log_path() -> str:
    """Get default log file path under liquidity_adapter/log/ with UTC timestamp"""
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_dir = Path(__file__).parent / "log"
    return str(log_dir / f"liquidity_adapter_{timestamp}.log")


@dataclass
class LoggingConfig:
    """
    Logging configuration with file output and correlation ID support.

    Environment variables:
        LOG_FILE: Path to log file (empty disables file output)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Custom log format string
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    """
    # File logging is opt-in for a library; enable_file_logging() picks a default path
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", ""))

    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))

    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))

    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))

    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        """Get numeric log level"""
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from liquidity_adapter.config import config

        print(config.rpc.timeout_seconds)
        print(config.trading.default_lp_slippage_bps)
    """
    rpc: RpcConfig = field(default_factory=RpcConfig)
    evm: EVMConfig = field(default_factory=EVMConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    chains: ChainOverrides = field(default_factory=ChainOverrides)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """Reload and return new configuration"""
    global config
    config = Config.reload()
    return config


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "liquidity_adapter",
) -> logging.Logger:
    """
    Set up logging based on configuration.

    Creates handlers for file and/or console output with optional rotation.
    The log file directory is created automatically if it doesn't exist.

    Args:
        log_config: Logging configuration (uses global config if None)
        logger_name: Name of the logger to configure

    Returns:
        Configured logger instance
    """
    if log_config is None:
        log_config = config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close before removing to release file handles on reload
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)

    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding='utf-8',
        )
        file_handler.setLevel(log_config.level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_config.level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        logger.addHandler(handler)

    # Child loggers inherit handlers from the package logger
    for name in [
        f"{logger_name}.infra",
        f"{logger_name}.protocols",
    ]:
        logging.getLogger(name).setLevel(log_config.level)

    if log_config.log_file:
        logger.info(f"Logging initialized: file={log_config.log_file}, level={log_config.log_level}")

    return logger


def enable_file_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """
    Quick setup for file logging.

    Args:
        log_file: Path to log file (defaults to liquidity_adapter/log/liquidity_adapter_<ts>.log)
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        console: Also output to console

    Returns:
        Configured logger
    """
    if log_file is None:
        log_file = config.logging.log_file or _get_default_log_path()

    log_config = LoggingConfig(
        log_file=log_file,
        log_level=level,
        console_output=console,
    )
    return setup_logging(log_config)
