"""
Platform adapters and chain registry
"""

from .base import PlatformAdapter
from .chains import (
    ChainConfig,
    ChainRegistry,
    PlatformConfig,
    PANCAKESWAP_V3,
    UNISWAP_V3,
    get_chain_registry,
    reset_chain_registry,
)
from .registry import AdapterFactory, AdapterFailure, AdapterSet, get_adapter, register_adapter

__all__ = [
    "PlatformAdapter",
    "ChainConfig",
    "ChainRegistry",
    "PlatformConfig",
    "PANCAKESWAP_V3",
    "UNISWAP_V3",
    "get_chain_registry",
    "reset_chain_registry",
    "AdapterFactory",
    "AdapterFailure",
    "AdapterSet",
    "get_adapter",
    "register_adapter",
]
