"""
Infrastructure: RPC reader, block cache, refresh tracing, signer interface
"""

from .rpc import RpcReader, HttpRpcReader, RpcReaderConfig, EthCall, block_tag
from .cache import BlockCache
from .tracing import (
    CorrelationContext,
    EpochCounter,
    generate_correlation_id,
    get_correlation_id,
    log_with_correlation,
)
from .signer import Signer, submit_plan

__all__ = [
    "RpcReader",
    "HttpRpcReader",
    "RpcReaderConfig",
    "EthCall",
    "block_tag",
    "BlockCache",
    "CorrelationContext",
    "EpochCounter",
    "generate_correlation_id",
    "get_correlation_id",
    "log_with_correlation",
    "Signer",
    "submit_plan",
]
