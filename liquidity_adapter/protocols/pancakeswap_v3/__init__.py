"""
PancakeSwap V3 adapter
"""

from .adapter import PancakeSwapV3Adapter

__all__ = ["PancakeSwapV3Adapter"]
