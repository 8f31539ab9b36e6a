"""
PancakeSwap V3 platform adapter

PancakeSwap V3 is a Uniswap V3 fork with the same position manager ABI.
Its differences are data, not code, and live in the chain registry:
- Pools are CREATE2-deployed by a separate PoolDeployer, not the factory
- Its own pool init-code hash
- Fee tiers 100/500/2500/10000 (2500 -> tick spacing 50)
- slot0.feeProtocol is uint32 (only the first two slot0 words are decoded)
"""

from ..chains import PANCAKESWAP_V3
from ..uniswap_v3.adapter import UniswapV3Adapter


class PancakeSwapV3Adapter(UniswapV3Adapter):
    """PancakeSwap V3 adapter for one chain"""

    name = PANCAKESWAP_V3
