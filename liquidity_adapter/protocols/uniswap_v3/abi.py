"""
Pool and NonfungiblePositionManager ABI

Selectors, call encoders and return-data decoders. Decoders validate the
raw bytes into the canonical records and raise RpcError.malformed on
anything that does not fit.
"""

from typing import List, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from ...errors import RpcError
from ...types import Position, TickInfo
from .math import MAX_TICK, MIN_TICK


def selector(signature: str) -> bytes:
    """First 4 bytes of keccak256(signature)"""
    return bytes(Web3.keccak(text=signature)[:4])


# =============================================================================
# Function signatures
# =============================================================================

MINT_PARAMS = "(address,address,uint24,int24,int24,uint256,uint256,uint256,uint256,address,uint256)"
INCREASE_PARAMS = "(uint256,uint256,uint256,uint256,uint256,uint256)"
DECREASE_PARAMS = "(uint256,uint128,uint256,uint256,uint256)"
COLLECT_PARAMS = "(uint256,address,uint128,uint128)"

# Pool reads
SLOT0 = selector("slot0()")
LIQUIDITY = selector("liquidity()")
FEE_GROWTH_GLOBAL0 = selector("feeGrowthGlobal0X128()")
FEE_GROWTH_GLOBAL1 = selector("feeGrowthGlobal1X128()")
TICKS = selector("ticks(int24)")

# Position manager reads
BALANCE_OF = selector("balanceOf(address)")
TOKEN_OF_OWNER_BY_INDEX = selector("tokenOfOwnerByIndex(address,uint256)")
POSITIONS = selector("positions(uint256)")

# ERC-20 metadata
DECIMALS = selector("decimals()")
SYMBOL = selector("symbol()")
NAME = selector("name()")

# Position manager writes
MINT = selector(f"mint({MINT_PARAMS})")
INCREASE_LIQUIDITY = selector(f"increaseLiquidity({INCREASE_PARAMS})")
DECREASE_LIQUIDITY = selector(f"decreaseLiquidity({DECREASE_PARAMS})")
COLLECT = selector(f"collect({COLLECT_PARAMS})")
BURN = selector("burn(uint256)")
MULTICALL = selector("multicall(bytes[])")


# =============================================================================
# Read call encoders
# =============================================================================

def encode_ticks(tick: int) -> bytes:
    return TICKS + encode(["int24"], [tick])


def encode_balance_of(owner: str) -> bytes:
    return BALANCE_OF + encode(["address"], [Web3.to_checksum_address(owner)])


def encode_token_of_owner_by_index(owner: str, index: int) -> bytes:
    return TOKEN_OF_OWNER_BY_INDEX + encode(
        ["address", "uint256"], [Web3.to_checksum_address(owner), index]
    )


def encode_positions(token_id: int) -> bytes:
    return POSITIONS + encode(["uint256"], [token_id])


# =============================================================================
# Return data decoders
# =============================================================================

def _decode(types: List[str], data: bytes, what: str) -> tuple:
    if not data:
        raise RpcError.malformed(f"{what} (empty return data)")
    try:
        return decode(types, data)
    except (DecodingError, ValueError, TypeError) as e:
        raise RpcError.malformed(what, e)


def decode_uint(data: bytes, what: str = "uint256") -> int:
    return _decode(["uint256"], data, what)[0]


def decode_slot0(data: bytes) -> Tuple[int, int]:
    """
    (sqrtPriceX96, tick)

    Only the first two words are decoded; forks differ in the rest of the
    tuple (PancakeSwap widens feeProtocol to uint32).
    """
    return _decode(["uint160", "int24"], data[:64], "slot0")


def decode_ticks(tick: int, data: bytes) -> TickInfo:
    (
        liquidity_gross,
        _liquidity_net,
        fee_growth_outside0,
        fee_growth_outside1,
        _tick_cumulative_outside,
        _seconds_per_liquidity_outside,
        _seconds_outside,
        initialized,
    ) = _decode(
        ["uint128", "int128", "uint256", "uint256", "int56", "uint160", "uint32", "bool"],
        data,
        f"ticks({tick})",
    )
    return TickInfo(
        tick=tick,
        fee_growth_outside0=fee_growth_outside0,
        fee_growth_outside1=fee_growth_outside1,
        liquidity_gross=liquidity_gross,
        initialized=initialized,
    )


def decode_positions(token_id: int, owner: str, data: bytes) -> Position:
    """Decode the 12-tuple returned by positions(tokenId)"""
    (
        nonce,
        operator,
        token0,
        token1,
        fee,
        tick_lower,
        tick_upper,
        liquidity,
        fee_growth_inside0_last,
        fee_growth_inside1_last,
        tokens_owed0,
        tokens_owed1,
    ) = _decode(
        [
            "uint96", "address", "address", "address", "uint24", "int24", "int24",
            "uint128", "uint256", "uint256", "uint128", "uint128",
        ],
        data,
        f"positions({token_id})",
    )
    for tick in (tick_lower, tick_upper):
        if tick < MIN_TICK or tick > MAX_TICK:
            raise RpcError.malformed(f"positions({token_id}) (tick {tick} outside [{MIN_TICK}, {MAX_TICK}])")
    if tick_lower >= tick_upper:
        raise RpcError.malformed(f"positions({token_id}) (tickLower {tick_lower} >= tickUpper {tick_upper})")

    return Position(
        token_id=token_id,
        owner=owner,
        token0=Web3.to_checksum_address(token0),
        token1=Web3.to_checksum_address(token1),
        fee=fee,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        liquidity=liquidity,
        fee_growth_inside0_last=fee_growth_inside0_last,
        fee_growth_inside1_last=fee_growth_inside1_last,
        tokens_owed0=tokens_owed0,
        tokens_owed1=tokens_owed1,
        nonce=nonce,
        operator=Web3.to_checksum_address(operator),
    )


def decode_string(data: bytes, what: str = "string") -> str:
    """
    ABI string, falling back to bytes32

    Some older tokens (e.g., MKR) return symbol() as bytes32.
    """
    if not data:
        raise RpcError.malformed(f"{what} (empty return data)")
    if len(data) >= 64:
        try:
            return decode(["string"], data)[0].strip("\x00")
        except (DecodingError, ValueError, UnicodeDecodeError, OverflowError):
            pass
    try:
        raw = decode(["bytes32"], data[:32])[0]
        return raw.rstrip(b"\x00").decode("utf-8").strip()
    except (DecodingError, ValueError, UnicodeDecodeError) as e:
        raise RpcError.malformed(what, e)


# =============================================================================
# Position manager write encoders
# =============================================================================

class PositionManagerEncoder:
    """
    Encodes NonfungiblePositionManager calls

    Each method returns full calldata (selector + ABI-encoded params struct).
    """

    @staticmethod
    def encode_mint(
        token0: str,
        token1: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        recipient: str,
        deadline: int,
    ) -> bytes:
        params = (
            Web3.to_checksum_address(token0),
            Web3.to_checksum_address(token1),
            fee,
            tick_lower,
            tick_upper,
            amount0_desired,
            amount1_desired,
            amount0_min,
            amount1_min,
            Web3.to_checksum_address(recipient),
            deadline,
        )
        return MINT + encode([MINT_PARAMS], [params])

    @staticmethod
    def encode_increase_liquidity(
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        deadline: int,
    ) -> bytes:
        params = (token_id, amount0_desired, amount1_desired, amount0_min, amount1_min, deadline)
        return INCREASE_LIQUIDITY + encode([INCREASE_PARAMS], [params])

    @staticmethod
    def encode_decrease_liquidity(
        token_id: int,
        liquidity: int,
        amount0_min: int,
        amount1_min: int,
        deadline: int,
    ) -> bytes:
        params = (token_id, liquidity, amount0_min, amount1_min, deadline)
        return DECREASE_LIQUIDITY + encode([DECREASE_PARAMS], [params])

    @staticmethod
    def encode_collect(token_id: int, recipient: str, amount0_max: int, amount1_max: int) -> bytes:
        params = (token_id, Web3.to_checksum_address(recipient), amount0_max, amount1_max)
        return COLLECT + encode([COLLECT_PARAMS], [params])

    @staticmethod
    def encode_burn(token_id: int) -> bytes:
        return BURN + encode(["uint256"], [token_id])

    @staticmethod
    def encode_multicall(calls: Sequence[bytes]) -> bytes:
        return MULTICALL + encode(["bytes[]"], [list(calls)])


def decode_call(data: bytes) -> Tuple[str, tuple]:
    """
    Split calldata into (function name, decoded arguments)

    Inverse of PositionManagerEncoder; used to display and verify built
    transactions.
    """
    layouts = {
        MINT: ("mint", [MINT_PARAMS]),
        INCREASE_LIQUIDITY: ("increaseLiquidity", [INCREASE_PARAMS]),
        DECREASE_LIQUIDITY: ("decreaseLiquidity", [DECREASE_PARAMS]),
        COLLECT: ("collect", [COLLECT_PARAMS]),
        BURN: ("burn", ["uint256"]),
        MULTICALL: ("multicall", ["bytes[]"]),
    }
    layout = layouts.get(bytes(data[:4]))
    if layout is None:
        raise ValueError(f"Unknown selector 0x{bytes(data[:4]).hex()}")
    name, types = layout
    return name, decode(types, bytes(data[4:]))
