"""
Concentrated liquidity fixed-point math

Bit-exact ports of the on-chain TickMath / FullMath behaviour on Python
integers, plus exact rational price helpers. Nothing here touches floats.

Conventions:
    sqrtPriceX96 = sqrt(token1 / token0) * 2^96   (raw units, Q64.96)
    raw price    = sqrtPriceX96^2 / 2^192          (token1 per token0, raw units)
"""

from fractions import Fraction
from math import isqrt
from typing import Tuple

from ...errors import TickOutOfRange, TickUnaligned, ValidationError

# =========================================================================
# Constants
# =========================================================================

MIN_TICK = -887272
MAX_TICK = 887272

# getSqrtRatioAtTick(MIN_TICK) and getSqrtRatioAtTick(MAX_TICK)
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

Q96 = 1 << 96
Q128 = 1 << 128
Q192 = 1 << 192
Q256 = 1 << 256

UINT128_MAX = (1 << 128) - 1
UINT256_MAX = (1 << 256) - 1

# sqrt(1.0001)^-(2^i) in Q128.128 for bits 1..19 of |tick|
_TICK_BIT_RATIOS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)


# =========================================================================
# Tick <-> sqrtPriceX96
# =========================================================================

def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    sqrt(1.0001^tick) * 2^96, rounded up, exactly as TickMath.getSqrtRatioAtTick

    Raises:
        TickOutOfRange: If tick is outside [MIN_TICK, MAX_TICK]
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise TickOutOfRange.tick(tick)

    abs_tick = -tick if tick < 0 else tick

    ratio = 0xfffcb933bd6fad37aa2d162d1a594001 if abs_tick & 0x1 else Q128
    for bit, multiplier in _TICK_BIT_RATIOS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = UINT256_MAX // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """
    Greatest tick whose sqrt ratio is <= sqrt_price_x96

    Same result as TickMath.getTickAtSqrtRatio, found by bisection over
    get_sqrt_ratio_at_tick so both directions share one source of truth.

    Raises:
        TickOutOfRange: If sqrt_price_x96 is outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise TickOutOfRange.sqrt_price(sqrt_price_x96)

    low, high = MIN_TICK, MAX_TICK - 1
    while low < high:
        mid = (low + high + 1) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_price_x96:
            low = mid
        else:
            high = mid - 1
    return low


# =========================================================================
# Price conversions (exact rationals)
# =========================================================================

def sqrt_price_x96_to_raw_price(sqrt_price_x96: int) -> Fraction:
    """Raw token1-per-token0 price (no decimal adjustment)"""
    return Fraction(sqrt_price_x96 * sqrt_price_x96, Q192)


def raw_price_to_sqrt_price_x96(raw_price: Fraction) -> int:
    """
    floor(sqrt(raw_price) * 2^96)

    Exact for any raw price of the form sqrtP^2 / 2^192.
    """
    if raw_price <= 0:
        raise ValidationError(f"Price must be positive, got {raw_price}")
    return isqrt(raw_price.numerator * Q192 // raw_price.denominator)


def raw_price_to_tick(raw_price: Fraction) -> int:
    """
    floor(log_1.0001(raw_price)), agreeing with getTickAtSqrtRatio

    Raises:
        TickOutOfRange: If the price maps outside the tick range
    """
    sqrt_price_x96 = raw_price_to_sqrt_price_x96(raw_price)
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise TickOutOfRange.price(raw_price)
    return get_tick_at_sqrt_ratio(sqrt_price_x96)


def tick_to_raw_price(tick: int) -> Fraction:
    """Raw price at a tick, from the on-chain sqrt ratio"""
    return sqrt_price_x96_to_raw_price(get_sqrt_ratio_at_tick(tick))


def decimal_shift(decimals0: int, decimals1: int) -> Fraction:
    """Multiplier turning a raw token1/token0 price into a human one"""
    return Fraction(10) ** (decimals0 - decimals1)


def human_price(raw_price: Fraction, decimals0: int, decimals1: int, token0_is_base: bool) -> Fraction:
    """
    Quote-per-base price in whole tokens

    When token0 is the base the quote is token1 and the raw price only needs
    the decimal shift; otherwise the shifted price is inverted.
    """
    adjusted = raw_price * decimal_shift(decimals0, decimals1)
    if token0_is_base:
        return adjusted
    return 1 / adjusted


def raw_from_human_price(price: Fraction, decimals0: int, decimals1: int, token0_is_base: bool) -> Fraction:
    """Inverse of human_price"""
    if price <= 0:
        raise ValidationError(f"Price must be positive, got {price}")
    adjusted = price if token0_is_base else 1 / price
    return adjusted / decimal_shift(decimals0, decimals1)


# =========================================================================
# Tick spacing helpers
# =========================================================================

def align_tick(tick: int, tick_spacing: int, round_up: bool = False) -> int:
    """Align tick to a multiple of tick_spacing (floor by default, ceil if round_up)"""
    if round_up:
        return -((-tick) // tick_spacing) * tick_spacing
    return (tick // tick_spacing) * tick_spacing


def usable_tick_bounds(tick_spacing: int) -> Tuple[int, int]:
    """Lowest and highest ticks aligned to tick_spacing within [MIN_TICK, MAX_TICK]"""
    return align_tick(MIN_TICK, tick_spacing, round_up=True), align_tick(MAX_TICK, tick_spacing)


def validate_tick(tick: int, tick_spacing: int):
    """
    Raises:
        TickOutOfRange: Outside [MIN_TICK, MAX_TICK]
        TickUnaligned: Not a multiple of tick_spacing
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise TickOutOfRange.tick(tick)
    if tick % tick_spacing != 0:
        raise TickUnaligned(tick, tick_spacing)


def validate_tick_range(tick_lower: int, tick_upper: int, tick_spacing: int):
    """Both ticks valid and aligned, tick_lower < tick_upper"""
    validate_tick(tick_lower, tick_spacing)
    validate_tick(tick_upper, tick_spacing)
    if tick_lower >= tick_upper:
        raise ValidationError.invalid_range(tick_lower, tick_upper)


# =========================================================================
# Modular and full-precision arithmetic
# =========================================================================

def sub_mod_256(a: int, b: int) -> int:
    """(a - b) mod 2^256; fee growth accumulators wrap"""
    return (a - b) % Q256


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with full-width intermediate"""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)"""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return -((-(a * b)) // denominator)


def is_in_range(tick: int, tick_lower: int, tick_upper: int) -> bool:
    """tick_lower <= tick < tick_upper"""
    return tick_lower <= tick < tick_upper
