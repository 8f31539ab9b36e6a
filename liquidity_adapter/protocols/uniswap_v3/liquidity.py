"""
Position amounts and uncollected fees

Token amounts held by a position (LiquidityAmounts), the inverse
(liquidity for a deposit), and fee reconstruction from the per-tick
fee growth accumulators. All integer, all rounded down.
"""

from typing import Optional, Tuple

from ...errors import ValidationError
from ...types import PoolState, Position, TickInfo
from .math import Q96, Q128, get_sqrt_ratio_at_tick, mul_div, sub_mod_256


# =========================================================================
# Amounts for liquidity
# =========================================================================

def get_amount0_for_liquidity(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, liquidity: int) -> int:
    """
    Token0 amount for liquidity between two sqrt prices

    amount0 = L * 2^96 * (sqrtB - sqrtA) / (sqrtA * sqrtB), rounded down
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    return mul_div(liquidity << 96, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, sqrt_ratio_b_x96) // sqrt_ratio_a_x96


def get_amount1_for_liquidity(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, liquidity: int) -> int:
    """
    Token1 amount for liquidity between two sqrt prices

    amount1 = L * (sqrtB - sqrtA) / 2^96, rounded down
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    return mul_div(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)


def get_amounts_for_liquidity(
    sqrt_price_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
) -> Tuple[int, int]:
    """(amount0, amount1) for liquidity at the given price and sqrt range"""
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_price_x96 <= sqrt_ratio_a_x96:
        return get_amount0_for_liquidity(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity), 0
    if sqrt_price_x96 < sqrt_ratio_b_x96:
        return (
            get_amount0_for_liquidity(sqrt_price_x96, sqrt_ratio_b_x96, liquidity),
            get_amount1_for_liquidity(sqrt_ratio_a_x96, sqrt_price_x96, liquidity),
        )
    return 0, get_amount1_for_liquidity(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity)


def get_position_amounts(
    liquidity: int,
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    sqrt_price_x96: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Token amounts currently represented by a position

    Args:
        liquidity: Position (or delta) liquidity
        tick_lower: Lower tick
        tick_upper: Upper tick
        current_tick: Pool tick
        sqrt_price_x96: Pool sqrt price; derived from current_tick if omitted

    Returns:
        (amount0, amount1) raw amounts, rounded down

    At exactly sqrt_price_x96 == sqrtRatio(tick_lower) the position holds
    only token0, so amount1 is 0 there even though the tick is in range.
    """
    if tick_lower >= tick_upper:
        raise ValidationError.invalid_range(tick_lower, tick_upper)
    if liquidity == 0:
        return 0, 0

    if sqrt_price_x96 is None:
        sqrt_price_x96 = get_sqrt_ratio_at_tick(current_tick)

    return get_amounts_for_liquidity(
        sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        liquidity,
    )


# =========================================================================
# Liquidity for amounts
# =========================================================================

def get_liquidity_for_amount0(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, amount0: int) -> int:
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    intermediate = mul_div(sqrt_ratio_a_x96, sqrt_ratio_b_x96, Q96)
    return mul_div(amount0, intermediate, sqrt_ratio_b_x96 - sqrt_ratio_a_x96)


def get_liquidity_for_amount1(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, amount1: int) -> int:
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    return mul_div(amount1, Q96, sqrt_ratio_b_x96 - sqrt_ratio_a_x96)


def get_liquidity_for_amounts(
    sqrt_price_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount0: int,
    amount1: int,
) -> int:
    """Maximum liquidity mintable from amount0 and amount1 at the current price"""
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_price_x96 <= sqrt_ratio_a_x96:
        return get_liquidity_for_amount0(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount0)
    if sqrt_price_x96 < sqrt_ratio_b_x96:
        liquidity0 = get_liquidity_for_amount0(sqrt_price_x96, sqrt_ratio_b_x96, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_price_x96, amount1)
        return min(liquidity0, liquidity1)
    return get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount1)


def paired_amount(
    amount: int,
    amount_is_token0: bool,
    tick_lower: int,
    tick_upper: int,
    sqrt_price_x96: int,
) -> int:
    """
    Amount of the other token that pairs with ``amount`` for this range

    What the add-liquidity form fills in when one side is typed. Returns 0
    when the range only takes the given token.

    Raises:
        ValidationError: The range at this price does not take the given token
    """
    if tick_lower >= tick_upper:
        raise ValidationError.invalid_range(tick_lower, tick_upper)

    sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)

    if amount_is_token0:
        if sqrt_price_x96 >= sqrt_upper:
            raise ValidationError("Range is below the current price; it only accepts token1")
        if sqrt_price_x96 <= sqrt_lower:
            return 0
        liquidity = get_liquidity_for_amount0(sqrt_price_x96, sqrt_upper, amount)
        return get_amount1_for_liquidity(sqrt_lower, sqrt_price_x96, liquidity)

    if sqrt_price_x96 <= sqrt_lower:
        raise ValidationError("Range is above the current price; it only accepts token0")
    if sqrt_price_x96 >= sqrt_upper:
        return 0
    liquidity = get_liquidity_for_amount1(sqrt_lower, sqrt_price_x96, amount)
    return get_amount0_for_liquidity(sqrt_price_x96, sqrt_upper, liquidity)


# =========================================================================
# Fees
# =========================================================================

def get_fee_growth_inside(
    tick_current: int,
    tick_lower: int,
    tick_upper: int,
    lower_fee_growth_outside: int,
    upper_fee_growth_outside: int,
    fee_growth_global: int,
) -> int:
    """
    Fee growth per unit of liquidity inside [tick_lower, tick_upper), one token

    All subtractions wrap modulo 2^256, as the pool contract does.
    """
    if tick_current >= tick_lower:
        fee_growth_below = lower_fee_growth_outside
    else:
        fee_growth_below = sub_mod_256(fee_growth_global, lower_fee_growth_outside)

    if tick_current < tick_upper:
        fee_growth_above = upper_fee_growth_outside
    else:
        fee_growth_above = sub_mod_256(fee_growth_global, upper_fee_growth_outside)

    return sub_mod_256(sub_mod_256(fee_growth_global, fee_growth_below), fee_growth_above)


def compute_uncollected_fee(
    tokens_owed: int,
    fee_growth_inside: int,
    fee_growth_inside_last: int,
    liquidity: int,
) -> int:
    """tokens_owed + ((inside - inside_last) mod 2^256) * L / 2^128"""
    delta = sub_mod_256(fee_growth_inside, fee_growth_inside_last)
    return tokens_owed + mul_div(delta, liquidity, Q128)


def get_uncollected_fees(
    position: Position,
    pool_state: PoolState,
    lower: TickInfo,
    upper: TickInfo,
) -> Tuple[int, int]:
    """
    (fees0, fees1) collectable by a position, including tokens already owed

    The pool state must carry both fee growth globals, and the TickInfos
    must be for the position's bounds, read at the same block.
    """
    if not pool_state.has_fee_growth:
        raise ValidationError(f"Pool state for {pool_state.address} was loaded without fee growth")
    if lower.tick != position.tick_lower or upper.tick != position.tick_upper:
        raise ValidationError(
            f"Tick infos ({lower.tick}, {upper.tick}) do not match position range "
            f"({position.tick_lower}, {position.tick_upper})"
        )

    inside0 = get_fee_growth_inside(
        pool_state.tick,
        position.tick_lower,
        position.tick_upper,
        lower.fee_growth_outside0,
        upper.fee_growth_outside0,
        pool_state.fee_growth_global0,
    )
    inside1 = get_fee_growth_inside(
        pool_state.tick,
        position.tick_lower,
        position.tick_upper,
        lower.fee_growth_outside1,
        upper.fee_growth_outside1,
        pool_state.fee_growth_global1,
    )

    fees0 = compute_uncollected_fee(
        position.tokens_owed0, inside0, position.fee_growth_inside0_last, position.liquidity
    )
    fees1 = compute_uncollected_fee(
        position.tokens_owed1, inside1, position.fee_growth_inside1_last, position.liquidity
    )
    return fees0, fees1
