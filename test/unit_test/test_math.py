"""
Fixed-point math unit tests

Tests tick <-> sqrt price conversion, exact price helpers and tick
alignment without network access.
"""

import sys
from fractions import Fraction
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from liquidity_adapter.errors import TickOutOfRange, TickUnaligned, ValidationError
from liquidity_adapter.protocols.uniswap_v3.math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
    Q256,
    align_tick,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    human_price,
    mul_div,
    mul_div_rounding_up,
    raw_from_human_price,
    raw_price_to_tick,
    sqrt_price_x96_to_raw_price,
    sub_mod_256,
    tick_to_raw_price,
    usable_tick_bounds,
    validate_tick,
    validate_tick_range,
)

SAMPLE_TICKS = [
    MIN_TICK, MIN_TICK + 1, -500000, -276324, -200000, -887, -60, -1,
    0, 1, 60, 887, 69081, 200000, 276324, 500000, MAX_TICK - 1, MAX_TICK,
]


class TestSqrtRatioAtTick:
    """Tests for get_sqrt_ratio_at_tick"""

    def test_tick_zero_is_q96(self):
        assert get_sqrt_ratio_at_tick(0) == 79228162514264337593543950336
        assert get_sqrt_ratio_at_tick(0) == Q96

    def test_boundaries(self):
        assert get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO
        assert get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_monotonic(self):
        ratios = [get_sqrt_ratio_at_tick(tick) for tick in SAMPLE_TICKS]
        assert ratios == sorted(ratios)
        assert len(set(ratios)) == len(ratios)

    def test_out_of_range(self):
        with pytest.raises(TickOutOfRange):
            get_sqrt_ratio_at_tick(MIN_TICK - 1)
        with pytest.raises(TickOutOfRange):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)


class TestTickAtSqrtRatio:
    """Tests for get_tick_at_sqrt_ratio"""

    def test_q96_is_tick_zero(self):
        assert get_tick_at_sqrt_ratio(79228162514264337593543950336) == 0

    def test_boundaries(self):
        assert get_tick_at_sqrt_ratio(MIN_SQRT_RATIO) == MIN_TICK
        assert get_tick_at_sqrt_ratio(MAX_SQRT_RATIO - 1) == MAX_TICK - 1

    def test_out_of_range(self):
        with pytest.raises(TickOutOfRange):
            get_tick_at_sqrt_ratio(MIN_SQRT_RATIO - 1)
        with pytest.raises(TickOutOfRange):
            get_tick_at_sqrt_ratio(MAX_SQRT_RATIO)

    @pytest.mark.parametrize("tick", SAMPLE_TICKS)
    def test_round_trip(self, tick):
        """getTickAtSqrtRatio(getSqrtRatioAtTick(tick)) == tick"""
        assert get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(tick)) == tick

    @pytest.mark.parametrize("sqrt_price", [
        MIN_SQRT_RATIO,
        MIN_SQRT_RATIO + 1,
        Q96 - 1,
        Q96,
        Q96 + 1,
        1350174849792634181862360983626536,
        MAX_SQRT_RATIO - 1,
    ])
    def test_bracketing(self, sqrt_price):
        """sqrtRatio(t) <= sqrtP < sqrtRatio(t + 1)"""
        tick = get_tick_at_sqrt_ratio(sqrt_price)
        assert get_sqrt_ratio_at_tick(tick) <= sqrt_price
        assert sqrt_price < get_sqrt_ratio_at_tick(tick + 1)

    def test_one_below_tick_boundary(self):
        boundary = get_sqrt_ratio_at_tick(100)
        assert get_tick_at_sqrt_ratio(boundary) == 100
        assert get_tick_at_sqrt_ratio(boundary - 1) == 99


class TestPriceConversions:
    """Tests for exact price helpers"""

    def test_raw_price_at_tick_zero(self):
        assert sqrt_price_x96_to_raw_price(Q96) == 1
        assert tick_to_raw_price(0) == 1

    @pytest.mark.parametrize("tick", [-200000, -60, 0, 1, 60, 200000])
    def test_price_tick_round_trip(self, tick):
        assert raw_price_to_tick(tick_to_raw_price(tick)) == tick

    def test_price_between_ticks_floors(self):
        price = (tick_to_raw_price(10) + tick_to_raw_price(11)) / 2
        assert raw_price_to_tick(price) == 10

    def test_price_out_of_range(self):
        with pytest.raises(TickOutOfRange):
            raw_price_to_tick(Fraction(1, 10 ** 60))

    def test_non_positive_price(self):
        with pytest.raises(ValidationError):
            raw_price_to_tick(Fraction(0))

    def test_human_price_decimals(self):
        # token0 has 6 decimals, token1 has 18
        raw = Fraction(10 ** 12)
        assert human_price(raw, 6, 18, token0_is_base=True) == Fraction(1)
        assert human_price(raw, 6, 18, token0_is_base=False) == Fraction(1)
        assert human_price(Fraction(2 * 10 ** 12), 6, 18, token0_is_base=False) == Fraction(1, 2)

    def test_raw_from_human_price_inverse(self):
        raw = Fraction(3, 7 * 10 ** 12)
        for token0_is_base in (True, False):
            human = human_price(raw, 6, 18, token0_is_base)
            assert raw_from_human_price(human, 6, 18, token0_is_base) == raw


class TestTickSpacing:
    """Tests for tick alignment and validation"""

    def test_align_tick_floor(self):
        assert align_tick(125, 60) == 120
        assert align_tick(-125, 60) == -180
        assert align_tick(120, 60) == 120

    def test_align_tick_ceil(self):
        assert align_tick(125, 60, round_up=True) == 180
        assert align_tick(-125, 60, round_up=True) == -120
        assert align_tick(-120, 60, round_up=True) == -120

    def test_usable_tick_bounds(self):
        assert usable_tick_bounds(60) == (-887220, 887220)
        assert usable_tick_bounds(1) == (MIN_TICK, MAX_TICK)
        assert usable_tick_bounds(200) == (-887200, 887200)

    def test_validate_tick(self):
        validate_tick(-60, 60)
        with pytest.raises(TickUnaligned):
            validate_tick(61, 60)
        with pytest.raises(TickOutOfRange):
            validate_tick(MAX_TICK + 1, 1)

    def test_validate_tick_range(self):
        validate_tick_range(-60, 60, 60)
        with pytest.raises(ValidationError):
            validate_tick_range(60, 60, 60)
        with pytest.raises(ValidationError):
            validate_tick_range(120, 60, 60)


class TestArithmetic:
    """Tests for modular and full-precision helpers"""

    def test_sub_mod_256_wraps(self):
        assert sub_mod_256(5, Q256 - 10) == 15
        assert sub_mod_256(10, 3) == 7
        assert sub_mod_256(0, 1) == Q256 - 1

    def test_mul_div(self):
        assert mul_div(7, 3, 2) == 10
        assert mul_div_rounding_up(7, 3, 2) == 11
        assert mul_div_rounding_up(6, 2, 3) == 4
        with pytest.raises(ZeroDivisionError):
            mul_div(1, 1, 0)


def main():
    """Run all math unit tests"""
    print("=" * 60)
    print("Fixed-Point Math Unit Tests")
    print("=" * 60)

    exit_code = pytest.main([__file__, "-v", "--tb=short"])
    return exit_code == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
