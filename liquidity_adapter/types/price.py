"""
Price and range type definitions
"""

from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum
from fractions import Fraction
from typing import Union

from .common import Token

PriceLike = Union["Price", Fraction, Decimal, int, str]

# Display precision for prices rendered at the edge
DEFAULT_SIGNIFICANT_DIGITS = 18


def to_fraction(value: PriceLike) -> Fraction:
    """
    Convert a price-like value to an exact rational

    Floats are converted through their decimal repr, never bit-exactly.
    """
    if isinstance(value, Price):
        return value.value
    if isinstance(value, Fraction):
        return value
    if isinstance(value, float):
        return Fraction(Decimal(str(value)))
    if isinstance(value, (int, Decimal)):
        return Fraction(value)
    return Fraction(Decimal(str(value).strip()))


@dataclass(frozen=True)
class Price:
    """
    Exact quote-per-base price

    ``value`` is how many whole ``quote`` tokens one whole ``base`` token is
    worth, decimals already applied. Rendering to a string is the only
    lossy step.
    """
    base: Token
    quote: Token
    value: Fraction

    def invert(self) -> "Price":
        if self.value == 0:
            raise ZeroDivisionError("Cannot invert a zero price")
        return Price(self.quote, self.base, 1 / self.value)

    def to_decimal(self, significant_digits: int = DEFAULT_SIGNIFICANT_DIGITS) -> Decimal:
        """Round to ``significant_digits`` significant figures"""
        with localcontext() as ctx:
            ctx.prec = significant_digits
            return Decimal(self.value.numerator) / Decimal(self.value.denominator)

    def to_decimal_string(self, significant_digits: int = DEFAULT_SIGNIFICANT_DIGITS) -> str:
        """Plain (non-scientific) decimal string, trailing zeros stripped"""
        rendered = format(self.to_decimal(significant_digits), "f")
        if "." in rendered:
            rendered = rendered.rstrip("0").rstrip(".")
        return rendered

    def __str__(self) -> str:
        return f"{self.to_decimal_string()} {self.quote.symbol}/{self.base.symbol}"

    def to_dict(self) -> dict:
        return {
            "base": self.base.symbol,
            "quote": self.quote.symbol,
            "value": self.to_decimal_string(),
        }


class RangeMode(Enum):
    """
    Price range specification mode

    PERCENT: Relative fraction around current price (e.g., -0.05, 0.05 = +/-5%)
    BPS: Basis points around current price (stored as fractions, like PERCENT)
    ABSOLUTE: Absolute prices of the quote token per base token
    TICK_RANGE: Explicit tick range
    """
    PERCENT = "percent"
    BPS = "bps"
    ABSOLUTE = "absolute"
    TICK_RANGE = "tick_range"


@dataclass
class PriceRange:
    """
    Price range specification for new positions

    Usage:
        PriceRange.narrow()                 # +/- 2.5%
        PriceRange.percent(Decimal("0.01")) # +/- 1%
        PriceRange.bps(100)                 # +/- 100 bps
        PriceRange.absolute("1800", "2200") # quote per base
        PriceRange.ticks(-600, 600)
    """
    lower: Decimal
    upper: Decimal
    mode: RangeMode = RangeMode.PERCENT

    def __post_init__(self):
        if not isinstance(self.lower, Decimal):
            self.lower = Decimal(str(self.lower))
        if not isinstance(self.upper, Decimal):
            self.upper = Decimal(str(self.upper))
        if self.lower >= self.upper:
            from ..errors import ValidationError
            raise ValidationError(f"Range lower bound {self.lower} must be below upper bound {self.upper}")
        if self.mode in (RangeMode.PERCENT, RangeMode.BPS) and self.lower <= -1:
            from ..errors import ValidationError
            raise ValidationError(f"Relative lower bound {self.lower} would make the price non-positive")

    @classmethod
    def percent(cls, pct: Union[Decimal, str, int]) -> "PriceRange":
        """
        Create symmetric percentage range

        Args:
            pct: Percentage as decimal fraction ("0.01" = 1%)
        """
        pct = Decimal(str(pct))
        return cls(-pct, pct, RangeMode.PERCENT)

    @classmethod
    def percent_asymmetric(cls, lower_pct, upper_pct) -> "PriceRange":
        return cls(Decimal(str(lower_pct)), Decimal(str(upper_pct)), RangeMode.PERCENT)

    @classmethod
    def bps(cls, basis_points: int) -> "PriceRange":
        """Symmetric range of ``basis_points`` (100 = 1%)"""
        pct = Decimal(basis_points) / Decimal(10000)
        return cls(-pct, pct, RangeMode.BPS)

    @classmethod
    def narrow(cls) -> "PriceRange":
        return cls.percent(Decimal("0.025"))

    @classmethod
    def medium(cls) -> "PriceRange":
        return cls.percent(Decimal("0.05"))

    @classmethod
    def wide(cls) -> "PriceRange":
        return cls.percent(Decimal("0.10"))

    @classmethod
    def absolute(cls, lower, upper) -> "PriceRange":
        return cls(Decimal(str(lower)), Decimal(str(upper)), RangeMode.ABSOLUTE)

    @classmethod
    def ticks(cls, lower_tick: int, upper_tick: int) -> "PriceRange":
        return cls(Decimal(lower_tick), Decimal(upper_tick), RangeMode.TICK_RANGE)

    @property
    def is_relative(self) -> bool:
        return self.mode in (RangeMode.PERCENT, RangeMode.BPS)

    def factors(self) -> tuple:
        """(lower, upper) price multipliers for relative modes, as exact rationals"""
        if not self.is_relative:
            raise ValueError(f"{self.mode.value} range has no relative factors")
        return (1 + Fraction(self.lower), 1 + Fraction(self.upper))
