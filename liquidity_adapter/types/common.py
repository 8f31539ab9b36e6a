"""
Common type definitions
"""

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Tuple, Union


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def address_key(address: str) -> int:
    """Numeric value of a hex address; ordering on it is the on-chain token ordering"""
    return int(address, 16)


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


@dataclass(frozen=True)
class Token:
    """
    ERC-20 token metadata

    Identity is (chain_id, address); equality ignores address case.

    Attributes:
        chain_id: Chain the token lives on
        address: Contract address (0x...)
        symbol: Token symbol (e.g., "WETH", "USDC")
        decimals: Number of decimal places, 0-255
        name: Full token name (optional)
    """
    chain_id: int
    address: str
    symbol: str
    decimals: int
    name: str = ""

    def __post_init__(self):
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals must be within [0, 255], got {self.decimals}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self.chain_id == other.chain_id and same_address(self.address, other.address)

    def __hash__(self) -> int:
        return hash((self.chain_id, self.address.lower()))

    def __str__(self) -> str:
        return self.symbol

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address[:10]}...)"

    def sorts_before(self, other: "Token") -> bool:
        """True if this token is token0 of a pool with ``other``"""
        return address_key(self.address) < address_key(other.address)

    def ui_amount(self, raw_amount: int) -> Decimal:
        """
        Convert raw amount to UI amount with full precision

        Args:
            raw_amount: Raw token amount (smallest units)

        Returns:
            UI amount as Decimal
        """
        return Decimal(f"{raw_amount}e-{self.decimals}")

    def raw_amount(self, ui_amount: Union[Decimal, int, str]) -> int:
        """
        Convert UI amount to raw amount (truncates extra precision)

        Args:
            ui_amount: UI amount (Decimal, int, or decimal string)

        Returns:
            Raw token amount (smallest units)
        """
        if not isinstance(ui_amount, Decimal):
            ui_amount = Decimal(str(ui_amount))
        return int(Fraction(ui_amount) * 10 ** self.decimals)

    def to_dict(self) -> dict:
        return {
            "chain_id": self.chain_id,
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "name": self.name,
        }


def sort_tokens(token_a: Token, token_b: Token) -> Tuple[Token, Token]:
    """
    Return (token0, token1) in canonical pool order

    Raises:
        ValidationError: If both are the same token
    """
    from ..errors import ValidationError

    if same_address(token_a.address, token_b.address):
        raise ValidationError.same_token(token_a.address)
    if token_a.sorts_before(token_b):
        return token_a, token_b
    return token_b, token_a
