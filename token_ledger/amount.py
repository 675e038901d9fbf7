"""
Amount Arithmetic Module

Token amounts are non-negative 256-bit integers counted in base units.
All arithmetic is checked: a result outside [0, 2**256 - 1] raises instead
of wrapping. Decimal is only used at the edges, to convert human-readable
token quantities to and from base units. NEVER uses float.
"""

from decimal import Decimal, InvalidOperation, localcontext
from dataclasses import dataclass
from typing import Union

from .errors import InvalidAmount, Overflow, Underflow

UINT256_MAX = 2 ** 256 - 1
DEFAULT_DECIMALS = 18

# Enough digits to hold UINT256_MAX plus a full fractional part
_DECIMAL_PRECISION = 100


def validate_amount(value) -> int:
    """
    Ensure a value is a valid 256-bit unsigned amount

    Raises:
        InvalidAmount: If value is not an int, is a bool, or is out of range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"Amount must be an integer number of base units, got {value!r}")
    if value < 0:
        raise InvalidAmount(f"Amount cannot be negative: {value}")
    if value > UINT256_MAX:
        raise InvalidAmount(f"Amount exceeds 256-bit range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add two amounts, raising Overflow if the sum leaves the 256-bit range"""
    result = a + b
    if result > UINT256_MAX:
        raise Overflow(f"Addition overflow: {a} + {b} exceeds 2**256 - 1")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract two amounts, raising Underflow if the result would be negative"""
    if b > a:
        raise Underflow(f"Subtraction underflow: {a} - {b}")
    return a - b


def to_base_units(tokens: Union[Decimal, str, int], decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Convert a token quantity to base units

    Args:
        tokens: Quantity in whole tokens, e.g. Decimal('1.5') or "1.5"
        decimals: Decimal precision of the token

    Returns:
        Integer number of base units

    Raises:
        InvalidAmount: If the quantity is negative, malformed, finer than
            the token's precision, or outside the 256-bit range
    """
    if isinstance(tokens, bool) or isinstance(tokens, float):
        raise InvalidAmount(f"Token quantity must be Decimal, str or int, got {tokens!r}")

    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        try:
            quantity = Decimal(str(tokens).strip())
        except InvalidOperation:
            raise InvalidAmount(f"Cannot convert {tokens!r} to a token quantity")

        if not quantity.is_finite():
            raise InvalidAmount(f"Token quantity must be finite: {tokens!r}")

        scaled = quantity.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmount(
                f"{tokens} has more precision than {decimals} decimals allow"
            )

    return validate_amount(int(scaled))


def format_units(value: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Format base units as a fixed-point token string for display"""
    validate_amount(value)
    if decimals == 0:
        return str(value)
    whole, fraction = divmod(value, 10 ** decimals)
    return f"{whole}.{fraction:0{decimals}d}"


@dataclass(frozen=True)
class TokenMetadata:
    """
    Immutable token metadata, fixed when the ledger is deployed
    """
    name: str
    symbol: str
    decimals: int
    max_supply: int  # In base units

    def __post_init__(self):
        if not self.name:
            raise ValueError("Token name cannot be empty")
        if not self.symbol:
            raise ValueError("Token symbol cannot be empty")
        if not 0 <= self.decimals <= 77:
            raise ValueError(f"Token decimals out of range: {self.decimals}")
        validate_amount(self.max_supply)

    @classmethod
    def from_config(cls, config) -> 'TokenMetadata':
        """Build metadata from a TokenLedgerConfig"""
        return cls(
            name=config.token_name,
            symbol=config.token_symbol,
            decimals=config.token_decimals,
            max_supply=to_base_units(config.max_supply_tokens, config.token_decimals)
        )

    def to_dict(self):
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "max_supply": str(self.max_supply)
        }

    @classmethod
    def from_dict(cls, data) -> 'TokenMetadata':
        return cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=int(data["decimals"]),
            max_supply=int(data["max_supply"])
        )


SIMPLE_TOKEN = TokenMetadata(
    name="Simple Token",
    symbol="ST",
    decimals=DEFAULT_DECIMALS,
    max_supply=800_000_000 * 10 ** DEFAULT_DECIMALS
)

TOKENS_MAX = SIMPLE_TOKEN.max_supply
