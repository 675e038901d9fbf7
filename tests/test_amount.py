"""
Test suite for amount arithmetic

Tests checked 256-bit arithmetic, base unit conversion and token metadata.
NEVER wrap: every boundary must be a hard failure.
"""

import pytest
from decimal import Decimal

from token_ledger.amount import (
    UINT256_MAX, TOKENS_MAX, SIMPLE_TOKEN, TokenMetadata,
    validate_amount, checked_add, checked_sub, to_base_units, format_units
)
from token_ledger.config import TokenLedgerConfig
from token_ledger.errors import InvalidAmount, Overflow, Underflow, LedgerError


class TestValidateAmount:
    """Test amount range validation"""

    def test_bounds_accepted(self):
        assert validate_amount(0) == 0
        assert validate_amount(UINT256_MAX) == UINT256_MAX

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmount, match="negative"):
            validate_amount(-1)

    def test_too_large_rejected(self):
        with pytest.raises(InvalidAmount, match="256-bit"):
            validate_amount(UINT256_MAX + 1)

    @pytest.mark.parametrize("value", [1.0, "1", Decimal("1"), True, None])
    def test_non_integers_rejected(self, value):
        """Test that only real ints are amounts"""
        with pytest.raises(InvalidAmount):
            validate_amount(value)


class TestCheckedArithmetic:
    """Test overflow-safe add and subtract"""

    def test_add(self):
        assert checked_add(2, 3) == 5

    def test_add_to_max(self):
        assert checked_add(UINT256_MAX - 1, 1) == UINT256_MAX

    def test_add_overflow(self):
        """Test that exceeding 2**256 - 1 fails rather than wrapping"""
        with pytest.raises(Overflow):
            checked_add(UINT256_MAX, 1)

    def test_sub(self):
        assert checked_sub(5, 3) == 2
        assert checked_sub(5, 5) == 0

    def test_sub_underflow(self):
        """Test that going below zero fails rather than wrapping"""
        with pytest.raises(Underflow):
            checked_sub(0, 1)

    def test_errors_are_ledger_errors(self):
        assert issubclass(Overflow, LedgerError)
        assert issubclass(Underflow, LedgerError)
        assert Overflow("x").code == "overflow"


class TestUnitConversion:
    """Test conversion between token quantities and base units"""

    def test_whole_tokens(self):
        assert to_base_units(1) == 10 ** 18
        assert to_base_units("800000000") == TOKENS_MAX

    def test_fractional_tokens(self):
        assert to_base_units(Decimal("1.5")) == 15 * 10 ** 17
        assert to_base_units("0.000000000000000001") == 1

    def test_custom_decimals(self):
        assert to_base_units("12.34", decimals=2) == 1234
        assert to_base_units(7, decimals=0) == 7

    def test_too_precise(self):
        """Test that sub-base-unit fractions are rejected, not rounded"""
        with pytest.raises(InvalidAmount, match="precision"):
            to_base_units("1.001", decimals=2)

    def test_negative(self):
        with pytest.raises(InvalidAmount):
            to_base_units("-1")

    def test_float_rejected(self):
        with pytest.raises(InvalidAmount):
            to_base_units(1.5)

    def test_malformed(self):
        with pytest.raises(InvalidAmount):
            to_base_units("abc")
        with pytest.raises(InvalidAmount):
            to_base_units("Infinity")

    def test_format_units(self):
        assert format_units(15 * 10 ** 17) == "1.500000000000000000"
        assert format_units(1) == "0.000000000000000001"
        assert format_units(1234, decimals=2) == "12.34"
        assert format_units(42, decimals=0) == "42"

    def test_format_max_supply(self):
        assert format_units(TOKENS_MAX) == "800000000.000000000000000000"


class TestTokenMetadata:
    """Test immutable token metadata"""

    def test_simple_token_constants(self):
        assert SIMPLE_TOKEN.name == "Simple Token"
        assert SIMPLE_TOKEN.symbol == "ST"
        assert SIMPLE_TOKEN.decimals == 18
        assert SIMPLE_TOKEN.max_supply == 800_000_000 * 10 ** 18

    def test_frozen(self):
        with pytest.raises(AttributeError):
            SIMPLE_TOKEN.name = "Other"

    def test_invalid_metadata(self):
        with pytest.raises(ValueError):
            TokenMetadata(name="", symbol="X", decimals=18, max_supply=1)
        with pytest.raises(ValueError):
            TokenMetadata(name="X", symbol="X", decimals=-1, max_supply=1)
        with pytest.raises(InvalidAmount):
            TokenMetadata(name="X", symbol="X", decimals=18, max_supply=-1)

    def test_from_config(self):
        config = TokenLedgerConfig(
            token_name="Test Token", token_symbol="TT",
            token_decimals=6, max_supply_tokens=1000
        )
        metadata = TokenMetadata.from_config(config)
        assert metadata.name == "Test Token"
        assert metadata.max_supply == 1000 * 10 ** 6

    def test_dict_round_trip(self):
        assert TokenMetadata.from_dict(SIMPLE_TOKEN.to_dict()) == SIMPLE_TOKEN
        assert SIMPLE_TOKEN.to_dict()["max_supply"] == str(TOKENS_MAX)
