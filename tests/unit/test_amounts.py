"""
Unit tests for token amount conversion.
"""

from decimal import Decimal

import pytest

from ibtbridge.bridge.amounts import BASE_UNIT, format_amount, parse_amount
from ibtbridge.errors import ErrorKind, InvalidTransferRequest


class TestParseAmount:
    """Test parse_amount."""

    def test_whole_tokens(self):
        """Test whole token amounts scale by 10**18."""
        assert parse_amount("10") == 10 * BASE_UNIT
        assert parse_amount("1") == BASE_UNIT

    def test_fractional_tokens(self):
        """Test fractional amounts are converted exactly."""
        assert parse_amount("0.5") == 5 * 10 ** 17
        assert parse_amount(".25") == 25 * 10 ** 16
        assert parse_amount("10.") == 10 * BASE_UNIT
        assert parse_amount("0.000000000000000001") == 1

    def test_decimal_input(self):
        """Test Decimal input."""
        assert parse_amount(Decimal("1.5")) == 15 * 10 ** 17
        assert parse_amount(Decimal("1E+2")) == 100 * BASE_UNIT

    def test_no_float_rounding(self):
        """Test amounts that are inexact as binary floats stay exact."""
        assert parse_amount("0.1") + parse_amount("0.2") == parse_amount("0.3")
        assert parse_amount("123456789.123456789123456789") == 123456789123456789123456789

    def test_whitespace_is_ignored(self):
        """Test surrounding whitespace."""
        assert parse_amount("  7 ") == 7 * BASE_UNIT

    def test_custom_decimals(self):
        """Test a token with fewer decimals."""
        assert parse_amount("1.5", decimals=6) == 1_500_000

    @pytest.mark.parametrize("value", ["0", "0.0", "-1", "abc", "", "1e3", "1,000", "1.2.3"])
    def test_rejects_invalid_strings(self, value):
        """Test malformed and non-positive strings are rejected."""
        with pytest.raises(InvalidTransferRequest) as exc_info:
            parse_amount(value)
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
        assert exc_info.value.field == "amount"

    def test_rejects_excess_precision(self):
        """Test more than 18 fractional digits is rejected instead of rounded."""
        with pytest.raises(InvalidTransferRequest, match="decimal places"):
            parse_amount("0.0000000000000000001")

    def test_rejects_float(self):
        """Test floats are never accepted."""
        with pytest.raises(InvalidTransferRequest, match="float"):
            parse_amount(10.0)

    def test_rejects_bool_and_int(self):
        """Test non-decimal types are rejected."""
        with pytest.raises(InvalidTransferRequest):
            parse_amount(True)
        with pytest.raises(InvalidTransferRequest):
            parse_amount(10)

    def test_rejects_special_decimals(self):
        """Test NaN, infinity and negative Decimals."""
        for value in (Decimal("NaN"), Decimal("Infinity"), Decimal("-2")):
            with pytest.raises(InvalidTransferRequest):
                parse_amount(value)


class TestFormatAmount:
    """Test format_amount."""

    def test_whole_tokens(self):
        """Test whole token amounts keep one fractional digit."""
        assert format_amount(10 * BASE_UNIT) == "10.0"
        assert format_amount(0) == "0.0"

    def test_fractional_tokens(self):
        """Test trailing zeros are trimmed."""
        assert format_amount(15 * 10 ** 17) == "1.5"
        assert format_amount(1) == "0.000000000000000001"

    def test_negative(self):
        """Test negative amounts keep their sign."""
        assert format_amount(-5 * 10 ** 17) == "-0.5"

    def test_parse_inverse(self):
        """Test formatting then parsing returns the same base units."""
        for units in (1, 999, BASE_UNIT, 12345 * 10 ** 15):
            assert parse_amount(format_amount(units)) == units

    def test_rejects_non_int(self):
        """Test only integers are formatted."""
        with pytest.raises(TypeError):
            format_amount(1.0)
        with pytest.raises(TypeError):
            format_amount(True)
