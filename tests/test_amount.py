from decimal import Decimal

import pytest

from amount import Amount, MAX_MINOR_UNITS, MIN_MINOR_UNITS
from exceptions import AmountOverflowError


class TestConstruction:
    """Test building amounts from decimal input."""

    def test_parse_uses_ten_thousandths(self):
        assert Amount.parse("1.5").minor_units == 15000
        assert Amount.parse(" 2.0001 ").minor_units == 20001
        assert Amount.parse("3").minor_units == 30000

    def test_trailing_zeros_beyond_precision_are_accepted(self):
        assert Amount.parse("1.500000") == Amount.parse("1.5")

    def test_more_than_four_decimal_places_is_rejected(self):
        with pytest.raises(ValueError):
            Amount.parse("0.00001")

    def test_garbage_and_non_finite_values_are_rejected(self):
        with pytest.raises(ValueError):
            Amount.parse("abc")
        with pytest.raises(ValueError):
            Amount.from_decimal(Decimal("Infinity"))
        with pytest.raises(ValueError):
            Amount.from_decimal(Decimal("NaN"))

    def test_floats_are_rejected(self):
        with pytest.raises(TypeError):
            Amount.from_decimal(0.1)
        with pytest.raises(TypeError):
            Amount(1.0)

    def test_out_of_range_is_an_overflow(self):
        with pytest.raises(AmountOverflowError):
            Amount(MAX_MINOR_UNITS + 1)
        with pytest.raises(AmountOverflowError):
            Amount.parse("99999999999999999999")


class TestArithmetic:
    """Test exact arithmetic."""

    def test_add_and_sub(self):
        a, b = Amount.parse("0.1"), Amount.parse("0.2")

        assert a + b == Amount.parse("0.3")
        assert a.add(b) == Amount.parse("0.3")
        assert b - a == Amount.parse("0.1")
        assert a.sub(b) == Amount.parse("-0.1")

    def test_negate_and_sign_checks(self):
        a = Amount.parse("2.5")

        assert -a == Amount.parse("-2.5")
        assert a.neg().is_negative()
        assert not a.is_negative()
        assert Amount.zero().is_zero()
        assert not a.is_zero()

    def test_ordering(self):
        assert Amount.parse("1") < Amount.parse("1.0001")
        assert Amount.parse("-1") < Amount.zero()
        assert max(Amount.parse("3"), Amount.parse("2")) == Amount.parse("3")

    def test_overflow_is_detected_not_wrapped(self):
        with pytest.raises(AmountOverflowError):
            Amount(MAX_MINOR_UNITS) + Amount(1)
        with pytest.raises(AmountOverflowError):
            Amount(MIN_MINOR_UNITS) - Amount(1)
        with pytest.raises(AmountOverflowError):
            -Amount(MIN_MINOR_UNITS)

    def test_mixing_with_other_types_is_not_supported(self):
        with pytest.raises(TypeError):
            Amount.parse("1") + 1


class TestFormatting:
    """Test rendering amounts."""

    @pytest.mark.parametrize("text, expected", [
        ("0", "0.0000"),
        ("12", "12.0000"),
        ("1.5", "1.5000"),
        ("-0.0001", "-0.0001"),
        ("-2.25", "-2.2500"),
    ])
    def test_str_has_four_decimal_places(self, text, expected):
        assert str(Amount.parse(text)) == expected

    def test_to_decimal_is_exact(self):
        assert Amount.parse("2.0001").to_decimal() == Decimal("2.0001")
