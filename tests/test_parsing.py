"""
Tests for strict amount and timestamp parsing
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sandbox_banking.currency import Money, parse_decimal
from sandbox_banking.formats import DATE_PATTERN, format_timestamp, parse_timestamp


class TestParseDecimal:
    """Test decimal conversion of import strings"""

    @pytest.mark.parametrize("value,expected", [
        ("12", Decimal("12")),
        ("-0.50", Decimal("-0.50")),
        ("+3.25", Decimal("3.25")),
        (".5", Decimal("0.5")),
        ("1E+3", Decimal("1000")),
        ("1000.00", Decimal("1000.00")),
    ])
    def test_valid_literals(self, value, expected):
        assert parse_decimal(value) == expected

    def test_scale_is_preserved(self):
        assert str(parse_decimal("10.500")) == "10.500"

    @pytest.mark.parametrize("value", [
        "", " 12", "12 ", "1,000.00", "$12", "abc", "NaN", "Infinity", "1.2.3", "--1"
    ])
    def test_invalid_literals(self, value):
        with pytest.raises(ValueError):
            parse_decimal(value)


class TestMoney:
    def test_money_from_string_input_keeps_decimal(self):
        money = Money("1.10", "EUR")
        assert money.amount == Decimal("1.10")
        assert money.to_dict() == {"amount": "1.10", "currency": "EUR"}

    def test_dict_round_trip(self):
        money = Money(Decimal("-5.25"), "GBP")
        assert Money.from_dict(money.to_dict()) == money


class TestTimestamps:
    """Test the import timestamp format"""

    def test_parse_valid_timestamp(self):
        parsed = parse_timestamp("2016-01-27T14:03:11.250Z")
        assert parsed == datetime(2016, 1, 27, 14, 3, 11, 250000, tzinfo=timezone.utc)

    def test_format_is_inverse_of_parse(self):
        value = "2016-12-31T23:59:59.999Z"
        assert format_timestamp(parse_timestamp(value)) == value

    @pytest.mark.parametrize("value", [
        "2016-01-27 14:03:11",
        "2016-01-27T14:03:11Z",
        "2016-01-27T14:03:11.000",
        "2016-01-27T14:03:11.0000Z",
        "2016-01-27T14:03:11.000+01:00",
        "2016-02-30T10:00:00.000Z",
        "2016-01-27T25:00:00.000Z",
        "27/01/2016",
        "",
    ])
    def test_invalid_timestamps_rejected(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)

    def test_pattern_is_published(self):
        assert DATE_PATTERN == "yyyy-MM-dd'T'HH:mm:ss.SSS'Z'"
