"""
Tests for amount and currency extraction
"""

import pytest

from ccx_core.extractor import (
    DetectedValue,
    extract_amount,
    extract_currency,
    format_amount,
    has_currency_marker,
    has_number,
    resolve_value,
)


class TestExtractAmount:
    """Separator handling"""

    @pytest.mark.parametrize("text,expected", [
        ("1,234.56", 1234.56),
        ("1.234,56", 1234.56),
        ("1,234", 1234.0),
        ("12,5", 12.5),
        ("€1 234", 1234.0),
        ("1.234", 1234.0),
        ("12.5", 12.5),
        ("Price: 99 zł", 99.0),
        ("1 299,00 zł", 1299.0),
    ])
    def test_amount_table(self, text, expected):
        assert extract_amount(text) == expected

    def test_first_number_wins(self):
        assert extract_amount("€100 instead of €150") == 100.0

    def test_single_digits_are_not_amounts(self):
        assert extract_amount("Buy 2 for €100") == 100.0
        assert extract_amount("7") is None
        assert extract_amount("Only 3 left") is None

    def test_no_number(self):
        assert extract_amount("free shipping") is None
        assert extract_amount("") is None
        assert extract_amount(None) is None

    def test_deterministic(self):
        assert extract_amount("$1,234.99") == extract_amount("$1,234.99")


class TestExtractCurrency:
    """Currency priority rules"""

    def test_symbols_and_codes(self):
        assert extract_currency("€50") == "EUR"
        assert extract_currency("eur 50") == "EUR"
        assert extract_currency("$100") == "USD"
        assert extract_currency("100 USD") == "USD"
        assert extract_currency("100 zł") == "PLN"
        assert extract_currency("100 PLN") == "PLN"

    def test_bare_zl_token(self):
        assert extract_currency("100 zl") == "PLN"
        assert extract_currency("100 ZL") == "PLN"
        assert extract_currency("zloty") is None

    def test_priority_eur_over_usd(self):
        assert extract_currency("€100 (USD 108)") == "EUR"
        assert extract_currency("$5 or 20 PLN") == "USD"

    def test_unknown(self):
        assert extract_currency("100 dollars") is None
        assert extract_currency("") is None


class TestMarkers:

    def test_currency_marker(self):
        assert has_currency_marker("€")
        assert has_currency_marker("only 5 zł")
        assert not has_currency_marker("5 items")

    def test_number_marker(self):
        assert has_number("12")
        assert has_number("1 234,56")
        assert not has_number("€")
        assert not has_number("5")
        assert not has_number("Only 3 left")


class TestResolveValue:
    """Own text first, then context fragments"""

    def test_own_text_complete(self):
        value, source = resolve_value("€100", ["ignored 5 USD"])
        assert value == DetectedValue("EUR", 100.0, "€100")
        assert source == "€100"

    def test_amount_from_context(self):
        value, source = resolve_value("€", ["€", "100"])
        assert value.currency_code == "EUR"
        assert value.amount == 100.0
        assert source == "100"

    def test_progressive_fill(self):
        value, source = resolve_value("Price", ["Price", "USD", "49,99"])
        assert (value.currency_code, value.amount) == ("USD", 49.99)
        assert source == "49,99"

    def test_unresolved(self):
        value, source = resolve_value("€", ["€", "Sold out"])
        assert value is None
        assert source == "€"


class TestGroupKey:

    def test_format_amount(self):
        assert format_amount(100.0) == "100"
        assert format_amount(12.5) == "12.5"
        assert format_amount(1234.56) == "1234.56"

    def test_group_key(self):
        assert DetectedValue("EUR", 100.0, "€100").group_key == "EUR:100"
        assert DetectedValue("PLN", 12.5, "12,5 zł").group_key == "PLN:12.5"
