from decimal import Decimal

import pytest

from errors import ValidationError
from pricing import compute_price, format_brl, parse_brl, to_db_value


def test_zero_helpers_keeps_base():
    assert compute_price("1.234,50", 0) == "1.234,50"


def test_helper_fee_is_added_per_helper():
    assert compute_price("1.234,50", 1) == "1.334,50"
    assert compute_price("1.234,50", 3) == "1.534,50"


def test_empty_base_is_zero():
    assert compute_price("", 2) == "200,00"
    assert compute_price(None, 0) == "0,00"


def test_malformed_base_is_zero():
    assert compute_price("abc", 1) == "100,00"


def test_currency_prefix_is_ignored():
    assert compute_price("R$ 50,00", 1) == "150,00"


def test_custom_helper_fee():
    assert compute_price("10,00", 2, helper_fee=Decimal("35.50")) == "81,00"


def test_helper_fee_from_environment(monkeypatch):
    monkeypatch.setenv("GF_HELPER_FEE", "120")
    assert compute_price("0", 2) == "240,00"


@pytest.mark.parametrize("helpers", [-1, 1.5])
def test_invalid_helpers_rejected(helpers):
    with pytest.raises(ValidationError):
        compute_price("100,00", helpers)


def test_parse_brl():
    assert parse_brl("1.234,56") == Decimal("1234.56")
    assert parse_brl("  ") == Decimal("0")
    assert parse_brl(12.5) == Decimal("12.5")


def test_format_brl_rounds_half_up():
    assert format_brl(Decimal("0.005")) == "0,01"
    assert format_brl(1234567) == "1.234.567,00"


def test_to_db_value():
    assert to_db_value("1.334,50") == 1334.5
    assert to_db_value("") is None
    assert to_db_value(None) is None


@pytest.mark.parametrize("base, helpers, expected", [
    ("100,00", 0, "100,00"),
    ("100,00", 2, "300,00"),
    ("", 1, "100,00"),
    ("1.234,50", 1, "1.334,50"),
])
def test_documented_price_examples(base, helpers, expected):
    assert compute_price(base, helpers) == expected
