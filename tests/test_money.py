from __future__ import annotations

import pytest

from orcamento.money import format_currency, format_percent, normalize_price_text, parse_currency


@pytest.mark.parametrize(
    "text, expected",
    [
        ("R$ 1.234,56", 1234.56),
        ("1.234.567,89", 1234567.89),
        ("12,5", 12.5),
        ("  80 ", 80.0),
        ("-3,10", -3.1),
        ("1000", 1000.0),
    ],
)
def test_parse_currency_locale_text(text, expected):
    assert parse_currency(text) == expected


@pytest.mark.parametrize("text", [None, "", "R$", "abc", "1-2", ",", "-"])
def test_parse_currency_treats_garbage_as_absent(text):
    assert parse_currency(text) is None


def test_parse_currency_accepts_numbers():
    assert parse_currency(42) == 42.0


@pytest.mark.parametrize("value", [0.0, 0.01, 9.99, 1234.56, 80000.0, 4800000.0, 123456789.1])
def test_format_then_parse_returns_value(value):
    text = format_currency(value)
    assert parse_currency(text) == value


def test_format_currency_uses_brazilian_separators():
    assert format_currency(1234.5) == "1.234,50"
    assert format_currency(1234567.891) == "1.234.567,89"
    assert format_currency(80, symbol=True) == "R$ 80,00"


def test_normalize_price_text_reformats_on_blur():
    assert normalize_price_text("1234,5") == "1.234,50"
    assert normalize_price_text("R$ 10") == "10,00"
    assert normalize_price_text("abc") == "abc"
    assert normalize_price_text("") == ""


def test_format_percent():
    assert format_percent(10) == "10,00%"
    assert format_percent(None) == ""
