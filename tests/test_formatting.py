"""Tests for display formatting helpers."""

from decimal import Decimal

import pytest

from solana_portfolio_tracker.utils.formatting import (
    format_currency,
    format_large_number,
    format_time_ago,
    shorten_address,
)


@pytest.mark.parametrize(
    "amount,expected",
    [
        (1234.5, "$1,234.50"),
        (Decimal("0.000123"), "$0.000123"),
        (Decimal("1.123456789"), "$1.123457"),
        (0, "$0.00"),
        (Decimal("42"), "$42.00"),
        (-12.5, "-$12.50"),
        (None, "$0.00"),
        (float("nan"), "$0.00"),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_format_currency_short_form():
    assert format_currency(Decimal("1300000"), short_form=True) == "$1.3M"
    assert format_currency(Decimal("999"), short_form=True) == "$999.00"


@pytest.mark.parametrize(
    "value,expected",
    [
        (1_234_567, "1.23M"),
        (950, "950"),
        (Decimal("2500"), "2.50K"),
        (3_200_000_000, "3.20B"),
        (Decimal("1.5"), "1.50"),
        (0, "0"),
        (-1500, "-1.50K"),
    ],
)
def test_format_large_number(value, expected):
    assert format_large_number(value) == expected


def test_format_large_number_long_form():
    assert format_large_number(1_234_567, short_form=False) == "1,234,567"
    assert format_large_number(12, force_decimals=True) == "12.00"


@pytest.mark.parametrize(
    "address,expected",
    [
        ("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU", "7xKX...gAsU"),
        ("short", "short"),
        ("", ""),
    ],
)
def test_shorten_address(address, expected):
    assert shorten_address(address) == expected


@pytest.mark.parametrize(
    "elapsed,expected",
    [(30, "0m ago"), (5 * 60, "5m ago"), (3 * 3600, "3h ago"), (2 * 86400 + 10, "2d ago"), (-50, "0m ago")],
)
def test_format_time_ago(elapsed, expected):
    now = 1_700_000_000
    assert format_time_ago(now - elapsed, now=now) == expected
