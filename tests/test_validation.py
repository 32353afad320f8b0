"""Tests for Solana public key validation."""

import pytest

from solana_portfolio_tracker.core.exceptions import InvalidAddressError
from solana_portfolio_tracker.core.validation import is_valid_address, validate_address


@pytest.mark.parametrize(
    "address",
    [
        "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "So11111111111111111111111111111111111111112",
        "11111111111111111111111111111111",
    ],
)
def test_valid_addresses(address):
    assert validate_address(address) == address
    assert is_valid_address(address)


def test_surrounding_whitespace_is_stripped():
    assert validate_address("  So11111111111111111111111111111111111111112\n") == (
        "So11111111111111111111111111111111111111112"
    )


@pytest.mark.parametrize(
    "address",
    [
        "",
        "abc",
        "0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
        "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAs0",
        "1111111111111111111111111111111111111111111",
        "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU7xKX",
    ],
)
def test_invalid_addresses(address):
    """Wrong length, non-base58 characters or a wrong decoded size are rejected."""
    with pytest.raises(InvalidAddressError):
        validate_address(address)
    assert not is_valid_address(address)


def test_non_string_rejected():
    with pytest.raises(InvalidAddressError):
        validate_address(None)


def test_invalid_address_is_a_value_error():
    with pytest.raises(ValueError):
        validate_address("not base58!")
