"""Validation of Solana public keys (wallet addresses and mints)."""

import base58

from solana_portfolio_tracker.core.exceptions import InvalidAddressError

PUBLIC_KEY_LENGTH = 32


def validate_address(address: str) -> str:
    """
    Validate a base58-encoded Solana public key.

    Parameters
    ----------
    address : str
        Wallet address or token mint

    Returns
    -------
    str
        The address with surrounding whitespace removed

    Raises
    ------
    InvalidAddressError
        If the string is not base58 or does not decode to 32 bytes

    """
    if not isinstance(address, str):
        msg = f"Address must be a string, got {type(address).__name__}"
        raise InvalidAddressError(msg)

    candidate = address.strip()
    if not 32 <= len(candidate) <= 44:
        msg = f"Invalid Solana address length: {candidate!r}"
        raise InvalidAddressError(msg)

    try:
        decoded = base58.b58decode(candidate)
    except ValueError as e:
        msg = f"Invalid base58 address: {candidate!r}"
        raise InvalidAddressError(msg) from e

    if len(decoded) != PUBLIC_KEY_LENGTH:
        msg = f"Address does not decode to a {PUBLIC_KEY_LENGTH}-byte public key: {candidate!r}"
        raise InvalidAddressError(msg)

    return candidate


def is_valid_address(address: str) -> bool:
    """Return True if ``address`` is a well-formed Solana public key."""
    try:
        validate_address(address)
    except InvalidAddressError:
        return False
    return True
