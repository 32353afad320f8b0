"""Static token data and configuration loading."""

from solana_portfolio_tracker.data.addresses import (
    LAMPORTS_PER_SOL,
    NATIVE_DECIMALS,
    NATIVE_LOGO_URI,
    NATIVE_MINT,
    NATIVE_SYMBOL,
    SWAP_PROGRAM_IDS,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WELL_KNOWN_TOKENS,
)
from solana_portfolio_tracker.data.loader import (
    get_well_known_token,
    load_defaults,
    load_user_config,
    merge_config,
)

__all__ = [
    # Centralized address constants
    "LAMPORTS_PER_SOL",
    "NATIVE_DECIMALS",
    "NATIVE_LOGO_URI",
    "NATIVE_MINT",
    "NATIVE_SYMBOL",
    "SWAP_PROGRAM_IDS",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "WELL_KNOWN_TOKENS",
    # Loader functions
    "get_well_known_token",
    "load_defaults",
    "load_user_config",
    "merge_config",
]
