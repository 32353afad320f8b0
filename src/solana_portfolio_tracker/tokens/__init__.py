"""Token metadata: static table, bulk directory and tiered resolver."""

from solana_portfolio_tracker.tokens.directory import TokenDirectory
from solana_portfolio_tracker.tokens.metadata import (
    TokenMetadataResolver,
    fallback_metadata,
    static_metadata,
)

__all__ = [
    "TokenDirectory",
    "TokenMetadataResolver",
    "fallback_metadata",
    "static_metadata",
]
