"""Core functionality including models, exceptions, classification, and wallet services."""

from solana_portfolio_tracker.core.exceptions import (
    DeadlineExceededError,
    InvalidAddressError,
    NotAvailableError,
    ParseError,
    ProviderError,
    RateLimitedError,
    TrackerError,
    TransactionFetchError,
    TransientNetworkError,
)
from solana_portfolio_tracker.core.models import (
    SwapLeg,
    SwapStatus,
    TokenAnalytics,
    TokenHolding,
    TokenMetadata,
    Transaction,
    TransactionKind,
    TransactionPage,
    WalletBalance,
)

__all__ = [
    "DeadlineExceededError",
    "InvalidAddressError",
    "NotAvailableError",
    "ParseError",
    "ProviderError",
    "RateLimitedError",
    "SwapLeg",
    "SwapStatus",
    "TokenAnalytics",
    "TokenHolding",
    "TokenMetadata",
    "TrackerError",
    "TransactionFetchError",
    "TransactionKind",
    "TransactionPage",
    "TransientNetworkError",
    "WalletBalance",
]
