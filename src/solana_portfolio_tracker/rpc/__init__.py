"""RPC layer with caching, rate limiting, retry logic and typed payload decoding."""

from solana_portfolio_tracker.rpc.cache import CacheEntry, CacheStore
from solana_portfolio_tracker.rpc.fetcher import RawTransactionFetcher, SignaturePage
from solana_portfolio_tracker.rpc.provider import SolanaRPCProvider
from solana_portfolio_tracker.rpc.retry import RateLimiter, ResilientApiClient, RetryConfig
from solana_portfolio_tracker.rpc.schemas import (
    ParsedInstruction,
    ParsedTransaction,
    SignatureInfo,
    TokenAccount,
    TokenBalance,
)

__all__ = [
    "CacheEntry",
    "CacheStore",
    "ParsedInstruction",
    "ParsedTransaction",
    "RateLimiter",
    "RawTransactionFetcher",
    "ResilientApiClient",
    "RetryConfig",
    "SignatureInfo",
    "SignaturePage",
    "SolanaRPCProvider",
    "TokenAccount",
    "TokenBalance",
]
