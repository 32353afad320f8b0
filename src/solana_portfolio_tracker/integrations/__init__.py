"""Third-party market data integrations."""

from solana_portfolio_tracker.integrations.dexscreener import DexPair, DexScreenerClient, PairToken, decode_pair

__all__ = ["DexPair", "DexScreenerClient", "PairToken", "decode_pair"]
