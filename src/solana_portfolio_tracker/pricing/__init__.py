"""Pricing services for token USD value enrichment."""

from solana_portfolio_tracker.pricing.coingecko import CoinGeckoClient
from solana_portfolio_tracker.pricing.jupiter import JupiterPriceClient
from solana_portfolio_tracker.pricing.resolver import PriceResolver

__all__ = [
    "CoinGeckoClient",
    "JupiterPriceClient",
    "PriceResolver",
]
