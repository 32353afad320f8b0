"""Wallet service: wires providers, resolvers and services from one configuration."""

import logging
import time
from collections.abc import Callable

import httpx

from solana_portfolio_tracker.config import TrackerConfig, load_config
from solana_portfolio_tracker.core.aggregator import BalanceAggregator
from solana_portfolio_tracker.core.analytics import AnalyticsService
from solana_portfolio_tracker.core.models import TokenAnalytics, TokenHolding, TransactionPage, WalletBalance
from solana_portfolio_tracker.core.poller import BalancePoller
from solana_portfolio_tracker.core.transactions import TransactionService
from solana_portfolio_tracker.integrations.dexscreener import DexScreenerClient
from solana_portfolio_tracker.pricing.coingecko import CoinGeckoClient
from solana_portfolio_tracker.pricing.jupiter import JupiterPriceClient
from solana_portfolio_tracker.pricing.resolver import PriceResolver
from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.fetcher import RawTransactionFetcher
from solana_portfolio_tracker.rpc.provider import SolanaRPCProvider
from solana_portfolio_tracker.rpc.retry import RateLimiter, ResilientApiClient
from solana_portfolio_tracker.tokens.directory import TokenDirectory
from solana_portfolio_tracker.tokens.metadata import TokenMetadataResolver

logger = logging.getLogger(__name__)


class WalletService:
    """
    Entry point for wallet balances, transaction history and token analytics.

    Everything is built once from a ``TrackerConfig``: one shared cache, one
    rate limiter and resilient client per provider class (rpc, price,
    metadata, analytics), and the resolvers and services on top of them.

    Parameters
    ----------
    config : TrackerConfig | None
        Configuration (bundled defaults if None)
    client : httpx.Client | None
        HTTP client shared by all providers (each provider creates its own if None)
    sleep : Callable[[float], None]
        Sleep function used for rate limiting, backoff and batch pauses

    Examples
    --------
    >>> with WalletService() as service:
    ...     balance = service.get_wallet_balance("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU")
    ...     print(balance.total_value_usd)

    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or load_config()
        providers = self.config.providers
        batching = self.config.batching
        ttl = self.config.ttl

        self.cache = CacheStore(default_ttl=ttl.price, max_entries=self.config.cache_max_entries)

        self.apis = {
            name: ResilientApiClient(
                RateLimiter(interval, sleep=sleep),
                retry_config=self.config.retry_config(),
                deadline=self.config.retry.deadline,
                name=name,
                sleep=sleep,
            )
            for name, interval in self.config.rate_limits.model_dump().items()
        }

        self.rpc_provider = SolanaRPCProvider(providers.rpc_url, timeout=providers.http_timeout, client=client)
        self.jupiter = JupiterPriceClient(providers.price_url, timeout=providers.http_timeout, client=client)
        self.dexscreener = DexScreenerClient(providers.dexscreener_url, timeout=providers.http_timeout, client=client)
        self.coingecko = CoinGeckoClient(providers.coingecko_url, timeout=providers.http_timeout, client=client)
        self.directory = TokenDirectory(
            providers.token_list_url,
            self.apis["metadata"],
            self.cache,
            ttl=ttl.directory,
            client=client,
        )

        self.metadata_resolver = TokenMetadataResolver(
            self.cache,
            self.directory,
            self.dexscreener,
            self.apis["metadata"],
            ttl=ttl.metadata,
            batch_size=batching.metadata_batch_size,
            batch_pause=batching.batch_pause,
            sleep=sleep,
        )
        self.price_resolver = PriceResolver(
            self.jupiter,
            self.apis["price"],
            self.cache,
            ttl=ttl.price,
            ids_per_request=batching.price_ids_per_request,
            batch_size=batching.price_batch_size,
            batch_pause=batching.batch_pause,
            native_fallback=self.config.native_price_fallback_usd,
            sleep=sleep,
        )
        self.fetcher = RawTransactionFetcher(
            self.rpc_provider,
            self.apis["rpc"],
            batch_size=batching.transaction_batch_size,
            batch_pause=batching.batch_pause,
            sleep=sleep,
        )

        self.aggregator = BalanceAggregator(
            self.rpc_provider,
            self.apis["rpc"],
            self.metadata_resolver,
            self.price_resolver,
            token_program_ids=self.config.token_program_ids or None,
        )
        self.transactions = TransactionService(
            self.fetcher,
            self.metadata_resolver,
            self.cache,
            ttl=ttl.transactions,
        )
        self.analytics = AnalyticsService(
            self.rpc_provider,
            self.apis["rpc"],
            self.dexscreener,
            self.coingecko,
            self.apis["analytics"],
            self.metadata_resolver,
            self.price_resolver,
            self.cache,
            ttl=ttl.analytics,
        )

    def get_wallet_balance(self, address: str, **kwargs) -> WalletBalance:
        """
        Get the valued portfolio of a wallet.

        Parameters
        ----------
        address : str
            Wallet address
        **kwargs
            Passed to ``BalanceAggregator.get_wallet_balance`` (progress reporting)

        Returns
        -------
        WalletBalance
            Native balance and enriched holdings

        """
        return self.aggregator.get_wallet_balance(address, **kwargs)

    def get_wallet_transactions(self, address: str, limit: int = 20, before: str | None = None) -> TransactionPage:
        """
        Get one page of classified wallet transactions.

        Parameters
        ----------
        address : str
            Wallet address
        limit : int
            Page size
        before : str | None
            Cursor from the previous page

        Returns
        -------
        TransactionPage
            Classified transactions and the next cursor

        """
        return self.transactions.get_wallet_transactions(address, limit=limit, before=before)

    def get_token_analytics(self, mint: str, existing_holding: TokenHolding | None = None) -> TokenAnalytics:
        """Get analytics for a token."""
        return self.analytics.get_token_analytics(mint, existing_holding)

    def poller(self, address: str, interval: float | None = None) -> BalancePoller:
        """Create a balance poller for a wallet."""
        return BalancePoller(self.aggregator, address, interval or self.config.poll_interval)

    def close(self) -> None:
        """Close every HTTP client and worker pool."""
        for closeable in (self.rpc_provider, self.jupiter, self.dexscreener, self.coingecko, self.directory):
            closeable.close()
        for api in self.apis.values():
            api.close()

    def __enter__(self) -> "WalletService":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
