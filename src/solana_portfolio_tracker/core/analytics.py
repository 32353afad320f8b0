"""Token analytics: market snapshot, top holders, trade data and heuristic risk scoring."""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.core.models import (
    PricePoint,
    RiskLevel,
    SecurityAnalysis,
    TokenAnalytics,
    TokenDetails,
    TokenHolding,
    TopHolder,
    TradeData,
)
from solana_portfolio_tracker.core.validation import validate_address
from solana_portfolio_tracker.data.addresses import NATIVE_LOGO_URI, NATIVE_MINT, NATIVE_SYMBOL
from solana_portfolio_tracker.integrations.dexscreener import DexPair, DexScreenerClient, to_decimal
from solana_portfolio_tracker.pricing.coingecko import CoinGeckoClient
from solana_portfolio_tracker.pricing.resolver import PriceResolver
from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.provider import SolanaRPCProvider
from solana_portfolio_tracker.rpc.retry import ResilientApiClient
from solana_portfolio_tracker.tokens.metadata import TokenMetadataResolver

logger = logging.getLogger(__name__)

TOP_HOLDERS_LIMIT = 10
DAY_MS = 24 * 60 * 60 * 1000

NATIVE_DESCRIPTION = (
    "Solana (SOL) is the native token of the Solana blockchain. It has excellent liquidity, "
    "is widely adopted, and is considered a blue-chip cryptocurrency."
)
UNAVAILABLE_DESCRIPTION = "Unable to analyze token security at this time."


def analyze_security(details: TokenDetails, trade_data: TradeData) -> SecurityAnalysis:
    """
    Score the risk of a token from its liquidity, activity, metadata and market cap.

    The score starts at 5 and moves one or two points per signal, then is
    clamped to 1-10. Scores up to 3 are low risk, up to 7 medium, above that
    high.

    Parameters
    ----------
    details : TokenDetails
        Identity and market snapshot
    trade_data : TradeData
        24h trading activity

    Returns
    -------
    SecurityAnalysis
        Score, level, description and flags

    """
    score = 5
    risk_factors = []

    if trade_data.liquidity > 10_000:
        score -= 1
    elif trade_data.liquidity < 1_000:
        score += 2
        risk_factors.append("low liquidity")

    total_trades = trade_data.buys_24h + trade_data.sells_24h
    if total_trades > 100:
        score -= 1
    elif total_trades < 10:
        score += 1
        risk_factors.append("low trading activity")

    has_valid_metadata = bool(details.name and details.symbol and details.logo_uri)
    if has_valid_metadata:
        score -= 1
    else:
        score += 1
        risk_factors.append("incomplete metadata")

    if details.market_cap > 1_000_000:
        score -= 1
    elif details.market_cap < 100_000:
        score += 1
        risk_factors.append("low market cap")

    score = max(1, min(10, score))

    factors = f" including {', '.join(risk_factors)}" if risk_factors else ""
    if score <= 3:
        level = RiskLevel.LOW
        description = (
            "This token shows strong fundamentals with good liquidity, active trading, and complete "
            "metadata. Generally considered safe for trading."
        )
    elif score <= 7:
        level = RiskLevel.MEDIUM
        description = f"This token has moderate risk factors{factors}. Exercise caution and do your own research."
    else:
        level = RiskLevel.HIGH
        description = (
            f"This token has significant risk factors{factors}. High risk of loss - trade with extreme caution."
        )

    return SecurityAnalysis(
        risk_score=score,
        risk_level=level,
        description=description,
        has_liquidity=trade_data.liquidity > 1_000,
        has_valid_metadata=has_valid_metadata,
        is_verified=has_valid_metadata and trade_data.liquidity > 50_000,
    )


def price_history(price: Decimal, price_change_24h: Decimal, now_ms: int) -> list[PricePoint]:
    """
    Price points directly implied by the current price and its 24h change.

    Returns the price 24 hours ago and the current price. Nothing is
    interpolated.

    Parameters
    ----------
    price : Decimal
        Current USD price
    price_change_24h : Decimal
        24h change in percent
    now_ms : int
        Current unix time in milliseconds

    Returns
    -------
    list[PricePoint]
        Zero, one or two points, oldest first

    """
    if price <= 0:
        return []
    current = PricePoint(timestamp=now_ms, price=price)
    if price_change_24h <= -100:
        return [current]
    start = price / (1 + price_change_24h / 100)
    return [PricePoint(timestamp=now_ms - DAY_MS, price=start), current]


class AnalyticsService:
    """
    Builds token analytics records.

    SOL is served from CoinGecko market data with a fixed low risk rating.
    Every other token is analysed from its most liquid DexScreener pair and
    its largest token accounts. Results are cached per mint. Provider
    failures never propagate; they produce a record with
    ``is_data_available=False``.

    Parameters
    ----------
    rpc_provider : SolanaRPCProvider
        Ledger RPC provider (top holders, supply)
    rpc_api : ResilientApiClient
        Resilient client for the RPC provider class
    dexscreener : DexScreenerClient
        Trading-data aggregator client
    coingecko : CoinGeckoClient
        Native market data client
    analytics_api : ResilientApiClient
        Resilient client for the market data provider class
    metadata_resolver : TokenMetadataResolver
        Token metadata resolver
    price_resolver : PriceResolver
        Price resolver (native price fallback)
    cache : CacheStore
        Shared cache
    ttl : float
        Seconds an analytics record stays cached
    clock : Callable[[], float]
        Wall clock in unix seconds

    """

    def __init__(
        self,
        rpc_provider: SolanaRPCProvider,
        rpc_api: ResilientApiClient,
        dexscreener: DexScreenerClient,
        coingecko: CoinGeckoClient,
        analytics_api: ResilientApiClient,
        metadata_resolver: TokenMetadataResolver,
        price_resolver: PriceResolver,
        cache: CacheStore,
        ttl: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.rpc_provider = rpc_provider
        self.rpc_api = rpc_api
        self.dexscreener = dexscreener
        self.coingecko = coingecko
        self.analytics_api = analytics_api
        self.metadata_resolver = metadata_resolver
        self.price_resolver = price_resolver
        self.cache = cache
        self.ttl = ttl
        self._clock = clock

    def get_token_analytics(self, mint: str, existing_holding: TokenHolding | None = None) -> TokenAnalytics:
        """
        Get analytics for a token.

        Parameters
        ----------
        mint : str
            Token mint address (``"SOL"`` is accepted for the native asset)
        existing_holding : TokenHolding | None
            Holding already known to the caller; its name, symbol, logo and
            price take priority

        Returns
        -------
        TokenAnalytics
            Analytics record

        Raises
        ------
        InvalidAddressError
            If the mint is not a valid public key

        """
        mint = NATIVE_MINT if mint.strip() == NATIVE_SYMBOL else validate_address(mint)

        key = CacheStore.make_key("analytics", mint)
        cached, hit = self.cache.get(key)
        if hit:
            return cached

        if mint == NATIVE_MINT:
            analytics = self._native_analytics(existing_holding)
        else:
            analytics = self._token_analytics(mint, existing_holding)

        self.cache.set(key, analytics, ttl=self.ttl)
        return analytics

    def _native_analytics(self, holding: TokenHolding | None) -> TokenAnalytics:
        try:
            market = self.analytics_api.call(self.coingecko.get_market_data, label="coingecko solana")
        except TrackerError as e:
            logger.warning("Native market data unavailable: %s", e)
            market = None

        if holding is not None and holding.price_usd and holding.price_usd > 0:
            price = holding.price_usd
        else:
            price = self.price_resolver.get_native_price()

        change = market_cap = volume = Decimal("0")
        if market is not None:
            price = market["price"] if market["price"] > 0 else price
            change = market["price_change_24h"]
            market_cap = market["market_cap"]
            volume = market["volume_24h"]

        details = TokenDetails(
            mint=NATIVE_MINT,
            name="Solana",
            symbol=NATIVE_SYMBOL,
            logo_uri=NATIVE_LOGO_URI,
            price=price,
            price_change_24h=change,
            market_cap=market_cap,
        )
        security = SecurityAnalysis(
            risk_score=1,
            risk_level=RiskLevel.LOW,
            description=NATIVE_DESCRIPTION,
            has_liquidity=True,
            has_valid_metadata=True,
            is_verified=True,
        )
        return TokenAnalytics(
            details=details,
            price_history=price_history(price, change, self._now_ms()) if market is not None else [],
            security=security,
            trade_data=TradeData(volume_24h=volume),
            is_data_available=market is not None,
        )

    def _token_analytics(self, mint: str, holding: TokenHolding | None) -> TokenAnalytics:
        with ThreadPoolExecutor(max_workers=2) as executor:
            holders_future = executor.submit(self._get_top_holders, mint)
            pair_future = executor.submit(self._get_best_pair, mint)
            top_holders = holders_future.result()
            try:
                pair = pair_future.result()
            except TrackerError as e:
                logger.warning("Market data unavailable for %s: %s", mint, e)
                return self._unavailable(mint, holding, top_holders)

        details = self._base_details(mint, holding)
        trade_data = TradeData()

        if pair is not None:
            price = details.price
            if price <= 0:
                price = pair.price_of(mint)

            details = details.model_copy(
                update={
                    "price": price,
                    "price_change_24h": pair.price_change_24h,
                    "market_cap": pair.market_cap,
                }
            )
            trade_data = TradeData(
                volume_24h=pair.volume_24h,
                buys_24h=pair.buys_24h,
                sells_24h=pair.sells_24h,
                liquidity=pair.liquidity_usd,
            )

        return TokenAnalytics(
            details=details,
            price_history=price_history(details.price, details.price_change_24h, self._now_ms()),
            top_holders=top_holders,
            security=analyze_security(details, trade_data),
            trade_data=trade_data,
            is_data_available=pair is not None,
        )

    def _get_best_pair(self, mint: str) -> DexPair | None:
        return self.analytics_api.call(self.dexscreener.get_best_pair, mint, label=f"pairs {mint[:8]}")

    def _get_top_holders(self, mint: str) -> list[TopHolder]:
        try:
            accounts = self.rpc_api.call(
                self.rpc_provider.get_token_largest_accounts, mint, label="getTokenLargestAccounts"
            )
        except TrackerError as e:
            logger.warning("Top holders unavailable for %s: %s", mint, e)
            return []

        try:
            supply = self.rpc_api.call(self.rpc_provider.get_token_supply, mint, label="getTokenSupply")
        except TrackerError as e:
            logger.debug("Token supply unavailable for %s: %s", mint, e)
            supply = {}
        total_supply = to_decimal(supply.get("uiAmountString") or supply.get("uiAmount"))

        holders = []
        for account in accounts[:TOP_HOLDERS_LIMIT]:
            balance = to_decimal(account.get("uiAmountString") or account.get("uiAmount"))
            address = account.get("address")
            if balance <= 0 or not isinstance(address, str) or not address:
                continue
            percentage = balance / total_supply * 100 if total_supply > 0 else Decimal("0")
            holders.append(TopHolder(address=address, balance=balance, percentage=percentage))
        return holders

    def _base_details(self, mint: str, holding: TokenHolding | None) -> TokenDetails:
        if holding is not None and holding.name and holding.symbol:
            name, symbol, logo_uri = holding.name, holding.symbol, holding.logo_uri
        else:
            metadata = self.metadata_resolver.resolve_one(mint)
            name, symbol, logo_uri = metadata.name, metadata.symbol, metadata.logo_uri

        price = holding.price_usd if holding is not None and holding.price_usd else Decimal("0")
        return TokenDetails(mint=mint, name=name, symbol=symbol, logo_uri=logo_uri, price=max(price, Decimal("0")))

    def _unavailable(
        self,
        mint: str,
        holding: TokenHolding | None,
        top_holders: list[TopHolder],
    ) -> TokenAnalytics:
        details = self._base_details(mint, holding).model_copy(update={"status": "Unknown"})
        security = SecurityAnalysis(
            risk_score=5,
            risk_level=RiskLevel.MEDIUM,
            description=UNAVAILABLE_DESCRIPTION,
            has_liquidity=False,
            has_valid_metadata=bool(holding is not None and holding.name),
            is_verified=False,
        )
        return TokenAnalytics(
            details=details,
            top_holders=top_holders,
            security=security,
            is_data_available=False,
        )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
