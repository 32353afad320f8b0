"""Batched, cached price resolution with last-known fallbacks."""

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.data.addresses import NATIVE_MINT
from solana_portfolio_tracker.pricing.jupiter import JupiterPriceClient
from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.retry import ResilientApiClient

logger = logging.getLogger(__name__)


class PriceResolver:
    """
    Resolves USD prices for many mints with bounded fan-out.

    A batch-keyed cache entry short-circuits repeated requests for the same
    set of mints. On a miss the ids are split into requests of
    ``ids_per_request`` and issued ``batch_size`` at a time, with
    ``batch_pause`` seconds between groups. Fresh prices are also cached per
    mint so a later failure can fall back to the last known price.

    Provider failures never propagate. A mint without a fresh price gets its
    last known price, else zero; the native mint gets ``native_fallback``
    instead of zero.

    Parameters
    ----------
    jupiter : JupiterPriceClient
        Price oracle client
    api : ResilientApiClient
        Resilient client for the price provider class
    cache : CacheStore
        Shared cache
    ttl : float
        Seconds a price stays fresh
    ids_per_request : int
        Maximum mints per oracle request
    batch_size : int
        Oracle requests issued concurrently
    batch_pause : float
        Seconds between groups of requests
    native_fallback : Decimal
        Price used for the native mint when nothing else is known
    sleep : Callable[[float], None]
        Sleep function

    """

    def __init__(
        self,
        jupiter: JupiterPriceClient,
        api: ResilientApiClient,
        cache: CacheStore,
        ttl: float = 300,
        ids_per_request: int = 50,
        batch_size: int = 5,
        batch_pause: float = 0.2,
        native_fallback: Decimal = Decimal("150"),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.jupiter = jupiter
        self.api = api
        self.cache = cache
        self.ttl = ttl
        self.ids_per_request = max(1, ids_per_request)
        self.batch_size = max(1, batch_size)
        self.batch_pause = batch_pause
        self.native_fallback = native_fallback
        self._sleep = sleep

    def get_prices(self, mints: Iterable[str]) -> dict[str, Decimal]:
        """
        Fetch USD prices for multiple mints.

        Parameters
        ----------
        mints : Iterable[str]
            Token mint addresses

        Returns
        -------
        dict[str, Decimal]
            Mapping of every requested mint to a USD price (zero if unknown)

        """
        ids = sorted(set(mints))
        if not ids:
            return {}

        batch_key = CacheStore.make_key("prices", ids)
        cached, hit = self.cache.get(batch_key)
        if hit:
            return dict(cached)

        fetched, complete = self._fetch(ids)

        prices = {}
        for mint in ids:
            price = fetched.get(mint)
            if price is not None and price > 0:
                self.cache.set(self._price_key(mint), price, ttl=self.ttl)
                prices[mint] = price
            else:
                prices[mint] = self._fallback_price(mint)

        # A partially failed round is not cached so the next call retries it
        if complete:
            self.cache.set(batch_key, prices, ttl=self.ttl)

        return prices

    def get_price(self, mint: str) -> Decimal:
        """
        Fetch the USD price of a single mint.

        Parameters
        ----------
        mint : str
            Token mint address

        Returns
        -------
        Decimal
            USD price

        """
        return self.get_prices([mint])[mint]

    def get_native_price(self) -> Decimal:
        """Return the SOL price in USD (never zero)."""
        return self.get_price(NATIVE_MINT)

    def _fetch(self, ids: list[str]) -> tuple[dict[str, Decimal], bool]:
        chunks = [ids[i : i + self.ids_per_request] for i in range(0, len(ids), self.ids_per_request)]
        groups = [chunks[i : i + self.batch_size] for i in range(0, len(chunks), self.batch_size)]

        fetched: dict[str, Decimal] = {}
        complete = True
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for index, group in enumerate(groups):
                for result in executor.map(self._fetch_chunk, group):
                    if result is None:
                        complete = False
                    else:
                        fetched.update(result)
                if index + 1 < len(groups) and self.batch_pause > 0:
                    self._sleep(self.batch_pause)

        return fetched, complete

    def _fetch_chunk(self, chunk: list[str]) -> dict[str, Decimal] | None:
        try:
            return self.api.call(self.jupiter.get_prices, chunk, label=f"prices x{len(chunk)}")
        except TrackerError as e:
            logger.warning("Price lookup failed for %d mints: %s", len(chunk), e)
            return None

    def _fallback_price(self, mint: str) -> Decimal:
        stale, hit = self.cache.get_stale(self._price_key(mint))
        if hit:
            logger.debug("Using last known price for %s", mint)
            return stale
        if mint == NATIVE_MINT:
            return self.native_fallback
        return Decimal("0")

    @staticmethod
    def _price_key(mint: str) -> str:
        return CacheStore.make_key("price", mint)
