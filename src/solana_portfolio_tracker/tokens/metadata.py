"""Tiered token metadata resolution: cache, static table, directory, aggregator, fallback."""

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor

from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.core.models import TokenMetadata
from solana_portfolio_tracker.data.loader import get_well_known_token
from solana_portfolio_tracker.integrations.dexscreener import DexScreenerClient
from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.retry import ResilientApiClient
from solana_portfolio_tracker.tokens.directory import TokenDirectory

logger = logging.getLogger(__name__)


def fallback_metadata(mint: str) -> TokenMetadata:
    """
    Synthesize display metadata for a token no source knows about.

    Parameters
    ----------
    mint : str
        Token mint address

    Returns
    -------
    TokenMetadata
        ``Token <prefix>...`` / ``<PREFIX>`` with no logo

    """
    return TokenMetadata(
        mint=mint,
        name=f"Token {mint[:8]}...",
        symbol=mint[:4].upper(),
        logo_uri=None,
        source="fallback",
    )


def static_metadata(mint: str) -> TokenMetadata | None:
    """Metadata from the well-known token table, or None."""
    token = get_well_known_token(mint)
    if token is None:
        return None
    return TokenMetadata(
        mint=mint,
        name=token["name"],
        symbol=token["symbol"],
        logo_uri=token.get("logo_uri"),
        source="static",
    )


class TokenMetadataResolver:
    """
    Resolves mints to display name, symbol and logo.

    Lookup order per mint, first hit wins:

    1. Shared cache
    2. Static table of well-known tokens
    3. Bulk token directory
    4. Per-token aggregator lookup (DexScreener), in small concurrent batches
    5. Synthesized fallback

    Resolution never raises. Every result, including fallbacks, is written
    back to the cache.

    Parameters
    ----------
    cache : CacheStore
        Shared cache
    directory : TokenDirectory
        Bulk token directory
    dexscreener : DexScreenerClient
        Trading-data aggregator client
    api : ResilientApiClient
        Resilient client for the aggregator's provider class
    ttl : float
        Seconds a resolved entry stays cached
    batch_size : int
        Aggregator lookups run concurrently
    batch_pause : float
        Seconds to wait between aggregator batches
    sleep : Callable[[float], None]
        Sleep function

    """

    def __init__(
        self,
        cache: CacheStore,
        directory: TokenDirectory,
        dexscreener: DexScreenerClient,
        api: ResilientApiClient,
        ttl: float = 1800,
        batch_size: int = 3,
        batch_pause: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cache = cache
        self.directory = directory
        self.dexscreener = dexscreener
        self.api = api
        self.ttl = ttl
        self.batch_size = max(1, batch_size)
        self.batch_pause = batch_pause
        self._sleep = sleep

    def resolve(self, mints: Iterable[str]) -> dict[str, TokenMetadata]:
        """
        Resolve metadata for many mints.

        Parameters
        ----------
        mints : Iterable[str]
            Token mint addresses (duplicates are ignored)

        Returns
        -------
        dict[str, TokenMetadata]
            Metadata for every requested mint

        """
        results: dict[str, TokenMetadata] = {}
        unresolved: list[str] = []

        for mint in dict.fromkeys(mints):
            cached, hit = self.cache.get(self._cache_key(mint))
            if hit:
                results[mint] = cached
                continue

            metadata = static_metadata(mint)
            if metadata is not None:
                self._store(metadata)
                results[mint] = metadata
                continue

            unresolved.append(mint)

        if not unresolved:
            return results

        missing_from_directory = []
        for mint in unresolved:
            metadata = self._from_directory(mint)
            if metadata is None:
                missing_from_directory.append(mint)
            else:
                self._store(metadata)
                results[mint] = metadata

        for metadata in self._from_aggregator(missing_from_directory):
            self._store(metadata)
            results[metadata.mint] = metadata

        return results

    def resolve_one(self, mint: str) -> TokenMetadata:
        """Resolve metadata for a single mint."""
        return self.resolve([mint])[mint]

    def symbols(self, mints: Iterable[str]) -> dict[str, str]:
        """
        Resolve display symbols for many mints.

        Returns
        -------
        dict[str, str]
            Mapping of mint to symbol

        """
        return {mint: metadata.symbol for mint, metadata in self.resolve(mints).items()}

    def _from_directory(self, mint: str) -> TokenMetadata | None:
        entry = self.directory.lookup(mint)
        if entry is None:
            return None
        return TokenMetadata(
            mint=mint,
            name=entry["name"],
            symbol=entry["symbol"],
            logo_uri=entry.get("logo_uri"),
            source="directory",
        )

    def _from_aggregator(self, mints: list[str]) -> list[TokenMetadata]:
        resolved: list[TokenMetadata] = []
        if not mints:
            return resolved

        batches = [mints[i : i + self.batch_size] for i in range(0, len(mints), self.batch_size)]
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for index, batch in enumerate(batches):
                resolved.extend(executor.map(self._lookup_aggregator, batch))
                if index + 1 < len(batches) and self.batch_pause > 0:
                    self._sleep(self.batch_pause)

        return resolved

    def _lookup_aggregator(self, mint: str) -> TokenMetadata:
        try:
            pair = self.api.call(self.dexscreener.get_best_pair, mint, label=f"pairs {mint[:8]}")
        except TrackerError as e:
            logger.debug("Aggregator metadata lookup failed for %s: %s", mint, e)
            return fallback_metadata(mint)

        token = pair.token_side(mint) if pair is not None else None
        if token is None or token.symbol is None:
            return fallback_metadata(mint)

        return TokenMetadata(
            mint=mint,
            name=token.name or token.symbol,
            symbol=token.symbol,
            logo_uri=pair.image_url,
            source="aggregator",
        )

    def _store(self, metadata: TokenMetadata) -> None:
        self.cache.set(self._cache_key(metadata.mint), metadata, ttl=self.ttl)

    @staticmethod
    def _cache_key(mint: str) -> str:
        return CacheStore.make_key("metadata", mint)
