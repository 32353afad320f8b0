"""Bulk token directory (Jupiter strict token list) with TTL and last-good fallback."""

import logging
import threading
from typing import Any

import httpx

from solana_portfolio_tracker.core.exceptions import ParseError, TrackerError
from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.retry import ResilientApiClient
from solana_portfolio_tracker.utils.http import send_request

logger = logging.getLogger(__name__)

DIRECTORY_CACHE_KEY = "token_directory"


class TokenDirectory:
    """
    Downloads and indexes the bulk token directory.

    The index is cached with its own TTL. On expiry it is refetched through
    the resilient client; if the refetch fails the last successful index
    keeps being served.

    Parameters
    ----------
    url : str
        Token list URL
    api : ResilientApiClient
        Resilient client for the metadata provider class
    cache : CacheStore
        Shared cache
    ttl : float
        Seconds before the directory is refetched
    timeout : float
        HTTP timeout in seconds (bulk downloads get a longer deadline)
    client : httpx.Client | None
        HTTP client to use (a new one is created if None)

    """

    def __init__(
        self,
        url: str,
        api: ResilientApiClient,
        cache: CacheStore,
        ttl: float = 3600,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.api = api
        self.cache = cache
        self.ttl = ttl
        self.client = client or httpx.Client(timeout=timeout, headers={"Accept": "application/json"})
        self._refresh_lock = threading.Lock()

    def lookup(self, mint: str) -> dict[str, Any] | None:
        """
        Find a token in the directory.

        Parameters
        ----------
        mint : str
            Token mint address

        Returns
        -------
        dict[str, Any] | None
            Entry with ``name``, ``symbol`` and ``logo_uri``, or None

        """
        directory = self.get_directory()
        if directory is None:
            return None
        return directory.get(mint)

    def get_directory(self) -> dict[str, dict[str, Any]] | None:
        """
        Return the indexed directory, refetching it when expired.

        Returns
        -------
        dict[str, dict[str, Any]] | None
            Mapping of mint to entry, or None if no download ever succeeded

        """
        directory, hit = self.cache.get(DIRECTORY_CACHE_KEY)
        if hit:
            return directory

        # Only one thread downloads; the others wait and reuse its result
        with self._refresh_lock:
            directory, hit = self.cache.get(DIRECTORY_CACHE_KEY)
            if hit:
                return directory

            try:
                directory = self.api.call(self._download, label="token list")
            except TrackerError as e:
                stale, has_stale = self.cache.get_stale(DIRECTORY_CACHE_KEY)
                if has_stale:
                    logger.warning("Token list refresh failed, serving last good copy: %s", e)
                    return stale
                logger.warning("Token list unavailable: %s", e)
                return None

            self.cache.set(DIRECTORY_CACHE_KEY, directory, ttl=self.ttl)
            logger.debug("Loaded token list with %d entries", len(directory))
            return directory

    def _download(self) -> dict[str, dict[str, Any]]:
        data = send_request(self.client, "Token list", "GET", self.url)
        if isinstance(data, dict):
            # Some list endpoints wrap entries under "tokens"
            data = data.get("tokens")
        if not isinstance(data, list):
            msg = "Token list payload is not a list"
            raise ParseError(msg)

        index: dict[str, dict[str, Any]] = {}
        for token in data:
            if not isinstance(token, dict):
                continue
            address, symbol = token.get("address"), token.get("symbol")
            if not isinstance(address, str) or not isinstance(symbol, str) or not address or not symbol:
                continue
            name, logo_uri = token.get("name"), token.get("logoURI")
            index[address] = {
                "name": name if isinstance(name, str) and name else symbol,
                "symbol": symbol,
                "logo_uri": logo_uri if isinstance(logo_uri, str) else None,
            }
        return index

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()
