"""CoinGecko client for native SOL market data."""

from decimal import Decimal

import httpx

from solana_portfolio_tracker.core.exceptions import NotAvailableError
from solana_portfolio_tracker.integrations.dexscreener import to_decimal
from solana_portfolio_tracker.utils.http import send_request


class CoinGeckoClient:
    """
    Fetches native asset market data from the CoinGecko simple price API.

    Parameters
    ----------
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds
    client : httpx.Client | None
        HTTP client to use (a new one is created if None)

    """

    BASE_URL = "https://api.coingecko.com/api/v3"
    NATIVE_COIN_ID = "solana"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout, headers={"Accept": "application/json"})

    def get_market_data(self, coin_id: str = NATIVE_COIN_ID) -> dict[str, Decimal]:
        """
        Fetch price, 24h change, market cap and 24h volume for a coin.

        Parameters
        ----------
        coin_id : str
            CoinGecko coin id

        Returns
        -------
        dict[str, Decimal]
            Keys ``price``, ``price_change_24h``, ``market_cap`` and ``volume_24h``

        Raises
        ------
        NotAvailableError
            If the response carries no entry for the coin

        """
        params = {
            "ids": coin_id,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_market_cap": "true",
            "include_24hr_vol": "true",
        }
        data = send_request(self.client, "CoinGecko", "GET", f"{self.base_url}/simple/price", params=params)
        entry = data.get(coin_id) if isinstance(data, dict) else None
        if not isinstance(entry, dict):
            msg = f"CoinGecko has no market data for {coin_id}"
            raise NotAvailableError(msg)

        return {
            "price": to_decimal(entry.get("usd")),
            "price_change_24h": to_decimal(entry.get("usd_24h_change")),
            "market_cap": to_decimal(entry.get("usd_market_cap")),
            "volume_24h": to_decimal(entry.get("usd_24h_vol")),
        }

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "CoinGeckoClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
