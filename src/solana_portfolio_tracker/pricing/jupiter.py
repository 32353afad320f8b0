"""Jupiter price API client for SPL token USD prices."""

from decimal import Decimal

import httpx

from solana_portfolio_tracker.core.exceptions import ParseError
from solana_portfolio_tracker.integrations.dexscreener import to_decimal
from solana_portfolio_tracker.utils.http import send_request


class JupiterPriceClient:
    """
    Fetches token prices from the Jupiter price API.

    One request prices many mints at once; mints Jupiter has no price for are
    simply absent from the result.

    Parameters
    ----------
    base_url : str
        Price endpoint URL
    timeout : float
        Request timeout in seconds
    client : httpx.Client | None
        HTTP client to use (a new one is created if None)

    """

    BASE_URL = "https://api.jup.ag/price/v2"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout, headers={"Accept": "application/json"})

    def get_prices(self, mints: list[str]) -> dict[str, Decimal]:
        """
        Fetch USD prices for multiple mints in one request.

        Parameters
        ----------
        mints : list[str]
            Token mint addresses

        Returns
        -------
        dict[str, Decimal]
            Mapping of mint to USD price, only for mints with a positive price

        Examples
        --------
        >>> client = JupiterPriceClient()
        >>> prices = client.get_prices(["So11111111111111111111111111111111111111112"])

        """
        if not mints:
            return {}

        data = send_request(self.client, "Jupiter", "GET", self.base_url, params={"ids": ",".join(mints)})
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            msg = "Jupiter price response has no data object"
            raise ParseError(msg)

        prices = {}
        for mint, entry in data["data"].items():
            if not isinstance(entry, dict):
                continue
            price = to_decimal(entry.get("price"))
            if price > 0:
                prices[mint] = price
        return prices

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "JupiterPriceClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
