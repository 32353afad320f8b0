"""DexScreener API client for per-token trading pairs."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from solana_portfolio_tracker.core.exceptions import ParseError
from solana_portfolio_tracker.utils.http import send_request

logger = logging.getLogger(__name__)


def to_decimal(value: Any) -> Decimal:
    """
    Convert a loosely-typed numeric field to Decimal.

    Missing or unparsable values become zero.

    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


class PairToken(BaseModel):
    """Base or quote token of a pair."""

    address: str
    name: str | None = None
    symbol: str | None = None


class DexPair(BaseModel):
    """
    Trading pair with the fields used for metadata, pricing and analytics.

    Attributes
    ----------
    base_token : PairToken
        Token that ``price_usd`` is quoted for
    quote_token : PairToken | None
        Other side of the pair
    price_usd : Decimal
        USD price of the base token
    price_change_24h : Decimal
        24h price change in percent
    volume_24h : Decimal
        24h volume in USD
    liquidity_usd : Decimal
        Pool liquidity in USD
    market_cap : Decimal
        Market capitalisation in USD (never negative)
    buys_24h : int
        Buy transactions in the last 24h
    sells_24h : int
        Sell transactions in the last 24h
    image_url : str | None
        Token logo

    """

    base_token: PairToken
    quote_token: PairToken | None = None
    price_usd: Decimal = Decimal("0")
    price_change_24h: Decimal = Decimal("0")
    volume_24h: Decimal = Decimal("0")
    liquidity_usd: Decimal = Decimal("0")
    market_cap: Decimal = Decimal("0")
    buys_24h: int = 0
    sells_24h: int = 0
    image_url: str | None = None

    def token_side(self, mint: str) -> PairToken | None:
        """Return the side of the pair that matches ``mint``, if any."""
        for token in (self.base_token, self.quote_token):
            if token is not None and token.address == mint:
                return token
        return None

    def price_of(self, mint: str) -> Decimal:
        """
        USD price of ``mint`` implied by the pair.

        ``priceUsd`` is quoted for the base token; when the mint is the quote
        token no USD price can be derived from the pair alone.

        """
        if self.base_token.address != mint:
            return Decimal("0")
        return self.price_usd


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _count(value: Any) -> int:
    return int(max(to_decimal(value), Decimal("0")))


def _decode_token(raw: Any) -> PairToken | None:
    if not isinstance(raw, dict) or _text(raw.get("address")) is None:
        return None
    return PairToken(address=raw["address"], name=_text(raw.get("name")), symbol=_text(raw.get("symbol")))


def decode_pair(raw: Any) -> DexPair:
    """
    Decode one pair object of a DexScreener response.

    Numeric fields are lenient (unparsable values become zero) and text
    fields of the wrong type are dropped.

    Raises
    ------
    ParseError
        If the pair is not an object or has no usable base token

    """
    if not isinstance(raw, dict):
        msg = f"Pair is {type(raw).__name__}, expected an object"
        raise ParseError(msg)
    base_token = _decode_token(raw.get("baseToken"))
    if base_token is None:
        msg = "Pair has no base token address"
        raise ParseError(msg)

    txns = _section(_section(raw, "txns"), "h24")
    try:
        return DexPair(
            base_token=base_token,
            quote_token=_decode_token(raw.get("quoteToken")),
            price_usd=to_decimal(raw.get("priceUsd")),
            price_change_24h=to_decimal(_section(raw, "priceChange").get("h24")),
            volume_24h=to_decimal(_section(raw, "volume").get("h24")),
            liquidity_usd=to_decimal(_section(raw, "liquidity").get("usd")),
            market_cap=max(to_decimal(raw.get("marketCap")), Decimal("0")),
            buys_24h=_count(txns.get("buys")),
            sells_24h=_count(txns.get("sells")),
            image_url=_text(_section(raw, "info").get("imageUrl")),
        )
    except ValidationError as e:
        msg = f"Malformed pair: {e}"
        raise ParseError(msg) from e


class DexScreenerClient:
    """
    Client for the DexScreener public API.

    Used as the trading-data aggregator: token name/symbol/logo for mints
    missing from the token directory, a fallback price, and 24h trade data
    for analytics.

    Parameters
    ----------
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds
    client : httpx.Client | None
        HTTP client to use (a new one is created if None)

    """

    BASE_URL = "https://api.dexscreener.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json", "User-Agent": "solana-portfolio-tracker"},
        )

    def get_pairs(self, mint: str) -> list[DexPair]:
        """
        Fetch all trading pairs that include a token.

        Malformed pairs are logged and skipped.

        Parameters
        ----------
        mint : str
            Token mint address

        Returns
        -------
        list[DexPair]
            Decoded pairs (empty if the token is not traded)

        """
        data = send_request(self.client, "DexScreener", "GET", f"{self.base_url}/latest/dex/tokens/{mint}")
        if not isinstance(data, dict):
            msg = "DexScreener returned an unexpected payload"
            raise ParseError(msg)
        raw_pairs = data.get("pairs") or []
        if not isinstance(raw_pairs, list):
            msg = "DexScreener pairs is not a list"
            raise ParseError(msg)

        pairs = []
        for raw in raw_pairs:
            try:
                pairs.append(decode_pair(raw))
            except ParseError as e:
                logger.debug("Skipping pair for %s: %s", mint, e)
        return pairs

    def get_best_pair(self, mint: str) -> DexPair | None:
        """
        Return the pair with the highest USD liquidity for this token.

        Parameters
        ----------
        mint : str
            Token mint address

        Returns
        -------
        DexPair | None
            Most liquid pair, or None if the token is not traded

        """
        pairs = self.get_pairs(mint)
        if not pairs:
            return None
        return max(pairs, key=lambda p: p.liquidity_usd)

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "DexScreenerClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
