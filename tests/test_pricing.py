"""Tests for the Jupiter and CoinGecko clients and batched price resolution."""

from decimal import Decimal

import httpx
import pytest

from solana_portfolio_tracker.core.exceptions import NotAvailableError, ParseError
from solana_portfolio_tracker.pricing.coingecko import CoinGeckoClient
from solana_portfolio_tracker.pricing.jupiter import JupiterPriceClient
from solana_portfolio_tracker.pricing.resolver import PriceResolver

SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
POPCAT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"

PRICE_URL = "https://price.test/v2"

PRICES = {SOL: "142.5", USDC: "1.0001", BONK: "0.0000231"}


class PriceOracle:
    """Mock Jupiter endpoint recording the ids of every request."""

    def __init__(self, prices=None):
        self.prices = PRICES if prices is None else prices
        self.requests: list[list[str]] = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        ids = request.url.params["ids"].split(",")
        self.requests.append(ids)
        if self.fail:
            return httpx.Response(503, text="busy")
        data = {mint: {"id": mint, "price": self.prices[mint]} for mint in ids if mint in self.prices}
        return httpx.Response(200, json={"data": data, "timeTaken": 0.001})


@pytest.fixture
def oracle():
    return PriceOracle()


@pytest.fixture
def make_resolver(api, cache, clock, mock_client, oracle):
    def factory(**kwargs):
        jupiter = JupiterPriceClient(PRICE_URL, client=mock_client(oracle))
        return PriceResolver(jupiter, api, cache, ttl=300, sleep=clock.sleep, **kwargs)

    return factory


class TestJupiterPriceClient:
    """Price payload parsing."""

    def test_parses_prices(self, mock_client, oracle):
        client = JupiterPriceClient(PRICE_URL, client=mock_client(oracle))

        prices = client.get_prices([SOL, BONK, POPCAT])

        assert prices == {SOL: Decimal("142.5"), BONK: Decimal("0.0000231")}
        assert oracle.requests == [[SOL, BONK, POPCAT]]

    def test_non_positive_prices_are_dropped(self, mock_client):
        client = JupiterPriceClient(PRICE_URL, client=mock_client(PriceOracle({SOL: "0", USDC: None})))

        assert client.get_prices([SOL, USDC]) == {}

    def test_empty_request_makes_no_call(self, mock_client, oracle):
        client = JupiterPriceClient(PRICE_URL, client=mock_client(oracle))

        assert client.get_prices([]) == {}
        assert oracle.requests == []

    def test_missing_data_object(self, mock_client):
        client = JupiterPriceClient(PRICE_URL, client=mock_client(lambda request: httpx.Response(200, json={})))

        with pytest.raises(ParseError):
            client.get_prices([SOL])


class TestCoinGeckoClient:
    """Native market data."""

    def test_market_data(self, mock_client):
        payload = {
            "solana": {
                "usd": 142.5,
                "usd_24h_change": -3.25,
                "usd_market_cap": 65_000_000_000,
                "usd_24h_vol": 2_100_000_000,
            }
        }
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=payload)

        market = CoinGeckoClient("https://cg.test/api/v3", client=mock_client(handler)).get_market_data()

        assert market["price"] == Decimal("142.5")
        assert market["price_change_24h"] == Decimal("-3.25")
        assert market["market_cap"] == Decimal("65000000000")
        assert market["volume_24h"] == Decimal("2100000000")
        assert requests[0].url.path == "/api/v3/simple/price"
        assert requests[0].url.params["ids"] == "solana"

    def test_unknown_coin(self, mock_client):
        empty = mock_client(lambda request: httpx.Response(200, json={}))
        client = CoinGeckoClient("https://cg.test/api/v3", client=empty)

        with pytest.raises(NotAvailableError):
            client.get_market_data()


class TestPriceResolver:
    """Batching, caching and fallbacks."""

    def test_every_mint_gets_a_price(self, make_resolver):
        """Mints the oracle does not know are priced at zero."""
        prices = make_resolver().get_prices([SOL, USDC, POPCAT])

        assert prices == {SOL: Decimal("142.5"), USDC: Decimal("1.0001"), POPCAT: Decimal("0")}

    def test_ids_are_chunked_and_grouped(self, make_resolver, oracle, clock):
        """Requests carry at most ids_per_request ids and groups are paused between."""
        resolver = make_resolver(ids_per_request=1, batch_size=2, batch_pause=0.5)

        resolver.get_prices([SOL, USDC, BONK])

        assert sorted(len(ids) for ids in oracle.requests) == [1, 1, 1]
        assert clock.sleeps == [0.5]

    def test_batch_is_cached(self, make_resolver, oracle):
        """Asking again for the same set of mints issues no request."""
        resolver = make_resolver()
        first = resolver.get_prices([USDC, SOL])
        second = resolver.get_prices([SOL, USDC, SOL])

        assert first == second
        assert len(oracle.requests) == 1

    def test_native_defaults_when_never_priced(self, make_resolver, oracle):
        """SOL never comes back as zero."""
        oracle.fail = True

        assert make_resolver().get_native_price() == Decimal("150")

    def test_native_fallback_is_configurable(self, make_resolver, oracle):
        oracle.fail = True

        assert make_resolver(native_fallback=Decimal("99")).get_native_price() == Decimal("99")

    def test_failure_serves_last_known_price(self, make_resolver, oracle, clock):
        """Once the TTL passes and the oracle is down, the stale price is served."""
        resolver = make_resolver()
        resolver.get_prices([BONK])

        clock.advance(301)
        oracle.fail = True

        assert resolver.get_price(BONK) == Decimal("0.0000231")
        assert resolver.get_price(POPCAT) == Decimal("0")

    def test_failed_round_is_not_cached(self, make_resolver, oracle):
        """A round with a failed request is retried on the next call."""
        resolver = make_resolver()
        oracle.fail = True
        resolver.get_prices([USDC])
        requests_while_down = len(oracle.requests)

        oracle.fail = False

        assert resolver.get_prices([USDC]) == {USDC: Decimal("1.0001")}
        assert len(oracle.requests) == requests_while_down + 1

    def test_empty_input(self, make_resolver, oracle):
        assert make_resolver().get_prices([]) == {}
        assert oracle.requests == []
