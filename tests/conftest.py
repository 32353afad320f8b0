"""Pytest configuration and shared fixtures for solana-portfolio-tracker tests."""

import threading
from collections.abc import Callable

import httpx
import pytest

from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.retry import RateLimiter, ResilientApiClient, RetryConfig
from solana_portfolio_tracker.rpc.schemas import ParsedInstruction, ParsedTransaction, TokenBalance

OWNER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
OTHER = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
SOL = "So11111111111111111111111111111111111111112"
JUPITER_V6 = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
SYSTEM_PROGRAM = "11111111111111111111111111111111"


class FakeClock:
    """Manually advanced clock whose ``sleep`` records the delay and moves time forward."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds


@pytest.fixture
def clock():
    """Fresh fake clock."""
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Cache store driven by the fake clock."""
    return CacheStore(default_ttl=300, max_entries=100, clock=clock)


@pytest.fixture
def make_api(clock) -> Callable[..., ResilientApiClient]:
    """Factory for resilient clients that never really sleep."""

    def factory(min_interval: float = 0.0, max_retries: int = 2, deadline: float | None = None) -> ResilientApiClient:
        return ResilientApiClient(
            RateLimiter(min_interval, clock=clock, sleep=clock.sleep),
            retry_config=RetryConfig(max_retries=max_retries, base_delay=1.0, max_delay=4.0),
            deadline=deadline,
            name="test",
            sleep=clock.sleep,
        )

    return factory


@pytest.fixture
def api(make_api):
    """Resilient client with two retries and no rate limit."""
    return make_api()


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Factory for httpx clients backed by a request handler."""
    clients = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def build_tx() -> Callable[..., ParsedTransaction]:
    """
    Factory for parsed transactions seen from ``OWNER``.

    Native balances are given as ``{address: (pre_lamports, post_lamports)}``;
    token balances as ``{(owner, mint): (pre_raw, post_raw, decimals)}``.
    """

    def factory(
        signature: str = "sig1",
        native: dict[str, tuple[int, int]] | None = None,
        tokens: dict[tuple[str, str], tuple[int | None, int | None, int]] | None = None,
        programs: list[str] | None = None,
        instructions: list[ParsedInstruction] | None = None,
        fee: int = 5000,
        failed: bool = False,
        block_time: int | None = 1_700_000_000,
        slot: int = 250_000_000,
    ) -> ParsedTransaction:
        native = native if native is not None else {OWNER: (10_000_000_000, 10_000_000_000 - fee)}
        account_keys = list(native)
        pre_balances = [pre for pre, _ in native.values()]
        post_balances = [post for _, post in native.values()]

        pre_tokens, post_tokens = [], []
        for index, ((owner, mint), (pre, post, decimals)) in enumerate((tokens or {}).items()):
            if pre is not None:
                pre_tokens.append(
                    TokenBalance(account_index=index, mint=mint, owner=owner, raw_amount=pre, decimals=decimals)
                )
            if post is not None:
                post_tokens.append(
                    TokenBalance(account_index=index, mint=mint, owner=owner, raw_amount=post, decimals=decimals)
                )

        all_instructions = list(instructions or [])
        all_instructions.extend(ParsedInstruction(program_id=program_id) for program_id in programs or [])

        return ParsedTransaction(
            signature=signature,
            slot=slot,
            block_time=block_time,
            fee=fee,
            failed=failed,
            account_keys=account_keys,
            pre_balances=pre_balances,
            post_balances=post_balances,
            pre_token_balances=pre_tokens,
            post_token_balances=post_tokens,
            instructions=all_instructions,
        )

    return factory
