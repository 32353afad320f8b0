"""Tests for the periodic balance poller."""

import threading
from decimal import Decimal

from solana_portfolio_tracker.core.exceptions import TransientNetworkError
from solana_portfolio_tracker.core.models import WalletBalance
from solana_portfolio_tracker.core.poller import BalancePoller

OWNER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


class CountingAggregator:
    """Returns balances with an increasing lamport count."""

    def __init__(self, failures=0):
        self.calls = 0
        self.failures = failures

    def get_wallet_balance(self, address):
        self.calls += 1
        if self.calls <= self.failures:
            raise TransientNetworkError("rpc down")
        return WalletBalance(address=address, native_lamports=self.calls, native_price_usd=Decimal("150"))


class BlockingAggregator:
    """Blocks inside a refresh until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def get_wallet_balance(self, address):
        self.calls += 1
        self.entered.set()
        self.release.wait(5)
        return WalletBalance(address=address)


def test_poll_once_updates_latest():
    poller = BalancePoller(CountingAggregator(), OWNER, interval=1)

    balance = poller.poll_once()

    assert balance is not None
    assert poller.latest is balance


def test_failed_cycle_keeps_last_good_balance():
    aggregator = CountingAggregator()
    poller = BalancePoller(aggregator, OWNER)
    first = poller.poll_once()

    aggregator.failures = 5

    assert poller.poll_once() is None
    assert poller.latest is first


def test_overlapping_cycle_is_skipped():
    """A cycle started while another is in flight does nothing."""
    aggregator = BlockingAggregator()
    poller = BalancePoller(aggregator, OWNER)
    worker = threading.Thread(target=poller.poll_once)
    worker.start()
    aggregator.entered.wait(5)

    try:
        assert poller.poll_once() is None
    finally:
        aggregator.release.set()
        worker.join(5)

    assert aggregator.calls == 1
    assert poller.latest is not None


def test_run_until_stopped():
    """run() reports every new balance and exits once the stop event is set."""
    aggregator = CountingAggregator(failures=1)
    poller = BalancePoller(aggregator, OWNER, interval=0)
    stop = threading.Event()
    updates = []

    def on_update(balance):
        updates.append(balance.native_lamports)
        if len(updates) == 2:
            stop.set()

    poller.run(stop, on_update)

    assert updates == [2, 3]
    assert aggregator.calls == 3
