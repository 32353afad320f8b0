"""Periodic wallet balance refresh without overlapping cycles."""

import logging
import threading
from collections.abc import Callable

from solana_portfolio_tracker.core.aggregator import BalanceAggregator
from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.core.models import WalletBalance

logger = logging.getLogger(__name__)


class BalancePoller:
    """
    Refreshes a wallet balance on a fixed interval.

    A cycle that starts while another is still running is skipped rather
    than queued, so at most one refresh is ever in flight. ``latest`` always
    holds the most recent successfully completed balance.

    Parameters
    ----------
    aggregator : BalanceAggregator
        Balance aggregator
    address : str
        Wallet address
    interval : float
        Seconds between cycles

    """

    def __init__(self, aggregator: BalanceAggregator, address: str, interval: float = 30.0) -> None:
        self.aggregator = aggregator
        self.address = address
        self.interval = interval
        self.latest: WalletBalance | None = None
        self._cycle_lock = threading.Lock()

    def poll_once(self) -> WalletBalance | None:
        """
        Run one refresh cycle.

        Returns
        -------
        WalletBalance | None
            New balance, or None if a cycle was already in flight or the refresh failed

        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Balance refresh already in flight for %s, skipping", self.address)
            return None

        try:
            balance = self.aggregator.get_wallet_balance(self.address)
        except TrackerError as e:
            logger.warning("Balance refresh failed for %s: %s", self.address, e)
            return None
        finally:
            self._cycle_lock.release()

        self.latest = balance
        return balance

    def run(
        self,
        stop_event: threading.Event,
        on_update: Callable[[WalletBalance], None] | None = None,
    ) -> None:
        """
        Poll until ``stop_event`` is set.

        Parameters
        ----------
        stop_event : threading.Event
            Set to stop polling
        on_update : Callable[[WalletBalance], None] | None
            Called with every new balance

        """
        while not stop_event.is_set():
            balance = self.poll_once()
            if balance is not None and on_update is not None:
                on_update(balance)
            stop_event.wait(self.interval)
