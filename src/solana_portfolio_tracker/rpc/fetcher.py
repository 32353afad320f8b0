"""Paginated retrieval of wallet signatures and parsed transactions."""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.rpc.provider import SolanaRPCProvider
from solana_portfolio_tracker.rpc.retry import ResilientApiClient
from solana_portfolio_tracker.rpc.schemas import ParsedTransaction, SignatureInfo

logger = logging.getLogger(__name__)


@dataclass
class SignaturePage:
    """One page of signatures, newest first."""

    signatures: list[SignatureInfo] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


class RawTransactionFetcher:
    """
    Fetches signatures and parsed transactions for a wallet.

    Single calls go through the RPC provider class's ``ResilientApiClient``.
    Batches are resolved with at most ``batch_size`` calls in flight and a
    pause between batches.

    Parameters
    ----------
    provider : SolanaRPCProvider
        Ledger RPC provider
    api : ResilientApiClient
        Resilient client shared by all RPC callers
    batch_size : int
        Parsed transactions requested concurrently
    batch_pause : float
        Seconds to wait between batches
    sleep : Callable[[float], None]
        Sleep function

    """

    def __init__(
        self,
        provider: SolanaRPCProvider,
        api: ResilientApiClient,
        batch_size: int = 3,
        batch_pause: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.api = api
        self.batch_size = max(1, batch_size)
        self.batch_pause = batch_pause
        self._sleep = sleep

    def list_signatures(self, address: str, limit: int, before: str | None = None) -> SignaturePage:
        """
        List a page of signatures for an address.

        One extra signature is requested so ``has_more`` is known without a
        second round trip.

        Parameters
        ----------
        address : str
            Wallet address
        limit : int
            Page size
        before : str | None
            Cursor: last signature of the previous page

        Returns
        -------
        SignaturePage
            Page of at most ``limit`` signatures

        """
        if limit < 1:
            msg = "limit must be at least 1"
            raise ValueError(msg)

        signatures = self.api.call(
            self.provider.get_signatures_for_address,
            address,
            limit + 1,
            before,
            label="getSignaturesForAddress",
        )
        has_more = len(signatures) > limit
        page = signatures[:limit]
        next_cursor = page[-1].signature if has_more and page else None
        return SignaturePage(signatures=page, has_more=has_more, next_cursor=next_cursor)

    def get_parsed_transaction(self, signature: str) -> ParsedTransaction | None:
        """
        Fetch one parsed transaction.

        Failed transactions are returned with ``failed=True``.

        Returns
        -------
        ParsedTransaction | None
            Decoded transaction, or None if not found

        """
        return self.api.call(self.provider.get_transaction, signature, label="getTransaction")

    def get_parsed_transactions(
        self,
        signatures: list[str],
        errors: list[str] | None = None,
    ) -> list[ParsedTransaction]:
        """
        Fetch many parsed transactions with bounded concurrency.

        A failing signature is logged and skipped; the rest of the batch is
        unaffected. Signatures the ledger does not know yet are skipped
        silently.

        Parameters
        ----------
        signatures : list[str]
            Signatures to resolve
        errors : list[str] | None
            If given, receives the signatures whose fetch failed

        Returns
        -------
        list[ParsedTransaction]
            Transactions that could be fetched, in input order

        """
        results: list[ParsedTransaction] = []
        if not signatures:
            return results

        batches = [signatures[i : i + self.batch_size] for i in range(0, len(signatures), self.batch_size)]
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for index, batch in enumerate(batches):
                logger.debug("Fetching transaction batch %d/%d", index + 1, len(batches))
                for signature, tx, failed in executor.map(self._fetch_one, batch):
                    if tx is not None:
                        results.append(tx)
                    elif failed and errors is not None:
                        errors.append(signature)

                if index + 1 < len(batches) and self.batch_pause > 0:
                    self._sleep(self.batch_pause)

        return results

    def _fetch_one(self, signature: str) -> tuple[str, ParsedTransaction | None, bool]:
        try:
            return signature, self.get_parsed_transaction(signature), False
        except TrackerError as e:
            logger.warning("Failed to fetch transaction %s: %s", signature, e)
            return signature, None, True
