"""Paged, cached wallet transaction history."""

import logging

from solana_portfolio_tracker.core.classifier import classify
from solana_portfolio_tracker.core.exceptions import TrackerError, TransactionFetchError
from solana_portfolio_tracker.core.models import TransactionPage
from solana_portfolio_tracker.core.validation import validate_address
from solana_portfolio_tracker.data.addresses import NATIVE_MINT
from solana_portfolio_tracker.rpc.cache import CacheStore
from solana_portfolio_tracker.rpc.fetcher import RawTransactionFetcher
from solana_portfolio_tracker.rpc.schemas import ParsedTransaction
from solana_portfolio_tracker.tokens.metadata import TokenMetadataResolver

logger = logging.getLogger(__name__)


class TransactionService:
    """
    Serves classified wallet transactions one page at a time.

    All pages of a wallet live in a single cache entry, keyed inside by
    cursor and page size. Fetching the first page replaces that entry
    wholesale; fetching a deeper page replaces it with a copy that also holds
    the new page. Cached pages are never mutated.

    Parameters
    ----------
    fetcher : RawTransactionFetcher
        Signature and transaction fetcher
    metadata_resolver : TokenMetadataResolver
        Resolver used for the symbols of every touched mint
    cache : CacheStore
        Shared cache
    ttl : float
        Seconds a page stays fresh

    """

    def __init__(
        self,
        fetcher: RawTransactionFetcher,
        metadata_resolver: TokenMetadataResolver,
        cache: CacheStore,
        ttl: float = 30,
    ) -> None:
        self.fetcher = fetcher
        self.metadata_resolver = metadata_resolver
        self.cache = cache
        self.ttl = ttl

    def get_wallet_transactions(
        self,
        address: str,
        limit: int = 20,
        before: str | None = None,
    ) -> TransactionPage:
        """
        Get one page of classified transactions, newest first.

        Parameters
        ----------
        address : str
            Wallet address
        limit : int
            Maximum signatures examined for this page
        before : str | None
            Cursor returned as ``next_cursor`` by the previous page

        Returns
        -------
        TransactionPage
            Classified transactions with the cursor of the next page

        Raises
        ------
        InvalidAddressError
            If the address is not a valid public key
        TransactionFetchError
            If the page could not be fetched and no copy was ever cached

        """
        address = validate_address(address)
        key = CacheStore.make_key("transactions", address)
        page_key = (before, limit)

        pages, hit = self.cache.get(key)
        if hit and page_key in pages:
            return pages[page_key]

        try:
            page = self._fetch_page(address, limit, before)
        except TrackerError as e:
            stale, has_stale = self.cache.get_stale(key)
            if has_stale and page_key in stale:
                logger.warning("Transaction fetch failed for %s, serving cached page: %s", address, e)
                return stale[page_key]
            msg = f"Failed to fetch transactions for {address}"
            raise TransactionFetchError(msg) from e

        if before is None:
            updated = {page_key: page}
        else:
            updated = {**(pages if hit else {}), page_key: page}
        self.cache.set(key, updated, ttl=self.ttl)

        return page

    def _fetch_page(self, address: str, limit: int, before: str | None) -> TransactionPage:
        signature_page = self.fetcher.list_signatures(address, limit, before)
        signatures = [info.signature for info in signature_page.signatures if not info.failed]

        failed_fetches: list[str] = []
        parsed = self.fetcher.get_parsed_transactions(signatures, errors=failed_fetches)
        # Unknown signatures alone give an empty page; only provider errors fail it
        if failed_fetches and not parsed:
            msg = f"None of {len(signatures)} transactions could be fetched"
            raise TransactionFetchError(msg)

        symbols = self.metadata_resolver.symbols(self._touched_mints(parsed))

        transactions = []
        for tx in parsed:
            classified = classify(tx, address, symbols)
            if classified is not None:
                transactions.append(classified)
        transactions.sort(key=lambda t: t.timestamp, reverse=True)

        logger.debug("Classified %d of %d transactions for %s", len(transactions), len(parsed), address)
        return TransactionPage(
            transactions=transactions,
            has_more=signature_page.has_more,
            next_cursor=signature_page.next_cursor,
        )

    @staticmethod
    def _touched_mints(transactions: list[ParsedTransaction]) -> list[str]:
        mints = {NATIVE_MINT}
        for tx in transactions:
            mints.update(balance.mint for balance in tx.pre_token_balances)
            mints.update(balance.mint for balance in tx.post_token_balances)
        return sorted(mints)
