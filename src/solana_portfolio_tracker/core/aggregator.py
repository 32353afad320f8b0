"""Balance aggregator for building a valued wallet portfolio."""

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Any

from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.core.models import TokenHolding, TokenMetadata, WalletBalance
from solana_portfolio_tracker.core.validation import validate_address
from solana_portfolio_tracker.data.addresses import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from solana_portfolio_tracker.pricing.resolver import PriceResolver
from solana_portfolio_tracker.rpc.provider import SolanaRPCProvider
from solana_portfolio_tracker.rpc.retry import ResilientApiClient
from solana_portfolio_tracker.rpc.schemas import TokenAccount
from solana_portfolio_tracker.tokens.metadata import TokenMetadataResolver, fallback_metadata

logger = logging.getLogger(__name__)


class BalanceAggregator:
    """
    Builds the valued portfolio of a wallet.

    Workflow:
    1. Validate the address
    2. Fetch the native balance and token accounts of every token program in parallel
    3. Price the native asset
    4. Resolve metadata and prices of the held tokens in parallel
    5. Sort holdings by USD value

    Provider failures are absorbed: a failed balance read counts as zero, a
    failed account listing as no accounts, a missing price as zero. Only an
    invalid address is reported to the caller.

    Parameters
    ----------
    rpc_provider : SolanaRPCProvider
        Ledger RPC provider
    api : ResilientApiClient
        Resilient client for the RPC provider class
    metadata_resolver : TokenMetadataResolver
        Token metadata resolver
    price_resolver : PriceResolver
        Price resolver
    token_program_ids : list[str] | None
        Token programs whose accounts count as holdings (SPL Token and Token-2022 by default)

    """

    def __init__(
        self,
        rpc_provider: SolanaRPCProvider,
        api: ResilientApiClient,
        metadata_resolver: TokenMetadataResolver,
        price_resolver: PriceResolver,
        token_program_ids: list[str] | None = None,
    ) -> None:
        self.rpc_provider = rpc_provider
        self.api = api
        self.metadata_resolver = metadata_resolver
        self.price_resolver = price_resolver
        self.token_program_ids = token_program_ids or [TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID]

    def get_wallet_balance(
        self,
        address: str,
        progress: Any | None = None,
        task_id: Any | None = None,
    ) -> WalletBalance:
        """
        Get the valued portfolio of a wallet.

        Parameters
        ----------
        address : str
            Wallet address
        progress : Any | None
            Rich progress bar instance (optional)
        task_id : Any | None
            Task ID for progress updates (optional)

        Returns
        -------
        WalletBalance
            Native balance and enriched token holdings

        Raises
        ------
        InvalidAddressError
            If the address is not a valid public key

        """
        address = validate_address(address)

        if progress is not None and task_id is not None:
            progress.update(task_id, description="Fetching balances...", completed=10)

        with ThreadPoolExecutor(max_workers=1 + len(self.token_program_ids)) as executor:
            lamports_future = executor.submit(self._get_lamports, address)
            account_futures = [
                executor.submit(self._get_token_accounts, address, program_id)
                for program_id in self.token_program_ids
            ]
            lamports = lamports_future.result()
            accounts = [account for future in account_futures for account in future.result()]

        holdings = self._merge_accounts(accounts)

        if progress is not None and task_id is not None:
            progress.update(task_id, description="Fetching prices and metadata...", completed=50)

        mints = [holding.mint for holding in holdings]
        with ThreadPoolExecutor(max_workers=3) as executor:
            native_future = executor.submit(self.price_resolver.get_native_price)
            metadata_future = executor.submit(self.metadata_resolver.resolve, mints) if mints else None
            prices_future = executor.submit(self.price_resolver.get_prices, mints) if mints else None

            native_price = native_future.result()
            metadata = metadata_future.result() if metadata_future else {}
            prices = prices_future.result() if prices_future else {}

        enriched = [self._enrich(holding, metadata, prices) for holding in holdings]
        enriched.sort(key=lambda h: h.value_usd, reverse=True)

        if progress is not None and task_id is not None:
            progress.update(task_id, description="✓ Balance complete", completed=100)

        return WalletBalance(
            address=address,
            native_lamports=lamports,
            native_price_usd=native_price,
            holdings=enriched,
        )

    def _get_lamports(self, address: str) -> int:
        try:
            return self.api.call(self.rpc_provider.get_balance, address, label="getBalance")
        except TrackerError as e:
            logger.warning("Native balance unavailable for %s: %s", address, e)
            return 0

    def _get_token_accounts(self, address: str, program_id: str) -> list[TokenAccount]:
        try:
            return self.api.call(
                self.rpc_provider.get_parsed_token_accounts,
                address,
                program_id,
                label="getParsedTokenAccountsByOwner",
            )
        except TrackerError as e:
            logger.warning("Token accounts of program %s unavailable for %s: %s", program_id, address, e)
            return []

    @staticmethod
    def _merge_accounts(accounts: list[TokenAccount]) -> list[TokenHolding]:
        """
        Collapse token accounts into one holding per mint.

        Empty accounts are dropped.

        """
        balances: dict[str, int] = {}
        decimals: dict[str, int] = {}
        for account in accounts:
            if account.raw_balance <= 0:
                continue
            balances[account.mint] = balances.get(account.mint, 0) + account.raw_balance
            decimals[account.mint] = account.decimals

        return [
            TokenHolding(mint=mint, raw_balance=raw_balance, decimals=decimals[mint])
            for mint, raw_balance in balances.items()
        ]

    @staticmethod
    def _enrich(
        holding: TokenHolding,
        metadata: dict[str, TokenMetadata],
        prices: dict[str, Decimal],
    ) -> TokenHolding:
        meta = metadata.get(holding.mint) or fallback_metadata(holding.mint)
        return holding.model_copy(
            update={
                "name": meta.name,
                "symbol": meta.symbol,
                "logo_uri": meta.logo_uri,
                "price_usd": prices.get(holding.mint, Decimal("0")),
            }
        )
