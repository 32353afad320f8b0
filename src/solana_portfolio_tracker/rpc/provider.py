"""Solana JSON-RPC provider over httpx."""

import itertools
import logging
from typing import Any

import httpx

from solana_portfolio_tracker.core.exceptions import ParseError, ProviderError, RateLimitedError
from solana_portfolio_tracker.data.addresses import TOKEN_PROGRAM_ID
from solana_portfolio_tracker.rpc.schemas import (
    ParsedTransaction,
    SignatureInfo,
    TokenAccount,
    decode_parsed_transaction,
    decode_signature_info,
    decode_token_account,
)
from solana_portfolio_tracker.utils.http import send_request

logger = logging.getLogger(__name__)

# JSON-RPC error codes some providers use for quota exhaustion
RATE_LIMIT_RPC_CODES = {429, -32005, -32429}


class SolanaRPCProvider:
    """
    Read-only Solana JSON-RPC client.

    Each method performs exactly one HTTP request and raises the tracker's
    exception taxonomy on failure; retries and rate limiting are applied by
    the ``ResilientApiClient`` wrapping these calls.

    Parameters
    ----------
    rpc_url : str
        JSON-RPC endpoint (e.g. a Helius mainnet URL)
    timeout : float
        HTTP timeout in seconds
    commitment : str
        Commitment level for reads
    client : httpx.Client | None
        HTTP client to use (a new one is created if None)

    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        commitment: str = "confirmed",
        client: httpx.Client | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.client = client or httpx.Client(timeout=timeout)
        self._ids = itertools.count(1)

    def make_request(self, method: str, params: list[Any]) -> Any:
        """
        Make a JSON-RPC request.

        Parameters
        ----------
        method : str
            RPC method name (e.g. 'getBalance')
        params : list[Any]
            Method parameters

        Returns
        -------
        Any
            ``result`` field of the response

        Raises
        ------
        RateLimitedError
            If the endpoint rejects the call for quota reasons
        TransientNetworkError
            On timeouts, transport errors and 5xx responses
        ProviderError
            On JSON-RPC errors
        ParseError
            If the response body is not a JSON-RPC envelope

        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        data = send_request(self.client, "Solana RPC", "POST", self.rpc_url, json=payload)

        if not isinstance(data, dict):
            msg = f"Unexpected RPC response for {method}"
            raise ParseError(msg)

        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", error) if isinstance(error, dict) else error
            msg = f"RPC error on {method}: {message}"
            if code in RATE_LIMIT_RPC_CODES:
                raise RateLimitedError(msg)
            raise ProviderError(msg, error_data=error if isinstance(error, dict) else None)

        if "result" not in data:
            msg = f"RPC response for {method} has no result"
            raise ParseError(msg)
        return data["result"]

    def get_balance(self, address: str) -> int:
        """
        Get native balance.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        int
            Balance in lamports

        """
        result = self.make_request("getBalance", [address, {"commitment": self.commitment}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Malformed getBalance result: {result!r}"
            raise ParseError(msg) from e

    def get_parsed_token_accounts(self, owner: str, program_id: str = TOKEN_PROGRAM_ID) -> list[TokenAccount]:
        """
        Get parsed token accounts owned by a wallet for one token program.

        Malformed accounts are logged and skipped.

        Parameters
        ----------
        owner : str
            Wallet address
        program_id : str
            Token program (SPL Token or Token-2022)

        Returns
        -------
        list[TokenAccount]
            Token accounts, including zero balances

        """
        result = self.make_request(
            "getParsedTokenAccountsByOwner",
            [owner, {"programId": program_id}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        accounts = []
        for raw in self._value(result, "getParsedTokenAccountsByOwner", list):
            try:
                accounts.append(decode_token_account(raw))
            except ParseError as e:
                logger.debug("Skipping token account for %s: %s", owner, e)
        return accounts

    def get_signatures_for_address(
        self,
        address: str,
        limit: int,
        before: str | None = None,
    ) -> list[SignatureInfo]:
        """
        Get transaction signatures involving an address, newest first.

        Parameters
        ----------
        address : str
            Wallet address
        limit : int
            Maximum number of signatures (1-1000)
        before : str | None
            Only return signatures older than this one

        Returns
        -------
        list[SignatureInfo]
            Signatures, newest first

        """
        options: dict[str, Any] = {"limit": limit, "commitment": self.commitment}
        if before:
            options["before"] = before
        result = self.make_request("getSignaturesForAddress", [address, options])
        if not isinstance(result, list):
            msg = "getSignaturesForAddress did not return a list"
            raise ParseError(msg)
        return [decode_signature_info(raw) for raw in result]

    def get_transaction(self, signature: str) -> ParsedTransaction | None:
        """
        Get a parsed transaction.

        Parameters
        ----------
        signature : str
            Transaction signature

        Returns
        -------
        ParsedTransaction | None
            Decoded transaction, or None if the ledger does not know it

        Raises
        ------
        ParseError
            If the payload cannot be decoded

        """
        result = self.make_request(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self.commitment,
                },
            ],
        )
        if result is None:
            return None
        return decode_parsed_transaction(result)

    def get_token_largest_accounts(self, mint: str) -> list[dict[str, Any]]:
        """
        Get the largest token accounts of a mint.

        Returns
        -------
        list[dict[str, Any]]
            Entries with ``address`` and ``uiAmountString``/``uiAmount``

        """
        result = self.make_request("getTokenLargestAccounts", [mint, {"commitment": self.commitment}])
        accounts = self._value(result, "getTokenLargestAccounts", list)
        return [account for account in accounts if isinstance(account, dict)]

    def get_token_supply(self, mint: str) -> dict[str, Any]:
        """
        Get the total supply of a mint.

        Returns
        -------
        dict[str, Any]
            Supply with ``amount``, ``decimals`` and ``uiAmountString``

        """
        result = self.make_request("getTokenSupply", [mint, {"commitment": self.commitment}])
        return self._value(result, "getTokenSupply", dict)

    @staticmethod
    def _value(result: Any, method: str, expected: type) -> Any:
        """
        Unwrap the ``value`` of a context-wrapped RPC result.

        A missing result or value is returned as an empty ``expected``.

        Raises
        ------
        ParseError
            If the result is not an object or the value has the wrong type

        """
        if result is None:
            return expected()
        if not isinstance(result, dict):
            msg = f"{method} returned {type(result).__name__}, expected an object"
            raise ParseError(msg)
        value = result.get("value")
        if value is None:
            return expected()
        if not isinstance(value, expected):
            msg = f"{method} value is {type(value).__name__}, expected {expected.__name__}"
            raise ParseError(msg)
        return value

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "SolanaRPCProvider":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
