"""Typed decoding of raw Solana JSON-RPC payloads.

Providers return loosely-typed JSON. Everything downstream works on the
models below; a record that cannot be decoded raises ``ParseError`` so the
caller can skip that single record.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from solana_portfolio_tracker.core.exceptions import ParseError


class SignatureInfo(BaseModel):
    """Entry returned by getSignaturesForAddress."""

    signature: str
    slot: int | None = None
    block_time: int | None = None
    failed: bool = False


class TokenAccount(BaseModel):
    """Parsed SPL token account owned by a wallet."""

    address: str
    mint: str
    owner: str
    raw_balance: int = Field(ge=0)
    decimals: int = Field(ge=0)


class TokenBalance(BaseModel):
    """Token balance of one account before or after a transaction."""

    account_index: int
    mint: str
    owner: str | None = None
    raw_amount: int
    decimals: int


class ParsedInstruction(BaseModel):
    """
    Top-level instruction of a transaction.

    Attributes
    ----------
    program_id : str
        Invoked program
    program : str | None
        Program name reported by the RPC parser (e.g. 'system', 'spl-token')
    type : str | None
        Parsed instruction type (e.g. 'transfer', 'transferChecked')
    info : dict[str, Any]
        Parsed instruction fields (source, destination, authority, ...)

    """

    program_id: str
    program: str | None = None
    type: str | None = None
    info: dict[str, Any] = Field(default_factory=dict)


class ParsedTransaction(BaseModel):
    """
    Transaction with the balance and instruction data needed for classification.

    Attributes
    ----------
    signature : str
        First signature of the transaction
    slot : int
        Slot the transaction landed in
    block_time : int | None
        Unix timestamp of the block
    fee : int
        Fee in lamports
    failed : bool
        True if the transaction failed on the ledger
    account_keys : list[str]
        Account addresses in message order
    pre_balances : list[int]
        Lamport balances before execution, aligned with account_keys
    post_balances : list[int]
        Lamport balances after execution, aligned with account_keys
    pre_token_balances : list[TokenBalance]
        Token balances before execution
    post_token_balances : list[TokenBalance]
        Token balances after execution
    instructions : list[ParsedInstruction]
        Top-level instructions

    """

    signature: str
    slot: int
    block_time: int | None = None
    fee: int = 0
    failed: bool = False
    account_keys: list[str] = Field(default_factory=list)
    pre_balances: list[int] = Field(default_factory=list)
    post_balances: list[int] = Field(default_factory=list)
    pre_token_balances: list[TokenBalance] = Field(default_factory=list)
    post_token_balances: list[TokenBalance] = Field(default_factory=list)
    instructions: list[ParsedInstruction] = Field(default_factory=list)

    @property
    def program_ids(self) -> set[str]:
        """Program ids invoked by top-level instructions."""
        return {ix.program_id for ix in self.instructions}


def decode_signature_info(raw: dict[str, Any]) -> SignatureInfo:
    """
    Decode one getSignaturesForAddress entry.

    Raises
    ------
    ParseError
        If the entry is malformed

    """
    try:
        return SignatureInfo(
            signature=raw["signature"],
            slot=raw.get("slot"),
            block_time=raw.get("blockTime"),
            failed=raw.get("err") is not None,
        )
    except (KeyError, TypeError, AttributeError, ValidationError) as e:
        msg = f"Malformed signature entry: {e}"
        raise ParseError(msg) from e


def decode_token_account(raw: dict[str, Any]) -> TokenAccount:
    """
    Decode one getParsedTokenAccountsByOwner entry.

    Raises
    ------
    ParseError
        If the account is not jsonParsed or is missing fields

    """
    try:
        info = raw["account"]["data"]["parsed"]["info"]
        token_amount = info["tokenAmount"]
        return TokenAccount(
            address=raw["pubkey"],
            mint=info["mint"],
            owner=info["owner"],
            raw_balance=int(token_amount["amount"]),
            decimals=token_amount["decimals"],
        )
    except (KeyError, TypeError, ValueError, AttributeError, ValidationError) as e:
        msg = f"Malformed token account: {e}"
        raise ParseError(msg) from e


def _decode_token_balance(raw: dict[str, Any]) -> TokenBalance:
    amount = raw["uiTokenAmount"]
    return TokenBalance(
        account_index=raw["accountIndex"],
        mint=raw["mint"],
        owner=raw.get("owner"),
        raw_amount=int(amount["amount"]),
        decimals=amount["decimals"],
    )


def _decode_account_key(raw: Any) -> str:
    # jsonParsed returns objects, the legacy encoding plain strings
    if isinstance(raw, str):
        return raw
    return raw["pubkey"]


def _decode_instruction(raw: dict[str, Any], account_keys: list[str]) -> ParsedInstruction:
    if "programId" in raw:
        program_id = raw["programId"]
    else:
        program_id = account_keys[raw["programIdIndex"]]

    parsed = raw.get("parsed")
    if isinstance(parsed, dict):
        return ParsedInstruction(
            program_id=program_id,
            program=raw.get("program"),
            type=parsed.get("type"),
            info=parsed.get("info") or {},
        )
    return ParsedInstruction(program_id=program_id, program=raw.get("program"))


def decode_parsed_transaction(raw: dict[str, Any]) -> ParsedTransaction:
    """
    Decode a getTransaction (jsonParsed) result.

    Parameters
    ----------
    raw : dict[str, Any]
        ``result`` field of the RPC response

    Returns
    -------
    ParsedTransaction
        Typed transaction

    Raises
    ------
    ParseError
        If required fields are missing or have the wrong type

    """
    try:
        meta = raw["meta"]
        if meta is None:
            msg = "transaction has no status metadata"
            raise ParseError(msg)
        message = raw["transaction"]["message"]
        if not isinstance(meta, dict) or not isinstance(message, dict):
            msg = "transaction meta and message must be objects"
            raise ParseError(msg)
        account_keys = [_decode_account_key(k) for k in message["accountKeys"]]

        return ParsedTransaction(
            signature=raw["transaction"]["signatures"][0],
            slot=raw["slot"],
            block_time=raw.get("blockTime"),
            fee=meta.get("fee") or 0,
            failed=meta.get("err") is not None,
            account_keys=account_keys,
            pre_balances=meta.get("preBalances") or [],
            post_balances=meta.get("postBalances") or [],
            pre_token_balances=[_decode_token_balance(b) for b in meta.get("preTokenBalances") or []],
            post_token_balances=[_decode_token_balance(b) for b in meta.get("postTokenBalances") or []],
            instructions=[_decode_instruction(ix, account_keys) for ix in message.get("instructions") or []],
        )
    except ParseError:
        raise
    except (KeyError, IndexError, TypeError, ValueError, AttributeError, ValidationError) as e:
        msg = f"Malformed transaction payload: {e}"
        raise ParseError(msg) from e
