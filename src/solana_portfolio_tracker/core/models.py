"""Data models for holdings, wallet balances, classified transactions and token analytics."""

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from solana_portfolio_tracker.data.addresses import LAMPORTS_PER_SOL

UNKNOWN = "Unknown"


class TokenMetadata(BaseModel):
    """
    Display metadata for a token.

    Attributes
    ----------
    mint : str
        Token mint address
    name : str
        Display name
    symbol : str
        Ticker symbol
    logo_uri : str | None
        Logo URL
    source : str
        Lookup tier that produced the entry ('static', 'directory',
        'aggregator' or 'fallback')

    """

    model_config = ConfigDict(frozen=True)

    mint: str
    name: str
    symbol: str
    logo_uri: str | None = None
    source: str = "fallback"


class TokenHolding(BaseModel):
    """
    Token balance held by a wallet, optionally enriched with metadata and price.

    ``ui_amount`` and ``value_usd`` are derived from the raw balance, decimals
    and price and are never stored independently.

    Attributes
    ----------
    mint : str
        Token mint address
    raw_balance : int
        Balance in the smallest unit
    decimals : int
        Number of decimal places
    name : str | None
        Display name
    symbol : str | None
        Ticker symbol
    logo_uri : str | None
        Logo URL
    price_usd : Decimal | None
        USD price per whole token

    """

    mint: str
    raw_balance: int = Field(ge=0)
    decimals: int = Field(ge=0)
    name: str | None = None
    symbol: str | None = None
    logo_uri: str | None = None
    price_usd: Decimal | None = None

    @computed_field
    @property
    def ui_amount(self) -> Decimal:
        """Balance scaled by decimals."""
        return Decimal(self.raw_balance) / (Decimal(10) ** self.decimals)

    @computed_field
    @property
    def value_usd(self) -> Decimal:
        """USD value of the holding (zero when the price is unknown)."""
        return self.ui_amount * (self.price_usd or Decimal("0"))


class WalletBalance(BaseModel):
    """
    Valued portfolio of a wallet: native SOL plus token holdings.

    Attributes
    ----------
    address : str
        Wallet address
    native_lamports : int
        Native balance in lamports
    native_price_usd : Decimal
        SOL price used for valuation
    holdings : list[TokenHolding]
        Token holdings, sorted by USD value descending

    """

    address: str
    native_lamports: int = Field(default=0, ge=0)
    native_price_usd: Decimal = Decimal("0")
    holdings: list[TokenHolding] = Field(default_factory=list)

    @computed_field
    @property
    def native_amount(self) -> Decimal:
        """Native balance in SOL."""
        return Decimal(self.native_lamports) / LAMPORTS_PER_SOL

    @computed_field
    @property
    def native_value_usd(self) -> Decimal:
        """USD value of the native balance."""
        return self.native_amount * self.native_price_usd

    @computed_field
    @property
    def total_value_usd(self) -> Decimal:
        """Native value plus the value of every holding."""
        return self.native_value_usd + sum((h.value_usd for h in self.holdings), Decimal("0"))


class TransactionKind(StrEnum):
    """Economic kind of a classified transaction."""

    SEND = "send"
    RECEIVE = "receive"
    SWAP = "swap"


class SwapStatus(StrEnum):
    """Whether both legs of a swap could be identified."""

    RESOLVED = "resolved"
    PARTIAL = "partial"


class SwapLeg(BaseModel):
    """
    Both sides of a swap.

    A resolved swap has positive amounts on both sides. A partial swap marks
    the side that could not be identified with mint and symbol ``"Unknown"``
    and an amount of zero.

    """

    model_config = ConfigDict(frozen=True)

    from_mint: str
    from_symbol: str
    from_amount: Decimal = Field(ge=0)
    to_mint: str
    to_symbol: str
    to_amount: Decimal = Field(ge=0)
    status: SwapStatus = SwapStatus.RESOLVED

    @model_validator(mode="after")
    def _check_legs(self) -> "SwapLeg":
        if self.status == SwapStatus.RESOLVED:
            if self.from_amount <= 0 or self.to_amount <= 0:
                msg = "resolved swap requires positive amounts on both legs"
                raise ValueError(msg)
        elif self.from_mint == UNKNOWN and self.to_mint == UNKNOWN:
            msg = "partial swap requires at least one identified leg"
            raise ValueError(msg)
        return self


class Transaction(BaseModel):
    """
    Wallet-relative classification of a ledger transaction.

    Attributes
    ----------
    signature : str
        Ledger signature (transaction id)
    kind : TransactionKind
        Send, receive or swap
    amount : Decimal
        Transferred amount in UI units (the sold amount for swaps)
    mint : str
        Mint of the transferred asset
    symbol : str
        Symbol of the transferred asset
    counterparty : str | None
        Other address involved in a transfer
    timestamp : int
        Block time in unix seconds (0 if unknown)
    fee : Decimal | None
        Fee paid in SOL, when the owner paid it
    slot : int | None
        Slot the transaction landed in
    swap : SwapLeg | None
        Swap legs, present iff kind is swap

    """

    model_config = ConfigDict(frozen=True)

    signature: str
    kind: TransactionKind
    amount: Decimal = Field(ge=0)
    mint: str
    symbol: str
    counterparty: str | None = None
    timestamp: int = 0
    fee: Decimal | None = None
    slot: int | None = None
    swap: SwapLeg | None = None

    @model_validator(mode="after")
    def _check_swap(self) -> "Transaction":
        if (self.kind == TransactionKind.SWAP) != (self.swap is not None):
            msg = "swap legs must be present exactly when kind is swap"
            raise ValueError(msg)
        return self


class TransactionPage(BaseModel):
    """One page of classified wallet transactions."""

    transactions: list[Transaction] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


class RiskLevel(StrEnum):
    """Coarse risk bucket derived from the risk score."""

    LOW = "Low Risk"
    MEDIUM = "Medium Risk"
    HIGH = "High Risk"


class TokenDetails(BaseModel):
    """Identity and market snapshot of a token."""

    mint: str
    name: str
    symbol: str
    logo_uri: str | None = None
    price: Decimal = Decimal("0")
    price_change_24h: Decimal = Decimal("0")
    market_cap: Decimal = Decimal("0")
    status: str = "Active"


class PricePoint(BaseModel):
    """Price observation at a unix timestamp (milliseconds)."""

    timestamp: int
    price: Decimal


class TopHolder(BaseModel):
    """Large token account and its share of supply."""

    address: str
    balance: Decimal
    percentage: Decimal


class SecurityAnalysis(BaseModel):
    """Heuristic risk assessment of a token."""

    risk_score: int = Field(ge=1, le=10)
    risk_level: RiskLevel
    description: str
    has_liquidity: bool
    has_valid_metadata: bool
    is_verified: bool


class TradeData(BaseModel):
    """24h trading activity of a token's most liquid pair."""

    volume_24h: Decimal = Decimal("0")
    buys_24h: int = 0
    sells_24h: int = 0
    liquidity: Decimal = Decimal("0")


class TokenAnalytics(BaseModel):
    """
    Risk and trading summary of a token.

    Attributes
    ----------
    details : TokenDetails
        Identity and market snapshot
    price_history : list[PricePoint]
        Observed or directly implied price points
    top_holders : list[TopHolder]
        Largest token accounts
    security : SecurityAnalysis
        Heuristic risk assessment
    trade_data : TradeData
        24h trading activity
    total_holders : int | None
        Holder count, or None when no source can provide it
    is_data_available : bool
        Whether market data was obtained

    """

    details: TokenDetails
    price_history: list[PricePoint] = Field(default_factory=list)
    top_holders: list[TopHolder] = Field(default_factory=list)
    security: SecurityAnalysis
    trade_data: TradeData = Field(default_factory=TradeData)
    total_holders: int | None = None
    is_data_available: bool = False
