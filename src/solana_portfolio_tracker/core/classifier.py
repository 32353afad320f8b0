"""
Wallet-relative classification of parsed ledger transactions.

Everything here is pure: the same transaction, owner and symbol mapping
always produce the same result, and nothing touches the network. Symbols
are resolved up front by the metadata resolver and passed in.
"""

from collections.abc import Mapping
from decimal import Decimal

from solana_portfolio_tracker.core.models import (
    UNKNOWN,
    SwapLeg,
    SwapStatus,
    Transaction,
    TransactionKind,
)
from solana_portfolio_tracker.data.addresses import (
    LAMPORTS_PER_SOL,
    NATIVE_MINT,
    SWAP_PROGRAM_IDS,
)
from solana_portfolio_tracker.data.loader import get_well_known_token
from solana_portfolio_tracker.rpc.schemas import ParsedTransaction

TOKEN_EPSILON = Decimal("0.000001")
NATIVE_THRESHOLD = Decimal("0.001")


def symbol_for(mint: str, symbols: Mapping[str, str] | None = None) -> str:
    """
    Display symbol of a mint.

    Parameters
    ----------
    mint : str
        Token mint address
    symbols : Mapping[str, str] | None
        Pre-resolved symbols, consulted first

    Returns
    -------
    str
        Resolved symbol, the static table symbol, or the mint prefix

    """
    if symbols and symbols.get(mint):
        return symbols[mint]
    token = get_well_known_token(mint)
    if token is not None:
        return token["symbol"]
    return mint[:4].upper()


def native_delta(tx: ParsedTransaction, owner: str) -> Decimal | None:
    """
    Change of the owner's SOL balance, in SOL.

    Returns
    -------
    Decimal | None
        Post minus pre balance, or None if the owner is not an account of the transaction

    """
    try:
        index = tx.account_keys.index(owner)
    except ValueError:
        return None
    if index >= len(tx.pre_balances) or index >= len(tx.post_balances):
        return None
    return Decimal(tx.post_balances[index] - tx.pre_balances[index]) / LAMPORTS_PER_SOL


def token_deltas(tx: ParsedTransaction, owner: str) -> dict[str, Decimal]:
    """
    Change of every token balance held by the owner, in UI units.

    Accounts of the same mint are summed. Mints keep the order in which they
    first appear in the pre then post balances.

    Parameters
    ----------
    tx : ParsedTransaction
        Parsed transaction
    owner : str
        Wallet address

    Returns
    -------
    dict[str, Decimal]
        Mapping of mint to balance change (may contain zeros)

    """
    deltas: dict[str, Decimal] = {}
    for balance in tx.pre_token_balances:
        if balance.owner == owner:
            amount = Decimal(balance.raw_amount) / (Decimal(10) ** balance.decimals)
            deltas[balance.mint] = deltas.get(balance.mint, Decimal("0")) - amount
    for balance in tx.post_token_balances:
        if balance.owner == owner:
            amount = Decimal(balance.raw_amount) / (Decimal(10) ** balance.decimals)
            deltas[balance.mint] = deltas.get(balance.mint, Decimal("0")) + amount
    return deltas


def asset_deltas(tx: ParsedTransaction, owner: str) -> dict[str, Decimal]:
    """
    Significant balance changes of the owner, native SOL included.

    Token changes count beyond 1e-6; the native change counts beyond 0.001
    SOL and is merged into the wrapped SOL mint.

    """
    deltas = {mint: delta for mint, delta in token_deltas(tx, owner).items() if abs(delta) > TOKEN_EPSILON}

    native = native_delta(tx, owner)
    if native is not None and abs(native) > NATIVE_THRESHOLD:
        deltas[NATIVE_MINT] = deltas.get(NATIVE_MINT, Decimal("0")) + native
        if abs(deltas[NATIVE_MINT]) <= TOKEN_EPSILON:
            del deltas[NATIVE_MINT]

    return deltas


def is_swap_program_invoked(tx: ParsedTransaction) -> bool:
    """True if any top-level instruction targets a known DEX or aggregator program."""
    return any(program_id in SWAP_PROGRAM_IDS for program_id in tx.program_ids)


def detect_swap(
    tx: ParsedTransaction,
    owner: str,
    symbols: Mapping[str, str] | None = None,
) -> SwapLeg | None:
    """
    Detect a swap and extract its legs.

    A transaction is a swap iff it invokes a known swap program and at least
    one of the owner's assets moved. Exactly one asset out and one asset in
    gives a resolved swap. Anything else (a single moved side, or more than
    two moved assets) gives a partial swap carrying the largest outflow, or
    the largest inflow when nothing flowed out.

    Parameters
    ----------
    tx : ParsedTransaction
        Parsed transaction
    owner : str
        Wallet address
    symbols : Mapping[str, str] | None
        Pre-resolved symbols

    Returns
    -------
    SwapLeg | None
        Swap legs, or None if the transaction is not a swap

    """
    if not is_swap_program_invoked(tx):
        return None

    deltas = asset_deltas(tx, owner)
    outflows = [(mint, delta) for mint, delta in deltas.items() if delta < 0]
    inflows = [(mint, delta) for mint, delta in deltas.items() if delta > 0]

    if len(outflows) == 1 and len(inflows) == 1:
        (from_mint, from_delta), (to_mint, to_delta) = outflows[0], inflows[0]
        return SwapLeg(
            from_mint=from_mint,
            from_symbol=symbol_for(from_mint, symbols),
            from_amount=-from_delta,
            to_mint=to_mint,
            to_symbol=symbol_for(to_mint, symbols),
            to_amount=to_delta,
            status=SwapStatus.RESOLVED,
        )

    if outflows:
        from_mint, from_delta = min(outflows, key=lambda item: item[1])
        return SwapLeg(
            from_mint=from_mint,
            from_symbol=symbol_for(from_mint, symbols),
            from_amount=-from_delta,
            to_mint=UNKNOWN,
            to_symbol=UNKNOWN,
            to_amount=Decimal("0"),
            status=SwapStatus.PARTIAL,
        )

    if inflows:
        to_mint, to_delta = max(inflows, key=lambda item: item[1])
        return SwapLeg(
            from_mint=UNKNOWN,
            from_symbol=UNKNOWN,
            from_amount=Decimal("0"),
            to_mint=to_mint,
            to_symbol=symbol_for(to_mint, symbols),
            to_amount=to_delta,
            status=SwapStatus.PARTIAL,
        )

    return None


def find_counterparty(tx: ParsedTransaction, owner: str, is_receive: bool) -> str:
    """
    Best-effort other party of a transfer.

    Parsed ``transfer`` and ``transferChecked`` instructions are checked
    first. Failing that, the first other account whose SOL balance moved the
    opposite way by more than 0.001 SOL is used.

    Parameters
    ----------
    tx : ParsedTransaction
        Parsed transaction
    owner : str
        Wallet address
    is_receive : bool
        True if the owner received the asset

    Returns
    -------
    str
        Counterparty address, or ``"Unknown"``

    """
    for ix in tx.instructions:
        source = ix.info.get("source")
        destination = ix.info.get("destination")
        authority = ix.info.get("authority")

        if ix.type == "transfer":
            if is_receive and source and source != owner:
                return source
            if not is_receive and destination and destination != owner:
                return destination
            if authority and authority != owner:
                return authority

        elif ix.type == "transferChecked":
            if is_receive and authority and authority != owner:
                return authority
            if not is_receive and destination and destination != owner:
                return destination

    count = min(len(tx.account_keys), len(tx.pre_balances), len(tx.post_balances))
    for index in range(count):
        address = tx.account_keys[index]
        if address == owner:
            continue
        change = Decimal(tx.post_balances[index] - tx.pre_balances[index]) / LAMPORTS_PER_SOL
        if (is_receive and change < -NATIVE_THRESHOLD) or (not is_receive and change > NATIVE_THRESHOLD):
            return address

    return UNKNOWN


def classify(
    tx: ParsedTransaction,
    owner: str,
    symbols: Mapping[str, str] | None = None,
) -> Transaction | None:
    """
    Classify a parsed transaction from the owner's point of view.

    Order of checks: failed transactions are dropped, then swaps, then
    native SOL transfers, then token transfers. A send of SOL reports the
    amount net of the fee.

    Parameters
    ----------
    tx : ParsedTransaction
        Parsed transaction
    owner : str
        Wallet address
    symbols : Mapping[str, str] | None
        Pre-resolved mint to symbol mapping

    Returns
    -------
    Transaction | None
        Classified transaction, or None if nothing economically relevant happened

    """
    if tx.failed:
        return None

    fee = Decimal(tx.fee) / LAMPORTS_PER_SOL
    timestamp = tx.block_time or 0

    swap = detect_swap(tx, owner, symbols)
    if swap is not None:
        if swap.from_mint != UNKNOWN:
            mint, symbol, amount = swap.from_mint, swap.from_symbol, swap.from_amount
        else:
            mint, symbol, amount = swap.to_mint, swap.to_symbol, swap.to_amount
        return Transaction(
            signature=tx.signature,
            kind=TransactionKind.SWAP,
            amount=amount,
            mint=mint,
            symbol=symbol,
            timestamp=timestamp,
            fee=fee,
            slot=tx.slot,
            swap=swap,
        )

    native = native_delta(tx, owner)
    if native is not None and abs(native) > NATIVE_THRESHOLD:
        is_receive = native > 0
        amount = abs(native)
        if not is_receive and amount > fee:
            amount -= fee
        return Transaction(
            signature=tx.signature,
            kind=TransactionKind.RECEIVE if is_receive else TransactionKind.SEND,
            amount=amount,
            mint=NATIVE_MINT,
            symbol=symbol_for(NATIVE_MINT, symbols),
            counterparty=find_counterparty(tx, owner, is_receive),
            timestamp=timestamp,
            fee=None if is_receive else fee,
            slot=tx.slot,
        )

    for mint, delta in token_deltas(tx, owner).items():
        if abs(delta) <= TOKEN_EPSILON:
            continue
        is_receive = delta > 0
        return Transaction(
            signature=tx.signature,
            kind=TransactionKind.RECEIVE if is_receive else TransactionKind.SEND,
            amount=abs(delta),
            mint=mint,
            symbol=symbol_for(mint, symbols),
            counterparty=find_counterparty(tx, owner, is_receive),
            timestamp=timestamp,
            fee=None if is_receive else fee,
            slot=tx.slot,
        )

    return None
