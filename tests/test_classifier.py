"""Tests for wallet-relative transaction classification."""

from decimal import Decimal

import pytest

from solana_portfolio_tracker.core.classifier import (
    asset_deltas,
    classify,
    detect_swap,
    find_counterparty,
    native_delta,
    symbol_for,
    token_deltas,
)
from solana_portfolio_tracker.core.models import UNKNOWN, SwapStatus, TransactionKind
from solana_portfolio_tracker.rpc.schemas import ParsedInstruction

OWNER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
OTHER = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
SOL = "So11111111111111111111111111111111111111112"
POPCAT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"
JUPITER_V6 = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
SYSTEM_PROGRAM = "11111111111111111111111111111111"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

SOL_LAMPORTS = 1_000_000_000


def system_transfer(source: str, destination: str) -> ParsedInstruction:
    return ParsedInstruction(
        program_id=SYSTEM_PROGRAM,
        program="system",
        type="transfer",
        info={"source": source, "destination": destination, "lamports": SOL_LAMPORTS},
    )


class TestNativeTransfers:
    """SOL sends and receives."""

    def test_send_reports_amount_net_of_fee(self, build_tx):
        """A SOL send deducts the fee from the owner's balance change."""
        tx = build_tx(
            native={OWNER: (10 * SOL_LAMPORTS, 9 * SOL_LAMPORTS - 5000), OTHER: (0, SOL_LAMPORTS)},
            instructions=[system_transfer(OWNER, OTHER)],
        )

        result = classify(tx, OWNER)

        assert result.kind == TransactionKind.SEND
        assert result.amount == Decimal("1")
        assert result.fee == Decimal("0.000005")
        assert result.mint == SOL
        assert result.symbol == "SOL"
        assert result.counterparty == OTHER
        assert result.swap is None

    def test_receive_has_no_fee(self, build_tx):
        """The receiver did not pay the fee, so none is reported."""
        tx = build_tx(native={OWNER: (SOL_LAMPORTS, 3 * SOL_LAMPORTS), OTHER: (5 * SOL_LAMPORTS, 3 * SOL_LAMPORTS)})

        result = classify(tx, OWNER)

        assert result.kind == TransactionKind.RECEIVE
        assert result.amount == Decimal("2")
        assert result.fee is None
        assert result.counterparty == OTHER

    def test_dust_below_threshold_is_ignored(self, build_tx):
        """A change of at most 0.001 SOL is not a transfer."""
        tx = build_tx(native={OWNER: (SOL_LAMPORTS, SOL_LAMPORTS + 1_000_000)})

        assert classify(tx, OWNER) is None

    def test_fee_only_transaction_is_dropped(self, build_tx):
        """Paying only the fee is not economically relevant."""
        assert classify(build_tx(), OWNER) is None


class TestTokenTransfers:
    """SPL token sends and receives."""

    def test_receive_new_token_account(self, build_tx):
        """An account created by the transfer has no pre balance."""
        tx = build_tx(
            tokens={(OWNER, USDC): (None, 25_000_000, 6)},
            instructions=[
                ParsedInstruction(
                    program_id=TOKEN_PROGRAM,
                    program="spl-token",
                    type="transferChecked",
                    info={"authority": OTHER, "destination": "DestTokenAccount"},
                )
            ],
        )

        result = classify(tx, OWNER)

        assert result.kind == TransactionKind.RECEIVE
        assert result.amount == Decimal("25")
        assert result.mint == USDC
        assert result.symbol == "USDC"
        assert result.counterparty == OTHER
        assert result.fee is None

    def test_send_reports_fee(self, build_tx):
        """A token send carries the fee in SOL."""
        tx = build_tx(tokens={(OWNER, BONK): (1_000_000_000, 400_000_000, 5)})

        result = classify(tx, OWNER)

        assert result.kind == TransactionKind.SEND
        assert result.amount == Decimal("6000")
        assert result.symbol == "BONK"
        assert result.fee == Decimal("0.000005")
        assert result.counterparty == UNKNOWN

    def test_other_owners_are_ignored(self, build_tx):
        """Balances of accounts owned by someone else do not count."""
        tx = build_tx(tokens={(OTHER, USDC): (0, 5_000_000, 6)})

        assert classify(tx, OWNER) is None

    def test_change_below_epsilon_is_ignored(self, build_tx):
        """Token changes of at most 1e-6 are noise."""
        tx = build_tx(tokens={(OWNER, SOL): (1_000_000_000, 1_000_000_001, 9)})

        assert classify(tx, OWNER) is None

    def test_unknown_mint_uses_prefix_symbol(self, build_tx):
        """Without resolved metadata the symbol is the upper-cased mint prefix."""
        tx = build_tx(tokens={(OWNER, POPCAT): (None, 5_000_000_000, 9)})

        assert classify(tx, OWNER).symbol == "7GCI"

    def test_resolved_symbols_take_precedence(self, build_tx):
        """A provided symbol mapping overrides the fallbacks."""
        tx = build_tx(tokens={(OWNER, POPCAT): (None, 5_000_000_000, 9)})

        assert classify(tx, OWNER, {POPCAT: "POPCAT"}).symbol == "POPCAT"


class TestSwaps:
    """Swap detection and leg extraction."""

    def test_resolved_swap(self, build_tx):
        """One asset out and one in through a swap program gives both legs."""
        tx = build_tx(
            native={OWNER: (10 * SOL_LAMPORTS, 9 * SOL_LAMPORTS - 5000)},
            tokens={(OWNER, USDC): (None, 150_000_000, 6)},
            programs=[JUPITER_V6],
        )

        result = classify(tx, OWNER)

        assert result.kind == TransactionKind.SWAP
        assert result.swap.status == SwapStatus.RESOLVED
        assert result.swap.from_mint == SOL
        assert result.swap.from_symbol == "SOL"
        assert result.swap.from_amount == Decimal("1.000005")
        assert result.swap.to_mint == USDC
        assert result.swap.to_amount == Decimal("150")
        assert result.mint == SOL
        assert result.amount == result.swap.from_amount
        assert result.fee == Decimal("0.000005")

    def test_token_to_token_swap(self, build_tx):
        """Native balance noise does not interfere with a token pair swap."""
        tx = build_tx(
            tokens={(OWNER, USDC): (100_000_000, 0, 6), (OWNER, BONK): (None, 500_000_000_000, 5)},
            programs=[JUPITER_V6],
        )

        swap = detect_swap(tx, OWNER)

        assert swap.status == SwapStatus.RESOLVED
        assert (swap.from_symbol, swap.from_amount) == ("USDC", Decimal("100"))
        assert (swap.to_symbol, swap.to_amount) == ("BONK", Decimal("5000000"))

    def test_outflow_only_is_partial(self, build_tx):
        """Only the sold side is known; the bought side is Unknown."""
        tx = build_tx(tokens={(OWNER, USDC): (100_000_000, 0, 6)}, programs=[JUPITER_V6])

        result = classify(tx, OWNER)

        assert result.swap.status == SwapStatus.PARTIAL
        assert result.swap.from_mint == USDC
        assert result.swap.to_mint == UNKNOWN
        assert result.swap.to_symbol == UNKNOWN
        assert result.swap.to_amount == Decimal("0")
        assert result.mint == USDC

    def test_inflow_only_is_partial(self, build_tx):
        """Only the bought side is known; the transaction reports it."""
        tx = build_tx(tokens={(OWNER, BONK): (None, 500_000_000_000, 5)}, programs=[JUPITER_V6])

        result = classify(tx, OWNER)

        assert result.swap.status == SwapStatus.PARTIAL
        assert result.swap.from_mint == UNKNOWN
        assert result.swap.from_amount == Decimal("0")
        assert result.mint == BONK
        assert result.amount == Decimal("5000000")

    def test_multi_leg_is_partial_with_largest_outflow(self, build_tx):
        """More than two moved assets keeps the largest outflow."""
        tx = build_tx(
            tokens={
                (OWNER, USDC): (100_000_000, 90_000_000, 6),
                (OWNER, BONK): (900_000_000_000, 100_000_000_000, 5),
                (OWNER, POPCAT): (None, 1_000_000_000, 9),
            },
            programs=[JUPITER_V6],
        )

        swap = detect_swap(tx, OWNER)

        assert swap.status == SwapStatus.PARTIAL
        assert swap.from_mint == BONK
        assert swap.from_amount == Decimal("8000000")

    def test_swap_program_required(self, build_tx):
        """Swap-shaped balance changes without a swap program are not a swap."""
        tx = build_tx(
            tokens={(OWNER, USDC): (100_000_000, 0, 6), (OWNER, BONK): (None, 500_000_000_000, 5)},
        )

        result = classify(tx, OWNER)

        assert result.kind != TransactionKind.SWAP
        assert result.swap is None

    def test_swap_program_without_movement_is_not_a_swap(self, build_tx):
        """Invoking a swap program without moving the owner's assets is nothing."""
        tx = build_tx(programs=[JUPITER_V6])

        assert detect_swap(tx, OWNER) is None
        assert classify(tx, OWNER) is None


class TestCounterparty:
    """Best-effort counterparty extraction."""

    def test_transfer_receive_uses_source(self, build_tx):
        tx = build_tx(instructions=[system_transfer(OTHER, OWNER)])

        assert find_counterparty(tx, OWNER, is_receive=True) == OTHER

    def test_transfer_send_falls_back_to_authority(self, build_tx):
        tx = build_tx(
            instructions=[
                ParsedInstruction(
                    program_id=TOKEN_PROGRAM,
                    type="transfer",
                    info={"source": "OwnerTokenAccount", "authority": OTHER},
                )
            ]
        )

        assert find_counterparty(tx, OWNER, is_receive=False) == OTHER

    def test_transfer_checked_send_uses_destination(self, build_tx):
        tx = build_tx(
            instructions=[
                ParsedInstruction(
                    program_id=TOKEN_PROGRAM,
                    type="transferChecked",
                    info={"authority": OWNER, "destination": OTHER},
                )
            ]
        )

        assert find_counterparty(tx, OWNER, is_receive=False) == OTHER

    def test_balance_scan_requires_opposite_move(self, build_tx):
        """Only accounts whose SOL moved the other way qualify."""
        tx = build_tx(native={OWNER: (SOL_LAMPORTS, 0), OTHER: (SOL_LAMPORTS, 0)})

        assert find_counterparty(tx, OWNER, is_receive=False) == UNKNOWN
        assert find_counterparty(tx, OWNER, is_receive=True) == OTHER


class TestDeltas:
    """Balance delta helpers."""

    def test_owner_missing_from_accounts(self, build_tx):
        tx = build_tx(native={OTHER: (0, SOL_LAMPORTS)})

        assert native_delta(tx, OWNER) is None
        assert asset_deltas(tx, OWNER) == {}

    def test_token_accounts_of_same_mint_are_summed(self, build_tx):
        tx = build_tx(tokens={(OWNER, USDC): (1_000_000, 3_000_000, 6)})
        tx.pre_token_balances.append(tx.pre_token_balances[0].model_copy(update={"account_index": 7}))

        assert token_deltas(tx, OWNER) == {USDC: Decimal("1")}

    def test_native_merges_into_wrapped_mint(self, build_tx):
        tx = build_tx(native={OWNER: (SOL_LAMPORTS, 3 * SOL_LAMPORTS)}, tokens={(OWNER, SOL): (0, SOL_LAMPORTS, 9)})

        assert asset_deltas(tx, OWNER) == {SOL: Decimal("3")}

    @pytest.mark.parametrize(
        "mint,expected",
        [(SOL, "SOL"), (USDC, "USDC"), (POPCAT, "7GCI")],
    )
    def test_symbol_for(self, mint, expected):
        assert symbol_for(mint) == expected


def test_classification_is_deterministic(build_tx):
    """Identical input always yields an identical classification."""
    tx = build_tx(
        native={OWNER: (10 * SOL_LAMPORTS, 9 * SOL_LAMPORTS - 5000)},
        tokens={(OWNER, USDC): (None, 150_000_000, 6)},
        programs=[JUPITER_V6],
    )

    assert classify(tx, OWNER) == classify(tx, OWNER)


def test_failed_transaction_is_dropped(build_tx):
    """Failed transactions never produce a classification."""
    tx = build_tx(native={OWNER: (10 * SOL_LAMPORTS, 5 * SOL_LAMPORTS)}, failed=True)

    assert classify(tx, OWNER) is None
