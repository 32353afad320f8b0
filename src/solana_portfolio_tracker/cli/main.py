"""CLI for solana portfolio tracker."""

import json
import logging
import threading
from decimal import Decimal
from enum import StrEnum
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from solana_portfolio_tracker.config import load_config
from solana_portfolio_tracker.core.exceptions import TrackerError
from solana_portfolio_tracker.core.models import (
    TokenAnalytics,
    Transaction,
    TransactionKind,
    TransactionPage,
    WalletBalance,
)
from solana_portfolio_tracker.core.service import WalletService
from solana_portfolio_tracker.core.validation import validate_address
from solana_portfolio_tracker.utils.formatting import (
    format_currency,
    format_large_number,
    format_time_ago,
    shorten_address,
)

# Install rich traceback handler
install(show_locals=False)

HELIUS_RPC_URL = "https://mainnet.helius-rpc.com/?api-key={api_key}"
NOISY_LOGGERS = ("httpx", "httpcore")

app = typer.Typer(
    name="solana-portfolio-tracker",
    help="Solana wallet balances, transaction history and token analytics from public RPC and market data APIs",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


RpcUrlOption = typer.Option(None, "--rpc-url", envvar="SOLANA_RPC_URL", help="Solana JSON-RPC endpoint")
HeliusKeyOption = typer.Option(
    None,
    "--helius-api-key",
    envvar="HELIUS_API_KEY",
    help="Helius API key (used when no RPC URL is given)",
)
ConfigOption = typer.Option(None, "--config", exists=True, dir_okay=False, help="YAML file overriding defaults")
FormatOption = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format")
DebugOption = typer.Option(False, "--debug", "-d", help="Enable debug output")


def _configure_logging(debug: bool) -> None:
    """Route logging through rich; quieten HTTP client loggers."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _build_service(rpc_url: str | None, helius_api_key: str | None, config_path: Path | None) -> WalletService:
    """
    Create the wallet service from defaults, a config file and CLI options.

    Raises
    ------
    typer.Exit
        If the configuration cannot be loaded

    """
    overrides = {}
    if rpc_url:
        overrides["providers"] = {"rpc_url": rpc_url}
    elif helius_api_key:
        overrides["providers"] = {"rpc_url": HELIUS_RPC_URL.format(api_key=helius_api_key)}

    try:
        config = load_config(config_path, **overrides)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        console.print(f"[bold red]Invalid configuration:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    return WalletService(config)


def _fail(error: Exception, debug: bool) -> None:
    """Report a command failure and exit."""
    console.print(f"[bold red]Error:[/bold red] {error}")
    if debug:
        # Rich traceback will automatically handle this
        raise error
    raise typer.Exit(1) from error


@app.command()
def balance(
    address: str = typer.Argument(..., help="Wallet address to query"),
    rpc_url: str | None = RpcUrlOption,
    helius_api_key: str | None = HeliusKeyOption,
    config: Path | None = ConfigOption,
    format: OutputFormat = FormatOption,
    debug: bool = DebugOption,
) -> None:
    """
    Show the SOL balance and token holdings of a wallet with USD values.

    Examples:

        solana-portfolio-tracker balance 9WzD...AWWM

        solana-portfolio-tracker balance 9WzD...AWWM --format json
    """
    _configure_logging(debug)
    service = _build_service(rpc_url, helius_api_key, config)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Fetching wallet balance...", total=100)
            wallet = service.get_wallet_balance(address, progress=progress, task_id=task)

        if format == OutputFormat.JSON:
            _output_json(wallet)
        else:
            _output_balance_table(wallet)
    except TrackerError as e:
        _fail(e, debug)
    finally:
        service.close()


@app.command()
def transactions(
    address: str = typer.Argument(..., help="Wallet address to query"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=1000, help="Signatures per page"),
    before: str | None = typer.Option(None, "--before", help="Cursor printed by the previous page"),
    rpc_url: str | None = RpcUrlOption,
    helius_api_key: str | None = HeliusKeyOption,
    config: Path | None = ConfigOption,
    format: OutputFormat = FormatOption,
    debug: bool = DebugOption,
) -> None:
    """
    Show recent sends, receives and swaps of a wallet.

    Examples:

        solana-portfolio-tracker transactions 9WzD...AWWM --limit 10

        solana-portfolio-tracker transactions 9WzD...AWWM --before 5h6x...
    """
    _configure_logging(debug)
    service = _build_service(rpc_url, helius_api_key, config)

    try:
        with console.status("Fetching transactions..."):
            page = service.get_wallet_transactions(address, limit=limit, before=before)

        if format == OutputFormat.JSON:
            _output_json(page)
        else:
            _output_transactions_table(address, page)
    except TrackerError as e:
        _fail(e, debug)
    finally:
        service.close()


@app.command()
def token(
    mint: str = typer.Argument(..., help="Token mint address (or SOL)"),
    rpc_url: str | None = RpcUrlOption,
    helius_api_key: str | None = HeliusKeyOption,
    config: Path | None = ConfigOption,
    format: OutputFormat = FormatOption,
    debug: bool = DebugOption,
) -> None:
    """
    Show market data, top holders and a risk assessment for a token.

    Examples:

        solana-portfolio-tracker token SOL

        solana-portfolio-tracker token DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263
    """
    _configure_logging(debug)
    service = _build_service(rpc_url, helius_api_key, config)

    try:
        with console.status("Analysing token..."):
            analytics = service.get_token_analytics(mint)

        if format == OutputFormat.JSON:
            _output_json(analytics)
        else:
            _output_analytics(analytics)
    except TrackerError as e:
        _fail(e, debug)
    finally:
        service.close()


@app.command()
def watch(
    address: str = typer.Argument(..., help="Wallet address to watch"),
    interval: float | None = typer.Option(None, "--interval", "-i", min=1, help="Seconds between refreshes"),
    rpc_url: str | None = RpcUrlOption,
    helius_api_key: str | None = HeliusKeyOption,
    config: Path | None = ConfigOption,
    debug: bool = DebugOption,
) -> None:
    """
    Refresh a wallet balance periodically until interrupted.

    A refresh is skipped while the previous one is still running.
    """
    _configure_logging(debug)
    service = _build_service(rpc_url, helius_api_key, config)
    stop_event = threading.Event()

    try:
        poller = service.poller(validate_address(address), interval)
        console.print(f"[bold cyan]Watching[/bold cyan] {address} every {poller.interval:g}s (Ctrl+C to stop)")
        poller.run(stop_event, on_update=_output_balance_table)
    except KeyboardInterrupt:
        stop_event.set()
        console.print("\n[dim]Stopped[/dim]")
    except TrackerError as e:
        _fail(e, debug)
    finally:
        service.close()


def _output_balance_table(wallet: WalletBalance) -> None:
    """Output wallet balance as rich table."""
    table = Table(
        title=f"Portfolio for {shorten_address(wallet.address)}",
        show_header=True,
        header_style="bold magenta",
    )

    table.add_column("Token", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Balance", style="white", justify="right")
    table.add_column("Price", style="yellow", justify="right")
    table.add_column("USD Value", style="bold green", justify="right")

    table.add_row(
        "SOL",
        "Solana",
        f"{wallet.native_amount:,.4f}",
        format_currency(wallet.native_price_usd),
        format_currency(wallet.native_value_usd, max_fraction_digits=2),
    )
    for holding in wallet.holdings:
        table.add_row(
            holding.symbol or shorten_address(holding.mint),
            holding.name or "-",
            format_large_number(holding.ui_amount, decimals=4),
            format_currency(holding.price_usd) if holding.price_usd else "-",
            format_currency(holding.value_usd, max_fraction_digits=2) if holding.price_usd else "-",
        )

    console.print("\n")
    console.print(table)

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green")
    summary_table.add_row("Total Value:", format_currency(wallet.total_value_usd, max_fraction_digits=2))
    summary_table.add_row("Tokens:", str(len(wallet.holdings)))

    console.print(summary_table)
    console.print("\n")


def _describe_amount(tx: Transaction) -> str:
    if tx.kind == TransactionKind.SWAP and tx.swap is not None:
        swap = tx.swap
        sold = f"{format_large_number(swap.from_amount, decimals=4)} {swap.from_symbol}"
        bought = f"{format_large_number(swap.to_amount, decimals=4)} {swap.to_symbol}"
        return f"{sold} → {bought}"
    sign = "+" if tx.kind == TransactionKind.RECEIVE else "-"
    return f"{sign}{format_large_number(tx.amount, decimals=4)} {tx.symbol}"


def _output_transactions_table(address: str, page: TransactionPage) -> None:
    """Output a transaction page as rich table."""
    if not page.transactions:
        console.print("\n[yellow]No transactions found[/yellow]")
    else:
        table = Table(
            title=f"Transactions for {shorten_address(address)}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("When", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Amount", style="white", justify="right")
        table.add_column("Counterparty", style="blue")
        table.add_column("Signature", style="dim")

        styles = {TransactionKind.SEND: "red", TransactionKind.RECEIVE: "green", TransactionKind.SWAP: "yellow"}
        for tx in page.transactions:
            counterparty = tx.counterparty if tx.counterparty else "-"
            table.add_row(
                format_time_ago(tx.timestamp) if tx.timestamp else "-",
                f"[{styles[tx.kind]}]{tx.kind.value}[/{styles[tx.kind]}]",
                _describe_amount(tx),
                shorten_address(counterparty),
                shorten_address(tx.signature),
            )

        console.print("\n")
        console.print(table)

    if page.has_more and page.next_cursor:
        console.print(f"\n[dim]More available: --before {page.next_cursor}[/dim]\n")


def _output_analytics(analytics: TokenAnalytics) -> None:
    """Output token analytics as rich tables."""
    details = analytics.details
    trade = analytics.trade_data
    security = analytics.security

    overview = Table(title=f"{details.name} ({details.symbol})", show_header=False, header_style="bold magenta")
    overview.add_column("Label", style="bold")
    overview.add_column("Value", style="white")
    overview.add_row("Mint", details.mint)
    overview.add_row("Price", format_currency(details.price))
    overview.add_row("24h Change", f"{details.price_change_24h:+.2f}%")
    overview.add_row("Market Cap", format_currency(details.market_cap, short_form=True))
    overview.add_row("24h Volume", format_currency(trade.volume_24h, short_form=True))
    overview.add_row("Liquidity", format_currency(trade.liquidity, short_form=True))
    overview.add_row("24h Trades", f"{trade.buys_24h} buys / {trade.sells_24h} sells")
    holders_count = analytics.total_holders
    overview.add_row("Holders", "N/A" if holders_count is None else format_large_number(holders_count))
    overview.add_row("Risk", f"{security.risk_level.value} ({security.risk_score}/10)")
    overview.add_row("Status", details.status if analytics.is_data_available else f"{details.status} (no market data)")

    console.print("\n")
    console.print(overview)
    console.print(f"[dim]{security.description}[/dim]")

    if analytics.top_holders:
        holders = Table(title="Top Holders", show_header=True, header_style="bold magenta")
        holders.add_column("#", justify="right")
        holders.add_column("Account", style="cyan")
        holders.add_column("Balance", justify="right")
        holders.add_column("Share", style="yellow", justify="right")
        for rank, holder in enumerate(analytics.top_holders, start=1):
            holders.add_row(
                str(rank),
                shorten_address(holder.address),
                format_large_number(holder.balance),
                f"{holder.percentage:.2f}%",
            )
        console.print("\n")
        console.print(holders)

    console.print("\n")


def _output_json(model) -> None:
    """Output a model as JSON."""

    def decimal_default(obj):
        if isinstance(obj, Decimal):
            return str(obj)
        raise TypeError

    data = model.model_dump(mode="json")
    json_str = json.dumps(data, indent=2, default=decimal_default)
    console.print(json_str)


if __name__ == "__main__":
    app()
