"""
Command-line interface for the OTC ledger on-chain reconciliation tool.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from . import __version__
from .chain.clients import EtherscanClient, TronScanClient
from .config import ReconConfig, generate_default_config, load_config
from .matching.engine import ReconciliationEngine, list_inconsistencies
from .models.chain import ChainObservation
from .models.outcome import ReconciliationRun, ReconciliationSummary
from .parsers.ledger_parser import LedgerParser
from .utils.exceptions import ConfigurationError, ReconciliationError
from .utils.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Reconcile OTC ledger hashes against TRC20 and ERC20 stablecoin transfers."""
    pass


@main.command()
@click.argument("ledger_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("--delay-ms", type=int, default=None, help="Override pause between hash queries")
@click.option("--etherscan-key", default=None, help="Etherscan API key (enables ERC20)")
@click.option("--sheet", default=None, help="Excel sheet name (defaults to the first)")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write the log to a file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def reconcile(
    ledger_file: Path,
    config: Optional[Path],
    delay_ms: Optional[int],
    etherscan_key: Optional[str],
    sheet: Optional[str],
    log_file: Optional[Path],
    verbose: bool,
):
    """
    Check every hash of an OTC ledger on-chain.

    LEDGER_FILE: CSV or Excel export with Cliente, Valor ME and Hash columns
    """
    recon_config = _load(config, etherscan_key)
    _setup_logging(recon_config, verbose, log_file)

    if delay_ms is not None:
        recon_config.pipeline.delay_ms = delay_ms
    if sheet:
        recon_config.input.ledger.sheet_name = sheet

    try:
        load = LedgerParser(recon_config).parse_file(ledger_file)

        with ReconciliationEngine(recon_config) as engine, Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Checking hashes...", total=None)

            def _on_progress(completed: int, total: int) -> None:
                progress.update(task, completed=completed, total=total)

            run = engine.reconcile(load.rows, progress=_on_progress)
            run.rows_without_hash.extend(load.rows_without_hash)
            summary = engine.generate_summary(run)

        _display_summary(summary)
        _display_inconsistencies(run)

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("check-hash")
@click.argument("tx_hash")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--etherscan-key", default=None, help="Etherscan API key (enables ERC20)")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def check_hash(tx_hash: str, config: Optional[Path], etherscan_key: Optional[str], verbose: bool):
    """
    Look up one transaction hash on both networks.

    TX_HASH: Transaction hash, with or without 0x
    """
    recon_config = _load(config, etherscan_key)
    _setup_logging(recon_config, verbose, None)

    with ReconciliationEngine(recon_config) as engine:
        tron, ethereum = engine.check_hash(tx_hash)

    table = Table(title=f"Hash {tx_hash}")
    table.add_column("Network")
    table.add_column("State")
    table.add_column("Amount", justify="right")
    table.add_column("Currency")
    table.add_column("From")
    table.add_column("To")

    table.add_row(TronScanClient.network.value, *_observation_cells(tron))
    table.add_row(EtherscanClient.network.value, *_observation_cells(ethereum))

    console.print(table)
    if tron is None and ethereum is None:
        console.print("[yellow]Not found on either network[/yellow]")
        sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _load(config_path: Optional[Path], etherscan_key: Optional[str]) -> ReconConfig:
    try:
        recon_config = load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    if etherscan_key:
        recon_config.networks.etherscan.api_key = etherscan_key
    return recon_config


def _setup_logging(config: ReconConfig, verbose: bool, log_file: Optional[Path]) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.INFO)
    if log_file is None and config.logging.log_file:
        log_file = Path(config.logging.log_file)
    setup_logging(level, log_file=log_file, log_format=config.logging.format)


def _observation_cells(observation: Optional[ChainObservation]) -> list[str]:
    if observation is None:
        return ["not found", "-", "-", "-", "-"]
    return [
        observation.state,
        _fmt(observation.amount),
        observation.currency.value if observation.currency else "-",
        observation.sender or "-",
        observation.receiver or "-",
    ]


def _fmt(amount: Optional[Decimal]) -> str:
    return f"{amount:,.2f}" if amount is not None else "-"


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Distinct Hashes", str(summary.total_hashes))
    table.add_row("Rows Without Hash", str(summary.rows_without_hash))
    for classification, count in sorted(summary.counts_by_classification.items()):
        table.add_row(classification, str(count))
    for flag, count in sorted(summary.counts_by_flag.items()):
        table.add_row(flag, str(count))
    table.add_row("Ledger Total", _fmt(summary.ledger_total))
    table.add_row("On-chain Total", _fmt(summary.chain_total))
    table.add_row("Match Rate", f"{summary.match_rate:.1f}%")
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


def _display_inconsistencies(run: ReconciliationRun) -> None:
    """List every finding that needs attention."""
    items = list_inconsistencies(run.outcomes)
    if not items and not run.rows_without_hash:
        console.print("\n[green]No inconsistencies found[/green]")
        return

    if items:
        table = Table(title="Inconsistencies")
        table.add_column("Type", style="yellow")
        table.add_column("Hash")
        table.add_column("Clients")
        table.add_column("Ledger", justify="right")
        table.add_column("On-chain", justify="right")
        table.add_column("Details")

        for item in items:
            table.add_row(
                item.kind,
                item.tx_hash[:18] + "...",
                ", ".join(item.clients),
                _fmt(item.ledger_amount),
                _fmt(item.chain_amount),
                item.remediation or item.reason or "",
            )
        console.print(table)

    if run.rows_without_hash:
        console.print(f"\n[yellow]{len(run.rows_without_hash)} row(s) without hash:[/yellow]")
        for row in run.rows_without_hash:
            label = row.client or "(no name)"
            console.print(f"  row {row.row_number or '?'}: {label} {_fmt(row.amount)}")


if __name__ == "__main__":
    main()
