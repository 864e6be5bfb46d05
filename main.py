"""
Main CLI entry point for Farm Sync.

Each command is a one-shot job meant to be run by a scheduler; it exits 0 on
success and 1 on any failure.
"""

import logging
from typing import Callable, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from config import NetworkConfig, load_network_config
from config.settings import LOG_FILE, LOG_LEVEL, PRIVATE_KEY
from farmsync.chain import ChainReader, ChainWriter, connect, load_account
from farmsync.errors import FarmSyncError
from farmsync.models import PublishResult
from farmsync.reconciler import FarmReconciler, FixedFarmReconciler
from farmsync.utils import setup_logging, truncate_address
from farmsync.voting_period import VotingPeriodKeeper

console = Console()
logger = logging.getLogger(__name__)


def build_services(chain: Optional[str], dry_run: bool) -> Tuple[NetworkConfig, ChainReader, ChainWriter]:
    """Load config once and wire the read/write clients for one run."""
    network = load_network_config(chain)
    w3 = connect(network)
    account = load_account(PRIVATE_KEY) if PRIVATE_KEY else None
    reader = ChainReader(w3, network)
    writer = ChainWriter(w3, network, account=account, dry_run=dry_run)
    if account:
        console.print(f"[cyan]Operator: {account.address}[/cyan]")
    return network, reader, writer


def display_result(result: PublishResult) -> None:
    table = Table(title="Published Farm Weights")
    table.add_column("#", justify="right")
    table.add_column("Pool Address")
    table.add_column("Farm ID", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Weight (wei)", justify="right")

    for idx, (entry, weight_wei) in enumerate(zip(result.entries, result.weights), start=1):
        table.add_row(
            str(idx), truncate_address(entry.pool_address), str(entry.farm_id), f"{entry.weight:,}", str(weight_wei)
        )

    console.print(table)
    console.print(f"Previous pids settled: {result.previous_pool_ids}")


def execute(opts: dict, job: Callable[[NetworkConfig, ChainReader, ChainWriter], None]) -> bool:
    """Run one job and report its outcome instead of letting errors escape."""
    try:
        network, reader, writer = build_services(opts["chain"], opts["dry_run"])
        if opts["dry_run"]:
            console.print("[bold yellow]═══ DRY RUN MODE - NO TRANSACTION SENT ═══[/bold yellow]")
        job(network, reader, writer)
        return True
    except FarmSyncError as e:
        logger.error(f"{type(e).__name__}: {e}")
        console.print(f"[red]✗ {e}[/red]")
        return False
    except Exception as e:
        logger.exception("Job failed")
        console.print(f"[red]✗ Job failed: {e}[/red]")
        return False


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--chain", default=None, help="Network key in config/networks.json (default: $CHAIN)")
@click.option("--dry-run", is_flag=True, help="Log writes instead of sending them")
@click.pass_context
def cli(ctx, debug, chain, dry_run):
    """Farm Sync - keep farms and Voter weights in line with governance votes."""
    log_level = "DEBUG" if debug else LOG_LEVEL
    setup_logging(log_level, LOG_FILE or None)
    ctx.obj = {"chain": chain, "dry_run": dry_run}


@cli.command("sync-farms")
@click.pass_context
def sync_farms(ctx):
    """Provision farms for voted pools and publish vote weights."""

    def job(network, reader, writer):
        console.print(f"[bold]Syncing voted pools on {network.name} (vote limit {network.min_votes})...[/bold]")
        display_result(FarmReconciler(network, reader, writer).run())

    ok = execute(ctx.obj, job)
    if ok:
        console.print("[bold green]✓ Farm sync complete[/bold green]")
    ctx.exit(0 if ok else 1)


@cli.command("set-fixed-farms")
@click.pass_context
def set_fixed_farms(ctx):
    """Provision farms for the configured fixed pools and publish their weights."""

    def job(network, reader, writer):
        console.print(f"[bold]Setting {len(network.fixed_farms)} fixed farms on {network.name}...[/bold]")
        display_result(FixedFarmReconciler(network, reader, writer).run())

    ok = execute(ctx.obj, job)
    if ok:
        console.print("[bold green]✓ Fixed farms set[/bold green]")
    ctx.exit(0 if ok else 1)


@cli.command("start-voting-period")
@click.pass_context
def start_voting_period(ctx):
    """Start a new voting period if the current one has ended."""

    def job(network, reader, writer):
        if VotingPeriodKeeper(reader, writer).ensure_voting_period_advanced():
            console.print("[green]✓ New voting period started[/green]")
        else:
            console.print("[yellow]Current voting period still open; nothing to do[/yellow]")

    ctx.exit(0 if execute(ctx.obj, job) else 1)


if __name__ == "__main__":
    cli()
