"""Live Monad explorer dashboard.

Polls every dashboard panel on its own interval and renders the last known
good data of each panel in the terminal. Panels whose last refresh failed
keep showing their previous data, marked as stale.

Usage:
    python -m src.live
    python -m src.live --once
    python -m src.live --search 0x...
"""

import asyncio
import signal
import sys

from argparse import ArgumentParser
from pathlib import Path
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel as RichPanel
from rich.table import Table

from src.aggregators.base import AggregatorContext, open_context
from src.data.models import (
    Block,
    DashboardMetrics,
    Deployment,
    EcosystemHealthMetrics,
    EventBatch,
    GasOverview,
    GasUsagePoint,
    TopContract,
    Transaction,
)
from src.helpers.logging import get_logger
from src.helpers.parsers import format_iso_time
from src.polling.panel import Panel, PanelState
from src.polling.panels import build_default_panels
from src.polling.shell import PollingShell
from src.search.search import SearchError, SearchResult, search


logger = get_logger(__name__)

REFRESH_PER_SECOND = 2
DEFAULT_CACHE_DIR = Path(".cache")


def _short(value: str | None, width: int = 14) -> str:
    if not value:
        return "-"
    return value if len(value) <= width else f"{value[: width - 4]}...{value[-4:]}"


def _table(title: str, *columns: str) -> Table:
    table = Table(title=title, expand=True)
    for column in columns:
        table.add_column(column)
    return table


def render_metrics(metrics: DashboardMetrics) -> Table:
    table = _table("Key Metrics", "Metric", "Value")
    table.add_row("Latest block", f"{metrics.latest_block:,}")
    table.add_row("Txs in last block", str(metrics.txs_in_last_block))
    table.add_row("Total txs (est.)", metrics.total_txs)
    table.add_row("Blocks / min", f"{metrics.blocks_per_min:.2f}")
    table.add_row("Txs / min", f"{metrics.txs_per_min:.2f}")
    table.add_row("Avg tx value", f"{metrics.avg_tx_value} MON")
    return table


def render_blocks(blocks: list[Block]) -> Table:
    table = _table("Latest Blocks", "Block", "Hash", "Txs", "Time")
    for block in blocks:
        table.add_row(
            f"{block.number:,}",
            _short(block.hash),
            str(block.transaction_count),
            format_iso_time(block.timestamp),
        )
    return table


def render_transactions(transactions: list[Transaction]) -> Table:
    table = _table("Latest Transactions", "Hash", "From", "To", "Value", "Status")
    for tx in transactions[:12]:
        status = {1: "[green]ok[/green]", 0: "[red]failed[/red]"}.get(tx.status, "?")
        table.add_row(
            _short(tx.hash), _short(tx.from_address), _short(tx.to), tx.value, status
        )
    return table


def render_gas(overview: GasOverview, history: list[GasUsagePoint] | None) -> Table:
    table = _table("Gas", "Item", "Value")
    table.add_row("Base fee", f"{overview.base_fee} Gwei")
    table.add_row("Priority fee", f"{overview.priority_fee} Gwei")
    for tx in overview.high_gas_txs:
        table.add_row(_short(tx.hash), tx.gas_used)
    for point in history or []:
        table.add_row(point.time, f"{point.gas_used:,}")
    return table


def render_top_contracts(contracts: list[TopContract]) -> Table:
    table = _table("Top Contracts", "Address", "Transactions")
    for contract in contracts:
        table.add_row(contract.address, str(contract.transactions))
    return table


def render_deployments(deployments: list[Deployment]) -> Table:
    table = _table("Recent Deployments", "Contract", "Deployer", "Block", "Fees")
    for deployment in deployments:
        table.add_row(
            _short(deployment.contract_address),
            _short(deployment.deployer),
            str(deployment.block_number),
            deployment.fees,
        )
    return table


def render_events(batch: EventBatch) -> Table:
    table = _table(f"Events (head {batch.head_block:,})", "Time", "Type", "Details")
    for event in batch.events:
        table.add_row(event.time, event.type, event.details)
    return table


def render_health(health: EcosystemHealthMetrics) -> Table:
    table = _table(f"Ecosystem Health: {health.health_score}", "Metric", "Value")
    table.add_row("TPS", f"{health.tps:.2f}")
    table.add_row("Success rate", f"{health.success_rate:.2f}%")
    table.add_row("Failed rate", f"{health.failed_tx_rate:.2f}%")
    table.add_row("Active wallets", str(health.active_wallets))
    table.add_row("New contracts", str(health.new_contracts))
    table.add_row("Avg block time", f"{health.avg_block_time:.2f}s")
    if health.failed_blocks:
        table.add_row("Missing blocks", ", ".join(map(str, health.failed_blocks)))
    return table


def render_search_result(result: SearchResult) -> RichPanel:
    if isinstance(result, SearchError):
        return RichPanel(f"[red]{result.message}[/red]", title=result.title)

    table = _table("", "Field", "Value")
    for field, value in result.model_dump(exclude={"type", "transactions"}).items():
        table.add_row(field, str(value))
    return RichPanel(table, title=result.title)


class ExplorerDashboard:
    """Terminal dashboard driving the polling shell."""

    def __init__(self, ctx: AggregatorContext, cache_dir: Path | None = DEFAULT_CACHE_DIR) -> None:
        self.ctx = ctx
        self.shell = PollingShell(build_default_panels(ctx, cache_dir))
        self.console = Console()

    def _section(self, name: str, render: Any) -> RichPanel:
        panel: Panel[Any] = self.shell.panels[name]
        if panel.data is None:
            body: Any = f"[dim]{panel.state}...[/dim]"
        else:
            body = render(panel.data)
        style = "yellow" if panel.state is PanelState.STALE else "blue"
        subtitle = f"stale: {panel.last_error}" if panel.state is PanelState.STALE else None
        return RichPanel(body, border_style=style, subtitle=subtitle)

    def render(self) -> Group:
        history = self.shell.panels["gas_history"].data
        return Group(
            self._section("metrics", render_metrics),
            self._section("ecosystem_health", render_health),
            self._section("blocks", render_blocks),
            self._section("transactions", render_transactions),
            self._section("gas_overview", lambda overview: render_gas(overview, history)),
            self._section("top_contracts", render_top_contracts),
            self._section("deployments", render_deployments),
            self._section("events", render_events),
        )

    def shutdown(self) -> None:
        """Gracefully stop polling."""
        logger.info("Shutdown signal received, stopping...")
        self.shell.stop()

    async def run_once(self) -> None:
        """Refresh every panel once and print the dashboard."""
        await self.shell.refresh_all()
        self.console.print(self.render())

    async def run(self) -> None:
        """Poll and render until interrupted."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown)

        polling = asyncio.create_task(self.shell.run())
        with Live(
            self.render(), console=self.console, refresh_per_second=REFRESH_PER_SECOND
        ) as live:
            while not polling.done():
                live.update(self.render())
                await asyncio.sleep(1 / REFRESH_PER_SECOND)
        await polling
        logger.info("Explorer dashboard stopped")


async def main(query: str | None = None, once: bool = False) -> None:
    """Main entry point.

    Args:
        query: Run one search and print its result instead of the dashboard
        once: Refresh every panel once and exit
    """
    try:
        async with open_context() as ctx:
            if query is not None:
                Console().print(render_search_result(await search(ctx, query)))
                return

            dashboard = ExplorerDashboard(ctx)
            if once:
                await dashboard.run_once()
            else:
                await dashboard.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    parser = ArgumentParser(description="Live Monad explorer dashboard")
    parser.add_argument("--search", metavar="QUERY", help="Search a block, transaction or address")
    parser.add_argument("--once", action="store_true", help="Refresh once, print and exit")
    args = parser.parse_args()

    asyncio.run(main(args.search, args.once))
