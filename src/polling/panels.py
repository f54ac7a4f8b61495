"""Default dashboard panels and their refresh rules."""

import operator

from pathlib import Path
from typing import Any

from src.aggregators.base import AggregatorContext
from src.aggregators.blocks import fetch_blocks_since
from src.aggregators.contracts import fetch_recent_deployments, fetch_top_contracts
from src.aggregators.events import fetch_new_events_since, fetch_recent_events
from src.aggregators.gas import fetch_gas_overview, fetch_gas_usage_history
from src.aggregators.health import fetch_recent_ecosystem_health
from src.aggregators.metrics import fetch_dashboard_metrics
from src.aggregators.transactions import fetch_latest_transactions
from src.data.models import (
    Block,
    DashboardMetrics,
    EcosystemHealthMetrics,
    EventBatch,
    GasOverview,
    TopContract,
    Transaction,
)
from src.helpers.constants import EVENT_LIMIT, LATEST_BLOCKS_COUNT, TOP_CONTRACTS_LIMIT
from src.helpers.result import Result
from src.polling.cache import SnapshotCache
from src.polling.merge import merge_by_key
from src.polling.panel import Panel


FAST_INTERVAL = 5.0
SLOW_INTERVAL = 30.0
HEALTH_INTERVAL = 60.0

MAX_TRANSACTIONS = 50
MAX_HIGH_GAS_TXS = 12
GAS_HISTORY_MINUTES = 10
RECENT_EVENT_BLOCKS = 2

TOP_CONTRACTS_CACHE = "top_contracts.json"


def metrics_plausible(metrics: DashboardMetrics) -> bool:
    """A refresh with every metric at zero is treated as a provider hiccup."""
    return any((
        metrics.latest_block,
        metrics.txs_in_last_block,
        metrics.blocks_per_min,
        metrics.txs_per_min,
        metrics.gas_used,
    ))


def gas_overview_plausible(overview: GasOverview) -> bool:
    return (
        float(overview.base_fee) > 0
        or float(overview.priority_fee) > 0
        or bool(overview.high_gas_txs)
    )


def health_plausible(metrics: EcosystemHealthMetrics) -> bool:
    """A sample without transactions says nothing about success rates."""
    return metrics.block_count > 0 and metrics.tx_count > 0


def merge_blocks(new: list[Block], previous: list[Block] | None) -> list[Block]:
    merged = merge_by_key(new, previous, key=operator.attrgetter("number"))
    merged.sort(key=operator.attrgetter("number"), reverse=True)
    return merged[:LATEST_BLOCKS_COUNT]


def merge_transactions(
    new: list[Transaction], previous: list[Transaction] | None
) -> list[Transaction]:
    return merge_by_key(new, previous, key=operator.attrgetter("hash"), limit=MAX_TRANSACTIONS)


def merge_top_contracts(
    new: list[TopContract], previous: list[TopContract] | None
) -> list[TopContract]:
    """Fresh counts replace older ones for the same address."""
    return merge_by_key(
        new, previous, key=operator.attrgetter("address"), limit=TOP_CONTRACTS_LIMIT
    )


def merge_gas_overview(new: GasOverview, previous: GasOverview | None) -> GasOverview:
    """Replace fees, accumulate high-gas transactions newest first."""
    high_gas_txs = merge_by_key(
        new.high_gas_txs,
        previous.high_gas_txs if previous is not None else None,
        key=operator.attrgetter("hash"),
    )
    high_gas_txs.sort(key=operator.attrgetter("timestamp"), reverse=True)
    return new.model_copy(update={"high_gas_txs": high_gas_txs[:MAX_HIGH_GAS_TXS]})


def merge_events(new: EventBatch, previous: EventBatch | None) -> EventBatch:
    if previous is None:
        return new
    events = merge_by_key(new.events, previous.events, key=operator.attrgetter("id"))
    events.sort(key=operator.attrgetter("timestamp"), reverse=True)
    return EventBatch(
        events=events[:EVENT_LIMIT],
        head_block=max(new.head_block, previous.head_block),
    )


def build_default_panels(
    ctx: AggregatorContext, cache_dir: Path | None = None
) -> list[Panel[Any]]:
    """Build the explorer dashboard panels.

    Args:
        ctx: Aggregator context shared by all panels
        cache_dir: Directory for file-backed snapshots, in-memory only if None

    Returns:
        list[Panel]: Panels in display order
    """

    async def blocks(previous: list[Block] | None) -> Result[list[Block]]:
        cursor = previous[0].number if previous else None
        return await fetch_blocks_since(ctx, cursor)

    async def events(previous: EventBatch | None) -> Result[EventBatch]:
        if previous is None or previous.head_block == 0:
            return await fetch_recent_events(ctx, RECENT_EVENT_BLOCKS)
        return await fetch_new_events_since(ctx, previous.head_block)

    top_contracts_cache: SnapshotCache[list[TopContract]] = SnapshotCache(
        list[TopContract],
        path=cache_dir / TOP_CONTRACTS_CACHE if cache_dir is not None else None,
    )

    return [
        Panel(
            "metrics",
            lambda _: fetch_dashboard_metrics(ctx),
            FAST_INTERVAL,
            is_plausible=metrics_plausible,
        ),
        Panel("blocks", blocks, FAST_INTERVAL, merge=merge_blocks),
        Panel(
            "transactions",
            lambda _: fetch_latest_transactions(ctx),
            FAST_INTERVAL,
            merge=merge_transactions,
        ),
        Panel(
            "gas_overview",
            lambda _: fetch_gas_overview(ctx),
            SLOW_INTERVAL,
            is_plausible=gas_overview_plausible,
            merge=merge_gas_overview,
        ),
        Panel(
            "gas_history",
            lambda _: fetch_gas_usage_history(ctx, GAS_HISTORY_MINUTES),
            SLOW_INTERVAL,
            is_plausible=bool,
        ),
        Panel(
            "top_contracts",
            lambda _: fetch_top_contracts(ctx),
            SLOW_INTERVAL,
            is_plausible=bool,
            merge=merge_top_contracts,
            cache=top_contracts_cache,
        ),
        Panel(
            "deployments",
            lambda _: fetch_recent_deployments(ctx),
            SLOW_INTERVAL,
            is_plausible=bool,
        ),
        Panel("events", events, SLOW_INTERVAL, merge=merge_events),
        Panel(
            "ecosystem_health",
            lambda _: fetch_recent_ecosystem_health(ctx),
            HEALTH_INTERVAL,
            is_plausible=health_plausible,
        ),
    ]


__all__ = [
    "build_default_panels",
    "gas_overview_plausible",
    "health_plausible",
    "merge_blocks",
    "merge_events",
    "merge_gas_overview",
    "merge_top_contracts",
    "merge_transactions",
    "metrics_plausible",
]
