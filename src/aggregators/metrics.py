"""Key metrics aggregator."""

from src.aggregators.base import AggregatorContext, aggregator
from src.data.models import Block, DashboardMetrics
from src.helpers.constants import METRICS_BLOCK_SPAN
from src.helpers.errors import BlockUnavailable, RPCFailure
from src.helpers.logging import get_logger
from src.helpers.parsers import format_ether, hex_to_int
from src.helpers.result import PartialOk


logger = get_logger(__name__)


def blocks_per_minute(latest: Block, older: Block) -> float:
    """Block production rate between two blocks, 0 when it cannot be derived."""
    block_difference = latest.number - older.number
    time_difference = latest.timestamp - older.timestamp
    if block_difference <= 0 or time_difference <= 0:
        return 0.0
    return 60 / (time_difference / block_difference)


@aggregator(fallback=DashboardMetrics)
async def fetch_dashboard_metrics(
    ctx: AggregatorContext,
) -> DashboardMetrics | PartialOk[DashboardMetrics]:
    """Compute the key metrics panel from the metrics endpoint.

    The latest block anchors everything. Block rate comes from the block
    ``METRICS_BLOCK_SPAN`` behind it, and the average transaction value from
    the latest block with detail. Each of those two sub-steps zeroes only
    its own metrics when it fails.

    Args:
        ctx: Aggregator context

    Returns:
        Ok(metrics), PartialOk(metrics) when a sub-step failed, or Err with
        zeroed metrics when the latest block is unavailable
    """
    url = ctx.endpoints.metrics
    latest = await ctx.rpc.get_block_by_number(ctx.http, "latest", rpc_url=url)
    if latest is None:
        msg = "Could not fetch the latest block from the metrics endpoint"
        raise BlockUnavailable(msg)

    txs_in_last_block = latest.transaction_count
    warnings: list[str] = []

    bpm = 0.0
    try:
        older = await ctx.rpc.get_block_by_number(
            ctx.http, max(latest.number - METRICS_BLOCK_SPAN, 0), rpc_url=url
        )
        if older is not None:
            bpm = blocks_per_minute(latest, older)
    except RPCFailure as e:
        logger.warning("Block rate unavailable: %s", e)
        warnings.append(f"block rate: {e}")

    avg_tx_value = format_ether(0, precision=4)
    try:
        detailed = await ctx.rpc.get_block_by_number(ctx.http, "latest", True, rpc_url=url)
        transactions = detailed.prefetched_transactions if detailed is not None else None
        if transactions:
            total_value = sum(tx.value_wei for tx in transactions)
            avg_tx_value = format_ether(total_value // len(transactions), precision=4)
    except RPCFailure as e:
        logger.warning("Average transaction value unavailable: %s", e)
        warnings.append(f"average value: {e}")

    metrics = DashboardMetrics(
        latest_block=latest.number,
        txs_in_last_block=txs_in_last_block,
        total_txs=f"{latest.number * txs_in_last_block:,}",
        blocks_per_min=round(bpm, 2),
        txs_per_min=round(txs_in_last_block * bpm, 2),
        avg_tx_value=avg_tx_value,
        gas_used=hex_to_int(latest.gas_used),
        gas_limit=hex_to_int(latest.gas_limit),
    )
    if warnings:
        return PartialOk(metrics, tuple(warnings))
    return metrics


__all__ = [
    "blocks_per_minute",
    "fetch_dashboard_metrics",
]
