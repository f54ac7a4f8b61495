"""Ecosystem health aggregators.

Two variants share one computation:

- ``fetch_ecosystem_health`` walks a time window back from the head and
  fails closed: if the head block is unavailable it raises.
- ``fetch_recent_ecosystem_health`` batch-fetches the last few blocks from
  the high-throughput endpoint and fails open, reporting which block
  fetches failed.

Success and failure counts come from receipts. A transaction whose receipt
could not be fetched counts toward ``tx_count`` only.
"""

import math

from dataclasses import dataclass, field

from src.aggregators.base import AggregatorContext, aggregator
from src.data.models import Block, EcosystemHealthMetrics, HealthScore
from src.helpers.constants import (
    BLOCK_TIME_SAMPLE_SPAN,
    HEALTH_RECENT_BLOCKS,
    HEALTHY_FAILED_RATE,
    HEALTHY_SUCCESS_RATE,
)
from src.helpers.errors import BlockUnavailable, ErrorKind, RPCFailure
from src.helpers.logging import get_logger
from src.helpers.parsers import hex_to_int
from src.helpers.result import Err, PartialOk
from src.helpers.rpc import batch_get_block_range, batch_get_receipt_range


logger = get_logger(__name__)


def health_score(success_rate: float, failed_tx_rate: float) -> HealthScore:
    """Healthy when more than 95% succeed and fewer than 5% fail."""
    if success_rate > HEALTHY_SUCCESS_RATE and failed_tx_rate < HEALTHY_FAILED_RATE:
        return HealthScore.HEALTHY
    return HealthScore.NEEDS_ATTENTION


@dataclass
class HealthSample:
    """Blocks of one window (newest first) and receipt status per tx hash."""

    blocks: list[Block]
    statuses: dict[str, int | None] = field(default_factory=dict)


def compute_health(
    sample: HealthSample,
    duration: float,
    *,
    empty_success_rate: float,
    fallback_block_time: float = 0.0,
) -> EcosystemHealthMetrics:
    """Fold a block window into health metrics.

    Args:
        sample: Blocks newest first and receipt statuses
        duration: Seconds the window spans; tps is 0 when not positive
        empty_success_rate: Success rate reported when there are no transactions
        fallback_block_time: Average block time used with fewer than two blocks

    Returns:
        EcosystemHealthMetrics: Rates rounded to two decimals
    """
    tx_count = success_count = failed_count = new_contracts = 0
    wallets: set[str] = set()
    max_gas = 0

    for block in sample.blocks:
        max_gas = max(max_gas, hex_to_int(block.gas_used))
        tx_count += block.transaction_count
        for tx_hash in block.transaction_hashes:
            status = sample.statuses.get(tx_hash)
            if status == 1:
                success_count += 1
            elif status == 0:
                failed_count += 1
        for tx in block.prefetched_transactions or []:
            if tx.from_address:
                wallets.add(tx.from_address.lower())
            if tx.to:
                wallets.add(tx.to.lower())
            else:
                new_contracts += 1

    block_times = [
        newer.timestamp - older.timestamp
        for newer, older in zip(sample.blocks, sample.blocks[1:], strict=False)
    ]
    avg_block_time = sum(block_times) / len(block_times) if block_times else fallback_block_time

    success_rate = success_count / tx_count * 100 if tx_count else empty_success_rate
    failed_tx_rate = failed_count / tx_count * 100 if tx_count else 0.0

    return EcosystemHealthMetrics(
        tps=round(tx_count / duration, 2) if duration > 0 else 0.0,
        success_rate=round(success_rate, 2),
        failed_tx_rate=round(failed_tx_rate, 2),
        active_wallets=len(wallets),
        new_contracts=new_contracts,
        avg_block_time=round(avg_block_time, 2),
        max_gas_usage_per_block=max_gas,
        health_score=health_score(success_rate, failed_tx_rate),
        block_count=len(sample.blocks),
        tx_count=tx_count,
        success_count=success_count,
        failed_count=failed_count,
    )


async def _statuses(
    ctx: AggregatorContext, blocks: list[Block], bulk: bool = False
) -> dict[str, int | None]:
    hashes = [tx_hash for block in blocks for tx_hash in block.transaction_hashes]
    rpc = ctx.bulk_rpc if bulk else ctx.rpc
    receipts = await batch_get_receipt_range(rpc, ctx.http, hashes)
    return {
        tx_hash: receipt.status if receipt is not None else None
        for tx_hash, receipt in zip(hashes, receipts, strict=True)
    }


async def _sample_block_time(ctx: AggregatorContext, latest: Block) -> float:
    # One second per block until a sample says otherwise
    if latest.number <= BLOCK_TIME_SAMPLE_SPAN:
        return 1.0
    older = await ctx.rpc.get_block_by_number(ctx.http, latest.number - BLOCK_TIME_SAMPLE_SPAN)
    if older is None or older.timestamp >= latest.timestamp:
        return 1.0
    return (latest.timestamp - older.timestamp) / BLOCK_TIME_SAMPLE_SPAN


async def collect_window(ctx: AggregatorContext, window_seconds: int) -> tuple[HealthSample, float]:
    """Fetch every block whose timestamp lies within the window ending at the head.

    The number of blocks to request is estimated from the recent block time;
    the walk stops at the first block that is missing or older than the
    window.

    Returns:
        The window sample and the sampled average block time

    Raises:
        BlockUnavailable: If the head block cannot be fetched
    """
    latest = await ctx.rpc.get_block_by_number(ctx.http, "latest")
    if latest is None:
        msg = "Could not fetch latest block"
        raise BlockUnavailable(msg)

    start_timestamp = latest.timestamp - window_seconds
    avg_block_time = await _sample_block_time(ctx, latest)
    estimated_blocks = math.ceil(window_seconds / avg_block_time)
    start_number = max(0, latest.number - estimated_blocks)

    fetched = await batch_get_block_range(
        ctx.rpc, ctx.http, list(range(latest.number, start_number - 1, -1)), True
    )
    blocks: list[Block] = []
    for block in fetched:
        if block is None or block.timestamp < start_timestamp:
            break
        blocks.append(block)

    logger.debug("Health window of %ds covers %d blocks", window_seconds, len(blocks))
    return HealthSample(blocks, await _statuses(ctx, blocks)), avg_block_time


@aggregator(fallback=EcosystemHealthMetrics, fail_closed=True)
async def fetch_ecosystem_health(
    ctx: AggregatorContext, window_seconds: int | None = None
) -> EcosystemHealthMetrics:
    """Health metrics over a recent time window.

    Args:
        ctx: Aggregator context
        window_seconds: Window length, ``config.health_window_seconds`` if None

    Returns:
        Ok(metrics); tps is transactions per second of window length

    Raises:
        BlockUnavailable: If the latest block is unavailable
        RPCFailure: If any block or receipt batch fails
    """
    window = window_seconds or ctx.config.health_window_seconds
    sample, avg_block_time = await collect_window(ctx, window)
    metrics = compute_health(
        sample,
        window,
        empty_success_rate=100.0,
        fallback_block_time=avg_block_time,
    )
    return metrics.model_copy(update={"window_seconds": window})


@aggregator(fallback=lambda: None)
async def fetch_recent_ecosystem_health(
    ctx: AggregatorContext, block_count: int = HEALTH_RECENT_BLOCKS
) -> EcosystemHealthMetrics | PartialOk[EcosystemHealthMetrics] | Err[None]:
    """Health metrics over the last ``block_count`` blocks.

    Uses the high-throughput endpoint: one batch for the blocks and one for
    their receipts. tps is measured over the span between the oldest and
    newest block fetched.

    Args:
        ctx: Aggregator context
        block_count: Blocks fetched back from the head

    Returns:
        Ok(metrics); PartialOk(metrics) annotated with ``failed_blocks``
        when some block or receipt fetches failed; Err(None) when no block
        came back
    """
    height = await ctx.bulk_rpc.get_block_number(ctx.http)
    numbers = [height - i for i in range(block_count) if height - i >= 0]
    fetched = await ctx.bulk_rpc.batch_get_blocks(ctx.http, numbers, True)

    failed_blocks = [
        number for number, block in zip(numbers, fetched, strict=True) if block is None
    ]
    blocks = [block for block in fetched if block is not None]
    if not blocks:
        return Err(ErrorKind.NOT_FOUND, "No recent blocks could be fetched", None)

    warnings = [f"block {number} unavailable" for number in failed_blocks]
    try:
        statuses = await _statuses(ctx, blocks, bulk=True)
    except RPCFailure as e:
        logger.warning("Receipts for recent health unavailable: %s", e)
        warnings.append(f"receipts: {e}")
        statuses = {}

    if failed_blocks:
        logger.warning("Recent health missing blocks: %s", failed_blocks)

    duration = blocks[0].timestamp - blocks[-1].timestamp
    metrics = compute_health(
        HealthSample(blocks, statuses), duration, empty_success_rate=0.0
    ).model_copy(update={"partial": bool(failed_blocks), "failed_blocks": failed_blocks})

    if warnings:
        return PartialOk(metrics, tuple(warnings))
    return metrics


@aggregator(fallback=int)
async def fetch_successful_tx_count(
    ctx: AggregatorContext, window_seconds: int | None = None
) -> int:
    """Number of transactions with a successful receipt inside the window."""
    window = window_seconds or ctx.config.health_window_seconds
    sample, _ = await collect_window(ctx, window)
    return sum(1 for status in sample.statuses.values() if status == 1)


__all__ = [
    "HealthSample",
    "collect_window",
    "compute_health",
    "fetch_ecosystem_health",
    "fetch_recent_ecosystem_health",
    "fetch_successful_tx_count",
    "health_score",
]
