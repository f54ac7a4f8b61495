"""Gas price and gas usage aggregators."""

import math
import operator

from collections import defaultdict

from src.aggregators.base import AggregatorContext, aggregator
from src.data.models import Block, GasOverview, GasUsagePoint, HighGasTransaction
from src.data.normalizer import decode_block
from src.helpers.constants import (
    BASE_FEE_SHARE,
    BLOCK_TIME_SAMPLE_SPAN,
    FALLBACK_BLOCKS_PER_MINUTE,
    HIGH_GAS_TX_COUNT,
    PRIORITY_FEE_SHARE,
    WEI_PER_GWEI,
)
from src.helpers.errors import ProtocolFailure, RPCFailure
from src.helpers.logging import get_logger
from src.helpers.parsers import format_gas_value, format_minute_label, hex_to_big_int, hex_to_int
from src.helpers.rpc import batch_get_block_range


logger = get_logger(__name__)


@aggregator(fallback=GasOverview)
async def fetch_gas_overview(ctx: AggregatorContext) -> GasOverview:
    """Fetch the gas price split and the heaviest transactions of the latest block.

    ``eth_gasPrice`` and the latest full block travel in one batch request.
    The base/priority split is a fixed 80/20 share of the gas price, and
    transactions are ranked by declared gas limit, not measured usage.

    Args:
        ctx: Aggregator context

    Returns:
        Ok(overview), or Err with a zeroed overview
    """
    gas_price_hex, raw_block = await ctx.rpc.batch_call(
        ctx.http,
        [
            ("eth_gasPrice", []),
            ("eth_getBlockByNumber", ["latest", True]),
        ],
    )
    if not gas_price_hex or not isinstance(raw_block, dict):
        msg = "Failed to fetch gas overview data"
        raise ProtocolFailure(msg)

    gas_price_gwei = hex_to_big_int(gas_price_hex) / WEI_PER_GWEI
    block = decode_block(raw_block, full_transactions=True)
    ranked = sorted(
        block.prefetched_transactions or [],
        key=operator.attrgetter("gas"),
        reverse=True,
    )

    return GasOverview(
        base_fee=f"{gas_price_gwei * BASE_FEE_SHARE:.2f}",
        priority_fee=f"{gas_price_gwei * PRIORITY_FEE_SHARE:.2f}",
        high_gas_txs=[
            HighGasTransaction(
                hash=tx.hash,
                gas_used=format_gas_value(tx.gas),
                timestamp=block.timestamp,
            )
            for tx in ranked[:HIGH_GAS_TX_COUNT]
        ],
    )


async def _estimate_blocks_per_minute(ctx: AggregatorContext, latest: Block) -> float | None:
    if latest.number < BLOCK_TIME_SAMPLE_SPAN:
        return None
    try:
        older = await ctx.rpc.get_block_by_number(ctx.http, latest.number - BLOCK_TIME_SAMPLE_SPAN)
    except RPCFailure as e:
        logger.warning("Block time sample unavailable: %s", e)
        return None
    if older is None:
        return None

    time_difference = latest.timestamp - older.timestamp
    block_difference = latest.number - older.number
    if time_difference <= 0 or block_difference <= 0:
        return None
    return 60 / (time_difference / block_difference)


def bucket_gas_by_minute(blocks: list[Block]) -> dict[int, int]:
    """Sum ``gasUsed`` per minute of block timestamp (key: unix minutes)."""
    usage: dict[int, int] = defaultdict(int)
    for block in blocks:
        if not block.timestamp:
            continue
        usage[block.timestamp // 60] += hex_to_int(block.gas_used)
    return dict(usage)


def minute_series(
    usage: dict[int, int], anchor_timestamp: int, minutes: int
) -> list[GasUsagePoint]:
    """One point per minute ending at ``anchor_timestamp``, oldest first.

    Minutes without blocks are filled with 0.
    """
    points = []
    for i in range(minutes):
        minute_timestamp = anchor_timestamp - i * 60
        points.append(
            GasUsagePoint(
                time=format_minute_label(minute_timestamp),
                gas_used=usage.get(minute_timestamp // 60, 0),
            )
        )
    points.reverse()
    return points


@aggregator(fallback=list)
async def fetch_gas_usage_history(ctx: AggregatorContext, minutes: int = 60) -> list[GasUsagePoint]:
    """Gas used per minute over the last ``minutes`` minutes of chain time.

    The block rate is estimated from a block ``BLOCK_TIME_SAMPLE_SPAN``
    behind the head (falling back to 3 s blocks), the estimated range is
    fetched as chunked batch requests, and labels are anchored to the latest
    block's own clock rather than local time.

    Args:
        ctx: Aggregator context
        minutes: Number of one-minute buckets

    Returns:
        Ok(points) oldest first, or Err with ``[]``
    """
    latest = await ctx.rpc.get_block_by_number(ctx.http, "latest")
    if latest is None:
        return []

    bpm = await _estimate_blocks_per_minute(ctx, latest)
    blocks_to_fetch = (
        math.ceil(bpm * minutes) if bpm is not None else minutes * FALLBACK_BLOCKS_PER_MINUTE
    )
    numbers = [
        latest.number - i for i in range(blocks_to_fetch) if latest.number - i > 0
    ]
    logger.debug("Fetching %d blocks for %d minutes of gas history", len(numbers), minutes)

    blocks = await batch_get_block_range(ctx.rpc, ctx.http, numbers)
    usage = bucket_gas_by_minute([block for block in blocks if block is not None])
    return minute_series(usage, latest.timestamp, minutes)


__all__ = [
    "bucket_gas_by_minute",
    "fetch_gas_overview",
    "fetch_gas_usage_history",
    "minute_series",
]
