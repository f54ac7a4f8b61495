"""Latest-block aggregators."""

import asyncio
import operator

from src.aggregators.base import AggregatorContext, aggregator
from src.data.models import Block
from src.helpers.constants import LATEST_BLOCKS_COUNT, TOP_CONTRACTS_BLOCKS
from src.helpers.logging import get_logger


logger = get_logger(__name__)


def _descending_numbers(height: int, count: int, floor: int = -1) -> list[int]:
    return [number for number in range(height, height - count, -1) if number > floor]


def _newest_first(blocks: list[Block | None]) -> list[Block]:
    found = [block for block in blocks if block is not None]
    return sorted(found, key=operator.attrgetter("number"), reverse=True)


@aggregator(fallback=list)
async def fetch_latest_blocks(
    ctx: AggregatorContext, count: int = LATEST_BLOCKS_COUNT
) -> list[Block]:
    """Fetch the latest ``count`` blocks (hashes only), newest first.

    One ``eth_blockNumber`` call followed by one batch request; blocks the
    provider does not return are dropped.

    Args:
        ctx: Aggregator context
        count: Number of blocks

    Returns:
        Ok(blocks), or Err with ``[]`` on any failure

    Example:
        ```python
        result = await fetch_latest_blocks(ctx)
        # height 1000 -> blocks 1000, 999, ..., 989
        ```
    """
    height = await ctx.rpc.get_block_number(ctx.http)
    numbers = _descending_numbers(height, count)
    blocks = await ctx.rpc.batch_get_blocks(ctx.http, numbers)
    return _newest_first(blocks)


@aggregator(fallback=list)
async def fetch_blocks_since(
    ctx: AggregatorContext,
    last_seen: int | None,
    limit: int = LATEST_BLOCKS_COUNT,
) -> list[Block]:
    """Fetch blocks above a cursor, newest first, at most ``limit``.

    Args:
        ctx: Aggregator context
        last_seen: Highest block already displayed, None for a cold start
        limit: Maximum number of blocks returned

    Returns:
        Ok(new blocks); empty when the chain has not advanced
    """
    height = await ctx.rpc.get_block_number(ctx.http)
    if last_seen is not None and height <= last_seen:
        return []

    floor = -1 if last_seen is None else last_seen
    numbers = _descending_numbers(height, limit, floor)
    logger.debug("Fetching %d blocks above %s", len(numbers), last_seen)
    blocks = await ctx.rpc.batch_get_blocks(ctx.http, numbers)
    return _newest_first(blocks)


@aggregator(fallback=list)
async def fetch_latest_blocks_with_transactions(
    ctx: AggregatorContext, count: int = TOP_CONTRACTS_BLOCKS
) -> list[Block]:
    """Fetch the latest ``count`` blocks with transaction detail, in parallel."""
    height = await ctx.rpc.get_block_number(ctx.http)
    blocks = await asyncio.gather(*[
        ctx.rpc.get_block_by_number(ctx.http, number, True)
        for number in _descending_numbers(height, count)
    ])
    return _newest_first(list(blocks))


__all__ = [
    "fetch_blocks_since",
    "fetch_latest_blocks",
    "fetch_latest_blocks_with_transactions",
]
