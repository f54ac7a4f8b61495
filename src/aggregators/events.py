"""Notable-activity events derived from recent blocks."""

import asyncio
import operator

from src.aggregators.base import AggregatorContext, aggregator, receipt_or_none
from src.data.models import Block, Event, EventBatch, EventStatus, EventType, Receipt, Transaction
from src.helpers.constants import (
    EVENT_LIMIT,
    EVENT_MAX_BLOCK_SCAN,
    EVENT_TXS_PER_BLOCK,
    HIGH_GAS_THRESHOLD,
    LARGE_TRANSFER_WEI,
    NATIVE_SYMBOL,
)
from src.helpers.logging import get_logger
from src.helpers.parsers import format_ether, format_iso_time


logger = get_logger(__name__)

UNKNOWN_ADDRESS = "Unknown"

_SLUGS = {
    EventType.CONTRACT_CREATION: "creation",
    EventType.FAILED_TRANSACTION: "failed",
    EventType.LARGE_TRANSFER: "transfer",
    EventType.HIGH_GAS_USAGE: "gas",
}


def event_id(tx_hash: str, event_type: EventType) -> str:
    """Stable identity of an event: the same transaction and type always match."""
    return f"{tx_hash}:{_SLUGS[event_type]}"


def classify_transaction(
    tx: Transaction, block: Block, receipt: Receipt | None
) -> list[Event]:
    """Derive zero or more events from one transaction.

    A missing receipt only skips the failed-transaction check.

    Args:
        tx: Transaction with detail
        block: Containing block
        receipt: Receipt if it could be fetched

    Returns:
        Events in classification order
    """
    events: list[Event] = []

    def add(event_type: EventType, **fields: object) -> None:
        events.append(
            Event(
                id=event_id(tx.hash, event_type),
                type=event_type,
                time=format_iso_time(block.timestamp),
                timestamp=block.timestamp,
                block_number=block.number,
                transaction_hash=tx.hash,
                **fields,
            )
        )

    if tx.is_contract_creation:
        created = receipt.contract_address if receipt and receipt.contract_address else tx.hash
        add(
            EventType.CONTRACT_CREATION,
            address=created,
            details=f"New contract deployed from {tx.from_address}",
            status=EventStatus.SUCCESS,
            gas_used=tx.gas,
            value=tx.value,
        )

    if receipt is not None and receipt.status == 0:
        add(
            EventType.FAILED_TRANSACTION,
            address=tx.to or UNKNOWN_ADDRESS,
            details=f"Transaction reverted: {tx.hash[:10]}...",
            status=EventStatus.ERROR,
            gas_used=receipt.gas_used,
        )

    if tx.value_wei > LARGE_TRANSFER_WEI:
        add(
            EventType.LARGE_TRANSFER,
            address=tx.to or UNKNOWN_ADDRESS,
            details=f"Large transfer of {format_ether(tx.value_wei, precision=4)} {NATIVE_SYMBOL}",
            status=EventStatus.INFO,
            value=tx.value,
        )

    if tx.gas > HIGH_GAS_THRESHOLD:
        add(
            EventType.HIGH_GAS_USAGE,
            address=tx.to or UNKNOWN_ADDRESS,
            details=f"High gas usage: {tx.gas:,} gas",
            status=EventStatus.WARNING,
            gas_used=tx.gas,
        )

    return events


async def _scan_blocks(ctx: AggregatorContext, numbers: list[int]) -> list[Event]:
    blocks = await asyncio.gather(*[
        ctx.rpc.get_block_by_number(ctx.http, number, True) for number in numbers
    ])

    events: list[Event] = []
    for block in blocks:
        if block is None or not block.prefetched_transactions:
            continue
        transactions = block.prefetched_transactions[:EVENT_TXS_PER_BLOCK]
        receipts = await asyncio.gather(*[receipt_or_none(ctx, tx.hash) for tx in transactions])
        for tx, receipt in zip(transactions, receipts, strict=True):
            events.extend(classify_transaction(tx, block, receipt))

    events.sort(key=operator.attrgetter("timestamp"), reverse=True)
    return events[:EVENT_LIMIT]


@aggregator(fallback=EventBatch)
async def fetch_recent_events(ctx: AggregatorContext, block_count: int = 2) -> EventBatch:
    """Events from the first transactions of the latest ``block_count`` blocks.

    Args:
        ctx: Aggregator context
        block_count: Blocks scanned back from the head

    Returns:
        Ok(batch) with events newest first (at most ``EVENT_LIMIT``) and the
        head it scanned from, or Err with an empty batch
    """
    height = await ctx.rpc.get_block_number(ctx.http)
    numbers = [height - i for i in range(block_count) if height - i >= 0]
    return EventBatch(events=await _scan_blocks(ctx, numbers), head_block=height)


@aggregator(fallback=EventBatch)
async def fetch_new_events_since(ctx: AggregatorContext, last_block: int) -> EventBatch:
    """Events from blocks above ``last_block``.

    When the cursor lags far behind, only the newest ``EVENT_MAX_BLOCK_SCAN``
    blocks are scanned.

    Args:
        ctx: Aggregator context
        last_block: Highest block already scanned

    Returns:
        Ok(batch); ``head_block`` stays at ``last_block`` when the chain has
        not advanced
    """
    height = await ctx.rpc.get_block_number(ctx.http)
    if height <= last_block:
        return EventBatch(events=[], head_block=last_block)

    from_block = max(last_block + 1, height - EVENT_MAX_BLOCK_SCAN + 1)
    if from_block > last_block + 1:
        logger.info("Skipping blocks %d-%d in event scan", last_block + 1, from_block - 1)
    numbers = list(range(from_block, height + 1))
    return EventBatch(events=await _scan_blocks(ctx, numbers), head_block=height)


__all__ = [
    "UNKNOWN_ADDRESS",
    "classify_transaction",
    "event_id",
    "fetch_new_events_since",
    "fetch_recent_events",
]
