"""Transaction aggregators."""

import asyncio

from src.aggregators.base import AggregatorContext, aggregator, receipt_or_none
from src.data.models import Transaction
from src.data.normalizer import merge_receipt
from src.helpers.cancellation import CancellationToken
from src.helpers.constants import LATEST_TRANSACTIONS_COUNT, RECEIPT_TIMEOUT
from src.helpers.logging import get_logger
from src.helpers.result import PartialOk


logger = get_logger(__name__)


@aggregator(fallback=list)
async def fetch_latest_transactions(
    ctx: AggregatorContext,
    count: int = LATEST_TRANSACTIONS_COUNT,
    receipt_timeout: float = RECEIPT_TIMEOUT,
) -> list[Transaction] | PartialOk[list[Transaction]]:
    """Fetch the first ``count`` transactions of the latest block with status.

    Receipts are fetched in parallel, each racing a fixed deadline. A receipt
    that times out or fails leaves that transaction's ``status`` as None; the
    transaction itself is kept.

    Args:
        ctx: Aggregator context
        count: Number of transactions taken from the block
        receipt_timeout: Per-receipt deadline in seconds

    Returns:
        Ok(transactions) in block order, PartialOk when some receipts were
        missing, Err with ``[]`` when the block could not be fetched
    """
    block = await ctx.rpc.get_block_by_number(ctx.http, "latest", True)
    if block is None or not block.prefetched_transactions:
        return []

    transactions = block.prefetched_transactions[:count]
    receipts = await asyncio.gather(*[
        receipt_or_none(ctx, tx.hash, timeout=receipt_timeout) for tx in transactions
    ])

    merged: list[Transaction] = []
    warnings: list[str] = []
    for tx, receipt in zip(transactions, receipts, strict=True):
        merged.append(merge_receipt(tx, receipt))
        if receipt is None:
            warnings.append(f"receipt unavailable: {tx.hash}")

    if warnings:
        logger.debug("%d of %d receipts unavailable", len(warnings), len(transactions))
        return PartialOk(merged, tuple(warnings))
    return merged


@aggregator(fallback=lambda: None)
async def fetch_transaction(
    ctx: AggregatorContext,
    tx_hash: str,
    cancel_token: CancellationToken | None = None,
) -> Transaction | None:
    """Fetch one transaction with its receipt and block timestamp.

    Args:
        ctx: Aggregator context
        tx_hash: Transaction hash
        cancel_token: Token threaded through every request of the lookup

    Returns:
        Ok(transaction) or Ok(None) when the hash is unknown

    Raises:
        RequestCancelled: If the token fires
    """
    tx, receipt = await asyncio.gather(
        ctx.rpc.get_transaction_by_hash(ctx.http, tx_hash, cancel_token=cancel_token),
        ctx.rpc.get_transaction_receipt(ctx.http, tx_hash, cancel_token=cancel_token),
    )
    if tx is None:
        return None

    merged = merge_receipt(tx, receipt)
    block_number = receipt.block_number if receipt is not None else tx.block_number
    if block_number is None:
        return merged

    block = await ctx.rpc.get_block_by_number(
        ctx.http, block_number, cancel_token=cancel_token
    )
    return merged.model_copy(
        update={
            "block_number": block_number,
            "timestamp": block.timestamp if block is not None else 0,
        }
    )


__all__ = [
    "fetch_latest_transactions",
    "fetch_transaction",
]
