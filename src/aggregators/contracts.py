"""Contract activity, deployment and contract metadata aggregators."""

import asyncio
import operator

from collections import Counter

from src.aggregators.base import AggregatorContext, aggregator
from src.data.models import Block, ContractInfo, Deployment, LogEntry, TopContract, Transaction
from src.helpers.cancellation import CancellationToken
from src.helpers.constants import (
    DEPLOYMENT_BLOCK_DELAY,
    DEPLOYMENT_LIMIT,
    DEPLOYMENT_MAX_BLOCKS,
    NATIVE_SYMBOL,
    NOT_AVAILABLE,
    SELECTOR_DECIMALS,
    SELECTOR_NAME,
    SELECTOR_SYMBOL,
    SELECTOR_TOTAL_SUPPLY,
    TOP_CONTRACTS_BLOCKS,
    TOP_CONTRACTS_LIMIT,
)
from src.helpers.errors import RateLimited, RPCFailure
from src.helpers.http import retry_with_backoff
from src.helpers.logging import get_logger
from src.helpers.parsers import decode_abi_string, decode_uint, format_ether
from src.helpers.result import PartialOk


logger = get_logger(__name__)

NOT_A_CONTRACT = "Not a contract"
ERC20 = "ERC20"


def tally_contracts(blocks: list[Block], limit: int = TOP_CONTRACTS_LIMIT) -> list[TopContract]:
    """Count transactions per recipient across blocks, busiest first.

    Ties keep first-seen order.
    """
    counts: Counter[str] = Counter()
    for block in blocks:
        for tx in block.prefetched_transactions or []:
            if tx.to:
                counts[tx.to] += 1
    return [
        TopContract(address=address, transactions=count)
        for address, count in counts.most_common(limit)
    ]


@aggregator(fallback=list)
async def fetch_top_contracts(
    ctx: AggregatorContext,
    block_count: int = TOP_CONTRACTS_BLOCKS,
    limit: int = TOP_CONTRACTS_LIMIT,
) -> list[TopContract]:
    """Most-called addresses in the latest ``block_count`` full blocks.

    Args:
        ctx: Aggregator context
        block_count: Blocks scanned
        limit: Addresses returned

    Returns:
        Ok(contracts) descending by transaction count, or Err with ``[]``
    """
    height = await ctx.rpc.get_block_number(ctx.http)
    blocks = await asyncio.gather(*[
        ctx.rpc.get_block_by_number(ctx.http, number, True)
        for number in range(height, height - block_count, -1)
        if number >= 0
    ])
    found = [block for block in blocks if block is not None]
    logger.debug("Tallying contracts over %d blocks", len(found))
    return tally_contracts(found, limit)


def deployment_fee(tx: Transaction, gas_used: int | None) -> str:
    """Fee paid by a deployment as ``"<amount> MON"``, or "N/A"."""
    if not gas_used or not tx.gas_price:
        return NOT_AVAILABLE
    return f"{format_ether(gas_used * tx.gas_price, precision=6)} {NATIVE_SYMBOL}"


@aggregator(fallback=list)
async def fetch_recent_deployments(
    ctx: AggregatorContext,
    limit: int = DEPLOYMENT_LIMIT,
    max_blocks: int = DEPLOYMENT_MAX_BLOCKS,
    inter_block_delay: float = DEPLOYMENT_BLOCK_DELAY,
) -> list[Deployment] | PartialOk[list[Deployment]]:
    """Walk back from the head collecting contract creations.

    Blocks and receipts come from the high-throughput endpoint, one block at
    a time with a fixed pause in between to stay under its quota. A request
    that is rate limited is retried after the limiter's hint. The contract
    address is taken from the receipt's ``contractAddress``.

    Args:
        ctx: Aggregator context
        limit: Stop once this many deployments are collected
        max_blocks: Stop after scanning this many blocks
        inter_block_delay: Pause between block fetches in seconds

    Returns:
        Ok(deployments) newest first; PartialOk with what was collected when
        the walk was cut short by a failure; Err with ``[]`` when the head
        could not be determined
    """
    get_block = retry_with_backoff(retry_on=(RateLimited,))(ctx.bulk_rpc.get_block_by_number)
    get_receipt = retry_with_backoff(retry_on=(RateLimited,))(
        ctx.bulk_rpc.get_transaction_receipt
    )

    height = await ctx.rpc.get_block_number(ctx.http)
    deployments: list[Deployment] = []
    warnings: list[str] = []

    for offset in range(max_blocks):
        number = height - offset
        if number < 0 or len(deployments) >= limit:
            break
        if offset:
            await asyncio.sleep(inter_block_delay)

        try:
            block = await get_block(ctx.http, number, True)
        except RPCFailure as e:
            logger.warning("Deployment scan stopped at block %d: %s", number, e)
            warnings.append(f"block {number}: {e}")
            break
        if block is None:
            continue

        for tx in block.prefetched_transactions or []:
            if not tx.is_contract_creation:
                continue
            try:
                receipt = await get_receipt(ctx.http, tx.hash)
            except RPCFailure as e:
                logger.debug("Receipt for deployment %s unavailable: %s", tx.hash, e)
                receipt = None

            deployments.append(
                Deployment(
                    contract_address=receipt.contract_address if receipt else None,
                    deployer=tx.from_address,
                    time=block.timestamp,
                    fees=deployment_fee(tx, receipt.gas_used if receipt else None),
                    tx_hash=tx.hash,
                    block_number=block.number,
                )
            )
            if len(deployments) >= limit:
                break

    deployments.sort(key=operator.attrgetter("time"), reverse=True)
    logger.debug("Found %d deployments", len(deployments))
    if warnings:
        return PartialOk(deployments[:limit], tuple(warnings))
    return deployments[:limit]


def _unknown_contract() -> ContractInfo:
    return ContractInfo(address="", contract_type=NOT_AVAILABLE)


async def _probe(
    ctx: AggregatorContext,
    address: str,
    selector: str,
    cancel_token: CancellationToken | None,
) -> str | None:
    try:
        return await ctx.rpc.eth_call(ctx.http, address, selector, cancel_token=cancel_token)
    except RPCFailure as e:
        logger.debug("Probe %s on %s failed: %s", selector, address, e)
        return None


@aggregator(fallback=_unknown_contract)
async def fetch_contract_info(
    ctx: AggregatorContext,
    address: str,
    cancel_token: CancellationToken | None = None,
) -> ContractInfo:
    """Classify an address and read ERC-20 metadata when it holds code.

    Four ``eth_call`` probes (name, symbol, decimals, totalSupply) run in
    parallel; a failed probe yields "N/A" for its field only. Holder
    counts are not available over JSON-RPC.

    Args:
        ctx: Aggregator context
        address: Account or contract address
        cancel_token: Token threaded through every request

    Returns:
        Ok(info), or Err with an "N/A" record when the code lookup failed

    Raises:
        RequestCancelled: If the token fires
    """
    code = await ctx.rpc.get_code(ctx.http, address, cancel_token=cancel_token)
    if not code or code in ("0x", "0x0"):
        return ContractInfo(address=address, contract_type=NOT_A_CONTRACT)

    name, symbol, decimals, total_supply = await asyncio.gather(*[
        _probe(ctx, address, selector, cancel_token)
        for selector in (SELECTOR_NAME, SELECTOR_SYMBOL, SELECTOR_DECIMALS, SELECTOR_TOTAL_SUPPLY)
    ])
    return ContractInfo(
        address=address,
        contract_type=ERC20,
        name=decode_abi_string(name),
        symbol=decode_abi_string(symbol),
        decimals=decode_uint(decimals),
        total_supply=decode_uint(total_supply),
    )


@aggregator(fallback=list)
async def fetch_logs(
    ctx: AggregatorContext,
    from_block: int | str,
    to_block: int | str = "latest",
    address: str | None = None,
    topics: list[str] | None = None,
) -> list[LogEntry]:
    """Logs matching a filter, or Err with ``[]`` on failure."""
    return await ctx.rpc.get_logs(ctx.http, from_block, to_block, address, topics)


__all__ = [
    "ERC20",
    "NOT_A_CONTRACT",
    "deployment_fee",
    "fetch_contract_info",
    "fetch_logs",
    "fetch_recent_deployments",
    "fetch_top_contracts",
    "tally_contracts",
]
