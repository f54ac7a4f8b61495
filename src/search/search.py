"""Interactive search over blocks, transactions and contract addresses.

A query is classified by shape, then looked up under one overall deadline.
Every RPC request of a lookup carries the same cancellation token, so
cancelling the token aborts the whole lookup.
"""

import asyncio
import re

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

from src.aggregators.base import AggregatorContext
from src.aggregators.contracts import NOT_A_CONTRACT, fetch_contract_info
from src.aggregators.transactions import fetch_transaction
from src.data.models import Block, Transaction
from src.helpers.cancellation import CancellationToken
from src.helpers.constants import NATIVE_SYMBOL, NOT_AVAILABLE, SEARCH_TIMEOUT
from src.helpers.errors import (
    ErrorKind,
    ExplorerError,
    RequestCancelled,
    message_for_kind,
    user_message,
)
from src.helpers.logging import get_logger
from src.helpers.parsers import format_ether, hex_to_int
from src.helpers.result import Err


logger = get_logger(__name__)

HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

INVALID_QUERY = "Please enter a valid transaction hash, block number, or address."
HASH_NOT_FOUND = "No block or transaction found for this hash."
BLOCK_NOT_FOUND = "No block found for this number."
NOT_A_CONTRACT_MESSAGE = "This address is not a contract on Monad."


class QueryKind(StrEnum):
    HASH = "hash"
    BLOCK_NUMBER = "block_number"
    ADDRESS = "address"
    INVALID = "invalid"


class BlockSearchResult(BaseModel):
    type: Literal["block"] = "block"
    number: int
    hash: str
    parent_hash: str | None = None
    timestamp: int
    miner: str | None = None
    gas_used: int = 0
    gas_limit: int = 0
    transactions: list[str] = Field(default_factory=list)
    total_transactions: int = 0

    @property
    def title(self) -> str:
        return f"Block #{self.number}"


class TransactionSearchResult(BaseModel):
    type: Literal["transaction"] = "transaction"
    hash: str
    from_address: str
    to: str
    status: int | None = None
    block_number: int | None = None
    timestamp: int = 0
    value: str
    gas_used: int | None = None
    gas_limit: int = 0
    gas_price: int = 0
    tx_fees: str = Field(..., description="Fee paid, in MON")
    gas_fees: str = Field(..., description="gas_used x gas_price, in MON")

    @property
    def title(self) -> str:
        return "Transaction Details"


class ContractDeploymentResult(BaseModel):
    type: Literal["contract"] = "contract"
    tx_hash: str
    deployer: str
    block_number: int | None = None
    deployment_time: int = 0
    gas_used: int | None = None
    gas_limit: int = 0
    fees: str

    @property
    def title(self) -> str:
        return "Contract Deployment"


class ContractAddressResult(BaseModel):
    type: Literal["contract_address"] = "contract_address"
    address: str
    contract_type: str
    name: str = NOT_AVAILABLE
    symbol: str = NOT_AVAILABLE
    total_supply: str = NOT_AVAILABLE
    decimals: str = NOT_AVAILABLE
    holders: str = NOT_AVAILABLE

    @property
    def title(self) -> str:
        return "Contract Details"


class SearchError(BaseModel):
    type: Literal["error"] = "error"
    message: str

    @property
    def title(self) -> str:
        return "Search Error"


type SearchResult = (
    BlockSearchResult
    | TransactionSearchResult
    | ContractDeploymentResult
    | ContractAddressResult
    | SearchError
)


def classify_query(query: str) -> QueryKind:
    """Classify a search query by its shape.

    Example:
        >>> classify_query("12345")
        <QueryKind.BLOCK_NUMBER: 'block_number'>
        >>> classify_query("0x" + "ab" * 20)
        <QueryKind.ADDRESS: 'address'>
    """
    query = query.strip()
    if HASH_PATTERN.match(query):
        return QueryKind.HASH
    if query.isdecimal():
        return QueryKind.BLOCK_NUMBER
    if ADDRESS_PATTERN.match(query):
        return QueryKind.ADDRESS
    return QueryKind.INVALID


def _fee(gas_used: int | None, gas_price: int) -> str:
    if not gas_used or not gas_price:
        return NOT_AVAILABLE
    return f"{format_ether(gas_used * gas_price, precision=6)} {NATIVE_SYMBOL}"


def block_result(block: Block) -> BlockSearchResult:
    return BlockSearchResult(
        number=block.number,
        hash=block.hash,
        parent_hash=block.parent_hash,
        timestamp=block.timestamp,
        miner=block.miner,
        gas_used=hex_to_int(block.gas_used),
        gas_limit=hex_to_int(block.gas_limit),
        transactions=block.transaction_hashes,
        total_transactions=block.transaction_count,
    )


def transaction_result(tx: Transaction) -> TransactionSearchResult | ContractDeploymentResult:
    """Search result for a transaction; one without a recipient is a deployment."""
    fee = _fee(tx.gas_used, tx.gas_price)
    if tx.to is None:
        return ContractDeploymentResult(
            tx_hash=tx.hash,
            deployer=tx.from_address,
            block_number=tx.block_number,
            deployment_time=tx.timestamp,
            gas_used=tx.gas_used,
            gas_limit=tx.gas,
            fees=fee,
        )
    return TransactionSearchResult(
        hash=tx.hash,
        from_address=tx.from_address,
        to=tx.to,
        status=tx.status,
        block_number=tx.block_number,
        timestamp=tx.timestamp,
        value=tx.value,
        gas_used=tx.gas_used,
        gas_limit=tx.gas,
        gas_price=tx.gas_price,
        tx_fees=fee,
        gas_fees=fee,
    )


def _error(result: Err[object]) -> SearchError:
    return SearchError(message=message_for_kind(result.kind, result.message))


async def _search_hash(
    ctx: AggregatorContext, query: str, token: CancellationToken
) -> SearchResult:
    block = await ctx.rpc.get_block_by_hash(ctx.http, query, cancel_token=token)
    if block is not None:
        return block_result(block)

    result = await fetch_transaction(ctx, query, token)
    if isinstance(result, Err):
        return _error(result)
    if result.value is None:
        return SearchError(message=HASH_NOT_FOUND)
    return transaction_result(result.value)


async def _search_block_number(
    ctx: AggregatorContext, query: str, token: CancellationToken
) -> SearchResult:
    block = await ctx.rpc.get_block_by_number(ctx.http, int(query), cancel_token=token)
    if block is None:
        return SearchError(message=BLOCK_NOT_FOUND)
    return block_result(block)


async def _search_address(
    ctx: AggregatorContext, query: str, token: CancellationToken
) -> SearchResult:
    result = await fetch_contract_info(ctx, query, token)
    if isinstance(result, Err):
        return _error(result)

    info = result.value
    if info.contract_type in (NOT_A_CONTRACT, NOT_AVAILABLE):
        return SearchError(message=NOT_A_CONTRACT_MESSAGE)
    return ContractAddressResult(
        address=info.address,
        contract_type=info.contract_type,
        name=info.name,
        symbol=info.symbol,
        total_supply=info.total_supply,
        decimals=info.decimals,
        holders=info.holders,
    )


_HANDLERS = {
    QueryKind.HASH: _search_hash,
    QueryKind.BLOCK_NUMBER: _search_block_number,
    QueryKind.ADDRESS: _search_address,
}


async def search(
    ctx: AggregatorContext,
    query: str,
    cancel_token: CancellationToken | None = None,
    timeout: float = SEARCH_TIMEOUT,
) -> SearchResult:
    """Look up a block, transaction or contract address.

    A 66-character hash is tried as a block hash first, then as a
    transaction hash. A decimal number is a block number and a 42-character
    hex string a contract address.

    Args:
        ctx: Aggregator context
        query: User input
        cancel_token: Token that aborts the lookup when cancelled
        timeout: Overall deadline in seconds

    Returns:
        SearchResult: A result record, or ``SearchError`` with a message that
        tells rate limiting, timeout, network error and not-found apart

    Raises:
        RequestCancelled: If the token fires before the lookup finishes

    Example:
        ```python
        result = await search(ctx, "12345")
        if isinstance(result, SearchError):
            print(result.message)
        ```
    """
    query = query.strip()
    kind = classify_query(query)
    if kind is QueryKind.INVALID:
        return SearchError(message=INVALID_QUERY)

    token = cancel_token or CancellationToken()
    logger.info("Searching %s %s", kind, query)
    try:
        async with asyncio.timeout(timeout):
            return await _HANDLERS[kind](ctx, query, token)
    except RequestCancelled:
        logger.info("Search for %s cancelled", query)
        raise
    except TimeoutError:
        logger.warning("Search for %s timed out after %ss", query, timeout)
        return SearchError(message=message_for_kind(ErrorKind.TIMEOUT))
    except ExplorerError as e:
        logger.warning("Search for %s failed: %s", query, e)
        return SearchError(message=user_message(e))


__all__ = [
    "BlockSearchResult",
    "ContractAddressResult",
    "ContractDeploymentResult",
    "QueryKind",
    "SearchError",
    "SearchResult",
    "TransactionSearchResult",
    "block_result",
    "classify_query",
    "search",
    "transaction_result",
]
