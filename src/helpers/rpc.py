"""JSON-RPC client utilities."""

import asyncio
import operator

from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from pydantic import ValidationError

from src.data.models import Block, LogEntry, Receipt, Transaction
from src.data.normalizer import decode_block, decode_log, decode_receipt, decode_transaction
from src.helpers.cancellation import CancellationToken
from src.helpers.constants import (
    DEFAULT_PARALLEL_BATCHES,
    DEFAULT_TIMEOUT,
    RECEIPT_TIMEOUT,
    RPC_BATCH_SIZE,
)
from src.helpers.errors import ProtocolFailure, RequestTimeout, TransportFailure
from src.helpers.http_models import JsonResponse, RpcRequestSpec
from src.helpers.logging import get_logger
from src.helpers.parsers import hex_to_big_int, hex_to_int, to_hex
from src.helpers.rate_limit import FixedWindowRateLimiter
from src.helpers.rpc_models import JsonRpcRequest, JsonRpcResponse


logger = get_logger(__name__)


def block_tag(block: int | str) -> str:
    """Encode a block number, or pass a tag such as "latest" through."""
    return to_hex(block) if isinstance(block, int) else block


def response_index(response: JsonRpcResponse) -> int | None:
    """Batch position of a response; providers may echo ids as strings."""
    if isinstance(response.id, int):
        return response.id
    if isinstance(response.id, str) and response.id.isdecimal():
        return int(response.id)
    return None


class RPCClient:
    """JSON-RPC client with batching, per-endpoint rate limits and cancellation.

    One client can target several interchangeable providers: every call
    accepts an ``rpc_url`` override, and endpoints listed in ``rate_limits``
    are guarded by their own limiter.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limits: dict[str, FixedWindowRateLimiter] | None = None,
    ) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Default JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds
            rate_limits: Limiter per endpoint URL; other endpoints are unlimited

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout
        self.rate_limits = dict(rate_limits or {})

    def _acquire(self, url: str) -> None:
        limiter = self.rate_limits.get(url)
        if limiter is not None:
            limiter.acquire()

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        payload: dict[str, Any] | list[dict[str, Any]],
        timeout: float | None,
        cancel_token: CancellationToken | None,
    ) -> JsonResponse:
        """POST a payload and return the decoded JSON body.

        Raises:
            RateLimited: If the endpoint's quota is exhausted (nothing is sent)
            RequestCancelled: If the token fires before or during the request
            TransportFailure: On connection errors, non-2xx status or a
                body that is not JSON
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        self._acquire(url)

        request = client.post(url, json=payload, timeout=timeout or self.timeout)
        try:
            if cancel_token is not None:
                response = await cancel_token.run(request)
            else:
                response = await request
        except httpx.TimeoutException as e:
            msg = f"Request to {url} timed out"
            raise RequestTimeout(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error: {e}"
            raise TransportFailure(msg) from e

        if not response.is_success:
            msg = f"HTTP error! status: {response.status_code}"
            raise TransportFailure(msg, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            msg = "Response body is not valid JSON"
            raise TransportFailure(msg) from e

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        rpc_url: str | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_blockNumber")
            params: Method parameters list
            rpc_url: Endpoint override for this call
            timeout: Optional timeout override
            cancel_token: Token that abandons the request when cancelled

        Returns:
            RPC result value

        Raises:
            TransportFailure: If the HTTP request fails
            ProtocolFailure: If the RPC response contains an error
            RateLimited: If the endpoint's quota is exhausted
            RequestCancelled: If the token fires
        """
        url = rpc_url or self.rpc_url
        payload = JsonRpcRequest(method=method, params=params or [], id=1)
        logger.debug("RPC %s -> %s", method, url)

        try:
            body = await self._post(
                client, url, payload.model_dump(), timeout, cancel_token
            )
        except TransportFailure as e:
            logger.warning("RPC %s failed: %s", method, e)
            raise

        if not isinstance(body, dict):
            msg = f"RPC error: unexpected response for {method}"
            raise ProtocolFailure(msg)

        try:
            response = JsonRpcResponse.model_validate(body)
        except ValidationError as e:
            msg = f"RPC error: malformed response for {method}"
            raise ProtocolFailure(msg) from e

        if response.error is not None:
            msg = f"RPC error: {response.error.message}"
            logger.warning("RPC %s returned error: %s", method, response.error.message)
            raise ProtocolFailure(msg, code=response.error.code)

        return response.result

    async def batch_call(
        self,
        client: httpx.AsyncClient,
        requests: list[RpcRequestSpec],
        *,
        rpc_url: str | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[Any]:
        """Make multiple JSON-RPC calls in a single batch request.

        Args:
            client: HTTP client instance
            requests: List of (method, params) tuples
            rpc_url: Endpoint override for this batch
            timeout: Optional timeout override
            cancel_token: Token that abandons the request when cancelled

        Returns:
            List of results in the same order as requests; entries whose
            sub-response carried an error or was missing are None

        Raises:
            TransportFailure: If the HTTP request fails
            ProtocolFailure: If the provider rejected the batch as a whole
        """
        if not requests:
            return []

        url = rpc_url or self.rpc_url
        batch_payload = [
            JsonRpcRequest(method=method, params=params, id=idx).model_dump()
            for idx, (method, params) in enumerate(requests)
        ]
        logger.debug("RPC batch of %d -> %s", len(requests), url)

        body = await self._post(client, url, batch_payload, timeout, cancel_token)

        if not isinstance(body, list):
            if isinstance(body, dict) and body.get("error"):
                error = body["error"]
                message = (
                    error.get("message", "Unknown error") if isinstance(error, dict) else error
                )
                msg = f"RPC error: {message}"
                raise ProtocolFailure(msg)
            msg = "Batch RPC call did not return an array"
            raise ProtocolFailure(msg)

        results: list[Any] = [None] * len(requests)
        indexed: list[tuple[int, JsonRpcResponse]] = []
        for item in body:
            try:
                response = JsonRpcResponse.model_validate(item)
            except ValidationError:
                logger.warning("Dropping malformed batch entry: %r", item)
                continue
            index = response_index(response)
            if index is not None and 0 <= index < len(requests):
                indexed.append((index, response))

        # Sort by ID to match request order
        for index, response in sorted(indexed, key=operator.itemgetter(0)):
            if response.error is not None:
                logger.warning(
                    "Sub-request %s in batch failed: %s",
                    requests[index][0],
                    response.error.message,
                )
                continue
            results[index] = response.result

        return results

    async def get_block_number(
        self,
        client: httpx.AsyncClient,
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> int:
        """Get the latest block number.

        Args:
            client: HTTP client instance
            rpc_url: Endpoint override
            cancel_token: Optional cancellation token

        Returns:
            Latest block number
        """
        result = await self.call(
            client, "eth_blockNumber", [], rpc_url=rpc_url, cancel_token=cancel_token
        )
        return hex_to_int(result)

    async def get_block_by_number(
        self,
        client: httpx.AsyncClient,
        block: int | str,
        full_transactions: bool = False,
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Block | None:
        """Fetch and decode a block by number or tag.

        Returns:
            Decoded block, or None if the provider does not know it
        """
        result = await self.call(
            client,
            "eth_getBlockByNumber",
            [block_tag(block), full_transactions],
            rpc_url=rpc_url,
            cancel_token=cancel_token,
        )
        return decode_block(result, full_transactions) if result else None

    async def get_block_by_hash(
        self,
        client: httpx.AsyncClient,
        block_hash: str,
        full_transactions: bool = False,
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Block | None:
        """Fetch and decode a block by hash."""
        result = await self.call(
            client,
            "eth_getBlockByHash",
            [block_hash, full_transactions],
            rpc_url=rpc_url,
            cancel_token=cancel_token,
        )
        return decode_block(result, full_transactions) if result else None

    async def batch_get_blocks(
        self,
        client: httpx.AsyncClient,
        block_numbers: list[int],
        full_transactions: bool = False,
        *,
        rpc_url: str | None = None,
    ) -> list[Block | None]:
        """Fetch several blocks in one batch, positionally aligned with input."""
        results = await self.batch_call(
            client,
            [
                ("eth_getBlockByNumber", [to_hex(number), full_transactions])
                for number in block_numbers
            ],
            rpc_url=rpc_url,
        )
        return [
            decode_block(raw, full_transactions) if isinstance(raw, dict) else None
            for raw in results
        ]

    async def get_transaction_by_hash(
        self,
        client: httpx.AsyncClient,
        tx_hash: str,
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Transaction | None:
        """Fetch and decode a transaction (timestamp left at 0)."""
        result = await self.call(
            client,
            "eth_getTransactionByHash",
            [tx_hash],
            rpc_url=rpc_url,
            cancel_token=cancel_token,
        )
        return decode_transaction(result) if result else None

    async def get_transaction_receipt(
        self,
        client: httpx.AsyncClient,
        tx_hash: str,
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Receipt | None:
        """Fetch and decode a transaction receipt."""
        result = await self.call(
            client,
            "eth_getTransactionReceipt",
            [tx_hash],
            rpc_url=rpc_url,
            cancel_token=cancel_token,
        )
        return decode_receipt(result) if result else None

    async def get_receipt_with_timeout(
        self,
        client: httpx.AsyncClient,
        tx_hash: str,
        timeout: float = RECEIPT_TIMEOUT,
        *,
        rpc_url: str | None = None,
    ) -> Receipt | None:
        """Fetch a receipt racing a fixed deadline.

        Raises:
            RequestTimeout: If the receipt does not arrive within ``timeout``
        """
        try:
            return await asyncio.wait_for(
                self.get_transaction_receipt(client, tx_hash, rpc_url=rpc_url),
                timeout=timeout,
            )
        except TimeoutError as e:
            msg = f"Receipt for {tx_hash} timed out after {timeout}s"
            raise RequestTimeout(msg) from e

    async def batch_get_receipts(
        self,
        client: httpx.AsyncClient,
        tx_hashes: list[str],
        *,
        rpc_url: str | None = None,
    ) -> list[Receipt | None]:
        """Fetch several receipts in one batch, positionally aligned with input."""
        results = await self.batch_call(
            client,
            [("eth_getTransactionReceipt", [tx_hash]) for tx_hash in tx_hashes],
            rpc_url=rpc_url,
        )
        return [decode_receipt(raw) if isinstance(raw, dict) else None for raw in results]

    async def get_logs(
        self,
        client: httpx.AsyncClient,
        from_block: int | str,
        to_block: int | str = "latest",
        address: str | None = None,
        topics: list[str] | None = None,
        *,
        rpc_url: str | None = None,
    ) -> list[LogEntry]:
        """Fetch logs matching a filter."""
        log_filter: dict[str, Any] = {
            "fromBlock": block_tag(from_block),
            "toBlock": block_tag(to_block),
        }
        if address:
            log_filter["address"] = address
        if topics:
            log_filter["topics"] = topics

        result = await self.call(client, "eth_getLogs", [log_filter], rpc_url=rpc_url)
        return [decode_log(entry) for entry in result or [] if isinstance(entry, dict)]

    async def get_gas_price(
        self, client: httpx.AsyncClient, *, rpc_url: str | None = None
    ) -> int:
        """Get the current gas price in wei."""
        result = await self.call(client, "eth_gasPrice", [], rpc_url=rpc_url)
        return hex_to_big_int(result)

    async def get_code(
        self,
        client: httpx.AsyncClient,
        address: str,
        block: int | str = "latest",
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        """Get the deployed bytecode at an address ("0x" for accounts)."""
        result = await self.call(
            client,
            "eth_getCode",
            [address, block_tag(block)],
            rpc_url=rpc_url,
            cancel_token=cancel_token,
        )
        return result or "0x"

    async def eth_call(
        self,
        client: httpx.AsyncClient,
        to: str,
        data: str,
        block: int | str = "latest",
        *,
        rpc_url: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str | None:
        """Execute a read-only contract call and return the raw hex result."""
        return await self.call(
            client,
            "eth_call",
            [{"to": to, "data": data}, block_tag(block)],
            rpc_url=rpc_url,
            cancel_token=cancel_token,
        )


async def _gather_chunked[K, V](
    keys: list[K],
    fetch_batch: Callable[[list[K]], Awaitable[list[V]]],
    batch_size: int,
    parallel_batches: int,
) -> list[V]:
    # Split into batches
    batches = [keys[i : i + batch_size] for i in range(0, len(keys), batch_size)]

    results: list[V] = []
    # Process batches in parallel chunks
    for i in range(0, len(batches), parallel_batches):
        parallel_chunk = batches[i : i + parallel_batches]
        chunk_results = await asyncio.gather(*[fetch_batch(batch) for batch in parallel_chunk])
        for batch_result in chunk_results:
            results.extend(batch_result)

    return results


async def batch_get_block_range(
    rpc_client: RPCClient,
    client: httpx.AsyncClient,
    block_numbers: list[int],
    full_transactions: bool = False,
    batch_size: int = RPC_BATCH_SIZE,
    parallel_batches: int = DEFAULT_PARALLEL_BATCHES,
    *,
    rpc_url: str | None = None,
) -> list[Block | None]:
    """Fetch many blocks as several batch requests with parallel execution.

    Args:
        rpc_client: RPC client instance
        client: HTTP client instance
        block_numbers: Blocks to fetch
        full_transactions: Whether to request transaction detail
        batch_size: Number of blocks per batch request
        parallel_batches: Number of batch requests to execute in parallel
        rpc_url: Endpoint override

    Returns:
        Blocks positionally aligned with ``block_numbers``; None where the
        provider returned nothing

    Example:
        ```python
        rpc = RPCClient(rpc_url)
        async with httpx.AsyncClient() as client:
            blocks = await batch_get_block_range(
                rpc, client, list(range(1000, 700, -1)), batch_size=100
            )
        ```
    """

    async def fetch(numbers: list[int]) -> list[Block | None]:
        return await rpc_client.batch_get_blocks(
            client, numbers, full_transactions, rpc_url=rpc_url
        )

    return await _gather_chunked(block_numbers, fetch, batch_size, parallel_batches)


async def batch_get_receipt_range(
    rpc_client: RPCClient,
    client: httpx.AsyncClient,
    tx_hashes: list[str],
    batch_size: int = RPC_BATCH_SIZE,
    parallel_batches: int = DEFAULT_PARALLEL_BATCHES,
    *,
    rpc_url: str | None = None,
) -> list[Receipt | None]:
    """Fetch many receipts as several batch requests with parallel execution.

    Returns:
        Receipts positionally aligned with ``tx_hashes``
    """

    async def fetch(hashes: list[str]) -> list[Receipt | None]:
        return await rpc_client.batch_get_receipts(client, hashes, rpc_url=rpc_url)

    return await _gather_chunked(tx_hashes, fetch, batch_size, parallel_batches)


__all__ = [
    "RPCClient",
    "batch_get_block_range",
    "batch_get_receipt_range",
    "block_tag",
    "response_index",
]
