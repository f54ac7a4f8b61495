"""Shared context and failure policy for aggregators."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import wraps

from typing import Any, ParamSpec, TypeVar

import httpx

from src.data.models import Receipt
from src.helpers.config import ExplorerConfig, ProviderEndpoints, load_config
from src.helpers.constants import DEFAULT_TIMEOUT
from src.helpers.errors import RequestCancelled, RPCFailure, classify_error
from src.helpers.http import create_http_client
from src.helpers.logging import get_logger
from src.helpers.rate_limit import FixedWindowRateLimiter
from src.helpers.result import Err, Ok, PartialOk, Result
from src.helpers.rpc import RPCClient


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass
class AggregatorContext:
    """Everything an aggregator needs to talk to the chain.

    Attributes:
        rpc: JSON-RPC client for the general and metrics providers
        bulk_rpc: Rate-limited client for the high-throughput provider
        http: Shared HTTP client
        endpoints: Provider URLs call sites choose from
        config: Runtime settings
    """

    rpc: RPCClient
    bulk_rpc: RPCClient
    http: httpx.AsyncClient
    endpoints: ProviderEndpoints
    config: ExplorerConfig

    async def aclose(self) -> None:
        await self.http.aclose()


def build_context(
    config: ExplorerConfig | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    **http_kwargs: Any,
) -> AggregatorContext:
    """Create an aggregator context from configuration.

    The high-throughput provider gets its own client owning a fixed-window
    limiter. Calls made through the general client are never limited, even
    when both resolve to the same URL.

    Args:
        config: Settings to use, loaded from the environment when omitted
        timeout: Default HTTP timeout in seconds
        **http_kwargs: Extra ``httpx.AsyncClient`` arguments (e.g. ``transport``)

    Returns:
        AggregatorContext: Context owning a fresh HTTP client
    """
    config = config or load_config()
    endpoints = config.endpoints
    bulk_rpc = RPCClient(
        endpoints.high_throughput,
        timeout=timeout,
        rate_limits={endpoints.high_throughput: FixedWindowRateLimiter(config.rate_limit)},
    )
    return AggregatorContext(
        rpc=RPCClient(endpoints.general, timeout=timeout),
        bulk_rpc=bulk_rpc,
        http=create_http_client(timeout, **http_kwargs),
        endpoints=endpoints,
        config=config,
    )


@asynccontextmanager
async def open_context(
    config: ExplorerConfig | None = None, **http_kwargs: Any
) -> AsyncIterator[AggregatorContext]:
    """Async context manager around ``build_context`` that closes the HTTP client.

    Example:
        ```python
        async with open_context() as ctx:
            blocks = unwrap(await fetch_latest_blocks(ctx))
        ```
    """
    ctx = build_context(config, **http_kwargs)
    try:
        yield ctx
    finally:
        await ctx.aclose()


def aggregator(
    fallback: Callable[[], T],
    *,
    fail_closed: bool = False,
) -> Callable[[Callable[P, Awaitable[Any]]], Callable[P, Awaitable[Result[T]]]]:
    """Declare the failure policy of an aggregator.

    The decorated coroutine returns its plain value (wrapped in ``Ok``) or
    an explicit ``PartialOk``/``Err``. Failures are handled in one place:

    - ``RequestCancelled`` always propagates.
    - Fail-open (default): any other exception is logged and turned into
      ``Err(kind, message, fallback())``.
    - Fail-closed: every exception propagates.

    Args:
        fallback: Factory for the empty/zeroed value shown on failure
        fail_closed: Whether failures propagate to the caller

    Returns:
        Decorator producing an async function that returns a ``Result``

    Example:
        ```python
        @aggregator(fallback=list)
        async def fetch_latest_blocks(ctx: AggregatorContext) -> list[Block]:
            ...

        result = await fetch_latest_blocks(ctx)  # Ok([...]) or Err(..., [])
        ```
    """

    def decorator(func: Callable[P, Awaitable[Any]]) -> Callable[P, Awaitable[Result[T]]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
            try:
                value = await func(*args, **kwargs)
            except RequestCancelled:
                raise
            except Exception as e:
                if fail_closed:
                    raise
                logger.warning("%s failed: %s", func.__name__, e)
                return Err(classify_error(e), str(e), fallback())

            if isinstance(value, Ok | PartialOk | Err):
                return value
            return Ok(value)

        return wrapper

    return decorator


async def receipt_or_none(
    ctx: AggregatorContext,
    tx_hash: str,
    *,
    timeout: float | None = None,
    rpc_url: str | None = None,
) -> Receipt | None:
    """Fetch a receipt, tolerating request failures.

    Args:
        ctx: Aggregator context
        tx_hash: Transaction hash
        timeout: Fixed deadline raced against the request, if any
        rpc_url: Endpoint override

    Returns:
        The receipt, or None when it is missing, failed or timed out
    """
    try:
        if timeout is not None:
            return await ctx.rpc.get_receipt_with_timeout(
                ctx.http, tx_hash, timeout, rpc_url=rpc_url
            )
        return await ctx.rpc.get_transaction_receipt(ctx.http, tx_hash, rpc_url=rpc_url)
    except RPCFailure as e:
        logger.debug("Receipt for %s unavailable: %s", tx_hash, e)
        return None


__all__ = [
    "AggregatorContext",
    "aggregator",
    "build_context",
    "open_context",
    "receipt_or_none",
]
