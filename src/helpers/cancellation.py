"""Cooperative cancellation for request flows."""

import asyncio

from collections.abc import Awaitable

from src.helpers.errors import RequestCancelled


class CancellationToken:
    """Flag shared by every RPC call of one request flow.

    Example:
        ```python
        token = CancellationToken()
        task = asyncio.create_task(search(ctx, "0xabc...", cancel_token=token))
        # user issued a new search
        token.cancel()
        ```
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise ``RequestCancelled`` when the token has fired."""
        if self._event.is_set():
            raise RequestCancelled

    async def wait(self) -> None:
        await self._event.wait()

    async def run[T](self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        The in-flight work is cancelled when the token wins the race.

        Raises:
            RequestCancelled: If the token was or becomes cancelled
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RequestCancelled

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if not work.done():
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
            raise RequestCancelled

        return work.result()


__all__ = ["CancellationToken"]
