"""Tests for cooperative cancellation tokens."""

import asyncio

import pytest

from src.helpers.cancellation import CancellationToken
from src.helpers.errors import RequestCancelled


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initial_state(self) -> None:
        """Test that a new token is not cancelled."""
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel(self) -> None:
        """Test that cancel flips the flag."""
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(RequestCancelled):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_run_returns_result(self) -> None:
        """Test that run passes the result through."""

        async def work() -> int:
            return 7

        assert await CancellationToken().run(work()) == 7

    @pytest.mark.asyncio
    async def test_run_propagates_errors(self) -> None:
        """Test that failures of the work propagate unchanged."""

        async def work() -> None:
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            await CancellationToken().run(work())

    @pytest.mark.asyncio
    async def test_run_on_cancelled_token_never_starts(self) -> None:
        """Test that an already cancelled token rejects new work."""
        started = False

        async def work() -> None:
            nonlocal started
            started = True

        token = CancellationToken()
        token.cancel()
        with pytest.raises(RequestCancelled):
            await token.run(work())
        assert not started

    @pytest.mark.asyncio
    async def test_cancel_interrupts_in_flight_work(self) -> None:
        """Test that cancelling mid-flight aborts the work."""
        token = CancellationToken()
        interrupted = asyncio.Event()

        async def slow() -> None:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                interrupted.set()
                raise

        async def cancel_soon() -> None:
            await asyncio.sleep(0.01)
            token.cancel()

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(RequestCancelled):
            await token.run(slow())
        await canceller

        assert interrupted.is_set()
