"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from src.aggregators.base import AggregatorContext, build_context
from tests.fake_chain import FakeChain, make_config


@pytest.fixture
def chain() -> FakeChain:
    """Empty fake chain."""
    return FakeChain()


@pytest_asyncio.fixture
async def ctx(chain: FakeChain) -> AsyncIterator[AggregatorContext]:
    """Aggregator context talking to the fake chain."""
    context = build_context(make_config(), transport=httpx.MockTransport(chain.handle))
    yield context
    await context.aclose()
