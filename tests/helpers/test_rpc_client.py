"""Tests for RPC client."""

import asyncio
import json

from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.helpers.cancellation import CancellationToken
from src.helpers.errors import (
    ProtocolFailure,
    RateLimited,
    RequestCancelled,
    RequestTimeout,
    TransportFailure,
)
from src.helpers.rate_limit import FixedWindowRateLimiter
from src.helpers.rpc import RPCClient, batch_get_block_range, block_tag


if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock


def mock_client(body: Any) -> AsyncMock:
    """HTTP client mock whose post() answers with ``body``."""
    mock_http_client = AsyncMock(spec=httpx.AsyncClient)
    mock_response = MagicMock()
    mock_response.is_success = True
    mock_response.json.return_value = body
    mock_http_client.post.return_value = mock_response
    return mock_http_client


class TestRPCClient:
    """Tests for RPCClient class."""

    def test_init_with_valid_url(self) -> None:
        """Test RPCClient initialization with valid URL."""
        client = RPCClient("https://testnet-rpc.monad.xyz")

        assert client.rpc_url == "https://testnet-rpc.monad.xyz"
        assert client.timeout == 30.0
        assert client.rate_limits == {}

    def test_init_with_custom_timeout(self) -> None:
        """Test RPCClient initialization with custom timeout."""
        client = RPCClient("https://testnet-rpc.monad.xyz", timeout=60.0)

        assert client.timeout == 60.0

    def test_init_with_empty_url_raises(self) -> None:
        """Test that empty URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient("")

    def test_init_with_none_url_raises(self) -> None:
        """Test that None URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient(None)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_call_single_method(self) -> None:
        """Test making a single RPC call."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": "0x1000"})

        result = await client.call(mock_http_client, "eth_blockNumber")

        assert result == "0x1000"
        mock_http_client.post.assert_called_once()
        assert mock_http_client.post.call_args.kwargs["json"] == {
            "jsonrpc": "2.0",
            "method": "eth_blockNumber",
            "params": [],
            "id": 1,
        }

    @pytest.mark.asyncio
    async def test_call_with_params(self) -> None:
        """Test RPC call with parameters."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            {"jsonrpc": "2.0", "id": 1, "result": {"number": "0x1"}}
        )

        result = await client.call(
            mock_http_client, "eth_getBlockByNumber", ["0x1", True]
        )

        assert result["number"] == "0x1"

    @pytest.mark.asyncio
    async def test_call_with_custom_timeout_and_url(self) -> None:
        """Test that timeout and endpoint overrides reach the request."""
        client = RPCClient("https://test.rpc", timeout=30.0)
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": "0x1"})

        await client.call(
            mock_http_client, "eth_blockNumber", timeout=60.0, rpc_url="https://other.rpc"
        )

        call_args = mock_http_client.post.call_args
        assert call_args.args[0] == "https://other.rpc"
        assert call_args.kwargs["timeout"] == 60.0

    @pytest.mark.asyncio
    async def test_call_with_rpc_error(self) -> None:
        """Test RPC call that returns an error."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32000, "message": "Error message"},
            }
        )

        with pytest.raises(ProtocolFailure, match="RPC error: Error message") as exc_info:
            await client.call(mock_http_client, "eth_blockNumber")

        assert exc_info.value.code == -32000

    @pytest.mark.asyncio
    async def test_call_with_malformed_error(self) -> None:
        """Test that an error field that is not an object raises ProtocolFailure."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "error": "text"})

        with pytest.raises(ProtocolFailure, match="malformed response"):
            await client.call(mock_http_client, "eth_getTransactionReceipt", ["0x1"])

    @pytest.mark.asyncio
    async def test_call_with_http_error_status(self) -> None:
        """Test that a non-2xx status is a transport failure."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(None)
        mock_http_client.post.return_value.is_success = False
        mock_http_client.post.return_value.status_code = 503

        with pytest.raises(TransportFailure, match="status: 503") as exc_info:
            await client.call(mock_http_client, "eth_blockNumber")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_call_with_network_error(self) -> None:
        """Test that connection errors are transport failures."""
        client = RPCClient("https://test.rpc")
        mock_http_client = AsyncMock(spec=httpx.AsyncClient)
        mock_http_client.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(TransportFailure, match="HTTP error"):
            await client.call(mock_http_client, "eth_blockNumber")

    @pytest.mark.asyncio
    async def test_call_with_timeout(self) -> None:
        """Test that httpx timeouts become RequestTimeout."""
        client = RPCClient("https://test.rpc")
        mock_http_client = AsyncMock(spec=httpx.AsyncClient)
        mock_http_client.post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(RequestTimeout):
            await client.call(mock_http_client, "eth_blockNumber")

    @pytest.mark.asyncio
    async def test_call_with_invalid_json(self) -> None:
        """Test that a body that is not JSON is a transport failure."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(None)
        mock_http_client.post.return_value.json.side_effect = ValueError("bad json")

        with pytest.raises(TransportFailure, match="not valid JSON"):
            await client.call(mock_http_client, "eth_blockNumber")

    @pytest.mark.asyncio
    async def test_batch_call(self) -> None:
        """Test making a batch RPC call."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            [
                {"jsonrpc": "2.0", "id": 0, "result": "0x1000"},
                {"jsonrpc": "2.0", "id": 1, "result": {"number": "0x1"}},
            ]
        )

        requests: list[tuple[str, list[Any]]] = [
            ("eth_blockNumber", []),
            ("eth_getBlockByNumber", ["0x1", True]),
        ]
        results = await client.batch_call(mock_http_client, requests)

        assert len(results) == 2
        assert results[0] == "0x1000"
        assert results[1]["number"] == "0x1"

    @pytest.mark.asyncio
    async def test_batch_call_reorders_and_nulls_errors(self) -> None:
        """Test that out-of-order responses align with requests and errors become None."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            [
                {"jsonrpc": "2.0", "id": 2, "result": "0xc"},
                {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}},
                {"jsonrpc": "2.0", "id": 0, "result": "0xa"},
            ]
        )

        results = await client.batch_call(
            mock_http_client,
            [("eth_getBalance", ["0xa"]), ("eth_getBalance", ["0xb"]), ("eth_getBalance", ["0xc"])],
        )

        assert results == ["0xa", None, "0xc"]

    @pytest.mark.asyncio
    async def test_batch_call_missing_entry_is_none(self) -> None:
        """Test that a sub-response the provider dropped yields None."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client([{"jsonrpc": "2.0", "id": 0, "result": "0x1"}])

        results = await client.batch_call(
            mock_http_client, [("eth_blockNumber", []), ("eth_gasPrice", [])]
        )

        assert results == ["0x1", None]

    @pytest.mark.asyncio
    async def test_batch_call_empty_makes_no_request(self) -> None:
        """Test that an empty batch returns [] without a request."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client([])

        assert await client.batch_call(mock_http_client, []) == []
        mock_http_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_call_rejected_as_whole(self) -> None:
        """Test that a batch answered by a single error object raises."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "batch too large"}}
        )

        with pytest.raises(ProtocolFailure, match="batch too large"):
            await client.batch_call(mock_http_client, [("eth_blockNumber", [])])

    @pytest.mark.asyncio
    async def test_batch_call_rejected_with_text_error(self) -> None:
        """Test a whole-batch rejection whose error is a bare string."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": None, "error": "rate limited"})

        with pytest.raises(ProtocolFailure, match="rate limited"):
            await client.batch_call(mock_http_client, [("eth_blockNumber", [])])

    @pytest.mark.asyncio
    async def test_batch_call_malformed_entry_is_none(self) -> None:
        """Test that an entry that does not fit the envelope becomes None."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client([
            {"jsonrpc": "2.0", "id": 1, "error": "execution reverted"},
            {"jsonrpc": "2.0", "id": 0, "result": "0x1"},
        ])

        results = await client.batch_call(
            mock_http_client, [("eth_blockNumber", []), ("eth_gasPrice", [])]
        )

        assert results == ["0x1", None]

    @pytest.mark.asyncio
    async def test_batch_call_string_ids(self) -> None:
        """Test that ids echoed as numeric strings are still matched by position."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client([
            {"jsonrpc": "2.0", "id": "1", "result": "0x2"},
            {"jsonrpc": "2.0", "id": "0", "result": "0x1"},
            {"jsonrpc": "2.0", "id": "abc", "result": "0x9"},
        ])

        results = await client.batch_call(
            mock_http_client, [("eth_blockNumber", []), ("eth_gasPrice", [])]
        )

        assert results == ["0x1", "0x2"]

    @pytest.mark.asyncio
    async def test_batch_call_non_array_raises(self) -> None:
        """Test that a non-array batch body raises."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 0, "result": "0x1"})

        with pytest.raises(ProtocolFailure, match="did not return an array"):
            await client.batch_call(mock_http_client, [("eth_blockNumber", [])])

    @pytest.mark.asyncio
    async def test_get_block_number(self) -> None:
        """Test getting latest block number."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": "0xabc"})

        result = await client.get_block_number(mock_http_client)

        assert result == 2748  # 0xabc in decimal

    @pytest.mark.asyncio
    async def test_get_block_by_number_decodes(self) -> None:
        """Test that blocks are decoded into models."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "result": {
                    "number": "0x3e8",
                    "hash": "0xblock",
                    "timestamp": "0x10",
                    "transactions": ["0xaa", "0xbb"],
                },
            }
        )

        block = await client.get_block_by_number(mock_http_client, 1000)

        assert block is not None
        assert block.number == 1000
        assert block.transaction_hashes == ["0xaa", "0xbb"]
        assert mock_http_client.post.call_args.kwargs["json"]["params"] == ["0x3e8", False]

    @pytest.mark.asyncio
    async def test_get_block_by_number_unknown_is_none(self) -> None:
        """Test that a null result means the block is unknown."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": None})

        assert await client.get_block_by_number(mock_http_client, "latest") is None

    @pytest.mark.asyncio
    async def test_get_gas_price(self) -> None:
        """Test getting the gas price in wei."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            {"jsonrpc": "2.0", "id": 1, "result": "0xba43b7400"}  # 50 gwei
        )

        assert await client.get_gas_price(mock_http_client) == 50_000_000_000

    @pytest.mark.asyncio
    async def test_get_code_defaults_to_empty(self) -> None:
        """Test that a null code result reads as an account."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": None})

        assert await client.get_code(mock_http_client, "0xabc") == "0x"

    @pytest.mark.asyncio
    async def test_get_logs_builds_filter(self) -> None:
        """Test that the log filter only carries the given criteria."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "result": [{"address": "0xabc", "blockNumber": "0x5", "logIndex": "0x1"}],
            }
        )

        logs = await client.get_logs(mock_http_client, 1, address="0xabc")

        assert logs[0].block_number == 5
        assert mock_http_client.post.call_args.kwargs["json"]["params"] == [
            {"fromBlock": "0x1", "toBlock": "latest", "address": "0xabc"}
        ]


class TestRateLimitedEndpoints:
    """Tests for per-endpoint rate limiting inside RPCClient."""

    @pytest.mark.asyncio
    async def test_limited_endpoint_raises_without_sending(self) -> None:
        """Test that an exhausted quota fails before any request."""
        limiter = FixedWindowRateLimiter(limit=1, window=60.0)
        client = RPCClient("https://general.rpc", rate_limits={"https://bulk.rpc": limiter})
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": "0x1"})

        await client.call(mock_http_client, "eth_blockNumber", rpc_url="https://bulk.rpc")
        with pytest.raises(RateLimited):
            await client.call(mock_http_client, "eth_blockNumber", rpc_url="https://bulk.rpc")

        assert mock_http_client.post.call_count == 1

    @pytest.mark.asyncio
    async def test_other_endpoints_unaffected(self) -> None:
        """Test that only the configured endpoint is limited."""
        limiter = FixedWindowRateLimiter(limit=1, window=60.0)
        client = RPCClient("https://general.rpc", rate_limits={"https://bulk.rpc": limiter})
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": "0x1"})

        for _ in range(5):
            await client.call(mock_http_client, "eth_blockNumber")

        assert mock_http_client.post.call_count == 5


class TestCancellation:
    """Tests for cancellation tokens threaded through requests."""

    @pytest.mark.asyncio
    async def test_cancelled_token_sends_nothing(self) -> None:
        """Test that a fired token fails before the request."""
        client = RPCClient("https://test.rpc")
        mock_http_client = mock_client({"jsonrpc": "2.0", "id": 1, "result": "0x1"})
        token = CancellationToken()
        token.cancel()

        with pytest.raises(RequestCancelled):
            await client.call(mock_http_client, "eth_blockNumber", cancel_token=token)

        mock_http_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_during_request(self) -> None:
        """Test that cancelling mid-flight abandons the request."""
        client = RPCClient("https://test.rpc")
        mock_http_client = AsyncMock(spec=httpx.AsyncClient)

        async def slow_post(*args: Any, **kwargs: Any) -> MagicMock:
            await asyncio.sleep(10)
            return MagicMock()

        mock_http_client.post.side_effect = slow_post
        token = CancellationToken()

        task = asyncio.create_task(
            client.call(mock_http_client, "eth_blockNumber", cancel_token=token)
        )
        await asyncio.sleep(0.01)
        token.cancel()

        with pytest.raises(RequestCancelled):
            await asyncio.wait_for(task, timeout=1.0)


class TestBatchHelpers:
    """Tests for module-level batch helpers."""

    def test_block_tag(self) -> None:
        """Test block number encoding."""
        assert block_tag(1000) == "0x3e8"
        assert block_tag("latest") == "latest"

    @pytest.mark.asyncio
    async def test_batch_get_block_range_chunks_requests(self) -> None:
        """Test that blocks are split into batches and kept in input order."""
        rpc = RPCClient("https://test.rpc")
        rpc.batch_get_blocks = AsyncMock(  # type: ignore[method-assign]
            side_effect=lambda client, numbers, full, rpc_url=None: [None for _ in numbers]
        )

        blocks = await batch_get_block_range(
            rpc, AsyncMock(), list(range(10, 0, -1)), batch_size=3, parallel_batches=2
        )

        assert len(blocks) == 10
        batches = [c.args[1] for c in rpc.batch_get_blocks.await_args_list]
        assert batches == [[10, 9, 8], [7, 6, 5], [4, 3, 2], [1]]


class TestRPCClientOverHttp:
    """Tests for RPCClient against a mocked HTTP layer using pytest-httpx."""

    @pytest.mark.asyncio
    async def test_call_posts_json_rpc_envelope(self, httpx_mock: "HTTPXMock") -> None:
        """Test that a call sends a JSON-RPC 2.0 envelope and decodes the result."""
        httpx_mock.add_response(
            url="https://test.rpc",
            method="POST",
            json={"jsonrpc": "2.0", "id": 1, "result": "0x3e8"},
        )

        async with httpx.AsyncClient() as http_client:
            number = await RPCClient("https://test.rpc").get_block_number(http_client)

        assert number == 1000
        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.content) == {
            "jsonrpc": "2.0",
            "method": "eth_blockNumber",
            "params": [],
            "id": 1,
        }

    @pytest.mark.asyncio
    async def test_batch_over_http(self, httpx_mock: "HTTPXMock") -> None:
        """Test that a batch is one POST and results follow request order."""
        httpx_mock.add_response(
            url="https://test.rpc",
            method="POST",
            json=[
                {"jsonrpc": "2.0", "id": 1, "result": "0x2"},
                {"jsonrpc": "2.0", "id": 0, "result": "0x1"},
            ],
        )

        async with httpx.AsyncClient() as http_client:
            results = await RPCClient("https://test.rpc").batch_call(
                http_client, [("eth_blockNumber", []), ("eth_gasPrice", [])]
            )

        assert results == ["0x1", "0x2"]
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_transport_failure(self, httpx_mock: "HTTPXMock") -> None:
        """Test that a 5xx status raises TransportFailure with the status code."""
        httpx_mock.add_response(url="https://test.rpc", status_code=503)

        async with httpx.AsyncClient() as http_client:
            with pytest.raises(TransportFailure, match="status: 503") as exc_info:
                await RPCClient("https://test.rpc").call(http_client, "eth_blockNumber")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_read_timeout_is_request_timeout(self, httpx_mock: "HTTPXMock") -> None:
        """Test that an httpx timeout surfaces as RequestTimeout."""
        httpx_mock.add_exception(httpx.ReadTimeout("Request timed out"))

        async with httpx.AsyncClient() as http_client:
            with pytest.raises(RequestTimeout):
                await RPCClient("https://test.rpc").call(http_client, "eth_blockNumber")

    @pytest.mark.asyncio
    async def test_endpoint_override(self, httpx_mock: "HTTPXMock") -> None:
        """Test that rpc_url routes a call to another provider."""
        httpx_mock.add_response(
            url="https://metrics.rpc",
            json={"jsonrpc": "2.0", "id": 1, "result": "0xc"},
        )

        async with httpx.AsyncClient() as http_client:
            price = await RPCClient("https://test.rpc").call(
                http_client, "eth_gasPrice", rpc_url="https://metrics.rpc"
            )

        assert price == "0xc"
