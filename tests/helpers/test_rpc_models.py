"""Tests for RPC models."""

import pytest

from pydantic import ValidationError

from src.helpers.rpc_models import JsonRpcError, JsonRpcRequest, JsonRpcResponse


def test_json_rpc_request() -> None:
    """Test JsonRpcRequest model."""
    request = JsonRpcRequest(method="test_method", params=[1, "two"], id=1)
    assert request.jsonrpc == "2.0"
    assert request.method == "test_method"
    assert request.params == [1, "two"]
    assert request.id == 1


def test_json_rpc_request_string_id() -> None:
    """Test JsonRpcRequest with string ID."""
    request = JsonRpcRequest(method="test_method", id="abc123")
    assert request.id == "abc123"


def test_json_rpc_request_default_params() -> None:
    """Test JsonRpcRequest with default params."""
    request = JsonRpcRequest(method="test_method", id=1)
    assert request.params == []


def test_json_rpc_request_validation() -> None:
    """Test JsonRpcRequest validation."""
    with pytest.raises(ValidationError):
        JsonRpcRequest(id=1)  # type: ignore[call-arg]


def test_json_rpc_request_dump() -> None:
    """Test the wire shape of a request."""
    request = JsonRpcRequest(method="eth_getBlockByNumber", params=["0x1", True], id=7)
    assert request.model_dump() == {
        "jsonrpc": "2.0",
        "method": "eth_getBlockByNumber",
        "params": ["0x1", True],
        "id": 7,
    }


def test_json_rpc_response_result() -> None:
    """Test JsonRpcResponse with a result."""
    response = JsonRpcResponse.model_validate({"jsonrpc": "2.0", "id": 0, "result": "0x10"})
    assert response.result == "0x10"
    assert response.error is None


def test_json_rpc_response_error() -> None:
    """Test JsonRpcResponse with an error object."""
    response = JsonRpcResponse.model_validate(
        {"jsonrpc": "2.0", "id": 3, "error": {"code": -32005, "message": "limit exceeded"}}
    )
    assert response.id == 3
    assert response.error == JsonRpcError(code=-32005, message="limit exceeded")


def test_json_rpc_error_defaults() -> None:
    """Test that a bare error object still has a message."""
    error = JsonRpcError.model_validate({})
    assert error.message == "Unknown error"
    assert error.code is None


def test_json_rpc_response_allows_extra_fields() -> None:
    """Test that provider-specific fields are tolerated."""
    response = JsonRpcResponse.model_validate(
        {"jsonrpc": "2.0", "id": 1, "result": None, "usage": {"credits": 1}}
    )
    assert response.result is None
