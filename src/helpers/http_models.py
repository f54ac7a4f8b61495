"""Type definitions for JSON-RPC payloads."""

from typing import Any


# Body of an HTTP response (object for single calls, array for batches)
type JsonResponse = dict[str, Any] | list[Any] | None

# One entry of a batch: (method, params)
type RpcRequestSpec = tuple[str, list[Any]]

__all__ = ["JsonResponse", "RpcRequestSpec"]
