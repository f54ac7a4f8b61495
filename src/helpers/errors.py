"""Failure taxonomy shared by the RPC client, aggregators and search."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of a failed request."""

    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


class ExplorerError(Exception):
    """Base class for all errors raised by this package."""

    kind: ErrorKind = ErrorKind.UNEXPECTED


class RPCFailure(ExplorerError):
    """A JSON-RPC request did not produce a usable result.

    Callers that do not care about the cause catch this class and, if they
    must, differentiate by message text.
    """


class TransportFailure(RPCFailure):
    """Network unreachable, connection error or non-2xx HTTP status."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolFailure(RPCFailure):
    """The response carried a JSON-RPC ``error`` object or was malformed."""

    kind = ErrorKind.PROTOCOL

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RateLimited(RPCFailure):
    """The local request quota for a provider is exhausted.

    Raised before anything is sent; the caller decides whether to back off.
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, retry_after_ms: int) -> None:
        super().__init__(f"Rate limit exceeded, retry after {retry_after_ms} ms")
        self.retry_after_ms = retry_after_ms


class RequestTimeout(RPCFailure):
    """A client-enforced deadline elapsed before the response arrived."""

    kind = ErrorKind.TIMEOUT


class RequestCancelled(ExplorerError):
    """The caller abandoned the request through its cancellation token.

    Deliberately not an ``RPCFailure`` so that handlers which degrade on
    request failures never swallow a cancellation.
    """

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Request cancelled") -> None:
        super().__init__(message)


class BlockUnavailable(ExplorerError):
    """A block required to anchor a computation could not be fetched."""

    kind = ErrorKind.NOT_FOUND


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception to an ``ErrorKind``.

    Args:
        error: Exception raised by a request flow

    Returns:
        ErrorKind: Kind of the explorer error, ``TIMEOUT`` for asyncio
        timeouts, ``UNEXPECTED`` otherwise
    """
    if isinstance(error, ExplorerError):
        return error.kind
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNEXPECTED


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMITED: "Too many requests. Please wait and try again.",
    ErrorKind.TIMEOUT: "Search timed out. Please try again.",
    ErrorKind.TRANSPORT: "Network error. Please check your connection and try again.",
    ErrorKind.PROTOCOL: "Invalid search query or data not found.",
    ErrorKind.NOT_FOUND: "Invalid search query or data not found.",
}


def message_for_kind(kind: ErrorKind, detail: str = "") -> str:
    """Short human-readable message for a failure of the given kind."""
    if kind in _USER_MESSAGES:
        return _USER_MESSAGES[kind]
    return f"Search failed: {detail or 'Unknown error'}. Please try again."


def user_message(error: BaseException) -> str:
    """Short human-readable message for an interactive flow failure.

    Args:
        error: Exception raised by the flow

    Returns:
        str: Message distinguishing rate limiting, timeout, network error
        and not-found cases
    """
    return message_for_kind(classify_error(error), str(error))


__all__ = [
    "BlockUnavailable",
    "ErrorKind",
    "ExplorerError",
    "ProtocolFailure",
    "RPCFailure",
    "RateLimited",
    "RequestCancelled",
    "RequestTimeout",
    "TransportFailure",
    "classify_error",
    "message_for_kind",
    "user_message",
]
