"""Typed outcome of an aggregator run."""

from dataclasses import dataclass, field

from src.helpers.errors import ErrorKind


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Complete result."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class PartialOk[T]:
    """Usable result assembled while some sub-fetches failed.

    Attributes:
        value: The partial result
        warnings: One entry per failed sub-fetch
    """

    value: T
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err[T]:
    """Failed run carrying the documented fallback for its aggregator.

    Attributes:
        kind: Classification of the failure
        message: Text of the underlying error
        value: Empty/zeroed result the caller may display instead
    """

    kind: ErrorKind
    message: str
    value: T

    @property
    def ok(self) -> bool:
        return False


type Result[T] = Ok[T] | PartialOk[T] | Err[T]


def unwrap[T](result: Result[T]) -> T:
    """Return the value of any result variant.

    For ``Err`` this is the aggregator's fallback, so callers that only
    display data can ignore the variant entirely.
    """
    return result.value


__all__ = ["Err", "Ok", "PartialOk", "Result", "unwrap"]
