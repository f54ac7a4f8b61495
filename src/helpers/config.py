"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from src.helpers.constants import (
    DEFAULT_PUBLIC_RPC_URL,
    DEFAULT_RATE_LIMIT,
    HEALTH_WINDOW_SECONDS,
)


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from src.helpers.config import get_required_env

        rpc_url = get_required_env("MONAD_RPC_URL")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default

    Example:
        ```python
        from src.helpers.config import get_optional_env

        window = int(get_optional_env("HEALTH_WINDOW_SECONDS", "600"))
        ```
    """
    return os.getenv(key, default)


def get_int_env(key: str, default: int) -> int:
    """Get a positive integer environment variable.

    Raises:
        ValueError: If the variable is set but is not a positive integer
    """
    value = os.getenv(key)
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        msg = f"{key} must be an integer, got {value!r}"
        raise ValueError(msg) from None
    if number <= 0:
        msg = f"{key} must be positive, got {number}"
        raise ValueError(msg)
    return number


def _endpoint(key: str, rpc_url: str | None) -> str:
    if rpc_url:
        return rpc_url
    return os.getenv(key) or DEFAULT_PUBLIC_RPC_URL


def get_rpc_url(rpc_url: str | None = None) -> str:
    """Get the general-purpose RPC URL.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        The parameter, else MONAD_RPC_URL, else the public default endpoint

    Example:
        ```python
        from src.helpers.config import get_rpc_url

        rpc_url = get_rpc_url()
        ```
    """
    return _endpoint("MONAD_RPC_URL", rpc_url)


def get_high_throughput_rpc_url(rpc_url: str | None = None) -> str:
    """Get the rate-limited high-throughput RPC URL.

    Falls back to MONAD_HIGH_THROUGHPUT_RPC_URL, then the public default.
    """
    return _endpoint("MONAD_HIGH_THROUGHPUT_RPC_URL", rpc_url)


def get_metrics_rpc_url(rpc_url: str | None = None) -> str:
    """Get the RPC URL reserved for dashboard metrics.

    Falls back to MONAD_METRICS_RPC_URL, then the public default.
    """
    return _endpoint("MONAD_METRICS_RPC_URL", rpc_url)


class ProviderEndpoints(BaseModel):
    """The three interchangeable providers call sites choose from."""

    general: str = Field(default=DEFAULT_PUBLIC_RPC_URL, description="Default endpoint")
    high_throughput: str = Field(
        default=DEFAULT_PUBLIC_RPC_URL, description="Rate-limited bulk endpoint"
    )
    metrics: str = Field(default=DEFAULT_PUBLIC_RPC_URL, description="Metrics-only endpoint")


class ExplorerConfig(BaseModel):
    """Runtime settings resolved from the environment."""

    endpoints: ProviderEndpoints = Field(default_factory=ProviderEndpoints)
    rate_limit: int = Field(
        default=DEFAULT_RATE_LIMIT,
        gt=0,
        description="Calls per second allowed on the high-throughput endpoint",
    )
    health_window_seconds: int = Field(
        default=HEALTH_WINDOW_SECONDS,
        gt=0,
        description="Length of the ecosystem health window",
    )


def load_config() -> ExplorerConfig:
    """Build the explorer configuration from environment variables.

    Raises:
        ValueError: If a numeric setting is malformed
    """
    return ExplorerConfig(
        endpoints=ProviderEndpoints(
            general=get_rpc_url(),
            high_throughput=get_high_throughput_rpc_url(),
            metrics=get_metrics_rpc_url(),
        ),
        rate_limit=get_int_env("RPC_RATE_LIMIT", DEFAULT_RATE_LIMIT),
        health_window_seconds=get_int_env("HEALTH_WINDOW_SECONDS", HEALTH_WINDOW_SECONDS),
    )


__all__ = [
    "ExplorerConfig",
    "ProviderEndpoints",
    "get_high_throughput_rpc_url",
    "get_int_env",
    "get_metrics_rpc_url",
    "get_optional_env",
    "get_required_env",
    "get_rpc_url",
    "load_config",
]
