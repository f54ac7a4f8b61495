"""Common configuration constants used across the application."""

# Provider defaults
DEFAULT_PUBLIC_RPC_URL = "https://testnet-rpc.monad.xyz"
"""Public endpoint used when no provider URL is configured"""

NATIVE_SYMBOL = "MON"
"""Ticker of the chain's native currency"""

# Units
WEI_PER_GWEI = 10**9
"""Wei in one gwei"""

WEI_PER_ETHER = 10**18
"""Wei in one unit of native currency"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

CONNECTION_TIMEOUT = 3.0
"""Timeout for establishing connections"""

RECEIPT_TIMEOUT = 3.0
"""Per-receipt deadline for latest-transaction receipts in seconds"""

SEARCH_TIMEOUT = 8.0
"""Overall deadline of one interactive search in seconds"""

MAX_KEEPALIVE_CONNECTIONS = 5
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 10
"""Maximum total number of connections"""

# Rate limiting
DEFAULT_RATE_LIMIT = 20
"""Calls allowed per window on the high-throughput provider (25/s upstream)"""

RATE_LIMIT_WINDOW = 1.0
"""Length of one rate limit window in seconds"""

# Retry Configuration
MAX_RETRIES = 3
"""Default maximum number of retry attempts"""

RETRY_BASE_DELAY = 0.5
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 10.0
"""Maximum delay between retries in seconds"""

# Batching
RPC_BATCH_SIZE = 100
"""Maximum number of calls per JSON-RPC batch request"""

DEFAULT_PARALLEL_BATCHES = 5
"""Default number of batch requests to run in parallel"""

# Aggregator windows
LATEST_BLOCKS_COUNT = 12
"""Blocks shown in the latest blocks panel"""

LATEST_TRANSACTIONS_COUNT = 12
"""Transactions taken from the latest block"""

METRICS_BLOCK_SPAN = 10
"""Distance in blocks used to estimate block time for dashboard metrics"""

BLOCK_TIME_SAMPLE_SPAN = 100
"""Distance in blocks used to estimate block rate for longer windows"""

FALLBACK_BLOCKS_PER_MINUTE = 20
"""Block rate assumed when no estimate is available (3 s blocks)"""

HIGH_GAS_TX_COUNT = 5
"""Transactions listed in the gas overview"""

BASE_FEE_SHARE = 0.8
"""Share of the gas price reported as base fee"""

PRIORITY_FEE_SHARE = 0.2
"""Share of the gas price reported as priority fee"""

TOP_CONTRACTS_BLOCKS = 5
"""Full blocks scanned for the top contracts panel"""

TOP_CONTRACTS_LIMIT = 10
"""Contracts listed in the top contracts panel"""

DEPLOYMENT_LIMIT = 12
"""Deployments collected before the scan stops"""

DEPLOYMENT_MAX_BLOCKS = 10
"""Blocks scanned for deployments before the scan stops"""

DEPLOYMENT_BLOCK_DELAY = 0.5
"""Pause between block fetches during the deployment scan in seconds"""

EVENT_TXS_PER_BLOCK = 3
"""Transactions classified per block by the events scan"""

EVENT_LIMIT = 20
"""Maximum events returned by one scan"""

EVENT_MAX_BLOCK_SCAN = 20
"""Maximum blocks fetched when catching up on new events"""

LARGE_TRANSFER_WEI = WEI_PER_ETHER
"""Transfers strictly above this value are reported"""

HIGH_GAS_THRESHOLD = 500_000
"""Declared gas strictly above this value is reported"""

HEALTH_WINDOW_SECONDS = 600
"""Default ecosystem health window in seconds"""

HEALTH_RECENT_BLOCKS = 5
"""Blocks fetched by the recent ecosystem health variant"""

HEALTHY_SUCCESS_RATE = 95.0
"""Success rate (percent) that must be exceeded to be healthy"""

HEALTHY_FAILED_RATE = 5.0
"""Failure rate (percent) that must not be reached to be healthy"""

# ERC-20 method selectors
SELECTOR_NAME = "0x06fdde03"
SELECTOR_SYMBOL = "0x95d89b41"
SELECTOR_DECIMALS = "0x313ce567"
SELECTOR_TOTAL_SUPPLY = "0x18160ddd"

NOT_AVAILABLE = "N/A"
"""Placeholder for values that could not be fetched"""

ZERO_HASH = "0x" + "0" * 64
"""Hash reported when a provider omits the parent hash"""


__all__ = [
    "BASE_FEE_SHARE",
    "BLOCK_TIME_SAMPLE_SPAN",
    "CONNECTION_TIMEOUT",
    "DEFAULT_PARALLEL_BATCHES",
    "DEFAULT_PUBLIC_RPC_URL",
    "DEFAULT_RATE_LIMIT",
    "DEFAULT_TIMEOUT",
    "DEPLOYMENT_BLOCK_DELAY",
    "DEPLOYMENT_LIMIT",
    "DEPLOYMENT_MAX_BLOCKS",
    "EVENT_LIMIT",
    "EVENT_MAX_BLOCK_SCAN",
    "EVENT_TXS_PER_BLOCK",
    "FALLBACK_BLOCKS_PER_MINUTE",
    "HEALTHY_FAILED_RATE",
    "HEALTHY_SUCCESS_RATE",
    "HEALTH_RECENT_BLOCKS",
    "HEALTH_WINDOW_SECONDS",
    "HIGH_GAS_THRESHOLD",
    "HIGH_GAS_TX_COUNT",
    "LARGE_TRANSFER_WEI",
    "LATEST_BLOCKS_COUNT",
    "LATEST_TRANSACTIONS_COUNT",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "MAX_RETRIES",
    "METRICS_BLOCK_SPAN",
    "NATIVE_SYMBOL",
    "NOT_AVAILABLE",
    "PRIORITY_FEE_SHARE",
    "RATE_LIMIT_WINDOW",
    "RECEIPT_TIMEOUT",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "RPC_BATCH_SIZE",
    "SEARCH_TIMEOUT",
    "SELECTOR_DECIMALS",
    "SELECTOR_NAME",
    "SELECTOR_SYMBOL",
    "SELECTOR_TOTAL_SUPPLY",
    "TOP_CONTRACTS_BLOCKS",
    "TOP_CONTRACTS_LIMIT",
    "WEI_PER_ETHER",
    "WEI_PER_GWEI",
    "ZERO_HASH",
]
