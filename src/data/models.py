"""Pydantic models for normalized chain records and aggregator results."""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class Transaction(BaseModel):
    """Transaction normalized from a provider response.

    ``timestamp`` is inherited from the containing block. ``status`` is
    None until a receipt has been merged in.
    """

    hash: str
    from_address: str = Field(default="", alias="from")
    to: str | None = Field(default=None, description="None for contract creation")
    value: str = Field(default="0.000000000000000000", description="Amount in ether")
    value_wei: int = 0
    block_number: int | None = None
    timestamp: int = 0
    status: int | None = Field(default=None, description="1 succeeded, 0 reverted")
    gas: int = Field(default=0, description="Declared gas limit")
    gas_price: int = 0
    gas_used: int | None = None
    input: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None


class Receipt(BaseModel):
    """Post-execution result of a transaction."""

    transaction_hash: str
    block_number: int | None = None
    status: int | None = None
    gas_used: int = 0
    effective_gas_price: int | None = None
    contract_address: str | None = None


class HashesOnly(BaseModel):
    """Block transactions as returned without detail."""

    kind: Literal["hashes"] = "hashes"
    hashes: list[str] = Field(default_factory=list)


class WithDetail(BaseModel):
    """Block transactions as full records."""

    kind: Literal["detail"] = "detail"
    transactions: list[Transaction] = Field(default_factory=list)


BlockTransactions = Annotated[HashesOnly | WithDetail, Field(discriminator="kind")]


class Block(BaseModel):
    """Block normalized from a provider response.

    Gas fields stay raw hex strings as delivered by the provider.
    """

    number: int
    hash: str
    parent_hash: str | None = None
    miner: str | None = None
    timestamp: int
    transactions: BlockTransactions = Field(default_factory=HashesOnly)
    gas_used: str = "0x0"
    gas_limit: str = "0x0"
    base_fee_per_gas: str | None = None

    @property
    def transaction_count(self) -> int:
        if isinstance(self.transactions, WithDetail):
            return len(self.transactions.transactions)
        return len(self.transactions.hashes)

    @property
    def transaction_hashes(self) -> list[str]:
        if isinstance(self.transactions, WithDetail):
            return [tx.hash for tx in self.transactions.transactions]
        return list(self.transactions.hashes)

    @property
    def prefetched_transactions(self) -> list[Transaction] | None:
        """Full records when the block was fetched with detail, else None."""
        if isinstance(self.transactions, WithDetail):
            return self.transactions.transactions
        return None


class EventType(StrEnum):
    CONTRACT_CREATION = "Contract Creation"
    FAILED_TRANSACTION = "Failed Transaction"
    LARGE_TRANSFER = "Large Transfer"
    HIGH_GAS_USAGE = "High Gas Usage"


class EventStatus(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class Event(BaseModel):
    """Synthetic notable-activity record derived from a block scan."""

    id: str
    type: EventType
    time: str = Field(..., description="ISO-8601 UTC time of the block")
    timestamp: int
    address: str
    details: str
    status: EventStatus
    block_number: int
    transaction_hash: str
    gas_used: int | None = None
    value: str | None = None


class EventBatch(BaseModel):
    """Events of one scan and the newest block it covered."""

    events: list[Event] = Field(default_factory=list)
    head_block: int = 0


class HealthScore(StrEnum):
    HEALTHY = "Healthy"
    NEEDS_ATTENTION = "Needs Attention"


class EcosystemHealthMetrics(BaseModel):
    """Window-scoped aggregate over a range of recent blocks."""

    tps: float = 0.0
    success_rate: float = 0.0
    failed_tx_rate: float = 0.0
    active_wallets: int = 0
    new_contracts: int = 0
    avg_block_time: float = 0.0
    max_gas_usage_per_block: int = 0
    health_score: HealthScore = HealthScore.NEEDS_ATTENTION
    block_count: int = 0
    tx_count: int = 0
    success_count: int = 0
    failed_count: int = 0
    window_seconds: int | None = None
    partial: bool = False
    failed_blocks: list[int] = Field(default_factory=list)


class DashboardMetrics(BaseModel):
    """Headline numbers of the key metrics panel."""

    latest_block: int = 0
    txs_in_last_block: int = 0
    total_txs: str = "0"
    blocks_per_min: float = 0.0
    txs_per_min: float = 0.0
    avg_tx_value: str = "0.00"
    gas_used: int = 0
    gas_limit: int = 0


class HighGasTransaction(BaseModel):
    hash: str
    gas_used: str = Field(..., description="Declared gas limit, grouped")
    timestamp: int


class GasOverview(BaseModel):
    """Gas price split and heaviest transactions of the latest block."""

    base_fee: str = "0"
    priority_fee: str = "0"
    high_gas_txs: list[HighGasTransaction] = Field(default_factory=list)


class GasUsagePoint(BaseModel):
    time: str
    gas_used: int = 0


class TopContract(BaseModel):
    address: str
    name: str = ""
    transactions: int


class Deployment(BaseModel):
    """Contract creation found by the deployment scan."""

    contract_address: str | None = None
    deployer: str
    time: int
    fees: str
    tx_hash: str
    block_number: int


class ContractInfo(BaseModel):
    """Result of probing an address for code and ERC-20 metadata."""

    address: str
    contract_type: str
    name: str = "N/A"
    symbol: str = "N/A"
    total_supply: str = "N/A"
    holders: str = "N/A"
    decimals: str = "N/A"

    @property
    def is_contract(self) -> bool:
        return self.contract_type not in ("Not a contract", "N/A")


class LogEntry(BaseModel):
    address: str
    topics: list[str] = Field(default_factory=list)
    data: str = "0x"
    block_number: int = 0
    transaction_hash: str | None = None
    log_index: int = 0


__all__ = [
    "Block",
    "BlockTransactions",
    "ContractInfo",
    "DashboardMetrics",
    "Deployment",
    "EcosystemHealthMetrics",
    "Event",
    "EventBatch",
    "EventStatus",
    "EventType",
    "GasOverview",
    "GasUsagePoint",
    "HashesOnly",
    "HealthScore",
    "HighGasTransaction",
    "LogEntry",
    "Receipt",
    "TopContract",
    "Transaction",
    "WithDetail",
]
