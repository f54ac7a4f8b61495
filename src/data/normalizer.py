"""Convert raw JSON-RPC objects into normalized models.

All functions here are pure: they never perform I/O and never raise on
missing numeric fields (those decode to 0).
"""

from typing import Any

from src.data.models import Block, HashesOnly, LogEntry, Receipt, Transaction, WithDetail
from src.helpers.parsers import format_ether, hex_to_big_int, hex_to_int


def _optional_int(value: Any) -> int | None:
    return None if value is None else hex_to_int(value)


def _recipient(value: Any) -> str | None:
    # Providers signal contract creation with null or an empty "0x"
    if not value or value in ("0x", "0X"):
        return None
    return str(value)


def decode_transaction(raw: dict[str, Any], timestamp: int = 0) -> Transaction:
    """Decode a transaction object.

    Args:
        raw: Transaction object from eth_getTransactionByHash or a full block
        timestamp: Unix seconds of the containing block

    Returns:
        Transaction: Normalized record with ``status`` left unknown
    """
    value_wei = hex_to_big_int(raw.get("value"))
    return Transaction(
        hash=raw.get("hash", ""),
        from_address=raw.get("from") or "",
        to=_recipient(raw.get("to")),
        value=format_ether(value_wei),
        value_wei=value_wei,
        block_number=_optional_int(raw.get("blockNumber")),
        timestamp=timestamp,
        gas=hex_to_int(raw.get("gas")),
        gas_price=hex_to_big_int(raw.get("gasPrice")),
        input=raw.get("input"),
    )


def decode_receipt(raw: dict[str, Any]) -> Receipt:
    """Decode a transaction receipt."""
    return Receipt(
        transaction_hash=raw.get("transactionHash", ""),
        block_number=_optional_int(raw.get("blockNumber")),
        status=_optional_int(raw.get("status")),
        gas_used=hex_to_int(raw.get("gasUsed")),
        effective_gas_price=_optional_int(raw.get("effectiveGasPrice")),
        contract_address=raw.get("contractAddress"),
    )


def merge_receipt(tx: Transaction, receipt: Receipt | None) -> Transaction:
    """Return ``tx`` with status and gas used taken from ``receipt``.

    A missing receipt leaves the status unknown (None).
    """
    if receipt is None:
        return tx.model_copy(update={"status": None})
    return tx.model_copy(update={"status": receipt.status, "gas_used": receipt.gas_used})


def has_transaction_detail(raw_transactions: list[Any]) -> bool:
    """True when a block's transaction list holds objects rather than hashes."""
    return bool(raw_transactions) and not isinstance(raw_transactions[0], str)


def decode_block(raw: dict[str, Any], full_transactions: bool = False) -> Block:
    """Decode a block object into a ``Block``.

    The shape of ``transactions`` is resolved here once: object entries
    become ``WithDetail`` (each record inheriting the block timestamp),
    hash entries become ``HashesOnly``. An empty list follows what was
    requested.

    Args:
        raw: Block object from eth_getBlockByNumber / eth_getBlockByHash
        full_transactions: Whether transaction detail was requested

    Returns:
        Block: Normalized block
    """
    timestamp = hex_to_int(raw.get("timestamp"))
    raw_transactions = raw.get("transactions") or []

    if has_transaction_detail(raw_transactions):
        transactions: HashesOnly | WithDetail = WithDetail(
            transactions=[
                decode_transaction(tx, timestamp)
                for tx in raw_transactions
                if isinstance(tx, dict)
            ]
        )
    elif full_transactions and not raw_transactions:
        transactions = WithDetail()
    else:
        transactions = HashesOnly(
            hashes=[tx for tx in raw_transactions if isinstance(tx, str)]
        )

    return Block(
        number=hex_to_int(raw.get("number")),
        hash=raw.get("hash") or "",
        parent_hash=raw.get("parentHash"),
        miner=raw.get("miner"),
        timestamp=timestamp,
        transactions=transactions,
        gas_used=raw.get("gasUsed") or "0x0",
        gas_limit=raw.get("gasLimit") or "0x0",
        base_fee_per_gas=raw.get("baseFeePerGas"),
    )


def decode_log(raw: dict[str, Any]) -> LogEntry:
    """Decode one entry of an eth_getLogs result."""
    return LogEntry(
        address=raw.get("address", ""),
        topics=list(raw.get("topics") or []),
        data=raw.get("data") or "0x",
        block_number=hex_to_int(raw.get("blockNumber")),
        transaction_hash=raw.get("transactionHash"),
        log_index=hex_to_int(raw.get("logIndex")),
    )


__all__ = [
    "decode_block",
    "decode_log",
    "decode_receipt",
    "decode_transaction",
    "has_transaction_detail",
    "merge_receipt",
]
