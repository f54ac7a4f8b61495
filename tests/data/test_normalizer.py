"""Tests for decoding raw JSON-RPC objects."""

from src.data.models import HashesOnly, Receipt, WithDetail
from src.data.normalizer import (
    decode_block,
    decode_log,
    decode_receipt,
    decode_transaction,
    has_transaction_detail,
    merge_receipt,
)


RAW_TX = {
    "hash": "0xaa",
    "from": "0x1111",
    "to": "0x2222",
    "value": "0xde0b6b3a7640000",
    "blockNumber": "0x3e8",
    "gas": "0x5208",
    "gasPrice": "0xba43b7400",
    "input": "0x",
}


def raw_block(transactions: list) -> dict:
    return {
        "number": "0x3e8",
        "hash": "0xbb",
        "parentHash": "0xcc",
        "miner": "0xdd",
        "timestamp": "0x6553f100",
        "gasUsed": "0x5208",
        "gasLimit": "0x1c9c380",
        "transactions": transactions,
    }


class TestDecodeTransaction:
    """Tests for decode_transaction."""

    def test_decodes_fields(self) -> None:
        """Test the normalized transaction."""
        tx = decode_transaction(RAW_TX, timestamp=1_700_000_000)

        assert tx.hash == "0xaa"
        assert tx.from_address == "0x1111"
        assert tx.to == "0x2222"
        assert tx.value == "1.000000000000000000"
        assert tx.value_wei == 10**18
        assert tx.block_number == 1000
        assert tx.timestamp == 1_700_000_000
        assert tx.gas == 21000
        assert tx.gas_price == 50 * 10**9
        assert tx.status is None

    def test_contract_creation(self) -> None:
        """Test that null and empty recipients mean contract creation."""
        assert decode_transaction({**RAW_TX, "to": None}).is_contract_creation
        assert decode_transaction({**RAW_TX, "to": "0x"}).is_contract_creation

    def test_missing_numeric_fields_are_zero(self) -> None:
        """Test that absent quantities decode to zero."""
        tx = decode_transaction({"hash": "0xaa"})

        assert tx.value_wei == 0
        assert tx.gas == 0
        assert tx.block_number is None
        assert tx.value == "0.000000000000000000"


class TestDecodeReceipt:
    """Tests for decode_receipt and merge_receipt."""

    def test_decodes_fields(self) -> None:
        """Test the normalized receipt."""
        receipt = decode_receipt(
            {
                "transactionHash": "0xaa",
                "blockNumber": "0x3e8",
                "status": "0x1",
                "gasUsed": "0x5208",
                "contractAddress": None,
            }
        )

        assert receipt.status == 1
        assert receipt.gas_used == 21000
        assert receipt.contract_address is None
        assert receipt.effective_gas_price is None

    def test_merge_sets_status_and_gas_used(self) -> None:
        """Test merging a receipt into a transaction."""
        tx = decode_transaction(RAW_TX)
        merged = merge_receipt(tx, Receipt(transaction_hash="0xaa", status=0, gas_used=500))

        assert merged.status == 0
        assert merged.gas_used == 500
        assert tx.status is None

    def test_merge_missing_receipt_leaves_status_unknown(self) -> None:
        """Test that no receipt means unknown status."""
        merged = merge_receipt(decode_transaction(RAW_TX), None)
        assert merged.status is None


class TestDecodeBlock:
    """Tests for decode_block."""

    def test_hashes_only(self) -> None:
        """Test a block fetched without transaction detail."""
        block = decode_block(raw_block(["0xaa", "0xab"]))

        assert block.number == 1000
        assert block.timestamp == 1_700_000_000
        assert isinstance(block.transactions, HashesOnly)
        assert block.transaction_count == 2
        assert block.transaction_hashes == ["0xaa", "0xab"]
        assert block.prefetched_transactions is None
        assert block.gas_used == "0x5208"

    def test_with_detail_inherits_timestamp(self) -> None:
        """Test that full transactions carry the block timestamp."""
        block = decode_block(raw_block([RAW_TX]), full_transactions=True)

        assert isinstance(block.transactions, WithDetail)
        assert block.transaction_hashes == ["0xaa"]
        assert block.prefetched_transactions[0].timestamp == 1_700_000_000

    def test_detail_detected_from_shape(self) -> None:
        """Test that object entries are decoded even if not requested."""
        assert isinstance(decode_block(raw_block([RAW_TX])).transactions, WithDetail)

    def test_empty_block_follows_request(self) -> None:
        """Test the shape of an empty transaction list."""
        assert isinstance(decode_block(raw_block([]), True).transactions, WithDetail)
        assert isinstance(decode_block(raw_block([])).transactions, HashesOnly)
        assert decode_block(raw_block([])).transaction_count == 0

    def test_missing_gas_fields_default(self) -> None:
        """Test defaults for absent gas fields."""
        block = decode_block({"number": "0x1", "hash": "0xbb", "timestamp": "0x0"})

        assert block.gas_used == "0x0"
        assert block.gas_limit == "0x0"
        assert block.parent_hash is None

    def test_has_transaction_detail(self) -> None:
        """Test detail detection."""
        assert has_transaction_detail([RAW_TX])
        assert not has_transaction_detail(["0xaa"])
        assert not has_transaction_detail([])


class TestDecodeLog:
    """Tests for decode_log."""

    def test_decodes_fields(self) -> None:
        """Test the normalized log entry."""
        entry = decode_log(
            {
                "address": "0x2222",
                "topics": ["0xddf2"],
                "data": "0x01",
                "blockNumber": "0x10",
                "transactionHash": "0xaa",
                "logIndex": "0x2",
            }
        )

        assert entry.block_number == 16
        assert entry.log_index == 2
        assert entry.topics == ["0xddf2"]
