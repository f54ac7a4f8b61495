"""Tests for hex parsing and display formatting helpers."""

from datetime import UTC, datetime

import pytest

from src.helpers.parsers import (
    decode_abi_string,
    decode_uint,
    format_ether,
    format_gas_value,
    format_gwei,
    format_iso_time,
    format_minute_label,
    hex_to_big_int,
    hex_to_int,
    parse_hex_timestamp,
    to_hex,
)
from tests.fake_chain import abi_string


class TestHexParsing:
    """Tests for hex quantity parsing."""

    def test_hex_to_int_valid(self) -> None:
        """Test parsing plain hex quantities."""
        assert hex_to_int("0xff") == 255
        assert hex_to_int("0x0") == 0

    def test_zero_padded_equals_canonical(self) -> None:
        """Test that zero-padded and canonical forms parse to the same value."""
        assert hex_to_int("0x00ff") == hex_to_int("0xff")
        assert hex_to_big_int("0x000de0b6b3a7640000") == hex_to_big_int("0xde0b6b3a7640000")

    @pytest.mark.parametrize("value", [None, "", "0x"])
    def test_missing_values_are_zero(self, value: str | None) -> None:
        """Test that missing values parse to 0."""
        assert hex_to_int(value) == 0
        assert hex_to_big_int(value) == 0

    def test_malformed_value_is_zero(self) -> None:
        """Test that malformed input never raises."""
        assert hex_to_int("0xzz") == 0

    def test_int_passes_through(self) -> None:
        """Test that integers are returned unchanged."""
        assert hex_to_int(42) == 42

    def test_big_int_is_exact(self) -> None:
        """Test that large quantities keep full precision."""
        assert hex_to_big_int("0x" + "f" * 64) == 2**256 - 1

    def test_to_hex(self) -> None:
        """Test block number encoding."""
        assert to_hex(1000) == "0x3e8"
        assert to_hex(0) == "0x0"

    def test_parse_hex_timestamp(self) -> None:
        """Test parsing a hex timestamp into an aware datetime."""
        assert parse_hex_timestamp("0x5f5e100") == datetime(1973, 3, 3, 9, 46, 40, tzinfo=UTC)


class TestFormatting:
    """Tests for display formatting."""

    def test_format_ether_full_precision(self) -> None:
        """Test that one ether renders with eighteen fractional digits."""
        assert format_ether(10**18) == "1.000000000000000000"

    def test_format_ether_truncates(self) -> None:
        """Test that extra digits are truncated, not rounded."""
        assert format_ether(1_999_999 * 10**12, precision=4) == "1.9999"
        assert format_ether(5 * 10**14, precision=2) == "0.00"

    def test_format_ether_zero_precision(self) -> None:
        """Test whole-unit rendering."""
        assert format_ether(3 * 10**18 + 1, precision=0) == "3"

    def test_format_gwei(self) -> None:
        """Test gwei rendering."""
        assert format_gwei(52_400_000_000) == "52"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("0x5208", "21,000"),
            (21000, "21,000"),
            ("1500000", "1,500,000"),
            (None, "N/A"),
            ("gas", "N/A"),
        ],
    )
    def test_format_gas_value(self, value: str | int | None, expected: str) -> None:
        """Test grouped gas formatting."""
        assert format_gas_value(value) == expected

    def test_format_iso_time(self) -> None:
        """Test ISO-8601 rendering with milliseconds."""
        assert format_iso_time(1_700_000_000) == "2023-11-14T22:13:20.000Z"

    def test_format_minute_label(self) -> None:
        """Test minute labels in UTC."""
        assert format_minute_label(1_700_000_000) == "22:13"


class TestAbiDecoding:
    """Tests for eth_call return value decoding."""

    def test_decode_abi_string(self) -> None:
        """Test decoding a standard ABI string."""
        assert decode_abi_string(abi_string("Wrapped Monad")) == "Wrapped Monad"

    def test_decode_bytes32_symbol(self) -> None:
        """Test decoding a bytes32 value padded with NULs."""
        assert decode_abi_string("0x" + b"WMON".hex() + "00" * 28) == "WMON"

    @pytest.mark.parametrize("value", [None, "", "0x"])
    def test_decode_empty_string(self, value: str | None) -> None:
        """Test that empty results are N/A."""
        assert decode_abi_string(value) == "N/A"

    def test_decode_uint(self) -> None:
        """Test decoding a uint result."""
        assert decode_uint("0x" + "0" * 62 + "12") == "18"

    def test_decode_uint_empty(self) -> None:
        """Test that an empty uint result is N/A."""
        assert decode_uint("0x") == "N/A"
