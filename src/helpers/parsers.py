"""Parsing utilities for hex-encoded JSON-RPC values."""

from datetime import UTC, datetime

from src.helpers.constants import NOT_AVAILABLE, WEI_PER_ETHER, WEI_PER_GWEI


def hex_to_int(hex_value: str | int | None) -> int:
    """Parse a hex quantity to an integer.

    Empty or missing values are 0 by convention and malformed input is 0 as
    well, so this never raises.

    Args:
        hex_value: Hex-encoded string, an int, or None

    Returns:
        int: Parsed integer value

    Example:
        >>> hex_to_int("0xff")
        255
        >>> hex_to_int(None)
        0
    """
    if hex_value is None or isinstance(hex_value, bool):
        return 0
    if isinstance(hex_value, int):
        return hex_value
    text = hex_value.strip()
    if text in ("", "0x", "0X"):
        return 0
    try:
        return int(text, 16)
    except ValueError:
        return 0


def hex_to_big_int(hex_value: str | int | None) -> int:
    """Parse a wei-scale hex quantity.

    Python integers are unbounded, so this shares the ``hex_to_int``
    contract; it exists so call sites dealing in wei read as such.

    Example:
        >>> hex_to_big_int("0xde0b6b3a7640000")
        1000000000000000000
    """
    return hex_to_int(hex_value)


def to_hex(number: int) -> str:
    """Encode a block number or quantity as a JSON-RPC hex string.

    Example:
        >>> to_hex(1000)
        '0x3e8'
    """
    return hex(number)


def format_ether(wei: int, precision: int = 18) -> str:
    """Format wei as a decimal amount of native currency.

    The conversion is exact; digits beyond ``precision`` are truncated.

    Args:
        wei: Amount in wei
        precision: Number of fractional digits

    Returns:
        str: Decimal string

    Example:
        >>> format_ether(10**18)
        '1.000000000000000000'
        >>> format_ether(1234 * 10**15, precision=2)
        '1.23'
    """
    sign = "-" if wei < 0 else ""
    whole, fraction = divmod(abs(wei), WEI_PER_ETHER)
    if precision <= 0:
        return f"{sign}{whole}"
    digits = f"{fraction:018d}"[:precision].ljust(precision, "0")
    return f"{sign}{whole}.{digits}"


def format_gwei(wei: int) -> str:
    """Format wei as a whole number of gwei (truncating).

    Example:
        >>> format_gwei(52_000_000_000)
        '52'
    """
    return str(wei // WEI_PER_GWEI)


def format_gas_value(value: str | int | None) -> str:
    """Format a gas quantity with thousands separators.

    Args:
        value: Hex string, decimal string or int

    Returns:
        str: Grouped decimal, or "N/A" when the value cannot be parsed

    Example:
        >>> format_gas_value("0x5208")
        '21,000'
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:,}"
    if not isinstance(value, str):
        return NOT_AVAILABLE
    try:
        number = int(value, 16) if value.startswith(("0x", "0X")) else int(value)
    except ValueError:
        return NOT_AVAILABLE
    return f"{number:,}"


def parse_hex_timestamp(hex_timestamp: str | int | None) -> datetime:
    """Parse Unix timestamp from hex string to datetime.

    Args:
        hex_timestamp: Hex-encoded Unix timestamp string

    Returns:
        datetime: Aware UTC datetime

    Example:
        >>> parse_hex_timestamp("0x63a1b2c3")
        datetime.datetime(2022, 12, 20, ...)
    """
    return datetime.fromtimestamp(hex_to_int(hex_timestamp), tz=UTC)


def format_iso_time(timestamp: int) -> str:
    """Render unix seconds as an ISO-8601 UTC string with millisecond precision.

    Example:
        >>> format_iso_time(0)
        '1970-01-01T00:00:00.000Z'
    """
    moment = datetime.fromtimestamp(timestamp, tz=UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def format_minute_label(timestamp: int) -> str:
    """Render unix seconds as an ``HH:MM`` UTC label."""
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%H:%M")


def _hex_bytes(hex_value: str) -> bytes:
    text = hex_value[2:] if hex_value.startswith(("0x", "0X")) else hex_value
    if len(text) % 2:
        text += "0"
    return bytes.fromhex(text)


def decode_abi_string(hex_value: str | None) -> str:
    """Decode the return value of a string-returning ``eth_call``.

    Standard ABI-encoded strings (offset, length, data) are unpacked; other
    payloads, such as ``bytes32`` symbols, are decoded whole. Text is read
    as UTF-8 and falls back to ASCII, with NUL padding removed.

    Returns:
        str: Decoded text, or "N/A" when empty or undecodable
    """
    if not hex_value or hex_value in ("0x", "0X"):
        return NOT_AVAILABLE
    try:
        data = _hex_bytes(hex_value)
    except ValueError:
        return NOT_AVAILABLE

    payload = data
    if len(data) >= 64:
        offset = int.from_bytes(data[:32], "big")
        if offset + 32 <= len(data):
            length = int.from_bytes(data[offset : offset + 32], "big")
            if offset + 32 + length <= len(data):
                payload = data[offset + 32 : offset + 32 + length]

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        text = payload.decode("ascii", errors="ignore")
    text = text.replace("\x00", "").strip()
    return text or NOT_AVAILABLE


def decode_uint(hex_value: str | None) -> str:
    """Decode a uint ``eth_call`` return value to a decimal string.

    Example:
        >>> decode_uint("0x12")
        '18'
    """
    if not hex_value or hex_value in ("0x", "0X"):
        return NOT_AVAILABLE
    try:
        return str(int(hex_value, 16))
    except ValueError:
        return NOT_AVAILABLE


__all__ = [
    "decode_abi_string",
    "decode_uint",
    "format_ether",
    "format_gas_value",
    "format_gwei",
    "format_iso_time",
    "format_minute_label",
    "hex_to_big_int",
    "hex_to_int",
    "parse_hex_timestamp",
    "to_hex",
]
