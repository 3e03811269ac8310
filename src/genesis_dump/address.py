"""Address parsing, formatting and placeholder construction."""

from __future__ import annotations

from typing import Optional

from eth_utils import to_checksum_address

from .config import ADDRESS_LENGTH, MAX_PLACEHOLDERS, PLACEHOLDER_INDEX_BYTES
from .errors import ErrorCode, DumpError

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _strip_prefix(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def parse_address(value: str) -> bytes:
    """Parse a well-formed hex address (exactly 20 bytes, optional 0x prefix)."""
    if not isinstance(value, str):
        raise DumpError(ErrorCode.INVALID_ADDRESS, f"address must be a string, got {type(value).__name__}")
    digits = _strip_prefix(value.strip())
    if len(digits) != 2 * ADDRESS_LENGTH or not set(digits) <= _HEX_DIGITS:
        raise DumpError(ErrorCode.INVALID_ADDRESS, f"malformed address {value!r}")
    return bytes.fromhex(digits)


def parse_optional_address(value: Optional[str]) -> Optional[bytes]:
    """Like `parse_address`, but empty input means "no address"."""
    if value is None:
        return None
    if isinstance(value, str) and _strip_prefix(value.strip()) == "":
        return None
    return parse_address(value)


def address_from_value(value: str) -> Optional[bytes]:
    """Interpret a storage value as an address, or return None.

    Storage values come out of the dump with leading zeroes trimmed, so the
    hex is left-padded to 20 bytes. Longer values keep their rightmost 20
    bytes, which is where an address sits inside a 32-byte word.
    """
    if not isinstance(value, str):
        return None
    digits = _strip_prefix(value.strip())
    if not digits or not set(digits) <= _HEX_DIGITS:
        return None
    if len(digits) % 2:
        digits = "0" + digits
    raw = bytes.fromhex(digits)
    if len(raw) > ADDRESS_LENGTH:
        raw = raw[-ADDRESS_LENGTH:]
    return raw.rjust(ADDRESS_LENGTH, b"\x00")


def address_to_hex(address: bytes) -> str:
    """Lowercase 0x form, used for dump keys."""
    return "0x" + address.hex()


def address_to_checksum(address: bytes) -> str:
    """EIP-55 mixed-case 0x form, used for rewritten storage values."""
    return to_checksum_address(address_to_hex(address))


def placeholder_address(base: bytes, index: int) -> bytes:
    """Return `base` with `index` written into its last two bytes.

    The low byte of the index lands in the last byte, so index 1 on a
    ...dead0000 base reads ...dead0001.
    """
    if len(base) != ADDRESS_LENGTH:
        raise DumpError(ErrorCode.INVALID_ADDRESS, f"placeholder base must be {ADDRESS_LENGTH} bytes")
    if not 0 <= index < MAX_PLACEHOLDERS:
        raise DumpError(
            ErrorCode.TOO_MANY_ACCOUNTS,
            f"placeholder index {index} does not fit in {PLACEHOLDER_INDEX_BYTES} bytes",
        )
    out = bytearray(base)
    index_bytes = index.to_bytes(PLACEHOLDER_INDEX_BYTES, "little")
    for i, b in enumerate(index_bytes):
        out[len(out) - i - 1] = b
    return bytes(out)
