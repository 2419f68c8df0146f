"""Checked conversions between stack words, byte strings and addresses."""

from __future__ import annotations

import re

from eth_hash.auto import keccak

from aarules.core.errors import TraceDecodeError

WORD_BITS = 256
UINT256_MAX = (1 << WORD_BITS) - 1
ADDRESS_BYTES = 20
ADDRESS_MASK = (1 << (ADDRESS_BYTES * 8)) - 1
SELECTOR_BYTES = 4

ZERO_ADDRESS = "0x" + "00" * ADDRESS_BYTES

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HEX_RE = re.compile(r"^(0x)?([0-9a-fA-F]{2})*$")


def normalize_address(value: str | bytes | int) -> str:
    """Return ``value`` as a lower-case 0x-prefixed 20-byte hex address.

    Accepts a hex string (any case), exactly 20 raw bytes, or an integer
    below 2**160.
    """
    if isinstance(value, bool):
        raise TraceDecodeError(f"not an address: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= ADDRESS_MASK:
            raise TraceDecodeError(f"integer {value:#x} does not fit in an address")
        return f"0x{value:040x}"
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_BYTES:
            raise TraceDecodeError(f"address must be {ADDRESS_BYTES} bytes, got {len(value)}")
        return "0x" + bytes(value).hex()
    if isinstance(value, str) and _ADDRESS_RE.match(value):
        return value.lower()
    raise TraceDecodeError(f"not an address: {value!r}")


def address_to_bytes(address: str) -> bytes:
    return bytes.fromhex(normalize_address(address)[2:])


def check_word(word: int) -> int:
    """Validate that ``word`` is an unsigned 256-bit stack value."""
    if isinstance(word, bool) or not isinstance(word, int):
        raise TraceDecodeError(f"stack word must be an int, got {type(word).__name__}")
    if not 0 <= word <= UINT256_MAX:
        raise TraceDecodeError(f"stack word {word} is outside the uint256 range")
    return word


def word_to_address(word: int) -> str:
    """Decode an address operand from a stack word.

    The EVM truncates address operands to their low 160 bits, so the upper
    96 bits are discarded once the word itself is known to be a uint256.
    """
    return f"0x{check_word(word) & ADDRESS_MASK:040x}"


def leading_address(data: bytes) -> str:
    """Decode the address held in the first 20 bytes of ``data``."""
    if len(data) < ADDRESS_BYTES:
        raise TraceDecodeError(
            f"need at least {ADDRESS_BYTES} bytes to decode an address, got {len(data)}"
        )
    return "0x" + bytes(data[:ADDRESS_BYTES]).hex()


def to_bytes(value: str | bytes | bytearray) -> bytes:
    """Coerce raw bytes or a hex string (with or without 0x) to ``bytes``."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and _HEX_RE.match(value):
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    raise TraceDecodeError(f"not a byte string: {value!r}")


def keccak256(data: bytes) -> bytes:
    return keccak(data)


def keccak_word(data: bytes) -> int:
    """keccak256 of ``data`` read as a big-endian uint256."""
    return int.from_bytes(keccak(data), "big")


def function_selector(signature: str) -> bytes:
    """4-byte ABI selector for a canonical signature like ``depositTo(address)``."""
    return keccak(signature.encode("ascii"))[:SELECTOR_BYTES]


def call_selector(call_input: bytes) -> bytes | None:
    """Return the selector of a call's input, or None when it selects no method."""
    if len(call_input) < SELECTOR_BYTES:
        return None
    return bytes(call_input[:SELECTOR_BYTES])
