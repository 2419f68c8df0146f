"""Storage slots associated with an address through hash preimages.

A contract storing per-address data (``mapping(address => ...)`` and friends)
derives the slot by hashing an input that starts with the address. Any SHA3
in the trace whose preimage begins with the address therefore marks a base
slot owned by that address; the run of slots following it covers struct and
array members laid out after the base.
"""

from __future__ import annotations

from typing import Iterable

from aarules.core.config import ASSOCIATED_SLOT_SPAN
from aarules.core.encoding import ADDRESS_BYTES, UINT256_MAX, address_to_bytes, keccak_word
from aarules.core.opcodes import Opcode
from aarules.core.types import InstructionRecord


def associated_slots(
    address: str,
    trace: Iterable[InstructionRecord],
    span: int = ASSOCIATED_SLOT_SPAN,
) -> frozenset[int]:
    """Return every slot ``keccak(input) + n`` (n < span) for address-prefixed SHA3 inputs."""
    prefix = address_to_bytes(address)
    slots: set[int] = set()
    for record in trace:
        if record.opcode != Opcode.SHA3:
            continue
        data = record.memory_input
        if len(data) < ADDRESS_BYTES or data[:ADDRESS_BYTES] != prefix:
            continue
        base = keccak_word(data)
        slots.update((base + n) & UINT256_MAX for n in range(span))
    return frozenset(slots)
