"""No two operations in a bundle may touch the same storage cell.

Footprints are compared strictly in bundle order: the first operation to
touch a cell owns it, every later operation touching it is reported, and a
reported entry is not merged into the accumulated footprint.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from aarules.core.opcodes import STORAGE_OPCODES
from aarules.core.types import (
    FailureRecord,
    InstructionRecord,
    RuleId,
    Scope,
    StorageFootprintEntry,
    UserOperation,
    ValidationResult,
)
from aarules.tracer.scope import extract_scopes

logger = logging.getLogger(__name__)


def storage_footprint(trace: Iterable[InstructionRecord]) -> list[StorageFootprintEntry]:
    """Distinct (account, slot) cells read or written, in first-access order."""
    seen: dict[StorageFootprintEntry, None] = {}
    for record in trace:
        if record.opcode in STORAGE_OPCODES:
            seen.setdefault(
                StorageFootprintEntry(address=record.address, slot=record.stack_word(0)), None
            )
    return list(seen)


def no_repeated_storage(
    trace: Sequence[InstructionRecord],
    user_ops: Sequence[UserOperation],
    entry_point: str,
) -> ValidationResult:
    """Report every storage cell a sender touches that an earlier operation already touched."""
    accumulated: set[StorageFootprintEntry] = set()
    failures: list[FailureRecord] = []

    for op_index, user_op in enumerate(user_ops):
        footprint = storage_footprint(extract_scopes(trace, user_op, entry_point).sender)
        fresh: list[StorageFootprintEntry] = []
        for entry in footprint:
            if entry in accumulated:
                failures.append(FailureRecord(
                    rule_id=RuleId.BUNDLE_STORAGE_CONFLICT,
                    message=(
                        f"slot {entry.slot:#x} of {entry.address} already accessed "
                        f"by an earlier operation in the bundle"
                    ),
                    address=entry.address,
                    scope=Scope.BUNDLE,
                    op_index=op_index,
                ))
            else:
                fresh.append(entry)
        accumulated.update(fresh)

    if failures:
        logger.info("%d storage conflicts across %d operations", len(failures), len(user_ops))
    return ValidationResult.from_failures(failures)
