"""Split a validation trace into the sender's and the paymaster's sub-traces.

The entrypoint validates an operation by calling the sender's validation
method and, when the operation is sponsored, the paymaster's, as sibling
calls from the same frame. Every instruction executed below one of those
calls is attributed to the entity it was made to, however deeply nested.
Only call depth and the destination of the entrypoint's own outgoing calls
are needed to do so.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Sequence

from aarules.core.encoding import normalize_address
from aarules.core.errors import EntryPointNotInTraceError
from aarules.core.opcodes import SCOPE_CALL_OPCODES
from aarules.core.types import InstructionRecord, UserOperation

logger = logging.getLogger(__name__)


class ScopedTrace(NamedTuple):
    """Order-preserving subsequences of one trace."""

    sender: list[InstructionRecord]
    paymaster: list[InstructionRecord]


def find_base_depth(trace: Sequence[InstructionRecord], entry_point: str) -> int:
    """Depth of the first instruction executed by the entrypoint.

    Raises:
        EntryPointNotInTraceError: if the entrypoint never executes.
    """
    entry_point = normalize_address(entry_point)
    for record in trace:
        if record.address == entry_point:
            return record.depth
    logger.error("No instruction at entrypoint %s in a %d-record trace", entry_point, len(trace))
    raise EntryPointNotInTraceError(entry_point)


def extract_scopes(
    trace: Sequence[InstructionRecord],
    user_op: UserOperation,
    entry_point: str,
) -> ScopedTrace:
    """Attribute each instruction below the entrypoint to the sender or paymaster."""
    entry_point = normalize_address(entry_point)
    base_depth = find_base_depth(trace, entry_point)
    paymaster = user_op.paymaster

    sender_trace: list[InstructionRecord] = []
    paymaster_trace: list[InstructionRecord] = []
    current_target: str | None = None

    for record in trace:
        if record.depth == base_depth and record.address == entry_point:
            if record.opcode in SCOPE_CALL_OPCODES:
                current_target = record.stack_address(1)
            continue
        if record.depth <= base_depth or current_target is None:
            continue
        if current_target == user_op.sender:
            sender_trace.append(record)
        elif paymaster is not None and current_target == paymaster:
            paymaster_trace.append(record)

    logger.debug(
        "Scoped %d records: sender=%d paymaster=%d (base depth %d)",
        len(trace), len(sender_trace), len(paymaster_trace), base_depth,
    )
    return ScopedTrace(sender=sender_trace, paymaster=paymaster_trace)
