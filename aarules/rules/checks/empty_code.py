"""EXTCODE* access to accounts without code."""

from __future__ import annotations

from aarules.core.opcodes import EXTCODE_OPCODES
from aarules.core.types import FailureRecord, RuleId
from aarules.rules.base_rule import BaseRule, RuleContext


class EmptyCodeAccessRule(BaseRule):
    """An account's code may only be inspected if it has any."""

    RULE_ID = RuleId.EMPTY_CODE_ACCESS
    NAME = "Empty code access"
    DESCRIPTION = "EXTCODEHASH/EXTCODESIZE/EXTCODECOPY must target an account with code"
    ORDER = 30

    def check(self, context: RuleContext) -> list[FailureRecord]:
        failures: list[FailureRecord] = []
        for i, record in enumerate(context.trace):
            if record.opcode not in EXTCODE_OPCODES:
                continue
            target = record.stack_address(0)
            if not context.has_code(target):
                failures.append(self._make_failure(
                    context, record, i,
                    f"{record.name} of {target}, which has no code",
                ))
        return failures
