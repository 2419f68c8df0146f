"""CREATE2 may deploy the sender, once, and only when the operation asks for it."""

from __future__ import annotations

from aarules.core.opcodes import Opcode
from aarules.core.types import FailureRecord, RuleId
from aarules.rules.base_rule import BaseRule, RuleContext


class Create2CountRule(BaseRule):
    RULE_ID = RuleId.CREATE2_COUNT
    NAME = "CREATE2 count"
    DESCRIPTION = "At most one CREATE2, and only with non-empty init code"
    ORDER = 40

    def check(self, context: RuleContext) -> list[FailureRecord]:
        failures: list[FailureRecord] = []
        seen = 0
        for i, record in enumerate(context.trace):
            if record.opcode != Opcode.CREATE2:
                continue
            seen += 1
            if seen > 1:
                failures.append(self._make_failure(
                    context, record, i, f"CREATE2 #{seen}: only one deployment is allowed",
                ))
            elif not context.user_op.init_code:
                failures.append(self._make_failure(
                    context, record, i, "CREATE2 without init code in the operation",
                ))
        return failures
