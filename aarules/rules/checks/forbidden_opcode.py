"""Context-dependent opcodes that validation code may not use.

Block and transaction environment values (timestamp, coinbase, gas price and
the like) can differ between simulation and inclusion, so validation that
reads them could pass off-chain and fail on-chain. GAS is the one exception:
it may feed the gas argument of an immediately following call.
"""

from __future__ import annotations

import logging

from aarules.core.opcodes import CALL_OPCODES, FORBIDDEN_OPCODES, Opcode
from aarules.core.types import FailureRecord, RuleId
from aarules.rules.base_rule import BaseRule, RuleContext

logger = logging.getLogger(__name__)


class ForbiddenOpcodeRule(BaseRule):
    """Flag every forbidden opcode, honouring the GAS-before-call exception."""

    RULE_ID = RuleId.FORBIDDEN_OPCODE
    NAME = "Forbidden opcode"
    DESCRIPTION = "Environment-dependent opcodes are banned during validation"
    ORDER = 10

    def check(self, context: RuleContext) -> list[FailureRecord]:
        failures: list[FailureRecord] = []

        for i, record in enumerate(context.trace):
            if record.opcode not in FORBIDDEN_OPCODES:
                continue
            if record.opcode == Opcode.GAS:
                following = context.next_record(i)
                if following is not None and following.opcode in CALL_OPCODES:
                    continue
            logger.debug("Forbidden opcode %s at %s", record.name, record.address)
            failures.append(self._make_failure(
                context, record, i,
                f"forbidden opcode {record.name} used in {context.scope.value} validation",
            ))

        return failures
