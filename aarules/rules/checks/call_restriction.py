"""Restrictions on outgoing calls made during validation.

  - No instruction may run out of gas.
  - Value may only be sent by the sender, and only to the entrypoint.
  - Calls must land on code, a precompile, or the debug console.
  - The entrypoint may only be re-entered through its deposit method.
"""

from __future__ import annotations

import logging

from aarules.core.encoding import call_selector, function_selector
from aarules.core.opcodes import CALL_OPCODES, VALUE_CALL_OPCODES
from aarules.core.types import FailureRecord, RuleId
from aarules.rules.base_rule import BaseRule, RuleContext

logger = logging.getLogger(__name__)


class CallRestrictionRule(BaseRule):
    """Check out-of-gas aborts, value transfers, call targets and entrypoint re-entry."""

    RULE_ID = RuleId.CALL_RESTRICTION
    NAME = "Call restriction"
    DESCRIPTION = "Outgoing calls must not transfer value, hit empty accounts or re-enter the entrypoint"
    ORDER = 20

    def check(self, context: RuleContext) -> list[FailureRecord]:
        failures: list[FailureRecord] = []
        deposit_selector = function_selector(context.settings.deposit_method_signature)

        for i, record in enumerate(context.trace):
            # The abort flag sits on whichever instruction ran out, not only on calls
            if record.out_of_gas:
                failures.append(self._make_failure(
                    context, record, i,
                    f"{record.name} aborted with out-of-gas",
                ))

            if record.opcode not in CALL_OPCODES:
                continue

            target = record.stack_address(1)

            value = record.stack_word(2) if record.opcode in VALUE_CALL_OPCODES else 0
            if value and not (context.is_sender_scope and target == context.entry_point):
                failures.append(self._make_failure(
                    context, record, i,
                    f"{record.name} transfers value {value} to {target}",
                ))

            if not self._is_callable(context, target):
                failures.append(self._make_failure(
                    context, record, i,
                    f"{record.name} to {target}, which has no code and is not a precompile",
                ))

            if target == context.entry_point:
                selector = call_selector(record.memory_input)
                if selector is not None and selector != deposit_selector:
                    failures.append(self._make_failure(
                        context, record, i,
                        f"{record.name} re-enters the entrypoint with selector 0x{selector.hex()}",
                    ))

        if failures:
            logger.debug("%d call restriction violations in %s scope", len(failures), context.scope.value)
        return failures

    def _is_callable(self, context: RuleContext, target: str) -> bool:
        settings = context.settings
        if 1 <= int(target, 16) <= settings.max_precompile_address:
            return True
        if settings.allow_debug_console and target == settings.debug_console_address:
            return True
        return context.has_code(target)
