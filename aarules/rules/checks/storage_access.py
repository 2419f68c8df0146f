"""Storage a validation may touch.

Allowed, in order of precedence:
  1. the sender's own storage;
  2. the factory's or paymaster's own storage, if that entity is staked;
  3. any slot associated with the sender (see ``tracer.association``).
Everything else is a violation.
"""

from __future__ import annotations

import logging

from aarules.core.opcodes import STORAGE_OPCODES
from aarules.core.types import FailureRecord, RuleId
from aarules.rules.base_rule import BaseRule, RuleContext

logger = logging.getLogger(__name__)


class StorageAccessRule(BaseRule):
    """Check every SLOAD/SSTORE against the sender, staked entities and associated slots."""

    RULE_ID = RuleId.STORAGE_ACCESS
    NAME = "Storage access"
    DESCRIPTION = "Validation may only access sender-owned or staked-entity storage"
    ORDER = 50

    def check(self, context: RuleContext) -> list[FailureRecord]:
        failures: list[FailureRecord] = []
        user_op = context.user_op
        staked_entities = {
            entity for entity in (user_op.factory, user_op.paymaster) if entity is not None
        }

        for i, record in enumerate(context.trace):
            if record.opcode not in STORAGE_OPCODES:
                continue
            account = record.address
            if account == user_op.sender:
                continue
            if account in staked_entities and context.is_staked(account):
                continue
            slot = record.stack_word(0)
            if slot in context.sender_associated_slots:
                continue
            logger.debug("Unassociated %s of %s slot %#x", record.name, account, slot)
            failures.append(self._make_failure(
                context, record, i,
                f"{record.name} of slot {slot:#x} in {account}: not sender storage, "
                "not staked-entity storage and not associated with the sender",
            ))

        return failures
