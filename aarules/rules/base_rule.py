"""Base rule class — all per-operation rule checks inherit from this."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable

from aarules.core.chain_state import CodeProvider
from aarules.core.config import Settings, get_settings
from aarules.core.types import (
    FailureRecord,
    InstructionRecord,
    RuleId,
    Scope,
    StakeInfo,
    UserOperation,
)
from aarules.tracer.association import associated_slots


@dataclass
class RuleContext:
    """Everything a rule may look at while checking one sub-trace.

    ``trace`` is the sub-trace attributed to ``scope``; the operation, the
    entrypoint and the chain-state lookups are shared by both scopes of one
    validation call.
    """

    trace: list[InstructionRecord]
    scope: Scope
    user_op: UserOperation
    entry_point: str
    stake_lookup: Callable[[str], StakeInfo]
    code_provider: CodeProvider
    settings: Settings = field(default_factory=get_settings)

    # ── Helper accessors ─────────────────────────────────────────────────

    @property
    def is_sender_scope(self) -> bool:
        return self.scope == Scope.SENDER

    def is_staked(self, address: str) -> bool:
        return self.stake_lookup(address).is_staked

    def has_code(self, address: str) -> bool:
        return self.code_provider.has_code(address)

    @cached_property
    def sender_associated_slots(self) -> frozenset[int]:
        """Slots derived from sender-prefixed hashes within this sub-trace."""
        return associated_slots(
            self.user_op.sender, self.trace, span=self.settings.associated_slot_span
        )

    def next_record(self, index: int) -> InstructionRecord | None:
        return self.trace[index + 1] if index + 1 < len(self.trace) else None


class BaseRule(abc.ABC):
    """Abstract base class for all validation-phase rules.

    Each rule implements ``check()``, which receives a RuleContext and returns
    one FailureRecord per violation. A rule never raises for a violation.

    Rule metadata:
        - RULE_ID: Unique identifier (a RuleId member)
        - NAME: Human-readable rule name
        - DESCRIPTION: What this rule restricts
        - ORDER: Position in the run order; lower runs first
    """

    RULE_ID: RuleId | None = None
    NAME: str = ""
    DESCRIPTION: str = ""
    ORDER: int = 100

    @abc.abstractmethod
    def check(self, context: RuleContext) -> list[FailureRecord]:
        """Run the rule against one sub-trace.

        Args:
            context: RuleContext carrying the sub-trace and its scope

        Returns:
            List of violations. Empty if the sub-trace complies.
        """
        ...

    def _make_failure(
        self,
        context: RuleContext,
        record: InstructionRecord,
        index: int,
        message: str,
    ) -> FailureRecord:
        """Helper to create a FailureRecord with this rule's metadata."""
        return FailureRecord(
            rule_id=self.RULE_ID,
            message=message,
            address=record.address,
            opcode=record.name,
            scope=context.scope,
            index=index,
        )
