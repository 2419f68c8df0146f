"""Validation orchestrator — runs every rule for an operation or a bundle.

Validation flow for one operation:
1. SCOPING — split the trace into sender and paymaster sub-traces
2. STAKE LOOKUP — query stake once per distinct factory / paymaster
3. RULES — run every enabled rule on the sender scope, then the paymaster scope
4. VERDICT — AND of all rule outcomes, failures in the order found

A bundle runs the above per operation, in bundle order, then the
cross-operation storage conflict check. Nothing short-circuits: every rule
runs so that one call reports every violation.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from aarules.core.chain_state import (
    CachedStakeLookup,
    CodeProvider,
    JsonRpcChainState,
    StakeInfoProvider,
)
from aarules.core.config import Settings, get_settings
from aarules.core.encoding import normalize_address
from aarules.core.types import (
    FailureRecord,
    InstructionRecord,
    Scope,
    UserOperation,
    ValidationResult,
)
from aarules.rules.base_rule import BaseRule, RuleContext
from aarules.rules.bundle_conflict import no_repeated_storage
from aarules.rules.registry import RuleRegistry, registry as default_registry
from aarules.tracer.scope import extract_scopes

logger = logging.getLogger(__name__)


class UserOpValidator:
    """Checks validation traces of user operations against the rule set.

    Holds no state between calls: each ``validate_*`` call returns its own
    ``ValidationResult`` and uses its own stake cache.

    Usage::

        state = InMemoryChainState()
        validator = UserOpValidator(stake_provider=state, code_provider=state)
        result = validator.validate_user_op(trace, user_op)
        for failure in result.failures:
            ...
    """

    def __init__(
        self,
        entry_point: str | None = None,
        *,
        stake_provider: StakeInfoProvider | None = None,
        code_provider: CodeProvider | None = None,
        settings: Settings | None = None,
        registry: RuleRegistry | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.entry_point = normalize_address(entry_point or self._settings.entry_point_address)

        # JSON-RPC state built here is owned and closed by the validator
        self._owned_state: JsonRpcChainState | None = None
        if stake_provider is None or code_provider is None:
            rpc_state = self._owned_state = JsonRpcChainState(
                self._settings.rpc_url,
                self.entry_point,
                timeout=self._settings.rpc_timeout_seconds,
            )
            stake_provider = stake_provider or rpc_state
            code_provider = code_provider or rpc_state
        self._stake_provider = stake_provider
        self._code_provider = code_provider

        self._rules: list[BaseRule] = (registry or default_registry).instantiate(
            self._settings.disabled_rules
        )

    @property
    def rules(self) -> list[BaseRule]:
        return list(self._rules)

    def __enter__(self) -> "UserOpValidator":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the JSON-RPC client this validator created, if any."""
        if self._owned_state is not None:
            self._owned_state.close()
            self._owned_state = None

    def validate_user_op(
        self,
        trace: Sequence[InstructionRecord],
        user_op: UserOperation,
    ) -> ValidationResult:
        """Run every rule against both scopes of one operation.

        Raises:
            EntryPointNotInTraceError: the trace never executes at the entrypoint.
            StakeQueryError: the stake collaborator failed.
        """
        return self._validate(trace, user_op, CachedStakeLookup(self._stake_provider))

    def validate_bundle(
        self,
        trace: Sequence[InstructionRecord],
        user_ops: Sequence[UserOperation],
    ) -> ValidationResult:
        """Validate each operation in bundle order, then check cross-operation storage conflicts."""
        stake_lookup = CachedStakeLookup(self._stake_provider)
        result = ValidationResult()

        for op_index, user_op in enumerate(user_ops):
            op_result = self._validate(trace, user_op, stake_lookup, op_index=op_index)
            result = result.merge(ValidationResult(
                valid=op_result.valid,
                failures=[f.model_copy(update={"op_index": op_index}) for f in op_result.failures],
            ))

        result = result.merge(no_repeated_storage(trace, user_ops, self.entry_point))

        logger.info(
            "Bundle of %d operations: %s",
            len(user_ops), "valid" if result.valid else "invalid",
            extra={"failure_count": len(result.failures)},
        )
        return result

    # ── Internals ────────────────────────────────────────────────────────

    def _validate(
        self,
        trace: Sequence[InstructionRecord],
        user_op: UserOperation,
        stake_lookup: CachedStakeLookup,
        op_index: int | None = None,
    ) -> ValidationResult:
        log_extra = {"user_op_sender": user_op.sender, "op_index": op_index}
        scopes = extract_scopes(trace, user_op, self.entry_point)

        for entity in (user_op.factory, user_op.paymaster):
            if entity is not None:
                stake_lookup(entity)

        failures: list[FailureRecord] = []
        for scope, sub_trace in ((Scope.SENDER, scopes.sender), (Scope.PAYMASTER, scopes.paymaster)):
            if not sub_trace:
                continue
            context = RuleContext(
                trace=sub_trace,
                scope=scope,
                user_op=user_op,
                entry_point=self.entry_point,
                stake_lookup=stake_lookup,
                code_provider=self._code_provider,
                settings=self._settings,
            )
            for rule in self._rules:
                found = rule.check(context)
                if found:
                    logger.debug(
                        "%s: %d violations in %s scope", rule.RULE_ID.value, len(found), scope.value,
                        extra={**log_extra, "rule_id": rule.RULE_ID.value, "scope": scope.value},
                    )
                failures.extend(found)

        result = ValidationResult.from_failures(failures)
        logger.info(
            "User operation from %s: %s (%d failures)",
            user_op.sender, "valid" if result.valid else "invalid", len(failures),
            extra={**log_extra, "failure_count": len(failures)},
        )
        return result


def validate_user_op(
    trace: Sequence[InstructionRecord],
    user_op: UserOperation,
    *,
    stake_provider: StakeInfoProvider,
    code_provider: CodeProvider,
    entry_point: str | None = None,
) -> ValidationResult:
    """One-shot validation of a single operation with the configured rule set."""
    validator = UserOpValidator(
        entry_point, stake_provider=stake_provider, code_provider=code_provider
    )
    return validator.validate_user_op(trace, user_op)


def validate_bundle(
    trace: Sequence[InstructionRecord],
    user_ops: Sequence[UserOperation],
    *,
    stake_provider: StakeInfoProvider,
    code_provider: CodeProvider,
    entry_point: str | None = None,
) -> ValidationResult:
    """One-shot validation of a bundle with the configured rule set."""
    validator = UserOpValidator(
        entry_point, stake_provider=stake_provider, code_provider=code_provider
    )
    return validator.validate_bundle(trace, user_ops)
