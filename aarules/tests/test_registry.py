"""Tests for aarules.rules.registry — rule discovery and ordering."""

from __future__ import annotations

import pytest

from aarules.core.errors import RuleLoadError
from aarules.core.types import FailureRecord, RuleId
from aarules.rules.base_rule import BaseRule, RuleContext
from aarules.rules.registry import RuleRegistry, registry


class TestRuleRegistry:
    def test_discovers_all_per_operation_rules(self):
        reg = RuleRegistry()
        assert reg.count() == 5

    def test_run_order(self):
        ids = [r.RULE_ID for r in RuleRegistry().get_all()]
        assert ids == [
            RuleId.FORBIDDEN_OPCODE,
            RuleId.CALL_RESTRICTION,
            RuleId.EMPTY_CODE_ACCESS,
            RuleId.CREATE2_COUNT,
            RuleId.STORAGE_ACCESS,
        ]

    def test_bundle_rule_not_registered(self):
        assert RuleRegistry().get_by_id(RuleId.BUNDLE_STORAGE_CONFLICT) is None

    def test_get_by_id(self):
        rule_cls = registry.get_by_id(RuleId.CREATE2_COUNT)
        assert rule_cls is not None
        assert rule_cls.NAME == "CREATE2 count"

    def test_instantiate_skips_disabled(self):
        rules = RuleRegistry().instantiate(disabled=[RuleId.STORAGE_ACCESS, RuleId.CREATE2_COUNT])
        assert [r.RULE_ID for r in rules] == [
            RuleId.FORBIDDEN_OPCODE,
            RuleId.CALL_RESTRICTION,
            RuleId.EMPTY_CODE_ACCESS,
        ]

    def test_register_extra_rule_runs_last(self):
        class AlwaysPass(BaseRule):
            RULE_ID = RuleId.BUNDLE_STORAGE_CONFLICT
            NAME = "Always pass"
            ORDER = 999

            def check(self, context: RuleContext) -> list[FailureRecord]:
                return []

        reg = RuleRegistry()
        reg.register(AlwaysPass)
        assert reg.get_all()[-1] is AlwaysPass
        assert reg.count() == 6

    def test_register_requires_id(self):
        class NoId(BaseRule):
            def check(self, context: RuleContext) -> list[FailureRecord]:
                return []

        with pytest.raises(RuleLoadError):
            RuleRegistry().register(NoId)
