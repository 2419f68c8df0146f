"""Tests for aarules.rules.bundle_conflict — cross-operation storage conflicts."""

from __future__ import annotations

import pytest

from aarules.core.errors import EntryPointNotInTraceError
from aarules.core.opcodes import Opcode
from aarules.core.types import RuleId, Scope, StorageFootprintEntry
from aarules.rules.bundle_conflict import no_repeated_storage, storage_footprint
from aarules.tests.factories import (
    ENTRY_POINT,
    PAYMASTER,
    SENDER,
    TOKEN,
    op,
    sload,
    sstore,
    user_op,
    validation_trace,
)

OTHER_SENDER = "0x" + "77" * 20


class TestStorageFootprint:
    def test_distinct_cells_in_first_access_order(self):
        trace = [sload(2), sstore(1), sload(2), sload(2, address=TOKEN, depth=3), op(Opcode.ADD)]
        assert storage_footprint(trace) == [
            StorageFootprintEntry(address=SENDER, slot=2),
            StorageFootprintEntry(address=SENDER, slot=1),
            StorageFootprintEntry(address=TOKEN, slot=2),
        ]

    def test_empty(self):
        assert storage_footprint([]) == []


class TestNoRepeatedStorage:
    def test_identical_operations_conflict_on_second_only(self):
        trace = validation_trace([sload(1), sstore(2)])
        ops = [user_op(), user_op(nonce=1)]
        result = no_repeated_storage(trace, ops, ENTRY_POINT)
        assert not result.valid
        assert len(result.failures) == 2
        assert {f.op_index for f in result.failures} == {1}
        assert all(f.rule_id == RuleId.BUNDLE_STORAGE_CONFLICT for f in result.failures)
        assert all(f.scope == Scope.BUNDLE for f in result.failures)

    def test_disjoint_senders_pass(self):
        trace = validation_trace([sload(1)]) + validation_trace(
            [sload(1, address=OTHER_SENDER)], sender=OTHER_SENDER
        )
        result = no_repeated_storage(trace, [user_op(), user_op(OTHER_SENDER)], ENTRY_POINT)
        assert result.valid
        assert result.failures == []

    def test_shared_foreign_cell_conflicts(self):
        trace = validation_trace([sload(9, address=TOKEN, depth=3)]) + validation_trace(
            [sload(9, address=TOKEN, depth=3)], sender=OTHER_SENDER
        )
        result = no_repeated_storage(trace, [user_op(), user_op(OTHER_SENDER)], ENTRY_POINT)
        assert len(result.failures) == 1
        assert result.failures[0].address == TOKEN
        assert result.failures[0].op_index == 1

    def test_repeats_within_one_operation_are_not_conflicts(self):
        trace = validation_trace([sload(1), sstore(1), sload(1)])
        assert no_repeated_storage(trace, [user_op()], ENTRY_POINT).valid

    def test_duplicates_not_merged_but_fresh_entries_are(self):
        trace = validation_trace([sload(1)]) + validation_trace(
            [sload(1, address=SENDER)], sender=OTHER_SENDER
        )
        # op 1 touches SENDER slot 1 (dup) via OTHER_SENDER's scope; op 2 repeats op 0
        ops = [user_op(), user_op(OTHER_SENDER), user_op(nonce=2)]
        result = no_repeated_storage(trace, ops, ENTRY_POINT)
        assert [f.op_index for f in result.failures] == [1, 2]

    def test_paymaster_storage_not_part_of_footprint(self):
        trace = validation_trace([sload(1)], [sload(5, address=PAYMASTER)])
        ops = [user_op(paymaster=PAYMASTER), user_op(OTHER_SENDER, paymaster=PAYMASTER)]
        assert no_repeated_storage(trace, ops, ENTRY_POINT).valid

    def test_empty_bundle(self):
        assert no_repeated_storage(validation_trace([]), [], ENTRY_POINT).valid

    def test_missing_entrypoint_is_fatal(self):
        with pytest.raises(EntryPointNotInTraceError):
            no_repeated_storage([sload(1)], [user_op()], ENTRY_POINT)
