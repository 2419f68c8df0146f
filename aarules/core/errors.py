"""Exception hierarchy for the rule checker.

Rule violations are never raised; they are returned as ``FailureRecord``
entries. Exceptions are reserved for conditions under which no trustworthy
pass/fail verdict can be produced:

    AARulesError
    ├── ValidationPreconditionError      (fatal, aborts a validation call)
    │   ├── EntryPointNotInTraceError
    │   └── StakeQueryError
    ├── ChainStateError                  (collaborator transport / decoding)
    ├── TraceDecodeError                 (checked word / byte conversions)
    └── RuleLoadError                    (rule discovery)
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable identifiers for every fatal error class."""

    ENTRY_POINT_NOT_IN_TRACE = "ENTRY_POINT_NOT_IN_TRACE"
    STAKE_QUERY_FAILED = "STAKE_QUERY_FAILED"
    CHAIN_STATE_ERROR = "CHAIN_STATE_ERROR"
    TRACE_DECODE_ERROR = "TRACE_DECODE_ERROR"
    RULE_LOAD_ERROR = "RULE_LOAD_ERROR"


class AARulesError(Exception):
    """Base exception for all checker errors."""

    code: ErrorCode | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationPreconditionError(AARulesError):
    """The inputs cannot be validated at all; no verdict is produced."""


class EntryPointNotInTraceError(ValidationPreconditionError):
    """The trace never executes at the entrypoint address."""

    code = ErrorCode.ENTRY_POINT_NOT_IN_TRACE

    def __init__(self, entry_point: str) -> None:
        super().__init__(
            f"trace contains no instruction executed at entrypoint {entry_point}; "
            "it does not represent a validation simulation"
        )
        self.entry_point = entry_point


class StakeQueryError(ValidationPreconditionError):
    """The stake-info collaborator failed for an address."""

    code = ErrorCode.STAKE_QUERY_FAILED

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"stake query for {address} failed: {reason}")
        self.address = address
        self.reason = reason


class ChainStateError(AARulesError):
    """A chain-state collaborator could not answer a query."""

    code = ErrorCode.CHAIN_STATE_ERROR


class TraceDecodeError(AARulesError, ValueError):
    """A stack word or byte string could not be decoded as requested."""

    code = ErrorCode.TRACE_DECODE_ERROR


class RuleLoadError(AARulesError):
    """A rule module failed to import during discovery."""

    code = ErrorCode.RULE_LOAD_ERROR
