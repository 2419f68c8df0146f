"""Trace model and result types shared across the checker."""

from __future__ import annotations

import enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from aarules.core.encoding import (
    ADDRESS_BYTES,
    check_word,
    leading_address,
    normalize_address,
    to_bytes,
    word_to_address,
)
from aarules.core.errors import TraceDecodeError
from aarules.core.opcodes import STACK_OPERANDS, opcode_name


def _coerce_word(value: Any) -> int:
    if isinstance(value, str):
        value = int(value, 16) if value.startswith("0x") else int(value)
    return check_word(value)


Address = Annotated[str, BeforeValidator(normalize_address)]
HexBytes = Annotated[bytes, BeforeValidator(to_bytes)]
Word = Annotated[int, BeforeValidator(_coerce_word)]


# ── Enums ────────────────────────────────────────────────────────────────────


class Scope(str, enum.Enum):
    """Which part of a validation a failure was attributed to."""

    SENDER = "sender"
    PAYMASTER = "paymaster"
    BUNDLE = "bundle"


class RuleId(str, enum.Enum):
    """Identifier of every rule the checker enforces."""

    FORBIDDEN_OPCODE = "forbidden-opcode"
    CALL_RESTRICTION = "call-restriction"
    EMPTY_CODE_ACCESS = "empty-code-access"
    CREATE2_COUNT = "create2-count"
    STORAGE_ACCESS = "storage-access"
    BUNDLE_STORAGE_CONFLICT = "bundle-storage-conflict"


# ── Trace model ──────────────────────────────────────────────────────────────


class InstructionRecord(BaseModel):
    """One executed instruction as captured by the trace recorder."""

    model_config = ConfigDict(frozen=True)

    opcode: int = Field(ge=0, le=0xFF)
    address: Address
    depth: int = Field(ge=1)
    stack: tuple[Word, ...] = ()  # top of stack first
    memory_input: HexBytes = b""
    out_of_gas: bool = False

    @model_validator(mode="after")
    def _check_operands(self) -> "InstructionRecord":
        needed = STACK_OPERANDS.get(self.opcode, 0)
        if len(self.stack) < needed:
            raise ValueError(
                f"{opcode_name(self.opcode)} needs {needed} stack entries, "
                f"record carries {len(self.stack)}"
            )
        return self

    @property
    def name(self) -> str:
        return opcode_name(self.opcode)

    def stack_word(self, index: int) -> int:
        if index >= len(self.stack):
            raise TraceDecodeError(
                f"{self.name} has no stack slot {index} (depth {len(self.stack)})"
            )
        return self.stack[index]

    def stack_address(self, index: int) -> str:
        return word_to_address(self.stack_word(index))


def _entity_bytes(value: bytes) -> bytes:
    if value and len(value) < ADDRESS_BYTES:
        raise ValueError(
            f"must be empty or start with a {ADDRESS_BYTES}-byte address, got {len(value)} bytes"
        )
    return value


class UserOperation(BaseModel):
    """An account-abstraction user operation, treated as opaque input."""

    model_config = ConfigDict(frozen=True)

    sender: Address
    nonce: int = Field(default=0, ge=0)
    init_code: HexBytes = b""
    call_data: HexBytes = b""
    call_gas_limit: int = Field(default=0, ge=0)
    verification_gas_limit: int = Field(default=0, ge=0)
    pre_verification_gas: int = Field(default=0, ge=0)
    max_fee_per_gas: int = Field(default=0, ge=0)
    max_priority_fee_per_gas: int = Field(default=0, ge=0)
    paymaster_and_data: HexBytes = b""
    signature: HexBytes = b""

    @field_validator("init_code", "paymaster_and_data")
    @classmethod
    def _names_an_entity(cls, value: bytes) -> bytes:
        return _entity_bytes(value)

    @property
    def factory(self) -> str | None:
        """Address deploying the sender, or None when no deployment is requested."""
        return leading_address(self.init_code) if self.init_code else None

    @property
    def paymaster(self) -> str | None:
        """Sponsoring paymaster, or None when the sender pays for itself."""
        return leading_address(self.paymaster_and_data) if self.paymaster_and_data else None

    @property
    def paymaster_data(self) -> bytes:
        return self.paymaster_and_data[ADDRESS_BYTES:]


class StakeInfo(BaseModel):
    """Stake reported by the entrypoint for one address."""

    model_config = ConfigDict(frozen=True)

    stake: int = Field(default=0, ge=0)
    unstake_delay_sec: int = Field(default=0, ge=0)

    @property
    def is_staked(self) -> bool:
        return self.stake > 0 and self.unstake_delay_sec > 0


class StorageFootprintEntry(BaseModel):
    """One distinct storage cell: (account, slot)."""

    model_config = ConfigDict(frozen=True)

    address: Address
    slot: Word


# ── Results ──────────────────────────────────────────────────────────────────


class FailureRecord(BaseModel):
    """A single rule violation."""

    model_config = ConfigDict(frozen=True)

    rule_id: RuleId
    message: str
    address: Address
    opcode: str | None = None
    scope: Scope | None = None
    index: int | None = None
    op_index: int | None = None


class ValidationResult(BaseModel):
    """Verdict of one validation call plus every violation found, in order."""

    valid: bool = True
    failures: list[FailureRecord] = Field(default_factory=list)

    @classmethod
    def from_failures(cls, failures: list[FailureRecord]) -> "ValidationResult":
        return cls(valid=not failures, failures=list(failures))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """AND the verdicts; concatenate failures, ``self`` first."""
        return ValidationResult(
            valid=self.valid and other.valid,
            failures=[*self.failures, *other.failures],
        )

    def failures_for(self, rule_id: RuleId) -> list[FailureRecord]:
        return [f for f in self.failures if f.rule_id == rule_id]

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "failure_count": len(self.failures),
            "failures": [f.model_dump(mode="json") for f in self.failures],
        }
