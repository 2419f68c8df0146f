"""EVM opcode table and the opcode groups the validation rules work with."""

from __future__ import annotations

from enum import IntEnum


class Opcode(IntEnum):
    """EVM opcodes relevant to validation-phase rules."""
    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    LT = 0x10
    GT = 0x11
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    SHL = 0x1B
    SHR = 0x1C
    SHA3 = 0x20
    ADDRESS = 0x30
    BALANCE = 0x31
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    GASPRICE = 0x3A
    EXTCODESIZE = 0x3B
    EXTCODECOPY = 0x3C
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E
    EXTCODEHASH = 0x3F
    BLOCKHASH = 0x40
    COINBASE = 0x41
    TIMESTAMP = 0x42
    NUMBER = 0x43
    DIFFICULTY = 0x44  # PREVRANDAO since the merge
    GASLIMIT = 0x45
    CHAINID = 0x46
    SELFBALANCE = 0x47
    BASEFEE = 0x48
    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    GAS = 0x5A
    JUMPDEST = 0x5B
    PUSH0 = 0x5F
    PUSH1 = 0x60
    PUSH32 = 0x7F
    DUP1 = 0x80
    SWAP1 = 0x90
    LOG0 = 0xA0
    LOG4 = 0xA4
    CREATE = 0xF0
    CALL = 0xF1
    CALLCODE = 0xF2
    RETURN = 0xF3
    DELEGATECALL = 0xF4
    CREATE2 = 0xF5
    STATICCALL = 0xFA
    REVERT = 0xFD
    INVALID = 0xFE
    SELFDESTRUCT = 0xFF


# Opcode name mapping for all 256 possible byte values
OPCODE_NAMES: dict[int, str] = {}
for _op in Opcode:
    OPCODE_NAMES[_op.value] = _op.name
for _i in range(0x60, 0x80):
    OPCODE_NAMES[_i] = f"PUSH{_i - 0x5F}"
for _i in range(0x80, 0x90):
    OPCODE_NAMES[_i] = f"DUP{_i - 0x7F}"
for _i in range(0x90, 0xA0):
    OPCODE_NAMES[_i] = f"SWAP{_i - 0x8F}"
for _i in range(0xA0, 0xA5):
    OPCODE_NAMES[_i] = f"LOG{_i - 0xA0}"


def opcode_name(opcode: int) -> str:
    """Return the mnemonic for an opcode byte, or a hex placeholder if unassigned."""
    return OPCODE_NAMES.get(opcode, f"UNKNOWN_0x{opcode:02x}")


# ── Opcode groups ────────────────────────────────────────────────────────────

CALL_OPCODES: frozenset[int] = frozenset({
    Opcode.CALL, Opcode.CALLCODE, Opcode.DELEGATECALL, Opcode.STATICCALL,
})

# CALL and CALLCODE carry a value operand in stack slot 2
VALUE_CALL_OPCODES: frozenset[int] = frozenset({Opcode.CALL, Opcode.CALLCODE})

# Opcodes the entrypoint uses to invoke the sender / paymaster validation methods
SCOPE_CALL_OPCODES: frozenset[int] = frozenset({Opcode.CALL, Opcode.STATICCALL})

EXTCODE_OPCODES: frozenset[int] = frozenset({
    Opcode.EXTCODESIZE, Opcode.EXTCODECOPY, Opcode.EXTCODEHASH,
})

STORAGE_OPCODES: frozenset[int] = frozenset({Opcode.SLOAD, Opcode.SSTORE})

FORBIDDEN_OPCODES: frozenset[int] = frozenset({
    Opcode.GASPRICE,
    Opcode.GASLIMIT,
    Opcode.DIFFICULTY,
    Opcode.TIMESTAMP,
    Opcode.BASEFEE,
    Opcode.BLOCKHASH,
    Opcode.NUMBER,
    Opcode.SELFBALANCE,
    Opcode.BALANCE,
    Opcode.ORIGIN,
    Opcode.GAS,
    Opcode.CREATE,
    Opcode.COINBASE,
    Opcode.SELFDESTRUCT,
})

# Minimum stack entries a record must carry for the operands the rules decode
STACK_OPERANDS: dict[int, int] = {
    Opcode.CALL: 3,          # gas, address, value
    Opcode.CALLCODE: 3,      # gas, address, value
    Opcode.DELEGATECALL: 2,  # gas, address
    Opcode.STATICCALL: 2,    # gas, address
    Opcode.SLOAD: 1,         # slot
    Opcode.SSTORE: 1,        # slot
    Opcode.SHA3: 2,          # offset, size
    Opcode.EXTCODESIZE: 1,   # address
    Opcode.EXTCODECOPY: 1,   # address
    Opcode.EXTCODEHASH: 1,   # address
}
