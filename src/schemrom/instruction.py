"""Instruction records for the redstone CPU and their 16-bit encodings."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Dict, List, Sequence, Tuple, Union

from .errors import InvalidProgram


class Register(IntEnum):
    RA = 0
    RB = 1
    RC = 2
    RD = 3
    RE = 4
    RF = 5
    RG = 6
    RH = 7
    RNULL = 8
    RONE = 9
    ROUT = 10
    RIN = 11
    RRESERVED1 = 12
    RRESERVED2 = 13
    RFLAGS = 14
    RPC = 15

    def reduce(self) -> "ReducedRegister | None":
        """Return the 3-bit form of general purpose registers, else ``None``."""

        if self.value < 8:
            return ReducedRegister(self.value)
        return None


class ReducedRegister(IntEnum):
    """Registers addressable by the 3-bit ``src1`` field of arithmetic ops."""

    RRA = 0
    RRB = 1
    RRC = 2
    RRD = 3
    RRE = 4
    RRF = 5
    RRG = 6
    RRH = 7

    def widen(self) -> Register:
        return Register(self.value)


class Condition(IntEnum):
    UNCONDITIONAL = 0
    GREATER = 1
    LESS = 2
    EQUAL = 3
    NOT_EQUAL = 4
    OVERFLOW = 5
    EVEN = 6
    CARRY = 7


class ArithmeticOperation(Enum):
    ADD = "add"
    SUB = "sub"


class CarryOperation(Enum):
    WITH_CARRY = "with_carry"
    WITHOUT_CARRY = "without_carry"


class BranchType(Enum):
    RELATIVE = "relative"
    ABSOLUTE = "absolute"


_ARITHMETIC_OPCODE = 0b001 << 13
_MOVE_OPCODE = 0b100 << 13
_BRANCH_OPCODE = 0b101 << 13


@dataclass(frozen=True)
class Arithmetic:
    op: ArithmeticOperation
    carry: CarryOperation
    src1: ReducedRegister
    src2: Register
    dst: Register

    def encode(self) -> int:
        word = _ARITHMETIC_OPCODE
        if self.op is ArithmeticOperation.ADD:
            word |= 1 << 12
        if self.carry is CarryOperation.WITH_CARRY:
            word |= 1 << 11
        return word | (self.src1 << 8) | (self.src2 << 4) | self.dst


@dataclass(frozen=True)
class Move:
    condition: Condition
    set_flags: bool
    src: Register
    dst: Register

    def encode(self) -> int:
        word = _MOVE_OPCODE | (self.condition << 9)
        if self.set_flags:
            word |= 1 << 8
        return word | (self.src << 4) | self.dst


@dataclass(frozen=True)
class Branch:
    address: int
    branch_type: BranchType
    condition: Condition

    def __post_init__(self) -> None:
        if not 0 <= self.address <= 0xFF:
            raise InvalidProgram(f"branch address {self.address} does not fit in 8 bits")

    def encode(self) -> int:
        word = _BRANCH_OPCODE | (self.condition << 9)
        if self.branch_type is BranchType.RELATIVE:
            word |= 1 << 8
        return word | self.address


Instruction = Union[Arithmetic, Move, Branch]


def _relative(offset: int) -> int:
    if not -128 <= offset <= 127:
        raise InvalidProgram(f"relative branch offset {offset} outside -128..127")
    return offset & 0xFF


def nop() -> Move:
    return Move(Condition.UNCONDITIONAL, False, Register.RNULL, Register.RNULL)


def add(src1: ReducedRegister, src2: Register, dst: Register) -> Arithmetic:
    return Arithmetic(ArithmeticOperation.ADD, CarryOperation.WITHOUT_CARRY, src1, src2, dst)


def add_carry(src1: ReducedRegister, src2: Register, dst: Register) -> Arithmetic:
    return Arithmetic(ArithmeticOperation.ADD, CarryOperation.WITH_CARRY, src1, src2, dst)


def inc(src1: ReducedRegister, dst: Register) -> Arithmetic:
    return add(src1, Register.RONE, dst)


def sub(src1: ReducedRegister, src2: Register, dst: Register) -> Arithmetic:
    return Arithmetic(ArithmeticOperation.SUB, CarryOperation.WITHOUT_CARRY, src1, src2, dst)


def sub_carry(src1: ReducedRegister, src2: Register, dst: Register) -> Arithmetic:
    return Arithmetic(ArithmeticOperation.SUB, CarryOperation.WITH_CARRY, src1, src2, dst)


def dec(src1: ReducedRegister, dst: Register) -> Arithmetic:
    return sub(src1, Register.RONE, dst)


def cmp(src1: ReducedRegister, src2: Register) -> Arithmetic:
    return sub(src1, src2, Register.RNULL)


def cmp_carry(src1: ReducedRegister, src2: Register) -> Arithmetic:
    return sub_carry(src1, src2, Register.RNULL)


def cmp_0(src1: ReducedRegister) -> Arithmetic:
    return sub(src1, Register.RNULL, Register.RNULL)


def cmp_1(src1: ReducedRegister) -> Arithmetic:
    return sub(src1, Register.RONE, Register.RNULL)


def mov(src: Register, dst: Register) -> Move:
    return Move(Condition.UNCONDITIONAL, False, src, dst)


def cmoveq(src: Register, dst: Register) -> Move:
    return Move(Condition.EQUAL, False, src, dst)


def cmovneq(src: Register, dst: Register) -> Move:
    return Move(Condition.NOT_EQUAL, False, src, dst)


def jmp(address: int) -> Branch:
    return Branch(address, BranchType.ABSOLUTE, Condition.UNCONDITIONAL)


def jmp_rel(offset: int) -> Branch:
    return Branch(_relative(offset), BranchType.RELATIVE, Condition.UNCONDITIONAL)


def jeq(address: int) -> Branch:
    return Branch(address, BranchType.ABSOLUTE, Condition.EQUAL)


def jeq_rel(offset: int) -> Branch:
    return Branch(_relative(offset), BranchType.RELATIVE, Condition.EQUAL)


# Operand kinds: "r" reduced register, "R" register, "n" integer.
SHORTHANDS: Dict[str, Tuple[Callable[..., Instruction], str]] = {
    "nop": (nop, ""),
    "add": (add, "rRR"),
    "add_carry": (add_carry, "rRR"),
    "inc": (inc, "rR"),
    "sub": (sub, "rRR"),
    "sub_carry": (sub_carry, "rRR"),
    "dec": (dec, "rR"),
    "cmp": (cmp, "rR"),
    "cmp_carry": (cmp_carry, "rR"),
    "cmp_0": (cmp_0, "r"),
    "cmp_1": (cmp_1, "r"),
    "mov": (mov, "RR"),
    "cmoveq": (cmoveq, "RR"),
    "cmovneq": (cmovneq, "RR"),
    "jmp": (jmp, "n"),
    "jmp_rel": (jmp_rel, "n"),
    "jeq": (jeq, "n"),
    "jeq_rel": (jeq_rel, "n"),
}

DEFAULT_PROGRAM_SOURCE = """\
nop
nop
nop
nop
jmp 0
"""

_COMMENT = re.compile(r"[;#].*$")
_OPERAND_SPLIT = re.compile(r"[,\s]+")


def _parse_operand(kind: str, text: str, line: int) -> object:
    token = text.strip().upper()
    try:
        if kind == "r":
            return ReducedRegister[token]
        if kind == "R":
            return Register[token]
    except KeyError:
        expected = "reduced register" if kind == "r" else "register"
        raise InvalidProgram(f"unknown {expected} {text!r}", line) from None
    try:
        return int(text, 0)
    except ValueError:
        raise InvalidProgram(f"invalid integer operand {text!r}", line) from None


def parse_instruction(text: str, line: int | None = None) -> Instruction:
    """Parse one ``mnemonic operand, operand`` statement."""

    mnemonic, *remainder = text.split(None, 1)
    rest = remainder[0] if remainder else ""
    entry = SHORTHANDS.get(mnemonic.lower())
    if entry is None:
        raise InvalidProgram(f"unknown mnemonic {mnemonic!r}", line)
    factory, kinds = entry
    operands = [token for token in _OPERAND_SPLIT.split(rest.strip()) if token]
    if len(operands) != len(kinds):
        raise InvalidProgram(
            f"{mnemonic} takes {len(kinds)} operand(s), received {len(operands)}", line
        )
    values = [_parse_operand(kind, token, line) for kind, token in zip(kinds, operands)]
    try:
        return factory(*values)
    except InvalidProgram as exc:
        if exc.line is None and line is not None:
            raise InvalidProgram(str(exc), line) from None
        raise


def parse_program(source: str) -> List[Instruction]:
    instructions: List[Instruction] = []
    for number, raw in enumerate(source.splitlines(), start=1):
        statement = _COMMENT.sub("", raw).strip()
        if statement:
            instructions.append(parse_instruction(statement, number))
    return instructions


def encode_program(instructions: Sequence[Instruction]) -> List[int]:
    return [instruction.encode() for instruction in instructions]


def assemble(source: str) -> List[int]:
    """Assemble ``source`` into 16-bit program words."""

    return encode_program(parse_program(source))


__all__ = [
    "Arithmetic",
    "ArithmeticOperation",
    "Branch",
    "BranchType",
    "CarryOperation",
    "Condition",
    "DEFAULT_PROGRAM_SOURCE",
    "Instruction",
    "Move",
    "ReducedRegister",
    "Register",
    "SHORTHANDS",
    "assemble",
    "encode_program",
    "parse_instruction",
    "parse_program",
]
