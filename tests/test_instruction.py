from __future__ import annotations

import pytest

from schemrom import instruction as isa
from schemrom.errors import InvalidProgram
from schemrom.instruction import Register, ReducedRegister


@pytest.mark.parametrize(
    ("instruction", "word"),
    [
        (isa.nop(), 0x8088),
        (isa.jmp(0), 0xA000),
        (isa.jmp(0x42), 0xA042),
        (isa.jeq(5), 0xA605),
        (isa.jmp_rel(-1), 0xA1FF),
        (isa.jeq_rel(3), 0xA703),
        (isa.add(ReducedRegister.RRB, Register.RC, Register.RD), 0x3123),
        (isa.add_carry(ReducedRegister.RRA, Register.RA, Register.RA), 0x3800),
        (isa.sub_carry(ReducedRegister.RRA, Register.RB, Register.RC), 0x2812),
        (isa.inc(ReducedRegister.RRH, Register.RH), 0x3797),
        (isa.dec(ReducedRegister.RRA, Register.RA), 0x2090),
        (isa.cmp_0(ReducedRegister.RRC), 0x2288),
        (isa.mov(Register.RIN, Register.ROUT), 0x80BA),
        (isa.cmoveq(Register.RA, Register.RB), 0x8601),
        (isa.cmovneq(Register.RPC, Register.RFLAGS), 0x88FE),
    ],
)
def test_encodings(instruction: isa.Instruction, word: int) -> None:
    assert instruction.encode() == word


def test_move_with_flags_sets_bit_eight() -> None:
    move = isa.Move(isa.Condition.UNCONDITIONAL, True, Register.RA, Register.RB)

    assert move.encode() == 0x8101


def test_register_reduction() -> None:
    assert Register.RC.reduce() is ReducedRegister.RRC
    assert Register.RNULL.reduce() is None
    assert ReducedRegister.RRD.widen() is Register.RD


def test_assemble_default_program() -> None:
    assert isa.assemble(isa.DEFAULT_PROGRAM_SOURCE) == [0x8088] * 4 + [0xA000]


def test_assemble_handles_comments_case_and_literals() -> None:
    source = """
    ; counter loop
    MOV rin, RA        # read input
    inc rra, ra
    cmp rra rb
    jeq_rel -2
    jmp 0x00
    """

    assert isa.assemble(source) == [0x80B0, 0x3090, 0x2018, 0xA7FE, 0xA000]


@pytest.mark.parametrize(
    ("source", "message"),
    [
        ("nop\nfrobnicate ra", "line 2: unknown mnemonic"),
        ("add rra, rb", "line 1: add takes 3 operand"),
        ("inc ra, rb", "unknown reduced register"),
        ("mov rz, ra", "unknown register"),
        ("jmp zero", "invalid integer"),
        ("nop\n\njmp 256", "line 3: branch address 256"),
        ("jmp_rel 200", "outside -128..127"),
    ],
)
def test_assemble_errors_name_the_line(source: str, message: str) -> None:
    with pytest.raises(InvalidProgram, match=message):
        isa.assemble(source)
