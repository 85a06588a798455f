"""
Instruction decoder for the intcode machine.

An instruction word packs the opcode in its low two decimal digits and one
addressing-mode digit per parameter above that:

    ABCDE
      1002  ->  DE = 02 (Mul), C = 0 (param 0 position),
                B = 1 (param 1 immediate), A = 0 (param 2 position)

decode() maps a word onto one variant of a closed instruction set. Each
variant carries its own address and the modes of its parameters; the
literal parameter words are left in memory for the engine to resolve.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Iterable, Sequence

from .errors import InvalidOpcode


class Mode(IntEnum):
    POSITION = 0
    IMMEDIATE = 1
    RELATIVE = 2


# ---------------------------------------------------------------------------
# Instruction variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    address: int
    modes: tuple[Mode, ...] = ()

    OPCODE: ClassVar[int] = -1
    ARITY: ClassVar[int] = 0
    WRITES: ClassVar[frozenset[int]] = frozenset()   # parameter indices
    MNEMONIC: ClassVar[str] = "???"

    @property
    def size(self) -> int:
        return 1 + self.ARITY

    @property
    def next_address(self) -> int:
        return self.address + self.size


class Add(Instruction):
    OPCODE = 1
    ARITY = 3
    WRITES = frozenset({2})
    MNEMONIC = "ADD"


class Mul(Instruction):
    OPCODE = 2
    ARITY = 3
    WRITES = frozenset({2})
    MNEMONIC = "MUL"


class Input(Instruction):
    OPCODE = 3
    ARITY = 1
    WRITES = frozenset({0})
    MNEMONIC = "IN"


class Output(Instruction):
    OPCODE = 4
    ARITY = 1
    MNEMONIC = "OUT"


class JumpIfTrue(Instruction):
    OPCODE = 5
    ARITY = 2
    MNEMONIC = "JNZ"


class JumpIfFalse(Instruction):
    OPCODE = 6
    ARITY = 2
    MNEMONIC = "JZ"


class LessThan(Instruction):
    OPCODE = 7
    ARITY = 3
    WRITES = frozenset({2})
    MNEMONIC = "LT"


class Equals(Instruction):
    OPCODE = 8
    ARITY = 3
    WRITES = frozenset({2})
    MNEMONIC = "EQ"


class AdjustRelativeBase(Instruction):
    OPCODE = 9
    ARITY = 1
    MNEMONIC = "ARB"


class Halt(Instruction):
    OPCODE = 99
    MNEMONIC = "HLT"


INSTRUCTIONS: dict[int, type[Instruction]] = {
    cls.OPCODE: cls
    for cls in (Add, Mul, Input, Output, JumpIfTrue, JumpIfFalse,
                LessThan, Equals, AdjustRelativeBase, Halt)
}

_MODE_DIGITS = frozenset(m.value for m in Mode)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode(word: int, address: int) -> Instruction:
    """Decode the instruction word found at `address`.

    Raises InvalidOpcode for an unknown opcode, a mode digit outside 0-2 on
    any consumed parameter, an immediate-mode write parameter, or a negative
    word. Digits above the last consumed parameter are ignored.
    """
    if word < 0:
        raise InvalidOpcode(word, address, "negative instruction word")
    cls = INSTRUCTIONS.get(word % 100)
    if cls is None:
        raise InvalidOpcode(word, address)

    digits = word // 100
    modes = []
    for k in range(cls.ARITY):
        digit = digits % 10
        digits //= 10
        if digit not in _MODE_DIGITS:
            raise InvalidOpcode(word, address,
                                f"mode {digit} for parameter {k}")
        mode = Mode(digit)
        if mode is Mode.IMMEDIATE and k in cls.WRITES:
            raise InvalidOpcode(word, address,
                                f"immediate mode for write parameter {k}")
        modes.append(mode)
    return cls(address, tuple(modes))


# ---------------------------------------------------------------------------
# Disassembly
# ---------------------------------------------------------------------------

def format_operand(mode: Mode, literal: int) -> str:
    if mode is Mode.IMMEDIATE:
        return str(literal)
    if mode is Mode.RELATIVE:
        return f"[rb{literal:+d}]"
    return f"[{literal}]"


def format_instruction(instr: Instruction, words: Sequence[int]) -> str:
    """Render `instr` with its literal operands taken from `words`."""
    operands = []
    for k, mode in enumerate(instr.modes):
        addr = instr.address + 1 + k
        literal = words[addr] if addr < len(words) else 0
        operands.append(format_operand(mode, literal))
    if not operands:
        return instr.MNEMONIC
    return f"{instr.MNEMONIC:<4} " + ", ".join(operands)


def disassemble(memory: Iterable[int], start: int = 0,
                count: int | None = None) -> list[tuple[int, str]]:
    """List (address, text) pairs from `start` onward.

    Words that do not decode are listed as DATA and skipped one at a time.
    Stops at the end of memory or after `count` lines.
    """
    words = list(memory)
    lines: list[tuple[int, str]] = []
    addr = start
    while addr < len(words):
        if count is not None and len(lines) >= count:
            break
        try:
            instr = decode(words[addr], addr)
        except InvalidOpcode:
            lines.append((addr, f"DATA {words[addr]}"))
            addr += 1
            continue
        lines.append((addr, format_instruction(instr, words)))
        addr = instr.next_address
    return lines
