"""
Program text loading.

Intcode programs are stored as comma-separated signed decimals, usually on a
single line. Parsing goes through a small Lark grammar so malformed input is
reported with its line and column.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput

GRAMMAR = r"""
    start: (value ("," value)* ","?)?

    value: SIGNED_INT

    %import common.SIGNED_INT
    %ignore /\s+/
"""

parser = Lark(GRAMMAR, parser="lalr")


@v_args(inline=True)
class ProgramBuilder(Transformer):
    def value(self, tok):
        return int(tok)

    def start(self, *values):
        return list(values)


program_builder = ProgramBuilder()


def parse_program(text: str) -> list[int]:
    """Parse program text into a list of ints."""
    try:
        tree = parser.parse(text)
    except UnexpectedInput as e:
        if e.line < 0:
            raise ValueError("Malformed program: unexpected end of input") from e
        raise ValueError(
            f"Malformed program at line {e.line}, column {e.column}"
        ) from e
    return program_builder.transform(tree)


def load_program(path: str | Path) -> list[int]:
    """Read and parse a program file."""
    return parse_program(Path(path).read_text())


def format_program(words: Iterable[int]) -> str:
    return ",".join(str(w) for w in words)


def patch(program: Iterable[int], overrides: Mapping[int, int]) -> list[int]:
    """Return a copy of `program` with `overrides` written in.

    Addresses past the end are zero-filled, the same way the machine grows.
    """
    words = list(program)
    for addr, val in overrides.items():
        if addr < 0:
            raise ValueError(f"Cannot patch negative address {addr}")
        if addr >= len(words):
            words.extend([0] * (addr + 1 - len(words)))
        words[addr] = val
    return words
