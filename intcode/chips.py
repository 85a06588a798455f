"""
Storage primitives for the intcode machine.

Models the two pieces of state the machine owns: a growable word memory and
the unbounded FIFOs used for input and output.
"""

from __future__ import annotations

import collections
from typing import Iterable, Iterator

from .errors import InvalidAddress


class Memory:
    """Zero-indexed word store that grows forward on demand.

    Any access past the end extends the store with zero cells up to and
    including the accessed address. Cells are never removed.
    """

    def __init__(self, words: Iterable[int] = ()):
        self.cells: list[int] = list(words)

    def _grow(self, addr: int):
        if addr < 0:
            raise InvalidAddress(addr)
        if addr >= len(self.cells):
            self.cells.extend([0] * (addr + 1 - len(self.cells)))

    def read(self, addr: int) -> int:
        self._grow(addr)
        return self.cells[addr]

    def write(self, addr: int, val: int):
        self._grow(addr)
        self.cells[addr] = val

    def peek(self, addr: int) -> int:
        """Read without growing. Out-of-range cells read as 0."""
        if 0 <= addr < len(self.cells):
            return self.cells[addr]
        return 0

    def snapshot(self) -> list[int]:
        return list(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[int]:
        return iter(self.cells)


class FIFO:
    """Unbounded integer queue. One end of a machine's I/O channel."""

    def __init__(self, values: Iterable[int] = ()):
        self.buffer: collections.deque[int] = collections.deque(values)

    def push(self, value: int):
        self.buffer.append(value)

    def extend(self, values: Iterable[int]):
        self.buffer.extend(values)

    def pop(self) -> int | None:
        return self.buffer.popleft() if self.buffer else None

    def drain(self) -> list[int]:
        values = list(self.buffer)
        self.buffer.clear()
        return values

    def __len__(self) -> int:
        return len(self.buffer)
