"""
Intcode machine: a resumable fetch/decode/execute loop over growable memory.

The controller surface is small:

    step()              one instruction, returns the resulting State
    run()               step until halt, raise InputBlocked if starved
    run_until_output()  step until one output value is available
    try_step/try_run    the same without exceptions: Progressed/Blocked/Fatal

The only suspension point is the input instruction. When it finds the input
queue empty the program counter stays on that instruction, so queuing a value
and stepping again re-executes it and consumes exactly one input.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Union

from .chips import FIFO, Memory
from .decoder import (
    Add, AdjustRelativeBase, Equals, Halt, Input, Instruction, JumpIfFalse,
    JumpIfTrue, LessThan, Mode, Mul, Output, decode, format_instruction,
)
from .errors import FatalError, InputBlocked, MachineStopped

logger = logging.getLogger(__name__)


class State(enum.Enum):
    RUNNING = "running"
    WAITING_FOR_INPUT = "waiting"
    STOPPED = "stopped"


# ---------------------------------------------------------------------------
# Exception-free step results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Progressed:
    state: State


@dataclass(frozen=True)
class Blocked:
    reason: InputBlocked


@dataclass(frozen=True)
class Fatal:
    error: FatalError


Outcome = Union[Progressed, Blocked, Fatal]


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

class IntcodeMachine:
    """Single intcode processor with its own memory and I/O queues.

    `program` is copied; the caller's sequence is never touched. Values in
    `inputs` are queued before the first step.
    """

    def __init__(self, program: Iterable[int], inputs: Iterable[int] = ()):
        self.memory = Memory(program)
        self.inputs = FIFO(inputs)
        self.outputs = FIFO()

        # --- Registers ---
        self.pc = 0
        self.relative_base = 0
        self.state = State.RUNNING
        self.fault: FatalError | None = None

        # --- Counters ---
        self.steps = 0
        self.mem_reads = 0
        self.mem_writes = 0
        self.inputs_consumed = 0
        self.outputs_produced = 0

    # -------------------------------------------------------------------
    # Memory helpers
    # -------------------------------------------------------------------

    def read(self, addr: int) -> int:
        self.mem_reads += 1
        return self.memory.read(addr)

    def write(self, addr: int, val: int):
        self.mem_writes += 1
        self.memory.write(addr, val)

    def _read_param(self, instr: Instruction, k: int) -> int:
        literal = self.read(instr.address + 1 + k)
        mode = instr.modes[k]
        if mode is Mode.IMMEDIATE:
            return literal
        if mode is Mode.RELATIVE:
            return self.read(literal + self.relative_base)
        return self.read(literal)

    def _write_param(self, instr: Instruction, k: int, val: int):
        # Immediate-mode writes are rejected by the decoder.
        literal = self.read(instr.address + 1 + k)
        if instr.modes[k] is Mode.RELATIVE:
            literal += self.relative_base
        self.write(literal, val)

    # -------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------

    def _execute(self, instr: Instruction):
        """Apply `instr` to memory and registers."""
        match instr:
            case Add():
                a = self._read_param(instr, 0)
                b = self._read_param(instr, 1)
                self._write_param(instr, 2, a + b)

            case Mul():
                a = self._read_param(instr, 0)
                b = self._read_param(instr, 1)
                self._write_param(instr, 2, a * b)

            case Input():
                value = self.inputs.pop()
                if value is None:
                    # PC stays on this word; the next step retries it.
                    if self.state is not State.WAITING_FOR_INPUT:
                        logger.debug("blocked on input at %d", instr.address)
                    self.state = State.WAITING_FOR_INPUT
                    return
                self.inputs_consumed += 1
                self._write_param(instr, 0, value)

            case Output():
                self.outputs.push(self._read_param(instr, 0))
                self.outputs_produced += 1

            case JumpIfTrue():
                cond = self._read_param(instr, 0)
                target = self._read_param(instr, 1)
                if cond != 0:
                    self._finish(target)
                    return

            case JumpIfFalse():
                cond = self._read_param(instr, 0)
                target = self._read_param(instr, 1)
                if cond == 0:
                    self._finish(target)
                    return

            case LessThan():
                a = self._read_param(instr, 0)
                b = self._read_param(instr, 1)
                self._write_param(instr, 2, 1 if a < b else 0)

            case Equals():
                a = self._read_param(instr, 0)
                b = self._read_param(instr, 1)
                self._write_param(instr, 2, 1 if a == b else 0)

            case AdjustRelativeBase():
                self.relative_base += self._read_param(instr, 0)

            case Halt():
                self.steps += 1
                self.state = State.STOPPED
                return

        self._finish(instr.next_address)

    def _finish(self, next_pc: int):
        self.steps += 1
        self.pc = next_pc
        self.state = State.RUNNING

    def step(self) -> State:
        """Execute one instruction and return the resulting state.

        A machine waiting for input stays waiting (same PC, same memory)
        until a value is queued. Raises MachineStopped once halted, and
        re-raises the original error after any fatal fault.
        """
        if self.fault is not None:
            raise self.fault.with_traceback(None)
        if self.state is State.STOPPED:
            raise MachineStopped(self.pc)

        try:
            instr = decode(self.read(self.pc), self.pc)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("%6d  %s", instr.address,
                             format_instruction(instr, self.memory.cells))
            self._execute(instr)
        except FatalError as e:
            self.fault = e
            logger.warning("machine fault: %s", e)
            raise
        return self.state

    def run(self):
        """Step until the program halts.

        Raises InputBlocked when an input instruction finds the queue empty;
        queue more input and call run() again to continue.
        """
        while True:
            state = self.step()
            if state is State.STOPPED:
                return
            if state is State.WAITING_FOR_INPUT:
                raise InputBlocked(self.pc)

    def run_until_output(self) -> int | None:
        """Step until an output is buffered and return it.

        Returns None if the program halts without producing one.
        """
        while True:
            value = self.outputs.pop()
            if value is not None:
                return value
            if self.state is State.STOPPED:
                return None
            if self.step() is State.WAITING_FOR_INPUT:
                raise InputBlocked(self.pc)

    def try_step(self) -> Outcome:
        try:
            state = self.step()
        except FatalError as e:
            return Fatal(e)
        if state is State.WAITING_FOR_INPUT:
            return Blocked(InputBlocked(self.pc))
        return Progressed(state)

    def try_run(self) -> Outcome:
        try:
            self.run()
        except InputBlocked as e:
            return Blocked(e)
        except FatalError as e:
            return Fatal(e)
        return Progressed(self.state)

    # -------------------------------------------------------------------
    # I/O
    # -------------------------------------------------------------------

    def add_inputs(self, values: Iterable[int]):
        self.inputs.extend(values)

    def drain_outputs(self) -> list[int]:
        return self.outputs.drain()

    def is_running(self) -> bool:
        return self.state is not State.STOPPED

    # -------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------

    def reset_counters(self):
        self.steps = 0
        self.mem_reads = 0
        self.mem_writes = 0
        self.inputs_consumed = 0
        self.outputs_produced = 0

    def stats(self) -> dict:
        return {
            "steps": self.steps,
            "mem_reads": self.mem_reads,
            "mem_writes": self.mem_writes,
            "inputs_consumed": self.inputs_consumed,
            "outputs_produced": self.outputs_produced,
            "memory_size": len(self.memory),
        }

    def stats_summary(self) -> str:
        s = self.stats()
        return (
            f"Steps: {s['steps']}\n"
            f"Memory: {s['mem_reads']}R/{s['mem_writes']}W "
            f"({s['memory_size']} cells)\n"
            f"IO: {s['inputs_consumed']} in / {s['outputs_produced']} out"
        )
