from .chips import FIFO, Memory
from .decoder import Instruction, Mode, decode, disassemble
from .errors import (
    FatalError, InputBlocked, IntcodeError, InvalidAddress, InvalidOpcode,
    MachineStopped,
)
from .loader import load_program, parse_program, patch
from .machine import Blocked, Fatal, IntcodeMachine, Progressed, State

__all__ = [
    "IntcodeMachine",
    "State",
    "Progressed",
    "Blocked",
    "Fatal",
    "Memory",
    "FIFO",
    "Instruction",
    "Mode",
    "decode",
    "disassemble",
    "IntcodeError",
    "FatalError",
    "InvalidOpcode",
    "InvalidAddress",
    "MachineStopped",
    "InputBlocked",
    "load_program",
    "parse_program",
    "patch",
]
