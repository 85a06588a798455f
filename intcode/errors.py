"""
Error types raised by the intcode machine.

FatalError and its subclasses leave the machine unusable. InputBlocked is a
control-flow signal: queue more input and resume.
"""

from __future__ import annotations


class IntcodeError(Exception):
    """Base class for everything the machine raises."""


class FatalError(IntcodeError):
    """The machine cannot make further progress."""


class InvalidOpcode(FatalError):
    def __init__(self, word: int, address: int, reason: str = ""):
        self.word = word
        self.address = address
        self.reason = reason
        msg = f"The opcode `{word}` at offset {address} is invalid"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class InvalidAddress(FatalError):
    def __init__(self, address: int):
        self.address = address
        super().__init__(f"Access to negative address {address}")


class MachineStopped(FatalError):
    def __init__(self, address: int):
        self.address = address
        super().__init__(f"Machine already halted at offset {address}")


class InputBlocked(IntcodeError):
    """Input instruction reached with an empty input queue."""

    def __init__(self, address: int):
        self.address = address
        super().__init__(f"Waiting for input at offset {address}")
