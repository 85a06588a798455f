"""
Host conventions layered on top of IntcodeMachine.

These are the calling patterns programs expect from their host: noun/verb
arguments patched into addresses 1 and 2, diagnostic runs whose outputs are
all zero but the last, and plain feed-inputs-collect-outputs runs.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .errors import IntcodeError
from .loader import patch
from .machine import IntcodeMachine

logger = logging.getLogger(__name__)

NOUN_ADDR = 1
VERB_ADDR = 2


def run_program(program: Sequence[int], inputs: Iterable[int] = ()) -> list[int]:
    """Run to halt on a fresh machine and return every output.

    Raises InputBlocked if the program asks for more input than given.
    """
    vm = IntcodeMachine(program, inputs)
    vm.run()
    return vm.drain_outputs()


def run_with_noun_verb(program: Sequence[int], noun: int, verb: int) -> int:
    """Patch noun/verb into addresses 1 and 2, run, return address 0."""
    vm = IntcodeMachine(patch(program, {NOUN_ADDR: noun, VERB_ADDR: verb}))
    vm.run()
    return vm.memory.read(0)


def find_noun_verb(program: Sequence[int], target: int,
                   limit: int = 100) -> tuple[int, int]:
    """Search noun, verb in [0, limit) for the pair that yields `target`.

    Pairs that fault or block on input are not matches and are skipped.
    """
    for noun in range(limit):
        for verb in range(limit):
            try:
                result = run_with_noun_verb(program, noun, verb)
            except IntcodeError:
                continue
            if result == target:
                logger.debug("noun=%d verb=%d -> %d", noun, verb, result)
                return noun, verb
    raise RuntimeError(f"No noun/verb pair below {limit} produces {target}")


def run_diagnostic(program: Sequence[int], system_id: int) -> int:
    """Run a diagnostic program and return its final code.

    Every output before the last is a self-test result and must be 0.
    """
    outputs = run_program(program, [system_id])
    if not outputs:
        raise RuntimeError("Diagnostic produced no outputs")
    *checks, code = outputs
    for i, check in enumerate(checks):
        if check != 0:
            raise RuntimeError(f"Diagnostic test {i} failed with code {check}")
    return code
