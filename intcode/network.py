"""
Amplifier networks, several machines wired output-to-input.

Each machine's FIFOs are the channel endpoints; the scheduling policy lives
here, outside the machine. A chain runs each amplifier to completion in
turn. A feedback loop wires the last amplifier back to the first and steps
the machines round-robin until every one of them has halted.
"""

from __future__ import annotations

import itertools
import logging
from typing import Iterable, Sequence

from .machine import Blocked, Fatal, IntcodeMachine, State

logger = logging.getLogger(__name__)


class AmplifierNetwork:
    """A ring or chain of amplifiers sharing one program.

    Every amplifier gets its phase setting as its first input. The initial
    signal goes to the first amplifier.
    """

    def __init__(self, program: Sequence[int], phases: Iterable[int]):
        self.amps = [IntcodeMachine(program, [phase]) for phase in phases]
        if not self.amps:
            raise ValueError("An amplifier network needs at least one phase")
        self.rounds = 0
        self._final: int | None = None

    def _forward(self, src: IntcodeMachine, dst: IntcodeMachine):
        dst.add_inputs(src.drain_outputs())

    def _service(self, vm: IntcodeMachine) -> bool:
        """Step `vm` until it blocks or halts. True if it made progress."""
        progressed = False
        while vm.is_running():
            outcome = vm.try_step()
            if isinstance(outcome, Fatal):
                raise outcome.error
            if isinstance(outcome, Blocked):
                break
            progressed = True
        return progressed

    def run_chain(self, signal: int = 0) -> int:
        """Pass `signal` through every amplifier once, in order."""
        self.amps[0].add_inputs([signal])
        for i, amp in enumerate(self.amps):
            amp.run()
            if i + 1 < len(self.amps):
                self._forward(amp, self.amps[i + 1])
        return self._last_output(self.amps[-1].drain_outputs())

    def run_feedback(self, signal: int = 0) -> int:
        """Loop the last amplifier's output back to the first until all halt.

        Returns the last signal the final amplifier sent.
        """
        self.amps[0].add_inputs([signal])
        last: list[int] = []
        n = len(self.amps)
        while any(amp.is_running() for amp in self.amps):
            self.rounds += 1
            progressed = False
            for i, amp in enumerate(self.amps):
                if i > 0:
                    self._forward(self.amps[i - 1], amp)
                elif last:
                    amp.add_inputs(last)
                    last = []
                progressed |= self._service(amp)
            # Hold the tail's output so the final value survives the last
            # round, when the first amplifier has already halted.
            tail = self.amps[n - 1].drain_outputs()
            if tail:
                last = tail
                self._final = tail[-1]
            if not progressed and any(
                    amp.state is State.WAITING_FOR_INPUT for amp in self.amps):
                raise RuntimeError("Amplifier network deadlocked waiting for input")
        logger.debug("feedback loop finished after %d rounds", self.rounds)
        return self._final_signal()

    def _final_signal(self) -> int:
        if self._final is None:
            raise RuntimeError("Last amplifier produced no output")
        return self._final

    @staticmethod
    def _last_output(outputs: list[int]) -> int:
        if not outputs:
            raise RuntimeError("Last amplifier produced no output")
        return outputs[-1]


def run_chain(program: Sequence[int], phases: Iterable[int],
              signal: int = 0) -> int:
    return AmplifierNetwork(program, phases).run_chain(signal)


def run_feedback_loop(program: Sequence[int], phases: Iterable[int],
                      signal: int = 0) -> int:
    return AmplifierNetwork(program, phases).run_feedback(signal)


def max_thruster_signal(program: Sequence[int], phase_values: Iterable[int],
                        feedback: bool = False) -> tuple[int, tuple[int, ...]]:
    """Try every ordering of `phase_values`; return the best signal and phases."""
    runner = run_feedback_loop if feedback else run_chain
    best: tuple[int, tuple[int, ...]] | None = None
    for phases in itertools.permutations(phase_values):
        signal = runner(program, phases)
        if best is None or signal > best[0]:
            best = (signal, phases)
    if best is None:
        raise ValueError("No phase values given")
    return best
