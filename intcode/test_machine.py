"""
Verification suite for the intcode machine.

Covers instruction semantics, addressing modes, memory growth, the
suspend/resume protocol on input, and the standard self-test programs.
Runs under pytest, or standalone via main().
"""

from __future__ import annotations

import sys
import traceback

import pytest

from intcode.errors import InputBlocked, InvalidAddress, InvalidOpcode, MachineStopped
from intcode.machine import Blocked, Fatal, IntcodeMachine, Progressed, State


QUINE = [109, 1, 204, -1, 1001, 100, 1, 100, 1008, 100, 16, 101,
         1006, 101, 0, 99]

# Day 5 comparison program: 999 below 8, 1000 at 8, 1001 above 8.
COMPARE_8 = [3, 21, 1008, 21, 8, 20, 1005, 20, 22, 107, 8, 21, 20, 1006, 20,
             31, 1106, 0, 36, 98, 0, 0, 1002, 21, 125, 20, 4, 20, 1105, 1, 46,
             104, 999, 1105, 1, 46, 1101, 1000, 1, 20, 4, 20, 1105, 1, 46, 98,
             99]


def run_outputs(program, inputs=()):
    vm = IntcodeMachine(program, inputs)
    vm.run()
    return vm.drain_outputs()


# ---------------------------------------------------------------------------
# Arithmetic and stepping
# ---------------------------------------------------------------------------

def test_add_step_advances_pc_by_four():
    vm = IntcodeMachine([1, 5, 6, 7, 99, 20, 22, 0])
    assert vm.step() is State.RUNNING
    assert vm.memory.read(7) == 42
    assert vm.pc == 4


def test_double_then_halt_then_stopped():
    vm = IntcodeMachine([1, 0, 0, 0, 99])
    assert vm.step() is State.RUNNING
    assert vm.memory.read(0) == 2
    assert vm.step() is State.STOPPED
    assert not vm.is_running()

    before = vm.memory.snapshot()
    with pytest.raises(MachineStopped):
        vm.step()
    with pytest.raises(MachineStopped):
        vm.run()
    assert vm.memory.snapshot() == before
    assert vm.state is State.STOPPED


@pytest.mark.parametrize("program, expected", [
    ([1, 0, 0, 0, 99], [2, 0, 0, 0, 99]),
    ([2, 3, 0, 3, 99], [2, 3, 0, 6, 99]),
    ([2, 4, 4, 5, 99, 0], [2, 4, 4, 5, 99, 9801]),
    ([1, 1, 1, 4, 99, 5, 6, 0, 99], [30, 1, 1, 4, 2, 5, 6, 0, 99]),
    ([1, 9, 10, 3, 2, 3, 11, 0, 99, 30, 40, 50],
     [3500, 9, 10, 70, 2, 3, 11, 0, 99, 30, 40, 50]),
])
def test_add_mul_programs(program, expected):
    vm = IntcodeMachine(program)
    vm.run()
    assert vm.memory.snapshot() == expected


def test_program_is_copied():
    program = [1, 0, 0, 0, 99]
    first = IntcodeMachine(program)
    second = IntcodeMachine(program)
    first.run()
    assert program == [1, 0, 0, 0, 99]
    assert second.memory.snapshot() == [1, 0, 0, 0, 99]


def test_immediate_and_position_equivalent():
    immediate = IntcodeMachine([1101, 100, -1, 4, 0])
    position = IntcodeMachine([1, 5, 6, 4, 0, 100, -1])
    immediate.run()
    position.run()
    assert immediate.memory.read(4) == position.memory.read(4) == 99
    assert immediate.memory.snapshot() == [1101, 100, -1, 4, 99]


def test_mixed_modes_multiply():
    vm = IntcodeMachine([1002, 4, 3, 4, 33])
    vm.run()
    assert vm.memory.read(4) == 99


# ---------------------------------------------------------------------------
# Comparisons and jumps
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("program", [
    [3, 9, 8, 9, 10, 9, 4, 9, 99, -1, 8],
    [3, 3, 1108, -1, 8, 3, 4, 3, 99],
])
def test_equals_eight(program):
    assert run_outputs(program, [8]) == [1]
    assert run_outputs(program, [7]) == [0]


@pytest.mark.parametrize("program", [
    [3, 9, 7, 9, 10, 9, 4, 9, 99, -1, 8],
    [3, 3, 1107, -1, 8, 3, 4, 3, 99],
])
def test_less_than_eight(program):
    assert run_outputs(program, [5]) == [1]
    assert run_outputs(program, [8]) == [0]
    assert run_outputs(program, [9]) == [0]


@pytest.mark.parametrize("program", [
    [3, 12, 6, 12, 15, 1, 13, 14, 13, 4, 13, 99, -1, 0, 1, 9],
    [3, 3, 1105, -1, 9, 1101, 0, 0, 12, 4, 12, 99, 1],
])
def test_jump_zero_check(program):
    assert run_outputs(program, [0]) == [0]
    assert run_outputs(program, [42]) == [1]


@pytest.mark.parametrize("value, expected", [(3, 999), (8, 1000), (11, 1001)])
def test_compare_to_eight(value, expected):
    assert run_outputs(COMPARE_8, [value]) == [expected]


def test_jump_sets_pc():
    vm = IntcodeMachine([1105, 1, 7, 99, 0, 0, 0, 104, 5, 99])
    vm.step()
    assert vm.pc == 7
    vm.run()
    assert vm.drain_outputs() == [5]


def test_jump_not_taken_advances_three():
    vm = IntcodeMachine([1106, 1, 7, 99])
    vm.step()
    assert vm.pc == 3


# ---------------------------------------------------------------------------
# Relative mode
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("base, expected", [(5, 11), (6, 22), (7, 33)])
def test_relative_base_selects_address(base, expected):
    assert run_outputs([109, base, 204, 0, 99, 11, 22, 33]) == [expected]


def test_relative_write():
    vm = IntcodeMachine([109, 10, 21101, 3, 4, 0, 204, 0, 99])
    vm.run()
    assert vm.drain_outputs() == [7]
    assert vm.memory.read(10) == 7
    assert vm.relative_base == 10


def test_relative_base_accumulates():
    vm = IntcodeMachine([109, 5, 109, -2, 99])
    vm.run()
    assert vm.relative_base == 3


def test_negative_relative_address_fails():
    vm = IntcodeMachine([109, -5, 204, 0, 99])
    vm.step()
    with pytest.raises(InvalidAddress) as excinfo:
        vm.step()
    assert excinfo.value.address == -5
    assert vm.fault is excinfo.value
    with pytest.raises(InvalidAddress):
        vm.step()


# ---------------------------------------------------------------------------
# Memory growth
# ---------------------------------------------------------------------------

def test_write_far_beyond_end_backfills_zeros():
    vm = IntcodeMachine([1101, 1, 2, 1000, 4, 1000, 99])
    vm.run()
    assert vm.drain_outputs() == [3]
    assert len(vm.memory) == 1001
    assert vm.memory.read(1000) == 3
    assert all(v == 0 for v in vm.memory.cells[7:1000])


def test_read_beyond_end_grows():
    vm = IntcodeMachine([4, 50, 99])
    vm.run()
    assert vm.drain_outputs() == [0]
    assert len(vm.memory) == 51


# ---------------------------------------------------------------------------
# Suspend / resume
# ---------------------------------------------------------------------------

def test_input_blocks_and_resumes_once():
    vm = IntcodeMachine([3, 0, 4, 0, 99])
    assert vm.step() is State.WAITING_FOR_INPUT
    assert vm.pc == 0
    assert vm.memory.snapshot() == [3, 0, 4, 0, 99]

    # Stepping again without input changes nothing.
    assert vm.step() is State.WAITING_FOR_INPUT
    assert vm.pc == 0
    assert vm.is_running()

    vm.add_inputs([7])
    assert vm.step() is State.RUNNING
    assert vm.pc == 2
    assert vm.memory.read(0) == 7
    assert len(vm.inputs) == 0

    vm.run()
    assert vm.drain_outputs() == [7]
    assert vm.inputs_consumed == 1


def test_run_raises_input_blocked():
    vm = IntcodeMachine([3, 0, 4, 0, 99])
    with pytest.raises(InputBlocked) as excinfo:
        vm.run()
    assert excinfo.value.address == 0
    assert vm.state is State.WAITING_FOR_INPUT
    assert vm.fault is None

    vm.add_inputs([7])
    vm.run()
    assert vm.drain_outputs() == [7]
    assert not vm.is_running()


def test_inputs_consumed_in_order():
    vm = IntcodeMachine([3, 0, 3, 1, 4, 1, 4, 0, 99], [10, 20])
    vm.run()
    assert vm.drain_outputs() == [20, 10]


def test_run_until_output():
    vm = IntcodeMachine([104, 1, 104, 2, 99])
    assert vm.run_until_output() == 1
    assert vm.run_until_output() == 2
    assert vm.run_until_output() is None
    assert vm.run_until_output() is None


def test_run_until_output_blocks():
    vm = IntcodeMachine([3, 0, 4, 0, 99])
    with pytest.raises(InputBlocked):
        vm.run_until_output()
    vm.add_inputs([-3])
    assert vm.run_until_output() == -3
    assert vm.run_until_output() is None


def test_drain_outputs_fifo():
    vm = IntcodeMachine([104, 3, 104, 2, 104, 1, 99])
    vm.run()
    assert vm.drain_outputs() == [3, 2, 1]
    assert vm.drain_outputs() == []


# ---------------------------------------------------------------------------
# Exception-free results
# ---------------------------------------------------------------------------

def test_try_step_outcomes():
    vm = IntcodeMachine([3, 0, 99])
    outcome = vm.try_step()
    assert isinstance(outcome, Blocked)
    assert outcome.reason.address == 0

    vm.add_inputs([1])
    assert vm.try_step() == Progressed(State.RUNNING)
    assert vm.try_step() == Progressed(State.STOPPED)

    outcome = vm.try_step()
    assert isinstance(outcome, Fatal)
    assert isinstance(outcome.error, MachineStopped)


def test_try_run_outcomes():
    vm = IntcodeMachine([3, 0, 4, 0, 99])
    assert isinstance(vm.try_run(), Blocked)
    vm.add_inputs([5])
    assert vm.try_run() == Progressed(State.STOPPED)
    assert vm.drain_outputs() == [5]

    outcome = IntcodeMachine([42]).try_run()
    assert isinstance(outcome, Fatal)
    assert isinstance(outcome.error, InvalidOpcode)


# ---------------------------------------------------------------------------
# Faults
# ---------------------------------------------------------------------------

def test_invalid_opcode_reports_word_and_address():
    vm = IntcodeMachine([104, 1, 42])
    vm.step()
    with pytest.raises(InvalidOpcode) as excinfo:
        vm.step()
    assert excinfo.value.word == 42
    assert excinfo.value.address == 2
    assert vm.pc == 2
    assert vm.state is State.RUNNING


def test_immediate_write_parameter_rejected():
    vm = IntcodeMachine([11101, 1, 1, 0, 99])
    with pytest.raises(InvalidOpcode):
        vm.step()
    assert vm.memory.snapshot() == [11101, 1, 1, 0, 99]


def test_jump_to_negative_address_fails_on_fetch():
    vm = IntcodeMachine([1105, 1, -1])
    vm.step()
    assert vm.pc == -1
    with pytest.raises(InvalidAddress):
        vm.step()


def test_repeated_fault_traceback_does_not_grow():
    vm = IntcodeMachine([42])
    depths = []
    for _ in range(4):
        with pytest.raises(InvalidOpcode) as excinfo:
            vm.step()
        assert excinfo.value is vm.fault
        depths.append(len(traceback.extract_tb(excinfo.value.__traceback__)))
    assert depths[1] == depths[2] == depths[3]


# ---------------------------------------------------------------------------
# Reference programs
# ---------------------------------------------------------------------------

def test_quine():
    assert run_outputs(QUINE) == QUINE


def test_sixteen_digit_product():
    (value,) = run_outputs([1102, 34915192, 34915192, 7, 4, 7, 99, 0])
    assert value == 34915192 * 34915192
    assert len(str(value)) == 16


def test_large_literal():
    assert run_outputs([104, 1125899906842624, 99]) == [1125899906842624]


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

def test_counters():
    vm = IntcodeMachine([3, 0, 4, 0, 99], [9])
    vm.run()
    s = vm.stats()
    assert s["steps"] == 3
    assert s["inputs_consumed"] == 1
    assert s["outputs_produced"] == 1
    assert "Steps: 3" in vm.stats_summary()
    vm.reset_counters()
    assert vm.stats()["steps"] == 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    print("=" * 60)
    print("Intcode Machine - Verification Suite")
    print("=" * 60)

    tests = [(name, fn) for name, fn in globals().items()
             if name.startswith("test_") and callable(fn)
             and not hasattr(fn, "pytestmark")]
    failed = 0
    for name, fn in tests:
        try:
            fn()
        except Exception as e:  # report and keep going
            print(f"  FAIL: {name}: {e!r}")
            failed += 1
        else:
            print(f"  ok:   {name}")

    print("\n" + "=" * 60)
    if failed == 0:
        print(f"ALL {len(tests)} TESTS PASSED (parametrized tests: run pytest)")
    else:
        print(f"{failed} OF {len(tests)} TESTS FAILED")
        sys.exit(1)


if __name__ == "__main__":
    main()
