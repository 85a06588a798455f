"""
Command line front-end.

Usage:
    python -m intcode run program.txt -i 1
    python -m intcode run program.txt --noun 12 --verb 2
    python -m intcode disasm program.txt
    python -m intcode debug program.txt -i 5
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .decoder import disassemble
from .errors import FatalError, InputBlocked
from .host import NOUN_ADDR, VERB_ADDR
from .loader import load_program, patch
from .machine import IntcodeMachine

EXIT_FATAL = 1
EXIT_BLOCKED = 2


def _load(path: str) -> list[int]:
    p = Path(path)
    if not p.exists():
        print(f"Error: File not found: {p}", file=sys.stderr)
        sys.exit(EXIT_FATAL)
    try:
        return load_program(p)
    except ValueError as e:
        print(f"Error: {p}: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL)


def _with_overrides(program: list[int], args) -> list[int]:
    overrides = {}
    if args.noun is not None:
        overrides[NOUN_ADDR] = args.noun
    if args.verb is not None:
        overrides[VERB_ADDR] = args.verb
    return patch(program, overrides) if overrides else program


def cmd_run(args) -> int:
    program = _with_overrides(_load(args.file), args)
    vm = IntcodeMachine(program, args.input)
    status = 0
    try:
        vm.run()
    except InputBlocked as e:
        print(f"Blocked: {e}", file=sys.stderr)
        status = EXIT_BLOCKED
    except FatalError as e:
        print(f"Error: {e}", file=sys.stderr)
        status = EXIT_FATAL

    outputs = vm.drain_outputs()
    for value in outputs:
        print(value)
    if not outputs and status == 0:
        print(vm.memory.read(0))
    if args.stats:
        print(vm.stats_summary(), file=sys.stderr)
    return status


def cmd_disasm(args) -> int:
    for addr, text in disassemble(_load(args.file)):
        print(f"{addr:6d}  {text}")
    return 0


def cmd_debug(args) -> int:
    from .debugger import IntcodeDebugger

    program = _with_overrides(_load(args.file), args)
    app = IntcodeDebugger(IntcodeMachine(program, args.input),
                          auto_run=args.run)
    app.run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Intcode machine",
        prog="python -m intcode",
    )
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_program_args(p, overrides: bool = True):
        p.add_argument("file", help="Path to a comma-separated program file")
        if overrides:
            p.add_argument("-i", "--input", type=int, action="append",
                           default=[], help="Queue an input value (repeatable)")
            p.add_argument("--noun", type=int,
                           help=f"Value to write at address {NOUN_ADDR}")
            p.add_argument("--verb", type=int,
                           help=f"Value to write at address {VERB_ADDR}")

    p_run = sub.add_parser("run", help="Run a program to completion")
    add_program_args(p_run)
    p_run.add_argument("--stats", action="store_true",
                       help="Print execution counters to stderr")
    p_run.set_defaults(func=cmd_run)

    p_dis = sub.add_parser("disasm", help="Print a disassembly listing")
    add_program_args(p_dis, overrides=False)
    p_dis.set_defaults(func=cmd_disasm)

    p_dbg = sub.add_parser("debug", help="Open the TUI debugger")
    add_program_args(p_dbg)
    p_dbg.add_argument("--run", action="store_true",
                       help="Run to completion immediately (auto-run mode)")
    p_dbg.set_defaults(func=cmd_debug)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.trace else logging.WARNING,
        format="%(levelname)5s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
