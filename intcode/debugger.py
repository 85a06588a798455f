"""
Textual TUI debugger for the intcode machine.

Instruction-stepping debugger that loads a program, runs it on an
IntcodeMachine, and shows registers, disassembly, memory and I/O queues at
every step. When the program blocks on input, type a value (or several,
comma separated) into the input box and press enter.

Usage:
    python -m intcode debug program.txt
    python -m intcode debug program.txt -i 1 -i 5
    python -m intcode debug --run program.txt
"""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Footer, Input, RichLog, Static
from textual import work

from .decoder import disassemble
from .errors import FatalError
from .loader import parse_program
from .machine import IntcodeMachine, State

STATE_NAMES = {
    State.RUNNING: "RUNNING",
    State.WAITING_FOR_INPUT: "WAITING",
    State.STOPPED: "STOPPED",
}

LISTING_LINES = 24
MEMORY_ROWS = 24
MEMORY_COLS = 8


def _esc(text: str) -> str:
    """Escape Rich markup characters in text."""
    return text.replace("[", "\\[")


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

DEBUGGER_CSS = """
Screen {
    layout: grid;
    grid-size: 2 4;
    grid-columns: 1fr 1fr;
    grid-rows: 2fr 2fr 1fr auto;
}

#io-panel {
    column-span: 2;
}

.panel {
    border: solid $accent;
    border-title-align: left;
    overflow-y: auto;
    height: 100%;
}

#input-box {
    column-span: 2;
}
"""


# ---------------------------------------------------------------------------
# Panel widgets
# ---------------------------------------------------------------------------

class ListingPanel(ScrollableContainer):
    """Disassembly around the program counter."""
    BORDER_TITLE = "Program"

    def compose(self) -> ComposeResult:
        yield Static("", id="listing-content")


class StatePanel(ScrollableContainer):
    """Registers and counters."""
    BORDER_TITLE = "Machine State"

    def compose(self) -> ComposeResult:
        yield Static("", id="state-content")


class MemoryPanel(ScrollableContainer):
    """Raw memory around the program counter."""
    BORDER_TITLE = "Memory"

    def compose(self) -> ComposeResult:
        yield Static("", id="memory-content")


class IOPanel(ScrollableContainer):
    """Pending input queue."""
    BORDER_TITLE = "IO"

    def compose(self) -> ComposeResult:
        yield Static("", id="io-content")


class OutputPanel(ScrollableContainer):
    """Every value the program has output, plus errors."""
    BORDER_TITLE = "Output"

    def compose(self) -> ComposeResult:
        yield RichLog(id="output-log", markup=True, wrap=True)


# ---------------------------------------------------------------------------
# Main debugger app
# ---------------------------------------------------------------------------

class IntcodeDebugger(App):
    """Textual TUI debugger for the intcode machine."""

    CSS = DEBUGGER_CSS
    TITLE = "Intcode Debugger"

    BINDINGS = [
        Binding("s", "step_1", "Step"),
        Binding("n", "step_10", "x10"),
        Binding("f", "step_100", "x100"),
        Binding("r", "run_to_end", "Run"),
        Binding("o", "run_to_output", "→Output"),
        Binding("b", "toggle_breakpoint", "Break"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, machine: IntcodeMachine, auto_run: bool = False):
        super().__init__()
        self.machine = machine
        self.auto_run = auto_run
        self.breakpoints: set[int] = set()
        self.output_lines: list[str] = []
        self._output_line_count = 0

    def compose(self) -> ComposeResult:
        yield ListingPanel(id="listing-panel", classes="panel")
        yield StatePanel(id="state-panel", classes="panel")
        yield MemoryPanel(id="memory-panel", classes="panel")
        yield OutputPanel(id="output-panel", classes="panel")
        yield IOPanel(id="io-panel", classes="panel")
        yield Input(placeholder="input values, e.g. 1,2,3", id="input-box")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_panels()
        if self.auto_run:
            self.action_run_to_end()

    # -------------------------------------------------------------------
    # Panel refresh
    # -------------------------------------------------------------------

    def refresh_panels(self) -> None:
        self._collect_outputs()
        self._refresh_listing()
        self._refresh_state()
        self._refresh_memory()
        self._refresh_io()
        self._refresh_output()

    def _collect_outputs(self) -> None:
        for value in self.machine.drain_outputs():
            self.output_lines.append(str(value))

    def _refresh_listing(self) -> None:
        m = self.machine
        # Start a few instructions back so the PC has context above it.
        start = max(0, m.pc - 8)
        listing = disassemble(m.memory.cells, start, LISTING_LINES)
        if listing and all(addr != m.pc for addr, _ in listing):
            listing = disassemble(m.memory.cells, m.pc, LISTING_LINES)
        lines = []
        for addr, text in listing:
            prefix = "●" if addr in self.breakpoints else " "
            marker = "▸" if addr == m.pc else " "
            line = f"{prefix}{marker} {addr:6d}│ {_esc(text)}"
            if addr == m.pc:
                line = f"[bold reverse]{line}[/bold reverse]"
            lines.append(line)
        content = self.query_one("#listing-content", Static)
        content.update("\n".join(lines) if lines else "(no program loaded)")

    def _refresh_state(self) -> None:
        m = self.machine
        text = (
            f"[bold]State:[/bold] {STATE_NAMES[m.state]}    "
            f"[bold]Steps:[/bold] {m.steps}\n"
            f"[bold]PC:[/bold] {m.pc}  [bold]RB:[/bold] {m.relative_base}\n"
            f"[bold]Memory:[/bold] {len(m.memory)} cells  "
            f"{m.mem_reads}R/{m.mem_writes}W\n"
            f"[bold]IO:[/bold] {m.inputs_consumed} in / {m.outputs_produced} out"
        )
        if m.fault is not None:
            text += f"\n[bold red]Fault:[/bold red] {_esc(str(m.fault))}"
        content = self.query_one("#state-content", Static)
        content.update(text)

    def _refresh_memory(self) -> None:
        m = self.machine
        row_start = max(0, m.pc // MEMORY_COLS - MEMORY_ROWS // 2)
        lines = []
        for row in range(row_start, row_start + MEMORY_ROWS):
            base = row * MEMORY_COLS
            if base >= len(m.memory):
                break
            cells = []
            for addr in range(base, base + MEMORY_COLS):
                cell = f"{m.memory.peek(addr):>8d}"
                if addr == m.pc:
                    cell = f"[green]{cell}[/green]"
                cells.append(cell)
            lines.append(f"{base:6d}: " + " ".join(cells))
        content = self.query_one("#memory-content", Static)
        content.update("\n".join(lines) if lines else "(empty)")

    def _refresh_io(self) -> None:
        pending = list(self.machine.inputs.buffer)
        text = "[bold]IN:[/bold] " + (
            " ".join(str(v) for v in pending) if pending else "(empty)")
        if self.machine.state is State.WAITING_FOR_INPUT:
            text += "\n[yellow]Waiting for input[/yellow]"
        content = self.query_one("#io-content", Static)
        content.update(text)

    def _refresh_output(self) -> None:
        log = self.query_one("#output-log", RichLog)
        while self._output_line_count < len(self.output_lines):
            log.write(self.output_lines[self._output_line_count])
            self._output_line_count += 1

    # -------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------

    def _report_error(self, err: Exception) -> None:
        """Show an error in the output panel."""
        self.output_lines.append(f"[bold red]Error:[/bold red] {_esc(str(err))}")
        self.refresh_panels()

    def _tick(self) -> bool:
        """One step. Returns False when the machine cannot advance."""
        m = self.machine
        if not m.is_running():
            return False
        return m.step() is State.RUNNING

    def _busy(self) -> bool:
        """True while a run worker may still be stepping the machine."""
        return any(not w.is_finished for w in self.workers)

    def _do_steps(self, count: int) -> None:
        if self._busy():
            return
        try:
            for _ in range(count):
                if not self._tick():
                    break
        except FatalError as e:
            self._report_error(e)
            return
        self.refresh_panels()

    def action_step_1(self) -> None:
        self._do_steps(1)

    def action_step_10(self) -> None:
        self._do_steps(10)

    def action_step_100(self) -> None:
        self._do_steps(100)

    def action_toggle_breakpoint(self) -> None:
        pc = self.machine.pc
        if pc in self.breakpoints:
            self.breakpoints.discard(pc)
        else:
            self.breakpoints.add(pc)
        self._refresh_listing()

    @work(thread=True, exclusive=True)
    def action_run_to_end(self) -> None:
        """Run until halt, block or breakpoint in a background thread."""
        try:
            cycle = 0
            while self._tick():
                cycle += 1
                if self.machine.pc in self.breakpoints:
                    break
                if cycle % 500 == 0:
                    self.call_from_thread(self.refresh_panels)
        except FatalError as e:
            self.call_from_thread(self._report_error, e)
            return
        self.call_from_thread(self.refresh_panels)

    @work(thread=True, exclusive=True)
    def action_run_to_output(self) -> None:
        """Run until the next output value appears."""
        try:
            seen = len(self.machine.outputs)
            while self._tick():
                if len(self.machine.outputs) > seen:
                    break
                if self.machine.pc in self.breakpoints:
                    break
        except FatalError as e:
            self.call_from_thread(self._report_error, e)
            return
        self.call_from_thread(self.refresh_panels)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        event.input.value = ""
        if not text:
            return
        try:
            values = parse_program(text)
        except ValueError as e:
            self._report_error(e)
            return
        self.machine.add_inputs(values)
        self.refresh_panels()
