# fsmgen/codegen/emitter.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, List, Optional

from fsmgen.codegen.ir import EventBranch, HandlerKind, HandlerSlot, MachineIR, StateBranch, TransitionCase

if TYPE_CHECKING:
    from fsmgen.codegen.generator import GeneratorOptions


def _comment(text: str) -> str:
    return " ".join(text.split())


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class _SourceWriter:
    """
    Internal line buffer with an indentation level.
    """

    def __init__(self, indent: str) -> None:
        self._unit = indent
        self._level = 0
        self._lines: List[str] = []

    def line(self, text: str = "") -> None:
        self._lines.append(self._unit * self._level + text if text else "")

    def lines(self, *texts: str) -> None:
        for text in texts:
            self.line(text)

    def comment(self, text: str) -> None:
        if text:
            self.line(f"# {_comment(text)}")

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        self.line(header)
        self._level += 1
        try:
            yield
        finally:
            self._level -= 1

    def render(self) -> str:
        return "\n".join(self._lines).rstrip("\n") + "\n"


class PythonEmitter:
    """
    Renders a MachineIR as a self-contained Python module. Rendering is a pure
    function of the IR and the options: equal inputs give identical text.
    """

    def __init__(self, options: "GeneratorOptions") -> None:
        self._options = options

    def emit(self, ir: MachineIR) -> str:
        w = _SourceWriter(self._options.indent)
        self._emit_header(w, ir)
        self._emit_imports(w, ir)
        self._emit_enum(w, ir.state_enum, f"States of {ir.class_name}.", ir.states)
        self._emit_enum(w, ir.event_enum, f"Events accepted by {ir.class_name}.", ir.events)
        self._emit_errors(w, ir)
        self._emit_handlers(w, ir)
        self._emit_permitted(w, ir)
        if ir.concurrency_safe:
            self._emit_lock(w)
        self._emit_machine(w, ir)
        return w.render()

    def _emit_header(self, w: _SourceWriter, ir: MachineIR) -> None:
        if self._options.header:
            w.line("# Code generated by fsmgen. DO NOT EDIT.")
            w.line(f"# Machine: {ir.class_name} (initial state: {ir.initial.value})")
            w.comment(ir.comment)
            w.line()

    def _emit_imports(self, w: _SourceWriter, ir: MachineIR) -> None:
        w.line("from __future__ import annotations")
        w.line()
        if ir.concurrency_safe:
            w.line("import threading")
            w.line("from contextlib import contextmanager")
        w.lines(
            "from dataclasses import dataclass",
            "from enum import Enum",
            "from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Union",
            "",
            "",
        )

    def _emit_enum(self, w: _SourceWriter, name: str, doc: str, members) -> None:
        with w.block(f"class {name}(Enum):"):
            w.line(f'"""{doc}"""')
            w.line()
            for member in members:
                w.comment(member.comment)
                w.line(f"{member.identifier} = {_quote(member.value)}")
            w.line()
            with w.block("def __str__(self) -> str:"):
                w.line("return self.value")
        w.lines("", "")

    def _emit_errors(self, w: _SourceWriter, ir: MachineIR) -> None:
        with w.block(f"class {ir.error_base}(Exception):"):
            w.line(f'"""Base class for errors raised by {ir.class_name}."""')
        w.lines("", "")

        with w.block(f"class InvalidTransition({ir.error_base}):"):
            w.line('"""The current state has no transition for the event."""')
            w.line()
            with w.block("def __init__(self, state: Any, event: Any) -> None:"):
                w.lines(
                    'super().__init__(f"no transition from state {state} on event {event}")',
                    "self.state = state",
                    "self.event = event",
                )
        w.lines("", "")

        with w.block(f"class GuardRejected({ir.error_base}):"):
            w.line('"""Every guard for the event returned False. The state is unchanged."""')
            w.line()
            with w.block("def __init__(self, state: Any, event: Any, guards: Tuple[str, ...]) -> None:"):
                w.lines(
                    "super().__init__(f\"guard {', '.join(guards)} rejected event {event} in state {state}\")",
                    "self.state = state",
                    "self.event = event",
                    "self.guards = guards",
                )
        w.lines("", "")

        with w.block(f"class ActionFailed({ir.error_base}):"):
            w.line('"""')
            w.line("A guard or action raised. The original exception is the __cause__.")
            w.line("state_committed is True if the machine had already moved to target.")
            w.line('"""')
            w.line()
            with w.block(
                "def __init__(self, handler: str, source: Any, target: Any, event: Any, state_committed: bool) -> None:"
            ):
                w.lines(
                    'super().__init__(f"{handler} failed during {source} --{event}--> {target}")',
                    "self.handler = handler",
                    "self.source = source",
                    "self.target = target",
                    "self.event = event",
                    "self.state_committed = state_committed",
                )
        w.lines("", "")

    def _signature(self, ir: MachineIR, slot: HandlerSlot) -> str:
        if slot.kind is HandlerKind.GUARD:
            return "Callable[[Any], bool]"
        if slot.kind is HandlerKind.ACTION:
            return f"Callable[[{ir.state_enum}, {ir.state_enum}, Any], None]"
        return "Callable[[Any], None]"

    def _emit_handlers(self, w: _SourceWriter, ir: MachineIR) -> None:
        w.line("@dataclass")
        with w.block(f"class {ir.handlers_class}:"):
            w.line(f'"""Guards and actions called by {ir.class_name}."""')
            if ir.handlers:
                w.line()
            for slot in ir.handlers:
                w.line(f"{slot.field_name}: {self._signature(ir, slot)}")
        w.lines("", "")

    def _emit_permitted(self, w: _SourceWriter, ir: MachineIR) -> None:
        permitted = ir.permitted_events()
        with w.block(f"_PERMITTED_EVENTS: Dict[{ir.state_enum}, FrozenSet[{ir.event_enum}]] = {{"):
            for state in ir.states:
                events = ", ".join(f"{ir.event_enum}.{e.identifier}" for e in permitted[state.identifier])
                value = f"frozenset({{{events}}})" if events else "frozenset()"
                w.line(f"{ir.state_enum}.{state.identifier}: {value},")
        w.lines("}", "", "")

    def _emit_lock(self, w: _SourceWriter) -> None:
        with w.block("class _ReadWriteLock:"):
            w.line('"""Any number of readers, or a single writer."""')
            w.line()
            with w.block("def __init__(self) -> None:"):
                w.lines(
                    "self._cond = threading.Condition(threading.Lock())",
                    "self._readers = 0",
                    "self._writer = False",
                )
            w.line()
            w.line("@contextmanager")
            with w.block("def read(self):"):
                with w.block("with self._cond:"):
                    with w.block("while self._writer:"):
                        w.line("self._cond.wait()")
                    w.line("self._readers += 1")
                with w.block("try:"):
                    w.line("yield")
                with w.block("finally:"):
                    with w.block("with self._cond:"):
                        w.line("self._readers -= 1")
                        with w.block("if not self._readers:"):
                            w.line("self._cond.notify_all()")
            w.line()
            w.line("@contextmanager")
            with w.block("def write(self):"):
                with w.block("with self._cond:"):
                    with w.block("while self._writer or self._readers:"):
                        w.line("self._cond.wait()")
                    w.line("self._writer = True")
                with w.block("try:"):
                    w.line("yield")
                with w.block("finally:"):
                    with w.block("with self._cond:"):
                        w.line("self._writer = False")
                        w.line("self._cond.notify_all()")
        w.lines("", "")

    def _emit_machine(self, w: _SourceWriter, ir: MachineIR) -> None:
        state_t, event_t = ir.state_enum, ir.event_enum
        with w.block(f"class {ir.class_name}:"):
            w.line('"""')
            w.line(f"Generated state machine starting in state {ir.initial.value}.")
            w.line()
            w.line("transition() rejects every (state, event) pair without a declared")
            w.line("transition by raising InvalidTransition.")
            w.line('"""')
            w.line()
            if ir.handlers:
                init = f"def __init__(self, handlers: {ir.handlers_class}, context: Any = None) -> None:"
            else:
                init = f"def __init__(self, handlers: Optional[{ir.handlers_class}] = None, context: Any = None) -> None:"
            with w.block(init):
                if ir.handlers:
                    w.line("self._handlers = handlers")
                else:
                    w.line(f"self._handlers = handlers if handlers is not None else {ir.handlers_class}()")
                w.line("self._context = context")
                w.line(f"self._state = {state_t}.{ir.initial.identifier}")
                if ir.concurrency_safe:
                    w.line("self._lock = _ReadWriteLock()")
            w.line()

            with w.block(f"def current_state(self) -> {state_t}:"):
                self._guarded_read(w, ir, "return self._state")
            w.line()

            with w.block(f"def permitted_events(self) -> FrozenSet[{event_t}]:"):
                self._guarded_read(w, ir, "return _PERMITTED_EVENTS[self._state]")
            w.line()

            with w.block(f"def can_transition(self, event: Union[{event_t}, str]) -> bool:"):
                with w.block("try:"):
                    w.line(f"event = {event_t}(event)")
                with w.block("except ValueError:"):
                    w.line("return False")
                self._guarded_read(w, ir, "return event in _PERMITTED_EVENTS[self._state]")
            w.line()

            with w.block(f"def transition(self, event: Union[{event_t}, str]) -> None:"):
                w.lines(
                    '"""',
                    "Fire event from the current state.",
                    "",
                    "Order: guard, exit action of the current state, transition action,",
                    "state change, entry action of the new state. A failure before the",
                    "state change leaves the state untouched.",
                    "",
                    ":raises InvalidTransition: No transition is declared for the event.",
                    ":raises GuardRejected: Every guard for the event returned False.",
                    ":raises ActionFailed: A guard or action raised.",
                    '"""',
                )
                if ir.concurrency_safe:
                    with w.block("with self._lock.write():"):
                        w.line("self._dispatch(event)")
                else:
                    w.line("self._dispatch(event)")
            w.line()

            with w.block(f"def _dispatch(self, event: Union[{event_t}, str]) -> None:"):
                w.line("state = self._state")
                with w.block("try:"):
                    w.line(f"event = {event_t}(event)")
                with w.block("except ValueError:"):
                    w.line("raise InvalidTransition(state, event) from None")
                for branch in ir.dispatch:
                    self._emit_state_branch(w, ir, branch)
                w.line("raise InvalidTransition(state, event)")
            w.line()

            with w.block(
                "def _call(self, handler: str, func: Callable[..., Any], args: Tuple[Any, ...], "
                "source: Any, target: Any, event: Any, committed: bool) -> Any:"
            ):
                with w.block("try:"):
                    w.line("return func(*args)")
                with w.block("except Exception as exc:"):
                    w.line("raise ActionFailed(handler, source, target, event, committed) from exc")

    def _guarded_read(self, w: _SourceWriter, ir: MachineIR, statement: str) -> None:
        if ir.concurrency_safe:
            with w.block("with self._lock.read():"):
                w.line(statement)
        else:
            w.line(statement)

    def _emit_state_branch(self, w: _SourceWriter, ir: MachineIR, branch: StateBranch) -> None:
        with w.block(f"if state is {ir.state_enum}.{branch.state.identifier}:"):
            for event_branch in branch.events:
                self._emit_event_branch(w, ir, event_branch)
            w.line("raise InvalidTransition(state, event)")

    def _emit_event_branch(self, w: _SourceWriter, ir: MachineIR, branch: EventBranch) -> None:
        with w.block(f"if event is {ir.event_enum}.{branch.event.identifier}:"):
            for case in branch.cases:
                w.comment(case.comment)
                w.line(f"target = {ir.state_enum}.{case.target.identifier}")
                if case.guard is None:
                    self._emit_case_body(w, ir, case)
                    return
                with w.block(f"if {self._invoke(case.guard, '(self._context,)', False)}:"):
                    self._emit_case_body(w, ir, case)
            guards = ", ".join(_quote(g.name) for g in branch.guards)
            w.line(f"raise GuardRejected(state, event, ({guards},))")

    def _emit_case_body(self, w: _SourceWriter, ir: MachineIR, case: TransitionCase) -> None:
        self._maybe_invoke(w, case.exit_action, "(self._context,)", False)
        self._maybe_invoke(w, case.action, "(state, target, self._context)", False)
        w.line("self._state = target")
        self._maybe_invoke(w, case.entry_action, "(self._context,)", True)
        w.line("return")

    def _maybe_invoke(self, w: _SourceWriter, slot: Optional[HandlerSlot], args: str, committed: bool) -> None:
        if slot is not None:
            w.line(self._invoke(slot, args, committed))

    @staticmethod
    def _invoke(slot: HandlerSlot, args: str, committed: bool) -> str:
        return f"self._call({_quote(slot.name)}, self._handlers.{slot.field_name}, {args}, state, target, event, {committed})"
