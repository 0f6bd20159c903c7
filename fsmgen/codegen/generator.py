# fsmgen/codegen/generator.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, TextIO

from fsmgen.codegen.emitter import PythonEmitter
from fsmgen.codegen.ir import (
    EnumMember,
    EventBranch,
    HandlerKind,
    HandlerSlot,
    MachineIR,
    StateBranch,
    TransitionCase,
)
from fsmgen.codegen.naming import constant_case, handler_field_name, is_usable_class_name, pascal_case
from fsmgen.core.errors import GenerationError, NilModelError
from fsmgen.interfaces.types import is_identifier

if TYPE_CHECKING:
    from fsmgen.core.model import FSMModel
    from fsmgen.core.transitions import Transition

logger = logging.getLogger(__name__)


@dataclass
class GeneratorOptions:
    """
    Settings controlling the shape of generated source.

    :param concurrency_safe: Wrap dispatch in an exclusive lock and state
        queries in a shared lock.
    :param indent: Indentation unit used by the emitter.
    :param header: Emit the "generated code" banner at the top.
    """

    concurrency_safe: bool = False
    indent: str = "    "
    header: bool = True


class CodeGenerator:
    """
    Turns a model into Python source for an exhaustive, deterministic
    dispatcher. The model must already have passed validation; generation
    does not re-validate it.
    """

    def __init__(self, options: Optional[GeneratorOptions] = None) -> None:
        self._options = options or GeneratorOptions()

    @property
    def options(self) -> GeneratorOptions:
        return self._options

    def build_ir(self, model: Optional["FSMModel"]) -> MachineIR:
        """
        Build and check the intermediate representation for model.

        :raises NilModelError: If model is None.
        :raises GenerationError: If the model violates structural invariants.
        """
        if model is None:
            raise NilModelError("model cannot be None")
        ir = _IRBuilder(model, self._options).build()
        ir.check_exhaustive()
        return ir

    def generate(self, model: Optional["FSMModel"]) -> str:
        """
        Generate source text for model.

        :param model: A validated model.
        :return: The complete generated module.
        :raises NilModelError: If model is None.
        :raises GenerationError: If the model violates structural invariants.
        """
        ir = self.build_ir(model)
        source = PythonEmitter(self._options).emit(ir)
        logger.info(
            "Generated %s: %d states, %d events, %d transitions",
            ir.class_name,
            len(model.states),
            len(model.events),
            len(model.transitions),
        )
        return source

    def generate_to(self, model: Optional["FSMModel"], stream: TextIO) -> None:
        """
        Generate source text for model and write it to stream. Nothing is
        written if generation fails.
        """
        stream.write(self.generate(model))


class _IRBuilder:
    """
    Internal helper mapping a model onto a MachineIR. Every declared name is
    converted once, and collisions between converted names are rejected.
    """

    def __init__(self, model: "FSMModel", options: GeneratorOptions) -> None:
        self._model = model
        self._options = options
        self._states: Dict[str, EnumMember] = OrderedDict()
        self._events: Dict[str, EnumMember] = OrderedDict()
        self._handlers: Dict[str, HandlerSlot] = OrderedDict()

    def build(self) -> MachineIR:
        model = self._model
        class_name = pascal_case(model.name)
        if not is_usable_class_name(class_name):
            raise GenerationError(f"Machine name {model.name!r} does not yield a usable class name.")
        if model.initial not in model.states:
            raise GenerationError(f"Initial state {model.initial!r} is not defined; validate the model first.")

        self._states = self._members("state", [(name, s.description) for name, s in model.states.items()])
        self._events = self._members("event", [(name, e.description) for name, e in model.events.items()])
        for transition in model.transitions:
            if (
                transition.source not in self._states
                or transition.target not in self._states
                or transition.event not in self._events
            ):
                raise GenerationError(f"Transition {transition} refers to an undefined state or event.")
        self._collect_handlers()

        return MachineIR(
            class_name=class_name,
            state_enum=f"{class_name}State",
            event_enum=f"{class_name}Event",
            error_base=f"{class_name}Error",
            handlers_class=f"{class_name}Handlers",
            initial=self._states[model.initial],
            states=list(self._states.values()),
            events=list(self._events.values()),
            handlers=list(self._handlers.values()),
            dispatch=[self._state_branch(name) for name in model.states],
            comment=model.description,
            concurrency_safe=self._options.concurrency_safe,
        )

    def _members(self, kind: str, declared: List[tuple]) -> Dict[str, EnumMember]:
        members: Dict[str, EnumMember] = OrderedDict()
        used: Dict[str, str] = {}
        for name, description in declared:
            identifier = constant_case(name)
            if not is_identifier(identifier):
                raise GenerationError(f"{kind.capitalize()} name {name!r} does not yield a usable identifier.")
            if identifier in used:
                raise GenerationError(
                    f"{kind.capitalize()} names {used[identifier]!r} and {name!r} both map to {identifier}."
                )
            used[identifier] = name
            members[name] = EnumMember(identifier=identifier, value=name, comment=description)
        return members

    def _collect_handlers(self) -> None:
        for state in self._model.states.values():
            for name in (state.entry_action, state.exit_action):
                if name:
                    self._register_handler(name, HandlerKind.STATE_ACTION)
        for transition in self._model.transitions:
            if transition.guard:
                self._register_handler(transition.guard, HandlerKind.GUARD)
            if transition.action:
                self._register_handler(transition.action, HandlerKind.ACTION)

    def _register_handler(self, name: str, kind: HandlerKind) -> None:
        existing = self._handlers.get(name)
        if existing is not None:
            if existing.kind is not kind:
                raise GenerationError(
                    f"Handler {name!r} is used both as {existing.kind.value} and as {kind.value}."
                )
            return
        field_name = handler_field_name(name)
        if not is_identifier(field_name):
            raise GenerationError(f"Handler name {name!r} does not yield a usable identifier.")
        for other in self._handlers.values():
            if other.field_name == field_name:
                raise GenerationError(f"Handler names {other.name!r} and {name!r} both map to {field_name}.")
        self._handlers[name] = HandlerSlot(name=name, field_name=field_name, kind=kind)

    def _handler(self, name: Optional[str]) -> Optional[HandlerSlot]:
        return self._handlers[name] if name else None

    def _state_branch(self, state_name: str) -> StateBranch:
        grouped: Dict[str, List["Transition"]] = OrderedDict()
        for transition in self._model.get_transitions_from(state_name):
            grouped.setdefault(transition.event, []).append(transition)

        branch = StateBranch(state=self._states[state_name])
        for event_name, transitions in grouped.items():
            guarded = [t for t in transitions if t.guard]
            unguarded = [t for t in transitions if not t.guard]
            if len(unguarded) > 1:
                raise GenerationError(
                    f"State {state_name!r} has {len(unguarded)} unguarded transitions on event "
                    f"{event_name!r}; validate the model first."
                )
            cases = [self._case(t) for t in guarded + unguarded]
            branch.events.append(EventBranch(event=self._events[event_name], cases=cases))
        return branch

    def _case(self, transition: "Transition") -> TransitionCase:
        source = self._model.states[transition.source]
        target = self._model.states[transition.target]
        return TransitionCase(
            target=self._states[transition.target],
            guard=self._handler(transition.guard),
            exit_action=self._handler(source.exit_action),
            action=self._handler(transition.action),
            entry_action=self._handler(target.entry_action),
            comment=transition.description,
        )
