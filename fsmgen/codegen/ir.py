# fsmgen/codegen/ir.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Intermediate representation of a generated state machine. The dispatch table
is a tree of state branches, each holding event branches, each holding the
transition cases tried in order. Anything not matched by a case is rejected,
which makes exhaustiveness a property that can be checked here rather than
against rendered text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from fsmgen.core.errors import GenerationError


class HandlerKind(Enum):
    GUARD = "guard"
    ACTION = "action"
    STATE_ACTION = "state_action"


@dataclass(frozen=True)
class EnumMember:
    identifier: str
    value: str
    comment: str = ""


@dataclass(frozen=True)
class HandlerSlot:
    """A user-supplied callable referenced by name from the definition."""

    name: str
    field_name: str
    kind: HandlerKind


@dataclass(frozen=True)
class TransitionCase:
    target: EnumMember
    guard: Optional[HandlerSlot] = None
    exit_action: Optional[HandlerSlot] = None
    action: Optional[HandlerSlot] = None
    entry_action: Optional[HandlerSlot] = None
    comment: str = ""


@dataclass
class EventBranch:
    event: EnumMember
    cases: List[TransitionCase] = field(default_factory=list)

    @property
    def guards(self) -> List[HandlerSlot]:
        """Distinct guards in the order they are tried."""
        return list(dict.fromkeys(c.guard for c in self.cases if c.guard is not None))


@dataclass
class StateBranch:
    state: EnumMember
    events: List[EventBranch] = field(default_factory=list)


@dataclass
class MachineIR:
    class_name: str
    state_enum: str
    event_enum: str
    error_base: str
    handlers_class: str
    initial: EnumMember
    states: List[EnumMember]
    events: List[EnumMember]
    handlers: List[HandlerSlot]
    dispatch: List[StateBranch]
    comment: str = ""
    concurrency_safe: bool = False

    def permitted_events(self) -> Dict[str, List[EnumMember]]:
        """Events with at least one case, keyed by state identifier."""
        return {branch.state.identifier: [e.event for e in branch.events] for branch in self.dispatch}

    def check_exhaustive(self) -> None:
        """
        Verify that every state has exactly one branch, that every event
        branch is well formed, and that an unguarded case, if any, is the
        last one tried.

        :raises GenerationError: If the dispatch table is incomplete.
        """
        declared_states = [s.identifier for s in self.states]
        branched = [b.state.identifier for b in self.dispatch]
        if sorted(declared_states) != sorted(branched):
            missing = sorted(set(declared_states) - set(branched))
            extra = sorted(set(branched) - set(declared_states))
            raise GenerationError(f"Dispatch table does not cover states exactly (missing: {missing}, extra: {extra}).")

        if self.initial.identifier not in declared_states:
            raise GenerationError(f"Initial state {self.initial.value!r} is not a declared state.")

        declared_events = {e.identifier for e in self.events}
        for branch in self.dispatch:
            seen = set()
            for event_branch in branch.events:
                ident = event_branch.event.identifier
                if ident not in declared_events:
                    raise GenerationError(f"State {branch.state.value!r} dispatches undeclared event {ident}.")
                if ident in seen:
                    raise GenerationError(f"State {branch.state.value!r} has two branches for event {ident}.")
                seen.add(ident)
                if not event_branch.cases:
                    raise GenerationError(f"Branch {branch.state.value!r}/{event_branch.event.value!r} has no cases.")
                for case in event_branch.cases[:-1]:
                    if case.guard is None:
                        raise GenerationError(
                            f"Branch {branch.state.value!r}/{event_branch.event.value!r} has an unguarded case "
                            "that is not tried last."
                        )
                if _has_unknown_target(event_branch, declared_states):
                    raise GenerationError(
                        f"Branch {branch.state.value!r}/{event_branch.event.value!r} targets an undeclared state."
                    )


def _has_unknown_target(branch: EventBranch, declared_states: List[str]) -> bool:
    return any(case.target.identifier not in declared_states for case in branch.cases)
