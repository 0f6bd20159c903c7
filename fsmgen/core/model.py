# fsmgen/core/model.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from fsmgen.core.errors import DanglingReferenceError, DuplicateEntityError, InvalidEntityError
from fsmgen.core.events import Event
from fsmgen.core.states import State
from fsmgen.core.transitions import Transition

if TYPE_CHECKING:
    from fsmgen.core.validations import ValidationReport

logger = logging.getLogger(__name__)


class FSMModel:
    """
    Registry of the states, events and transitions making up one machine
    definition. Built incrementally by a front-end through the add-operations,
    then handed read-only to the graph analyzer, validator and generator.

    Add-operations are fail-fast: a rejected call raises a ModelError and
    leaves every collection untouched, so a front-end can keep going and
    report further problems.
    """

    def __init__(self, name: str, initial: str, description: str = "") -> None:
        """
        :param name: Identifier of the machine, used to name generated code.
        :param initial: Name of the initial state. It does not have to exist
            yet; its existence is checked by validate().
        :param description: Optional free text.
        :raises InvalidEntityError: If name or initial is empty.
        """
        if not name:
            raise InvalidEntityError("Machine name cannot be empty.")
        if not initial:
            raise InvalidEntityError("Initial state name cannot be empty.")
        self.name = name
        self.initial = initial
        self.description = description
        self._states: Dict[str, State] = {}
        self._events: Dict[str, Event] = {}
        self._transitions: List[Transition] = []

    @property
    def states(self) -> Dict[str, State]:
        """Registered states keyed by name, in declaration order."""
        return self._states

    @property
    def events(self) -> Dict[str, Event]:
        """Registered events keyed by name, in declaration order."""
        return self._events

    @property
    def transitions(self) -> List[Transition]:
        """Registered transitions in insertion order."""
        return self._transitions

    def add_state(self, state: Optional[State]) -> None:
        """
        Register a state.

        :param state: The state to add.
        :raises InvalidEntityError: If state is None, not a State, or its name is malformed.
        :raises DuplicateEntityError: If a state with that name already exists.
        """
        if state is None:
            raise InvalidEntityError("State cannot be None.")
        if not isinstance(state, State):
            raise InvalidEntityError(f"Expected a State, got {type(state).__name__}.")
        state.validate()
        if state.name in self._states:
            raise DuplicateEntityError(f"State {state.name!r} already exists.")
        self._states[state.name] = state
        logger.debug("Added state %s to %s", state.name, self.name)

    def add_event(self, event: Optional[Event]) -> None:
        """
        Register an event.

        :param event: The event to add.
        :raises InvalidEntityError: If event is None, not an Event, or its name is malformed.
        :raises DuplicateEntityError: If an event with that name already exists.
        """
        if event is None:
            raise InvalidEntityError("Event cannot be None.")
        if not isinstance(event, Event):
            raise InvalidEntityError(f"Expected an Event, got {type(event).__name__}.")
        event.validate()
        if event.name in self._events:
            raise DuplicateEntityError(f"Event {event.name!r} already exists.")
        self._events[event.name] = event
        logger.debug("Added event %s to %s", event.name, self.name)

    def add_transition(self, transition: Optional[Transition]) -> None:
        """
        Append a transition. Its source, target and event must already be
        registered.

        :param transition: The transition to add.
        :raises InvalidEntityError: If transition is None, not a Transition, or incomplete.
        :raises DanglingReferenceError: If a referenced state or event is unknown.
        """
        if transition is None:
            raise InvalidEntityError("Transition cannot be None.")
        if not isinstance(transition, Transition):
            raise InvalidEntityError(f"Expected a Transition, got {type(transition).__name__}.")
        transition.validate()
        if transition.source not in self._states:
            raise DanglingReferenceError(f"Transition source state {transition.source!r} does not exist.")
        if transition.target not in self._states:
            raise DanglingReferenceError(f"Transition target state {transition.target!r} does not exist.")
        if transition.event not in self._events:
            raise DanglingReferenceError(f"Transition event {transition.event!r} does not exist.")
        self._transitions.append(transition)
        logger.debug("Added transition %s to %s", transition, self.name)

    def get_state(self, name: str) -> Optional[State]:
        return self._states.get(name)

    def get_event(self, name: str) -> Optional[Event]:
        return self._events.get(name)

    def get_state_names(self) -> List[str]:
        return list(self._states)

    def get_event_names(self) -> List[str]:
        return list(self._events)

    def get_transitions_from(self, state: str) -> List[Transition]:
        """Return every transition leaving state, in insertion order."""
        return [t for t in self._transitions if t.source == state]

    def get_transitions_to(self, state: str) -> List[Transition]:
        """Return every transition entering state, in insertion order."""
        return [t for t in self._transitions if t.target == state]

    def validate(self) -> "ValidationReport":
        """
        Run every whole-model check and collect all problems found.

        :return: A report whose ``ok`` flag is False if any error was found.
        """
        from fsmgen.core.validations import Validator

        return Validator().validate(self)

    def __repr__(self) -> str:
        return (
            f"FSMModel(name={self.name!r}, initial={self.initial!r}, "
            f"states={len(self._states)}, events={len(self._events)}, "
            f"transitions={len(self._transitions)})"
        )
