# fsmgen/core/transitions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fsmgen.core.errors import InvalidEntityError
from fsmgen.interfaces.types import TransitionKey


@dataclass
class Transition:
    """
    Defines a possible path from one state to another when an event arrives,
    optionally guarded by a named predicate and running a named action.
    """

    source: str
    target: str
    event: str
    guard: Optional[str] = None
    action: Optional[str] = None
    description: str = ""

    def with_guard(self, guard_name: str) -> "Transition":
        """
        Attach a guard that must return True for the transition to fire.

        :param guard_name: Name of the guard predicate.
        :raises InvalidEntityError: If the guard name is empty.
        """
        if not guard_name:
            raise InvalidEntityError("Guard name cannot be empty.")
        self.guard = guard_name
        return self

    def with_action(self, action_name: str) -> "Transition":
        """
        Attach an action executed while the transition fires.

        :param action_name: Name of the action.
        :raises InvalidEntityError: If the action name is empty.
        """
        if not action_name:
            raise InvalidEntityError("Action name cannot be empty.")
        self.action = action_name
        return self

    @property
    def key(self) -> TransitionKey:
        """The (source, event) pair the dispatcher selects this transition by."""
        return (self.source, self.event)

    def is_self_transition(self) -> bool:
        return self.source == self.target

    def validate(self) -> None:
        """
        Check that source, target and event are all named.

        :raises InvalidEntityError: If any of them is empty.
        """
        if not self.source:
            raise InvalidEntityError("Transition source state cannot be empty.")
        if not self.target:
            raise InvalidEntityError("Transition target state cannot be empty.")
        if not self.event:
            raise InvalidEntityError("Transition event cannot be empty.")

    def __str__(self) -> str:
        text = f"{self.source} --{self.event}--> {self.target}"
        if self.guard:
            text += f" [{self.guard}]"
        return text
