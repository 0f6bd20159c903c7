# fsmgen/core/states.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fsmgen.core.errors import InvalidEntityError
from fsmgen.interfaces.types import is_identifier


@dataclass
class State:
    """
    A named state of the machine. Entry and exit actions are referenced by
    name only; the generated code calls them through its handler table.
    """

    name: str
    entry_action: Optional[str] = None
    exit_action: Optional[str] = None
    description: str = ""

    def with_entry_action(self, action_name: str) -> "State":
        """
        Set the action executed when the machine enters this state.

        :param action_name: Name of the entry action.
        :raises InvalidEntityError: If the action name is empty.
        """
        if not action_name:
            raise InvalidEntityError("Entry action name cannot be empty.")
        self.entry_action = action_name
        return self

    def with_exit_action(self, action_name: str) -> "State":
        """
        Set the action executed when the machine leaves this state.

        :param action_name: Name of the exit action.
        :raises InvalidEntityError: If the action name is empty.
        """
        if not action_name:
            raise InvalidEntityError("Exit action name cannot be empty.")
        self.exit_action = action_name
        return self

    def validate(self) -> None:
        """
        Check that the state name is a usable identifier.

        :raises InvalidEntityError: If the name is empty or malformed.
        """
        if not self.name:
            raise InvalidEntityError("State name cannot be empty.")
        if not is_identifier(self.name):
            raise InvalidEntityError(
                f"State name {self.name!r} contains invalid characters "
                "(use only letters, digits, and underscores)."
            )
