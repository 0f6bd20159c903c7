# fsmgen/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from dataclasses import dataclass

from fsmgen.core.errors import InvalidEntityError
from fsmgen.interfaces.types import is_identifier


@dataclass
class Event:
    """
    Represents a signal that can trigger transitions in the machine.
    """

    name: str
    description: str = ""

    def validate(self) -> None:
        """
        Check that the event name is a usable identifier.

        :raises InvalidEntityError: If the name is empty or malformed.
        """
        if not self.name:
            raise InvalidEntityError("Event name cannot be empty.")
        if not is_identifier(self.name):
            raise InvalidEntityError(
                f"Event name {self.name!r} contains invalid characters "
                "(use only letters, digits, and underscores)."
            )
