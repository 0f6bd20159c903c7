# fsmgen/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
import re
from enum import Enum
from typing import Any, Dict, NamedTuple, Tuple

StateID = str
EventID = str
TransitionKey = Tuple[StateID, EventID]

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueKind(str, Enum):
    MISSING_INITIAL_STATE = "MissingInitialState"
    EMPTY_STATE_SET = "EmptyStateSet"
    EMPTY_EVENT_SET = "EmptyEventSet"
    INVALID_ENTITY = "InvalidEntity"
    DANGLING_REFERENCE = "DanglingReference"
    UNREACHABLE_STATE = "UnreachableState"
    NON_DETERMINISTIC_TRANSITION = "NonDeterministicTransition"
    UNUSABLE_NAME = "UnusableName"
    IDENTIFIER_COLLISION = "IdentifierCollision"
    HANDLER_CONFLICT = "HandlerConflict"
    POSSIBLE_GUARD_CONFLICT = "PossibleGuardConflict"


class ValidationIssue(NamedTuple):
    kind: IssueKind
    severity: Severity
    message: str
    context: Dict[str, Any]

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.kind.value}: {self.message}"


def is_identifier(name: Any) -> bool:
    """Return True if name is a non-empty string matching the identifier grammar."""
    return isinstance(name, str) and IDENTIFIER_PATTERN.fullmatch(name) is not None
