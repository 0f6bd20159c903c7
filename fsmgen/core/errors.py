# fsmgen/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from fsmgen.interfaces.types import ValidationIssue


class FSMGenError(Exception):
    """
    Base exception class for errors raised by the state machine compiler.
    """


class ModelError(FSMGenError):
    """
    Raised when an add-operation on the model is rejected. The model is left
    exactly as it was before the call.
    """


class InvalidEntityError(ModelError):
    """
    Raised when a state, event or transition is missing or malformed.
    """


class DuplicateEntityError(ModelError):
    """
    Raised when a state or event with the same name is already registered.
    """


class DanglingReferenceError(ModelError):
    """
    Raised when a transition refers to a state or event that does not exist.
    """


class ValidationError(FSMGenError):
    """
    Raised when whole-model validation found one or more errors.
    """

    def __init__(self, message: str = "", issues: Optional[List["ValidationIssue"]] = None) -> None:
        super().__init__(message)
        self.issues: List["ValidationIssue"] = list(issues or [])


class GenerationError(FSMGenError):
    """
    Raised when source synthesis cannot proceed. Outside of a missing model
    this indicates a model that bypassed validation.
    """


class NilModelError(GenerationError):
    """
    Raised when generation is requested without a model.
    """
