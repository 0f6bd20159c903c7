"""fsmgen: finite state machine compiler

Turns a declarative machine definition (states, events, guarded and
actioned transitions) into a validated model and into Python source for an
exhaustive, deterministic event dispatcher.

Responsibilities:
    - Entity registry with add-time referential integrity
    - Graph analysis (reachability, cycles)
    - Whole-model validation with aggregated, structured issues
    - Source synthesis through an intermediate representation

Interactions:
    - A front-end (parser) builds the model through its add-operations
    - Drivers validate, then generate, then write the text wherever they like

Cross-cutting Concerns:
    Error Handling:
        - Structured error hierarchy rooted at FSMGenError
        - Add-operations fail fast and never partially mutate the model
        - Validation never stops early

    Logging:
        - Standard library logging under the "fsmgen" logger namespace
        - No handlers installed by the library
"""

# Import order matters to avoid circular dependencies
from .core.errors import (
    DanglingReferenceError,
    DuplicateEntityError,
    FSMGenError,
    GenerationError,
    InvalidEntityError,
    ModelError,
    NilModelError,
    ValidationError,
)
from .core.states import State
from .core.events import Event
from .core.transitions import Transition
from .core.model import FSMModel
from .runtime.graph import StateGraph
from .core.validations import ValidationReport, Validator, validate
from .interfaces.types import IssueKind, Severity, ValidationIssue
from .codegen.generator import CodeGenerator, GeneratorOptions

__version__ = "0.1.0"

__all__ = [
    # Model
    "State",
    "Event",
    "Transition",
    "FSMModel",
    # Analysis and validation
    "StateGraph",
    "Validator",
    "ValidationReport",
    "ValidationIssue",
    "IssueKind",
    "Severity",
    "validate",
    # Generation
    "CodeGenerator",
    "GeneratorOptions",
    # Errors
    "FSMGenError",
    "ModelError",
    "InvalidEntityError",
    "DuplicateEntityError",
    "DanglingReferenceError",
    "ValidationError",
    "GenerationError",
    "NilModelError",
]
