# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import sys
import types

import pytest

from fsmgen.core.events import Event
from fsmgen.core.model import FSMModel
from fsmgen.core.states import State
from fsmgen.core.transitions import Transition


def build_model(name, initial, states, events, transitions):
    """
    Build a model from plain data. Transitions are (source, target, event)
    tuples or Transition instances.
    """
    model = FSMModel(name, initial)
    for s in states:
        model.add_state(s if isinstance(s, State) else State(s))
    for e in events:
        model.add_event(e if isinstance(e, Event) else Event(e))
    for t in transitions:
        model.add_transition(t if isinstance(t, Transition) else Transition(*t))
    return model


@pytest.fixture
def model_factory():
    """Returns build_model so tests can assemble ad-hoc machines."""
    return build_model


@pytest.fixture
def order_model():
    """Order workflow without guards or actions: pending -> approved/rejected, approved -> shipped."""
    return build_model(
        "OrderStateMachine",
        "pending",
        ["pending", "approved", "rejected", "shipped"],
        ["approve", "reject", "ship"],
        [
            ("pending", "approved", "approve"),
            ("pending", "rejected", "reject"),
            ("approved", "shipped", "ship"),
        ],
    )


@pytest.fixture
def order_model_with_handlers():
    """The order workflow with entry/exit actions, a guard and transition actions."""
    return build_model(
        "OrderStateMachine",
        "pending",
        [
            State("pending", entry_action="logEntry", exit_action="logExit"),
            State("approved"),
            State("rejected"),
            State("shipped", entry_action="notifyCustomer"),
        ],
        ["approve", "reject", "ship"],
        [
            Transition("pending", "approved", "approve", guard="hasPayment", action="chargeCard"),
            Transition("pending", "rejected", "reject", action="sendRejectionEmail"),
            Transition("approved", "shipped", "ship", action="notifyShipping"),
        ],
    )


@pytest.fixture
def door_model():
    """A door whose 'open' event has two guarded transitions and an unguarded fallback."""
    return build_model(
        "door_lock",
        "closed",
        ["closed", "opened", "admin_open", "denied"],
        ["open", "close"],
        [
            Transition("closed", "admin_open", "open", guard="isAdmin"),
            Transition("closed", "denied", "open"),
            Transition("closed", "opened", "open", guard="isUser"),
            ("opened", "closed", "close"),
            ("admin_open", "closed", "close"),
            ("denied", "closed", "close"),
        ],
    )


@pytest.fixture
def load_generated():
    """
    Returns a loader that executes generated source as a real module. The
    module is registered in sys.modules for dataclass processing and removed
    after the test.
    """
    loaded = []

    def _load(source, name="machine"):
        module_name = f"_fsmgen_generated_{name}_{len(loaded)}"
        module = types.ModuleType(module_name)
        sys.modules[module_name] = module
        loaded.append(module_name)
        exec(compile(source, f"<{module_name}>", "exec"), module.__dict__)
        return module

    yield _load

    for module_name in loaded:
        sys.modules.pop(module_name, None)
