# tests/integration/test_scenarios.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""End-to-end runs of the compiler pipeline: model, graph, validation, generation."""

import io

import pytest

from fsmgen import CodeGenerator, FSMModel, IssueKind, StateGraph, Validator, validate
from fsmgen.core.errors import DanglingReferenceError, DuplicateEntityError, GenerationError, NilModelError
from fsmgen.core.events import Event
from fsmgen.core.states import State
from fsmgen.core.transitions import Transition


def test_scenario_a_order_workflow(order_model):
    report = Validator().validate(order_model)
    graph = StateGraph.from_model(order_model)

    assert report.ok
    assert graph.get_unreachable_states() == set()
    assert graph.has_cycles() is False


def test_scenario_b_unconnected_state(order_model):
    order_model.add_state(State("archived"))

    graph = StateGraph.from_model(order_model)
    assert graph.get_unreachable_states() == {"archived"}

    ok, issues = validate(order_model)
    assert ok is False
    assert [(i.kind, i.context["state"]) for i in issues] == [(IssueKind.UNREACHABLE_STATE, "archived")]


def test_scenario_c_back_edge_forms_cycle(order_model):
    order_model.add_transition(Transition("shipped", "pending", "ship"))
    graph = StateGraph.from_model(order_model)
    assert graph.has_cycles() is True
    assert graph.find_cycle() == ["pending", "approved", "shipped", "pending"]


def test_scenario_d_nil_model_produces_nothing():
    out = io.StringIO()
    with pytest.raises(NilModelError):
        CodeGenerator().generate_to(None, out)
    assert out.getvalue() == ""


def test_scenario_e_generated_machine_rejects_undeclared_pair(order_model, load_generated):
    module = load_generated(CodeGenerator().generate(order_model), "scenario_e")
    machine = module.OrderStateMachine()

    with pytest.raises(module.InvalidTransition):
        machine.transition(module.OrderStateMachineEvent.SHIP)

    assert machine.current_state() is module.OrderStateMachineState.PENDING


def test_scenario_f_single_non_deterministic_group(order_model):
    order_model.add_transition(Transition("pending", "rejected", "approve"))

    report = Validator().validate(order_model)

    conflicts = report.by_kind(IssueKind.NON_DETERMINISTIC_TRANSITION)
    assert len(conflicts) == 1
    assert (conflicts[0].context["state"], conflicts[0].context["event"]) == ("pending", "approve")


def test_rejected_transition_leaves_list_unchanged(order_model):
    before = len(order_model.transitions)
    for bad in (Transition("pending", "nowhere", "ship"), Transition("pending", "approved", "teleport")):
        with pytest.raises(DanglingReferenceError):
            order_model.add_transition(bad)
    assert len(order_model.transitions) == before


def test_duplicate_state_keeps_first(order_model):
    original = order_model.get_state("pending")
    with pytest.raises(DuplicateEntityError):
        order_model.add_state(State("pending", entry_action="other"))
    assert order_model.get_state("pending") is original
    assert len(order_model.states) == 4


def test_self_transition_is_always_a_cycle(order_model):
    order_model.add_transition(Transition("rejected", "rejected", "reject"))
    assert StateGraph.from_model(order_model).has_cycles()


def test_parser_style_pipeline(load_generated):
    """Drive the full pipeline the way a front-end would after parsing a document."""
    document = {
        "name": "traffic-light",
        "initial": "red",
        "states": [
            {"name": "red", "entry": "stopTraffic"},
            {"name": "green", "exit": "warn"},
            {"name": "yellow"},
        ],
        "events": ["timer", "emergency"],
        "transitions": [
            {"from": "red", "to": "green", "on": "timer"},
            {"from": "green", "to": "yellow", "on": "timer"},
            {"from": "yellow", "to": "red", "on": "timer"},
            {"from": "green", "to": "red", "on": "emergency", "guard": "isSevere"},
        ],
    }

    model = FSMModel(document["name"], document["initial"])
    for item in document["states"]:
        model.add_state(State(item["name"], entry_action=item.get("entry"), exit_action=item.get("exit")))
    for name in document["events"]:
        model.add_event(Event(name))
    for item in document["transitions"]:
        model.add_transition(Transition(item["from"], item["to"], item["on"], guard=item.get("guard")))

    model.validate().raise_for_errors()
    assert StateGraph.from_model(model).has_cycles()

    module = load_generated(CodeGenerator().generate(model), "traffic")
    seen = []
    handlers = module.TrafficLightHandlers(
        stop_traffic=lambda ctx: seen.append("stop"),
        warn=lambda ctx: seen.append("warn"),
        is_severe=lambda ctx: ctx["severe"],
    )
    context = {"severe": False}
    light = module.TrafficLight(handlers, context=context)
    State_ = module.TrafficLightState

    light.transition("timer")
    assert light.current_state() is State_.GREEN
    with pytest.raises(module.GuardRejected):
        light.transition("emergency")
    assert light.current_state() is State_.GREEN

    context["severe"] = True
    light.transition("emergency")
    assert light.current_state() is State_.RED
    assert seen == ["warn", "stop"]

    with pytest.raises(module.InvalidTransition):
        light.transition("emergency")


_REJECTED_BY_GENERATOR = {
    "unusable machine name": ("9lives", "a", ["a"], ["go"], [("a", "a", "go")]),
    "reserved machine name": ("InvalidTransition", "a", ["a"], ["go"], [("a", "a", "go")]),
    "colliding states": ("M", "aB", ["aB", "a_b"], ["go"], [("aB", "a_b", "go")]),
    "colliding handlers": (
        "M",
        "a",
        ["a"],
        ["go", "stop"],
        [Transition("a", "a", "go", action="doIt"), Transition("a", "a", "stop", action="do_it")],
    ),
    "handler in two roles": (
        "M",
        "a",
        ["a", "b"],
        ["go", "stop"],
        [Transition("a", "b", "go", guard="check"), Transition("b", "a", "stop", action="check")],
    ),
}


@pytest.mark.parametrize("case", sorted(_REJECTED_BY_GENERATOR))
def test_validation_rejects_what_generation_rejects(model_factory, case):
    model = model_factory(*_REJECTED_BY_GENERATOR[case])
    ok, issues = validate(model)
    assert ok is False
    assert {i.kind for i in issues} & {IssueKind.UNUSABLE_NAME, IssueKind.IDENTIFIER_COLLISION, IssueKind.HANDLER_CONFLICT}
    with pytest.raises(GenerationError):
        CodeGenerator().generate(model)


@pytest.mark.parametrize("fixture", ["order_model", "order_model_with_handlers", "door_model"])
def test_validated_models_always_generate(request, fixture):
    model = request.getfixturevalue(fixture)
    assert validate(model)[0] is True
    compile(CodeGenerator().generate(model), "<generated>", "exec")
