# fsmgen/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Tuple

from fsmgen.codegen.ir import HandlerKind
from fsmgen.codegen.naming import constant_case, handler_field_name, is_usable_class_name, pascal_case
from fsmgen.core.errors import InvalidEntityError, ValidationError
from fsmgen.core.transitions import Transition
from fsmgen.interfaces.types import IssueKind, Severity, TransitionKey, ValidationIssue, is_identifier
from fsmgen.runtime.graph import StateGraph

if TYPE_CHECKING:
    from fsmgen.core.model import FSMModel

logger = logging.getLogger(__name__)

_Rule = Callable[["FSMModel", StateGraph], Iterator[ValidationIssue]]


class ValidationReport:
    """
    Outcome of a whole-model validation. Truthy when no error-severity issue
    was found; warnings never make a report fail.
    """

    def __init__(self, issues: List[ValidationIssue]) -> None:
        self._issues = list(issues)

    @property
    def issues(self) -> List[ValidationIssue]:
        return list(self._issues)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self._issues if i.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self._issues if i.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def by_kind(self, kind: IssueKind) -> List[ValidationIssue]:
        return [i for i in self._issues if i.kind is kind]

    def raise_for_errors(self) -> None:
        """
        :raises ValidationError: Listing every error, if the report is not ok.
        """
        errors = self.errors
        if errors:
            raise ValidationError("\n".join(str(e) for e in errors), issues=errors)

    def __bool__(self) -> bool:
        return self.ok

    def __iter__(self) -> Iterator[ValidationIssue]:
        return iter(self._issues)

    def __len__(self) -> int:
        return len(self._issues)

    def __repr__(self) -> str:
        return f"ValidationReport(ok={self.ok}, errors={len(self.errors)}, warnings={len(self.warnings)})"


class Validator:
    """
    Runs every whole-model check and aggregates the problems. Checks never
    stop early: a user fixing a definition gets the complete list at once.
    """

    def __init__(self) -> None:
        self._rules_engine = _ValidationRulesEngine()

    def validate(self, model: "FSMModel") -> ValidationReport:
        """
        Check the model's states, events and transitions for consistency.

        :param model: The model to validate. It is not modified.
        :return: A report of every issue found.
        """
        graph = StateGraph.from_model(model)
        report = ValidationReport(self._rules_engine.run(model, graph))
        if report.ok:
            logger.debug("Model %s passed validation with %d warning(s)", model.name, len(report.warnings))
        else:
            logger.warning("Model %s failed validation with %d error(s)", model.name, len(report.errors))
        return report


class _ValidationRulesEngine:
    """
    Internal engine applying an ordered list of independent rules. Each rule
    yields zero or more issues.
    """

    def __init__(self) -> None:
        self._rules: List[_Rule] = [
            _DefaultValidationRules.check_initial_state,
            _DefaultValidationRules.check_non_empty,
            _DefaultValidationRules.check_entities,
            _DefaultValidationRules.check_references,
            _DefaultValidationRules.check_reachability,
            _DefaultValidationRules.check_determinism,
            _DefaultValidationRules.check_generated_names,
            _DefaultValidationRules.check_handlers,
            _DefaultValidationRules.check_guard_conflicts,
        ]

    def run(self, model: "FSMModel", graph: StateGraph) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for rule in self._rules:
            issues.extend(rule(model, graph))
        return issues


def _issue(kind: IssueKind, message: str, severity: Severity = Severity.ERROR, **context) -> ValidationIssue:
    return ValidationIssue(kind=kind, severity=severity, message=message, context=context)


def _group_by_key(transitions: List[Transition]) -> Dict[TransitionKey, List[Transition]]:
    groups: Dict[TransitionKey, List[Transition]] = OrderedDict()
    for t in transitions:
        groups.setdefault(t.key, []).append(t)
    return groups


class _DefaultValidationRules:
    """
    Built-in rules covering structural and semantic correctness.
    """

    @staticmethod
    def check_initial_state(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        if model.initial not in model.states:
            yield _issue(
                IssueKind.MISSING_INITIAL_STATE,
                f"Initial state {model.initial!r} is not defined.",
                state=model.initial,
            )

    @staticmethod
    def check_non_empty(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        if not model.states:
            yield _issue(IssueKind.EMPTY_STATE_SET, "Machine must define at least one state.")
        if not model.events:
            yield _issue(IssueKind.EMPTY_EVENT_SET, "Machine must define at least one event.")

    @staticmethod
    def check_entities(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        """
        Re-check every entity, since entities are plain mutable records and
        may have been edited after they were added.
        """
        for key, state in model.states.items():
            try:
                state.validate()
            except InvalidEntityError as e:
                yield _issue(IssueKind.INVALID_ENTITY, str(e), entity="state", name=key)
            else:
                if state.name != key:
                    yield _issue(
                        IssueKind.INVALID_ENTITY,
                        f"State registered as {key!r} was renamed to {state.name!r}.",
                        entity="state",
                        name=key,
                    )
        for key, event in model.events.items():
            try:
                event.validate()
            except InvalidEntityError as e:
                yield _issue(IssueKind.INVALID_ENTITY, str(e), entity="event", name=key)
            else:
                if event.name != key:
                    yield _issue(
                        IssueKind.INVALID_ENTITY,
                        f"Event registered as {key!r} was renamed to {event.name!r}.",
                        entity="event",
                        name=key,
                    )
        for index, transition in enumerate(model.transitions):
            try:
                transition.validate()
            except InvalidEntityError as e:
                yield _issue(IssueKind.INVALID_ENTITY, str(e), entity="transition", index=index)

    @staticmethod
    def check_references(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        for index, t in enumerate(model.transitions):
            for role, name, registry in (
                ("source", t.source, model.states),
                ("target", t.target, model.states),
                ("event", t.event, model.events),
            ):
                if name and name not in registry:
                    yield _issue(
                        IssueKind.DANGLING_REFERENCE,
                        f"Transition {t} refers to unknown {role} {name!r}.",
                        index=index,
                        role=role,
                        name=name,
                    )

    @staticmethod
    def check_reachability(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        # Without an initial state every state would be reported; that is
        # already covered by the missing-initial-state issue.
        if model.initial not in model.states:
            return
        unreachable = graph.get_unreachable_states()
        for name in model.states:
            if name in unreachable:
                yield _issue(
                    IssueKind.UNREACHABLE_STATE,
                    f"State {name!r} is not reachable from initial state {model.initial!r}.",
                    state=name,
                )

    @staticmethod
    def check_determinism(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        """
        More than one unguarded transition for the same (state, event) leaves
        the dispatcher with no way to choose. This check is exact.
        """
        for (source, event), group in _group_by_key(model.transitions).items():
            unguarded = [t for t in group if not t.guard]
            if len(unguarded) > 1:
                targets = [t.target for t in unguarded]
                yield _issue(
                    IssueKind.NON_DETERMINISTIC_TRANSITION,
                    f"State {source!r} has {len(unguarded)} unguarded transitions on event {event!r} "
                    f"(targets: {', '.join(targets)}).",
                    state=source,
                    event=event,
                    targets=targets,
                )

    @staticmethod
    def check_generated_names(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        """
        Apply the conversions used by the code generator, so that a model
        passing validation always yields distinct, usable identifiers.
        """
        class_name = pascal_case(model.name)
        if not is_usable_class_name(class_name):
            yield _issue(
                IssueKind.UNUSABLE_NAME,
                f"Machine name {model.name!r} does not yield a usable class name ({class_name!r}).",
                entity="machine",
                name=model.name,
            )
        for entity, registry in (("state", model.states), ("event", model.events)):
            used: Dict[str, str] = {}
            for name in registry:
                identifier = constant_case(name)
                if not is_identifier(identifier):
                    yield _issue(
                        IssueKind.UNUSABLE_NAME,
                        f"{entity.capitalize()} name {name!r} does not yield a usable identifier.",
                        entity=entity,
                        name=name,
                    )
                elif identifier in used:
                    yield _issue(
                        IssueKind.IDENTIFIER_COLLISION,
                        f"{entity.capitalize()} names {used[identifier]!r} and {name!r} both map to {identifier}.",
                        entity=entity,
                        names=[used[identifier], name],
                        identifier=identifier,
                    )
                else:
                    used[identifier] = name

    @staticmethod
    def check_handlers(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        """
        Each guard or action name becomes one field of the generated handlers
        class, so a name may only be used in one role and distinct names must
        give distinct fields.
        """
        roles: Dict[str, HandlerKind] = OrderedDict()
        conflicting = set()
        referenced = [
            (name, HandlerKind.STATE_ACTION) for s in model.states.values() for name in (s.entry_action, s.exit_action)
        ]
        for t in model.transitions:
            referenced.extend([(t.guard, HandlerKind.GUARD), (t.action, HandlerKind.ACTION)])

        for name, kind in referenced:
            if not name:
                continue
            first = roles.setdefault(name, kind)
            if first is not kind and name not in conflicting:
                conflicting.add(name)
                yield _issue(
                    IssueKind.HANDLER_CONFLICT,
                    f"Handler {name!r} is used both as {first.value} and as {kind.value}.",
                    name=name,
                    roles=[first.value, kind.value],
                )

        fields: Dict[str, str] = {}
        for name in roles:
            field_name = handler_field_name(name)
            if not is_identifier(field_name):
                yield _issue(
                    IssueKind.UNUSABLE_NAME,
                    f"Handler name {name!r} does not yield a usable identifier.",
                    entity="handler",
                    name=name,
                )
            elif field_name in fields:
                yield _issue(
                    IssueKind.IDENTIFIER_COLLISION,
                    f"Handler names {fields[field_name]!r} and {name!r} both map to {field_name}.",
                    entity="handler",
                    names=[fields[field_name], name],
                    identifier=field_name,
                )
            else:
                fields[field_name] = name

    @staticmethod
    def check_guard_conflicts(model: "FSMModel", graph: StateGraph) -> Iterator[ValidationIssue]:
        """
        Advisory only. Guards are opaque predicates, so two guarded
        transitions on the same (state, event) may or may not overlap; the
        generated dispatcher takes the first passing one in declaration order.
        """
        for (source, event), group in _group_by_key(model.transitions).items():
            guards = [t.guard for t in group if t.guard]
            if len(guards) > 1:
                yield _issue(
                    IssueKind.POSSIBLE_GUARD_CONFLICT,
                    f"State {source!r} has {len(guards)} guarded transitions on event {event!r} "
                    f"(guards: {', '.join(guards)}); make sure they are mutually exclusive.",
                    severity=Severity.WARNING,
                    state=source,
                    event=event,
                    guards=guards,
                )


def validate(model: "FSMModel") -> Tuple[bool, List[ValidationIssue]]:
    """
    Convenience entry point for drivers.

    :return: ``(ok, issues)`` where issues includes warnings.
    """
    report = Validator().validate(model)
    return report.ok, report.issues
