"""Graph-based analysis of a machine definition."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from ..core.transitions import Transition

if TYPE_CHECKING:
    from ..core.model import FSMModel

logger = logging.getLogger(__name__)

_WHITE, _GREY, _BLACK = 0, 1, 2


@dataclass
class _GraphNode:
    """Internal node: a state with its outgoing and incoming transitions."""

    name: str
    outgoing: List[Transition] = field(default_factory=list)
    incoming: List[Transition] = field(default_factory=list)


class StateGraph:
    """
    Adjacency view over a model's transitions. Provides reachability from the
    initial state and cycle detection without mutating the model.
    """

    def __init__(self, model: "FSMModel") -> None:
        self._model = model
        self._nodes: Dict[str, _GraphNode] = {}
        self._reachable: Set[str] = set()

    @classmethod
    def from_model(cls, model: "FSMModel") -> "StateGraph":
        """Create and build a graph for model."""
        graph = cls(model)
        graph.build()
        return graph

    def build(self) -> None:
        """
        Construct forward and reverse adjacency for every declared state, then
        compute reachability. Safe to call again after the model changed.
        """
        self._nodes = {name: _GraphNode(name=name) for name in self._model.states}

        for transition in self._model.transitions:
            # Transitions mutated after insertion may point outside the model.
            source = self._nodes.get(transition.source)
            if source is not None:
                source.outgoing.append(transition)
            target = self._nodes.get(transition.target)
            if target is not None:
                target.incoming.append(transition)

        self._reachable = self._compute_reachable()
        logger.debug(
            "Built graph for %s: %d states, %d reachable",
            self._model.name,
            len(self._nodes),
            len(self._reachable),
        )

    def _compute_reachable(self) -> Set[str]:
        """Depth-first traversal from the initial state using an explicit stack."""
        initial = self._model.initial
        if initial not in self._nodes:
            return set()

        visited: Set[str] = set()
        stack = [initial]
        while stack:
            state = stack.pop()
            if state in visited:
                continue
            visited.add(state)
            for transition in reversed(self._nodes[state].outgoing):
                if transition.target in self._nodes and transition.target not in visited:
                    stack.append(transition.target)
        return visited

    def get_outgoing_transitions(self, state: str) -> List[Transition]:
        """Get all transitions leaving state, in insertion order."""
        node = self._nodes.get(state)
        if not node:
            return []
        return list(node.outgoing)

    def get_incoming_transitions(self, state: str) -> List[Transition]:
        """Get all transitions entering state, in insertion order."""
        node = self._nodes.get(state)
        if not node:
            return []
        return list(node.incoming)

    def is_reachable(self, state: str) -> bool:
        return state in self._reachable

    def get_reachable_states(self) -> Set[str]:
        return set(self._reachable)

    def get_unreachable_states(self) -> Set[str]:
        """Get every declared state that cannot be reached from the initial state."""
        return {name for name in self._nodes if name not in self._reachable}

    def has_cycles(self) -> bool:
        """Return True if any cycle exists, including self-transitions."""
        return self.find_cycle() is not None

    def find_cycle(self) -> Optional[List[str]]:
        """
        Three-colour depth-first search over every declared state, so that
        cycles unreachable from the initial state are found too.

        :return: State names along one cycle with the first repeated at the
            end, or None if the graph is acyclic.
        """
        color = {name: _WHITE for name in self._nodes}

        for root in self._nodes:
            if color[root] != _WHITE:
                continue
            color[root] = _GREY
            path = [root]
            stack = [iter(self._nodes[root].outgoing)]
            while stack:
                transition = next(stack[-1], None)
                if transition is None:
                    stack.pop()
                    color[path.pop()] = _BLACK
                    continue
                target = transition.target
                if target not in color:
                    continue
                if color[target] == _GREY:
                    return path[path.index(target):] + [target]
                if color[target] == _WHITE:
                    color[target] = _GREY
                    path.append(target)
                    stack.append(iter(self._nodes[target].outgoing))
        return None
