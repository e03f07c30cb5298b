"""
Circular handoff detection.

Depth-first search over the handoff graph. Traversal state lives in a
``_Traversal`` context created per call, so detection is reentrant, and the
search is iterative so long chains never hit the recursion limit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from ..models import Handoff
from .graph import SolutionGraph
from .issues import Check, CheckerResult


_EXHAUSTED = object()


@dataclass
class _Traversal:
    """Mutable state for one detection run."""

    visited: Set[str] = field(default_factory=set)
    on_path: Set[str] = field(default_factory=set)
    path: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    seen: Set[Tuple[str, ...]] = field(default_factory=set)

    def enter(self, node: str) -> None:
        self.visited.add(node)
        self.on_path.add(node)
        self.path.append(node)

    def leave(self) -> None:
        node = self.path.pop()
        self.on_path.discard(node)

    def close_cycle(self, node: str) -> None:
        start = self.path.index(node)
        body = self.path[start:]
        key = _canonical(body)
        if key in self.seen:
            return
        self.seen.add(key)
        self.cycles.append(body + [node])


def _canonical(body: List[str]) -> Tuple[str, ...]:
    """Rotation-independent key for a cycle body."""
    pivot = body.index(min(body))
    return tuple(body[pivot:] + body[:pivot])


def build_adjacency(handoffs: Iterable[Handoff]) -> Dict[str, List[str]]:
    """Directed adjacency list, keeping multi-edges and declaration order."""
    graph: Dict[str, List[str]] = {}
    for handoff in handoffs:
        if handoff.source is None or handoff.target is None:
            continue
        graph.setdefault(handoff.source, []).append(handoff.target)
    return graph


def detect_cycles(handoffs: Iterable[Handoff]) -> List[List[str]]:
    """
    Find circular handoff chains.

    Args:
        handoffs: Handoff edges.

    Returns:
        One list per cycle, closed with the repeated node, e.g. ``[a, b, a]``.
        A self-loop is reported as ``[a, a]``.
    """
    graph = build_adjacency(handoffs)
    state = _Traversal()

    for start in graph:
        if start in state.visited:
            continue

        state.enter(start)
        stack: List[Tuple[str, Iterator[str]]] = [(start, iter(graph.get(start, ())))]

        while stack:
            _, neighbours = stack[-1]
            neighbour = next(neighbours, _EXHAUSTED)

            if neighbour is _EXHAUSTED:
                stack.pop()
                state.leave()
                continue

            if neighbour in state.on_path:
                state.close_cycle(neighbour)
            elif neighbour not in state.visited:
                state.enter(neighbour)
                stack.append((neighbour, iter(graph.get(neighbour, ()))))

    return state.cycles


class CycleDetector:
    """Reports every circular handoff chain once."""

    name = "cycles"

    def validate(self, graph: SolutionGraph) -> CheckerResult:
        result = CheckerResult(name=self.name)
        for cycle in detect_cycles(graph.handoffs):
            result.add_issue(
                Check.CIRCULAR_HANDOFFS,
                f"Circular handoff chain detected: {' → '.join(cycle)}",
                cycle=cycle,
            )
        return result
