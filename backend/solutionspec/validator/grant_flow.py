"""
Grant Flow Validation.

Checks that grants actually flow where security contracts say they must:
- Every consumed, non-internal grant has at least one issuer
- A handoff path exists from each contract's provider to its consumer
- Every grant the contract requires is passed on every edge of that path
"""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Set, Tuple

from ..models import Handoff, SecurityContract
from .graph import SolutionGraph
from .issues import Check, CheckerResult


HandoffPath = Tuple[Handoff, ...]


def find_handoff_path(
    graph: SolutionGraph,
    source: str,
    target: str,
) -> Optional[HandoffPath]:
    """
    Breadth-first search for a handoff path from ``source`` to ``target``.

    Edges are explored in handoff declaration order, so the first path found
    is the first one FIFO order reaches. A path always has at least one edge:
    ``source == target`` only matches through a cycle back to itself.

    Args:
        graph: Indexed solution.
        source: Starting skill id.
        target: Destination skill id.

    Returns:
        Tuple of handoffs forming the path, or None if unreachable.
    """
    queue: Deque[Tuple[str, HandoffPath]] = deque([(source, ())])
    visited: Set[str] = set()

    while queue:
        current, path = queue.popleft()

        if current == target and path:
            return path

        if current in visited:
            continue
        visited.add(current)

        for handoff in graph.outgoing(current):
            if handoff.target is not None:
                queue.append((handoff.target, path + (handoff,)))

    return None


def missing_grant_edges(path: HandoffPath, grant_key: str) -> List[Handoff]:
    """Edges on ``path`` that do not pass ``grant_key``."""
    return [h for h in path if not h.carries(grant_key)]


class GrantFlowAnalyzer:
    """
    Validates grant issuance and propagation along handoff chains.

    When several paths connect a provider to a consumer, only the first path
    found by breadth-first search is checked for grant passage.
    """

    name = "grant_flow"

    def validate(self, graph: SolutionGraph) -> CheckerResult:
        """
        Analyse grant flow in the solution graph.

        Args:
            graph: Indexed solution.

        Returns:
            CheckerResult with provider, path and passage issues.
        """
        result = CheckerResult(name=self.name)

        self._check_providers(graph, result)
        for contract in graph.contracts:
            self._check_contract(graph, contract, result)

        return result

    def _check_providers(self, graph: SolutionGraph, result: CheckerResult) -> None:
        for grant in graph.grants:
            if grant.internal:
                continue
            if grant.consumed_by and not grant.issued_by:
                result.add_issue(
                    Check.GRANT_PROVIDER_MISSING,
                    f'Grant "{grant.key}" is consumed by {", ".join(grant.consumed_by)} '
                    f"but has no issuer",
                    grant=grant.key,
                )

    def _check_contract(
        self,
        graph: SolutionGraph,
        contract: SecurityContract,
        result: CheckerResult,
    ) -> None:
        # Unknown endpoints are reported by the reference checker
        if not contract.provider:
            return
        if not graph.has_skill(contract.consumer) or not graph.has_skill(contract.provider):
            return

        path = find_handoff_path(graph, contract.provider, contract.consumer)
        if path is None:
            result.add_issue(
                Check.CONTRACT_HANDOFF_PATH,
                f'Security contract "{contract.name}": no handoff path from '
                f'"{contract.provider}" to "{contract.consumer}"',
                contract=contract.name,
            )
            return

        for grant_key in contract.requires_grants:
            dropped = missing_grant_edges(path, grant_key)
            if dropped:
                result.add_issue(
                    Check.GRANTS_PASSED_MATCH,
                    f'Security contract "{contract.name}": grant "{grant_key}" is not '
                    f'passed through all handoffs from "{contract.provider}" to '
                    f'"{contract.consumer}"',
                    contract=contract.name,
                    grant=grant_key,
                    handoffs=[h.id for h in dropped],
                )
