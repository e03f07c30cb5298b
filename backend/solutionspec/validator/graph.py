"""
Solution graph model.

Builds a canonical read-only index of a solution document that every checker
consumes: the skill-id set, grant lookup, handoff adjacency in declaration
order, routing table and security contracts.

Building never fails on a present document. Entries that cannot be read at
all are left out of the index and listed in ``SolutionGraph.problems``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..models import (
    Grant,
    Handoff,
    Identity,
    PlatformConnector,
    RoutingEntry,
    SecurityContract,
    Solution,
    TopologySkill,
)


SolutionInput = Union[Solution, Mapping[str, Any]]


def _group(items: List[Tuple[str, Any]]) -> Mapping[str, Tuple[Any, ...]]:
    grouped: Dict[str, List[Any]] = {}
    for key, item in items:
        grouped.setdefault(key, []).append(item)
    return MappingProxyType({k: tuple(v) for k, v in grouped.items()})


def _readable(key: str, value: Any, label: str, problems: List[Tuple[str, str]]) -> bool:
    try:
        Solution.model_validate({key: value})
    except ValidationError as e:
        problems.append((label, e.errors()[0]["msg"]))
        return False
    return True


def _salvage(data: Any) -> Tuple[Solution, Tuple[Tuple[str, str], ...]]:
    """
    Validate a document section by section, dropping what cannot be read.

    List sections keep their readable items, routing keeps its readable
    channels, and any other unreadable section is dropped whole.

    Returns:
        The model built from the readable parts, and one
        ``(entry, reason)`` pair per dropped part.
    """
    if not isinstance(data, Mapping):
        return Solution(), (("document", f"expected a mapping, got {type(data).__name__}"),)

    problems: List[Tuple[str, str]] = []
    kept: Dict[str, Any] = {}
    for key, value in data.items():
        if _readable(key, value, key, []):
            kept[key] = value
        elif isinstance(value, list) and _readable(key, [], key, []):
            kept[key] = [
                item for i, item in enumerate(value)
                if _readable(key, [item], f"{key}[{i}]", problems)
            ]
        elif isinstance(value, Mapping) and key == "routing":
            kept[key] = {
                channel: entry for channel, entry in value.items()
                if _readable(key, {channel: entry}, f"{key}.{channel}", problems)
            }
        else:
            _readable(key, value, key, problems)

    return Solution.model_validate(kept), tuple(problems)


@dataclass(frozen=True)
class SolutionGraph:
    """
    Immutable index over one solution snapshot.

    Attributes:
        solution_id: Solution id, if any.
        solution_name: Solution name, if any.
        skills: Topology skills in declaration order.
        skill_ids: Set of declared skill ids.
        grants: Grants in declaration order.
        grants_by_key: First grant declared for each key.
        handoffs: Handoffs in declaration order.
        handoffs_by_from: Outgoing handoffs per source skill id.
        routing_by_channel: Routing entry per channel.
        contracts: Security contracts in declaration order.
        contracts_by_consumer: Contracts per consumer skill id.
        platform_connectors: Declared platform connectors.
        identity: Identity configuration.
        problems: Entries left out because they could not be read.
    """

    solution_id: Optional[str]
    solution_name: Optional[str]
    skills: Tuple[TopologySkill, ...]
    skill_ids: FrozenSet[str]
    grants: Tuple[Grant, ...]
    grants_by_key: Mapping[str, Grant]
    handoffs: Tuple[Handoff, ...]
    handoffs_by_from: Mapping[str, Tuple[Handoff, ...]]
    routing_by_channel: Mapping[str, RoutingEntry]
    contracts: Tuple[SecurityContract, ...]
    contracts_by_consumer: Mapping[str, Tuple[SecurityContract, ...]]
    platform_connectors: Tuple[PlatformConnector, ...]
    identity: Identity
    problems: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def build(cls, solution: Optional[SolutionInput]) -> "SolutionGraph":
        """
        Index a solution document.

        Args:
            solution: Solution model or raw mapping.

        Returns:
            SolutionGraph over a private copy of the document.

        Raises:
            ValueError: If no solution document was supplied.
        """
        if solution is None:
            raise ValueError("A solution document is required")

        problems: Tuple[Tuple[str, str], ...] = ()
        if isinstance(solution, Solution):
            model = solution.model_copy(deep=True)
        else:
            try:
                model = Solution.model_validate(solution)
            except ValidationError:
                model, problems = _salvage(solution)

        grants_by_key: Dict[str, Grant] = {}
        for grant in model.grants:
            if grant.key is not None:
                grants_by_key.setdefault(grant.key, grant)

        return cls(
            solution_id=model.id,
            solution_name=model.name,
            skills=tuple(model.skills),
            skill_ids=frozenset(s.id for s in model.skills if s.id is not None),
            grants=tuple(model.grants),
            grants_by_key=MappingProxyType(grants_by_key),
            handoffs=tuple(model.handoffs),
            handoffs_by_from=_group(
                [(h.source, h) for h in model.handoffs if h.source is not None]
            ),
            routing_by_channel=MappingProxyType(dict(model.routing)),
            contracts=tuple(model.security_contracts),
            contracts_by_consumer=_group(
                [(c.consumer, c) for c in model.security_contracts if c.consumer is not None]
            ),
            platform_connectors=tuple(model.platform_connectors),
            identity=model.identity,
            problems=problems,
        )

    @property
    def channels(self) -> Tuple[str, ...]:
        return tuple(self.routing_by_channel.keys())

    @property
    def platform_connector_ids(self) -> FrozenSet[str]:
        return frozenset(c.id for c in self.platform_connectors if c.id)

    def has_skill(self, skill_id: Optional[str]) -> bool:
        return skill_id is not None and skill_id in self.skill_ids

    def outgoing(self, skill_id: str) -> Tuple[Handoff, ...]:
        """Handoffs leaving ``skill_id`` in declaration order."""
        return self.handoffs_by_from.get(skill_id, ())

    def summary(self) -> Dict[str, int]:
        """Entity counts for result summaries."""
        return {
            "skills": len(self.skills),
            "grants": len(self.grants),
            "handoffs": len(self.handoffs),
            "channels": len(self.routing_by_channel),
            "platform_connectors": len(self.platform_connectors),
            "security_contracts": len(self.contracts),
        }
