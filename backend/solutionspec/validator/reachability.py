"""
Orphan skill detection.

A skill counts as reachable when a routing entry targets it or a handoff
starts or ends at it. Anything else is an orphan, reported as a warning since
it may still be invoked directly through an API.
"""

from __future__ import annotations

from typing import Set

from .graph import SolutionGraph
from .issues import Check, CheckerResult


def reachable_skills(graph: SolutionGraph) -> Set[str]:
    """Skill ids referenced by routing or by either end of a handoff."""
    reachable: Set[str] = set()
    for entry in graph.routing_by_channel.values():
        if entry.default_skill:
            reachable.add(entry.default_skill)
    for handoff in graph.handoffs:
        if handoff.source:
            reachable.add(handoff.source)
        if handoff.target:
            reachable.add(handoff.target)
    return reachable


class ReachabilityChecker:
    """Flags topology skills with no inbound route or handoff."""

    name = "reachability"

    def validate(self, graph: SolutionGraph) -> CheckerResult:
        result = CheckerResult(name=self.name)
        reachable = reachable_skills(graph)

        for skill in graph.skills:
            if skill.id and skill.id not in reachable:
                result.add_issue(
                    Check.NO_ORPHAN_SKILLS,
                    f'Skill "{skill.id}" is not reachable via any routing rule or handoff',
                    skill=skill.id,
                )

        return result
