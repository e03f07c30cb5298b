"""
Skill identity resolution.

A skill can be named three ways: by its id in the solution topology, by the
id of its stored implementation record, and by the ``original_skill_id`` that
record keeps pointing back at the topology. ``SkillIdentity.resolve`` is the
single place these are reconciled.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import ImplementationSkill, TopologySkill


MATCH_ID = "id"
MATCH_NAME = "name"
MATCH_ORIGINAL = "original_skill_id"

MAPPED = "mapped"
UNMAPPED = "unmapped"
ORPHAN = "orphan"

_NAME_NOISE = re.compile(r"[\s\-_]+")


def normalize_name(value: Optional[str]) -> str:
    """Lowercase and drop whitespace, dashes and underscores."""
    if not value:
        return ""
    return _NAME_NOISE.sub("", value.lower())


@dataclass(frozen=True)
class SkillIdentity:
    """
    The ids one skill is known by.

    Attributes:
        topology_id: Id in ``solution.skills``, if any.
        implementation_id: Id of the stored implementation record, if any.
        original_skill_id: Back-reference kept on the implementation record.
        name: Display name of the implementation record.
        matched_by: Which rule linked the two sides (id, name, original_skill_id).
    """

    topology_id: Optional[str] = None
    implementation_id: Optional[str] = None
    original_skill_id: Optional[str] = None
    name: Optional[str] = None
    matched_by: Optional[str] = None

    @property
    def status(self) -> str:
        if self.topology_id is None:
            return ORPHAN
        if self.implementation_id is None:
            return UNMAPPED
        return MAPPED

    @classmethod
    def of(
        cls,
        topology_id: Optional[str],
        skill: Optional[ImplementationSkill],
        matched_by: Optional[str] = None,
    ) -> "SkillIdentity":
        if skill is None:
            return cls(topology_id=topology_id)
        return cls(
            topology_id=topology_id,
            implementation_id=skill.id,
            original_skill_id=skill.original_skill_id,
            name=skill.name,
            matched_by=matched_by,
        )

    @classmethod
    def resolve(
        cls,
        topology_skill: TopologySkill,
        implementation_skills: Sequence[ImplementationSkill],
    ) -> "SkillIdentity":
        """
        Find the implementation record behind a topology skill.

        Precedence is fixed: exact id, then normalized name, then the
        ``original_skill_id`` back-reference. Records that failed to load
        never match.

        Args:
            topology_skill: Entry from ``solution.skills``.
            implementation_skills: Loaded implementation records.

        Returns:
            SkillIdentity; ``implementation_id`` is None when nothing matched.
        """
        candidates = [s for s in implementation_skills if not s.is_missing]
        topology_id = topology_skill.id

        for skill in candidates:
            if topology_id and skill.id == topology_id:
                return cls.of(topology_id, skill, MATCH_ID)

        wanted = {normalize_name(topology_id), normalize_name(topology_skill.name)} - {""}
        for skill in candidates:
            if normalize_name(skill.name) in wanted:
                return cls.of(topology_id, skill, MATCH_NAME)

        for skill in candidates:
            if topology_id and skill.original_skill_id == topology_id:
                return cls.of(topology_id, skill, MATCH_ORIGINAL)

        return cls(topology_id=topology_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topology_id": self.topology_id,
            "implementation_id": self.implementation_id,
            "name": self.name,
            "matched_by": self.matched_by,
            "status": self.status,
        }


def build_skill_mapping(
    topology_skills: Iterable[TopologySkill],
    implementation_skills: Sequence[ImplementationSkill],
) -> List[SkillIdentity]:
    """
    Pair topology skills with implementation records.

    Returns one identity per topology skill in declaration order
    (``mapped`` or ``unmapped``), followed by one ``orphan`` identity per
    loaded implementation record no topology skill resolved to.
    """
    mapping = [SkillIdentity.resolve(t, implementation_skills) for t in topology_skills]

    matched = {m.implementation_id for m in mapping if m.implementation_id}
    for skill in implementation_skills:
        if skill.is_missing or skill.id in matched:
            continue
        mapping.append(SkillIdentity.of(None, skill))

    return mapping
