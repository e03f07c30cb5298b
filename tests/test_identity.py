"""
Tests for skill identity resolution.
"""

from backend.solutionspec.identity import (
    MAPPED,
    MATCH_ID,
    MATCH_NAME,
    MATCH_ORIGINAL,
    ORPHAN,
    UNMAPPED,
    SkillIdentity,
    build_skill_mapping,
    normalize_name,
)
from backend.solutionspec.models import ImplementationSkill, TopologySkill


def impl(**data):
    return ImplementationSkill.model_validate(data)


class TestNormalizeName:
    """Tests for normalize_name."""

    def test_normalize(self):
        """Test case and separator folding."""
        assert normalize_name("Support Tier-1") == "supporttier1"
        assert normalize_name("support_tier_1") == "supporttier1"
        assert normalize_name(None) == ""


class TestResolve:
    """Tests for SkillIdentity.resolve."""

    def test_exact_id(self):
        """Test matching on the topology id."""
        identity = SkillIdentity.resolve(
            TopologySkill(id="returns-ops"),
            [impl(id="returns-ops", name="Returns")],
        )
        assert identity.implementation_id == "returns-ops"
        assert identity.matched_by == MATCH_ID
        assert identity.status == MAPPED

    def test_name_match(self):
        """Test matching a generated record by its normalized name."""
        identity = SkillIdentity.resolve(
            TopologySkill(id="support-tier-1"),
            [impl(id="skill_8f2a", name="Support Tier 1")],
        )
        assert identity.implementation_id == "skill_8f2a"
        assert identity.matched_by == MATCH_NAME

    def test_topology_name_match(self):
        """Test matching on the topology entry's name."""
        identity = SkillIdentity.resolve(
            TopologySkill(id="fin", name="Finance Ops"),
            [impl(id="skill_1", name="finance-ops")],
        )
        assert identity.matched_by == MATCH_NAME

    def test_original_skill_id(self):
        """Test the back-reference fallback."""
        identity = SkillIdentity.resolve(
            TopologySkill(id="returns-ops"),
            [impl(id="skill_77", name="Refund Desk", original_skill_id="returns-ops")],
        )
        assert identity.implementation_id == "skill_77"
        assert identity.original_skill_id == "returns-ops"
        assert identity.matched_by == MATCH_ORIGINAL

    def test_precedence(self):
        """Test that an exact id beats a name match listed first."""
        identity = SkillIdentity.resolve(
            TopologySkill(id="returns-ops"),
            [impl(id="skill_1", name="Returns Ops"), impl(id="returns-ops")],
        )
        assert identity.implementation_id == "returns-ops"

    def test_missing_records_never_match(self):
        """Test that NOT_FOUND records are skipped."""
        identity = SkillIdentity.resolve(
            TopologySkill(id="returns-ops"),
            [impl(id="returns-ops", status="NOT_FOUND")],
        )
        assert identity.status == UNMAPPED
        assert identity.matched_by is None


class TestBuildSkillMapping:
    """Tests for build_skill_mapping."""

    def test_mapping(self):
        """Test mapped, unmapped and orphan entries in order."""
        topology = [TopologySkill(id="a"), TopologySkill(id="b")]
        skills = [impl(id="a"), impl(id="stray"), impl(id="gone", status="NOT_FOUND")]
        mapping = build_skill_mapping(topology, skills)

        assert [(m.topology_id, m.implementation_id, m.status) for m in mapping] == [
            ("a", "a", MAPPED),
            ("b", None, UNMAPPED),
            (None, "stray", ORPHAN),
        ]

    def test_to_dict(self):
        """Test serialization."""
        identity = SkillIdentity(topology_id="a", implementation_id="x", name="X", matched_by=MATCH_NAME)
        assert identity.to_dict() == {
            "topology_id": "a",
            "implementation_id": "x",
            "name": "X",
            "matched_by": "name",
            "status": "mapped",
        }
