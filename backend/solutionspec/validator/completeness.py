"""
Completeness Validation.

Presence checks over implementation skills:
- Skill has a description or problem statement
- Skill has a prompt or role persona
- Skill has tools, and every tool is described
- Every supported intent has examples

A skill that could not be loaded is reported once as ``skill_not_found``
and is otherwise skipped.
"""

from __future__ import annotations

from typing import Iterable, List

from ..models import ImplementationSkill
from .issues import Check, CheckerResult


class CompletenessChecker:
    """Checks that implementation skills are filled in enough to run."""

    name = "completeness"

    def validate(self, skills: Iterable[ImplementationSkill]) -> CheckerResult:
        """
        Check every skill and merge the findings.

        Args:
            skills: Implementation skills, possibly including degraded records.

        Returns:
            CheckerResult with all per-skill issues in skill order.
        """
        result = CheckerResult(name=self.name)
        for skill in skills:
            skill_result = self.validate_skill(skill)
            result.issues.extend(skill_result.issues)
            result.valid = result.valid and skill_result.valid
        return result

    def validate_skill(self, skill: ImplementationSkill) -> CheckerResult:
        """Check a single implementation skill."""
        result = CheckerResult(name=f"{self.name}:{skill.id}")

        if skill.is_missing:
            result.add_issue(
                Check.SKILL_NOT_FOUND,
                f'Skill "{skill.display_name}" could not be loaded'
                + (f": {skill.error}" if skill.error else ""),
                skill=skill.id,
            )
            return result

        if not skill.description and not skill.problem.get("statement"):
            result.add_issue(
                Check.SKILL_DESCRIPTION,
                f'Skill "{skill.display_name}" has no description or problem statement',
                skill=skill.id,
            )

        if not skill.prompt and not skill.role.get("persona"):
            result.add_issue(
                Check.SKILL_PROMPT,
                f'Skill "{skill.display_name}" has no prompt or role persona',
                skill=skill.id,
            )

        if not skill.tools:
            result.add_issue(
                Check.SKILL_TOOLS,
                f'Skill "{skill.display_name}" has no tools defined',
                skill=skill.id,
            )

        for tool in skill.tools:
            if not tool.description:
                result.add_issue(
                    Check.TOOL_DESCRIPTION,
                    f'Tool "{tool.name}" in skill "{skill.display_name}" has no description',
                    skill=skill.id,
                    tool=tool.name,
                )

        for intent in skill.intents.supported:
            if not intent.examples:
                result.add_issue(
                    Check.INTENT_EXAMPLES,
                    f'Intent "{intent.id}" in skill "{skill.display_name}" has no examples',
                    skill=skill.id,
                    intent=intent.id,
                )

        return result


def missing_skills(skills: Iterable[ImplementationSkill]) -> List[ImplementationSkill]:
    """Degraded records standing in for skills that failed to load."""
    return [s for s in skills if s.is_missing]
