"""
Pre-flight checks before deploying a solution.

Condenses validation results into a named pass/fail checklist. Failing
error-severity checks block the deploy; failing warnings do not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import ValidatorConfig
from .identity import UNMAPPED, build_skill_mapping
from .models import ImplementationSkill, as_implementation_skills
from .report import SkillInput
from .validator.completeness import missing_skills
from .validator.engine import ContextInput, ValidationEngine, ValidationResult, as_deploy_context
from .validator.graph import SolutionGraph, SolutionInput
from .validator.issues import Check


@dataclass
class PreflightCheck:
    """
    A pre-flight check item.

    Attributes:
        name: Check name.
        passed: Whether the check passed.
        message: Status message.
        severity: Check severity (error, warning, info).
    """

    name: str
    passed: bool
    message: str
    severity: str = "error"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class PreflightResult:
    """
    Result of pre-flight checks.

    Attributes:
        success: Overall success status.
        checks: List of individual check results.
        solution_id: Id of the checked solution.
    """

    success: bool
    checks: List[PreflightCheck] = field(default_factory=list)
    solution_id: Optional[str] = None

    def check(self, name: str) -> Optional[PreflightCheck]:
        for c in self.checks:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "solution_id": self.solution_id,
            "checks": [c.to_dict() for c in self.checks],
        }


class PreflightChecker:
    """
    Performs pre-flight checks before deployment.
    """

    def __init__(
        self,
        config: Optional[ValidatorConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or ValidatorConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.engine = ValidationEngine(config=self.config, logger=self.logger)

    def run_checks(
        self,
        solution: Optional[SolutionInput],
        context: Optional[ContextInput] = None,
        skills: Optional[Sequence[SkillInput]] = None,
        strict: bool = False,
    ) -> PreflightResult:
        """
        Run all pre-flight checks.

        Args:
            solution: Solution model or raw mapping.
            context: Optional deploy context; enables connector checks.
            skills: Implementation skills; defaults to the context's skills.
            strict: If True, any validation warning fails the preflight.

        Returns:
            PreflightResult with all check results.
        """
        graph = SolutionGraph.build(solution)
        deploy = as_deploy_context(context)
        implementation = as_implementation_skills(skills) if skills is not None else (
            list(deploy.skills) if deploy is not None else None
        )

        validation = self.engine.validate_graph(graph, deploy)
        checks = [self._check_validation(validation)]

        if implementation is not None:
            checks.append(self._check_skills_loaded(implementation))
            checks.append(self._check_skills_mapped(graph, implementation))

        if deploy is not None:
            checks.append(self._check_connector_code(validation))

        if strict:
            checks.append(self._check_no_warnings(validation))

        # Determine overall success (errors fail, warnings ok)
        success = all(
            c.passed or c.severity != "error"
            for c in checks
        )

        self.logger.info(
            "Preflight for solution %s: %s",
            graph.solution_id or "<unnamed>",
            "passed" if success else "failed",
        )

        return PreflightResult(
            success=success,
            checks=checks,
            solution_id=graph.solution_id,
        )

    def _check_validation(self, result: ValidationResult) -> PreflightCheck:
        """Check that validation passes."""
        if result.valid:
            return PreflightCheck(
                name="solution_valid",
                passed=True,
                message="Validation passed",
            )
        return PreflightCheck(
            name="solution_valid",
            passed=False,
            message=f"Validation failed: {len(result.errors)} errors",
        )

    def _check_skills_loaded(self, skills: List[ImplementationSkill]) -> PreflightCheck:
        """Check that every implementation skill loaded."""
        missing = missing_skills(skills)
        if not missing:
            return PreflightCheck(
                name="skills_loaded",
                passed=True,
                message=f"All {len(skills)} skills loaded",
            )
        return PreflightCheck(
            name="skills_loaded",
            passed=False,
            message="Skills not found: " + ", ".join(s.display_name for s in missing),
        )

    def _check_skills_mapped(
        self,
        graph: SolutionGraph,
        skills: List[ImplementationSkill],
    ) -> PreflightCheck:
        """Check that every topology skill has an implementation."""
        unmapped = [
            m.topology_id for m in build_skill_mapping(graph.skills, skills)
            if m.status == UNMAPPED
        ]
        if not unmapped:
            return PreflightCheck(
                name="skills_mapped",
                passed=True,
                message="All topology skills have an implementation",
                severity="warning",
            )
        return PreflightCheck(
            name="skills_mapped",
            passed=False,
            message="No implementation for: " + ", ".join(str(t) for t in unmapped),
            severity="warning",
        )

    def _check_connector_code(self, result: ValidationResult) -> PreflightCheck:
        """Check that stdio connectors ship server code."""
        layer = result.layer("connectors")
        missing = layer.by_check(Check.CONNECTOR_CODE_AVAILABLE) if layer else []
        if not missing:
            return PreflightCheck(
                name="connectors_have_code",
                passed=True,
                message="All stdio connectors have server code",
            )
        return PreflightCheck(
            name="connectors_have_code",
            passed=False,
            message="Missing server code for: "
                    + ", ".join(str(i.fields.get("connector")) for i in missing),
        )

    def _check_no_warnings(self, result: ValidationResult) -> PreflightCheck:
        """Strict mode: no validation warnings."""
        if not result.warnings:
            return PreflightCheck(
                name="no_warnings",
                passed=True,
                message="No warnings",
            )
        return PreflightCheck(
            name="no_warnings",
            passed=False,
            message=f"{len(result.warnings)} warnings (strict mode)",
        )


def run_preflight_checks(
    solution: Optional[SolutionInput],
    context: Optional[ContextInput] = None,
    skills: Optional[Sequence[SkillInput]] = None,
    strict: bool = False,
    config: Optional[ValidatorConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> PreflightResult:
    """
    Convenience function to run pre-flight checks.

    Args:
        solution: Solution model or raw mapping.
        context: Optional deploy context.
        skills: Optional implementation skills.
        strict: If True, fail on warnings.
        config: Optional validator configuration.
        logger: Optional logger.

    Returns:
        PreflightResult with all check results.
    """
    checker = PreflightChecker(config=config, logger=logger)
    return checker.run_checks(solution, context=context, skills=skills, strict=strict)
