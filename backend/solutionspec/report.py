"""
Validation Report Generator.

Builds the leveled, scored report for a solution:
- level_1_technical: referential, grant-flow, graph and connector issues,
  plus implementation skills that failed to load
- level_2_completeness: presence checks over implementation skills
- level_3_intelligent: externally computed analysis, merged verbatim
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .config import ValidatorConfig
from .identity import MAPPED, ORPHAN, UNMAPPED, SkillIdentity, build_skill_mapping
from .models import ImplementationSkill, as_implementation_skills
from .validator.completeness import CompletenessChecker
from .validator.engine import ContextInput, ValidationEngine, as_deploy_context
from .validator.graph import SolutionGraph, SolutionInput
from .validator.issues import Check, Issue, Level, Severity, normalize_severity


STATUS_ERROR = "error"
STATUS_WARNING = "warning"
STATUS_VALID = "valid"

_CONTRACT_CHECKS = {Check.CONTRACT_HANDOFF_PATH, Check.GRANTS_PASSED_MATCH}

SkillInput = Union[ImplementationSkill, Mapping[str, Any]]


def compute_score(errors: int, warnings: int, config: Optional[ValidatorConfig] = None) -> int:
    """Health score: 100 minus the per-issue penalties, clamped to [0, 100]."""
    config = config or ValidatorConfig()
    score = 100 - config.error_penalty * errors - config.warning_penalty * warnings
    return max(0, min(100, score))


def report_status(errors: int, warnings: int) -> str:
    if errors:
        return STATUS_ERROR
    if warnings:
        return STATUS_WARNING
    return STATUS_VALID


def _count(issues: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for issue in issues:
        counts[normalize_severity(issue.get("severity")).value] += 1
    return counts


@dataclass
class ValidationReport:
    """Leveled validation report for one solution."""

    solution_id: Optional[str]
    solution_name: Optional[str]
    generated_at: str
    summary: Dict[str, Any]
    skill_mapping: List[SkillIdentity] = field(default_factory=list)
    level_1_technical: List[Dict[str, Any]] = field(default_factory=list)
    level_2_completeness: List[Dict[str, Any]] = field(default_factory=list)
    level_3_intelligent: List[Dict[str, Any]] = field(default_factory=list)
    per_skill_validation: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def score(self) -> int:
        return self.summary["score"]

    @property
    def status(self) -> str:
        return self.summary["status"]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "solution_id": self.solution_id,
            "solution_name": self.solution_name,
            "generated_at": self.generated_at,
            "summary": self.summary,
            "skill_mapping": [m.to_dict() for m in self.skill_mapping],
            Level.TECHNICAL.value: self.level_1_technical,
            Level.COMPLETENESS.value: self.level_2_completeness,
            Level.INTELLIGENT.value: self.level_3_intelligent,
            "per_skill_validation": self.per_skill_validation,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_markdown(self) -> str:
        """Convert to Markdown format report."""
        lines = []
        summary = self.summary

        lines.append(f"# Validation Report: {self.solution_name or self.solution_id or 'Unknown'}")
        lines.append("")
        lines.append(f"**Status:** {summary['status'].upper()}")
        lines.append(f"**Score:** {summary['score']}/100")
        lines.append(f"**Errors:** {summary['errors']}")
        lines.append(f"**Warnings:** {summary['warnings']}")
        lines.append(f"**Info:** {summary['info']}")
        lines.append("")

        skills = summary.get("skills", {})
        if skills:
            lines.append("## Skills")
            lines.append("")
            lines.append("| Status | Count |")
            lines.append("|--------|-------|")
            for key in ("total", MAPPED, UNMAPPED, ORPHAN, "not_found"):
                lines.append(f"| {key} | {skills.get(key, 0)} |")
            lines.append("")

        if self.skill_mapping:
            lines.append("### Skill Mapping")
            lines.append("")
            for m in self.skill_mapping:
                target = m.implementation_id or "-"
                via = f" (by {m.matched_by})" if m.matched_by else ""
                lines.append(f"- `{m.topology_id or '-'}` → `{target}`: {m.status}{via}")
            lines.append("")

        sections = (
            ("Level 1: Technical", self.level_1_technical),
            ("Level 2: Completeness", self.level_2_completeness),
            ("Level 3: Intelligent Analysis", self.level_3_intelligent),
        )
        for title, issues in sections:
            if not issues:
                continue
            lines.append(f"## {title}")
            lines.append("")
            for issue in issues:
                severity = normalize_severity(issue.get("severity")).value
                check = issue.get("check") or issue.get("type") or "issue"
                lines.append(f"- [{severity}] **{check}**: {issue.get('message', '')}")
                fix = issue.get("fix")
                if fix:
                    lines.append(f"  - Fix: {fix}")
            lines.append("")

        lines.append("## Report Metadata")
        lines.append("")
        lines.append(f"- **Generated At:** {self.generated_at}")
        lines.append("")

        return "\n".join(lines)

    def save(self, output_path: Path, format: str = "json") -> None:
        """
        Save report to file.

        Args:
            output_path: Path to save the report.
            format: Output format, either 'json' or 'markdown'.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if format == "markdown":
            output_path.write_text(self.to_markdown(), encoding="utf-8")
        else:
            output_path.write_text(self.to_json(), encoding="utf-8")


def generate_validation_report(
    solution: Optional[SolutionInput],
    skills: Optional[Sequence[SkillInput]] = None,
    context: Optional[ContextInput] = None,
    intelligent_issues: Optional[Sequence[Dict[str, Any]]] = None,
    config: Optional[ValidatorConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> ValidationReport:
    """
    Generate the leveled validation report for a solution.

    Args:
        solution: Solution model or raw mapping.
        skills: Implementation skills, including ``NOT_FOUND`` placeholders.
            Defaults to the skills in ``context``.
        context: Optional deploy context enabling connector checks.
        intelligent_issues: Externally computed findings for level 3.
        config: Optional validator configuration.
        logger: Optional logger.

    Returns:
        ValidationReport ready for serialization.

    Raises:
        ValueError: If ``solution`` is None.
    """
    config = config or ValidatorConfig()
    logger = logger or logging.getLogger(__name__)

    graph = SolutionGraph.build(solution)
    deploy = as_deploy_context(context)
    implementation = as_implementation_skills(skills) if skills is not None else (
        list(deploy.skills) if deploy is not None else []
    )

    flat = ValidationEngine(config=config, logger=logger).validate_graph(graph, deploy)

    level_1: List[Issue] = list(flat.issues)
    level_2: List[Issue] = []
    per_skill: List[Dict[str, Any]] = []

    checker = CompletenessChecker()
    for skill in implementation:
        skill_result = checker.validate_skill(skill)
        for issue in skill_result.issues:
            (level_2 if issue.level == Level.COMPLETENESS else level_1).append(issue)
        per_skill.append({
            "skill_id": skill.id,
            "skill_name": skill.display_name,
            "status": skill.status or "LOADED",
            "valid": skill_result.valid,
            "issues": [i.to_dict(include_severity=True) for i in skill_result.issues],
        })

    level_1_dicts = [i.to_dict(include_severity=True) for i in level_1]
    level_2_dicts = [i.to_dict(include_severity=True) for i in level_2]
    level_3_dicts = [dict(i) for i in intelligent_issues or []]

    counts = _count(level_1_dicts + level_2_dicts + level_3_dicts)
    errors = counts[Severity.ERROR.value]
    warnings = counts[Severity.WARNING.value]

    mapping = build_skill_mapping(graph.skills, implementation)
    statuses = [m.status for m in mapping]

    summary = {
        "errors": errors,
        "warnings": warnings,
        "info": counts[Severity.INFO.value],
        "total": sum(counts.values()),
        "score": compute_score(errors, warnings, config),
        "status": report_status(errors, warnings),
        "skills": {
            "total": len(graph.skills),
            "loaded": sum(1 for s in implementation if not s.is_missing),
            "not_found": sum(1 for s in implementation if s.is_missing),
            MAPPED: statuses.count(MAPPED),
            UNMAPPED: statuses.count(UNMAPPED),
            ORPHAN: statuses.count(ORPHAN),
        },
        "security": {
            "grants": len(graph.grants),
            "internal_grants": sum(1 for g in graph.grants if g.internal),
            "handoffs": len(graph.handoffs),
            "security_contracts": len(graph.contracts),
            "contract_issues": sum(1 for i in level_1 if i.check in _CONTRACT_CHECKS),
        },
        "consistency_checks": {
            r.name: {
                "valid": r.valid,
                "errors": len(r.errors),
                "warnings": len(r.warnings),
            }
            for r in flat.results
        },
    }

    logger.info(
        "Report for solution %s: score %d, status %s",
        graph.solution_id or "<unnamed>",
        summary["score"],
        summary["status"],
    )

    return ValidationReport(
        solution_id=graph.solution_id,
        solution_name=graph.solution_name,
        generated_at=datetime.now(timezone.utc).isoformat(),
        summary=summary,
        skill_mapping=mapping,
        level_1_technical=level_1_dicts,
        level_2_completeness=level_2_dicts,
        level_3_intelligent=level_3_dicts,
        per_skill_validation=per_skill,
    )
