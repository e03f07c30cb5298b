"""
Validation Engine.

Runs every checker against one indexed solution and merges their output into
the flat ``{valid, errors, warnings, summary}`` result. Checkers run in a
fixed order:
- References: cross-reference and identity checks
- Grant flow: issuers, contract paths and grant passage
- Reachability: orphan skills
- Cycles: circular handoff chains
- Connectors: deploy-context bindings (only when a context is supplied)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import ValidatorConfig
from ..loading import load_solution_file
from ..models import DeployContext, InvalidSolutionError
from .connectors import ConnectorBindingValidator
from .cycles import CycleDetector
from .grant_flow import GrantFlowAnalyzer
from .graph import SolutionGraph, SolutionInput
from .issues import Check, CheckerResult, Issue, Severity
from .reachability import ReachabilityChecker
from .references import ReferentialIntegrityChecker


ContextInput = Union[DeployContext, Mapping[str, Any]]


def as_deploy_context(context: Optional[ContextInput]) -> Optional[DeployContext]:
    """Coerce a raw deploy context mapping into a DeployContext."""
    if context is None or isinstance(context, DeployContext):
        return context
    try:
        return DeployContext.model_validate(context)
    except ValidationError as e:
        raise InvalidSolutionError(f"Not a valid deploy context: {e}") from e


@dataclass
class ValidationResult:
    """
    Combined result from all checkers.

    Attributes:
        valid: True when no checker reported an error.
        results: Per-checker results in run order.
        counts: Entity counts of the validated solution.
    """

    valid: bool
    results: List[CheckerResult] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)

    def record(self, checker_result: CheckerResult) -> None:
        self.results.append(checker_result)
        if not checker_result.valid:
            self.valid = False

    @property
    def issues(self) -> List[Issue]:
        return [issue for r in self.results for issue in r.issues]

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    def layer(self, name: str) -> Optional[CheckerResult]:
        """Result of the checker called ``name``, if it ran."""
        for r in self.results:
            if r.name == name:
                return r
        return None

    def summary(self) -> Dict[str, int]:
        summary = dict(self.counts)
        summary["error_count"] = len(self.errors)
        summary["warning_count"] = len(self.warnings)
        return summary

    def summary_text(self) -> str:
        """Generate a summary of validation results."""
        lines = []
        status = "PASSED" if self.valid else "FAILED"
        lines.append(f"Validation {status}")
        lines.append(f"  Errors: {len(self.errors)}")
        lines.append(f"  Warnings: {len(self.warnings)}")
        for name, count in self.counts.items():
            lines.append(f"  {name.replace('_', ' ').title()}: {count}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the flat dictionary shape."""
        return {
            "valid": self.valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "summary": self.summary(),
        }


class ValidationEngine:
    """Unified engine combining every solution checker."""

    def __init__(
        self,
        config: Optional[ValidatorConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the validation engine.

        Args:
            config: Validator configuration; defaults apply when omitted.
            logger: Logger for progress records; never affects results.
        """
        self.config = config or ValidatorConfig()
        self.logger = logger or logging.getLogger(__name__)

        self.references = ReferentialIntegrityChecker(self.config)
        self.grant_flow = GrantFlowAnalyzer()
        self.reachability = ReachabilityChecker()
        self.cycles = CycleDetector()
        self.connectors = ConnectorBindingValidator(self.config)

    def validate(
        self,
        solution: Optional[SolutionInput],
        context: Optional[ContextInput] = None,
    ) -> ValidationResult:
        """
        Validate a solution document.

        Args:
            solution: Solution model or raw mapping.
            context: Optional deploy context enabling connector checks.

        Returns:
            ValidationResult with every issue found.

        Raises:
            ValueError: If ``solution`` is None.
            InvalidSolutionError: If the deploy context has the wrong shape.
        """
        graph = SolutionGraph.build(solution)
        return self.validate_graph(graph, as_deploy_context(context))

    def validate_graph(
        self,
        graph: SolutionGraph,
        context: Optional[DeployContext] = None,
    ) -> ValidationResult:
        """Run all checkers against an already indexed solution."""
        result = ValidationResult(valid=True, counts=graph.summary())

        for checker in (self.references, self.grant_flow, self.reachability, self.cycles):
            self._record(result, checker.validate(graph))

        if context is not None:
            self._record(result, self.connectors.validate(graph, context))

        self.logger.info(
            "Validated solution %s: %s (%d errors, %d warnings)",
            graph.solution_id or "<unnamed>",
            "valid" if result.valid else "invalid",
            len(result.errors),
            len(result.warnings),
        )
        return result

    def _record(self, result: ValidationResult, checker_result: CheckerResult) -> None:
        self.logger.debug(
            "%s: %d errors, %d warnings",
            checker_result.name,
            len(checker_result.errors),
            len(checker_result.warnings),
        )
        result.record(checker_result)

    def validate_file(
        self,
        path: Path,
        context: Optional[ContextInput] = None,
    ) -> ValidationResult:
        """
        Validate a YAML or JSON solution file.

        Args:
            path: Path to the solution file.
            context: Optional deploy context.

        Returns:
            ValidationResult; a failed result when the file cannot be read.
        """
        path = Path(path)
        if not path.exists():
            return self._unreadable(f"File not found: {path}")

        try:
            solution = load_solution_file(path)
            return self.validate(solution, context)
        except InvalidSolutionError as e:
            return self._unreadable(str(e))

    def _unreadable(self, message: str) -> ValidationResult:
        self.logger.warning("Cannot validate solution file: %s", message)
        failed = CheckerResult(name="file")
        failed.add_issue(Check.SOLUTION_FILE_READABLE, message)
        result = ValidationResult(valid=True)
        result.record(failed)
        return result


def validate_solution(
    solution: Optional[SolutionInput],
    context: Optional[ContextInput] = None,
    config: Optional[ValidatorConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> ValidationResult:
    """
    Convenience function to validate a solution document.

    Args:
        solution: Solution model or raw mapping.
        context: Optional ``{skills, connectors, mcp_store}`` deploy context.
        config: Optional validator configuration.
        logger: Optional logger.

    Returns:
        ValidationResult with combined results.
    """
    engine = ValidationEngine(config=config, logger=logger)
    return engine.validate(solution, context)
