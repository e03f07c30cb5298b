"""
Solution-Spec Validation Engine.

This package checks a solution's cross-skill consistency and security
contracts:
- References: every skill, channel and connector reference resolves
- Grant flow: consumed grants have issuers and travel along contract paths
- Reachability: every skill has a route or handoff into it
- Cycles: no circular handoff chains
- Connectors: deploy-context tool and connector bindings (optional)
- Completeness: implementation skills are filled in (report only)
"""

from .issues import (
    Check,
    CheckerResult,
    Issue,
    Level,
    Severity,
    CHECK_LEVEL,
    CHECK_SEVERITY,
    normalize_severity,
)
from ..models import InvalidSolutionError
from .graph import SolutionGraph
from .references import ReferentialIntegrityChecker
from .grant_flow import GrantFlowAnalyzer, find_handoff_path
from .cycles import CycleDetector, detect_cycles
from .reachability import ReachabilityChecker, reachable_skills
from .connectors import ConnectorBindingValidator
from .completeness import CompletenessChecker
from .engine import ValidationEngine, ValidationResult, validate_solution

__all__ = [
    # Issues
    "Check",
    "CheckerResult",
    "Issue",
    "Level",
    "Severity",
    "CHECK_LEVEL",
    "CHECK_SEVERITY",
    "normalize_severity",
    # Graph
    "SolutionGraph",
    "InvalidSolutionError",
    # Checkers
    "ReferentialIntegrityChecker",
    "GrantFlowAnalyzer",
    "find_handoff_path",
    "CycleDetector",
    "detect_cycles",
    "ReachabilityChecker",
    "reachable_skills",
    "ConnectorBindingValidator",
    "CompletenessChecker",
    # Engine
    "ValidationEngine",
    "ValidationResult",
    "validate_solution",
]
