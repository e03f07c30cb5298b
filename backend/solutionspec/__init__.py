"""
Solution-Spec: cross-skill consistency and security-contract validation.

This package checks a multi-skill solution before deployment: every
cross-skill reference, every grant chain promised by a security contract,
and the shape of the handoff graph.
"""

from .config import ConfigError, ValidatorConfig
from .models import (
    Solution,
    TopologySkill,
    Grant,
    Handoff,
    SecurityContract,
    RoutingEntry,
    Identity,
    PlatformConnector,
    ImplementationSkill,
    Connector,
    DeployContext,
    InvalidSolutionError,
)
from .validator import (
    Check,
    Issue,
    Severity,
    SolutionGraph,
    ValidationEngine,
    ValidationResult,
    validate_solution,
)
from .identity import SkillIdentity, build_skill_mapping
from .loading import load_skill_bodies, load_solution_file
from .updates import apply_updates, parse_updates
from .report import ValidationReport, generate_validation_report
from .preflight import PreflightResult, run_preflight_checks

__version__ = "1.0.0"
__all__ = [
    "ConfigError",
    "ValidatorConfig",
    "Solution",
    "TopologySkill",
    "Grant",
    "Handoff",
    "SecurityContract",
    "RoutingEntry",
    "Identity",
    "PlatformConnector",
    "ImplementationSkill",
    "Connector",
    "DeployContext",
    "InvalidSolutionError",
    "Check",
    "Issue",
    "Severity",
    "SolutionGraph",
    "ValidationEngine",
    "ValidationResult",
    "validate_solution",
    "SkillIdentity",
    "build_skill_mapping",
    "load_skill_bodies",
    "load_solution_file",
    "apply_updates",
    "parse_updates",
    "ValidationReport",
    "generate_validation_report",
    "PreflightResult",
    "run_preflight_checks",
]
