"""
Issue taxonomy shared by every checker.

Each rule has a fixed ``Check`` code, and each code has exactly one severity,
so identical input always classifies identically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Level(str, Enum):
    """Report bucket an issue belongs to."""

    TECHNICAL = "level_1_technical"
    COMPLETENESS = "level_2_completeness"
    INTELLIGENT = "level_3_intelligent"


class Check(str, Enum):
    """Closed set of check codes emitted by the validator."""

    # Snapshot loading
    SOLUTION_FILE_READABLE = "solution_file_readable"
    SOLUTION_SHAPE = "solution_shape"

    # Identity
    IDENTITY_ACTOR_TYPES = "identity_actor_types"
    IDENTITY_ADMIN_ROLES = "identity_admin_roles"
    IDENTITY_DEFAULT_TYPE_VALID = "identity_default_type_valid"
    IDENTITY_ADMIN_ROLE_VALID = "identity_admin_role_valid"

    # Referential integrity
    GRANT_PROVIDER_EXISTS = "grant_provider_exists"
    GRANT_CONSUMER_EXISTS = "grant_consumer_exists"
    HANDOFF_SOURCE_EXISTS = "handoff_source_exists"
    HANDOFF_TARGET_EXISTS = "handoff_target_exists"
    ROUTING_TARGET_EXISTS = "routing_target_exists"
    ROUTING_COVERS_CHANNELS = "routing_covers_channels"
    CONTRACT_CONSUMER_EXISTS = "contract_consumer_exists"
    CONTRACT_PROVIDER_EXISTS = "contract_provider_exists"
    PLATFORM_CONNECTORS_DECLARED = "platform_connectors_declared"

    # Grant flow
    GRANT_PROVIDER_MISSING = "grant_provider_missing"
    CONTRACT_HANDOFF_PATH = "contract_handoff_path"
    GRANTS_PASSED_MATCH = "grants_passed_match"

    # Graph shape
    CIRCULAR_HANDOFFS = "circular_handoffs"
    NO_ORPHAN_SKILLS = "no_orphan_skills"

    # Connector bindings (deploy context)
    MCP_BRIDGE_CONNECTOR_EXISTS = "mcp_bridge_connector_exists"
    CONNECTOR_CODE_AVAILABLE = "connector_code_available"
    CONNECTOR_NO_ABSOLUTE_PATHS = "connector_no_absolute_paths"
    CONNECTOR_DEPRECATED_PATH = "connector_deprecated_path"
    CONNECTOR_MISSING_PACKAGE_JSON = "connector_missing_package_json"
    CONNECTOR_MISSING_DEPENDENCIES = "connector_missing_dependencies"
    SKILL_CONNECTOR_DECLARED = "skill_connector_declared"
    CONNECTOR_UNUSED = "connector_unused"
    UI_CAPABLE_FLAG = "ui_capable_flag"
    UI_PLUGIN_CONNECTOR_EXISTS = "ui_plugin_connector_exists"
    UI_CONNECTOR_HAS_GETPLUGIN = "ui_connector_has_getplugin"
    UI_CONNECTOR_HAS_LISTPLUGINS = "ui_connector_has_listplugins"
    UI_CONNECTOR_TRANSPORT = "ui_connector_transport"

    # Implementation skills
    SKILL_NOT_FOUND = "skill_not_found"
    SKILL_DESCRIPTION = "skill_description"
    SKILL_PROMPT = "skill_prompt"
    SKILL_TOOLS = "skill_tools"
    TOOL_DESCRIPTION = "tool_description"
    INTENT_EXAMPLES = "intent_examples"


_WARNINGS = {
    Check.IDENTITY_ACTOR_TYPES,
    Check.IDENTITY_ADMIN_ROLES,
    Check.IDENTITY_ADMIN_ROLE_VALID,
    Check.ROUTING_COVERS_CHANNELS,
    Check.PLATFORM_CONNECTORS_DECLARED,
    Check.CONTRACT_HANDOFF_PATH,
    Check.NO_ORPHAN_SKILLS,
    Check.CONNECTOR_MISSING_DEPENDENCIES,
    Check.SKILL_CONNECTOR_DECLARED,
    Check.CONNECTOR_UNUSED,
    Check.UI_CAPABLE_FLAG,
    Check.UI_CONNECTOR_HAS_GETPLUGIN,
    Check.UI_CONNECTOR_HAS_LISTPLUGINS,
    Check.SKILL_DESCRIPTION,
    Check.SKILL_PROMPT,
    Check.SKILL_TOOLS,
}

_INFO = {
    Check.TOOL_DESCRIPTION,
    Check.INTENT_EXAMPLES,
}

_COMPLETENESS = {
    Check.SKILL_DESCRIPTION,
    Check.SKILL_PROMPT,
    Check.SKILL_TOOLS,
    Check.TOOL_DESCRIPTION,
    Check.INTENT_EXAMPLES,
}

CHECK_SEVERITY: Dict[Check, Severity] = {
    check: (
        Severity.WARNING if check in _WARNINGS
        else Severity.INFO if check in _INFO
        else Severity.ERROR
    )
    for check in Check
}

CHECK_LEVEL: Dict[Check, Level] = {
    check: Level.COMPLETENESS if check in _COMPLETENESS else Level.TECHNICAL
    for check in Check
}

# Upstream analysers report blocker/warning/suggestion
_SEVERITY_ALIASES = {
    "blocker": Severity.ERROR,
    "critical": Severity.ERROR,
    "suggestion": Severity.INFO,
}


def normalize_severity(value: Any) -> Severity:
    """Map an upstream severity label onto error/warning/info."""
    if isinstance(value, Severity):
        return value
    label = str(value or "").strip().lower()
    if label in _SEVERITY_ALIASES:
        return _SEVERITY_ALIASES[label]
    try:
        return Severity(label)
    except ValueError:
        return Severity.INFO


@dataclass
class Issue:
    """A single finding produced by a checker."""

    check: Check
    message: str
    severity: Severity
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def level(self) -> Level:
        return CHECK_LEVEL[self.check]

    def to_dict(self, include_severity: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {"check": self.check.value, "message": self.message}
        if include_severity:
            data["severity"] = self.severity.value
        data.update(self.fields)
        return data

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.check.value}: {self.message}"


@dataclass
class CheckerResult:
    """Issues collected by one checker."""

    name: str
    valid: bool = True
    issues: List[Issue] = field(default_factory=list)

    def add_issue(self, check: Check, message: str, **fields: Any) -> Issue:
        """Record an issue with the severity fixed for its check."""
        issue = Issue(
            check=check,
            message=message,
            severity=CHECK_SEVERITY[check],
            fields=fields,
        )
        self.issues.append(issue)
        if issue.severity == Severity.ERROR:
            self.valid = False
        return issue

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    def by_check(self, check: Check) -> List[Issue]:
        return [i for i in self.issues if i.check == check]
