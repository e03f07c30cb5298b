"""
Solution-Spec Pydantic models.

Typed view of a solution document and of the full implementation-skill
records that may accompany it. The models are deliberately lenient: every
list or mapping may be missing or null and falls back to empty, unknown keys
are preserved, and no cross-reference is checked here. Referential and
security checks live in the validator package.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


INTERNAL_MECHANISM = "internal-message"


class InvalidSolutionError(ValueError):
    """Raised when a document cannot be read as a solution at all."""


class Transport(str, Enum):
    """Connector transport."""

    STDIO = "stdio"
    HTTP = "http"


def string_list_fields(model: type) -> FrozenSet[str]:
    """Names of a model's ``List[str]`` fields."""
    return frozenset(
        name for name, info in model.model_fields.items()
        if get_origin(info.annotation) is list and get_args(info.annotation) == (str,)
    )


class LenientModel(BaseModel):
    """
    Base model: extra keys kept, explicit nulls fall back to defaults.

    Numeric ids are read as strings, and a bare string given where a list of
    ids is expected is read as a one-item list.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def normalize_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        string_lists = string_list_fields(cls)
        cleaned = {}
        for key, value in data.items():
            if value is None:
                continue
            if key in string_lists and isinstance(value, (str, int, float)):
                value = [value]
            cleaned[key] = value
        return cleaned


class TopologySkill(LenientModel):
    """Lightweight reference to a skill inside ``solution.skills``."""

    id: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    description: str = ""
    entry_channels: List[str] = Field(default_factory=list)
    connectors: List[str] = Field(default_factory=list)


class Grant(LenientModel):
    """A verified claim issued by some skills and consumed by others."""

    key: Optional[str] = None
    issued_by: List[str] = Field(default_factory=list)
    consumed_by: List[str] = Field(default_factory=list)
    internal: bool = False
    # Carried through untouched; no check reads them
    ttl_seconds: Optional[Any] = None
    values: Any = Field(default_factory=list)


class Handoff(LenientModel):
    """A directed transfer of a conversation from one skill to another."""

    id: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    trigger: str = ""
    grants_passed: List[str] = Field(default_factory=list)
    mechanism: Optional[str] = None

    @property
    def source(self) -> Optional[str]:
        return self.from_

    @property
    def target(self) -> Optional[str]:
        return self.to

    def carries(self, grant_key: str) -> bool:
        """True if this edge lists ``grant_key`` in grants_passed."""
        return grant_key in self.grants_passed

    def is_internal(self, internal_mechanism: str = INTERNAL_MECHANISM) -> bool:
        """True if the handoff needs no platform connector."""
        return not self.mechanism or self.mechanism == internal_mechanism


class SecurityContract(LenientModel):
    """Grants a consumer must receive from a provider via handoffs."""

    name: Optional[str] = None
    provider: Optional[str] = None
    consumer: Optional[str] = None
    requires_grants: List[str] = Field(default_factory=list)


class RoutingEntry(LenientModel):
    """Routing for a single channel."""

    default_skill: Optional[str] = None
    description: str = ""


class ActorType(LenientModel):
    key: Optional[str] = None
    label: Optional[str] = None


class Identity(LenientModel):
    """Solution identity configuration."""

    actor_types: List[ActorType] = Field(default_factory=list)
    admin_roles: List[str] = Field(default_factory=list)
    default_actor_type: Optional[str] = None

    @field_validator("actor_types", mode="before")
    @classmethod
    def coerce_actor_types(cls, v: Any) -> Any:
        # Bare strings are accepted as actor-type keys
        if isinstance(v, list):
            return [{"key": a} if isinstance(a, str) else a for a in v]
        return v

    @property
    def actor_type_keys(self) -> List[str]:
        return [a.key for a in self.actor_types if a.key]


class PlatformConnector(LenientModel):
    id: Optional[str] = None
    required: bool = False
    description: str = ""


class Solution(LenientModel):
    """
    Root model for a solution document.

    Attributes:
        id: Solution identifier.
        name: Human-readable name.
        skills: Topology skill entries.
        grants: Grant declarations.
        handoffs: Handoff edges.
        routing: Channel name to routing entry.
        platform_connectors: Platform-provided connectors.
        security_contracts: Security contracts between skills.
        identity: Actor types and admin roles.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    skills: List[TopologySkill] = Field(default_factory=list)
    grants: List[Grant] = Field(default_factory=list)
    handoffs: List[Handoff] = Field(default_factory=list)
    routing: Dict[str, RoutingEntry] = Field(default_factory=dict)
    platform_connectors: List[PlatformConnector] = Field(default_factory=list)
    security_contracts: List[SecurityContract] = Field(default_factory=list)
    identity: Identity = Field(default_factory=Identity)


# ---------------------------------------------------------------------------
# Implementation skills and deploy context
# ---------------------------------------------------------------------------


class ToolSource(LenientModel):
    type: Optional[str] = None
    connection_id: Optional[str] = None


class Tool(LenientModel):
    name: Optional[str] = None
    description: str = ""
    source: Optional[ToolSource] = None


class Intent(LenientModel):
    id: Optional[str] = None
    description: str = ""
    examples: List[str] = Field(default_factory=list)


class Intents(LenientModel):
    supported: List[Intent] = Field(default_factory=list)


class UiPlugin(LenientModel):
    id: Optional[str] = None
    connector_id: Optional[str] = None


class ImplementationSkill(LenientModel):
    """
    Full skill record as loaded from storage.

    A record whose ``status`` is ``NOT_FOUND`` is a placeholder for a skill
    that could not be loaded; ``error`` then carries the reason.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    original_skill_id: Optional[str] = None
    description: str = ""
    problem: Dict[str, Any] = Field(default_factory=dict)
    role: Dict[str, Any] = Field(default_factory=dict)
    prompt: Optional[str] = None
    tools: List[Tool] = Field(default_factory=list)
    intents: Intents = Field(default_factory=Intents)
    connectors: List[str] = Field(default_factory=list)
    ui_capable: bool = False
    ui_plugins: List[UiPlugin] = Field(default_factory=list)
    status: Optional[str] = None
    error: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.id or "unknown"

    @property
    def is_missing(self) -> bool:
        return self.status == "NOT_FOUND"


class SourceFile(LenientModel):
    path: str = ""
    content: str = ""


class ConnectorTool(LenientModel):
    name: Optional[str] = None


class Connector(LenientModel):
    """Connector entry from a deploy payload."""

    id: Optional[str] = None
    transport: Optional[str] = None
    command: Optional[str] = None
    args: List[Any] = Field(default_factory=list)
    config: Dict[str, Any] = Field(default_factory=dict)
    ui_capable: bool = False
    tools: List[ConnectorTool] = Field(default_factory=list)

    def launch_args(self) -> List[Any]:
        """Launch arguments, preferring ``config.args`` over ``args``."""
        return list(self.config.get("args") or self.args or [])


class DeployContext(LenientModel):
    """Optional deploy context for connector binding checks."""

    skills: List[ImplementationSkill] = Field(default_factory=list)
    connectors: List[Connector] = Field(default_factory=list)
    mcp_store: Dict[str, Any] = Field(default_factory=dict)

    def source_files(self, connector_id: Optional[str]) -> Optional[List[SourceFile]]:
        """
        Server source stored for a connector.

        Returns None when nothing is stored, and an empty list when the
        stored value is present but not a list of files.
        """
        stored = self.mcp_store.get(connector_id) if connector_id else None
        if not stored:
            return None
        if not isinstance(stored, list):
            return []
        return [SourceFile.model_validate(f) for f in stored if isinstance(f, dict)]


def as_implementation_skills(skills: Optional[Sequence[Any]]) -> List[ImplementationSkill]:
    """Coerce raw skill mappings into ImplementationSkill models."""
    return [
        s if isinstance(s, ImplementationSkill) else ImplementationSkill.model_validate(s)
        for s in skills or []
    ]
