"""
Validator configuration.

Defaults match the production runtime; a YAML file can override any of them:

    validator:
      reserved_path_roots: ["/mcp-store/", "/tenants/"]
      error_penalty: 15
      warning_penalty: 5
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


DEFAULT_PROTECTED_ARRAYS = [
    "tools",
    "meta_tools",
    "intents.supported",
    "policy.guardrails.always",
    "policy.guardrails.never",
]


@dataclass
class ValidatorConfig:
    """
    Tunable constants for validation and scoring.

    Attributes:
        internal_mechanism: Handoff mechanism that needs no connector.
        reserved_path_roots: Mount roots that must not appear in connector args.
        deprecated_path_roots: Legacy mount roots rejected in connector args.
        default_transport: Transport assumed when a connector declares none.
        protected_arrays: Dotted paths that only suffixed or indexed updates may change.
        error_penalty: Score points removed per error.
        warning_penalty: Score points removed per warning.
        max_workers: Thread pool size for concurrent skill loading.
    """

    internal_mechanism: str = "internal-message"
    reserved_path_roots: List[str] = field(
        default_factory=lambda: ["/mcp-store/", "/tenants/"]
    )
    deprecated_path_roots: List[str] = field(
        default_factory=lambda: ["/opt/mcp-connectors/"]
    )
    default_transport: str = "stdio"
    protected_arrays: List[str] = field(
        default_factory=lambda: list(DEFAULT_PROTECTED_ARRAYS)
    )
    error_penalty: int = 15
    warning_penalty: int = 5
    max_workers: int = 8

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorConfig":
        """Create from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key in known:
                values[key] = value
            else:
                logger.debug("Ignoring unknown config key %r", key)
        return cls(**values)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "ValidatorConfig":
        """Load configuration from YAML content."""
        try:
            data = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        section = data.get("validator", data)
        if not isinstance(section, dict):
            raise ConfigError("'validator' section must be a mapping")

        return cls.from_dict(section)

    @classmethod
    def from_file(cls, path: Path) -> "ValidatorConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return cls.from_yaml(f.read())
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
