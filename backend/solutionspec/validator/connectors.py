"""
Connector Binding Validation.

Runs only when a deploy context (implementation skills, connector list and
mcp_store) accompanies the solution. Validates:
- mcp_bridge tools point at a connector in the deploy payload
- stdio connectors ship server source, with a package.json covering its imports
- launch arguments avoid reserved and deprecated absolute mount paths
- skills reference declared connectors, and every connector is used
- UI plugins point at declared, stdio, discovery-capable connectors
"""

from __future__ import annotations

import json
import logging
import re
from typing import Dict, List, Optional, Set

from ..config import ValidatorConfig
from ..models import Connector, DeployContext, SourceFile, Transport
from .graph import SolutionGraph
from .issues import Check, CheckerResult

logger = logging.getLogger(__name__)


MCP_BRIDGE = "mcp_bridge"
SERVER_ENTRY_FILES = ("server.js", "index.js", "server.ts")
UI_DOCS = "API docs: GET /spec/examples/connector-ui"

UI_TOOL_CHECKS = {
    "ui.getPlugin": (Check.UI_CONNECTOR_HAS_GETPLUGIN, "the dashboard cannot load"),
    "ui.listPlugins": (Check.UI_CONNECTOR_HAS_LISTPLUGINS, "plugin discovery will fail"),
}

NODE_BUILTINS = frozenset({
    "fs", "path", "http", "https", "crypto", "url", "os", "util", "stream",
    "events", "child_process", "net", "tls", "dns", "querystring", "readline",
    "assert", "buffer", "zlib", "worker_threads", "cluster", "dgram",
    "perf_hooks", "async_hooks", "v8", "vm", "module", "timers", "console",
    "process", "string_decoder", "punycode",
})

_REQUIRE_RE = re.compile(r"""require\s*\(\s*['"]([^./][^'"]*)['"]\s*\)""")
_IMPORT_RE = re.compile(r"""from\s+['"]([^./][^'"]*)['"]""")


def package_name(module: str) -> str:
    """npm package a module specifier belongs to (``@scope/pkg`` or ``pkg``)."""
    parts = module.split("/")
    if module.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


def external_modules(code: str) -> List[str]:
    """
    Non-builtin modules a server file requires or imports.

    Relative specifiers are ignored, and ``node:``-prefixed builtins are
    treated like their bare names.
    """
    found = _REQUIRE_RE.findall(code) + _IMPORT_RE.findall(code)
    modules: List[str] = []
    for module in dict.fromkeys(found):
        base = package_name(module)
        if base.startswith("node:") or base in NODE_BUILTINS:
            continue
        modules.append(module)
    return modules


def _find_file(files: List[SourceFile], *names: str) -> Optional[SourceFile]:
    for f in files:
        if f.path in names:
            return f
    return None


class ConnectorBindingValidator:
    """Checks tool, connector and UI-plugin bindings against a deploy payload."""

    name = "connectors"

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()

    def validate(self, graph: SolutionGraph, context: DeployContext) -> CheckerResult:
        """
        Validate connector bindings.

        Args:
            graph: Indexed solution.
            context: Implementation skills, connectors and mcp_store.

        Returns:
            CheckerResult with binding issues.
        """
        result = CheckerResult(name=self.name)

        connector_ids = {c.id for c in context.connectors if c.id}
        declared = connector_ids | set(graph.platform_connector_ids)

        self._check_bridge_tools(context, connector_ids, result)
        for connector in context.connectors:
            self._check_source(connector, context, result)
            self._check_paths(connector, result)
        self._check_skill_connectors(context, declared, result)
        self._check_unused(context, result)
        self._check_ui_plugins(context, declared, result)
        self._check_ui_transport(context, result)

        return result

    def _check_bridge_tools(
        self,
        context: DeployContext,
        connector_ids: Set[str],
        result: CheckerResult,
    ) -> None:
        for skill in context.skills:
            for tool in skill.tools:
                source = tool.source
                if source is None or source.type != MCP_BRIDGE or not source.connection_id:
                    continue
                if source.connection_id not in connector_ids:
                    result.add_issue(
                        Check.MCP_BRIDGE_CONNECTOR_EXISTS,
                        f'Tool "{tool.name}" in skill "{skill.display_name}" references '
                        f'connector "{source.connection_id}" which is not in the connectors array',
                        skill=skill.id,
                        tool=tool.name,
                        connector=source.connection_id,
                    )

    def _check_source(
        self,
        connector: Connector,
        context: DeployContext,
        result: CheckerResult,
    ) -> None:
        transport = connector.transport or self.config.default_transport
        files = context.source_files(connector.id)

        if files is None:
            if transport == Transport.STDIO:
                result.add_issue(
                    Check.CONNECTOR_CODE_AVAILABLE,
                    f'Connector "{connector.id}" has no server code. Provide the tool '
                    f"implementations in mcp_store.{connector.id}; without it the "
                    f"connector will fail to start.",
                    connector=connector.id,
                    fix=f'Add mcp_store: {{ "{connector.id}": [{{ path: "server.js", '
                        f'content: "..." }}] }} to your deploy payload.',
                )
            return

        server = _find_file(files, *SERVER_ENTRY_FILES)
        modules = external_modules(server.content if server else "")
        if not modules:
            return

        package_file = _find_file(files, "package.json")
        if package_file is None:
            shown = modules[:5]
            deps = ", ".join(f'"{package_name(m)}": "*"' for m in shown)
            result.add_issue(
                Check.CONNECTOR_MISSING_PACKAGE_JSON,
                f'Connector "{connector.id}" server code requires npm packages '
                f'({", ".join(shown)}) but no package.json was included in mcp_store',
                connector=connector.id,
                fix=f"Add a package.json to mcp_store.{connector.id}: "
                    f'{{ "name": "{connector.id}", "dependencies": {{ {deps} }} }}',
            )
            return

        declared = self._declared_dependencies(connector, package_file)
        missing = [
            name for name in dict.fromkeys(package_name(m) for m in modules)
            if name not in declared
        ]
        if missing:
            result.add_issue(
                Check.CONNECTOR_MISSING_DEPENDENCIES,
                f'Connector "{connector.id}" server code requires {", ".join(missing)} '
                f"but package.json does not declare {'it' if len(missing) == 1 else 'them'}",
                connector=connector.id,
                fix="Add to package.json dependencies: "
                    + ", ".join(f'"{m}": "*"' for m in missing),
            )

    def _declared_dependencies(self, connector: Connector, package_file: SourceFile) -> Set[str]:
        try:
            manifest = json.loads(package_file.content or "{}")
        except ValueError:
            logger.debug("Unparsable package.json for connector %s", connector.id)
            return set()
        if not isinstance(manifest, dict):
            return set()

        declared: Set[str] = set()
        for section in ("dependencies", "devDependencies"):
            deps = manifest.get(section)
            if isinstance(deps, dict):
                declared.update(deps)
        return declared

    def _check_paths(self, connector: Connector, result: CheckerResult) -> None:
        for arg in connector.launch_args():
            if not isinstance(arg, str):
                continue

            if any(arg.startswith(root) for root in self.config.reserved_path_roots):
                filename = arg.rsplit("/", 1)[-1]
                result.add_issue(
                    Check.CONNECTOR_NO_ABSOLUTE_PATHS,
                    f'Connector "{connector.id}" has hardcoded absolute path "{arg}" in args. '
                    f"Use relative filenames; the runtime resolves the mcp-store path.",
                    connector=connector.id,
                    fix=f'Replace "{arg}" with just the filename: "{filename}"',
                )

            if any(root in arg for root in self.config.deprecated_path_roots):
                result.add_issue(
                    Check.CONNECTOR_DEPRECATED_PATH,
                    f'Connector "{connector.id}" uses a deprecated path in args: "{arg}"',
                    connector=connector.id,
                    fix="Remove command and args so the entry point is resolved from "
                        "mcp_store, or use a relative filename.",
                )

    def _check_skill_connectors(
        self,
        context: DeployContext,
        declared: Set[str],
        result: CheckerResult,
    ) -> None:
        for skill in context.skills:
            for connector_id in skill.connectors:
                if connector_id not in declared:
                    result.add_issue(
                        Check.SKILL_CONNECTOR_DECLARED,
                        f'Skill "{skill.display_name}" references connector "{connector_id}" '
                        f"which is not declared in the solution's connectors or platform_connectors",
                        skill=skill.id,
                        connector=connector_id,
                    )

    def _check_unused(self, context: DeployContext, result: CheckerResult) -> None:
        used = {c for skill in context.skills for c in skill.connectors}
        for connector in context.connectors:
            if connector.id not in used:
                result.add_issue(
                    Check.CONNECTOR_UNUSED,
                    f'Connector "{connector.id}" is defined but not referenced by any skill',
                    connector=connector.id,
                )

    def _check_ui_plugins(
        self,
        context: DeployContext,
        declared: Set[str],
        result: CheckerResult,
    ) -> None:
        by_id: Dict[str, Connector] = {c.id: c for c in context.connectors if c.id}

        for skill in context.skills:
            if not skill.ui_plugins:
                continue

            if not skill.ui_capable:
                result.add_issue(
                    Check.UI_CAPABLE_FLAG,
                    f'Skill "{skill.display_name}" has {len(skill.ui_plugins)} ui_plugins '
                    f"but ui_capable is not set to true",
                    skill=skill.id,
                )

            for plugin in skill.ui_plugins:
                if not plugin.connector_id:
                    continue

                if plugin.connector_id not in declared:
                    result.add_issue(
                        Check.UI_PLUGIN_CONNECTOR_EXISTS,
                        f'UI plugin "{plugin.id}" in skill "{skill.display_name}" references '
                        f'connector "{plugin.connector_id}" which is not declared',
                        skill=skill.id,
                        plugin=plugin.id,
                        connector=plugin.connector_id,
                    )

                connector = by_id.get(plugin.connector_id)
                # Only checkable when the payload lists the connector's tools
                if connector is None or not connector.tools:
                    continue
                tool_names = {t.name for t in connector.tools}
                for tool_name, (check, consequence) in UI_TOOL_CHECKS.items():
                    if tool_name not in tool_names:
                        result.add_issue(
                            check,
                            f'Connector "{plugin.connector_id}" used by UI plugin "{plugin.id}" '
                            f'is missing "{tool_name}" tool; {consequence}',
                            skill=skill.id,
                            plugin=plugin.id,
                            connector=plugin.connector_id,
                        )

    def _check_ui_transport(self, context: DeployContext, result: CheckerResult) -> None:
        for connector in context.connectors:
            if not connector.ui_capable:
                continue
            transport = connector.transport or self.config.default_transport
            if transport != Transport.STDIO:
                result.add_issue(
                    Check.UI_CONNECTOR_TRANSPORT,
                    f'UI-capable connector "{connector.id}" must use transport "stdio", '
                    f'got "{transport}"',
                    connector=connector.id,
                    docs=UI_DOCS,
                )
