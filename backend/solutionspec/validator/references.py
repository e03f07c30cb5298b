"""
Referential Integrity Validation.

Confirms that every cross-reference in a solution resolves to a declared
entity:
- Grant issuers and consumers are declared skills
- Handoff endpoints are declared skills
- Routing targets are declared skills, and declared entry channels are routed
- Security-contract providers and consumers are declared skills
- Handoff mechanisms are declared platform connectors
- Identity defaults and admin roles are declared actor types
- Every entry of the document could be read at all
"""

from __future__ import annotations

from typing import Optional

from ..config import ValidatorConfig
from .graph import SolutionGraph
from .issues import Check, CheckerResult


class ReferentialIntegrityChecker:
    """Checks that every skill, channel and connector reference resolves."""

    name = "references"

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()

    def validate(self, graph: SolutionGraph) -> CheckerResult:
        """
        Check all references in the solution graph.

        Args:
            graph: Indexed solution.

        Returns:
            CheckerResult with one issue per unresolved reference.
        """
        result = CheckerResult(name=self.name)

        self._check_shape(graph, result)
        self._check_identity(graph, result)
        self._check_grants(graph, result)
        self._check_handoffs(graph, result)
        self._check_contracts(graph, result)
        self._check_routing(graph, result)
        self._check_mechanisms(graph, result)

        return result

    def _check_shape(self, graph: SolutionGraph, result: CheckerResult) -> None:
        for entry, reason in graph.problems:
            result.add_issue(
                Check.SOLUTION_SHAPE,
                f"Solution entry '{entry}' could not be read and was skipped: {reason}",
                entry=entry,
            )

    def _check_identity(self, graph: SolutionGraph, result: CheckerResult) -> None:
        identity = graph.identity
        actor_keys = set(identity.actor_type_keys)

        if not identity.actor_types:
            result.add_issue(
                Check.IDENTITY_ACTOR_TYPES,
                "No actor types defined. Define the user types for your solution in the Identity tab.",
            )
        elif not identity.admin_roles:
            result.add_issue(
                Check.IDENTITY_ADMIN_ROLES,
                "No admin roles defined. Consider setting which actor types have admin privileges.",
            )

        if not actor_keys:
            return

        default = identity.default_actor_type
        if default and default not in actor_keys:
            result.add_issue(
                Check.IDENTITY_DEFAULT_TYPE_VALID,
                f'Default actor type "{default}" is not a defined actor type',
                actor_type=default,
            )

        for role in identity.admin_roles:
            if role not in actor_keys:
                result.add_issue(
                    Check.IDENTITY_ADMIN_ROLE_VALID,
                    f'Admin role "{role}" is not a defined actor type',
                    actor_type=role,
                )

    def _check_grants(self, graph: SolutionGraph, result: CheckerResult) -> None:
        for grant in graph.grants:
            for issuer in grant.issued_by:
                if not graph.has_skill(issuer):
                    result.add_issue(
                        Check.GRANT_PROVIDER_EXISTS,
                        f'Grant "{grant.key}" references issuer "{issuer}" '
                        f"which is not a skill in this solution",
                        grant=grant.key,
                        skill=issuer,
                    )
            for consumer in grant.consumed_by:
                if not graph.has_skill(consumer):
                    result.add_issue(
                        Check.GRANT_CONSUMER_EXISTS,
                        f'Grant "{grant.key}" references consumer "{consumer}" '
                        f"which is not a skill in this solution",
                        grant=grant.key,
                        skill=consumer,
                    )

    def _check_handoffs(self, graph: SolutionGraph, result: CheckerResult) -> None:
        for handoff in graph.handoffs:
            if not graph.has_skill(handoff.source):
                result.add_issue(
                    Check.HANDOFF_SOURCE_EXISTS,
                    f'Handoff "{handoff.id}" references source skill "{handoff.source}" '
                    f"which doesn't exist",
                    handoff=handoff.id,
                    skill=handoff.source,
                )
            if not graph.has_skill(handoff.target):
                result.add_issue(
                    Check.HANDOFF_TARGET_EXISTS,
                    f'Handoff "{handoff.id}" references target skill "{handoff.target}" '
                    f"which doesn't exist",
                    handoff=handoff.id,
                    skill=handoff.target,
                )

    def _check_contracts(self, graph: SolutionGraph, result: CheckerResult) -> None:
        for contract in graph.contracts:
            if not graph.has_skill(contract.consumer):
                result.add_issue(
                    Check.CONTRACT_CONSUMER_EXISTS,
                    f'Security contract "{contract.name}" references consumer '
                    f'"{contract.consumer}" which doesn\'t exist',
                    contract=contract.name,
                    skill=contract.consumer,
                )
            # An absent provider is allowed; a named but unknown one is not
            if contract.provider and not graph.has_skill(contract.provider):
                result.add_issue(
                    Check.CONTRACT_PROVIDER_EXISTS,
                    f'Security contract "{contract.name}" references provider '
                    f'"{contract.provider}" which doesn\'t exist',
                    contract=contract.name,
                    skill=contract.provider,
                )

    def _check_routing(self, graph: SolutionGraph, result: CheckerResult) -> None:
        for skill in graph.skills:
            for channel in skill.entry_channels:
                if channel not in graph.routing_by_channel:
                    result.add_issue(
                        Check.ROUTING_COVERS_CHANNELS,
                        f'Skill "{skill.id}" declares entry channel "{channel}" '
                        f"but no routing rule exists for it",
                        skill=skill.id,
                        channel=channel,
                    )

        for channel, entry in graph.routing_by_channel.items():
            if entry.default_skill and not graph.has_skill(entry.default_skill):
                result.add_issue(
                    Check.ROUTING_TARGET_EXISTS,
                    f'Routing for channel "{channel}" targets skill "{entry.default_skill}" '
                    f"which doesn't exist",
                    channel=channel,
                    skill=entry.default_skill,
                )

    def _check_mechanisms(self, graph: SolutionGraph, result: CheckerResult) -> None:
        declared = graph.platform_connector_ids
        for handoff in graph.handoffs:
            if handoff.is_internal(self.config.internal_mechanism):
                continue
            mechanism = handoff.mechanism
            if mechanism not in declared:
                result.add_issue(
                    Check.PLATFORM_CONNECTORS_DECLARED,
                    f'Handoff "{handoff.id}" uses mechanism "{mechanism}" '
                    f"which is not declared in platform_connectors",
                    handoff=handoff.id,
                    connector=mechanism,
                )
