"""
Shared fixtures for Solution-Spec tests.
"""

import pytest


def get_ecommerce_solution():
    """Return a consistent five-skill e-commerce solution."""
    return {
        "id": "ecom-support",
        "name": "E-commerce Customer Support",
        "skills": [
            {
                "id": "identity-assurance",
                "role": "gateway",
                "description": "Verifies customer identity",
                "entry_channels": ["telegram", "email"],
            },
            {
                "id": "support-tier-1",
                "role": "worker",
                "description": "Customer-facing support",
            },
            {
                "id": "returns-ops",
                "role": "worker",
                "description": "Processes returns",
            },
            {
                "id": "finance-ops",
                "role": "approval",
                "description": "Approves refunds",
            },
            {
                "id": "ecom-orchestrator",
                "role": "orchestrator",
                "description": "Back-office automation",
                "entry_channels": ["api"],
            },
        ],
        "grants": [
            {
                "key": "ecom.customer_id",
                "issued_by": ["identity-assurance"],
                "consumed_by": ["support-tier-1", "returns-ops", "finance-ops"],
            },
            {
                "key": "ecom.assurance_level",
                "issued_by": ["identity-assurance"],
                "consumed_by": ["support-tier-1", "returns-ops"],
                "values": ["L0", "L1", "L2"],
            },
            {
                "key": "ecom.verified_scope",
                "issued_by": ["identity-assurance"],
                "consumed_by": ["support-tier-1"],
                "ttl_seconds": 900,
            },
        ],
        "handoffs": [
            {
                "id": "identity-to-support",
                "from": "identity-assurance",
                "to": "support-tier-1",
                "trigger": "Identity verified",
                "grants_passed": [
                    "ecom.customer_id",
                    "ecom.assurance_level",
                    "ecom.verified_scope",
                ],
                "mechanism": "handoff-controller-mcp",
            },
            {
                "id": "support-to-returns",
                "from": "support-tier-1",
                "to": "returns-ops",
                "trigger": "Customer requests a return",
                "grants_passed": ["ecom.customer_id", "ecom.assurance_level"],
                "mechanism": "internal-message",
            },
            {
                "id": "returns-to-finance",
                "from": "returns-ops",
                "to": "finance-ops",
                "trigger": "Refund above threshold",
                "grants_passed": ["ecom.customer_id"],
                "mechanism": "internal-message",
            },
        ],
        "routing": {
            "telegram": {"default_skill": "identity-assurance", "description": "Customer chat"},
            "email": {"default_skill": "identity-assurance", "description": "Support inbox"},
            "api": {"default_skill": "ecom-orchestrator", "description": "Internal API"},
        },
        "platform_connectors": [
            {"id": "handoff-controller-mcp", "required": True},
        ],
        "security_contracts": [
            {
                "name": "Identity required for support",
                "provider": "identity-assurance",
                "consumer": "support-tier-1",
                "requires_grants": ["ecom.customer_id", "ecom.assurance_level"],
            },
            {
                "name": "Identity required for returns",
                "provider": "identity-assurance",
                "consumer": "returns-ops",
                "requires_grants": ["ecom.customer_id"],
            },
        ],
    }


def get_chain_solution(second_edge_grants):
    """Return a provider -> middle -> consumer chain guarded by one contract."""
    return {
        "skills": [{"id": "provider"}, {"id": "middle"}, {"id": "consumer"}],
        "grants": [
            {"key": "token", "issued_by": ["provider"], "consumed_by": ["consumer"]},
        ],
        "handoffs": [
            {"id": "p-to-m", "from": "provider", "to": "middle", "grants_passed": ["token"]},
            {"id": "m-to-c", "from": "middle", "to": "consumer",
             "grants_passed": second_edge_grants},
        ],
        "routing": {"web": {"default_skill": "provider"}},
        "security_contracts": [
            {
                "name": "token-chain",
                "provider": "provider",
                "consumer": "consumer",
                "requires_grants": ["token"],
            },
        ],
        "identity": {"actor_types": [{"key": "customer"}], "admin_roles": ["customer"]},
    }


@pytest.fixture
def ecommerce_solution():
    return get_ecommerce_solution()
