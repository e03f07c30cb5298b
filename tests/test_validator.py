"""
Tests for Solution-Spec validators.
"""

import copy
import json
import logging
import tempfile
from pathlib import Path

import pytest
import yaml

from backend.solutionspec.config import ValidatorConfig
from backend.solutionspec.validator import (
    Check,
    ReachabilityChecker,
    ReferentialIntegrityChecker,
    SolutionGraph,
    ValidationEngine,
    validate_solution,
)

from conftest import get_chain_solution, get_ecommerce_solution


def checks_of(issues):
    return [i["check"] for i in issues]


class TestEmptySolution:
    """Tests for a solution with nothing declared."""

    def test_empty_solution_is_valid(self):
        """Test that an empty solution passes with only the actor-type warning."""
        result = validate_solution({}).to_dict()

        assert result["valid"] is True
        assert result["errors"] == []
        assert checks_of(result["warnings"]) == ["identity_actor_types"]

    def test_null_arrays_default_to_empty(self):
        """Test that null arrays are treated as empty."""
        solution = {"skills": None, "grants": None, "handoffs": None, "routing": None}
        result = validate_solution(solution)

        assert result.valid
        assert result.summary()["skills"] == 0

    def test_missing_solution_raises(self):
        """Test that a missing solution document raises ValueError."""
        with pytest.raises(ValueError):
            validate_solution(None)

    def test_wrong_shape_reported(self):
        """Test that an unreadable section becomes an error, not an exception."""
        result = validate_solution({"skills": "not-a-list"}).to_dict()

        assert result["valid"] is False
        errors = [e for e in result["errors"] if e["check"] == "solution_shape"]
        assert len(errors) == 1
        assert errors[0]["entry"] == "skills"

    def test_unreadable_item_skipped(self):
        """Test that one bad list item does not hide the rest."""
        solution = {"skills": [{"id": "a"}, {"id": {"nested": True}}]}
        result = validate_solution(solution)

        assert result.summary()["skills"] == 1
        errors = [e for e in result.to_dict()["errors"] if e["check"] == "solution_shape"]
        assert [e["entry"] for e in errors] == ["skills[1]"]

    @pytest.mark.parametrize("solution", [
        {"grants": [{"key": "g", "ttl_seconds": 90.5}]},
        {"grants": [{"key": "g", "ttl_seconds": "15m"}]},
        {"grants": [{"key": 42}]},
        {"skills": [{"id": 7}]},
        {"skills": [{"id": "a", "entry_channels": "web"}]},
    ])
    def test_loosely_typed_values_accepted(self, solution):
        """Test that scalars of an unexpected type are read rather than rejected."""
        result = validate_solution(solution).to_dict()
        assert "solution_shape" not in checks_of(result["errors"])


class TestReferentialIntegrity:
    """Tests for ReferentialIntegrityChecker."""

    def test_unknown_grant_issuer(self):
        """Test that a grant issued by an undeclared skill is an error."""
        solution = {
            "skills": [{"id": "worker-a"}],
            "grants": [{"key": "g", "issued_by": ["ghost"], "consumed_by": ["worker-a"]}],
        }
        result = validate_solution(solution).to_dict()

        assert result["valid"] is False
        errors = [e for e in result["errors"] if e["check"] == "grant_provider_exists"]
        assert len(errors) == 1
        assert errors[0]["skill"] == "ghost"
        assert errors[0]["grant"] == "g"

    def test_unknown_grant_consumer(self):
        """Test that a grant consumed by an undeclared skill is an error."""
        solution = {
            "skills": [{"id": "a"}],
            "grants": [{"key": "g", "issued_by": ["a"], "consumed_by": ["nobody"]}],
        }
        result = validate_solution(solution).to_dict()
        assert "grant_consumer_exists" in checks_of(result["errors"])

    def test_unknown_handoff_endpoints(self):
        """Test that both handoff endpoints must be declared skills."""
        solution = {
            "skills": [{"id": "a"}],
            "handoffs": [{"id": "h1", "from": "x", "to": "y"}],
        }
        errors = validate_solution(solution).to_dict()["errors"]

        assert {"handoff_source_exists", "handoff_target_exists"} <= set(checks_of(errors))
        assert all(e["handoff"] == "h1" for e in errors)

    def test_unknown_routing_target(self):
        """Test that routing must target a declared skill."""
        solution = {"skills": [{"id": "a"}], "routing": {"web": {"default_skill": "missing"}}}
        errors = validate_solution(solution).to_dict()["errors"]

        assert checks_of(errors) == ["routing_target_exists"]
        assert errors[0]["channel"] == "web"

    def test_unknown_contract_parties(self):
        """Test that contract consumer and provider must be declared."""
        solution = {
            "skills": [{"id": "a"}],
            "security_contracts": [
                {"name": "c", "provider": "ghost-p", "consumer": "ghost-c", "requires_grants": []},
            ],
        }
        errors = checks_of(validate_solution(solution).to_dict()["errors"])
        assert "contract_consumer_exists" in errors
        assert "contract_provider_exists" in errors

    def test_contract_without_provider(self):
        """Test that a contract without a provider skips provider checks."""
        solution = {
            "skills": [{"id": "a"}],
            "routing": {"web": {"default_skill": "a"}},
            "security_contracts": [{"name": "c", "consumer": "a", "requires_grants": ["g"]}],
        }
        result = validate_solution(solution).to_dict()
        assert result["valid"] is True
        assert "contract_handoff_path" not in checks_of(result["warnings"])

    def test_unrouted_entry_channel(self):
        """Test that a declared entry channel without routing is a warning."""
        solution = {
            "skills": [{"id": "a", "entry_channels": ["sms"]}],
            "handoffs": [],
        }
        warnings = validate_solution(solution).to_dict()["warnings"]
        assert "routing_covers_channels" in checks_of(warnings)

    def test_undeclared_platform_connector(self):
        """Test that a handoff mechanism must be a declared platform connector."""
        solution = {
            "skills": [{"id": "a"}, {"id": "b"}],
            "handoffs": [{"id": "h", "from": "a", "to": "b", "mechanism": "bridge-mcp"}],
        }
        warnings = validate_solution(solution).to_dict()["warnings"]
        assert "platform_connectors_declared" in checks_of(warnings)

    def test_internal_message_needs_no_connector(self):
        """Test that internal-message handoffs need no platform connector."""
        solution = {
            "skills": [{"id": "a"}, {"id": "b"}],
            "handoffs": [{"id": "h", "from": "a", "to": "b", "mechanism": "internal-message"}],
        }
        warnings = validate_solution(solution).to_dict()["warnings"]
        assert "platform_connectors_declared" not in checks_of(warnings)

    def test_configured_internal_mechanism(self):
        """Test that the internal mechanism name comes from the config."""
        solution = {
            "skills": [{"id": "a"}, {"id": "b"}],
            "handoffs": [{"id": "h", "from": "a", "to": "b", "mechanism": "local-bus"}],
        }
        config = ValidatorConfig(internal_mechanism="local-bus")

        default = validate_solution(solution).to_dict()["warnings"]
        configured = validate_solution(solution, config=config).to_dict()["warnings"]
        assert "platform_connectors_declared" in checks_of(default)
        assert "platform_connectors_declared" not in checks_of(configured)


class TestIdentityChecks:
    """Tests for identity validation."""

    def test_unknown_default_actor_type(self):
        """Test that an unknown default actor type is an error."""
        solution = {
            "identity": {
                "actor_types": [{"key": "customer"}],
                "admin_roles": ["customer"],
                "default_actor_type": "visitor",
            }
        }
        result = validate_solution(solution).to_dict()
        assert checks_of(result["errors"]) == ["identity_default_type_valid"]

    def test_unknown_admin_role(self):
        """Test that an admin role outside actor types is a warning."""
        solution = {
            "identity": {
                "actor_types": [{"key": "customer"}],
                "admin_roles": ["root"],
            }
        }
        result = validate_solution(solution).to_dict()
        assert result["valid"] is True
        assert checks_of(result["warnings"]) == ["identity_admin_role_valid"]

    def test_no_admin_roles(self):
        """Test that actor types without admin roles are flagged."""
        solution = {"identity": {"actor_types": ["customer", "agent"]}}
        result = validate_solution(solution).to_dict()
        assert checks_of(result["warnings"]) == ["identity_admin_roles"]

    def test_string_actor_types(self):
        """Test that bare string actor types are accepted as keys."""
        solution = {
            "identity": {
                "actor_types": ["customer"],
                "admin_roles": ["customer"],
                "default_actor_type": "customer",
            }
        }
        result = validate_solution(solution).to_dict()
        assert result["errors"] == []
        assert result["warnings"] == []


class TestGrantProviders:
    """Tests for the grant issuer rule."""

    def test_consumed_grant_without_issuer(self):
        """Test that a consumed grant with no issuer is an error."""
        solution = {
            "skills": [{"id": "worker-a"}],
            "grants": [{"key": "g", "issued_by": [], "consumed_by": ["worker-a"]}],
        }
        result = validate_solution(solution).to_dict()
        assert result["valid"] is False
        assert "grant_provider_missing" in checks_of(result["errors"])

    def test_internal_grant_exemption(self):
        """Test that an internal grant with no issuers or consumers is valid."""
        solution = {"grants": [{"key": "g", "internal": True, "issued_by": [], "consumed_by": []}]}
        assert validate_solution(solution).valid

    def test_internal_grant_with_consumers(self):
        """Test that internal grants may be consumed without an issuer."""
        solution = {
            "skills": [{"id": "a"}],
            "routing": {"web": {"default_skill": "a"}},
            "grants": [{"key": "g", "internal": True, "consumed_by": ["a"]}],
        }
        assert validate_solution(solution).valid


class TestGrantFlow:
    """Tests for contract grant flow through handoff chains."""

    def test_multi_hop_success(self):
        """Test that a grant passed on every hop satisfies the contract."""
        result = validate_solution(get_chain_solution(["token"])).to_dict()

        assert result["valid"] is True
        assert result["warnings"] == []

    def test_multi_hop_dropped_grant(self):
        """Test that a grant dropped on the second hop breaks the contract."""
        result = validate_solution(get_chain_solution([])).to_dict()

        assert result["valid"] is False
        errors = [e for e in result["errors"] if e["check"] == "grants_passed_match"]
        assert len(errors) == 1
        assert errors[0]["grant"] == "token"
        assert errors[0]["contract"] == "token-chain"
        assert errors[0]["handoffs"] == ["m-to-c"]

    def test_no_path_is_warning(self):
        """Test that a contract with no handoff path only warns."""
        solution = get_chain_solution(["token"])
        solution["handoffs"] = solution["handoffs"][:1]
        result = validate_solution(solution).to_dict()

        assert result["valid"] is True
        assert "contract_handoff_path" in checks_of(result["warnings"])


class TestReachability:
    """Tests for ReachabilityChecker."""

    def test_orphan_detection(self):
        """Test that only the unreferenced skill is reported."""
        solution = {
            "skills": [{"id": "orphan"}, {"id": "connected"}],
            "routing": {"web": {"default_skill": "connected"}},
        }
        warnings = [
            w for w in validate_solution(solution).to_dict()["warnings"]
            if w["check"] == "no_orphan_skills"
        ]
        assert [w["skill"] for w in warnings] == ["orphan"]

    def test_handoff_endpoints_are_reachable(self):
        """Test that both ends of a handoff count as reachable."""
        graph = SolutionGraph.build({
            "skills": [{"id": "a"}, {"id": "b"}],
            "handoffs": [{"id": "h", "from": "a", "to": "b"}],
        })
        result = ReachabilityChecker().validate(graph)
        assert result.issues == []


class TestEcommerceSolution:
    """Tests against the full e-commerce fixture."""

    def test_fixture_is_valid(self, ecommerce_solution):
        """Test that the consistent fixture has no errors."""
        result = validate_solution(ecommerce_solution).to_dict()

        assert result["valid"] is True
        assert result["errors"] == []
        assert checks_of(result["warnings"]) == ["identity_actor_types"]

    def test_summary_counts(self, ecommerce_solution):
        """Test that summary counts match the fixture exactly."""
        summary = validate_solution(ecommerce_solution).to_dict()["summary"]

        assert summary["skills"] == 5
        assert summary["grants"] == 3
        assert summary["handoffs"] == 3
        assert summary["channels"] == 3
        assert summary["platform_connectors"] == 1
        assert summary["security_contracts"] == 2
        assert summary["error_count"] == 0
        assert summary["warning_count"] == 1

    def test_cascading_failure(self, ecommerce_solution):
        """Test that removing the gateway breaks every reference to it."""
        ecommerce_solution["skills"] = [
            s for s in ecommerce_solution["skills"] if s["id"] != "identity-assurance"
        ]
        result = validate_solution(ecommerce_solution).to_dict()

        assert result["valid"] is False
        errors = set(checks_of(result["errors"]))
        assert {"grant_provider_exists", "handoff_source_exists", "routing_target_exists"} <= errors
        assert len(result["errors"]) >= 3

    def test_idempotent(self, ecommerce_solution):
        """Test that validating twice yields identical output."""
        first = json.dumps(validate_solution(ecommerce_solution).to_dict(), sort_keys=True)
        second = json.dumps(validate_solution(ecommerce_solution).to_dict(), sort_keys=True)
        assert first == second

    def test_input_not_mutated(self, ecommerce_solution):
        """Test that validation leaves the document untouched."""
        before = copy.deepcopy(ecommerce_solution)
        validate_solution(ecommerce_solution, context={"skills": [], "connectors": []})
        assert ecommerce_solution == before


class TestValidationEngine:
    """Tests for ValidationEngine."""

    def test_checker_order(self, ecommerce_solution):
        """Test that checkers run in a fixed order."""
        result = ValidationEngine().validate(ecommerce_solution)
        assert [r.name for r in result.results] == [
            "references", "grant_flow", "reachability", "cycles",
        ]

    def test_connectors_run_with_context(self, ecommerce_solution):
        """Test that a deploy context enables connector checks."""
        result = ValidationEngine().validate(ecommerce_solution, context={})
        assert result.layer("connectors") is not None

    def test_result_summary_text(self):
        """Test result summary generation."""
        result = ValidationEngine().validate({})
        summary = result.summary_text()

        assert "Validation PASSED" in summary
        assert "Errors: 0" in summary

    def test_injected_logger(self, ecommerce_solution):
        """Test that an injected logger receives progress records."""
        logger = logging.getLogger("test.injected")
        records = []

        class ListHandler(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = ListHandler()
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            ValidationEngine(logger=logger).validate(ecommerce_solution)
        finally:
            logger.removeHandler(handler)

        assert any("ecom-support" in r.getMessage() for r in records)

    def test_validate_file(self, ecommerce_solution):
        """Test validating a YAML solution file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "solution.yaml"
            path.write_text(yaml.safe_dump(ecommerce_solution), encoding="utf-8")

            result = ValidationEngine().validate_file(path)
            assert result.valid
            assert result.summary()["skills"] == 5

    def test_validate_json_file(self, ecommerce_solution):
        """Test validating a JSON solution file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "solution.json"
            path.write_text(json.dumps(ecommerce_solution), encoding="utf-8")
            assert ValidationEngine().validate_file(path).valid

    def test_validate_missing_file(self):
        """Test that a missing file yields a failed result."""
        result = ValidationEngine().validate_file(Path("/nonexistent/solution.yaml"))
        assert not result.valid
        assert result.errors[0].check == Check.SOLUTION_FILE_READABLE

    def test_validate_empty_file(self):
        """Test that an empty file yields a failed result."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "empty.yaml"
            path.write_text("", encoding="utf-8")

            result = ValidationEngine().validate_file(path)
            assert not result.valid
            assert "empty" in result.errors[0].message

    def test_validate_unparsable_file(self):
        """Test that invalid YAML yields a failed result."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.yaml"
            path.write_text("skills: [unclosed", encoding="utf-8")

            result = ValidationEngine().validate_file(path)
            assert not result.valid

    def test_checkers_share_config(self):
        """Test that the engine hands its config to the checkers."""
        engine = ValidationEngine()
        assert isinstance(engine.references, ReferentialIntegrityChecker)
        assert engine.references.config is engine.config
        assert engine.connectors.config is engine.config
