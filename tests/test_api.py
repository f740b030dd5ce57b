"""Tests for the HTTP layer."""

import pytest
from fastapi.testclient import TestClient

from src.config import Category, TopicGapPolicy
from src.main import app
from src.triage.application import CategoryClassifier, DecisionTreeRouter, TriageWorkflow
from src.triage.domain import DEFAULT_RULE_TABLE, KeywordMatcher, ResponderMode
from src.triage.infrastructure import ApprovalGateFactory

from fakes import FakeClassifier, FakeLLMClient, FakeResponder


@pytest.fixture
def install():
    """Install services on app.state without running the lifespan."""
    def _install(
        category=Category.NETWORKING,
        classifier=None,
        diagnostic=None,
        remediation=None,
        approval_mode="auto",
        topic_gap_policy=TopicGapPolicy.REPORT,
        with_workflow=True,
    ):
        decision_router = DecisionTreeRouter(
            rule_table=DEFAULT_RULE_TABLE,
            diagnostic=diagnostic or FakeResponder(ResponderMode.DIAGNOSTIC, "diagnostic text"),
            remediation=remediation or FakeResponder(ResponderMode.REMEDIATION, "remediation text"),
            matcher=KeywordMatcher(),
            topic_gap_policy=topic_gap_policy,
        )
        app.state.router = decision_router
        app.state.approval_gates = ApprovalGateFactory(approval_mode)
        app.state.workflow = TriageWorkflow(
            classifier=classifier or FakeClassifier(category),
            router=decision_router,
        ) if with_workflow else None
        return decision_router

    yield _install

    for name in ("router", "approval_gates", "workflow"):
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
def client():
    return TestClient(app)


class TestRunEndpoint:
    """POST /triage/run"""

    def test_diagnostic_result(self, install, client):
        install(Category.NETWORKING)
        response = client.post("/triage/run", json={
            "input_as_text": "BGP keeps flapping on the core router, drops every hour"
        })

        assert response.status_code == 200
        body = response.json()
        assert body["output_text"] == "diagnostic text"
        assert body["outcome"] == "diagnostic"
        assert body["category"] == "Networking"
        assert body["subtopic"] == "generic"
        assert body["approval_requested"] is False
        assert body["approved"] is None
        assert "processing_time_ms" in body

    def test_remediation_with_auto_approval(self, install, client):
        install(Category.HARDWARE_COMPONENTS)
        response = client.post("/triage/run", json={
            "input_as_text": "iDRAC reports PSU brownout, please go ahead and replace the failed supply"
        })
        body = response.json()
        assert body["outcome"] == "remediation"
        assert body["output_text"] == "remediation text"
        assert body["subtopic"] == "dell"
        assert body["approved"] is True

    def test_message_marker_declines_without_marker(self, install, client):
        install(Category.NETWORKING, approval_mode="message_marker")
        response = client.post("/triage/run", json={
            "input_as_text": "VLAN trunk is down, implement the fix now"
        })
        body = response.json()
        assert body["outcome"] == "declined"
        assert body["output_text"] == "diagnostic text"
        assert body["approved"] is False

    def test_message_marker_approves_with_marker(self, install, client):
        install(Category.NETWORKING, approval_mode="message_marker")
        response = client.post("/triage/run", json={
            "input_as_text": "APPROVAL: APPROVED\nVLAN trunk is down, implement the fix now"
        })
        assert response.json()["outcome"] == "remediation"

    def test_topic_gap_reported(self, install, client):
        install(Category.HARDWARE_COMPONENTS)
        response = client.post("/triage/run", json={"input_as_text": "server is broken"})
        assert response.status_code == 200
        assert response.json()["outcome"] == "topic_gap"
        assert response.json()["output_text"] == ""

    def test_category_hint_and_history(self, install, client):
        diagnostic = FakeResponder(ResponderMode.DIAGNOSTIC, "diagnostic text")
        install(Category.UNKNOWN, diagnostic=diagnostic)
        response = client.post("/triage/run", json={
            "input_as_text": "spooler crashes",
            "category_hint": "server",
            "history": [
                {"role": "system", "content": "drop me"},
                {"role": "user", "content": "earlier"},
            ],
        })
        assert response.json()["category"] == "ServerOS"
        assert diagnostic.seen[0] == [
            {"role": "user", "content": "earlier"},
            {"role": "user", "content": "spooler crashes"},
        ]

    def test_correlation_id_echoed(self, install, client):
        install()
        response = client.post(
            "/triage/run",
            json={"input_as_text": "vlan down"},
            headers={"X-Correlation-ID": "corr-42"},
        )
        assert response.headers["X-Correlation-ID"] == "corr-42"

    def test_scripts_attached_to_user_turn(self, install, client):
        diagnostic = FakeResponder(ResponderMode.DIAGNOSTIC, "diagnostic text")
        install(Category.SCRIPT_AUTOMATION, diagnostic=diagnostic)
        response = client.post("/triage/run", json={
            "input_as_text": "playbook fails with traceback",
            "scripts": [{"name": "deploy.yml", "language": "yaml", "content": "- hosts: web\n  tasks: []"}],
        })
        assert response.status_code == 200
        assert diagnostic.seen[0][-1]["content"] == (
            "playbook fails with traceback\n\n"
            "[ATTACHED SCRIPTS]\n"
            "--- SCRIPT: deploy.yml (yaml) ---\n"
            "   1 | - hosts: web\n"
            "   2 |   tasks: []\n"
            "--- END SCRIPT ---"
        )


class TestRunErrors:
    """Error mapping for /triage/run."""

    def test_blank_input_is_400(self, install, client):
        install()
        response = client.post("/triage/run", json={"input_as_text": "   "})
        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationException"

    def test_too_long_input_is_422(self, install, client):
        install()
        response = client.post("/triage/run", json={"input_as_text": "x" * 10001})
        assert response.status_code == 422

    @pytest.mark.parametrize("body", [
        {"history": [{"role": "user", "content": "again"}] * 51},
        {"history": [{"role": "user", "content": "x" * 10001}]},
        {"scripts": [{"name": "s.ps1", "content": "Get-Service"}] * 11},
        {"scripts": [{"name": "s.ps1", "content": "x" * 100001}]},
        {"scripts": [{"name": "", "content": "Get-Service"}]},
    ])
    def test_oversized_context_is_422(self, install, client, body):
        install()
        response = client.post("/triage/run", json={"input_as_text": "vlan down", **body})
        assert response.status_code == 422

    def test_classification_error_is_502(self, install, client):
        install(classifier=CategoryClassifier(FakeLLMClient(['{"category": "Storage"}'])))
        response = client.post("/triage/run", json={"input_as_text": "san latency"})
        assert response.status_code == 502
        body = response.json()
        assert body["ok"] is False
        assert body["error_type"] == "ClassificationError"

    def test_empty_responder_output_is_502(self, install, client):
        from src.triage.application import DiagnosticResponder
        install(Category.UNKNOWN, diagnostic=DiagnosticResponder(FakeLLMClient([""])))
        response = client.post("/triage/run", json={"input_as_text": "odd noise"})
        assert response.status_code == 502
        assert response.json()["error_type"] == "ResponderEmptyOutputError"

    def test_topic_gap_raise_policy_is_422(self, install, client):
        install(Category.NETWORKING, topic_gap_policy=TopicGapPolicy.RAISE)
        response = client.post("/triage/run", json={"input_as_text": "server is broken"})
        assert response.status_code == 422
        assert response.json()["error_type"] == "UnhandledTopicGapError"

    def test_missing_workflow_is_503(self, install, client):
        install(with_workflow=False)
        response = client.post("/triage/run", json={"input_as_text": "vlan down"})
        assert response.status_code == 503

    def test_unexpected_error_is_500(self, install):
        install(
            Category.UNKNOWN,
            diagnostic=FakeResponder(ResponderMode.DIAGNOSTIC, error=RuntimeError("boom")),
        )
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post("/triage/run", json={"input_as_text": "odd noise"})
        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestEvaluateAndRules:
    """Dry-run and rule table endpoints."""

    def test_evaluate(self, install, client):
        diagnostic = FakeResponder(ResponderMode.DIAGNOSTIC)
        install(diagnostic=diagnostic)
        response = client.post("/triage/evaluate", json={
            "input_as_text": "Ansible playbook failed: fatal: unreachable=1",
            "category": "ScriptAutomation",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["action"] == "diagnose"
        assert body["subtopic"] == "automation-run"
        assert body["requests_approval"] is False
        assert body["states"][-1] == "action_selected"
        assert diagnostic.call_count == 0

    def test_evaluate_rejects_unknown_category(self, install, client):
        install()
        response = client.post("/triage/evaluate", json={
            "input_as_text": "vlan down", "category": "Storage"
        })
        assert response.status_code == 422

    def test_rules(self, install, client):
        install()
        response = client.get("/triage/rules")
        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "built-in"
        assert body["match_mode"] == "substring"
        assert body["topic_gap_policy"] == "report"
        rules = {r["category"]: r for r in body["rules"]}
        assert set(rules) == {"Networking", "ServerOS", "ScriptAutomation", "HardwareComponents", "Unknown"}
        assert rules["ServerOS"]["topic"] is None
        assert [s["name"] for s in rules["Networking"]["subtopics"]] == ["cisco", "juniper", "arista"]
        assert "go ahead" in body["change_intent"]["keywords"]


class TestServiceEndpoints:

    def test_health(self, install, client):
        install()
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["checks"]["rules"] == "built-in"
        assert body["checks"]["approval_mode"] == "auto"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["docs"] == "/docs"
        assert "POST /triage/run - Triage a support request" in body["modules"]["triage"]["endpoints"]
