"""
Pytest configuration and fixtures for the triage service tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

from src.config import Category  # noqa: E402
from src.triage.application import DecisionTreeRouter, TriageWorkflow  # noqa: E402
from src.triage.domain import DEFAULT_RULE_TABLE, KeywordMatcher, ResponderMode  # noqa: E402

from fakes import FakeApprovalGate, FakeClassifier, FakeResponder  # noqa: E402


@pytest.fixture
def diagnostic():
    return FakeResponder(ResponderMode.DIAGNOSTIC, "DIAGNOSTIC: collect evidence first")


@pytest.fixture
def remediation():
    return FakeResponder(ResponderMode.REMEDIATION, "REMEDIATION: change, rollback, validate")


@pytest.fixture
def approve_gate():
    return FakeApprovalGate(approve=True)


@pytest.fixture
def decline_gate():
    return FakeApprovalGate(approve=False)


@pytest.fixture
def decision_router(diagnostic, remediation, approve_gate):
    return DecisionTreeRouter(
        rule_table=DEFAULT_RULE_TABLE,
        diagnostic=diagnostic,
        remediation=remediation,
        matcher=KeywordMatcher(),
        approval_gate=approve_gate,
    )


@pytest.fixture
def make_workflow(decision_router):
    def _make(category: Category = Category.UNKNOWN, max_turns: int = 12) -> TriageWorkflow:
        return TriageWorkflow(
            classifier=FakeClassifier(category),
            router=decision_router,
            history_max_turns=max_turns,
        )
    return _make
