"""
Triage Application Layer
=========================

Application layer for the triage workflow.

Contains:
- Services: classifier, responders and the ports they depend on
- Router: rule-table evaluation and action execution
- Workflow: the ``{input_as_text} -> {output_text}`` entry point
- DTOs: Data transfer objects for API serialization
"""

from src.triage.application.dto import (
    EvaluateRequest,
    HistoryTurn,
    KeywordSetInfo,
    RoutingDecisionInfo,
    RoutingRuleInfo,
    RuleTableResponse,
    ScriptAttachment,
    TriageRunRequest,
    TriageRunResponse,
)
from src.triage.application.router import DecisionTreeRouter
from src.triage.application.services import (
    CategoryClassifier,
    DiagnosticResponder,
    IApprovalGate,
    ILLMClient,
    IResponder,
    LLMResponder,
    RemediationResponder,
    parse_category_label,
    resolve_category_hint,
)
from src.triage.application.workflow import TriageWorkflow, build_script_blocks, normalize_history

__all__ = [
    # DTOs
    "EvaluateRequest",
    "HistoryTurn",
    "KeywordSetInfo",
    "RoutingDecisionInfo",
    "RoutingRuleInfo",
    "RuleTableResponse",
    "ScriptAttachment",
    "TriageRunRequest",
    "TriageRunResponse",
    # Services
    "CategoryClassifier",
    "DiagnosticResponder",
    "LLMResponder",
    "RemediationResponder",
    "parse_category_label",
    "resolve_category_hint",
    "DecisionTreeRouter",
    "TriageWorkflow",
    "normalize_history",
    "build_script_blocks",
    # Interfaces
    "IApprovalGate",
    "ILLMClient",
    "IResponder",
]
