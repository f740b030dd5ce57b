"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the triage module.

Contains:
- External: LLM client adapter
- Approval: approval gate implementations and their factory
- Rules loader: YAML rule catalog
"""

from src.triage.infrastructure.approval import (
    ApprovalGateFactory,
    AutoApproveGate,
    MessageMarkerApprovalGate,
    WebhookApprovalGate,
    build_approval_gate_factory,
)
from src.triage.infrastructure.external import LLMClientAdapter
from src.triage.infrastructure.rules_loader import (
    CategoryRuleConfig,
    RuleCatalogConfig,
    RuleCatalogLoader,
    SubtopicConfig,
)

__all__ = [
    "ApprovalGateFactory",
    "AutoApproveGate",
    "MessageMarkerApprovalGate",
    "WebhookApprovalGate",
    "build_approval_gate_factory",
    "LLMClientAdapter",
    "CategoryRuleConfig",
    "RuleCatalogConfig",
    "RuleCatalogLoader",
    "SubtopicConfig",
]
