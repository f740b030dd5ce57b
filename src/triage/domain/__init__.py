"""
Triage Domain Layer
===================

Domain layer for the triage workflow.

Contains:
- Entities: Request, KeywordSet, ConversationHistory, ResponderResult,
  RoutingDecision, TriageResult
- Matching: pure keyword predicates and the configurable matcher
- Rules: the declarative routing table and its built-in default
- Prompts: classifier and responder prompt builders

This layer is framework-agnostic and contains pure business logic.
"""

from src.triage.domain.entities import (
    ChatMessage,
    ConversationHistory,
    GENERIC_SUBTOPIC,
    KeywordSet,
    Request,
    ResponderMode,
    ResponderResult,
    RoutingDecision,
    TriageAction,
    TriageOutcome,
    TriageResult,
    TriageState,
)
from src.triage.domain.matching import (
    KeywordMatcher,
    matched_keywords,
    matches,
    normalize,
)
from src.triage.domain.prompts import (
    ClassificationPromptBuilder,
    ResponderPromptBuilder,
)
from src.triage.domain.rules import (
    APPROVAL_MESSAGE,
    CHANGE_INTENT,
    DEFAULT_RULE_TABLE,
    RoutingRule,
    RuleTable,
)

__all__ = [
    "ChatMessage",
    "ConversationHistory",
    "GENERIC_SUBTOPIC",
    "KeywordSet",
    "Request",
    "ResponderMode",
    "ResponderResult",
    "RoutingDecision",
    "TriageAction",
    "TriageOutcome",
    "TriageResult",
    "TriageState",
    "KeywordMatcher",
    "matched_keywords",
    "matches",
    "normalize",
    "ClassificationPromptBuilder",
    "ResponderPromptBuilder",
    "APPROVAL_MESSAGE",
    "CHANGE_INTENT",
    "DEFAULT_RULE_TABLE",
    "RoutingRule",
    "RuleTable",
]
