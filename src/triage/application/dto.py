"""
Triage Application DTOs
========================

Data Transfer Objects for Triage API layer.

Pydantic models for request/response validation.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.triage.domain import KeywordSet, RoutingDecision, RuleTable, TriageResult


# ========== Type Aliases for Literals ==========
CategoryStr = Literal["Networking", "ServerOS", "ScriptAutomation", "HardwareComponents", "Unknown"]
OutcomeStr = Literal["diagnostic", "remediation", "declined", "topic_gap"]

MAX_INPUT_LENGTH = 10000
MAX_HISTORY_TURNS = 50
MAX_SCRIPTS = 10
MAX_SCRIPT_LENGTH = 100000


# ========== Request DTOs ==========

class HistoryTurn(BaseModel):
    """A prior conversation turn supplied by the caller."""
    role: str = Field(..., max_length=20, description="user or assistant; other roles are dropped")
    content: Optional[str] = Field(
        None,
        max_length=MAX_INPUT_LENGTH,
        description="Turn text; blank turns are dropped"
    )


class ScriptAttachment(BaseModel):
    """A script pasted alongside the request as context for the responders."""
    name: str = Field(..., min_length=1, max_length=200, description="Script name shown to the model")
    language: str = Field("text", max_length=50, description="powershell, python, bash, yaml, ...")
    content: str = Field(..., max_length=MAX_SCRIPT_LENGTH, description="Script source")


class TriageRunRequest(BaseModel):
    """Request model for a triage run."""
    input_as_text: str = Field(..., min_length=1, description="Free-text support request")
    category_hint: Optional[str] = Field(
        None,
        description="Category label or preset (network, server, script, hardware)"
    )
    history: List[HistoryTurn] = Field(
        default_factory=list,
        max_length=MAX_HISTORY_TURNS,
        description="Prior turns"
    )
    scripts: List[ScriptAttachment] = Field(
        default_factory=list,
        max_length=MAX_SCRIPTS,
        description="Attached scripts; only the first three are used"
    )

    @field_validator("input_as_text")
    @classmethod
    def validate_input_length(cls, v: str) -> str:
        """Ensure input is not too long for LLM."""
        if len(v) > MAX_INPUT_LENGTH:
            raise ValueError(f"Input too long (max {MAX_INPUT_LENGTH} characters)")
        return v


class EvaluateRequest(BaseModel):
    """Request model for a dry-run routing evaluation."""
    input_as_text: str = Field(..., min_length=1, description="Free-text support request")
    category: CategoryStr = Field(..., description="Category to evaluate against")

    @field_validator("input_as_text")
    @classmethod
    def validate_input_length(cls, v: str) -> str:
        if len(v) > MAX_INPUT_LENGTH:
            raise ValueError(f"Input too long (max {MAX_INPUT_LENGTH} characters)")
        return v


# ========== Response DTOs ==========

class RoutingDecisionInfo(BaseModel):
    """Routing decision information."""
    category: CategoryStr
    action: str
    topic_gated: bool
    topic_passed: bool
    topic_hits: List[str]
    subtopic: Optional[str]
    change_intent_hits: List[str]
    requests_approval: bool
    states: List[str]

    @classmethod
    def from_domain(cls, decision: RoutingDecision) -> "RoutingDecisionInfo":
        return cls(
            category=decision.category.value,
            action=decision.action.value,
            topic_gated=decision.topic_gated,
            topic_passed=decision.topic_passed,
            topic_hits=list(decision.topic_hits),
            subtopic=decision.subtopic,
            change_intent_hits=list(decision.change_intent_hits),
            requests_approval=decision.requests_approval,
            states=[s.value for s in decision.states],
        )


class TriageRunResponse(BaseModel):
    """Response model for a triage run."""
    output_text: str
    outcome: OutcomeStr
    category: CategoryStr
    subtopic: Optional[str]
    approval_requested: bool
    approved: Optional[bool]
    processing_time_ms: int

    @classmethod
    def from_domain(cls, result: TriageResult, processing_time_ms: int) -> "TriageRunResponse":
        return cls(
            output_text=result.output_text,
            outcome=result.outcome.value,
            category=result.category.value,
            subtopic=result.decision.subtopic,
            approval_requested=result.approval_requested,
            approved=result.approved,
            processing_time_ms=processing_time_ms,
        )


class KeywordSetInfo(BaseModel):
    """A named keyword set."""
    name: str
    keywords: List[str]

    @classmethod
    def from_domain(cls, keyword_set: KeywordSet) -> "KeywordSetInfo":
        return cls(name=keyword_set.name, keywords=list(keyword_set))


class RoutingRuleInfo(BaseModel):
    """One row of the rule table."""
    category: CategoryStr
    topic: Optional[KeywordSetInfo]
    subtopics: List[KeywordSetInfo]
    leads_to: str


class RuleTableResponse(BaseModel):
    """Response model for the active rule table."""
    source: str
    match_mode: str
    topic_gap_policy: str
    rules: List[RoutingRuleInfo]
    change_intent: KeywordSetInfo
    approval_message: str

    @classmethod
    def from_domain(
        cls,
        table: RuleTable,
        match_mode: str,
        topic_gap_policy: str
    ) -> "RuleTableResponse":
        return cls(
            source=table.source,
            match_mode=match_mode,
            topic_gap_policy=topic_gap_policy,
            rules=[
                RoutingRuleInfo(
                    category=rule.category.value,
                    topic=KeywordSetInfo.from_domain(rule.topic) if rule.topic else None,
                    subtopics=[KeywordSetInfo.from_domain(s) for s in rule.subtopics],
                    leads_to=rule.leads_to.value,
                )
                for rule in table.rules.values()
            ],
            change_intent=KeywordSetInfo.from_domain(table.change_intent),
            approval_message=table.approval_message,
        )
