"""
Triage Domain Entities
======================

Domain entities for the triage workflow.

Contains pure Python business objects: the request being triaged, the
keyword sets it is matched against, the per-request conversation history,
and the records produced by routing and by the responders.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from src.config import Category
from src.triage.domain.matching import normalize


class TriageAction(str, Enum):
    """Action selected by the decision tree."""
    DIAGNOSE = "diagnose"
    DIAGNOSE_THEN_GATE_REMEDIATE = "diagnose_then_gate_remediate"
    TOPIC_GAP = "topic_gap"


class TriageState(str, Enum):
    """States visited by one pass of the decision tree."""
    START = "start"
    CLASSIFIED = "classified"
    TOPIC_MATCHED = "topic_matched"
    SUBTOPIC_MATCHED = "subtopic_matched"
    ACTION_SELECTED = "action_selected"
    DONE = "done"


class TriageOutcome(str, Enum):
    """Terminal outcome of a workflow run."""
    DIAGNOSTIC = "diagnostic"
    REMEDIATION = "remediation"
    DECLINED = "declined"
    TOPIC_GAP = "topic_gap"


class ResponderMode(str, Enum):
    """Which responder produced a result."""
    DIAGNOSTIC = "diagnostic"
    REMEDIATION = "remediation"


GENERIC_SUBTOPIC = "generic"


@dataclass(frozen=True)
class Request:
    """
    Unit of work for one workflow invocation.

    ``normalized_text`` is derived once from ``raw_text`` and is the only text
    keyword matching ever looks at.
    """
    raw_text: str
    prior_category_hint: Optional[str] = None
    normalized_text: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "normalized_text", normalize(self.raw_text))


@dataclass(frozen=True)
class KeywordSet:
    """Named, immutable set of lowercase keyword literals."""
    name: str
    keywords: frozenset

    def __post_init__(self):
        cleaned = frozenset(normalize(k) for k in self.keywords)
        if not self.name:
            raise ValueError("KeywordSet requires a name")
        if "" in cleaned or not cleaned:
            raise ValueError(f"KeywordSet '{self.name}' contains empty keywords")
        object.__setattr__(self, "keywords", cleaned)

    @classmethod
    def of(cls, name: str, *keywords: str) -> "KeywordSet":
        return cls(name=name, keywords=frozenset(keywords))

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.keywords))

    def __len__(self) -> int:
        return len(self.keywords)


@dataclass(frozen=True)
class ChatMessage:
    """A single turn exchanged with the text-generation collaborators."""
    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """
    Ordered, append-only message log owned by one workflow invocation.

    Turns cannot be removed or reordered.
    """

    ROLES = ("user", "assistant")

    def __init__(self, messages: Optional[List[ChatMessage]] = None):
        self._messages: List[ChatMessage] = []
        for message in messages or []:
            self.append(message.role, message.content)

    def append(self, role: str, content: str) -> ChatMessage:
        if role not in self.ROLES:
            raise ValueError(f"Unsupported role '{role}'")
        message = ChatMessage(role=role, content=content)
        self._messages.append(message)
        return message

    def as_messages(self) -> List[dict]:
        """Copy of the turns in chat-completion format."""
        return [m.to_dict() for m in self._messages]

    @property
    def last(self) -> Optional[ChatMessage]:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))


@dataclass(frozen=True)
class ResponderResult:
    """Narrative produced by the diagnostic or remediation responder."""
    text: str
    mode: ResponderMode
    model: str = "unknown"
    latency_ms: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("ResponderResult text must be non-empty")


@dataclass(frozen=True)
class RoutingDecision:
    """
    Outcome of evaluating the rule table for one request.

    ``subtopic`` is informational only: it never takes part in choosing
    ``action``.
    """
    category: Category
    action: TriageAction
    topic_gated: bool
    topic_passed: bool
    topic_hits: Tuple[str, ...] = ()
    subtopic: Optional[str] = None
    change_intent_hits: Tuple[str, ...] = ()
    states: Tuple[TriageState, ...] = ()

    @property
    def requests_approval(self) -> bool:
        return self.action == TriageAction.DIAGNOSE_THEN_GATE_REMEDIATE

    @property
    def is_topic_gap(self) -> bool:
        return self.action == TriageAction.TOPIC_GAP


@dataclass
class TriageResult:
    """
    Final record of a workflow run.

    ``output_text`` is always the text of exactly one responder result, except
    for the topic-gap outcome where no responder ran and it is empty.
    """
    outcome: TriageOutcome
    category: Category
    decision: RoutingDecision
    output_text: str = ""
    diagnostic: Optional[ResponderResult] = None
    remediation: Optional[ResponderResult] = None
    approval_requested: bool = False
    approved: Optional[bool] = None

    def __post_init__(self):
        """Validate that the output matches the outcome."""
        if self.outcome == TriageOutcome.TOPIC_GAP:
            if self.output_text or self.diagnostic or self.remediation:
                raise ValueError("Topic gap outcome carries no responder output")
            return

        if self.diagnostic is None:
            raise ValueError("Every non-gap outcome runs the diagnostic responder")

        if self.outcome == TriageOutcome.REMEDIATION:
            if self.remediation is None or not self.approved:
                raise ValueError("Remediation requires an approved remediation result")
            expected = self.remediation.text
        else:
            if self.remediation is not None:
                raise ValueError("Only the remediation outcome carries a remediation result")
            expected = self.diagnostic.text

        if self.output_text != expected:
            raise ValueError("output_text must be the terminating responder's text")
