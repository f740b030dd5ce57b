"""
Triage Application Services
============================

Application services for the external collaborators of the triage workflow:
the category classifier and the diagnostic / remediation responders.

Also defines the ports (interfaces) the workflow depends on.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from src.config import Category, CATEGORY_PRESETS, VALID_CATEGORIES
from src.core import ClassificationError, LLMException, ResponderEmptyOutputError
from src.shared.infrastructure.logging import get_logger
from src.triage.domain import (
    ClassificationPromptBuilder,
    ConversationHistory,
    Request,
    ResponderMode,
    ResponderPromptBuilder,
    ResponderResult,
)

logger = get_logger(__name__)


# ========== Ports ==========

class ILLMClient(ABC):
    """Interface for LLM operations."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        top_p: float = 1.0,
        operation: str = "chat_completion"
    ) -> Any:
        """Generate chat completion."""


class IApprovalGate(ABC):
    """
    Human-approval checkpoint consulted before any remediation content.

    Returns True to allow remediation. Declining is a normal outcome, not an
    error.
    """

    @abstractmethod
    async def request_approval(self, message: str) -> bool:
        """Ask for approval with a fixed confirmation message."""


class IResponder(ABC):
    """Text-generation collaborator consuming the accumulated conversation."""

    mode: ResponderMode

    @abstractmethod
    async def respond(self, history: ConversationHistory) -> ResponderResult:
        """Produce a non-empty narrative or raise ResponderEmptyOutputError."""


# ========== Category Classifier ==========

def resolve_category_hint(hint: str) -> Optional[Category]:
    """Map a caller-supplied hint (label or preset name) onto a Category."""
    cleaned = hint.strip().lower()
    if cleaned in CATEGORY_PRESETS:
        return CATEGORY_PRESETS[cleaned]
    for category in VALID_CATEGORIES:
        if category.value.lower() == cleaned:
            return category
    return None


def parse_category_label(content: Optional[str]) -> Category:
    """
    Parse the classifier's answer into a Category.

    Accepts a JSON object with a ``category`` key (optionally fenced in
    ```json) or a bare label. The label must match an enumeration value
    verbatim.

    Raises:
        ClassificationError: empty, malformed, or unknown label
    """
    if content is None or not content.strip():
        raise ClassificationError("Classifier returned an empty response")

    text = content.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = text

    if isinstance(data, dict):
        label = data.get("category")
    elif isinstance(data, str):
        label = data
    else:
        label = None

    if not isinstance(label, str) or not label.strip():
        raise ClassificationError(
            "Classifier response has no category label",
            {"response_preview": content[:200]}
        )

    label = label.strip()
    for category in VALID_CATEGORIES:
        if category.value == label:
            return category

    raise ClassificationError(
        f"Classifier returned unknown category '{label}'",
        {"label": label}
    )


class CategoryClassifier:
    """
    Service mapping a raw request onto exactly one Category using the LLM.

    There is no silent default: anything other than one of the five labels
    is a ClassificationError.
    """

    def __init__(self, llm_client: ILLMClient, max_tokens: int = 50):
        self._llm = llm_client
        self._max_tokens = max_tokens

    async def classify(self, raw_text: str) -> Category:
        """
        Classify a request.

        Args:
            raw_text: Original request text

        Returns:
            The assigned Category

        Raises:
            ClassificationError: If the collaborator fails or answers badly
        """
        messages = [
            {"role": "system", "content": ClassificationPromptBuilder.get_system_prompt()},
            {"role": "user", "content": ClassificationPromptBuilder.build_prompt(raw_text)}
        ]

        try:
            response = await self._llm.chat_completion(
                messages=messages,
                temperature=0.0,
                max_tokens=self._max_tokens,
                operation="classification"
            )
        except LLMException as e:
            raise ClassificationError(f"Classification failed: {e.message}", e.details) from e

        return parse_category_label(getattr(response, "content", None))

    async def classify_request(self, request: Request) -> Category:
        """Use the request's category hint when present, otherwise ask the LLM."""
        if request.prior_category_hint is not None:
            category = resolve_category_hint(request.prior_category_hint)
            if category is None:
                raise ClassificationError(
                    f"Unrecognized category hint '{request.prior_category_hint}'",
                    {"hint": request.prior_category_hint}
                )
            logger.info("Category taken from hint", extra={"category": category.value})
            return category

        category = await self.classify(request.raw_text)
        logger.info("Request classified", extra={"category": category.value})
        return category


# ========== Responders ==========

class LLMResponder(IResponder):
    """
    Stateless request/response call over the full conversation.

    Subclasses only pick the mode and system prompt.
    """

    mode: ResponderMode
    operation: str

    def __init__(
        self,
        llm_client: ILLMClient,
        temperature: float = 0.7,
        max_tokens: int = 3000,
        top_p: float = 0.95
    ):
        self._llm = llm_client
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._top_p = top_p

    @abstractmethod
    def system_prompt(self) -> str:
        """System prompt sent ahead of the conversation."""

    async def respond(self, history: ConversationHistory) -> ResponderResult:
        """
        Generate a narrative for the conversation so far.

        The history is read, never modified.

        Raises:
            ResponderEmptyOutputError: If the collaborator produced no content
            LLMException: If the collaborator call failed
        """
        messages = [{"role": "system", "content": self.system_prompt()}]
        messages.extend(history.as_messages())

        response = await self._llm.chat_completion(
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            top_p=self._top_p,
            operation=self.operation
        )

        text = getattr(response, "content", None) or ""
        if not text.strip():
            raise ResponderEmptyOutputError(self.mode.value)

        return ResponderResult(
            text=text,
            mode=self.mode,
            model=getattr(response, "model", "unknown"),
            latency_ms=getattr(response, "latency_ms", 0),
            prompt_tokens=getattr(response, "prompt_tokens", 0),
            completion_tokens=getattr(response, "completion_tokens", 0)
        )


class DiagnosticResponder(LLMResponder):
    """Diagnostics-only narrative: triage, causes, evidence, next steps."""

    mode = ResponderMode.DIAGNOSTIC
    operation = "diagnostic"

    def system_prompt(self) -> str:
        return ResponderPromptBuilder.diagnostic_system_prompt()


class RemediationResponder(LLMResponder):
    """Change plan with rollback and validation. Only reached after approval."""

    mode = ResponderMode.REMEDIATION
    operation = "remediation"

    def system_prompt(self) -> str:
        return ResponderPromptBuilder.remediation_system_prompt()
