"""
Triage Workflow
===============

Entry point of the triage workflow: ``{input_as_text}`` in,
``{output_text}`` out.

Each invocation owns a fresh conversation history, discarded afterwards.
"""

from typing import Any, Iterable, List, Mapping, Optional

from src.core import ValidationException
from src.shared.infrastructure.logging import get_logger
from src.triage.application.router import DecisionTreeRouter
from src.triage.application.services import CategoryClassifier, IApprovalGate
from src.triage.domain import ChatMessage, ConversationHistory, Request, TriageResult

logger = get_logger(__name__)


MAX_ATTACHED_SCRIPTS = 3
MAX_SCRIPT_CHARS = 6000
ATTACHED_SCRIPTS_HEADER = "[ATTACHED SCRIPTS]"


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def normalize_history(
    turns: Optional[Iterable[Any]],
    max_turns: int = 12
) -> List[ChatMessage]:
    """
    Clean caller-supplied prior turns.

    Keeps ``user`` / ``assistant`` turns whose content is a non-blank string,
    trims the content, and returns the last ``max_turns`` of them.
    """
    cleaned: List[ChatMessage] = []
    for turn in turns or []:
        role, content = _field(turn, "role"), _field(turn, "content")

        if role not in ConversationHistory.ROLES:
            continue
        if not isinstance(content, str) or not content.strip():
            continue
        cleaned.append(ChatMessage(role=role, content=content.strip()))

    if max_turns <= 0:
        return []
    return cleaned[-max_turns:]


def truncate_text(text: str, max_chars: int = MAX_SCRIPT_CHARS) -> str:
    """Keep the first and last ``max_chars // 2`` characters of long text."""
    if len(text) <= max_chars:
        return text
    half = max_chars // 2
    return (
        text[:half]
        + f"\n\n[... TRUNCATED: showing first and last {half} characters of {len(text)} total ...]\n\n"
        + text[-half:]
    )


def add_line_numbers(text: str) -> str:
    return "\n".join(
        f"{number:4d} | {line}" for number, line in enumerate(text.split("\n"), start=1)
    )


def build_script_blocks(
    scripts: Optional[Iterable[Any]],
    max_scripts: int = MAX_ATTACHED_SCRIPTS,
    max_chars: int = MAX_SCRIPT_CHARS
) -> List[str]:
    """
    Render attached scripts as numbered context blocks.

    Scripts are dicts or objects with ``name``, ``language`` and ``content``.
    Only the first ``max_scripts`` are considered and blank ones are skipped.
    """
    blocks: List[str] = []
    for script in list(scripts or [])[:max_scripts]:
        content = _field(script, "content")
        if not isinstance(content, str) or not content.strip():
            continue
        name = _field(script, "name") or "script"
        language = _field(script, "language") or "text"
        numbered = add_line_numbers(truncate_text(content, max_chars))
        blocks.append(f"--- SCRIPT: {name} ({language}) ---\n{numbered}\n--- END SCRIPT ---")
    return blocks


class TriageWorkflow:
    """Classify, then route. One history per run."""

    def __init__(
        self,
        classifier: CategoryClassifier,
        router: DecisionTreeRouter,
        history_max_turns: int = 12
    ):
        self.classifier = classifier
        self.router = router
        self.history_max_turns = history_max_turns

    async def run(
        self,
        input_as_text: str,
        category_hint: Optional[str] = None,
        history: Optional[Iterable[Any]] = None,
        scripts: Optional[Iterable[Any]] = None,
        approval_gate: Optional[IApprovalGate] = None,
        correlation_id: Optional[str] = None
    ) -> TriageResult:
        """
        Triage a single support request.

        Args:
            input_as_text: Raw request text
            category_hint: Optional category label or preset name
            history: Optional prior turns from the caller
            scripts: Optional scripts appended to the user turn as context
            approval_gate: Per-request gate overriding the router's default
            correlation_id: Request correlation ID for logging

        Returns:
            TriageResult whose ``output_text`` is the workflow output

        Raises:
            ValidationException: blank input
            ClassificationError, ResponderEmptyOutputError, LLMException,
            ApprovalServiceException, UnhandledTopicGapError
        """
        if input_as_text is None or not input_as_text.strip():
            raise ValidationException("input_as_text must not be empty")

        request = Request(raw_text=input_as_text, prior_category_hint=category_hint)

        conversation = ConversationHistory(
            normalize_history(history, self.history_max_turns)
        )
        script_blocks = build_script_blocks(scripts)
        user_turn = input_as_text.strip()
        if script_blocks:
            user_turn += f"\n\n{ATTACHED_SCRIPTS_HEADER}\n" + "\n\n".join(script_blocks)
        conversation.append("user", user_turn)

        logger.info(
            "Triage started",
            extra={
                "correlation_id": correlation_id,
                "input_length": len(input_as_text),
                "prior_turns": len(conversation) - 1,
                "attached_scripts": len(script_blocks),
                "has_category_hint": category_hint is not None
            }
        )

        category = await self.classifier.classify_request(request)

        result = await self.router.route(
            request,
            category,
            conversation,
            approval_gate=approval_gate,
            correlation_id=correlation_id
        )

        logger.info(
            "Triage finished",
            extra={
                "correlation_id": correlation_id,
                "category": result.category.value,
                "outcome": result.outcome.value,
                "turns": len(conversation)
            }
        )
        return result
