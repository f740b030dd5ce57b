"""
Decision Tree Router
====================

Evaluates the rule table for a classified request and executes the selected
action against the responders and the approval gate.

Evaluation is a single pass with no backtracking:

1. Top-level gate: a rule with a topic set requires at least one topic
   keyword. Rules without one proceed directly.
2. Topic fallthrough: a failed gate selects the topic gap.
3. Subtopic dispatch: first matching subtopic set in priority order, else
   ``generic``. Recorded for logging only.
4. Change intent: selects diagnose, or diagnose then gate remediation.
"""

from dataclasses import replace
from typing import List, Optional

from src.config import Category, TopicGapPolicy
from src.core import ConfigurationException, UnhandledTopicGapError
from src.shared.infrastructure.logging import get_logger, log_latency
from src.triage.application.services import IApprovalGate, IResponder
from src.triage.domain import (
    ConversationHistory,
    GENERIC_SUBTOPIC,
    KeywordMatcher,
    Request,
    ResponderPromptBuilder,
    ResponderResult,
    RoutingDecision,
    RuleTable,
    TriageAction,
    TriageOutcome,
    TriageResult,
    TriageState,
)

logger = get_logger(__name__)


class DecisionTreeRouter:
    """
    Routes a classified request to the diagnostic responder and, when the
    request asks for a change and approval is granted, the remediation
    responder.

    The remediation responder is never reached without a diagnostic result
    and an affirmative approval decision.
    """

    def __init__(
        self,
        rule_table: RuleTable,
        diagnostic: IResponder,
        remediation: IResponder,
        matcher: Optional[KeywordMatcher] = None,
        approval_gate: Optional[IApprovalGate] = None,
        topic_gap_policy: TopicGapPolicy = TopicGapPolicy.REPORT,
    ):
        self.rule_table = rule_table
        self.matcher = matcher or KeywordMatcher()
        self._diagnostic = diagnostic
        self._remediation = remediation
        self._approval_gate = approval_gate
        self.topic_gap_policy = TopicGapPolicy(topic_gap_policy)

    def evaluate(self, request: Request, category: Category) -> RoutingDecision:
        """Select an action for the request. Pure: no collaborator is called."""
        rule = self.rule_table.rule_for(category)
        text = request.normalized_text
        states: List[TriageState] = [TriageState.START, TriageState.CLASSIFIED]

        topic_hits: List[str] = []
        if rule.is_gated:
            topic_hits = self.matcher.matched(text, rule.topic)
            if not topic_hits:
                states.append(TriageState.ACTION_SELECTED)
                return RoutingDecision(
                    category=category,
                    action=TriageAction.TOPIC_GAP,
                    topic_gated=True,
                    topic_passed=False,
                    states=tuple(states),
                )
            states.append(TriageState.TOPIC_MATCHED)

            subtopic = GENERIC_SUBTOPIC
            for keyword_set in rule.subtopics:
                if self.matcher.matches(text, keyword_set):
                    subtopic = keyword_set.name
                    break
            states.append(TriageState.SUBTOPIC_MATCHED)
        else:
            subtopic = None

        change_hits = self.matcher.matched(text, self.rule_table.change_intent)
        action = (
            TriageAction.DIAGNOSE_THEN_GATE_REMEDIATE if change_hits else rule.leads_to
        )
        states.append(TriageState.ACTION_SELECTED)

        return RoutingDecision(
            category=category,
            action=action,
            topic_gated=rule.is_gated,
            topic_passed=True,
            topic_hits=tuple(topic_hits),
            subtopic=subtopic,
            change_intent_hits=tuple(change_hits),
            states=tuple(states),
        )

    async def route(
        self,
        request: Request,
        category: Category,
        history: ConversationHistory,
        approval_gate: Optional[IApprovalGate] = None,
        correlation_id: Optional[str] = None,
    ) -> TriageResult:
        """
        Evaluate and execute.

        ``history`` must already end with the request's user turn. Responder
        outputs are appended to it as assistant turns.

        Raises:
            UnhandledTopicGapError: topic gap under the ``raise`` policy
            ResponderEmptyOutputError: a responder produced nothing
            ConfigurationException: approval needed but no gate configured
        """
        decision = self.evaluate(request, category)

        logger.info(
            "Routing decision",
            extra={
                "correlation_id": correlation_id,
                "category": category.value,
                "subtopic": decision.subtopic,
                "topic_hits": list(decision.topic_hits),
                "change_intent_hits": list(decision.change_intent_hits),
                "action": decision.action.value,
            }
        )

        if decision.is_topic_gap:
            if self.topic_gap_policy == TopicGapPolicy.RAISE:
                raise UnhandledTopicGapError(category.value)
            return TriageResult(
                outcome=TriageOutcome.TOPIC_GAP,
                category=category,
                decision=_finished(decision),
            )

        gate = approval_gate or self._approval_gate
        if decision.requests_approval and gate is None:
            raise ConfigurationException("No approval gate configured")

        diagnostic = await self._run_responder(self._diagnostic, history, correlation_id)
        history.append("assistant", diagnostic.text)

        if not decision.requests_approval:
            return TriageResult(
                outcome=TriageOutcome.DIAGNOSTIC,
                category=category,
                decision=_finished(decision),
                output_text=diagnostic.text,
                diagnostic=diagnostic,
            )

        approved = bool(await gate.request_approval(self.rule_table.approval_message))
        logger.info(
            "Approval decision",
            extra={"correlation_id": correlation_id, "approved": approved}
        )

        if not approved:
            return TriageResult(
                outcome=TriageOutcome.DECLINED,
                category=category,
                decision=_finished(decision),
                output_text=diagnostic.text,
                diagnostic=diagnostic,
                approval_requested=True,
                approved=False,
            )

        history.append(
            "user",
            ResponderPromptBuilder.approval_turn(self.rule_table.approval_message)
        )
        remediation = await self._run_responder(self._remediation, history, correlation_id)
        history.append("assistant", remediation.text)

        return TriageResult(
            outcome=TriageOutcome.REMEDIATION,
            category=category,
            decision=_finished(decision),
            output_text=remediation.text,
            diagnostic=diagnostic,
            remediation=remediation,
            approval_requested=True,
            approved=True,
        )

    async def _run_responder(
        self,
        responder: IResponder,
        history: ConversationHistory,
        correlation_id: Optional[str],
    ) -> ResponderResult:
        with log_latency(
            logger,
            f"{responder.mode.value}_responder",
            correlation_id=correlation_id,
            turns=len(history),
        ):
            return await responder.respond(history)


def _finished(decision: RoutingDecision) -> RoutingDecision:
    return replace(decision, states=decision.states + (TriageState.DONE,))
