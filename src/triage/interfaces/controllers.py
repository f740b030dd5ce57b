"""
Triage Controllers (API Routes)
================================

FastAPI routes for the triage workflow.

Controllers delegate to the workflow and router built at startup.
"""

import time

from fastapi import APIRouter, Depends, Request

from src.config import Category
from src.core import ConfigurationException
from src.shared.infrastructure.logging import get_logger
from src.triage.application import (
    DecisionTreeRouter,
    EvaluateRequest,
    RoutingDecisionInfo,
    RuleTableResponse,
    TriageRunRequest,
    TriageRunResponse,
    TriageWorkflow,
)
from src.triage.domain import Request as TriageRequest
from src.triage.infrastructure import ApprovalGateFactory

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Triage"])


# ========== Example payloads for Swagger ==========

RUN_REQUEST_EXAMPLE = {
    "input_as_text": "Core switch showing CRC errors and STP flaps on trunk to dist layer. Cisco Nexus.",
    "category_hint": None,
    "history": [],
    "scripts": []
}

RUN_RESPONSE_EXAMPLE = {
    "output_text": "A) Quick Triage\n- CRC errors and STP topology changes on a trunk uplink\n...",
    "outcome": "diagnostic",
    "category": "Networking",
    "subtopic": "cisco",
    "approval_requested": False,
    "approved": None,
    "processing_time_ms": 2400
}

EVALUATE_RESPONSE_EXAMPLE = {
    "category": "HardwareComponents",
    "action": "diagnose_then_gate_remediate",
    "topic_gated": True,
    "topic_passed": True,
    "topic_hits": ["idrac", "raid"],
    "subtopic": "dell",
    "change_intent_hits": ["go ahead"],
    "requests_approval": True,
    "states": ["start", "classified", "topic_matched", "subtopic_matched", "action_selected"]
}


# ========== Dependencies ==========

def get_workflow(request: Request) -> TriageWorkflow:
    """Get the triage workflow from app state."""
    workflow = getattr(request.app.state, "workflow", None)
    if workflow is None:
        raise ConfigurationException("Triage workflow not available - LLM not configured")
    return workflow


def get_router(request: Request) -> DecisionTreeRouter:
    """Get the decision tree router from app state."""
    decision_router = getattr(request.app.state, "router", None)
    if decision_router is None:
        raise ConfigurationException("Decision tree router not initialized")
    return decision_router


def get_approval_gates(request: Request) -> ApprovalGateFactory:
    """Get the approval gate factory from app state."""
    gates = getattr(request.app.state, "approval_gates", None)
    if gates is None:
        raise ConfigurationException("Approval gate not initialized")
    return gates


# ========== Route Handlers ==========

@router.post(
    "/run",
    response_model=TriageRunResponse,
    summary="Triage a support request",
    description="""
    Run the triage workflow on a free-text infrastructure support request.

    1. The request is classified into one of `Networking`, `ServerOS`,
       `ScriptAutomation`, `HardwareComponents` or `Unknown`
       (skipped when `category_hint` is given)
    2. The rule table checks for topic keywords of the category
    3. The diagnostic responder always runs first
    4. When the request asks for a change, the approval gate is consulted and
       only an approved request reaches the remediation responder

    **Outcomes**: `diagnostic`, `remediation`, `declined` (approval refused,
    diagnostic text returned), `topic_gap` (no topic evidence, empty output).

    Up to three `scripts` are appended to the request as numbered context for
    the responders; they are not used for classification or routing.
    """,
    responses={
        200: {
            "description": "Request triaged",
            "content": {"application/json": {"example": RUN_RESPONSE_EXAMPLE}}
        },
        400: {"description": "Blank input"},
        422: {"description": "Topic gap under the 'raise' policy, or invalid body"},
        502: {"description": "Classifier, responder or approval service failure"},
        503: {"description": "LLM not configured"}
    }
)
async def run_triage(
    request: Request,
    payload: TriageRunRequest,
    workflow: TriageWorkflow = Depends(get_workflow),
    gates: ApprovalGateFactory = Depends(get_approval_gates)
):
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    result = await workflow.run(
        payload.input_as_text,
        category_hint=payload.category_hint,
        history=payload.history,
        scripts=payload.scripts,
        approval_gate=gates.create(payload.input_as_text, correlation_id),
        correlation_id=correlation_id
    )

    total_time = int((time.perf_counter() - start_time) * 1000)

    return TriageRunResponse.from_domain(result, processing_time_ms=total_time)


@router.post(
    "/evaluate",
    response_model=RoutingDecisionInfo,
    summary="Dry-run the decision tree",
    description="""
    Evaluate the rule table for a request against a given category without
    calling the classifier, the responders or the approval gate.
    """,
    responses={
        200: {
            "description": "Routing decision",
            "content": {"application/json": {"example": EVALUATE_RESPONSE_EXAMPLE}}
        }
    }
)
async def evaluate_routing(
    request: Request,
    payload: EvaluateRequest,
    decision_router: DecisionTreeRouter = Depends(get_router)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    decision = decision_router.evaluate(
        TriageRequest(raw_text=payload.input_as_text),
        Category(payload.category)
    )

    logger.info(
        "Routing evaluated",
        extra={
            "correlation_id": correlation_id,
            "category": decision.category.value,
            "action": decision.action.value
        }
    )

    return RoutingDecisionInfo.from_domain(decision)


@router.get(
    "/rules",
    response_model=RuleTableResponse,
    summary="Get the active rule table",
    description="""
    The rule table in effect: topic and subtopic keyword sets per category,
    the change-intent keywords, the approval message, the keyword match mode
    and the topic gap policy.
    """
)
async def get_rules(decision_router: DecisionTreeRouter = Depends(get_router)):
    return RuleTableResponse.from_domain(
        decision_router.rule_table,
        match_mode=decision_router.matcher.mode.value,
        topic_gap_policy=decision_router.topic_gap_policy.value
    )


# Export router for inclusion in main app
triage_router = router
