"""
Infrastructure Triage Service - Main Application
================================================

Triage workflow for enterprise infrastructure support requests.

Modules:
- Triage: classify a request, route it through the keyword rule table and
  produce diagnostics, or a remediation plan after approval

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services, router, workflow and DTOs
- Domain: Entities, keyword matching and the rule table
- Infrastructure: LLM client, approval gates, rule catalog loader
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from src.config import MatchMode, TopicGapPolicy, settings
from src.core import ApplicationException, ConfigurationException

# Triage Module
from src.triage.application import (
    CategoryClassifier,
    DecisionTreeRouter,
    DiagnosticResponder,
    RemediationResponder,
    TriageWorkflow,
)
from src.triage.domain import KeywordMatcher
from src.triage.infrastructure import (
    LLMClientAdapter,
    RuleCatalogLoader,
    build_approval_gate_factory,
)
from src.triage.interfaces import triage_router

# Logging
from src.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load the rule catalog
    3. Build the approval gate factory
    4. Initialize LLM client, classifier and responders
    5. Build router and workflow

    SHUTDOWN:
    1. Close the approval HTTP client
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Triage Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })
    app.state.settings = settings

    logger.info("Loading triage rule catalog")
    rule_table = RuleCatalogLoader().load(settings.triage_rules_path)
    approval_gates = build_approval_gate_factory(settings)

    logger.info("Initializing LLM client")
    try:
        llm_adapter = LLMClientAdapter(settings)
    except ConfigurationException as e:
        logger.warning(f"LLM client initialization failed: {e.message}")
        llm_adapter = None

    responder_options = {
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens,
        "top_p": settings.llm_top_p
    }

    decision_router = DecisionTreeRouter(
        rule_table=rule_table,
        diagnostic=DiagnosticResponder(llm_adapter, **responder_options),
        remediation=RemediationResponder(llm_adapter, **responder_options),
        matcher=KeywordMatcher(MatchMode(settings.triage_match_mode)),
        topic_gap_policy=TopicGapPolicy(settings.triage_topic_gap_policy)
    )

    # Store services in app state for dependency injection
    app.state.router = decision_router
    app.state.approval_gates = approval_gates
    app.state.llm_client = llm_adapter

    if llm_adapter is not None:
        app.state.workflow = TriageWorkflow(
            classifier=CategoryClassifier(llm_adapter),
            router=decision_router,
            history_max_turns=settings.history_max_turns
        )
    else:
        app.state.workflow = None
        logger.warning("Triage workflow not available - no LLM client")

    logger.info("Triage Service started successfully", extra={
        "rules_source": rule_table.source,
        "match_mode": settings.triage_match_mode,
        "approval_mode": settings.triage_approval_mode
    })

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Triage Service")

    await approval_gates.close()

    logger.info("Triage Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Infrastructure Triage API",
    description="""
    ## Infrastructure Support Triage

    Diagnostics-first troubleshooting for networking, server OS, scripting and
    hardware support requests.

    ---

    ### Triage Module

    **Endpoints:**
    - `POST /triage/run` - Triage a request (classify, diagnose, gated remediation)
    - `POST /triage/evaluate` - Dry-run the decision tree for a category
    - `GET /triage/rules` - View the active rule table

    **Features:**
    - LLM classification into five categories, or a caller-supplied preset
    - Keyword topic gate and vendor / error-family subtopics
    - Remediation only after an explicit approval decision

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(triage_router)

# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.2.0",
                    "environment": "development",
                    "checks": {
                        "llm_client": "available",
                        "rules": "built-in",
                        "approval_mode": "auto"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns service health status including:
    - LLM client availability
    - Rule catalog source
    - Approval gate mode
    """
    decision_router = getattr(request.app.state, "router", None)
    gates = getattr(request.app.state, "approval_gates", None)

    checks = {
        "llm_client": "available" if getattr(request.app.state, "workflow", None) else "not_configured",
        "rules": decision_router.rule_table.source if decision_router else "not_loaded",
        "approval_mode": gates.mode.value if gates else "not_configured"
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"], responses={
    200: {
        "description": "API information",
        "content": {
            "application/json": {
                "example": {
                    "service": "Infrastructure Triage Service",
                    "version": "1.2.0",
                    "architecture": "Clean Architecture / Modular Monolith",
                    "docs": "/docs",
                    "health": "/health"
                }
            }
        }
    }
})
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Infrastructure Triage Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "triage": {
                "prefix": "/triage",
                "endpoints": [
                    "POST /triage/run - Triage a support request",
                    "POST /triage/evaluate - Dry-run the decision tree",
                    "GET /triage/rules - Get the active rule table"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
