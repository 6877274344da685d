"""FastAPI router for advisor routing and personalization endpoints.

This module provides the REST API for query analysis, agent routing,
outcome feedback and per-user personalization memory.
"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from advisor.agents.advisor_orchestrator import AdvisorOrchestrator
from advisor.agents.memory_store import PersonalizationMemory
from advisor.agents.models import ConversationTurn, QueryAnalysis


logger = logging.getLogger(__name__)

# Router instance - configured with the orchestrator in main.py
router = APIRouter(prefix="/api/advisor", tags=["Advisor Routing"])

# Global reference to orchestrator (set during app startup)
_orchestrator: AdvisorOrchestrator | None = None


def configure_router(orchestrator: AdvisorOrchestrator | None) -> None:
    """Configure the router with its orchestrator.

    Args:
        orchestrator: Initialized advisor orchestrator, or None to detach.
    """
    global _orchestrator
    _orchestrator = orchestrator
    if orchestrator is not None:
        logger.info(f"Advisor router configured (memory={'enabled' if orchestrator.memory else 'disabled'})")


def _require_orchestrator() -> AdvisorOrchestrator:
    if _orchestrator is None:
        raise HTTPException(status_code=503, detail="Advisor not initialized")
    return _orchestrator


def _require_memory() -> PersonalizationMemory:
    memory = _require_orchestrator().memory
    if memory is None:
        raise HTTPException(status_code=503, detail="Personalization memory disabled")
    return memory


# ============================================================================
# Request/Response Models
# ============================================================================


class RouteRequest(BaseModel):
    """Request model for routing a query."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="Free-text user request",
        examples=["What's wrong with my sales conversion, it's stuck"],
    )
    user_id: str | None = Field(default=None, description="Known user id (preferred identity)")
    session_id: str | None = Field(default=None, description="Session id (fallback identity)")
    business_context: dict[str, Any] = Field(
        default_factory=dict,
        description="Optional structured business context",
    )
    session_type: str | None = Field(default=None, description="Caller label, e.g. chat or assessment")
    execute: bool = Field(
        default=False,
        description="Run the primary agent and record the turn in memory",
    )


class AnalyzeRequest(BaseModel):
    """Request model for query analysis only."""

    query: str = Field(..., max_length=5000, description="Free-text user request")
    business_context: dict[str, Any] = Field(default_factory=dict)


class OutcomeRequest(BaseModel):
    """Request model for reporting an agent outcome."""

    agent: str = Field(..., min_length=1, description="Registered agent name")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Observed confidence")
    success: bool = Field(..., description="Whether the agent's output was usable")


class QueryAnalysisPayload(BaseModel):
    """Client-supplied analysis for a recorded turn."""

    intent: Literal[
        "analyze", "optimize", "diagnose", "plan", "compare", "learn", "create", "fix", "general",
    ] = "general"
    complexity: Literal["simple", "medium", "complex", "strategic"] = "simple"
    urgency: Literal["low", "medium", "high", "critical"] = "medium"
    business_context: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=0.95)


class TurnRequest(BaseModel):
    """Request model for recording a completed interaction."""

    user_query: str = Field(..., min_length=1, max_length=5000)
    agent_response: str = Field(default="")
    selected_agent: str = Field(..., min_length=1)
    query_analysis: QueryAnalysisPayload | None = Field(
        default=None,
        description="Analysis that drove routing; recomputed from user_query when omitted",
    )
    success: bool = True
    execution_time: float = Field(default=0.0, ge=0.0)
    insights: list[str] = Field(default_factory=list)
    follow_up_suggestions: list[str] = Field(default_factory=list)


class FeedbackRequest(BaseModel):
    """Request model for feedback on a past turn."""

    turn_id: str = Field(..., min_length=1)
    feedback: Literal["positive", "negative", "neutral"]


class TurnResponse(BaseModel):
    """Response model for a recorded turn."""

    turn_id: str
    identity_key: str
    history_length: int


# ============================================================================
# Routing Endpoints
# ============================================================================


@router.post("/route")
async def route_query(request: RouteRequest) -> dict[str, Any]:
    """Route a query to the best agents.

    Personalized with the caller's memory when an identity is supplied and
    memory is enabled. With execute=true the primary agent is run and the
    turn is recorded.

    Returns:
        The routing decision, or the full advisor result when executed.
    """
    orchestrator = _require_orchestrator()
    if request.execute:
        result = orchestrator.handle(
            request.query,
            user_id=request.user_id,
            session_id=request.session_id,
            business_context=request.business_context,
            session_type=request.session_type,
        )
        return result.to_dict()

    decision, key, recommendations = orchestrator.prepare(
        request.query,
        user_id=request.user_id,
        session_id=request.session_id,
        business_context=request.business_context,
        session_type=request.session_type,
    )

    return {
        "decision": decision.to_dict(),
        "identity_key": key,
        "recommendations": recommendations.to_dict() if recommendations else None,
    }


@router.post("/analyze")
async def analyze_query(request: AnalyzeRequest) -> dict[str, Any]:
    """Analyze a query without routing it."""
    orchestrator = _require_orchestrator()
    return orchestrator.engine.analyze(request.query, request.business_context).to_dict()


@router.post("/outcome")
async def record_outcome(request: OutcomeRequest) -> dict[str, Any]:
    """Feed an observed agent outcome back into the registry."""
    orchestrator = _require_orchestrator()
    if not orchestrator.engine.record_outcome(request.agent, request.confidence, request.success):
        raise HTTPException(status_code=404, detail=f"Unknown agent: {request.agent}")
    return {
        "recorded": True,
        "agent": orchestrator.engine.registry.get(request.agent).to_dict(),
    }


@router.get("/analytics")
async def get_analytics() -> dict[str, Any]:
    """Routing analytics plus store-wide memory patterns."""
    orchestrator = _require_orchestrator()
    return {
        "routing": orchestrator.engine.get_routing_analytics(),
        "global_patterns": orchestrator.memory.get_global_patterns() if orchestrator.memory else None,
    }


# ============================================================================
# Memory Endpoints
# ============================================================================


@router.post("/memory/{key}/turns", response_model=TurnResponse)
async def record_turn(key: str, request: TurnRequest) -> TurnResponse:
    """Record a completed interaction for an identity key."""
    orchestrator = _require_orchestrator()
    memory = _require_memory()
    if request.selected_agent not in orchestrator.engine.registry:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {request.selected_agent}")

    if request.query_analysis is not None:
        analysis = QueryAnalysis.from_dict(request.query_analysis.model_dump())
    else:
        analysis = orchestrator.engine.analyze(request.user_query)

    turn = ConversationTurn(
        user_query=request.user_query,
        agent_response=request.agent_response,
        selected_agent=request.selected_agent,
        query_analysis=analysis,
        success=request.success,
        execution_time=request.execution_time,
        insights=request.insights,
        follow_up_suggestions=request.follow_up_suggestions,
    )
    entry = memory.record_turn(key, turn)

    return TurnResponse(
        turn_id=turn.id,
        identity_key=entry.key,
        history_length=len(entry.conversation_history),
    )


@router.post("/memory/{key}/feedback")
async def record_feedback(key: str, request: FeedbackRequest) -> dict[str, Any]:
    """Attach user feedback to a past turn."""
    memory = _require_memory()
    if not memory.record_feedback(key, request.turn_id, request.feedback):
        raise HTTPException(status_code=404, detail=f"Turn not found: {request.turn_id}")
    return {"recorded": True, "turn_id": request.turn_id, "feedback": request.feedback}


@router.get("/memory/{key}/recommendations")
async def get_recommendations(
    key: str,
    query: str = Query(..., min_length=1, max_length=5000),
) -> dict[str, Any]:
    """Memory-derived hints for a new query."""
    memory = _require_memory()
    return memory.get_contextual_recommendations(key, query).to_dict()


@router.get("/memory/{key}/context")
async def get_context(key: str) -> dict[str, Any]:
    """Roll-up of the recent conversation for a key."""
    memory = _require_memory()
    return memory.get_conversation_context(key).to_dict()


@router.get("/memory/{key}/analytics")
async def get_memory_analytics(key: str) -> dict[str, Any]:
    """Summary statistics for one key."""
    memory = _require_memory()
    return memory.get_memory_analytics(key)


@router.delete("/memory/{key}")
async def clear_memory(key: str) -> dict[str, Any]:
    """Remove all memory state for a key."""
    memory = _require_memory()
    return {"cleared": memory.clear(key), "identity_key": key}
