"""Advisor Orchestrator - Routing + execution + memory in one call.

Coordinates a single advisory request:
1. RoutingEngine.analyze -> QueryAnalysis
2. PersonalizationMemory -> routing bias, conversation context, recommendations
3. RoutingEngine.route -> RoutingDecision (personalized)
4. AgentExecutor.execute -> response text, insights, success
5. RoutingEngine.record_outcome -> registry rolling statistics
6. PersonalizationMemory.record_turn -> learned preferences

The executor is opaque to the orchestrator; anything with an
execute(selection, query) method works. Executor failures are recorded as
unsuccessful turns instead of propagating.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .capability_registry import CapabilityRegistry
from .memory_store import PersonalizationMemory
from .models import (
    AgentSelection,
    ContextualRecommendations,
    ConversationTurn,
    RoutingDecision,
)
from .routing_engine import RoutingEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExecutionResult:
    """What an executor produced for one selection."""
    response_text: str
    insights: list[str] = field(default_factory=list)
    success: bool = True
    follow_up_suggestions: list[str] = field(default_factory=list)
    confidence: float | None = None  # Falls back to the selection confidence


class AgentExecutor(Protocol):
    """Runs a selected agent against a query."""

    def execute(self, selection: AgentSelection, query: str) -> "ExecutionResult | tuple[str, list[str], bool]":
        ...


class CapabilityExecutor:
    """Executor that answers from the registered capability profile.

    Stands in when no real agent backend is wired up, so the HTTP surface
    and the learning loop work end to end.
    """

    __slots__ = ("_registry",)

    def __init__(self, registry: CapabilityRegistry):
        self._registry = registry

    def execute(self, selection: AgentSelection, query: str) -> ExecutionResult:
        capability = self._registry.get(selection.agent)
        insights = [f"Apply {name}" for name in selection.expected_frameworks]
        return ExecutionResult(
            response_text=f"{capability.name}: {capability.description}.",
            insights=insights,
            success=True,
            follow_up_suggestions=[f"How do I get started with {kw}?" for kw in capability.expertise[:2]],
        )


@dataclass(slots=True)
class AdvisorResult:
    """Result of one orchestrated request.

    Attributes:
        decision: Routing decision that was executed.
        response_text: Executor output (empty on failure).
        insights: Insights reported by the executor.
        success: Whether execution succeeded.
        turn_id: Id of the recorded ConversationTurn.
        identity_key: Memory key the turn was recorded under.
        execution_time: Seconds spent in the executor.
        recommendations: Memory hints available before the request.
        follow_up_suggestions: Suggested next questions.
        error: Executor error message, if any.
    """
    decision: RoutingDecision
    response_text: str
    insights: list[str] = field(default_factory=list)
    success: bool = True
    turn_id: str | None = None
    identity_key: str | None = None
    execution_time: float = 0.0
    recommendations: ContextualRecommendations | None = None
    follow_up_suggestions: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "decision": self.decision.to_dict(),
            "response_text": self.response_text,
            "insights": self.insights,
            "success": self.success,
            "turn_id": self.turn_id,
            "identity_key": self.identity_key,
            "execution_time": self.execution_time,
            "recommendations": self.recommendations.to_dict() if self.recommendations else None,
            "follow_up_suggestions": self.follow_up_suggestions,
            "error": self.error,
        }


def _normalize_result(raw: Any) -> ExecutionResult:
    """Accept an ExecutionResult or a (response_text, insights, success) tuple."""
    if isinstance(raw, ExecutionResult):
        return raw
    response_text, insights, success = raw
    return ExecutionResult(response_text=str(response_text), insights=list(insights), success=bool(success))


class AdvisorOrchestrator:
    """Personalized routing, execution and learning for advisory queries."""

    __slots__ = ("_engine", "_memory", "_executor")

    def __init__(
        self,
        engine: RoutingEngine,
        memory: PersonalizationMemory | None = None,
        executor: AgentExecutor | None = None,
    ):
        """Initialize AdvisorOrchestrator.

        Args:
            engine: Routing engine (owns the capability registry).
            memory: Personalization memory; None disables personalization.
            executor: Agent executor (defaults to CapabilityExecutor).
        """
        self._engine = engine
        self._memory = memory
        self._executor = executor or CapabilityExecutor(engine.registry)
        logger.info(
            f"AdvisorOrchestrator initialized: memory={'on' if memory else 'off'}, "
            f"executor={type(self._executor).__name__}"
        )

    @property
    def engine(self) -> RoutingEngine:
        return self._engine

    @property
    def memory(self) -> PersonalizationMemory | None:
        return self._memory

    def prepare(
        self,
        query: str,
        *,
        user_id: str | None = None,
        session_id: str | None = None,
        business_context: Mapping[str, Any] | None = None,
        session_type: str | None = None,
    ) -> tuple[RoutingDecision, str | None, ContextualRecommendations | None]:
        """Build a personalized routing decision without executing it.

        Returns:
            (decision, identity key or None, recommendations or None)
        """
        context = dict(business_context or {})
        if self._memory is None:
            decision = self._engine.route(query, context, session_type)
            return decision, None, None

        # Complexity counts only caller-supplied context keys
        analysis = self._engine.analyze(query, context)

        key = self._memory.resolve_key(user_id, session_id)
        recommendations = self._memory.get_contextual_recommendations(key, query)
        conversation = self._memory.get_conversation_context(key)
        if conversation.recent_queries:
            context["memory"] = {
                "conversation": conversation.to_dict(),
                "recommendations": recommendations.to_dict(),
            }

        bias = self._memory.get_routing_bias(key, analysis.intent)
        if bias:
            logger.debug(f"AdvisorOrchestrator: routing bias for {key}: {bias}")

        decision = self._engine.route(
            query, context, session_type, analysis=analysis, agent_bias=bias,
        )
        return decision, key, recommendations

    def handle(
        self,
        query: str,
        *,
        user_id: str | None = None,
        session_id: str | None = None,
        business_context: Mapping[str, Any] | None = None,
        session_type: str | None = None,
    ) -> AdvisorResult:
        """Route, execute and learn from one query."""
        decision, key, recommendations = self.prepare(
            query,
            user_id=user_id,
            session_id=session_id,
            business_context=business_context,
            session_type=session_type,
        )
        primary = decision.primary

        start = time.time()
        error = None
        try:
            result = _normalize_result(self._executor.execute(primary, query))
        except Exception as e:
            logger.error(f"AdvisorOrchestrator: executor failed for {primary.agent}: {e}", exc_info=True)
            error = str(e)
            result = ExecutionResult(response_text="", success=False)
        execution_time = time.time() - start

        confidence = result.confidence if result.confidence is not None else primary.confidence
        self._engine.record_outcome(primary.agent, confidence, result.success)

        turn_id = None
        if self._memory is not None and key is not None:
            turn = ConversationTurn(
                user_query=query,
                agent_response=result.response_text,
                selected_agent=primary.agent,
                query_analysis=decision.analysis,
                success=result.success,
                execution_time=execution_time,
                insights=list(result.insights),
                follow_up_suggestions=list(result.follow_up_suggestions),
            )
            self._memory.record_turn(key, turn)
            turn_id = turn.id

        logger.info(
            f"AdvisorOrchestrator: {primary.agent} success={result.success} "
            f"time={execution_time * 1000:.0f}ms key={key}"
        )

        return AdvisorResult(
            decision=decision,
            response_text=result.response_text,
            insights=list(result.insights),
            success=result.success,
            turn_id=turn_id,
            identity_key=key,
            execution_time=execution_time,
            recommendations=recommendations,
            follow_up_suggestions=list(result.follow_up_suggestions),
            error=error,
        )

    def get_stats(self) -> dict[str, Any]:
        """Get orchestrator statistics."""
        return {
            "routing": self._engine.get_routing_analytics(),
            "recorder": self._engine.recorder.get_stats(),
            "memory": self._memory.get_stats() if self._memory else None,
        }


def create_advisor_orchestrator(
    config: Any = None,
    executor: AgentExecutor | None = None,
) -> AdvisorOrchestrator:
    """Factory function to create a fully wired AdvisorOrchestrator.

    Args:
        config: Config instance (defaults to the module-level cfg).
        executor: Optional agent executor.

    Returns:
        Configured AdvisorOrchestrator instance.
    """
    if config is None:
        from advisor.config import cfg as config

    engine = RoutingEngine(registry=CapabilityRegistry(), config=config.get_routing_config())
    memory = (
        PersonalizationMemory.from_config(config.get_memory_config())
        if config.is_memory_enabled()
        else None
    )
    return AdvisorOrchestrator(engine, memory=memory, executor=executor)
