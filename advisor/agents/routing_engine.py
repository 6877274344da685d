"""Routing Engine - Picks the agents that answer a query.

ROUTING DECISION STEPS:
1. Analyze the query (intent, complexity, urgency, tags, frameworks)
2. Score every registered agent against a registry snapshot
3. Primary = highest score, ties broken by registry declaration order
4. Secondary = next best agents scoring above the inclusion threshold
5. Collaborative mode for complex/strategic queries, >2 frameworks,
   or more than one secondary agent
6. Build an execution plan and a reasoning string naming the agents

The decision itself is a pure function of (query, analysis, registry
snapshot, bias). Only the analysis audit log and the registry's rolling
statistics are mutable, each behind its own lock.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import Counter, deque
from collections.abc import Mapping
from typing import Any

from .agent_scorer import AgentScorer, ScoredAgent
from .capability_registry import CapabilityRegistry
from .exceptions import ConfigurationError
from .models import (
    AgentSelection,
    QueryAnalysis,
    QueryComplexity,
    QueryUrgency,
    RoutingDecision,
)
from .performance_recorder import PerformanceRecorder
from .query_analyzer import QueryAnalyzer

logger = logging.getLogger(__name__)


# Complexity levels that always trigger collaborative mode
COLLABORATIVE_COMPLEXITIES = frozenset([
    QueryComplexity.COMPLEX,
    QueryComplexity.STRATEGIC,
])

# Urgency levels called out in the reasoning string
ELEVATED_URGENCIES = frozenset([
    QueryUrgency.HIGH,
    QueryUrgency.CRITICAL,
])

PRIMARY_CONFIDENCE_DIVISOR = 100.0
PRIMARY_CONFIDENCE_CAP = 0.95
SECONDARY_CONFIDENCE_DIVISOR = 120.0
SECONDARY_CONFIDENCE_CAP = 0.85


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class RoutingEngine:
    """Routes advisory queries to specialist agents.

    Owns the capability registry, the performance recorder and a bounded
    audit log of every analysis it produced.
    """

    __slots__ = (
        "_registry",
        "_analyzer",
        "_scorer",
        "_recorder",
        "_secondary_threshold",
        "_max_secondary",
        "_history",
        "_session_types",
        "_history_lock",
    )

    DEFAULT_SECONDARY_THRESHOLD = 30.0
    DEFAULT_MAX_SECONDARY = 3
    DEFAULT_HISTORY_LIMIT = 1000

    def __init__(
        self,
        registry: CapabilityRegistry | None = None,
        analyzer: QueryAnalyzer | None = None,
        scorer: AgentScorer | None = None,
        config: dict[str, Any] | None = None,
    ):
        """Initialize RoutingEngine.

        Args:
            registry: Capability registry (defaults to the built-in agents).
            analyzer: Query analyzer.
            scorer: Agent scorer.
            config: Optional routing settings, see Config.get_routing_config().

        Raises:
            ConfigurationError: If the registry is empty.
        """
        config = config or {}
        self._registry = registry if registry is not None else CapabilityRegistry()
        if len(self._registry) == 0:
            raise ConfigurationError("Routing engine requires a non-empty capability registry")

        self._analyzer = analyzer or QueryAnalyzer()
        self._scorer = scorer or AgentScorer()
        self._recorder = PerformanceRecorder(
            self._registry,
            window_size=config.get("performance_window", PerformanceRecorder.DEFAULT_WINDOW),
        )
        self._secondary_threshold = float(
            config.get("secondary_threshold", self.DEFAULT_SECONDARY_THRESHOLD)
        )
        self._max_secondary = int(config.get("max_secondary_agents", self.DEFAULT_MAX_SECONDARY))
        self._history: deque[QueryAnalysis] = deque(
            maxlen=max(1, int(config.get("query_history_limit", self.DEFAULT_HISTORY_LIMIT)))
        )
        self._session_types: Counter[str] = Counter()
        self._history_lock = threading.Lock()

        logger.info(
            f"RoutingEngine initialized: agents={len(self._registry)}, "
            f"secondary_threshold={self._secondary_threshold}, max_secondary={self._max_secondary}, "
            f"history_limit={self._history.maxlen}"
        )

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def recorder(self) -> PerformanceRecorder:
        return self._recorder

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def analyze(self, query: str, business_context: Mapping[str, Any] | None = None) -> QueryAnalysis:
        """Analyze a query and append the result to the audit log."""
        analysis = self._analyzer.analyze(query, business_context)
        with self._history_lock:
            self._history.append(analysis)
        return analysis

    def route(
        self,
        query: str,
        business_context: Mapping[str, Any] | None = None,
        session_type: str | None = None,
        *,
        analysis: QueryAnalysis | None = None,
        agent_bias: Mapping[str, float] | None = None,
    ) -> RoutingDecision:
        """Determine which agents should handle a query.

        Args:
            query: Free-text user request.
            business_context: Optional structured context.
            session_type: Optional caller label (chat, assessment, ...),
                tracked for analytics only.
            analysis: Precomputed analysis from analyze(); skips re-analysis.
            agent_bias: Per-agent score adjustments, e.g. from memory.

        Returns:
            RoutingDecision naming primary and secondary agents.

        Raises:
            ConfigurationError: If the registry snapshot is empty.
        """
        if analysis is None:
            analysis = self.analyze(query, business_context)
        if session_type:
            with self._history_lock:
                self._session_types[session_type] += 1

        capabilities = self._registry.snapshot()
        if not capabilities:
            raise ConfigurationError("Capability registry is empty, cannot route")

        scored = self._scorer.score_agents(capabilities, analysis, query, agent_bias)
        ranked = self._scorer.rank(scored)

        primary = self._select_primary(ranked[0], analysis)
        secondary = self._select_secondary(ranked[1:], analysis, primary)
        collaborative = self._should_collaborate(analysis, secondary)
        plan = self._create_execution_plan(primary, secondary, collaborative)
        reasoning = self._generate_reasoning(analysis, primary, secondary, collaborative)

        logger.info(
            f"RoutingEngine: primary={primary.agent} ({ranked[0].total_score:.1f}) "
            f"secondary={[s.agent for s in secondary]} collaborative={collaborative}"
        )

        return RoutingDecision(
            primary=primary,
            secondary=secondary,
            collaborative_mode=collaborative,
            execution_plan=plan,
            reasoning=reasoning,
            analysis=analysis,
        )

    def score(
        self,
        query: str,
        analysis: QueryAnalysis,
        agent_bias: Mapping[str, float] | None = None,
    ) -> list[ScoredAgent]:
        """Score all agents in declaration order without routing."""
        return self._scorer.score_agents(self._registry.snapshot(), analysis, query, agent_bias)

    def record_outcome(self, agent_name: str, confidence: float, success: bool) -> bool:
        """Feed an observed outcome back into the registry.

        Returns:
            False if the agent is unknown; the registry is left untouched.
        """
        return self._recorder.record(agent_name, confidence, success)

    def get_query_history(self) -> list[QueryAnalysis]:
        """Copy of the analysis audit log, oldest first."""
        with self._history_lock:
            return list(self._history)

    def get_routing_analytics(self) -> dict[str, Any]:
        """Summary of analysed queries and current agent performance."""
        with self._history_lock:
            history = list(self._history)
            session_types = dict(self._session_types)

        complexity_counts = Counter(a.complexity for a in history)
        return {
            "total_queries": len(history),
            "agent_performance": [
                {
                    "name": cap.name,
                    "success_rate": cap.success_rate,
                    "average_confidence": cap.average_confidence,
                    "avg_response_time": cap.avg_response_time,
                }
                for cap in self._registry.snapshot()
            ],
            "query_complexity_distribution": {
                level.value: complexity_counts.get(level, 0) for level in QueryComplexity
            },
            "session_types": session_types,
        }

    # =========================================================================
    # SELECTION
    # =========================================================================

    def _select_primary(self, best: ScoredAgent, analysis: QueryAnalysis) -> AgentSelection:
        """Build the primary selection from the top-ranked agent."""
        score = best.total_score
        return AgentSelection(
            agent=best.name,
            reason=(
                f"Best match for {analysis.intent.value} intent with "
                f"{_round_half_up(score)} compatibility score"
            ),
            confidence=min(max(score, 0.0) / PRIMARY_CONFIDENCE_DIVISOR, PRIMARY_CONFIDENCE_CAP),
            expected_frameworks=list(analysis.frameworks),
            estimated_time=best.capability.avg_response_time,
            prerequisites=[],
        )

    def _select_secondary(
        self,
        candidates: list[ScoredAgent],
        analysis: QueryAnalysis,
        primary: AgentSelection,
    ) -> list[AgentSelection]:
        """Supporting agents from the ranked remainder above the threshold."""
        secondary = []
        for candidate in candidates:
            if len(secondary) >= self._max_secondary:
                break
            if candidate.name == primary.agent or candidate.total_score <= self._secondary_threshold:
                continue
            secondary.append(AgentSelection(
                agent=candidate.name,
                reason=f"Complementary expertise for {analysis.complexity.value} analysis",
                confidence=min(
                    candidate.total_score / SECONDARY_CONFIDENCE_DIVISOR, SECONDARY_CONFIDENCE_CAP
                ),
                expected_frameworks=[],
                estimated_time=candidate.capability.avg_response_time,
                prerequisites=[primary.agent],
            ))
        return secondary

    def _should_collaborate(self, analysis: QueryAnalysis, secondary: list[AgentSelection]) -> bool:
        """Decide whether agent outputs should be combined."""
        return (
            analysis.complexity in COLLABORATIVE_COMPLEXITIES
            or len(analysis.frameworks) > 2
            or len(secondary) > 1
        )

    # =========================================================================
    # NARRATIVE
    # =========================================================================

    def _create_execution_plan(
        self,
        primary: AgentSelection,
        secondary: list[AgentSelection],
        collaborative: bool,
    ) -> list[str]:
        """Ordered steps naming the selected agents.

        A collaborative plan needs at least one secondary agent to name;
        without one the focused plan is used.
        """
        if collaborative and secondary:
            steps = [
                "Initialize collaborative analysis session",
                f"{primary.agent} leads primary analysis",
                f"{', '.join(s.agent for s in secondary)} provide complementary insights",
                "Cross-validate findings and recommendations",
                "Synthesize comprehensive response",
            ]
        else:
            steps = [f"{primary.agent} performs focused analysis"]
            if secondary:
                steps.append(f"{secondary[0].agent} validates findings")
            steps.append("Generate actionable recommendations")

        return [f"{i}. {step}" for i, step in enumerate(steps, start=1)]

    def _generate_reasoning(
        self,
        analysis: QueryAnalysis,
        primary: AgentSelection,
        secondary: list[AgentSelection],
        collaborative: bool,
    ) -> str:
        """Explain the decision in one string."""
        parts = [
            f"Query analyzed as {analysis.complexity.value} {analysis.intent.value} "
            f"with {_round_half_up(analysis.confidence * 100)}% confidence.",
            f"Selected {primary.agent} as primary agent due to {primary.reason}.",
        ]
        if collaborative:
            parts.append(
                f"Collaborative mode enabled with {len(secondary)} supporting agents "
                f"for comprehensive analysis."
            )
        if analysis.urgency in ELEVATED_URGENCIES:
            parts.append(f"High priority routing due to {analysis.urgency.value} urgency.")
        return " ".join(parts)


def create_routing_engine(config: dict[str, Any] | None = None) -> RoutingEngine:
    """Factory function to create a RoutingEngine with the default agents.

    Args:
        config: Optional routing settings, see Config.get_routing_config().

    Returns:
        Configured RoutingEngine instance.
    """
    return RoutingEngine(registry=CapabilityRegistry(), config=config)
