"""Agent Scoring System

Scores every registered agent for a query using a weighted sum of
expertise matches, framework alignment, historical performance, an urgency
speed bonus and the agent's flat priority. Scores are unbounded ranking
signals, not probabilities.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from .models import AgentCapability, QueryAnalysis, QueryUrgency

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ScoringWeights:
    """Hand-tuned scoring constants."""
    expertise_match: float = 20.0
    framework_match: float = 15.0
    success_rate: float = 10.0
    average_confidence: float = 10.0
    urgency_bonus: float = 10.0
    fast_response_seconds: float = 2.0


@dataclass(slots=True)
class ScoredAgent:
    """Agent with computed score and breakdown.

    Attributes:
        capability: Profile snapshot the score was computed from.
        total_score: Sum of all components.
        score_breakdown: Component name -> contribution.
    """
    capability: AgentCapability
    total_score: float
    score_breakdown: dict[str, float] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.capability.name


def count_expertise_matches(query_text: str, capability: AgentCapability) -> int:
    """Number of expertise keywords present as substrings of the query."""
    return sum(1 for keyword in capability.expertise if keyword.lower() in query_text)


def count_framework_matches(frameworks: tuple[str, ...], capability: AgentCapability) -> int:
    """Number of frameworks whose name contains one of the agent's keywords."""
    return sum(
        1 for framework in frameworks
        if any(keyword.lower() in framework.lower() for keyword in capability.expertise)
    )


class AgentScorer:
    """Scores agents for a query against a registry snapshot.

    Deterministic: identical (query, analysis, snapshot, bias) always yields
    identical scores in the snapshot's order.
    """

    __slots__ = ("_weights",)

    def __init__(self, weights: ScoringWeights | None = None):
        """Initialize agent scorer.

        Args:
            weights: Scoring constants (defaults to ScoringWeights()).
        """
        self._weights = weights or ScoringWeights()

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    def score_agent(
        self,
        capability: AgentCapability,
        analysis: QueryAnalysis,
        query: str,
        bias: float = 0.0,
    ) -> ScoredAgent:
        """Score a single agent.

        Args:
            capability: Agent profile.
            analysis: Analysis of the query.
            query: Raw query text.
            bias: Caller-supplied adjustment, e.g. from personalization memory.

        Returns:
            ScoredAgent with a per-component breakdown.
        """
        w = self._weights
        query_text = query.lower() if isinstance(query, str) else ""

        breakdown = {
            "expertise": count_expertise_matches(query_text, capability) * w.expertise_match,
            "frameworks": count_framework_matches(analysis.frameworks, capability) * w.framework_match,
            "success_rate": capability.success_rate * w.success_rate,
            "average_confidence": capability.average_confidence * w.average_confidence,
            "urgency": (
                w.urgency_bonus
                if analysis.urgency == QueryUrgency.CRITICAL
                and capability.avg_response_time < w.fast_response_seconds
                else 0.0
            ),
            "priority": float(capability.priority),
        }
        if bias:
            breakdown["personalization"] = bias

        return ScoredAgent(
            capability=capability,
            total_score=sum(breakdown.values()),
            score_breakdown=breakdown,
        )

    def score_agents(
        self,
        capabilities: list[AgentCapability],
        analysis: QueryAnalysis,
        query: str,
        bias: Mapping[str, float] | None = None,
    ) -> list[ScoredAgent]:
        """Score every agent, preserving the input (declaration) order."""
        bias = bias or {}
        scored = [
            self.score_agent(cap, analysis, query, bias.get(cap.name, 0.0))
            for cap in capabilities
        ]
        for agent in scored:
            logger.debug(f"AgentScorer: {agent.name}={agent.total_score:.2f} {agent.score_breakdown}")
        return scored

    @staticmethod
    def rank(scored: list[ScoredAgent]) -> list[ScoredAgent]:
        """Highest score first; ties keep declaration order (stable sort)."""
        return sorted(scored, key=lambda s: s.total_score, reverse=True)
