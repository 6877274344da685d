"""Advisor Routing Models.

Data structures shared by the query analyzer, agent scorer, routing engine,
performance recorder and personalization memory.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class QueryIntent(str, Enum):
    """What the user is trying to accomplish."""
    ANALYZE = "analyze"
    OPTIMIZE = "optimize"
    DIAGNOSE = "diagnose"
    PLAN = "plan"
    COMPARE = "compare"
    LEARN = "learn"
    CREATE = "create"
    FIX = "fix"
    GENERAL = "general"     # No keyword bucket matched


class QueryComplexity(str, Enum):
    """How much reasoning a query needs."""
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    STRATEGIC = "strategic"  # Whole-business questions


class QueryUrgency(str, Enum):
    """How soon the user needs an answer."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FeedbackPolarity(str, Enum):
    """Explicit user feedback attached to a conversation turn."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


def _str_tuple(name: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list of strings, got {value!r}")
    if not all(isinstance(item, str) for item in value):
        raise ValueError(f"{name} must contain only strings")
    return tuple(value)


# ============================================================================
# Routing Dataclasses
# ============================================================================

@dataclass(slots=True)
class AgentCapability:
    """Profile of a registered specialist agent.

    Attributes:
        name: Unique agent identifier.
        description: Human-readable description.
        expertise: Lowercase keywords/phrases the agent handles.
        priority: Flat tie-break weight added to every score.
        average_confidence: Rolling mean of observed confidence.
        success_rate: Rolling share of successful outcomes (0.0 - 1.0).
        avg_response_time: Typical response time in seconds.
    """
    name: str
    description: str
    expertise: tuple[str, ...]
    priority: int
    average_confidence: float
    success_rate: float
    avg_response_time: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "description": self.description,
            "expertise": list(self.expertise),
            "priority": self.priority,
            "average_confidence": self.average_confidence,
            "success_rate": self.success_rate,
            "avg_response_time": self.avg_response_time,
        }


@dataclass(slots=True, frozen=True)
class QueryAnalysis:
    """Structured view of a raw query produced by QueryAnalyzer.

    Attributes:
        intent: Detected intent bucket.
        complexity: Heuristic complexity level.
        urgency: Detected urgency level.
        business_context: Industry/stage tags (saas, agency, ...).
        frameworks: Named methodologies recognized in the query.
        confidence: Confidence in the analysis (0.0 - 0.95).
    """
    intent: QueryIntent = QueryIntent.GENERAL
    complexity: QueryComplexity = QueryComplexity.SIMPLE
    urgency: QueryUrgency = QueryUrgency.MEDIUM
    business_context: tuple[str, ...] = ()
    frameworks: tuple[str, ...] = ()
    confidence: float = 0.5

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "intent": self.intent.value,
            "complexity": self.complexity.value,
            "urgency": self.urgency.value,
            "business_context": list(self.business_context),
            "frameworks": list(self.frameworks),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryAnalysis":
        """Create from dictionary.

        Raises:
            ValueError: On an unknown enum value, a tag list that is not a
                list of strings, or a confidence outside 0.0 - 0.95.
        """
        confidence = data.get("confidence", 0.5)
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise ValueError(f"confidence must be a number, got {confidence!r}")
        if not 0.0 <= confidence <= 0.95:
            raise ValueError(f"confidence must be within 0.0 - 0.95, got {confidence!r}")
        return cls(
            intent=QueryIntent(data.get("intent", "general")),
            complexity=QueryComplexity(data.get("complexity", "simple")),
            urgency=QueryUrgency(data.get("urgency", "medium")),
            business_context=_str_tuple("business_context", data.get("business_context", ())),
            frameworks=_str_tuple("frameworks", data.get("frameworks", ())),
            confidence=float(confidence),
        )


@dataclass(slots=True)
class AgentSelection:
    """An agent chosen by the routing engine.

    Attributes:
        agent: Agent name.
        reason: Why the agent was selected.
        confidence: Selection confidence (primary <= 0.95, secondary <= 0.85).
        expected_frameworks: Frameworks the agent is expected to apply.
        estimated_time: Expected response time in seconds.
        prerequisites: Agents that should run first.
    """
    agent: str
    reason: str
    confidence: float
    expected_frameworks: list[str] = field(default_factory=list)
    estimated_time: float = 0.0
    prerequisites: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "agent": self.agent,
            "reason": self.reason,
            "confidence": self.confidence,
            "expected_frameworks": self.expected_frameworks,
            "estimated_time": self.estimated_time,
            "prerequisites": self.prerequisites,
        }


@dataclass(slots=True)
class RoutingDecision:
    """Complete routing result for one query.

    Attributes:
        primary: Agent that leads the response.
        secondary: Supporting agents in score order (0-3).
        collaborative_mode: Whether agent outputs should be combined.
        execution_plan: Ordered human-readable steps.
        reasoning: Single explanatory string.
        analysis: The analysis the decision was derived from.
    """
    primary: AgentSelection
    secondary: list[AgentSelection] = field(default_factory=list)
    collaborative_mode: bool = False
    execution_plan: list[str] = field(default_factory=list)
    reasoning: str = ""
    analysis: QueryAnalysis | None = None

    @property
    def agents(self) -> list[str]:
        """All selected agent names, primary first."""
        return [self.primary.agent] + [s.agent for s in self.secondary]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "primary": self.primary.to_dict(),
            "secondary": [s.to_dict() for s in self.secondary],
            "collaborative_mode": self.collaborative_mode,
            "execution_plan": self.execution_plan,
            "reasoning": self.reasoning,
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }


# ============================================================================
# Memory Dataclasses
# ============================================================================

@dataclass(slots=True)
class ConversationTurn:
    """One completed interaction.

    Attributes:
        user_query: Original query text.
        agent_response: Text returned by the executing agent.
        selected_agent: Agent that produced the response.
        query_analysis: Analysis that drove routing.
        success: Whether execution succeeded.
        user_feedback: Optional explicit feedback, may be attached later.
        execution_time: Seconds spent executing.
        insights: Insights extracted from the response.
        follow_up_suggestions: Suggested next questions.
        id: Unique turn identifier.
        timestamp: Unix time the turn completed.
    """
    user_query: str
    agent_response: str
    selected_agent: str
    query_analysis: QueryAnalysis
    success: bool = True
    user_feedback: FeedbackPolarity | None = None
    execution_time: float = 0.0
    insights: list[str] = field(default_factory=list)
    follow_up_suggestions: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "user_query": self.user_query,
            "agent_response": self.agent_response,
            "selected_agent": self.selected_agent,
            "query_analysis": self.query_analysis.to_dict(),
            "success": self.success,
            "user_feedback": self.user_feedback.value if self.user_feedback else None,
            "execution_time": self.execution_time,
            "insights": self.insights,
            "follow_up_suggestions": self.follow_up_suggestions,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationTurn":
        """Create from dictionary."""
        feedback = data.get("user_feedback")
        turn = cls(
            user_query=data["user_query"],
            agent_response=data.get("agent_response", ""),
            selected_agent=data["selected_agent"],
            query_analysis=QueryAnalysis.from_dict(data.get("query_analysis", {})),
            success=data.get("success", True),
            user_feedback=FeedbackPolarity(feedback) if feedback else None,
            execution_time=data.get("execution_time", 0.0),
            insights=list(data.get("insights", [])),
            follow_up_suggestions=list(data.get("follow_up_suggestions", [])),
        )
        if data.get("id"):
            turn.id = data["id"]
        if data.get("timestamp"):
            turn.timestamp = data["timestamp"]
        return turn


@dataclass(slots=True)
class BusinessProfile:
    """Accumulated facts about the user's business."""
    industry: str | None = None
    business_model: str | None = None
    current_revenue: float | None = None
    team_size: int | None = None
    main_challenges: list[str] = field(default_factory=list)
    success_metrics: list[str] = field(default_factory=list)
    previous_analyses: list[str] = field(default_factory=list)
    preferred_frameworks: list[str] = field(default_factory=list)
    avoided_topics: list[str] = field(default_factory=list)
    communication_style: str | None = None   # direct | detailed | casual | formal
    expertise_level: str | None = None       # beginner .. expert

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "industry": self.industry,
            "business_model": self.business_model,
            "current_revenue": self.current_revenue,
            "team_size": self.team_size,
            "main_challenges": self.main_challenges,
            "success_metrics": self.success_metrics,
            "previous_analyses": self.previous_analyses,
            "preferred_frameworks": self.preferred_frameworks,
            "avoided_topics": self.avoided_topics,
            "communication_style": self.communication_style,
            "expertise_level": self.expertise_level,
        }


@dataclass(slots=True)
class LearningPatterns:
    """What memory has learned from past turns.

    Attributes:
        preferred_agents: Agent name -> learned score (never negative).
        effective_frameworks: Framework name -> learned score (never negative).
        successful_query_types: "intent-complexity" tags that went well.
        common_misunderstandings: "intent - agent" pairs that went badly.
        improvement_areas: Free-form areas flagged for improvement.
    """
    preferred_agents: dict[str, float] = field(default_factory=dict)
    effective_frameworks: dict[str, float] = field(default_factory=dict)
    successful_query_types: list[str] = field(default_factory=list)
    common_misunderstandings: list[str] = field(default_factory=list)
    improvement_areas: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "preferred_agents": dict(self.preferred_agents),
            "effective_frameworks": dict(self.effective_frameworks),
            "successful_query_types": self.successful_query_types,
            "common_misunderstandings": self.common_misunderstandings,
            "improvement_areas": self.improvement_areas,
        }


@dataclass(slots=True)
class ContextualMemory:
    """Recent topics and recommendations for a user."""
    recent_topics: list[str] = field(default_factory=list)
    ongoing_projects: list[str] = field(default_factory=list)
    past_recommendations: list[str] = field(default_factory=list)
    implemented_suggestions: list[str] = field(default_factory=list)
    current_goals: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "recent_topics": self.recent_topics,
            "ongoing_projects": self.ongoing_projects,
            "past_recommendations": self.past_recommendations,
            "implemented_suggestions": self.implemented_suggestions,
            "current_goals": self.current_goals,
        }


@dataclass(slots=True)
class Adaptations:
    """How responses should be shaped for a user."""
    response_style: str = "balanced"
    detail_level: str = "moderate"   # brief | moderate | comprehensive
    visual_preferences: list[str] = field(default_factory=list)
    preferred_examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "response_style": self.response_style,
            "detail_level": self.detail_level,
            "visual_preferences": self.visual_preferences,
            "preferred_examples": self.preferred_examples,
        }


@dataclass(slots=True)
class AgentPersonalization:
    """All memory state held for one identity key.

    Attributes:
        key: Identity key (user id if known, else session id).
        session_id: Session that created the entry.
        user_id: User id if known.
        conversation_history: Last N turns, oldest first.
        business_profile: Accumulated business facts.
        learning_patterns: Learned agent/framework preferences.
        contextual_memory: Recent topics, projects, recommendations.
        adaptations: Response style preferences.
        created_at: Unix time the entry was created.
    """
    key: str
    session_id: str | None = None
    user_id: str | None = None
    conversation_history: list[ConversationTurn] = field(default_factory=list)
    business_profile: BusinessProfile = field(default_factory=BusinessProfile)
    learning_patterns: LearningPatterns = field(default_factory=LearningPatterns)
    contextual_memory: ContextualMemory = field(default_factory=ContextualMemory)
    adaptations: Adaptations = field(default_factory=Adaptations)
    created_at: float = field(default_factory=time.time)

    def find_turn(self, turn_id: str) -> ConversationTurn | None:
        """Find a turn in history by id."""
        for turn in self.conversation_history:
            if turn.id == turn_id:
                return turn
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "key": self.key,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "conversation_history": [t.to_dict() for t in self.conversation_history],
            "business_profile": self.business_profile.to_dict(),
            "learning_patterns": self.learning_patterns.to_dict(),
            "contextual_memory": self.contextual_memory.to_dict(),
            "adaptations": self.adaptations.to_dict(),
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class ContextualRecommendations:
    """Memory-derived hints for a new query.

    Attributes:
        agent_suggestions: Top agents by learned score.
        framework_recommendations: Top frameworks by learned score.
        related_topics: Recent topics overlapping the query's topics.
        previous_insights: Past insights mentioning an overlapping topic.
        warning_flags: Past misunderstandings relevant to the query (max 2).
    """
    agent_suggestions: list[str] = field(default_factory=list)
    framework_recommendations: list[str] = field(default_factory=list)
    related_topics: list[str] = field(default_factory=list)
    previous_insights: list[str] = field(default_factory=list)
    warning_flags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "agent_suggestions": self.agent_suggestions,
            "framework_recommendations": self.framework_recommendations,
            "related_topics": self.related_topics,
            "previous_insights": self.previous_insights,
            "warning_flags": self.warning_flags,
        }


@dataclass(slots=True)
class ConversationContext:
    """Roll-up of the recent conversation for a key.

    Attributes:
        recent_queries: Last few user queries, oldest first.
        dominant_intent: Most frequent intent ("unknown" when empty).
        average_complexity: Most frequent complexity ("medium" when empty).
        business_focus: Up to 3 most frequent business-context tags.
        communication_pattern: Stored response style.
    """
    recent_queries: list[str] = field(default_factory=list)
    dominant_intent: str = "unknown"
    average_complexity: str = "medium"
    business_focus: list[str] = field(default_factory=list)
    communication_pattern: str = "balanced"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "recent_queries": self.recent_queries,
            "dominant_intent": self.dominant_intent,
            "average_complexity": self.average_complexity,
            "business_focus": self.business_focus,
            "communication_pattern": self.communication_pattern,
        }
