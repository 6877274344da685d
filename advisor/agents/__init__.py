"""Agent routing modules for the advisor.

Includes:
- Query analyzer, capability registry and agent scorer
- Routing engine with performance feedback
- Personalization memory
- Advisor orchestrator (route -> execute -> learn)
"""

# Orchestrator
from .advisor_orchestrator import (
    AdvisorOrchestrator,
    AdvisorResult,
    AgentExecutor,
    CapabilityExecutor,
    ExecutionResult,
    create_advisor_orchestrator,
)

# Routing
from .query_analyzer import QueryAnalyzer
from .capability_registry import CapabilityRegistry, DEFAULT_CAPABILITIES, default_capabilities
from .agent_scorer import AgentScorer, ScoredAgent, ScoringWeights
from .routing_engine import RoutingEngine, create_routing_engine
from .performance_recorder import PerformanceRecorder

# Memory
from .memory_store import PersonalizationMemory, create_personalization_memory, extract_topics

# Errors
from .exceptions import (
    AdvisorError,
    ConfigurationError,
    InvalidIdentityKeyError,
    UnknownAgentError,
)

# Models
from .models import (
    QueryIntent,
    QueryComplexity,
    QueryUrgency,
    FeedbackPolarity,
    AgentCapability,
    QueryAnalysis,
    AgentSelection,
    RoutingDecision,
    ConversationTurn,
    BusinessProfile,
    LearningPatterns,
    ContextualMemory,
    Adaptations,
    AgentPersonalization,
    ContextualRecommendations,
    ConversationContext,
)

__all__ = [
    # Orchestrator
    "AdvisorOrchestrator",
    "AdvisorResult",
    "AgentExecutor",
    "CapabilityExecutor",
    "ExecutionResult",
    "create_advisor_orchestrator",
    # Routing
    "QueryAnalyzer",
    "CapabilityRegistry",
    "DEFAULT_CAPABILITIES",
    "default_capabilities",
    "AgentScorer",
    "ScoredAgent",
    "ScoringWeights",
    "RoutingEngine",
    "create_routing_engine",
    "PerformanceRecorder",
    # Memory
    "PersonalizationMemory",
    "create_personalization_memory",
    "extract_topics",
    # Errors
    "AdvisorError",
    "ConfigurationError",
    "InvalidIdentityKeyError",
    "UnknownAgentError",
    # Models
    "QueryIntent",
    "QueryComplexity",
    "QueryUrgency",
    "FeedbackPolarity",
    "AgentCapability",
    "QueryAnalysis",
    "AgentSelection",
    "RoutingDecision",
    "ConversationTurn",
    "BusinessProfile",
    "LearningPatterns",
    "ContextualMemory",
    "Adaptations",
    "AgentPersonalization",
    "ContextualRecommendations",
    "ConversationContext",
]
