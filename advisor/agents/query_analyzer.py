"""Query Analyzer - Turns a raw advisory question into a QueryAnalysis.

This is the first stage of routing. It inspects the user's text to:
1. Detect the intent (first matching keyword bucket wins)
2. Score complexity from length, concepts and strategic phrasing
3. Detect urgency (critical > high > medium > low)
4. Tag the business context (saas, agency, ...)
5. Recognize named business frameworks
6. Estimate confidence in the analysis

Every heuristic is a pure module-level function over lowercased text so the
keyword tables can be tested and extended independently. Ambiguous or empty
input never raises; it falls back to general / simple / medium.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .models import QueryAnalysis, QueryComplexity, QueryIntent, QueryUrgency

logger = logging.getLogger(__name__)


# Evaluated in order, first bucket with any keyword present wins
INTENT_KEYWORDS: tuple[tuple[QueryIntent, tuple[str, ...]], ...] = (
    (QueryIntent.ANALYZE, ("analyze", "review", "examine", "assess", "evaluate", "look at")),
    (QueryIntent.OPTIMIZE, ("optimize", "improve", "enhance", "better", "increase", "boost")),
    (QueryIntent.DIAGNOSE, ("diagnose", "problem", "issue", "wrong", "broken", "stuck", "constraint")),
    (QueryIntent.PLAN, ("plan", "strategy", "roadmap", "implement", "execute", "steps")),
    (QueryIntent.COMPARE, ("compare", "versus", "vs", "difference", "better than")),
    (QueryIntent.LEARN, ("how", "what", "why", "when", "explain", "understand", "teach")),
    (QueryIntent.CREATE, ("create", "build", "make", "design", "develop", "generate")),
    (QueryIntent.FIX, ("fix", "solve", "resolve", "address", "handle", "deal with")),
)

URGENCY_KEYWORDS: tuple[tuple[QueryUrgency, tuple[str, ...]], ...] = (
    (QueryUrgency.CRITICAL, ("urgent", "asap", "immediately", "crisis", "emergency", "critical", "failing")),
    (QueryUrgency.HIGH, ("soon", "quickly", "fast", "deadline", "important", "priority")),
    (QueryUrgency.MEDIUM, ("when possible", "eventually", "planning", "future")),
    (QueryUrgency.LOW, ("curious", "wondering", "general", "learn", "understand")),
)

# Independent membership tests, a query may carry several tags
BUSINESS_CONTEXT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("coaching", ("coaching", "coach", "consultant", "service")),
    ("ecommerce", ("ecommerce", "store", "product", "inventory", "shipping")),
    ("saas", ("saas", "software", "subscription", "recurring", "mrr")),
    ("agency", ("agency", "client", "marketing", "advertising")),
    ("local", ("local", "brick and mortar", "physical location")),
    ("online", ("online", "digital", "internet", "virtual")),
    ("startup", ("startup", "new business", "launching")),
    ("scaling", ("scaling", "growth", "expanding", "scale")),
)

FRAMEWORK_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Grand Slam Offer", ("offer", "value", "pricing", "grand slam")),
    ("4-Prong Money Model", ("money model", "upsell", "downsell", "continuity", "4 prong")),
    ("Client Financed Acquisition", ("cfa", "client financed", "customer acquisition")),
    ("4 Universal Constraints", ("constraint", "bottleneck", "universal constraints", "four constraints")),
    ("5 Upsell Moments", ("upsell timing", "when to upsell", "upsell moments")),
    ("Value Equation", ("value equation", "dream outcome", "likelihood", "time delay")),
)

COMPLEXITY_CONCEPTS = ("offer", "money model", "financial", "marketing", "sales", "operations")

STRATEGIC_PHRASES = ("strategy", "comprehensive", "overall", "entire business", "complete analysis")

# Complexity score thresholds, checked highest first
COMPLEXITY_THRESHOLDS: tuple[tuple[int, QueryComplexity], ...] = (
    (6, QueryComplexity.STRATEGIC),
    (4, QueryComplexity.COMPLEX),
    (2, QueryComplexity.MEDIUM),
)

MAX_ANALYSIS_CONFIDENCE = 0.95


def normalize_query(query: Any) -> str:
    """Lowercase and strip a query, treating non-strings as empty."""
    if not isinstance(query, str):
        return ""
    return query.lower().strip()


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def detect_intent(text: str) -> QueryIntent:
    """Return the first intent bucket with a keyword present in text."""
    for intent, keywords in INTENT_KEYWORDS:
        if _contains_any(text, keywords):
            return intent
    return QueryIntent.GENERAL


def detect_urgency(text: str) -> QueryUrgency:
    """Return the first urgency level with a keyword present in text."""
    for urgency, keywords in URGENCY_KEYWORDS:
        if _contains_any(text, keywords):
            return urgency
    return QueryUrgency.MEDIUM


def extract_business_context(text: str) -> tuple[str, ...]:
    """Return every business-context tag whose keywords appear in text."""
    return tuple(tag for tag, keywords in BUSINESS_CONTEXT_KEYWORDS if _contains_any(text, keywords))


def identify_frameworks(text: str) -> tuple[str, ...]:
    """Return every named framework whose keywords appear in text."""
    return tuple(name for name, keywords in FRAMEWORK_KEYWORDS if _contains_any(text, keywords))


def complexity_score(text: str, business_context: Mapping[str, Any] | None = None) -> int:
    """Additive complexity score, see COMPLEXITY_THRESHOLDS for buckets.

    Args:
        text: Lowercased query.
        business_context: Optional structured context supplied by the caller.

    Returns:
        Non-negative integer score.
    """
    score = 0

    word_count = len(text.split())
    if word_count > 20:
        score += 2
    elif word_count > 10:
        score += 1

    score += sum(1 for concept in COMPLEXITY_CONCEPTS if concept in text)

    if _contains_any(text, STRATEGIC_PHRASES):
        score += 3

    if isinstance(business_context, Mapping) and len(business_context) > 5:
        score += 1

    return score


def assess_complexity(text: str, business_context: Mapping[str, Any] | None = None) -> QueryComplexity:
    """Bucket the complexity score into a QueryComplexity level."""
    score = complexity_score(text, business_context)
    for threshold, level in COMPLEXITY_THRESHOLDS:
        if score >= threshold:
            return level
    return QueryComplexity.SIMPLE


def calculate_confidence(
    intent: QueryIntent,
    complexity: QueryComplexity,
    business_context: tuple[str, ...],
) -> float:
    """Confidence in the analysis itself, capped at 0.95."""
    confidence = 0.5
    if intent != QueryIntent.GENERAL:
        confidence += 0.2
    confidence += min(len(business_context) * 0.1, 0.3)
    if complexity == QueryComplexity.SIMPLE:
        confidence += 0.1
    return round(min(confidence, MAX_ANALYSIS_CONFIDENCE), 3)


class QueryAnalyzer:
    """Keyword-heuristic analyzer for advisory queries.

    Stateless: the audit log of analyses is owned by the routing engine.
    """

    __slots__ = ()

    def analyze(self, query: str, business_context: Mapping[str, Any] | None = None) -> QueryAnalysis:
        """Analyze a raw query.

        Args:
            query: Free-text user request.
            business_context: Optional structured context (industry, revenue, ...).

        Returns:
            QueryAnalysis with documented defaults for ambiguous input.
        """
        text = normalize_query(query)
        if business_context is not None and not isinstance(business_context, Mapping):
            logger.warning(
                f"QueryAnalyzer: ignoring non-mapping business context ({type(business_context).__name__})"
            )
            business_context = None

        intent = detect_intent(text)
        complexity = assess_complexity(text, business_context)
        urgency = detect_urgency(text)
        tags = extract_business_context(text)
        frameworks = identify_frameworks(text)
        confidence = calculate_confidence(intent, complexity, tags)

        logger.info(
            f"QueryAnalyzer: query='{text[:50]}' intent={intent.value} "
            f"complexity={complexity.value} urgency={urgency.value} "
            f"tags={list(tags)} frameworks={list(frameworks)}"
        )

        return QueryAnalysis(
            intent=intent,
            complexity=complexity,
            urgency=urgency,
            business_context=tags,
            frameworks=frameworks,
            confidence=confidence,
        )
