"""Tests for QueryAnalyzer - Keyword heuristics for advisory queries.

Tests cover:
1. Intent detection order (first bucket wins)
2. Complexity scoring and buckets
3. Urgency detection
4. Business-context tags and framework recognition
5. Confidence bounds
6. Degenerate input (empty, non-string, odd context)
"""

import pytest

from advisor.agents.models import QueryAnalysis, QueryComplexity, QueryIntent, QueryUrgency
from advisor.agents.query_analyzer import (
    MAX_ANALYSIS_CONFIDENCE,
    QueryAnalyzer,
    assess_complexity,
    calculate_confidence,
    complexity_score,
    detect_intent,
    detect_urgency,
    extract_business_context,
    identify_frameworks,
    normalize_query,
)


class TestIntentDetection:
    """Tests for the ordered intent keyword table."""

    def test_each_bucket(self):
        cases = [
            ("please review my funnel", QueryIntent.ANALYZE),
            ("optimize my ads", QueryIntent.OPTIMIZE),
            ("my pipeline is broken", QueryIntent.DIAGNOSE),
            ("give me a roadmap", QueryIntent.PLAN),
            ("compare these two offers", QueryIntent.COMPARE),
            ("explain cac to me", QueryIntent.LEARN),
            ("create a landing page", QueryIntent.CREATE),
            ("fix my churn", QueryIntent.FIX),
        ]
        for text, expected in cases:
            assert detect_intent(text) == expected, f"'{text}' should be {expected.value}"

    def test_first_bucket_wins(self):
        """'what' is a learn keyword but 'wrong' (diagnose) comes earlier."""
        assert detect_intent("what's wrong here") == QueryIntent.DIAGNOSE

    def test_analyze_beats_optimize(self):
        assert detect_intent("review and improve my offer") == QueryIntent.ANALYZE

    def test_default_general(self):
        assert detect_intent("hello there") == QueryIntent.GENERAL
        assert detect_intent("") == QueryIntent.GENERAL


class TestComplexity:
    """Tests for complexity scoring."""

    def test_short_plain_query_is_simple(self):
        assert complexity_score("hi") == 0
        assert assess_complexity("hi") == QueryComplexity.SIMPLE

    def test_concepts_add_points(self):
        text = "offer and sales and marketing"
        assert complexity_score(text) == 3
        assert assess_complexity(text) == QueryComplexity.MEDIUM

    def test_strategic_phrase_adds_three(self):
        assert complexity_score("overall") == 3

    def test_word_count_points(self):
        eleven = " ".join(["word"] * 11)
        twenty_one = " ".join(["word"] * 21)
        assert complexity_score(eleven) == 1
        assert complexity_score(twenty_one) == 2

    def test_large_business_context_adds_point(self):
        context = {f"k{i}": i for i in range(6)}
        assert complexity_score("hi", context) == 1
        assert complexity_score("hi", {f"k{i}": i for i in range(5)}) == 0

    def test_strategic_bucket(self):
        text = "comprehensive strategy for my offer and sales and marketing"
        assert assess_complexity(text) == QueryComplexity.STRATEGIC

    def test_complex_bucket(self):
        assert assess_complexity("overall offer") == QueryComplexity.COMPLEX


class TestUrgency:
    """Tests for urgency detection."""

    def test_levels(self):
        assert detect_urgency("this is urgent") == QueryUrgency.CRITICAL
        assert detect_urgency("need it soon") == QueryUrgency.HIGH
        assert detect_urgency("eventually") == QueryUrgency.MEDIUM
        assert detect_urgency("just curious") == QueryUrgency.LOW

    def test_critical_beats_low(self):
        assert detect_urgency("curious but urgent") == QueryUrgency.CRITICAL

    def test_default_medium(self):
        assert detect_urgency("nothing here") == QueryUrgency.MEDIUM


class TestTagsAndFrameworks:
    """Tests for independent membership tables."""

    def test_multiple_tags(self):
        tags = extract_business_context("my saas startup is scaling online")
        assert tags == ("saas", "online", "startup", "scaling")

    def test_no_tags(self):
        assert extract_business_context("what's wrong with my sales conversion, it's stuck") == ()

    def test_frameworks(self):
        frameworks = identify_frameworks("fix the bottleneck in my money model pricing")
        assert "Grand Slam Offer" in frameworks
        assert "4-Prong Money Model" in frameworks
        assert "4 Universal Constraints" in frameworks

    def test_no_frameworks(self):
        assert identify_frameworks("what's wrong with my sales conversion, it's stuck") == ()


class TestConfidence:
    """Tests for analysis confidence."""

    def test_baseline(self):
        assert calculate_confidence(QueryIntent.GENERAL, QueryComplexity.MEDIUM, ()) == 0.5

    def test_simple_with_intent(self):
        assert calculate_confidence(QueryIntent.FIX, QueryComplexity.SIMPLE, ()) == 0.8

    def test_capped(self):
        confidence = calculate_confidence(
            QueryIntent.FIX, QueryComplexity.SIMPLE, ("a", "b", "c", "d", "e"),
        )
        assert confidence == MAX_ANALYSIS_CONFIDENCE

    def test_bounds_across_queries(self):
        analyzer = QueryAnalyzer()
        queries = [
            "",
            "hi",
            "urgent: fix my saas agency startup scaling online local coaching ecommerce store",
            "comprehensive strategy for my entire business offer, money model, sales and marketing",
        ]
        for query in queries:
            confidence = analyzer.analyze(query).confidence
            assert 0.0 <= confidence <= 0.95, f"Confidence {confidence} out of bounds for '{query}'"


class TestQueryAnalyzer:
    """End-to-end analyzer behaviour."""

    def setup_method(self):
        """Set up test fixtures."""
        self.analyzer = QueryAnalyzer()

    def test_stuck_conversion_fixture(self):
        analysis = self.analyzer.analyze("What's wrong with my sales conversion, it's stuck")
        assert analysis.intent == QueryIntent.DIAGNOSE
        assert analysis.business_context == ()
        assert analysis.frameworks == ()
        assert analysis.complexity == QueryComplexity.SIMPLE
        assert analysis.urgency == QueryUrgency.MEDIUM
        assert analysis.confidence == 0.8

    def test_case_insensitive(self):
        assert self.analyzer.analyze("OPTIMIZE MY OFFER").intent == QueryIntent.OPTIMIZE

    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    def test_degenerate_input_defaults(self, query):
        analysis = self.analyzer.analyze(query)
        assert analysis.intent == QueryIntent.GENERAL
        assert analysis.complexity == QueryComplexity.SIMPLE
        assert analysis.urgency == QueryUrgency.MEDIUM
        assert analysis.business_context == ()
        assert analysis.frameworks == ()

    def test_non_mapping_context_ignored(self):
        analysis = self.analyzer.analyze("hi", business_context=["not", "a", "dict"])
        assert analysis.complexity == QueryComplexity.SIMPLE

    def test_normalize_query(self):
        assert normalize_query("  Hello ") == "hello"
        assert normalize_query(None) == ""

    def test_roundtrip_dict(self):
        analysis = self.analyzer.analyze("urgent: fix my saas pricing")
        data = analysis.to_dict()
        assert data["intent"] == "fix"
        assert data["urgency"] == "critical"
        assert type(analysis).from_dict(data) == analysis

    @pytest.mark.parametrize("data", [
        {"confidence": 7.5},
        {"confidence": float("nan")},
        {"confidence": "high"},
        {"frameworks": "Grand Slam Offer"},
        {"frameworks": 5},
        {"business_context": ["saas", 3]},
    ])
    def test_from_dict_rejects_malformed(self, data):
        with pytest.raises(ValueError):
            QueryAnalysis.from_dict(data)
