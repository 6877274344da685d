"""Tests for AdvisorOrchestrator - route, execute and learn."""

import pytest

from advisor.agents.advisor_orchestrator import (
    AdvisorOrchestrator,
    ExecutionResult,
    create_advisor_orchestrator,
)
from advisor.agents.memory_store import PersonalizationMemory
from advisor.agents.models import QueryComplexity
from advisor.agents.routing_engine import RoutingEngine
from advisor.config import Config


QUERY = "What's wrong with my sales conversion, it's stuck"


class RecordingExecutor:
    """Executor double that returns a fixed result and remembers calls."""

    def __init__(self, result=None, error=None):
        self.calls = []
        self.result = result or ExecutionResult(
            response_text="Tighten the close", insights=["Follow up within 24h"], confidence=0.7,
        )
        self.error = error

    def execute(self, selection, query):
        self.calls.append((selection.agent, query))
        if self.error:
            raise self.error
        return self.result


class TestAdvisorOrchestrator:
    """Tests for the end-to-end request flow."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = RoutingEngine()
        self.memory = PersonalizationMemory()
        self.executor = RecordingExecutor()
        self.orchestrator = AdvisorOrchestrator(self.engine, memory=self.memory, executor=self.executor)

    def test_handle_routes_executes_and_learns(self):
        result = self.orchestrator.handle(QUERY, user_id="user-1", session_id="sess-1")

        assert result.success
        assert result.decision.primary.agent == "psychology-optimizer"
        assert self.executor.calls == [("psychology-optimizer", QUERY)]
        assert result.response_text == "Tighten the close"
        assert result.identity_key == "user-1"
        assert result.turn_id is not None

        entry = self.memory.get_or_create("user-1")
        assert len(entry.conversation_history) == 1
        assert entry.conversation_history[0].id == result.turn_id
        assert entry.learning_patterns.preferred_agents == {"psychology-optimizer": 1.0}
        assert self.engine.recorder.get_window("psychology-optimizer") == [0.7]

    def test_session_id_fallback(self):
        result = self.orchestrator.handle(QUERY, session_id="sess-9")
        assert result.identity_key == "sess-9"
        assert self.memory.has_key("sess-9")

    def test_executor_failure_recorded(self):
        executor = RecordingExecutor(error=RuntimeError("backend down"))
        orchestrator = AdvisorOrchestrator(self.engine, memory=self.memory, executor=executor)

        result = orchestrator.handle(QUERY, user_id="user-1")

        assert result.success is False
        assert result.error == "backend down"
        assert self.engine.recorder.get_window("psychology-optimizer") == [0.0]
        entry = self.memory.get_or_create("user-1")
        assert entry.conversation_history[0].success is False
        assert entry.learning_patterns.common_misunderstandings == ["diagnose - psychology-optimizer"]

    def test_tuple_executor_result(self):
        class TupleExecutor:
            def execute(self, selection, query):
                return "ok", ["one insight"], True

        orchestrator = AdvisorOrchestrator(self.engine, memory=self.memory, executor=TupleExecutor())
        result = orchestrator.handle(QUERY, user_id="user-1")
        assert result.insights == ["one insight"]
        # Without an explicit confidence the primary selection confidence is recorded
        assert self.engine.recorder.get_window("psychology-optimizer") == [
            pytest.approx(result.decision.primary.confidence)
        ]

    def test_negative_feedback_lowers_score_versus_fresh_user(self):
        result = self.orchestrator.handle(QUERY, user_id="user-1")
        assert self.memory.record_feedback("user-1", result.turn_id, "negative")

        analysis = self.engine.analyze(QUERY)
        learned = self.memory.get_routing_bias("user-1", analysis.intent)
        fresh = self.memory.get_routing_bias("user-2", analysis.intent)

        def score_for(bias):
            scored = {s.name: s.total_score for s in self.engine.score(QUERY, analysis, bias)}
            return scored["psychology-optimizer"]

        assert score_for(learned) < score_for(fresh)

    def test_prepare_returns_recommendations(self):
        self.orchestrator.handle(QUERY, user_id="user-1")
        decision, key, recs = self.orchestrator.prepare("sales conversion help", user_id="user-1")
        assert key == "user-1"
        assert recs.agent_suggestions == ["psychology-optimizer"]
        assert recs.related_topics == ["conversion optimization"]
        assert decision.primary.agent == "psychology-optimizer"

    def test_history_does_not_change_complexity(self):
        context = {f"fact_{i}": i for i in range(5)}
        self.orchestrator.handle(QUERY, user_id="user-1")

        returning, _, _ = self.orchestrator.prepare(QUERY, user_id="user-1", business_context=context)
        fresh, _, _ = self.orchestrator.prepare(QUERY, user_id="user-2", business_context=context)

        assert returning.analysis.complexity == QueryComplexity.SIMPLE
        assert returning.analysis == fresh.analysis
        assert "memory" not in context

        context["fact_5"] = 5
        larger, _, _ = self.orchestrator.prepare(QUERY, user_id="user-1", business_context=context)
        assert larger.analysis.complexity == QueryComplexity.MEDIUM

    def test_prepare_does_not_record_turn(self):
        self.orchestrator.prepare(QUERY, user_id="user-1")
        assert not self.memory.has_key("user-1")
        assert self.executor.calls == []

    def test_without_memory(self):
        orchestrator = AdvisorOrchestrator(self.engine, memory=None, executor=self.executor)
        result = orchestrator.handle(QUERY, user_id="user-1")
        assert result.turn_id is None
        assert result.identity_key is None
        assert result.recommendations is None
        assert result.success

    def test_default_executor(self):
        orchestrator = AdvisorOrchestrator(self.engine, memory=self.memory)
        result = orchestrator.handle(QUERY, user_id="user-1")
        assert result.success
        assert result.response_text.startswith("psychology-optimizer: ")
        assert len(result.follow_up_suggestions) == 2

    def test_result_to_dict(self):
        data = self.orchestrator.handle(QUERY, user_id="user-1").to_dict()
        assert data["decision"]["primary"]["agent"] == "psychology-optimizer"
        assert data["recommendations"]["agent_suggestions"] == []

    def test_stats(self):
        self.orchestrator.handle(QUERY, user_id="user-1")
        stats = self.orchestrator.get_stats()
        assert stats["routing"]["total_queries"] == 1
        assert stats["recorder"] == {"psychology-optimizer": 1}
        assert stats["memory"]["keys"] == 1


class TestCreateAdvisorOrchestrator:
    """Tests for the factory."""

    def test_memory_enabled_by_default(self, monkeypatch):
        monkeypatch.delenv("ENABLE_MEMORY", raising=False)
        orchestrator = create_advisor_orchestrator(Config())
        assert orchestrator.memory is not None
        assert len(orchestrator.engine.registry) == 7

    def test_memory_disabled(self, monkeypatch):
        monkeypatch.setenv("ENABLE_MEMORY", "false")
        orchestrator = create_advisor_orchestrator(Config())
        assert orchestrator.memory is None

    def test_routing_config_applied(self, monkeypatch):
        monkeypatch.setenv("ADVISOR_SECONDARY_THRESHOLD", "0")
        monkeypatch.setenv("ADVISOR_MAX_SECONDARY", "1")
        orchestrator = create_advisor_orchestrator(Config(), executor=RecordingExecutor())
        result = orchestrator.handle(QUERY, user_id="user-1")
        assert len(result.decision.secondary) == 1
