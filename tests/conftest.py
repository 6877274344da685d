"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from advisor.agents.memory_store import PersonalizationMemory
from advisor.agents.models import ConversationTurn, QueryAnalysis
from advisor.agents.query_analyzer import QueryAnalyzer


STUCK_CONVERSION_QUERY = "What's wrong with my sales conversion, it's stuck"


@pytest.fixture
def memory():
    return PersonalizationMemory()


@pytest.fixture
def make_turn():
    """Build a ConversationTurn analysed with the real analyzer."""
    analyzer = QueryAnalyzer()

    def _make(
        query: str = STUCK_CONVERSION_QUERY,
        agent: str = "psychology-optimizer",
        success: bool = True,
        insights: list[str] | None = None,
        analysis: QueryAnalysis | None = None,
    ) -> ConversationTurn:
        return ConversationTurn(
            user_query=query,
            agent_response=f"{agent} response",
            selected_agent=agent,
            query_analysis=analysis or analyzer.analyze(query),
            success=success,
            execution_time=0.5,
            insights=list(insights or []),
        )

    return _make
