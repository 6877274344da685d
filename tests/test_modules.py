"""Tests for advisor.agents module conventions."""

import __future__
import importlib

import pytest

import advisor.agents


AGENT_MODULES = [
    "advisor_orchestrator",
    "agent_scorer",
    "capability_registry",
    "exceptions",
    "memory_store",
    "models",
    "performance_recorder",
    "query_analyzer",
    "routing_engine",
]


class TestModuleConventions:
    """Tests for package-wide module settings."""

    @pytest.mark.parametrize("name", AGENT_MODULES)
    def test_postponed_annotations(self, name):
        module = importlib.import_module(f"advisor.agents.{name}")
        assert getattr(module, "annotations", None) is __future__.annotations

    def test_exports_resolve(self):
        for name in advisor.agents.__all__:
            assert hasattr(advisor.agents, name), f"{name} listed in __all__ but not exported"
