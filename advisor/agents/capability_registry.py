"""Capability Registry - Fixed table of specialist agent profiles.

The registry is created once per process with the full agent set and is
never partially populated. Rolling performance statistics are the only
mutable part of a profile; they are written by the PerformanceRecorder and
read by the scorer through snapshot(), both under a registry-wide lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from dataclasses import replace

from .exceptions import ConfigurationError, UnknownAgentError
from .models import AgentCapability

logger = logging.getLogger(__name__)


# Declaration order is the tie-break order for equal scores
DEFAULT_CAPABILITIES: tuple[AgentCapability, ...] = (
    AgentCapability(
        name="constraint-analyzer",
        description="Identifies and analyzes business constraints using the 4 Universal Constraints",
        expertise=("bottlenecks", "constraints", "growth", "scaling", "operations", "diagnostics"),
        priority=10,
        average_confidence=0.92,
        success_rate=0.89,
        avg_response_time=2.3,
    ),
    AgentCapability(
        name="offer-analyzer",
        description="Analyzes and optimizes offers using the Grand Slam Offer framework",
        expertise=("value proposition", "pricing", "offer structure", "market positioning", "competitive analysis"),
        priority=9,
        average_confidence=0.88,
        success_rate=0.85,
        avg_response_time=3.1,
    ),
    AgentCapability(
        name="money-model-architect",
        description="Designs and optimizes 4-prong money models for revenue multiplication",
        expertise=("revenue streams", "upsells", "downsells", "continuity", "monetization"),
        priority=9,
        average_confidence=0.86,
        success_rate=0.83,
        avg_response_time=4.2,
    ),
    AgentCapability(
        name="financial-calculator",
        description="Analyzes financial metrics and client-financed acquisition",
        expertise=("cac", "ltv", "cfa", "metrics", "profitability", "unit economics"),
        priority=8,
        average_confidence=0.91,
        success_rate=0.87,
        avg_response_time=1.8,
    ),
    AgentCapability(
        name="psychology-optimizer",
        description="Optimizes customer psychology, sales conversion and timing",
        expertise=(
            "conversion", "sales", "conversion psychology", "timing",
            "customer behavior", "persuasion", "sales psychology",
        ),
        priority=7,
        average_confidence=0.84,
        success_rate=0.81,
        avg_response_time=2.9,
    ),
    AgentCapability(
        name="implementation-planner",
        description="Creates actionable implementation plans and roadmaps",
        expertise=("execution", "planning", "roadmaps", "project management", "implementation"),
        priority=6,
        average_confidence=0.87,
        success_rate=0.82,
        avg_response_time=3.5,
    ),
    AgentCapability(
        name="coaching-methodology",
        description="Provides comprehensive business coaching and methodology guidance",
        expertise=("coaching", "mentorship", "strategy", "frameworks", "business development"),
        priority=8,
        average_confidence=0.90,
        success_rate=0.88,
        avg_response_time=2.7,
    ),
)


def default_capabilities() -> list[AgentCapability]:
    """Fresh copies of the default profiles, safe to mutate."""
    return [replace(cap) for cap in DEFAULT_CAPABILITIES]


class CapabilityRegistry:
    """In-memory registry of agent capabilities.

    Raises ConfigurationError on construction if the profile set is empty or
    malformed, so a misconfigured engine never serves requests.
    """

    __slots__ = ("_profiles", "_lock")

    def __init__(self, capabilities: Iterable[AgentCapability] | None = None):
        """Initialize the registry.

        Args:
            capabilities: Profiles in tie-break order. Defaults to the
                built-in seven specialists.
        """
        profiles = [replace(c) for c in capabilities] if capabilities is not None else default_capabilities()
        self._validate(profiles)
        self._profiles: dict[str, AgentCapability] = {p.name: p for p in profiles}
        self._lock = threading.Lock()
        logger.info(f"CapabilityRegistry initialized with {len(self._profiles)} agents: {list(self._profiles)}")

    @staticmethod
    def _validate(profiles: list[AgentCapability]) -> None:
        """Reject empty or malformed profile sets."""
        if not profiles:
            raise ConfigurationError("Capability registry is empty")

        seen: set[str] = set()
        for profile in profiles:
            if not isinstance(profile, AgentCapability):
                raise ConfigurationError(f"Not an AgentCapability: {profile!r}")
            if not profile.name:
                raise ConfigurationError("Agent profile has an empty name")
            if profile.name in seen:
                raise ConfigurationError(f"Duplicate agent name: {profile.name}")
            if not profile.expertise:
                raise ConfigurationError(f"Agent {profile.name} declares no expertise")
            if any(kw != kw.lower() for kw in profile.expertise):
                raise ConfigurationError(f"Agent {profile.name} expertise must be lowercase")
            if not 0.0 <= profile.success_rate <= 1.0:
                raise ConfigurationError(f"Agent {profile.name} success_rate out of range: {profile.success_rate}")
            if not 0.0 <= profile.average_confidence <= 1.0:
                raise ConfigurationError(
                    f"Agent {profile.name} average_confidence out of range: {profile.average_confidence}"
                )
            seen.add(profile.name)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def names(self) -> list[str]:
        """Agent names in declaration order."""
        return list(self._profiles)

    def get(self, name: str) -> AgentCapability:
        """Get a copy of one agent's profile.

        Raises:
            UnknownAgentError: If the agent is not registered.
        """
        with self._lock:
            profile = self._profiles.get(name)
            if profile is None:
                raise UnknownAgentError(name)
            return replace(profile)

    def snapshot(self) -> list[AgentCapability]:
        """Consistent copies of every profile in declaration order."""
        with self._lock:
            return [replace(p) for p in self._profiles.values()]

    def update_performance(self, name: str, average_confidence: float, success_rate: float) -> None:
        """Overwrite an agent's rolling statistics.

        Raises:
            UnknownAgentError: If the agent is not registered.
        """
        with self._lock:
            profile = self._profiles.get(name)
            if profile is None:
                raise UnknownAgentError(name)
            profile.average_confidence = average_confidence
            profile.success_rate = success_rate
        logger.debug(
            f"CapabilityRegistry: {name} average_confidence={average_confidence:.3f} "
            f"success_rate={success_rate:.3f}"
        )

    def to_dict(self) -> dict:
        """Serialize all profiles."""
        return {p.name: p.to_dict() for p in self.snapshot()}
