"""Performance Recorder - Rolling outcome statistics per agent.

Each outcome contributes one sample, `confidence` on success and 0 on
failure, to a per-agent FIFO window (default 50 samples). After every
sample the agent's registry profile is overwritten with:

    average_confidence = mean(window)
    success_rate       = share of non-zero samples in window

This is a plain moving statistic over raw samples, not a decayed average.
A success reported with zero confidence therefore counts as a failure.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import deque

from .capability_registry import CapabilityRegistry
from .exceptions import UnknownAgentError

logger = logging.getLogger(__name__)


class PerformanceRecorder:
    """Feeds observed outcomes back into the capability registry."""

    __slots__ = ("_registry", "_window_size", "_windows", "_lock")

    DEFAULT_WINDOW = 50

    def __init__(self, registry: CapabilityRegistry, window_size: int = DEFAULT_WINDOW):
        """Initialize the recorder.

        Args:
            registry: Registry whose statistics are updated.
            window_size: Samples kept per agent.
        """
        self._registry = registry
        self._window_size = max(1, window_size)
        self._windows: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def window_size(self) -> int:
        return self._window_size

    def record(self, agent_name: str, confidence: float, success: bool) -> bool:
        """Record one observed outcome.

        Args:
            agent_name: Registered agent name.
            confidence: Observed confidence, clamped to [0, 1]. NaN and infinities
                count as 0.
            success: Whether the agent's output was usable.

        Returns:
            True if recorded, False if the agent is unknown (state untouched).
        """
        if agent_name not in self._registry:
            logger.warning(f"PerformanceRecorder: feedback for unknown agent '{agent_name}' ignored")
            return False

        sample = float(confidence) if success else 0.0
        if not math.isfinite(sample):
            logger.warning(f"PerformanceRecorder: non-finite confidence {confidence!r} for '{agent_name}' recorded as 0")
            sample = 0.0
        sample = min(max(sample, 0.0), 1.0)

        with self._lock:
            window = self._windows.setdefault(agent_name, deque(maxlen=self._window_size))
            window.append(sample)
            average_confidence = sum(window) / len(window)
            success_rate = sum(1 for s in window if s > 0) / len(window)
            try:
                self._registry.update_performance(agent_name, average_confidence, success_rate)
            except UnknownAgentError:
                logger.warning(f"PerformanceRecorder: agent '{agent_name}' vanished from registry")
                self._windows.pop(agent_name, None)
                return False

        logger.info(
            f"PerformanceRecorder: {agent_name} success={success} sample={sample:.2f} "
            f"window={len(window)} avg_conf={average_confidence:.3f} success_rate={success_rate:.3f}"
        )
        return True

    def get_window(self, agent_name: str) -> list[float]:
        """Copy of an agent's current sample window (oldest first)."""
        with self._lock:
            return list(self._windows.get(agent_name, ()))

    def get_stats(self) -> dict[str, int]:
        """Sample counts per agent that has received feedback."""
        with self._lock:
            return {name: len(window) for name, window in self._windows.items()}
