"""Configuration with sensible defaults for in-process routing and memory."""

from dataclasses import dataclass, field
from os import getenv


def _parse_bool(value: str, default: bool = True) -> bool:
    """Parse boolean from environment variable."""
    if not value:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(value: str, default: float) -> float:
    """Parse float from environment variable."""
    try:
        return float(value) if value else default
    except ValueError:
        return default


def _parse_int(value: str, default: int) -> int:
    """Parse int from environment variable."""
    try:
        return int(value) if value else default
    except ValueError:
        return default


@dataclass(slots=True, frozen=True)
class Config:
    # ==================== Routing ====================
    # Samples kept per agent for rolling confidence/success statistics
    performance_window: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_PERFORMANCE_WINDOW", ""), 50)
    )
    # Analysis audit log cap (oldest entries dropped first)
    query_history_limit: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_QUERY_HISTORY_LIMIT", ""), 1000)
    )
    # Secondary agents must score strictly above this
    secondary_threshold: float = field(
        default_factory=lambda: _parse_float(getenv("ADVISOR_SECONDARY_THRESHOLD", ""), 30.0)
    )
    max_secondary_agents: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_MAX_SECONDARY", ""), 3)
    )

    # ==================== Personalization Memory ====================
    max_history_turns: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_MAX_HISTORY_TURNS", ""), 50)
    )
    max_recent_topics: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_MAX_RECENT_TOPICS", ""), 10)
    )
    max_past_recommendations: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_MAX_PAST_RECOMMENDATIONS", ""), 20)
    )
    context_window_turns: int = field(
        default_factory=lambda: _parse_int(getenv("ADVISOR_CONTEXT_WINDOW_TURNS", ""), 10)
    )
    # Strict mode raises on empty identity keys instead of using an ephemeral key
    strict_identity: bool = field(
        default_factory=lambda: _parse_bool(getenv("ADVISOR_STRICT_IDENTITY", ""), False)
    )

    # ==================== Feature Flags ====================
    enable_memory: bool = field(
        default_factory=lambda: _parse_bool(getenv("ENABLE_MEMORY", ""), True)
    )

    # ==================== Logging ====================
    log_level: str = field(default_factory=lambda: getenv("LOG_LEVEL", "INFO"))

    def get_routing_config(self) -> dict:
        """Get routing engine configuration dict."""
        return {
            "performance_window": self.performance_window,
            "query_history_limit": self.query_history_limit,
            "secondary_threshold": self.secondary_threshold,
            "max_secondary_agents": self.max_secondary_agents,
        }

    def get_memory_config(self) -> dict:
        """Get personalization memory configuration dict."""
        return {
            "max_history_turns": self.max_history_turns,
            "max_recent_topics": self.max_recent_topics,
            "max_past_recommendations": self.max_past_recommendations,
            "context_window_turns": self.context_window_turns,
            "strict_identity": self.strict_identity,
        }

    def is_memory_enabled(self) -> bool:
        """Check if personalization memory should be wired into requests."""
        return self.enable_memory


cfg = Config()
