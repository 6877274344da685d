"""Personalization Memory - Per-user learning that feeds back into routing.

Keeps one AgentPersonalization per identity key (user id if known, else
session id) and provides:
- Bounded conversation history (FIFO)
- Learned agent and framework preference scores (never negative)
- Recent topics, inferred ongoing projects, past recommendations
- Contextual recommendations and a conversation roll-up for new queries
- A per-agent routing bias the orchestrator can hand to the scorer

State lives in process memory. Each key has its own lock so turns for the
same user are serialized while different users proceed in parallel.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from collections import Counter
from typing import Any

from .exceptions import InvalidIdentityKeyError
from .models import (
    AgentPersonalization,
    ContextualRecommendations,
    ConversationContext,
    ConversationTurn,
    FeedbackPolarity,
    QueryIntent,
)

logger = logging.getLogger(__name__)


# Business topics tracked in contextual memory
TOPIC_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("offer optimization", ("offer", "pricing", "value proposition")),
    ("revenue model", ("revenue", "money model", "monetization")),
    ("customer acquisition", ("leads", "customers", "acquisition", "marketing")),
    ("conversion optimization", ("conversion", "sales", "closing")),
    ("scaling operations", ("scale", "growth", "operations", "team")),
    ("financial analysis", ("financial", "profit", "cac", "ltv", "metrics")),
)

# Store-wide baseline success patterns
BASELINE_GLOBAL_PATTERNS: dict[str, float] = {
    "constraint-analysis-success": 0.89,
    "offer-optimization-success": 0.85,
    "financial-modeling-success": 0.91,
    "collaboration-effectiveness": 0.83,
}

EPHEMERAL_PREFIX = "ephemeral-"
ONGOING_PROJECT_MIN_MENTIONS = 3
MIN_SHARED_WORD_LENGTH = 4

_WORD_RE = re.compile(r"[a-z0-9]+")


def extract_topics(query: str) -> list[str]:
    """Map a query onto zero or more business topics."""
    if not isinstance(query, str):
        return []
    text = query.lower()
    return [topic for topic, keywords in TOPIC_KEYWORDS if any(kw in text for kw in keywords)]


def topics_overlap(a: str, b: str) -> bool:
    """Substring overlap in either direction, case-insensitive."""
    a, b = a.lower(), b.lower()
    return a in b or b in a


def mentions_topic(text: str, topic: str) -> bool:
    """Whether free text mentions a topic.

    True if the topic appears verbatim or the text shares a significant word
    with it ("Raise the offer price" mentions "offer optimization").
    """
    text_lower = text.lower()
    if topic.lower() in text_lower:
        return True
    text_words = set(_WORD_RE.findall(text_lower))
    return any(
        word in text_words
        for word in _WORD_RE.findall(topic.lower())
        if len(word) >= MIN_SHARED_WORD_LENGTH
    )


def _bump_score(scores: dict[str, float], name: str, amount: float = 1.0) -> None:
    scores[name] = scores.get(name, 0.0) + amount


def _decay_score(scores: dict[str, float], name: str, amount: float) -> None:
    scores[name] = max(0.0, scores.get(name, 0.0) - amount)


def _append_unique(items: list[str], *values: str) -> None:
    for value in values:
        if value not in items:
            items.append(value)


def _top_by_score(scores: dict[str, float], limit: int) -> list[tuple[str, float]]:
    """Highest scores first, ties keep insertion order."""
    return sorted(scores.items(), key=lambda item: item[1], reverse=True)[:limit]


def misunderstanding_tag(intent: str, agent: str) -> str:
    return f"{intent} - {agent}"


class PersonalizationMemory:
    """In-process personalization memory keyed by user/session identity."""

    __slots__ = (
        "_max_history",
        "_max_topics",
        "_max_recommendations",
        "_context_window",
        "_strict_identity",
        "_memory",
        "_key_locks",
        "_lock",
        "_global_patterns",
        "_framework_effectiveness",
        "_global_lock",
    )

    MAX_HISTORY_TURNS = 50
    MAX_RECENT_TOPICS = 10
    MAX_PAST_RECOMMENDATIONS = 20
    CONTEXT_WINDOW_TURNS = 10

    # Routing bias weights handed to the scorer
    PREFERENCE_BONUS_PER_POINT = 2.0
    PREFERENCE_BONUS_CAP = 10.0
    MISUNDERSTANDING_PENALTY = 10.0

    def __init__(
        self,
        max_history_turns: int = MAX_HISTORY_TURNS,
        max_recent_topics: int = MAX_RECENT_TOPICS,
        max_past_recommendations: int = MAX_PAST_RECOMMENDATIONS,
        context_window_turns: int = CONTEXT_WINDOW_TURNS,
        strict_identity: bool = False,
    ):
        """Initialize PersonalizationMemory.

        Args:
            max_history_turns: Turns kept per key.
            max_recent_topics: Recent topics kept per key.
            max_past_recommendations: Past insights kept per key.
            context_window_turns: Turns summarized by get_conversation_context.
            strict_identity: Raise InvalidIdentityKeyError on empty keys
                instead of falling back to an ephemeral key.
        """
        self._max_history = max_history_turns
        self._max_topics = max_recent_topics
        self._max_recommendations = max_past_recommendations
        self._context_window = context_window_turns
        self._strict_identity = strict_identity
        self._memory: dict[str, AgentPersonalization] = {}
        self._key_locks: dict[str, threading.RLock] = {}
        self._lock = threading.Lock()
        self._global_patterns: dict[str, float] = dict(BASELINE_GLOBAL_PATTERNS)
        self._framework_effectiveness: dict[str, dict[str, int]] = {}
        self._global_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> "PersonalizationMemory":
        """Build from Config.get_memory_config()."""
        config = config or {}
        return cls(
            max_history_turns=config.get("max_history_turns", cls.MAX_HISTORY_TURNS),
            max_recent_topics=config.get("max_recent_topics", cls.MAX_RECENT_TOPICS),
            max_past_recommendations=config.get("max_past_recommendations", cls.MAX_PAST_RECOMMENDATIONS),
            context_window_turns=config.get("context_window_turns", cls.CONTEXT_WINDOW_TURNS),
            strict_identity=config.get("strict_identity", False),
        )

    # =========================================================================
    # IDENTITY
    # =========================================================================

    def resolve_key(self, user_id: str | None = None, session_id: str | None = None) -> str:
        """Identity key for a caller: user id preferred, session id fallback."""
        for candidate in (user_id, session_id):
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        return self._check_key(None)

    def _check_key(self, key: str | None) -> str:
        """Validate a key, substituting an ephemeral one if unusable."""
        if isinstance(key, str) and key.strip():
            return key.strip()
        if self._strict_identity:
            raise InvalidIdentityKeyError(f"Invalid identity key: {key!r}")
        ephemeral = f"{EPHEMERAL_PREFIX}{uuid.uuid4().hex}"
        logger.warning(f"PersonalizationMemory: invalid identity key {key!r}, using {ephemeral}")
        return ephemeral

    @staticmethod
    def is_ephemeral(key: str) -> bool:
        return key.startswith(EPHEMERAL_PREFIX)

    def _key_lock(self, key: str, create: bool = False) -> threading.RLock:
        """Lock serializing access to one key.

        Only stored keys, or keys about to be stored, hold a lock in the map.
        Ephemeral keys and reads of unknown keys get a throwaway lock.
        """
        if self.is_ephemeral(key):
            return threading.RLock()
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                if create or key in self._memory:
                    self._key_locks[key] = lock
            return lock

    def _entry(self, key: str, create: bool) -> AgentPersonalization:
        """Stored entry for key, or a transient empty one.

        Ephemeral keys and reads of unknown keys never touch the store.
        """
        with self._lock:
            entry = self._memory.get(key)
            if entry is None and create and not self.is_ephemeral(key):
                entry = self._memory[key] = AgentPersonalization(key=key, session_id=key)
                logger.debug(f"PersonalizationMemory: created entry for {key}")
        return entry if entry is not None else AgentPersonalization(key=key, session_id=key)

    # =========================================================================
    # WRITES
    # =========================================================================

    def get_or_create(
        self,
        key: str | None,
        *,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> AgentPersonalization:
        """Return the personalization for key, creating an empty one if needed."""
        key = self._check_key(key)
        with self._key_lock(key, create=True):
            entry = self._entry(key, create=True)
            if session_id:
                entry.session_id = session_id
            if user_id:
                entry.user_id = user_id
            return entry

    def record_turn(self, key: str | None, turn: ConversationTurn) -> AgentPersonalization:
        """Record a completed interaction and update everything learned from it."""
        key = self._check_key(key)
        with self._key_lock(key, create=True):
            entry = self._entry(key, create=True)

            entry.conversation_history.append(turn)
            if len(entry.conversation_history) > self._max_history:
                del entry.conversation_history[:-self._max_history]

            self._update_learning_patterns(entry, turn)
            self._update_contextual_memory(entry, turn)
            self._update_business_profile(entry, turn)

        self._update_global_patterns(turn)

        logger.info(
            f"PersonalizationMemory: recorded turn {turn.id} for {key} "
            f"agent={turn.selected_agent} success={turn.success} "
            f"history={len(entry.conversation_history)}"
        )
        return entry

    def record_feedback(self, key: str | None, turn_id: str, feedback: FeedbackPolarity | str) -> bool:
        """Attach user feedback to a past turn and nudge the agent score.

        Returns:
            False if no turn with turn_id exists for key.
        """
        key = self._check_key(key)
        feedback = FeedbackPolarity(feedback)
        with self._key_lock(key):
            entry = self._entry(key, create=False)
            turn = entry.find_turn(turn_id)
            if turn is None:
                logger.warning(f"PersonalizationMemory: no turn {turn_id} for {key}, feedback ignored")
                return False

            turn.user_feedback = feedback
            agents = entry.learning_patterns.preferred_agents
            if feedback == FeedbackPolarity.NEGATIVE:
                _decay_score(agents, turn.selected_agent, 1.0)
                _append_unique(
                    entry.learning_patterns.common_misunderstandings,
                    misunderstanding_tag(turn.query_analysis.intent.value, turn.selected_agent),
                )
            elif feedback == FeedbackPolarity.POSITIVE:
                _bump_score(agents, turn.selected_agent)

        logger.info(f"PersonalizationMemory: {feedback.value} feedback on turn {turn_id} for {key}")
        return True

    def update_business_profile(self, key: str | None, **fields: Any) -> AgentPersonalization:
        """Merge caller-supplied business facts into a key's profile.

        List fields are extended without duplicates, scalar fields replaced.

        Raises:
            ValueError: On an unknown field name.
        """
        key = self._check_key(key)
        with self._key_lock(key, create=True):
            entry = self._entry(key, create=True)
            profile = entry.business_profile
            for name, value in fields.items():
                if not hasattr(profile, name):
                    raise ValueError(f"Unknown business profile field: {name}")
                current = getattr(profile, name)
                if isinstance(current, list):
                    _append_unique(current, *(value if isinstance(value, (list, tuple)) else [value]))
                else:
                    setattr(profile, name, value)
            return entry

    def update_adaptations(self, key: str | None, **fields: Any) -> AgentPersonalization:
        """Set response-shaping preferences for a key.

        Raises:
            ValueError: On an unknown field name.
        """
        key = self._check_key(key)
        with self._key_lock(key, create=True):
            entry = self._entry(key, create=True)
            for name, value in fields.items():
                if not hasattr(entry.adaptations, name):
                    raise ValueError(f"Unknown adaptation field: {name}")
                setattr(entry.adaptations, name, list(value) if isinstance(value, tuple) else value)
            return entry

    def clear(self, key: str | None) -> bool:
        """Remove all state for a key.

        Returns:
            True if state existed.
        """
        key = self._check_key(key)
        with self._key_lock(key):
            with self._lock:
                existed = self._memory.pop(key, None) is not None
                self._key_locks.pop(key, None)
        logger.info(f"PersonalizationMemory: cleared {key} (existed={existed})")
        return existed

    def _update_learning_patterns(self, entry: AgentPersonalization, turn: ConversationTurn) -> None:
        patterns = entry.learning_patterns
        analysis = turn.query_analysis

        if turn.success:
            _bump_score(patterns.preferred_agents, turn.selected_agent)
        else:
            _decay_score(patterns.preferred_agents, turn.selected_agent, 0.5)

        for framework in analysis.frameworks:
            if turn.success:
                _bump_score(patterns.effective_frameworks, framework)
            else:
                _decay_score(patterns.effective_frameworks, framework, 0.5)

        if turn.success:
            _append_unique(patterns.successful_query_types, f"{analysis.intent.value}-{analysis.complexity.value}")

        if not turn.success or turn.user_feedback == FeedbackPolarity.NEGATIVE:
            _append_unique(
                patterns.common_misunderstandings,
                misunderstanding_tag(analysis.intent.value, turn.selected_agent),
            )

    def _update_contextual_memory(self, entry: AgentPersonalization, turn: ConversationTurn) -> None:
        memory = entry.contextual_memory

        for topic in extract_topics(turn.user_query):
            if topic not in memory.recent_topics:
                memory.recent_topics.insert(0, topic)
        del memory.recent_topics[self._max_topics:]

        # A topic mentioned in 3+ of the recent turns becomes an ongoing project
        window = entry.conversation_history[-self._context_window:]
        mentions = Counter(topic for t in window for topic in extract_topics(t.user_query))
        for topic, count in mentions.items():
            if count >= ONGOING_PROJECT_MIN_MENTIONS:
                _append_unique(memory.ongoing_projects, topic)

        if turn.insights:
            memory.past_recommendations.extend(turn.insights)
            del memory.past_recommendations[:-self._max_recommendations]

    def _update_business_profile(self, entry: AgentPersonalization, turn: ConversationTurn) -> None:
        profile = entry.business_profile
        _append_unique(profile.previous_analyses, *turn.query_analysis.business_context)
        if turn.success:
            _append_unique(profile.preferred_frameworks, *turn.query_analysis.frameworks)

    def _update_global_patterns(self, turn: ConversationTurn) -> None:
        with self._global_lock:
            key = f"{turn.selected_agent}-success"
            rate = self._global_patterns.get(key, 0.5)
            self._global_patterns[key] = rate * 0.95 + 0.05 if turn.success else rate * 0.98

            for framework in turn.query_analysis.frameworks:
                stats = self._framework_effectiveness.setdefault(framework, {"success": 0, "total": 0})
                stats["total"] += 1
                if turn.success:
                    stats["success"] += 1

    # =========================================================================
    # READS
    # =========================================================================

    def get_contextual_recommendations(self, key: str | None, query: str) -> ContextualRecommendations:
        """Memory-derived hints for a new query. Does not mutate state."""
        key = self._check_key(key)
        query_topics = extract_topics(query)
        with self._key_lock(key):
            entry = self._entry(key, create=False)
            patterns = entry.learning_patterns
            memory = entry.contextual_memory

            agent_suggestions = [
                name for name, score in _top_by_score(patterns.preferred_agents, 3) if score > 0
            ]
            framework_recommendations = [
                name for name, score in _top_by_score(patterns.effective_frameworks, 3) if score > 0
            ]
            related_topics = [
                topic for topic in memory.recent_topics
                if any(topics_overlap(topic, q) for q in query_topics)
            ][:5]
            previous_insights = [
                insight for insight in memory.past_recommendations
                if any(mentions_topic(insight, topic) for topic in query_topics)
            ][:3]
            warning_flags = [
                mistake for mistake in patterns.common_misunderstandings
                if any(mentions_topic(mistake, topic) for topic in query_topics)
            ][:2]

        return ContextualRecommendations(
            agent_suggestions=agent_suggestions,
            framework_recommendations=framework_recommendations,
            related_topics=related_topics,
            previous_insights=previous_insights,
            warning_flags=warning_flags,
        )

    def get_conversation_context(self, key: str | None) -> ConversationContext:
        """Roll up the last few turns for use as routing signal."""
        key = self._check_key(key)
        with self._key_lock(key):
            entry = self._entry(key, create=False)
            recent = list(entry.conversation_history[-self._context_window:])
            style = entry.adaptations.response_style

        if not recent:
            return ConversationContext(communication_pattern=style)

        intents = Counter(t.query_analysis.intent.value for t in recent)
        complexities = Counter(t.query_analysis.complexity.value for t in recent)
        tags = Counter(tag for t in recent for tag in t.query_analysis.business_context)

        return ConversationContext(
            recent_queries=[t.user_query for t in recent][-5:],
            dominant_intent=intents.most_common(1)[0][0],
            average_complexity=complexities.most_common(1)[0][0],
            business_focus=[tag for tag, _ in tags.most_common(3)],
            communication_pattern=style,
        )

    def get_routing_bias(self, key: str | None, intent: QueryIntent | str) -> dict[str, float]:
        """Per-agent score adjustments learned for this key.

        Preferred agents get a capped bonus; agents that previously failed this
        user on the same intent get a flat penalty.
        """
        key = self._check_key(key)
        intent_value = QueryIntent(intent).value
        with self._key_lock(key):
            entry = self._entry(key, create=False)
            preferred = dict(entry.learning_patterns.preferred_agents)
            misunderstandings = list(entry.learning_patterns.common_misunderstandings)

        bias: dict[str, float] = {}
        for agent, score in preferred.items():
            if score > 0:
                bias[agent] = min(score * self.PREFERENCE_BONUS_PER_POINT, self.PREFERENCE_BONUS_CAP)
        prefix = f"{intent_value} - "
        for mistake in misunderstandings:
            if mistake.startswith(prefix):
                agent = mistake[len(prefix):]
                bias[agent] = bias.get(agent, 0.0) - self.MISUNDERSTANDING_PENALTY
        return bias

    def get_memory_analytics(self, key: str | None) -> dict[str, Any]:
        """Summary statistics for one key."""
        key = self._check_key(key)
        with self._key_lock(key):
            entry = self._entry(key, create=False)
            history = list(entry.conversation_history)
            patterns = entry.learning_patterns
            total = len(history)
            return {
                "total_conversations": total,
                "success_rate": sum(1 for t in history if t.success) / max(1, total),
                "average_execution_time": sum(t.execution_time for t in history) / max(1, total),
                "top_agents": [
                    {"agent": name, "score": score}
                    for name, score in _top_by_score(patterns.preferred_agents, 3)
                ],
                "top_frameworks": [
                    {"framework": name, "score": score}
                    for name, score in _top_by_score(patterns.effective_frameworks, 5)
                ],
                "recent_topics": entry.contextual_memory.recent_topics[:5],
                "ongoing_projects": list(entry.contextual_memory.ongoing_projects),
                "business_context": entry.business_profile.to_dict(),
                "adaptations": entry.adaptations.to_dict(),
            }

    def get_global_patterns(self) -> dict[str, Any]:
        """Store-wide agent success rates and framework effectiveness."""
        with self._global_lock:
            return {
                "patterns": dict(self._global_patterns),
                "framework_effectiveness": {
                    name: dict(stats) for name, stats in self._framework_effectiveness.items()
                },
            }

    def has_key(self, key: str) -> bool:
        with self._lock:
            return key in self._memory

    def get_stats(self) -> dict[str, Any]:
        """Get memory store statistics."""
        with self._lock:
            keys = len(self._memory)
            key_locks = len(self._key_locks)
        return {
            "keys": keys,
            "key_locks": key_locks,
            "max_history_turns": self._max_history,
            "max_recent_topics": self._max_topics,
            "max_past_recommendations": self._max_recommendations,
            "strict_identity": self._strict_identity,
        }


def create_personalization_memory(config: dict[str, Any] | None = None) -> PersonalizationMemory:
    """Factory function to create a PersonalizationMemory.

    Args:
        config: Optional memory settings, see Config.get_memory_config().

    Returns:
        Configured PersonalizationMemory instance.
    """
    return PersonalizationMemory.from_config(config)
