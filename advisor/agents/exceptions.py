"""Exceptions raised by the routing engine and personalization memory."""

from __future__ import annotations


class AdvisorError(Exception):
    """Base class for advisor routing errors."""


class ConfigurationError(AdvisorError):
    """The capability registry is empty or malformed.

    Fatal: an engine that raises this must not serve requests.
    """


class InvalidIdentityKeyError(AdvisorError):
    """A memory operation was called without a usable user or session id."""


class UnknownAgentError(AdvisorError, KeyError):
    """An agent name is not present in the capability registry."""

    def __init__(self, agent_name: str):
        super().__init__(agent_name)
        self.agent_name = agent_name

    def __str__(self) -> str:
        return f"Unknown agent: {self.agent_name!r}"
