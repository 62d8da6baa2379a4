"""Exception types raised by the agent core."""

from typing import Any


class AgentError(Exception):
    """Base class for all agent errors."""


class ChatError(AgentError):
    """Raised when the chat port cannot produce an assistant message."""


class TransportError(ChatError):
    """Raised when a model request or stream fails."""


class EmptyResponseError(ChatError):
    """Raised when the provider answers with no content at all."""


class MaxIterationsExceededError(AgentError):
    """Raised when a loop reaches its iteration ceiling without a final answer."""

    def __init__(self, limit: int, messages: list[Any] | None = None):
        super().__init__(f"max iterations ({limit}) exceeded")
        self.limit = limit
        self.messages = messages or []


class ToolRegistrationError(AgentError):
    """Raised when a tool cannot be added to a registry."""


class ToolExecutionError(AgentError):
    """Raised by tools when a requested action fails."""
