"""Chat port: the single seam between the agent core and a language model."""

from collections.abc import Callable, Sequence
from typing import Protocol

from browser_agent.models.llm import Message, StreamDelta, ToolChoice, ToolDefinition

FragmentCallback = Callable[[StreamDelta], None]


class ChatPort(Protocol):
    """Language model access used by loops and the evaluator.

    Implementations raise :class:`~browser_agent.errors.TransportError` when the
    request or stream fails and :class:`~browser_agent.errors.EmptyResponseError`
    when the provider returns nothing.
    """

    async def chat(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
        temperature: float = 0.0,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        """Return the complete assistant message for ``messages``.

        With ``ToolChoice.NONE`` the tools are still described to the model but it
        must answer in text.
        """
        ...

    async def chat_stream(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
        temperature: float = 0.0,
        on_fragment: FragmentCallback | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        """Stream the assistant turn, reporting each delta, and return the assembled message."""
        ...
