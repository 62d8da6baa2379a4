"""Reassembles a streamed model turn into one assistant message."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from browser_agent.models.llm import (
    ContentBlock,
    Message,
    ReasoningBlock,
    StreamDelta,
    TextBlock,
    ToolCall,
    ToolCallFragment,
    ToolUseBlock,
)
from browser_agent.services.chat import FragmentCallback
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _PendingToolCall:
    id: str
    name: str
    arguments: str


class ResponseAssembler:
    """Accumulates stream deltas and builds the final assistant message.

    Tool-call fragments are merged by their stream index, which is stable across
    the fragments of one call but may arrive in any order. Text and reasoning are
    buffered separately. :meth:`build` always emits blocks as reasoning, then
    text, then tool uses in ascending index order. The reasoning block keeps the
    last signature seen on the stream.
    """

    def __init__(self) -> None:
        self._text: list[str] = []
        self._reasoning: list[str] = []
        self._signature = ""
        self._tool_calls: dict[int, _PendingToolCall] = {}
        self.delta_count = 0

    def feed(self, delta: StreamDelta) -> None:
        self.delta_count += 1
        if delta.reasoning:
            self._reasoning.append(delta.reasoning)
        if delta.signature:
            self._signature = delta.signature
        if delta.text:
            self._text.append(delta.text)
        for fragment in delta.tool_calls:
            self._merge_tool_call(fragment)

    def _merge_tool_call(self, fragment: ToolCallFragment) -> None:
        if fragment.index is None:
            logger.debug("Ignoring tool call fragment without index")
            return

        existing = self._tool_calls.get(fragment.index)
        if existing is None:
            self._tool_calls[fragment.index] = _PendingToolCall(
                id=fragment.id or "",
                name=fragment.name or "",
                arguments=fragment.arguments or "",
            )
            return

        existing.arguments += fragment.arguments or ""
        # id and name are usually only present on the first fragment
        if fragment.id:
            existing.id = fragment.id
        if fragment.name:
            existing.name = fragment.name

    def build(self) -> Message:
        blocks: list[ContentBlock] = []

        reasoning = "".join(self._reasoning)
        if reasoning:
            blocks.append(ReasoningBlock(thinking=reasoning, signature=self._signature))

        text = "".join(self._text)
        if text:
            blocks.append(TextBlock(text=text))

        for index in sorted(self._tool_calls):
            pending = self._tool_calls[index]
            blocks.append(
                ToolUseBlock(tool_call=ToolCall(id=pending.id, name=pending.name, arguments=pending.arguments))
            )

        message = Message.assistant(blocks)
        logger.debug(
            f"Assembled message from {self.delta_count} deltas - reasoning: {len(reasoning)} chars, "
            f"text: {len(text)} chars, tool calls: {len(message.tool_calls)}"
        )
        return message


async def assemble_stream(
    deltas: AsyncIterator[StreamDelta],
    on_fragment: FragmentCallback | None = None,
) -> Message:
    """Consume ``deltas`` on the current task and return the assembled message.

    Cancelling the awaiting task stops consumption immediately.
    """
    assembler = ResponseAssembler()
    async for delta in deltas:
        assembler.feed(delta)
        if on_fragment is not None:
            on_fragment(delta)
    return assembler.build()
