"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class Role(StrEnum):
    """Conversation role of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolChoice(StrEnum):
    """Whether the model may call the offered tools on a turn."""

    AUTO = "auto"
    NONE = "none"


class ToolCall(BaseModel):
    """A tool invocation requested by the model.

    ``arguments`` is the raw serialized payload exactly as the model produced it.
    """

    id: str
    name: str
    arguments: str = ""


# Content block types
class TextBlock(BaseModel):
    """Visible text content block."""

    type: Literal["text"] = "text"
    text: str


class ReasoningBlock(BaseModel):
    """Hidden reasoning (thinking) content block.

    ``signature`` is the provider's integrity token for the reasoning, required
    when the block is sent back on a later turn. Empty when the provider did not
    sign it.
    """

    type: Literal["thinking"] = "thinking"
    thinking: str
    signature: str = ""


class ToolUseBlock(BaseModel):
    """Tool use content block. Owns its tool call."""

    type: Literal["tool_use"] = "tool_use"
    tool_call: ToolCall


ContentBlock = Annotated[TextBlock | ReasoningBlock | ToolUseBlock, Field(discriminator="type")]


class Message(BaseModel):
    """A single turn in the transcript."""

    role: Role
    content: str = ""
    blocks: list[ContentBlock] = Field(default_factory=list)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def tool_result(cls, tool_call: ToolCall, content: str) -> "Message":
        """Build the observation message answering ``tool_call``."""
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call.id, name=tool_call.name)

    @classmethod
    def assistant(cls, blocks: list[ContentBlock]) -> "Message":
        """Build an assistant message from ordered content blocks.

        Flat ``content`` is the concatenation of the text blocks and ``tool_calls``
        holds copies of the calls owned by the tool-use blocks.
        """
        text = "".join(block.text for block in blocks if isinstance(block, TextBlock))
        calls = [block.tool_call.model_copy() for block in blocks if isinstance(block, ToolUseBlock)]
        return cls(role=Role.ASSISTANT, content=text, blocks=list(blocks), tool_calls=calls)

    @property
    def reasoning(self) -> str:
        return "".join(block.thinking for block in self.blocks if isinstance(block, ReasoningBlock))


class ToolDefinition(BaseModel):
    """Machine-readable tool description sent to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolCallFragment:
    """Partial tool call carried by one stream delta.

    ``index`` is the position of the call in the final tool-call array. It may be
    missing on malformed transport chunks.
    """

    index: int | None
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass
class StreamDelta:
    """One incremental piece of a streamed assistant turn."""

    text: str = ""
    reasoning: str = ""
    signature: str = ""
    tool_calls: list[ToolCallFragment] = field(default_factory=list)
