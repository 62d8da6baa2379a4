"""Scripted chat port and small tools shared by the tests."""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel

from browser_agent.errors import ChatError, ToolExecutionError
from browser_agent.models.llm import (
    Message,
    StreamDelta,
    TextBlock,
    ToolCall,
    ToolChoice,
    ToolDefinition,
    ToolUseBlock,
)
from browser_agent.services.assembler import ResponseAssembler
from browser_agent.tools.base import Tool


class FakeToolName(StrEnum):
    ECHO = "echo"
    FAIL = "fail"
    BIG = "big"
    CHAT_FAIL = "chat_fail"
    BLOCK = "block"


def text_reply(text: str) -> Message:
    return Message.assistant([TextBlock(text=text)])


def tool_reply(*calls: tuple[str, str, str], text: str = "") -> Message:
    """Assistant turn calling ``(id, name, arguments)`` tools in order."""
    blocks = [TextBlock(text=text)] if text else []
    blocks += [ToolUseBlock(tool_call=ToolCall(id=id_, name=name, arguments=args)) for id_, name, args in calls]
    return Message.assistant(blocks)


@dataclass
class ChatRequest:
    messages: list[Message]
    tools: list[ToolDefinition] | None
    temperature: float
    stream: bool
    tool_choice: ToolChoice = ToolChoice.AUTO


Turn = Message | Exception | list[StreamDelta] | Callable[[list[Message]], Message]


class FakeChat:
    """Chat port replaying scripted turns and recording every request.

    A turn is an assistant message, an exception to raise, a list of stream
    deltas, or a callable building the reply from the transcript. When the
    script runs out, ``default`` is used if given.
    """

    def __init__(self, turns: Sequence[Turn] = (), default: Callable[[list[Message]], Message] | None = None):
        self.turns = list(turns)
        self.default = default
        self.requests: list[ChatRequest] = []

    async def chat(self, messages, tools=None, temperature=0.0, tool_choice=ToolChoice.AUTO) -> Message:
        self._record(messages, tools, temperature, stream=False, tool_choice=tool_choice)
        turn = self._next(messages)
        if isinstance(turn, list):
            assembler = ResponseAssembler()
            for delta in turn:
                assembler.feed(delta)
            return assembler.build()
        return turn

    async def chat_stream(
        self, messages, tools=None, temperature=0.0, on_fragment=None, tool_choice=ToolChoice.AUTO
    ) -> Message:
        self._record(messages, tools, temperature, stream=True, tool_choice=tool_choice)
        turn = self._next(messages)
        if not isinstance(turn, list):
            return turn
        assembler = ResponseAssembler()
        for delta in turn:
            await asyncio.sleep(0)
            assembler.feed(delta)
            if on_fragment is not None:
                on_fragment(delta)
        return assembler.build()

    def _record(self, messages, tools, temperature, stream: bool, tool_choice: ToolChoice) -> None:
        self.requests.append(
            ChatRequest(
                messages=list(messages),
                tools=list(tools) if tools is not None else None,
                temperature=temperature,
                stream=stream,
                tool_choice=tool_choice,
            )
        )

    def _next(self, messages) -> Message | list[StreamDelta]:
        if self.turns:
            turn = self.turns.pop(0)
        elif self.default is not None:
            turn = self.default
        else:
            raise AssertionError("FakeChat ran out of scripted turns")

        if isinstance(turn, Exception):
            raise turn
        if callable(turn):
            return turn(list(messages))
        return turn


class EchoInput(BaseModel):
    msg: str


class EchoTool(Tool):
    name = FakeToolName.ECHO
    description = "Echo the message back"
    input_schema_class = EchoInput

    def __init__(self):
        self.calls: list[str] = []

    async def run(self, params: EchoInput) -> str:
        self.calls.append(params.msg)
        return params.msg


class NoInput(BaseModel):
    pass


class FailingTool(Tool):
    name = FakeToolName.FAIL
    description = "Always fails"
    input_schema_class = NoInput

    async def run(self, params: NoInput) -> str:
        raise ToolExecutionError("boom")


class BigOutputTool(Tool):
    name = FakeToolName.BIG
    description = "Returns a large observation"
    input_schema_class = NoInput

    def __init__(self, size: int):
        self.size = size

    async def run(self, params: NoInput) -> str:
        return "x" * self.size


class ChatFailingTool(Tool):
    name = FakeToolName.CHAT_FAIL
    description = "Fails like a delegated agent whose model is unreachable"
    input_schema_class = NoInput

    async def run(self, params: NoInput) -> str:
        raise ChatError("model unreachable")


class BlockingTool(Tool):
    name = FakeToolName.BLOCK
    description = "Waits until cancelled"
    input_schema_class = NoInput

    def __init__(self):
        self.started = asyncio.Event()

    async def run(self, params: NoInput) -> str:
        self.started.set()
        await asyncio.Event().wait()
        return "unreachable"
