"""Task-execution loop: model turn, tool dispatch, observation, repeat."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from browser_agent.errors import ChatError, MaxIterationsExceededError
from browser_agent.models.agents import ExecuteResult
from browser_agent.models.llm import Message, StreamDelta, ToolCall, ToolDefinition
from browser_agent.services.chat import ChatPort
from browser_agent.tools.base import Tool
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)

TRUNCATION_MARKER = "\n... (truncated)"
ERROR_PREFIX = "Error: "


class LoopState(StrEnum):
    RUNNING = "running"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    FAILED = "failed"


@dataclass
class LoopConfig:
    """Configuration for one agent loop."""

    max_iterations: int = 50
    max_observation_len: int = 20_000
    temperature: float = 0.0
    stream: bool = False


class ToolSource(Protocol):
    """Anything that resolves tools by name and lists their definitions."""

    def get(self, name: str) -> Tool | None: ...

    def definitions(self) -> list[ToolDefinition]: ...


class ExecutionObserver(Protocol):
    """Receives progress notifications from a running loop."""

    def show_iteration(self, iteration: int, max_iterations: int) -> None: ...

    def show_thinking(self, content: str) -> None: ...

    def show_fragment(self, delta: StreamDelta) -> None: ...

    def show_tool_start(self, tool_name: str, arguments: str) -> None: ...

    def show_tool_result(self, tool_name: str, result: str, is_error: bool) -> None: ...


class NullObserver:
    """Observer that ignores every notification."""

    def show_iteration(self, iteration: int, max_iterations: int) -> None:
        pass

    def show_thinking(self, content: str) -> None:
        pass

    def show_fragment(self, delta: StreamDelta) -> None:
        pass

    def show_tool_start(self, tool_name: str, arguments: str) -> None:
        pass

    def show_tool_result(self, tool_name: str, result: str, is_error: bool) -> None:
        pass


def truncate_observation(text: str, limit: int) -> str:
    """Cap an observation at ``limit`` characters, appending a marker when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


class AgentLoop:
    """Drives one model through repeated tool-calling turns.

    The loop holds no per-run state, so a single instance can serve concurrent
    executions. Each call to :meth:`run` owns its transcript.
    """

    def __init__(
        self,
        chat: ChatPort,
        tools: ToolSource,
        config: LoopConfig | None = None,
        observer: ExecutionObserver | None = None,
        name: str = "agent",
    ):
        """Initialize agent loop.

        Args:
            chat: Chat port used for every model turn
            tools: Tool source resolving calls and providing definitions
            config: Loop limits and sampling settings
            observer: Optional progress observer
            name: Label used in log lines
        """
        self.chat = chat
        self.tools = tools
        self.config = config or LoopConfig()
        self.observer = observer or NullObserver()
        self.name = name

    async def run(self, system_prompt: str, task: str) -> ExecuteResult:
        """Execute ``task`` until the model answers without tool calls.

        Raises:
            MaxIterationsExceededError: If the ceiling is hit; carries the transcript
            ChatError: If a model call fails
        """
        messages = [Message.system(system_prompt), Message.user(task)]
        return await self.run_messages(messages)

    async def run_messages(self, messages: list[Message]) -> ExecuteResult:
        """Continue the loop on an existing transcript, appending to it in place."""
        max_iterations = self.config.max_iterations
        tool_definitions = self.tools.definitions()
        state = LoopState.RUNNING

        logger.info(
            f"[{self.name}] {state}: starting loop with {len(messages)} messages, "
            f"{len(tool_definitions)} tools, max_iterations: {max_iterations}"
        )

        for iteration in range(1, max_iterations + 1):
            self.observer.show_iteration(iteration, max_iterations)
            state = LoopState.AWAITING_MODEL
            logger.debug(f"[{self.name}] Iteration {iteration}/{max_iterations} - {state}")

            response = await self._request(messages, tool_definitions)
            messages.append(response)

            if response.content:
                self.observer.show_thinking(response.content)

            if not response.tool_calls:
                state = LoopState.DONE
                logger.info(f"[{self.name}] Loop {state} in {iteration} iterations")
                return ExecuteResult(final_answer=response.content, iterations=iteration, messages=messages)

            state = LoopState.DISPATCHING_TOOLS
            logger.info(f"[{self.name}] {state}: model requested {len(response.tool_calls)} tool calls")

            # Sequential on purpose: later calls may depend on side effects of earlier ones
            for tool_call in response.tool_calls:
                self.observer.show_tool_start(tool_call.name, tool_call.arguments)
                observation = await self.dispatch(tool_call)
                self.observer.show_tool_result(
                    tool_call.name, observation, is_error=observation.startswith(ERROR_PREFIX)
                )
                messages.append(Message.tool_result(tool_call, observation))

        state = LoopState.FAILED
        logger.warning(f"[{self.name}] Loop {state}: reached max iterations ({max_iterations})")
        raise MaxIterationsExceededError(max_iterations, messages)

    async def _request(self, messages: Sequence[Message], tools: Sequence[ToolDefinition] | None) -> Message:
        if self.config.stream:
            return await self.chat.chat_stream(
                messages,
                tools,
                temperature=self.config.temperature,
                on_fragment=self.observer.show_fragment,
            )
        return await self.chat.chat(messages, tools, temperature=self.config.temperature)

    async def dispatch(self, tool_call: ToolCall) -> str:
        """Execute one tool call and return its observation text.

        Unknown tools and tool failures become ``"Error: ..."`` observations so
        the model can correct itself. Chat failures raised from delegated agents
        and cancellation propagate.
        """
        tool = self.tools.get(tool_call.name)
        if tool is None:
            logger.warning(f"[{self.name}] Unknown tool requested: {tool_call.name}")
            return f"{ERROR_PREFIX}unknown tool '{tool_call.name}'"

        logger.info(f"[{self.name}] Executing tool: {tool_call.name} with arguments: {tool_call.arguments}")
        try:
            result = await tool.execute(tool_call.arguments)
        except ChatError:
            raise
        except Exception as e:
            logger.error(f"[{self.name}] Tool {tool_call.name} failed: {e}")
            return f"{ERROR_PREFIX}{e}"

        logger.debug(f"[{self.name}] Tool {tool_call.name} succeeded: {len(result)} chars")
        return truncate_observation(result, self.config.max_observation_len)
