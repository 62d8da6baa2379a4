"""Anthropic chat port with rate limiting, retries and stream decoding."""

import asyncio
import json
import os
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import httpx
import tiktoken
from anthropic import APIError, APIStatusError, AsyncAnthropic
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from browser_agent.errors import EmptyResponseError, TransportError
from browser_agent.models.llm import (
    Message,
    ReasoningBlock,
    Role,
    StreamDelta,
    TextBlock,
    ToolCallFragment,
    ToolChoice,
    ToolDefinition,
    ToolUseBlock,
)
from browser_agent.services.assembler import ResponseAssembler, assemble_stream
from browser_agent.services.chat import FragmentCallback
from browser_agent.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: Literal["5m", "1h"] = "5m"


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: list[dict[str, Any]]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class TokenUsage:
    """Token usage information from Anthropic API."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-sonnet-4-5"
    max_tokens: int = 4096
    max_retries: int = 3
    retry_delay: float = 1.0
    # Extended thinking budget; None disables thinking
    thinking_budget: int | None = None
    cache_tools: bool = True
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000


class AnthropicRateLimiter:
    """Moving-window limiter for request count and estimated tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within both limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_reset(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        cost = min(max(estimated_tokens, 1), self.token_limit.amount)
        if not self.limiter.hit(self.token_limit, token_identifier, cost=cost):
            await self._wait_for_reset(self.token_limit, token_identifier, "Token")

    async def _wait_for_reset(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        wait_time = max(0.0, window_stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


def to_anthropic_messages(
    messages: Sequence[Message], flatten_tools: bool = False
) -> tuple[str, list[AnthropicMessage]]:
    """Split the system prompt off and convert the rest to Anthropic turns.

    Signed reasoning is sent back as a ``thinking`` block, unsigned reasoning as
    ``<thinking>`` text. Tool observations become ``tool_result`` blocks of a
    user turn, and consecutive turns with the same role are merged so the
    conversation alternates.

    Args:
        messages: Transcript to convert
        flatten_tools: Render tool calls and results as plain text. The API
            rejects ``tool_use`` blocks in requests that define no tools.
    """
    system_parts: list[str] = []
    converted: list[AnthropicMessage] = []

    for message in messages:
        if message.role == Role.SYSTEM:
            system_parts.append(message.content)
            continue

        if message.role == Role.TOOL and flatten_tools:
            role = "user"
            content = [{"type": "text", "text": f"[Result of {message.name}]\n{message.content}"}]
        elif message.role == Role.TOOL:
            role = "user"
            content = [{"type": "tool_result", "tool_use_id": message.tool_call_id, "content": message.content}]
        elif message.role == Role.ASSISTANT:
            role = "assistant"
            content = _assistant_content(message, flatten_tools)
        else:
            role = "user"
            content = [{"type": "text", "text": message.content}]

        if not content:
            continue
        if converted and converted[-1].role == role:
            converted[-1].content.extend(content)
        else:
            converted.append(AnthropicMessage(role=role, content=content))

    return "\n\n".join(system_parts), converted


def _assistant_content(message: Message, flatten_tools: bool = False) -> list[dict[str, Any]]:
    content: list[dict[str, Any]] = []
    for block in message.blocks:
        if isinstance(block, ReasoningBlock) and block.signature and not flatten_tools:
            content.append({"type": "thinking", "thinking": block.thinking, "signature": block.signature})
        elif isinstance(block, ReasoningBlock) and block.thinking:
            content.append({"type": "text", "text": f"<thinking>{block.thinking}</thinking>"})
        elif isinstance(block, TextBlock) and block.text:
            content.append({"type": "text", "text": block.text})
        elif isinstance(block, ToolUseBlock) and flatten_tools:
            call = block.tool_call
            content.append({"type": "text", "text": f"[Called {call.name} with {call.arguments or '{}'}]"})
        elif isinstance(block, ToolUseBlock):
            call = block.tool_call
            content.append(
                {"type": "tool_use", "id": call.id, "name": call.name, "input": _parse_arguments(call.arguments)}
            )

    # Messages built without blocks still carry flat content
    if not message.blocks and message.content:
        content.append({"type": "text", "text": message.content})
    return content


def _parse_arguments(arguments: str) -> dict[str, Any]:
    try:
        parsed = json.loads(arguments) if arguments.strip() else {}
    except json.JSONDecodeError:
        logger.warning(f"Sending malformed tool arguments as empty input: {arguments[:100]}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def event_to_delta(event: Any) -> StreamDelta | None:
    """Map one raw Anthropic stream event to a delta, or None if it carries no content."""
    if event.type == "content_block_start":
        block = event.content_block
        if block.type == "tool_use":
            return StreamDelta(tool_calls=[ToolCallFragment(index=event.index, id=block.id, name=block.name)])
        return None

    if event.type == "content_block_delta":
        delta = event.delta
        if delta.type == "text_delta":
            return StreamDelta(text=delta.text)
        if delta.type == "thinking_delta":
            return StreamDelta(reasoning=delta.thinking)
        if delta.type == "signature_delta":
            return StreamDelta(signature=delta.signature)
        if delta.type == "input_json_delta":
            return StreamDelta(tool_calls=[ToolCallFragment(index=event.index, arguments=delta.partial_json)])
    return None


def content_to_deltas(content: Sequence[Any]) -> list[StreamDelta]:
    """Express a complete response's content blocks as deltas."""
    deltas: list[StreamDelta] = []
    for index, block in enumerate(content):
        if block.type == "text":
            deltas.append(StreamDelta(text=block.text))
        elif block.type == "thinking":
            deltas.append(StreamDelta(reasoning=block.thinking, signature=getattr(block, "signature", None) or ""))
        elif block.type == "tool_use":
            fragment = ToolCallFragment(index=index, id=block.id, name=block.name, arguments=json.dumps(block.input))
            deltas.append(StreamDelta(tool_calls=[fragment]))
        else:
            logger.warning(f"Unknown content block type: {block.type}")
    return deltas


class AnthropicClient:
    """Chat port over the Anthropic Messages API."""

    tokenizer: tiktoken.Encoding | None = None
    client: AsyncAnthropic
    config: AnthropicConfig

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        client: AsyncAnthropic | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
            client: Preconfigured SDK client, mainly for tests
        """
        self.config = config or AnthropicConfig()
        self.rate_limiter = AnthropicRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)
        self.last_usage = TokenUsage()

        if client is None:
            anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable is required")
            # Retries are handled by _request_with_retries
            client = AsyncAnthropic(api_key=anthropic_api_key, max_retries=0)
        self.client = client

        # Initialize tokenizer for token estimation
        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def chat(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
        temperature: float = 0.0,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        params = await self._prepare(messages, tools, temperature, tool_choice)

        try:
            response = await self._request_with_retries(lambda: self.client.messages.create(**params))
        except (APIError, httpx.HTTPError) as e:
            raise TransportError(f"Anthropic request failed: {e}") from e

        if response.usage:
            self.last_usage = TokenUsage(response.usage.input_tokens, response.usage.output_tokens)
        logger.debug(
            f"Response received - stop reason: {response.stop_reason}, content blocks: {len(response.content)}, "
            f"tokens: {self.last_usage.total_tokens}"
        )

        assembler = ResponseAssembler()
        for delta in content_to_deltas(response.content):
            assembler.feed(delta)
        return self._ensure_content(assembler.build())

    async def chat_stream(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
        temperature: float = 0.0,
        on_fragment: FragmentCallback | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> Message:
        params = await self._prepare(messages, tools, temperature, tool_choice)

        try:
            stream = await self._request_with_retries(lambda: self.client.messages.create(**params, stream=True))
            message = await assemble_stream(self._deltas(stream), on_fragment)
        except (APIError, httpx.HTTPError) as e:
            raise TransportError(f"Anthropic stream failed: {e}") from e

        return self._ensure_content(message)

    async def _deltas(self, stream) -> AsyncIterator[StreamDelta]:
        async with stream:
            async for event in stream:
                if event.type == "message_delta" and event.usage:
                    self.last_usage.output_tokens = event.usage.output_tokens
                delta = event_to_delta(event)
                if delta is not None:
                    yield delta

    def _ensure_content(self, message: Message) -> Message:
        if not message.blocks:
            raise EmptyResponseError("Anthropic returned no content")
        return message

    async def _prepare(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None,
        temperature: float,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> dict[str, Any]:
        anthropic_tools = self._convert_tools(tools)
        system_prompt, anthropic_messages = to_anthropic_messages(messages, flatten_tools=not anthropic_tools)

        # Estimate tokens for rate limiting
        estimated_tokens = self._estimate_tokens(messages)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": system_prompt,
            "messages": [message.model_dump() for message in anthropic_messages],
        }
        if anthropic_tools:
            params["tools"] = [tool.model_dump(exclude_none=True) for tool in anthropic_tools]
            if tool_choice == ToolChoice.NONE:
                params["tool_choice"] = {"type": "none"}
        if self.config.thinking_budget:
            # Extended thinking requires the default temperature
            params["thinking"] = {"type": "enabled", "budget_tokens": self.config.thinking_budget}
        else:
            params["temperature"] = temperature

        logger.debug(
            f"Creating message with {len(anthropic_messages)} messages, {len(anthropic_tools)} tools, "
            f"model: {self.config.model}"
        )
        return params

    def _convert_tools(self, tools: Sequence[ToolDefinition] | None) -> list[AnthropicTool]:
        converted = [
            AnthropicTool(name=tool.name, description=tool.description, input_schema=tool.parameters)
            for tool in tools or ()
        ]
        # Cache everything up to the last tool definition
        if converted and self.config.cache_tools:
            converted[-1].cache_control = CacheControl()
        return converted

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIStatusError as e:
                if e.status_code == 429:  # Rate limit exceeded
                    retry_after = int(e.response.headers.get("retry-after", 60))
                    if retry_after < 120 and attempt < self.config.max_retries - 1:
                        logger.warning(f"Rate limited by Anthropic, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif e.status_code >= 500 and attempt < self.config.max_retries - 1:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                # Re-raise if not retryable or max retries reached
                raise

            except (APIError, httpx.HTTPError) as e:
                if attempt < self.config.max_retries - 1:
                    logger.warning(f"Anthropic request failed ({e}), retrying")
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise TransportError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _estimate_tokens(self, messages: Sequence[Message]) -> int:
        """Estimate token count for rate limiting."""
        text_content = "".join(message.content + message.reasoning for message in messages)
        for message in messages:
            for call in message.tool_calls:
                text_content += call.arguments
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4
