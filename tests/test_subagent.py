"""Tests for sub-agents, evaluator-driven retry and agent tools."""

import json

import pytest

from browser_agent.errors import MaxIterationsExceededError, TransportError
from browser_agent.models.agents import AgentCategory, EvaluationResult, ToolName
from browser_agent.models.llm import Role, ToolChoice
from browser_agent.prompts import FINAL_REPORT_PROMPT
from browser_agent.services.agent_loop import LoopConfig
from browser_agent.services.evaluator import Evaluator
from browser_agent.services.subagent import AgentTool, EvaluatedSubAgent, SubAgent, build_retry_task
from browser_agent.tools.registry import ToolsRegistry
from fakes import EchoTool, FailingTool, FakeChat, FakeToolName, text_reply, tool_reply


def verdict_json(success=False, should_retry=True, feedback="", issues=()):
    return json.dumps(
        {
            "success": success,
            "confidence": 0.9 if success else 0.2,
            "issues": list(issues),
            "feedback": feedback,
            "should_retry": should_retry,
        }
    )


def make_agent(chat, cls=SubAgent, tools=None, allowed=(FakeToolName.ECHO,), max_iterations=5, **kwargs):
    return cls(
        name=ToolName.AGENT_EXTRACT,
        category=AgentCategory.EXTRACTION,
        description="Extracts data",
        system_prompt="You extract.",
        chat=chat,
        tools=tools or ToolsRegistry([EchoTool(), FailingTool()]),
        allowed_tools=allowed,
        config=LoopConfig(max_iterations=max_iterations),
        **kwargs,
    )


class SplitChat(FakeChat):
    """Routes judge requests, recognised by their system prompt, to a separate script."""

    def __init__(self, agent_turns, judge_turns):
        super().__init__(agent_turns)
        self.judge = FakeChat(judge_turns)

    async def chat(self, messages, tools=None, temperature=0.0, tool_choice=ToolChoice.AUTO):
        if messages and "Evaluator Agent" in messages[0].content:
            return await self.judge.chat(messages, tools, temperature, tool_choice)
        return await super().chat(messages, tools, temperature, tool_choice)


class TestSubAgent:
    """Tool filtering and iteration ceilings."""

    @pytest.mark.asyncio
    async def test_only_allowed_tools_offered(self):
        """The model sees the allow-listed subset of the registry."""
        chat = FakeChat([text_reply("done")])
        await make_agent(chat).execute("task")
        assert [d.name for d in chat.requests[0].tools] == ["echo"]

    @pytest.mark.asyncio
    async def test_disallowed_tool_is_unknown(self):
        """Registered tools outside the allow-list cannot be dispatched."""
        chat = FakeChat([tool_reply(("c1", "fail", "{}")), text_reply("done")])
        result = await make_agent(chat).execute("task")
        assert result.messages[3].content == "Error: unknown tool 'fail'"

    @pytest.mark.asyncio
    async def test_ceiling_is_hard_failure_without_final_report(self):
        chat = FakeChat(default=lambda messages: tool_reply(("c", "echo", '{"msg":"x"}')))
        with pytest.raises(MaxIterationsExceededError):
            await make_agent(chat, max_iterations=2).execute("task")
        assert len(chat.requests) == 2

    @pytest.mark.asyncio
    async def test_forced_final_report(self):
        """At the ceiling, one extra turn with tool use forbidden asks for a final report."""
        turns = [tool_reply((f"c{i}", "echo", '{"msg":"x"}')) for i in range(3)]
        turns.append(text_reply("PARTIAL SUCCESS: found two of three items"))
        chat = FakeChat(turns)

        result = await make_agent(chat, max_iterations=3, force_final_report=True).execute("task")

        assert result.final_answer == "PARTIAL SUCCESS: found two of three items"
        assert result.iterations == 4
        final_request = chat.requests[-1]
        assert [d.name for d in final_request.tools] == ["echo"]
        assert final_request.tool_choice == ToolChoice.NONE
        assert all(r.tool_choice == ToolChoice.AUTO for r in chat.requests[:-1])
        assert final_request.messages[-1].role == Role.USER
        assert final_request.messages[-1].content == FINAL_REPORT_PROMPT
        assert final_request.messages[-2].role == Role.TOOL


class TestBuildRetryTask:
    """Retry task construction."""

    def test_format(self):
        verdict = EvaluationResult(
            success=False, confidence=0.2, issues=["missing prices", "no selectors"], feedback="Be thorough"
        )
        assert build_retry_task("List prices", verdict) == (
            "List prices\n\nPREVIOUS ATTEMPT FEEDBACK:\nBe thorough\n\n"
            "Issues to fix:\n1. missing prices\n2. no selectors\n"
        )


class TestEvaluatedSubAgent:
    """Evaluator-driven retry state machine."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        chat = SplitChat([text_reply("prices: 1, 2")], [text_reply(verdict_json(success=True))])
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat))

        result = await agent.execute("List prices")

        assert result.final_answer == "prices: 1, 2"
        assert len(chat.requests) == 1
        assert len(chat.judge.requests) == 1
        assert "Task: List prices\n" in chat.judge.requests[0].messages[1].content

    @pytest.mark.asyncio
    async def test_retry_restates_original_task_with_fresh_feedback(self):
        """Each retry carries only the latest feedback on top of the original task."""
        chat = SplitChat(
            [text_reply("attempt 1"), text_reply("attempt 2"), text_reply("attempt 3")],
            [
                text_reply(verdict_json(feedback="FEEDBACK-ONE", issues=["issue one"])),
                text_reply(verdict_json(feedback="FEEDBACK-TWO", issues=["issue two"])),
                text_reply(verdict_json(success=True)),
            ],
        )
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat), max_retries=2)

        result = await agent.execute("List prices")

        assert result.final_answer == "attempt 3"
        tasks = [request.messages[1].content for request in chat.requests]
        assert tasks[0] == "List prices"
        assert tasks[1].startswith("List prices\n\nPREVIOUS ATTEMPT FEEDBACK:\nFEEDBACK-ONE")
        assert "1. issue one" in tasks[1]
        assert tasks[2].startswith("List prices\n\nPREVIOUS ATTEMPT FEEDBACK:\nFEEDBACK-TWO")
        assert "FEEDBACK-ONE" not in tasks[2]
        assert "1. issue two" in tasks[2]
        # The judge always sees the original task
        assert all("Task: List prices\n\n" in r.messages[1].content for r in chat.judge.requests)

    @pytest.mark.asyncio
    async def test_budget_exhausted_returns_last_result(self):
        """Attempts run 0..max_retries inclusive and the last answer is returned."""
        chat = SplitChat(
            [text_reply("attempt 1"), text_reply("attempt 2")],
            [text_reply(verdict_json(feedback="again")), text_reply(verdict_json(feedback="again"))],
        )
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat), max_retries=1)

        result = await agent.execute("List prices")

        assert result.final_answer == "attempt 2"
        assert len(chat.requests) == 2
        assert len(chat.judge.requests) == 2

    @pytest.mark.asyncio
    async def test_no_retry_when_judge_declines(self):
        """A failed verdict without a retry recommendation is delivered as is."""
        chat = SplitChat([text_reply("weak answer")], [text_reply(verdict_json(should_retry=False))])
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat))

        result = await agent.execute("List prices")

        assert result.final_answer == "weak answer"
        assert len(chat.requests) == 1

    @pytest.mark.asyncio
    async def test_unparseable_verdict_fails_open(self):
        chat = SplitChat([text_reply("answer")], [text_reply("no json here")])
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat))

        result = await agent.execute("List prices")
        assert result.final_answer == "answer"
        assert len(chat.requests) == 1

    @pytest.mark.asyncio
    async def test_judge_unreachable_returns_result(self):
        """If the judge call fails, the attempt's result is returned anyway."""
        chat = SplitChat([text_reply("answer")], [TransportError("judge down")])
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat))

        result = await agent.execute("List prices")
        assert result.final_answer == "answer"

    @pytest.mark.asyncio
    async def test_attempt_errors_propagate(self):
        """Transport failures of an attempt are not retried."""
        chat = SplitChat([TransportError("down")], [])
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat))

        with pytest.raises(TransportError):
            await agent.execute("List prices")

    @pytest.mark.asyncio
    async def test_final_report_is_judged_and_retried(self):
        """An attempt that ends in a forced final report goes through the judge like any other."""
        looping = [tool_reply((f"c{i}", "echo", '{"msg":"x"}')) for i in range(2)]
        chat = SplitChat(
            [*looping, text_reply("FAILED: no prices found"), text_reply("prices: 1, 2")],
            [
                text_reply(verdict_json(feedback="Use query_elements", issues=["no prices"])),
                text_reply(verdict_json(success=True)),
            ],
        )
        agent = make_agent(
            chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat), max_iterations=2, force_final_report=True
        )

        result = await agent.execute("List prices")

        assert result.final_answer == "prices: 1, 2"
        assert "Actual Result:\nFAILED: no prices found" in chat.judge.requests[0].messages[1].content
        assert chat.requests[2].tool_choice == ToolChoice.NONE
        assert "PREVIOUS ATTEMPT FEEDBACK:\nUse query_elements" in chat.requests[3].messages[1].content

    @pytest.mark.asyncio
    async def test_decoded_verdict_without_confidence_still_retries(self):
        """A verdict missing confidence keeps its failure and retry request."""
        partial = json.dumps(
            {"success": False, "issues": ["no data"], "feedback": "extract values", "should_retry": True}
        )
        chat = SplitChat(
            [text_reply("attempt 1"), text_reply("attempt 2")],
            [text_reply(partial), text_reply(verdict_json(success=True))],
        )
        agent = make_agent(chat, cls=EvaluatedSubAgent, evaluator=Evaluator(chat))

        result = await agent.execute("List prices")

        assert result.final_answer == "attempt 2"
        assert "1. no data" in chat.requests[1].messages[1].content


class TestAgentTool:
    """Sub-agents exposed as tools."""

    def test_identity_and_schema(self):
        tool = AgentTool(make_agent(FakeChat()))
        definition = tool.definition()

        assert tool.name == ToolName.AGENT_EXTRACT
        assert definition.name == "agent_extract"
        assert definition.description == "Extracts data"
        assert definition.parameters["required"] == ["task"]

    @pytest.mark.asyncio
    async def test_execute_returns_final_answer(self):
        chat = FakeChat([text_reply("extracted: 42")])
        tool = AgentTool(make_agent(chat))

        assert await tool.execute('{"task": "find the answer"}') == "extracted: 42"
        assert chat.requests[0].messages[1].content == "find the answer"
