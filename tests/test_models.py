"""Tests for data models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from browser_agent.models.agents import AgentCategory, EvaluationResult, ToolName
from browser_agent.models.llm import (
    ContentBlock,
    Message,
    ReasoningBlock,
    Role,
    TextBlock,
    ToolCall,
    ToolUseBlock,
)
from browser_agent.models.task import TaskRequest, TaskRun, TaskRunResponse, TaskStatus


class TestMessage:
    """Tests for transcript messages."""

    def test_assistant_content_is_concatenated_text_blocks(self):
        """Flat content equals the concatenation of the text blocks."""
        message = Message.assistant(
            [ReasoningBlock(thinking="plan"), TextBlock(text="Hello, "), TextBlock(text="world")]
        )
        assert message.role == Role.ASSISTANT
        assert message.content == "Hello, world"
        assert message.reasoning == "plan"

    def test_assistant_tool_calls_are_copies(self):
        """Tool calls on the message do not share objects with the blocks."""
        block = ToolUseBlock(tool_call=ToolCall(id="call_1", name="echo", arguments='{"msg":"hi"}'))
        message = Message.assistant([block])

        assert message.tool_calls == [block.tool_call]
        assert message.tool_calls[0] is not block.tool_call

    def test_tool_result_round_trips_call_id(self):
        """Tool result messages carry the id and name of the call they answer."""
        call = ToolCall(id="toolu_01", name="echo", arguments="{}")
        message = Message.tool_result(call, "hi")

        assert message.role == Role.TOOL
        assert message.tool_call_id == "toolu_01"
        assert message.name == "echo"
        assert message.content == "hi"

    def test_content_block_discriminator(self):
        """Content blocks are parsed by their type tag."""
        adapter = TypeAdapter(ContentBlock)
        assert isinstance(adapter.validate_python({"type": "text", "text": "a"}), TextBlock)
        assert isinstance(adapter.validate_python({"type": "thinking", "thinking": "b"}), ReasoningBlock)
        block = adapter.validate_python({"type": "tool_use", "tool_call": {"id": "1", "name": "echo"}})
        assert isinstance(block, ToolUseBlock)
        assert block.tool_call.arguments == ""

    def test_message_json_round_trip(self):
        """Messages survive JSON serialization with their blocks."""
        message = Message.assistant(
            [TextBlock(text="ok"), ToolUseBlock(tool_call=ToolCall(id="1", name="echo", arguments="{}"))]
        )
        restored = Message.model_validate_json(message.model_dump_json())
        assert restored == message


class TestEvaluationResult:
    """Tests for evaluator verdicts."""

    def test_fail_open_defaults(self):
        """The fail-open verdict is permissive."""
        verdict = EvaluationResult.fail_open()
        assert verdict.success is True
        assert verdict.confidence == 0.5
        assert verdict.issues == []
        assert verdict.feedback == ""
        assert verdict.should_retry is False

    def test_null_issues_and_feedback(self):
        """Null lists and strings from the judge become empty values."""
        verdict = EvaluationResult.model_validate(
            {"success": False, "confidence": 0.2, "issues": None, "feedback": None, "should_retry": True}
        )
        assert verdict.issues == []
        assert verdict.feedback == ""

    @pytest.mark.parametrize(("confidence", "expected"), [(-0.1, 0.0), (1.5, 1.0), (None, 0.0), (1, 1.0)])
    def test_confidence_clamped(self, confidence, expected):
        """Out-of-range confidence is clamped into [0, 1]."""
        assert EvaluationResult(success=True, confidence=confidence).confidence == expected

    def test_missing_fields_take_zero_values(self):
        verdict = EvaluationResult.model_validate({"should_retry": True})
        assert verdict.success is False
        assert verdict.confidence == 0.0
        assert verdict.should_retry is True

    def test_non_numeric_confidence_rejected(self):
        with pytest.raises(ValidationError):
            EvaluationResult(success=True, confidence="high")


class TestIdentities:
    """Tests for tool and agent identities."""

    def test_tool_names_are_strings(self):
        """Identities compare equal to the names the model uses."""
        assert ToolName.BROWSER_NAVIGATE == "browser_navigate"
        assert str(ToolName.AGENT_EXTRACT) == "agent_extract"

    def test_unknown_identity_rejected(self):
        """Free-form names are not identities."""
        with pytest.raises(ValueError):
            ToolName("browser_navgate")

    def test_agent_categories(self):
        assert {c.value for c in AgentCategory} == {"orchestrator", "navigation", "extraction", "form", "analysis"}


class TestTaskModels:
    """Tests for task request and run models."""

    def test_task_request_requires_text(self):
        """Empty tasks are rejected."""
        with pytest.raises(ValidationError):
            TaskRequest(task="")

    def test_task_request_max_length(self):
        """Overlong tasks are rejected."""
        with pytest.raises(ValidationError):
            TaskRequest(task="a" * 8001)

    def test_task_run_defaults(self):
        """New runs are pending with no answer."""
        run = TaskRun(task_id="abc", description="say hello")
        assert run.status == TaskStatus.PENDING
        assert run.final_answer is None
        assert run.finished_at is None

    def test_task_run_response_from_run(self):
        """Run records convert to API responses."""
        run = TaskRun(task_id="abc", description="say hello", status=TaskStatus.COMPLETED, final_answer="Hello!")
        response = TaskRunResponse.from_run(run)
        assert response.task == "say hello"
        assert response.status == TaskStatus.COMPLETED
        assert response.final_answer == "Hello!"
