"""Sub-agents: capability-scoped loops, evaluator-driven retry and agent tools."""

from collections.abc import Sequence

from pydantic import BaseModel, Field

from browser_agent.errors import ChatError, MaxIterationsExceededError
from browser_agent.models.agents import (
    AgentCategory,
    EvaluationCriteria,
    EvaluationResult,
    ExecuteResult,
    ToolName,
)
from browser_agent.models.llm import Message, ToolChoice
from browser_agent.prompts import FINAL_REPORT_PROMPT
from browser_agent.services.agent_loop import AgentLoop, ExecutionObserver, LoopConfig
from browser_agent.services.chat import ChatPort
from browser_agent.services.evaluator import Evaluator
from browser_agent.tools.base import Tool
from browser_agent.tools.registry import ToolsRegistry
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 2


def build_retry_task(original_task: str, verdict: EvaluationResult) -> str:
    """Restate ``original_task`` with the latest feedback and a numbered issue list."""
    task = f"{original_task}\n\nPREVIOUS ATTEMPT FEEDBACK:\n{verdict.feedback}\n\nIssues to fix:\n"
    for i, issue in enumerate(verdict.issues, start=1):
        task += f"{i}. {issue}\n"
    return task


class SubAgent:
    """A task-execution loop restricted to an allow-list of tools.

    When ``force_final_report`` is set, exhausting the iteration ceiling triggers
    one extra model turn that asks for a final report while forbidding tool use.
    Otherwise the ceiling is a hard failure.
    """

    def __init__(
        self,
        name: ToolName,
        category: AgentCategory,
        description: str,
        system_prompt: str,
        chat: ChatPort,
        tools: ToolsRegistry,
        allowed_tools: Sequence[ToolName],
        config: LoopConfig | None = None,
        observer: ExecutionObserver | None = None,
        force_final_report: bool = False,
    ):
        self.name = name
        self.category = category
        self.description = description
        self.system_prompt = system_prompt
        self.chat = chat
        self.allowed_tools = list(allowed_tools)
        self.tools = tools.view(self.allowed_tools)
        self.force_final_report = force_final_report
        self.loop = AgentLoop(chat, self.tools, config=config, observer=observer, name=str(name))

    @property
    def config(self) -> LoopConfig:
        return self.loop.config

    async def execute(self, task: str) -> ExecuteResult:
        """Run one attempt at ``task``.

        Raises:
            MaxIterationsExceededError: If the ceiling is hit and no final report is forced
            ChatError: If a model call fails
        """
        logger.info(f"[{self.name}] Sub-agent executing task: {task[:100]}")
        messages = [Message.system(self.system_prompt), Message.user(task)]
        try:
            return await self.loop.run_messages(messages)
        except MaxIterationsExceededError as e:
            if not self.force_final_report:
                raise
            return await self._final_report(e)

    async def _final_report(self, error: MaxIterationsExceededError) -> ExecuteResult:
        logger.warning(f"[{self.name}] Max iterations ({error.limit}) reached, requesting final report")
        messages = error.messages
        messages.append(Message.user(FINAL_REPORT_PROMPT))

        # The transcript holds tool_use blocks, so the tools stay described but unusable
        response = await self.chat.chat(
            messages, self.tools.definitions(), temperature=self.config.temperature, tool_choice=ToolChoice.NONE
        )
        messages.append(response)

        logger.info(f"[{self.name}] Final report received: {len(response.content)} chars")
        return ExecuteResult(final_answer=response.content, iterations=error.limit + 1, messages=messages)


class EvaluatedSubAgent(SubAgent):
    """Sub-agent whose results are judged and retried with feedback.

    Attempts run from 0 to ``max_retries`` inclusive. A low-confidence answer is
    still returned once the judge declines a retry or the budget runs out.
    """

    def __init__(self, *args, evaluator: Evaluator, max_retries: int = DEFAULT_MAX_RETRIES, **kwargs):
        super().__init__(*args, **kwargs)
        self.evaluator = evaluator
        self.max_retries = max_retries

    async def execute(self, task: str) -> ExecuteResult:
        original_task = task
        result: ExecuteResult | None = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                logger.info(f"[{self.name}] Retrying with feedback, retry: {attempt}")

            result = await super().execute(task)

            criteria = EvaluationCriteria(
                task_description=original_task,
                actual_result=result.final_answer,
                category=self.category,
            )
            try:
                verdict = await self.evaluator.evaluate(criteria)
            except ChatError as e:
                logger.warning(f"[{self.name}] Evaluation failed, returning result anyway: {e}")
                return result

            if verdict.success:
                logger.info(f"[{self.name}] Task successful - confidence: {verdict.confidence}, retry: {attempt}")
                return result

            if not verdict.should_retry or attempt == self.max_retries:
                logger.warning(
                    f"[{self.name}] Result suboptimal but not retrying - confidence: {verdict.confidence}, "
                    f"issues: {verdict.issues}"
                )
                return result

            logger.info(
                f"[{self.name}] Result needs improvement, retrying - confidence: {verdict.confidence}, "
                f"issues: {verdict.issues}"
            )
            task = build_retry_task(original_task, verdict)

        return result


class AgentTaskInput(BaseModel):
    """Input for delegating a task to a sub-agent."""

    task: str = Field(description="Specific task for the agent, with every detail it needs")


class AgentTool(Tool):
    """Exposes a sub-agent to the orchestrator as a callable tool."""

    input_schema_class = AgentTaskInput

    def __init__(self, agent: SubAgent):
        self.agent = agent
        self.name = agent.name
        self.description = agent.description

    async def run(self, params: AgentTaskInput) -> str:
        result = await self.agent.execute(params.task)
        logger.info(f"[{self.name}] Delegated task finished in {result.iterations} iterations")
        return result.final_answer
