"""Single-agent task executor, the externally callable surface of the core."""

from browser_agent.models.agents import ExecuteResult
from browser_agent.services.agent_loop import AgentLoop, ExecutionObserver, LoopConfig, ToolSource
from browser_agent.services.chat import ChatPort
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)


class TaskExecutor:
    """Runs a natural-language task with a fixed system prompt and tool set."""

    def __init__(
        self,
        chat: ChatPort,
        tools: ToolSource,
        system_prompt: str,
        config: LoopConfig | None = None,
        observer: ExecutionObserver | None = None,
        name: str = "executor",
    ):
        self.system_prompt = system_prompt
        self.loop = AgentLoop(chat, tools, config=config, observer=observer, name=name)

    async def execute(self, task: str) -> ExecuteResult:
        """Execute ``task`` and return the final answer with the iterations used.

        Raises:
            MaxIterationsExceededError: If the model keeps calling tools
            ChatError: If the model cannot be reached
        """
        logger.info(f"Executing task: {task[:100]}")
        return await self.loop.run(self.system_prompt, task)
