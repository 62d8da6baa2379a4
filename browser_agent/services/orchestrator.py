"""Orchestrator: a task executor whose tools are delegated sub-agents."""

from collections.abc import Iterable

from browser_agent.prompts import ORCHESTRATOR_PROMPT, generate_orchestrator_prompt
from browser_agent.services.agent_loop import ExecutionObserver, LoopConfig
from browser_agent.services.chat import ChatPort
from browser_agent.services.executor import TaskExecutor
from browser_agent.services.subagent import AgentTool, SubAgent
from browser_agent.tools.registry import ToolsRegistry
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)

ORCHESTRATOR_MAX_ITERATIONS = 30


class Orchestrator(TaskExecutor):
    """Delegates subtasks to sub-agents wrapped as tools.

    The system prompt lists the registered agents in registration order so the
    prompt is identical across runs.
    """

    def __init__(
        self,
        chat: ChatPort,
        agents: Iterable[SubAgent],
        config: LoopConfig | None = None,
        observer: ExecutionObserver | None = None,
        prompt_template: str = ORCHESTRATOR_PROMPT,
    ):
        self.agents = ToolsRegistry(AgentTool(agent) for agent in agents)
        system_prompt = generate_orchestrator_prompt(prompt_template, self.agents.all())
        super().__init__(
            chat,
            self.agents,
            system_prompt,
            config=config or LoopConfig(max_iterations=ORCHESTRATOR_MAX_ITERATIONS),
            observer=observer,
            name="orchestrator",
        )
        logger.info(f"Orchestrator initialized with agents: {self.agents.get_tool_names()}")
