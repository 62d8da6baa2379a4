"""Application wiring: tools, agents and the task executor."""

from dataclasses import dataclass

from browser_agent.clients.anthropic import AnthropicClient
from browser_agent.config import AgentMode, Settings, get_settings
from browser_agent.prompts import DEFAULT_SYSTEM_PROMPT
from browser_agent.services.agent_loop import ExecutionObserver, LoopConfig
from browser_agent.services.agents import create_sub_agents
from browser_agent.services.chat import ChatPort
from browser_agent.services.evaluator import Evaluator
from browser_agent.services.executor import TaskExecutor
from browser_agent.services.orchestrator import ORCHESTRATOR_MAX_ITERATIONS, Orchestrator
from browser_agent.services.tasks import TaskService
from browser_agent.tools.browser import BrowserPort, create_browser_tools
from browser_agent.tools.registry import ToolsRegistry
from browser_agent.tools.user import UserInteractionPort, create_user_tools
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Container:
    """Wired application components."""

    settings: Settings
    chat: ChatPort
    tools: ToolsRegistry
    executor: TaskExecutor
    task_service: TaskService


def build_tools(browser: BrowserPort | None = None, interaction: UserInteractionPort | None = None) -> ToolsRegistry:
    """Register the browser and user tools available in this process."""
    registry = ToolsRegistry()
    if browser is not None:
        for tool in create_browser_tools(browser):
            registry.register(tool)
    if interaction is not None:
        for tool in create_user_tools(interaction):
            registry.register(tool)
    return registry


def build_container(
    settings: Settings | None = None,
    chat: ChatPort | None = None,
    browser: BrowserPort | None = None,
    interaction: UserInteractionPort | None = None,
    observer: ExecutionObserver | None = None,
) -> Container:
    """Build every component for the configured agent mode.

    Args:
        settings: Application settings (loaded from the environment when omitted)
        chat: Chat port; an Anthropic client is created when omitted
        browser: Browser backend; browser tools are only registered when given
        interaction: Operator channel; user tools are only registered when given
        observer: Optional progress observer shared by every loop

    Returns:
        Wired container
    """
    settings = settings or get_settings()
    if chat is None:
        chat = AnthropicClient(api_key=settings.anthropic_api_key, config=settings.anthropic)

    tools = build_tools(browser, interaction)
    if browser is None:
        logger.warning("No browser backend configured, browser tools are unavailable")

    if settings.mode == AgentMode.ORCHESTRATOR:
        agents = create_sub_agents(chat, tools, evaluator=Evaluator(chat), observer=observer, stream=settings.stream)
        config = LoopConfig(max_iterations=ORCHESTRATOR_MAX_ITERATIONS, stream=settings.stream)
        executor: TaskExecutor = Orchestrator(chat, agents, config=config, observer=observer)
    else:
        executor = TaskExecutor(
            chat,
            tools,
            DEFAULT_SYSTEM_PROMPT,
            config=LoopConfig(stream=settings.stream),
            observer=observer,
        )

    logger.info(f"Container built - mode: {settings.mode}, tools: {tools.get_tool_names()}")
    return Container(
        settings=settings,
        chat=chat,
        tools=tools,
        executor=executor,
        task_service=TaskService(executor, log_dir=settings.log_dir),
    )


_container: Container | None = None


def get_container() -> Container:
    """Get or create the process-wide container."""
    global _container
    if _container is None:
        _container = build_container()
    return _container
