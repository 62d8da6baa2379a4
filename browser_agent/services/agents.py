"""Catalogue of the specialized sub-agents and their tool allow-lists."""

from dataclasses import dataclass

from browser_agent.models.agents import AgentCategory, ToolName
from browser_agent.prompts import ANALYSIS_PROMPT, EXTRACTION_PROMPT, FORM_PROMPT, NAVIGATION_PROMPT
from browser_agent.services.agent_loop import ExecutionObserver, LoopConfig
from browser_agent.services.chat import ChatPort
from browser_agent.services.evaluator import Evaluator
from browser_agent.services.subagent import DEFAULT_MAX_RETRIES, EvaluatedSubAgent, SubAgent
from browser_agent.tools.registry import ToolsRegistry


@dataclass(frozen=True)
class SubAgentSpec:
    """Static description of one sub-agent."""

    name: ToolName
    category: AgentCategory
    description: str
    system_prompt: str
    allowed_tools: tuple[ToolName, ...]
    max_iterations: int
    evaluated: bool


NAVIGATION_AGENT = SubAgentSpec(
    name=ToolName.AGENT_NAVIGATE,
    category=AgentCategory.NAVIGATION,
    description=(
        "Navigate to URLs and verify pages loaded. "
        "Does NOT analyze structure, find selectors, fill forms, or extract data."
    ),
    system_prompt=NAVIGATION_PROMPT,
    allowed_tools=(
        ToolName.BROWSER_NAVIGATE,
        ToolName.BROWSER_OBSERVE,
        ToolName.BROWSER_SCROLL,
        ToolName.BROWSER_SEARCH,
    ),
    max_iterations=10,
    evaluated=False,
)

EXTRACTION_AGENT = SubAgentSpec(
    name=ToolName.AGENT_EXTRACT,
    category=AgentCategory.EXTRACTION,
    description=(
        "Extract and read structured data from pages (lists, tables, text). "
        "Use ONLY for reading information from current page. Does NOT modify page or navigate."
    ),
    system_prompt=EXTRACTION_PROMPT,
    allowed_tools=(
        ToolName.BROWSER_QUERY_ELEMENTS,
        ToolName.BROWSER_SEARCH,
        ToolName.BROWSER_OBSERVE,
        ToolName.BROWSER_SCROLL,
    ),
    max_iterations=5,
    evaluated=True,
)

FORM_AGENT = SubAgentSpec(
    name=ToolName.AGENT_FORM,
    category=AgentCategory.FORM,
    description=(
        "Fill forms, click buttons, and modify page content. "
        "Use ONLY for interactions that change page state. Does NOT navigate to new URLs."
    ),
    system_prompt=FORM_PROMPT,
    allowed_tools=(
        ToolName.BROWSER_FILL,
        ToolName.BROWSER_CLICK,
        ToolName.BROWSER_PRESS_ENTER,
        ToolName.BROWSER_OBSERVE,
        ToolName.BROWSER_SEARCH,
        ToolName.USER_WAIT_ACTION,
        ToolName.USER_ASK_QUESTION,
    ),
    max_iterations=5,
    evaluated=True,
)

ANALYSIS_AGENT = SubAgentSpec(
    name=ToolName.AGENT_ANALYZE,
    category=AgentCategory.ANALYSIS,
    description=(
        "Analyze the current page and answer questions about its content and structure. "
        "Does NOT navigate or modify the page."
    ),
    system_prompt=ANALYSIS_PROMPT,
    allowed_tools=(
        ToolName.BROWSER_OBSERVE,
        ToolName.BROWSER_QUERY_ELEMENTS,
        ToolName.BROWSER_SEARCH,
        ToolName.BROWSER_SCROLL,
        ToolName.BROWSER_SCREENSHOT,
    ),
    max_iterations=8,
    evaluated=True,
)

SUB_AGENTS: tuple[SubAgentSpec, ...] = (NAVIGATION_AGENT, EXTRACTION_AGENT, FORM_AGENT, ANALYSIS_AGENT)


def create_sub_agent(
    spec: SubAgentSpec,
    chat: ChatPort,
    tools: ToolsRegistry,
    evaluator: Evaluator | None = None,
    observer: ExecutionObserver | None = None,
    stream: bool = False,
    force_final_report: bool = True,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> SubAgent:
    """Build a sub-agent from its catalogue entry.

    Args:
        spec: Catalogue entry
        chat: Chat port shared with the orchestrator
        tools: Registry holding the browser and user tools
        evaluator: Judge for evaluated agents; evaluation is skipped when None
        observer: Optional progress observer
        stream: Use streaming chat for loop turns
        force_final_report: Request a final report instead of failing at the ceiling
        max_retries: Retry budget for evaluated agents

    Returns:
        Configured sub-agent
    """
    config = LoopConfig(max_iterations=spec.max_iterations, stream=stream)
    kwargs = dict(
        name=spec.name,
        category=spec.category,
        description=spec.description,
        system_prompt=spec.system_prompt,
        chat=chat,
        tools=tools,
        allowed_tools=spec.allowed_tools,
        config=config,
        observer=observer,
        force_final_report=force_final_report,
    )
    if spec.evaluated and evaluator is not None:
        return EvaluatedSubAgent(**kwargs, evaluator=evaluator, max_retries=max_retries)
    return SubAgent(**kwargs)


def create_sub_agents(
    chat: ChatPort,
    tools: ToolsRegistry,
    evaluator: Evaluator | None = None,
    observer: ExecutionObserver | None = None,
    stream: bool = False,
) -> list[SubAgent]:
    """Build every catalogued sub-agent in catalogue order."""
    return [
        create_sub_agent(spec, chat, tools, evaluator=evaluator, observer=observer, stream=stream)
        for spec in SUB_AGENTS
    ]
