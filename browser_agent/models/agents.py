"""Agent identities, evaluation verdicts and execution results."""

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from browser_agent.models.llm import Message


class ToolName(StrEnum):
    """Closed set of tool and sub-agent identities."""

    BROWSER_NAVIGATE = "browser_navigate"
    BROWSER_CLICK = "browser_click"
    BROWSER_FILL = "browser_fill"
    BROWSER_SCROLL = "browser_scroll"
    BROWSER_SCREENSHOT = "browser_screenshot"
    BROWSER_PRESS_ENTER = "browser_press_enter"
    BROWSER_OBSERVE = "browser_observe"
    BROWSER_QUERY_ELEMENTS = "browser_query_elements"
    BROWSER_SEARCH = "browser_search"

    AGENT_NAVIGATE = "agent_navigate"
    AGENT_EXTRACT = "agent_extract"
    AGENT_FORM = "agent_form"
    AGENT_ANALYZE = "agent_analyze"

    USER_ASK_QUESTION = "user_ask_question"
    USER_WAIT_ACTION = "user_wait_action"


class AgentCategory(StrEnum):
    """Capability domain of an agent."""

    ORCHESTRATOR = "orchestrator"
    NAVIGATION = "navigation"
    EXTRACTION = "extraction"
    FORM = "form"
    ANALYSIS = "analysis"


@dataclass
class EvaluationCriteria:
    """Input to the evaluator."""

    task_description: str
    actual_result: str
    category: AgentCategory


class EvaluationResult(BaseModel):
    """Structured verdict returned by the evaluator.

    Missing fields take zero values, so a partial verdict keeps whatever failure
    and retry request it does carry.
    """

    success: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    issues: list[str] = Field(default_factory=list)
    feedback: str = ""
    should_retry: bool = False

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        if v is None:
            return 0.0
        if isinstance(v, int | float) and not isinstance(v, bool):
            return min(max(float(v), 0.0), 1.0)
        return v

    @field_validator("issues", mode="before")
    @classmethod
    def null_issues_to_empty(cls, v):
        """Judges sometimes send ``null`` for an empty issue list."""
        return [] if v is None else v

    @field_validator("feedback", mode="before")
    @classmethod
    def null_feedback_to_empty(cls, v):
        return "" if v is None else v

    @classmethod
    def fail_open(cls) -> "EvaluationResult":
        """Permissive verdict used when the judge reply cannot be parsed."""
        return cls(success=True, confidence=0.5, issues=[], feedback="", should_retry=False)


@dataclass
class ExecuteResult:
    """Result from executing a task."""

    final_answer: str
    iterations: int
    messages: list[Message] = field(default_factory=list)
