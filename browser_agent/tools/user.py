"""Tools that hand control to the human operator."""

from typing import Protocol

from pydantic import BaseModel, Field

from browser_agent.models.agents import ToolName
from browser_agent.tools.base import Tool


class UserInteractionPort(Protocol):
    """Channel to the human operator."""

    async def ask_question(self, question: str) -> str:
        """Ask the operator a question and return the answer."""
        ...

    async def wait_for_user_action(self, message: str) -> None:
        """Show instructions and return once the operator confirms."""
        ...


class AskQuestionInput(BaseModel):
    question: str = Field(..., min_length=1, description="The question to ask the user")


class WaitActionInput(BaseModel):
    message: str = Field(
        ..., min_length=1, description="Instructions for the user explaining what action they need to perform"
    )


class AskQuestionTool(Tool):
    name = ToolName.USER_ASK_QUESTION
    description = "Always use this tool if you don't have enough context to work effectively."
    input_schema_class = AskQuestionInput

    def __init__(self, interaction: UserInteractionPort):
        self.interaction = interaction

    async def run(self, params: AskQuestionInput) -> str:
        return await self.interaction.ask_question(params.question)


class WaitUserActionTool(Tool):
    name = ToolName.USER_WAIT_ACTION
    description = (
        "Pause and wait for the user to complete a manual action in the browser, such as solving a CAPTCHA, "
        "completing 2FA or logging in. Explain clearly what the user needs to do."
    )
    input_schema_class = WaitActionInput

    def __init__(self, interaction: UserInteractionPort):
        self.interaction = interaction

    async def run(self, params: WaitActionInput) -> str:
        await self.interaction.wait_for_user_action(params.message)
        return "User confirmed action completion"


def create_user_tools(interaction: UserInteractionPort) -> list[Tool]:
    return [AskQuestionTool(interaction), WaitUserActionTool(interaction)]
