"""Base types and definitions for tools."""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel

from browser_agent.models.llm import ToolDefinition


class Tool(ABC):
    """A capability the model can invoke by name.

    Subclasses declare ``name``, ``description`` and ``input_schema_class`` and
    implement :meth:`run`. Argument payloads arrive as the raw JSON string the
    model produced and are validated against ``input_schema_class`` before
    :meth:`run` sees them.
    """

    name: StrEnum
    description: str
    input_schema_class: ClassVar[type[BaseModel]]

    def parameters(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, arguments: str) -> BaseModel:
        """Parse and validate tool input."""
        # Models often send an empty payload for tools without parameters
        return self.input_schema_class.model_validate_json(arguments.strip() or "{}")

    def definition(self) -> ToolDefinition:
        return ToolDefinition(name=str(self.name), description=self.description, parameters=self.parameters())

    async def execute(self, arguments: str) -> str:
        """Validate ``arguments`` and run the tool.

        Raises:
            pydantic.ValidationError: If the payload does not match the schema
            ToolExecutionError: If the underlying action fails
        """
        return await self.run(self.parse_input(arguments))

    @abstractmethod
    async def run(self, params: Any) -> str:
        """Perform the action and return the observation text."""
