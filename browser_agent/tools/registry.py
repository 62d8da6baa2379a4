"""Tools registry for managing agent tools."""

from collections.abc import Iterable
from enum import StrEnum

from browser_agent.errors import ToolRegistrationError
from browser_agent.models.llm import ToolDefinition
from browser_agent.tools.base import Tool
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Insertion-ordered registry of tools keyed by identity."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool, *, replace: bool = False) -> None:
        """Register a new tool in the registry.

        Args:
            tool: Tool to register; its name must be a ``StrEnum`` member
            replace: Overwrite an existing tool with the same name

        Raises:
            ToolRegistrationError: If the name is not an enumerated identity, or
                it is already registered and ``replace`` is false
        """
        if not isinstance(tool.name, StrEnum):
            raise ToolRegistrationError(f"Tool name must be an enumerated identity, got {tool.name!r}")

        key = str(tool.name)
        if key in self._tools and not replace:
            raise ToolRegistrationError(f"Tool '{key}' is already registered")

        if key in self._tools:
            logger.info(f"Replacing registered tool: {key}")
        self._tools[key] = tool

    def get(self, name: str) -> Tool | None:
        """Resolve a tool by the name the model used."""
        return self._tools.get(str(name))

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return str(name) in self._tools

    def all(self) -> list[Tool]:
        return list(self._tools.values())

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def definitions(self) -> list[ToolDefinition]:
        """Snapshot of tool definitions in registration order."""
        return [tool.definition() for tool in self._tools.values()]

    def view(self, allowed: Iterable[StrEnum]) -> "ToolsView":
        """Read-only projection restricted to ``allowed`` names."""
        return ToolsView(self, allowed)

    def __len__(self) -> int:
        return len(self._tools)


class ToolsView:
    """Read-only filtered view over a :class:`ToolsRegistry`.

    Order follows the underlying registry, not the allow-list. Tools registered
    after the view was created are visible if their name is allowed.
    """

    def __init__(self, registry: ToolsRegistry, allowed: Iterable[StrEnum]):
        self._registry = registry
        self._allowed = frozenset(str(name) for name in allowed)

    def get(self, name: str) -> Tool | None:
        if str(name) not in self._allowed:
            return None
        return self._registry.get(name)

    def all(self) -> list[Tool]:
        return [tool for tool in self._registry.all() if str(tool.name) in self._allowed]

    def get_tool_names(self) -> list[str]:
        return [str(tool.name) for tool in self.all()]

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition() for tool in self.all()]
