"""Tools available to agents."""

from browser_agent.tools.base import Tool
from browser_agent.tools.registry import ToolsRegistry, ToolsView

__all__ = ["Tool", "ToolsRegistry", "ToolsView"]
