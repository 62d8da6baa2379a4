"""Rich console front end: operator prompts and live progress output."""

import asyncio

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt

from browser_agent.models.llm import StreamDelta

MAX_RESULT_PREVIEW = 500


class ConsoleInteraction:
    """Asks the operator through the terminal.

    Prompts run in a worker thread so the event loop keeps serving other tasks.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def ask_question(self, question: str) -> str:
        self.console.print(Panel(question, title="[bold yellow]❓ Agent question[/bold yellow]", border_style="yellow"))
        return await asyncio.to_thread(Prompt.ask, "[bold cyan]Your answer[/bold cyan]", console=self.console)

    async def wait_for_user_action(self, message: str) -> None:
        self.console.print(Panel(message, title="[bold yellow]✋ Action required[/bold yellow]", border_style="yellow"))
        await asyncio.to_thread(Prompt.ask, "[dim]Press Enter when done[/dim]", default="", console=self.console)


class ConsoleObserver:
    """Renders loop progress to the terminal."""

    def __init__(self, console: Console | None = None, show_fragments: bool = True):
        self.console = console or Console()
        self.show_fragments = show_fragments
        self._streaming = False

    def show_iteration(self, iteration: int, max_iterations: int) -> None:
        self._end_stream()
        self.console.print(f"[dim]── iteration {iteration}/{max_iterations} ──[/dim]")

    def show_thinking(self, content: str) -> None:
        # Already printed fragment by fragment
        if self._streaming:
            self._end_stream()
            return
        self.console.print(f"[italic]💭 {escape(content)}[/italic]")

    def show_fragment(self, delta: StreamDelta) -> None:
        if not self.show_fragments or not delta.text:
            return
        self._streaming = True
        self.console.print(delta.text, end="", markup=False, highlight=False)

    def show_tool_start(self, tool_name: str, arguments: str) -> None:
        self._end_stream()
        self.console.print(f"[bold blue]🔧 {tool_name}[/bold blue] [dim]{escape(arguments)}[/dim]")

    def show_tool_result(self, tool_name: str, result: str, is_error: bool) -> None:
        preview = result if len(result) <= MAX_RESULT_PREVIEW else result[:MAX_RESULT_PREVIEW] + "…"
        style = "red" if is_error else "green"
        icon = "❌" if is_error else "✅"
        self.console.print(f"[{style}]{icon} {tool_name}[/{style}]")
        self.console.print(preview, markup=False, highlight=False)

    def _end_stream(self) -> None:
        if self._streaming:
            self.console.print()
            self._streaming = False
