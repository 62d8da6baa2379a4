"""Console runner: executes one task in-process with terminal prompts and live progress."""

import asyncio
import sys

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from browser_agent.config import Settings, get_settings
from browser_agent.container import build_container
from browser_agent.errors import AgentError
from browser_agent.interaction.console import ConsoleInteraction, ConsoleObserver
from browser_agent.models.task import TaskRun
from browser_agent.services.chat import ChatPort
from browser_agent.tools.browser import BrowserPort
from browser_agent.utils.logging import setup_logging


async def run_console_task(
    task: str,
    console: Console | None = None,
    settings: Settings | None = None,
    chat: ChatPort | None = None,
    browser: BrowserPort | None = None,
) -> TaskRun:
    """Run ``task`` with the operator answering questions on the terminal.

    Args:
        task: Natural-language task
        console: Console used for prompts and progress output
        settings: Application settings (loaded from the environment when omitted)
        chat: Chat port; an Anthropic client is created when omitted
        browser: Browser backend, if one is available

    Returns:
        Finished task run
    """
    console = console or Console()
    container = build_container(
        settings,
        chat=chat,
        browser=browser,
        interaction=ConsoleInteraction(console),
        observer=ConsoleObserver(console),
    )
    return await container.task_service.run(task)


def main() -> None:
    """Entry point: ``browser-agent [task...]``, prompting for the task when none is given."""
    settings = get_settings()
    setup_logging(settings.log)
    console = Console()

    task = " ".join(sys.argv[1:]).strip()
    if not task:
        task = Prompt.ask("[bold cyan]Task[/bold cyan]", console=console).strip()
    if not task:
        console.print("[red]❌ No task given[/red]")
        sys.exit(2)

    try:
        run = asyncio.run(run_console_task(task, console=console, settings=settings))
    except AgentError as e:
        console.print(f"[red]❌ Task failed: {e}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Cancelled[/yellow]")
        sys.exit(130)

    console.print(
        Panel(
            Markdown(run.final_answer or "No answer"),
            title=f"[bold green]✅ Done in {run.iterations} iterations[/bold green]",
            subtitle=f"[dim]{run.task_id}[/dim]",
            border_style="green",
            padding=(1, 2),
        )
    )


if __name__ == "__main__":
    main()
