#!/usr/bin/env python3
"""Interactive CLI for submitting tasks to the browser agent service."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


class TaskCLI:
    """Interactive task prompt for the browser agent service."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize task CLI."""
        self.base_url = base_url
        self.last_task_id: str | None = None
        self.console = Console()
        # Tasks run to completion before the response is sent
        self.client = httpx.Client(timeout=600.0)

    def start(self) -> None:
        """Start the interactive session."""
        self.console.print(
            Panel.fit(
                "[bold blue]🌐 Browser Agent - Task Runner[/bold blue]\n"
                "Describe a task and the agent will carry it out.\n"
                "Commands: /help, /status, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to browser agent service[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]Task[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/status":
                    self._show_status()
                    continue
                elif user_input.strip() == "":
                    continue

                response = self._submit_task(user_input)
                if response:
                    self._display_response(response)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _submit_task(self, task: str) -> dict | None:
        """Submit a task and wait for its final answer."""
        try:
            with self.console.status("[dim]🤖 Working on it...[/dim]"):
                response = self.client.post(f"{self.base_url}/tasks", json={"task": task})

            if response.status_code == 200:
                data = response.json()
                self.last_task_id = data.get("task_id")
                return data

            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return None

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

    def _display_response(self, response: dict) -> None:
        """Display the final answer."""
        self.console.print(
            Panel(
                Markdown(response.get("final_answer") or "No answer"),
                title=f"[bold green]✅ Done in {response.get('iterations', 0)} iterations[/bold green]",
                subtitle=f"[dim]{response.get('task_id', '')}[/dim]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_status(self) -> None:
        """Show the record of the last submitted task."""
        if not self.last_task_id:
            self.console.print("[yellow]No task submitted yet[/yellow]")
            return

        try:
            response = self.client.get(f"{self.base_url}/tasks/{self.last_task_id}")
        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return

        if response.status_code != 200:
            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return

        run = response.json()
        self.console.print(
            Panel(
                f"[bold]Status:[/bold] {run['status']}\n"
                f"[bold]Iterations:[/bold] {run['iterations']}\n"
                f"[bold]Error:[/bold] {run.get('error') or '-'}",
                title=f"[cyan]📋 {run['task_id']}[/cyan]",
                border_style="cyan",
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /status - Show the last task's run record
• /quit or /exit - Exit

[bold]Example Tasks:[/bold]
1. "Open https://news.ycombinator.com and list the top 5 stories"
2. "Search Wikipedia for 'asyncio' and summarize the first paragraph"

[bold]Tips:[/bold]
• Give URLs and exact values when you have them
• To answer agent questions yourself, run tasks locally with `browser-agent`
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the task CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    cli = TaskCLI(base_url)
    cli.start()


if __name__ == "__main__":
    main()
