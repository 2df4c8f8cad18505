"""Interactive chat session handler."""

from __future__ import annotations

import asyncio

from rich.console import Console

from companion.cli.output import OutputFormatter
from companion.orchestrator.core import Orchestrator
from companion.orchestrator.emitter import EventEmitter


class ChatHandler:
    """
    Manages the interactive chat loop.

    Plays the client's part: keeps the visible history in memory, sends it
    with every turn and mirrors the streamed events into blocks.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        console: Console | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self.history: list[dict] = []
        self._running = True

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        cmd = command.strip().split(None, 1)[0].lower()

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/reset":
            self.history.clear()
            self.console.print("[dim]History cleared.[/dim]")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.orchestrator.registry.list())
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit     - Exit the chat\n"
                "  /reset    - Forget the conversation so far\n"
                "  /tools    - List available tools\n"
                "  /help     - Show this help\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> EventEmitter:
        """Run one turn through the orchestrator, streaming it to the console."""
        self.history.append({"role": "user", "content": user_input})
        mirror = EventEmitter()

        try:
            async for event in self.orchestrator.run(list(self.history)):
                mirror.apply(event)
                self.formatter.format_event(event)
        except Exception as e:
            self.console.print(f"\n[red]Error:[/red] {e}")
            return mirror

        self.console.print()
        self.history.append({"role": "assistant", "content": mirror.text_content()})
        return mirror

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]Companion[/bold] - diary & planning assistant\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        while self._running:
            try:
                user_input = await asyncio.get_running_loop().run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            self.console.print("[dim]assistant>[/dim] ", end="")
            await self.handle_input(user_input)
