"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from companion.orchestrator.emitter import (
    BLOCK_TEXT,
    BLOCK_THINKING,
    BLOCK_TOOL_RESULT,
    BLOCK_TOOL_START,
    EVENT_ERROR,
)
from companion.tools.base import Tool


class OutputFormatter:
    """Rich-based output formatting for the companion CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_tool_list(self, tools: list[Tool]) -> None:
        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Label", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            table.add_row(t.name, t.label, t.description)

        self.console.print(table)

    def format_tool_info(self, tool: Tool) -> None:
        self.console.print(Panel(
            f"[bold]{tool.name}[/bold]\n\n"
            f"[dim]Label:[/dim] {tool.label}\n\n"
            f"{tool.description}",
            title=f"Tool: {tool.name}",
        ))
        schema_json = json.dumps(tool.to_openai_schema(), indent=2, ensure_ascii=False)
        self.console.print(Syntax(schema_json, "json", theme="monokai"))

    def format_config(self, config: dict) -> None:
        config_json = json.dumps(config, indent=2, default=str)
        self.console.print(Syntax(config_json, "json", theme="monokai"))

    def format_event(self, event: dict[str, Any]) -> None:
        """Print one outward event as it streams in."""
        etype = event.get("type")
        if etype == BLOCK_THINKING:
            self.console.print(event.get("content", ""), end="", style="dim italic", markup=False)
        elif etype == BLOCK_TEXT:
            self.console.print(event.get("content", ""), end="", markup=False)
        elif etype == BLOCK_TOOL_START:
            self.console.print(f"\n[yellow]>> {event.get('label', '')}[/yellow] [dim]{event.get('args', '')}[/dim]")
        elif etype == BLOCK_TOOL_RESULT:
            self.console.print(Panel(
                Markdown(event.get("result", "")),
                title=event.get("label", ""),
                border_style="cyan",
            ))
        elif etype == EVENT_ERROR:
            self.console.print(f"\n[red]Error ({event.get('code')}):[/red] {event.get('message', '')}")

