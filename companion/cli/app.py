"""
Main CLI application for companion.

Usage:
    companion serve [--host HOST] [--port PORT] [--profile NAME]
    companion chat [--profile NAME] [--model NAME]
    companion tools list|info
    companion config show|validate
    companion version
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from companion import __version__
from companion.config import CompanionConfig, find_config_path, load_config

app = typer.Typer(name="companion", help="Companion - streaming life-assistant agent")
tools_app = typer.Typer(help="Tool inspection")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load(profile: str | None = None, **overrides) -> CompanionConfig:
    cfg = load_config(find_config_path(), profile=profile, cli_overrides=overrides)
    _setup_logging(cfg.logging.level)
    return cfg


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _offline_registry(cfg: CompanionConfig):
    """Registry for inspection commands; no upstream call is ever made."""
    from companion.stack import build_provider, build_registry

    return build_registry(cfg, build_provider(cfg))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Bind port"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Run the HTTP server exposing POST /agent."""
    import uvicorn

    from companion.server import create_app

    cfg = _load(profile, **{"server.host": host, "server.port": port})
    uvicorn.run(
        create_app(cfg),
        host=cfg.server.host,
        port=cfg.server.port,
        log_level=cfg.logging.level.lower(),
    )


@app.command()
def chat(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    model: Optional[str] = typer.Option(None, help="Override the upstream model"),
):
    """Start an interactive chat session in the terminal."""
    from companion.cli.chat import ChatHandler
    from companion.stack import build_stack

    cfg = _load(profile, **{"llm.model": model})

    async def _run():
        stack = build_stack(cfg)
        try:
            await ChatHandler(stack.orchestrator, console=console).run_loop()
        finally:
            await stack.aclose()

    asyncio.run(_run())


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from companion.cli.output import OutputFormatter

    registry = _offline_registry(_load())
    OutputFormatter(console).format_tool_list(registry.list())


@tools_app.command("info")
def tools_info(tool_name: str = typer.Argument(..., help="Tool name")):
    """Show tool details and schema."""
    from companion.cli.output import OutputFormatter

    registry = _offline_registry(_load())
    tool = registry.get(tool_name)
    if not tool:
        console.print(f"[red]Tool not found:[/red] {tool_name}")
        raise typer.Exit(1)

    OutputFormatter(console).format_tool_info(tool)


@config_app.command("show")
def config_show():
    """Show effective config."""
    from companion.cli.output import OutputFormatter

    OutputFormatter(console).format_config(_load().to_dict())


@config_app.command("validate")
def config_validate():
    """Validate config and show any type issues."""
    config_path = find_config_path()
    try:
        cfg = load_config(config_path)
        if cfg.agent.max_rounds < 1:
            raise ValueError("agent.max_rounds must be at least 1")
        console.print("[green]Config is valid.[/green]")
        if config_path:
            console.print(f"  Loaded from: {config_path}")
        else:
            console.print("  [dim]No config file found, using defaults.[/dim]")
        console.print(f"  Upstream: {cfg.llm.api_base} ({cfg.llm.model})")
        console.print(f"  API key env: {cfg.llm.api_key_env} ({'set' if cfg.llm.api_key() else 'missing'})")
        console.print(f"  Max rounds: {cfg.agent.max_rounds}")
        console.print(f"  Plugins enabled: {cfg.plugins.enabled}")
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version."""
    console.print(f"companion v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
