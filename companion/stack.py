"""Wire provider, tools and orchestrator together from a config."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from companion.config import CompanionConfig
from companion.llm.providers.base import Provider
from companion.llm.providers.openai_compat import OpenAICompatProvider
from companion.orchestrator.core import Orchestrator
from companion.tools.life import default_tools
from companion.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class Stack:
    config: CompanionConfig
    provider: Provider
    registry: ToolRegistry
    orchestrator: Orchestrator

    async def aclose(self) -> None:
        await self.provider.aclose()


def build_provider(cfg: CompanionConfig) -> Provider:
    api_key = cfg.llm.api_key()
    if not api_key:
        logger.warning(
            "No API key in $%s; upstream calls will be unauthenticated",
            cfg.llm.api_key_env,
        )
    return OpenAICompatProvider(
        url=cfg.llm.api_base,
        model=cfg.llm.model,
        api_key=api_key,
        timeout=cfg.llm.timeout_seconds,
        max_retries=cfg.llm.max_retries,
    )


def build_registry(cfg: CompanionConfig, provider: Provider) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in default_tools(provider):
        registry.register(tool)
    loaded = registry.load_plugins(
        enabled=cfg.plugins.enabled,
        allow_distributions=set(cfg.plugins.allow_distributions) or None,
        allow_tools=set(cfg.plugins.allow_tools) or None,
        provider=provider,
    )
    if loaded:
        logger.info("Loaded %d plugin tool(s)", loaded)
    return registry


def build_stack(cfg: CompanionConfig, provider: Provider | None = None) -> Stack:
    """Build everything one process needs.  All of it is read-only afterwards."""
    provider = provider or build_provider(cfg)
    registry = build_registry(cfg, provider)
    orchestrator = Orchestrator(
        provider=provider,
        registry=registry,
        system_prompt=cfg.agent.system_prompt,
        max_rounds=cfg.agent.max_rounds,
        tool_timeout=cfg.agent.tool_timeout,
        stall_timeout=cfg.agent.stall_timeout,
    )
    return Stack(cfg, provider, registry, orchestrator)
