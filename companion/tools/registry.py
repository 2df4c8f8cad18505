from __future__ import annotations

import inspect
import logging
from importlib.metadata import entry_points

from companion.tools.base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise KeyError(name)
        return t

    def label_for(self, name: str) -> str:
        t = self.get(name)
        return t.label if t else name

    def list(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def names(self) -> list[str]:
        return [t.name for t in self.list()]

    def __len__(self) -> int:
        return len(self._tools)

    def to_openai_schema(self) -> list[dict]:
        return [t.to_openai_schema() for t in self.list()]

    def load_plugins(
        self,
        *,
        enabled: bool,
        group: str = "companion.tools",
        allow_distributions: set[str] | None = None,
        allow_tools: set[str] | None = None,
        provider: object | None = None,
    ) -> int:
        """Load tools from entry points, optionally injecting the LLM provider.

        If a tool class's __init__ accepts a ``provider`` parameter and one
        is given here, it is passed in.  Tools that don't declare the
        parameter are constructed with no arguments.
        """
        if not enabled:
            return 0
        loaded = 0
        for ep in entry_points(group=group):
            dist = getattr(ep, "dist", None)
            dist_name = getattr(dist, "name", None)
            if allow_distributions and dist_name and dist_name not in allow_distributions:
                logger.debug("Skipping plugin %s from %s", ep.name, dist_name)
                continue
            if allow_tools and ep.name not in allow_tools:
                logger.debug("Skipping plugin %s (not allowed)", ep.name)
                continue
            tool_cls = ep.load()
            kwargs: dict = {}
            if provider is not None:
                sig = inspect.signature(tool_cls)
                if "provider" in sig.parameters:
                    kwargs["provider"] = provider
            self.register(tool_cls(**kwargs))
            logger.info("Loaded plugin tool %s from %s", ep.name, dist_name or "?")
            loaded += 1
        return loaded
