"""
Built-in "life assistant" tools.

Each tool turns its typed arguments into an instruction prompt and asks the
upstream model for a single, non-streamed Markdown document.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date as _date

from companion.llm.providers.base import Provider
from companion.llm.types import Message
from companion.tools.base import Tool
from companion.types import ToolResult


class _CompletionTool(Tool):
    """A tool whose result is one upstream completion of a built prompt."""

    def __init__(self, provider: Provider) -> None:
        self.provider = provider

    @abstractmethod
    def build_prompt(self, **kwargs) -> str: ...

    async def execute(self, **kwargs) -> ToolResult:
        prompt = self.build_prompt(**kwargs)
        text = await self.provider.chat_complete([Message(role="user", content=prompt)])
        if not text:
            return ToolResult(
                success=False,
                content="The model returned an empty response.",
                error="empty completion",
            )
        return ToolResult(success=True, content=text)


class GenerateDiaryTool(_CompletionTool):
    @property
    def name(self) -> str:
        return "generate_diary"

    @property
    def label(self) -> str:
        return "Generate diary"

    @property
    def description(self) -> str:
        return (
            "Write a structured diary entry from what the user shared. Call this "
            "when the user describes their day, an activity, or how they feel."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": "What the user shared, including events and feelings",
                },
                "mood": {
                    "type": "string",
                    "description": "The user's mood, e.g. happy, calm, sad",
                },
                "date": {
                    "type": "string",
                    "description": "Date of the entry, formatted YYYY-MM-DD",
                },
            },
            "required": ["content"],
        }

    def build_prompt(self, content: str, mood: str | None = None, date: str | None = None) -> str:
        lines = [
            "Write a polished diary entry in Markdown based on the following.",
            "",
            f"What the user shared: {content}",
        ]
        if mood:
            lines.append(f"Mood: {mood}")
        lines.append(f"Date: {date or _date.today().isoformat()}")
        lines += [
            "",
            "Requirements:",
            "1. Use a title followed by body paragraphs",
            "2. Add a few fitting emoji",
            "3. Keep the language vivid and well written",
            '4. End with a "Today\'s mood" tag',
        ]
        return "\n".join(lines)


class CreatePlanTool(_CompletionTool):
    @property
    def name(self) -> str:
        return "create_plan"

    @property
    def label(self) -> str:
        return "Create plan"

    @property
    def description(self) -> str:
        return (
            "Build a detailed action plan for the user's goal. Call this when the "
            "user asks for a plan (study, fitness, travel, ...)."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "goal": {
                    "type": "string",
                    "description": "The goal the user wants to reach",
                },
                "timeframe": {
                    "type": "string",
                    "description": "Time span of the plan, e.g. one week, one month",
                },
            },
            "required": ["goal"],
        }

    def build_prompt(self, goal: str, timeframe: str | None = None) -> str:
        lines = [
            "Create a detailed action plan in Markdown for the following goal.",
            "",
            f"Goal: {goal}",
        ]
        if timeframe:
            lines.append(f"Timeframe: {timeframe}")
        lines += [
            "",
            "Requirements:",
            "1. Split the plan into clear phases",
            "2. Give concrete steps for each phase",
            "3. Include measurable milestones",
            "4. Offer practical tips and caveats",
            "5. Organize the content with headings and lists",
        ]
        return "\n".join(lines)


def default_tools(provider: Provider) -> list[Tool]:
    return [GenerateDiaryTool(provider), CreatePlanTool(provider)]
