"""System prompt builder."""

from __future__ import annotations

from companion.tools.base import Tool


def build_system_prompt(
    tools: list[Tool] | None = None,
    extra_sections: list[str] | None = None,
) -> str:
    """
    Build the fixed system instruction sent at the head of every round.

    Lists the registered tools so the model knows when each applies; plain
    conversation needs no tool at all.
    """
    sections: list[str] = [
        "You are a friendly life assistant who helps the user keep a diary "
        "and make plans."
    ]

    if tools:
        tool_lines = [f"- **{t.name}** ({t.label}): {t.description}" for t in tools]
        sections.append("## Tools\n\n" + "\n".join(tool_lines))

    sections.append(GUIDELINES_SECTION)

    if extra_sections:
        sections.extend(extra_sections)

    return "\n\n".join(sections)


GUIDELINES_SECTION = """## Guidelines

- When the user shares daily experiences, feelings or moods, call `generate_diary`.
- When the user asks for any kind of plan (study, fitness, travel, ...), call `create_plan`.
- For ordinary conversation, answer directly without calling a tool.
- After a tool returns, present its result to the user and add a short comment.
- Reply in the language the user writes in."""
