"""One-line summaries of tool invocations for the progress log."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

DEFAULT_COMMAND_BUDGET = 120


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def shorten_path(path: str) -> str:
    """Keep the last three segments of long paths: ``.../src/app/main.py``."""
    if not path:
        return ""
    parts = path.split("/")
    return ".../" + "/".join(parts[-3:]) if len(parts) > 3 else path


def _arg(inp: Mapping[str, Any], key: str) -> str:
    value = inp.get(key)
    return "" if value is None else str(value)


_FORMATTERS: dict[str, Callable[[Mapping[str, Any], int], str]] = {
    "WebSearch": lambda inp, _: f'Searching — "{_arg(inp, "query")}"',
    "WebFetch": lambda inp, _: f"Fetching — {_arg(inp, 'url')}",
    "Read": lambda inp, _: f"Reading — `{shorten_path(_arg(inp, 'file_path'))}`",
    "Write": lambda inp, _: f"Writing — `{shorten_path(_arg(inp, 'file_path'))}`",
    "Edit": lambda inp, _: f"Editing — `{shorten_path(_arg(inp, 'file_path'))}`",
    "Bash": lambda inp, budget: f"Running — `{truncate(_arg(inp, 'command'), budget)}`",
    "Grep": lambda inp, _: f"Searching code — `{_arg(inp, 'pattern')}`",
    "Glob": lambda inp, _: f"Finding files — `{_arg(inp, 'pattern')}`",
    "Task": lambda inp, _: f"Sub-task — {_arg(inp, 'description')}",
}


def format_tool_entry(
    name: str,
    tool_input: Mapping[str, Any] | None,
    *,
    command_budget: int = DEFAULT_COMMAND_BUDGET,
) -> str:
    """Render a tool call as a short human-readable line.

    Unknown tools fall back to the bare tool name.
    """
    formatter = _FORMATTERS.get(name)
    if formatter is None:
        return name
    return formatter(tool_input if isinstance(tool_input, Mapping) else {}, command_budget)
