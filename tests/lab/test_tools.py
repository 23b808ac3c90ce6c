"""Unit tests for tool-call formatting."""

from __future__ import annotations

from warroom.lab.execution.tools import format_tool_entry, shorten_path, truncate


def test_truncate() -> None:
    assert truncate("abc", 5) == "abc"
    assert truncate("abcdefgh", 5) == "abcde..."


def test_shorten_path_keeps_last_three_segments() -> None:
    assert shorten_path("/home/user/src/app/main.py") == ".../src/app/main.py"
    assert shorten_path("app/main.py") == "app/main.py"
    assert shorten_path("") == ""


def test_known_tools() -> None:
    assert format_tool_entry("WebSearch", {"query": "anyio cancel scopes"}) == 'Searching — "anyio cancel scopes"'
    assert format_tool_entry("WebFetch", {"url": "https://example.com"}) == "Fetching — https://example.com"
    assert format_tool_entry("Read", {"file_path": "/a/b/c/d.py"}) == "Reading — `.../b/c/d.py`"
    assert format_tool_entry("Edit", {"file_path": "x.py"}) == "Editing — `x.py`"
    assert format_tool_entry("Task", {"description": "write tests"}) == "Sub-task — write tests"


def test_bash_command_is_truncated_to_budget() -> None:
    entry = format_tool_entry("Bash", {"command": "x" * 50}, command_budget=10)
    assert entry == "Running — `xxxxxxxxxx...`"


def test_unknown_tool_falls_back_to_name() -> None:
    assert format_tool_entry("mcp__db__query", {"sql": "select 1"}) == "mcp__db__query"


def test_missing_or_malformed_input() -> None:
    assert format_tool_entry("Read", None) == "Reading — ``"
    assert format_tool_entry("Bash", {}) == "Running — ``"
