"""
chad/llm/tools/registry.py

Single source of truth for the tools the model may call.
Each ToolEntry bundles: the callable, the OpenAI-format schema, and an optional formatter.

Adding a new tool only requires:
  1. Create chad/llm/tools/my_tool.py  (fn + SCHEMA)
  2. Add a ToolEntry in build_tool_registry()
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List

from .web_search import WEB_SEARCH_SCHEMA, brave_web_search


# ── ToolEntry ─────────────────────────────────────────────────────────────────

@dataclass
class ToolEntry:
    schema: dict                       # OpenAI-format schema sent to the model
    fn: Callable | None = None         # called locally when model invokes this tool
    formatter: Callable | None = None  # optional: formatter(result, args) -> str


# ── Formatters ────────────────────────────────────────────────────────────────

def _fmt_web_search(result: Any, args: dict) -> str:
    return json.dumps([r.to_dict() for r in result], ensure_ascii=False)


# ── Registry builders ─────────────────────────────────────────────────────────

def build_tool_registry(search_api_key: str | None = None) -> dict[str, ToolEntry]:
    """
    Return a fully-wired tool registry.

    web_search is only callable when a Brave key is available; without one the
    schema is still listed so the model gets a clear "not available" answer.
    """
    registry: dict[str, ToolEntry] = {}
    if search_api_key:
        registry["web_search"] = ToolEntry(
            schema=WEB_SEARCH_SCHEMA,
            fn=lambda query: brave_web_search(query, api_key=search_api_key),
            formatter=_fmt_web_search,
        )
    else:
        logging.warning("ToolRegistry: no search key, web_search unavailable")
        registry["web_search"] = ToolEntry(schema=WEB_SEARCH_SCHEMA, fn=None)
    return registry


def get_openai_tools(registry: dict[str, ToolEntry], tool_names: List[str] | None) -> List[dict[str, Any]]:
    """
    Return OpenAI-format schema dicts for the given tool names.
    Used for chat.completions.create(tools=...).
    """
    if not tool_names:
        return []
    return [registry[n].schema for n in tool_names if n in registry]


# ── Result formatter ──────────────────────────────────────────────────────────

def format_tool_result(entry: ToolEntry, result: Any, args: dict) -> str:
    """Format a tool result via the entry's formatter, or fall back to str()."""
    if entry.formatter:
        try:
            return entry.formatter(result, args)
        except Exception as e:
            logging.warning("Tool formatter failed: %s", e)
    return str(result)


# ── Tool executor ─────────────────────────────────────────────────────────────

def execute_tool_call(
    name: str,
    args: dict,
    registry: dict[str, ToolEntry],
    max_chars: int = 8000,
) -> str:
    """
    Execute a tool call by name and return the formatted result string.
    Blocking; the OpenRouter service runs it in a worker thread.
    """
    entry = registry.get(name)
    if not entry or not entry.fn:
        logging.warning("execute_tool_call: unknown or unavailable tool '%s'", name)
        return f"Tool '{name}' is not available."
    logging.info("execute_tool_call: '%s' args=%s", name, args)
    try:
        result = entry.fn(**args)
    except Exception as e:
        logging.error("execute_tool_call: tool '%s' failed: %s", name, e)
        return f"Tool error: {e}"
    return format_tool_result(entry, result, args)[:max_chars]
