from .registry import (
    get_openai_tools,
    build_tool_registry,
    format_tool_result,
    execute_tool_call,
    ToolEntry,
)
from .web_search import (
    WEB_SEARCH_SCHEMA,
    SearchResult,
    brave_web_search,
    format_search_results,
    format_sources,
)

__all__ = [
    "get_openai_tools",
    "build_tool_registry",
    "format_tool_result",
    "execute_tool_call",
    "ToolEntry",
    "WEB_SEARCH_SCHEMA",
    "SearchResult",
    "brave_web_search",
    "format_search_results",
    "format_sources",
]
