"""
Brave Search client used by !factcheck and exposed to the model as `web_search`.

When using web_search results:
- Extract relevant facts directly from the search results.
- Do NOT describe the website itself.
- Only include information directly related to the user's question.
"""

from __future__ import annotations

import logging
import os
import threading as _threading
import time
from dataclasses import asdict, dataclass

import requests
from dotenv import load_dotenv

from ..errors import LLMToolError

load_dotenv()


BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
SEARCH_TIMEOUT_SECONDS = 30


# ── Brave API ─────────────────────────────────────────────────────────────────

_BRAVE_LAST_CALL: float = 0.0
_BRAVE_MIN_INTERVAL: float = 1.2  # free tier: 1 req/s
_BRAVE_LOCK = _threading.Lock()  # serialise concurrent calls


@dataclass
class SearchResult:
    title: str
    url: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def parse_brave_results(payload: dict) -> list[SearchResult]:
    results = (payload.get("web") or {}).get("results") or []
    return [
        SearchResult(
            title=r.get("title", ""),
            url=r.get("url", ""),
            description=r.get("description", ""),
        )
        for r in results
    ]


def brave_web_search(query: str, api_key: str | None = None, count: int = 7) -> list[SearchResult]:
    """Call Brave Search API. Blocking, run it via asyncio.to_thread from async code."""
    global _BRAVE_LAST_CALL
    api_key = api_key or os.getenv("BRAVE_API_KEY") or os.getenv("brave_api_key")
    if not api_key:
        raise LLMToolError("brave search key not set")

    with _BRAVE_LOCK:  # one request at a time
        elapsed = time.monotonic() - _BRAVE_LAST_CALL
        if elapsed < _BRAVE_MIN_INTERVAL:
            time.sleep(_BRAVE_MIN_INTERVAL - elapsed)
        try:
            response = requests.get(
                BRAVE_SEARCH_URL,
                params={
                    "q": query,
                    "count": count,
                    "safesearch": "strict",
                    "text_decorations": "false",
                    "result_filter": "web",
                    "extra_snippets": "true",
                },
                headers={
                    "Accept": "application/json",
                    "Accept-Encoding": "gzip",
                    "X-Subscription-Token": api_key,
                },
                timeout=SEARCH_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise LLMToolError(f"search request failed: {e}") from e
        except ValueError as e:
            raise LLMToolError(f"failed to decode response: {e}") from e
        finally:
            _BRAVE_LAST_CALL = time.monotonic()

    results = parse_brave_results(payload)
    logging.info("Brave search %r returned %d result(s)", query, len(results))
    return results


# ── Formatters ────────────────────────────────────────────────────────────────

def format_search_results(results: list[SearchResult], user_search: str = "") -> str:
    """Format search results into clean text for the model."""
    output: list[str] = [f'Search results for "{user_search}":'] if user_search else []
    for r in results:
        output.append(f"Title: {r.title}, URL: {r.url}, Content: {r.description}")
    return "\n".join(output)


def format_sources(results: list[SearchResult], limit: int = 3) -> str:
    return "\n".join(f"• [{r.title}]({r.url})" for r in results[:limit])


# ── Schemas ───────────────────────────────────────────────────────────────────

WEB_SEARCH_SCHEMA = {
    "type": "function",
    "function": {
        "name": "web_search",
        "description": "Search the internet for information",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query"}
            },
            "required": ["query"],
        },
    },
}
