"""
chad/llm/openrouter.py

Chat completions against OpenRouter through the OpenAI-compatible client.

Tools are executed bot-side: when the model answers with tool calls, each call
runs through the tool registry (in a worker thread, since the search client is
blocking) and the results are fed back for another round.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List

import httpx
import openai
from openai import AsyncOpenAI

from .errors import LLMConnectionError, LLMError, wrap_openai_error
from .tools.registry import build_tool_registry, execute_tool_call, get_openai_tools

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
REQUEST_TIMEOUT_SECONDS = 30
MAX_TOOL_ROUNDS = 3
APP_TITLE = "Chad Discord Bot"


class OpenRouterService:
    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int = 1024,
        base_url: str = OPENROUTER_BASE_URL,
        search_api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._http_client: httpx.AsyncClient | None = None
        if client is None:
            self._http_client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
            client = AsyncOpenAI(
                base_url=base_url,
                api_key=api_key,
                http_client=self._http_client,
                default_headers={"X-Title": APP_TITLE},
            )
        self.client = client
        self._registry = build_tool_registry(search_api_key)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "OpenRouterService":
        llm = config["openrouter"]
        return cls(
            api_key=llm["api_key"],
            model=llm["model"],
            system_prompt=llm.get("system_prompt", ""),
            temperature=llm["temperature"],
            max_tokens=llm["max_tokens"],
            base_url=llm.get("base_url") or OPENROUTER_BASE_URL,
            search_api_key=config.get("search_api_key") or None,
        )

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    def build_messages(self, history: List[Dict[str, str]], prompt: str | None = None) -> List[Dict[str, Any]]:
        """System prompt, then the (already copied) channel history, then an optional instruction."""
        messages: List[Dict[str, Any]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(dict(m) for m in history)
        if prompt:
            messages.append({"role": "user", "content": prompt})
        return messages

    async def complete(self, messages: List[Dict[str, Any]], tool_names: List[str] | None = None) -> str:
        """
        Run one completion, resolving tool calls for up to MAX_TOOL_ROUNDS rounds.
        Returns the final assistant text. Raises LLMError on any failure.
        """
        if not messages:
            raise LLMError("empty prompt provided")

        tool_schemas = get_openai_tools(self._registry, tool_names)
        msgs = list(messages)

        for round_idx in range(MAX_TOOL_ROUNDS + 1):
            create_kw: dict = dict(
                model=self.model,
                messages=msgs,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            # last round: force a plain answer
            if tool_schemas and round_idx < MAX_TOOL_ROUNDS:
                create_kw["tools"] = tool_schemas

            try:
                response = await asyncio.wait_for(
                    self.client.chat.completions.create(**create_kw),
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
            except asyncio.TimeoutError as e:
                raise LLMConnectionError(f"request timed out after {REQUEST_TIMEOUT_SECONDS}s") from e
            except openai.OpenAIError as e:
                raise wrap_openai_error(e) from e

            choice = response.choices[0] if response.choices else None
            if choice is None:
                raise LLMError("no choices in response")

            msg = choice.message
            if not msg.tool_calls:
                return msg.content or ""

            # Some providers reject content=null, so only set fields that exist.
            assistant_msg: dict = {"role": "assistant"}
            if msg.content:
                assistant_msg["content"] = msg.content
            assistant_msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.function.name, "arguments": tc.function.arguments},
                }
                for tc in msg.tool_calls
            ]
            msgs.append(assistant_msg)

            for tc in msg.tool_calls:
                msgs.append(await self._run_tool(tc))

        return ""

    async def _run_tool(self, tool_call: Any) -> dict:
        name = tool_call.function.name
        try:
            args = json.loads(tool_call.function.arguments or "{}")
        except ValueError:
            logging.warning("Tool call '%s' had unparseable arguments: %r", name, tool_call.function.arguments)
            args = {}
        result = await asyncio.to_thread(execute_tool_call, name, args, self._registry)
        return {"role": "tool", "tool_call_id": tool_call.id, "name": name, "content": result}
