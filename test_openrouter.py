import json
import unittest
from types import SimpleNamespace
from unittest import mock

import httpx
import openai

from chad.llm.errors import (
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    format_user_friendly_error,
    wrap_openai_error,
)
from chad.llm.openrouter import MAX_TOOL_ROUNDS, OpenRouterService

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _reply(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(call_id, query):
    return SimpleNamespace(
        id=call_id,
        function=SimpleNamespace(name="web_search", arguments=json.dumps({"query": query})),
    )


class _FakeCompletions:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _service(responses, search_api_key="k"):
    completions = _FakeCompletions(responses)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    service = OpenRouterService(
        api_key="or-key",
        model="openai/gpt-4o-mini",
        system_prompt="You are Chad.",
        search_api_key=search_api_key,
        client=client,
    )
    return service, completions


class OpenRouterServiceTests(unittest.IsolatedAsyncioTestCase):
    def test_build_messages(self):
        service, _ = _service([])
        history = [{"role": "user", "content": "alice: hi"}]
        messages = service.build_messages(history, prompt="reply briefly")
        self.assertEqual(
            messages,
            [
                {"role": "system", "content": "You are Chad."},
                {"role": "user", "content": "alice: hi"},
                {"role": "user", "content": "reply briefly"},
            ],
        )
        messages[1]["content"] = "changed"
        self.assertEqual(history[0]["content"], "alice: hi")

    async def test_plain_completion(self):
        service, completions = _service([_reply("hello there")])
        text = await service.complete([{"role": "user", "content": "hi"}])
        self.assertEqual(text, "hello there")
        self.assertNotIn("tools", completions.calls[0])
        self.assertEqual(completions.calls[0]["model"], "openai/gpt-4o-mini")

    @mock.patch("chad.llm.openrouter.execute_tool_call", return_value='[{"title": "Rain"}]')
    async def test_tool_round_trip(self, execute):
        service, completions = _service(
            [_reply(tool_calls=[_tool_call("call_1", "weather taipei")]), _reply("It's raining.")]
        )
        text = await service.complete([{"role": "user", "content": "weather?"}], tool_names=["web_search"])

        self.assertEqual(text, "It's raining.")
        self.assertEqual(execute.call_args.args[:2], ("web_search", {"query": "weather taipei"}))
        self.assertIn("tools", completions.calls[0])

        followup = completions.calls[1]["messages"]
        self.assertEqual(followup[-2]["role"], "assistant")
        self.assertNotIn("content", followup[-2])
        self.assertEqual(
            followup[-1],
            {"role": "tool", "tool_call_id": "call_1", "name": "web_search", "content": '[{"title": "Rain"}]'},
        )

    @mock.patch("chad.llm.openrouter.execute_tool_call", return_value="[]")
    async def test_last_round_is_forced_to_answer(self, _execute):
        looping = [_reply(tool_calls=[_tool_call(f"call_{i}", "again")]) for i in range(MAX_TOOL_ROUNDS)]
        service, completions = _service(looping + [_reply("giving up on tools")])
        text = await service.complete([{"role": "user", "content": "q"}], tool_names=["web_search"])
        self.assertEqual(text, "giving up on tools")
        self.assertEqual(len(completions.calls), MAX_TOOL_ROUNDS + 1)
        self.assertNotIn("tools", completions.calls[-1])

    async def test_empty_choices_raise(self):
        service, _ = _service([SimpleNamespace(choices=[])])
        with self.assertRaises(LLMError):
            await service.complete([{"role": "user", "content": "hi"}])

    async def test_empty_prompt_raises(self):
        service, _ = _service([])
        with self.assertRaises(LLMError):
            await service.complete([])

    async def test_connection_error_is_wrapped(self):
        service, _ = _service([openai.APIConnectionError(request=REQUEST)])
        with self.assertRaises(LLMConnectionError):
            await service.complete([{"role": "user", "content": "hi"}])


class ErrorMappingTests(unittest.TestCase):
    def test_rate_limit(self):
        response = httpx.Response(429, request=REQUEST)
        error = wrap_openai_error(openai.RateLimitError("slow down", response=response, body=None))
        self.assertIsInstance(error, LLMRateLimitError)
        self.assertIn("too many requests", format_user_friendly_error(error))

    def test_connection(self):
        error = wrap_openai_error(openai.APIConnectionError(request=REQUEST))
        self.assertIsInstance(error, LLMConnectionError)
        self.assertEqual(format_user_friendly_error(error), "❌ Sorry, I can't reach my brain right now.")


if __name__ == "__main__":
    unittest.main()
