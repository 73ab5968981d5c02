"""Tests for eternalai/providers/tavily.py — search answered as chat."""

import json

import httpx

from eternalai.providers.tavily import TavilyProvider
from tests.conftest import RecordingTransport


class TestFormatAnswer:

    def test_answer_with_sources(self):
        content = TavilyProvider._format_answer({
            "answer": "Paris.",
            "results": [{"title": "Paris", "url": "https://w.test/paris", "content": "Capital of France"}],
        })
        assert content.startswith("Paris.\n\n---\n\n**Sources:**\n")
        assert "- [Paris](https://w.test/paris)\n  Capital of France...\n" in content

    def test_snippets_truncated(self):
        content = TavilyProvider._format_answer({
            "results": [{"title": "t", "url": "u", "content": "x" * 500}],
        })
        assert "x" * 200 + "..." in content
        assert "x" * 201 not in content

    def test_empty_response(self):
        assert TavilyProvider._format_answer({"query": "q"}) == "No results found."


class TestTavilyProvider:

    async def test_search_uses_last_user_message(self, settings):
        transport = RecordingTransport(lambda request: httpx.Response(200, json={"answer": "42"}))
        provider = TavilyProvider(settings, transport=transport)
        request = {"messages": [
            {"role": "user", "content": "first question"},
            {"role": "assistant", "content": "answer"},
            {"role": "user", "content": "meaning of life"},
        ]}

        result = await provider.chat_completion(request, "")

        sent = transport.requests[0]
        assert str(sent.url) == "https://api.test/tavily/search"
        assert json.loads(sent.content) == {"query": "meaning of life"}
        assert result["model"] == "tavily/search"
        assert result["choices"][0]["message"]["content"] == "42"
        assert result["id"].startswith("chatcmpl-tavily-")
        await provider.close()

    async def test_custom_endpoint(self, settings):
        transport = RecordingTransport(lambda request: httpx.Response(200, json={}))
        provider = TavilyProvider(settings, transport=transport)
        await provider.chat_completion({"messages": [{"role": "user", "content": "q"}]}, "extract")
        assert transport.requests[0].url.path == "/tavily/extract"
        await provider.close()

    def test_no_streaming(self, settings):
        assert not TavilyProvider(settings).supports_streaming
