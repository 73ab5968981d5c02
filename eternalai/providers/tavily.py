"""Tavily search provider, answered as a chat completion."""

import time

from eternalai.providers.base import ChatProvider
from eternalai.providers.formats import chat_completion, last_user_text

SNIPPET_CHARS = 200


class TavilyProvider(ChatProvider):
    """Runs a web search for the last user message. No streaming."""

    name = "tavily"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.api_key}",
        }

    @staticmethod
    def _format_answer(response: dict) -> str:
        content = response.get("answer") or ""
        results = response.get("results") or []
        if results:
            if content:
                content += "\n\n---\n\n**Sources:**\n"
            for result in results:
                snippet = (result.get("content") or "")[:SNIPPET_CHARS]
                content += f"\n- [{result.get('title', '')}]({result.get('url', '')})\n  {snippet}...\n"
        return content or "No results found."

    async def chat_completion(self, request: dict, model: str) -> dict:
        endpoint = model or "search"
        query = last_user_text(request.get("messages", []))
        response = await self._post_json(f"{self.base_url}/tavily/{endpoint}", {"query": query})
        return chat_completion(
            self._format_answer(response),
            model=f"tavily/{endpoint}",
            completion_id=f"chatcmpl-tavily-{int(time.time() * 1000)}",
        )
