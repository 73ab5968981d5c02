"""OpenAI-compatible chat providers: EternalAI default, GLM and Mistral."""

from collections.abc import AsyncGenerator
from contextlib import aclosing

from eternalai.providers.base import ChatProvider


class OpenAICompatibleProvider(ChatProvider):
    """Forwards requests to an OpenAI-compatible ``/chat/completions`` endpoint."""

    name = "eternalai"
    path = "/api/v1/chat/completions"
    default_model = ""
    extra_headers: dict = {}

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.path}"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.api_key}",
            **self.extra_headers,
        }

    def _body(self, request: dict, model: str, stream: bool) -> dict:
        return {**request, "model": model or self.default_model, "stream": stream}

    async def chat_completion(self, request: dict, model: str) -> dict:
        return await self._post_json(self.url, self._body(request, model, stream=False))

    async def chat_completion_stream(self, request: dict, model: str) -> AsyncGenerator[dict, None]:
        body = self._body(request, model, stream=True)
        async with aclosing(self._stream_events(self.url, body)) as events:
            async for event in events:
                if isinstance(event.payload, dict):
                    yield event.payload


class EternalAIChatProvider(OpenAICompatibleProvider):
    """Unprefixed models go straight to the EternalAI chat API."""


class GlmProvider(OpenAICompatibleProvider):
    name = "glm"
    path = "/glm/api/paas/v4/chat/completions"
    default_model = "glm-4.5-flash"
    extra_headers = {"Accept-Language": "en-US,en"}


class MistralProvider(OpenAICompatibleProvider):
    name = "mistral"
    path = "/mistralai/v1/chat/completions"
    default_model = "devstral-2512"
    extra_headers = {"Accept": "application/json"}
