"""EternalAI client: one chat-completion interface over many providers.

Usage::

    async with EternalAI(api_key="...") as client:
        response = await client.chat.send({
            "model": "flux/flux-2-pro",
            "messages": [{"role": "user", "content": "A lighthouse at dusk"}],
        })
        print(response["choices"][0]["message"]["content"])  # image URL
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from eternalai.config.settings import Settings, get_settings
from eternalai.errors import ConfigError
from eternalai.logging.jsonlog import RequestTimer, generate_request_id, get_logger, request_id_var
from eternalai.providers.base import ChatProvider, PollingOverrides, PollingProvider, Provider
from eternalai.providers.formats import chat_completion
from eternalai.providers.registry import create_provider, parse_model_name

logger = get_logger("client")


class Chat:
    """Routes unified chat requests to the provider named by the model prefix."""

    def __init__(self, client: "EternalAI"):
        self._client = client

    async def send(
        self, request: dict, *, polling: PollingOverrides = None
    ) -> dict | AsyncIterator[dict]:
        """Send a chat completion request.

        Args:
            request: OpenAI-style body. ``model`` may carry a provider prefix
                such as ``wan/`` or ``tavily/``; provider-specific options
                (``width``, ``resolution``, ``lora_config``...) ride along.
            polling: For job-based providers, a ``PollingPolicy`` or a dict of
                ``interval``/``max_attempts``/``on_status_update`` overrides.

        Returns:
            A ``chat.completion`` dict, or an async iterator of
            ``chat.completion.chunk`` dicts when ``stream`` is true and the
            provider streams.
        """
        token = request_id_var.set(generate_request_id())
        try:
            return await self._dispatch(request, polling)
        finally:
            request_id_var.reset(token)

    async def _dispatch(self, request: dict, polling: PollingOverrides) -> dict | AsyncIterator[dict]:
        model = request.get("model", "")
        name, model_name = parse_model_name(model)
        provider = self._client.provider(name)
        stream = bool(request.get("stream"))

        logger.info("Request started", extra={"event_data": {
            "provider": name, "model": model, "stream": stream,
        }})

        if isinstance(provider, PollingProvider):
            with RequestTimer() as timer:
                job = await provider.generate(request, model_name, polling)
            logger.info("Request finished", extra={"event_data": {
                "provider": name, "latency_ms": timer.elapsed_ms, "handle": job.handle,
            }})
            return chat_completion(
                provider.result_content(job),
                model=model,
                completion_id=job.handle or f"chatcmpl-{name}-{int(time.time() * 1000)}",
            )

        if stream and provider.supports_streaming:
            return provider.chat_completion_stream(request, model_name)

        with RequestTimer() as timer:
            response = await provider.chat_completion(request, model_name)
        logger.info("Request finished", extra={"event_data": {
            "provider": name, "latency_ms": timer.elapsed_ms,
        }})
        return response


class EternalAI:
    """Entry point of the library.

    Args:
        api_key: Overrides ``ETERNALAI_API_KEY``.
        timeout: Per-request HTTP timeout in seconds; overrides ``ETERNALAI_TIMEOUT``.
        settings: Full settings object; environment settings when omitted.
        transport: Optional httpx transport shared by every provider.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        updates: dict[str, Any] = {}
        if api_key is not None:
            updates["api_key"] = api_key
        if timeout is not None:
            updates["timeout"] = timeout
        if updates:
            settings = settings.model_copy(update=updates)
        if not settings.api_key:
            raise ConfigError("API key is required")

        self.settings = settings
        self._transport = transport
        self._providers: dict[str, Provider] = {}
        self.chat = Chat(self)

    def provider(self, name: str) -> Provider:
        """Provider instance owned by this client, created on first use."""
        if name not in self._providers:
            self._providers[name] = create_provider(name, self.settings, self._transport)
        return self._providers[name]

    @property
    def eternalai(self) -> ChatProvider:
        return self.provider("eternalai")

    @property
    def glm(self) -> ChatProvider:
        return self.provider("glm")

    @property
    def mistral(self) -> ChatProvider:
        return self.provider("mistral")

    @property
    def nano_banana(self) -> ChatProvider:
        return self.provider("nano-banana")

    @property
    def tavily(self) -> ChatProvider:
        return self.provider("tavily")

    @property
    def flux(self) -> PollingProvider:
        return self.provider("flux")

    @property
    def wan(self) -> PollingProvider:
        return self.provider("wan")

    @property
    def uncensored_ai(self) -> PollingProvider:
        return self.provider("uncensored-ai")

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()
        self._providers.clear()

    async def __aenter__(self) -> "EternalAI":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
