"""Abstract bases for provider adapters."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Callable, Awaitable
from typing import Any

import httpx

from eternalai.config.settings import Settings, get_settings
from eternalai.core.polling import PollableJob, PollingPolicy, poll_until_done
from eternalai.core.sse import StreamEvent, decode_stream
from eternalai.errors import APIError
from eternalai.logging.jsonlog import get_logger

logger = get_logger("providers")

PollingOverrides = PollingPolicy | dict | None


class Provider(ABC):
    """Shared HTTP plumbing for every upstream API.

    Args:
        settings: Client settings; defaults to the environment-backed singleton.
        transport: Optional httpx transport, mainly for tests.
    """

    name: str = ""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._settings.base_url.rstrip("/")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.timeout, connect=self._settings.connect_timeout),
                transport=self._transport,
            )
        return self._client

    @abstractmethod
    def _headers(self) -> dict:
        """Auth and content headers for this provider."""

    async def _check_response(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        body_bytes = await response.aread()
        detail = body_bytes.decode(errors="replace")
        logger.warning(
            "Upstream error",
            extra={"event_data": {
                "provider": self.name,
                "status_code": response.status_code,
                "url": str(response.request.url),
            }},
        )
        raise APIError(response.status_code, detail, provider=self.name)

    async def _post_json(self, url: str, body: dict) -> dict:
        client = await self._get_client()
        response = await client.post(url, json=body, headers=self._headers())
        await self._check_response(response)
        return response.json()

    async def _get_json(self, url: str, params: dict | None = None) -> dict:
        client = await self._get_client()
        response = await client.get(url, params=params, headers=self._headers())
        await self._check_response(response)
        return response.json()

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class ChatProvider(Provider):
    """Provider that answers chat completions, optionally as a stream."""

    @abstractmethod
    async def chat_completion(self, request: dict, model: str) -> dict:
        """Send a chat completion request.

        Args:
            request: OpenAI-style request body (``messages``, ``model``, ...).
            model: Provider model name with any routing prefix removed.

        Returns:
            An OpenAI ``chat.completion`` dict.
        """
        ...

    async def chat_completion_stream(self, request: dict, model: str) -> AsyncGenerator[dict, None]:
        """Stream a chat completion. Override to enable streaming.

        Yields OpenAI ``chat.completion.chunk`` dicts.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support streaming")
        yield  # pragma: no cover

    @property
    def supports_streaming(self) -> bool:
        return type(self).chat_completion_stream is not ChatProvider.chat_completion_stream

    async def _stream_events(self, url: str, body: dict) -> AsyncGenerator[StreamEvent, None]:
        """POST ``body`` and decode the SSE response, closing it on every exit path."""
        client = await self._get_client()
        request = client.build_request("POST", url, json=body, headers=self._headers())
        response = await client.send(request, stream=True)
        if not response.is_success:
            try:
                await self._check_response(response)
            finally:
                await response.aclose()

        async with decode_stream(response.aiter_bytes(), close=response.aclose) as events:
            async for event in events:
                yield event


class PollingProvider(Provider):
    """Provider whose work is a long-running job: submit once, poll many."""

    @abstractmethod
    async def submit(self, request: dict, model: str) -> str:
        """Start a job and return its handle (ID or polling URL)."""
        ...

    @abstractmethod
    async def fetch_status(self, handle: str) -> PollableJob:
        """Check a job once and canonicalize the provider's status string."""
        ...

    def default_policy(self, model: str) -> PollingPolicy:
        return self._settings.image_polling

    def status_fetcher(self, model: str) -> Callable[[str], Awaitable[PollableJob]]:
        return self.fetch_status

    def result_content(self, job: PollableJob) -> str:
        """Text placed in the assistant message when routed through Chat."""
        return job.result or ""

    async def poll(self, handle: str, model: str, polling: PollingOverrides = None) -> PollableJob:
        policy = resolve_policy(self.default_policy(model), polling)
        return await poll_until_done(handle, self.status_fetcher(model), policy, provider=self.name)

    async def generate(self, request: dict, model: str, polling: PollingOverrides = None) -> PollableJob:
        """Submit a job and poll it to completion."""
        handle = await self.submit(request, model)
        logger.info("Job submitted", extra={"event_data": {"provider": self.name, "handle": handle}})
        return await self.poll(handle, model, polling)


def resolve_policy(default: PollingPolicy, polling: PollingOverrides) -> PollingPolicy:
    """Merge caller overrides over a provider-class default."""
    if polling is None:
        return default
    if isinstance(polling, PollingPolicy):
        return polling
    return default.with_overrides(**polling)
