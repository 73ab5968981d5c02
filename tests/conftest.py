"""Shared fixtures for the eternalai test suite."""

import json

import httpx
import pytest

from eternalai.config.settings import Settings, get_settings

BASE_URL = "https://api.test"


@pytest.fixture
def settings() -> Settings:
    """Settings with a fixed key and base URL, independent of the environment."""
    return Settings(
        api_key="sk-test-key",
        base_url=BASE_URL,
        image_poll_interval=0,
        video_poll_interval=0,
    )


@pytest.fixture
def chat_request_body() -> dict:
    """Standard chat completions request body."""
    return {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": "Hello, how are you?"},
        ],
    }


@pytest.fixture
def image_request_body() -> dict:
    """Request with a text prompt and two reference images."""
    return {
        "model": "flux/flux-2-pro",
        "messages": [{
            "role": "user",
            "content": [
                {"type": "text", "text": "Blend these into a poster"},
                {"type": "image_url", "image_url": {"url": "https://img.test/a.png"}},
                {"type": "image_url", "image_url": {"url": "https://img.test/b.png"}},
            ],
        }],
    }


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(ETERNALAI_API_KEY="key1", ETERNALAI_LOG_LEVEL="DEBUG")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def sse_body(*payloads, done: bool = True) -> bytes:
    """Encode payloads as an SSE response body."""
    lines = [f"data: {json.dumps(p)}\n\n" for p in payloads]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


async def async_chunks(data: bytes, size: int):
    """Yield ``data`` in fixed-size byte chunks."""
    for i in range(0, len(data), size):
        yield data[i:i + size]


def status_sequence(*responses):
    """Handler returning the given JSON bodies in order, repeating the last one."""
    remaining = list(responses)

    def _handler(request: httpx.Request) -> httpx.Response:
        body = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return httpx.Response(200, json=body)

    return _handler
