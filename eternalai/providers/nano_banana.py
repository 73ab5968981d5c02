"""Nano Banana provider: translates OpenAI format to/from the Gemini API."""

import time
from collections.abc import AsyncGenerator
from contextlib import aclosing

from eternalai.providers.base import ChatProvider
from eternalai.providers.formats import chat_completion, chat_completion_chunk

DEFAULT_MODEL = "gemini-2.5-flash-image"


class NanoBananaProvider(ChatProvider):
    """Sends chat requests to Gemini-style ``generateContent`` endpoints."""

    name = "nano-banana"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self._settings.api_key,
        }

    def _model_url(self, model: str, method: str) -> str:
        return f"{self.base_url}/nano-banana/v1beta/models/{model or DEFAULT_MODEL}:{method}"

    @staticmethod
    def _translate_request(request: dict) -> dict:
        """Translate an OpenAI chat request into Gemini ``contents``."""
        contents = []
        for msg in request.get("messages", []):
            # Gemini has no system role; system text is sent as a user turn
            role = "model" if msg.get("role") == "assistant" else "user"
            content = msg.get("content", "")
            if isinstance(content, list):
                parts = [{"text": p.get("text", "")} for p in content if p.get("type") == "text"]
            else:
                parts = [{"text": content}]
            contents.append({"role": role, "parts": parts})
        return {"contents": contents}

    @staticmethod
    def _finish_reason(candidate: dict) -> str | None:
        return "stop" if candidate.get("finishReason") == "STOP" else None

    @classmethod
    def _translate_response(cls, response: dict, model: str) -> dict:
        """Translate a Gemini response to OpenAI-compatible format."""
        candidates = response.get("candidates") or [{}]
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts", [])
        text = "".join(part.get("text", "") for part in parts)

        usage = None
        meta = response.get("usageMetadata")
        if meta:
            usage = {
                "prompt_tokens": meta.get("promptTokenCount", 0),
                "completion_tokens": meta.get("candidatesTokenCount", 0),
                "total_tokens": meta.get("totalTokenCount", 0),
            }

        return chat_completion(
            text,
            model=model,
            finish_reason=cls._finish_reason(candidate),
            usage=usage,
        )

    async def chat_completion(self, request: dict, model: str) -> dict:
        model = model or DEFAULT_MODEL
        body = self._translate_request(request)
        response = await self._post_json(self._model_url(model, "generateContent"), body)
        return self._translate_response(response, model)

    async def chat_completion_stream(self, request: dict, model: str) -> AsyncGenerator[dict, None]:
        model = model or DEFAULT_MODEL
        url = self._model_url(model, "streamGenerateContent") + "?alt=sse"
        body = self._translate_request(request)
        completion_id = f"chatcmpl-{int(time.time() * 1000)}"

        async with aclosing(self._stream_events(url, body)) as events:
            async for event in events:
                if not isinstance(event.payload, dict):
                    continue
                candidates = event.payload.get("candidates") or [{}]
                candidate = candidates[0]
                parts = (candidate.get("content") or {}).get("parts") or [{}]
                yield chat_completion_chunk(
                    parts[0].get("text", ""),
                    model=model,
                    completion_id=completion_id,
                    finish_reason=self._finish_reason(candidate),
                )

    async def generate_image(self, prompt: str, model: str = DEFAULT_MODEL) -> dict | None:
        """Generate an image and return ``{"mime_type", "data"}`` (base64), or None."""
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        response = await self._post_json(self._model_url(model, "generateContent"), body)
        for candidate in response.get("candidates", []):
            for part in (candidate.get("content") or {}).get("parts", []):
                inline = part.get("inlineData")
                if inline:
                    return {"mime_type": inline.get("mimeType", ""), "data": inline.get("data", "")}
        return None
