"""Uncensored AI provider: image and video generation or editing."""

import json
from collections.abc import Awaitable, Callable
from functools import partial

from eternalai.core.polling import JobStatus, PollableJob, PollingPolicy
from eternalai.errors import InvalidResponseError
from eternalai.providers.base import PollingProvider
from eternalai.providers.formats import has_image_part

IMAGE_ENDPOINT = "uncensored-image"
VIDEO_ENDPOINT = "uncensored-video"

STATUS_MAP = {
    "pending": JobStatus.PENDING,
    "processing": JobStatus.IN_PROGRESS,
    "success": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
}


class UncensoredAIProvider(PollingProvider):
    """Generation via the ``uncensored-image`` and ``uncensored-video`` endpoints.

    The routed model name is the endpoint. ``type`` defaults to ``edit`` when
    any message carries an image part and ``new`` otherwise. Video endpoints
    poll with the video-class policy.
    """

    name = "uncensored-ai"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "accept": "application/json",
            "x-api-key": self._settings.api_key,
        }

    def default_policy(self, model: str) -> PollingPolicy:
        if (model or IMAGE_ENDPOINT) == VIDEO_ENDPOINT:
            return self._settings.video_polling
        return self._settings.image_polling

    @staticmethod
    def build_body(request: dict) -> dict:
        messages = request.get("messages", [])
        body = {
            "messages": messages,
            "type": request.get("type") or ("edit" if has_image_part(messages) else "new"),
        }
        if request.get("lora_config"):
            body["lora_config"] = request["lora_config"]
        for key in ("image_config", "video_config"):
            value = request.get(key)
            if value:
                body[key] = value if isinstance(value, str) else json.dumps(value)
        body["is_magic_prompt"] = request.get("is_magic_prompt", True)
        body["duration"] = request.get("duration", 5)
        body["audio"] = request.get("audio", True)
        return body

    async def submit(self, request: dict, model: str) -> str:
        endpoint = model or IMAGE_ENDPOINT
        response = await self._post_json(f"{self.base_url}/uncensored-ai/{endpoint}", self.build_body(request))
        request_id = response.get("request_id")
        if not request_id:
            raise InvalidResponseError("No request_id in uncensored-ai generate response")
        return request_id

    def status_fetcher(self, model: str) -> Callable[[str], Awaitable[PollableJob]]:
        return partial(self.fetch_status, endpoint=model or IMAGE_ENDPOINT)

    async def fetch_status(self, handle: str, endpoint: str = IMAGE_ENDPOINT) -> PollableJob:
        response = await self._get_json(
            f"{self.base_url}/uncensored-ai/result/{endpoint}",
            params={"request_id": handle},
        )
        raw_status = response.get("status") or "unknown"
        status = STATUS_MAP.get(raw_status, JobStatus.IN_PROGRESS)
        return PollableJob(
            handle=handle,
            status=status,
            raw_status=raw_status,
            result=response.get("result_url") if status is JobStatus.SUCCEEDED else None,
            error_detail=response.get("message") or raw_status if status is JobStatus.FAILED else None,
            raw=response,
        )
