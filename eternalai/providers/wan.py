"""Wan image-to-video provider (DashScope-style async tasks)."""

from urllib.parse import quote

from eternalai.core.polling import JobStatus, PollableJob, PollingPolicy
from eternalai.errors import InvalidResponseError
from eternalai.providers.base import PollingProvider
from eternalai.providers.formats import extract_prompt_and_images

DEFAULT_MODEL = "wan2.5-i2v-preview"

STATUS_MAP = {
    "PENDING": JobStatus.PENDING,
    "RUNNING": JobStatus.IN_PROGRESS,
    "SUCCEEDED": JobStatus.SUCCEEDED,
    "FAILED": JobStatus.FAILED,
    "CANCELED": JobStatus.FAILED,
    "UNKNOWN": JobStatus.FAILED,
}


class WanProvider(PollingProvider):
    """Video generation from a prompt and an optional source image."""

    name = "wan"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.api_key}",
        }

    def default_policy(self, model: str) -> PollingPolicy:
        return self._settings.video_polling

    @staticmethod
    def build_body(request: dict, model: str) -> dict:
        prompt, image_urls = extract_prompt_and_images(request.get("messages", []))
        task_input = {"prompt": prompt}
        if image_urls:
            # Only the last image is used as the first frame
            task_input["img_url"] = image_urls[-1]
        return {
            "model": model or DEFAULT_MODEL,
            "input": task_input,
            "parameters": {
                "resolution": request.get("resolution") or "480P",
                "prompt_extend": request.get("prompt_extend", True),
                "duration": request.get("duration", 10),
                "audio": request.get("audio", True),
            },
        }

    async def submit(self, request: dict, model: str) -> str:
        client = await self._get_client()
        url = f"{self.base_url}/wan/api/v1/services/aigc/video-generation/video-synthesis"
        response = await client.post(
            url,
            json=self.build_body(request, model),
            headers={**self._headers(), "X-DashScope-Async": "enable"},
        )
        await self._check_response(response)
        task_id = (response.json().get("output") or {}).get("task_id")
        if not task_id:
            raise InvalidResponseError("No task_id in wan generate response")
        return task_id

    async def fetch_status(self, handle: str) -> PollableJob:
        response = await self._get_json(f"{self.base_url}/wan/api/v1/tasks/{quote(handle, safe='')}")
        output = response.get("output") or {}
        # A response without a status is transient; keep polling
        raw_status = output.get("task_status") or ""
        status = STATUS_MAP.get(raw_status, JobStatus.IN_PROGRESS)

        result = None
        if status is JobStatus.SUCCEEDED:
            results = output.get("results") or []
            result = (results[0].get("url") if results else None) or output.get("video_url")

        return PollableJob(
            handle=handle,
            status=status,
            raw_status=raw_status,
            result=result,
            error_detail=output.get("message") or "Unknown error" if status is JobStatus.FAILED else None,
            raw=response,
        )
