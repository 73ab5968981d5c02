"""Flux image generation provider (submit, then poll a result URL)."""

from eternalai.core.polling import JobStatus, PollableJob
from eternalai.errors import InvalidResponseError
from eternalai.providers.base import PollingProvider
from eternalai.providers.formats import extract_prompt_and_images

DEFAULT_MODEL = "flux-2-pro"

STATUS_MAP = {
    "Pending": JobStatus.PENDING,
    "Running": JobStatus.IN_PROGRESS,
    "Ready": JobStatus.SUCCEEDED,
    "Failed": JobStatus.FAILED,
    "Error": JobStatus.FAILED,
}


class FluxProvider(PollingProvider):
    """Text-to-image and image-to-image via Flux.

    Request options read from the unified request: ``width``, ``height``
    (default 1024) and ``safety_tolerance`` (0-6, default 2). Up to two
    ``image_url`` parts become ``input_image`` and ``input_image_2``.
    """

    name = "flux"

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "accept": "application/json",
            "x-key": self._settings.api_key,
        }

    @staticmethod
    def build_body(request: dict) -> dict:
        prompt, image_urls = extract_prompt_and_images(request.get("messages", []))
        body = {
            "prompt": prompt,
            "width": request.get("width", 1024),
            "height": request.get("height", 1024),
            "safety_tolerance": request.get("safety_tolerance", 2),
        }
        if len(image_urls) > 0:
            body["input_image"] = image_urls[0]
        if len(image_urls) > 1:
            body["input_image_2"] = image_urls[1]
        return body

    async def submit(self, request: dict, model: str) -> str:
        url = f"{self.base_url}/flux/v1/{model or DEFAULT_MODEL}"
        response = await self._post_json(url, self.build_body(request))
        polling_url = response.get("polling_url")
        if not polling_url:
            raise InvalidResponseError("No polling_url in flux generate response")
        return polling_url

    async def fetch_status(self, handle: str) -> PollableJob:
        response = await self._get_json(handle)
        raw_status = response.get("status") or "Unknown"
        status = STATUS_MAP.get(raw_status, JobStatus.IN_PROGRESS)
        result = (response.get("result") or {}).get("sample")
        return PollableJob(
            handle=handle,
            status=status,
            raw_status=raw_status,
            result=result if status is JobStatus.SUCCEEDED else None,
            error_detail=response.get("error") or "Unknown error" if status is JobStatus.FAILED else None,
            raw=response,
        )
