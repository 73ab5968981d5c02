"""Fixed-interval polling for long-running generation jobs.

Every asynchronous provider (image, video, edit) follows the same shape:
start a job once, then check its status until it finishes. Providers only
supply a ``fetch_status`` coroutine that maps their own status vocabulary
onto :class:`JobStatus`; the loop itself lives here.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from eternalai.errors import GenerationFailed, PollingTimedOut

logger = logging.getLogger(__name__)

StatusObserver = Callable[[str, int], Any]


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


@dataclass
class PollableJob:
    handle: str
    status: JobStatus
    raw_status: str          # Provider's own status string, before canonicalization
    result: Any = None       # Set only when SUCCEEDED
    error_detail: str | None = None  # Set only when FAILED
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PollingPolicy:
    """How often and how many times to check a job.

    Args:
        interval: Seconds to wait between consecutive status checks.
        max_attempts: Hard ceiling on status checks.
        on_status_update: Optional observer called as ``(raw_status, attempt)``
            once per attempt. Its return value and exceptions are ignored.
    """

    interval: float
    max_attempts: int
    on_status_update: StatusObserver | None = None

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def with_overrides(
        self,
        interval: float | None = None,
        max_attempts: int | None = None,
        on_status_update: StatusObserver | None = None,
    ) -> "PollingPolicy":
        """Return a copy with any non-None override applied."""
        changes: dict[str, Any] = {}
        if interval is not None:
            changes["interval"] = interval
        if max_attempts is not None:
            changes["max_attempts"] = max_attempts
        if on_status_update is not None:
            changes["on_status_update"] = on_status_update
        return replace(self, **changes) if changes else self


IMAGE_POLLING = PollingPolicy(interval=3.0, max_attempts=60)
VIDEO_POLLING = PollingPolicy(interval=5.0, max_attempts=120)


def _notify(observer: StatusObserver, raw_status: str, attempt: int) -> None:
    try:
        observer(raw_status, attempt)
    except Exception:
        logger.warning("Status observer raised; ignoring", exc_info=True)


async def poll_until_done(
    handle: str,
    fetch_status: Callable[[str], Awaitable[PollableJob]],
    policy: PollingPolicy,
    *,
    provider: str = "",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> PollableJob:
    """Check ``handle`` until it succeeds, fails, or the budget runs out.

    Makes exactly one ``fetch_status`` call per attempt and sleeps only
    between attempts, never after the last one. Errors raised by
    ``fetch_status`` propagate immediately and are not retried.

    Returns:
        The first job observed in the SUCCEEDED bucket.

    Raises:
        GenerationFailed: The provider reported a terminal failure.
        PollingTimedOut: ``policy.max_attempts`` checks saw no terminal state.
    """
    for attempt in range(1, policy.max_attempts + 1):
        job = await fetch_status(handle)

        if policy.on_status_update is not None:
            _notify(policy.on_status_update, job.raw_status, attempt)

        logger.debug(
            "Poll attempt",
            extra={"event_data": {
                "provider": provider,
                "handle": handle,
                "attempt": attempt,
                "max_attempts": policy.max_attempts,
                "raw_status": job.raw_status,
                "status": job.status.value,
            }},
        )

        if job.status is JobStatus.SUCCEEDED:
            return job

        if job.status is JobStatus.FAILED:
            raise GenerationFailed(job.error_detail or "Unknown error", provider=provider)

        if attempt < policy.max_attempts:
            await sleep(policy.interval)

    raise PollingTimedOut(policy.max_attempts, provider=provider)
