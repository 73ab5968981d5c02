"""Error hierarchy for the eternalai client.

Everything raised on purpose by this package inherits from EternalAIError.
Transport failures from httpx are not wrapped and reach the caller as-is.
"""


class EternalAIError(Exception):
    """Base exception for all eternalai errors."""


class ConfigError(EternalAIError):
    """Raised when the client is missing required configuration."""


class APIError(EternalAIError):
    """Raised when an upstream provider answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str, provider: str = ""):
        self.status_code = status_code
        self.body = body
        self.provider = provider
        label = provider or "upstream"
        super().__init__(f"{label} request failed with status {status_code}: {body}")


class InvalidResponseError(EternalAIError):
    """Raised when a 2xx response lacks a field the client depends on."""


class GenerationFailed(EternalAIError):
    """The remote job reached a terminal failed state."""

    def __init__(self, detail: str, provider: str = ""):
        self.detail = detail
        self.provider = provider
        prefix = f"{provider} generation failed" if provider else "generation failed"
        super().__init__(f"{prefix}: {detail}")


class PollingTimedOut(EternalAIError):
    """The attempt budget ran out while the job was still running."""

    def __init__(self, attempts: int, provider: str = ""):
        self.attempts = attempts
        self.provider = provider
        prefix = f"{provider} polling" if provider else "polling"
        super().__init__(f"{prefix} timed out after {attempts} attempts")
