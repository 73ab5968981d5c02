"""Client settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from eternalai.core.polling import PollingPolicy


class Settings(BaseSettings):
    # Credentials
    api_key: str = ""

    # Upstream gateway
    base_url: str = "https://open.eternalai.org"
    timeout: float = 60.0  # Per-request read timeout in seconds
    connect_timeout: float = 10.0

    # Polling defaults per provider class
    image_poll_interval: float = 3.0
    image_poll_max_attempts: int = 60  # ~3 minutes
    video_poll_interval: float = 5.0
    video_poll_max_attempts: int = 120  # ~10 minutes

    # Logging
    log_level: str = "WARNING"
    log_file: str = ""  # Empty = stdout only

    model_config = {
        "env_prefix": "ETERNALAI_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def image_polling(self) -> PollingPolicy:
        return PollingPolicy(
            interval=self.image_poll_interval,
            max_attempts=self.image_poll_max_attempts,
        )

    @property
    def video_polling(self) -> PollingPolicy:
        return PollingPolicy(
            interval=self.video_poll_interval,
            max_attempts=self.video_poll_max_attempts,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
