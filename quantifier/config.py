"""Application configuration loaded from environment variables."""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend API
    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 30.0

    # Job polling
    poll_interval_seconds: float = 2.0
    max_poll_failures: int = 5  # 0 = retry forever
    poll_backoff_max_ticks: int = 8

    # Upload slots shown per company
    upload_years: list[int] = [2024, 2023, 2022, 2021]

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "QUANTIFIER_", "extra": "ignore"}

    @field_validator("api_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    def backoff_ticks(self, failures: int) -> int:
        """Number of ticks to skip after the given count of consecutive poll failures."""
        if failures <= 0:
            return 0
        return min(2 ** (failures - 1), max(self.poll_backoff_max_ticks, 1)) - 1


settings = Settings()
