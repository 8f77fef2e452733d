"""
Application configuration management.

Each service builds exactly one settings object at startup and hands it to the
components that need it. Nothing below the application factory reads the
environment directly.
"""

import re
from typing import Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*(b|kb|mb|gb)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024 ** 2, "gb": 1024 ** 3}


def parse_size(value: Union[str, int]) -> int:
    """
    Convert a human size string such as ``10mb`` into a byte count.

    Args:
        value: Integer byte count or string with an optional b/kb/mb/gb suffix

    Returns:
        Size in bytes

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, int):
        return value

    match = _SIZE_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid size value: {value!r}")

    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[(unit or "b").lower()]


class CommonSettings(BaseSettings):
    """Settings shared by both services."""

    # Application
    log_level: str = "INFO"
    max_request_size: int = 10 * 1024 * 1024

    # Rate limiting
    rate_limit_window_seconds: float = 900.0
    rate_limit_max: int = 100
    rate_limit_redis_url: Optional[str] = None
    trust_proxy: bool = False

    @field_validator("max_request_size", mode="before")
    @classmethod
    def _parse_request_size(cls, value):
        return parse_size(value)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


class GatewaySettings(CommonSettings):
    """Settings for the webhook intake gateway."""

    port: int = 4001

    # GitHub
    github_token: str
    github_webhook_secret: Optional[str] = None
    github_api_url: str = "https://api.github.com"

    # Analysis service
    review_service_url: str = "http://localhost:4002"
    review_language: Optional[str] = "typescript"

    # Outbound hops, shortest first
    diff_fetch_timeout_seconds: float = 10.0
    github_api_timeout_seconds: float = 30.0
    review_service_timeout_seconds: float = 120.0

    # Retry policy for the transport client
    http_max_retries: int = 3
    http_retry_base_delay_seconds: float = 0.5

    @field_validator("github_webhook_secret", "review_language", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AnalysisSettings(CommonSettings):
    """Settings for the model-backed analysis service."""

    port: int = 4002

    # OpenAI
    openai_api_key: str
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_deployment: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 90.0

    # Diff ceiling in characters
    max_diff_size: int = 1_000_000
