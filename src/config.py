"""Pydantic Settings: loads configuration from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

IPHONE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    # Empty disables the X-API-Key check.
    api_key: str = ""
    log_level: str = "INFO"

    browser_headless: bool = True
    navigation_timeout_seconds: float = 30.0
    navigation_wait_until: str = "networkidle"
    content_timeout_seconds: float = 15.0
    settle_delay_seconds: float = 2.0

    viewport_width: int = 800
    viewport_height: int = 1200
    device_scale_factor: float = 2
    user_agent: str = IPHONE_USER_AGENT

    pdf_format: str = "A4"


@lru_cache
def get_settings() -> Settings:
    return Settings()
