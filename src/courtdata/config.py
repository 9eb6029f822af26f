from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from courtdata.types import ProviderConfig
from courtdata.validation import normalize_api_key


class Settings(BaseSettings):
    """Application configuration loaded from environment/.env."""

    environment: str = Field(default="dev")
    default_provider: str = Field(default="DISTRICT_HIGH_COURT")
    api_endpoint: str | None = Field(default=None)
    api_key: str | None = Field(default=None, alias="api_token")
    court_code: str | None = Field(default=None)
    bench_code: str | None = Field(default=None)
    portal_url: str | None = Field(default=None)
    user_agent: str = Field(default="courtdata/0.1")
    api_timeout: float = Field(default=30.0, gt=0)
    api_max_retries: int = Field(default=2, ge=0)
    api_backoff_seconds: float = Field(default=0.5, ge=0)
    api_max_backoff_seconds: float = Field(default=8.0, ge=0)
    captcha_threshold: int = Field(default=5, ge=1)
    fixture_path: Path = Field(default=Path("data/fixtures/mock_portal.json"))
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="COURTDATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            api_endpoint=self.api_endpoint,
            api_key=normalize_api_key(self.api_key) or None,
            court_code=self.court_code,
            bench_code=self.bench_code,
            portal_url=self.portal_url,
            timeout=self.api_timeout,
            retry_attempts=self.api_max_retries,
            backoff_seconds=self.api_backoff_seconds,
            max_backoff_seconds=self.api_max_backoff_seconds,
            user_agent=self.user_agent,
        )
