from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "topicsource"
    env: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


class SourceConfig(BaseModel):
    """Configuration for one data source instance."""

    name: str  # registry key, e.g. "static"
    key: Optional[str] = None  # instance label; defaults to `name`
    enabled: bool = True
    fixture: Optional[str] = None  # JSON fixture path for the static source
    base_url: Optional[str] = None
    token: Optional[str] = None
    timeout: float = 5.0
    verify_ssl: bool = True
    require_question_text: bool = True
    options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def instance_key(self) -> str:
        return self.key or self.name


class AvailabilityConfig(BaseModel):
    """Periodic availability polling."""

    enabled: bool = False
    interval_seconds: float = 30.0
    probe_timeout: float = 2.0


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only.

    Sources are given as JSON, e.g.
    TOPICSOURCE_SOURCES='[{"name": "static", "fixture": "topics.json"}]'
    """

    model_config = SettingsConfigDict(
        env_prefix="TOPICSOURCE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    sources: List[SourceConfig] = Field(default_factory=list)
    availability: AvailabilityConfig = AvailabilityConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]
