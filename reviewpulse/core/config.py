"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service-wide configuration options."""

    api_v1_prefix: str = "/v1"
    github_api_base: str = "https://api.github.com"
    github_token: str | None = None
    encryption_password: str | None = None
    github_accept: str = "application/vnd.github.v3+json"
    github_user_agent: str = "reviewpulse"
    github_timeout_seconds: float = 30.0
    github_page_size: int = 100
    github_max_pages: int = 50
    review_fetch_concurrency: int = 4
    cache_backend: str = "sqlite"
    database_path: str = "github_data.db"
    redis_url: str = "redis://localhost:6379/0"
    admission_max_requests: int = 5
    admission_window_seconds: float = 60.0
    admission_max_tracked_keys: int = 10_000
    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_exporter: str = "console"
    otel_prometheus_port: int = 9464
    otel_otlp_endpoint: str | None = None

    model_config = SettingsConfigDict(env_prefix="reviewpulse_", env_file=".env", extra="ignore")


settings = Settings()
