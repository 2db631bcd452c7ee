from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Application settings loaded from FORECAST_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="FORECAST_", env_file=".env", env_file_encoding="utf-8")

    app_env: str = "development"
    log_level: str = "INFO"

    # comma-separated
    cors_allow_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"

    # Market data
    live_rates: bool = True
    market_cache_ttl_seconds: float = 15 * 60
    upstream_timeout_seconds: float = 5.0
    upstream_backoff_seconds: float = 1.0
    refresh_cooldown_seconds: float = 5.0

    # Lead capture
    database_path: Path = BACKEND_ROOT / "instance" / "leads.db"
    # empty disables the admin listings
    admin_password: str = ""

    # Per-client request limit on /api/*
    rate_limit_requests: int = 100
    rate_limit_window_seconds: float = 15 * 60

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


settings = Settings()
