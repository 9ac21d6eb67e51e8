"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from two
# sources (in priority order):
#
#   1. **Environment variables** - e.g., API_BASE_URL=https://...
#   2. **.env file** - key=value lines in the project root .env file
#
# Field name `api_base_url` maps to env var `API_BASE_URL`.
# Defaults apply when neither source defines a field.
#
# The .env file is never committed. Use .env.example as a template.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Church portal settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === External REST backend ===
    # Base URL including the API prefix, e.g. https://church.example.org/api
    api_base_url: str = "http://localhost:8000/api"
    backend_timeout_seconds: float = 30.0

    # === Admin panel ===
    # Empty string = "not configured" → /api/admin/verify-pin answers 500.
    admin_pin_code: str = ""

    # === Cached content feeds ===
    cache_backend: str = "sqlite"  # "sqlite" | "memory"
    cache_db_path: str = "data/content_cache.db"
    cache_memory_max_entries: int = 256
    cache_default_duration_ms: int = 5 * 60 * 1000

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_allowed_origins: str = ""  # comma-separated; empty = allow all

    def get_cors_origins(self) -> list[str]:
        """Return the configured CORS origins as a list (empty = allow all)."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
