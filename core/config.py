"""
Runtime configuration for the NEXIA API.

All settings are read from environment variables (optionally seeded from a
`.env` file) into a single `Settings` object. Components ask for the values
they need through `get_settings()` instead of calling `os.getenv` ad hoc, so
tests can swap the environment and call `reset_settings()`.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from core.exceptions import ConfigurationError

load_dotenv()

DEFAULT_APP_URL = "https://nexia.naveennuwantha.lk"
DEFAULT_GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.0-flash:generateContent"
)


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    environment: str = "development"
    log_level: str = "INFO"
    backend: str = "local"  # local | supabase
    database_url: str = "sqlite+aiosqlite:///./nexia.db"
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_api_url: str = DEFAULT_GEMINI_URL
    app_url: str = DEFAULT_APP_URL
    deep_link_scheme: str = "nexia"
    media_dir: str = "./media"
    media_base_url: str = "http://localhost:8000/media"
    theme_store: str = "memory"  # memory | file
    theme_store_path: str = "./theme_preferences.json"
    cors_origins: List[str] = field(default_factory=list)
    http_timeout_seconds: float = 15.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.getenv("ENVIRONMENT", "development").lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            backend=os.getenv("NEXIA_BACKEND", "local").lower(),
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./nexia.db"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
            supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_api_url=os.getenv("GEMINI_API_URL", DEFAULT_GEMINI_URL),
            app_url=os.getenv("NEXIA_APP_URL", DEFAULT_APP_URL).rstrip("/"),
            deep_link_scheme=os.getenv("NEXIA_DEEP_LINK_SCHEME", "nexia"),
            media_dir=os.getenv("NEXIA_MEDIA_DIR", "./media"),
            media_base_url=os.getenv(
                "NEXIA_MEDIA_BASE_URL", "http://localhost:8000/media"
            ).rstrip("/"),
            theme_store=os.getenv("NEXIA_THEME_STORE", "memory").lower(),
            theme_store_path=os.getenv(
                "NEXIA_THEME_STORE_PATH", "./theme_preferences.json"
            ),
            cors_origins=_env_list(
                "CORS_ORIGINS", "http://localhost:3000,http://localhost:19006"
            ),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "15")),
        )

    def require_supabase(self) -> None:
        """Raise unless the Supabase project URL, anon key and JWT secret are set"""
        missing = [
            name
            for name, value in (
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_ANON_KEY", self.supabase_anon_key),
                ("SUPABASE_JWT_SECRET", self.supabase_jwt_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "supabase", f"missing environment variables: {', '.join(missing)}"
            )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, reading the environment on first use"""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment"""
    global _settings
    _settings = None
