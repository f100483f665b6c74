"""
Centralized application settings using Pydantic.

All environment variables are read once at startup and validated.
Use this instead of scattered os.getenv() calls throughout the codebase.
"""

from pathlib import Path

from accountform.core import config
from pydantic import SecretStr
from pydantic_settings import BaseSettings


class InseeSettings(BaseSettings):
    """INSEE Sirene API configuration."""

    INSEE_API_BASE: str = config.INSEE_API_BASE
    INSEE_API_KEY: SecretStr = SecretStr("")
    INSEE_TIMEOUT_SECONDS: float = config.LOOKUP_TIMEOUT_SECONDS

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class EmailSettings(BaseSettings):
    """Transactional email (Resend) configuration."""

    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_API_KEY: SecretStr = SecretStr("")
    FROM_EMAIL: str = "noreply@xeilom.fr"
    TEAM_EMAIL: str = "communication@xeilom.fr"
    EMAIL_TIMEOUT_SECONDS: float = 30.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class SecuritySettings(BaseSettings):
    """CSRF, encryption and rate limiting configuration."""

    SECURITY_ENABLED: bool = True
    ENCRYPTION_KEY: SecretStr = SecretStr("")
    CSRF_TOKEN_TTL_SECONDS: int = config.CSRF_TOKEN_TTL_SECONDS
    RATE_LIMIT_WINDOW_SECONDS: int = config.RATE_LIMIT_WINDOW_SECONDS
    RATE_LIMIT_MAX_REQUESTS: int = config.RATE_LIMIT_MAX_REQUESTS
    SESSION_COOKIE_SECURE: bool = False
    ALLOWED_ORIGINS: str = ""  # Comma-separated

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


class FormSettings(BaseSettings):
    """Account form behaviour."""

    DRAFT_STORAGE_DIR: str = ""
    DRAFT_DEBOUNCE_SECONDS: float = 2.0
    DRAFT_RETENTION_DAYS: int = config.DRAFT_RETENTION_DAYS
    STEP_TRANSITION_SECONDS: float = config.STEP_TRANSITION_SECONDS
    SEARCH_DEBOUNCE_SECONDS: float = config.SEARCH_DEBOUNCE_SECONDS
    SEARCH_MIN_LENGTH: int = config.SEARCH_MIN_LENGTH
    PDF_RENDERING_ENABLED: bool = True
    DOCUMENTS_DIR: str = "./documents"
    SEND_API_BASE: str = ""  # Deliver through a remote /send endpoint instead of in-process
    SESSION_IDLE_TTL_SECONDS: float = 1800.0  # Idle sessions are flushed and dropped after this

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def documents_dir(self) -> Path:
        return Path(self.DOCUMENTS_DIR.strip() or "./documents").resolve()


class AppSettings(BaseSettings):
    """General application settings."""

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    TZ: str = "Europe/Paris"

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"


# Singleton instances - loaded once at module import
insee_settings = InseeSettings()
email_settings = EmailSettings()
security_settings = SecuritySettings()
form_settings = FormSettings()
app_settings = AppSettings()
