"""
Onboarding Settings

Environment-driven configuration for the onboarding service.
Loaded lazily through get_settings() to avoid import-time side effects.
"""

import functools

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./onboarding.db"
    DATABASE_ECHO: bool = False

    # Provisioning API
    PROVISIONING_PROVIDER: str = "pipeelo"  # pipeelo, stub
    PROVISIONING_API_URL: str = "https://api.pipeelo.com/v1"
    PROVISIONING_TIMEOUT: float = 30.0
    ONBOARDING_GATEWAY: str = "asaas"

    # Hosting page carrying the csrf-token meta tag (interactive deployments only)
    CSRF_PAGE_PATH: str | None = None

    # Wizard
    ONBOARDING_TOTAL_STEPS: int = 7
    ONBOARDING_DISABLED_STEPS: list[int] = [5]
    DEPLOYMENT_DOMAIN: str = "pipeelo.com"

    # Fernet key for secrets at rest (API keys, provisioning tokens)
    ONBOARDING_ENCRYPTION_KEY: str | None = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@functools.lru_cache()
def get_settings() -> Settings:
    """Get settings (cached)."""
    return Settings()
