"""
Provisioning Providers

Provider implementations for the remote tenant-provisioning service.
Supports the Pipeelo API (production) and Stub (development).
"""

from pipeelo_onboarding.providers.base import (
    MissingTokenError,
    ProvisioningError,
    ProvisioningProvider,
    QueueResult,
    RemoteAccount,
)
from pipeelo_onboarding.settings import Settings, get_settings


def get_provider(settings: Settings | None = None) -> ProvisioningProvider:
    """Build a new provider instance from PROVISIONING_PROVIDER."""
    settings = settings or get_settings()

    if settings.PROVISIONING_PROVIDER == "stub":
        from pipeelo_onboarding.providers.stub import StubProvisioningProvider

        return StubProvisioningProvider()

    if settings.PROVISIONING_PROVIDER == "pipeelo":
        from pipeelo_onboarding.providers.pipeelo import PipeeloProvisioningClient

        return PipeeloProvisioningClient(
            api_url=settings.PROVISIONING_API_URL,
            timeout=settings.PROVISIONING_TIMEOUT,
            csrf_page_path=settings.CSRF_PAGE_PATH,
        )

    raise ValueError(f"Unknown provisioning provider: {settings.PROVISIONING_PROVIDER}")


__all__ = [
    "MissingTokenError",
    "ProvisioningError",
    "ProvisioningProvider",
    "QueueResult",
    "RemoteAccount",
    "get_provider",
]
