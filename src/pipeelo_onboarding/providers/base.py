"""
Provisioning Provider Base

Abstract interface for the remote tenant-provisioning service.
Implementations: Pipeelo HTTP API, Stub (for development).

A provider instance holds one bearer credential and is owned by one
onboarding session.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from pipeelo_onboarding.contracts.payloads import AddressDraft, AdminUserDraft, TenantDraft

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Error from the provisioning service."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str | None = None,
        body: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.retryable = retryable


class MissingTokenError(ProvisioningError):
    """A call needing bearer auth was made before a token was set."""

    def __init__(self, message: str = "authorization token not set"):
        super().__init__(message)


@dataclass
class RemoteAccount:
    """
    Account created by the provisioning service.

    Carries a short-lived token, a permanent token, or both.
    """

    token: str | None = None
    permanent_token: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class QueueResult:
    """Outcome of one deferred request."""

    success: bool
    result: Any = None
    error: Exception | None = None


class ProvisioningProvider(ABC):
    """
    Abstract interface for provisioning providers.

    Implementations must handle:
    - Creating the remote tenant account
    - The login / permanent token exchange
    - Pushing LLM provider keys to the remote account
    """

    def __init__(self):
        self._token: str | None = None
        self._queue: list[Callable[[], Awaitable[Any]]] = []

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        """Install (or clear, with None) the bearer token used by later calls."""
        self._token = token or None

    def require_token(self) -> str:
        if not self._token:
            raise MissingTokenError()
        return self._token

    @abstractmethod
    async def create_tenant_account(
        self,
        tenant: TenantDraft,
        address: AddressDraft,
        user: AdminUserDraft,
        gateway: str,
    ) -> RemoteAccount:
        """
        Create the remote tenant account.

        Args:
            tenant: Company data
            address: Company address
            user: Admin user credentials
            gateway: Payment gateway selector

        Returns:
            RemoteAccount with a token and/or permanent token
        """
        ...

    @abstractmethod
    async def login(self, email: str, password: str) -> str:
        """Exchange admin credentials for a short-lived session token."""
        ...

    @abstractmethod
    async def get_permanent_token(self, short_lived_token: str) -> str:
        """Exchange a short-lived session token for a long-lived token."""
        ...

    @abstractmethod
    async def update_openai(self, key: str) -> dict[str, Any]:
        """Push an OpenAI key to the remote account. Requires a token."""
        ...

    @abstractmethod
    async def update_openrouter(self, key: str) -> dict[str, Any]:
        """Push an OpenRouter key to the remote account. Requires a token."""
        ...

    def enqueue(self, request: Callable[[], Awaitable[Any]]) -> None:
        """Defer a zero-argument coroutine function until execute_queue()."""
        self._queue.append(request)

    async def execute_queue(self) -> list[QueueResult]:
        """
        Run deferred requests one after another.

        A failing request never stops the rest. The queue is emptied.

        Returns:
            One QueueResult per request, in submission order
        """
        queue, self._queue = self._queue, []
        results = []
        for request in queue:
            try:
                results.append(QueueResult(success=True, result=await request()))
            except Exception as e:
                logger.warning(f"Deferred provisioning request failed: {e}")
                results.append(QueueResult(success=False, error=e))
        return results

    async def close(self) -> None:
        """Release resources held by the provider."""
