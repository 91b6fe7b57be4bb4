"""
Stub Provisioning Provider

Development provider that logs all operations without making real API calls.
Useful for local development and testing.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pipeelo_onboarding.contracts.payloads import AddressDraft, AdminUserDraft, TenantDraft
from pipeelo_onboarding.providers.base import ProvisioningError, ProvisioningProvider, RemoteAccount

logger = logging.getLogger(__name__)


class StubProvisioningProvider(ProvisioningProvider):
    """
    Stub provider for development and testing.

    - Logs every call and keeps it in `calls`
    - Generates fake tokens
    - Fails the operations named in `fail_on`
    """

    def __init__(
        self,
        fail_on: set[str] | None = None,
        issue_permanent_token: bool = False,
    ):
        """
        Args:
            fail_on: Operation names that raise ProvisioningError (e.g. {"login"})
            issue_permanent_token: Return a permanent token directly from account creation
        """
        super().__init__()
        self.fail_on = set(fail_on or ())
        self.issue_permanent_token = issue_permanent_token
        self.calls: list[dict[str, Any]] = []

    def _record(self, operation: str, **details: Any) -> None:
        self.calls.append(
            {"operation": operation, "timestamp": datetime.now(timezone.utc).isoformat(), **details}
        )
        logger.info(f"[STUB] {operation}", extra={"operation": operation})
        if operation in self.fail_on:
            raise ProvisioningError(
                f"{operation} failed: 500 Internal Server Error - simulated failure",
                status_code=500,
                reason="Internal Server Error",
                body="simulated failure",
                retryable=True,
            )

    @property
    def operations(self) -> list[str]:
        return [call["operation"] for call in self.calls]

    async def create_tenant_account(
        self,
        tenant: TenantDraft,
        address: AddressDraft,
        user: AdminUserDraft,
        gateway: str,
    ) -> RemoteAccount:
        self._record("create_tenant_account", tenant_name=tenant.name, gateway=gateway)
        if self.issue_permanent_token:
            return RemoteAccount(permanent_token=f"stub_perm_{uuid4().hex[:16]}")
        return RemoteAccount(token=f"stub_session_{uuid4().hex[:16]}")

    async def login(self, email: str, password: str) -> str:
        self._record("login", email=email)
        return f"stub_session_{uuid4().hex[:16]}"

    async def get_permanent_token(self, short_lived_token: str) -> str:
        self._record("get_permanent_token")
        return f"stub_perm_{uuid4().hex[:16]}"

    async def update_openai(self, key: str) -> dict[str, Any]:
        self.require_token()
        self._record("update_openai")
        return {"status": "ok"}

    async def update_openrouter(self, key: str) -> dict[str, Any]:
        self.require_token()
        self._record("update_openrouter")
        return {"status": "ok"}
