"""
Pipeelo Provisioning Provider

HTTP client for the Pipeelo tenant-provisioning API.

Endpoints:
- POST /tenants: create the remote account
- POST /auth/login: admin login, returns "<realm>|<token>"
- POST /auth/permanent-token: exchange a session token for a permanent one
- POST /openai, POST /open-router: push LLM provider keys (bearer auth)
"""

import logging
from typing import Any

import httpx

from pipeelo_onboarding.contracts.payloads import AddressDraft, AdminUserDraft, TenantDraft
from pipeelo_onboarding.providers.base import ProvisioningError, ProvisioningProvider, RemoteAccount
from pipeelo_onboarding.providers.pipeelo.csrf import read_csrf_token
from pipeelo_onboarding.validation import digits_only

logger = logging.getLogger(__name__)


def _unwrap(response_data: dict[str, Any]) -> dict[str, Any]:
    """Some endpoints wrap their payload in a "data" object."""
    data = response_data.get("data")
    return data if isinstance(data, dict) else response_data


class PipeeloProvisioningClient(ProvisioningProvider):
    """
    Pipeelo API provider.

    Every request carries JSON Accept/Content-Type headers, the bearer
    token when one is set, and X-CSRF-TOKEN when the hosting page exposes one.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        csrf_page_path: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Pipeelo provider.

        Args:
            api_url: Base URL of the provisioning API (e.g., "https://api.pipeelo.com/v1")
            timeout: HTTP request timeout
            csrf_page_path: Path of the page carrying the csrf-token meta tag; None omits the header
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__()
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.csrf_page_path = csrf_page_path
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._csrf_token: str | None = None
        self._csrf_loaded = False

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_csrf_token(self) -> str | None:
        """Read the CSRF token from the hosting page once per client."""
        if not self.csrf_page_path:
            return None
        if not self._csrf_loaded:
            client = await self._get_client()
            try:
                response = await client.get(f"{self.api_url}{self.csrf_page_path}", headers={"Accept": "text/html"})
                response.raise_for_status()
                self._csrf_token = read_csrf_token(response.text)
            except httpx.HTTPError as e:
                logger.warning(f"Could not load CSRF token page: {e}")
            self._csrf_loaded = True
        return self._csrf_token

    async def _make_request(
        self,
        action: str,
        endpoint: str,
        json_data: dict[str, Any],
        token: str | None = None,
    ) -> dict[str, Any]:
        """
        POST to the provisioning API.

        Args:
            action: Human-readable action used in error messages
            endpoint: Path below the base URL
            json_data: JSON body
            token: Bearer token overriding the installed one

        Raises:
            ProvisioningError: On transport errors and non-2xx responses
        """
        client = await self._get_client()
        url = f"{self.api_url}{endpoint}"

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        bearer = token or self._token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        csrf_token = await self._get_csrf_token()
        if csrf_token:
            headers["X-CSRF-TOKEN"] = csrf_token

        try:
            response = await client.post(url, json=json_data, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}", extra={"endpoint": endpoint})
            raise ProvisioningError(f"{action} failed: {e}", retryable=True) from e

        if not response.is_success:
            body = response.text
            raise ProvisioningError(
                f"{action} failed: {response.status_code} {response.reason_phrase} - {body}",
                status_code=response.status_code,
                reason=response.reason_phrase,
                body=body,
                retryable=response.status_code >= 500,
            )

        if not response.content:
            return {}
        try:
            response_data = response.json()
        except ValueError as e:
            raise ProvisioningError(f"{action} failed: invalid JSON response", body=response.text) from e
        return response_data if isinstance(response_data, dict) else {"data": response_data}

    async def create_tenant_account(
        self,
        tenant: TenantDraft,
        address: AddressDraft,
        user: AdminUserDraft,
        gateway: str,
    ) -> RemoteAccount:
        """Create the remote account with documents and phone digits-only."""
        payload = {
            "tenant": {
                "name": tenant.name,
                "document": digits_only(tenant.document),
                "phone_number": digits_only(tenant.phone_number),
                "address": {
                    "street": address.street,
                    "number": address.number,
                    "neighborhood": address.neighborhood,
                    "country": address.country,
                    "state": address.state,
                    "city": address.city,
                    "complement": address.complement,
                    "postal_code": digits_only(address.postal_code),
                },
            },
            "user": {
                "name": user.name,
                "email": user.email,
                "password": user.password,
                "document": digits_only(user.document),
            },
            "gateway": gateway,
        }

        response = await self._make_request("create tenant account", "/tenants", payload)
        data = _unwrap(response)

        logger.info("Created remote tenant account", extra={"tenant_name": tenant.name})

        return RemoteAccount(
            token=data.get("token"),
            permanent_token=data.get("permanent_token"),
            raw_response=response,
        )

    async def login(self, email: str, password: str) -> str:
        """Log in as the admin; returns the token part of "<realm>|<token>"."""
        response = await self._make_request("login", "/auth/login", {"email": email, "password": password})
        composite = _unwrap(response).get("token")
        if not composite:
            raise ProvisioningError("login failed: response carries no token", body=str(response))
        return composite.split("|", 1)[1] if "|" in composite else composite

    async def get_permanent_token(self, short_lived_token: str) -> str:
        response = await self._make_request(
            "permanent token exchange", "/auth/permanent-token", {}, token=short_lived_token
        )
        data = _unwrap(response)
        token = data.get("permanent_token") or data.get("token")
        if not token:
            raise ProvisioningError("permanent token exchange failed: response carries no token", body=str(response))
        return token

    async def update_openai(self, key: str) -> dict[str, Any]:
        self.require_token()
        response = await self._make_request("update OpenAI key", "/openai", {"api_key": key})
        logger.info("Pushed OpenAI key to remote account")
        return response

    async def update_openrouter(self, key: str) -> dict[str, Any]:
        self.require_token()
        response = await self._make_request("update OpenRouter key", "/open-router", {"api_key": key})
        logger.info("Pushed OpenRouter key to remote account")
        return response
