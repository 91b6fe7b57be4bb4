"""
Tests for the Pipeelo provisioning client and the deferred queue.
"""

import json

import httpx
import pytest

from pipeelo_onboarding.contracts.payloads import TenantStepPayload
from pipeelo_onboarding.providers import MissingTokenError, ProvisioningError
from pipeelo_onboarding.providers.pipeelo import PipeeloProvisioningClient, read_csrf_token
from pipeelo_onboarding.providers.stub import StubProvisioningProvider

API_URL = "https://api.test/v1"

CSRF_PAGE = """
<html><head>
  <meta charset="utf-8">
  <meta name="csrf-token" content="csrf-abc123">
</head><body></body></html>
"""


class Recorder:
    """MockTransport handler that records requests and replies per path."""

    def __init__(self, responses=None):
        self.requests: list[httpx.Request] = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses.get(request.url.path, httpx.Response(200, json={}))
        return reply(request) if callable(reply) else reply


def make_client(recorder, **kwargs):
    return PipeeloProvisioningClient(API_URL, transport=httpx.MockTransport(recorder), **kwargs)


class TestCsrf:
    """Tests for the csrf-token meta tag lookup."""

    def test_read_token(self):
        """Test reading the meta tag."""
        assert read_csrf_token(CSRF_PAGE) == "csrf-abc123"

    def test_missing_token(self):
        """Test pages without the tag."""
        assert read_csrf_token("<html><head></head></html>") is None
        assert read_csrf_token(None) is None


class TestRequests:
    """Tests for request shape and error reporting."""

    async def test_create_tenant_account_normalizes_payload(self, tenant_payload):
        """Test digits-only documents and the gateway selector."""
        recorder = Recorder({"/v1/tenants": httpx.Response(201, json={"token": "short"})})
        client = make_client(recorder)
        data = TenantStepPayload.model_validate(tenant_payload)

        account = await client.create_tenant_account(data.tenant, data.address, data.user, "asaas")
        await client.close()

        assert account.token == "short"
        assert account.permanent_token is None
        body = json.loads(recorder.requests[0].content)
        assert body["tenant"]["document"] == "12345678000190"
        assert body["tenant"]["phone_number"] == "11999998888"
        assert body["tenant"]["address"]["postal_code"] == "01000000"
        assert body["user"]["document"] == "12345678909"
        assert body["gateway"] == "asaas"

    async def test_json_headers_without_token(self):
        """Test default headers and no Authorization before a token is set."""
        recorder = Recorder({"/v1/auth/login": httpx.Response(200, json={"token": "realm|tok"})})
        client = make_client(recorder)

        await client.login("maria@acme.com.br", "Sup3rSecret")
        await client.close()

        request = recorder.requests[0]
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Content-Type"] == "application/json"
        assert "Authorization" not in request.headers
        assert "X-CSRF-TOKEN" not in request.headers

    async def test_login_returns_second_segment(self):
        """Test the composite "<realm>|<token>" login token."""
        recorder = Recorder({"/v1/auth/login": httpx.Response(200, json={"token": "42|abcdef"})})
        client = make_client(recorder)

        assert await client.login("maria@acme.com.br", "Sup3rSecret") == "abcdef"
        await client.close()

    async def test_permanent_token_uses_given_token(self):
        """Test that the exchange is authorized with the short-lived token."""
        recorder = Recorder({"/v1/auth/permanent-token": httpx.Response(200, json={"token": "perm"})})
        client = make_client(recorder)
        client.set_token("other")

        assert await client.get_permanent_token("short") == "perm"
        await client.close()

        assert recorder.requests[0].headers["Authorization"] == "Bearer short"

    async def test_bearer_and_csrf_headers(self):
        """Test bearer token and CSRF header on key pushes."""
        recorder = Recorder({"/v1/onboarding": httpx.Response(200, text=CSRF_PAGE)})
        client = make_client(recorder, csrf_page_path="/onboarding")
        client.set_token("perm")

        await client.update_openai("sk-openai")
        await client.update_openrouter("sk-or")
        await client.close()

        posts = [r for r in recorder.requests if r.method == "POST"]
        assert [r.url.path for r in posts] == ["/v1/openai", "/v1/open-router"]
        for request in posts:
            assert request.headers["Authorization"] == "Bearer perm"
            assert request.headers["X-CSRF-TOKEN"] == "csrf-abc123"
        assert json.loads(posts[0].content) == {"api_key": "sk-openai"}
        # page fetched once per client
        assert len([r for r in recorder.requests if r.method == "GET"]) == 1

    async def test_non_2xx_raises_with_details(self, tenant_payload):
        """Test error message format and attributes."""
        recorder = Recorder({"/v1/tenants": httpx.Response(409, text="document already registered")})
        client = make_client(recorder)
        data = TenantStepPayload.model_validate(tenant_payload)

        with pytest.raises(ProvisioningError) as exc_info:
            await client.create_tenant_account(data.tenant, data.address, data.user, "asaas")
        await client.close()

        error = exc_info.value
        assert str(error) == "create tenant account failed: 409 Conflict - document already registered"
        assert error.status_code == 409
        assert error.reason == "Conflict"
        assert error.body == "document already registered"

    async def test_transport_error(self):
        """Test connection failures surfacing as ProvisioningError without status."""

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(Recorder({"/v1/auth/login": refuse}))

        with pytest.raises(ProvisioningError) as exc_info:
            await client.login("maria@acme.com.br", "Sup3rSecret")
        await client.close()

        assert exc_info.value.status_code is None
        assert exc_info.value.retryable is True


class TestMissingToken:
    """Tests for fail-fast key pushes."""

    @pytest.mark.parametrize("method", ["update_openai", "update_openrouter"])
    async def test_fails_without_network(self, method):
        """Test that no request is made without a token."""
        recorder = Recorder()
        client = make_client(recorder)

        with pytest.raises(MissingTokenError, match="authorization token not set"):
            await getattr(client, method)("sk-key")
        await client.close()

        assert recorder.requests == []

    async def test_cleared_token(self):
        """Test that set_token(None) clears the credential."""
        client = make_client(Recorder())
        client.set_token("perm")
        client.set_token(None)

        assert client.token is None
        with pytest.raises(MissingTokenError):
            await client.update_openai("sk-key")
        await client.close()


class TestQueue:
    """Tests for the deferred request queue."""

    async def test_failures_do_not_abort(self):
        """Test per-item results and queue reset."""
        provider = StubProvisioningProvider()
        calls = []

        async def first():
            calls.append("first")
            return 1

        async def second():
            calls.append("second")
            raise ProvisioningError("boom")

        async def third():
            calls.append("third")
            return 3

        for request in (first, second, third):
            provider.enqueue(request)
        results = await provider.execute_queue()

        assert calls == ["first", "second", "third"]
        assert [r.success for r in results] == [True, False, True]
        assert results[0].result == 1
        assert str(results[1].error) == "boom"
        assert await provider.execute_queue() == []

    async def test_missing_token_reported_per_item(self):
        """Test queued key pushes without a token."""
        provider = StubProvisioningProvider()
        provider.enqueue(lambda: provider.update_openai("sk-openai"))

        results = await provider.execute_queue()

        assert results[0].success is False
        assert isinstance(results[0].error, MissingTokenError)
        assert provider.calls == []
