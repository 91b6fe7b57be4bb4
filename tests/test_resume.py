"""
Tests for resuming an onboarding session from stored data.
"""

import asyncio
from uuid import uuid4

import pytest

from pipeelo_onboarding.catalog import TemplateCatalog
from pipeelo_onboarding.contracts.records import Tenant
from pipeelo_onboarding.onboarding import OnboardingOrchestrator, PreconditionError, StepInProgressError
from pipeelo_onboarding.providers.stub import StubProvisioningProvider


@pytest.fixture
def fresh_session(seeded_store, settings):
    """Build a new orchestrator over the same store, like a page reload."""

    def build():
        return OnboardingOrchestrator(
            seeded_store, StubProvisioningProvider(), catalog=TemplateCatalog(seeded_store), settings=settings
        )

    return build


class TestResume:
    """Tests for resume()."""

    @pytest.mark.parametrize("stop_step", [2, 3, 4, 6])
    async def test_resumes_at_stored_step(self, orchestrator, complete_until, fresh_session, stop_step):
        """Test that a new session continues at the stored step."""
        await complete_until(orchestrator, stop_step)

        session = fresh_session()
        state = await session.resume(orchestrator.state.tenant_id)

        assert state.current_step == stop_step
        assert state.tenant.id == orchestrator.state.tenant_id
        assert state.admin_user.email == "maria@acme.com.br"
        assert state.address.city == "São Paulo"

    async def test_loads_configured_steps(self, orchestrator, complete_until, fresh_session):
        """Test that saved step data is loaded back."""
        await complete_until(orchestrator, 6)

        state = await fresh_session().resume(orchestrator.state.tenant_id)

        assert state.api_configuration.openrouter_key == "sk-or-test"
        assert state.erp_configuration.erp_template_name == "TOTVS Protheus"
        assert [a.name for a in state.assistants] == ["Atendimento"]
        assert state.advanced_configuration is None

    async def test_resumed_session_continues(self, orchestrator, complete_until, fresh_session, advanced_payload):
        """Test completing the next step after a resume."""
        await complete_until(orchestrator, 6)
        session = fresh_session()
        await session.resume(orchestrator.state.tenant_id)

        outcome = await session.complete_step(6, advanced_payload)

        assert outcome.advanced is True
        assert outcome.current_step == 7

    async def test_back_does_not_change_stored_progress(self, orchestrator, complete_until, fresh_session):
        """Test that back navigation is in-memory only."""
        await complete_until(orchestrator, 4)

        assert orchestrator.back() == 3
        assert orchestrator.back() == 2
        state = await fresh_session().resume(orchestrator.state.tenant_id)

        assert state.current_step == 4

    async def test_token_installed(self, orchestrator, complete_until, fresh_session):
        """Test that the stored provisioning token is installed on resume."""
        await complete_until(orchestrator, 2)
        session = fresh_session()

        await session.resume(orchestrator.state.tenant_id)

        assert session.provider.token == orchestrator.state.tenant.pipeelo_token

    async def test_token_cleared_for_tenant_without_token(self, orchestrator, complete_until, seeded_store):
        """Test that switching tenants clears the previous token."""
        await complete_until(orchestrator, 2)
        other = (
            await seeded_store.save_tenant(
                Tenant(name="Beta Foods", document="98765432000110", phone_number="11988887777", email="b@beta.com")
            )
        ).data

        state = await orchestrator.resume(other.id)

        assert orchestrator.provider.token is None
        assert state.current_step == 1
        assert state.progress is None

    async def test_missing_tenant(self, orchestrator):
        """Test resuming an unknown tenant."""
        tenant_id = str(uuid4())

        with pytest.raises(PreconditionError):
            await orchestrator.resume(tenant_id)

        assert orchestrator.state.error == f"Tenant not found: {tenant_id}"

    async def test_reload(self, orchestrator, complete_until, api_payload):
        """Test reload after a step."""
        await complete_until(orchestrator, 2)
        await orchestrator.complete_step(2, api_payload)

        state = await orchestrator.reload()

        assert state.current_step == 3
        assert state.api_configuration.openai_key == "sk-openai-test"

    async def test_reload_without_tenant(self, orchestrator):
        """Test reload before step 1."""
        with pytest.raises(PreconditionError):
            await orchestrator.reload()

    async def test_rejected_while_saving(self, orchestrator, complete_until, seeded_store, api_payload):
        """Test that resume() does not replace the state of a step in flight."""
        await complete_until(orchestrator, 2)
        tenant_id = orchestrator.state.tenant_id
        release = asyncio.Event()
        original = seeded_store.save_api_configuration

        async def slow_save(config):
            await release.wait()
            return await original(config)

        seeded_store.save_api_configuration = slow_save
        pending = asyncio.create_task(orchestrator.complete_step(2, api_payload))
        while not orchestrator.state.saving:
            await asyncio.sleep(0)

        with pytest.raises(StepInProgressError):
            await orchestrator.resume(tenant_id)

        release.set()
        outcome = await pending

        assert outcome.advanced is True
        assert orchestrator.state.saving is False
        assert (await orchestrator.resume(tenant_id)).current_step == 3
