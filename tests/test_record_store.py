"""
Tests for the record store.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import select

from pipeelo_onboarding.contracts.records import (
    Address,
    ApiConfiguration,
    Assistant,
    ErpConfiguration,
    OnboardingProgress,
    OnboardingStatus,
    PromptTemplate,
    Tenant,
    User,
)
from pipeelo_onboarding.persistence import StoreErrorKind, TenantModel
from pipeelo_onboarding.settings import get_settings


def make_tenant(**overrides) -> Tenant:
    data = {
        "name": "Acme Co",
        "document": "12.345.678/0001-90",
        "phone_number": "11999998888",
        "email": "contato@acme.com.br",
        "sector": "Varejo",
    }
    data.update(overrides)
    return Tenant(**data)


async def create_tenant(store, admin_email=None, **overrides) -> Tenant:
    tenant = (await store.save_tenant(make_tenant(**overrides))).data
    if admin_email:
        await store.save_user(User(tenant_id=tenant.id, name="Admin", email=admin_email, role="admin"))
    return tenant


class TestIdentity:
    """Tests for the id and natural key policy."""

    async def test_insert_assigns_uuid_and_timestamps(self, store):
        """Test that saved records echo the server-assigned fields."""
        result = await store.save_tenant(make_tenant())

        assert result.success is True
        assert len(result.data.id) == 36
        assert result.data.created_at is not None
        assert result.data.document == "12345678000190"

    async def test_invalid_id_inserts(self, store):
        """Test that a non-UUID id is treated as new."""
        result = await store.save_address(
            Address(
                id="address_tmp_1",
                street="Rua A",
                number="1",
                neighborhood="Centro",
                state="SP",
                city="São Paulo",
                postal_code="01000000",
            )
        )

        assert result.success is True
        assert result.data.id != "address_tmp_1"

    async def test_valid_id_updates(self, store):
        """Test update by id."""
        tenant = await create_tenant(store)

        result = await store.save_tenant(tenant.model_copy(update={"name": "Acme Ltda"}))

        assert result.data.id == tenant.id
        assert (await store.get_tenant(tenant.id)).data.name == "Acme Ltda"

    async def test_tenant_coalesced_by_document_and_admin_email(self, store):
        """Test natural key duplicate check."""
        tenant = await create_tenant(store, admin_email="maria@acme.com.br")

        again = await store.save_tenant(make_tenant(name="Acme Again"), admin_email="MARIA@acme.com.br")
        other = await store.save_tenant(make_tenant(name="Someone Else"), admin_email="joao@acme.com.br")

        assert again.data.id == tenant.id
        assert other.data.id != tenant.id

    async def test_tenant_without_admin_is_coalesced(self, store):
        """Test retry after a step that stopped before creating the admin."""
        tenant = await create_tenant(store)

        found = await store.find_tenant_by_natural_key("12345678000190", "maria@acme.com.br")

        assert found.data.id == tenant.id

    async def test_admin_user_coalesced_by_tenant(self, store):
        """Test one admin per tenant."""
        tenant = await create_tenant(store)
        first = await store.save_user(User(tenant_id=tenant.id, name="Maria", email="maria@acme.com.br"), password="Sup3rSecret")
        second = await store.save_user(User(tenant_id=tenant.id, name="Maria S.", email="maria@acme.com.br"), password="Sup3rSecret")

        assert first.data.id == second.data.id
        assert (await store.get_admin_user(tenant.id)).data.name == "Maria S."

    async def test_configuration_coalesced_by_tenant(self, store):
        """Test one configuration row per tenant."""
        tenant = await create_tenant(store)
        first = await store.save_api_configuration(ApiConfiguration(tenant_id=tenant.id, openai_key="sk-1"))
        second = await store.save_api_configuration(ApiConfiguration(tenant_id=tenant.id, openai_key="sk-2"))

        assert first.data.id == second.data.id
        assert (await store.get_api_configuration(tenant.id)).data.openai_key == "sk-2"


class TestErrors:
    """Tests for structured error kinds."""

    async def test_dangling_prompt_template(self, store):
        """Test foreign key pre-check on assistants."""
        tenant = await create_tenant(store)

        result = await store.save_assistant(
            Assistant(tenant_id=tenant.id, name="Bot", prompt_template_id=str(uuid4()))
        )

        assert result.success is False
        assert result.error_kind == StoreErrorKind.CONSTRAINT_VIOLATION
        assert result.field == "prompt_template_id"

    async def test_dangling_erp_template(self, store):
        """Test foreign key pre-check on ERP configuration."""
        tenant = await create_tenant(store)

        result = await store.save_erp_configuration(ErpConfiguration(tenant_id=tenant.id, template_id=str(uuid4())))

        assert result.error_kind == StoreErrorKind.CONSTRAINT_VIOLATION
        assert result.field == "template_id"

    async def test_invalid_tenant_reference(self, store):
        """Test non-UUID foreign keys."""
        result = await store.save_progress(OnboardingProgress(tenant_id="tenant_tmp"))

        assert result.error_kind == StoreErrorKind.CONSTRAINT_VIOLATION
        assert result.field == "tenant_id"

    async def test_absence_is_success(self, store):
        """Test get of a missing record."""
        result = await store.get_tenant(str(uuid4()))

        assert result.success is True
        assert result.data is None
        assert (await store.get_progress("not-a-uuid")).data is None

    async def test_delete_missing(self, store):
        """Test NOT_FOUND on delete."""
        result = await store.delete_user(str(uuid4()))

        assert result.error_kind == StoreErrorKind.NOT_FOUND


class TestTenants:
    """Tests for tenant listing and deletion."""

    async def test_list_filters(self, store):
        """Test status, sector and search filters."""
        acme = await create_tenant(store)
        await create_tenant(
            store, name="Beta Foods", document="98765432000110", sector="Alimentos", email="contato@beta.com.br"
        )
        await store.save_progress(OnboardingProgress(tenant_id=acme.id, status=OnboardingStatus.DEPLOYED))

        by_status = await store.list_tenants(status="deployed")
        by_sector = await store.list_tenants(sector="Alimentos")
        by_search = await store.list_tenants(search="acme")
        by_document = await store.list_tenants(search="98.765")

        assert [t.name for t in by_status.data] == ["Acme Co"]
        assert [t.name for t in by_sector.data] == ["Beta Foods"]
        assert [t.name for t in by_search.data] == ["Acme Co"]
        assert [t.name for t in by_document.data] == ["Beta Foods"]

    async def test_delete_cascades(self, store):
        """Test deleting a tenant and its onboarding data."""
        address = (
            await store.save_address(
                Address(street="Rua A", number="1", neighborhood="Centro", state="SP", city="SP", postal_code="01000000")
            )
        ).data
        tenant = await create_tenant(store, admin_email="maria@acme.com.br", address_id=address.id)
        await store.save_progress(OnboardingProgress(tenant_id=tenant.id))
        await store.save_assistant(Assistant(tenant_id=tenant.id, name="Bot"))

        result = await store.delete_tenant(tenant.id)

        assert result.success is True
        assert (await store.get_tenant(tenant.id)).data is None
        assert (await store.get_address(address.id)).data is None
        assert (await store.list_users(tenant.id)).data == []
        assert (await store.list_assistants(tenant.id)).data == []


class TestUsers:
    """Tests for user management."""

    async def test_password_is_hashed_and_verified(self, store):
        """Test bcrypt storage and authentication."""
        user = (await store.save_user(User(name="Ops", email="ops@pipeelo.com", role="user"), password="Sup3rSecret")).data

        assert user.password_hash.startswith("$2")
        assert (await store.authenticate_user("ops@pipeelo.com", "Sup3rSecret")).data.id == user.id
        assert (await store.authenticate_user("ops@pipeelo.com", "wrong")).data is None

    async def test_update_password(self, store):
        """Test password replacement."""
        user = (await store.save_user(User(name="Ops", email="ops@pipeelo.com", role="user"), password="Sup3rSecret")).data

        await store.update_user_password(user.id, "N3wPassword")

        assert (await store.authenticate_user("ops@pipeelo.com", "Sup3rSecret")).data is None
        assert (await store.authenticate_user("ops@pipeelo.com", "N3wPassword")).data is not None


class TestTemplates:
    """Tests for template storage."""

    async def test_soft_delete_prompt(self, store):
        """Test that deleted prompts are hidden but kept."""
        template = (
            await store.save_prompt_template(PromptTemplate(slug="faq", name="FAQ", content="{NOME_EMPRESA}"))
        ).data

        await store.delete_prompt_template(template.id)

        assert (await store.list_prompt_templates()).data == []
        hidden = (await store.list_prompt_templates(include_inactive=True)).data
        assert [t.is_active for t in hidden] == [False]

    async def test_seeding_is_idempotent(self, seeded_store):
        """Test slug-based upsert of seed data."""
        from pipeelo_onboarding.catalog import seed_catalog

        before = (await seeded_store.list_erp_templates()).data
        await seed_catalog(seeded_store)
        after = (await seeded_store.list_erp_templates()).data

        assert [t.id for t in before] == [t.id for t in after]


class TestSecrets:
    """Tests for encryption at rest."""

    @pytest.fixture
    def encryption_key(self, monkeypatch):
        key = Fernet.generate_key().decode()
        monkeypatch.setenv("ONBOARDING_ENCRYPTION_KEY", key)
        get_settings.cache_clear()
        return key

    async def test_token_encrypted_at_rest(self, store, sessionmaker, encryption_key):
        """Test that provisioning tokens are stored encrypted and read back in clear."""
        tenant = await create_tenant(store, pipeelo_token="perm-secret")

        async with sessionmaker() as session:
            raw = await session.scalar(select(TenantModel.pipeelo_token))

        assert raw != "perm-secret"
        assert Fernet(encryption_key.encode()).decrypt(raw.encode()).decode() == "perm-secret"
        assert (await store.get_tenant(tenant.id)).data.pipeelo_token == "perm-secret"


class TestMetrics:
    """Tests for dashboard metrics."""

    async def test_counts(self, store):
        """Test status counters and success rate."""
        deployed = await create_tenant(store)
        in_progress = await create_tenant(store, document="98765432000110")
        failed = await create_tenant(store, document="11222333000144")
        await create_tenant(store, document="55666777000188")

        await store.save_progress(
            OnboardingProgress(
                tenant_id=deployed.id,
                status=OnboardingStatus.DEPLOYED,
                deployed_at=datetime.now(timezone.utc) + timedelta(days=2),
            )
        )
        await store.save_progress(OnboardingProgress(tenant_id=in_progress.id, status=OnboardingStatus.IN_PROGRESS))
        await store.save_progress(OnboardingProgress(tenant_id=failed.id, status=OnboardingStatus.FAILED))

        metrics = (await store.dashboard_metrics()).data

        assert metrics.total_clients == 4
        assert metrics.completed_onboardings == 1
        assert metrics.in_progress == 1
        assert metrics.failed_deployments == 1
        assert metrics.success_rate == 25.0
        assert metrics.average_completion_days == pytest.approx(2.0, abs=0.1)
