"""
Pytest fixtures for onboarding tests.
"""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool

from pipeelo_onboarding.catalog import TemplateCatalog, seed_catalog
from pipeelo_onboarding.db import create_engine, init_db
from pipeelo_onboarding.onboarding import OnboardingOrchestrator
from pipeelo_onboarding.persistence import RecordStore
from pipeelo_onboarding.providers.stub import StubProvisioningProvider
from pipeelo_onboarding.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from the developer's environment."""
    monkeypatch.delenv("ONBOARDING_ENCRYPTION_KEY", raising=False)
    monkeypatch.delenv("ONBOARDING_DISABLED_STEPS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Settings with the defaults used across tests."""
    return Settings(_env_file=None, DEPLOYMENT_DOMAIN="pipeelo.com", ONBOARDING_GATEWAY="asaas")


@pytest.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def store(sessionmaker):
    return RecordStore(sessionmaker)


@pytest.fixture
async def seeded_store(store):
    """Record store with the built-in templates loaded."""
    await seed_catalog(store)
    return store


@pytest.fixture
def provider():
    return StubProvisioningProvider()


@pytest.fixture
def orchestrator(seeded_store, provider, settings):
    return OnboardingOrchestrator(seeded_store, provider, catalog=TemplateCatalog(seeded_store), settings=settings)


@pytest.fixture
def tenant_payload():
    """Step 1 payload with formatted documents."""
    return {
        "tenant": {
            "name": "Acme Co",
            "document": "12.345.678/0001-90",
            "phone_number": "(11) 99999-8888",
            "email": "contato@acme.com.br",
            "website": "https://acme.com.br",
            "sector": "Varejo",
        },
        "address": {
            "street": "Rua das Flores",
            "number": "100",
            "neighborhood": "Centro",
            "state": "SP",
            "city": "São Paulo",
            "postal_code": "01000-000",
        },
        "user": {
            "name": "Maria Souza",
            "email": "maria@acme.com.br",
            "password": "Sup3rSecret",
            "document": "123.456.789-09",
        },
    }


@pytest.fixture
def api_payload():
    return {"openai_key": "sk-openai-test", "openrouter_key": "sk-or-test"}


@pytest.fixture
def erp_payload():
    return {"template_id": "protheus", "fields": {"base_url": "https://acme.protheus.com.br", "api_token": "t0k"}}


@pytest.fixture
def assistants_payload():
    return {
        "assistants": [
            {
                "id": "assistant_draft_1",
                "name": "Atendimento",
                "template_id": "customer-support",
                "placeholders_filled": {"PRODUTOS_SERVICOS": "Materiais de construção"},
            }
        ]
    }


@pytest.fixture
def advanced_payload():
    return {
        "categories": ["vendas", "suporte"],
        "full_service_enabled": True,
        "webhooks": [{"url": "https://hooks.acme.com.br/onboarding", "events": ["deployed"]}],
        "backup_settings": {"frequency": "daily", "retention_days": 7, "enabled": True},
    }


@pytest.fixture
def complete_until(tenant_payload, api_payload, erp_payload, assistants_payload, advanced_payload):
    """Drive an orchestrator through every active step before `stop_step`."""
    payloads = {
        1: tenant_payload,
        2: api_payload,
        3: erp_payload,
        4: assistants_payload,
        6: advanced_payload,
        7: {},
    }

    async def run(orchestrator, stop_step):
        while orchestrator.state.current_step < stop_step:
            step = orchestrator.state.current_step
            outcome = await orchestrator.complete_step(step, payloads[step])
            assert outcome.advanced, outcome.error
            if step == orchestrator.plan.last_step:
                break

    return run
