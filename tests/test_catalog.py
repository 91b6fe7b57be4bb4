"""
Tests for the template catalog.
"""

from pipeelo_onboarding.catalog import (
    TemplateCatalog,
    extract_placeholders,
    fill_prompt_placeholders,
    tenant_placeholder_values,
)
from pipeelo_onboarding.contracts.records import Address, PromptTemplate, Tenant
from pipeelo_onboarding.persistence import StoreErrorKind, StoreResult


class FlakyStore:
    """Store stub whose first template load fails."""

    def __init__(self, templates):
        self.templates = templates
        self.calls = 0

    async def list_prompt_templates(self):
        self.calls += 1
        if self.calls == 1:
            return StoreResult.fail(StoreErrorKind.DATABASE_ERROR, "database is locked")
        return StoreResult.ok(self.templates)

    async def list_erp_templates(self):
        self.calls += 1
        return StoreResult.ok([])


class TestTemplateCatalog:
    """Tests for lazy loading and caching."""

    async def test_loads_seeded_templates(self, seeded_store):
        """Test listing and lookup by slug or id."""
        catalog = TemplateCatalog(seeded_store)

        erp_templates = await catalog.list_erp_templates()
        protheus = await catalog.get_erp_template("protheus")

        assert {t.slug for t in erp_templates} == {"protheus", "sap", "oracle", "custom"}
        assert (await catalog.get_erp_template(protheus.id)).slug == "protheus"
        assert await catalog.get_prompt_template("missing") is None

    async def test_cached_until_invalidated(self, seeded_store):
        """Test that edits only show up after invalidate()."""
        catalog = TemplateCatalog(seeded_store)
        before = await catalog.list_prompt_templates()

        await seeded_store.save_prompt_template(PromptTemplate(slug="faq", name="FAQ"))
        cached = await catalog.list_prompt_templates()
        catalog.invalidate()
        fresh = await catalog.list_prompt_templates()

        assert len(cached) == len(before)
        assert len(fresh) == len(before) + 1

    async def test_failure_not_cached(self):
        """Test that a failed load returns [] and is retried."""
        template = PromptTemplate(slug="faq", name="FAQ")
        store = FlakyStore([template])
        catalog = TemplateCatalog(store)

        assert await catalog.list_prompt_templates() == []
        assert await catalog.list_prompt_templates() == [template]
        assert await catalog.list_prompt_templates() == [template]
        assert store.calls == 2


class TestPlaceholders:
    """Tests for prompt placeholder helpers."""

    def test_fill_marks_missing_values(self):
        """Test filling and the [NAME] marker."""
        template = PromptTemplate(
            slug="t",
            name="T",
            content="Olá da {NOME_EMPRESA}! Fale em {TELEFONE}. {NOME_EMPRESA}",
            placeholders=["NOME_EMPRESA", "TELEFONE"],
        )

        content = fill_prompt_placeholders(template, {"NOME_EMPRESA": "Acme Co"})

        assert content == "Olá da Acme Co! Fale em [TELEFONE]. Acme Co"

    def test_extract_unique_in_order(self):
        """Test placeholder extraction."""
        assert extract_placeholders("{B} {A} {B} {C}") == ["B", "A", "C"]

    def test_tenant_values(self):
        """Test values pre-filled from company data."""
        tenant = Tenant(name="Acme Co", document="12345678000190", phone_number="11999998888", email="a@acme.com")
        address = Address(
            street="Rua A", number="1", neighborhood="Centro", state="SP", city="São Paulo", postal_code="01000000"
        )

        values = tenant_placeholder_values(tenant, address)

        assert values["NOME_EMPRESA"] == "Acme Co"
        assert values["WEBSITE"] == ""
        assert values["ENDERECO"] == "Rua A, 1 - Centro, São Paulo/SP"
        assert tenant_placeholder_values(None) == {}
