"""
Template Catalog

Read-only access to ERP and prompt templates.

Each list is loaded from the record store on first use and cached for the
lifetime of the catalog. Load failures are logged and yield an empty list;
they are not cached, so the next call retries.
"""

import logging
import re

from pipeelo_onboarding.catalog.builtin import BUILTIN_ERP_TEMPLATES, BUILTIN_PROMPT_TEMPLATES
from pipeelo_onboarding.contracts.records import Address, ErpTemplate, PromptTemplate, Tenant
from pipeelo_onboarding.persistence.store import RecordStore

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


class TemplateCatalog:
    """Lazily loaded, per-process template cache."""

    def __init__(self, store: RecordStore | None = None):
        self._store = store or RecordStore()
        self._erp_templates: list[ErpTemplate] | None = None
        self._prompt_templates: list[PromptTemplate] | None = None

    async def list_erp_templates(self) -> list[ErpTemplate]:
        if self._erp_templates is None:
            result = await self._store.list_erp_templates()
            if not result.success:
                logger.error(f"Failed to load ERP templates: {result.error}")
                return []
            self._erp_templates = result.data
        return self._erp_templates

    async def list_prompt_templates(self) -> list[PromptTemplate]:
        if self._prompt_templates is None:
            result = await self._store.list_prompt_templates()
            if not result.success:
                logger.error(f"Failed to load prompt templates: {result.error}")
                return []
            self._prompt_templates = result.data
        return self._prompt_templates

    async def get_erp_template(self, id_or_slug: str | None) -> ErpTemplate | None:
        """Find an ERP template by id or slug."""
        if not id_or_slug:
            return None
        for template in await self.list_erp_templates():
            if id_or_slug in (template.id, template.slug):
                return template
        return None

    async def get_prompt_template(self, id_or_slug: str | None) -> PromptTemplate | None:
        """Find a prompt template by id or slug."""
        if not id_or_slug:
            return None
        for template in await self.list_prompt_templates():
            if id_or_slug in (template.id, template.slug):
                return template
        return None

    def invalidate(self) -> None:
        """Drop cached templates (after dashboard edits)."""
        self._erp_templates = None
        self._prompt_templates = None


_catalog: TemplateCatalog | None = None


def get_catalog() -> TemplateCatalog:
    """Get the process-wide catalog."""
    global _catalog
    if _catalog is None:
        _catalog = TemplateCatalog()
    return _catalog


async def seed_catalog(store: RecordStore) -> tuple[int, int]:
    """
    Load the built-in templates into the store.

    Templates are matched by slug, so seeding twice updates in place.

    Returns:
        Tuple of (erp templates saved, prompt templates saved)
    """
    erp_saved = 0
    for template in BUILTIN_ERP_TEMPLATES:
        result = await store.save_erp_template(template)
        if result.success:
            erp_saved += 1
        else:
            logger.error(f"Failed to seed ERP template {template.slug}: {result.error}")

    prompts_saved = 0
    for template in BUILTIN_PROMPT_TEMPLATES:
        result = await store.save_prompt_template(template)
        if result.success:
            prompts_saved += 1
        else:
            logger.error(f"Failed to seed prompt template {template.slug}: {result.error}")

    logger.info(f"Seeded catalog: {erp_saved} ERP templates, {prompts_saved} prompt templates")
    return erp_saved, prompts_saved


def fill_prompt_placeholders(template: PromptTemplate, values: dict[str, str]) -> str:
    """
    Replace every declared placeholder in the template content.

    Missing or empty values are rendered as [NAME].
    """
    content = template.content
    for placeholder in template.placeholders:
        value = values.get(placeholder) or f"[{placeholder}]"
        content = content.replace(f"{{{placeholder}}}", value)
    return content


def extract_placeholders(content: str) -> list[str]:
    """Unique {PLACEHOLDER} names in order of first appearance."""
    return list(dict.fromkeys(_PLACEHOLDER.findall(content)))


def tenant_placeholder_values(tenant: Tenant | None, address: Address | None = None) -> dict[str, str]:
    """Placeholder values known from step 1 data."""
    if tenant is None:
        return {}
    values = {
        "NOME_EMPRESA": tenant.name,
        "TELEFONE": tenant.phone_number,
        "EMAIL": tenant.email,
        "WEBSITE": tenant.website or "",
        "SETOR": tenant.sector or "",
    }
    if address is not None:
        values["ENDERECO"] = (
            f"{address.street}, {address.number} - {address.neighborhood}, {address.city}/{address.state}"
        )
    return values
