"""
Template Catalog

ERP integration templates and assistant prompt templates.
"""

from pipeelo_onboarding.catalog.catalog import (
    TemplateCatalog,
    extract_placeholders,
    fill_prompt_placeholders,
    get_catalog,
    seed_catalog,
    tenant_placeholder_values,
)

__all__ = [
    "TemplateCatalog",
    "extract_placeholders",
    "fill_prompt_placeholders",
    "get_catalog",
    "seed_catalog",
    "tenant_placeholder_values",
]
