"""
Onboarding Database Models

Tables:
- tenants: Provisioned companies
- addresses: Company addresses
- users: Admin and dashboard users
- api_configurations: LLM provider keys per tenant
- erp_configurations: ERP integration per tenant
- assistants: AI assistants per tenant
- advanced_configurations: Categories, webhooks and backups per tenant
- onboarding_progress: Wizard progress marker per tenant
- erp_templates, prompt_templates: Template catalog
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB

from pipeelo_onboarding.db import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OnboardingModelMixin:
    """Common fields for all onboarding models."""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class AddressModel(Base, OnboardingModelMixin):
    __tablename__ = "addresses"

    street = Column(String(255), nullable=False)
    number = Column(String(20), nullable=False)
    neighborhood = Column(String(120), nullable=False)
    country = Column(String(2), nullable=False, default="BR")
    state = Column(String(2), nullable=False)
    city = Column(String(120), nullable=False)
    complement = Column(String(255), nullable=True)
    postal_code = Column(String(9), nullable=False)


class TenantModel(Base, OnboardingModelMixin):
    """
    A provisioned company.

    The document is stored digits-only so it can be matched on retries.
    """

    __tablename__ = "tenants"

    name = Column(String(255), nullable=False)
    document = Column(String(14), nullable=False)
    phone_number = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False)
    website = Column(String(255), nullable=True)
    sector = Column(String(100), nullable=True)
    address_id = Column(Uuid(as_uuid=True), ForeignKey("addresses.id"), nullable=True)
    pipeelo_token = Column(Text, nullable=True)  # Encrypted

    __table_args__ = (Index("idx_tenants_document", "document"),)


class UserModel(Base, OnboardingModelMixin):
    __tablename__ = "users"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=True)
    document = Column(String(11), nullable=True)
    role = Column(String(20), nullable=False, default="admin")

    __table_args__ = (
        Index("idx_users_tenant_role", "tenant_id", "role"),
        Index("idx_users_email", "email"),
    )


class ApiConfigurationModel(Base, OnboardingModelMixin):
    __tablename__ = "api_configurations"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    openai_key = Column(Text, nullable=True)  # Encrypted
    openrouter_key = Column(Text, nullable=True)  # Encrypted
    api_tests = Column(JSONType, nullable=False, default=dict)

    __table_args__ = (UniqueConstraint("tenant_id", name="uq_api_configurations_tenant"),)


class ErpTemplateModel(Base, OnboardingModelMixin):
    __tablename__ = "erp_templates"

    slug = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    version = Column(String(20), nullable=False, default="1.0.0")
    description = Column(Text, nullable=False, default="")
    logo = Column(String(255), nullable=True)
    integration_fields = Column(JSONType, nullable=False, default=list)
    commands = Column(JSONType, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("slug", name="uq_erp_templates_slug"),)


class PromptTemplateModel(Base, OnboardingModelMixin):
    __tablename__ = "prompt_templates"

    slug = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, default="")
    sector = Column(String(100), nullable=True)
    content = Column(Text, nullable=False, default="")
    placeholders = Column(JSONType, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("slug", name="uq_prompt_templates_slug"),)


class ErpConfigurationModel(Base, OnboardingModelMixin):
    __tablename__ = "erp_configurations"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    template_id = Column(Uuid(as_uuid=True), ForeignKey("erp_templates.id"), nullable=True)
    erp_template_name = Column(String(255), nullable=True)
    fields = Column(JSONType, nullable=False, default=dict)
    enabled_commands = Column(JSONType, nullable=False, default=list)
    connection_status = Column(String(20), nullable=False, default="pending")

    __table_args__ = (UniqueConstraint("tenant_id", name="uq_erp_configurations_tenant"),)


class AssistantModel(Base, OnboardingModelMixin):
    __tablename__ = "assistants"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    prompt_template_id = Column(Uuid(as_uuid=True), ForeignKey("prompt_templates.id"), nullable=True)
    prompt_config = Column(JSONType, nullable=False, default=dict)
    ai_config = Column(JSONType, nullable=False, default=dict)
    enabled_functions = Column(JSONType, nullable=False, default=list)
    enabled = Column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("idx_assistants_tenant", "tenant_id"),)


class AdvancedConfigurationModel(Base, OnboardingModelMixin):
    __tablename__ = "advanced_configurations"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    categories = Column(JSONType, nullable=False, default=list)
    full_service_enabled = Column(Boolean, nullable=False, default=False)
    webhooks = Column(JSONType, nullable=False, default=list)
    backup_settings = Column(JSONType, nullable=False, default=dict)

    __table_args__ = (UniqueConstraint("tenant_id", name="uq_advanced_configurations_tenant"),)


class OnboardingProgressModel(Base, OnboardingModelMixin):
    """Wizard progress marker; one row per tenant."""

    __tablename__ = "onboarding_progress"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    current_step = Column(Integer, nullable=False, default=1)
    total_steps = Column(Integer, nullable=False, default=7)
    deployed_at = Column(DateTime(timezone=True), nullable=True)
    deployment_url = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_onboarding_progress_tenant"),
        Index("idx_onboarding_progress_status", "status"),
    )
