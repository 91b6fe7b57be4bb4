"""
Onboarding Records

Pydantic models for every entity kept by the record store.
Records are what the orchestrator holds in memory between steps; the
SQLAlchemy models in persistence.models are their storage shape.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _id_to_str(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    return value


# Identifiers travel as strings; only valid UUIDs are treated as existing rows.
RecordId = Annotated[str, BeforeValidator(_id_to_str)]


class OnboardingStatus(str, Enum):
    """Status of a tenant's onboarding."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DEPLOYED = "deployed"
    FAILED = "failed"


class Record(BaseModel):
    """Common fields for all stored records."""

    model_config = ConfigDict(from_attributes=True)

    id: RecordId | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Address(Record):
    street: str
    number: str
    neighborhood: str
    country: str = "BR"
    state: str
    city: str
    complement: str | None = None
    postal_code: str


class Tenant(Record):
    name: str
    document: str = Field(..., description="Tax document (CNPJ), digits only")
    phone_number: str
    email: str
    website: str | None = None
    sector: str | None = None
    address_id: RecordId | None = None
    pipeelo_token: str | None = Field(None, description="Long-lived provisioning token")


class User(Record):
    tenant_id: RecordId | None = None
    name: str
    email: str
    password_hash: str | None = None
    document: str | None = None
    role: str = "admin"


class ApiConfiguration(Record):
    tenant_id: RecordId
    openai_key: str | None = None
    openrouter_key: str | None = None
    api_tests: dict[str, Any] = Field(default_factory=dict)


class ErpConfiguration(Record):
    tenant_id: RecordId
    template_id: RecordId | None = None
    erp_template_name: str | None = None
    fields: dict[str, str] = Field(default_factory=dict)
    enabled_commands: list[str] = Field(default_factory=list)
    connection_status: str = "pending"  # pending, connected, failed


class AiConfig(BaseModel):
    """Model parameters for an assistant."""

    provider: str = "openai"  # openai, openrouter
    model: str = "gpt-4"
    temperature: float = 0.7
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    response_delay: float = 0.0
    max_tokens: int | None = 2000


class PromptConfig(BaseModel):
    template_name: str | None = None
    final_content: str | None = None
    placeholders_filled: dict[str, str] = Field(default_factory=dict)


class Assistant(Record):
    tenant_id: RecordId
    name: str
    description: str | None = None
    prompt_template_id: RecordId | None = None
    prompt_config: PromptConfig = Field(default_factory=PromptConfig)
    ai_config: AiConfig = Field(default_factory=AiConfig)
    enabled_functions: list[str] = Field(default_factory=list)
    enabled: bool = True


class Webhook(BaseModel):
    url: str
    events: list[str] = Field(default_factory=list)
    enabled: bool = True


class BackupSettings(BaseModel):
    frequency: str = "weekly"  # daily, weekly, monthly
    retention_days: int = 30
    enabled: bool = False


class AdvancedConfiguration(Record):
    tenant_id: RecordId
    categories: list[str] = Field(default_factory=list)
    full_service_enabled: bool = False
    webhooks: list[Webhook] = Field(default_factory=list)
    backup_settings: BackupSettings = Field(default_factory=BackupSettings)


class OnboardingProgress(Record):
    tenant_id: RecordId
    status: OnboardingStatus = OnboardingStatus.DRAFT
    current_step: int = 1
    total_steps: int = 7
    deployed_at: datetime | None = None
    deployment_url: str | None = None


class IntegrationField(BaseModel):
    name: str
    type: str = "text"  # text, url, password, number
    label: str
    required: bool = False
    placeholder: str | None = None


class ErpCommand(BaseModel):
    name: str
    description: str = ""
    parameters: list[str] = Field(default_factory=list)
    response_format: dict[str, Any] = Field(default_factory=dict)


class ErpTemplate(Record):
    slug: str
    name: str
    version: str = "1.0.0"
    description: str = ""
    logo: str | None = None
    integration_fields: list[IntegrationField] = Field(default_factory=list)
    commands: list[ErpCommand] = Field(default_factory=list)
    is_active: bool = True


class PromptTemplate(Record):
    slug: str
    name: str
    description: str = ""
    category: str = ""
    sector: str | None = None
    content: str = ""
    placeholders: list[str] = Field(default_factory=list)
    is_active: bool = True


class DashboardMetrics(BaseModel):
    total_clients: int = 0
    completed_onboardings: int = 0
    in_progress: int = 0
    failed_deployments: int = 0
    success_rate: float = 0.0
    average_completion_days: float = 0.0
