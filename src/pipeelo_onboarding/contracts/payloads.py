"""
Wizard Step Payloads

Pydantic models for the data submitted at each onboarding step.
Field checks use the plain predicates from pipeelo_onboarding.validation.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from pipeelo_onboarding.contracts.records import AiConfig, BackupSettings, Webhook
from pipeelo_onboarding.validation import (
    digits_only,
    is_valid_cep,
    is_valid_cnpj,
    is_valid_cpf,
    is_valid_email,
)


class TenantDraft(BaseModel):
    """Company data collected in step 1."""

    name: str = Field(..., min_length=1)
    document: str = Field(..., description="CNPJ, formatted or digits only")
    phone_number: str
    email: str
    website: str | None = None
    sector: str | None = None

    @field_validator("document")
    @classmethod
    def _check_document(cls, value: str) -> str:
        if not is_valid_cnpj(value):
            raise ValueError("CNPJ must have 14 digits")
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("invalid email")
        return value

    @field_validator("phone_number")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        if len(digits_only(value)) < 10:
            raise ValueError("phone number must have at least 10 digits")
        return value


class AddressDraft(BaseModel):
    street: str
    number: str
    neighborhood: str
    country: str = "BR"
    state: str
    city: str
    complement: str | None = None
    postal_code: str

    @field_validator("postal_code")
    @classmethod
    def _check_postal_code(cls, value: str) -> str:
        if not is_valid_cep(value):
            raise ValueError("CEP must have 8 digits")
        return value


class AdminUserDraft(BaseModel):
    """Admin user created together with the tenant."""

    name: str = Field(..., min_length=1)
    email: str
    password: str = Field(..., min_length=8)
    document: str = Field(..., description="CPF, formatted or digits only")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("invalid email")
        return value

    @field_validator("document")
    @classmethod
    def _check_document(cls, value: str) -> str:
        if not is_valid_cpf(value):
            raise ValueError("CPF must have 11 digits")
        return value


class TenantStepPayload(BaseModel):
    """Step 1: company, address and admin user."""

    tenant: TenantDraft
    address: AddressDraft
    user: AdminUserDraft


class ApiConfigPayload(BaseModel):
    """Step 2: LLM provider keys. At least one key is required."""

    openai_key: str | None = None
    openrouter_key: str | None = None
    api_tests: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_one_key(self):
        if not (self.openai_key or self.openrouter_key):
            raise ValueError("at least one API key is required")
        return self


class ErpConfigPayload(BaseModel):
    """Step 3: ERP integration."""

    template_id: str | None = None
    template_name: str | None = None
    fields: dict[str, str] = Field(default_factory=dict)
    enabled_commands: list[str] | None = None
    connection_status: str = "pending"


class AssistantDraft(BaseModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    description: str | None = None
    template_id: str | None = None
    placeholders_filled: dict[str, str] = Field(default_factory=dict)
    final_content: str | None = None
    ai_config: AiConfig = Field(default_factory=AiConfig)
    enabled_functions: list[str] = Field(default_factory=list)
    enabled: bool = True


class AssistantsPayload(BaseModel):
    """Step 4: one or more assistants."""

    assistants: list[AssistantDraft] = Field(..., min_length=1)


class FunctionMappingPayload(BaseModel):
    """Step 5: ERP commands exposed to the assistants."""

    enabled_commands: list[str] = Field(default_factory=list)


class AdvancedConfigPayload(BaseModel):
    """Step 6: categories, webhooks and backups."""

    categories: list[str] = Field(default_factory=list)
    full_service_enabled: bool = False
    webhooks: list[Webhook] = Field(default_factory=list)
    backup_settings: BackupSettings = Field(default_factory=BackupSettings)


class DeployPayload(BaseModel):
    """Step 7 carries no data."""


STEP_PAYLOADS: dict[int, type[BaseModel]] = {
    1: TenantStepPayload,
    2: ApiConfigPayload,
    3: ErpConfigPayload,
    4: AssistantsPayload,
    5: FunctionMappingPayload,
    6: AdvancedConfigPayload,
    7: DeployPayload,
}
