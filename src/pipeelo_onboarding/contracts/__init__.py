"""
Onboarding Contracts

Stored records and the payloads submitted at each wizard step.
"""

from pipeelo_onboarding.contracts.payloads import (
    STEP_PAYLOADS,
    AddressDraft,
    AdminUserDraft,
    AdvancedConfigPayload,
    ApiConfigPayload,
    AssistantDraft,
    AssistantsPayload,
    DeployPayload,
    ErpConfigPayload,
    FunctionMappingPayload,
    TenantDraft,
    TenantStepPayload,
)
from pipeelo_onboarding.contracts.records import (
    AdvancedConfiguration,
    Address,
    AiConfig,
    ApiConfiguration,
    Assistant,
    BackupSettings,
    DashboardMetrics,
    ErpCommand,
    ErpConfiguration,
    ErpTemplate,
    IntegrationField,
    OnboardingProgress,
    OnboardingStatus,
    PromptConfig,
    PromptTemplate,
    Tenant,
    User,
    Webhook,
)

__all__ = [
    "STEP_PAYLOADS",
    "AddressDraft",
    "AdminUserDraft",
    "AdvancedConfigPayload",
    "ApiConfigPayload",
    "AssistantDraft",
    "AssistantsPayload",
    "DeployPayload",
    "ErpConfigPayload",
    "FunctionMappingPayload",
    "TenantDraft",
    "TenantStepPayload",
    "AdvancedConfiguration",
    "Address",
    "AiConfig",
    "ApiConfiguration",
    "Assistant",
    "BackupSettings",
    "DashboardMetrics",
    "ErpCommand",
    "ErpConfiguration",
    "ErpTemplate",
    "IntegrationField",
    "OnboardingProgress",
    "OnboardingStatus",
    "PromptConfig",
    "PromptTemplate",
    "Tenant",
    "User",
    "Webhook",
]
