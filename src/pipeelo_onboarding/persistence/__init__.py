"""
Onboarding Persistence

SQLAlchemy models and the async record store for onboarding tables.
"""

from pipeelo_onboarding.persistence.models import (
    AddressModel,
    AdvancedConfigurationModel,
    ApiConfigurationModel,
    AssistantModel,
    ErpConfigurationModel,
    ErpTemplateModel,
    OnboardingProgressModel,
    PromptTemplateModel,
    TenantModel,
    UserModel,
)
from pipeelo_onboarding.persistence.store import RecordStore, StoreErrorKind, StoreResult

__all__ = [
    "AddressModel",
    "AdvancedConfigurationModel",
    "ApiConfigurationModel",
    "AssistantModel",
    "ErpConfigurationModel",
    "ErpTemplateModel",
    "OnboardingProgressModel",
    "PromptTemplateModel",
    "TenantModel",
    "UserModel",
    "RecordStore",
    "StoreErrorKind",
    "StoreResult",
]
