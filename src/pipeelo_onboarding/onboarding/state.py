"""Wizard state exposed to the UI / CLI."""

from dataclasses import dataclass, field

from pipeelo_onboarding.contracts.records import (
    AdvancedConfiguration,
    Address,
    ApiConfiguration,
    Assistant,
    ErpConfiguration,
    OnboardingProgress,
    Tenant,
    User,
)


@dataclass
class WizardState:
    """
    In-memory state of one onboarding session.

    current_step is the step shown to the user. It may be behind the stored
    progress after back navigation; stored progress only moves when a step
    completes.
    """

    current_step: int = 1
    tenant_id: str | None = None
    saving: bool = False
    error: str | None = None
    log_messages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    tenant: Tenant | None = None
    address: Address | None = None
    admin_user: User | None = None
    api_configuration: ApiConfiguration | None = None
    erp_configuration: ErpConfiguration | None = None
    assistants: list[Assistant] = field(default_factory=list)
    advanced_configuration: AdvancedConfiguration | None = None
    progress: OnboardingProgress | None = None


@dataclass
class StepOutcome:
    """Result of complete_step()."""

    step: int
    advanced: bool
    current_step: int
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
