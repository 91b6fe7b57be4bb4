"""
Onboarding Wizard

Step plan, wizard state and the orchestrator driving tenant onboarding.
"""

from pipeelo_onboarding.onboarding.errors import (
    AssistantSaveError,
    OnboardingError,
    PreconditionError,
    RecordStoreError,
    StepInProgressError,
)
from pipeelo_onboarding.onboarding.orchestrator import OnboardingOrchestrator
from pipeelo_onboarding.onboarding.state import StepOutcome, WizardState
from pipeelo_onboarding.onboarding.steps import STEP_TITLES, StepPlan, deployment_url

__all__ = [
    "AssistantSaveError",
    "OnboardingError",
    "PreconditionError",
    "RecordStoreError",
    "StepInProgressError",
    "OnboardingOrchestrator",
    "StepOutcome",
    "WizardState",
    "STEP_TITLES",
    "StepPlan",
    "deployment_url",
]
