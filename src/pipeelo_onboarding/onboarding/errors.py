"""Onboarding errors."""

from pipeelo_onboarding.persistence.store import StoreErrorKind, StoreResult


class OnboardingError(Exception):
    """Base class for onboarding failures."""


class PreconditionError(OnboardingError):
    """A step was submitted out of order or without required data. Raised before any I/O."""


class StepInProgressError(OnboardingError):
    """A step was submitted while another one is still saving."""


class RecordStoreError(OnboardingError):
    """A record store operation failed."""

    def __init__(
        self,
        message: str,
        kind: StoreErrorKind | None = None,
        field: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.field = field

    @classmethod
    def from_result(cls, action: str, result: StoreResult) -> "RecordStoreError":
        return cls(f"{action}: {result.error}", kind=result.error_kind, field=result.field)


class AssistantSaveError(RecordStoreError):
    """Saving one assistant of a batch failed; earlier assistants stay saved."""

    def __init__(self, assistant_name: str, result: StoreResult):
        super().__init__(
            f"Failed to save assistant '{assistant_name}': {result.error}",
            kind=result.error_kind,
            field=result.field,
        )
        self.assistant_name = assistant_name
