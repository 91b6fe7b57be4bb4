"""
Onboarding Step Plan

Declarative list of wizard steps. Disabled steps are skipped by
next_step() / previous_step().
"""

import re
from dataclasses import dataclass

from pipeelo_onboarding.settings import Settings, get_settings

STEP_TITLES = {
    1: "Company data",
    2: "API configuration",
    3: "ERP integration",
    4: "Assistants",
    5: "Function mapping",
    6: "Advanced settings",
    7: "Review and deploy",
}


@dataclass(frozen=True)
class StepPlan:
    """Ordered wizard steps with the disabled ones removed."""

    total_steps: int = 7
    disabled_steps: frozenset[int] = frozenset({5})

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "StepPlan":
        settings = settings or get_settings()
        return cls(
            total_steps=settings.ONBOARDING_TOTAL_STEPS,
            disabled_steps=frozenset(settings.ONBOARDING_DISABLED_STEPS),
        )

    @property
    def active_steps(self) -> list[int]:
        return [step for step in range(1, self.total_steps + 1) if step not in self.disabled_steps]

    @property
    def first_step(self) -> int:
        return self.active_steps[0]

    @property
    def last_step(self) -> int:
        return self.active_steps[-1]

    def is_active(self, step: int) -> bool:
        return step in self.active_steps

    def next_step(self, step: int) -> int:
        """Next active step; the last step maps to itself."""
        for candidate in self.active_steps:
            if candidate > step:
                return candidate
        return self.last_step

    def previous_step(self, step: int) -> int:
        """Previous active step; the first step maps to itself."""
        for candidate in reversed(self.active_steps):
            if candidate < step:
                return candidate
        return self.first_step


def deployment_url(tenant_name: str, domain: str) -> str:
    """https://<tenant name lower-cased, whitespace runs as "-">.<domain>"""
    slug = re.sub(r"\s+", "-", tenant_name.strip().lower())
    return f"https://{slug}.{domain}"
