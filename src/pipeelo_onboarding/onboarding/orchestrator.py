"""
Onboarding Orchestrator

Drives the seven-step tenant onboarding:

1. Company data: create the remote account, exchange credentials, then save
   address, tenant, admin user and progress
2. API configuration: save keys, then push them to the remote account
3. ERP integration
4. Assistants
5. Function mapping (disabled by default)
6. Advanced settings
7. Deploy

Remote calls always run before local writes in step 1, so a remote failure
persists nothing. Stored progress only moves forward when a step completes;
back() is in-memory only.
"""

import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from pipeelo_onboarding.catalog import TemplateCatalog, fill_prompt_placeholders, tenant_placeholder_values
from pipeelo_onboarding.contracts.payloads import (
    STEP_PAYLOADS,
    AdvancedConfigPayload,
    ApiConfigPayload,
    AssistantsPayload,
    DeployPayload,
    ErpConfigPayload,
    FunctionMappingPayload,
    TenantStepPayload,
)
from pipeelo_onboarding.contracts.records import (
    AdvancedConfiguration,
    Address,
    ApiConfiguration,
    Assistant,
    ErpConfiguration,
    OnboardingProgress,
    OnboardingStatus,
    PromptConfig,
    Tenant,
    User,
)
from pipeelo_onboarding.onboarding.errors import (
    AssistantSaveError,
    OnboardingError,
    PreconditionError,
    RecordStoreError,
    StepInProgressError,
)
from pipeelo_onboarding.onboarding.state import StepOutcome, WizardState
from pipeelo_onboarding.onboarding.steps import StepPlan, deployment_url
from pipeelo_onboarding.persistence.store import RecordStore, StoreErrorKind, StoreResult
from pipeelo_onboarding.providers.base import ProvisioningError, ProvisioningProvider
from pipeelo_onboarding.settings import Settings, get_settings
from pipeelo_onboarding.validation import digits_only, is_valid_uuid

logger = logging.getLogger(__name__)

# Constraint violations the user can fix by picking another template
CONSTRAINT_MESSAGES = {
    "prompt_template_id": "The selected prompt template no longer exists. Choose another template and try again.",
    "template_id": "The selected ERP template no longer exists. Choose another template and try again.",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unwrap(result: StoreResult, action: str) -> Any:
    if not result.success:
        raise RecordStoreError.from_result(action, result)
    return result.data


@dataclass
class _PendingAccount:
    """Remote account created by a step 1 attempt whose local writes failed."""

    key: tuple[str, str]
    token: str
    address_id: str | None = None


class OnboardingOrchestrator:
    """
    One onboarding session.

    Owns its provisioning provider, so the bearer token installed by step 1
    or resume() never leaks into another session.
    """

    def __init__(
        self,
        store: RecordStore,
        provider: ProvisioningProvider,
        catalog: TemplateCatalog | None = None,
        settings: Settings | None = None,
        plan: StepPlan | None = None,
    ):
        self.store = store
        self.provider = provider
        self.catalog = catalog or TemplateCatalog(store)
        self.settings = settings or get_settings()
        self.plan = plan or StepPlan.from_settings(self.settings)
        self.state = WizardState(current_step=self.plan.first_step)
        self._pending_account: _PendingAccount | None = None

        self._handlers: dict[int, Callable[[Any], Awaitable[list[str]]]] = {
            1: self._complete_company_data,
            2: self._complete_api_configuration,
            3: self._complete_erp_configuration,
            4: self._complete_assistants,
            5: self._complete_function_mapping,
            6: self._complete_advanced_configuration,
            7: self._complete_deploy,
        }

    # =========================================================================
    # Public API
    # =========================================================================

    async def complete_step(self, step: int, payload: BaseModel | dict[str, Any] | None = None) -> StepOutcome:
        """
        Validate, persist and advance one step.

        On failure the current step is kept, `state.error` holds a user-facing
        message and the returned outcome has advanced=False.

        Raises:
            StepInProgressError: Another step is still saving
        """
        if self.state.saving:
            raise StepInProgressError(f"Step {self.state.current_step} is still being saved")
        self.state.saving = True
        self.state.error = None
        self.state.warnings = []

        try:
            self._check_preconditions(step)
            data = self._parse_payload(step, payload)
            warnings = await self._handlers[step](data)
        except Exception as e:
            message = self._error_message(e)
            if isinstance(e, (OnboardingError, ProvisioningError)):
                logger.warning(f"Step {step} failed: {message}", extra={"tenant_id": self.state.tenant_id})
            else:
                logger.exception(f"Step {step} failed", extra={"tenant_id": self.state.tenant_id})
            self.state.error = message
            return StepOutcome(step=step, advanced=False, current_step=self.state.current_step, error=message)
        finally:
            self.state.saving = False

        self.state.warnings = warnings
        logger.info(
            f"Completed onboarding step {step}",
            extra={"tenant_id": self.state.tenant_id, "next_step": self.state.current_step},
        )
        return StepOutcome(step=step, advanced=True, current_step=self.state.current_step, warnings=warnings)

    async def resume(self, tenant_id: str) -> WizardState:
        """
        Load a tenant's onboarding data and continue where it stopped.

        Every record is fetched independently; a missing or unreadable
        record means "not configured yet". The tenant's stored token is
        installed into the provider, or the provider token is cleared.

        Raises:
            StepInProgressError: A step is still saving
            PreconditionError: The tenant does not exist
        """
        if self.state.saving:
            raise StepInProgressError(f"Step {self.state.current_step} is still being saved")
        result = await self.store.get_tenant(tenant_id)
        if not result.success or result.data is None:
            message = f"Tenant not found: {tenant_id}" if result.success else f"Failed to load tenant: {result.error}"
            self.state.error = message
            raise PreconditionError(message)
        tenant: Tenant = result.data

        async def optional(fetch: Awaitable[StoreResult], label: str, default: Any = None) -> Any:
            loaded = await fetch
            if not loaded.success:
                logger.warning(f"Could not load {label} for tenant {tenant.id}: {loaded.error}")
                return default
            return loaded.data if loaded.data is not None else default

        address = await optional(self.store.get_address(tenant.address_id), "address") if tenant.address_id else None
        progress = await optional(self.store.get_progress(tenant.id), "progress")

        step = progress.current_step if progress else self.plan.first_step
        if not self.plan.is_active(step):
            step = self.plan.next_step(step)

        self.state = WizardState(
            current_step=step,
            tenant_id=tenant.id,
            tenant=tenant,
            address=address,
            admin_user=await optional(self.store.get_admin_user(tenant.id), "admin user"),
            api_configuration=await optional(self.store.get_api_configuration(tenant.id), "API configuration"),
            erp_configuration=await optional(self.store.get_erp_configuration(tenant.id), "ERP configuration"),
            assistants=await optional(self.store.list_assistants(tenant.id), "assistants", default=[]),
            advanced_configuration=await optional(
                self.store.get_advanced_configuration(tenant.id), "advanced configuration"
            ),
            progress=progress,
        )
        self.provider.set_token(tenant.pipeelo_token)

        logger.info(f"Resumed onboarding at step {step}", extra={"tenant_id": tenant.id})
        return self.state

    def back(self) -> int:
        """Move to the previous active step. Stored progress is not changed."""
        self.state.current_step = self.plan.previous_step(self.state.current_step)
        self.state.error = None
        return self.state.current_step

    def clear_error(self) -> None:
        self.state.error = None

    async def reload(self) -> WizardState:
        """Re-run resume() for the current tenant."""
        if not self.state.tenant_id:
            raise PreconditionError("No tenant to reload")
        return await self.resume(self.state.tenant_id)

    # =========================================================================
    # Dispatch helpers
    # =========================================================================

    def _check_preconditions(self, step: int) -> None:
        if not self.plan.is_active(step):
            raise PreconditionError(f"Step {step} is not active")
        if step > self.plan.first_step and not self.state.tenant_id:
            raise PreconditionError("No tenant selected; complete the company data step first")
        if step != self.state.current_step:
            raise PreconditionError(f"Step {step} is not the current step (current: {self.state.current_step})")

    @staticmethod
    def _parse_payload(step: int, payload: BaseModel | dict[str, Any] | None) -> BaseModel:
        payload_cls = STEP_PAYLOADS[step]
        if isinstance(payload, payload_cls):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        try:
            return payload_cls.model_validate(payload or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'payload'}: {error['msg']}" for error in e.errors()
            )
            raise PreconditionError(f"Invalid data for step {step}: {problems}") from e

    @staticmethod
    def _error_message(error: Exception) -> str:
        if isinstance(error, PreconditionError):
            return str(error)
        if isinstance(error, RecordStoreError) and error.kind == StoreErrorKind.CONSTRAINT_VIOLATION:
            message = CONSTRAINT_MESSAGES.get(error.field)
            if message:
                if isinstance(error, AssistantSaveError):
                    return f"{message} (assistant '{error.assistant_name}')"
                return message
        return f"Failed to save progress: {error}"

    def _log(self, message: str) -> None:
        self.state.log_messages.append(message)
        logger.info(message, extra={"tenant_id": self.state.tenant_id})

    async def _advance(self, step: int) -> None:
        """Persist current_step = next_step(step) and move the wizard forward."""
        next_step = self.plan.next_step(step)
        progress = self.state.progress or OnboardingProgress(
            tenant_id=self.state.tenant_id, total_steps=self.plan.total_steps
        )
        status = progress.status
        if status in (OnboardingStatus.DRAFT, OnboardingStatus.FAILED):
            status = OnboardingStatus.IN_PROGRESS
        progress = progress.model_copy(update={"current_step": next_step, "status": status})

        self.state.progress = _unwrap(await self.store.save_progress(progress), "save progress")
        self.state.current_step = next_step

    # =========================================================================
    # Step handlers
    # =========================================================================

    async def _complete_company_data(self, data: TenantStepPayload) -> list[str]:
        natural_key = (digits_only(data.tenant.document), data.user.email.lower())
        existing = _unwrap(
            await self.store.find_tenant_by_natural_key(*natural_key),
            "look up tenant",
        )
        previous_tenant = existing or self.state.tenant
        previous_progress = None
        if previous_tenant is not None:
            previous_progress = _unwrap(await self.store.get_progress(previous_tenant.id), "load progress")

        pending = self._pending_account if self._pending_account and self._pending_account.key == natural_key else None
        token = existing.pipeelo_token if existing else None
        if token:
            self._log("Reusing existing external account")
        elif pending:
            token = pending.token
            self._log("Reusing external account from the previous attempt")
        else:
            self._log("Creating external account...")
            account = await self.provider.create_tenant_account(
                data.tenant, data.address, data.user, self.settings.ONBOARDING_GATEWAY
            )
            token = account.permanent_token
            if not token:
                self._log("Logging in...")
                session_token = await self.provider.login(data.user.email, data.user.password)
                self._log("Exchanging token...")
                token = await self.provider.get_permanent_token(session_token)
            pending = _PendingAccount(key=natural_key, token=token)
            self._pending_account = pending

        self._log("Saving company data...")
        if previous_tenant is not None:
            address_id = previous_tenant.address_id
        else:
            address_id = pending.address_id if pending else None
        address = _unwrap(
            await self.store.save_address(
                Address(
                    id=address_id,
                    street=data.address.street,
                    number=data.address.number,
                    neighborhood=data.address.neighborhood,
                    country=data.address.country,
                    state=data.address.state,
                    city=data.address.city,
                    complement=data.address.complement,
                    postal_code=digits_only(data.address.postal_code),
                )
            ),
            "save address",
        )
        if pending:
            pending.address_id = address.id

        tenant = _unwrap(
            await self.store.save_tenant(
                Tenant(
                    id=previous_tenant.id if previous_tenant else None,
                    name=data.tenant.name,
                    document=digits_only(data.tenant.document),
                    phone_number=digits_only(data.tenant.phone_number),
                    email=data.tenant.email,
                    website=data.tenant.website,
                    sector=data.tenant.sector,
                    address_id=address.id,
                    pipeelo_token=token,
                ),
                admin_email=data.user.email,
            ),
            "save tenant",
        )

        admin_user = _unwrap(
            await self.store.save_user(
                User(
                    tenant_id=tenant.id,
                    name=data.user.name,
                    email=data.user.email,
                    document=digits_only(data.user.document),
                    role="admin",
                ),
                password=data.user.password,
            ),
            "save admin user",
        )

        # Stored progress keeps its status, deployment fields and furthest step
        next_step = self.plan.next_step(1)
        if previous_progress is not None:
            status = previous_progress.status
            if status in (OnboardingStatus.DRAFT, OnboardingStatus.FAILED):
                status = OnboardingStatus.IN_PROGRESS
            progress = previous_progress.model_copy(
                update={
                    "status": status,
                    "current_step": max(previous_progress.current_step, next_step),
                    "total_steps": self.plan.total_steps,
                }
            )
        else:
            progress = OnboardingProgress(
                tenant_id=tenant.id,
                status=OnboardingStatus.IN_PROGRESS,
                current_step=next_step,
                total_steps=self.plan.total_steps,
            )
        progress = _unwrap(await self.store.save_progress(progress), "save progress")

        # Back navigation within this session continues at step 2; a tenant
        # picked up by another session continues where it stopped
        same_session = self.state.tenant_id == tenant.id
        current_step = next_step if same_session else progress.current_step

        self.provider.set_token(token)
        self._pending_account = None
        self.state.tenant_id = tenant.id
        self.state.tenant = tenant
        self.state.address = address
        self.state.admin_user = admin_user
        self.state.progress = progress
        self.state.current_step = current_step
        self._log("Company data saved")
        return []

    async def _complete_api_configuration(self, data: ApiConfigPayload) -> list[str]:
        previous = self.state.api_configuration
        config = ApiConfiguration(
            id=previous.id if previous else None,
            tenant_id=self.state.tenant_id,
            openai_key=data.openai_key,
            openrouter_key=data.openrouter_key,
            api_tests=data.api_tests,
        )
        self.state.api_configuration = _unwrap(
            await self.store.save_api_configuration(config), "save API configuration"
        )

        warnings = []
        if self.provider.token:
            labels = []
            if data.openai_key:
                self.provider.enqueue(functools.partial(self.provider.update_openai, data.openai_key))
                labels.append("OpenAI")
            if data.openrouter_key:
                self.provider.enqueue(functools.partial(self.provider.update_openrouter, data.openrouter_key))
                labels.append("OpenRouter")
            for label, result in zip(labels, await self.provider.execute_queue()):
                if not result.success:
                    warnings.append(f"Could not push {label} key to the remote account: {result.error}")
        else:
            warnings.append("No provisioning token available; API keys were saved locally only")

        await self._advance(2)
        return warnings

    async def _complete_erp_configuration(self, data: ErpConfigPayload) -> list[str]:
        template = await self.catalog.get_erp_template(data.template_id)
        if template is not None:
            template_id = template.id
        else:
            template_id = data.template_id if is_valid_uuid(data.template_id) else None

        enabled_commands = data.enabled_commands
        if enabled_commands is None:
            enabled_commands = [command.name for command in template.commands] if template else []

        previous = self.state.erp_configuration
        config = ErpConfiguration(
            id=previous.id if previous else None,
            tenant_id=self.state.tenant_id,
            template_id=template_id,
            erp_template_name=data.template_name or (template.name if template else None),
            fields=data.fields,
            enabled_commands=enabled_commands,
            connection_status=data.connection_status,
        )
        self.state.erp_configuration = _unwrap(
            await self.store.save_erp_configuration(config), "save ERP configuration"
        )
        await self._advance(3)
        return []

    async def _complete_assistants(self, data: AssistantsPayload) -> list[str]:
        placeholder_defaults = tenant_placeholder_values(self.state.tenant, self.state.address)
        saved: list[Assistant] = []

        try:
            for draft in data.assistants:
                template = await self.catalog.get_prompt_template(draft.template_id)
                if template is not None:
                    template_id = template.id
                else:
                    template_id = draft.template_id if is_valid_uuid(draft.template_id) else None

                final_content = draft.final_content
                if not final_content and template is not None:
                    final_content = fill_prompt_placeholders(
                        template, {**placeholder_defaults, **draft.placeholders_filled}
                    )

                assistant = Assistant(
                    id=draft.id if is_valid_uuid(draft.id) else None,
                    tenant_id=self.state.tenant_id,
                    name=draft.name,
                    description=draft.description,
                    prompt_template_id=template_id,
                    prompt_config=PromptConfig(
                        template_name=template.name if template else None,
                        final_content=final_content,
                        placeholders_filled=draft.placeholders_filled,
                    ),
                    ai_config=draft.ai_config,
                    enabled_functions=draft.enabled_functions,
                    enabled=draft.enabled,
                )
                result = await self.store.save_assistant(assistant)
                if not result.success:
                    raise AssistantSaveError(draft.name, result)
                saved.append(result.data)
        finally:
            self._merge_assistants(saved)

        await self._advance(4)
        return []

    def _merge_assistants(self, saved: list[Assistant]) -> None:
        by_id = {assistant.id: assistant for assistant in self.state.assistants}
        for assistant in saved:
            by_id[assistant.id] = assistant
        self.state.assistants = list(by_id.values())

    async def _complete_function_mapping(self, data: FunctionMappingPayload) -> list[str]:
        config = self.state.erp_configuration
        if config is None:
            raise PreconditionError("Configure the ERP integration before mapping functions")
        self.state.erp_configuration = _unwrap(
            await self.store.save_erp_configuration(
                config.model_copy(update={"enabled_commands": data.enabled_commands})
            ),
            "save function mapping",
        )
        await self._advance(5)
        return []

    async def _complete_advanced_configuration(self, data: AdvancedConfigPayload) -> list[str]:
        previous = self.state.advanced_configuration
        config = AdvancedConfiguration(
            id=previous.id if previous else None,
            tenant_id=self.state.tenant_id,
            categories=data.categories,
            full_service_enabled=data.full_service_enabled,
            webhooks=data.webhooks,
            backup_settings=data.backup_settings,
        )
        self.state.advanced_configuration = _unwrap(
            await self.store.save_advanced_configuration(config), "save advanced configuration"
        )
        await self._advance(6)
        return []

    async def _complete_deploy(self, data: DeployPayload) -> list[str]:
        tenant = self.state.tenant
        if tenant is None:
            raise PreconditionError("No tenant loaded")

        progress = self.state.progress or OnboardingProgress(tenant_id=self.state.tenant_id)
        url = deployment_url(tenant.name, self.settings.DEPLOYMENT_DOMAIN)
        progress = progress.model_copy(
            update={
                "status": OnboardingStatus.DEPLOYED,
                "current_step": self.plan.last_step,
                "total_steps": self.plan.total_steps,
                "deployed_at": _utcnow(),
                "deployment_url": url,
            }
        )
        self.state.progress = _unwrap(await self.store.save_progress(progress), "save deployment")
        self.state.current_step = self.plan.last_step
        self._log(f"Deployed to {url}")
        return []
