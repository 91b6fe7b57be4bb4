"""
Record Store

Async CRUD over every onboarding table.

Each operation opens its own session and transaction and returns a
StoreResult instead of raising. Identity policy:
- an id counts as existing only when it is a valid UUID; anything else
  inserts a new row with a fresh UUID
- before inserting, rows are coalesced by natural key (tenant document +
  admin email, tenant + admin role, one configuration row per tenant)
- foreign keys are checked before flush so dangling references come back
  as CONSTRAINT_VIOLATION naming the column
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Uuid, delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pipeelo_onboarding.contracts.records import (
    AdvancedConfiguration,
    Address,
    ApiConfiguration,
    Assistant,
    DashboardMetrics,
    ErpConfiguration,
    ErpTemplate,
    OnboardingProgress,
    OnboardingStatus,
    PromptTemplate,
    Tenant,
    User,
)
from pipeelo_onboarding.db import get_sessionmaker
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
from pipeelo_onboarding.security import decrypt_secret, encrypt_secret, get_password_hash, verify_password
from pipeelo_onboarding.validation import digits_only, is_valid_uuid

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Columns encrypted at rest
SECRET_COLUMNS = frozenset({"pipeelo_token", "openai_key", "openrouter_key"})

_AUDIT_FIELDS = {"id", "created_at", "updated_at"}


class StoreErrorKind(str, Enum):
    """Structured failure classes for store operations."""

    CONSTRAINT_VIOLATION = "constraint_violation"
    NOT_FOUND = "not_found"
    DATABASE_ERROR = "database_error"


@dataclass
class StoreResult(Generic[T]):
    """Result of a store operation."""

    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: StoreErrorKind | None = None
    field: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "StoreResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: StoreErrorKind,
        error: str,
        field: str | None = None,
    ) -> "StoreResult[T]":
        return cls(success=False, error=error, error_kind=kind, field=field)


def _as_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if is_valid_uuid(value):
        return UUID(value)
    return None


def _to_record(row, record_cls: type[BaseModel]):
    data = {column.key: getattr(row, column.key) for column in row.__table__.columns}
    for key in SECRET_COLUMNS & data.keys():
        data[key] = decrypt_secret(data[key])
    return record_cls.model_validate(data)


class RecordStore:
    """Async repository for onboarding records."""

    def __init__(self, sessionmaker: async_sessionmaker | None = None):
        self._sessionmaker = sessionmaker or get_sessionmaker()

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run(
        self,
        action: str,
        work: Callable[[AsyncSession], Awaitable[StoreResult]],
    ) -> StoreResult:
        """Run `work` inside one transaction, mapping database errors to results."""
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    return await work(session)
        except IntegrityError as e:
            logger.warning(f"{action}: integrity error", extra={"error": str(e.orig)})
            return StoreResult.fail(StoreErrorKind.CONSTRAINT_VIOLATION, str(e.orig))
        except SQLAlchemyError as e:
            logger.error(f"{action}: database error: {e}")
            return StoreResult.fail(StoreErrorKind.DATABASE_ERROR, str(e))

    def _to_values(self, model_cls, record: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
        data = record.model_dump(exclude=_AUDIT_FIELDS | (exclude or set()))
        columns = model_cls.__table__.columns
        values = {}
        for key, value in data.items():
            if key not in columns:
                continue
            if isinstance(value, Enum):
                value = value.value
            if key in SECRET_COLUMNS:
                value = encrypt_secret(value)
            values[key] = value
        return values

    async def _check_references(self, session: AsyncSession, model_cls, values: dict[str, Any]) -> StoreResult | None:
        """Validate UUID and foreign key columns before flush."""
        for column in model_cls.__table__.columns:
            if column.key not in values or not isinstance(column.type, Uuid):
                continue
            raw = values[column.key]
            if raw is None:
                continue
            value = _as_uuid(raw)
            if value is None:
                return StoreResult.fail(
                    StoreErrorKind.CONSTRAINT_VIOLATION,
                    f"{column.key} is not a valid identifier: {raw}",
                    field=column.key,
                )
            values[column.key] = value
            for fk in column.foreign_keys:
                found = await session.scalar(select(fk.column).where(fk.column == value))
                if found is None:
                    return StoreResult.fail(
                        StoreErrorKind.CONSTRAINT_VIOLATION,
                        f"{column.key} references missing {fk.column.table.name} row {value}",
                        field=column.key,
                    )
        return None

    async def _upsert(
        self,
        model_cls,
        record_cls: type[BaseModel],
        record: BaseModel,
        find_existing: Callable[[AsyncSession], Awaitable[Any]] | None = None,
        values: dict[str, Any] | None = None,
    ) -> StoreResult:
        values = values if values is not None else self._to_values(model_cls, record)
        record_id = _as_uuid(record.id)

        async def work(session: AsyncSession) -> StoreResult:
            failure = await self._check_references(session, model_cls, values)
            if failure is not None:
                return failure

            row = await session.get(model_cls, record_id) if record_id else None
            if row is None and find_existing is not None:
                row = await find_existing(session)

            if row is None:
                row = model_cls(**values)
                if record_id:
                    row.id = record_id
                session.add(row)
            else:
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_at = datetime.now(timezone.utc)

            await session.flush()
            await session.refresh(row)
            return StoreResult.ok(_to_record(row, record_cls))

        result = await self._run(f"save {model_cls.__tablename__}", work)
        if result.success:
            logger.info(
                f"Saved {model_cls.__tablename__} row",
                extra={"table": model_cls.__tablename__, "record_id": result.data.id},
            )
        return result

    async def _get(self, model_cls, record_cls, record_id: Any) -> StoreResult:
        key = _as_uuid(record_id)
        if key is None:
            return StoreResult.ok(None)

        async def work(session: AsyncSession) -> StoreResult:
            row = await session.get(model_cls, key)
            return StoreResult.ok(_to_record(row, record_cls) if row else None)

        return await self._run(f"get {model_cls.__tablename__}", work)

    async def _get_by_tenant(self, model_cls, record_cls, tenant_id: Any) -> StoreResult:
        key = _as_uuid(tenant_id)
        if key is None:
            return StoreResult.ok(None)

        async def work(session: AsyncSession) -> StoreResult:
            row = await self._first_by_tenant(session, model_cls, key)
            return StoreResult.ok(_to_record(row, record_cls) if row else None)

        return await self._run(f"get {model_cls.__tablename__}", work)

    @staticmethod
    async def _first_by_tenant(session: AsyncSession, model_cls, tenant_id: Any):
        key = _as_uuid(tenant_id)
        if key is None:
            return None
        return await session.scalar(select(model_cls).where(model_cls.tenant_id == key).limit(1))

    @staticmethod
    async def _admin_row(session: AsyncSession, tenant_id: UUID) -> UserModel | None:
        return await session.scalar(
            select(UserModel)
            .where(UserModel.tenant_id == tenant_id, UserModel.role == "admin")
            .order_by(UserModel.created_at)
            .limit(1)
        )

    async def _tenant_by_natural_key(
        self, session: AsyncSession, document: str, admin_email: str | None
    ) -> TenantModel | None:
        candidates = await session.scalars(
            select(TenantModel).where(TenantModel.document == digits_only(document)).order_by(TenantModel.created_at)
        )
        for tenant in candidates.all():
            admin = await self._admin_row(session, tenant.id)
            if admin is None:
                return tenant
            if admin_email and admin.email.lower() == admin_email.lower():
                return tenant
        return None

    # =========================================================================
    # Addresses
    # =========================================================================

    async def save_address(self, address: Address) -> StoreResult[Address]:
        return await self._upsert(AddressModel, Address, address)

    async def get_address(self, address_id: Any) -> StoreResult[Address | None]:
        return await self._get(AddressModel, Address, address_id)

    # =========================================================================
    # Tenants
    # =========================================================================

    async def save_tenant(self, tenant: Tenant, admin_email: str | None = None) -> StoreResult[Tenant]:
        """
        Insert or update a tenant.

        Without a valid id, a tenant with the same document whose admin has
        `admin_email` (or which has no admin yet) is updated instead.
        """
        tenant = tenant.model_copy(update={"document": digits_only(tenant.document)})

        async def find_existing(session: AsyncSession):
            return await self._tenant_by_natural_key(session, tenant.document, admin_email)

        return await self._upsert(TenantModel, Tenant, tenant, find_existing=find_existing)

    async def get_tenant(self, tenant_id: Any) -> StoreResult[Tenant | None]:
        return await self._get(TenantModel, Tenant, tenant_id)

    async def find_tenant_by_natural_key(self, document: str, admin_email: str | None) -> StoreResult[Tenant | None]:
        async def work(session: AsyncSession) -> StoreResult:
            row = await self._tenant_by_natural_key(session, document, admin_email)
            return StoreResult.ok(_to_record(row, Tenant) if row else None)

        return await self._run("find tenant", work)

    async def list_tenants(
        self,
        status: str | None = None,
        sector: str | None = None,
        search: str | None = None,
    ) -> StoreResult[list[Tenant]]:
        """List tenants, optionally filtered by onboarding status, sector or a search term."""

        async def work(session: AsyncSession) -> StoreResult:
            stmt = select(TenantModel).order_by(TenantModel.created_at.desc())
            if status:
                stmt = stmt.join(
                    OnboardingProgressModel, OnboardingProgressModel.tenant_id == TenantModel.id
                ).where(OnboardingProgressModel.status == status)
            if sector:
                stmt = stmt.where(TenantModel.sector == sector)
            if search:
                pattern = f"%{search}%"
                conditions = [TenantModel.name.ilike(pattern), TenantModel.email.ilike(pattern)]
                if digits_only(search):
                    conditions.append(TenantModel.document.like(f"%{digits_only(search)}%"))
                stmt = stmt.where(or_(*conditions))
            rows = await session.scalars(stmt)
            return StoreResult.ok([_to_record(row, Tenant) for row in rows.all()])

        return await self._run("list tenants", work)

    async def delete_tenant(self, tenant_id: Any) -> StoreResult[None]:
        """Delete a tenant together with its users, configurations, assistants and address."""
        key = _as_uuid(tenant_id)
        if key is None:
            return StoreResult.fail(StoreErrorKind.NOT_FOUND, f"Tenant not found: {tenant_id}")

        async def work(session: AsyncSession) -> StoreResult:
            tenant = await session.get(TenantModel, key)
            if tenant is None:
                return StoreResult.fail(StoreErrorKind.NOT_FOUND, f"Tenant not found: {tenant_id}")
            address_id = tenant.address_id
            for model_cls in (
                AssistantModel,
                ApiConfigurationModel,
                ErpConfigurationModel,
                AdvancedConfigurationModel,
                OnboardingProgressModel,
                UserModel,
            ):
                await session.execute(delete(model_cls).where(model_cls.tenant_id == key))
            await session.delete(tenant)
            await session.flush()
            if address_id is not None:
                await session.execute(delete(AddressModel).where(AddressModel.id == address_id))
            return StoreResult.ok()

        result = await self._run("delete tenant", work)
        if result.success:
            logger.info(f"Deleted tenant {key}", extra={"tenant_id": str(key)})
        return result

    # =========================================================================
    # Users
    # =========================================================================

    async def save_user(self, user: User, password: str | None = None) -> StoreResult[User]:
        """
        Insert or update a user.

        A plain `password` is hashed into password_hash. Admins are coalesced
        by tenant and role, other users by tenant and email.
        """
        if password is not None:
            user = user.model_copy(update={"password_hash": get_password_hash(password)})
        tenant_key = _as_uuid(user.tenant_id)

        async def find_existing(session: AsyncSession):
            if user.role == "admin" and tenant_key is not None:
                return await self._admin_row(session, tenant_key)
            return await session.scalar(
                select(UserModel)
                .where(func.lower(UserModel.email) == user.email.lower(), UserModel.tenant_id == tenant_key)
                .limit(1)
            )

        return await self._upsert(UserModel, User, user, find_existing=find_existing)

    async def get_user(self, user_id: Any) -> StoreResult[User | None]:
        return await self._get(UserModel, User, user_id)

    async def get_admin_user(self, tenant_id: Any) -> StoreResult[User | None]:
        key = _as_uuid(tenant_id)
        if key is None:
            return StoreResult.ok(None)

        async def work(session: AsyncSession) -> StoreResult:
            row = await self._admin_row(session, key)
            return StoreResult.ok(_to_record(row, User) if row else None)

        return await self._run("get admin user", work)

    async def list_users(self, tenant_id: Any = None) -> StoreResult[list[User]]:
        async def work(session: AsyncSession) -> StoreResult:
            stmt = select(UserModel).order_by(UserModel.created_at)
            if tenant_id is not None:
                stmt = stmt.where(UserModel.tenant_id == _as_uuid(tenant_id))
            rows = await session.scalars(stmt)
            return StoreResult.ok([_to_record(row, User) for row in rows.all()])

        return await self._run("list users", work)

    async def delete_user(self, user_id: Any) -> StoreResult[None]:
        key = _as_uuid(user_id)

        async def work(session: AsyncSession) -> StoreResult:
            row = await session.get(UserModel, key) if key else None
            if row is None:
                return StoreResult.fail(StoreErrorKind.NOT_FOUND, f"User not found: {user_id}")
            await session.delete(row)
            return StoreResult.ok()

        return await self._run("delete user", work)

    async def update_user_password(self, user_id: Any, new_password: str) -> StoreResult[User]:
        key = _as_uuid(user_id)

        async def work(session: AsyncSession) -> StoreResult:
            row = await session.get(UserModel, key) if key else None
            if row is None:
                return StoreResult.fail(StoreErrorKind.NOT_FOUND, f"User not found: {user_id}")
            row.password_hash = get_password_hash(new_password)
            await session.flush()
            await session.refresh(row)
            return StoreResult.ok(_to_record(row, User))

        return await self._run("update password", work)

    async def authenticate_user(self, email: str, password: str) -> StoreResult[User | None]:
        """Return the user when the password matches, None otherwise."""

        async def work(session: AsyncSession) -> StoreResult:
            rows = await session.scalars(select(UserModel).where(func.lower(UserModel.email) == email.lower()))
            for row in rows.all():
                if row.password_hash and verify_password(password, row.password_hash):
                    return StoreResult.ok(_to_record(row, User))
            return StoreResult.ok(None)

        return await self._run("authenticate user", work)

    # =========================================================================
    # Per-tenant configurations
    # =========================================================================

    def _tenant_finder(self, model_cls, tenant_id: Any):
        async def find_existing(session: AsyncSession):
            return await self._first_by_tenant(session, model_cls, tenant_id)

        return find_existing

    async def save_api_configuration(self, config: ApiConfiguration) -> StoreResult[ApiConfiguration]:
        return await self._upsert(
            ApiConfigurationModel,
            ApiConfiguration,
            config,
            find_existing=self._tenant_finder(ApiConfigurationModel, config.tenant_id),
        )

    async def get_api_configuration(self, tenant_id: Any) -> StoreResult[ApiConfiguration | None]:
        return await self._get_by_tenant(ApiConfigurationModel, ApiConfiguration, tenant_id)

    async def save_erp_configuration(self, config: ErpConfiguration) -> StoreResult[ErpConfiguration]:
        return await self._upsert(
            ErpConfigurationModel,
            ErpConfiguration,
            config,
            find_existing=self._tenant_finder(ErpConfigurationModel, config.tenant_id),
        )

    async def get_erp_configuration(self, tenant_id: Any) -> StoreResult[ErpConfiguration | None]:
        return await self._get_by_tenant(ErpConfigurationModel, ErpConfiguration, tenant_id)

    async def save_advanced_configuration(
        self, config: AdvancedConfiguration
    ) -> StoreResult[AdvancedConfiguration]:
        return await self._upsert(
            AdvancedConfigurationModel,
            AdvancedConfiguration,
            config,
            find_existing=self._tenant_finder(AdvancedConfigurationModel, config.tenant_id),
        )

    async def get_advanced_configuration(self, tenant_id: Any) -> StoreResult[AdvancedConfiguration | None]:
        return await self._get_by_tenant(AdvancedConfigurationModel, AdvancedConfiguration, tenant_id)

    async def save_progress(self, progress: OnboardingProgress) -> StoreResult[OnboardingProgress]:
        return await self._upsert(
            OnboardingProgressModel,
            OnboardingProgress,
            progress,
            find_existing=self._tenant_finder(OnboardingProgressModel, progress.tenant_id),
        )

    async def get_progress(self, tenant_id: Any) -> StoreResult[OnboardingProgress | None]:
        return await self._get_by_tenant(OnboardingProgressModel, OnboardingProgress, tenant_id)

    # =========================================================================
    # Assistants
    # =========================================================================

    async def save_assistant(self, assistant: Assistant) -> StoreResult[Assistant]:
        return await self._upsert(AssistantModel, Assistant, assistant)

    async def list_assistants(self, tenant_id: Any) -> StoreResult[list[Assistant]]:
        key = _as_uuid(tenant_id)
        if key is None:
            return StoreResult.ok([])

        async def work(session: AsyncSession) -> StoreResult:
            rows = await session.scalars(
                select(AssistantModel).where(AssistantModel.tenant_id == key).order_by(AssistantModel.created_at)
            )
            return StoreResult.ok([_to_record(row, Assistant) for row in rows.all()])

        return await self._run("list assistants", work)

    # =========================================================================
    # Templates
    # =========================================================================

    async def list_erp_templates(self, include_inactive: bool = False) -> StoreResult[list[ErpTemplate]]:
        async def work(session: AsyncSession) -> StoreResult:
            stmt = select(ErpTemplateModel).order_by(ErpTemplateModel.name)
            if not include_inactive:
                stmt = stmt.where(ErpTemplateModel.is_active.is_(True))
            rows = await session.scalars(stmt)
            return StoreResult.ok([_to_record(row, ErpTemplate) for row in rows.all()])

        return await self._run("list erp templates", work)

    async def list_prompt_templates(self, include_inactive: bool = False) -> StoreResult[list[PromptTemplate]]:
        async def work(session: AsyncSession) -> StoreResult:
            stmt = select(PromptTemplateModel).order_by(PromptTemplateModel.name)
            if not include_inactive:
                stmt = stmt.where(PromptTemplateModel.is_active.is_(True))
            rows = await session.scalars(stmt)
            return StoreResult.ok([_to_record(row, PromptTemplate) for row in rows.all()])

        return await self._run("list prompt templates", work)

    async def save_erp_template(self, template: ErpTemplate) -> StoreResult[ErpTemplate]:
        async def find_existing(session: AsyncSession):
            return await session.scalar(select(ErpTemplateModel).where(ErpTemplateModel.slug == template.slug))

        return await self._upsert(ErpTemplateModel, ErpTemplate, template, find_existing=find_existing)

    async def save_prompt_template(self, template: PromptTemplate) -> StoreResult[PromptTemplate]:
        async def find_existing(session: AsyncSession):
            return await session.scalar(
                select(PromptTemplateModel).where(PromptTemplateModel.slug == template.slug)
            )

        return await self._upsert(PromptTemplateModel, PromptTemplate, template, find_existing=find_existing)

    async def delete_prompt_template(self, template_id: Any) -> StoreResult[None]:
        """Soft delete: the template is deactivated, assistants keep their reference."""
        key = _as_uuid(template_id)

        async def work(session: AsyncSession) -> StoreResult:
            row = await session.get(PromptTemplateModel, key) if key else None
            if row is None:
                return StoreResult.fail(StoreErrorKind.NOT_FOUND, f"Prompt template not found: {template_id}")
            row.is_active = False
            return StoreResult.ok()

        return await self._run("delete prompt template", work)

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def dashboard_metrics(self) -> StoreResult[DashboardMetrics]:
        """Aggregate onboarding counters for the dashboard."""

        async def work(session: AsyncSession) -> StoreResult:
            total = await session.scalar(select(func.count()).select_from(TenantModel)) or 0
            rows = (
                await session.execute(
                    select(OnboardingProgressModel.status, OnboardingProgressModel.deployed_at, TenantModel.created_at)
                    .join(TenantModel, TenantModel.id == OnboardingProgressModel.tenant_id)
                )
            ).all()

            finished = {OnboardingStatus.COMPLETED.value, OnboardingStatus.DEPLOYED.value}
            completed = sum(1 for status, _, _ in rows if status in finished)
            in_progress = sum(1 for status, _, _ in rows if status == OnboardingStatus.IN_PROGRESS.value)
            failed = sum(1 for status, _, _ in rows if status == OnboardingStatus.FAILED.value)

            durations = []
            for _, deployed_at, created_at in rows:
                if deployed_at is None or created_at is None:
                    continue
                # SQLite drops tzinfo on read
                if (deployed_at.tzinfo is None) != (created_at.tzinfo is None):
                    deployed_at = deployed_at.replace(tzinfo=None)
                    created_at = created_at.replace(tzinfo=None)
                durations.append((deployed_at - created_at).total_seconds() / 86400)

            return StoreResult.ok(
                DashboardMetrics(
                    total_clients=total,
                    completed_onboardings=completed,
                    in_progress=in_progress,
                    failed_deployments=failed,
                    success_rate=round(completed / total * 100, 1) if total else 0.0,
                    average_completion_days=round(sum(durations) / len(durations), 1) if durations else 0.0,
                )
            )

        return await self._run("dashboard metrics", work)
