"""
Onboarding CLI

Command-line dashboard and wizard driver for tenant onboarding.

Commands:
- init-db: Create database tables
- seed-templates: Load the built-in ERP and prompt templates
- list-tenants / show-tenant / delete-tenant: Manage tenants
- metrics: Onboarding dashboard counters
- list-users / create-user / delete-user / set-password: Manage users
- list-prompts / create-prompt / delete-prompt: Manage prompt templates
- list-erp-templates: Show ERP integration templates
- step: Complete one onboarding step from a JSON payload
"""

import asyncio
import contextlib
import json
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import async_sessionmaker

from pipeelo_onboarding.catalog import TemplateCatalog, extract_placeholders, seed_catalog
from pipeelo_onboarding.contracts.records import OnboardingStatus, PromptTemplate, User
from pipeelo_onboarding.db import create_engine, init_db
from pipeelo_onboarding.logging import setup_logging
from pipeelo_onboarding.onboarding import STEP_TITLES, OnboardingOrchestrator, PreconditionError
from pipeelo_onboarding.persistence.store import RecordStore
from pipeelo_onboarding.providers import get_provider
from pipeelo_onboarding.settings import get_settings
from pipeelo_onboarding.validation import format_cnpj, is_valid_email, password_strength_feedback

app = typer.Typer(
    name="pipeelo-onboarding",
    help="Pipeelo tenant onboarding CLI",
)

console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    setup_logging(log_level)


@contextlib.asynccontextmanager
async def open_store():
    """Record store on a fresh engine, disposed when the command ends."""
    settings = get_settings()
    engine = create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    try:
        yield RecordStore(async_sessionmaker(bind=engine, expire_on_commit=False)), engine
    finally:
        await engine.dispose()


def _fail(message: str) -> None:
    rprint(f"[red]{message}[/red]")
    raise typer.Exit(1)


@app.command("init-db")
def init_db_command():
    """Create all onboarding tables."""

    async def run():
        async with open_store() as (_, engine):
            await init_db(engine)

    asyncio.run(run())
    rprint("[green]Database initialized[/green]")


@app.command()
def seed_templates():
    """Load the built-in ERP and prompt templates (idempotent)."""

    async def run():
        async with open_store() as (store, _):
            return await seed_catalog(store)

    erp_saved, prompts_saved = asyncio.run(run())
    rprint(f"[green]Seeded {erp_saved} ERP templates and {prompts_saved} prompt templates[/green]")


@app.command()
def list_tenants(
    status: Optional[str] = typer.Option(None, help="Filter by onboarding status"),
    sector: Optional[str] = typer.Option(None, help="Filter by sector"),
    search: Optional[str] = typer.Option(None, help="Search name, email or document"),
):
    """
    List tenants with their onboarding progress.
    """
    if status:
        try:
            OnboardingStatus(status)
        except ValueError:
            _fail(f"Unknown status: {status}")

    async def run():
        async with open_store() as (store, _):
            result = await store.list_tenants(status=status, sector=sector, search=search)
            if not result.success:
                return result, []
            progress = []
            for tenant in result.data:
                progress.append((await store.get_progress(tenant.id)).data)
            return result, progress

    result, progress = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to list tenants: {result.error}")
    if not result.data:
        rprint("[yellow]No tenants found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Tenants")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Document")
    table.add_column("Email")
    table.add_column("Sector")
    table.add_column("Status")
    table.add_column("Step")

    for tenant, tenant_progress in zip(result.data, progress):
        table.add_row(
            tenant.id,
            tenant.name,
            format_cnpj(tenant.document),
            tenant.email,
            tenant.sector or "-",
            tenant_progress.status.value if tenant_progress else "draft",
            f"{tenant_progress.current_step}/{tenant_progress.total_steps}" if tenant_progress else "-",
        )

    console.print(table)


@app.command()
def show_tenant(
    tenant_id: str = typer.Argument(..., help="Tenant UUID"),
):
    """
    Show everything configured for a tenant.
    """

    async def run():
        async with open_store() as (store, _):
            orchestrator = OnboardingOrchestrator(store, get_provider())
            try:
                return await orchestrator.resume(tenant_id)
            finally:
                await orchestrator.provider.close()

    try:
        state = asyncio.run(run())
    except PreconditionError as e:
        _fail(str(e))

    tenant = state.tenant
    rprint(f"[bold]{tenant.name}[/bold] ({tenant.id})")
    rprint(f"  Document: {format_cnpj(tenant.document)}")
    rprint(f"  Email: {tenant.email}")
    rprint(f"  Phone: {tenant.phone_number}")
    rprint(f"  Sector: {tenant.sector or '-'}")
    rprint(f"  Provisioned: {'Yes' if tenant.pipeelo_token else 'No'}")
    if state.address:
        rprint(f"  Address: {state.address.street}, {state.address.number} - {state.address.city}/{state.address.state}")
    if state.admin_user:
        rprint(f"  Admin: {state.admin_user.name} <{state.admin_user.email}>")
    if state.progress:
        rprint(f"  Status: {state.progress.status.value}")
        if state.progress.deployment_url:
            rprint(f"  Deployment: {state.progress.deployment_url}")
    rprint(f"  Current step: {state.current_step} ({STEP_TITLES.get(state.current_step, '?')})")
    rprint(f"  ERP: {state.erp_configuration.erp_template_name if state.erp_configuration else '-'}")
    rprint(f"  Assistants: {len(state.assistants)}")


@app.command()
def delete_tenant(
    tenant_id: str = typer.Argument(..., help="Tenant UUID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """
    Delete a tenant and all of its onboarding data.
    """
    if not force:
        confirm = typer.confirm(f"Delete tenant {tenant_id} and all its data?")
        if not confirm:
            rprint("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    async def run():
        async with open_store() as (store, _):
            return await store.delete_tenant(tenant_id)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to delete tenant: {result.error}")
    rprint("[green]Tenant deleted[/green]")


@app.command()
def metrics():
    """Show onboarding dashboard metrics."""

    async def run():
        async with open_store() as (store, _):
            return await store.dashboard_metrics()

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to compute metrics: {result.error}")

    data = result.data
    table = Table(title="Onboarding Metrics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total clients", str(data.total_clients))
    table.add_row("Completed onboardings", str(data.completed_onboardings))
    table.add_row("In progress", str(data.in_progress))
    table.add_row("Failed deployments", str(data.failed_deployments))
    table.add_row("Success rate", f"{data.success_rate}%")
    table.add_row("Average completion (days)", str(data.average_completion_days))
    console.print(table)


@app.command()
def list_users(
    tenant_id: Optional[str] = typer.Option(None, help="Filter by tenant UUID"),
):
    """
    List users.
    """

    async def run():
        async with open_store() as (store, _):
            return await store.list_users(tenant_id)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to list users: {result.error}")
    if not result.data:
        rprint("[yellow]No users found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Users")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Tenant", style="dim")

    for user in result.data:
        table.add_row(user.id, user.name, user.email, user.role, user.tenant_id or "-")

    console.print(table)


@app.command()
def create_user(
    name: str = typer.Argument(..., help="Full name"),
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    role: str = typer.Option("user", help="Role (admin, user)"),
    tenant_id: Optional[str] = typer.Option(None, help="Tenant UUID"),
):
    """
    Create a dashboard user.
    """
    if not is_valid_email(email):
        _fail(f"Invalid email: {email}")
    problems = password_strength_feedback(password)
    if problems:
        _fail("\n".join(problems))

    async def run():
        async with open_store() as (store, _):
            return await store.save_user(User(tenant_id=tenant_id, name=name, email=email, role=role), password=password)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to create user: {result.error}")
    rprint("[green]User created:[/green]")
    rprint(f"  ID: {result.data.id}")
    rprint(f"  Email: {result.data.email}")
    rprint(f"  Role: {result.data.role}")


@app.command()
def delete_user(
    user_id: str = typer.Argument(..., help="User UUID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """
    Delete a user.
    """
    if not force:
        confirm = typer.confirm(f"Delete user {user_id}?")
        if not confirm:
            rprint("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    async def run():
        async with open_store() as (store, _):
            return await store.delete_user(user_id)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to delete user: {result.error}")
    rprint("[green]User deleted[/green]")


@app.command()
def set_password(
    user_id: str = typer.Argument(..., help="User UUID"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """
    Replace a user's password.
    """
    problems = password_strength_feedback(password)
    if problems:
        _fail("\n".join(problems))

    async def run():
        async with open_store() as (store, _):
            return await store.update_user_password(user_id, password)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to update password: {result.error}")
    rprint("[green]Password updated[/green]")


@app.command()
def list_prompts(
    all_: bool = typer.Option(False, "--all", "-a", help="Show deleted templates too"),
):
    """
    List prompt templates.
    """

    async def run():
        async with open_store() as (store, _):
            return await store.list_prompt_templates(include_inactive=all_)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to list prompt templates: {result.error}")
    if not result.data:
        rprint("[yellow]No prompt templates found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Prompt Templates")
    table.add_column("ID", style="dim")
    table.add_column("Slug")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Placeholders")
    table.add_column("Active")

    for template in result.data:
        table.add_row(
            template.id,
            template.slug,
            template.name,
            template.category,
            ", ".join(template.placeholders),
            "Yes" if template.is_active else "No",
        )

    console.print(table)


@app.command()
def create_prompt(
    slug: str = typer.Argument(..., help="Unique template slug"),
    name: str = typer.Argument(..., help="Display name"),
    content_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File with the prompt content"),
    description: str = typer.Option("", help="Description"),
    category: str = typer.Option("", help="Category"),
    sector: Optional[str] = typer.Option(None, help="Sector"),
):
    """
    Create or update a prompt template. Placeholders are read from {NAME} tokens.
    """
    content = content_file.read_text(encoding="utf-8")
    template = PromptTemplate(
        slug=slug,
        name=name,
        description=description,
        category=category,
        sector=sector,
        content=content,
        placeholders=extract_placeholders(content),
    )

    async def run():
        async with open_store() as (store, _):
            return await store.save_prompt_template(template)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to save prompt template: {result.error}")
    rprint(f"[green]Saved prompt template {result.data.slug}[/green] ({result.data.id})")
    rprint(f"  Placeholders: {', '.join(result.data.placeholders) or '-'}")


@app.command()
def delete_prompt(
    template_id: str = typer.Argument(..., help="Prompt template UUID"),
):
    """
    Deactivate a prompt template. Assistants using it keep their copy of the prompt.
    """

    async def run():
        async with open_store() as (store, _):
            return await store.delete_prompt_template(template_id)

    result = asyncio.run(run())
    if not result.success:
        _fail(f"Failed to delete prompt template: {result.error}")
    rprint("[green]Prompt template deactivated[/green]")


@app.command()
def list_erp_templates():
    """List ERP integration templates."""

    async def run():
        async with open_store() as (store, _):
            return await TemplateCatalog(store).list_erp_templates()

    templates = asyncio.run(run())
    if not templates:
        rprint("[yellow]No ERP templates found (run seed-templates)[/yellow]")
        raise typer.Exit(0)

    table = Table(title="ERP Templates")
    table.add_column("ID", style="dim")
    table.add_column("Slug")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Commands")

    for template in templates:
        table.add_row(
            template.id,
            template.slug,
            template.name,
            template.version,
            ", ".join(command.name for command in template.commands),
        )

    console.print(table)


@app.command()
def step(
    number: int = typer.Argument(..., help="Step number (1-7)"),
    payload_file: Optional[Path] = typer.Argument(None, exists=True, dir_okay=False, help="JSON payload"),
    tenant_id: Optional[str] = typer.Option(None, help="Tenant UUID (required after step 1)"),
):
    """
    Complete one onboarding step.

    The tenant is resumed first, so the step must be the tenant's current step.
    """
    payload = {}
    if payload_file is not None:
        try:
            payload = json.loads(payload_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            _fail(f"Invalid JSON payload: {e}")

    async def run():
        async with open_store() as (store, _):
            orchestrator = OnboardingOrchestrator(store, get_provider())
            try:
                if tenant_id:
                    await orchestrator.resume(tenant_id)
                outcome = await orchestrator.complete_step(number, payload)
                return outcome, orchestrator.state
            finally:
                await orchestrator.provider.close()

    try:
        outcome, state = asyncio.run(run())
    except PreconditionError as e:
        _fail(str(e))

    for message in state.log_messages:
        rprint(f"[dim]{message}[/dim]")
    for warning in outcome.warnings:
        rprint(f"[yellow]Warning: {warning}[/yellow]")

    if not outcome.advanced:
        _fail(outcome.error or "Step failed")

    rprint(f"[green]Step {number} ({STEP_TITLES.get(number, '?')}) completed[/green]")
    rprint(f"  Tenant: {state.tenant_id}")
    if state.progress and state.progress.deployment_url:
        rprint(f"  Deployment: {state.progress.deployment_url}")
    else:
        rprint(f"  Next step: {outcome.current_step} ({STEP_TITLES.get(outcome.current_step, '?')})")


if __name__ == "__main__":
    app()
