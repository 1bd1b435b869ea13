"""Operator CLI for recurring orders.

    fleetplan preview WEEKLY --day-of-week 1 --start 2024-03-04
    fleetplan generate-due
    fleetplan generate-due --enqueue
    fleetplan generate <tenant-id> <template-id>
"""

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING

import click

from fleetplan.logging import setup_logging
from fleetplan.models.enums import CursorPolicy, RecurringFrequency
from fleetplan.scheduling.recurrence import RecurrenceRule, align_to_rule, next_occurrence
from fleetplan.services.exceptions import ServiceError
from fleetplan.utils.datetime_utils import BUSINESS_TIMEZONE

if TYPE_CHECKING:
    from fleetplan.services.recurring.sweep_service import SweepResult


def _parse_date(ctx: click.Context, param: click.Parameter, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(f"expected ISO date, got {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=BUSINESS_TIMEZONE)
    return parsed


@click.group()
def cli() -> None:
    """Recurring order scheduling tools."""
    setup_logging()


@cli.command("preview")
@click.argument("frequency", type=click.Choice([f.value for f in RecurringFrequency], case_sensitive=False))
@click.option("--day-of-week", type=click.IntRange(0, 6), help="0 = Sunday ... 6 = Saturday")
@click.option("--day-of-month", type=click.IntRange(1, 31))
@click.option("--start", callback=_parse_date, help="ISO date of the first allowed occurrence (default: now)")
@click.option("--count", default=5, show_default=True, type=click.IntRange(1, 100))
def preview(
    frequency: str,
    day_of_week: int | None,
    day_of_month: int | None,
    start: datetime | None,
    count: int,
) -> None:
    """Print the next COUNT occurrences of a rule, in the business timezone."""
    try:
        rule = RecurrenceRule.of(RecurringFrequency(frequency.upper()), day_of_week, day_of_month)
    except ServiceError as e:
        raise click.ClickException(str(e)) from e

    occurrence = align_to_rule(start or datetime.now(BUSINESS_TIMEZONE), rule)
    for index in range(1, count + 1):
        click.echo(f"{index:>3}  {occurrence:%a %Y-%m-%d %H:%M %Z}")
        occurrence = next_occurrence(occurrence, rule.frequency, rule.day_of_week, rule.day_of_month)


@cli.command("generate-due")
@click.option("--enqueue", is_flag=True, help="Queue the Dramatiq sweep instead of running it here")
@click.option(
    "--policy",
    type=click.Choice([p.value for p in CursorPolicy]),
    help="Override the configured cursor policy for this run",
)
def generate_due(enqueue: bool, policy: str | None) -> None:
    """Generate orders for every due recurring template."""
    if enqueue:
        from fleetplan.tasks.recurring.generate_due import generate_due_recurring_orders

        generate_due_recurring_orders.send()
        click.echo("Queued recurring order sweep")
        return

    result = asyncio.run(_run_sweep(CursorPolicy(policy) if policy else None))
    click.echo(f"Generated {result.generated}, skipped {result.skipped}, failed {result.failed}")
    for order_number in result.order_numbers:
        click.echo(f"  {order_number}")
    if result.failed:
        raise SystemExit(1)


@cli.command("generate")
@click.argument("tenant_id")
@click.argument("template_id")
@click.option("--actor", "actor_id", help="User id recorded in the audit log")
def generate(tenant_id: str, template_id: str, actor_id: str | None) -> None:
    """Generate the next order of one template now."""
    try:
        order_number, next_date = asyncio.run(_run_generate(tenant_id, template_id, actor_id))
    except ServiceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Created {order_number}, next occurrence {next_date.astimezone(BUSINESS_TIMEZONE):%Y-%m-%d %H:%M %Z}")


async def _run_sweep(policy: CursorPolicy | None) -> "SweepResult":
    from fleetplan.services.audit import AuditService
    from fleetplan.services.recurring.sweep_service import RecurringSweepService
    from fleetplan.services.webhooks.notifier import WebhookNotifier
    from fleetplan.tasks.utils.task_db import task_session_maker

    async with task_session_maker() as session_factory:
        sweep = RecurringSweepService(
            session_factory,
            audit=AuditService(session_factory),
            notifier=WebhookNotifier(session_factory),
            cursor_policy=policy,
        )
        return await sweep.run()


async def _run_generate(tenant_id: str, template_id: str, actor_id: str | None) -> tuple[str, datetime]:
    from fleetplan.services.audit import AuditService
    from fleetplan.services.recurring.generation_service import RecurringGenerationService
    from fleetplan.services.webhooks.notifier import WebhookNotifier
    from fleetplan.tasks.utils.task_db import task_session_maker

    async with task_session_maker() as session_factory:
        async with session_factory() as session:
            service = RecurringGenerationService(
                session,
                audit=AuditService(session_factory),
                notifier=WebhookNotifier(session_factory),
            )
            result = await service.generate(tenant_id, template_id, actor_id=actor_id)
        return result.order.order_number, result.template.next_generation_date


if __name__ == "__main__":
    cli()
