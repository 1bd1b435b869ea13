"""Periodic generation of due recurring orders."""

import asyncio

import dramatiq
import structlog

from fleetplan.services.audit import AuditService
from fleetplan.services.recurring.sweep_service import RecurringSweepService, SweepResult
from fleetplan.services.webhooks.notifier import WebhookNotifier
from fleetplan.tasks.utils.task_db import task_session_maker

logger = structlog.get_logger(__name__)


@dramatiq.actor(max_retries=0, time_limit=15 * 60 * 1000)
def generate_due_recurring_orders() -> None:
    """Generate orders for every recurring template whose occurrence is due.

    Triggered by an external scheduler (cron, k8s CronJob). Per-template
    retries happen inside the sweep; the actor itself is not retried since
    the next scheduled run picks up whatever is still due.
    """
    asyncio.run(_generate_due_async())


async def _generate_due_async() -> SweepResult:
    """Async implementation of generate_due_recurring_orders."""
    async with task_session_maker() as session_factory:
        sweep = RecurringSweepService(
            session_factory,
            audit=AuditService(session_factory),
            notifier=WebhookNotifier(session_factory),
        )
        result = await sweep.run()

    logger.info(
        "Completed due recurring order generation",
        generated=result.generated,
        skipped=result.skipped,
        failed=result.failed,
    )
    return result
