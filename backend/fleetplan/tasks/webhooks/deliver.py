"""Outgoing webhook delivery task."""

import asyncio
from typing import Any

import dramatiq
import structlog

from fleetplan.services.webhooks.delivery_service import WebhookDeliveryService
from fleetplan.tasks.utils.task_db import task_db_session

logger = structlog.get_logger(__name__)


@dramatiq.actor(max_retries=0, queue_name="webhooks")
def deliver_webhook(webhook_id: str, event: str, envelope: dict[str, Any]) -> None:
    """POST one event envelope to one webhook subscription.

    HTTP retries are handled by WebhookDeliveryService (tenacity); the
    outcome is stored as a WebhookDelivery row either way.

    Args:
        webhook_id: Subscription to deliver to
        event: Event name, e.g. "order.created"
        envelope: JSON body ({"event", "timestamp", "data"})
    """
    asyncio.run(_deliver_webhook_async(webhook_id, event, envelope))


async def _deliver_webhook_async(webhook_id: str, event: str, envelope: dict[str, Any]) -> None:
    """Async implementation of deliver_webhook."""
    async with task_db_session() as session:
        service = WebhookDeliveryService(session)
        result = await service.deliver(webhook_id, event, envelope)

    if result is None:
        logger.info("Webhook no longer active, delivery dropped", webhook_id=webhook_id, webhook_event=event)
