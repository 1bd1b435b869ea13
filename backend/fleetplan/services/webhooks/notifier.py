"""Webhook notifier: fans an event out to the tenant's subscriptions."""

from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import col, select

from fleetplan.models.enums import WebhookEvent
from fleetplan.models.webhook import Webhook
from fleetplan.services.webhooks.events import WebhookEnvelope

logger = structlog.get_logger(__name__)

# (webhook_id, event name, JSON envelope) -> None
DispatchFn = Callable[[str, str, dict[str, Any]], None]


def enqueue_delivery(webhook_id: str, event: str, envelope: dict[str, Any]) -> None:
    """Queue a Dramatiq delivery job for one subscription."""
    # Imported lazily: importing fleetplan.tasks configures the broker
    from fleetplan.tasks.webhooks.deliver import deliver_webhook

    deliver_webhook.send(webhook_id, event, envelope)


class WebhookNotifier:
    """Publishes tenant events to active webhook subscriptions.

    Delivery (HTTP, signing, retries) happens in a background job; publish()
    only looks up subscriptions and queues one job per subscription. Errors
    are logged and swallowed, the event source never fails because of it.

    Usage:
        notifier = WebhookNotifier(async_session_maker)
        await notifier.publish(tenant_id, WebhookEvent.ORDER_CREATED, payload)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], dispatch: DispatchFn | None = None):
        self.session_factory = session_factory
        self.dispatch = dispatch or enqueue_delivery

    async def publish(self, tenant_id: str, event: WebhookEvent, payload: dict[str, Any]) -> None:
        try:
            async with self.session_factory() as session:
                statement = select(Webhook).where(
                    col(Webhook.tenant_id) == tenant_id,
                    col(Webhook.is_active).is_(True),
                )
                result = await session.execute(statement)
                # events is a JSON list; filtered here to stay database-agnostic
                webhooks = [webhook for webhook in result.scalars().all() if event.value in webhook.events]

            if not webhooks:
                logger.debug("No webhook subscriptions for event", tenant_id=tenant_id, webhook_event=event.value)
                return

            envelope = WebhookEnvelope(event=event, data=payload).model_dump(mode="json")
            for webhook in webhooks:
                self.dispatch(webhook.id, event.value, envelope)

            logger.info(
                "Queued webhook deliveries",
                tenant_id=tenant_id,
                webhook_event=event.value,
                count=len(webhooks),
            )
        except Exception as e:
            logger.error(
                "Failed to publish webhook event",
                error=str(e),
                tenant_id=tenant_id,
                webhook_event=event.value,
            )
