"""Signed HTTP delivery of webhook events."""

import json
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fleetplan.config import settings
from fleetplan.models.base import utc_now
from fleetplan.models.webhook import Webhook, WebhookDelivery
from fleetplan.services.webhooks.signing import sign_payload
from fleetplan.utils.retry import RetryConfig, get_retrying

logger = structlog.get_logger(__name__)

WEBHOOK_RETRY_CONFIG = RetryConfig(
    max_attempts=settings.webhook_max_attempts,
    min_wait=settings.webhook_min_wait,
    max_wait=settings.webhook_max_wait,
)


@dataclass
class DeliveryResult:
    """Outcome of delivering one event to one webhook."""

    success: bool
    attempts: int
    status_code: int | None = None
    error: str | None = None


class RetryableStatusError(Exception):
    """Subscriber answered 5xx or 429 - worth another attempt."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


class WebhookDeliveryService:
    """Delivers webhook events and keeps a delivery log.

    - Body is signed with the subscription secret (X-Webhook-Signature)
    - Network errors, 5xx and 429 are retried with exponential backoff
    - Other 4xx answers are final (the subscriber rejected the event)
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.session = session
        self.transport = transport
        self.retry_config = retry_config or WEBHOOK_RETRY_CONFIG

    async def deliver(self, webhook_id: str, event: str, envelope: dict[str, Any]) -> DeliveryResult | None:
        """Deliver ``envelope`` to a webhook and record the outcome.

        Returns None when the webhook no longer exists or was deactivated.
        """
        webhook = await self.session.get(Webhook, webhook_id)
        if not webhook or not webhook.is_active:
            logger.info("Webhook missing or inactive, skipping delivery", webhook_id=webhook_id, webhook_event=event)
            return None

        delivery = WebhookDelivery(webhook_id=webhook.id, event=event, payload=envelope, attempts=0)
        self.session.add(delivery)
        await self.session.commit()

        result = await self.send(webhook, event, envelope)

        delivery.success = result.success
        delivery.status_code = result.status_code
        delivery.error = result.error
        delivery.attempts = result.attempts
        delivery.delivered_at = utc_now() if result.success else None
        await self.session.commit()

        log = logger.info if result.success else logger.warning
        log(
            "Webhook delivery finished",
            webhook_id=webhook.id,
            webhook_event=event,
            success=result.success,
            status_code=result.status_code,
            attempts=result.attempts,
            error=result.error,
        )
        return result

    async def send(self, webhook: Webhook, event: str, envelope: dict[str, Any]) -> DeliveryResult:
        """POST the signed envelope, retrying transient failures."""
        body = json.dumps(envelope).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": sign_payload(body, webhook.secret),
            "X-Webhook-Timestamp": str(int(utc_now().timestamp() * 1000)),
            "X-Webhook-Event": event,
            "X-Webhook-Id": webhook.id,
            **(webhook.headers or {}),
        }

        attempts = 0
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=settings.webhook_timeout) as client:
                async for attempt in get_retrying((httpx.RequestError, RetryableStatusError), self.retry_config):
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        if attempts > 1:
                            logger.warning("Retrying webhook delivery", webhook_id=webhook.id, attempt=attempts)
                        response = await client.post(webhook.url, content=body, headers=headers)
                        if response.status_code == 429 or response.status_code >= 500:
                            raise RetryableStatusError(response)
        except RetryableStatusError as e:
            return DeliveryResult(
                success=False,
                attempts=attempts,
                status_code=e.response.status_code,
                error=f"HTTP {e.response.status_code}",
            )
        except httpx.TimeoutException:
            return DeliveryResult(
                success=False,
                attempts=attempts,
                error=f"Request timeout ({settings.webhook_timeout:g}s)",
            )
        except httpx.RequestError as e:
            return DeliveryResult(success=False, attempts=attempts, error=str(e) or type(e).__name__)

        if response.is_success:
            return DeliveryResult(success=True, attempts=attempts, status_code=response.status_code)
        return DeliveryResult(
            success=False,
            attempts=attempts,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}",
        )
