"""Webhook event payload definitions."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Self

from pydantic import BaseModel, Field

from fleetplan.models.base import utc_now
from fleetplan.models.enums import OrderStatus, WebhookEvent
from fleetplan.models.order import Order


class WebhookOrder(BaseModel):
    """Public order fields exposed to webhook subscribers."""

    id: str
    order_number: str
    status: OrderStatus
    origin: str
    destination: str
    loading_date: datetime
    unloading_date: datetime
    price_net: Decimal | None
    currency: str
    contractor_id: str | None

    @classmethod
    def from_model(cls, order: Order) -> Self:
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            origin=order.origin,
            destination=order.destination,
            loading_date=order.loading_date,
            unloading_date=order.unloading_date,
            price_net=order.price_net,
            currency=order.currency,
            contractor_id=order.contractor_id,
        )


class TemplateReference(BaseModel):
    """Recurring template an order was generated from."""

    id: str
    name: str


class OrderCreatedPayload(BaseModel):
    """Data of the ``order.created`` event."""

    order: WebhookOrder
    generated_from_template: TemplateReference | None = None

    @classmethod
    def from_generated(cls, order: Order, template_id: str, template_name: str) -> Self:
        return cls(
            order=WebhookOrder.from_model(order),
            generated_from_template=TemplateReference(id=template_id, name=template_name),
        )


class WebhookEnvelope(BaseModel):
    """Body POSTed to subscribers: event name, timestamp and event data."""

    event: WebhookEvent
    timestamp: datetime = Field(default_factory=utc_now)
    data: dict[str, Any]
