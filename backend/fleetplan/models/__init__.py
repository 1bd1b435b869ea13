"""Database models."""

# ruff: noqa: I001 - Import order matters for SQLAlchemy foreign key resolution
from sqlmodel import SQLModel

from fleetplan.models.enums import (
    AuditAction,
    AuditEntityType,
    OrderStatus,
    OrderType,
    RecurringFrequency,
    WebhookEvent,
)

# recurring_order.py must be imported first (orders.recurring_order_id references it)
from fleetplan.models.recurring_order import (
    OrderPayload,
    RecurringOrder,
    RecurringOrderCreate,
    RecurringOrderUpdate,
)
from fleetplan.models.order import Order
from fleetplan.models.audit_log import AuditLog
from fleetplan.models.webhook import Webhook, WebhookDelivery

__all__ = [
    "SQLModel",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "Order",
    "OrderPayload",
    "OrderStatus",
    "OrderType",
    "RecurringFrequency",
    "RecurringOrder",
    "RecurringOrderCreate",
    "RecurringOrderUpdate",
    "Webhook",
    "WebhookDelivery",
    "WebhookEvent",
]
