"""Enum definitions for database models."""

from enum import StrEnum

from sqlalchemy import Enum


class RecurringFrequency(StrEnum):
    """Cadence of a recurring order template."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class OrderType(StrEnum):
    """Own fleet transport or forwarding to a subcontractor."""

    OWN = "OWN"
    FORWARDING = "FORWARDING"


class OrderStatus(StrEnum):
    """Business status of an order.

    Generated orders always start as PLANNED, the rest of the flow belongs
    to the order management side of the system.
    """

    PLANNED = "PLANNED"
    ASSIGNED = "ASSIGNED"
    CONFIRMED = "CONFIRMED"
    LOADING = "LOADING"
    IN_TRANSIT = "IN_TRANSIT"
    UNLOADING = "UNLOADING"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PROBLEM = "PROBLEM"


class AuditAction(StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"


class AuditEntityType(StrEnum):
    """Entity kinds written to the audit log by this service."""

    ORDER = "Order"
    RECURRING_ORDER = "RecurringOrder"
    WEBHOOK = "Webhook"


class WebhookEvent(StrEnum):
    """Outgoing webhook event names."""

    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_STATUS_CHANGED = "order.status_changed"


def db_enum(enum_cls: type[StrEnum], name: str) -> Enum:
    """Column type storing the enum by value (not by member name)."""
    return Enum(enum_cls, name=name, values_callable=lambda e: [member.value for member in e])


FREQUENCY_DB_ENUM = db_enum(RecurringFrequency, "recurringfrequency")
ORDER_TYPE_DB_ENUM = db_enum(OrderType, "ordertype")
ORDER_STATUS_DB_ENUM = db_enum(OrderStatus, "orderstatus")


class CursorPolicy(StrEnum):
    """How a template cursor moves after a generation."""

    # Step once, then keep stepping until the cursor is strictly after "now"
    FUTURE_DATED = "future_dated"
    # Step exactly once; missed occurrences stay due for the next sweep
    SINGLE_STEP = "single_step"
