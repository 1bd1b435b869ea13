"""Order database model."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, UniqueConstraint
from sqlmodel import Field

from fleetplan.models.base import new_ulid, utc_now
from fleetplan.models.enums import ORDER_STATUS_DB_ENUM, OrderStatus
from fleetplan.models.recurring_order import OrderPayload
from fleetplan.models.types import ULIDType, UTCDateTime

# Order numbers are unique per tenant; generated numbers collide here first
ORDER_NUMBER_CONSTRAINT = UniqueConstraint("tenant_id", "order_number", name="uq_orders_tenant_order_number")


class Order(OrderPayload, table=True):
    """Transport order.

    Orders generated from a template keep recurring_order_id only as an
    informational back-reference; their lifecycle is independent.
    """

    __tablename__ = "orders"
    __table_args__ = (ORDER_NUMBER_CONSTRAINT,)

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    tenant_id: str = Field(index=True, max_length=64)
    order_number: str = Field(index=True, max_length=32)
    status: OrderStatus = Field(
        default=OrderStatus.PLANNED,
        sa_column=Column(ORDER_STATUS_DB_ENUM, nullable=False),
    )

    loading_date: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
    unloading_date: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))

    recurring_order_id: str | None = Field(
        default=None,
        sa_column=Column(ULIDType, ForeignKey("recurring_orders.id", ondelete="SET NULL"), index=True, nullable=True),
    )

    created_by_id: str | None = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))
