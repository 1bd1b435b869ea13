"""API schemas for recurring order endpoints."""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, field_serializer

from fleetplan.models.enums import OrderStatus, RecurringFrequency
from fleetplan.models.order import Order
from fleetplan.models.recurring_order import OrderPayload, RecurringOrder
from fleetplan.services.recurring.materializer import GenerationOverrides
from fleetplan.utils.datetime_utils import to_api_timezone


def _serialize_datetime(dt: datetime | None) -> str | None:
    localized_dt = to_api_timezone(dt)
    return localized_dt.isoformat() if localized_dt else None


# =============================================================================
# Response Schemas
# =============================================================================


class RecurringOrderResponse(OrderPayload):
    """Recurring order template with its schedule cursor."""

    id: str
    tenant_id: str
    name: str
    frequency: RecurringFrequency
    day_of_week: int | None
    day_of_month: int | None
    unloading_offset_days: int | None
    start_date: datetime
    end_date: datetime | None
    is_active: bool
    next_generation_date: datetime
    last_generated_at: datetime | None
    generated_orders_count: int
    created_by_id: str | None
    created_at: datetime
    updated_at: datetime

    @field_serializer("start_date", "end_date", "next_generation_date", "last_generated_at", "created_at", "updated_at")
    def serialize_dates(self, dt: datetime | None) -> str | None:
        """Serialize datetime to API timezone."""
        return _serialize_datetime(dt)

    @classmethod
    def from_model(cls, template: RecurringOrder) -> Self:
        """Create response from RecurringOrder model."""
        return cls.model_validate(template, from_attributes=True)


class RecurringOrderListResponse(BaseModel):
    """Paginated template list."""

    items: list[RecurringOrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class OrderResponse(OrderPayload):
    """Order generated from a template."""

    id: str
    tenant_id: str
    order_number: str
    status: OrderStatus
    loading_date: datetime
    unloading_date: datetime
    recurring_order_id: str | None
    created_by_id: str | None
    created_at: datetime

    @field_serializer("loading_date", "unloading_date", "created_at")
    def serialize_dates(self, dt: datetime) -> str | None:
        """Serialize datetime to API timezone."""
        return _serialize_datetime(dt)

    @classmethod
    def from_model(cls, order: Order) -> Self:
        """Create response from Order model."""
        return cls.model_validate(order, from_attributes=True)


class TemplateCursorResponse(BaseModel):
    """Template state after a generation."""

    id: str
    name: str
    generated_orders_count: int
    last_generated_at: datetime | None
    next_generation_date: datetime

    @field_serializer("last_generated_at", "next_generation_date")
    def serialize_dates(self, dt: datetime | None) -> str | None:
        """Serialize datetime to API timezone."""
        return _serialize_datetime(dt)

    @classmethod
    def from_model(cls, template: RecurringOrder) -> Self:
        return cls(
            id=template.id,
            name=template.name,
            generated_orders_count=template.generated_orders_count,
            last_generated_at=template.last_generated_at,
            next_generation_date=template.next_generation_date,
        )


class GenerateOrderResponse(BaseModel):
    """Response of the generate endpoint."""

    order: OrderResponse
    template: TemplateCursorResponse


# =============================================================================
# Request Schemas
# =============================================================================


class GenerateOrderRequest(GenerationOverrides):
    """Optional date overrides for an on-demand generation."""

    pass
