"""Recurring order template and the order payload it shares with Order."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column
from sqlmodel import Field, SQLModel

from fleetplan.models.base import new_ulid, utc_now
from fleetplan.models.enums import FREQUENCY_DB_ENUM, ORDER_TYPE_DB_ENUM, OrderType, RecurringFrequency
from fleetplan.models.types import ULIDType, UTCDateTime


class OrderPayload(SQLModel):
    """Route, cargo and pricing fields copied from a template into each order."""

    type: OrderType = Field(default=OrderType.OWN, sa_type=ORDER_TYPE_DB_ENUM)
    contractor_id: str | None = Field(default=None, max_length=64)

    origin: str
    origin_city: str | None = None
    origin_postal_code: str | None = Field(default=None, max_length=16)
    origin_country: str = Field(default="PL", max_length=2)
    destination: str
    destination_city: str | None = None
    destination_postal_code: str | None = Field(default=None, max_length=16)
    destination_country: str = Field(default="PL", max_length=2)
    distance_km: float | None = None

    # Time windows as "HH:MM"
    loading_time_from: str | None = Field(default=None, max_length=5)
    loading_time_to: str | None = Field(default=None, max_length=5)
    unloading_time_from: str | None = Field(default=None, max_length=5)
    unloading_time_to: str | None = Field(default=None, max_length=5)

    cargo_description: str | None = None
    cargo_weight: float | None = None  # kg
    cargo_volume: float | None = None  # m3
    cargo_pallets: int | None = None
    requires_adr: bool = False

    price_net: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    currency: str = Field(default="PLN", max_length=3)

    notes: str | None = None
    internal_notes: str | None = None


class RecurringOrder(OrderPayload, table=True):
    """Recurring order template: a cadence rule plus a cursor to its next due date.

    Cursor fields (next_generation_date, last_generated_at,
    generated_orders_count) are written only by RecurringGenerationService,
    through a conditional update keyed on generated_orders_count.
    """

    __tablename__ = "recurring_orders"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    tenant_id: str = Field(index=True, max_length=64)
    name: str

    # Rule
    frequency: RecurringFrequency = Field(sa_column=Column(FREQUENCY_DB_ENUM, nullable=False))
    day_of_week: int | None = None  # 0 = Sunday ... 6 = Saturday
    day_of_month: int | None = None  # 1-31, clamped to month length
    unloading_offset_days: int | None = None

    # Bounds
    start_date: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
    end_date: datetime | None = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    is_active: bool = Field(default=True, index=True)

    # Cursor
    next_generation_date: datetime = Field(sa_column=Column(UTCDateTime, nullable=False, index=True))
    last_generated_at: datetime | None = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    generated_orders_count: int = Field(default=0, nullable=False)

    created_by_id: str | None = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))


class RecurringOrderCreate(OrderPayload):
    """Fields a user supplies when creating a template (cursor is computed)."""

    name: str = Field(min_length=1)
    frequency: RecurringFrequency
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    unloading_offset_days: int | None = Field(default=None, ge=0)
    start_date: datetime
    end_date: datetime | None = None
    is_active: bool = True


class RecurringOrderUpdate(SQLModel):
    """Partial update of a template; only fields that were sent are applied."""

    name: str | None = Field(default=None, min_length=1)
    frequency: RecurringFrequency | None = None
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    unloading_offset_days: int | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None

    type: OrderType | None = None
    contractor_id: str | None = None
    origin: str | None = None
    origin_city: str | None = None
    origin_postal_code: str | None = None
    origin_country: str | None = None
    destination: str | None = None
    destination_city: str | None = None
    destination_postal_code: str | None = None
    destination_country: str | None = None
    distance_km: float | None = None
    loading_time_from: str | None = None
    loading_time_to: str | None = None
    unloading_time_from: str | None = None
    unloading_time_to: str | None = None
    cargo_description: str | None = None
    cargo_weight: float | None = None
    cargo_volume: float | None = None
    cargo_pallets: int | None = None
    requires_adr: bool | None = None
    price_net: Decimal | None = None
    currency: str | None = None
    notes: str | None = None
    internal_notes: str | None = None
