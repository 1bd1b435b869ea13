"""Outgoing webhook subscription and delivery log models."""

from datetime import datetime
from typing import Any

from sqlalchemy import Column, ForeignKey
from sqlmodel import Field, SQLModel

from fleetplan.models.base import new_ulid, utc_now
from fleetplan.models.types import JSONType, ULIDType, UTCDateTime


class Webhook(SQLModel, table=True):
    """Tenant subscription to one or more webhook events."""

    __tablename__ = "webhooks"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    tenant_id: str = Field(index=True, max_length=64)
    url: str
    secret: str  # HMAC-SHA256 signing key
    events: list[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    headers: dict[str, str] | None = Field(default=None, sa_column=Column(JSONType, nullable=True))
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))


class WebhookDelivery(SQLModel, table=True):
    """Outcome of delivering one event to one webhook."""

    __tablename__ = "webhook_deliveries"

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    webhook_id: str = Field(
        sa_column=Column(ULIDType, ForeignKey("webhooks.id", ondelete="CASCADE"), index=True, nullable=False),
    )
    event: str = Field(max_length=64)
    payload: dict[str, Any] = Field(sa_column=Column(JSONType, nullable=False))
    success: bool = False
    status_code: int | None = None
    error: str | None = None
    attempts: int = 0
    delivered_at: datetime | None = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))
