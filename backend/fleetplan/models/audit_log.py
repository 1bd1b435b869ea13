"""Audit log database model."""

from datetime import datetime
from typing import Any

from sqlalchemy import Column, Index
from sqlmodel import Field, SQLModel

from fleetplan.models.base import utc_now
from fleetplan.models.enums import AuditAction, db_enum
from fleetplan.models.types import JSONType, UTCDateTime


class AuditLog(SQLModel, table=True):
    """Who did what to which entity, per tenant."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)

    id: int | None = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True, max_length=64)
    user_id: str | None = Field(default=None, max_length=64)
    action: AuditAction = Field(sa_column=Column(db_enum(AuditAction, "auditaction"), nullable=False))
    entity_type: str = Field(max_length=64)
    entity_id: str | None = Field(default=None, max_length=64)
    changes: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONType, nullable=True))
    # "metadata" is reserved on declarative classes
    event_metadata: dict[str, Any] | None = Field(default=None, sa_column=Column("metadata", JSONType, nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False, index=True))
