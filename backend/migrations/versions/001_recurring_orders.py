"""Recurring order templates, generated orders, audit log and webhooks.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ORDER_STATUSES = (
    "PLANNED",
    "ASSIGNED",
    "CONFIRMED",
    "LOADING",
    "IN_TRANSIT",
    "UNLOADING",
    "DELIVERED",
    "COMPLETED",
    "CANCELLED",
    "PROBLEM",
)


def _payload_columns() -> list[sa.Column]:
    """Route, cargo and pricing columns shared by recurring_orders and orders."""
    return [
        sa.Column(
            "type",
            postgresql.ENUM("OWN", "FORWARDING", name="ordertype", create_type=False),
            nullable=False,
        ),
        sa.Column("contractor_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column("origin", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("origin_city", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("origin_postal_code", sqlmodel.sql.sqltypes.AutoString(length=16), nullable=True),
        sa.Column("origin_country", sqlmodel.sql.sqltypes.AutoString(length=2), nullable=False),
        sa.Column("destination", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("destination_city", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("destination_postal_code", sqlmodel.sql.sqltypes.AutoString(length=16), nullable=True),
        sa.Column("destination_country", sqlmodel.sql.sqltypes.AutoString(length=2), nullable=False),
        sa.Column("distance_km", sa.Float(), nullable=True),
        sa.Column("loading_time_from", sqlmodel.sql.sqltypes.AutoString(length=5), nullable=True),
        sa.Column("loading_time_to", sqlmodel.sql.sqltypes.AutoString(length=5), nullable=True),
        sa.Column("unloading_time_from", sqlmodel.sql.sqltypes.AutoString(length=5), nullable=True),
        sa.Column("unloading_time_to", sqlmodel.sql.sqltypes.AutoString(length=5), nullable=True),
        sa.Column("cargo_description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("cargo_weight", sa.Float(), nullable=True),
        sa.Column("cargo_volume", sa.Float(), nullable=True),
        sa.Column("cargo_pallets", sa.Integer(), nullable=True),
        sa.Column("requires_adr", sa.Boolean(), nullable=False),
        sa.Column("price_net", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("currency", sqlmodel.sql.sqltypes.AutoString(length=3), nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("internal_notes", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
    ]


def upgrade() -> None:
    # Create enums first
    op.execute("CREATE TYPE recurringfrequency AS ENUM ('DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY')")
    op.execute("CREATE TYPE ordertype AS ENUM ('OWN', 'FORWARDING')")
    op.execute(f"CREATE TYPE orderstatus AS ENUM ({', '.join(repr(s) for s in ORDER_STATUSES)})")
    op.execute("CREATE TYPE auditaction AS ENUM ('CREATE', 'UPDATE', 'DELETE', 'STATUS_CHANGE')")

    # Recurring order templates (ULID as UUID)
    op.create_table(
        "recurring_orders",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tenant_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column(
            "frequency",
            postgresql.ENUM("DAILY", "WEEKLY", "BIWEEKLY", "MONTHLY", name="recurringfrequency", create_type=False),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("day_of_month", sa.Integer(), nullable=True),
        sa.Column("unloading_offset_days", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("next_generation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("generated_orders_count", sa.Integer(), nullable=False, server_default="0"),
        *_payload_columns(),
        sa.Column("created_by_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "day_of_week IS NULL OR day_of_week BETWEEN 0 AND 6", name="ck_recurring_orders_day_of_week"
        ),
        sa.CheckConstraint(
            "day_of_month IS NULL OR day_of_month BETWEEN 1 AND 31", name="ck_recurring_orders_day_of_month"
        ),
    )
    op.create_index(op.f("ix_recurring_orders_tenant_id"), "recurring_orders", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_recurring_orders_is_active"), "recurring_orders", ["is_active"], unique=False)
    op.create_index(
        op.f("ix_recurring_orders_next_generation_date"), "recurring_orders", ["next_generation_date"], unique=False
    )

    # Orders
    op.create_table(
        "orders",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tenant_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("order_number", sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(*ORDER_STATUSES, name="orderstatus", create_type=False),
            nullable=False,
        ),
        sa.Column("loading_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("unloading_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recurring_order_id", postgresql.UUID(as_uuid=False), nullable=True),
        *_payload_columns(),
        sa.Column("created_by_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["recurring_order_id"], ["recurring_orders.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "order_number", name="uq_orders_tenant_order_number"),
    )
    op.create_index(op.f("ix_orders_tenant_id"), "orders", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_orders_order_number"), "orders", ["order_number"], unique=False)
    op.create_index(op.f("ix_orders_recurring_order_id"), "orders", ["recurring_order_id"], unique=False)

    # Audit log
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("user_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column(
            "action",
            postgresql.ENUM("CREATE", "UPDATE", "DELETE", "STATUS_CHANGE", name="auditaction", create_type=False),
            nullable=False,
        ),
        sa.Column("entity_type", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("entity_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column("changes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_tenant_id"), "audit_logs", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"], unique=False)
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)

    # Webhook subscriptions and delivery log
    op.create_table(
        "webhooks",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tenant_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("url", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("secret", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("events", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("headers", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_webhooks_tenant_id"), "webhooks", ["tenant_id"], unique=False)

    op.create_table(
        "webhook_deliveries",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("webhook_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("event", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("error", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["webhook_id"], ["webhooks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_webhook_deliveries_webhook_id"), "webhook_deliveries", ["webhook_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_webhook_deliveries_webhook_id"), table_name="webhook_deliveries")
    op.drop_table("webhook_deliveries")
    op.drop_index(op.f("ix_webhooks_tenant_id"), table_name="webhooks")
    op.drop_table("webhooks")

    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_index(op.f("ix_audit_logs_created_at"), table_name="audit_logs")
    op.drop_index(op.f("ix_audit_logs_tenant_id"), table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index(op.f("ix_orders_recurring_order_id"), table_name="orders")
    op.drop_index(op.f("ix_orders_order_number"), table_name="orders")
    op.drop_index(op.f("ix_orders_tenant_id"), table_name="orders")
    op.drop_table("orders")

    op.drop_index(op.f("ix_recurring_orders_next_generation_date"), table_name="recurring_orders")
    op.drop_index(op.f("ix_recurring_orders_is_active"), table_name="recurring_orders")
    op.drop_index(op.f("ix_recurring_orders_tenant_id"), table_name="recurring_orders")
    op.drop_table("recurring_orders")

    # Drop enums last
    op.execute("DROP TYPE auditaction")
    op.execute("DROP TYPE orderstatus")
    op.execute("DROP TYPE ordertype")
    op.execute("DROP TYPE recurringfrequency")
