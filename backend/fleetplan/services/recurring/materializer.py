"""Order materialization: template snapshot + reference date -> order draft.

Pure functions, no database access.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel

from fleetplan.models.enums import OrderStatus
from fleetplan.models.recurring_order import OrderPayload, RecurringOrder

PROVENANCE_NOTE = "Generated automatically from recurring template: {name}"


class GenerationOverrides(BaseModel):
    """Per-call overrides of the dates a generated order is planned for."""

    loading_date: datetime | None = None
    unloading_date: datetime | None = None


class OrderDraft(OrderPayload):
    """Complete field set of an order that has not been persisted yet."""

    tenant_id: str
    order_number: str
    status: OrderStatus = OrderStatus.PLANNED
    loading_date: datetime
    unloading_date: datetime
    recurring_order_id: str | None = None
    created_by_id: str | None = None


def format_order_number(template_id: str, counter: int) -> str:
    """Order number for the ``counter``-th order of a template, e.g. ``REC-4XK9QZ-0007``."""
    return f"REC-{template_id[-6:].upper()}-{counter:04d}"


def build_internal_notes(template_name: str, template_notes: str | None) -> str:
    """Provenance line first, template's own internal notes kept below it."""
    note = PROVENANCE_NOTE.format(name=template_name)
    if template_notes:
        return f"{note}\n\n{template_notes}"
    return note


def materialize(
    template: RecurringOrder,
    reference_date: datetime,
    overrides: GenerationOverrides | None = None,
    *,
    order_number: str,
    created_by_id: str | None = None,
) -> OrderDraft:
    """Build the order draft for one occurrence of ``template``.

    Loading date defaults to ``reference_date``; unloading date defaults to the
    loading date shifted by the template's unloading offset (same day when unset).
    """
    overrides = overrides or GenerationOverrides()

    loading_date = overrides.loading_date or reference_date
    if overrides.unloading_date is not None:
        unloading_date = overrides.unloading_date
    else:
        unloading_date = loading_date + timedelta(days=template.unloading_offset_days or 0)

    payload = {name: getattr(template, name) for name in OrderPayload.model_fields}
    payload["internal_notes"] = build_internal_notes(template.name, template.internal_notes)

    return OrderDraft(
        **payload,
        tenant_id=template.tenant_id,
        order_number=order_number,
        status=OrderStatus.PLANNED,
        loading_date=loading_date,
        unloading_date=unloading_date,
        recurring_order_id=template.id,
        created_by_id=created_by_id,
    )
