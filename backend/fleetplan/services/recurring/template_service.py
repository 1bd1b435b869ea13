"""Recurring order template management service.

Handles the user-facing side of templates: listing, creating, editing and
deactivating. Cursor fields are only initialised here (on create and on
schedule edits); advancing them is RecurringGenerationService's job.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from fleetplan.models.base import utc_now
from fleetplan.models.enums import AuditAction, AuditEntityType, RecurringFrequency
from fleetplan.models.recurring_order import RecurringOrder, RecurringOrderCreate, RecurringOrderUpdate
from fleetplan.scheduling.recurrence import WEEKDAY_FREQUENCIES, RecurrenceRule, first_occurrence_after
from fleetplan.services.audit.audit_service import get_entity_changes
from fleetplan.services.recurring.collaborators import AuditSink
from fleetplan.services.recurring.template_store import TemplateStore
from fleetplan.utils.datetime_utils import ensure_utc, to_business_timezone

logger = structlog.get_logger(__name__)

# Editing any of these recomputes the cursor from start_date
SCHEDULE_FIELDS = frozenset({"frequency", "day_of_week", "day_of_month", "start_date"})

# Explicit nulls for these are ignored on update
NON_NULLABLE_FIELDS = frozenset(
    {
        "name",
        "frequency",
        "start_date",
        "is_active",
        "type",
        "origin",
        "origin_country",
        "destination",
        "destination_country",
        "requires_adr",
        "currency",
    }
)

SEARCH_FIELDS = (
    RecurringOrder.name,
    RecurringOrder.origin,
    RecurringOrder.destination,
    RecurringOrder.origin_city,
    RecurringOrder.destination_city,
    RecurringOrder.cargo_description,
)


def compute_first_generation_date(start_date: datetime, rule: RecurrenceRule, now: datetime) -> datetime:
    """First cursor of a template: first occurrence on/after start_date that is strictly after now."""
    local_first = first_occurrence_after(to_business_timezone(start_date), rule, to_business_timezone(now))
    return local_first.astimezone(UTC)


class RecurringTemplateService:
    """Service for recurring order template operations."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        audit: AuditSink,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.audit = audit
        self.clock = clock
        self.store = TemplateStore(session)

    async def list_templates(
        self,
        tenant_id: str,
        *,
        is_active: bool | None = None,
        frequency: RecurringFrequency | None = None,
        contractor_id: str | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[RecurringOrder], int]:
        """List a tenant's templates, soonest due first. Returns (templates, total_count)."""
        filters: list[Any] = [col(RecurringOrder.tenant_id) == tenant_id]
        if is_active is not None:
            filters.append(col(RecurringOrder.is_active).is_(is_active))
        if frequency is not None:
            filters.append(col(RecurringOrder.frequency) == frequency)
        if contractor_id is not None:
            filters.append(col(RecurringOrder.contractor_id) == contractor_id)
        if search:
            pattern = f"%{search}%"
            filters.append(or_(*(col(field).ilike(pattern) for field in SEARCH_FIELDS)))

        statement = (
            select(RecurringOrder)
            .where(*filters)
            .order_by(col(RecurringOrder.next_generation_date).asc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(statement)
        templates = list(result.scalars().all())

        count_statement = select(func.count()).select_from(RecurringOrder).where(*filters)
        count_result = await self.session.execute(count_statement)
        total = count_result.scalar() or 0

        return templates, total

    async def get_template(self, tenant_id: str, template_id: str) -> RecurringOrder:
        """Get a tenant's template or raise RecurringOrderNotFound."""
        return await self.store.load(tenant_id, template_id)

    async def create_template(
        self,
        tenant_id: str,
        data: RecurringOrderCreate,
        *,
        actor_id: str | None = None,
    ) -> RecurringOrder:
        """Create a template with its cursor set to the first future occurrence.

        Raises:
            InvalidRule: frequency and anchors don't fit together
        """
        rule = RecurrenceRule.of(data.frequency, data.day_of_week, data.day_of_month)
        start_date = ensure_utc(data.start_date)

        template = RecurringOrder(
            **data.model_dump(exclude={"start_date", "end_date"}),
            tenant_id=tenant_id,
            start_date=start_date,
            end_date=ensure_utc(data.end_date) if data.end_date else None,
            next_generation_date=compute_first_generation_date(start_date, rule, ensure_utc(self.clock())),
            created_by_id=actor_id,
        )
        self.session.add(template)
        await self.session.commit()

        logger.info(
            "Created recurring order template",
            tenant_id=tenant_id,
            template_id=template.id,
            frequency=template.frequency.value,
            next_generation_date=template.next_generation_date.isoformat(),
        )

        await self.audit.record(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.RECURRING_ORDER,
            entity_id=template.id,
            metadata={"name": template.name, "frequency": template.frequency.value},
        )
        return template

    async def update_template(
        self,
        tenant_id: str,
        template_id: str,
        data: RecurringOrderUpdate,
        *,
        actor_id: str | None = None,
    ) -> RecurringOrder:
        """Apply a partial update; schedule edits recompute the cursor.

        Anchors that no longer fit a changed frequency are cleared unless the
        update sets them explicitly (then the rule is rejected instead).

        Raises:
            RecurringOrderNotFound: no such template for this tenant
            InvalidRule: resulting frequency and anchors don't fit together
        """
        template = await self.store.load(tenant_id, template_id)
        before = template.model_dump(mode="json")
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in NON_NULLABLE_FIELDS
        }

        frequency = RecurringFrequency(changes.get("frequency") or template.frequency)
        day_of_week = changes["day_of_week"] if "day_of_week" in changes else template.day_of_week
        day_of_month = changes["day_of_month"] if "day_of_month" in changes else template.day_of_month
        if "frequency" in changes:
            if frequency not in WEEKDAY_FREQUENCIES and "day_of_week" not in changes:
                day_of_week = None
            if frequency != RecurringFrequency.MONTHLY and "day_of_month" not in changes:
                day_of_month = None
        rule = RecurrenceRule.of(frequency, day_of_week, day_of_month)

        for field, value in changes.items():
            if field in ("start_date", "end_date") and value is not None:
                value = ensure_utc(value)
            setattr(template, field, value)
        template.frequency = rule.frequency
        template.day_of_week = rule.day_of_week
        template.day_of_month = rule.day_of_month

        if SCHEDULE_FIELDS & changes.keys():
            template.next_generation_date = compute_first_generation_date(
                template.start_date, rule, ensure_utc(self.clock())
            )
        template.updated_at = utc_now()
        await self.session.commit()

        logger.info("Updated recurring order template", tenant_id=tenant_id, template_id=template.id)

        await self.audit.record(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action=AuditAction.UPDATE,
            entity_type=AuditEntityType.RECURRING_ORDER,
            entity_id=template.id,
            changes=get_entity_changes(before, template.model_dump(mode="json")),
            metadata={"name": template.name},
        )
        return template

    async def deactivate_template(
        self,
        tenant_id: str,
        template_id: str,
        *,
        actor_id: str | None = None,
    ) -> RecurringOrder:
        """Retire a template (soft delete). Generated orders keep their back-reference."""
        template = await self.store.load(tenant_id, template_id)
        if not template.is_active:
            return template

        template.is_active = False
        template.updated_at = utc_now()
        await self.session.commit()

        logger.info("Deactivated recurring order template", tenant_id=tenant_id, template_id=template.id)

        await self.audit.record(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action=AuditAction.UPDATE,
            entity_type=AuditEntityType.RECURRING_ORDER,
            entity_id=template.id,
            changes={"is_active": {"old": True, "new": False}},
            metadata={"name": template.name, "action": "DEACTIVATE"},
        )
        return template
