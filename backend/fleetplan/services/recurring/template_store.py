"""Template persistence: loading templates and advancing their cursor."""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select
from ulid import ULID

from fleetplan.models.base import utc_now
from fleetplan.models.recurring_order import RecurringOrder
from fleetplan.services.recurring.exceptions import RecurringOrderNotFound, TemplateAdvanceConflict

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CursorUpdate:
    """New cursor values written by one successful generation."""

    next_generation_date: datetime
    last_generated_at: datetime


@dataclass(frozen=True)
class DueTemplate:
    """Identity of a template in the due set."""

    tenant_id: str
    template_id: str
    next_generation_date: datetime


def is_valid_ulid(value: str) -> bool:
    try:
        ULID.from_str(value)
    except ValueError:
        return False
    return True


class TemplateStore:
    """Narrow persistence interface for recurring order templates.

    All methods run in the caller's session/transaction and never commit.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, tenant_id: str, template_id: str) -> RecurringOrder:
        """Load the current state of a tenant's template.

        Always re-reads the row (populate_existing) so a cursor cached in the
        session identity map is never acted upon.

        Raises:
            RecurringOrderNotFound: no such template for this tenant
        """
        if not is_valid_ulid(template_id):
            raise RecurringOrderNotFound(f"Recurring order {template_id} not found")

        statement = (
            select(RecurringOrder)
            .where(col(RecurringOrder.id) == template_id, col(RecurringOrder.tenant_id) == tenant_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        template = result.scalars().first()
        if not template:
            raise RecurringOrderNotFound(f"Recurring order {template_id} not found")
        return template

    async def advance(self, template_id: str, expected_counter: int, cursor: CursorUpdate) -> RecurringOrder:
        """Move the cursor forward if nobody else did since ``expected_counter`` was read.

        The conditional UPDATE is the optimistic concurrency guard: two
        concurrent generations read the same counter, only one of them can
        match it here.

        Raises:
            TemplateAdvanceConflict: counter no longer matches (concurrent advance)
        """
        statement = (
            update(RecurringOrder)
            .where(
                col(RecurringOrder.id) == template_id,
                col(RecurringOrder.generated_orders_count) == expected_counter,
            )
            .values(
                generated_orders_count=expected_counter + 1,
                next_generation_date=cursor.next_generation_date,
                last_generated_at=cursor.last_generated_at,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount != 1:  # type: ignore[attr-defined]
            logger.warning(
                "Template cursor advanced concurrently",
                template_id=template_id,
                expected_counter=expected_counter,
            )
            raise TemplateAdvanceConflict(template_id, expected_counter)

        template = await self.session.get(RecurringOrder, template_id, populate_existing=True)
        assert template is not None, "Template vanished after a successful cursor update"
        return template

    async def list_due(self, now: datetime, *, limit: int = 100) -> list[DueTemplate]:
        """Active, non-expired templates whose cursor is at or before ``now``, oldest first."""
        statement = (
            select(RecurringOrder.tenant_id, RecurringOrder.id, RecurringOrder.next_generation_date)
            .where(
                col(RecurringOrder.is_active).is_(True),
                col(RecurringOrder.next_generation_date) <= now,
                or_(col(RecurringOrder.end_date).is_(None), col(RecurringOrder.end_date) >= now),
            )
            .order_by(col(RecurringOrder.next_generation_date).asc())
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return [
            DueTemplate(tenant_id=tenant_id, template_id=template_id, next_generation_date=next_date)
            for tenant_id, template_id, next_date in result.all()
        ]
