"""Recurring order generation engine.

One ``generate`` call turns the template's current occurrence into an order:

    ELIGIBLE -> MATERIALIZED -> PERSISTED -> ADVANCED -> NOTIFIED

The order insert and the template cursor update are committed in a single
transaction. Audit entries and the ``order.created`` webhook are emitted after
the commit on a best-effort basis and never make a committed generation fail.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetplan.config import settings
from fleetplan.models.base import utc_now
from fleetplan.models.enums import AuditAction, AuditEntityType, CursorPolicy, WebhookEvent
from fleetplan.models.order import Order
from fleetplan.models.recurring_order import RecurringOrder
from fleetplan.scheduling.recurrence import RecurrenceRule, advance_cursor
from fleetplan.services.exceptions import ConflictError, PersistenceError
from fleetplan.services.recurring.collaborators import AuditSink, EventNotifier
from fleetplan.services.recurring.exceptions import TemplateExpired, TemplateInactive, TemplateNotDue
from fleetplan.services.recurring.materializer import GenerationOverrides, format_order_number, materialize
from fleetplan.services.recurring.order_store import OrderStore
from fleetplan.services.recurring.template_store import CursorUpdate, TemplateStore
from fleetplan.services.webhooks.events import OrderCreatedPayload
from fleetplan.utils.datetime_utils import ensure_utc, to_business_timezone

logger = structlog.get_logger(__name__)


class GenerationStage(StrEnum):
    """Progress of a single generate() call (logged, not persisted)."""

    ELIGIBLE = "eligible"
    MATERIALIZED = "materialized"
    PERSISTED = "persisted"
    ADVANCED = "advanced"
    NOTIFIED = "notified"


@dataclass
class GenerationResult:
    """Created order and the template with its advanced cursor."""

    order: Order
    template: RecurringOrder


def compute_next_generation_date(
    template: RecurringOrder,
    now: datetime,
    policy: CursorPolicy = CursorPolicy.FUTURE_DATED,
) -> datetime:
    """Cursor value after generating the template's current occurrence.

    Calendar math runs on business-timezone wall-clock time so weekdays and
    month days match the tenant's calendar; the result is returned in UTC.
    """
    rule = RecurrenceRule(
        frequency=template.frequency,
        day_of_week=template.day_of_week,
        day_of_month=template.day_of_month,
    )
    local_next = advance_cursor(
        to_business_timezone(template.next_generation_date),
        rule,
        to_business_timezone(now),
        policy,
    )
    return local_next.astimezone(UTC)


class RecurringGenerationService:
    """Generates orders from recurring order templates.

    Collaborators are injected so callers (API, sweep, tests) decide how audit
    entries and webhook events are emitted. The service never retries on its
    own: ConflictError and PersistenceError leave nothing committed, so the
    caller may simply call generate() again.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        audit: AuditSink,
        notifier: EventNotifier,
        clock: Callable[[], datetime] = utc_now,
        cursor_policy: CursorPolicy | None = None,
        template_store: TemplateStore | None = None,
        order_store: OrderStore | None = None,
    ):
        self.session = session
        self.audit = audit
        self.notifier = notifier
        self.clock = clock
        self.cursor_policy = cursor_policy or settings.recurring_cursor_policy
        self.template_store = template_store or TemplateStore(session)
        self.order_store = order_store or OrderStore(session)

    async def generate(
        self,
        tenant_id: str,
        template_id: str,
        *,
        actor_id: str | None = None,
        overrides: GenerationOverrides | None = None,
        only_if_due: bool = False,
    ) -> GenerationResult:
        """Generate the next order of a template and advance its cursor.

        Raises:
            RecurringOrderNotFound: template does not exist for the tenant
            TemplateInactive: template was deactivated
            TemplateExpired: template end date has passed
            TemplateNotDue: only_if_due was set and the cursor is still in the future
            ConflictError: another generation advanced the template concurrently
            PersistenceError: database failure, nothing was committed
        """
        now = ensure_utc(self.clock())
        log = logger.bind(tenant_id=tenant_id, template_id=template_id)

        async with self._atomic(template_id):
            template = await self.template_store.load(tenant_id, template_id)
            self._check_eligible(template, now)
            if only_if_due and ensure_utc(template.next_generation_date) > now:
                raise TemplateNotDue(f"Recurring order {template_id} is not due yet")
            log.debug("Template eligible for generation", stage=GenerationStage.ELIGIBLE)

            expected_counter = template.generated_orders_count
            new_count = expected_counter + 1
            template_name = template.name
            draft = materialize(
                template,
                template.next_generation_date,
                overrides,
                order_number=format_order_number(template.id, new_count),
                created_by_id=actor_id,
            )
            cursor = CursorUpdate(
                next_generation_date=compute_next_generation_date(template, now, self.cursor_policy),
                last_generated_at=now,
            )
            log.debug("Order materialized", stage=GenerationStage.MATERIALIZED, order_number=draft.order_number)

            order = await self.order_store.create(draft)
            log.debug("Order persisted", stage=GenerationStage.PERSISTED, order_id=order.id)

            template = await self.template_store.advance(template_id, expected_counter, cursor)
            log.debug(
                "Template cursor advanced",
                stage=GenerationStage.ADVANCED,
                generated_orders_count=template.generated_orders_count,
                next_generation_date=template.next_generation_date.isoformat(),
            )

        log.info(
            "Generated order from recurring template",
            order_id=order.id,
            order_number=order.order_number,
            loading_date=order.loading_date.isoformat(),
            next_generation_date=template.next_generation_date.isoformat(),
        )

        await self._emit_side_effects(
            tenant_id=tenant_id,
            actor_id=actor_id,
            order=order,
            template_id=template_id,
            template_name=template_name,
            new_count=new_count,
        )
        log.debug("Generation side effects emitted", stage=GenerationStage.NOTIFIED)

        return GenerationResult(order=order, template=template)

    def _check_eligible(self, template: RecurringOrder, now: datetime) -> None:
        if not template.is_active:
            raise TemplateInactive(f"Recurring order {template.id} is inactive")
        if template.end_date is not None and ensure_utc(template.end_date) < now:
            raise TemplateExpired(f"Recurring order {template.id} ended on {template.end_date.isoformat()}")

    @asynccontextmanager
    async def _atomic(self, template_id: str) -> AsyncIterator[None]:
        """Commit on success, roll back everything on any failure.

        Database errors are translated: a unique violation (order number
        minted twice) is a concurrent generation, anything else is transient.
        """
        try:
            yield
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("Generated order conflicts with an existing one", template_id=template_id, error=str(e))
            raise ConflictError(f"Order for recurring order {template_id} was generated concurrently") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Database error during order generation", template_id=template_id, error=str(e))
            raise PersistenceError(f"Could not generate order for recurring order {template_id}") from e
        except BaseException:
            await self.session.rollback()
            raise

    async def _emit_side_effects(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        order: Order,
        template_id: str,
        template_name: str,
        new_count: int,
    ) -> None:
        """Audit entries and webhook event; failures are logged, never raised."""
        try:
            await self.audit.record(
                tenant_id=tenant_id,
                actor_id=actor_id,
                action=AuditAction.CREATE,
                entity_type=AuditEntityType.ORDER,
                entity_id=order.id,
                metadata={
                    "order_number": order.order_number,
                    "generated_from_template": template_id,
                    "template_name": template_name,
                },
            )
            await self.audit.record(
                tenant_id=tenant_id,
                actor_id=actor_id,
                action=AuditAction.UPDATE,
                entity_type=AuditEntityType.RECURRING_ORDER,
                entity_id=template_id,
                metadata={
                    "action": "GENERATE_ORDER",
                    "generated_order_id": order.id,
                    "generated_order_number": order.order_number,
                    "new_count": new_count,
                },
            )
        except Exception as e:
            logger.error("Failed to record generation audit entries", template_id=template_id, error=str(e))

        try:
            payload = OrderCreatedPayload.from_generated(order, template_id, template_name)
            await self.notifier.publish(tenant_id, WebhookEvent.ORDER_CREATED, payload.model_dump(mode="json"))
        except Exception as e:
            logger.error("Failed to publish order.created event", template_id=template_id, error=str(e))
