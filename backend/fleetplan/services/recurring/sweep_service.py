"""Due-set sweep: generates the current occurrence of every due template.

Run periodically by the ``generate_due_recurring_orders`` Dramatiq actor. Each
template is generated in its own session and transaction, so one failing
template never blocks the rest of the batch.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetplan.config import settings
from fleetplan.models.base import utc_now
from fleetplan.models.enums import CursorPolicy
from fleetplan.services.exceptions import ConflictError, PersistenceError, ServiceError
from fleetplan.services.recurring.collaborators import AuditSink, EventNotifier
from fleetplan.services.recurring.exceptions import (
    RecurringOrderNotFound,
    TemplateExpired,
    TemplateInactive,
    TemplateNotDue,
)
from fleetplan.services.recurring.generation_service import GenerationResult, RecurringGenerationService
from fleetplan.services.recurring.template_store import DueTemplate, TemplateStore
from fleetplan.utils.datetime_utils import ensure_utc
from fleetplan.utils.retry import RetryConfig, get_retrying

logger = structlog.get_logger(__name__)

SWEEP_RETRY_CONFIG = RetryConfig(
    max_attempts=settings.recurring_generate_max_attempts,
    min_wait=0.5,
    max_wait=5.0,
)

# Raised when the template changed between the due-set query and generation
SKIPPABLE_ERRORS = (RecurringOrderNotFound, TemplateInactive, TemplateExpired, TemplateNotDue)


@dataclass
class SweepResult:
    """Outcome of one sweep run."""

    generated: int = 0
    skipped: int = 0
    failed: int = 0
    order_numbers: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.generated + self.skipped + self.failed


class RecurringSweepService:
    """Generates orders for all due templates.

    A due template gets exactly one generation per run. Under the
    ``single_step`` cursor policy a template that fell several occurrences
    behind catches up one occurrence per run.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        audit: AuditSink,
        notifier: EventNotifier,
        clock: Callable[[], datetime] = utc_now,
        batch_size: int | None = None,
        retry_config: RetryConfig | None = None,
        cursor_policy: CursorPolicy | None = None,
    ):
        self.session_factory = session_factory
        self.audit = audit
        self.notifier = notifier
        self.clock = clock
        self.batch_size = batch_size or settings.recurring_sweep_batch_size
        self.retry_config = retry_config or SWEEP_RETRY_CONFIG
        self.cursor_policy = cursor_policy

    async def find_due(self, now: datetime) -> list[DueTemplate]:
        """Templates whose current occurrence is due at ``now``."""
        async with self.session_factory() as session:
            return await TemplateStore(session).list_due(now, limit=self.batch_size)

    async def run(self) -> SweepResult:
        """Generate every due template once and report the counts."""
        now = ensure_utc(self.clock())
        due = await self.find_due(now)
        result = SweepResult()

        if not due:
            logger.debug("No recurring orders due", now=now.isoformat())
            return result

        logger.info("Sweeping due recurring orders", count=len(due), now=now.isoformat())

        for item in due:
            log = logger.bind(tenant_id=item.tenant_id, template_id=item.template_id)
            try:
                generation = await self.generate_with_retry(item)
            except SKIPPABLE_ERRORS as e:
                log.info("Skipped recurring order", reason=type(e).__name__)
                result.skipped += 1
            except ServiceError as e:
                log.error("Failed to generate recurring order", error=str(e), error_type=type(e).__name__)
                result.failed += 1
            else:
                result.generated += 1
                result.order_numbers.append(generation.order.order_number)

        logger.info(
            "Completed recurring order sweep",
            generated=result.generated,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    async def generate_with_retry(self, item: DueTemplate) -> GenerationResult:
        """Generate one due template, retrying conflicts and transient database errors.

        Every attempt uses a fresh session and re-checks that the template is
        still due, so a retry after a concurrent generation does not produce
        the following (future) occurrence.
        """
        async for attempt in get_retrying((ConflictError, PersistenceError), self.retry_config):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    logger.warning(
                        "Retrying recurring order generation",
                        template_id=item.template_id,
                        attempt=attempt_number,
                    )
                async with self.session_factory() as session:
                    service = RecurringGenerationService(
                        session,
                        audit=self.audit,
                        notifier=self.notifier,
                        clock=self.clock,
                        cursor_policy=self.cursor_policy,
                    )
                    return await service.generate(item.tenant_id, item.template_id, only_if_due=True)

        raise AssertionError("unreachable: get_retrying re-raises the last error")
