from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from conftest import OTHER_TENANT_ID, TENANT_ID, FakeAudit, FakeNotifier, FixedClock, TemplateFactory, utc
from fleetplan.models.enums import CursorPolicy, RecurringFrequency
from fleetplan.models.recurring_order import RecurringOrder
from fleetplan.services.exceptions import ConflictError, PersistenceError
from fleetplan.services.recurring import sweep_service
from fleetplan.services.recurring.generation_service import GenerationResult, RecurringGenerationService
from fleetplan.services.recurring.sweep_service import RecurringSweepService
from fleetplan.services.recurring.template_store import DueTemplate
from fleetplan.utils.retry import RetryConfig

NO_WAIT = RetryConfig(max_attempts=3, min_wait=0, max_wait=0)
NOW = utc(2024, 3, 6, 12, 0)


def _sweep(
    session_factory: async_sessionmaker[AsyncSession],
    audit: FakeAudit,
    notifier: FakeNotifier,
    now: datetime = NOW,
    **kwargs: object,
) -> RecurringSweepService:
    return RecurringSweepService(
        session_factory,
        audit=audit,
        notifier=notifier,
        clock=FixedClock(now),
        retry_config=NO_WAIT,
        **kwargs,  # type: ignore[arg-type]
    )


async def _reload(session_factory: async_sessionmaker[AsyncSession], template_id: str) -> RecurringOrder:
    async with session_factory() as session:
        template = await session.get(RecurringOrder, template_id)
        assert template is not None
        return template


async def test_sweep_generates_each_due_template_once(
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    first = await make_template(next_generation_date=utc(2024, 3, 4, 8, 0))
    second = await make_template(
        tenant_id=OTHER_TENANT_ID,
        frequency=RecurringFrequency.DAILY,
        day_of_week=None,
        next_generation_date=utc(2024, 3, 6, 8, 0),
    )
    not_due = await make_template(next_generation_date=utc(2024, 3, 11, 8, 0))

    result = await _sweep(session_factory, audit, notifier).run()

    assert result.generated == 2
    assert result.skipped == 0
    assert result.failed == 0
    assert result.order_numbers == [
        f"REC-{first.id[-6:].upper()}-0001",
        f"REC-{second.id[-6:].upper()}-0001",
    ]
    assert (await _reload(session_factory, first.id)).next_generation_date == utc(2024, 3, 11, 8, 0)
    assert (await _reload(session_factory, second.id)).next_generation_date == utc(2024, 3, 7, 8, 0)
    assert (await _reload(session_factory, not_due.id)).generated_orders_count == 0
    assert len(notifier.events) == 2


async def test_sweep_with_nothing_due(
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    await make_template(next_generation_date=utc(2024, 3, 11, 8, 0))

    result = await _sweep(session_factory, audit, notifier).run()

    assert result.total == 0


async def test_second_sweep_is_a_no_op_under_future_dated_policy(
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    await make_template(next_generation_date=utc(2024, 2, 5, 8, 0))
    sweep = _sweep(session_factory, audit, notifier, cursor_policy=CursorPolicy.FUTURE_DATED)

    first = await sweep.run()
    second = await sweep.run()

    assert first.generated == 1
    assert second.generated == 0


async def test_single_step_policy_catches_up_one_occurrence_per_run(
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    template = await make_template(next_generation_date=utc(2024, 2, 19, 8, 0))
    sweep = _sweep(session_factory, audit, notifier, cursor_policy=CursorPolicy.SINGLE_STEP)

    runs = [await sweep.run() for _ in range(4)]

    # Feb 19, Feb 26 and Mar 4 were due; Mar 11 is not
    assert [run.generated for run in runs] == [1, 1, 1, 0]
    stored = await _reload(session_factory, template.id)
    assert stored.generated_orders_count == 3
    assert stored.next_generation_date == utc(2024, 3, 11, 8, 0)


async def test_template_changed_after_due_query_is_skipped(
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    inactive = await make_template(is_active=False, next_generation_date=utc(2024, 3, 4, 8, 0))
    not_due = await make_template(next_generation_date=utc(2024, 3, 11, 8, 0))

    class StaleSweep(RecurringSweepService):
        async def find_due(self, now: datetime) -> list[DueTemplate]:
            return [
                DueTemplate(TENANT_ID, inactive.id, inactive.next_generation_date),
                DueTemplate(TENANT_ID, not_due.id, not_due.next_generation_date),
            ]

    sweep = StaleSweep(session_factory, audit=audit, notifier=notifier, clock=FixedClock(NOW), retry_config=NO_WAIT)
    result = await sweep.run()

    assert result.skipped == 2
    assert result.generated == 0


async def test_conflict_is_retried(
    monkeypatch: pytest.MonkeyPatch,
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    template = await make_template(next_generation_date=utc(2024, 3, 4, 8, 0))
    calls: list[str] = []

    class FlakyGenerationService(RecurringGenerationService):
        async def generate(self, tenant_id: str, template_id: str, **kwargs: object) -> GenerationResult:
            calls.append(template_id)
            if len(calls) == 1:
                raise ConflictError("advanced concurrently")
            return await super().generate(tenant_id, template_id, **kwargs)  # type: ignore[arg-type]

    monkeypatch.setattr(sweep_service, "RecurringGenerationService", FlakyGenerationService)

    result = await _sweep(session_factory, audit, notifier).run()

    assert calls == [template.id, template.id]
    assert result.generated == 1
    assert (await _reload(session_factory, template.id)).generated_orders_count == 1


async def test_persistent_failure_is_counted_and_does_not_stop_the_batch(
    monkeypatch: pytest.MonkeyPatch,
    session_factory: async_sessionmaker[AsyncSession],
    make_template: TemplateFactory,
    audit: FakeAudit,
    notifier: FakeNotifier,
) -> None:
    broken = await make_template(next_generation_date=utc(2024, 3, 1, 8, 0), name="broken")
    healthy = await make_template(next_generation_date=utc(2024, 3, 4, 8, 0), name="healthy")
    attempts: list[str] = []

    class BrokenGenerationService(RecurringGenerationService):
        async def generate(self, tenant_id: str, template_id: str, **kwargs: object) -> GenerationResult:
            if template_id == broken.id:
                attempts.append(template_id)
                raise PersistenceError("database unavailable")
            return await super().generate(tenant_id, template_id, **kwargs)  # type: ignore[arg-type]

    monkeypatch.setattr(sweep_service, "RecurringGenerationService", BrokenGenerationService)

    result = await _sweep(session_factory, audit, notifier).run()

    assert len(attempts) == NO_WAIT.max_attempts
    assert result.failed == 1
    assert result.generated == 1
    assert (await _reload(session_factory, healthy.id)).generated_orders_count == 1
