from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import OTHER_TENANT_ID, TENANT_ID, USER_ID, FakeAudit, FixedClock, TemplateFactory, utc
from fleetplan.models.enums import AuditAction, RecurringFrequency
from fleetplan.models.recurring_order import RecurringOrderCreate, RecurringOrderUpdate
from fleetplan.services.recurring.exceptions import InvalidRule, RecurringOrderNotFound
from fleetplan.services.recurring.template_service import RecurringTemplateService


def _create_data(**overrides: Any) -> RecurringOrderCreate:
    values: dict[str, Any] = {
        "name": "Krakow - Katowice",
        "frequency": RecurringFrequency.WEEKLY,
        "day_of_week": 1,
        "start_date": utc(2024, 3, 1, 8, 0),
        "origin": "Krakow",
        "destination": "Katowice",
    }
    values.update(overrides)
    return RecurringOrderCreate(**values)


@pytest.fixture
def service(session: AsyncSession, audit: FakeAudit, clock: FixedClock) -> RecurringTemplateService:
    return RecurringTemplateService(session, audit=audit, clock=clock)


async def test_create_sets_cursor_to_first_aligned_occurrence(
    service: RecurringTemplateService, audit: FakeAudit
) -> None:
    template = await service.create_template(TENANT_ID, _create_data(), actor_id=USER_ID)

    # 2024-03-01 is a Friday, first Monday on/after it
    assert template.next_generation_date == utc(2024, 3, 4, 8, 0)
    assert template.generated_orders_count == 0
    assert template.tenant_id == TENANT_ID
    assert template.created_by_id == USER_ID
    [record] = audit.records
    assert record["action"] == AuditAction.CREATE
    assert record["entity_id"] == template.id


async def test_create_with_past_start_skips_to_first_future_occurrence(
    session: AsyncSession, audit: FakeAudit
) -> None:
    service = RecurringTemplateService(session, audit=audit, clock=FixedClock(utc(2024, 3, 6, 12, 0)))

    template = await service.create_template(TENANT_ID, _create_data(start_date=utc(2024, 1, 1, 8, 0)))

    assert template.next_generation_date == utc(2024, 3, 11, 8, 0)


async def test_create_monthly_clamps_to_short_month(session: AsyncSession, audit: FakeAudit) -> None:
    service = RecurringTemplateService(session, audit=audit, clock=FixedClock(utc(2024, 2, 10, 12, 0)))

    template = await service.create_template(
        TENANT_ID,
        _create_data(
            frequency=RecurringFrequency.MONTHLY,
            day_of_week=None,
            day_of_month=31,
            start_date=utc(2024, 2, 1, 8, 0),
        ),
    )

    assert template.next_generation_date == utc(2024, 2, 29, 8, 0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"frequency": RecurringFrequency.WEEKLY, "day_of_week": None},
        {"frequency": RecurringFrequency.MONTHLY, "day_of_week": None},
        {"frequency": RecurringFrequency.DAILY, "day_of_week": 3},
    ],
)
async def test_create_rejects_invalid_rule(service: RecurringTemplateService, overrides: dict[str, Any]) -> None:
    with pytest.raises(InvalidRule):
        await service.create_template(TENANT_ID, _create_data(**overrides))


async def test_update_frequency_clears_stale_anchor_and_recomputes_cursor(
    service: RecurringTemplateService, make_template: TemplateFactory, audit: FakeAudit
) -> None:
    template = await make_template(start_date=utc(2024, 1, 1, 8, 0), next_generation_date=utc(2024, 1, 22, 8, 0))

    updated = await service.update_template(
        TENANT_ID,
        template.id,
        RecurringOrderUpdate(frequency=RecurringFrequency.MONTHLY, day_of_month=15),
        actor_id=USER_ID,
    )

    assert updated.frequency == RecurringFrequency.MONTHLY
    assert updated.day_of_week is None
    assert updated.day_of_month == 15
    # Jan 15 is not after "now" (2024-01-15 12:00 UTC), so February
    assert updated.next_generation_date == utc(2024, 2, 15, 8, 0)
    [record] = audit.records
    assert record["action"] == AuditAction.UPDATE
    assert record["changes"]["frequency"] == {"old": "WEEKLY", "new": "MONTHLY"}
    assert record["changes"]["day_of_week"] == {"old": 1, "new": None}


async def test_update_to_monthly_without_day_is_rejected(
    service: RecurringTemplateService, make_template: TemplateFactory
) -> None:
    template = await make_template()

    with pytest.raises(InvalidRule):
        await service.update_template(
            TENANT_ID, template.id, RecurringOrderUpdate(frequency=RecurringFrequency.MONTHLY)
        )


async def test_update_without_schedule_change_keeps_cursor(
    service: RecurringTemplateService, make_template: TemplateFactory
) -> None:
    template = await make_template(next_generation_date=utc(2024, 3, 4, 8, 0))

    updated = await service.update_template(
        TENANT_ID, template.id, RecurringOrderUpdate(name="Renamed", cargo_pallets=20)
    )

    assert updated.name == "Renamed"
    assert updated.cargo_pallets == 20
    assert updated.next_generation_date == utc(2024, 3, 4, 8, 0)


async def test_update_ignores_explicit_null_for_required_fields(
    service: RecurringTemplateService, make_template: TemplateFactory
) -> None:
    template = await make_template()

    updated = await service.update_template(
        TENANT_ID, template.id, RecurringOrderUpdate.model_validate({"name": None, "notes": None})
    )

    assert updated.name == template.name
    assert updated.notes is None


async def test_update_of_other_tenant_template_is_not_found(
    service: RecurringTemplateService, make_template: TemplateFactory
) -> None:
    template = await make_template(tenant_id=OTHER_TENANT_ID)

    with pytest.raises(RecurringOrderNotFound):
        await service.update_template(TENANT_ID, template.id, RecurringOrderUpdate(name="x"))


async def test_deactivate_is_soft_and_idempotent(
    service: RecurringTemplateService, make_template: TemplateFactory, audit: FakeAudit
) -> None:
    template = await make_template()

    first = await service.deactivate_template(TENANT_ID, template.id, actor_id=USER_ID)
    second = await service.deactivate_template(TENANT_ID, template.id, actor_id=USER_ID)

    assert first.is_active is False
    assert second.is_active is False
    assert len(audit.records) == 1
    assert audit.records[0]["metadata"]["action"] == "DEACTIVATE"
    assert (await service.get_template(TENANT_ID, template.id)).is_active is False


async def test_list_filters_and_counts_within_tenant(
    service: RecurringTemplateService, make_template: TemplateFactory
) -> None:
    await make_template(name="Gdansk express", next_generation_date=utc(2024, 3, 5, 8, 0))
    await make_template(name="Lodz shuttle", next_generation_date=utc(2024, 3, 4, 8, 0))
    await make_template(name="Lodz night", is_active=False, next_generation_date=utc(2024, 3, 10, 8, 0))
    await make_template(name="Lodz other tenant", tenant_id=OTHER_TENANT_ID)

    everything, total = await service.list_templates(TENANT_ID)
    assert total == 3
    assert [t.name for t in everything][:2] == ["Lodz shuttle", "Gdansk express"]

    active_lodz, active_lodz_total = await service.list_templates(TENANT_ID, is_active=True, search="lodz")
    assert active_lodz_total == 1
    assert [t.name for t in active_lodz] == ["Lodz shuttle"]

    page, page_total = await service.list_templates(TENANT_ID, skip=1, limit=1)
    assert page_total == 3
    assert len(page) == 1


async def test_list_filters_by_frequency(service: RecurringTemplateService, make_template: TemplateFactory) -> None:
    await make_template(name="weekly")
    await make_template(name="daily", frequency=RecurringFrequency.DAILY, day_of_week=None)

    templates, total = await service.list_templates(TENANT_ID, frequency=RecurringFrequency.DAILY)

    assert total == 1
    assert templates[0].name == "daily"


def test_create_schema_validates_ranges() -> None:
    with pytest.raises(ValueError):
        _create_data(day_of_week=7)
    with pytest.raises(ValueError):
        _create_data(frequency=RecurringFrequency.MONTHLY, day_of_week=None, day_of_month=0)
    with pytest.raises(ValueError):
        _create_data(name="")

