from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from conftest import TENANT_ID, USER_ID
from fleetplan.models.audit_log import AuditLog
from fleetplan.models.enums import AuditAction, AuditEntityType
from fleetplan.services.audit import AuditService, get_entity_changes


async def test_record_writes_audit_row(session_factory: async_sessionmaker[AsyncSession]) -> None:
    service = AuditService(session_factory)

    await service.record(
        tenant_id=TENANT_ID,
        actor_id=USER_ID,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.ORDER,
        entity_id="order-1",
        metadata={"source": "recurring"},
    )

    async with session_factory() as session:
        [entry] = (await session.execute(select(AuditLog))).scalars().all()
    assert entry.tenant_id == TENANT_ID
    assert entry.user_id == USER_ID
    assert entry.action == AuditAction.CREATE
    assert entry.entity_type == "Order"
    assert entry.entity_id == "order-1"
    assert entry.event_metadata == {"source": "recurring"}
    assert entry.changes is None


async def test_record_never_raises() -> None:
    def broken_factory() -> AsyncSession:
        raise ConnectionError("database is gone")

    service = AuditService(broken_factory)  # type: ignore[arg-type]

    await service.record(
        tenant_id=TENANT_ID,
        actor_id=None,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.RECURRING_ORDER,
        entity_id="tpl-1",
    )


def test_entity_changes_reports_only_differences() -> None:
    changes = get_entity_changes(
        {"name": "A", "day_of_week": 1, "updated_at": "x", "cargo_pallets": 10},
        {"name": "B", "day_of_week": 1, "updated_at": "y", "cargo_pallets": None},
    )

    assert changes == {
        "name": {"old": "A", "new": "B"},
        "cargo_pallets": {"old": 10, "new": None},
    }


def test_entity_changes_compares_datetimes_as_iso_strings() -> None:
    when = datetime(2024, 3, 4, 8, 0, tzinfo=UTC)

    assert get_entity_changes({"start_date": when}, {"start_date": when.isoformat()}) is None
    assert get_entity_changes({"start_date": when}, {}) == {
        "start_date": {"old": "2024-03-04T08:00:00+00:00", "new": None}
    }


def test_entity_changes_of_nothing_is_none() -> None:
    assert get_entity_changes(None, None) is None
    assert get_entity_changes({"a": 1}, {"a": 1}) is None
