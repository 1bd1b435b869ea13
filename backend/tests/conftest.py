"""Shared fixtures: file-backed SQLite database, fake collaborators, fixed clock."""

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import fleetplan.models  # noqa: F401
from fleetplan.models.enums import AuditAction, AuditEntityType, RecurringFrequency, WebhookEvent
from fleetplan.models.recurring_order import RecurringOrder

TENANT_ID = "tenant-1"
OTHER_TENANT_ID = "tenant-2"
USER_ID = "user-1"


@dataclass
class FakeAudit:
    """Collects audit records instead of writing them."""

    records: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False

    async def record(
        self,
        *,
        tenant_id: str,
        actor_id: str | None,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: str | None,
        metadata: dict[str, Any] | None = None,
        changes: dict[str, Any] | None = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.records.append(
            {
                "tenant_id": tenant_id,
                "actor_id": actor_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "metadata": metadata,
                "changes": changes,
            }
        )


@dataclass
class FakeNotifier:
    """Collects published events instead of queueing webhook deliveries."""

    events: list[tuple[str, WebhookEvent, dict[str, Any]]] = field(default_factory=list)
    fail: bool = False

    async def publish(self, tenant_id: str, event: WebhookEvent, payload: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("broker unavailable")
        self.events.append((tenant_id, event, payload))


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fleetplan.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit() -> FakeAudit:
    return FakeAudit()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(utc(2024, 1, 15, 12, 0))


TemplateFactory = Callable[..., Any]


@pytest.fixture
def make_template(session_factory: async_sessionmaker[AsyncSession]) -> TemplateFactory:
    """Insert a template directly (bypassing the service) and return it."""

    async def factory(**overrides: Any) -> RecurringOrder:
        values: dict[str, Any] = {
            "tenant_id": TENANT_ID,
            "name": "Warsaw - Poznan weekly",
            "frequency": RecurringFrequency.WEEKLY,
            "day_of_week": 1,
            "start_date": utc(2024, 1, 1, 8, 0),
            "next_generation_date": utc(2024, 3, 4, 8, 0),
            "origin": "Warszawa, ul. Logistyczna 1",
            "origin_city": "Warszawa",
            "destination": "Poznan, ul. Magazynowa 7",
            "destination_city": "Poznan",
            "cargo_description": "Pallets",
            "cargo_pallets": 12,
        }
        values.update(overrides)
        template = RecurringOrder(**values)
        async with session_factory() as session:
            session.add(template)
            await session.commit()
        return template

    return factory
