"""Interfaces of the side-effect collaborators used after a generation commits."""

from typing import Any, Protocol

from fleetplan.models.enums import AuditAction, AuditEntityType, WebhookEvent


class AuditSink(Protocol):
    """Records who did what; must never raise into the caller."""

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
    ) -> None: ...


class EventNotifier(Protocol):
    """Publishes tenant events (webhooks); delivery is not awaited."""

    async def publish(self, tenant_id: str, event: WebhookEvent, payload: dict[str, Any]) -> None: ...
