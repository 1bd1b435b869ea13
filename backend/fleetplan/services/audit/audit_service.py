"""Audit log service."""

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetplan.models.audit_log import AuditLog
from fleetplan.models.enums import AuditAction, AuditEntityType

logger = structlog.get_logger(__name__)

# Fields never reported in change sets
SKIP_FIELDS = frozenset({"created_at", "updated_at", "secret"})


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def get_entity_changes(
    old_data: dict[str, Any] | None,
    new_data: dict[str, Any] | None,
) -> dict[str, dict[str, Any]] | None:
    """Field-level diff ``{field: {"old": ..., "new": ...}}``, or None when nothing changed.

    Pass JSON-compatible dicts (``model_dump(mode="json")``) for values that
    end up in the audit log verbatim.
    """
    if old_data is None and new_data is None:
        return None

    old = old_data or {}
    new = new_data or {}
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(old) | set(new)):
        if key in SKIP_FIELDS:
            continue
        old_value = _comparable(old.get(key))
        new_value = _comparable(new.get(key))
        if old_value != new_value:
            changes[key] = {"old": old_value, "new": new_value}

    return changes or None


class AuditService:
    """Writes audit log entries in their own short transaction.

    Uses a separate session so a failing audit write can never roll back or
    expire the caller's already-committed work. Errors are logged and
    swallowed - audit logging must not break the main flow.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

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
        """Create an audit log entry (never raises)."""
        try:
            async with self.session_factory() as session:
                session.add(
                    AuditLog(
                        tenant_id=tenant_id,
                        user_id=actor_id,
                        action=action,
                        entity_type=entity_type.value,
                        entity_id=entity_id,
                        changes=changes,
                        event_metadata=metadata,
                    )
                )
                await session.commit()
        except Exception as e:
            logger.error(
                "Failed to write audit log",
                error=str(e),
                tenant_id=tenant_id,
                action=action.value,
                entity_type=entity_type.value,
                entity_id=entity_id,
            )
