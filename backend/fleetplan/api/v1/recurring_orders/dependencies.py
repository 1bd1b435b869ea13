"""FastAPI dependencies for service injection."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fleetplan.db import async_session_maker, get_session
from fleetplan.models.base import utc_now
from fleetplan.services.audit import AuditService
from fleetplan.services.recurring.generation_service import RecurringGenerationService
from fleetplan.services.recurring.template_service import RecurringTemplateService
from fleetplan.services.webhooks.notifier import WebhookNotifier


@dataclass(frozen=True)
class RequestContext:
    """Tenant and user the request acts for, as set by the authenticating gateway."""

    tenant_id: str
    actor_id: str | None


async def get_request_context(
    x_tenant_id: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Read tenant and user from the gateway headers."""
    if not x_tenant_id:
        raise HTTPException(status_code=401, detail="Missing tenant")
    return RequestContext(tenant_id=x_tenant_id, actor_id=x_user_id or None)


def get_clock() -> Callable[[], datetime]:
    """Get the clock services use as "now"."""
    return utc_now


def get_audit_service() -> AuditService:
    """Get an AuditService writing through its own sessions."""
    return AuditService(async_session_maker)


def get_webhook_notifier() -> WebhookNotifier:
    """Get a WebhookNotifier queueing deliveries on the Dramatiq broker."""
    return WebhookNotifier(async_session_maker)


async def get_template_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    audit: Annotated[AuditService, Depends(get_audit_service)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
) -> RecurringTemplateService:
    """Get a RecurringTemplateService instance with the current session."""
    return RecurringTemplateService(session, audit=audit, clock=clock)


async def get_generation_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    audit: Annotated[AuditService, Depends(get_audit_service)],
    notifier: Annotated[WebhookNotifier, Depends(get_webhook_notifier)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
) -> RecurringGenerationService:
    """Get a RecurringGenerationService instance with the current session."""
    return RecurringGenerationService(session, audit=audit, notifier=notifier, clock=clock)


# Type aliases for cleaner endpoint signatures
RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]
TemplateServiceDep = Annotated[RecurringTemplateService, Depends(get_template_service)]
GenerationServiceDep = Annotated[RecurringGenerationService, Depends(get_generation_service)]
