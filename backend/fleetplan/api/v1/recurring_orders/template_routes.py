"""Recurring order template CRUD endpoints."""

import math

import structlog
from fastapi import APIRouter, HTTPException, Query

from fleetplan.api.v1.recurring_orders.dependencies import RequestContextDep, TemplateServiceDep
from fleetplan.api.v1.recurring_orders.schemas import RecurringOrderListResponse, RecurringOrderResponse
from fleetplan.models.enums import RecurringFrequency
from fleetplan.models.recurring_order import RecurringOrderCreate, RecurringOrderUpdate
from fleetplan.services.recurring.exceptions import InvalidRule, RecurringOrderNotFound

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["recurring-orders"])


@router.get("/recurring-orders", response_model=RecurringOrderListResponse, operation_id="listRecurringOrders")
async def list_recurring_orders(
    context: RequestContextDep,
    service: TemplateServiceDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    is_active: bool | None = None,
    frequency: RecurringFrequency | None = None,
    contractor_id: str | None = None,
    search: str | None = None,
) -> RecurringOrderListResponse:
    """List the tenant's templates, soonest due first."""
    templates, total = await service.list_templates(
        context.tenant_id,
        is_active=is_active,
        frequency=frequency,
        contractor_id=contractor_id,
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return RecurringOrderListResponse(
        items=[RecurringOrderResponse.from_model(template) for template in templates],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.post(
    "/recurring-orders",
    response_model=RecurringOrderResponse,
    status_code=201,
    operation_id="createRecurringOrder",
)
async def create_recurring_order(
    data: RecurringOrderCreate,
    context: RequestContextDep,
    service: TemplateServiceDep,
) -> RecurringOrderResponse:
    """Create a template; its first cursor is the first occurrence after now."""
    try:
        template = await service.create_template(context.tenant_id, data, actor_id=context.actor_id)
    except InvalidRule as e:
        raise HTTPException(status_code=422, detail=str(e))
    return RecurringOrderResponse.from_model(template)


@router.get("/recurring-orders/{template_id}", response_model=RecurringOrderResponse, operation_id="getRecurringOrder")
async def get_recurring_order(
    template_id: str,
    context: RequestContextDep,
    service: TemplateServiceDep,
) -> RecurringOrderResponse:
    """Get a single template."""
    try:
        template = await service.get_template(context.tenant_id, template_id)
    except RecurringOrderNotFound:
        raise HTTPException(status_code=404, detail="Recurring order not found")
    return RecurringOrderResponse.from_model(template)


@router.put(
    "/recurring-orders/{template_id}",
    response_model=RecurringOrderResponse,
    operation_id="updateRecurringOrder",
)
async def update_recurring_order(
    template_id: str,
    data: RecurringOrderUpdate,
    context: RequestContextDep,
    service: TemplateServiceDep,
) -> RecurringOrderResponse:
    """Partially update a template. Schedule changes recompute the next generation date."""
    try:
        template = await service.update_template(context.tenant_id, template_id, data, actor_id=context.actor_id)
    except RecurringOrderNotFound:
        raise HTTPException(status_code=404, detail="Recurring order not found")
    except InvalidRule as e:
        raise HTTPException(status_code=422, detail=str(e))
    return RecurringOrderResponse.from_model(template)


@router.delete(
    "/recurring-orders/{template_id}",
    response_model=RecurringOrderResponse,
    operation_id="deactivateRecurringOrder",
)
async def deactivate_recurring_order(
    template_id: str,
    context: RequestContextDep,
    service: TemplateServiceDep,
) -> RecurringOrderResponse:
    """Deactivate a template. Orders generated from it are kept."""
    try:
        template = await service.deactivate_template(context.tenant_id, template_id, actor_id=context.actor_id)
    except RecurringOrderNotFound:
        raise HTTPException(status_code=404, detail="Recurring order not found")
    return RecurringOrderResponse.from_model(template)
