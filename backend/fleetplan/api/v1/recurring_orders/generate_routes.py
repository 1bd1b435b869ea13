"""On-demand generation of orders from recurring templates."""

import structlog
from fastapi import APIRouter, HTTPException

from fleetplan.api.v1.recurring_orders.dependencies import GenerationServiceDep, RequestContextDep
from fleetplan.api.v1.recurring_orders.schemas import (
    GenerateOrderRequest,
    GenerateOrderResponse,
    OrderResponse,
    TemplateCursorResponse,
)
from fleetplan.services.exceptions import ConflictError, PersistenceError
from fleetplan.services.recurring.exceptions import RecurringOrderNotFound, TemplateExpired, TemplateInactive

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["recurring-orders"])


@router.post(
    "/recurring-orders/{template_id}/generate",
    response_model=GenerateOrderResponse,
    status_code=201,
    operation_id="generateRecurringOrder",
)
async def generate_order(
    template_id: str,
    context: RequestContextDep,
    service: GenerationServiceDep,
    data: GenerateOrderRequest | None = None,
) -> GenerateOrderResponse:
    """Generate the template's next order now and advance its schedule.

    - 404: template not found for the tenant
    - 400: template inactive or past its end date
    - 409: generated concurrently by another request, retry
    - 503: database unavailable, nothing was generated
    """
    try:
        result = await service.generate(
            context.tenant_id,
            template_id,
            actor_id=context.actor_id,
            overrides=data,
        )
    except RecurringOrderNotFound:
        raise HTTPException(status_code=404, detail="Recurring order not found")
    except TemplateInactive:
        raise HTTPException(status_code=400, detail="Recurring order is inactive")
    except TemplateExpired:
        raise HTTPException(status_code=400, detail="Recurring order end date has passed")
    except ConflictError:
        raise HTTPException(status_code=409, detail="Order was generated concurrently, please retry")
    except PersistenceError:
        raise HTTPException(status_code=503, detail="Could not generate order, please retry")

    return GenerateOrderResponse(
        order=OrderResponse.from_model(result.order),
        template=TemplateCursorResponse.from_model(result.template),
    )
