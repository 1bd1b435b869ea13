"""Recurring orders API package.

- template_routes: template CRUD (list, get, create, update, deactivate)
- generate_routes: on-demand generation of the next order
"""

from fastapi import APIRouter

from fleetplan.api.v1.recurring_orders.generate_routes import router as generate_router
from fleetplan.api.v1.recurring_orders.template_routes import router as template_router

# Create a combined router for all recurring order endpoints
router = APIRouter()

router.include_router(template_router)
router.include_router(generate_router)

__all__ = ["router"]
