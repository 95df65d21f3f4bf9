"""Public plan catalog routes used by price displays."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from schemas.api.plan import PlanCatalogResponse, PlanDefinitionSchema
from services import plan_catalog_service
from services.payments.errors import ERROR_UNKNOWN_PLAN

router = APIRouter(prefix="/plans", tags=["Plan"])


@router.get("", response_model=PlanCatalogResponse, summary="List every plan with trial length and price.")
def read_plan_catalog() -> PlanCatalogResponse:
    return PlanCatalogResponse(
        plans=[PlanDefinitionSchema(**plan_catalog_service.serialize_plan(plan)) for plan in plan_catalog_service.list_plans()]
    )


@router.get("/{plan_id}", response_model=PlanDefinitionSchema, summary="Return a single plan definition.")
def read_plan(plan_id: str):
    plan = plan_catalog_service.lookup(plan_id)
    if plan is None:
        return JSONResponse(status_code=404, content={"error": f"Invalid plan: {plan_id}", "code": ERROR_UNKNOWN_PLAN})
    return PlanDefinitionSchema(**plan_catalog_service.serialize_plan(plan))


__all__ = ["router"]
