"""
Subscription plan routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store, require_admin
from sorteos.api.models import PlanForm
from sorteos.domain import ALL, filter_plans
from sorteos.exceptions import NotFoundError
from sorteos.services import plans

router = APIRouter(prefix="/v1", tags=["plans"])


def _plan(request: Request, plan_id: str) -> dict:
    plan = get_store(request).get("plans", plan_id)
    if plan is None:
        raise NotFoundError("Plan no encontrado", resource_type="Plan", resource_id=plan_id)
    return plan


@router.get("/admin/plans")
def list_plans(
    request: Request,
    response: Response,
    q: str = Query(default="", max_length=200),
    interval: str = Query(default=ALL, max_length=20),
    status: str = Query(default=ALL, max_length=20),
) -> dict:
    require_admin(request)
    rows = filter_plans(plans.load_plans(get_store(request)), q, interval, status)
    response.headers["Cache-Control"] = "no-store"
    return {"items": rows, "total": len(rows)}


@router.get("/plans")
def public_plans(request: Request) -> dict:
    """Active plans for the participant plans page."""
    rows = [p for p in plans.load_plans(get_store(request)) if p.get("is_active")]
    return {"items": rows}


@router.post("/admin/plans", status_code=201)
def create_plan(payload: PlanForm, request: Request) -> dict:
    require_admin(request)
    return plans.save_plan(get_store(request), payload.form())


@router.put("/admin/plans/{plan_id}")
def update_plan(plan_id: str, payload: PlanForm, request: Request) -> dict:
    require_admin(request)
    return plans.save_plan(get_store(request), payload.form(), plan_id)


@router.post("/admin/plans/{plan_id}/toggle-active")
def toggle_active(plan_id: str, request: Request) -> dict:
    require_admin(request)
    return plans.toggle_plan_active(get_store(request), _plan(request, plan_id))


@router.post("/admin/plans/{plan_id}/toggle-featured")
def toggle_featured(plan_id: str, request: Request) -> dict:
    require_admin(request)
    return plans.toggle_plan_featured(get_store(request), _plan(request, plan_id))


@router.post("/admin/plans/{plan_id}/duplicate", status_code=201)
def duplicate(plan_id: str, request: Request) -> dict:
    require_admin(request)
    return plans.duplicate_plan(get_store(request), _plan(request, plan_id))


@router.delete("/admin/plans/{plan_id}", status_code=204)
def delete(plan_id: str, request: Request) -> Response:
    require_admin(request)
    plans.delete_plan(get_store(request), plan_id)
    return Response(status_code=204)
