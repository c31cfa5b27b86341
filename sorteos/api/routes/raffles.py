"""
Admin raffle routes: list, CRUD, lifecycle and the draw.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store, require_admin, require_staff
from sorteos.api.models import DrawResponse, RaffleForm, StatusChangeRequest
from sorteos.domain import ALL, filter_raffles, paginate
from sorteos.logging_config import get_logger
from sorteos.services import raffles

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/admin/raffles", tags=["raffles"])


@router.get("")
def list_raffles(
    request: Request,
    response: Response,
    q: str = Query(default="", max_length=200),
    status: str = Query(default=ALL, max_length=40),
    category: str = Query(default=ALL, max_length=40),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> dict:
    require_staff(request)
    data = raffles.load_raffles_page(get_store(request))
    matched = filter_raffles(data["raffles"], q, status, category)
    items, total_pages = paginate(matched, page, page_size)
    request.state.result_count = len(items)
    response.headers["Cache-Control"] = "no-store"
    return {
        "items": items,
        "total": len(matched),
        "count": data["count"],
        "page": page,
        "total_pages": total_pages,
    }


@router.get("/calendar")
def raffle_calendar(
    request: Request,
    response: Response,
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    category: str = Query(default=ALL, max_length=40),
    status: str = Query(default=ALL, max_length=40),
) -> dict:
    require_admin(request)
    data = raffles.load_raffle_calendar(get_store(request), year, month, category=category, status=status)
    request.state.result_count = len(data["raffles"])
    response.headers["Cache-Control"] = "no-store"
    return data


@router.post("", status_code=201)
def create_raffle(payload: RaffleForm, request: Request) -> dict:
    user = require_admin(request)
    return raffles.create_raffle(get_store(request), payload.form(), created_by=user.id)


@router.get("/{raffle_id}")
def get_raffle(raffle_id: str, request: Request) -> dict:
    require_staff(request)
    return raffles.get_raffle(get_store(request), raffle_id)


@router.put("/{raffle_id}")
def update_raffle(raffle_id: str, payload: RaffleForm, request: Request) -> dict:
    require_admin(request)
    return raffles.update_raffle(get_store(request), raffle_id, payload.form())


@router.delete("/{raffle_id}", status_code=204)
def delete_raffle(raffle_id: str, request: Request) -> Response:
    require_admin(request)
    raffles.delete_raffle(get_store(request), raffle_id)
    return Response(status_code=204)


@router.post("/{raffle_id}/duplicate", status_code=201)
def duplicate_raffle(raffle_id: str, request: Request) -> dict:
    require_admin(request)
    store = get_store(request)
    return raffles.duplicate_raffle(store, raffles.get_raffle(store, raffle_id))


@router.post("/{raffle_id}/status")
def change_status(raffle_id: str, payload: StatusChangeRequest, request: Request) -> dict:
    require_admin(request)
    return raffles.change_raffle_status(get_store(request), raffle_id, payload.status)


@router.post("/{raffle_id}/draw", response_model=DrawResponse)
def execute_draw(raffle_id: str, request: Request) -> dict:
    require_admin(request)
    # Seeds are generated server-side only
    return raffles.execute_draw(get_store(request), raffle_id)


@router.get("/{raffle_id}/verify")
def verify_draw(raffle_id: str, request: Request) -> dict:
    require_staff(request)
    return {"raffle_id": raffle_id, "valid": raffles.verify_raffle_draw(get_store(request), raffle_id)}


@router.get("/{raffle_id}/stats")
def raffle_stats(raffle_id: str, request: Request) -> dict:
    require_staff(request)
    store = get_store(request)
    raffles.get_raffle(store, raffle_id)
    return raffles.raffle_stats(store, raffle_id)
