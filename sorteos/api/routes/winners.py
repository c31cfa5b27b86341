"""
Admin winner follow-up routes and reports.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store, require_admin, require_staff
from sorteos.api.models import TestimonialRequest, WinnerContactRequest, WinnerDeliveryRequest
from sorteos.domain import ALL
from sorteos.services import reports, winners

router = APIRouter(prefix="/v1/admin", tags=["winners"])


@router.get("/winners")
def list_winners(
    request: Request,
    response: Response,
    q: str = Query(default="", max_length=200),
    status: str = Query(default=ALL, max_length=40),
) -> dict:
    require_staff(request)
    rows = winners.filter_winners(winners.load_winners(get_store(request)), q, status)
    request.state.result_count = len(rows)
    response.headers["Cache-Control"] = "no-store"
    return {"items": rows, "stats": winners.winner_stats(rows)}


@router.post("/winners/{winner_id}/contacted")
def mark_contacted(winner_id: str, request: Request, payload: WinnerContactRequest | None = None) -> dict:
    require_staff(request)
    store = get_store(request)
    return winners.mark_contacted(store, winners.get_winner(store, winner_id), payload.notes if payload else None)


@router.post("/winners/{winner_id}/delivered")
def mark_delivered(winner_id: str, request: Request, payload: WinnerDeliveryRequest | None = None) -> dict:
    require_staff(request)
    store = get_store(request)
    payload = payload or WinnerDeliveryRequest()
    return winners.mark_delivered(
        store,
        winners.get_winner(store, winner_id),
        photo_url=payload.delivery_photo_url,
        notes=payload.notes,
    )


@router.post("/winners/{winner_id}/testimonial")
def save_testimonial(winner_id: str, payload: TestimonialRequest, request: Request) -> dict:
    require_staff(request)
    store = get_store(request)
    return winners.save_testimonial(store, winners.get_winner(store, winner_id), payload.testimonial)


@router.get("/reports")
def load_reports(request: Request, response: Response) -> dict:
    require_admin(request)
    response.headers["Cache-Control"] = "no-store"
    return reports.load_reports(get_store(request))
