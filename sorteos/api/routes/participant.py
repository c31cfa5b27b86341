"""
Participant routes: dashboard, tickets and raffle entry.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_current_user, get_store, require_user
from sorteos.api.models import EligibilityResponse
from sorteos.domain import ALL
from sorteos.services import dashboard, entries

router = APIRouter(prefix="/v1", tags=["participant"])


@router.get("/me/dashboard")
def my_dashboard(request: Request, response: Response) -> dict:
    user = require_user(request)
    data = dashboard.load_dashboard(get_store(request), user.id)
    data["user"] = user.to_dict()
    response.headers["Cache-Control"] = "no-store"
    return data


@router.get("/me/tickets")
def my_tickets(
    request: Request,
    response: Response,
    q: str = Query(default="", max_length=200),
    status: str = Query(default=ALL, max_length=20),
    sort: str = Query(default="recent", max_length=20),
) -> dict:
    user = require_user(request)
    all_entries = dashboard.load_my_tickets(get_store(request), user.id)
    items = dashboard.filter_my_tickets(all_entries, q, status, sort)
    request.state.result_count = len(items)
    response.headers["Cache-Control"] = "no-store"
    return {"items": items, "stats": dashboard.ticket_stats(all_entries)}


@router.get("/raffles/{raffle_id}/eligibility", response_model=EligibilityResponse)
def eligibility(raffle_id: str, request: Request) -> dict:
    user = get_current_user(request)
    return entries.check_raffle_eligibility(get_store(request), user.id if user else None, raffle_id)


@router.post("/raffles/{raffle_id}/enter", status_code=201)
def enter_raffle(raffle_id: str, request: Request) -> dict:
    """Enter an active raffle with the caller's subscription."""
    user = require_user(request)
    return entries.enter_raffle_with_subscription(get_store(request), user.id, raffle_id)
