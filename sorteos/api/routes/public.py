"""
Public routes: help center content and the live event alert.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store
from sorteos.api.models import FaqItemResponse, SupportChannelResponse
from sorteos.domain import alert_phase, countdown_bounds, countdown_progress
from sorteos.help import SUPPORT_CHANNELS, search_faqs
from sorteos.services.live_events import get_alert_event

router = APIRouter(prefix="/v1", tags=["public"])


@router.get("/help/faqs", response_model=list[FaqItemResponse])
def faqs(response: Response, q: str = Query(default="", max_length=200)) -> list[dict]:
    response.headers["Cache-Control"] = "public, max-age=3600"
    return [{"question": f.question, "answer": f.answer, "slug": f.slug} for f in search_faqs(q)]


@router.get("/help/support", response_model=list[SupportChannelResponse])
def support_channels(response: Response) -> list[dict]:
    response.headers["Cache-Control"] = "public, max-age=3600"
    return [
        {"title": c.title, "description": c.description, "href": c.href, "label": c.label, "icon": c.icon}
        for c in SUPPORT_CHANNELS
    ]


@router.get("/live-events/alert")
def live_alert(request: Request, response: Response) -> dict:
    """The current alert event with its countdown state, or ``{"event": null}``."""
    response.headers["Cache-Control"] = "no-store"
    event = get_alert_event(get_store(request))
    if event is None:
        return {"event": None}
    start, lower = countdown_bounds(event)
    return {
        "event": event,
        "phase": alert_phase(event),
        "progress": round(countdown_progress(event), 4),
        "countdown_start_at": lower.isoformat(),
        "start_at": start.isoformat(),
    }
