"""
Admin live event routes, including the visibility and alert toggles.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store, require_admin, require_staff
from sorteos.api.models import LiveEventForm, StatusChangeRequest
from sorteos.domain import ALL, filter_live_events
from sorteos.services import live_events

router = APIRouter(prefix="/v1/admin/live-events", tags=["live-events"])


@router.get("")
def list_events(
    request: Request,
    response: Response,
    q: str = Query(default="", max_length=200),
    status: str = Query(default=ALL, max_length=40),
) -> dict:
    require_staff(request)
    data = live_events.load_live_events_page(get_store(request))
    data["events"] = filter_live_events(data["events"], q, status)
    request.state.result_count = len(data["events"])
    response.headers["Cache-Control"] = "no-store"
    return data


@router.post("", status_code=201)
def create_event(payload: LiveEventForm, request: Request) -> dict:
    require_admin(request)
    return live_events.create_live_event(get_store(request), payload.form())


@router.put("/{event_id}")
def update_event(event_id: str, payload: LiveEventForm, request: Request) -> dict:
    require_admin(request)
    return live_events.update_live_event(get_store(request), event_id, payload.form())


@router.delete("/{event_id}", status_code=204)
def delete_event(event_id: str, request: Request) -> Response:
    require_admin(request)
    live_events.delete_live_event(get_store(request), event_id)
    return Response(status_code=204)


@router.post("/{event_id}/status")
def change_status(event_id: str, payload: StatusChangeRequest, request: Request) -> dict:
    require_admin(request)
    return live_events.change_live_event_status(get_store(request), event_id, payload.status)


@router.post("/{event_id}/visibility")
def toggle_visibility(event_id: str, request: Request) -> dict:
    require_admin(request)
    store = get_store(request)
    return live_events.toggle_visibility(store, live_events.get_live_event(store, event_id))


@router.post("/{event_id}/alert")
def toggle_alert(event_id: str, request: Request) -> dict:
    require_admin(request)
    store = get_store(request)
    return live_events.toggle_alert(store, live_events.get_live_event(store, event_id))
