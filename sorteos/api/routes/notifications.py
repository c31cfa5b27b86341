"""
Notification routes: the caller's notifications, and sending one (admin).
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from sorteos.api.dependencies import get_store, require_admin, require_user
from sorteos.api.models import NotificationForm
from sorteos.services import notifications

router = APIRouter(prefix="/v1", tags=["notifications"])


@router.get("/me/notifications")
def my_notifications(request: Request, response: Response) -> dict:
    user = require_user(request)
    data = notifications.load_notifications(get_store(request), user.id)
    request.state.result_count = len(data["notifications"])
    response.headers["Cache-Control"] = "no-store"
    return data


@router.post("/me/notifications/read-all")
def mark_all_read(request: Request) -> dict:
    user = require_user(request)
    return {"updated": notifications.mark_all_notifications_read(get_store(request), user.id)}


@router.post("/me/notifications/{notification_id}/read")
def mark_read(notification_id: str, request: Request) -> dict:
    user = require_user(request)
    return notifications.mark_notification_read(get_store(request), user.id, notification_id)


@router.delete("/me/notifications/{notification_id}", status_code=204)
def delete_notification(notification_id: str, request: Request) -> Response:
    user = require_user(request)
    notifications.delete_notification(get_store(request), user.id, notification_id)
    return Response(status_code=204)


@router.post("/admin/notifications", status_code=201)
def send_notification(payload: NotificationForm, request: Request) -> dict:
    require_admin(request)
    return notifications.create_notification(get_store(request), payload.form())
