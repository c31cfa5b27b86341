"""
Admin user routes: list, role changes, deletion and CSV export.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store, require_admin
from sorteos.api.models import RoleChangeRequest
from sorteos.domain import ALL, filter_users, paginate
from sorteos.services import users

router = APIRouter(prefix="/v1/admin/users", tags=["users"])


@router.get("")
def list_users(
    request: Request,
    response: Response,
    q: str = Query(default="", max_length=200),
    role: str = Query(default=ALL, max_length=20),
    page: int = Query(default=1, ge=1),
) -> dict:
    require_admin(request)
    data = users.load_users_page(get_store(request))
    matched = filter_users(data["profiles"], q, role)
    items, total_pages = paginate(matched, page, users.USERS_PER_PAGE)
    request.state.result_count = len(items)
    response.headers["Cache-Control"] = "no-store"
    return {
        "items": items,
        "total": len(matched),
        "page": page,
        "total_pages": total_pages,
        "summary": data["summary"],
    }


@router.get("/export")
def export_users(
    request: Request,
    q: str = Query(default="", max_length=200),
    role: str = Query(default=ALL, max_length=20),
) -> Response:
    require_admin(request)
    data = users.load_users_page(get_store(request))
    content = users.users_csv(filter_users(data["profiles"], q, role))
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{users.users_csv_filename()}"',
            "Cache-Control": "no-store",
        },
    )


@router.post("/{user_id}/role")
def change_role(user_id: str, payload: RoleChangeRequest, request: Request) -> dict:
    require_admin(request)
    return users.change_user_role(get_store(request), user_id, payload.role)


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: str, request: Request) -> Response:
    require_admin(request)
    users.delete_user(get_store(request), user_id)
    return Response(status_code=204)
