"""
Payment routes: methods (admin), transactions and manual payment review
(admin and staff), and transaction creation by participants.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from sorteos.api.dependencies import get_store, require_admin, require_staff, require_user
from sorteos.api.models import (
    ApprovePaymentRequest,
    PaymentMethodForm,
    RejectPaymentRequest,
    ReviewResponse,
    TransactionCreateRequest,
    TransactionStatusRequest,
)
from sorteos.domain import ALL, active_methods, filter_transactions, paginate, transaction_stats
from sorteos.exceptions import NotFoundError
from sorteos.services import payments

router = APIRouter(prefix="/v1", tags=["payments"])


# =============================================================================
# Payment methods
# =============================================================================


@router.get("/admin/payment-methods")
def list_methods(request: Request, response: Response) -> dict:
    require_admin(request)
    methods = payments.load_payment_methods(get_store(request))
    response.headers["Cache-Control"] = "no-store"
    return {"items": methods, "total": len(methods)}


@router.post("/admin/payment-methods", status_code=201)
def create_method(payload: PaymentMethodForm, request: Request) -> dict:
    require_admin(request)
    return payments.save_payment_method(get_store(request), payload.form(), mode="create")


@router.put("/admin/payment-methods/{method_id}")
def update_method(method_id: str, payload: PaymentMethodForm, request: Request) -> dict:
    require_admin(request)
    form = payload.form()
    form["id"] = method_id
    return payments.save_payment_method(get_store(request), form, mode="edit")


@router.post("/admin/payment-methods/{method_id}/toggle")
def toggle_method(method_id: str, request: Request) -> dict:
    require_admin(request)
    store = get_store(request)
    method = store.get("payment_methods", method_id)
    if method is None:
        raise NotFoundError("Método de pago no encontrado", resource_type="PaymentMethod", resource_id=method_id)
    return payments.toggle_payment_method(store, method)


@router.delete("/admin/payment-methods/{method_id}", status_code=204)
def delete_method(method_id: str, request: Request) -> Response:
    require_admin(request)
    payments.delete_payment_method(get_store(request), method_id)
    return Response(status_code=204)


@router.get("/payment-methods")
def public_methods(request: Request, response: Response, scope: str | None = Query(default=None)) -> dict:
    """Active methods for checkout, optionally for one scope (raffles or plans)."""
    methods = active_methods(payments.load_payment_methods(get_store(request)), scope)
    response.headers["Cache-Control"] = "no-store"
    return {"items": methods}


# =============================================================================
# Transactions
# =============================================================================


@router.get("/admin/transactions")
def list_transactions(
    request: Request,
    response: Response,
    status: str = Query(default=ALL, max_length=40),
    method_type: str = Query(default=ALL, max_length=40),
    q: str = Query(default="", max_length=200),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> dict:
    require_staff(request)
    rows = payments.load_transactions(get_store(request))
    matched = filter_transactions(rows, status, method_type, q)
    items, total_pages = paginate(matched, page, page_size)
    request.state.result_count = len(items)
    response.headers["Cache-Control"] = "no-store"
    return {
        "items": items,
        "total": len(matched),
        "page": page,
        "total_pages": total_pages,
        "stats": transaction_stats(rows),
    }


@router.post("/transactions", status_code=201)
def create_transaction(payload: TransactionCreateRequest, request: Request) -> dict:
    user = require_user(request)
    params = payload.form()
    params["user_id"] = user.id
    return payments.create_payment_transaction(get_store(request), params)


@router.post("/admin/transactions/{transaction_id}/status")
def update_status(transaction_id: str, payload: TransactionStatusRequest, request: Request) -> dict:
    user = require_admin(request)
    return payments.update_transaction_status(
        get_store(request),
        transaction_id,
        payload.status,
        admin_comment=payload.admin_comment,
        rejection_reason=payload.rejection_reason,
        reviewed_by=user.id,
    )


@router.post("/admin/transactions/{transaction_id}/approve", response_model=ReviewResponse)
def approve(transaction_id: str, request: Request, payload: ApprovePaymentRequest | None = None) -> dict:
    user = require_staff(request)
    return payments.approve_manual_payment(
        get_store(request),
        transaction_id,
        reviewer_id=user.id,
        admin_comment=payload.admin_comment if payload else None,
    )


@router.post("/admin/transactions/{transaction_id}/reject", response_model=ReviewResponse)
def reject(transaction_id: str, payload: RejectPaymentRequest, request: Request) -> dict:
    user = require_staff(request)
    return payments.reject_manual_payment(
        get_store(request),
        transaction_id,
        reviewer_id=user.id,
        rejection_reason=payload.rejection_reason,
        admin_comment=payload.admin_comment,
    )


@router.get("/admin/transactions/{transaction_id}/history")
def review_history(transaction_id: str, request: Request) -> dict:
    require_staff(request)
    return payments.transaction_review_history(get_store(request), transaction_id)
