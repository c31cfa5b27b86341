"""
Pydantic models for API requests and responses.

Form models only shape the payload; field rules (required text, dates,
URLs, vocabularies) are enforced by the services so the admin UI and the API
report the same messages.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class FormModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def form(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# Request Models
# =============================================================================


class RaffleForm(FormModel):
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "title": "Gran sorteo de fin de año",
                    "prize_description": "Camioneta 4x4",
                    "prize_category": "vehicle",
                    "start_date": "2026-11-01T00:00:00Z",
                    "end_date": "2026-12-20T23:59:59Z",
                    "draw_date": "2026-12-24T20:00:00Z",
                    "entry_mode": "hybrid",
                    "total_winners": 3,
                    "max_entries_per_user": 10,
                }
            ]
        },
    )

    title: str = Field(default="", max_length=200)
    description: str | None = None
    prize_description: str | None = None
    prize_category: str | None = None
    image_url: str | None = None
    start_date: datetime | str | None = None
    end_date: datetime | str | None = None
    draw_date: datetime | str | None = None
    entry_mode: str | None = None
    total_winners: int | str | None = None
    max_entries_per_user: int | str | None = None
    is_trending: bool | None = None


class StatusChangeRequest(BaseModel):
    status: str = Field(min_length=1, max_length=40)


class LiveEventForm(FormModel):
    title: str = Field(default="", max_length=200)
    description: str | None = None
    start_at: datetime | str | None = None
    countdown_start_at: datetime | str | None = None
    stream_url: str | None = None
    raffle_id: str | None = None
    is_visible: bool | None = None


class PaymentMethodForm(FormModel):
    """Payment method form; the per-type sub-forms use the stored config's camelCase keys."""

    id: str | None = None
    name: str = Field(default="", max_length=200)
    type: str | None = None
    description: str | None = None
    icon: str | None = None
    is_active: bool | None = None
    instructions: str | None = None
    scopes: list[str] | None = None
    currency: str | None = None
    amount: float | str | None = None
    stripe_card: dict[str, str] | None = None
    stripe_subscription: dict[str, str] | None = None
    manual: dict[str, str] | None = None
    qr: dict[str, str] | None = None


class TransactionCreateRequest(FormModel):
    payment_method_id: str
    transaction_type: str
    amount: float | str
    currency: str | None = None
    raffle_id: str | None = None
    subscription_id: str | None = None
    receipt_url: str | None = None
    receipt_reference: str | None = None
    metadata: dict[str, Any] | None = None


class TransactionStatusRequest(BaseModel):
    status: str
    admin_comment: str | None = None
    rejection_reason: str | None = None


class ApprovePaymentRequest(BaseModel):
    admin_comment: str | None = Field(default=None, max_length=2000)


class RejectPaymentRequest(BaseModel):
    rejection_reason: str = Field(default="", max_length=2000)
    admin_comment: str | None = Field(default=None, max_length=2000)


class PlanForm(FormModel):
    name: str = Field(default="", max_length=200)
    description: str | None = None
    price: float | str | None = None
    currency: str | None = None
    interval: str | None = None
    benefits: list[str] | str | None = None
    max_concurrent_raffles: int | str | None = None
    show_raffles_limit: bool | None = None
    raffles_limit_message: str | None = None
    is_active: bool | None = None


class RoleChangeRequest(BaseModel):
    role: str


class WinnerContactRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=4000)


class WinnerDeliveryRequest(BaseModel):
    delivery_photo_url: str | None = None
    notes: str | None = Field(default=None, max_length=4000)


class TestimonialRequest(BaseModel):
    testimonial: str = Field(default="", max_length=4000)


class SignInRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=200)


class NotificationForm(FormModel):
    user_id: str = ""
    title: str = Field(default="", max_length=200)
    message: str = Field(default="", max_length=2000)
    type: str | None = None
    action_url: str | None = Field(default=None, max_length=2000)


# =============================================================================
# Response Models
# =============================================================================


class WinnerResult(BaseModel):
    entry_id: str
    user_id: str
    ticket_number: str | None = None
    prize_position: int
    user_name: str | None = None


class DrawResponse(BaseModel):
    winners: list[WinnerResult]
    draw_seed: str
    total_participants: int
    total_winners: int


class EligibilityResponse(BaseModel):
    eligible: bool
    reason: str | None = None
    current_entries: int = 0
    max_entries: int | None = None


class ReviewResponse(BaseModel):
    success: bool
    message: str
    entry_ids: list[str] = Field(default_factory=list)


class RedirectPathResponse(BaseModel):
    path: str
    role: str | None = None


class FaqItemResponse(BaseModel):
    question: str
    answer: str
    slug: str


class SupportChannelResponse(BaseModel):
    title: str
    description: str
    href: str
    label: str
    icon: str
