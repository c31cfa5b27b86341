from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sorteos.config import settings
from sorteos.exceptions import ValidationError

Row = dict[str, Any]

ALL = "all"

DEFAULT_SUCCESS_PATH = "/app/boletos?payment=success"
DEFAULT_CANCEL_PATH = "/app/boletos?payment=cancelled"
DEFAULT_REFERENCE_FORMAT = "Pago sorteo #{raffle_id}"

MANUAL_CONFIG_FIELDS = (
    "bankName",
    "accountNumber",
    "accountType",
    "beneficiary",
    "identification",
    "referenceFormat",
    "instructions",
)
QR_CONFIG_FIELDS = ("provider", "qrImageUrl", "accountId", "accountName", "instructions")

REVENUE_STATUSES = ("approved", "completed")


# =============================================================================
# Values
# =============================================================================


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp column or form value into an aware datetime.

    Naive values (``datetime-local`` inputs, bare dates) are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError("Fecha inválida", detail=str(value)) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Any) -> str | None:
    """Normalise a date/time form value to ISO-8601 in UTC (None stays None)."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.astimezone(timezone.utc).isoformat()


def blank_to_none(value: Any) -> Any:
    """Empty optional form fields are stored as null."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def text_matches(query: str | None, *values: Any) -> bool:
    """Case-insensitive substring match of query against any of values; empty query matches."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in str(v).lower() for v in values if v is not None)


def _is_all(value: str | None) -> bool:
    return not value or value == ALL


# =============================================================================
# List filters
# =============================================================================


def filter_raffles(rows: Iterable[Row], query: str = "", status: str = ALL, category: str = ALL) -> list[Row]:
    return [
        r
        for r in rows
        if text_matches(query, r.get("title"))
        and (_is_all(status) or r.get("status") == status)
        and (_is_all(category) or r.get("prize_category") == category)
    ]


def filter_live_events(rows: Iterable[Row], query: str = "", status: str = ALL) -> list[Row]:
    return [
        e
        for e in rows
        if text_matches(query, e.get("title")) and (_is_all(status) or e.get("status") == status)
    ]


def filter_plans(rows: Iterable[Row], query: str = "", interval: str = ALL, status: str = ALL) -> list[Row]:
    """Filter plans by name, billing interval and active/inactive status."""

    def status_ok(plan: Row) -> bool:
        if _is_all(status):
            return True
        if status == "active":
            return bool(plan.get("is_active"))
        if status == "inactive":
            return not plan.get("is_active")
        return False

    return [
        p
        for p in rows
        if text_matches(query, p.get("name"))
        and (_is_all(interval) or p.get("interval") == interval)
        and status_ok(p)
    ]


def filter_users(rows: Iterable[Row], search: str = "", role: str = ALL) -> list[Row]:
    """Match name, email or cédula; cédula is matched verbatim."""
    needle = (search or "").strip()
    result = []
    for user in rows:
        matches_search = (
            not needle
            or text_matches(needle, user.get("full_name"), user.get("email"))
            or needle in (user.get("id_number") or "")
        )
        if matches_search and (_is_all(role) or user.get("role") == role):
            result.append(user)
    return result


def filter_transactions(
    rows: Iterable[Row],
    status: str = ALL,
    method_type: str = ALL,
    search: str = "",
) -> list[Row]:
    """Filter joined transactions by status, method type and a free-text search.

    The search covers the payer's name and email, the receipt reference and the
    transaction id.
    """
    result = []
    for tx in rows:
        profile = tx.get("profile") or {}
        method = tx.get("payment_method") or {}
        if not _is_all(status) and tx.get("status") != status:
            continue
        if not _is_all(method_type) and method.get("type") != method_type:
            continue
        if not text_matches(
            search,
            profile.get("full_name"),
            profile.get("email"),
            tx.get("receipt_reference"),
            tx.get("id"),
        ):
            continue
        result.append(tx)
    return result


def filter_tickets(entries: Iterable[Row], search: str = "") -> list[Row]:
    """Participant ticket search over ticket number and raffle title."""
    return [
        e
        for e in entries
        if text_matches(search, e.get("ticket_number"), (e.get("raffle") or {}).get("title"))
    ]


def paginate(rows: Sequence[Row], page: int, per_page: int = 20) -> tuple[list[Row], int]:
    """Return the rows of a 1-based page and the total number of pages."""
    total_pages = max(1, math.ceil(len(rows) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return list(rows[start : start + per_page]), total_pages


# =============================================================================
# Raffle calendar
# =============================================================================

CALENDAR_MONTHS = (
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
)
CALENDAR_WEEKDAYS = ("Dom", "Lun", "Mar", "Mié", "Jue", "Vie", "Sáb")

# Day markers in the order they are shown: start, end, draw
CALENDAR_DATE_FIELDS = (("start", "start_date"), ("end", "end_date"), ("draw", "draw_date"))


def _calendar_day(raffle: Mapping[str, Any], field: str) -> date | None:
    moment = parse_timestamp(raffle.get(field))
    return moment.date() if moment else None


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    if not 1 <= month <= 12:
        raise ValidationError("Mes inválido", field="month")
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return date(year, month, 1), following - timedelta(days=1)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def raffle_day_markers(raffle: Mapping[str, Any], day: date) -> list[str]:
    """Which of start / end / draw fall on the day."""
    return [kind for kind, field in CALENDAR_DATE_FIELDS if _calendar_day(raffle, field) == day]


def raffles_in_month(
    rows: Iterable[Row],
    year: int,
    month: int,
    category: str = ALL,
    status: str = ALL,
) -> list[Row]:
    """Raffles that start, end or draw in the month or run across it, by start date."""
    first, last = month_bounds(year, month)
    result = []
    for raffle in rows:
        if not _is_all(category) and raffle.get("prize_category") != category:
            continue
        if not _is_all(status) and raffle.get("status") != status:
            continue
        days = {kind: _calendar_day(raffle, field) for kind, field in CALENDAR_DATE_FIELDS}
        touches = any(day is not None and first <= day <= last for day in days.values())
        spans = bool(days["start"] and days["end"] and days["start"] <= last and days["end"] >= first)
        if touches or spans:
            result.append(raffle)
    return sorted(result, key=lambda r: (_calendar_day(r, "start_date") or date.max, str(r.get("id") or "")))


def calendar_weeks(year: int, month: int) -> list[list[date]]:
    """Six Sunday-first weeks (42 days) covering the month."""
    first, _last = month_bounds(year, month)
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    days = [start + timedelta(days=offset) for offset in range(42)]
    return [days[i : i + 7] for i in range(0, 42, 7)]


def build_calendar_month(
    rows: Iterable[Row],
    year: int,
    month: int,
    category: str = ALL,
    status: str = ALL,
) -> dict[str, Any]:
    """
    Month view of the raffle calendar.

    Days are UTC calendar days. Each cell of ``weeks`` is ``{date, day,
    in_month, events}``; an event is ``{raffle_id, title, status,
    prize_category, markers}``. Days outside the month carry no events.
    """
    raffles = raffles_in_month(rows, year, month, category, status)
    weeks = []
    for week in calendar_weeks(year, month):
        cells = []
        for day in week:
            in_month = (day.year, day.month) == (year, month)
            events = []
            if in_month:
                for raffle in raffles:
                    markers = raffle_day_markers(raffle, day)
                    if markers:
                        events.append(
                            {
                                "raffle_id": raffle.get("id"),
                                "title": raffle.get("title"),
                                "status": raffle.get("status"),
                                "prize_category": raffle.get("prize_category"),
                                "markers": markers,
                            }
                        )
            cells.append({"date": day.isoformat(), "day": day.day, "in_month": in_month, "events": events})
        weeks.append(cells)
    return {
        "year": year,
        "month": month,
        "label": f"{CALENDAR_MONTHS[month - 1]} {year}",
        "raffles": raffles,
        "weeks": weeks,
    }


# =============================================================================
# Summaries
# =============================================================================


def transaction_stats(rows: Sequence[Row]) -> dict[str, Any]:
    """Counts per status plus revenue (approved + completed amounts)."""
    stats: dict[str, Any] = {"total": len(rows)}
    for status in ("pending", "approved", "completed", "rejected", "failed"):
        stats[status] = sum(1 for t in rows if t.get("status") == status)
    stats["total_revenue"] = round(
        sum(float(t.get("amount") or 0) for t in rows if t.get("status") in REVENUE_STATUSES),
        2,
    )
    return stats


def count_by(rows: Iterable[Row], column: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for row in rows:
        key = row.get(column)
        if key is not None:
            counts[key] = counts.get(key, 0) + 1
    return counts


def format_price(amount: Any, currency: str | None = None) -> str:
    currency = currency or settings.default_currency
    symbol = "$" if currency == "USD" else f"{currency} "
    return f"{symbol}{float(amount or 0):,.2f}"


def format_ticket_number(sequence: int, width: int | None = None) -> str:
    """Zero-padded ticket number (``000042``)."""
    return str(sequence).zfill(width or settings.ticket_number_width)


# =============================================================================
# Live events
# =============================================================================


def check_alert_eligibility(event: Mapping[str, Any], now: datetime | None = None) -> tuple[bool, str | None]:
    """Decide whether an event may be shown as the participant alert.

    Args:
        event: Live event row.
        now: Reference time (defaults to the current UTC time).

    Returns:
        ``(True, None)`` when eligible, else ``(False, message)`` with the
        message shown to the admin.
    """
    if not event.get("is_visible"):
        return False, "Primero debes hacer visible el evento para poder activar la alerta."
    if event.get("status") in ("completed", "canceled"):
        return False, "No puedes activar alertas en eventos completados o cancelados."

    start = parse_timestamp(event.get("start_at"))
    now = now or datetime.now(timezone.utc)
    max_hours = settings.alert_max_hours_since_start
    if start is not None and (now - start) > timedelta(hours=max_hours):
        return False, f"Este evento comenzó hace más de {max_hours:g} horas. No se puede activar como alerta."
    return True, None


def countdown_bounds(event: Mapping[str, Any]) -> tuple[datetime, datetime]:
    """Return (start, countdown_start); the countdown defaults to 24 h before start."""
    start = parse_timestamp(event.get("start_at"))
    if start is None:
        raise ValidationError("El evento no tiene fecha de inicio", field="start_at")
    lower = parse_timestamp(event.get("countdown_start_at"))
    if lower is None:
        lower = start - timedelta(hours=settings.default_countdown_hours)
    return start, lower


def countdown_progress(event: Mapping[str, Any], now: datetime | None = None) -> float:
    """Fraction (0..1) of the countdown window elapsed at now."""
    start, lower = countdown_bounds(event)
    now = now or datetime.now(timezone.utc)
    window = (start - lower).total_seconds()
    if window <= 0:
        return 1.0 if now >= start else 0.0
    elapsed = (now - lower).total_seconds()
    return min(1.0, max(0.0, elapsed / window))


def alert_phase(event: Mapping[str, Any], now: datetime | None = None) -> str:
    """live, upcoming or started; drives the alert bar style."""
    if event.get("status") == "live":
        return "live"
    start = parse_timestamp(event.get("start_at"))
    now = now or datetime.now(timezone.utc)
    if start is not None and start > now:
        return "upcoming"
    return "started"


# =============================================================================
# Plans
# =============================================================================


def parse_benefits(text: str | None) -> list[str] | None:
    """One benefit per line; blank lines dropped; nothing left becomes None."""
    benefits = [line.strip() for line in (text or "").splitlines() if line.strip()]
    return benefits or None


def benefits_text(benefits: Sequence[str] | None) -> str:
    return "\n".join(benefits or [])


def parse_price(value: Any, *, field: str = "price") -> float:
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError("El precio debe ser un número válido.", field=field) from e
    if not math.isfinite(price) or price < 0:
        raise ValidationError("El precio debe ser un número válido.", field=field)
    return price


# =============================================================================
# Payment methods
# =============================================================================


def parse_amount(value: Any) -> float | None:
    """Optional amount field: blank is None, anything else must be numeric."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError("El monto debe ser un número válido.", field="amount") from e
    if not math.isfinite(amount):
        raise ValidationError("El monto debe ser un número válido.", field="amount")
    return amount


def normalize_scopes(scopes: Iterable[str] | None) -> list[str]:
    """Scopes keep their order, drop duplicates and never end up empty."""
    result = list(dict.fromkeys(s for s in (scopes or []) if s))
    return result or ["raffles"]


def build_method_config(form: Mapping[str, Any]) -> dict[str, Any]:
    """Merge the payment method form into the stored ``config`` document.

    The base holds scopes, currency and amount; the sub-config for the
    method type is added under its key (``stripe_card``,
    ``stripe_subscription``, ``manual`` or ``qr``).
    """
    config: dict[str, Any] = {
        "scopes": normalize_scopes(form.get("scopes")),
        "currency": (form.get("currency") or settings.default_currency).upper(),
    }
    amount = parse_amount(form.get("amount"))
    if amount is not None:
        config["amount"] = amount

    method_type = form.get("type")
    if method_type == "stripe_card":
        card = form.get("stripe_card") or {}
        config["stripe_card"] = {
            "mode": "payment",
            "successPath": card.get("successPath") or DEFAULT_SUCCESS_PATH,
            "cancelPath": card.get("cancelPath") or DEFAULT_CANCEL_PATH,
        }
    elif method_type == "stripe_subscription":
        sub = form.get("stripe_subscription") or {}
        config["stripe_subscription"] = {"checkoutUrl": sub.get("checkoutUrl") or ""}
        if sub.get("description"):
            config["stripe_subscription"]["description"] = sub["description"]
    elif method_type == "manual_transfer":
        manual = form.get("manual") or {}
        config["manual"] = {key: manual.get(key) or "" for key in MANUAL_CONFIG_FIELDS}
        config["manual"]["referenceFormat"] = manual.get("referenceFormat") or DEFAULT_REFERENCE_FORMAT
    elif method_type == "qr_code":
        qr = form.get("qr") or {}
        config["qr"] = {key: qr.get(key) or "" for key in QR_CONFIG_FIELDS}
    return config


def method_form_defaults(method: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Form state for creating (no method) or editing a payment method."""
    method = method or {}
    config = method.get("config") or {}
    card = config.get("stripe_card") or {}
    sub = config.get("stripe_subscription") or {}
    manual = config.get("manual") or {}
    qr = config.get("qr") or {}
    return {
        "id": method.get("id"),
        "name": method.get("name") or "",
        "description": method.get("description") or "",
        "icon": method.get("icon") or "",
        "type": method.get("type") or "stripe_card",
        "is_active": method.get("is_active", True),
        "instructions": method.get("instructions") or "",
        "scopes": normalize_scopes(config.get("scopes")),
        "currency": config.get("currency") or settings.default_currency,
        "amount": "" if config.get("amount") is None else str(config["amount"]),
        "stripe_card": {
            "successPath": card.get("successPath") or DEFAULT_SUCCESS_PATH,
            "cancelPath": card.get("cancelPath") or DEFAULT_CANCEL_PATH,
        },
        "stripe_subscription": {
            "checkoutUrl": sub.get("checkoutUrl") or "",
            "description": sub.get("description") or "",
        },
        "manual": {
            **{key: manual.get(key) or "" for key in MANUAL_CONFIG_FIELDS},
            "referenceFormat": manual.get("referenceFormat") or DEFAULT_REFERENCE_FORMAT,
        },
        "qr": {key: qr.get(key) or "" for key in QR_CONFIG_FIELDS},
    }


def method_scopes(method: Mapping[str, Any]) -> list[str]:
    return normalize_scopes((method.get("config") or {}).get("scopes"))


def active_methods(rows: Iterable[Row], scope: str | None = None) -> list[Row]:
    """Active payment methods, optionally restricted to one scope."""
    return [m for m in rows if m.get("is_active") and (scope is None or scope in method_scopes(m))]


def tickets_requested(metadata: Mapping[str, Any] | None) -> int:
    """Tickets to create for an approved payment: floor of the request, at least 1."""
    raw = (metadata or {}).get("tickets_requested")
    if raw is None:
        return 1
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return max(1, math.floor(number))
