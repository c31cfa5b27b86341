"""
Page renderers for Streamlit UI.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any

import streamlit as st

from sorteos import domain
from sorteos.config import (
    INTERVAL_LABELS,
    LIVE_EVENT_STATUS_LABELS,
    LIVE_EVENT_STATUSES,
    NOTIFICATION_ICONS,
    PAYMENT_METHOD_TYPE_LABELS,
    PAYMENT_METHOD_TYPES,
    PAYMENT_SCOPES,
    PLAN_INTERVALS,
    PRIZE_CATEGORIES,
    RAFFLE_ENTRY_MODES,
    RAFFLE_STATUS_LABELS,
    RAFFLE_STATUSES,
    ROLE_LABELS,
    STATUS_ICONS,
    TRANSACTION_STATUS_LABELS,
    TRANSACTION_STATUSES,
    USER_ROLES,
    WINNER_STATUS_LABELS,
    WINNER_STATUSES,
    settings,
)
from sorteos.help import FAQS, SUPPORT_CHANNELS, search_faqs
from sorteos.services import (
    dashboard,
    live_events,
    notifications,
    payments,
    plans,
    raffles,
    reports,
    users,
    winners,
)
from sorteos.services.auth import CurrentUser
from sorteos.ui.components import (
    format_datetime,
    load_or_fail,
    render_alert_bar,
    render_empty_state,
    render_faq_accordion,
    render_flash,
    render_metric_row,
    render_pagination,
    run_action,
    status_badge,
)
from sorteos.ui.context import ui_store
from sorteos.ui.session import (
    close_form,
    consume_create_flag,
    get_calendar_month,
    is_form_open,
    open_form,
    set_calendar_month,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

CATEGORY_LABELS = {
    "vehicle": "Vehículo",
    "technology": "Tecnología",
    "cash": "Efectivo",
    "travel": "Viajes",
    "home": "Hogar",
    "other": "Otro",
}
ENTRY_MODE_LABELS = {
    "subscribers_only": "Solo suscriptores",
    "tickets_only": "Solo boletos",
    "hybrid": "Híbrido",
}


def _with_all(options: tuple[str, ...] | list[str]) -> list[str]:
    return [domain.ALL, *options]


def _label(labels: dict[str, str]):
    return lambda value: "Todos" if value == domain.ALL else labels.get(value, value)


def _badge(status: str | None, labels: dict[str, str]) -> None:
    st.markdown(status_badge(status, labels), unsafe_allow_html=True)


def _date_value(value: Any, default: date | None = None) -> date | None:
    moment = domain.parse_timestamp(value)
    return moment.date() if moment else default


def _as_datetime(day: date | None, at: time | None = None) -> datetime | None:
    if day is None:
        return None
    return datetime.combine(day, at or time(0, 0), tzinfo=timezone.utc)


# =============================================================================
# Raffles
# =============================================================================


def _raffle_form(key: str, raffle: dict | None = None) -> dict | None:
    """Create/edit form; returns the submitted values or None."""
    raffle = raffle or {}
    today = datetime.now(timezone.utc).date()
    with st.form(key):
        title = st.text_input("Título *", value=raffle.get("title") or "")
        description = st.text_area("Descripción", value=raffle.get("description") or "")
        prize_description = st.text_area("Premio", value=raffle.get("prize_description") or "")
        col1, col2 = st.columns(2)
        with col1:
            category = st.selectbox(
                "Categoría",
                PRIZE_CATEGORIES,
                index=PRIZE_CATEGORIES.index(raffle.get("prize_category") or "other"),
                format_func=CATEGORY_LABELS.get,
            )
            start_date = st.date_input("Fecha de inicio *", value=_date_value(raffle.get("start_date"), today))
            draw_date = st.date_input("Fecha del sorteo", value=_date_value(raffle.get("draw_date")))
            total_winners = st.number_input(
                "Número de ganadores", min_value=1, value=int(raffle.get("total_winners") or 1)
            )
        with col2:
            entry_mode = st.selectbox(
                "Modalidad",
                RAFFLE_ENTRY_MODES,
                index=RAFFLE_ENTRY_MODES.index(raffle.get("entry_mode") or "subscribers_only"),
                format_func=ENTRY_MODE_LABELS.get,
            )
            end_date = st.date_input("Fecha de fin *", value=_date_value(raffle.get("end_date"), today))
            max_entries = st.number_input(
                "Máximo de boletos por usuario (0 = sin límite)",
                min_value=0,
                value=int(raffle.get("max_entries_per_user") or 0),
            )
            is_trending = st.checkbox("Destacado (tendencia)", value=bool(raffle.get("is_trending")))
        image_url = st.text_input("URL de imagen", value=raffle.get("image_url") or "")
        submitted = st.form_submit_button("Guardar", type="primary")
    if not submitted:
        return None
    return {
        "title": title,
        "description": description,
        "prize_description": prize_description,
        "prize_category": category,
        "image_url": image_url,
        "start_date": _as_datetime(start_date),
        "end_date": _as_datetime(end_date, time(23, 59)),
        "draw_date": _as_datetime(draw_date),
        "entry_mode": entry_mode,
        "total_winners": int(total_winners),
        "max_entries_per_user": int(max_entries) or None,
        "is_trending": is_trending,
    }


def _render_raffle_row(user: CurrentUser, raffle: dict) -> None:
    store = ui_store()
    with st.container(border=True):
        col1, col2, col3 = st.columns([4, 2, 2])
        with col1:
            title = raffle["title"]
            if raffle.get("is_trending"):
                title += ' <span class="trending-badge">🔥 Tendencia</span>'
            st.markdown(f"**{title}**", unsafe_allow_html=True)
            st.caption(
                f"{CATEGORY_LABELS.get(raffle.get('prize_category'), '-')} · "
                f"{ENTRY_MODE_LABELS.get(raffle.get('entry_mode'), '-')} · "
                f"Sorteo: {format_datetime(raffle.get('draw_date'))}"
            )
        with col2:
            _badge(raffle.get("status"), RAFFLE_STATUS_LABELS)
            st.caption(f"{raffle['_count']['raffle_entries']} boletos")
        with col3:
            new_status = st.selectbox(
                "Estado",
                [s for s in RAFFLE_STATUSES if s != "drawn"],
                index=None,
                placeholder="Cambiar estado",
                key=f"raffle_status_{raffle['id']}",
                format_func=RAFFLE_STATUS_LABELS.get,
                label_visibility="collapsed",
            )
            if new_status and new_status != raffle.get("status"):
                run_action(
                    lambda: raffles.change_raffle_status(store, raffle["id"], new_status),
                    "Estado actualizado",
                )

        if user.role != "admin":
            return
        b1, b2, b3, b4 = st.columns(4)
        with b1:
            if st.button("✏️ Editar", key=f"edit_raffle_{raffle['id']}", use_container_width=True):
                open_form(f"raffle_edit_{raffle['id']}")
        with b2:
            if st.button("📄 Duplicar", key=f"dup_raffle_{raffle['id']}", use_container_width=True):
                run_action(lambda: raffles.duplicate_raffle(store, raffle), "Sorteo duplicado")
        with b3:
            if raffle.get("status") == "closed" and st.button(
                "🎲 Sortear", key=f"draw_raffle_{raffle['id']}", type="primary", use_container_width=True
            ):
                run_action(lambda: raffles.execute_draw(store, raffle["id"]), "Sorteo ejecutado")
            elif raffle.get("draw_seed") and st.button(
                "✅ Verificar", key=f"verify_raffle_{raffle['id']}", use_container_width=True
            ):
                if raffles.verify_raffle_draw(store, raffle["id"]):
                    st.success("El resultado del sorteo es verificable.")
                else:
                    st.error("El resultado no coincide con la semilla guardada.")
        with b4:
            if st.button("🗑️ Eliminar", key=f"del_raffle_{raffle['id']}", use_container_width=True):
                run_action(lambda: raffles.delete_raffle(store, raffle["id"]), "Sorteo eliminado")

        form_name = f"raffle_edit_{raffle['id']}"
        if is_form_open(form_name):
            values = _raffle_form(f"form_{form_name}", raffle)
            if values is not None:
                close_form(form_name)
                run_action(lambda: raffles.update_raffle(store, raffle["id"], values), "Sorteo actualizado")


def render_raffles_page(user: CurrentUser) -> None:
    st.title("🎟️ Sorteos")
    render_flash()
    store = ui_store()
    consume_create_flag("raffle")

    data = load_or_fail(lambda: raffles.load_raffles_page(store), retry_key="retry_raffles")

    if user.role == "admin":
        if st.button("➕ Nuevo sorteo", type="primary"):
            open_form("raffle")
        if is_form_open("raffle"):
            with st.container(border=True):
                st.subheader("Nuevo sorteo")
                values = _raffle_form("form_raffle_create")
                if values is not None:
                    close_form("raffle")
                    run_action(
                        lambda: raffles.create_raffle(store, values, created_by=user.id),
                        "Sorteo creado",
                    )
                if st.button("Cancelar", key="cancel_raffle_create"):
                    close_form("raffle")
                    st.rerun()

    col1, col2, col3 = st.columns([3, 1, 1])
    query = col1.text_input("Buscar", placeholder="Título del sorteo", key="raffles_q")
    status = col2.selectbox(
        "Estado", _with_all(RAFFLE_STATUSES), format_func=_label(RAFFLE_STATUS_LABELS), key="raffles_status"
    )
    category = col3.selectbox(
        "Categoría", _with_all(PRIZE_CATEGORIES), format_func=_label(CATEGORY_LABELS), key="raffles_category"
    )

    rows = domain.filter_raffles(data["raffles"], query, status, category)
    st.caption(f"{len(rows)} de {data['count']} sorteos")
    if not rows:
        render_empty_state("🎟️", "No hay sorteos", "Crea tu primer sorteo para comenzar.")
        return
    _, total_pages = domain.paginate(rows, 1, PAGE_SIZE)
    page = render_pagination("raffles_page", total_pages)
    page_rows, _ = domain.paginate(rows, page, PAGE_SIZE)
    for raffle in page_rows:
        _render_raffle_row(user, raffle)


CALENDAR_MARKERS = {"start": "🚀", "end": "🏁", "draw": "🎯"}
CALENDAR_EVENTS_PER_DAY = 3


def _render_calendar_event(event: dict) -> None:
    markers = "".join(CALENDAR_MARKERS[m] for m in event["markers"])
    icon = STATUS_ICONS.get(event.get("status") or "", "")
    st.caption(f"{markers} {icon} {event.get('title') or '-'}")


def render_calendar_page(user: CurrentUser) -> None:
    st.title("📅 Calendario de sorteos")
    store = ui_store()
    today = datetime.now(timezone.utc).date()
    year, month = get_calendar_month() or (today.year, today.month)

    nav = st.columns([1, 1, 1, 3])
    if nav[0].button("←", key="calendar_prev", help="Mes anterior"):
        set_calendar_month(domain.shift_month(year, month, -1))
        st.rerun()
    if nav[1].button("Hoy", key="calendar_today"):
        set_calendar_month(None)
        st.rerun()
    if nav[2].button("→", key="calendar_next", help="Mes siguiente"):
        set_calendar_month(domain.shift_month(year, month, 1))
        st.rerun()

    col1, col2, col3 = st.columns([2, 2, 2])
    category = col1.selectbox(
        "Categoría",
        _with_all(PRIZE_CATEGORIES),
        format_func=_label(CATEGORY_LABELS),
        key="calendar_category",
    )
    status = col2.selectbox(
        "Estado",
        _with_all(RAFFLE_STATUSES),
        format_func=_label(RAFFLE_STATUS_LABELS),
        key="calendar_status",
    )
    view = col3.radio("Vista", ["Mes", "Lista"], horizontal=True, key="calendar_view")

    data = load_or_fail(
        lambda: raffles.load_raffle_calendar(store, year, month, category=category, status=status, today=today),
        retry_key="retry_calendar",
    )
    nav[3].markdown(f"### {data['label']}")
    render_metric_row([(RAFFLE_STATUS_LABELS[s], data["status_counts"][s]) for s in RAFFLE_STATUSES])
    st.caption(f"{len(data['raffles'])} sorteos en {data['label']} · 🚀 Inicio · 🏁 Fin · 🎯 Sorteo")

    if view == "Lista":
        if not data["raffles"]:
            render_empty_state("📅", "No hay sorteos en este mes", "Los sorteos programados aparecerán aquí.")
            return
        for raffle in data["raffles"]:
            with st.container(border=True):
                col1, col2 = st.columns([4, 1])
                col1.markdown(f"**{raffle['title']}**")
                col1.caption(
                    f"🚀 {format_datetime(raffle.get('start_date'))} · "
                    f"🏁 {format_datetime(raffle.get('end_date'))} · "
                    f"🎯 {format_datetime(raffle.get('draw_date'))}"
                )
                with col2:
                    _badge(raffle.get("status"), RAFFLE_STATUS_LABELS)
        return

    header = st.columns(7)
    for col, weekday in zip(header, domain.CALENDAR_WEEKDAYS):
        col.markdown(f"**{weekday}**")
    for week in data["weeks"]:
        cols = st.columns(7)
        for col, cell in zip(cols, week):
            with col, st.container(border=True):
                if not cell["in_month"]:
                    st.caption(str(cell["day"]))
                    continue
                label = f"**:blue[{cell['day']}]**" if cell["date"] == data["today"] else f"**{cell['day']}**"
                st.markdown(label)
                for event in cell["events"][:CALENDAR_EVENTS_PER_DAY]:
                    _render_calendar_event(event)
                hidden = len(cell["events"]) - CALENDAR_EVENTS_PER_DAY
                if hidden > 0:
                    st.caption(f"+{hidden} más")


# =============================================================================
# Live events
# =============================================================================


def _live_event_form(key: str, raffle_options: list[dict], event: dict | None = None) -> dict | None:
    event = event or {}
    start = domain.parse_timestamp(event.get("start_at")) or datetime.now(timezone.utc)
    countdown = domain.parse_timestamp(event.get("countdown_start_at"))
    raffle_ids = [""] + [r["id"] for r in raffle_options]
    titles = {r["id"]: r["title"] for r in raffle_options}
    with st.form(key):
        title = st.text_input("Título *", value=event.get("title") or "")
        description = st.text_area("Descripción", value=event.get("description") or "")
        col1, col2 = st.columns(2)
        start_day = col1.date_input("Fecha de inicio *", value=start.date())
        start_time = col2.time_input("Hora de inicio *", value=start.time().replace(tzinfo=None))
        use_countdown = st.checkbox("Cuenta regresiva personalizada", value=countdown is not None)
        col3, col4 = st.columns(2)
        countdown_day = col3.date_input("Inicio de cuenta regresiva", value=(countdown or start).date())
        countdown_time = col4.time_input(
            "Hora de cuenta regresiva", value=(countdown or start).time().replace(tzinfo=None)
        )
        stream_url = st.text_input("URL de transmisión", value=event.get("stream_url") or "")
        raffle_id = st.selectbox(
            "Sorteo vinculado",
            raffle_ids,
            index=raffle_ids.index(event.get("raffle_id")) if event.get("raffle_id") in raffle_ids else 0,
            format_func=lambda value: titles.get(value, "Ninguno"),
        )
        is_visible = st.checkbox("Visible", value=event.get("is_visible", True))
        submitted = st.form_submit_button("Guardar", type="primary")
    if not submitted:
        return None
    return {
        "title": title,
        "description": description,
        "start_at": _as_datetime(start_day, start_time),
        "countdown_start_at": _as_datetime(countdown_day, countdown_time) if use_countdown else None,
        "stream_url": stream_url,
        "raffle_id": raffle_id,
        "is_visible": is_visible,
    }


def render_live_events_page(user: CurrentUser) -> None:
    st.title("📺 Eventos en vivo")
    render_flash()
    store = ui_store()
    consume_create_flag("live_event")

    data = load_or_fail(lambda: live_events.load_live_events_page(store), retry_key="retry_live_events")

    if st.button("➕ Nuevo evento", type="primary"):
        open_form("live_event")
    if is_form_open("live_event"):
        with st.container(border=True):
            st.subheader("Nuevo evento")
            values = _live_event_form("form_live_event_create", data["available_raffles"])
            if values is not None:
                close_form("live_event")
                run_action(lambda: live_events.create_live_event(store, values), "Evento creado")

    col1, col2 = st.columns([3, 1])
    query = col1.text_input("Buscar", placeholder="Título del evento", key="events_q")
    status = col2.selectbox(
        "Estado",
        _with_all(LIVE_EVENT_STATUSES),
        format_func=_label(LIVE_EVENT_STATUS_LABELS),
        key="events_status",
    )
    rows = domain.filter_live_events(data["events"], query, status)
    st.caption(f"{len(rows)} de {data['count']} eventos")
    if not rows:
        render_empty_state("📺", "No hay eventos", "Programa una transmisión en vivo.")
        return

    for event in rows:
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 2, 2])
            with col1:
                alert = " 📣" if event.get("show_as_alert") else ""
                st.markdown(f"**{event['title']}**{alert}")
                raffle = event.get("raffle") or {}
                st.caption(f"{format_datetime(event.get('start_at'))} · {raffle.get('title') or 'Sin sorteo'}")
            with col2:
                _badge(event.get("status"), LIVE_EVENT_STATUS_LABELS)
                st.caption("👁️ Visible" if event.get("is_visible") else "🙈 Oculto")
            with col3:
                new_status = st.selectbox(
                    "Estado",
                    LIVE_EVENT_STATUSES,
                    index=None,
                    placeholder="Cambiar estado",
                    key=f"event_status_{event['id']}",
                    format_func=LIVE_EVENT_STATUS_LABELS.get,
                    label_visibility="collapsed",
                )
                if new_status and new_status != event.get("status"):
                    run_action(
                        lambda: live_events.change_live_event_status(store, event["id"], new_status),
                        "Estado actualizado",
                    )
            b1, b2, b3, b4 = st.columns(4)
            if b1.button("✏️ Editar", key=f"edit_event_{event['id']}", use_container_width=True):
                open_form(f"event_edit_{event['id']}")
            if b2.button(
                "Ocultar" if event.get("is_visible") else "Mostrar",
                key=f"vis_event_{event['id']}",
                use_container_width=True,
            ):
                run_action(lambda: live_events.toggle_visibility(store, event), "Visibilidad actualizada")
            if b3.button(
                "Quitar alerta" if event.get("show_as_alert") else "Activar alerta",
                key=f"alert_event_{event['id']}",
                use_container_width=True,
            ):
                run_action(lambda: live_events.toggle_alert(store, event), "Alerta actualizada")
            if b4.button("🗑️ Eliminar", key=f"del_event_{event['id']}", use_container_width=True):
                run_action(lambda: live_events.delete_live_event(store, event["id"]), "Evento eliminado")

            form_name = f"event_edit_{event['id']}"
            if is_form_open(form_name):
                values = _live_event_form(f"form_{form_name}", data["available_raffles"], event)
                if values is not None:
                    close_form(form_name)
                    run_action(
                        lambda: live_events.update_live_event(store, event["id"], values),
                        "Evento actualizado",
                    )


# =============================================================================
# Payments
# =============================================================================


def _payment_method_form(key: str, method: dict | None = None) -> dict | None:
    defaults = domain.method_form_defaults(method)
    with st.form(key):
        name = st.text_input("Nombre *", value=defaults["name"])
        method_type = st.selectbox(
            "Tipo",
            PAYMENT_METHOD_TYPES,
            index=PAYMENT_METHOD_TYPES.index(defaults["type"]),
            format_func=PAYMENT_METHOD_TYPE_LABELS.get,
        )
        description = st.text_input("Descripción", value=defaults["description"])
        col1, col2, col3 = st.columns(3)
        icon = col1.text_input("Ícono", value=defaults["icon"])
        currency = col2.text_input("Moneda", value=defaults["currency"])
        amount = col3.text_input("Monto fijo", value=defaults["amount"])
        scopes = st.multiselect(
            "Disponible para",
            PAYMENT_SCOPES,
            default=defaults["scopes"],
            format_func={"raffles": "Sorteos", "plans": "Planes"}.get,
        )
        instructions = st.text_area("Instrucciones", value=defaults["instructions"])
        is_active = st.checkbox("Activo", value=defaults["is_active"])

        st.markdown("**Configuración según el tipo**")
        card = defaults["stripe_card"]
        sub = defaults["stripe_subscription"]
        manual = defaults["manual"]
        qr = defaults["qr"]
        with st.expander("Tarjeta (Stripe)"):
            card = {
                "successPath": st.text_input("Ruta de éxito", value=card["successPath"]),
                "cancelPath": st.text_input("Ruta de cancelación", value=card["cancelPath"]),
            }
        with st.expander("Suscripción (Stripe)"):
            sub = {
                "checkoutUrl": st.text_input("URL de checkout", value=sub["checkoutUrl"]),
                "description": st.text_input("Descripción de la suscripción", value=sub["description"]),
            }
        prefix = defaults["id"] or "new"
        with st.expander("Transferencia bancaria"):
            manual = {
                field: st.text_input(field, value=value, key=f"manual_{field}_{prefix}")
                for field, value in manual.items()
            }
        with st.expander("Pago con QR"):
            qr = {
                field: st.text_input(field, value=value, key=f"qr_{field}_{prefix}")
                for field, value in qr.items()
            }
        submitted = st.form_submit_button("Guardar", type="primary")
    if not submitted:
        return None
    return {
        "id": defaults["id"],
        "name": name,
        "type": method_type,
        "description": description,
        "icon": icon,
        "is_active": is_active,
        "instructions": instructions,
        "scopes": scopes,
        "currency": currency,
        "amount": amount,
        "stripe_card": card,
        "stripe_subscription": sub,
        "manual": manual,
        "qr": qr,
    }


def render_payment_methods_page(user: CurrentUser) -> None:
    st.title("🏦 Métodos de pago")
    render_flash()
    store = ui_store()
    consume_create_flag("payment_method")

    methods = load_or_fail(lambda: payments.load_payment_methods(store), retry_key="retry_methods")

    if st.button("➕ Nuevo método", type="primary"):
        open_form("payment_method")
    if is_form_open("payment_method"):
        with st.container(border=True):
            values = _payment_method_form("form_method_create")
            if values is not None:
                close_form("payment_method")
                run_action(lambda: payments.save_payment_method(store, values, "create"), "Método creado")

    if not methods:
        render_empty_state("🏦", "No hay métodos de pago", "Agrega un método para recibir pagos.")
        return
    for method in methods:
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 2, 2])
            with col1:
                st.markdown(f"**{method.get('icon') or '💳'} {method['name']}**")
                st.caption(
                    f"{PAYMENT_METHOD_TYPE_LABELS.get(method.get('type'), method.get('type'))} · "
                    f"{', '.join(domain.method_scopes(method))}"
                )
            with col2:
                st.caption("🟢 Activo" if method.get("is_active") else "⚪ Inactivo")
            with col3:
                if st.button(
                    "Desactivar" if method.get("is_active") else "Activar",
                    key=f"toggle_method_{method['id']}",
                    use_container_width=True,
                ):
                    run_action(lambda: payments.toggle_payment_method(store, method), "Método actualizado")
            b1, b2 = st.columns(2)
            if b1.button("✏️ Editar", key=f"edit_method_{method['id']}", use_container_width=True):
                open_form(f"method_edit_{method['id']}")
            if b2.button("🗑️ Eliminar", key=f"del_method_{method['id']}", use_container_width=True):
                run_action(lambda: payments.delete_payment_method(store, method["id"]), "Método eliminado")
            form_name = f"method_edit_{method['id']}"
            if is_form_open(form_name):
                values = _payment_method_form(f"form_{form_name}", method)
                if values is not None:
                    close_form(form_name)
                    run_action(lambda: payments.save_payment_method(store, values, "edit"), "Método actualizado")


def _render_review_controls(user: CurrentUser, tx: dict) -> None:
    store = ui_store()
    method_type = (tx.get("payment_method") or {}).get("type")
    if tx.get("status") != "pending" or method_type not in ("manual_transfer", "qr_code"):
        return
    comment = st.text_input("Comentario", key=f"comment_{tx['id']}")
    reason = st.text_input("Motivo de rechazo", key=f"reason_{tx['id']}")
    b1, b2 = st.columns(2)
    if b1.button("✅ Aprobar", key=f"approve_{tx['id']}", type="primary", use_container_width=True):
        run_action(
            lambda: payments.approve_manual_payment(store, tx["id"], reviewer_id=user.id, admin_comment=comment),
            "Pago aprobado",
        )
    if b2.button("❌ Rechazar", key=f"reject_{tx['id']}", use_container_width=True):
        run_action(
            lambda: payments.reject_manual_payment(
                store, tx["id"], reviewer_id=user.id, rejection_reason=reason, admin_comment=comment
            ),
            "Pago rechazado",
        )


def render_transactions_page(user: CurrentUser) -> None:
    st.title("💳 Transacciones")
    render_flash()
    store = ui_store()

    rows = load_or_fail(lambda: payments.load_transactions(store), retry_key="retry_transactions")
    stats = domain.transaction_stats(rows)
    render_metric_row(
        [
            ("Total", stats["total"]),
            ("Pendientes", stats["pending"]),
            ("Aprobadas", stats["approved"] + stats["completed"]),
            ("Rechazadas", stats["rejected"]),
            ("Ingresos", domain.format_price(stats["total_revenue"])),
        ]
    )

    col1, col2, col3 = st.columns([3, 1, 1])
    search = col1.text_input("Buscar", placeholder="Nombre, email, referencia o ID", key="tx_q")
    status = col2.selectbox(
        "Estado", _with_all(TRANSACTION_STATUSES), format_func=_label(TRANSACTION_STATUS_LABELS), key="tx_status"
    )
    method_type = col3.selectbox(
        "Método",
        _with_all(PAYMENT_METHOD_TYPES),
        format_func=_label(PAYMENT_METHOD_TYPE_LABELS),
        key="tx_method",
    )
    filtered = domain.filter_transactions(rows, status, method_type, search)
    if not filtered:
        render_empty_state("💳", "No hay transacciones", "Ajusta los filtros de búsqueda.")
        return
    _, total_pages = domain.paginate(filtered, 1, PAGE_SIZE)
    page = render_pagination("tx_page", total_pages)
    page_rows, _ = domain.paginate(filtered, page, PAGE_SIZE)

    for tx in page_rows:
        profile = tx.get("profile") or {}
        method = tx.get("payment_method") or {}
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 2, 2])
            with col1:
                st.markdown(f"**{profile.get('full_name') or 'Usuario'}** · {profile.get('email') or '-'}")
                concept = (tx.get("raffle") or {}).get("title") or (
                    ((tx.get("subscription") or {}).get("plan") or {}).get("name")
                )
                st.caption(f"{method.get('name') or '-'} · {concept or tx.get('transaction_type')}")
                if tx.get("receipt_url"):
                    st.markdown(f"[Ver comprobante]({tx['receipt_url']})")
            with col2:
                st.markdown(f"**{domain.format_price(tx.get('amount'), tx.get('currency'))}**")
                st.caption(format_datetime(tx.get("created_at")))
            with col3:
                _badge(tx.get("status"), TRANSACTION_STATUS_LABELS)
            if tx.get("rejection_reason"):
                st.caption(f"Motivo: {tx['rejection_reason']}")
            if tx.get("reviewed_by"):
                history = payments.transaction_review_history(store, tx["id"])
                reviewer = history["reviewer"] or {}
                st.caption(
                    f"Revisado por {reviewer.get('full_name') or history['reviewed_by']} "
                    f"el {format_datetime(history['reviewed_at'])}"
                )
            _render_review_controls(user, tx)


# =============================================================================
# Plans
# =============================================================================


def _plan_form(key: str, plan: dict | None = None) -> dict | None:
    plan = plan or {}
    with st.form(key):
        name = st.text_input("Nombre *", value=plan.get("name") or "")
        description = st.text_area("Descripción", value=plan.get("description") or "")
        col1, col2, col3 = st.columns(3)
        price = col1.text_input("Precio *", value=str(plan.get("price") or ""))
        currency = col2.text_input("Moneda", value=plan.get("currency") or settings.default_currency)
        interval = col3.selectbox(
            "Intervalo",
            PLAN_INTERVALS,
            index=PLAN_INTERVALS.index(plan.get("interval") or "month"),
            format_func=INTERVAL_LABELS.get,
        )
        benefits = st.text_area("Beneficios (uno por línea)", value=domain.benefits_text(plan.get("benefits")))
        max_raffles = st.text_input(
            "Máximo de sorteos simultáneos",
            value="" if plan.get("max_concurrent_raffles") is None else str(plan["max_concurrent_raffles"]),
        )
        show_limit = st.checkbox("Mostrar límite de sorteos", value=plan.get("show_raffles_limit", True))
        limit_message = st.text_input("Mensaje del límite", value=plan.get("raffles_limit_message") or "")
        is_active = st.checkbox("Activo", value=plan.get("is_active", True))
        submitted = st.form_submit_button("Guardar", type="primary")
    if not submitted:
        return None
    return {
        "name": name,
        "description": description,
        "price": price,
        "currency": currency,
        "interval": interval,
        "benefits": benefits,
        "max_concurrent_raffles": max_raffles,
        "show_raffles_limit": show_limit,
        "raffles_limit_message": limit_message,
        "is_active": is_active,
    }


def render_plans_page(user: CurrentUser) -> None:
    st.title("⭐ Planes")
    render_flash()
    store = ui_store()
    consume_create_flag("plan")

    rows = load_or_fail(lambda: plans.load_plans(store), retry_key="retry_plans")

    if st.button("➕ Nuevo plan", type="primary"):
        open_form("plan")
    if is_form_open("plan"):
        with st.container(border=True):
            values = _plan_form("form_plan_create")
            if values is not None:
                close_form("plan")
                run_action(lambda: plans.save_plan(store, values), "Plan creado")

    col1, col2, col3 = st.columns([3, 1, 1])
    query = col1.text_input("Buscar", placeholder="Nombre del plan", key="plans_q")
    interval = col2.selectbox(
        "Intervalo", _with_all(PLAN_INTERVALS), format_func=_label(INTERVAL_LABELS), key="plans_interval"
    )
    status = col3.selectbox(
        "Estado",
        [domain.ALL, "active", "inactive"],
        format_func=_label({"active": "Activos", "inactive": "Inactivos"}),
        key="plans_status",
    )
    filtered = domain.filter_plans(rows, query, interval, status)
    if not filtered:
        render_empty_state("⭐", "No hay planes", "Crea un plan de suscripción.")
        return

    for plan in filtered:
        with st.container(border=True):
            col1, col2 = st.columns([4, 2])
            with col1:
                featured = " ⭐" if plan.get("is_featured") else ""
                st.markdown(f"**{plan['name']}**{featured}")
                st.caption(
                    f"{domain.format_price(plan.get('price'), plan.get('currency'))} / "
                    f"{INTERVAL_LABELS.get(plan.get('interval'), plan.get('interval'))}"
                )
                for benefit in plan.get("benefits") or []:
                    st.markdown(f"- {benefit}")
            with col2:
                st.caption("🟢 Activo" if plan.get("is_active") else "⚪ Inactivo")
            b1, b2, b3, b4, b5 = st.columns(5)
            if b1.button("✏️ Editar", key=f"edit_plan_{plan['id']}", use_container_width=True):
                open_form(f"plan_edit_{plan['id']}")
            if b2.button(
                "Desactivar" if plan.get("is_active") else "Activar",
                key=f"active_plan_{plan['id']}",
                use_container_width=True,
            ):
                run_action(lambda: plans.toggle_plan_active(store, plan), "Plan actualizado")
            if b3.button(
                "Quitar destacado" if plan.get("is_featured") else "Destacar",
                key=f"featured_plan_{plan['id']}",
                use_container_width=True,
            ):
                run_action(lambda: plans.toggle_plan_featured(store, plan), "Plan actualizado")
            if b4.button("📄 Duplicar", key=f"dup_plan_{plan['id']}", use_container_width=True):
                run_action(lambda: plans.duplicate_plan(store, plan), "Plan duplicado")
            if b5.button("🗑️ Eliminar", key=f"del_plan_{plan['id']}", use_container_width=True):
                run_action(lambda: plans.delete_plan(store, plan["id"]), "Plan eliminado")
            form_name = f"plan_edit_{plan['id']}"
            if is_form_open(form_name):
                values = _plan_form(f"form_{form_name}", plan)
                if values is not None:
                    close_form(form_name)
                    run_action(lambda: plans.save_plan(store, values, plan["id"]), "Plan actualizado")


# =============================================================================
# Users, winners and reports
# =============================================================================


def render_users_page(user: CurrentUser) -> None:
    st.title("👥 Usuarios")
    render_flash()
    store = ui_store()

    data = load_or_fail(lambda: users.load_users_page(store), retry_key="retry_users")
    summary = data["summary"]
    render_metric_row(
        [
            ("Total", summary["total"]),
            ("Administradores", summary["admins"]),
            ("Staff", summary["staff"]),
            ("Participantes", summary["participants"]),
        ]
    )

    col1, col2 = st.columns([3, 1])
    search = col1.text_input("Buscar", placeholder="Nombre, email o cédula", key="users_q")
    role = col2.selectbox("Rol", _with_all(USER_ROLES), format_func=_label(ROLE_LABELS), key="users_role")
    filtered = domain.filter_users(data["profiles"], search, role)

    st.download_button(
        "⬇️ Exportar CSV",
        data=users.users_csv(filtered),
        file_name=users.users_csv_filename(),
        mime="text/csv",
        disabled=not filtered,
    )
    if not filtered:
        render_empty_state("👥", "No se encontraron usuarios", "Ajusta la búsqueda o el filtro de rol.")
        return
    _, total_pages = domain.paginate(filtered, 1, users.USERS_PER_PAGE)
    page = render_pagination("users_page", total_pages)
    page_rows, _ = domain.paginate(filtered, page, users.USERS_PER_PAGE)

    for profile in page_rows:
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 2, 2])
            with col1:
                st.markdown(f"**{profile.get('full_name') or 'Sin nombre'}**")
                st.caption(f"{profile.get('email') or '-'} · {profile.get('id_number') or '-'}")
            with col2:
                st.caption(users.format_role(profile.get("role")))
            with col3:
                new_role = st.selectbox(
                    "Rol",
                    USER_ROLES,
                    index=None,
                    placeholder="Cambiar rol",
                    key=f"role_{profile['id']}",
                    format_func=ROLE_LABELS.get,
                    label_visibility="collapsed",
                )
                if new_role and new_role != profile.get("role"):
                    run_action(lambda: users.change_user_role(store, profile["id"], new_role), "Rol actualizado")
            if profile["id"] != user.id and st.button("🗑️ Eliminar", key=f"del_user_{profile['id']}"):
                run_action(lambda: users.delete_user(store, profile["id"]), "Usuario eliminado")


def render_winners_page(user: CurrentUser) -> None:
    st.title("🏆 Ganadores")
    render_flash()
    store = ui_store()

    rows = load_or_fail(lambda: winners.load_winners(store), retry_key="retry_winners")
    stats = winners.winner_stats(rows)
    render_metric_row(
        [
            ("Total", stats["total"]),
            ("Pendientes", stats["pending"]),
            ("Contactados", stats["contacted"]),
            ("Entregados", stats["delivered"]),
            ("Testimonios", stats["with_testimonials"]),
        ]
    )

    col1, col2 = st.columns([3, 1])
    search = col1.text_input("Buscar", placeholder="Ganador o sorteo", key="winners_q")
    status = col2.selectbox(
        "Estado", _with_all(WINNER_STATUSES), format_func=_label(WINNER_STATUS_LABELS), key="winners_status"
    )
    filtered = winners.filter_winners(rows, search, status)
    if not filtered:
        render_empty_state("🏆", "No hay ganadores", "Los ganadores aparecen después de cada sorteo.")
        return

    for winner in filtered:
        profile = winner["profile"]
        with st.container(border=True):
            col1, col2 = st.columns([4, 2])
            with col1:
                st.markdown(f"**#{winner.get('prize_position')} {profile.get('full_name')}** · {winner['raffle']['title']}")
                st.caption(
                    f"{profile.get('email') or '-'} · {profile.get('phone_number') or '-'} · "
                    f"Intentos de contacto: {winner.get('contact_attempts') or 0}"
                )
                if winner.get("notes"):
                    st.caption(f"Notas: {winner['notes']}")
            with col2:
                _badge(winner.get("status"), WINNER_STATUS_LABELS)
            with st.expander("Gestionar"):
                notes = st.text_area("Notas", value=winner.get("notes") or "", key=f"notes_{winner['id']}")
                photo_url = st.text_input(
                    "Foto de entrega (URL)",
                    value=winner.get("delivery_photo_url") or "",
                    key=f"photo_{winner['id']}",
                )
                testimonial = st.text_area(
                    "Testimonio", value=winner.get("testimonial") or "", key=f"testimonial_{winner['id']}"
                )
                b1, b2, b3 = st.columns(3)
                if b1.button("📞 Contactado", key=f"contacted_{winner['id']}", use_container_width=True):
                    run_action(lambda: winners.mark_contacted(store, winner, notes), "Ganador contactado")
                if b2.button("🎁 Entregado", key=f"delivered_{winner['id']}", use_container_width=True):
                    run_action(
                        lambda: winners.mark_delivered(store, winner, photo_url, notes),
                        "Premio marcado como entregado",
                    )
                if b3.button("💬 Guardar testimonio", key=f"save_testimonial_{winner['id']}", use_container_width=True):
                    run_action(lambda: winners.save_testimonial(store, winner, testimonial), "Testimonio guardado")


def render_reports_page(user: CurrentUser) -> None:
    st.title("📊 Reportes")
    store = ui_store()
    data = load_or_fail(lambda: reports.load_reports(store), retry_key="retry_reports")
    summary = data["summary"]
    render_metric_row(
        [
            ("Sorteos", summary["raffles"]),
            ("Participaciones", summary["entries"]),
            ("Ganadores", summary["winners"]),
            ("Suscripciones activas", summary["active_subscriptions"]),
        ]
    )

    st.subheader("Participaciones por mes")
    st.bar_chart(
        {row["label"]: row["total_entries"] for row in data["monthly_entries"]},
    )

    st.subheader("Sorteos con más participaciones")
    if not data["top_raffles"]:
        render_empty_state("📊", "Sin datos", "Aún no hay participaciones registradas.")
        return
    st.dataframe(
        [
            {"Sorteo": row["title"], "Participaciones": row["total_entries"], "Ganadores": row["total_winners"]}
            for row in data["top_raffles"]
        ],
        hide_index=True,
        use_container_width=True,
    )


# =============================================================================
# Participant
# =============================================================================


def render_dashboard_page(user: CurrentUser) -> None:
    store = ui_store()
    data = load_or_fail(lambda: dashboard.load_dashboard(store, user.id), retry_key="retry_dashboard")
    render_alert_bar(data["alert_event"])
    st.title(f"👋 Hola, {user.full_name or 'participante'}")

    st.subheader("Mi suscripción")
    if data["active_subscriptions"]:
        for subscription in data["active_subscriptions"]:
            plan = subscription.get("plan") or {}
            st.success(
                f"⭐ {plan.get('name') or 'Plan'} · vence {format_datetime(subscription.get('current_period_end'))}"
            )
    else:
        st.info("No tienes una suscripción activa.")

    st.subheader("Sorteos activos")
    if not data["active_raffles"]:
        render_empty_state("🎟️", "No hay sorteos activos", "Vuelve pronto para nuevos sorteos.")
    cols = st.columns(3)
    for index, raffle in enumerate(data["active_raffles"]):
        with cols[index % 3], st.container(border=True):
            st.markdown(f"**{raffle['title']}**")
            st.caption(f"Sorteo: {format_datetime(raffle.get('draw_date'))}")
            if raffle.get("prize_description"):
                st.write(raffle["prize_description"])

    st.subheader("Mis boletos recientes")
    if not data["my_entries"]:
        render_empty_state("🎫", "Aún no tienes boletos", "Participa en un sorteo activo.")
    for entry in data["my_entries"]:
        raffle = entry.get("raffle") or {}
        trophy = " 🏆" if entry.get("is_winner") else ""
        st.markdown(f"- `{entry['ticket_number']}` · {raffle.get('title') or '-'}{trophy}")

    st.subheader("Ganadores recientes")
    for winner in data["recent_winners"]:
        st.markdown(f"- 🏆 {(winner.get('raffle') or {}).get('title') or '-'}")


def render_tickets_page(user: CurrentUser) -> None:
    st.title("🎫 Mis boletos")
    store = ui_store()
    entries = load_or_fail(lambda: dashboard.load_my_tickets(store, user.id), retry_key="retry_tickets")
    stats = dashboard.ticket_stats(entries)
    render_metric_row(
        [
            ("Total", stats["total"]),
            ("Activos", stats["active"]),
            ("Finalizados", stats["completed"]),
            ("Ganadores", stats["winners"]),
        ]
    )

    col1, col2, col3 = st.columns([3, 1, 1])
    search = col1.text_input("Buscar", placeholder="Número de boleto o sorteo", key="tickets_q")
    status = col2.selectbox(
        "Estado",
        [domain.ALL, "active", "completed", "winner"],
        format_func=_label({"active": "Activos", "completed": "Finalizados", "winner": "Ganadores"}),
        key="tickets_status",
    )
    sort = col3.selectbox(
        "Ordenar",
        dashboard.TICKET_SORTS,
        format_func={"recent": "Más recientes", "oldest": "Más antiguos", "draw_date": "Fecha del sorteo"}.get,
        key="tickets_sort",
    )
    filtered = dashboard.filter_my_tickets(entries, search, status, sort)
    if not filtered:
        render_empty_state("🎫", "No se encontraron boletos", "Ajusta la búsqueda o los filtros.")
        return
    for entry in filtered:
        raffle = entry["raffle"]
        with st.container(border=True):
            col1, col2 = st.columns([4, 2])
            with col1:
                trophy = " 🏆" if entry.get("is_winner") else ""
                st.markdown(f"**Boleto `{entry['ticket_number']}`**{trophy}")
                st.caption(f"{raffle.get('title')} · Sorteo: {format_datetime(raffle.get('draw_date'))}")
            with col2:
                _badge(raffle.get("status"), RAFFLE_STATUS_LABELS)


def render_notifications_page(user: CurrentUser) -> None:
    store = ui_store()
    data = load_or_fail(lambda: notifications.load_notifications(store, user.id), retry_key="retry_notifications")
    unread = data["unread_count"]
    st.title(f"🔔 Notificaciones ({unread})" if unread else "🔔 Notificaciones")

    if unread and st.button("✓ Marcar todas como leídas", key="notifications_read_all"):
        run_action(
            lambda: notifications.mark_all_notifications_read(store, user.id),
            "Notificaciones marcadas como leídas",
        )

    if not data["notifications"]:
        render_empty_state("🔔", "No tienes notificaciones")
        return
    for notification in data["notifications"]:
        with st.container(border=True):
            col1, col2 = st.columns([5, 2])
            with col1:
                icon = NOTIFICATION_ICONS.get(notification.get("type") or "", NOTIFICATION_ICONS["info"])
                dot = "" if notification.get("read") else " 🔵"
                st.markdown(f"**{icon} {notification.get('title') or '-'}**{dot}")
                st.write(notification.get("message") or "")
                st.caption(format_datetime(notification.get("created_at")))
            with col2:
                if notification.get("action_url"):
                    st.link_button("Ver", notification["action_url"])
                if not notification.get("read") and st.button("Marcar como leída", key=f"read_{notification['id']}"):
                    run_action(
                        lambda n=notification: notifications.mark_notification_read(store, user.id, n["id"]),
                        "Notificación marcada como leída",
                    )
                if st.button("Eliminar", key=f"delete_notification_{notification['id']}"):
                    run_action(
                        lambda n=notification: notifications.delete_notification(store, user.id, n["id"]),
                        "Notificación eliminada",
                    )


def render_help_page(user: CurrentUser | None) -> None:
    st.title("❓ Centro de ayuda")
    query = st.text_input("Buscar en preguntas frecuentes", key="faq_q")
    render_faq_accordion(search_faqs(query) if query else list(FAQS))

    st.subheader("Canales de soporte")
    cols = st.columns(len(SUPPORT_CHANNELS))
    for col, channel in zip(cols, SUPPORT_CHANNELS):
        with col, st.container(border=True):
            st.markdown(f"**{channel.icon} {channel.title}**")
            st.caption(channel.description)
            st.link_button(channel.label, channel.href)


PAGE_RENDERERS = {
    "raffles": render_raffles_page,
    "calendar": render_calendar_page,
    "live_events": render_live_events_page,
    "transactions": render_transactions_page,
    "payment_methods": render_payment_methods_page,
    "plans": render_plans_page,
    "users": render_users_page,
    "winners": render_winners_page,
    "reports": render_reports_page,
    "dashboard": render_dashboard_page,
    "tickets": render_tickets_page,
    "notifications": render_notifications_page,
    "help": render_help_page,
}
