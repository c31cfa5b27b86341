"""
Reusable UI components (badges, skeletons, empty states, alert bar, error panels).
"""

from __future__ import annotations

import html
import logging
from collections.abc import Callable
from typing import Any

import streamlit as st

from sorteos.config import STATUS_ICONS
from sorteos.domain import alert_phase, countdown_progress, parse_timestamp
from sorteos.exceptions import SorteosError
from sorteos.help import FaqItem
from sorteos.ui.session import dismiss_alert, flash, is_alert_dismissed, pop_flash

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "draft": "gray",
    "active": "green",
    "closed": "orange",
    "drawn": "purple",
    "completed": "blue",
    "scheduled": "blue",
    "live": "red",
    "canceled": "gray",
    "pending": "orange",
    "approved": "green",
    "rejected": "red",
    "processing": "blue",
    "failed": "red",
    "pending_contact": "orange",
    "contacted": "blue",
    "prize_delivered": "green",
}

ALERT_TITLES = {
    "live": "🔴 EN VIVO",
    "upcoming": "⏰ Próximamente",
    "started": "📣 Ya comenzó",
}


def status_badge(status: str | None, labels: dict[str, str]) -> str:
    status = status or ""
    color = STATUS_COLORS.get(status, "gray")
    label = html.escape(labels.get(status, status or "-"))
    icon = STATUS_ICONS.get(status)
    if icon:
        label = f"{icon} {label}"
    return f'<span class="status-badge status-{color}">{label}</span>'


def format_datetime(value: Any) -> str:
    moment = parse_timestamp(value)
    return moment.strftime("%d/%m/%Y %H:%M") if moment else "-"


def render_skeleton_rows(count: int = 5) -> None:
    """Placeholder rows shown while a page loader runs."""
    rows = "".join('<div class="skeleton skeleton-row"></div>' for _ in range(count))
    st.markdown(
        f'<div class="skeleton-card"><div class="skeleton skeleton-title"></div>{rows}</div>',
        unsafe_allow_html=True,
    )


def render_empty_state(icon: str, title: str, description: str = "") -> None:
    st.markdown(
        f'<div class="empty-state"><div class="icon">{icon}</div>'
        f"<h4>{html.escape(title)}</h4><p>{html.escape(description)}</p></div>",
        unsafe_allow_html=True,
    )


def render_error_panel(exc: Exception, *, retry_key: str | None = None) -> None:
    """Blocking error panel; a retry button reruns the page."""
    message = exc.message if isinstance(exc, SorteosError) else "Ocurrió un error inesperado."
    st.error(f"**Error:** {message}")
    if retry_key and st.button("Reintentar", key=retry_key):
        st.rerun()


def render_flash() -> None:
    value = pop_flash()
    if value is None:
        return
    kind, message = value
    if kind == "error":
        st.error(message)
    else:
        st.success(message)


def run_action(action: Callable[[], Any], success: str) -> bool:
    """
    Run a mutation, then rerun the page (re-fetch) with a success message.

    Domain errors are shown inline and logged; the page is not rerun.
    """
    try:
        action()
    except SorteosError as exc:
        exc.log(logging.WARNING)
        st.error(exc.message)
        return False
    flash(success)
    st.rerun()
    return True


def load_or_fail(loader: Callable[[], Any], *, retry_key: str, skeleton_rows: int = 5) -> Any:
    """Run a page loader behind a skeleton; on failure show the error panel and stop the page."""
    placeholder = st.empty()
    with placeholder.container():
        render_skeleton_rows(skeleton_rows)
    try:
        result = loader()
    except SorteosError as exc:
        placeholder.empty()
        render_error_panel(exc, retry_key=retry_key)
        st.stop()
    placeholder.empty()
    return result


def render_pagination(key: str, total_pages: int) -> int:
    """Prev/next controls; returns the 1-based page."""
    page = int(st.session_state.get(key, 1))
    page = max(1, min(page, total_pages))
    nav1, nav2, nav3 = st.columns([1, 2, 1])
    with nav1:
        if st.button("← Anterior", key=f"{key}_prev", disabled=page <= 1, use_container_width=True):
            st.session_state[key] = page - 1
            st.rerun()
    with nav2:
        st.caption(f"Página {page} de {total_pages}")
    with nav3:
        if st.button("Siguiente →", key=f"{key}_next", disabled=page >= total_pages, use_container_width=True):
            st.session_state[key] = page + 1
            st.rerun()
    return page


def render_metric_row(metrics: list[tuple[str, Any]]) -> None:
    cols = st.columns(len(metrics))
    for col, (label, value) in zip(cols, metrics):
        col.metric(label, value)


def render_alert_bar(event: dict | None) -> None:
    """The participant live event alert; each event can be dismissed for the session."""
    if not event or is_alert_dismissed(event["id"]):
        return
    phase = alert_phase(event)
    title = html.escape(event.get("title") or "")
    link = ""
    if event.get("stream_url"):
        link = f' · <a href="{html.escape(event["stream_url"])}" target="_blank">Ver transmisión</a>'
    st.markdown(
        f'<div class="alert-bar alert-{phase}"><strong>{ALERT_TITLES[phase]}</strong> · {title}'
        f" · {format_datetime(event.get('start_at'))}{link}</div>",
        unsafe_allow_html=True,
    )
    col1, col2 = st.columns([5, 1])
    with col1:
        if phase == "upcoming":
            st.progress(countdown_progress(event), text="Cuenta regresiva")
    with col2:
        if st.button("Ocultar", key=f"dismiss_alert_{event['id']}"):
            dismiss_alert(event["id"])
            st.rerun()


def render_faq_accordion(faqs: list[FaqItem]) -> None:
    if not faqs:
        render_empty_state("🔍", "Sin resultados", "No encontramos preguntas que coincidan con tu búsqueda.")
        return
    for faq in faqs:
        with st.expander(faq.question):
            st.write(faq.answer)
