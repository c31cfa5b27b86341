"""
Streamlit UI entrypoint.

Usage:
    streamlit run streamlit_app.py
"""

from __future__ import annotations

import logging

import streamlit as st

from sorteos.config import ROLE_LABELS, settings
from sorteos.exceptions import SorteosError
from sorteos.logging_config import LogContextManager, configure_logging
from sorteos.services import auth
from sorteos.services.auth import CurrentUser
from sorteos.ui.context import current_user, demo_mode, pages_for, ui_store
from sorteos.ui.pages import PAGE_RENDERERS, render_help_page
from sorteos.ui.session import (
    clear_auth,
    get_access_token,
    get_demo_user_id,
    get_session_id,
    init_session_state,
    set_access_token,
    set_demo_user_id,
)
from sorteos.ui.styles import apply_styles

logger = logging.getLogger(__name__)


def _render_demo_picker() -> None:
    profiles = ui_store().select("profiles", order_by="full_name")
    if not profiles:
        st.sidebar.warning("No hay perfiles cargados.")
        return
    ids = [p["id"] for p in profiles]
    names = {p["id"]: f"{p.get('full_name') or p['id']} ({ROLE_LABELS.get(p.get('role'), '-')})" for p in profiles}
    current = get_demo_user_id()
    selected = st.sidebar.selectbox(
        "Ver como",
        ids,
        index=ids.index(current) if current in ids else None,
        placeholder="Selecciona un perfil",
        format_func=names.get,
    )
    if selected != current:
        set_demo_user_id(selected)
        st.rerun()


def _render_sign_in() -> None:
    with st.sidebar.form("sign_in"):
        st.markdown("**Iniciar sesión**")
        email = st.text_input("Correo electrónico")
        password = st.text_input("Contraseña", type="password")
        submitted = st.form_submit_button("Entrar", type="primary", use_container_width=True)
    if not submitted:
        return
    try:
        session = auth.get_auth_client().sign_in_password(email.strip(), password)
    except SorteosError as exc:
        exc.log(logging.WARNING)
        st.sidebar.error(exc.message)
        return
    set_access_token(session.get("access_token"))
    st.rerun()


def _render_session(user: CurrentUser) -> None:
    st.sidebar.markdown(f"**{user.full_name}**")
    st.sidebar.caption(f"{user.email or '-'} · {ROLE_LABELS.get(user.role, user.role)}")
    if demo_mode():
        return
    if st.sidebar.button("Cerrar sesión", use_container_width=True):
        try:
            auth.get_auth_client().sign_out(get_access_token())
        except SorteosError as exc:
            exc.log(logging.WARNING)
        clear_auth()
        st.rerun()


def main() -> None:
    st.set_page_config(
        page_title=settings.site_name,
        page_icon="🎟️",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    configure_logging()
    apply_styles()
    init_session_state()

    st.sidebar.title(f"🎟️ {settings.site_name}")
    if demo_mode():
        st.sidebar.caption("Modo demostración")
        _render_demo_picker()

    user = current_user()
    if user is None:
        if not demo_mode():
            _render_sign_in()
        render_help_page(None)
        return

    _render_session(user)
    pages = pages_for(user)
    labels = dict(pages)
    page = st.sidebar.radio("Navegación", [key for key, _ in pages], format_func=labels.get)
    with LogContextManager(request_id=get_session_id(), user_id=user.id, endpoint=f"ui/{page}"):
        PAGE_RENDERERS[page](user)


if __name__ == "__main__":
    main()
