"""
Session state helpers for the Streamlit UI.
"""

from __future__ import annotations

import uuid

import streamlit as st

CREATE_PARAM = "crear"


def init_session_state() -> None:
    if "_session_id" not in st.session_state:
        st.session_state["_session_id"] = str(uuid.uuid4())
    if "_access_token" not in st.session_state:
        st.session_state["_access_token"] = None
    if "_demo_user_id" not in st.session_state:
        st.session_state["_demo_user_id"] = None
    if "_dismissed_alerts" not in st.session_state:
        st.session_state["_dismissed_alerts"] = set()
    if "_open_forms" not in st.session_state:
        st.session_state["_open_forms"] = set()
    if "_flash" not in st.session_state:
        st.session_state["_flash"] = None


def get_session_id() -> str:
    return st.session_state.get("_session_id", "default")


# Auth


def get_access_token() -> str | None:
    return st.session_state.get("_access_token")


def set_access_token(token: str | None) -> None:
    st.session_state["_access_token"] = token


def get_demo_user_id() -> str | None:
    return st.session_state.get("_demo_user_id")


def set_demo_user_id(user_id: str | None) -> None:
    st.session_state["_demo_user_id"] = user_id


def clear_auth() -> None:
    st.session_state["_access_token"] = None
    st.session_state["_demo_user_id"] = None


# Modal open/close flags


def is_form_open(name: str) -> bool:
    return name in st.session_state.get("_open_forms", set())


def open_form(name: str) -> None:
    forms = st.session_state.get("_open_forms", set())
    forms.add(name)
    st.session_state["_open_forms"] = forms


def close_form(name: str) -> None:
    forms = st.session_state.get("_open_forms", set())
    forms.discard(name)
    st.session_state["_open_forms"] = forms


def consume_create_flag(form_name: str) -> bool:
    """
    Open form_name when the URL carries ``?crear=true``.

    The flag is removed from the URL right away so a refresh does not reopen
    the form.
    """
    if st.query_params.get(CREATE_PARAM) != "true":
        return False
    del st.query_params[CREATE_PARAM]
    open_form(form_name)
    return True


# Alert bar


def is_alert_dismissed(event_id: str) -> bool:
    return event_id in st.session_state.get("_dismissed_alerts", set())


def dismiss_alert(event_id: str) -> None:
    dismissed = st.session_state.get("_dismissed_alerts", set())
    dismissed.add(event_id)
    st.session_state["_dismissed_alerts"] = dismissed


# Raffle calendar month


def get_calendar_month() -> tuple[int, int] | None:
    return st.session_state.get("_calendar_month")


def set_calendar_month(value: tuple[int, int] | None) -> None:
    st.session_state["_calendar_month"] = value


# One-shot messages shown after a mutation and rerun


def flash(message: str, kind: str = "success") -> None:
    st.session_state["_flash"] = (kind, message)


def pop_flash() -> tuple[str, str] | None:
    value = st.session_state.get("_flash")
    st.session_state["_flash"] = None
    return value
