"""
Session state helpers for the Streamlit admin console.
"""

from __future__ import annotations

import streamlit as st

from portfolio.client import AuthContext, ImportWizard, PortfolioClient
from portfolio.config import get_settings


def init_session_state() -> None:
    config = get_settings()
    if "_client" not in st.session_state:
        st.session_state["_client"] = PortfolioClient(config.api_url)
    if "_auth" not in st.session_state:
        auth = AuthContext(st.session_state["_client"])
        auth.initialize()
        st.session_state["_auth"] = auth
    if "_wizards" not in st.session_state:
        st.session_state["_wizards"] = {}


def get_client() -> PortfolioClient:
    return st.session_state["_client"]


def get_auth() -> AuthContext:
    return st.session_state["_auth"]


def get_wizard(default_is_work: bool) -> ImportWizard:
    """One wizard per target section, so Work and Foundations imports don't mix."""
    wizards = st.session_state["_wizards"]
    key = "work" if default_is_work else "foundations"
    if key not in wizards:
        config = get_settings()
        wizards[key] = ImportWizard(
            get_client(),
            default_is_work=default_is_work,
            bucket=config.storage_bucket,
            max_file_bytes=config.max_upload_bytes,
            close_delay=config.import_close_delay_seconds,
        )
    return wizards[key]


def sign_out() -> None:
    get_auth().sign_out()
    for wizard in st.session_state.get("_wizards", {}).values():
        wizard.reset()
