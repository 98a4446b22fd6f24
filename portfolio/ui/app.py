"""
Streamlit admin console.

Run:
  streamlit run portfolio/app.py
"""

from __future__ import annotations

import streamlit as st

from portfolio.ui.pages import render_dashboard, render_sign_in
from portfolio.ui.session import get_auth, get_client, init_session_state


def main() -> None:
    st.set_page_config(page_title="Admin Hub", page_icon="✨", layout="wide")
    init_session_state()

    auth = get_auth()
    if auth.user and auth.is_admin:
        render_dashboard(get_client(), auth)
    else:
        render_sign_in(auth)
