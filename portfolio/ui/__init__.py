"""
Streamlit admin console (sign-in, content management, AI import).
"""

from __future__ import annotations
