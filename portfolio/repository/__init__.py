"""
Repository module for data persistence.
"""

from __future__ import annotations

from portfolio.repository.content import ContentRepo
from portfolio.repository.identity import Account, AccountRepo
from portfolio.repository.roles import RoleRepo

__all__ = ["Account", "AccountRepo", "ContentRepo", "RoleRepo"]
