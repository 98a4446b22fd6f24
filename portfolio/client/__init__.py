"""
Client side of Portfolio Hub: API client, admin auth state and the import wizard.
"""

from __future__ import annotations

from portfolio.client.auth_context import AuthContext, AuthResult
from portfolio.client.files import LocalFile, validate_files
from portfolio.client.forms import activity_payload, parse_tags, project_payload, save_project, upload_images
from portfolio.client.http import PortfolioClient, PortfolioClientError
from portfolio.client.wizard import ImportWizard, Step, WizardEntry

__all__ = [
    "AuthContext",
    "AuthResult",
    "ImportWizard",
    "LocalFile",
    "PortfolioClient",
    "PortfolioClientError",
    "Step",
    "WizardEntry",
    "activity_payload",
    "parse_tags",
    "project_payload",
    "save_project",
    "upload_images",
    "validate_files",
]
