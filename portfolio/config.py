"""
Portfolio Hub - Configuration Management
========================================
Centralized configuration with environment variable support.

Usage:
    from portfolio.config import settings

    db_path = settings.db_path
    cap = settings.max_featured_projects

Secrets (fallback admin password, access code, API keys) are read from the
environment on access and never stored on the settings object.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _split_emails(raw: str) -> list[str]:
    return [e.strip().lower() for e in raw.split(",") if e.strip()]


@dataclass
class Settings:
    """Application settings with environment variable overrides."""

    # Paths
    db_path: Path = field(default_factory=lambda: Path("data/portfolio.db"))
    storage_path: Path = field(default_factory=lambda: Path("data/storage"))
    public_base_url: str = "http://localhost:8000"

    # Admin identity
    # Order matters: the first entry is the fallback admin for access-code sign-in.
    admin_emails: list[str] = field(default_factory=list)
    fallback_admin_email: str | None = None
    session_ttl_seconds: int = 60 * 60 * 24 * 7

    # Content rules
    max_featured_projects: int = 6
    max_upload_bytes: int = 10 * 1024 * 1024
    storage_bucket: str = "project-files"

    # API Configuration
    anthropic_model: str = "claude-3-5-haiku-20241022"
    max_llm_tokens: int = 4000
    llm_timeout_seconds: int = 60

    # Rate limiting (process-content)
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60
    rate_limit_path: Path = field(default_factory=lambda: Path("data/.rate_limits.db"))

    # AI budget
    ai_budget_path: Path = field(default_factory=lambda: Path("data/.ai_budget.db"))
    ai_daily_budget_usd: float = 5.0

    # Reverse proxy / client IP extraction
    trust_proxy_headers: bool = False
    trusted_proxy_ips: set[str] = field(default_factory=set)

    # CORS configuration
    # Example: CORS_ALLOW_ORIGINS="https://example.com,https://admin.example.com"
    cors_allow_origins: set[str] = field(
        default_factory=lambda: {
            "http://localhost",
            "http://localhost:8501",  # Streamlit default
            "http://127.0.0.1",
            "http://127.0.0.1:8501",
        }
    )
    cors_allow_credentials: bool = False
    cors_max_age: int = 600

    # Client / admin console
    api_url: str = "http://localhost:8000"
    import_close_delay_seconds: float = 2.0

    # Feature flags
    enable_ai_import: bool = True
    debug_mode: bool = False

    def __post_init__(self):
        """Load overrides from environment variables."""
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load configuration from environment variables."""
        # Paths
        if db_path := os.environ.get("PORTFOLIO_DB_PATH"):
            self.db_path = Path(db_path)
        if storage_path := os.environ.get("PORTFOLIO_STORAGE_PATH"):
            self.storage_path = Path(storage_path)
        if base_url := os.environ.get("PORTFOLIO_PUBLIC_BASE_URL"):
            self.public_base_url = base_url.rstrip("/")

        # Admin identity
        if emails := os.environ.get("ADMIN_EMAILS", "").strip():
            self.admin_emails = _split_emails(emails)
        if fallback := os.environ.get("ADMIN_FALLBACK_EMAIL", "").strip():
            self.fallback_admin_email = fallback.lower()
        if ttl := os.environ.get("SESSION_TTL_SECONDS"):
            self.session_ttl_seconds = int(ttl)

        # Content rules
        if cap := os.environ.get("MAX_FEATURED_PROJECTS"):
            self.max_featured_projects = int(cap)
        if max_upload := os.environ.get("MAX_UPLOAD_BYTES"):
            self.max_upload_bytes = int(max_upload)
        if bucket := os.environ.get("STORAGE_BUCKET"):
            self.storage_bucket = bucket

        # API settings
        if model := os.environ.get("ANTHROPIC_MODEL"):
            self.anthropic_model = model
        if max_tokens := os.environ.get("MAX_LLM_TOKENS"):
            self.max_llm_tokens = int(max_tokens)
        if timeout := os.environ.get("LLM_TIMEOUT_SECONDS"):
            self.llm_timeout_seconds = int(timeout)

        # Rate limiting
        if rate_limit := os.environ.get("RATE_LIMIT_REQUESTS"):
            self.rate_limit_requests = int(rate_limit)
        if window := os.environ.get("RATE_LIMIT_WINDOW"):
            self.rate_limit_window_seconds = int(window)
        if rate_limit_path := os.environ.get("RATE_LIMIT_PATH"):
            self.rate_limit_path = Path(rate_limit_path)

        # AI budget
        if ai_budget_path := os.environ.get("AI_BUDGET_PATH"):
            self.ai_budget_path = Path(ai_budget_path)
        if ai_budget := os.environ.get("AI_DAILY_BUDGET_USD"):
            self.ai_daily_budget_usd = float(ai_budget)

        # Reverse proxy / headers
        if os.environ.get("TRUST_PROXY_HEADERS", "").lower() in ("1", "true", "yes"):
            self.trust_proxy_headers = True
        if trusted := os.environ.get("TRUSTED_PROXY_IPS", "").strip():
            self.trusted_proxy_ips = {ip.strip() for ip in trusted.split(",") if ip.strip()}

        # CORS configuration
        if cors_origins := os.environ.get("CORS_ALLOW_ORIGINS", "").strip():
            if cors_origins == "*":
                logger.warning(
                    "CORS_ALLOW_ORIGINS set to '*' - allowing all origins. " "This should only be used in development."
                )
                self.cors_allow_origins = {"*"}
            else:
                self.cors_allow_origins = {origin.strip() for origin in cors_origins.split(",") if origin.strip()}
        if cors_max_age := os.environ.get("CORS_MAX_AGE"):
            self.cors_max_age = int(cors_max_age)

        # Client
        if api_url := os.environ.get("PORTFOLIO_API_URL"):
            self.api_url = api_url.rstrip("/")
        if close_delay := os.environ.get("IMPORT_CLOSE_DELAY_SECONDS"):
            self.import_close_delay_seconds = float(close_delay)

        # Feature flags
        if os.environ.get("DISABLE_AI_IMPORT", "").lower() in ("1", "true"):
            self.enable_ai_import = False
        if os.environ.get("DEBUG", "").lower() in ("1", "true"):
            self.debug_mode = True

    @property
    def fallback_admin(self) -> str | None:
        """Identity used for access-code sign-in."""
        if self.fallback_admin_email:
            return self.fallback_admin_email
        return self.admin_emails[0] if self.admin_emails else None

    def is_allowed_admin_email(self, email: str | None) -> bool:
        return (email or "").strip().lower() in self.admin_emails

    @property
    def fallback_admin_password(self) -> str | None:
        """Secret used to provision admin accounts on first sign-in."""
        return os.environ.get("ADMIN_FALLBACK_PASSWORD")

    @property
    def admin_access_code(self) -> str | None:
        """Shared access code (never stored in config)."""
        return os.environ.get("ADMIN_ACCESS_CODE")

    @property
    def anthropic_api_key(self) -> str | None:
        """Get Anthropic API key from environment (never stored in config)."""
        return os.environ.get("ANTHROPIC_API_KEY")


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        if _settings.debug_mode:
            logger.info("Settings loaded with debug mode enabled")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience alias
settings = get_settings()


# Project categories (canonical order; the first one is the default)
CATEGORIES: tuple[str, ...] = (
    "Academic & Scholarly Achievements",
    "Technology, Coding & Innovation",
    "Leadership, Volunteering & Environmental Action",
    "Model United Nations (MUN) & Public Speaking",
    "Arts, Athletics & Personal Passions",
    "Recognition & Awards",
)

DEFAULT_CATEGORY = CATEGORIES[0]


def category_slug(category: str) -> str:
    """'Recognition & Awards' -> 'recognition-awards'."""
    return re.sub(r"[^a-z0-9]+", "-", (category or "").lower()).strip("-")


CATEGORY_SLUGS: dict[str, str] = {category_slug(c): c for c in CATEGORIES}

CATEGORY_ICONS = {
    "Academic & Scholarly Achievements": "📚",
    "Technology, Coding & Innovation": "💻",
    "Leadership, Volunteering & Environmental Action": "🌱",
    "Model United Nations (MUN) & Public Speaking": "🎤",
    "Arts, Athletics & Personal Passions": "🎨",
    "Recognition & Awards": "🏆",
}

ADMIN_ROLE = "admin"
