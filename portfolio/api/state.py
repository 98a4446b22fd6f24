from __future__ import annotations

from dataclasses import dataclass

from portfolio.auth import AuthService
from portfolio.config import Settings
from portfolio.extraction import AnthropicService, ContentExtractor
from portfolio.quota import SQLiteBudget, SQLiteRateLimiter
from portfolio.repository import AccountRepo, ContentRepo, RoleRepo
from portfolio.storage import LocalObjectStorage


@dataclass
class AppState:
    settings: Settings
    content: ContentRepo
    accounts: AccountRepo
    roles: RoleRepo
    auth: AuthService
    storage: LocalObjectStorage
    extractor: ContentExtractor
    rate_limiter: SQLiteRateLimiter


def build_state(config: Settings, *, anthropic_service: AnthropicService | None = None) -> AppState:
    content = ContentRepo(config.db_path)
    accounts = AccountRepo(config.db_path)
    roles = RoleRepo(config.db_path)
    budget = SQLiteBudget(config.ai_budget_path, daily_budget_usd=config.ai_daily_budget_usd)
    service = anthropic_service or AnthropicService(
        api_key=config.anthropic_api_key,
        model=config.anthropic_model,
        timeout=config.llm_timeout_seconds,
    )
    return AppState(
        settings=config,
        content=content,
        accounts=accounts,
        roles=roles,
        auth=AuthService(accounts, roles, config),
        storage=LocalObjectStorage(config.storage_path, config.public_base_url),
        extractor=ContentExtractor(service, budget, config),
        rate_limiter=SQLiteRateLimiter(
            config.rate_limit_path,
            requests_per_window=config.rate_limit_requests,
            window_seconds=config.rate_limit_window_seconds,
        ),
    )
