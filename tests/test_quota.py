"""
Tests for the SQLite budget and rate limiter, plus the cost helpers that feed them.
"""

from __future__ import annotations

import pytest

from portfolio.exceptions import QuotaExceededError
from portfolio.extraction import estimate_cost_usd, model_pricing_usd_per_million, require_budget
from portfolio.quota import SQLiteBudget, SQLiteRateLimiter


class TestBudget:
    def test_spend_accumulates(self, tmp_path):
        budget = SQLiteBudget(tmp_path / "budget.db", daily_budget_usd=1.0)
        assert budget.spent_today_usd() == 0.0
        budget.add_spend(0.25)
        budget.add_spend(0.25)
        assert budget.spent_today_usd() == pytest.approx(0.5)
        assert budget.would_exceed(0.6)
        assert not budget.would_exceed(0.4)

    def test_clear_today(self, tmp_path):
        budget = SQLiteBudget(tmp_path / "budget.db", daily_budget_usd=1.0)
        budget.add_spend(0.9)
        budget.clear_today()
        assert budget.spent_today_usd() == 0.0

    def test_require_budget(self, tmp_path):
        budget = SQLiteBudget(tmp_path / "budget.db", daily_budget_usd=0.0001)
        with pytest.raises(QuotaExceededError) as exc:
            require_budget(budget=budget, model="claude-3-5-haiku-20241022", prompt="x" * 4000, max_output_tokens=4000)
        assert exc.value.message == "AI credits exhausted. Please add credits to continue."


class TestPricing:
    @pytest.fixture(autouse=True)
    def _table_pricing(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_INPUT_USD_PER_MILLION", raising=False)
        monkeypatch.delenv("ANTHROPIC_OUTPUT_USD_PER_MILLION", raising=False)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_INPUT_USD_PER_MILLION", "1")
        monkeypatch.setenv("ANTHROPIC_OUTPUT_USD_PER_MILLION", "2")
        assert model_pricing_usd_per_million("anything") == (1.0, 2.0)

    def test_family_lookup(self):
        assert model_pricing_usd_per_million("claude-3-5-haiku-20241022") == (0.80, 4.00)
        assert model_pricing_usd_per_million("claude-sonnet-4") == (3.00, 15.00)

    def test_cost(self):
        cost = estimate_cost_usd(model="claude-3-5-haiku-20241022", input_tokens=1_000_000, output_tokens=0)
        assert cost == pytest.approx(0.80)


class TestRateLimiter:
    def test_window(self, tmp_path):
        limiter = SQLiteRateLimiter(tmp_path / "rl.db", requests_per_window=2, window_seconds=60)
        assert limiter.check_rate_limit("user-1") == (True, 0)
        assert limiter.check_rate_limit("user-1") == (True, 0)
        allowed, retry_after = limiter.check_rate_limit("user-1")
        assert allowed is False
        assert 1 <= retry_after <= 61

    def test_callers_are_independent(self, tmp_path):
        limiter = SQLiteRateLimiter(tmp_path / "rl.db", requests_per_window=1, window_seconds=60)
        assert limiter.check_rate_limit("user-1")[0]
        assert limiter.check_rate_limit("user-2")[0]

    def test_reset(self, tmp_path):
        limiter = SQLiteRateLimiter(tmp_path / "rl.db", requests_per_window=1, window_seconds=60)
        limiter.check_rate_limit("user-1")
        limiter.reset_rate_limit("user-1")
        assert limiter.check_rate_limit("user-1")[0]
