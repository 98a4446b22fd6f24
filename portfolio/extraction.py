"""
AI content extraction: freeform text -> structured project entries.

Wraps the Anthropic Messages API behind AnthropicService, guards spend
with the daily budget, and normalizes whatever the model returns into
entries the import wizard can seed from.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import date
from typing import Any, Optional

import anthropic

from portfolio.config import CATEGORIES, Settings, settings
from portfolio.domain import coerce_category
from portfolio.exceptions import (
    AnthropicAPIError,
    ExtractionError,
    MissingAPIKeyError,
    QuotaExceededError,
    RateLimitError,
    ValidationError,
)
from portfolio.logging_config import PerformanceTracker, log_event
from portfolio.quota import SQLiteBudget

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = f"""You turn unstructured notes about projects, achievements and work experience into structured JSON.

Return exactly this shape:

{{
  "projects": [
    {{
      "title": "Concise, professional project name",
      "category": "Exactly one of: {' | '.join(CATEGORIES)}",
      "description": "Short 2-3 sentence summary of outcomes and capabilities, shown on cards",
      "writeup": "Full 4-8 sentence writeup covering context, approach and impact",
      "tags": ["specific", "skills", "or", "technologies"],
      "impact": "Quantified impact if available (e.g. '500+ users', 'Top 10 nationally')",
      "start_date": "YYYY-MM-DD (use 01 for an unknown day)",
      "end_date": "YYYY-MM-DD, or null if ongoing or one-time"
    }}
  ]
}}

Rules:
1. The category must be one of the six options above, spelled exactly.
2. Keep "description" short and put the detail in "writeup".
3. Frame achievements as professional signals and avoid exaggeration.
4. Use the 1st of the month when only month and year are known.
5. Extract each distinct project as its own entry; omit entries without enough detail.

Return ONLY valid JSON, no additional text."""

# (input, output) USD per million tokens
_MODEL_PRICING = {
    "haiku": (0.80, 4.00),
    "sonnet": (3.00, 15.00),
    "opus": (15.00, 75.00),
}


class AnthropicService:
    """
    Thin wrapper around the Anthropic client.

    Translates SDK errors into PortfolioError types:
    - rate limiting -> RateLimitError (429)
    - HTTP 402 from upstream -> QuotaExceededError (402)
    - everything else -> AnthropicAPIError
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[int] = None):
        self._api_key = api_key or settings.anthropic_api_key
        self._model = model or settings.anthropic_model
        self._timeout = timeout or settings.llm_timeout_seconds
        self._client: Optional[Any] = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def client(self) -> Any:
        """Lazy-load the Anthropic client."""
        if self._client is None:
            if not self._api_key:
                raise MissingAPIKeyError("anthropic", env_var="ANTHROPIC_API_KEY")
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def create_non_streaming(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Any:
        kwargs: dict[str, Any] = {
            "model": model or self._model,
            "max_tokens": max_tokens,
            "messages": messages,
            "timeout": timeout or self._timeout,
        }
        if system:
            kwargs["system"] = system

        try:
            return self.client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            raise RateLimitError() from e
        except anthropic.APITimeoutError as e:
            raise AnthropicAPIError("Upstream timeout") from e
        except anthropic.APIConnectionError as e:
            raise AnthropicAPIError("Upstream connection error") from e
        except anthropic.APIStatusError as e:
            if e.status_code == 402:
                raise QuotaExceededError() from e
            raise AnthropicAPIError(f"Upstream error {e.status_code}", status_code=e.status_code) from e

    @staticmethod
    def extract_text(response: Any) -> str:
        content = getattr(response, "content", None)
        if not content:
            return ""
        return "".join(getattr(block, "text", "") or "" for block in content)

    @staticmethod
    def extract_usage(response: Any) -> dict[str, int]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return {}
        out = {}
        for key in ("input_tokens", "output_tokens"):
            value = getattr(usage, key, None)
            if isinstance(value, int):
                out[key] = value
        return out


# =============================================================================
# Cost helpers
# =============================================================================


def estimate_tokens_for_text(text: str) -> int:
    # ~4 chars/token; only used for the conservative budget pre-check.
    return max(1, int(len(text) / 4))


def model_pricing_usd_per_million(model: str) -> tuple[float, float]:
    """(input, output) USD per million tokens; env vars override the table."""
    env_in = os.environ.get("ANTHROPIC_INPUT_USD_PER_MILLION")
    env_out = os.environ.get("ANTHROPIC_OUTPUT_USD_PER_MILLION")
    if env_in and env_out:
        return float(env_in), float(env_out)
    lowered = (model or "").lower()
    for family, prices in _MODEL_PRICING.items():
        if family in lowered:
            return prices
    return _MODEL_PRICING["sonnet"]


def estimate_cost_usd(*, model: str, input_tokens: int, output_tokens: int) -> float:
    in_usd_m, out_usd_m = model_pricing_usd_per_million(model)
    return (input_tokens / 1_000_000) * in_usd_m + (output_tokens / 1_000_000) * out_usd_m


def require_budget(*, budget: SQLiteBudget, model: str, prompt: str, max_output_tokens: int) -> None:
    estimated = estimate_cost_usd(
        model=model,
        input_tokens=estimate_tokens_for_text(prompt),
        output_tokens=max_output_tokens,
    )
    if budget.would_exceed(estimated):
        raise QuotaExceededError(budget_usd=budget.daily_budget_usd)


# =============================================================================
# Parsing / normalization
# =============================================================================


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", flags=re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str) -> Any:
    """
    Parse the model's JSON payload.

    Supports fenced ```json blocks, a bare JSON document, and a JSON
    object embedded in surrounding prose.
    """
    raw = (text or "").strip()
    if not raw:
        raise ExtractionError("Empty model response")

    m = _FENCE_RE.search(raw)
    if m:
        raw = m.group(1).strip()

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    start = raw.find("{")
    if start < 0:
        raise ExtractionError("Failed to parse AI response as JSON", detail="no JSON object found")

    depth = 0
    in_str = False
    escape = False
    for i in range(start, len(raw)):
        ch = raw[i]
        if in_str:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(raw[start : i + 1])
                except json.JSONDecodeError as e:
                    raise ExtractionError("Failed to parse AI response as JSON", detail=str(e)) from e
    raise ExtractionError("Failed to parse AI response as JSON", detail="unbalanced braces")


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_date(value: Any) -> str | None:
    """Accept YYYY-MM-DD, YYYY-MM or YYYY; anything else becomes None."""
    text = _clean_text(value)
    if not text or text.lower() in ("null", "none", "present", "ongoing"):
        return None
    m = re.match(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?", text)
    if not m:
        return None
    year, month, day = int(m.group(1)), int(m.group(2) or 1), int(m.group(3) or 1)
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    tags: list[str] = []
    for tag in value:
        cleaned = _clean_text(tag)
        if cleaned and cleaned not in tags:
            tags.append(cleaned)
    return tags


def normalize_entries(items: Any) -> list[dict[str, Any]]:
    """
    Shape raw model entries into the Entry contract.

    Entries without a title are dropped. Categories are coerced onto the
    fixed enumeration (unknown labels fall back to the first one).
    """
    if not isinstance(items, list):
        raise ExtractionError("Failed to parse AI response as JSON", detail="'projects' is not a list")

    entries: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = _clean_text(item.get("title"))
        if not title:
            continue
        entries.append(
            {
                "title": title,
                "category": coerce_category(item.get("category")),
                "description": _clean_text(item.get("description")) or "",
                "writeup": _clean_text(item.get("writeup")),
                "tags": normalize_tags(item.get("tags")),
                "impact": _clean_text(item.get("impact")),
                "start_date": normalize_date(item.get("start_date")),
                "end_date": normalize_date(item.get("end_date")),
            }
        )
    return entries


# =============================================================================
# Extractor
# =============================================================================


class ContentExtractor:
    def __init__(self, service: AnthropicService, budget: SQLiteBudget, config: Settings | None = None) -> None:
        self.service = service
        self.budget = budget
        self.settings = config or settings

    def extract(self, content: Any) -> list[dict[str, Any]]:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Content is required")

        prompt = f"Parse the following content into structured project entries:\n\n{content}"
        require_budget(
            budget=self.budget,
            model=self.service.model,
            prompt=SYSTEM_PROMPT + prompt,
            max_output_tokens=self.settings.max_llm_tokens,
        )

        with PerformanceTracker("content_extraction", chars=len(content)):
            response = self.service.create_non_streaming(
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.settings.max_llm_tokens,
                system=SYSTEM_PROMPT,
            )

        usage = self.service.extract_usage(response)
        if usage:
            self.budget.add_spend(
                estimate_cost_usd(
                    model=self.service.model,
                    input_tokens=usage.get("input_tokens", 0),
                    output_tokens=usage.get("output_tokens", 0),
                )
            )

        text = self.service.extract_text(response)
        if not text:
            raise ExtractionError("No response from AI")

        parsed = extract_json_object(text)
        if isinstance(parsed, list):
            parsed = {"projects": parsed}
        if not isinstance(parsed, dict):
            raise ExtractionError("Failed to parse AI response as JSON", detail="unexpected top-level type")

        entries = normalize_entries(parsed.get("projects", []))
        log_event("content_processed", entries=len(entries), **usage)
        return entries
