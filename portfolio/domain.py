from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Iterable

from portfolio.config import CATEGORIES, CATEGORY_SLUGS, DEFAULT_CATEGORY, category_slug


@dataclass
class Project:
    """A showcase item: professional work or a foundational achievement."""

    id: str
    title: str
    category: str  # one of CATEGORIES
    description: str = ""
    writeup: str | None = None
    tags: list[str] = field(default_factory=list)
    impact: str | None = None
    start_date: str | None = None  # YYYY-MM-DD
    end_date: str | None = None  # None = ongoing
    is_featured: bool = False
    is_work: bool = False
    image_urls: list[str] = field(default_factory=list)
    github_url: str | None = None
    live_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Activity:
    """A discrete milestone. Category is free text."""

    id: str
    title: str
    category: str
    description: str = ""
    start_date: str | None = None
    end_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FoundationSection:
    id: str
    title: str
    description: str
    categories: tuple[str, ...]


FOUNDATION_SECTIONS: tuple[FoundationSection, ...] = (
    FoundationSection(
        id="academic",
        title="Academic Foundations",
        description=(
            "Rigorous coursework, competitions, and consistent performance over time "
            "that built analytical thinking and intellectual discipline."
        ),
        categories=("Academic & Scholarly Achievements",),
    ),
    FoundationSection(
        id="leadership",
        title="Early Leadership & Communication",
        description=(
            "MUN participation, student leadership roles, and initiative ownership that developed "
            "negotiation, public speaking, and systems-level thinking."
        ),
        categories=(
            "Model United Nations (MUN) & Public Speaking",
            "Leadership, Volunteering & Environmental Action",
        ),
    ),
    FoundationSection(
        id="technical",
        title="Early Technical Exposure",
        description=(
            "First encounters with AI systems, coding competitions, robotics, and experimentation "
            "that sparked a trajectory in technology."
        ),
        categories=("Technology, Coding & Innovation",),
    ),
    FoundationSection(
        id="creative",
        title="Creative & Athletic Discipline",
        description="Arts, sports, and photography, framed as discipline, resilience and performance under pressure.",
        categories=("Arts, Athletics & Personal Passions",),
    ),
    FoundationSection(
        id="recognition",
        title="Recognition & Milestones",
        description="Key honors and certifications that reflect commitment to excellence across multiple domains.",
        categories=("Recognition & Awards",),
    ),
)


# =============================================================================
# Categories
# =============================================================================


def category_from_slug(slug: str) -> str | None:
    """Resolve a URL slug back to its category label, or None."""
    return CATEGORY_SLUGS.get((slug or "").strip().lower())


def coerce_category(value: str | None) -> str:
    """Map a free-form label onto the fixed enumeration.

    Matching is case-insensitive on the label or its slug; anything else
    falls back to the first category.
    """
    raw = (value or "").strip()
    if not raw:
        return DEFAULT_CATEGORY
    lowered = raw.lower()
    for label in CATEGORIES:
        if label.lower() == lowered:
            return label
    return CATEGORY_SLUGS.get(category_slug(raw), DEFAULT_CATEGORY)


def category_matches(candidate: str, category: str) -> bool:
    """Loose match used by foundations: substring either way, case-insensitive."""
    a = (candidate or "").lower()
    b = (category or "").lower()
    if not a or not b:
        return False
    return a in b or b in a


# =============================================================================
# Ordering / Partitioning
# =============================================================================


def newest_first(items: Iterable[Any]) -> list[Any]:
    """Sort records by start_date descending; undated records go last."""
    items = list(items)
    dated = [i for i in items if _start(i)]
    undated = [i for i in items if not _start(i)]
    return sorted(dated, key=_start, reverse=True) + undated


def _start(item: Any) -> str:
    if isinstance(item, dict):
        return item.get("start_date") or ""
    return getattr(item, "start_date", None) or ""


def featured_projects(projects: Iterable[Project], limit: int = 6) -> list[Project]:
    return [p for p in newest_first(projects) if p.is_featured][:limit]


def partition_work(projects: Iterable[Project]) -> tuple[list[Project], list[Project]]:
    """Split into (work, foundations) by the is_work flag."""
    work: list[Project] = []
    foundations: list[Project] = []
    for project in newest_first(projects):
        (work if project.is_work else foundations).append(project)
    return work, foundations


def group_by_category(activities: Iterable[Activity]) -> dict[str, list[Activity]]:
    """Group activities by their literal category, first-seen order."""
    groups: dict[str, list[Activity]] = {}
    for activity in newest_first(activities):
        groups.setdefault(activity.category or "Uncategorized", []).append(activity)
    return groups


def foundation_sections(activities: Iterable[Activity]) -> list[dict[str, Any]]:
    """Bucket activities into the five foundation sections.

    An activity may appear in more than one section when its category
    loosely matches several.
    """
    activities = newest_first(activities)
    sections = []
    for section in FOUNDATION_SECTIONS:
        items = [
            a for a in activities
            if any(category_matches(a.category, cat) for cat in section.categories)
        ]
        sections.append(
            {
                "id": section.id,
                "title": section.title,
                "description": section.description,
                "categories": list(section.categories),
                "activities": [a.to_dict() for a in items],
            }
        )
    return sections


# =============================================================================
# Timeline
# =============================================================================


def format_month(value: str | None) -> str | None:
    """'2024-03-15' -> 'Mar 2024'. Unparseable values pass through."""
    if not value:
        return None
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        return value
    return parsed.strftime("%b %Y")


def format_date_range(start: str | None, end: str | None = None) -> str:
    start_str = format_month(start) or ""
    if end:
        return f"{start_str} - {format_month(end)}"
    return start_str


def build_timeline(projects: Iterable[Project], activities: Iterable[Activity]) -> list[dict[str, Any]]:
    """Merge projects and activities into one newest-first stream."""
    items: list[dict[str, Any]] = []
    for project in projects:
        items.append({**project.to_dict(), "type": "project"})
    for activity in activities:
        items.append({**activity.to_dict(), "type": "activity"})
    ordered = newest_first(items)
    for item in ordered:
        item["date_range"] = format_date_range(item.get("start_date"), item.get("end_date"))
    return ordered
