"""
Tests for portfolio.domain.

Covers:
- Category slugs and coercion
- Newest-first ordering and the work / foundations partition
- Foundation section bucketing
- Date range formatting and the merged timeline
"""

import pytest

from portfolio import domain
from portfolio.config import CATEGORIES, CATEGORY_ICONS, category_slug


def _project(pid, start, **kw):
    return domain.Project(id=pid, title=pid, category=CATEGORIES[1], start_date=start, **kw)


def _activity(aid, category, start="2022-01-01", **kw):
    return domain.Activity(id=aid, title=aid, category=category, start_date=start, **kw)


class TestCategories:
    def test_slug(self):
        assert category_slug("Recognition & Awards") == "recognition-awards"
        assert category_slug("Model United Nations (MUN) & Public Speaking") == "model-united-nations-mun-public-speaking"

    def test_every_category_has_icon_and_round_trips(self):
        for label in CATEGORIES:
            assert label in CATEGORY_ICONS
            assert domain.category_from_slug(category_slug(label)) == label

    def test_unknown_slug(self):
        assert domain.category_from_slug("cooking") is None

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Recognition & Awards", "Recognition & Awards"),
            ("RECOGNITION & AWARDS", "Recognition & Awards"),
            ("recognition-awards", "Recognition & Awards"),
            ("Cooking", CATEGORIES[0]),
            (None, CATEGORIES[0]),
            ("", CATEGORIES[0]),
        ],
    )
    def test_coerce(self, raw, expected):
        assert domain.coerce_category(raw) == expected

    def test_loose_match(self):
        assert domain.category_matches("Leadership", "Leadership, Volunteering & Environmental Action")
        assert domain.category_matches("Academic & Scholarly Achievements", "academic")
        assert not domain.category_matches("", "Academic")


class TestOrdering:
    def test_newest_first_undated_last(self):
        items = [_project("a", "2020-01-01"), _project("b", None), _project("c", "2023-05-01")]
        assert [p.id for p in domain.newest_first(items)] == ["c", "a", "b"]

    def test_partition(self):
        items = [
            _project("w1", "2021-01-01", is_work=True),
            _project("f1", "2022-01-01"),
            _project("w2", "2023-01-01", is_work=True),
        ]
        work, foundations = domain.partition_work(items)
        assert [p.id for p in work] == ["w2", "w1"]
        assert [p.id for p in foundations] == ["f1"]

    def test_featured_capped(self):
        items = [_project(f"p{i}", f"20{10 + i}-01-01", is_featured=True) for i in range(8)]
        featured = domain.featured_projects(items, limit=6)
        assert len(featured) == 6
        assert featured[0].id == "p7"

    def test_group_by_category(self):
        groups = domain.group_by_category([_activity("a", "MUN"), _activity("b", "Sports"), _activity("c", "MUN")])
        assert list(groups) == ["MUN", "Sports"]
        assert {a.id for a in groups["MUN"]} == {"a", "c"}


class TestFoundations:
    def test_five_sections_in_order(self):
        sections = domain.foundation_sections([])
        assert [s["id"] for s in sections] == ["academic", "leadership", "technical", "creative", "recognition"]
        assert all(s["activities"] == [] for s in sections)

    def test_fuzzy_bucketing(self):
        sections = {
            s["id"]: s
            for s in domain.foundation_sections(
                [
                    _activity("mun", "Model United Nations"),
                    _activity("robotics", "Technology"),
                    _activity("award", "Recognition & Awards"),
                ]
            )
        }
        assert [a["id"] for a in sections["leadership"]["activities"]] == ["mun"]
        assert [a["id"] for a in sections["technical"]["activities"]] == ["robotics"]
        assert [a["id"] for a in sections["recognition"]["activities"]] == ["award"]


class TestTimeline:
    def test_format_date_range(self):
        assert domain.format_date_range("2023-03-15", "2024-01-01") == "Mar 2023 - Jan 2024"
        assert domain.format_date_range("2023-03-15") == "Mar 2023"
        assert domain.format_date_range(None) == ""

    def test_format_month_passthrough(self):
        assert domain.format_month("sometime") == "sometime"

    def test_merge(self):
        timeline = domain.build_timeline(
            [_project("p", "2023-01-01", end_date="2023-06-01")],
            [_activity("a", "MUN", start="2024-02-01")],
        )
        assert [(i["id"], i["type"]) for i in timeline] == [("a", "activity"), ("p", "project")]
        assert timeline[1]["date_range"] == "Jan 2023 - Jun 2023"
