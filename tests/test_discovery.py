"""Tests for project discovery and recommendations."""
from datetime import datetime, timedelta, timezone

import pytest

from src.discovery import (
    DiscoveryFilters,
    analyze_project,
    discover,
    insight_to_dict,
    recommend,
)
from src.models import Project


NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def project(id, title="Project", description="", status="active", category=None,
            image_url=None, days_old=30):
    return Project(
        id=id,
        title=title,
        description=description,
        status=status,
        category=category,
        image_url=image_url,
        created_at=NOW - timedelta(days=days_old),
    )


class TestAnalyzeProject:
    def test_priority_components(self):
        p = project("1", title="critical repair", description="d" * 201, image_url="x.jpg")
        insight = analyze_project(p, now=NOW)
        assert insight.priority_score == 90
        assert insight.impact_level == "high"

    def test_low_impact(self):
        insight = analyze_project(project("1", description="d" * 201), now=NOW)
        assert insight.priority_score == 30
        assert insight.impact_level == "low"

    def test_medium_impact(self):
        insight = analyze_project(project("1", title="urgent"), now=NOW)
        assert insight.priority_score == 40
        assert insight.impact_level == "medium"

    @pytest.mark.parametrize("title,description,expected", [
        ("Zero Carbon Week", "", "environmental"),
        ("Cleanup", "protect the environment", "environmental"),
        ("Teacher Training", "", "educational"),
        ("Social Kitchen", "", "community"),
        ("Digital Skills", "", "technology"),
        ("Coding Club", "hands-on tech sessions", "technology"),
        ("Bake Sale", "cakes", "general"),
    ])
    def test_auto_category(self, title, description, expected):
        insight = analyze_project(project("1", title=title, description=description), now=NOW)
        assert insight.auto_category == expected

    def test_explicit_category_wins(self):
        insight = analyze_project(project("1", title="Carbon", category="community"), now=NOW)
        assert insight.auto_category == "environmental"
        assert insight.category == "community"

    def test_days_active(self):
        assert analyze_project(project("1", days_old=12), now=NOW).days_active == 12

    def test_missing_created_at_counts_as_new(self):
        p = Project(id="1", title="t", description="", status="active")
        assert analyze_project(p, now=NOW).days_active == 0


class TestRecommend:
    def test_additive_score_and_reasons(self):
        p = project("1", title="critical carbon", description="d" * 201, image_url="x", days_old=2)
        rec = recommend([analyze_project(p, now=NOW)])[0]
        # 50 base + 20 priority + 15 impact + 10 new + 10 environmental + 15 active
        assert rec.score == 120
        assert rec.reasons == [
            "High priority project",
            "High impact potential",
            "New project",
            "Environmental focus",
            "Currently active",
        ]

    def test_top_three_only(self):
        insights = [analyze_project(project(str(i)), now=NOW) for i in range(5)]
        assert len(recommend(insights)) == 3

    def test_ranked_best_first(self):
        plain = project("plain", status="completed")
        active = project("active", status="active")
        edu = project("edu", status="completed", category="educational")
        recs = recommend([analyze_project(p, now=NOW) for p in (plain, edu, active)])
        assert [r.insight.project.id for r in recs] == ["active", "edu", "plain"]
        assert [r.score for r in recs] == [65, 58, 50]

    def test_empty(self):
        assert recommend([]) == []


class TestDiscover:
    @pytest.fixture
    def insights(self):
        projects = [
            project("a", title="Beach Cleanup", description="environment", status="active", days_old=3),
            project("b", title="urgent Food Bank", status="completed", image_url="x", days_old=10),
            project("c", title="Coding Club", description="tech " * 60, status="active", days_old=1),
        ]
        return [analyze_project(p, now=NOW) for p in projects]

    def test_sort_by_priority(self, insights):
        result = discover(insights, DiscoveryFilters(sort_by="priority"))
        assert [i.project.id for i in result] == ["b", "c", "a"]

    def test_sort_by_newest(self, insights):
        result = discover(insights, DiscoveryFilters(sort_by="newest"))
        assert [i.project.id for i in result] == ["c", "a", "b"]

    def test_sort_alphabetical(self, insights):
        result = discover(insights, DiscoveryFilters(sort_by="alphabetical"))
        assert [i.project.id for i in result] == ["a", "c", "b"]

    def test_sort_by_impact(self, insights):
        result = discover(insights, DiscoveryFilters(sort_by="impact"))
        assert result[0].project.id == "b"

    def test_search_filter(self, insights):
        result = discover(insights, DiscoveryFilters(search="FOOD"))
        assert [i.project.id for i in result] == ["b"]

    def test_category_and_status_filters(self, insights):
        result = discover(insights, DiscoveryFilters(category="technology", status="active"))
        assert [i.project.id for i in result] == ["c"]

    def test_priority_range(self, insights):
        result = discover(insights, DiscoveryFilters(priority_range=(50, 100)))
        assert [i.project.id for i in result] == ["b"]

    def test_impact_filter(self, insights):
        result = discover(insights, DiscoveryFilters(impact_level="low"))
        assert {i.project.id for i in result} == {"a", "c"}

    def test_unknown_sort_raises(self, insights):
        with pytest.raises(ValueError, match="Unknown sort order"):
            discover(insights, DiscoveryFilters(sort_by="random"))

    def test_insight_to_dict(self, insights):
        data = insight_to_dict(insights[1])
        assert data["priorityScore"] == 60
        assert data["impactLevel"] == "medium"
        assert data["daysActive"] == 10
