"""Project discovery: derived analytics, filtering, sorting and recommendations."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from src.models import Project
from src.scoring import AdditiveBonus, Bonus, rank


IMPACT_ORDER = {"high": 3, "medium": 2, "low": 1}

# (category, title keywords, description keywords); first match wins
_CATEGORY_RULES = (
    ("environmental", ("environment", "carbon"), ("environment",)),
    ("educational", ("education", "training"), ("education",)),
    ("community", ("community", "social"), ("community",)),
    ("technology", ("technology", "digital"), ("tech",)),
)


@dataclass(frozen=True)
class ProjectInsight:
    """A project plus the analytics derived from its content."""
    project: Project
    priority_score: int
    impact_level: str
    auto_category: str
    days_active: int

    @property
    def category(self) -> str:
        """Explicit category when set, otherwise the keyword-derived one."""
        return self.project.category or self.auto_category


def _auto_category(title: str, description: str) -> str:
    title = title.lower()
    description = description.lower()
    for category, title_words, desc_words in _CATEGORY_RULES:
        if any(w in title for w in title_words) or any(w in description for w in desc_words):
            return category
    return "general"


def analyze_project(project: Project, now: Optional[datetime] = None) -> ProjectInsight:
    """Derive priority, impact, category and age for a project.

    Priority: +30 for a description over 200 chars, +40 when the title
    mentions "urgent" or "critical", +20 when an image is attached.
    Impact is high at priority >= 70 and low at <= 30.
    """
    now = now or datetime.now(timezone.utc)

    priority = 0
    if len(project.description) > 200:
        priority += 30
    if "urgent" in project.title or "critical" in project.title:
        priority += 40
    if project.image_url:
        priority += 20

    if priority >= 70:
        impact = "high"
    elif priority <= 30:
        impact = "low"
    else:
        impact = "medium"

    days_active = 0
    if project.created_at is not None:
        days_active = (now - project.created_at).days

    return ProjectInsight(
        project=project,
        priority_score=priority,
        impact_level=impact,
        auto_category=_auto_category(project.title, project.description),
        days_active=days_active,
    )


RECOMMENDATION_STRATEGY = AdditiveBonus(50, [
    Bonus(20, "High priority project", lambda p: p.priority_score >= 80),
    Bonus(15, "High impact potential", lambda p: p.impact_level == "high"),
    Bonus(10, "New project", lambda p: p.days_active <= 7),
    Bonus(10, "Environmental focus", lambda p: p.category == "environmental"),
    Bonus(15, "Currently active", lambda p: p.project.status == "active"),
    Bonus(8, "Educational value", lambda p: p.category == "educational"),
])


@dataclass
class Recommendation:
    insight: ProjectInsight
    score: float
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DiscoveryFilters:
    search: str = ""
    category: str = "all"
    status: str = "all"
    impact_level: str = "all"
    priority_range: Tuple[int, int] = (0, 100)
    sort_by: str = "priority"  # priority | impact | newest | alphabetical


def recommend(insights: Sequence[ProjectInsight], limit: int = 3) -> List[Recommendation]:
    """Top ``limit`` projects by additive recommendation score."""
    return [
        Recommendation(insight, score.value, score.reasons)
        for insight, score in rank(insights, RECOMMENDATION_STRATEGY, limit=limit)
    ]


def _matches(insight: ProjectInsight, filters: DiscoveryFilters) -> bool:
    project = insight.project
    if filters.search:
        needle = filters.search.lower()
        if needle not in project.title.lower() and needle not in project.description.lower():
            return False
    if filters.category != "all" and insight.category != filters.category:
        return False
    if filters.status != "all" and project.status != filters.status:
        return False
    if filters.impact_level != "all" and insight.impact_level != filters.impact_level:
        return False
    low, high = filters.priority_range
    if not low <= insight.priority_score <= high:
        return False
    return True


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

_SORT_KEYS = {
    "priority": (lambda i: i.priority_score, True),
    "impact": (lambda i: IMPACT_ORDER.get(i.impact_level, 0), True),
    "newest": (lambda i: i.project.created_at or _EPOCH, True),
    "alphabetical": (lambda i: i.project.title.lower(), False),
}


def discover(insights: Sequence[ProjectInsight], filters: DiscoveryFilters) -> List[ProjectInsight]:
    """Filter and sort project insights.

    Raises:
        ValueError: If ``filters.sort_by`` is not a known sort order
    """
    if filters.sort_by not in _SORT_KEYS:
        raise ValueError(f"Unknown sort order: {filters.sort_by}")

    matched = [i for i in insights if _matches(i, filters)]
    key, reverse = _SORT_KEYS[filters.sort_by]
    matched.sort(key=key, reverse=reverse)
    return matched


def insight_to_dict(insight: ProjectInsight) -> Dict[str, object]:
    project = insight.project
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "category": insight.category,
        "status": project.status,
        "imageUrl": project.image_url,
        "createdAt": project.created_at.isoformat() if project.created_at else None,
        "priorityScore": insight.priority_score,
        "impactLevel": insight.impact_level,
        "autoCategory": insight.auto_category,
        "daysActive": insight.days_active,
    }
