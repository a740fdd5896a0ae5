"""Member engagement tracking over the members collection."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from src.models import Member


ENGAGEMENT_LEVELS = ("high", "medium", "low", "inactive")
TOP_CONTRIBUTORS = 5

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def engagement_level(member: Member) -> str:
    """Member's engagement level, derived from the score when not set explicitly."""
    if member.engagement_level in ENGAGEMENT_LEVELS:
        return member.engagement_level
    score = member.engagement_score or 0
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    if score > 0:
        return "low"
    return "inactive"


def engagement_progress(score: Optional[float]) -> float:
    """Clamp an engagement score into a 0-100 progress value."""
    return min(100.0, max(0.0, score or 0.0))


def format_last_active(last_active: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human-readable time since a member was last active."""
    if last_active is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    days = (now - last_active).days

    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"


_SORT_KEYS = {
    "engagement": (lambda m: m.engagement_score or 0, True),
    "projects": (lambda m: m.projects_participated or 0, True),
    "events": (lambda m: m.events_attended or 0, True),
    "recent": (lambda m: m.last_active or _EPOCH, True),
    "alphabetical": (lambda m: m.name.lower(), False),
}


def filter_members(members: Sequence[Member], level: str = "all", sort_by: str = "engagement") -> List[Member]:
    """Filter members by engagement level and sort them.

    Args:
        members: Members to filter
        level: One of ``ENGAGEMENT_LEVELS`` or ``"all"``
        sort_by: engagement, projects, events, recent or alphabetical

    Returns:
        Matching members in the requested order

    Raises:
        ValueError: If ``sort_by`` is not a known sort order
    """
    if sort_by not in _SORT_KEYS:
        raise ValueError(f"Unknown sort order: {sort_by}")

    filtered = [m for m in members if level == "all" or engagement_level(m) == level]
    key, reverse = _SORT_KEYS[sort_by]
    filtered.sort(key=key, reverse=reverse)
    return filtered


def summarize(members: Sequence[Member]) -> Dict[str, Any]:
    """Overview metrics for the engagement dashboard."""
    scores = [m.engagement_score or 0 for m in members]
    by_level = {level: 0 for level in ENGAGEMENT_LEVELS}
    for member in members:
        by_level[engagement_level(member)] += 1

    top = filter_members(members, sort_by="engagement")[:TOP_CONTRIBUTORS]

    return {
        "totalMembers": len(members),
        "activeMembers": len(members) - by_level["inactive"],
        "averageEngagementScore": round(sum(scores) / len(scores)) if scores else 0,
        "levels": by_level,
        "topContributors": [m.name for m in top],
    }


def member_to_dict(member: Member, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "id": member.id,
        "name": member.name,
        "position": member.position,
        "status": member.status,
        "engagementScore": member.engagement_score,
        "engagementLevel": engagement_level(member),
        "progress": engagement_progress(member.engagement_score),
        "projectsParticipated": member.projects_participated or 0,
        "eventsAttended": member.events_attended or 0,
        "articlesWritten": member.articles_written or 0,
        "lastActive": format_last_active(member.last_active, now),
    }
