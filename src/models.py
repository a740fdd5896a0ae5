"""Portal records and the transient search result shape.

Records mirror the portal's JSON API (camelCase keys) and are never
mutated after parsing. Optional text fields are ``None`` when absent.
"""
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


ENTITY_TYPES = ("project", "news", "event", "gallery", "member")

# Type selector values accepted from the UI / tools, mapped to entity types
TYPE_SELECTORS = {
    "all": ENTITY_TYPES,
    "projects": ("project",),
    "news": ("news",),
    "events": ("event",),
    "gallery": ("gallery",),
    "members": ("member",),
}

RESULT_ROUTES = {
    "project": "/projects",
    "news": "/news/{id}",
    "event": "/projects",  # Events are listed on the projects page
    "gallery": "/gallery",
    "member": "/members",
}


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the API into an aware datetime.

    Naive values are assumed to be UTC. Returns None for missing or
    unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _opt_str(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return str(value)
    return None


def _str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _record_id(data: Dict[str, Any]) -> str:
    # Mongo-backed responses may only carry _id
    return str(data.get("id") or data.get("_id") or "")


def _opt_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Project:
    id: str
    title: str
    description: str
    status: str
    category: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=_record_id(data),
            title=_str(data, "title"),
            description=_str(data, "description"),
            status=_str(data, "status"),
            category=_opt_str(data, "category"),
            image_url=_opt_str(data, "imageUrl"),
            created_at=parse_datetime(data.get("createdAt")),
        )


@dataclass(frozen=True)
class NewsArticle:
    id: str
    title: str
    content: str
    status: str
    excerpt: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    published_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NewsArticle":
        return cls(
            id=_record_id(data),
            title=_str(data, "title"),
            content=_str(data, "content"),
            status=_str(data, "status"),
            excerpt=_opt_str(data, "excerpt"),
            category=_opt_str(data, "category"),
            image=_opt_str(data, "image", "imageUrl"),
            published_at=parse_datetime(data.get("publishedAt") or data.get("createdAt")),
        )


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    description: str
    category: str
    status: str
    location: str
    date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        return cls(
            id=_record_id(data),
            title=_str(data, "title"),
            description=_str(data, "description"),
            category=_str(data, "category"),
            status=_str(data, "status"),
            location=_str(data, "location"),
            date=parse_datetime(data.get("date")),
        )


@dataclass(frozen=True)
class GalleryImage:
    id: str
    title: str
    status: str
    image_url: str
    description: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GalleryImage":
        return cls(
            id=_record_id(data),
            title=_str(data, "title"),
            status=_str(data, "status"),
            image_url=_str(data, "imageUrl"),
            description=_opt_str(data, "description"),
            category=_opt_str(data, "category"),
            created_at=parse_datetime(data.get("createdAt")),
        )


@dataclass(frozen=True)
class Member:
    id: str
    name: str
    bio: str
    position: str
    status: str
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    # Engagement fields are only present on enriched member payloads
    engagement_score: Optional[float] = None
    engagement_level: Optional[str] = None
    last_active: Optional[datetime] = None
    projects_participated: Optional[int] = None
    events_attended: Optional[int] = None
    articles_written: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        score = data.get("engagementScore")
        return cls(
            id=_record_id(data),
            name=_str(data, "name"),
            bio=_str(data, "bio"),
            position=_str(data, "position"),
            status=_str(data, "status"),
            profile_image_url=_opt_str(data, "profileImageUrl", "image"),
            created_at=parse_datetime(data.get("createdAt")),
            engagement_score=float(score) if isinstance(score, (int, float)) else None,
            engagement_level=_opt_str(data, "engagementLevel"),
            last_active=parse_datetime(data.get("lastActive")),
            projects_participated=_opt_int(data, "projectsParticipated"),
            events_attended=_opt_int(data, "eventsAttended"),
            articles_written=_opt_int(data, "articlesWritten"),
        )


@dataclass(frozen=True)
class SearchFilters:
    """Active filter set. ``"all"`` disables a filter."""
    query: str = ""
    type: str = "all"
    category: str = "all"
    status: str = "all"

    @property
    def normalized_query(self) -> str:
        return self.query.lower().strip()

    def includes(self, entity_type: str) -> bool:
        return entity_type in TYPE_SELECTORS.get(self.type, ())


@dataclass
class SearchResult:
    """A normalized, cross-entity search hit. Recomputed on every search."""
    id: str
    title: str
    description: str
    type: str
    relevance_score: float
    category: Optional[str] = None
    status: Optional[str] = None
    date: Optional[datetime] = None
    image: Optional[str] = None
    location: Optional[str] = None

    @property
    def link(self) -> str:
        return RESULT_ROUTES.get(self.type, "/").format(id=self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for tool output, using the portal's camelCase keys."""
        data = asdict(self)
        return {
            "id": data["id"],
            "title": data["title"],
            "description": data["description"],
            "type": data["type"],
            "category": data["category"],
            "status": data["status"],
            "date": self.date.isoformat() if self.date else None,
            "image": data["image"],
            "location": data["location"],
            "relevanceScore": data["relevance_score"],
            "link": self.link,
        }


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the five collections used by one pipeline run."""
    projects: tuple = ()
    articles: tuple = ()
    events: tuple = ()
    gallery: tuple = ()
    members: tuple = ()

    def total(self) -> int:
        return (
            len(self.projects) + len(self.articles) + len(self.events)
            + len(self.gallery) + len(self.members)
        )

    @classmethod
    def build(
        cls,
        projects: Optional[List[Project]] = None,
        articles: Optional[List[NewsArticle]] = None,
        events: Optional[List[Event]] = None,
        gallery: Optional[List[GalleryImage]] = None,
        members: Optional[List[Member]] = None,
    ) -> "Snapshot":
        return cls(
            projects=tuple(projects or ()),
            articles=tuple(articles or ()),
            events=tuple(events or ()),
            gallery=tuple(gallery or ()),
            members=tuple(members or ()),
        )
