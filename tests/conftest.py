"""Shared fixtures for tests."""
import pytest

from src.models import Event, GalleryImage, Member, NewsArticle, Project, Snapshot


SAMPLE_API = {
    "/api/projects": {
        "projects": [
            {
                "id": "p1",
                "title": "Tree Planting Drive",
                "description": "Planting native trees along the river to reduce carbon.",
                "category": "environmental",
                "status": "active",
                "imageUrl": "https://img.example.org/trees.jpg",
                "createdAt": "2025-01-10T09:00:00.000Z",
            },
            {
                "id": "p2",
                "title": "Digital Literacy Classes",
                "description": "Weekly education sessions on computers and the internet.",
                "category": "educational",
                "status": "completed",
                "createdAt": "2024-11-02T12:00:00.000Z",
            },
        ],
        "analytics": {"total": 2},
    },
    "/api/news": {
        "articles": [
            {
                "id": "n1",
                "title": "Workshop Recap",
                "content": "x" * 300,
                "category": "community",
                "status": "published",
                "image": "https://img.example.org/recap.jpg",
                "publishedAt": "2025-02-01T10:00:00Z",
            },
        ],
        "analytics": {},
    },
    "/api/events": {
        "events": [
            {
                "id": "e1",
                "title": "Community Workshop",
                "description": "Hands-on session for volunteers.",
                "category": "workshop",
                "status": "upcoming",
                "location": "Community Center Hall",
                "date": "2025-03-15T10:00:00Z",
            },
            {
                "id": "e2",
                "title": "Tree Planting",
                "description": "Join us by the river.",
                "category": "environmental",
                "status": "upcoming",
                "location": "Riverside Park",
                "date": "2025-04-01T08:00:00Z",
            },
        ],
    },
    "/api/gallery": [
        {
            "id": "g1",
            "title": "Volunteers at work",
            "imageUrl": "https://img.example.org/g1.jpg",
            "status": "approved",
            "createdAt": "2025-01-20T00:00:00Z",
        },
    ],
    "/api/members": [
        {
            "id": "m1",
            "name": "Sarah Ahmed",
            "bio": "Leads our environmental workshop programme.",
            "position": "Coordinator",
            "status": "approved",
            "image": "https://img.example.org/sarah.jpg",
            "createdAt": "2024-06-01T00:00:00Z",
        },
    ],
}


@pytest.fixture
def sample_api():
    """Raw API payloads keyed by path."""
    return SAMPLE_API


@pytest.fixture
def events():
    return [Event.from_dict(e) for e in SAMPLE_API["/api/events"]["events"]]


@pytest.fixture
def snapshot():
    """A snapshot parsed from the sample API payloads."""
    return Snapshot.build(
        projects=[Project.from_dict(p) for p in SAMPLE_API["/api/projects"]["projects"]],
        articles=[NewsArticle.from_dict(a) for a in SAMPLE_API["/api/news"]["articles"]],
        events=[Event.from_dict(e) for e in SAMPLE_API["/api/events"]["events"]],
        gallery=[GalleryImage.from_dict(g) for g in SAMPLE_API["/api/gallery"]],
        members=[Member.from_dict(m) for m in SAMPLE_API["/api/members"]],
    )


@pytest.fixture
def state_db_path(tmp_path):
    """Return path for a temporary state database."""
    return tmp_path / "test_state.db"
