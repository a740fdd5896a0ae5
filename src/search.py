"""Search engine module for portal content."""
import asyncio
import sys
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Protocol

from src.config import get_config
from src.debounce import Debouncer
from src.models import (
    Event,
    GalleryImage,
    Member,
    NewsArticle,
    Project,
    SearchFilters,
    SearchResult,
    Snapshot,
)
from src.scoring import MaxWeightedField


PROJECT_WEIGHTS = MaxWeightedField([("title", 1.0), ("description", 0.7), ("category", 0.5)])
NEWS_WEIGHTS = MaxWeightedField([
    ("title", 1.0), ("content", 0.6), ("excerpt", 0.8), ("category", 0.5),
])
EVENT_WEIGHTS = MaxWeightedField([
    ("title", 1.0), ("description", 0.7), ("location", 0.6), ("category", 0.5),
])
GALLERY_WEIGHTS = MaxWeightedField([("title", 1.0), ("description", 0.7), ("category", 0.5)])
MEMBER_WEIGHTS = MaxWeightedField([("name", 1.0), ("bio", 0.6), ("position", 0.8)])

DEFAULT_PREVIEW_LENGTH = 150


class SearchEngine(Protocol):
    """Protocol for search engines to allow extensibility."""

    def search(self, snapshot: Snapshot, filters: SearchFilters, limit: int = 0) -> List[SearchResult]:
        """Search a snapshot of the portal collections.

        Args:
            snapshot: Read-only collections to search
            filters: Active query and filters
            limit: Maximum number of results to return (0 = no limit)

        Returns:
            List of matching results, sorted by relevance
        """
        ...


def truncate_preview(text: str, length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    """First ``length`` characters of ``text`` followed by an ellipsis."""
    return text[:length] + "..."


class PortalSearchEngine:
    """Relevance-scored search across projects, news, events, gallery and members."""

    def __init__(self, preview_length: int = DEFAULT_PREVIEW_LENGTH):
        self.preview_length = preview_length

    @staticmethod
    def _passes_filters(filters: SearchFilters, category: Optional[str], status: Optional[str]) -> bool:
        if filters.category != "all" and (category or "") != filters.category:
            return False
        if filters.status != "all" and (status or "") != filters.status:
            return False
        return True

    @staticmethod
    def _passes_relevance(score: float, query: str) -> bool:
        return score > 0 or not query

    def _search_projects(self, projects: Iterable[Project], filters: SearchFilters) -> List[SearchResult]:
        query = filters.normalized_query
        results = []
        for project in projects:
            score = PROJECT_WEIGHTS.score(project, query).value
            if not self._passes_relevance(score, query):
                continue
            if not self._passes_filters(filters, project.category, project.status):
                continue
            results.append(SearchResult(
                id=project.id,
                title=project.title,
                description=project.description,
                type="project",
                category=project.category,
                status=project.status,
                date=project.created_at,
                image=project.image_url,
                relevance_score=score,
            ))
        return results

    def _search_news(self, articles: Iterable[NewsArticle], filters: SearchFilters) -> List[SearchResult]:
        query = filters.normalized_query
        results = []
        for article in articles:
            score = NEWS_WEIGHTS.score(article, query).value
            if not self._passes_relevance(score, query):
                continue
            if not self._passes_filters(filters, article.category, article.status):
                continue
            results.append(SearchResult(
                id=article.id,
                title=article.title,
                description=article.excerpt or truncate_preview(article.content, self.preview_length),
                type="news",
                category=article.category,
                status=article.status,
                date=article.published_at,
                image=article.image,
                relevance_score=score,
            ))
        return results

    def _search_events(self, events: Iterable[Event], filters: SearchFilters) -> List[SearchResult]:
        query = filters.normalized_query
        results = []
        for event in events:
            score = EVENT_WEIGHTS.score(event, query).value
            if not self._passes_relevance(score, query):
                continue
            if not self._passes_filters(filters, event.category, event.status):
                continue
            results.append(SearchResult(
                id=event.id,
                title=event.title,
                description=event.description,
                type="event",
                category=event.category,
                status=event.status,
                date=event.date,
                location=event.location,
                relevance_score=score,
            ))
        return results

    def _search_gallery(self, images: Iterable[GalleryImage], filters: SearchFilters) -> List[SearchResult]:
        query = filters.normalized_query
        results = []
        for image in images:
            score = GALLERY_WEIGHTS.score(image, query).value
            if not self._passes_relevance(score, query):
                continue
            if not self._passes_filters(filters, image.category, image.status):
                continue
            results.append(SearchResult(
                id=image.id,
                title=image.title,
                description=image.description or "Gallery image",
                type="gallery",
                category=image.category,
                status=image.status,
                date=image.created_at,
                image=image.image_url,
                relevance_score=score,
            ))
        return results

    def _search_members(self, members: Iterable[Member], filters: SearchFilters) -> List[SearchResult]:
        query = filters.normalized_query
        results = []
        for member in members:
            score = MEMBER_WEIGHTS.score(member, query).value
            if not self._passes_relevance(score, query):
                continue
            # Members carry no category, so any concrete category filter drops them
            if not self._passes_filters(filters, None, member.status):
                continue
            results.append(SearchResult(
                id=member.id,
                title=member.name,
                description=f"{member.position} - {member.bio}",
                type="member",
                status=member.status,
                date=member.created_at,
                image=member.profile_image_url,
                relevance_score=score,
            ))
        return results

    def search(self, snapshot: Snapshot, filters: SearchFilters, limit: int = 0) -> List[SearchResult]:
        """Search all selected collections and rank the hits.

        Results are concatenated in collection order (projects, news,
        events, gallery, members) and stably sorted by descending score,
        so ties keep that order. Any error while scoring is logged and
        yields an empty result list.

        Args:
            snapshot: Read-only collections to search
            filters: Active query and filters
            limit: Maximum number of results to return (0 = no limit)

        Returns:
            List of results, highest relevance first
        """
        try:
            results: List[SearchResult] = []
            if filters.includes("project"):
                results.extend(self._search_projects(snapshot.projects, filters))
            if filters.includes("news"):
                results.extend(self._search_news(snapshot.articles, filters))
            if filters.includes("event"):
                results.extend(self._search_events(snapshot.events, filters))
            if filters.includes("gallery"):
                results.extend(self._search_gallery(snapshot.gallery, filters))
            if filters.includes("member"):
                results.extend(self._search_members(snapshot.members, filters))
        except Exception as e:
            print(f"[Search] Search error: {e}", file=sys.stderr)
            return []

        results.sort(key=lambda r: r.relevance_score, reverse=True)

        return results[:limit] if limit > 0 else results


class SearchSession:
    """Interactive search state that re-runs the pipeline after a quiet period.

    Every filter change supersedes any run still waiting out the debounce
    delay. The snapshot is read at run time, so a refreshed collection is
    picked up by the next run.
    """

    def __init__(
        self,
        snapshot_provider: Callable[[], Snapshot],
        engine: Optional[SearchEngine] = None,
        debounce_ms: Optional[int] = None,
        limit: int = 0,
    ):
        self._snapshot_provider = snapshot_provider
        self.engine = engine or PortalSearchEngine()
        self.limit = limit
        self.filters = SearchFilters()
        self.results: List[SearchResult] = []
        if debounce_ms is None:
            debounce_ms = get_config().search.debounce_ms
        self._debouncer = Debouncer(self._run, delay=debounce_ms / 1000)

    def update(self, **changes) -> asyncio.Task:
        """Change one or more filters and schedule a debounced search."""
        self.filters = replace(self.filters, **changes)
        return self._debouncer.trigger(self.filters)

    def clear(self) -> asyncio.Task:
        """Reset every filter to its default and schedule a search."""
        self.filters = SearchFilters()
        return self._debouncer.trigger(self.filters)

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    async def wait(self) -> List[SearchResult]:
        """Wait for the latest scheduled search and return its results."""
        await self._debouncer.flush()
        return self.results

    async def _run(self, filters: SearchFilters) -> List[SearchResult]:
        self.results = self.engine.search(self._snapshot_provider(), filters, self.limit)
        return self.results
