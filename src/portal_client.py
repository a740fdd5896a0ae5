"""HTTP client for the portal's read-only collection endpoints.

Every collection is fetched whole; all filtering happens in memory. A
failed fetch keeps the last snapshot that loaded successfully for that
collection, so search keeps working on stale-but-available data.

Endpoints:
  GET /api/projects            -> {"projects": [...], "analytics": {...}}
  GET /api/news                -> {"articles": [...], "analytics": {...}}
  GET /api/events              -> {"events": [...], "analytics": {...}}
  GET /api/gallery             -> [...]
  GET /api/members             -> [...]
  GET /api/notices?active=true -> [...]
"""
import asyncio
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from src.config import get_config
from src.models import Event, GalleryImage, Member, NewsArticle, Project, Snapshot


USER_AGENT = "PortalSearchMCP/1.0 (portal search)"

# collection name -> (path, envelope key, record parser)
COLLECTIONS: Dict[str, tuple] = {
    "projects": ("/api/projects", "projects", Project.from_dict),
    "articles": ("/api/news", "articles", NewsArticle.from_dict),
    "events": ("/api/events", "events", Event.from_dict),
    "gallery": ("/api/gallery", None, GalleryImage.from_dict),
    "members": ("/api/members", None, Member.from_dict),
}


def unwrap_records(payload: Any, key: Optional[str]) -> List[Dict[str, Any]]:
    """Pull the record list out of an API payload.

    Accepts either a bare list or an object wrapping the list under ``key``.

    Raises:
        ValueError: If the payload has neither shape
    """
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict) and key and isinstance(payload.get(key), list):
        records = payload[key]
    else:
        raise ValueError(f"Unexpected payload shape for '{key or 'list'}'")
    return [r for r in records if isinstance(r, dict)]


class PortalClient:
    """Fetches and caches read-only snapshots of the portal collections."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._transport = transport
        self._records: Dict[str, tuple] = {name: () for name in COLLECTIONS}
        self._notices: List[Dict[str, Any]] = []
        self.last_refresh: Optional[datetime] = None
        self.last_errors: Dict[str, str] = {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )

    async def _get_json(self, client: httpx.AsyncClient, path: str, params: Optional[dict] = None) -> Any:
        response = await client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def _fetch_collection(self, client: httpx.AsyncClient, name: str) -> None:
        path, key, parse = COLLECTIONS[name]
        try:
            payload = await self._get_json(client, path)
            raw = unwrap_records(payload, key)
            records = tuple(parse(r) for r in raw)
        except httpx.HTTPError as e:
            print(f"[PortalClient] HTTP error fetching {path}: {e}", file=sys.stderr)
            self.last_errors[name] = str(e)
            return
        except ValueError as e:
            # Also covers JSON decode errors
            print(f"[PortalClient] Bad payload from {path}: {e}", file=sys.stderr)
            self.last_errors[name] = str(e)
            return

        self._records[name] = records
        self.last_errors.pop(name, None)

    async def refresh(self) -> Snapshot:
        """Fetch all five collections concurrently and return the new snapshot.

        Collections that fail to load keep their previous contents.
        """
        async with self._client() as client:
            await asyncio.gather(*(self._fetch_collection(client, name) for name in COLLECTIONS))
        self.last_refresh = datetime.now(timezone.utc)
        return self.snapshot()

    async def fetch_notices(self) -> List[Dict[str, Any]]:
        """Fetch currently active notices, falling back to the last good list."""
        try:
            async with self._client() as client:
                payload = await self._get_json(client, "/api/notices", params={"active": "true"})
            self._notices = unwrap_records(payload, "notices")
        except httpx.HTTPError as e:
            print(f"[PortalClient] HTTP error fetching notices: {e}", file=sys.stderr)
        except ValueError as e:
            print(f"[PortalClient] Bad notices payload: {e}", file=sys.stderr)
        return list(self._notices)

    def snapshot(self) -> Snapshot:
        """The most recent successfully-fetched collections."""
        return Snapshot(
            projects=self._records["projects"],
            articles=self._records["articles"],
            events=self._records["events"],
            gallery=self._records["gallery"],
            members=self._records["members"],
        )

    @property
    def has_data(self) -> bool:
        return self.last_refresh is not None


# Global client instance
_portal_client: Optional[PortalClient] = None


def get_portal_client() -> PortalClient:
    """Get or create the global portal client instance."""
    global _portal_client

    if _portal_client is None:
        _portal_client = PortalClient()

    return _portal_client
