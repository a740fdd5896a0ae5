"""Header notice board with pluggable dismissal storage."""
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

import aiosqlite

from src.config import get_config
from src.models import parse_datetime


# Default database location
DEFAULT_DB_PATH = Path.home() / ".portal-search-mcp" / "state.db"


@dataclass(frozen=True)
class Notice:
    id: str
    title: str
    message: str
    type: str  # announcement | event | urgent | info | general
    priority: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    link: Optional[str] = None
    link_text: Optional[str] = None
    dismissible: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notice":
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            title=str(data.get("title") or ""),
            message=str(data.get("message") or ""),
            type=str(data.get("type") or "general"),
            priority=str(data.get("priority") or "medium"),
            start_date=parse_datetime(data.get("startDate")),
            end_date=parse_datetime(data.get("endDate")),
            link=data.get("link") or None,
            link_text=data.get("linkText") or None,
            dismissible=bool(data.get("dismissible", True)),
        )

    def is_active(self, now: datetime) -> bool:
        """True when ``now`` falls inside the notice's display window (inclusive)."""
        if self.start_date is not None and now < self.start_date:
            return False
        if self.end_date is not None and now > self.end_date:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "link": self.link,
            "linkText": self.link_text,
            "dismissible": self.dismissible,
        }


class NoticeDismissalStore(Protocol):
    """Protocol for persisting which notices a user has dismissed."""

    async def get_dismissed(self) -> Set[str]:
        """Return the IDs of all dismissed notices."""
        ...

    async def set_dismissed(self, notice_ids: Iterable[str]) -> None:
        """Replace the dismissed set with ``notice_ids``."""
        ...


class InMemoryDismissalStore:
    """Dismissal store that lives only as long as the process."""

    def __init__(self, dismissed: Optional[Iterable[str]] = None):
        self._dismissed: Set[str] = set(dismissed or ())

    async def get_dismissed(self) -> Set[str]:
        return set(self._dismissed)

    async def set_dismissed(self, notice_ids: Iterable[str]) -> None:
        self._dismissed = set(notice_ids)


class SqliteDismissalStore:
    """Async SQLite store for dismissed notice IDs."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the dismissal store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.portal-search-mcp/state.db
        """
        self.db_path = db_path or DEFAULT_DB_PATH
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS dismissed_notices (
                notice_id TEXT PRIMARY KEY,
                dismissed_at TIMESTAMP
            )
        """)

        await self._connection.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if not self._connection:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._connection

    async def get_dismissed(self) -> Set[str]:
        conn = self._require_connection()
        cursor = await conn.execute("SELECT notice_id FROM dismissed_notices")
        rows = await cursor.fetchall()
        return {row["notice_id"] for row in rows}

    async def set_dismissed(self, notice_ids: Iterable[str]) -> None:
        conn = self._require_connection()
        now = datetime.now(timezone.utc).isoformat()

        await conn.execute("DELETE FROM dismissed_notices")
        await conn.executemany(
            "INSERT OR IGNORE INTO dismissed_notices (notice_id, dismissed_at) VALUES (?, ?)",
            [(str(notice_id), now) for notice_id in notice_ids],
        )
        await conn.commit()


class NoticeBoard:
    """Carousel over active, non-dismissed notices."""

    def __init__(self, store: NoticeDismissalStore):
        self.store = store
        self._notices: List[Notice] = []
        self._dismissed: Set[str] = set()
        self.current_index = 0

    async def load(self, notices: Iterable[Notice]) -> None:
        """Replace the notice list and reload the dismissed set from the store."""
        self._notices = list(notices)
        self._dismissed = await self.store.get_dismissed()
        self.current_index = 0

    def active_notices(self, now: Optional[datetime] = None) -> List[Notice]:
        """Notices currently in their display window and not dismissed."""
        now = now or datetime.now(timezone.utc)
        return [n for n in self._notices if n.is_active(now) and n.id not in self._dismissed]

    def current(self, now: Optional[datetime] = None) -> Optional[Notice]:
        active = self.active_notices(now)
        if not active:
            return None
        return active[min(self.current_index, len(active) - 1)]

    def next(self, now: Optional[datetime] = None) -> Optional[Notice]:
        active = self.active_notices(now)
        if active:
            self.current_index = (self.current_index + 1) % len(active)
        return self.current(now)

    def prev(self, now: Optional[datetime] = None) -> Optional[Notice]:
        active = self.active_notices(now)
        if active:
            self.current_index = (self.current_index - 1 + len(active)) % len(active)
        return self.current(now)

    async def dismiss(self, notice_id: str, now: Optional[datetime] = None) -> bool:
        """Dismiss a notice and persist the new dismissed set.

        Returns:
            True if dismissed, False if the notice is unknown or not dismissible
        """
        notice = next((n for n in self._notices if n.id == str(notice_id)), None)
        if notice is None or not notice.dismissible:
            return False

        active_count = len(self.active_notices(now))
        self._dismissed.add(notice.id)
        await self.store.set_dismissed(self._dismissed)

        if self.current_index >= active_count - 1:
            self.current_index = max(0, active_count - 2)
        return True


# Global store instance
_dismissal_store: Optional[SqliteDismissalStore] = None


async def get_dismissal_store() -> SqliteDismissalStore:
    """Get or create the global dismissal store instance.

    Returns:
        Initialized SqliteDismissalStore
    """
    global _dismissal_store

    if _dismissal_store is None:
        _dismissal_store = SqliteDismissalStore(get_config().state_db_path)
        await _dismissal_store.initialize()

    return _dismissal_store
