"""Real-time notifications over a WebSocket channel.

The channel is a plain message stream from the portal:

  Portal -> Server:  {"type": "notification", "notification": {...}}
                     {"type": "keepalive"} | {"type": "pong"}

Bare notification objects (with at least a "title") are accepted too.
Lost connections are retried with exponential backoff up to a maximum
number of attempts, after which the channel gives up and stays down.
"""
import asyncio
import json
import sys
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.asyncio.client import connect as ws_connect

from src.config import ReconnectConfig, get_config
from src.models import parse_datetime


NOTIFICATION_TYPES = ("event", "news", "system", "member", "content")


@dataclass(frozen=True)
class Notification:
    id: str
    type: str
    title: str
    message: str
    priority: str = "medium"  # low | medium | high | urgent
    read: bool = False
    action_required: bool = False
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            type=str(data.get("type") or "system"),
            title=str(data.get("title") or ""),
            message=str(data.get("message") or ""),
            priority=str(data.get("priority") or "medium"),
            read=bool(data.get("read", False)),
            action_required=bool(data.get("actionRequired", False)),
            related_id=data.get("relatedId") or None,
            related_type=data.get("relatedType") or None,
            created_at=parse_datetime(data.get("createdAt")) or datetime.now(timezone.utc),
            expires_at=parse_datetime(data.get("expiresAt")),
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "read": self.read,
            "actionRequired": self.action_required,
            "relatedId": self.related_id,
            "relatedType": self.related_type,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }


class NotificationCenter:
    """In-memory inbox of notifications received from the portal."""

    def __init__(self):
        self._items: Dict[str, Notification] = {}

    def add(self, notification: Notification, now: Optional[datetime] = None) -> None:
        """Add a notification, replacing any existing one with the same ID.

        Expired notifications are dropped from the inbox on every add.
        """
        now = now or datetime.now(timezone.utc)
        for key in [k for k, n in self._items.items() if n.is_expired(now)]:
            del self._items[key]
        self._items[notification.id] = notification

    def list(
        self,
        unread_only: bool = False,
        notification_type: str = "all",
        now: Optional[datetime] = None,
    ) -> List[Notification]:
        """Visible notifications, newest first. Expired ones are hidden."""
        now = now or datetime.now(timezone.utc)
        items = [
            n for n in self._items.values()
            if not n.is_expired(now)
            and (not unread_only or not n.read)
            and (notification_type == "all" or n.type == notification_type)
        ]
        items.sort(key=lambda n: n.created_at or now, reverse=True)
        return items

    def counts(self, now: Optional[datetime] = None) -> Dict[str, int]:
        visible = self.list(now=now)
        unread = [n for n in visible if not n.read]
        return {
            "total": len(visible),
            "unread": len(unread),
            "urgent": sum(1 for n in unread if n.priority == "urgent"),
            "actionRequired": sum(1 for n in unread if n.action_required),
        }

    def mark_read(self, notification_id: str) -> bool:
        notification = self._items.get(notification_id)
        if notification is None:
            return False
        self._items[notification_id] = replace(notification, read=True)
        return True

    def mark_all_read(self) -> int:
        """Mark everything read. Returns how many were previously unread."""
        changed = 0
        for key, notification in list(self._items.items()):
            if not notification.read:
                self._items[key] = replace(notification, read=True)
                changed += 1
        return changed

    def delete(self, notification_id: str) -> bool:
        return self._items.pop(notification_id, None) is not None

    def clear(self) -> None:
        self._items.clear()


class NotificationChannel:
    """WebSocket client feeding a NotificationCenter, with backoff reconnects."""

    def __init__(
        self,
        url: str,
        center: NotificationCenter,
        policy: Optional[ReconnectConfig] = None,
        connect: Callable[[str], Any] = ws_connect,
    ):
        self.url = url
        self.center = center
        self.policy = policy or get_config().reconnect
        self._connect = connect
        self._task: Optional[asyncio.Task] = None
        self._connected = False
        self.attempts = 0
        self.gave_up = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start consuming the channel in the background (non-blocking)."""
        if self.is_running:
            return
        self.gave_up = False
        self.attempts = 0
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Stop the channel and wait for the consumer task to finish."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._connected = False

    async def wait_closed(self) -> None:
        """Wait until the consumer task exits on its own."""
        if self._task:
            await self._task

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Consumer loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            try:
                async with self._connect(self.url) as websocket:
                    self._connected = True
                    self.attempts = 0
                    print(f"[Notifications] Connected to {self.url}", file=sys.stderr)
                    async for raw in websocket:
                        self.handle_message(raw)
                print("[Notifications] Connection closed by server", file=sys.stderr)
            except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
                print(f"[Notifications] Connection error: {e}", file=sys.stderr)
            finally:
                self._connected = False

            self.attempts += 1
            if self.attempts > self.policy.max_attempts:
                self.gave_up = True
                print(
                    f"[Notifications] Giving up after {self.policy.max_attempts} reconnect attempts",
                    file=sys.stderr,
                )
                return

            delay = self.policy.delay_for(self.attempts)
            print(
                f"[Notifications] Reconnecting in {delay:.1f}s "
                f"(attempt {self.attempts}/{self.policy.max_attempts})",
                file=sys.stderr,
            )
            await asyncio.sleep(delay)

    def handle_message(self, raw: Any) -> Optional[Notification]:
        """Parse one channel message and add any notification it carries."""
        try:
            msg = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(msg, dict):
            return None

        # Keepalive / pong
        if msg.get("type") in ("keepalive", "pong"):
            return None

        payload = msg.get("notification")
        if not isinstance(payload, dict):
            payload = msg if msg.get("title") else None
        if payload is None:
            return None

        notification = Notification.from_dict(payload)
        self.center.add(notification)
        return notification


# ---------------------------------------------------------------------------
# Global singletons
# ---------------------------------------------------------------------------

_center: Optional[NotificationCenter] = None


def get_notification_center() -> NotificationCenter:
    """Get or create the global notification center."""
    global _center
    if _center is None:
        _center = NotificationCenter()
    return _center
