"""MCP server for searching the portal's public content."""
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# Add project root to Python path for absolute imports
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from src.config import get_config
from src.discovery import DiscoveryFilters, analyze_project, discover, insight_to_dict, recommend
from src.engagement import ENGAGEMENT_LEVELS, filter_members, member_to_dict, summarize
from src.models import TYPE_SELECTORS, SearchFilters, Snapshot
from src.notices import Notice, NoticeBoard, get_dismissal_store
from src.notifications import (
    NOTIFICATION_TYPES,
    NotificationChannel,
    get_notification_center,
)
from src.portal_client import get_portal_client
from src.search import PortalSearchEngine, SearchEngine


SERVER_NAME = "portal-search-mcp"

# Global state
_search_engine: Optional[SearchEngine] = None
_notice_board: Optional[NoticeBoard] = None
_channel: Optional[NotificationChannel] = None


def get_search_engine() -> SearchEngine:
    global _search_engine
    if _search_engine is None:
        _search_engine = PortalSearchEngine(preview_length=get_config().search.preview_length)
    return _search_engine


def _text(payload: Any) -> list[TextContent]:
    if isinstance(payload, str):
        return [TextContent(type="text", text=payload)]
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


def _error(message: str) -> list[TextContent]:
    return _text(f"Error: {message}")


async def load_snapshot() -> Snapshot:
    """Current collections, fetching them on first use."""
    client = get_portal_client()
    if not client.has_data:
        await client.refresh()
    return client.snapshot()


async def health_check_tool() -> list[TextContent]:
    client = get_portal_client()
    snapshot = client.snapshot()
    return _text({
        "status": "ok",
        "api": client.base_url,
        "lastRefresh": client.last_refresh.isoformat() if client.last_refresh else None,
        "collections": {
            "projects": len(snapshot.projects),
            "articles": len(snapshot.articles),
            "events": len(snapshot.events),
            "gallery": len(snapshot.gallery),
            "members": len(snapshot.members),
        },
        "errors": dict(client.last_errors),
        "notifications": {
            "enabled": _channel is not None,
            "connected": bool(_channel and _channel.is_connected),
            "gaveUp": bool(_channel and _channel.gave_up),
        },
    })


async def refresh_collections_tool() -> list[TextContent]:
    client = get_portal_client()
    snapshot = await client.refresh()
    return _text({
        "total": snapshot.total(),
        "errors": dict(client.last_errors),
    })


async def search_portal_tool(
    query: str = "",
    type: str = "all",
    category: str = "all",
    status: str = "all",
    limit: Optional[int] = None,
) -> list[TextContent]:
    """Tool handler for search_portal.

    Args:
        query: Free-text query (empty browses everything)
        type: all, projects, news, events, gallery or members
        category: Category filter, "all" to disable
        status: Status filter, "all" to disable
        limit: Maximum results (defaults to config)

    Returns:
        List of TextContent with ranked results
    """
    if type not in TYPE_SELECTORS:
        return _error(f"'type' must be one of: {', '.join(TYPE_SELECTORS)}")

    if limit is None:
        limit = get_config().search.result_limit

    snapshot = await load_snapshot()
    filters = SearchFilters(query=query, type=type, category=category, status=status)
    results = get_search_engine().search(snapshot, filters, limit=limit)

    if not results:
        return _text(f"No results found matching query: {query}" if query else "No results found.")

    return _text([r.to_dict() for r in results])


async def discover_projects_tool(arguments: dict) -> list[TextContent]:
    priority_range = arguments.get("priority_range") or [0, 100]
    if len(priority_range) != 2:
        return _error("'priority_range' must be [min, max]")

    filters = DiscoveryFilters(
        search=arguments.get("search", ""),
        category=arguments.get("category", "all"),
        status=arguments.get("status", "all"),
        impact_level=arguments.get("impact_level", "all"),
        priority_range=(int(priority_range[0]), int(priority_range[1])),
        sort_by=arguments.get("sort_by", "priority"),
    )

    snapshot = await load_snapshot()
    insights = [analyze_project(p) for p in snapshot.projects]
    try:
        matched = discover(insights, filters)
    except ValueError as e:
        return _error(str(e))

    return _text([insight_to_dict(i) for i in matched])


async def recommend_projects_tool(limit: int = 3) -> list[TextContent]:
    if limit < 1:
        return _error("'limit' must be at least 1")

    snapshot = await load_snapshot()
    insights = [analyze_project(p) for p in snapshot.projects]
    recs = recommend(insights, limit=limit)

    if not recs:
        return _text("No projects available to recommend.")

    return _text([
        {"project": insight_to_dict(r.insight), "score": r.score, "reasons": r.reasons}
        for r in recs
    ])


async def member_engagement_tool(level: str = "all", sort_by: str = "engagement") -> list[TextContent]:
    if level != "all" and level not in ENGAGEMENT_LEVELS:
        return _error(f"'level' must be 'all' or one of: {', '.join(ENGAGEMENT_LEVELS)}")

    snapshot = await load_snapshot()
    now = datetime.now(timezone.utc)
    try:
        members = filter_members(snapshot.members, level=level, sort_by=sort_by)
    except ValueError as e:
        return _error(str(e))

    return _text({
        "summary": summarize(snapshot.members),
        "members": [member_to_dict(m, now) for m in members],
    })


async def get_notice_board() -> NoticeBoard:
    global _notice_board
    if _notice_board is None:
        _notice_board = NoticeBoard(await get_dismissal_store())
    return _notice_board


async def get_notices_tool() -> list[TextContent]:
    board = await get_notice_board()
    raw = await get_portal_client().fetch_notices()
    await board.load(Notice.from_dict(n) for n in raw)
    return _text([n.to_dict() for n in board.active_notices()])


async def dismiss_notice_tool(notice_id: str) -> list[TextContent]:
    board = await get_notice_board()
    dismissed = await board.dismiss(notice_id)
    if not dismissed:
        return _text(f"Notice {notice_id} not found or cannot be dismissed.")
    return _text({"dismissed": notice_id, "remaining": len(board.active_notices())})


async def list_notifications_tool(unread_only: bool = False, type: str = "all") -> list[TextContent]:
    if type != "all" and type not in NOTIFICATION_TYPES:
        return _error(f"'type' must be 'all' or one of: {', '.join(NOTIFICATION_TYPES)}")

    center = get_notification_center()
    return _text({
        "counts": center.counts(),
        "notifications": [n.to_dict() for n in center.list(unread_only=unread_only, notification_type=type)],
    })


async def mark_notification_read_tool(notification_id: str = "") -> list[TextContent]:
    center = get_notification_center()
    if not notification_id:
        changed = center.mark_all_read()
        return _text({"markedRead": changed})
    if not center.mark_read(notification_id):
        return _text(f"Notification {notification_id} not found.")
    return _text({"markedRead": 1})


def create_server() -> Server:
    """Create and configure the MCP server.

    Returns:
        Configured Server instance
    """
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name="health_check",
                description="Report API connectivity, collection sizes and notification channel state.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="refresh_collections",
                description="Re-fetch projects, news, events, gallery and members from the portal API.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="search_portal",
                description="Search projects, news, events, gallery images and members. Results are ranked by relevance.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "Search text; empty lists everything"},
                        "type": {"type": "string", "enum": list(TYPE_SELECTORS), "default": "all"},
                        "category": {"type": "string", "default": "all"},
                        "status": {"type": "string", "default": "all"},
                        "limit": {"type": "integer", "minimum": 0},
                    },
                },
            ),
            Tool(
                name="discover_projects",
                description="Filter and sort projects by category, status, impact level and priority.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "search": {"type": "string"},
                        "category": {"type": "string", "default": "all"},
                        "status": {"type": "string", "default": "all"},
                        "impact_level": {"type": "string", "enum": ["all", "high", "medium", "low"]},
                        "priority_range": {
                            "type": "array", "items": {"type": "integer"},
                            "minItems": 2, "maxItems": 2,
                        },
                        "sort_by": {
                            "type": "string",
                            "enum": ["priority", "impact", "newest", "alphabetical"],
                        },
                    },
                },
            ),
            Tool(
                name="recommend_projects",
                description="Recommend the most promising projects, with the reasons for each pick.",
                inputSchema={
                    "type": "object",
                    "properties": {"limit": {"type": "integer", "minimum": 1, "default": 3}},
                },
            ),
            Tool(
                name="member_engagement",
                description="Member engagement overview, filtered by level and sorted.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "level": {"type": "string", "enum": ["all", *ENGAGEMENT_LEVELS]},
                        "sort_by": {
                            "type": "string",
                            "enum": ["engagement", "projects", "events", "recent", "alphabetical"],
                        },
                    },
                },
            ),
            Tool(
                name="get_notices",
                description="List active notice-board notices that have not been dismissed.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="dismiss_notice",
                description="Dismiss a notice so it is no longer shown.",
                inputSchema={
                    "type": "object",
                    "properties": {"notice_id": {"type": "string"}},
                    "required": ["notice_id"],
                },
            ),
            Tool(
                name="list_notifications",
                description="List received notifications with unread, urgent and action-required counts.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "unread_only": {"type": "boolean", "default": False},
                        "type": {"type": "string", "enum": ["all", *NOTIFICATION_TYPES]},
                    },
                },
            ),
            Tool(
                name="mark_notification_read",
                description="Mark one notification read, or all of them when no ID is given.",
                inputSchema={
                    "type": "object",
                    "properties": {"notification_id": {"type": "string"}},
                },
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        arguments = arguments or {}
        if name == "health_check":
            return await health_check_tool()
        elif name == "refresh_collections":
            return await refresh_collections_tool()
        elif name == "search_portal":
            return await search_portal_tool(
                query=arguments.get("query", ""),
                type=arguments.get("type", "all"),
                category=arguments.get("category", "all"),
                status=arguments.get("status", "all"),
                limit=arguments.get("limit"),
            )
        elif name == "discover_projects":
            return await discover_projects_tool(arguments)
        elif name == "recommend_projects":
            return await recommend_projects_tool(limit=int(arguments.get("limit", 3)))
        elif name == "member_engagement":
            return await member_engagement_tool(
                level=arguments.get("level", "all"),
                sort_by=arguments.get("sort_by", "engagement"),
            )
        elif name == "get_notices":
            return await get_notices_tool()
        elif name == "dismiss_notice":
            notice_id = arguments.get("notice_id")
            if not notice_id:
                return _error("'notice_id' parameter is required")
            return await dismiss_notice_tool(str(notice_id))
        elif name == "list_notifications":
            return await list_notifications_tool(
                unread_only=bool(arguments.get("unread_only", False)),
                type=arguments.get("type", "all"),
            )
        elif name == "mark_notification_read":
            return await mark_notification_read_tool(str(arguments.get("notification_id") or ""))
        else:
            raise ValueError(f"Unknown tool: {name}")

    return server


async def main():
    """Main entry point for the MCP server."""
    global _channel

    server = create_server()

    url = get_config().notifications_url
    if url:
        _channel = NotificationChannel(url, get_notification_center())
        await _channel.start()

    try:
        async with stdio_server() as (read_stream, write_stream):
            initialization_options = server.create_initialization_options()
            await server.run(read_stream, write_stream, initialization_options)
    finally:
        if _channel:
            await _channel.stop()
