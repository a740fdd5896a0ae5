"""Tests for notice board and dismissal storage."""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from src.notices import InMemoryDismissalStore, Notice, NoticeBoard, SqliteDismissalStore


NOW = datetime(2025, 6, 1, 12, tzinfo=timezone.utc)


def notice(id, dismissible=True, start=None, end=None):
    return Notice(
        id=id,
        title=f"Notice {id}",
        message="Message",
        type="announcement",
        priority="medium",
        start_date=start,
        end_date=end,
        dismissible=dismissible,
    )


@pytest_asyncio.fixture
async def sqlite_store(state_db_path):
    """Create a temporary dismissal store for testing."""
    store = SqliteDismissalStore(state_db_path)
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def board():
    board = NoticeBoard(InMemoryDismissalStore())
    await board.load([notice("a"), notice("b"), notice("c")])
    return board


class TestNotice:
    def test_from_dict(self):
        n = Notice.from_dict({
            "_id": "abc",
            "title": "Volunteer day",
            "message": "Join us",
            "type": "event",
            "priority": "high",
            "startDate": "2025-05-01T00:00:00Z",
            "linkText": "Register",
            "dismissible": False,
        })
        assert n.id == "abc"
        assert n.start_date == datetime(2025, 5, 1, tzinfo=timezone.utc)
        assert n.end_date is None
        assert n.link_text == "Register"
        assert n.dismissible is False

    def test_defaults(self):
        n = Notice.from_dict({"id": 7, "title": "Hi"})
        assert n.id == "7"
        assert n.type == "general"
        assert n.priority == "medium"
        assert n.dismissible is True

    def test_window_is_inclusive(self):
        n = notice("a", start=NOW, end=NOW)
        assert n.is_active(NOW)
        assert not n.is_active(NOW - timedelta(seconds=1))
        assert not n.is_active(NOW + timedelta(seconds=1))

    def test_open_window(self):
        assert notice("a").is_active(NOW)


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        store = InMemoryDismissalStore(["x"])
        assert await store.get_dismissed() == {"x"}
        await store.set_dismissed(["y", "z"])
        assert await store.get_dismissed() == {"y", "z"}


class TestSqliteStore:
    @pytest.mark.asyncio
    async def test_empty_initially(self, sqlite_store):
        assert await sqlite_store.get_dismissed() == set()

    @pytest.mark.asyncio
    async def test_set_replaces(self, sqlite_store):
        await sqlite_store.set_dismissed(["1", "2"])
        await sqlite_store.set_dismissed(["2", "3"])
        assert await sqlite_store.get_dismissed() == {"2", "3"}

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, state_db_path):
        store = SqliteDismissalStore(state_db_path)
        await store.initialize()
        await store.set_dismissed(["keep"])
        await store.close()

        reopened = SqliteDismissalStore(state_db_path)
        await reopened.initialize()
        try:
            assert await reopened.get_dismissed() == {"keep"}
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_requires_initialize(self, state_db_path):
        store = SqliteDismissalStore(state_db_path)
        with pytest.raises(RuntimeError, match="not initialized"):
            await store.get_dismissed()


class TestNoticeBoard:
    @pytest.mark.asyncio
    async def test_carousel_wraps(self, board):
        assert board.current(NOW).id == "a"
        assert board.next(NOW).id == "b"
        assert board.next(NOW).id == "c"
        assert board.next(NOW).id == "a"
        assert board.prev(NOW).id == "c"

    @pytest.mark.asyncio
    async def test_inactive_notices_hidden(self):
        board = NoticeBoard(InMemoryDismissalStore())
        await board.load([
            notice("past", end=NOW - timedelta(days=1)),
            notice("now"),
            notice("future", start=NOW + timedelta(days=1)),
        ])
        assert [n.id for n in board.active_notices(NOW)] == ["now"]

    @pytest.mark.asyncio
    async def test_dismiss_persists_and_hides(self, board):
        assert await board.dismiss("b", NOW)
        assert [n.id for n in board.active_notices(NOW)] == ["a", "c"]
        assert await board.store.get_dismissed() == {"b"}

    @pytest.mark.asyncio
    async def test_dismiss_last_steps_index_back(self, board):
        board.next(NOW)
        board.next(NOW)
        assert board.current_index == 2
        await board.dismiss("c", NOW)
        assert board.current_index == 1
        assert board.current(NOW).id == "b"

    @pytest.mark.asyncio
    async def test_dismiss_keeps_earlier_index(self, board):
        await board.dismiss("c", NOW)
        assert board.current_index == 0

    @pytest.mark.asyncio
    async def test_dismiss_only_notice(self):
        board = NoticeBoard(InMemoryDismissalStore())
        await board.load([notice("solo")])
        assert await board.dismiss("solo", NOW)
        assert board.current_index == 0
        assert board.current(NOW) is None

    @pytest.mark.asyncio
    async def test_non_dismissible_rejected(self):
        board = NoticeBoard(InMemoryDismissalStore())
        await board.load([notice("pinned", dismissible=False)])
        assert not await board.dismiss("pinned", NOW)
        assert await board.store.get_dismissed() == set()

    @pytest.mark.asyncio
    async def test_unknown_notice_rejected(self, board):
        assert not await board.dismiss("missing", NOW)

    @pytest.mark.asyncio
    async def test_load_restores_dismissed(self, sqlite_store):
        await sqlite_store.set_dismissed(["a"])
        board = NoticeBoard(sqlite_store)
        await board.load([notice("a"), notice("b")])
        assert [n.id for n in board.active_notices(NOW)] == ["b"]
