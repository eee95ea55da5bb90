"""Shared fixtures and fakes for the Discord and Monday wrappers."""

import asyncio
from typing import Optional

import pytest
import pytest_asyncio

from mondaybot.config import Config, DiscordConfig, SyncConfig
from mondaybot.discord_client import contains_marker
from mondaybot.errors import UpstreamError
from mondaybot.formatting import MessageFormatter
from mondaybot.services.database import open_database
from mondaybot.services.mapping_store import MappingStore
from mondaybot.services.monday_service import ColumnValue, MondayItem


def make_item(item_id: str, name: str = "Acme Remodel", board_id: str = "b1", **columns: str) -> MondayItem:
    """Build an item; keyword arguments become columns (underscores -> spaces)."""
    return MondayItem(
        id=str(item_id),
        name=name,
        board_id=board_id,
        columns=[
            ColumnValue(id=title.lower(), title=title.replace("_", " "), text=text)
            for title, text in columns.items()
        ],
    )


class FakePlatform:
    """In-memory forum: thread id -> first message."""

    def __init__(self, threads: Optional[dict[str, str]] = None, delay: float = 0.0):
        self.threads = dict(threads or {})
        self.delay = delay
        self.created: list[tuple[str, str]] = []
        self.sent: list[tuple[str, str]] = []
        self.searches = 0
        self.fail_search = False
        self.fail_create = False
        self.fail_send = False

    async def find_thread_with_marker(self, marker: str) -> Optional[str]:
        self.searches += 1
        await asyncio.sleep(self.delay)
        if self.fail_search:
            raise UpstreamError("discord", "find_thread", "boom")
        for thread_id, content in self.threads.items():
            if contains_marker(content, marker):
                return thread_id
        return None

    async def create_thread(self, title: str, content: str) -> str:
        await asyncio.sleep(self.delay)
        if self.fail_create:
            raise UpstreamError("discord", "create_thread", "missing forum")
        thread_id = str(9000 + len(self.created))
        self.created.append((title, content))
        self.threads[thread_id] = content
        return thread_id

    async def send_message(self, thread_id: str, content: str) -> None:
        if self.fail_send:
            raise UpstreamError("discord", "send_message", "HTTP 403")
        self.sent.append((thread_id, content))


class FakeMonday:
    """Records Monday mutations instead of calling the API."""

    def __init__(self, items: Optional[dict[str, MondayItem]] = None):
        self.items = dict(items or {})
        self.lookups = 0
        self.fail_get = False
        self.fail_updates = False
        self.fail_uploads: set[str] = set()
        self.updates: list[tuple[str, str]] = []
        self.column_changes: list[tuple[str, str, str, str]] = []
        self.uploads: list[tuple[str, str, str]] = []

    async def get_item(self, item_id: str) -> Optional[MondayItem]:
        self.lookups += 1
        if self.fail_get:
            raise UpstreamError("monday", "get_item", "HTTP 500")
        return self.items.get(str(item_id))

    async def add_update(self, item_id: str, body: str) -> dict:
        if self.fail_updates:
            raise UpstreamError("monday", "add_update", "HTTP 500")
        self.updates.append((item_id, body))
        return {"id": str(len(self.updates))}

    async def change_column_value(self, board_id: str, item_id: str, column_id: str, value: str) -> dict:
        self.column_changes.append((board_id, item_id, column_id, value))
        return {"id": item_id}

    async def upload_file(self, item_id: str, file_url: str, file_name: str) -> dict:
        if file_name in self.fail_uploads:
            raise UpstreamError("monday", "upload_file", "HTTP 500")
        self.uploads.append((item_id, file_url, file_name))
        return {"id": file_name}


@pytest.fixture
def sync_config():
    return SyncConfig(
        urgent_fields=["Ceremony Actual POD"],
        field_labels={"UHC Comments": "Becka Notes"},
        info_fields=["Location", "Ceremony Actual POD", "UHC Comments"],
    )


@pytest.fixture
def formatter(sync_config):
    return MessageFormatter(sync_config)


@pytest.fixture
def config(sync_config):
    return Config(
        discord=DiscordConfig(bot_token="token", guild_id=1, projects_category_id=2),
        sync=sync_config,
    )


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def monday():
    return FakeMonday({"42": make_item("42", Trade="Masonry", Status="Planning")})


@pytest_asyncio.fixture
async def db(tmp_path):
    database = await open_database(tmp_path / "mappings.db")
    yield database
    await database.close()


@pytest_asyncio.fixture
async def store(db):
    return MappingStore(db)
