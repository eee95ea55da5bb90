"""Tests for ThreadResolver."""

import asyncio

import pytest

from mondaybot.discord_client import contains_marker
from mondaybot.errors import ThreadCreationFailed
from mondaybot.services.thread_resolver import ThreadResolver

from .conftest import FakePlatform


@pytest.mark.asyncio
async def test_existing_mapping_short_circuits(store, platform, formatter):
    await store.put("42", "777", "Acme")
    resolver = ThreadResolver(store, platform, formatter)

    assert await resolver.resolve("42", "Acme") == "777"
    assert platform.searches == 0
    assert platform.created == []


@pytest.mark.asyncio
async def test_creates_and_maps_thread(store, platform, formatter):
    resolver = ThreadResolver(store, platform, formatter)

    thread_id = await resolver.resolve("42", "Acme Remodel")

    assert thread_id == "9000"
    title, content = platform.created[0]
    assert title == "Acme Remodel"
    assert "Monday Item ID: 42" in content
    assert (await store.get("42")).thread_id == "9000"


@pytest.mark.asyncio
async def test_existing_marked_thread_is_reused(store, formatter):
    platform = FakePlatform({"555": formatter.thread_opening("42", "Acme")})
    resolver = ThreadResolver(store, platform, formatter)

    assert await resolver.resolve("42", "Acme") == "555"
    assert platform.created == []
    assert (await store.get("42")).thread_id == "555"


@pytest.mark.asyncio
async def test_marker_of_longer_id_is_not_a_match(store, formatter):
    platform = FakePlatform({"555": formatter.thread_opening("420", "Other")})
    resolver = ThreadResolver(store, platform, formatter)

    assert await resolver.resolve("42", "Acme") == "9000"
    assert len(platform.created) == 1


@pytest.mark.asyncio
async def test_concurrent_resolves_create_one_thread(store, formatter):
    platform = FakePlatform(delay=0.01)
    resolver = ThreadResolver(store, platform, formatter)

    results = await asyncio.gather(*(resolver.resolve("42", "Acme") for _ in range(10)))

    assert len(platform.created) == 1
    assert set(results) == {"9000"}
    assert platform.searches == 1


@pytest.mark.asyncio
async def test_different_items_get_different_threads(store, platform, formatter):
    resolver = ThreadResolver(store, platform, formatter)

    first, second = await asyncio.gather(resolver.resolve("1", "One"), resolver.resolve("2", "Two"))

    assert first != second
    assert len(platform.created) == 2


@pytest.mark.asyncio
async def test_creation_failure_leaves_no_mapping(store, platform, formatter):
    platform.fail_create = True
    resolver = ThreadResolver(store, platform, formatter)

    with pytest.raises(ThreadCreationFailed) as exc_info:
        await resolver.resolve("42", "Acme")

    assert exc_info.value.item_id == "42"
    assert await store.get("42") is None


@pytest.mark.asyncio
async def test_search_failure_does_not_create(store, platform, formatter):
    platform.fail_search = True
    resolver = ThreadResolver(store, platform, formatter)

    with pytest.raises(ThreadCreationFailed):
        await resolver.resolve("42", "Acme")

    assert platform.created == []


@pytest.mark.asyncio
async def test_timeout_releases_lock(store, formatter):
    platform = FakePlatform(delay=0.5)
    resolver = ThreadResolver(store, platform, formatter, timeout=0.05)

    with pytest.raises(ThreadCreationFailed):
        await resolver.resolve("42", "Acme")
    assert await store.get("42") is None

    platform.delay = 0
    assert await resolver.resolve("42", "Acme") == "9000"


@pytest.mark.asyncio
async def test_thread_owned_by_other_item_fails(store, formatter):
    await store.put("7", "555", "Seven")
    platform = FakePlatform({"555": formatter.thread_opening("42", "Acme")})
    resolver = ThreadResolver(store, platform, formatter)

    with pytest.raises(ThreadCreationFailed):
        await resolver.resolve("42", "Acme")

    assert await store.get("42") is None


def test_contains_marker():
    assert contains_marker("hello\nMonday Item ID: 42", "Monday Item ID: 42")
    assert contains_marker("Monday Item ID: 42.", "Monday Item ID: 42")
    assert not contains_marker("Monday Item ID: 4201", "Monday Item ID: 42")
    assert not contains_marker("nothing here", "Monday Item ID: 42")
