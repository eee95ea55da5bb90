"""Tests for WebhookHandler dispatch outcomes."""

import pytest

from mondaybot.config import EligibilityRule
from mondaybot.eligibility import EligibilityFilter
from mondaybot.services.thread_resolver import ThreadResolver
from mondaybot.services.webhook_handler import DispatchResult, WebhookHandler

from .conftest import make_item

RULES = [EligibilityRule(field="Trade", contains=["mason", "carp"])]


def status_change(item_id="42", item_name="Acme Remodel"):
    return {
        "event": {
            "type": "update_column_value",
            "pulseId": int(item_id),
            "pulseName": item_name,
            "columnTitle": "Status",
            "value": {"label": {"text": "In Progress"}},
            "previousValue": {"label": {"text": "Planning"}},
            "userName": "Dana",
        }
    }


@pytest.fixture
def handler(store, platform, monday, formatter):
    return WebhookHandler(
        monday=monday,
        eligibility=EligibilityFilter(RULES),
        resolver=ThreadResolver(store, platform, formatter, timeout=1.0),
        formatter=formatter,
        sink=platform,
        timeout=1.0,
    )


@pytest.mark.asyncio
async def test_eligible_event_is_delivered(handler, store, platform):
    result = await handler.handle_payload(status_change())

    assert result is DispatchResult.DELIVERED
    thread_id, message = platform.sent[0]
    assert (await store.get("42")).thread_id == thread_id
    assert "~~Planning~~" in message
    assert "**In Progress**" in message
    assert "Dana" in message


@pytest.mark.asyncio
async def test_ineligible_item_is_skipped(handler, store, platform, monday):
    monday.items["43"] = make_item("43", Trade="Electrical")

    result = await handler.handle_payload(status_change("43"))

    assert result is DispatchResult.SKIPPED
    assert await store.get("43") is None
    assert platform.created == []
    assert platform.sent == []


@pytest.mark.asyncio
async def test_item_becomes_eligible_after_field_change(handler, store, monday):
    monday.items["43"] = make_item("43", Trade="Electrical")
    assert await handler.handle_payload(status_change("43")) is DispatchResult.SKIPPED

    monday.items["43"] = make_item("43", Trade="Masonry")
    assert await handler.handle_payload(status_change("43")) is DispatchResult.DELIVERED
    assert await store.get("43") is not None


@pytest.mark.asyncio
async def test_lookup_failure_fails_open(handler, platform, monday):
    monday.fail_get = True

    result = await handler.handle_payload(status_change(item_name="From Webhook"))

    assert result is DispatchResult.DELIVERED
    assert platform.created[0][0] == "From Webhook"


@pytest.mark.asyncio
async def test_lookup_failure_with_fail_closed(store, platform, monday, formatter):
    monday.fail_get = True
    handler = WebhookHandler(
        monday=monday,
        eligibility=EligibilityFilter(RULES, fail_open=False),
        resolver=ThreadResolver(store, platform, formatter),
        formatter=formatter,
        sink=platform,
    )

    assert await handler.handle_payload(status_change()) is DispatchResult.SKIPPED
    assert platform.sent == []


@pytest.mark.asyncio
async def test_project_name_prefers_monday_item(handler, platform):
    await handler.handle_payload(status_change(item_name="Stale Name"))

    assert platform.created[0][0] == "Acme Remodel"


@pytest.mark.asyncio
async def test_thread_failure_drops_event(handler, store, platform):
    platform.fail_create = True

    result = await handler.handle_payload(status_change())

    assert result is DispatchResult.DROPPED
    assert not result.ok
    assert await store.get("42") is None
    assert platform.sent == []


@pytest.mark.asyncio
async def test_send_failure_keeps_mapping(handler, store, platform):
    platform.fail_send = True

    result = await handler.handle_payload(status_change())

    assert result is DispatchResult.UNDELIVERED
    assert not result.ok
    assert (await store.get("42")).thread_id == "9000"


@pytest.mark.asyncio
async def test_events_for_one_item_share_a_thread(handler, platform):
    await handler.handle_payload(status_change())
    await handler.handle_payload(
        {"event": {"type": "create_update", "pulseId": 42, "userName": "Sam", "body": "On site"}}
    )

    assert len(platform.created) == 1
    assert [thread for thread, _ in platform.sent] == ["9000", "9000"]
    assert "> On site" in platform.sent[1][1]


@pytest.mark.asyncio
async def test_unusable_payload_is_ignored(handler, monday, platform):
    result = await handler.handle_payload({"event": {"type": "create_update"}})

    assert result is DispatchResult.IGNORED
    assert result.ok
    assert monday.lookups == 0
    assert platform.sent == []
