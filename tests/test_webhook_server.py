"""Tests for the FastAPI webhook app."""

import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from mondaybot.services.mapping_store import MappingRecord
from mondaybot.services.webhook_handler import DispatchResult
from mondaybot.webhook_server import create_webhook_app


class StubStore:
    def __init__(self, records):
        self.records = records

    async def recent(self, limit):
        return self.records[:limit]

    async def count(self):
        return len(self.records)


@pytest.fixture
def handler():
    return AsyncMock(handle_payload=AsyncMock(return_value=DispatchResult.DELIVERED))


@pytest.fixture
def client(config, handler):
    records = [
        MappingRecord(
            item_id="42",
            thread_id="555",
            project_name="Acme",
            mapped_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )
    ]
    app = create_webhook_app(config, handler, StubStore(records), lambda: True)
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_challenge_is_echoed(client, handler):
    response = client.post("/webhook/monday", json={"challenge": "abc123"})

    assert response.status_code == 200
    assert response.json() == {"challenge": "abc123"}
    handler.handle_payload.assert_not_called()


def test_event_is_handled(client, handler):
    payload = {"event": {"type": "create_update", "pulseId": 42, "body": "hi"}}

    response = client.post("/webhook/monday", json=payload)

    assert response.status_code == 200
    assert response.json() == {"success": True, "outcome": "delivered"}
    handler.handle_payload.assert_awaited_once_with(payload)


def test_undelivered_event_still_answers_200(client, handler):
    handler.handle_payload.return_value = DispatchResult.UNDELIVERED

    response = client.post("/webhook/monday", json={"event": {"type": "create_update", "pulseId": 42}})

    assert response.status_code == 200
    assert response.json() == {"success": False, "outcome": "undelivered"}


def test_handler_crash_returns_500(client, handler):
    handler.handle_payload.side_effect = RuntimeError("boom")

    response = client.post("/webhook/monday", json={"event": {"type": "create_update", "pulseId": 42}})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_invalid_json_is_rejected(client, handler):
    response = client.post(
        "/webhook/monday", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    handler.handle_payload.assert_not_called()


def test_non_object_payload_is_rejected(client):
    response = client.post("/webhook/monday", json=["a", "b"])

    assert response.status_code == 400


def test_status_report(client):
    body = client.get("/status").json()

    assert body["online"] is True
    assert body["mapped_items"] == 1
    assert body["webhook_port"] == 3001
    assert body["monday_api_configured"] is False
    assert body["recent_mappings"] == [
        {
            "item_id": "42",
            "thread_id": "555",
            "project_name": "Acme",
            "mapped_at": "2024-06-01T00:00:00+00:00",
        }
    ]


def test_webhook_logs_event_type_as_argument(client, caplog):
    caplog.set_level(logging.INFO, logger="mondaybot.webhook_server")

    client.post("/webhook/monday", json={"event": {"type": "create_update", "pulseId": 42}})

    record = next(r for r in caplog.records if r.msg.startswith("Received Monday.com webhook"))
    assert record.args == ("create_update",)
