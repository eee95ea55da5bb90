"""FastAPI webhook server for Monday.com webhooks."""

import json
import logging
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import Config
from .events import is_challenge
from .services.mapping_store import MappingStore
from .services.webhook_handler import WebhookHandler

logger = logging.getLogger(__name__)


async def collect_status(
    config: Config, store: MappingStore, is_online: Callable[[], bool]
) -> dict[str, Any]:
    """Read-only snapshot of bot health and mapping counts."""
    recent = await store.recent(config.bot.recent_mappings_limit)
    return {
        "online": is_online(),
        "mapped_items": await store.count(),
        "recent_mappings": [
            {
                "item_id": record.item_id,
                "thread_id": record.thread_id,
                "project_name": record.project_name,
                "mapped_at": record.mapped_at.isoformat(),
            }
            for record in recent
        ],
        "webhook_port": config.webhook.port,
        "monday_api_configured": bool(
            config.monday.api_token and config.monday.api_token.get_secret_value()
        ),
    }


def create_webhook_app(
    config: Config,
    webhook_handler: WebhookHandler,
    store: MappingStore,
    is_online: Callable[[], bool],
) -> FastAPI:
    """Create and configure the FastAPI webhook application.

    Args:
        config: Application configuration
        webhook_handler: WebhookHandler instance
        store: Mapping store, read for the status report
        is_online: Reports whether the Discord client is connected

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="MondayBot Webhooks",
        description="Monday.com webhook receiver relaying item events to Discord threads",
        version="1.0.0",
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "mondaybot-webhooks",
        }

    @app.get("/status")
    async def status() -> dict[str, Any]:
        return await collect_status(config, store, is_online)

    @app.post("/webhook/monday")
    async def monday_webhook(request: Request) -> JSONResponse:
        """Handle incoming Monday.com webhooks.

        - Echoes the verification challenge without touching any item
        - Otherwise relays the event and answers once it's handled

        Returns:
            200 when handled or intentionally skipped, 500 on unexpected errors
        """
        body = await request.body()
        try:
            payload = json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Failed to parse webhook payload: %s", e)
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Payload must be a JSON object")

        if is_challenge(payload):
            logger.info("Responding to Monday.com challenge")
            return JSONResponse({"challenge": payload["challenge"]}, status_code=200)

        event = payload.get("event")
        event_type = event.get("type") if isinstance(event, dict) else None
        logger.info("Received Monday.com webhook: event=%s", event_type)

        try:
            result = await webhook_handler.handle_payload(payload)
        except Exception as e:
            logger.error("Error processing Monday.com webhook: %s", e, exc_info=True)
            return JSONResponse({"error": "Internal server error"}, status_code=500)

        return JSONResponse(
            {"success": result.ok, "outcome": result.value},
            status_code=200,
        )

    return app
