"""Monday.com webhook event handler."""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional, Protocol

from ..eligibility import EligibilityFilter
from ..errors import ThreadCreationFailed, UpstreamError
from ..events import NormalizedEvent, normalize_event
from ..formatting import MessageFormatter
from .monday_service import MondayItem, MondayService
from .thread_resolver import ThreadResolver

logger = logging.getLogger(__name__)


class DispatchResult(Enum):
    """What happened to an inbound event."""

    DELIVERED = "delivered"
    SKIPPED = "skipped"  # item not eligible
    IGNORED = "ignored"  # no event, no item id, or unhandled type
    DROPPED = "dropped"  # no thread could be resolved
    UNDELIVERED = "undelivered"  # thread resolved, message send failed

    @property
    def ok(self) -> bool:
        return self in (DispatchResult.DELIVERED, DispatchResult.SKIPPED, DispatchResult.IGNORED)


class MessageSink(Protocol):
    async def send_message(self, thread_id: str, content: str) -> None: ...


class WebhookHandler:
    """Relays Monday item events into the item's Discord thread."""

    def __init__(
        self,
        monday: MondayService,
        eligibility: EligibilityFilter,
        resolver: ThreadResolver,
        formatter: MessageFormatter,
        sink: MessageSink,
        timeout: float = 30.0,
    ):
        """Initialize webhook handler.

        Args:
            monday: Monday API client for item snapshots
            eligibility: Filter deciding whether an item syncs
            resolver: Maps items to threads, creating threads when needed
            formatter: Renders events as Discord messages
            sink: Posts messages to Discord threads
            timeout: Seconds allowed for the final message send
        """
        self.monday = monday
        self.eligibility = eligibility
        self.resolver = resolver
        self.formatter = formatter
        self.sink = sink
        self.timeout = timeout

    async def handle_payload(self, payload: dict[str, Any]) -> DispatchResult:
        """Normalize a raw webhook body and dispatch it."""
        event = normalize_event(payload)
        if event is None:
            return DispatchResult.IGNORED
        return await self.dispatch(event)

    async def dispatch(self, event: NormalizedEvent) -> DispatchResult:
        logger.info("Processing %s for Monday item %s", event.kind.value, event.item_id)

        item: Optional[MondayItem] = None

        async def fetch_snapshot():
            nonlocal item
            item = await self.monday.get_item(event.item_id)
            return item.field_snapshot() if item else None

        if not await self.eligibility.evaluate(event.item_id, fetch_snapshot):
            logger.info("Item %s is not eligible for sync, skipping", event.item_id)
            return DispatchResult.SKIPPED

        project_name = (item.name if item else None) or event.item_name or "Unknown Project"
        try:
            thread_id = await self.resolver.resolve(event.item_id, project_name)
        except ThreadCreationFailed as e:
            logger.error("Dropping %s for item %s: %s", event.kind.value, event.item_id, e.reason)
            return DispatchResult.DROPPED

        message = self.formatter.format_event(event)
        try:
            await asyncio.wait_for(self.sink.send_message(thread_id, message), timeout=self.timeout)
        except (UpstreamError, asyncio.TimeoutError) as e:
            logger.error(
                "Could not post %s to thread %s for item %s: %s",
                event.kind.value,
                thread_id,
                event.item_id,
                e or "timed out",
            )
            return DispatchResult.UNDELIVERED

        logger.info("Posted %s to thread %s", event.kind.value, thread_id)
        return DispatchResult.DELIVERED
