"""Finds or creates the one Discord thread belonging to a Monday item."""

import asyncio
import logging
from typing import Optional, Protocol

from ..errors import MappingConflictError, ThreadCreationFailed, UpstreamError
from ..formatting import MessageFormatter
from .keyed_lock import KeyedLock
from .mapping_store import MappingStore

logger = logging.getLogger(__name__)


class ThreadPlatform(Protocol):
    async def find_thread_with_marker(self, marker: str) -> Optional[str]: ...

    async def create_thread(self, title: str, content: str) -> str: ...


class ThreadResolver:
    """Resolves item ids to thread ids, creating at most one thread per item.

    Resolution for a given item is serialized by a per-item lock; a caller
    that waited on the lock re-reads the store and returns whatever the
    previous holder mapped instead of searching or creating again.
    """

    def __init__(
        self,
        store: MappingStore,
        platform: ThreadPlatform,
        formatter: MessageFormatter,
        timeout: float = 30.0,
    ):
        self.store = store
        self.platform = platform
        self.formatter = formatter
        self.timeout = timeout
        self._locks = KeyedLock()

    async def resolve(self, item_id: str, project_name: str) -> str:
        """Return the thread id for an item, creating the thread if needed.

        Raises:
            ThreadCreationFailed: If the thread couldn't be found or created
                within the timeout. Nothing is written to the store.
        """
        item_id = str(item_id)
        record = await self.store.get(item_id)
        if record:
            return record.thread_id

        async with self._locks.hold(item_id):
            record = await self.store.get(item_id)
            if record:
                logger.debug("Item %s was mapped while waiting: %s", item_id, record.thread_id)
                return record.thread_id

            try:
                thread_id = await asyncio.wait_for(
                    self._find_or_create(item_id, project_name), timeout=self.timeout
                )
            except asyncio.TimeoutError as e:
                raise ThreadCreationFailed(item_id, f"timed out after {self.timeout}s") from e
            except UpstreamError as e:
                raise ThreadCreationFailed(item_id, str(e)) from e

            try:
                await self.store.put(item_id, thread_id, project_name)
            except MappingConflictError as e:
                raise ThreadCreationFailed(item_id, str(e)) from e
            return thread_id

    async def _find_or_create(self, item_id: str, project_name: str) -> str:
        marker = self.formatter.marker(item_id)

        logger.info("Thread not mapped for Monday item %s, searching...", item_id)
        thread_id = await self.platform.find_thread_with_marker(marker)
        if thread_id:
            logger.info("Found existing thread %s for Monday item %s", thread_id, item_id)
            return thread_id

        logger.info("No thread for Monday item %s, creating one", item_id)
        return await self.platform.create_thread(
            self.formatter.thread_title(project_name),
            self.formatter.thread_opening(item_id, project_name),
        )
