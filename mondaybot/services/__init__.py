"""Service layer for the sync engine and its external APIs."""

from .command_service import CommandService
from .database import DatabaseService, open_database
from .keyed_lock import KeyedLock
from .mapping_store import MappingRecord, MappingStore
from .monday_service import MondayItem, MondayService
from .thread_resolver import ThreadResolver
from .webhook_handler import DispatchResult, WebhookHandler

__all__ = [
    "CommandService",
    "DatabaseService",
    "DispatchResult",
    "KeyedLock",
    "MappingRecord",
    "MappingStore",
    "MondayItem",
    "MondayService",
    "ThreadResolver",
    "WebhookHandler",
    "open_database",
]
