"""Normalized Monday.com webhook events.

Monday sends loosely shaped payloads where the same datum can live under
several keys. ``normalize_event`` resolves all of that once, so the rest of
the code only ever sees the typed events below.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Inbound event kinds the dispatcher understands."""

    COLUMN_CHANGED = "column_changed"
    COMMENT_CREATED = "comment_created"
    FILE_CREATED = "file_created"
    STATUS_CHANGED = "status_changed"


RAW_EVENT_TYPES = {
    "update_column_value": EventKind.COLUMN_CHANGED,
    "create_update": EventKind.COMMENT_CREATED,
    "create_file": EventKind.FILE_CREATED,
    "change_status_column_value": EventKind.STATUS_CHANGED,
}


@dataclass(frozen=True, kw_only=True)
class ItemEvent:
    """Fields every event carries."""

    item_id: str
    item_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def actor(self) -> str:
        return self.user_name or self.user_id or "Unknown"


@dataclass(frozen=True, kw_only=True)
class ColumnChanged(ItemEvent):
    column_title: str
    new_value: str
    previous_value: str
    column_id: Optional[str] = None
    kind: EventKind = EventKind.COLUMN_CHANGED


@dataclass(frozen=True, kw_only=True)
class CommentCreated(ItemEvent):
    author: str
    text: str
    kind: EventKind = EventKind.COMMENT_CREATED


@dataclass(frozen=True, kw_only=True)
class FileCreated(ItemEvent):
    file_name: str
    file_url: Optional[str] = None
    kind: EventKind = EventKind.FILE_CREATED


@dataclass(frozen=True, kw_only=True)
class StatusChanged(ItemEvent):
    label: str
    color: Optional[str] = None
    kind: EventKind = EventKind.STATUS_CHANGED


NormalizedEvent = Union[ColumnChanged, CommentCreated, FileCreated, StatusChanged]


def is_challenge(payload: Any) -> bool:
    """Monday's URL verification request: a challenge token and no event."""
    return isinstance(payload, dict) and "challenge" in payload and not payload.get("event")


def _first(raw: dict[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def value_text(value: Any) -> Optional[str]:
    """Best human-readable text for a Monday column value."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        label = value.get("label")
        if isinstance(label, dict) and label.get("text"):
            return str(label["text"])
        if isinstance(label, str) and label:
            return label
        for key in ("text", "value", "date", "name"):
            if value.get(key) not in (None, ""):
                return str(value[key])
    return None


def _label_color(value: Any) -> Optional[str]:
    if isinstance(value, dict) and isinstance(value.get("label"), dict):
        return value["label"].get("color") or None
    return None


def normalize_event(payload: dict[str, Any]) -> Optional[NormalizedEvent]:
    """Translate a raw webhook body into a typed event.

    Returns None for payloads without an event, without an item id, or of
    a type we don't relay.
    """
    raw = payload.get("event")
    if not isinstance(raw, dict):
        logger.debug("No event in payload")
        return None

    item_id = _first(raw, "pulseId", "itemId")
    if item_id is None:
        logger.info("Webhook event %s has no item id, ignoring", raw.get("type"))
        return None

    kind = RAW_EVENT_TYPES.get(raw.get("type"))
    if kind is None:
        logger.info("Unhandled webhook event type: %s", raw.get("type"))
        return None

    user_id = _first(raw, "userId")
    common = dict(
        item_id=str(item_id),
        item_name=_first(raw, "pulseName", "itemName"),
        user_id=str(user_id) if user_id is not None else None,
        user_name=_first(raw, "userName"),
    )

    if kind is EventKind.COLUMN_CHANGED:
        return ColumnChanged(
            column_title=_first(raw, "columnTitle", "column_title") or "Field",
            column_id=_first(raw, "columnId", "column_id"),
            new_value=value_text(raw.get("value")) or _first(raw, "textValue") or "Updated",
            previous_value=value_text(raw.get("previousValue")) or "N/A",
            **common,
        )

    if kind is EventKind.COMMENT_CREATED:
        return CommentCreated(
            author=_first(raw, "userName") or "Someone",
            text=_first(raw, "textBody", "body") or "No content",
            **common,
        )

    if kind is EventKind.FILE_CREATED:
        file_name = _first(raw, "fileName")
        file_url = _first(raw, "fileUrl", "url")
        files = (raw.get("value") or {}).get("files") if isinstance(raw.get("value"), dict) else None
        if files and isinstance(files[0], dict):
            file_name = file_name or files[0].get("name")
            file_url = file_url or files[0].get("url")
        return FileCreated(file_name=file_name or "File", file_url=file_url, **common)

    return StatusChanged(
        label=value_text(raw.get("value")) or "Unknown",
        color=_label_color(raw.get("value")),
        **common,
    )
