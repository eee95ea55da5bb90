"""Discord message rendering for Monday events and bot replies."""

from typing import TYPE_CHECKING, Optional

from .config import SyncConfig
from .events import (
    ColumnChanged,
    CommentCreated,
    FileCreated,
    NormalizedEvent,
    StatusChanged,
)

if TYPE_CHECKING:
    from .services.monday_service import MondayItem

DISCORD_MESSAGE_LIMIT = 2000
DISCORD_THREAD_NAME_LIMIT = 100
ESCALATION_MARKER = "🚨"

HELP_TEXT = """**MondayBot Commands**

Use these commands in project threads to sync with Monday.com:

**📝 Add Update:**
`@MondayBot update Materials delivered to site`
`@MondayBot note Crew size increased to 8`

**📊 Change Status:**
`@MondayBot status In Progress`
`@MondayBot status Complete`

**📎 Upload Files:**
`@MondayBot attach [attach files] Site progress photos`

**📋 Project Info:**
`@MondayBot info`

**💡 Quick Update:**
Just mention @MondayBot with your message:
`@MondayBot Foundation work completed today`

All updates include your Discord username and are posted to the Monday.com project."""


def truncate(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def quote(text: str) -> str:
    """Render text as a Discord quote block."""
    return "\n".join(f"> {line}" for line in text.splitlines() or [""])


class MessageFormatter:
    """Renders events using the configured label, urgency and symbol tables."""

    def __init__(self, sync: SyncConfig):
        self.sync = sync
        self._labels = {k.strip().lower(): v for k, v in sync.field_labels.items()}
        self._urgent = {f.strip().lower() for f in sync.urgent_fields}

    def label_for(self, field: str) -> str:
        return self._labels.get(field.strip().lower(), field)

    def is_urgent(self, field: str) -> bool:
        return field.strip().lower() in self._urgent

    def status_symbol(self, label: str) -> str:
        """First symbol whose keywords appear in the label, else the default."""
        lowered = label.lower()
        for entry in self.sync.status_symbols:
            if any(keyword.lower() in lowered for keyword in entry.keywords):
                return entry.symbol
        return self.sync.default_status_symbol

    def marker(self, item_id: str) -> str:
        return self.sync.marker_template.format(item_id=item_id)

    def format_event(self, event: NormalizedEvent) -> str:
        if isinstance(event, ColumnChanged):
            message = self.column_changed(event)
        elif isinstance(event, CommentCreated):
            message = self.comment_created(event)
        elif isinstance(event, FileCreated):
            message = self.file_created(event)
        elif isinstance(event, StatusChanged):
            message = self.status_changed(event)
        else:
            raise TypeError(f"Unsupported event: {event!r}")
        return truncate(message)

    def column_changed(self, event: ColumnChanged) -> str:
        label = self.label_for(event.column_title)
        if self.is_urgent(event.column_title):
            header = f"{ESCALATION_MARKER} **URGENT: {label} Changed** {ESCALATION_MARKER}"
        else:
            header = f"🔄 **{label} Changed**"
        return (
            f"{header}\n"
            f"~~{event.previous_value}~~ → **{event.new_value}**\n"
            f"_Updated by {event.actor}_"
        )

    def comment_created(self, event: CommentCreated) -> str:
        return f"💬 **New Comment from {event.author}**\n{quote(event.text)}"

    def file_created(self, event: FileCreated) -> str:
        message = f"📎 **File Uploaded: {event.file_name}**"
        if event.file_url:
            message += f"\n[View File]({event.file_url})"
        return message

    def status_changed(self, event: StatusChanged) -> str:
        return f"{self.status_symbol(event.label)} **Status Changed: {event.label}**"

    def thread_title(self, project_name: str) -> str:
        return truncate(project_name.strip() or "Unknown Project", DISCORD_THREAD_NAME_LIMIT)

    def thread_opening(self, item_id: str, project_name: str) -> str:
        """First message of a new project thread; carries the item marker."""
        return truncate(
            f"📋 **{project_name}**\n"
            f"Updates from Monday.com are posted here. Mention @MondayBot to reply.\n\n"
            f"{self.marker(item_id)}"
        )

    def project_info(self, item: "MondayItem", fields: Optional[list[str]] = None) -> str:
        fields = self.sync.info_fields if fields is None else fields
        snapshot = {title.lower(): text for title, text in item.field_snapshot().items()}

        lines = [
            "📋 **Project Information**",
            "",
            f"**{item.name}**",
            f"Monday.com ID: `{item.id}`",
            "",
        ]
        for field in fields:
            text = snapshot.get(field.lower())
            if not text:
                continue
            label = self.label_for(field)
            if self.is_urgent(field):
                lines.append(f"{ESCALATION_MARKER} **{label}:** {text}")
            else:
                lines.append(f"• **{label}:** {text}")
        if len(lines) == 5:
            lines.append("_No project details set._")
        return truncate("\n".join(lines))
