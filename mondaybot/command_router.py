"""Command router for parsing @MondayBot mentions."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class CommandVerb(Enum):
    """Available mention commands."""

    UPDATE = "update"
    STATUS = "status"
    ATTACH = "attach"
    HELP = "help"
    INFO = "info"
    DEFAULT = "default"  # no verb: whole message is an update


VERB_ALIASES = {
    "update": CommandVerb.UPDATE,
    "note": CommandVerb.UPDATE,
    "comment": CommandVerb.UPDATE,
    "status": CommandVerb.STATUS,
    "attach": CommandVerb.ATTACH,
    "upload": CommandVerb.ATTACH,
    "help": CommandVerb.HELP,
    "info": CommandVerb.INFO,
}


@dataclass(frozen=True)
class FileReference:
    """A file attached to a Discord message."""

    name: str
    url: str


@dataclass
class ParsedCommand:
    """Mention parsed into a verb and its arguments."""

    thread_id: str
    author_display_name: str
    verb: CommandVerb
    arguments: str
    raw_text: str
    attachments: list[FileReference] = field(default_factory=list)


class CommandRouter:
    """Parse mention text into commands."""

    MENTION_PATTERN = re.compile(r"<@[!&]?\d+>")

    def parse_command(
        self,
        text: Optional[str],
        thread_id: str,
        author_display_name: str,
        attachments: Optional[list[FileReference]] = None,
    ) -> ParsedCommand:
        """
        Extract the command from a mention.

        Args:
            text: The full message text, mentions included.
            thread_id: Thread the message was posted in.
            author_display_name: Who wrote it.
            attachments: Files attached to the message.

        Returns:
            ParsedCommand. Text without a known verb becomes DEFAULT with the
            whole cleaned text as arguments.

        Examples:
            >>> router = CommandRouter()
            >>> cmd = router.parse_command("<@1> update Materials delivered", "9", "sam")
            >>> cmd.verb == CommandVerb.UPDATE
            True
            >>> cmd.arguments
            'Materials delivered'
        """
        raw_text = text or ""
        cleaned = self.strip_mentions(raw_text)

        verb = CommandVerb.DEFAULT
        arguments = cleaned
        parts = cleaned.split(maxsplit=1)
        if parts:
            alias = VERB_ALIASES.get(parts[0].lower())
            if alias is not None:
                verb = alias
                arguments = parts[1].strip() if len(parts) > 1 else ""

        return ParsedCommand(
            thread_id=str(thread_id),
            author_display_name=author_display_name,
            verb=verb,
            arguments=arguments,
            raw_text=raw_text,
            attachments=list(attachments or []),
        )

    def strip_mentions(self, text: str) -> str:
        """
        Remove Discord user and role mentions (``<@123>``, ``<@!123>``,
        ``<@&123>``) and surrounding whitespace.
        """
        return self.MENTION_PATTERN.sub("", text).strip()
