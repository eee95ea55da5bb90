"""Executes thread commands against the linked Monday item."""

import logging

from ..command_router import CommandVerb, ParsedCommand
from ..errors import NoStatusColumnError, UpstreamError, ValidationError
from ..formatting import HELP_TEXT, MessageFormatter
from .monday_service import MondayService

logger = logging.getLogger(__name__)


def attribution(author: str, text: str) -> str:
    return f"**From {author} (Discord)**:\n{text}"


class CommandService:
    """Routes parsed commands to Monday mutations and returns the reply text."""

    def __init__(self, monday: MondayService, formatter: MessageFormatter):
        self.monday = monday
        self.formatter = formatter

    async def route(self, command: ParsedCommand, item_id: str) -> str:
        """Run a command for `item_id`.

        Raises:
            ValidationError: Missing text, status or attachments.
            NoStatusColumnError: STATUS on an item without a status column.
            UpstreamError: Monday rejected or didn't answer a call.
        """
        logger.info(
            "Command %s from %s for Monday item %s",
            command.verb.value,
            command.author_display_name,
            item_id,
        )

        if command.verb in (CommandVerb.UPDATE, CommandVerb.DEFAULT):
            return await self._update(command, item_id)
        if command.verb == CommandVerb.STATUS:
            return await self._status(command, item_id)
        if command.verb == CommandVerb.ATTACH:
            return await self._attach(command, item_id)
        if command.verb == CommandVerb.INFO:
            return await self._info(item_id)
        return HELP_TEXT

    async def _update(self, command: ParsedCommand, item_id: str) -> str:
        if not command.arguments:
            raise ValidationError(
                "Please provide update text. Example:\n`@MondayBot update Materials delivered to site`"
            )
        await self.monday.add_update(item_id, attribution(command.author_display_name, command.arguments))
        return "✅ Update posted to Monday.com"

    async def _status(self, command: ParsedCommand, item_id: str) -> str:
        status_text = command.arguments
        if not status_text:
            raise ValidationError("Please specify a status. Example:\n`@MondayBot status In Progress`")

        item = await self.monday.get_item(item_id)
        if item is None:
            raise UpstreamError("monday", "get_item", f"item {item_id} not found")

        column = item.find_status_column()
        if column is None:
            raise NoStatusColumnError(item_id)

        await self.monday.change_column_value(item.board_id, item_id, column.id, status_text)
        logger.info("Changed status of item %s to %r", item_id, status_text)
        return f"✅ Status changed to: **{status_text}**"

    async def _attach(self, command: ParsedCommand, item_id: str) -> str:
        if not command.attachments:
            raise ValidationError(
                "Please attach files to upload. Example:\n"
                "`@MondayBot attach [attach files] Site progress photos`"
            )

        uploaded = 0
        failed = []
        for attachment in command.attachments:
            try:
                await self.monday.upload_file(item_id, attachment.url, attachment.name)
                uploaded += 1
            except UpstreamError as e:
                logger.error("Error uploading file %r to item %s: %s", attachment.name, item_id, e)
                failed.append(attachment.name)

        caption_failed = False
        if command.arguments:
            body = f"{command.arguments}\n\n_{len(command.attachments)} file(s) attached_"
            try:
                await self.monday.add_update(item_id, attribution(command.author_display_name, body))
            except UpstreamError as e:
                logger.error("Error posting attachment caption to item %s: %s", item_id, e)
                caption_failed = True

        reply = f"✅ Uploaded {uploaded} file(s) to Monday.com"
        if failed:
            reply += f"\n⚠️ Failed to upload: {', '.join(failed)}"
        if caption_failed:
            reply += "\n⚠️ Caption not posted"
        return reply

    async def _info(self, item_id: str) -> str:
        item = await self.monday.get_item(item_id)
        if item is None:
            raise UpstreamError("monday", "get_item", f"item {item_id} not found")
        return self.formatter.project_info(item)
