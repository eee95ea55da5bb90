"""Discord side of MondayBot: mention handling in project threads."""

import logging
from dataclasses import dataclass
from typing import Optional

import discord

from .command_router import CommandRouter, CommandVerb, FileReference
from .config import Config
from .discord_client import DiscordClient
from .errors import MondayBotError, NotLinkedError, UpstreamError
from .formatting import HELP_TEXT, truncate
from .services.command_service import CommandService
from .services.mapping_store import MappingStore

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "❌ Sorry, I encountered an error processing your request."
NOT_IN_THREAD = "❌ Please use @MondayBot commands inside a project thread."


@dataclass
class MentionReply:
    """Reply for a mention; `ok` replies also get a ✅ reaction."""

    text: str
    ok: bool
    react: bool = False


class Bot:
    """Owns the discord.py client and turns mentions into Monday commands."""

    def __init__(
        self,
        config: Config,
        store: MappingStore,
        command_service: CommandService,
        client: Optional[discord.Client] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.command_service = command_service
        self.command_router = CommandRouter()

        if client is None:
            intents = discord.Intents.default()
            intents.message_content = True
            client = discord.Client(intents=intents)
        self.client = client
        self.discord = DiscordClient(client, config.discord)

        self.client.event(self.on_ready)
        self.client.event(self.on_message)

    def is_online(self) -> bool:
        return self.client.is_ready()

    async def start(self) -> None:
        """Connect to the gateway (blocks until the client closes)."""
        await self.client.start(self.config.discord.bot_token.get_secret_value())

    async def login(self) -> None:
        """REST-only login, enough for posting and thread management."""
        await self.client.login(self.config.discord.bot_token.get_secret_value())

    async def close(self) -> None:
        if not self.client.is_closed():
            await self.client.close()

    async def on_ready(self) -> None:
        logger.info("Logged in as %s", self.client.user)
        logger.info("Ready to sync Monday.com and Discord")

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        if self.client.user is None or self.client.user not in message.mentions:
            return

        thread_id = str(message.channel.id) if isinstance(message.channel, discord.Thread) else None
        attachments = [FileReference(name=a.filename, url=a.url) for a in message.attachments]

        reply = await self.handle_mention(
            thread_id=thread_id,
            author=message.author.display_name,
            text=message.content,
            attachments=attachments,
        )

        try:
            if reply.react:
                await message.add_reaction("✅")
            await message.reply(truncate(reply.text))
        except discord.HTTPException as e:
            logger.error("Could not reply to message %s: %s", message.id, e)

    async def handle_mention(
        self,
        *,
        thread_id: Optional[str],
        author: str,
        text: str,
        attachments: Optional[list[FileReference]] = None,
    ) -> MentionReply:
        """Parse a mention, find its item and run the command."""
        if thread_id is None:
            return MentionReply(NOT_IN_THREAD, ok=False)

        command = self.command_router.parse_command(text, thread_id, author, attachments)
        logger.info("Command: %s, Args: %s", command.verb.value, command.arguments)

        if command.verb == CommandVerb.HELP:
            return MentionReply(HELP_TEXT, ok=True)

        try:
            item_id = await self.store.get_reverse(thread_id)
            if item_id is None:
                raise NotLinkedError(thread_id)
            text = await self.command_service.route(command, item_id)
        except UpstreamError as e:
            logger.error("Command %s in thread %s failed: %s", command.verb.value, thread_id, e, exc_info=True)
            return MentionReply(GENERIC_FAILURE, ok=False)
        except MondayBotError as e:
            logger.info("Command %s in thread %s rejected: %s", command.verb.value, thread_id, e)
            return MentionReply(f"❌ {e.user_message}", ok=False)

        return MentionReply(text, ok=True, react=command.verb != CommandVerb.INFO)
