"""Discord client wrapper for project forum threads."""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import discord

from .config import DiscordConfig
from .errors import UpstreamError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _discord_call(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except discord.HTTPException as e:
        logger.error("Discord %s failed (HTTP %s): %s", operation, e.status, e.text)
        raise UpstreamError("discord", operation, f"HTTP {e.status}: {e.text}") from e
    except discord.ClientException as e:
        logger.error("Discord %s failed: %s", operation, e)
        raise UpstreamError("discord", operation, str(e)) from e


def contains_marker(content: str, marker: str) -> bool:
    """True if `marker` appears in content and isn't the prefix of a longer id."""
    return re.search(re.escape(marker) + r"(?!\w)", content) is not None


class DiscordClient:
    """Thread lookups, creation and posting inside the projects category."""

    def __init__(self, client: discord.Client, config: DiscordConfig) -> None:
        self.client = client
        self.config = config

    def is_ready(self) -> bool:
        return self.client.is_ready()

    async def _guild(self) -> discord.Guild:
        guild = self.client.get_guild(self.config.guild_id)
        if guild is None:
            guild = await self.client.fetch_guild(self.config.guild_id)
        return guild

    async def _project_forums(self, guild: discord.Guild) -> list[discord.ForumChannel]:
        channels = await guild.fetch_channels()
        return [
            channel
            for channel in channels
            if isinstance(channel, discord.ForumChannel)
            and channel.category_id == self.config.projects_category_id
        ]

    @staticmethod
    async def _first_message(thread: discord.Thread) -> Optional[discord.Message]:
        async for message in thread.history(limit=1, oldest_first=True):
            return message
        return None

    async def find_thread_with_marker(self, marker: str) -> Optional[str]:
        """Search active then archived project threads for one whose first
        message carries `marker`. Returns the first match's id."""
        async with _discord_call("find_thread"):
            guild = await self._guild()
            forums = await self._project_forums(guild)
            if not forums:
                logger.warning(
                    "No forum channels in category %s", self.config.projects_category_id
                )
                return None

            active = await guild.active_threads()
            for forum in forums:
                candidates = [t for t in active if t.parent_id == forum.id]
                async for thread in forum.archived_threads(limit=None):
                    candidates.append(thread)

                for thread in candidates:
                    first = await self._first_message(thread)
                    if first and contains_marker(first.content, marker):
                        logger.debug("Found %r in thread %s (%s)", marker, thread.id, thread.name)
                        return str(thread.id)
        return None

    async def _target_forum(self, guild: discord.Guild) -> discord.ForumChannel:
        if self.config.projects_forum_id:
            channel = guild.get_channel(self.config.projects_forum_id)
            if channel is None:
                channel = await guild.fetch_channel(self.config.projects_forum_id)
            if isinstance(channel, discord.ForumChannel):
                return channel
            raise UpstreamError(
                "discord",
                "create_thread",
                f"channel {self.config.projects_forum_id} is not a forum",
            )

        forums = await self._project_forums(guild)
        if not forums:
            raise UpstreamError(
                "discord",
                "create_thread",
                f"no forum channel in category {self.config.projects_category_id}",
            )
        return forums[0]

    async def create_thread(self, title: str, content: str) -> str:
        """Open a forum post and return the new thread's id."""
        async with _discord_call("create_thread"):
            guild = await self._guild()
            forum = await self._target_forum(guild)
            created = await forum.create_thread(name=title, content=content)
            thread = created.thread if hasattr(created, "thread") else created
            logger.info("Created thread %s (%s) in forum %s", thread.id, title, forum.name)
            return str(thread.id)

    async def send_message(self, thread_id: str, content: str) -> None:
        async with _discord_call("send_message"):
            channel = self.client.get_channel(int(thread_id))
            if channel is None:
                channel = await self.client.fetch_channel(int(thread_id))
            if not isinstance(channel, discord.abc.Messageable):
                raise UpstreamError("discord", "send_message", f"channel {thread_id} can't take messages")
            await channel.send(content)
            logger.debug("Posted message to thread %s", thread_id)
