"""Delivers summaries to a Discord channel."""

import asyncio
import logging

import discord

from .errors import PublicationFailure

log = logging.getLogger("tagdigest.publisher")

DISCORD_MESSAGE_LIMIT = 2000
CHUNK_TARGET = 1900


def split_message(content: str) -> list[str]:
    """Split *content* into Discord-sized chunks, preferring paragraph breaks."""
    if len(content) <= DISCORD_MESSAGE_LIMIT:
        return [content]

    chunks = []
    current = ""
    for paragraph in content.split("\n\n"):
        # A single oversized paragraph gets hard-wrapped
        while len(paragraph) > CHUNK_TARGET:
            if current.strip():
                chunks.append(current.strip())
                current = ""
            chunks.append(paragraph[:CHUNK_TARGET])
            paragraph = paragraph[CHUNK_TARGET:]
        if len(current) + len(paragraph) + 2 > CHUNK_TARGET:
            chunks.append(current.strip())
            current = ""
        current += paragraph + "\n\n"
    if current.strip():
        chunks.append(current.strip())
    return [c for c in chunks if c]


class DiscordPublisher:
    def __init__(self, client: discord.Client, chunk_delay: float = 0.5):
        self.client = client
        self.chunk_delay = chunk_delay

    async def resolve_channel(self, destination: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(destination)
        if channel is None:
            channel = await self.client.fetch_channel(destination)
        if not isinstance(channel, discord.abc.Messageable):
            raise PublicationFailure(
                f"Channel {destination} does not accept messages",
                destination=destination,
            )
        return channel

    async def publish(self, destination: int, text: str):
        """Send *text* to the channel *destination*, raising on any failure."""
        try:
            channel = await self.resolve_channel(destination)
            chunks = split_message(text)
            for i, chunk in enumerate(chunks):
                await channel.send(chunk)
                if i < len(chunks) - 1:
                    await asyncio.sleep(self.chunk_delay)
        except discord.DiscordException as e:
            raise PublicationFailure(
                f"Could not post to channel {destination}: {e}",
                destination=destination,
            ) from e
        log.info(f"Posted {len(chunks)} message(s) to channel {destination}")
