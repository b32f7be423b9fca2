"""
Tag Digest Bot — periodic Claude summaries of [Project] tagged Discord chatter.

Usage:
  1. Copy .env.example to .env and fill in your tokens
  2. pip install -e .
  3. python -m tagdigest            # run the bot
     python -m tagdigest --check    # log in, post a test message, exit
"""

import logging
import sys

import discord

from .bot import DigestBot
from .config import Settings, load_settings
from .errors import ConfigError

log = logging.getLogger("tagdigest")


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run_connection_check(settings: Settings):
    """Log in, send a hello message to the summary channel, then exit."""
    intents = discord.Intents.default()
    client = discord.Client(intents=intents)

    @client.event
    async def on_ready():
        log.info(f"✅ Logged in as {client.user}  (ID: {client.user.id})")
        for guild in client.guilds:
            log.info(f"   • {guild.name}  (ID: {guild.id})")

        try:
            channel = client.get_channel(settings.summary_channel_id)
            if channel is None:
                channel = await client.fetch_channel(settings.summary_channel_id)
            await channel.send("👋 Hello! Bot connection test successful.")
            log.info(f"📨 Test message sent to #{getattr(channel, 'name', channel.id)}")
        except discord.DiscordException as e:
            log.error(f"❌ Could not post to channel {settings.summary_channel_id}: {e}")
        finally:
            log.info("Done — shutting down.")
            await client.close()

    client.run(settings.discord_token, log_handler=None)


def main():
    try:
        settings = load_settings()
        settings.validate()
    except ConfigError as e:
        setup_logging()
        log.error(f"{e}. Check your .env file.")
        sys.exit(1)

    setup_logging(settings.log_level)

    if "--check" in sys.argv:
        run_connection_check(settings)
        return

    bot = DigestBot(settings)
    log.info("Starting Tag digest bot...")
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
