"""
Discord bot: captures project-tagged messages and hosts the digest scheduler.

Any message carrying one or more [Project] tags is queued under each
normalized project name. The scheduler periodically posts a Claude summary
per project to the configured summary channel.
"""

import logging
from typing import Optional

import discord
from discord.ext import commands

from .config import Settings
from .errors import PublicationFailure
from .extractor import extract_projects, normalize_project_name
from .models import Message, OutcomeStatus
from .publisher import DiscordPublisher
from .scheduler import SummaryScheduler
from .store import MessageStore
from .summarizer import Summarizer

log = logging.getLogger("tagdigest.bot")

STARTUP_NOTICE = (
    "🚀 Tag digest bot is online and watching for [Project] tagged messages. "
    "Summaries are posted every {interval}."
)
SHUTDOWN_NOTICE = "👋 Tag digest bot is going offline. Pending messages are not kept."

_OUTCOME_ICONS = {
    OutcomeStatus.PUBLISHED: "✅",
    OutcomeStatus.SKIPPED: "⏭️",
    OutcomeStatus.SUMMARIZE_FAILED: "❌",
    OutcomeStatus.PUBLISH_FAILED: "❌",
    OutcomeStatus.CLEAR_FAILED: "⚠️",
}


def _describe_interval(seconds: float) -> str:
    if seconds % 3600 == 0:
        hours = int(seconds // 3600)
        return "hour" if hours == 1 else f"{hours} hours"
    if seconds % 60 == 0:
        minutes = int(seconds // 60)
        return "minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


def message_from_discord(msg: discord.Message) -> Message:
    return Message(
        author=msg.author.display_name,
        text=msg.content,
        timestamp=msg.created_at,
        channel_id=msg.channel.id,
    )


class DigestBot(commands.Bot):
    def __init__(
        self,
        settings: Settings,
        store: Optional[MessageStore] = None,
        summarizer: Optional[Summarizer] = None,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(command_prefix="!", intents=intents, help_command=None)

        self.settings = settings
        self.store = store or MessageStore()
        self.summarizer = summarizer or Summarizer(
            api_key=settings.anthropic_api_key,
            model=settings.claude_model,
            max_tokens=settings.summary_max_tokens,
            max_prompt_chars=settings.max_prompt_chars,
            timeout=settings.anthropic_timeout_seconds,
        )
        self.publisher = DiscordPublisher(self)
        self.scheduler = SummaryScheduler(
            self.store,
            self.summarizer,
            self.publisher,
            destination=settings.summary_channel_id,
            interval_seconds=settings.summary_interval_seconds,
            precise_drain=settings.precise_drain,
        )
        self._announced = False

        self._setup_commands()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, msg: discord.Message) -> list[str]:
        """Queue *msg* under every project it is tagged with."""
        if msg.author.bot or msg.guild is None or not (msg.content or "").strip():
            return []
        channel_name = getattr(msg.channel, "name", None)
        if channel_name in self.settings.ignored_channels:
            return []

        projects = []
        for tag in extract_projects(msg.content):
            project = normalize_project_name(tag)
            if not project:
                continue
            self.store.store(project, message_from_discord(msg))
            projects.append(project)

        if projects:
            log.info(
                f"Queued message from {msg.author.display_name} in "
                f"#{channel_name} for {', '.join(f'[{p}]' for p in projects)}"
            )
        return projects

    async def on_message(self, msg: discord.Message):
        try:
            self.ingest(msg)
        except Exception:
            log.exception("Error handling message event")
        await self.process_commands(msg)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def on_ready(self):
        log.info(f"Logged in as {self.user} (ID: {self.user.id})")
        log.info(f"Connected to {len(self.guilds)} guild(s)")
        for guild in self.guilds:
            log.info(f"  - {guild.name} ({guild.member_count} members)")

        channel_id = self.settings.summary_channel_id
        if self.get_channel(channel_id) is None:
            log.warning(
                f"    ⚠ Summary channel {channel_id} is not visible to the bot. "
                f"Check SUMMARY_CHANNEL_ID in .env"
            )

        if self.settings.announce_startup and not self._announced:
            self._announced = True
            await self._announce(
                STARTUP_NOTICE.format(
                    interval=_describe_interval(self.settings.summary_interval_seconds)
                )
            )

        self.scheduler.start()

    async def close(self):
        self.scheduler.stop()
        if self.settings.announce_startup and self._announced and self.is_ready():
            await self._announce(SHUTDOWN_NOTICE)
        log.info("Shutting down Tag digest bot...")
        await super().close()

    async def _announce(self, text: str):
        try:
            await self.publisher.publish(self.settings.summary_channel_id, text)
        except PublicationFailure as e:
            log.error(f"Failed to send notice to summary channel: {e}")

    def get_status(self) -> dict:
        active = self.store.active_projects()
        return {
            "bot": {
                "is_ready": self.is_ready(),
                "guilds": len(self.guilds),
                "summary_channel_id": self.settings.summary_channel_id,
            },
            "store": {
                "known_projects": len(self.store.known_projects()),
                "active_projects": {p: self.store.message_count(p) for p in active},
            },
            "summarizer": self.summarizer.get_status(),
            "scheduler": self.scheduler.get_status(),
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _setup_commands(self):
        @self.command(name="status")
        async def cmd_status(ctx: commands.Context):
            """!status — Show pending messages per project."""
            status = self.get_status()
            pending = status["store"]["active_projects"]
            sched = status["scheduler"]

            lines = ["**📊 Digest status**"]
            if pending:
                for project, count in pending.items():
                    lines.append(f"• [{project}]: {count} pending")
            else:
                lines.append("No pending project messages.")
            state = "running" if sched["is_running"] else "stopped"
            lines.append(
                f"Scheduler {state}, every "
                f"{_describe_interval(sched['interval_seconds'])}; "
                f"{sched['ticks_completed']} tick(s) so far."
            )
            await ctx.send("\n".join(lines))

        @self.command(name="digest")
        async def cmd_digest(ctx: commands.Context):
            """!digest — Summarize all pending projects now."""
            await ctx.send("⏳ Generating project summaries...")
            outcomes = await self.scheduler.run_tick()
            if not outcomes:
                await ctx.send("No pending project messages.")
                return
            lines = [
                f"{_OUTCOME_ICONS[o.status]} [{o.project}]: {o.status.value}"
                f" ({o.message_count} messages)"
                for o in outcomes
            ]
            await ctx.send("\n".join(lines))

        @self.command(name="help")
        async def cmd_help(ctx: commands.Context):
            """!help — Show available commands."""
            help_text = """**📋 Tag Digest Bot Commands**

`!status` — Show pending messages per project
`!digest` — Summarize all pending projects now
`!help` — Show this message

Tag a message with `[Project]` (several tags are fine) and it is included in that project's next summary, posted every {interval} in <#{channel}>.
""".format(
                interval=_describe_interval(self.settings.summary_interval_seconds),
                channel=self.settings.summary_channel_id,
            )
            await ctx.send(help_text)
