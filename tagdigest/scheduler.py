"""
Periodic summarize-publish-clear pipeline.

Every tick walks the projects that have a backlog, asks the summarizer for a
digest, posts it, and drains the backlog only once both steps succeeded. A
failing project keeps its messages and is retried on the next tick, so a
backlog may be summarized more than once but is never dropped unpublished.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from discord.ext import tasks

from .errors import PublicationFailure, SummarizationFailure
from .models import OutcomeStatus, ProjectOutcome
from .store import MessageStore

log = logging.getLogger("tagdigest.scheduler")


def format_summary_post(project: str, summary: str) -> str:
    return f"## 📋 Summary for [{project}]\n\n{summary}"


class SummaryScheduler:
    def __init__(
        self,
        store: MessageStore,
        summarizer,
        publisher,
        destination: int,
        interval_seconds: float = 3600.0,
        precise_drain: bool = True,
    ):
        self.store = store
        self.summarizer = summarizer
        self.publisher = publisher
        self.destination = destination
        self.interval_seconds = interval_seconds
        self.precise_drain = precise_drain

        self._loop: Optional[tasks.Loop] = None
        self._active = False
        self._tick_lock = asyncio.Lock()
        self.ticks_completed = 0
        self.last_tick_at: Optional[datetime] = None
        self.last_outcomes: list[ProjectOutcome] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Begin ticking every interval_seconds. Calling it twice is a no-op."""
        if self._active:
            log.warning("Summary scheduler is already running")
            return
        self._loop = tasks.loop(seconds=self.interval_seconds)(self._on_tick)
        self._loop.start()
        self._active = True
        log.info(f"Summary scheduler started - running every {self.interval_seconds:g}s")

    def stop(self):
        """Prevent further ticks. A tick already in progress runs to completion."""
        if not self._active:
            return
        self._active = False
        if self._loop is not None:
            self._loop.stop()
        log.info("Summary scheduler stopped")

    def is_running(self) -> bool:
        return self._active

    async def _on_tick(self):
        # An escaping error would end the tasks.Loop while _active stays True
        try:
            await self.run_tick()
        except Exception:
            log.exception("Summarization tick failed")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def run_tick(self) -> list[ProjectOutcome]:
        """Process every project that has a backlog at tick start."""
        async with self._tick_lock:
            projects = self.store.active_projects()
            log.info(
                f"Summarization tick at {datetime.now(timezone.utc):%H:%M:%S} UTC: "
                f"{len(projects)} active project(s)"
            )

            outcomes = []
            for project in projects:
                outcomes.append(await self.process_project(project))

            self.ticks_completed += 1
            self.last_tick_at = datetime.now(timezone.utc)
            self.last_outcomes = outcomes
            return outcomes

    async def process_project(self, project: str) -> ProjectOutcome:
        messages = self.store.get_messages(project)
        if not messages:
            log.info(f"Skipping [{project}]: no pending messages")
            return ProjectOutcome(project, OutcomeStatus.SKIPPED)

        count = len(messages)

        try:
            summary = await self.summarizer.generate_summary(project, messages)
        except SummarizationFailure as e:
            log.error(f"Summarization failed for [{project}] ({count} messages kept): {e}")
            return ProjectOutcome(project, OutcomeStatus.SUMMARIZE_FAILED, count, str(e))
        except Exception as e:
            log.exception(f"Unexpected error summarizing [{project}] ({count} messages kept)")
            return ProjectOutcome(project, OutcomeStatus.SUMMARIZE_FAILED, count, str(e))

        try:
            await self.publisher.publish(self.destination, format_summary_post(project, summary))
        except PublicationFailure as e:
            log.error(f"Publishing failed for [{project}] ({count} messages kept): {e}")
            return ProjectOutcome(project, OutcomeStatus.PUBLISH_FAILED, count, str(e))
        except Exception as e:
            log.exception(f"Unexpected error publishing [{project}] ({count} messages kept)")
            return ProjectOutcome(project, OutcomeStatus.PUBLISH_FAILED, count, str(e))

        try:
            if self.precise_drain:
                self.store.clear(project, count=count)
            else:
                self.store.clear(project)
        except Exception as e:
            log.exception(f"Summary posted for [{project}] but draining {count} messages failed")
            return ProjectOutcome(project, OutcomeStatus.CLEAR_FAILED, count, str(e))
        log.info(f"Summary posted for [{project}] ({count} messages)")
        return ProjectOutcome(project, OutcomeStatus.PUBLISHED, count)

    def get_status(self) -> dict:
        last = Counter(o.status.value for o in self.last_outcomes)
        return {
            "is_running": self._active,
            "interval_seconds": self.interval_seconds,
            "precise_drain": self.precise_drain,
            "tick_in_flight": self._tick_lock.locked(),
            "ticks_completed": self.ticks_completed,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_tick": dict(last),
        }
