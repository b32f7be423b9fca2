"""Records passed between ingestion, the store and the scheduler."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

Timestamp = Union[datetime, float, int, str, None]


@dataclass(frozen=True)
class Message:
    """A single chat message queued for a project digest."""

    author: str
    text: str
    timestamp: Timestamp = None
    channel_id: Optional[int] = None

    def timestamp_iso(self) -> str:
        """Render the timestamp as ISO-8601, whatever form it arrived in."""
        ts = self.timestamp
        if isinstance(ts, datetime):
            return ts.isoformat()
        if isinstance(ts, (int, float, str)):
            # Nanosecond or monotonic tokens fall outside datetime's range
            try:
                return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat()
            except (OverflowError, OSError, ValueError):
                return str(ts)
        return "unknown time"


class OutcomeStatus(str, Enum):
    SKIPPED = "skipped"
    PUBLISHED = "published"
    SUMMARIZE_FAILED = "summarize_failed"
    PUBLISH_FAILED = "publish_failed"
    CLEAR_FAILED = "clear_failed"


@dataclass(frozen=True)
class ProjectOutcome:
    """Result of one project's summarize-publish-clear pass within a tick."""

    project: str
    status: OutcomeStatus
    message_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.SKIPPED, OutcomeStatus.PUBLISHED)
