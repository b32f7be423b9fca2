"""
In-memory per-project message store.

Ingestion appends to it from the Discord event handlers while the summary
scheduler reads and drains it on its own cadence. Every operation takes a
single lock and never awaits, so each call is atomic for asyncio tasks and
threads alike. Nothing outside this class touches a project log directly.
"""

import copy
import logging
import threading
from typing import Optional

from .errors import StoreInconsistency
from .models import Message

log = logging.getLogger("tagdigest.store")


class MessageStore:
    def __init__(self):
        # { project: [Message, ...] }
        self._logs: dict[str, list[Message]] = {}
        self._lock = threading.Lock()

    def store(self, project: str, message: Message):
        """Append *message* to *project*'s log, creating the log if needed.

        The message shape is not validated here; that happens at ingestion.
        """
        with self._lock:
            self._logs.setdefault(project, []).append(message)
            count = len(self._logs[project])
        log.debug(f"Stored message for [{project}] ({count} pending)")

    def get_messages(self, project: str) -> list[Message]:
        """Copy of the project's pending messages in arrival order."""
        with self._lock:
            return list(self._logs.get(project, ()))

    def has_messages(self, project: str) -> bool:
        with self._lock:
            return bool(self._logs.get(project))

    def message_count(self, project: str) -> int:
        with self._lock:
            return len(self._logs.get(project, ()))

    def active_projects(self) -> list[str]:
        """Projects with a non-empty backlog, sorted by name."""
        with self._lock:
            return sorted(p for p, msgs in self._logs.items() if msgs)

    def known_projects(self) -> list[str]:
        """Every project ever stored to, including drained ones."""
        with self._lock:
            return sorted(self._logs)

    def clear(self, project: str, count: Optional[int] = None):
        """Drain *project*'s log, keeping the key.

        With no *count* the whole current log is dropped. With *count* only
        the first *count* messages go, so anything appended after a reader
        took its copy stays queued for the next cycle.
        """
        with self._lock:
            messages = self._logs.get(project)
            if messages is None:
                return
            if count is None:
                dropped = len(messages)
                self._logs[project] = []
            else:
                if count > len(messages):
                    raise StoreInconsistency(
                        f"Cannot drain {count} messages from [{project}]: "
                        f"only {len(messages)} pending"
                    )
                dropped = count
                self._logs[project] = messages[count:]
            remaining = len(self._logs[project])
        log.debug(f"Cleared {dropped} messages from [{project}] ({remaining} remain)")

    def snapshot(self) -> dict[str, list[Message]]:
        """Deep copy of the whole store, for diagnostics."""
        with self._lock:
            return copy.deepcopy(self._logs)

    def reset(self):
        """Drop every project, keys included."""
        with self._lock:
            self._logs = {}
        log.debug("Message store reset")
