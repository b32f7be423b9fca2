"""Shared fixtures for tagdigest tests."""

from datetime import datetime, timezone

import pytest

from tagdigest.config import Settings
from tagdigest.models import Message
from tagdigest.store import MessageStore


@pytest.fixture
def settings():
    return Settings(
        discord_token="test-token",
        anthropic_api_key="test-key",
        summary_channel_id=555,
        summary_interval_seconds=600,
        ignored_channels=("random",),
    )


@pytest.fixture
def store():
    return MessageStore()


@pytest.fixture
def make_message():
    """Factory for Message records with sensible defaults."""

    def _make(text: str = "hello", author: str = "alice", ts: float = 1700000000.0):
        return Message(
            author=author,
            text=text,
            timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
        )

    return _make
