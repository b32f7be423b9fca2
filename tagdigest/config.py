"""
Environment configuration.

Values come from the process environment, with a local .env file loaded
first if present. Copy .env.example to .env and fill in your tokens.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

REQUIRED_ENV_VARS = ("DISCORD_TOKEN", "ANTHROPIC_API_KEY", "SUMMARY_CHANNEL_ID")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    discord_token: str = ""
    anthropic_api_key: str = ""
    summary_channel_id: Optional[int] = None
    summary_interval_seconds: float = 3600.0
    claude_model: str = "claude-sonnet-4-5-20250929"
    summary_max_tokens: int = 500
    max_prompt_chars: int = 32000
    anthropic_timeout_seconds: float = 60.0
    ignored_channels: tuple[str, ...] = field(default_factory=tuple)
    precise_drain: bool = True
    announce_startup: bool = True
    log_level: str = "INFO"

    def validate(self):
        """Raise ConfigError naming every missing required setting."""
        missing = []
        if not self.discord_token:
            missing.append("DISCORD_TOKEN")
        if not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")
        if self.summary_channel_id is None:
            missing.append("SUMMARY_CHANNEL_ID")
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        if self.summary_interval_seconds <= 0:
            raise ConfigError("SUMMARY_INTERVAL_SECONDS must be positive")


def _get_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be true or false, got {raw!r}")


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from the environment (and .env unless *dotenv* is False)."""
    if dotenv:
        load_dotenv()

    return Settings(
        discord_token=os.getenv("DISCORD_TOKEN", ""),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        summary_channel_id=_get_int("SUMMARY_CHANNEL_ID", None),
        summary_interval_seconds=_get_float("SUMMARY_INTERVAL_SECONDS", 3600.0),
        claude_model=os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5-20250929"),
        summary_max_tokens=_get_int("SUMMARY_MAX_TOKENS", 500),
        max_prompt_chars=_get_int("MAX_PROMPT_CHARS", 32000),
        anthropic_timeout_seconds=_get_float("ANTHROPIC_TIMEOUT_SECONDS", 60.0),
        ignored_channels=tuple(
            c.strip()
            for c in os.getenv("IGNORED_CHANNELS", "").split(",")
            if c.strip()
        ),
        precise_drain=_get_bool("SUMMARY_PRECISE_DRAIN", True),
        announce_startup=_get_bool("ANNOUNCE_STARTUP", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
