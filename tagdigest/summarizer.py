"""
Claude-backed project summarization.

Turns a project's queued messages into a short progress digest. Errors from
the API, and responses that carry no text, surface as SummarizationFailure
so the scheduler can keep the backlog for the next tick.
"""

import logging
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from .errors import SummarizationFailure
from .models import Message

log = logging.getLogger("tagdigest.summarizer")

SUMMARY_PROMPT = """Please provide a concise summary of the following Discord messages for project "{project}".

Focus on:
- Key decisions made
- Important updates or progress
- Action items or next steps
- Any blockers or issues identified

Attribute decisions and commitments to specific people.

Messages:
{messages}

Please provide a clear, actionable summary in 2-3 sentences."""


def _extract_text(response) -> str:
    """Extract text from a Claude response that may contain non-text blocks."""
    parts = []
    for block in getattr(response, "content", None) or []:
        text = getattr(block, "text", None)
        if isinstance(text, str) and text.strip():
            parts.append(text)
    return "\n\n".join(parts)


def truncate_transcript(text: str, max_chars: int) -> str:
    """Keep roughly the last *max_chars* characters, cut at a message boundary."""
    if len(text) <= max_chars:
        return text
    truncated = text[-max_chars:]
    first_newline = truncated.find("\n[")
    if 0 <= first_newline < max_chars // 2:
        truncated = truncated[first_newline + 1:]
    return "... (truncated, earlier messages omitted)\n" + truncated


class Summarizer:
    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 500,
        max_prompt_chars: int = 32000,
        timeout: float = 60.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.max_prompt_chars = max_prompt_chars
        self.client = client or AsyncAnthropic(api_key=api_key, timeout=timeout)

    @staticmethod
    def format_messages(messages: list[Message]) -> str:
        return "\n".join(
            f"[{m.timestamp_iso()}] {m.author}: {m.text}" for m in messages
        )

    def build_prompt(self, project: str, formatted_messages: str) -> str:
        return SUMMARY_PROMPT.format(
            project=project,
            messages=truncate_transcript(formatted_messages, self.max_prompt_chars),
        )

    async def generate_summary(self, project: str, messages: list[Message]) -> str:
        """Summarize *messages* for *project*.

        An empty batch short-circuits without calling the API.
        """
        if not messages:
            return f"No messages found for project {project}."

        prompt = self.build_prompt(project, self.format_messages(messages))
        log.info(
            f"Generating summary for [{project}]: {len(messages)} messages, "
            f"{len(prompt)} chars to Claude ({self.model})"
        )

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise SummarizationFailure(
                f"Claude request failed for [{project}]: {e}",
                project=project,
                message_count=len(messages),
            ) from e

        summary = _extract_text(response)
        if not summary:
            raise SummarizationFailure(
                f"Claude returned no text content for [{project}]",
                project=project,
                message_count=len(messages),
            )
        return summary

    def get_status(self) -> dict:
        return {
            "service": "Anthropic Claude",
            "model": self.model,
            "api_key_configured": bool(self.api_key),
        }
