"""Exception types shared across the digest pipeline."""

from typing import Optional


class TagDigestError(Exception):
    """Base class for all tagdigest errors."""


class ConfigError(TagDigestError):
    """Raised when the environment is missing or has malformed settings."""


class ExtractionError(TagDigestError):
    """Tag extraction is total over its input; this is never raised."""


class StoreInconsistency(TagDigestError):
    """A project log is shorter than a prefix previously read from it."""


class SummarizationFailure(TagDigestError):
    """The summarization service errored or returned no usable text."""

    def __init__(self, message: str, project: Optional[str] = None,
                 message_count: int = 0):
        super().__init__(message)
        self.project = project
        self.message_count = message_count


class PublicationFailure(TagDigestError):
    """A summary could not be delivered to its destination channel."""

    def __init__(self, message: str, project: Optional[str] = None,
                 destination: Optional[int] = None):
        super().__init__(message)
        self.project = project
        self.destination = destination
