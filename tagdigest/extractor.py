"""
Project tag extraction.

A message belongs to a project when its text carries a bracketed label,
e.g. "[Backend] merged the auth PR". Tags may appear anywhere in the text
and a single message can carry several of them.
"""

import re
from typing import Optional

# At least one non-bracket character between the brackets
_TAG_RE = re.compile(r"\[([^\[\]]+)\]")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_projects(text) -> list[str]:
    """Return every bracket tag in *text*, left to right, duplicates kept.

    The bracket interior is returned as written; callers that need a stable
    key must pass each entry through normalize_project_name().
    """
    if not isinstance(text, str) or not text:
        return []
    return [m for m in _TAG_RE.findall(text) if m.strip()]


def extract_project(text) -> Optional[str]:
    """First tag found anywhere in *text*, or None."""
    projects = extract_projects(text)
    return projects[0] if projects else None


def has_project_tag(text) -> bool:
    return bool(extract_projects(text))


def normalize_project_name(name) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    if not isinstance(name, str) or not name:
        return ""
    return _WHITESPACE_RE.sub(" ", name).strip()
