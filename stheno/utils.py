"""Utility functions for Stheno.

Key functions:
    titleize: Convert file names to human-readable titles.
    extract_date_from_name: Extract a date from a file name prefix.
    is_internal_path: Check if a source path should be skipped.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:-|$)")


def titleize(filename: str) -> str:
    """Convert a file name to a human-readable title.

    Drops extensions (including a language part) and a ``YYYY-MM-DD-`` date
    prefix, replaces hyphens and underscores with spaces and capitalizes each
    word.

    Examples:
        >>> titleize("2024-01-15-hello-world.de.md")
        'Hello World'

        >>> titleize("getting_started.html")
        'Getting Started'
    """
    base = filename.split(".", 1)[0]
    base = DATE_PREFIX_RE.sub("", base)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a file name with a YYYY-MM-DD prefix.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world.md")
        datetime.datetime(2024, 1, 15, 0, 0)

        >>> extract_date_from_name("hello-world.md") is None
        True
    """
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def is_internal_path(path: Path) -> bool:
    """Check if any component starts with ``_`` or ``.`` (layouts, drafts, dot files)."""
    return any(part.startswith(("_", ".")) for part in path.parts)


def ensure_clean_dir(path: Path) -> None:
    """Create ``path`` if needed and remove everything inside it.

    The directory itself is kept. Symlinks are removed, not followed.
    """
    path.mkdir(parents=True, exist_ok=True)
    for entry in list(path.iterdir()):
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
