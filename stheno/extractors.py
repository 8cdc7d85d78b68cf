"""Meta information extractors for Stheno.

This module reads meta information from source files: YAML front matter and
named content blocks of page files, and file-system derived values such as
dates and fallback titles.

Key pieces:
- extract_frontmatter: Split YAML front matter from the body.
- split_blocks: Split a page body into named blocks.
- TitleExtractor / DateExtractor: File based meta information.
- CompositeMetadataExtractor: Runs several extractors and merges results.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .protocols import MetadataExtractor
from .utils import extract_date_from_name, titleize

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)
BLOCK_SEPARATOR_RE = re.compile(r"^---[ \t]+name:[ \t]*([\w-]+)[ \t]*$", re.MULTILINE)

DEFAULT_BLOCK = "content"


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML front matter from content.

    Front matter that is not valid YAML or not a mapping is ignored (and
    logged) and the text is returned unchanged.

    Returns:
        Tuple of (front matter dict, remaining content).
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        logger.warning("Ignoring invalid front matter: %s", exc)
        return {}, text
    if not isinstance(data, dict):
        logger.warning("Ignoring front matter of type %s", type(data).__name__)
        return {}, text
    return data, text[match.end() :]


def split_blocks(body: str) -> dict[str, str]:
    """Split a page body into named blocks.

    Blocks are separated by lines of the form ``--- name:<block>``. Text
    before the first separator is the ``content`` block.

    Examples:
        >>> split_blocks("Main\\n--- name:sidebar\\nSide")
        {'content': 'Main', 'sidebar': 'Side'}
    """
    blocks: dict[str, str] = {}
    name = DEFAULT_BLOCK
    pos = 0
    for match in BLOCK_SEPARATOR_RE.finditer(body):
        chunk = body[pos : match.start()]
        if pos > 0 or chunk.strip():
            blocks[name] = chunk.rstrip("\n")
        name = match.group(1)
        pos = match.end() + 1 if body.startswith("\n", match.end()) else match.end()
    blocks[name] = body[pos:].rstrip("\n")
    return blocks


def parse_page(text: str) -> tuple[dict[str, Any], dict[str, str]]:
    """Return the front matter and the named blocks of a page file."""
    frontmatter, body = extract_frontmatter(text)
    return frontmatter, split_blocks(body)


class TitleExtractor:
    """Provides a fallback title from the file name."""

    def extract(self, path: Path) -> dict[str, Any]:
        return {"title": titleize(path.name)}


class DateExtractor:
    """Extracts creation and modification times.

    ``created_at`` comes from a YYYY-MM-DD file name prefix, falling back to
    the file modification time, which is also used for ``modified_at``.
    """

    def extract(self, path: Path) -> dict[str, Any]:
        modified_at = datetime.fromtimestamp(path.stat().st_mtime)
        created_at = extract_date_from_name(path.name) or modified_at
        return {"created_at": created_at, "modified_at": modified_at}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs all extractors on a file and merges their results; later extractors
    override earlier ones.
    """

    def __init__(self, extractors: list[MetadataExtractor] | None = None):
        if extractors is None:
            self._extractors: list[MetadataExtractor] = [TitleExtractor(), DateExtractor()]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor: MetadataExtractor) -> None:
        self._extractors.append(extractor)

    def extract(self, path: Path) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(path))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
