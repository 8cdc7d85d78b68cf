"""Destination path templates for Stheno.

The ``dest_path`` meta information of a path is a template like
``<parent><basename>(-<version>)(.<lang>)<ext>``. This module parses such a
template into a list of parts and evaluates it against the parent node and
the path descriptor.

Template grammar:
- Literal text is copied.
- ``<name>`` is a segment: ``parent``, ``parent N``, ``parent N..M``,
  ``basename``, ``ext``, ``lang``, ``version``, ``year``, ``month``, ``day``.
- ``(...)`` is an optional group which vanishes when none of its segments
  contributed anything.
- A template starting with ``stheno:`` is used verbatim without the prefix,
  one starting with any other URL scheme is used verbatim.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Union

from .node import NodeCreationError
from .paths import SCHEME_RE

if TYPE_CHECKING:
    from .node import Node
    from .paths import SourcePath

RESERVED_PREFIX = "stheno:"
PARENT_SEGMENT_RE = re.compile(r"^parent\s*(-?\d+)(?:\s*\.\.\s*(-?\d+))?$")
MULTI_SLASH_RE = re.compile(r"//+")

IN_PATH_POLICIES = ("always", "never", "except_default")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Segment:
    name: str


@dataclass(frozen=True)
class Group:
    parts: tuple[Part, ...]


Part = Union[Literal, Segment, Group]


def _normalize_policy(value: Any) -> str:
    if value is True:
        return "always"
    if value is False:
        return "never"
    text = str(value).strip().lower().replace("-", "_")
    if text not in IN_PATH_POLICIES:
        raise ValueError(
            f"Invalid destination path policy {value!r}, expected one of {', '.join(IN_PATH_POLICIES)}"
        )
    return text


@dataclass(frozen=True)
class DestPathPolicy:
    """Site-wide rules for putting language and version into output paths.

    Attributes:
        lang_code: Policy for the ``<lang>`` segment.
        version: Policy for the ``<version>`` segment.
        default_lang: The site default language.
    """

    lang_code: str = "except_default"
    version: str = "except_default"
    default_lang: str | None = "en"

    def __post_init__(self):
        object.__setattr__(self, "lang_code", _normalize_policy(self.lang_code))
        object.__setattr__(self, "version", _normalize_policy(self.version))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> DestPathPolicy:
        return cls(
            lang_code=config.get("lang_code_in_dest_path", "except_default"),
            version=config.get("version_in_dest_path", "except_default"),
            default_lang=config.get("lang", "en"),
        )

    def use_lang_part(self, lang: str | None, force: bool = False) -> bool:
        # unlocalized paths never get a language part
        if lang is None:
            return False
        if force:
            return True
        if self.lang_code == "except_default":
            return lang != self.default_lang
        return self.lang_code == "always"

    def use_version_part(self, version: str) -> bool:
        if self.version == "except_default":
            return version != "default"
        return self.version == "always"


def parse_template(template: str) -> list[Part]:
    """Parse a destination path template into literals, segments and groups.

    Unterminated ``<`` and ``(`` are kept as literal text.

    Examples:
        >>> parse_template("<parent>(.<lang>)")
        [Segment(name='parent'), Group(parts=(Literal(text='.'), Segment(name='lang')))]
    """
    return _parse_range(template, 0, len(template), _match_groups(template))


def _match_groups(text: str) -> dict[int, int]:
    """Map the position of every ``(`` that has a closing ``)`` to that position.

    Segments are skipped, so a ``)`` inside ``<...>`` never closes a group.
    """
    matches: dict[int, int] = {}
    open_groups: list[int] = []
    pos = 0
    while pos < len(text):
        char = text[pos]
        if char == "<":
            end = text.find(">", pos + 1)
            if end != -1:
                pos = end + 1
                continue
        elif char == "(":
            open_groups.append(pos)
        elif char == ")" and open_groups:
            matches[open_groups.pop()] = pos
        pos += 1
    return matches


def _parse_range(text: str, pos: int, stop: int, groups: dict[int, int]) -> list[Part]:
    parts: list[Part] = []
    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            parts.append(Literal("".join(buffer)))
            buffer.clear()

    while pos < stop:
        char = text[pos]
        if char == "<":
            end = text.find(">", pos + 1)
            if end != -1:
                flush()
                parts.append(Segment(text[pos + 1 : end].strip()))
                pos = end + 1
                continue
        elif char == "(" and pos in groups:
            flush()
            close = groups[pos]
            parts.append(Group(tuple(_parse_range(text, pos + 1, close, groups))))
            pos = close + 1
            continue
        buffer.append(char)
        pos += 1

    flush()
    return parts


def _adjust_index(index: int, path: SourcePath) -> int:
    """Turn a 1-based index into a 0-based one; negative indices stay as they are."""
    if index > 0:
        return index - 1
    if index == 0:
        raise NodeCreationError(
            "Invalid meta info 'dest_path', index into parent segments must not be 0",
            path,
        )
    return index


def _select(segments: list[str], first: int, last: int) -> list[str]:
    size = len(segments)
    if first < 0:
        first += size
    if last < 0:
        last += size
    if first < 0 or first > size:
        return []
    return segments[first : last + 1]


class _Evaluator:
    def __init__(self, parent: Node, path: SourcePath, policy: DestPathPolicy, force_lang_part: bool):
        self.parent = parent
        self.path = path
        self.parent_segments = [part for part in parent.dest_path.split("/") if part]
        self.use_lang = policy.use_lang_part(path.lang, force_lang_part)
        self.use_version = policy.use_version_part(str(path.meta_info.get("version", "default")))

    def expand(self, part: Part) -> str:
        if isinstance(part, Literal):
            return part.text
        if isinstance(part, Group):
            replaced = "".join(self.expand(inner) for inner in part.parts)
            removed = "".join(inner.text for inner in part.parts if isinstance(inner, Literal))
            return "" if replaced == removed else replaced
        return self.segment(part.name)

    def segment(self, name: str) -> str:
        match = PARENT_SEGMENT_RE.match(name)
        if match:
            first = _adjust_index(int(match.group(1)), self.path)
            if match.group(2) is None:
                size = len(self.parent_segments)
                return self.parent_segments[first] if -size <= first < size else ""
            last = _adjust_index(int(match.group(2)), self.path)
            return "/".join(_select(self.parent_segments, first, last))
        if name == "parent":
            return self.parent.dest_path
        if name == "basename":
            return self.path.basename
        if name == "ext":
            return f".{self.path.ext}" if self.path.ext else ""
        if name == "lang":
            return (self.path.lang or "") if self.use_lang else ""
        if name == "version":
            return str(self.path.meta_info.get("version", "")) if self.use_version else ""
        if name in ("year", "month", "day"):
            created_at = self.path.meta_info.get("created_at")
            if not isinstance(created_at, date):
                raise NodeCreationError(
                    "Invalid meta info 'created_at', needed for destination path creation",
                    self.path,
                )
            return str(getattr(created_at, name)).rjust(2, "0")
        raise NodeCreationError(f"Unknown destination path segment name: <{name}>", self.path)


def construct_dest_path(
    parent: Node,
    path: SourcePath,
    policy: DestPathPolicy,
    force_lang_part: bool = False,
) -> str:
    """Construct the destination path of ``path`` below ``parent``.

    Args:
        parent: The already resolved parent node.
        path: The path descriptor whose ``dest_path`` meta info is the template.
        policy: Site-wide language and version policies.
        force_lang_part: Put the language into the path regardless of policy.

    Returns:
        The destination path.

    Raises:
        NodeCreationError: For a non-string template, an unknown segment, a
            zero parent index or a missing ``created_at`` timestamp.
    """
    template = path.meta_info.get("dest_path")
    if not isinstance(template, str):
        raise NodeCreationError("Invalid meta info 'dest_path', must be a string", path)
    if template.startswith(RESERVED_PREFIX):
        return template[len(RESERVED_PREFIX) :]
    if SCHEME_RE.match(template):
        return template

    while parent.is_fragment:
        parent = parent.parent
    evaluator = _Evaluator(parent, path, policy, force_lang_part)
    result = "".join(evaluator.expand(part) for part in parse_template(template))
    if path.is_directory:
        result += "/"
    return MULTI_SLASH_RE.sub("/", result)
