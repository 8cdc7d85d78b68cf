"""Tag substitution for Stheno.

Rendered content may contain tags of the form ``{name: payload}``. The
TagProcessor finds them, asks the handler registered for ``name`` (or the
default handler) to produce the replacement, and expands tags found in the
replacement again before splicing it into the content.

Escaping: ``\\{name:...}`` is output literally as ``{name:...}``. In
general ``k`` backslashes in front of a tag yield ``k // 2`` backslashes,
and the tag is live if ``k`` is even.

Failures that only affect the rendered text are logged and the processing
goes on: an unknown tag is replaced by nothing, a tag without closing brace
is left as is, a payload that is not valid YAML counts as empty. Exceeding
the maximum nesting depth raises TagProcessingError.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

import yaml

from .protocols import TagHandler

if TYPE_CHECKING:
    from .node import Node

logger = logging.getLogger(__name__)

DEFAULT_TAG = ":default"
DEFAULT_MAX_DEPTH = 50
TAG_START_RE = re.compile(r"(\\*)\{(\w+):")


class TagProcessingError(Exception):
    """Raised when tag expansion has to be aborted."""


class TagRegistry:
    """Maps tag names to tag handlers.

    The mapping is rebuilt whenever a handler is registered or removed. A
    handler registered for DEFAULT_TAG processes all tags without a handler
    of their own. If two handlers claim the same tag, the later one wins.
    """

    def __init__(self, handlers: Iterable[TagHandler] = ()):
        self._handlers: list[TagHandler] = list(handlers)
        self._by_tag: dict[str, TagHandler] = {}
        self._rebuild()

    @property
    def handlers(self) -> list[TagHandler]:
        return list(self._handlers)

    def register(self, handler: TagHandler) -> None:
        self._handlers.append(handler)
        self._rebuild()

    def unregister(self, handler: TagHandler) -> None:
        self._handlers.remove(handler)
        self._rebuild()

    def _rebuild(self) -> None:
        by_tag: dict[str, TagHandler] = {}
        for handler in self._handlers:
            for tag in sorted(handler.tags()):
                if tag in by_tag:
                    logger.warning(
                        "Tag '%s' of %s replaces the one of %s",
                        tag,
                        type(handler).__name__,
                        type(by_tag[tag]).__name__,
                    )
                by_tag[tag] = handler
        self._by_tag = by_tag

    def __contains__(self, tag: str) -> bool:
        return tag in self._by_tag

    def handler_for(self, tag: str) -> TagHandler | None:
        """Return the handler for ``tag``, the default handler or None."""
        handler = self._by_tag.get(tag)
        if handler is None:
            handler = self._by_tag.get(DEFAULT_TAG)
        if handler is None:
            logger.error("No tag handler for tag '%s' found", tag)
        return handler


def parse_payload(data: str, tag: str, node: Any = None) -> Any:
    """Parse a tag payload: nothing, a single YAML scalar or a YAML mapping.

    Returns None for an empty or unparsable payload.
    """
    if not data.strip():
        return None
    try:
        return yaml.safe_load(data)
    except yaml.YAMLError as exc:
        logger.error("Could not parse the data %r for tag '%s' in <%s>: %s", data, tag, node, exc)
        return None


def find_closing_brace(content: str, pos: int) -> int | None:
    """Return the index after the brace closing an already opened one.

    Scanning starts at ``pos``, just after the opening brace. Returns None
    if the content ends first.
    """
    depth = 1
    for index in range(pos, len(content)):
        char = content[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def shield_tags(content: str) -> tuple[str, dict[str, str]]:
    """Replace every tag in ``content`` by a plain word placeholder.

    Used around markup rendering so that escaping backslashes and payloads
    reach the tag processor unchanged. The tag text, leading backslashes
    included, is returned keyed by placeholder so that ``restore_tags`` can
    put it back. A tag without closing brace only has its header replaced.

    Examples:
        >>> shield_tags(r"a \\{title:} b")
        ('a sthenotag0z b', {'sthenotag0z': '\\\\{title:}'})
    """
    prefix = "sthenotag"
    while prefix in content:
        prefix += "x"
    shields: dict[str, str] = {}
    pieces: list[str] = []
    offset = 0
    while True:
        match = TAG_START_RE.search(content, offset)
        if match is None:
            break
        end = find_closing_brace(content, match.start() + len(match.group(1)) + 1)
        if end is None:
            end = match.end()
        placeholder = f"{prefix}{len(shields)}z"
        shields[placeholder] = content[match.start() : end]
        pieces.append(content[offset : match.start()])
        pieces.append(placeholder)
        offset = end
    pieces.append(content[offset:])
    return "".join(pieces), shields


def restore_tags(content: str, shields: dict[str, str]) -> str:
    """Put the tags replaced by ``shield_tags`` back into ``content``."""
    for placeholder, text in shields.items():
        content = content.replace(placeholder, text)
    return content


class TagProcessor:
    """Expands the tags in content using the handlers of a registry.

    The node chain passed to ``process`` starts with the template whose
    content is rendered and ends with the node the rendering is for.
    """

    def __init__(self, registry: TagRegistry, max_depth: int = DEFAULT_MAX_DEPTH):
        self.registry = registry
        self.max_depth = max_depth

    def process(self, content: str, chain: Sequence[Node]) -> str:
        """Return ``content`` with all tags expanded."""
        return self._process(content, list(chain), 0)

    def _process(self, content: Any, chain: list[Node], depth: int) -> str:
        if depth > self.max_depth:
            raise TagProcessingError(
                f"Maximum tag nesting depth of {self.max_depth} exceeded while rendering <{chain[-1]}>"
            )
        if not isinstance(content, str):
            logger.warning(
                "The content for <%s> is not a string but a %s", chain[0], type(content).__name__
            )
            content = str(content)

        pieces: list[str] = []
        offset = 0
        while True:
            match = TAG_START_RE.search(content, offset)
            if match is None:
                break
            start = match.start()
            backslashes = len(match.group(1))
            tag = match.group(2)
            brace = start + backslashes
            end = find_closing_brace(content, brace + 1)
            pieces.append(content[offset:start])

            if backslashes % 2 == 1:
                stop = end if end is not None else match.end()
                pieces.append("\\" * (backslashes // 2))
                pieces.append(content[brace:stop])
                offset = stop
                continue

            if end is None:
                logger.error("Unbalanced curly brackets for tag '%s' in <%s>", tag, chain[0])
                pieces.append(content[start:])
                offset = len(content)
                break

            pieces.append("\\" * (backslashes // 2))
            data = content[match.end() : end - 1].lstrip()
            pieces.append(self._expand(tag, data, chain, depth))
            offset = end

        pieces.append(content[offset:])
        return "".join(pieces)

    def _expand(self, tag: str, data: str, chain: list[Node], depth: int) -> str:
        logger.debug("Replacing tag %s with data %r in <%s>", tag, data, chain[0])
        handler = self.registry.handler_for(tag)
        if handler is None:
            return ""

        handler.set_invocation_config(parse_payload(data, tag, chain[0]), chain[0])
        try:
            result = handler.process_tag(tag, chain)
        finally:
            handler.reset_invocation_config()

        if isinstance(result, tuple):
            text, tag_chain = result
        else:
            text, tag_chain = result, None
        text = "" if text is None else text

        if handler.produces_reprocessable_output():
            text = self._process(text, list(tag_chain) if tag_chain else chain, depth + 1)
        return str(text)
