"""Content renderers for Stheno.

Implementations of the ContentRenderer protocol. A page block names its
markup via the ``markup`` meta information and is converted to HTML by the
matching renderer before tags are expanded.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with heading anchors.
- HTMLRenderer: Passes HTML through.
- RendererRegistry: Looks up renderers by markup name.
"""

from __future__ import annotations

import logging
import re

import mistune

from .protocols import ContentRenderer

logger = logging.getLogger(__name__)


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text."""
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _AnchorRenderer(mistune.HTMLRenderer):
    """HTML renderer giving every heading a unique id attribute."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'


class MarkdownRenderer:
    """Renders Markdown content to HTML."""

    @property
    def markup(self) -> str:
        return "markdown"

    def render(self, content: str) -> str:
        markdown = mistune.create_markdown(
            renderer=_AnchorRenderer(), plugins=["strikethrough", "table", "url"]
        )
        return markdown(content)


class HTMLRenderer:
    """Passes HTML content through unchanged."""

    @property
    def markup(self) -> str:
        return "html"

    def render(self, content: str) -> str:
        return content


class RendererRegistry:
    """Registry of content renderers keyed by markup name."""

    def __init__(self, renderers: list[ContentRenderer] | None = None):
        if renderers is None:
            renderers = [MarkdownRenderer(), HTMLRenderer()]
        self._renderers = {renderer.markup: renderer for renderer in renderers}

    def register(self, renderer: ContentRenderer) -> None:
        self._renderers[renderer.markup] = renderer

    def get_renderer(self, markup: str) -> ContentRenderer | None:
        return self._renderers.get(markup)

    def render(self, content: str, markup: str | None) -> str:
        """Render ``content`` with the renderer for ``markup``.

        Unknown markup names are logged and the content is passed through.
        """
        if markup is None:
            return content
        renderer = self.get_renderer(markup)
        if renderer is None:
            logger.warning("No renderer for markup '%s', using content as is", markup)
            return content
        return renderer.render(content)


default_renderer_registry = RendererRegistry()
