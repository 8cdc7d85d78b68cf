"""Protocol definitions for Stheno.

This module defines the interfaces used between the node tree, the path
handlers, the tag processor and the renderers. Concrete implementations live
in their own modules; the protocols keep the modules loosely coupled and
make it easy to plug in test doubles.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .node import Node
    from .paths import SourcePath


@runtime_checkable
class TagHandler(Protocol):
    """Capabilities the tag processor needs from a tag handler."""

    @abstractmethod
    def tags(self) -> set[str]:
        """Return the tag names handled, possibly including the default marker."""
        ...

    @abstractmethod
    def process_tag(self, tag: str, chain: Sequence[Node]) -> str | tuple[str, Sequence[Node] | None]:
        """Process ``tag`` in the context of the node ``chain``.

        Args:
            tag: The tag name as written in the content.
            chain: Node chain, the template first and the rendered node last.

        Returns:
            The rendered text, or the text plus the chain to use when the
            text itself is processed for tags.
        """
        ...

    @abstractmethod
    def set_invocation_config(self, payload: Any, node: Node) -> None:
        """Set the parsed tag payload as configuration for the next call."""
        ...

    @abstractmethod
    def reset_invocation_config(self) -> None:
        """Drop the configuration set by ``set_invocation_config``."""
        ...

    @abstractmethod
    def produces_reprocessable_output(self) -> bool:
        """Return True if the output of ``process_tag`` should be scanned for tags."""
        ...


@runtime_checkable
class PathHandlerCapability(Protocol):
    """What a node may ask from the path handler that created it."""

    @abstractmethod
    def create_node(self, path: SourcePath) -> Node | None:
        """Create a node from ``path`` (None for drafts)."""
        ...

    @abstractmethod
    def content(self, node: Node, processor: Any = None) -> str | bytes | None:
        """Return the output content of ``node`` (None if nothing is written)."""
        ...


@runtime_checkable
class BlockSource(Protocol):
    """Path handlers whose nodes carry named content blocks."""

    @abstractmethod
    def render_block(self, node: Node, name: str) -> str | None:
        """Return the rendered block ``name`` of ``node`` or None if missing."""
        ...


@runtime_checkable
class ContentRenderer(Protocol):
    """Renders block content written in one markup language to HTML."""

    @property
    @abstractmethod
    def markup(self) -> str:
        """Return the markup identifier (e.g. 'markdown', 'html')."""
        ...

    @abstractmethod
    def render(self, content: str) -> str:
        """Render ``content`` to HTML."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Extracts meta information for a source file."""

    @abstractmethod
    def extract(self, path: Path) -> dict[str, Any]:
        """Return meta information derived from the file at ``path``."""
        ...
