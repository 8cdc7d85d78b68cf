"""HTML utility functions for Stheno.

Small helpers used when nodes and tag handlers emit HTML fragments.

Functions:
    escape_html: Escape special HTML characters in a string.
    render_attributes: Render a mapping as sorted HTML attributes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('<a href="x">Tom & Jerry</a>')
        '&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&lt;/a&gt;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def render_attributes(attrs: Mapping[str, Any]) -> str:
    """Render attributes sorted by name, each preceded by a space.

    Attributes whose value is None are left out.

    Examples:
        >>> render_attributes({"title": "Home", "href": "index.html"})
        ' href="index.html" title="Home"'
    """
    parts = [
        f'{name}="{escape_html(str(value))}"'
        for name, value in sorted(attrs.items())
        if value is not None
    ]
    return "".join(f" {part}" for part in parts)
