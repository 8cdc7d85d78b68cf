"""Stheno static site generator.

Stheno turns a directory of source files into a website. Every source becomes
a node with a stable, language-aware identity; destination paths are built
from declarative templates and page content is rendered through template
chains with ``{tag: payload}`` substitution.

The main entry point is the CLI module, which provides commands for building
a site and inspecting its node tree.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
