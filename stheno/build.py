"""Site building functionality for Stheno.

Building a site happens in two phases. First every source directory and file
is turned into a node of the tree by its path handler; then every node with
output is rendered (tags expanded through its template chain) and written to
its destination path.

Key functions:
- build_site: Main function to build the entire site.
- build_tree: Create the node tree for a site directory.
- load_config: Loads site configuration from stheno.yaml.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .dest_path import DestPathPolicy
from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .node import Node, NodeCreationError, Tree
from .path_handler import CopyHandler, DirectoryHandler, PageHandler, PathHandler, TemplateHandler
from .paths import SourcePath, is_external
from .tag_handlers import create_default_registry
from .tags import TagProcessor
from .utils import ensure_clean_dir, is_internal_path

logger = logging.getLogger(__name__)

PAGE_EXTENSIONS = ("md", "html", "page")


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


DEFAULT_CONFIG: dict[str, Any] = {
    "site_dir": "site",
    "output_dir": "output",
    "lang": "en",
    "lang_code_in_dest_path": "except_default",
    "version_in_dest_path": "except_default",
    "link_to_current_page": False,
    "max_tag_depth": 50,
    "tags": {},
}


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        tree: The node tree of the site.
        output_dir: Directory where the site was built.
        written: Nodes whose content was written.
    """

    tree: Tree
    output_dir: Path
    written: list[Node] = field(default_factory=list)


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from stheno.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / "stheno.yaml"
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
            else:
                logger.warning("Ignoring %s, it does not contain a mapping", config_path)
    return config


class SourceLoader:
    """Discovers the directories and files of a site directory.

    Entries starting with ``_`` or ``.`` are skipped. Parents always come
    before their children.
    """

    def __init__(
        self,
        site_dir: Path,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.site_dir = site_dir
        self.metadata_extractor = metadata_extractor or default_metadata_extractor

    def iter_paths(self) -> list[SourcePath]:
        paths = [SourcePath("/", self.metadata_extractor.extract(self.site_dir), self.site_dir)]
        entries = []
        for path in self.site_dir.rglob("*"):
            rel = path.relative_to(self.site_dir)
            if is_internal_path(rel):
                continue
            entries.append((len(rel.parts), rel.as_posix(), path))
        for _, rel, path in sorted(entries):
            name = f"/{rel}/" if path.is_dir() else f"/{rel}"
            paths.append(SourcePath(name, self.metadata_extractor.extract(path), path))
        return paths


def _handler_key(path: SourcePath) -> str:
    if path.is_directory:
        return "directory"
    if path.ext == "template":
        return "template"
    if path.ext in PAGE_EXTENSIONS:
        return "page"
    return "copy"


def build_tree(site_dir: Path, config: dict[str, Any], include_drafts: bool = False) -> Tree:
    """Create the node tree for all sources below ``site_dir``.

    Raises:
        BuildError: If a node cannot be created.
    """
    tree = Tree(config)
    policy = DestPathPolicy.from_config(config)
    handlers: dict[str, PathHandler] = {
        "directory": DirectoryHandler(tree, policy, include_drafts),
        "template": TemplateHandler(tree, policy, include_drafts),
        "page": PageHandler(tree, policy, include_drafts),
        "copy": CopyHandler(tree, policy, include_drafts),
    }
    for path in SourceLoader(site_dir).iter_paths():
        handler = handlers[_handler_key(path)]
        try:
            handler.create_nodes(path)
        except NodeCreationError as exc:
            raise BuildError(path.source or Path(path.path), exc.message, exc) from exc
    return tree


def _has_output(node: Node) -> bool:
    return (
        node.path_handler is not None
        and not node["no_output"]
        and not node.is_fragment
        and not is_external(node.dest_path)
    )


def _format_error_message(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"


def _write_output(output_dir: Path, node: Node, content: str | bytes) -> None:
    target = output_dir / node.dest_path.lstrip("/")
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        target.write_bytes(content)
    else:
        target.write_text(content, encoding="utf-8")


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include paths marked as draft.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of config output_dir.

    Returns:
        BuildResult containing the tree, output directory and written nodes.
    """
    config = load_config(project_root)
    site_dir = project_root / config["site_dir"]
    if not site_dir.exists():
        raise FileNotFoundError(f"Expected site directory at {site_dir}")
    output_dir = output_dir_override or (project_root / config["output_dir"])
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    tree = build_tree(site_dir, config, include_drafts=include_drafts)
    processor = TagProcessor(create_default_registry(tree), max_depth=int(config["max_tag_depth"]))

    result = BuildResult(tree=tree, output_dir=output_dir)
    for node in tree:
        if not _has_output(node):
            continue
        if node.is_directory:
            (output_dir / node.dest_path.lstrip("/")).mkdir(parents=True, exist_ok=True)
            continue
        path = node.node_info["path"]
        try:
            content = node.path_handler.content(node, processor)
        except Exception as exc:
            raise BuildError(path.source or Path(path.path), _format_error_message(exc), exc) from exc
        if content is None:
            continue
        _write_output(output_dir, node, content)
        result.written.append(node)
    logger.info("Wrote %d files into %s", len(result.written), output_dir)
    return result
