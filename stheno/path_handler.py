"""Path handlers for Stheno.

A path handler turns a SourcePath into a Node of the tree and later provides
the output content of the nodes it created.

Key classes:
- PathHandler: Base class with node creation, parent lookup, destination
  path construction and conflict detection.
- DirectoryHandler: Directories.
- PageHandler: Page files with front matter and named blocks.
- TemplateHandler: Template files used to wrap pages.
- CopyHandler: Any other file, copied unchanged.

Node creation rules:
1. Drafts are skipped.
2. The parent is ``parent_alcn`` from the meta info or the node of the
   parent path; it must exist.
3. The destination path is constructed from the ``dest_path`` template. If a
   node with a different language already uses it, it is constructed again
   with the language part forced in.
4. An existing node with the same alcn, or with the same destination path
   (unless ``no_output`` is set), is a conflict.
5. ``modified_at`` defaults to the current time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .dest_path import DestPathPolicy, construct_dest_path
from .extractors import parse_page
from .node import Node, NodeCreationError, Tree, absolute_name
from .paths import SourcePath, append_path, lcn
from .renderers import RendererRegistry, default_renderer_registry
from .tags import restore_tags, shield_tags

if TYPE_CHECKING:
    from .tags import TagProcessor

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "default.template"


class PathHandler:
    """Base class for all path handlers.

    Attributes:
        tree: The tree nodes are created in.
        policy: Language and version policies for destination paths.
        include_drafts: Create nodes for paths marked as draft, too.
        default_meta_info: Meta information applied under the path's own.
    """

    default_meta_info: dict[str, Any] = {
        "dest_path": "<parent><basename>(-<version>)(.<lang>)<ext>",
    }

    def __init__(
        self,
        tree: Tree,
        policy: DestPathPolicy | None = None,
        include_drafts: bool = False,
    ):
        self.tree = tree
        self.policy = policy or DestPathPolicy.from_config(tree.config)
        self.include_drafts = include_drafts

    def apply_defaults(self, path: SourcePath) -> SourcePath:
        """Return ``path`` with the handler's default meta info filled in."""
        meta = dict(self.default_meta_info)
        meta.update(path.meta_info)
        return SourcePath(path.path, meta, path.source)

    def create_nodes(self, path: SourcePath) -> list[Node]:
        """Create all nodes for ``path``; subclasses read content here."""
        node = self.create_node(self.apply_defaults(path))
        return [node] if node is not None else []

    def create_node(self, path: SourcePath) -> Node | None:
        """Create the node for ``path`` and return it.

        Returns:
            The new node, or None if the path is a draft.

        Raises:
            NodeCreationError: If the parent is missing, the destination path
                template is invalid or the node would conflict with an
                existing one.
        """
        if path.meta_info.get("draft") and not self.include_drafts:
            return None
        parent = self.parent_node(path)
        dest_path = self.dest_path(parent, path)

        existing = self.node_exists(parent, path, dest_path)
        if existing is not None:
            raise NodeCreationError(
                f"Another node <{existing}> with the same alcn or destination path already exists",
                path,
                existing,
            )

        meta = dict(path.meta_info)
        if not isinstance(meta.get("modified_at"), datetime):
            logger.debug(
                "Meta information 'modified_at' set to current time in <%s> since its value %r was of type %s",
                path,
                meta.get("modified_at"),
                type(meta.get("modified_at")).__name__,
            )
            meta["modified_at"] = datetime.now()

        node = Node(parent, path.cn, dest_path, meta)
        node.node_info["path"] = path
        node.path_handler = self
        return node

    def parent_node(self, path: SourcePath) -> Node:
        """Return the parent node for ``path``."""
        parent_alcn = path.meta_info.get("parent_alcn")
        if parent_alcn is None:
            parent_alcn = "" if path.parent_path == "" else SourcePath(path.parent_path).alcn
        parent = self.tree[parent_alcn]
        if parent is None:
            raise NodeCreationError(f"The needed parent node <{parent_alcn}> does not exist", path)
        return parent

    def dest_path(self, parent: Node, path: SourcePath) -> str:
        """Construct the destination path, forcing the language part on a collision."""
        dpath = construct_dest_path(parent, path, self.policy)
        node = self.node_exists(parent, path, dpath)
        if node is not None and node.lang != path.lang:
            dpath = construct_dest_path(parent, path, self.policy, force_lang_part=True)
        return dpath

    def node_exists(self, parent: Node, path: SourcePath, dest_path: str) -> Node | None:
        """Return a node already using the alcn or destination path of ``path``."""
        node = self.tree[absolute_name(parent.alcn, lcn(path.cn, path.lang))]
        if node is None and not path.meta_info.get("no_output"):
            node = self.tree.node(dest_path, "dest_path")
        return node

    def content(self, node: Node, processor: TagProcessor | None = None) -> str | bytes | None:
        """Return the output content of ``node``; the base class writes nothing."""
        return None


class DirectoryHandler(PathHandler):
    """Creates directory nodes linking to their index page."""

    default_meta_info: dict[str, Any] = {
        "dest_path": "<parent><basename>/",
        "proxy_path": "index.html",
    }


class CopyHandler(PathHandler):
    """Copies a source file to its destination path."""

    def content(self, node: Node, processor: TagProcessor | None = None) -> bytes | None:
        source = node.node_info["path"].source
        return source.read_bytes() if source is not None else None


def template_for(node: Node) -> Node | None:
    """Return the template of ``node``.

    The ``template`` meta information names it (``null`` disables
    templating); otherwise the nearest ``default.template`` found by walking
    up from the node's directory is used.
    """
    if "template" in node.meta_info:
        name = node["template"]
        if not name:
            return None
        template = node.resolve(str(name))
        if template is None:
            logger.warning("Template '%s' for <%s> not found", name, node)
        return template

    directory = node.parent
    while isinstance(directory, Node) and directory.alcn:
        if directory.is_directory:
            template = node.tree.resolve_node(append_path(directory.alcn, DEFAULT_TEMPLATE), node.lang)
            if template is not None and template is not node:
                return template
        directory = directory.parent
    return None


def templates_for_node(node: Node) -> list[Node]:
    """Return the template chain of ``node``, outermost template first."""
    chain: list[Node] = []
    current = node
    while True:
        template = template_for(current)
        if template is None or template is node or template in chain:
            break
        chain.insert(0, template)
        current = template
    return chain


class PageHandler(PathHandler):
    """Handles page files.

    The front matter of a page is merged into its meta info before the node
    is created; its blocks are kept in ``node_info["blocks"]``. The canonical
    name of a page always ends in ``output_ext`` (``about.md`` becomes
    ``about.html``) and Markdown pages default to the ``markdown`` markup.
    """

    output_ext: str | None = "html"

    def __init__(
        self,
        tree: Tree,
        policy: DestPathPolicy | None = None,
        include_drafts: bool = False,
        renderers: RendererRegistry | None = None,
    ):
        super().__init__(tree, policy, include_drafts)
        self.renderers = renderers or default_renderer_registry

    def create_nodes(self, path: SourcePath) -> list[Node]:
        text = path.source.read_text(encoding="utf-8") if path.source is not None else ""
        frontmatter, blocks = parse_page(text)
        if path.ext == "md":
            frontmatter.setdefault("markup", "markdown")
        path = path.with_meta_info(frontmatter)
        if self.output_ext is not None and path.is_file:
            path = path.with_ext(self.output_ext)
        node = self.create_node(self.apply_defaults(path))
        if node is None:
            return []
        node.node_info["blocks"] = blocks
        return [node]

    def render_block(self, node: Node, name: str) -> str | None:
        """Return block ``name`` of ``node`` converted by the node's markup.

        Tags in the block are left untouched by the markup.
        """
        blocks = node.node_info.get("blocks", {})
        if name not in blocks:
            return None
        text, shields = shield_tags(blocks[name])
        return restore_tags(self.renderers.render(text, node["markup"]), shields)

    def content(self, node: Node, processor: TagProcessor | None = None) -> str | None:
        """Render ``node`` through its template chain and expand all tags."""
        chain = templates_for_node(node) + [node]
        source = chain[0]
        content = source.path_handler.render_block(source, "content") or ""
        if processor is None:
            return content
        return processor.process(content, chain)


class TemplateHandler(PageHandler):
    """Handles template files; templates are never written themselves."""

    default_meta_info: dict[str, Any] = {
        "dest_path": "<parent><basename>(-<version>)(.<lang>)<ext>",
        "no_output": True,
    }
    output_ext = None

    def content(self, node: Node, processor: TagProcessor | None = None) -> None:
        return None
