"""Node tree for Stheno.

Every piece of content (a file, a directory or a fragment inside a file) is
represented by a Node. Nodes live in exactly one Tree, which owns the root
node and the lookup indices by absolute localized canonical name (alcn) and
by destination path.

Key classes:
- Node: One content item with its identity, meta info and output location.
- Tree: Owner of all nodes of one generation run.
- NodeCreationError: Raised when a node cannot be created.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .html_utils import render_attributes
from .paths import append_path, is_external, lcn, normalize_language, route, split_file_name

if TYPE_CHECKING:
    from .protocols import PathHandlerCapability

logger = logging.getLogger(__name__)

FRAGMENT_SUFFIX_RE = re.compile(r"#.*$")

# Marks "use the language of the node" for the optional lang arguments.
OWN_LANG: Any = object()


class NodeCreationError(Exception):
    """Error raised when a node cannot be created.

    Attributes:
        message: Human-readable error message.
        path: The path descriptor (or path string) being processed.
        node: The already existing node in case of a conflict.
    """

    def __init__(self, message: str, path: Any = None, node: Node | None = None):
        self.message = message
        self.path = path
        self.node = node
        super().__init__(f"{message} <{path}>" if path is not None else message)


def absolute_name(parent_name: str, name: str) -> str:
    """Append ``name`` to ``parent_name``, truncating a fragment of the parent."""
    return FRAGMENT_SUFFIX_RE.sub("", parent_name) + name


def _validate_cn(cn: str) -> None:
    if not cn:
        raise NodeCreationError("The canonical name of a node must not be empty")
    if cn.endswith("/") or cn.startswith("#"):
        return
    _, lang, _ = split_file_name(cn)
    if lang is not None:
        raise NodeCreationError(
            f"The canonical name '{cn}' must not contain a language part"
        )


class Node:
    """A file, a directory or a fragment.

    The identity attributes (``cn``, ``lang``, ``lcn``, ``acn``, ``alcn``,
    ``level``, ``dest_path``) are computed once on construction and are
    read-only afterwards. ``meta_info`` is a read-only view; processing data
    goes into the mutable ``node_info`` dict.

    The language is taken from (and removed from) the ``lang`` key of the
    given meta info. Only file nodes can be localized.
    """

    def __init__(
        self,
        parent: Node | Tree,
        cn: str,
        dest_path: str,
        meta_info: Mapping[str, Any] | None = None,
    ):
        meta = dict(meta_info or {})
        raw_lang = meta.pop("lang", None)
        is_sentinel = isinstance(parent, Tree)
        if not is_sentinel:
            _validate_cn(cn)

        self._parent = parent
        self._cn = cn
        self._dest_path = dest_path
        self._lang = normalize_language(raw_lang) if self.is_file and not is_sentinel else None
        self._lcn = lcn(cn, self._lang)
        if is_sentinel:
            self._acn = self._alcn = ""
        else:
            self._acn = absolute_name(parent.acn, cn)
            self._alcn = absolute_name(parent.alcn, self._lcn)

        self.children: list[Node] = []
        self.meta_info: Mapping[str, Any] = MappingProxyType(meta)
        self.node_info: dict[str, Any] = {}
        self.path_handler: PathHandlerCapability | None = None

        level = -1
        owner: Node | Tree = parent
        while isinstance(owner, Node):
            level += 1
            owner = owner.parent
        self._level = level
        self._tree = owner

        owner.register_node(self)
        if parent is not owner:
            parent.children.append(self)

    @property
    def parent(self) -> Node | Tree:
        """The parent node (the tree for the sentinel node)."""
        return self._parent

    @property
    def cn(self) -> str:
        return self._cn

    @property
    def lang(self) -> str | None:
        return self._lang

    @property
    def lcn(self) -> str:
        return self._lcn

    @property
    def acn(self) -> str:
        return self._acn

    @property
    def alcn(self) -> str:
        return self._alcn

    @property
    def level(self) -> int:
        return self._level

    @property
    def dest_path(self) -> str:
        """The output location: a path, a directory path or an external URL."""
        return self._dest_path

    @property
    def tree(self) -> Tree:
        return self._tree

    def __getitem__(self, key: str) -> Any:
        """Return the meta information item for ``key`` (None if missing)."""
        return self.meta_info.get(key)

    @property
    def is_directory(self) -> bool:
        return self._cn.endswith("/") and not self.is_fragment

    @property
    def is_file(self) -> bool:
        return not self.is_directory and not self.is_fragment

    @property
    def is_fragment(self) -> bool:
        return self._cn.startswith("#")

    @property
    def is_root(self) -> bool:
        return self is self._tree.root

    def in_subtree_of(self, other: Node) -> bool:
        """Check if ``other`` is this node or one of its ancestors."""
        node: Node | Tree = self
        while isinstance(node, Node):
            if node is other:
                return True
            node = node.parent
        return False

    def resolve(self, path: str, lang: str | None = OWN_LANG) -> Node | None:
        """Return the node for ``path`` in language ``lang``.

        Relative paths are made absolute by using the alcn of this node. The
        language defaults to the language of this node.
        """
        if lang is OWN_LANG:
            lang = self._lang
        return self._tree.resolve_node(append_path(self._alcn or "/", path), lang)

    def route_to(self, other: Node | str) -> str:
        """Return the relative path from this node to ``other``.

        ``other`` is either a node (its proxy node in this node's language is
        used) or a path string relative to this node's destination path.
        Routing to this node itself yields its file name.
        """
        if isinstance(other, Node):
            target = other.proxy_node(self._lang).dest_path
        elif isinstance(other, str):
            if other.startswith("/") or is_external(other) or is_external(self._dest_path):
                target = other
            else:
                target = append_path(self._dest_path, other)
        else:
            raise TypeError(f"improper class for argument: {type(other).__name__}")

        result = route(self._dest_path, target)
        if result:
            return result
        if self._dest_path.endswith("/"):
            return "./"
        return posixpath.basename(self._dest_path)

    def proxy_node(self, lang: str | None = OWN_LANG) -> Node:
        """Return the node that should be used when linking to this node.

        The ``proxy_path`` meta information (usually set on directories to
        point to the directory index) is resolved in language ``lang``.
        """
        proxy_path = self["proxy_path"]
        if proxy_path is None:
            return self
        pnode = self.resolve(str(proxy_path), lang)
        if pnode is None:
            logger.warning(
                "Proxy node specified by path '%s' for <%s> not found", proxy_path, self
            )
            return self
        return pnode

    def link_to(
        self,
        node: Node,
        link_text: str | None = None,
        lang: str | None = OWN_LANG,
        **attrs: Any,
    ) -> str:
        """Return an HTML link from this node to ``node``.

        The ``link_attrs`` meta information of ``node`` provides default
        attributes, ``attrs`` takes precedence. If ``node`` resolves to this
        node and ``link_to_current_page`` is not configured, a ``span``
        element is returned instead.
        """
        if lang is OWN_LANG:
            lang = self._lang
        link_attrs = node["link_attrs"]
        merged = dict(link_attrs) if isinstance(link_attrs, Mapping) else {}
        merged.update(attrs)

        rnode = node.proxy_node(lang)
        if link_text is None:
            link_text = (
                (rnode is not node and rnode["routed_title"])
                or node["title"]
                or rnode["title"]
                or node.cn.rstrip("/")
            )

        use_link = rnode is not self or bool(self._tree.config.get("link_to_current_page"))
        if use_link:
            merged["href"] = self.route_to(rnode)
            return f"<a{render_attributes(merged)}>{link_text}</a>"
        return f"<span{render_attributes(merged)}>{link_text}</span>"

    def __str__(self) -> str:
        return self._alcn

    def __repr__(self) -> str:
        return f"<Node: alcn={self._alcn}>"


class Tree:
    """Owner of all nodes of one generation run.

    A sentinel node (level -1, empty names) is the parent of the root node
    ``/``. All real nodes are registered in three indices: by alcn, by acn
    and by destination path. Nodes with the ``no_output`` meta information
    are not put into the destination path index.

    Attributes:
        config: Site configuration the nodes and handlers read from.
        dummy_root: The sentinel node.
    """

    def __init__(self, config: Mapping[str, Any] | None = None):
        self.config: dict[str, Any] = dict(config or {})
        self._by_alcn: dict[str, Node] = {}
        self._by_dest_path: dict[str, Node] = {}
        self._by_acn: dict[str, list[Node]] = {}
        self.dummy_root = Node(self, "", "")

    @property
    def root(self) -> Node | None:
        children = self.dummy_root.children
        return children[0] if children else None

    def register_node(self, node: Node) -> None:
        """Put ``node`` into the lookup indices.

        Raises:
            NodeCreationError: If the alcn or the destination path is taken.
        """
        existing = self._by_alcn.get(node.alcn)
        if existing is not None:
            raise NodeCreationError(
                f"Another node <{existing}> with the same alcn already exists",
                node.alcn,
                existing,
            )
        has_output = not node["no_output"]
        if has_output:
            existing = self._by_dest_path.get(node.dest_path)
            if existing is not None:
                raise NodeCreationError(
                    f"Another node <{existing}> with the same destination path already exists",
                    node.dest_path,
                    existing,
                )
            self._by_dest_path[node.dest_path] = node
        self._by_alcn[node.alcn] = node
        if node.level >= 0:
            self._by_acn.setdefault(node.acn, []).append(node)

    def __getitem__(self, alcn: str) -> Node | None:
        return self._by_alcn.get(alcn)

    def node(self, key: str, index: str = "alcn") -> Node | None:
        """Look up a node by ``alcn`` or by ``dest_path``."""
        if index == "alcn":
            return self._by_alcn.get(key)
        if index == "dest_path":
            return self._by_dest_path.get(key)
        raise ValueError(f"Unknown node index: {index}")

    def __iter__(self) -> Iterator[Node]:
        """Iterate over all nodes except the sentinel in creation order."""
        return (node for node in self._by_alcn.values() if node is not self.dummy_root)

    def __len__(self) -> int:
        return len(self._by_alcn) - 1

    def translations(self, acn: str) -> list[Node]:
        """Return all nodes sharing the absolute canonical name ``acn``."""
        return list(self._by_acn.get(acn, ()))

    def translate_node(self, node: Node, lang: str | None) -> Node | None:
        """Return the variant of ``node`` in ``lang``.

        Falls back to the unlocalized variant and then to the variant in the
        site default language.
        """
        candidates = self.translations(node.acn)
        for wanted in (lang, None, normalize_language(self.config.get("lang"))):
            for candidate in candidates:
                if candidate.lang == wanted:
                    return candidate
        return None

    def resolve_node(self, path: str, lang: str | None) -> Node | None:
        """Return the node for the absolute ``path`` in language ``lang``.

        An exact alcn match wins unless the path is just the canonical name of
        the found node; in that case (and when nothing matched) the node is
        looked up by acn (also trying ``path + "/"``) and translated.
        """
        node = self._by_alcn.get(path)
        if node is None or node.acn == path:
            by_acn = self.translations(path) or self.translations(path + "/")
            node = self.translate_node(by_acn[0], lang) if by_acn else None
        return node
