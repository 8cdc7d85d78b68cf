"""Tag handlers shipped with Stheno.

Key classes:
- BaseTag: Parameter handling shared by all handlers.
- MetaTag: Default handler, outputs meta information of the rendered node.
- BlockTag: Outputs a content block of the next node in the chain.
- LangbarTag: Links to all translations of the rendered node.
- MenuTag: Renders a navigation menu.
- RelocatableTag: Outputs a relative path to another node.

Tag parameters are looked up in the tag payload first, then in the site
configuration under ``tags.<handler name>.<parameter>``, then in the
declared defaults. A scalar payload sets the handler's mandatory default
parameter, e.g. ``{block: sidebar}``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .html_utils import escape_html
from .node import Node, Tree
from .paths import is_external
from .protocols import BlockSource
from .tags import DEFAULT_TAG, TagRegistry

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, int, float, bool, date)


@dataclass(frozen=True)
class TagParam:
    """Declaration of one tag parameter.

    Attributes:
        name: Parameter name as used in payloads and configuration.
        default: Value used when the parameter is not set.
        description: Short explanation of the parameter.
        mandatory: The parameter has to be set (or have a default).
        mandatory_default: A scalar payload sets this parameter.
    """

    name: str
    default: Any = None
    description: str = ""
    mandatory: bool = False
    mandatory_default: bool = False


class BaseTag:
    """Base class for tag handlers.

    Subclasses set ``name``, ``tag_names`` and ``params`` and implement
    ``process_tag``.
    """

    name = ""
    tag_names: tuple[str, ...] = ()
    params: tuple[TagParam, ...] = ()
    process_output = True

    def __init__(self, config: Mapping[str, Any] | None = None):
        self.config = config or {}
        self._current: dict[str, Any] = {}
        self._extra_tags: list[str] = []

    def register_tag(self, tag: str) -> None:
        """Let this handler instance process ``tag`` as well."""
        self._extra_tags.append(tag)

    def tags(self) -> set[str]:
        return set(self.tag_names) | set(self._extra_tags)

    def produces_reprocessable_output(self) -> bool:
        return self.process_output

    def _param_spec(self, name: str) -> TagParam:
        for spec in self.params:
            if spec.name == name:
                return spec
        raise KeyError(f"Unknown parameter '{name}' for tag handler '{self.name}'")

    def set_invocation_config(self, payload: Any, node: Node) -> None:
        self._current = {}
        if isinstance(payload, Mapping):
            for key, value in payload.items():
                if any(spec.name == key for spec in self.params):
                    self._current[key] = value
                    logger.debug(
                        "Setting parameter '%s' to %r for tag '%s' in <%s>", key, value, self.name, node
                    )
                else:
                    logger.warning("Invalid parameter '%s' for tag '%s' in <%s>", key, self.name, node)
        elif isinstance(payload, SCALAR_TYPES):
            default = next((spec for spec in self.params if spec.mandatory_default), None)
            if default is None:
                logger.error(
                    "No default mandatory parameter specified for tag '%s' but set in <%s>",
                    self.name,
                    node,
                )
            else:
                self._current[default.name] = payload
        elif payload is not None:
            logger.error(
                "Invalid parameter type (%s) for tag '%s' in <%s>",
                type(payload).__name__,
                self.name,
                node,
            )

        if not self.all_mandatory_params_set():
            logger.error("Not all mandatory parameters for tag '%s' in <%s> set", self.name, node)

    def reset_invocation_config(self) -> None:
        self._current = {}

    def all_mandatory_params_set(self) -> bool:
        return all(
            not spec.mandatory or spec.name in self._current or spec.default is not None
            for spec in self.params
        )

    def param(self, name: str) -> Any:
        """Return the value of parameter ``name`` for the current invocation."""
        spec = self._param_spec(name)
        if name in self._current:
            return self._current[name]
        site = self.config.get("tags") or {}
        handler_config = site.get(self.name) or {}
        if name in handler_config:
            return handler_config[name]
        return spec.default

    def process_tag(self, tag: str, chain: Sequence[Node]) -> str | tuple[str, Sequence[Node] | None]:
        raise NotImplementedError


class MetaTag(BaseTag):
    """Outputs the meta information named like the tag, e.g. ``{title:}``."""

    name = "meta"
    tag_names = (DEFAULT_TAG,)
    params = (TagParam("escape_html", True, "Escape special HTML characters in the value."),)
    process_output = False

    def process_tag(self, tag: str, chain: Sequence[Node]) -> str:
        value = chain[-1][tag]
        if value is None:
            return ""
        text = str(value)
        return escape_html(text) if self.param("escape_html") else text


class BlockTag(BaseTag):
    """Outputs a block of the node following the current template.

    The returned chain drops the template so that tags in the block are
    expanded in the context of the block's node.
    """

    name = "block"
    tag_names = ("block",)
    params = (
        TagParam(
            "block",
            "content",
            "The name of the block which should be rendered.",
            mandatory=True,
            mandatory_default=True,
        ),
    )

    def process_tag(self, tag: str, chain: Sequence[Node]) -> str | tuple[str, Sequence[Node]]:
        block_node = chain[1] if len(chain) > 1 else chain[0]
        block_name = str(self.param("block"))
        handler = block_node.path_handler
        content = handler.render_block(block_node, block_name) if isinstance(handler, BlockSource) else None
        if content is None:
            logger.error("Node <%s> does not contain a block called '%s'", block_node, block_name)
            return ""
        return content, (list(chain[1:]) or list(chain))


class LangbarTag(BaseTag):
    """Links to all translations of the rendered node, sorted by language."""

    name = "langbar"
    tag_names = ("langbar",)
    params = (
        TagParam("separator", " | ", "Separates the languages from each other."),
        TagParam("show_single_lang", True, "Show the bar if there is only one language."),
        TagParam("show_own_lang", True, "Show the link to the current language."),
    )
    process_output = False

    def process_tag(self, tag: str, chain: Sequence[Node]) -> str:
        node = chain[-1]
        translations = sorted(
            (n for n in node.tree.translations(node.acn) if n.lang is not None),
            key=lambda n: n.lang,
        )
        shown = [n for n in translations if n.lang != node.lang or self.param("show_own_lang")]
        if len(translations) <= 1 and not self.param("show_single_lang"):
            return ""
        links = [node.link_to(n, link_text=n.lang, lang=n.lang) for n in shown]
        return str(self.param("separator")).join(links)


@dataclass
class MenuItem:
    """One entry of the menu tree; entries with children are sub menus."""

    node: Node
    children: list[MenuItem] = field(default_factory=list)


def _order_key(item: MenuItem) -> tuple[int, str]:
    node = item.node
    value = node["menu_order"]
    if value is None and node.is_directory:
        proxy = node.proxy_node()
        if proxy is not node:
            value = proxy["menu_order"]
    try:
        order = int(value or 0)
    except (TypeError, ValueError):
        order = 0
    title = node["title"] or node.proxy_node()["title"] or node.cn
    return order, str(title).lower()


def _menu_candidates(node: Node) -> list[Node]:
    """Return one child per canonical name, preferring those marked for the menu."""
    by_acn: dict[str, Node] = {}
    for child in node.children:
        chosen = by_acn.get(child.acn)
        if chosen is None or (child["in_menu"] and not chosen["in_menu"]):
            by_acn[child.acn] = child
    return list(by_acn.values())


def _menu_item(node: Node) -> MenuItem | None:
    children = []
    for child in _menu_candidates(node):
        item = _menu_item(child)
        if item is not None:
            children.append(item)
    if children:
        return MenuItem(node, sorted(children, key=_order_key))
    if node["in_menu"]:
        return MenuItem(node)
    return None


def build_menu_tree(tree: Tree) -> MenuItem | None:
    """Build the menu tree of all nodes marked with ``in_menu``.

    Directories containing menu nodes become sub menus. Nodes sharing a
    canonical name (translations) appear once.
    """
    if tree.root is None:
        return None
    return _menu_item(tree.root)


class MenuTag(BaseTag):
    """Renders the menu as nested lists.

    The menu tree is built once per generation run and handed in on
    construction.
    """

    name = "menu"
    tag_names = ("menu",)
    params = (
        TagParam("submenu_tag", "ul", "The tag used for making sub menus."),
        TagParam("item_tag", "li", "The tag used for menu items."),
        TagParam("level", 1, "How many levels are always shown."),
        TagParam("subtree_level", 3, "The maximum depth of the menu."),
        TagParam(
            "show_current_subtree_only",
            True,
            "Show deeper levels only for the sub tree containing the current node.",
        ),
    )
    process_output = False

    def __init__(self, config: Mapping[str, Any] | None = None, menu_tree: MenuItem | None = None):
        super().__init__(config)
        self.menu_tree = menu_tree

    def process_tag(self, tag: str, chain: Sequence[Node]) -> str:
        return self._build_menu(chain[-1], self.menu_tree, 1)

    def _build_menu(self, src: Node, item: MenuItem | None, level: int) -> str:
        if item is None or level > int(self.param("subtree_level")):
            return ""
        if level > int(self.param("level")) and (
            item.node.level > src.level
            or (self.param("show_current_subtree_only") and not src.in_subtree_of(item.node))
        ):
            return ""

        submenu_tag = self.param("submenu_tag")
        out = [f"<{submenu_tag}>"]
        for child in item.children:
            submenu = self._build_menu(src, child, level + 1) if child.children else ""
            before, after = self._menu_entry(src, child.node, bool(child.children))
            out.extend((before, submenu, after))
        out.append(f"</{submenu_tag}>")
        return "".join(out)

    def _menu_entry(self, src: Node, node: Node, is_submenu: bool) -> tuple[str, str]:
        lang_node = node
        if node.is_file:
            lang_node = node.tree.translate_node(node, src.lang) or node

        styles = []
        if is_submenu:
            styles.append("submenu")
        if lang_node.proxy_node(src.lang) is src:
            styles.append("menuitem-selected")
        class_attr = f' class="{" ".join(styles)}"' if styles else ""
        link = src.link_to(lang_node, lang=src.lang)

        item_tag = self.param("item_tag")
        if is_submenu:
            return f"<{item_tag}{class_attr}>{link}", f"</{item_tag}>"
        return f"<{item_tag}{class_attr}>{link}</{item_tag}>", ""


class RelocatableTag(BaseTag):
    """Outputs the route from the rendered node to a path.

    The path is resolved relative to the template containing the tag, so
    templates can reference files next to them.
    """

    name = "relocatable"
    tag_names = ("relocatable",)
    params = (
        TagParam("path", None, "The path to the target node.", mandatory=True, mandatory_default=True),
    )
    process_output = False

    def process_tag(self, tag: str, chain: Sequence[Node]) -> str:
        path = self.param("path")
        if path is None:
            return ""
        path = str(path)
        if is_external(path):
            return path
        node = chain[-1]
        target = chain[0].resolve(path, node.lang)
        if target is None:
            logger.error("Could not resolve path '%s' in <%s>", path, chain[0])
            return ""
        return node.route_to(target)


def create_default_registry(tree: Tree) -> TagRegistry:
    """Create a registry with all built-in tag handlers for one run over ``tree``."""
    config = tree.config
    return TagRegistry(
        [
            MetaTag(config),
            BlockTag(config),
            LangbarTag(config),
            MenuTag(config, build_menu_tree(tree)),
            RelocatableTag(config),
        ]
    )
