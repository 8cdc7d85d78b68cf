import pytest

from stheno.node import Node, Tree
from stheno.path_handler import PageHandler
from stheno.tag_handlers import (
    BlockTag,
    LangbarTag,
    MenuTag,
    MetaTag,
    RelocatableTag,
    build_menu_tree,
    create_default_registry,
)
from stheno.tags import DEFAULT_TAG, TagProcessor, TagRegistry


def make_tree(**config):
    tree = Tree({"lang": "en", **config})
    root = Node(tree.dummy_root, "/", "/")
    return tree, root


def render(content, chain, *handlers):
    return TagProcessor(TagRegistry(handlers)).process(content, chain)


def make_page(parent, cn, dest_path, blocks=None, **meta):
    node = Node(parent, cn, dest_path, meta)
    node.path_handler = PageHandler(parent.tree)
    node.node_info["blocks"] = blocks or {}
    return node


def test_meta_tag_outputs_escaped_meta_info():
    tree, root = make_tree()
    page = Node(root, "page.html", "/page.html", {"title": "<b>Tom & Jerry</b>", "count": 3})

    assert render("{title:}", [page], MetaTag()) == "&lt;b&gt;Tom &amp; Jerry&lt;/b&gt;"
    assert render("{title: {escape_html: false}}", [page], MetaTag()) == "<b>Tom & Jerry</b>"
    assert render("{count:}", [page], MetaTag()) == "3"
    assert render("{author:}", [page], MetaTag()) == ""
    assert DEFAULT_TAG in MetaTag().tags()


def test_meta_tag_uses_last_node_of_chain():
    tree, root = make_tree()
    template = Node(root, "default.template", "/default.template", {"title": "Layout"})
    page = Node(root, "page.html", "/page.html", {"title": "Page"})

    assert render("{title:}", [template, page], MetaTag()) == "Page"


def test_parameter_problems_are_logged(caplog):
    tree, root = make_tree()
    page = Node(root, "page.html", "/page.html", {"title": "Page"})

    assert render("{title: {foo: 1}}", [page], MetaTag()) == "Page"
    assert "Invalid parameter 'foo'" in caplog.text
    assert render("{title: [1, 2]}", [page], MetaTag()) == "Page"
    assert "Invalid parameter type (list)" in caplog.text
    assert render("{title: x}", [page], MetaTag()) == "Page"
    assert "No default mandatory parameter" in caplog.text


def test_parameter_lookup_order():
    tag = BlockTag({"tags": {"block": {"block": "sidebar"}}})
    assert tag.param("block") == "sidebar"
    tag.set_invocation_config("footer", None)
    assert tag.param("block") == "footer"
    tag.reset_invocation_config()
    assert tag.param("block") == "sidebar"
    assert BlockTag().param("block") == "content"
    with pytest.raises(KeyError):
        tag.param("unknown")


def test_register_tag_adds_names():
    tag = MetaTag()
    tag.register_tag("title")
    assert tag.tags() == {DEFAULT_TAG, "title"}


def test_block_tag_renders_block_of_next_node():
    tree, root = make_tree()
    template = make_page(root, "default.template", "/default.template", {"content": "{block:}"})
    page = make_page(
        root,
        "index.html",
        "/index.html",
        {"content": "data", "sidebar": "side of {title:}"},
        title="Home",
    )
    handlers = (BlockTag(), MetaTag())

    assert render("before{block:content}after", [template, page], *handlers) == "beforedataafter"
    assert render("[{block: sidebar}]", [template, page], *handlers) == "[side of Home]"
    assert render("{block:}", [page], *handlers) == "data"


def test_block_tag_uses_site_default(caplog):
    tree, root = make_tree(tags={"block": {"block": "sidebar"}})
    page = make_page(root, "index.html", "/index.html", {"content": "main", "sidebar": "side"})

    assert render("{block:}", [page], BlockTag(tree.config)) == "side"
    assert render("{block: footer}", [page], BlockTag(tree.config)) == ""
    assert "does not contain a block called 'footer'" in caplog.text


def test_langbar_tag():
    tree, root = make_tree()
    Node(root, "index.html", "/index.html", {"lang": "en"})
    de = Node(root, "index.html", "/index.de.html", {"lang": "de"})
    Node(root, "index.html", "/index.fr.html", {"lang": "fr"})
    solo = Node(root, "solo.html", "/solo.html", {"lang": "en"})

    assert render("{langbar:}", [de], LangbarTag()) == (
        '<span>de</span> | <a href="index.html">en</a> | <a href="index.fr.html">fr</a>'
    )
    assert render("{langbar: {show_own_lang: false, separator: ' '}}", [de], LangbarTag()) == (
        '<a href="index.html">en</a> <a href="index.fr.html">fr</a>'
    )
    assert render("{langbar:}", [solo], LangbarTag()) == "<span>en</span>"
    assert render("{langbar: {show_single_lang: false}}", [solo], LangbarTag()) == ""


def make_menu_site():
    tree, root = make_tree()
    index = Node(root, "index.html", "/index.html", {"in_menu": True, "title": "Home", "menu_order": 1})
    about = Node(root, "about.html", "/about.html", {"in_menu": True, "title": "About", "menu_order": 2})
    docs = Node(root, "docs/", "/docs/", {"title": "Docs", "proxy_path": "index.html"})
    Node(docs, "index.html", "/docs/index.html", {"in_menu": True, "title": "Docs Index", "menu_order": 1})
    setup = Node(docs, "setup.html", "/docs/setup.html", {"in_menu": True, "title": "Setup", "menu_order": 2})
    Node(root, "hidden.html", "/hidden.html", {"title": "Hidden"})
    return tree, index, about, setup


def test_build_menu_tree():
    tree, index, about, setup = make_menu_site()
    menu = build_menu_tree(tree)

    assert menu.node is tree.root
    assert [item.node.cn for item in menu.children] == ["docs/", "index.html", "about.html"]
    assert [item.node.cn for item in menu.children[0].children] == ["index.html", "setup.html"]


def test_menu_tag_outside_subtree():
    tree, index, about, setup = make_menu_site()
    tag = MenuTag(tree.config, build_menu_tree(tree))

    assert render("{menu:}", [about], tag) == (
        '<ul><li class="submenu"><a href="docs/index.html">Docs</a></li>'
        '<li><a href="index.html">Home</a></li>'
        '<li class="menuitem-selected"><span>About</span></li></ul>'
    )


def test_menu_tag_inside_subtree():
    tree, index, about, setup = make_menu_site()
    tag = MenuTag(tree.config, build_menu_tree(tree))

    assert render("{menu:}", [setup], tag) == (
        '<ul><li class="submenu"><a href="index.html">Docs</a>'
        '<ul><li><a href="index.html">Docs Index</a></li>'
        '<li class="menuitem-selected"><span>Setup</span></li></ul></li>'
        '<li><a href="../index.html">Home</a></li>'
        '<li><a href="../about.html">About</a></li></ul>'
    )


def test_menu_tag_level_shows_more_levels():
    tree, index, about, setup = make_menu_site()
    tag = MenuTag(tree.config, build_menu_tree(tree))

    output = render("{menu: {level: 2}}", [about], tag)
    assert '<li><a href="docs/setup.html">Setup</a></li>' in output
    assert render("{menu: {subtree_level: 0}}", [about], tag) == ""


def test_menu_tag_links_translations():
    tree, root = make_tree()
    Node(root, "index.html", "/index.html", {"lang": "en", "in_menu": True, "title": "Home"})
    de = Node(root, "index.html", "/index.de.html", {"lang": "de", "title": "Start"})
    tag = MenuTag(tree.config, build_menu_tree(tree))

    assert render("{menu:}", [de], tag) == '<ul><li class="menuitem-selected"><span>Start</span></li></ul>'


def test_relocatable_tag(caplog):
    tree, root = make_tree()
    template = Node(root, "default.template", "/default.template", {"no_output": True})
    img = Node(root, "img/", "/img/")
    Node(img, "logo.png", "/img/logo.png")
    docs = Node(root, "docs/", "/docs/")
    page = Node(docs, "setup.html", "/docs/setup.html")
    chain = [template, page]

    assert render("{relocatable: img/logo.png}", chain, RelocatableTag()) == "../img/logo.png"
    assert render("{relocatable: {path: /docs/setup.html}}", chain, RelocatableTag()) == "setup.html"
    assert render("{relocatable: 'https://example.org/'}", chain, RelocatableTag()) == (
        "https://example.org/"
    )
    assert render("{relocatable: missing.png}", chain, RelocatableTag()) == ""
    assert "Could not resolve path 'missing.png'" in caplog.text
    assert render("{relocatable:}", chain, RelocatableTag()) == ""
    assert "Not all mandatory parameters" in caplog.text


def test_create_default_registry():
    tree, root = make_tree()
    registry = create_default_registry(tree)

    for tag in (DEFAULT_TAG, "block", "langbar", "menu", "relocatable"):
        assert tag in registry
    assert isinstance(registry.handler_for("title"), MetaTag)
