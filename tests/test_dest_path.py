from datetime import date, datetime

import pytest

from stheno.dest_path import (
    DestPathPolicy,
    Group,
    Literal,
    Segment,
    construct_dest_path,
    parse_template,
)
from stheno.node import Node, NodeCreationError, Tree
from stheno.paths import SourcePath

DEFAULT_TEMPLATE = "<parent><basename>(-<version>)(.<lang>)<ext>"


def make_parent(dest_path="/docs/"):
    tree = Tree({"lang": "en"})
    root = Node(tree.dummy_root, "/", "/")
    if dest_path == "/":
        return root
    return Node(root, "parent.html", dest_path)


def expand(template, path="/docs/file.html", parent=None, policy=None, force=False, **meta):
    source = SourcePath(path, {"dest_path": template, **meta})
    return construct_dest_path(
        parent or make_parent(), source, policy or DestPathPolicy(), force
    )


def test_parse_template():
    assert parse_template("<parent>(.<lang>)x") == [
        Segment("parent"),
        Group((Literal("."), Segment("lang"))),
        Literal("x"),
    ]
    assert parse_template("a(<lang>") == [Literal("a("), Segment("lang")]
    assert parse_template("a<b") == [Literal("a<b")]
    assert parse_template("a)b") == [Literal("a)b")]


def test_parse_template_unclosed_groups():
    assert parse_template("(" * 40) == [Literal("(" * 40)]
    assert parse_template("((a)") == [Literal("("), Group((Literal("a"),))]
    assert parse_template("(<a)>") == [Literal("("), Segment("a)")]
    assert expand("<basename>" + "(" * 40 + "<ext>") == "file" + "(" * 40 + ".html"


def test_default_template():
    assert expand(DEFAULT_TEMPLATE) == "/docs/file.html"
    assert expand(DEFAULT_TEMPLATE, path="/docs/file.de.html") == "/docs/file.de.html"
    assert expand(DEFAULT_TEMPLATE, path="/docs/file.en.html") == "/docs/file.html"
    assert expand(DEFAULT_TEMPLATE, path="/docs/file.de.html", version="2") == (
        "/docs/file-2.de.html"
    )


def test_parent_segment_indices():
    parent = make_parent("docs/guide/intro.html")
    assert expand("<parent 1>", parent=parent) == "docs"
    assert expand("<parent -1>", parent=parent) == "intro.html"
    assert expand("<parent 1..2>", parent=parent) == "docs/guide"
    assert expand("<parent 2..-1>", parent=parent) == "guide/intro.html"
    assert expand("<parent1>", parent=parent) == "docs"
    assert expand("<parent 5>", parent=parent) == ""


def test_parent_segment_index_zero_fails():
    parent = make_parent("/docs/guide/intro.html")
    with pytest.raises(NodeCreationError):
        expand("<parent 0>", parent=parent)
    with pytest.raises(NodeCreationError):
        expand("<parent 1..0>", parent=parent)


def test_optional_group_vanishes_without_contribution():
    always = DestPathPolicy(lang_code="always")
    never = DestPathPolicy(lang_code="never")
    assert expand("a(.<lang>)b", path="/x.de.html", policy=always) == "a.deb"
    assert expand("a(.<lang>)b", path="/x.de.html", policy=never) == "ab"
    assert expand("a(.<lang>)b", path="/x.html", policy=always) == "ab"
    assert expand("<basename>(x(.<lang>)y)", path="/x.html", policy=never) == "x"
    assert expand("<basename>(x(.<lang>)y)", path="/f.de.html", policy=always) == "fx.dey"


def test_force_lang_part_overrides_policy():
    never = DestPathPolicy(lang_code="never")
    assert expand(DEFAULT_TEMPLATE, path="/docs/file.de.html", policy=never) == "/docs/file.html"
    assert expand(DEFAULT_TEMPLATE, path="/docs/file.de.html", policy=never, force=True) == (
        "/docs/file.de.html"
    )


def test_policies():
    policy = DestPathPolicy(lang_code="except_default", default_lang="en")
    assert policy.use_lang_part("de")
    assert not policy.use_lang_part("en")
    assert policy.use_lang_part("en", force=True)
    assert not policy.use_lang_part(None, force=True)

    assert DestPathPolicy(lang_code=True).lang_code == "always"
    assert DestPathPolicy(lang_code=False).lang_code == "never"
    assert DestPathPolicy(version="except-default").version == "except_default"
    assert DestPathPolicy(version="always").use_version_part("default")
    assert not DestPathPolicy(version="never").use_version_part("2")
    with pytest.raises(ValueError):
        DestPathPolicy(lang_code="sometimes")

    config_policy = DestPathPolicy.from_config({"lang": "de", "lang_code_in_dest_path": "always"})
    assert config_policy.default_lang == "de"
    assert config_policy.lang_code == "always"
    assert config_policy.version == "except_default"


def test_date_segments():
    template = "/<year>/<month>/<day>/<basename>.html"
    assert expand(template, created_at=datetime(2024, 3, 5, 10, 30)) == "/2024/03/05/file.html"
    assert expand(template, created_at=date(2023, 12, 24)) == "/2023/12/24/file.html"
    with pytest.raises(NodeCreationError):
        expand(template)
    with pytest.raises(NodeCreationError):
        expand(template, created_at="2024-03-05")


def test_verbatim_templates():
    assert expand("stheno:/raw//path<basename>") == "/raw//path<basename>"
    assert expand("https://example.com/<basename>") == "https://example.com/<basename>"


def test_invalid_templates():
    with pytest.raises(NodeCreationError, match="must be a string"):
        expand(5)
    with pytest.raises(NodeCreationError, match="must be a string"):
        construct_dest_path(make_parent(), SourcePath("/docs/file.html"), DestPathPolicy())
    with pytest.raises(NodeCreationError, match="Unknown destination path segment"):
        expand("<parent><title>")


def test_directories_and_slash_runs():
    assert expand("<parent><basename>", path="/docs/sub/") == "/docs/sub/"
    assert expand("<parent>/<basename>//", path="/docs/sub/") == "/docs/sub/"
    root = make_parent("/")
    assert expand("<parent><basename>", path="/", parent=root) == "/"


def test_fragment_parent_uses_enclosing_file():
    parent = make_parent("/docs/page.html")
    fragment = Node(parent, "#sec", "/docs/page.html#sec")
    assert expand("<parent>", path="/docs/page.html#sub", parent=fragment) == "/docs/page.html"
