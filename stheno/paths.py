"""Source paths and name helpers for Stheno.

This module defines the path descriptor handed to path handlers and the
small set of string rules every other module relies on for node identity:
localized names, language codes, relative path resolution and routing
between destination paths.

Key pieces:
- SourcePath: Immutable descriptor of one source path and its meta info.
- lcn: Merge a canonical name with a language code.
- append_path: Make a path absolute against a base alcn.
- route: Compute a relative reference between two destination paths.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

# ISO 639-1 language codes.
LANGUAGE_CODES = frozenset(
    """
    aa ab ae af ak am an ar as av ay az ba be bg bh bi bm bn bo br bs ca ce ch
    co cr cs cu cv cy da de dv dz ee el en eo es et eu fa ff fi fj fo fr fy ga
    gd gl gn gu gv ha he hi ho hr ht hu hy hz ia id ie ig ii ik io is it iu ja
    jv ka kg ki kj kk kl km kn ko kr ks ku kv kw ky la lb lg li ln lo lt lu lv
    mg mh mi mk ml mn mr ms mt my na nb nd ne ng nl nn no nr nv ny oc oj om or
    os pa pi pl ps pt qu rm rn ro ru rw sa sc sd se sg si sk sl sm sn so sq sr
    ss st su sv sw ta te tg th ti tk tl tn to tr ts tt tw ty ug uk ur uz ve vi
    vo wa wo xh yi yo za zh zu
    """.split()
)

SCHEME_RE = re.compile(r"^[\w+.-]+:")


def normalize_language(code: Any) -> str | None:
    """Return the lower-cased ISO 639-1 code for ``code`` or None.

    Examples:
        >>> normalize_language("DE")
        'de'

        >>> normalize_language("deutsch") is None
        True
    """
    if code is None:
        return None
    text = str(code).strip()
    if text.lower() in LANGUAGE_CODES:
        return text.lower()
    return None


def is_external(path: str) -> bool:
    """Check if a path carries a URL scheme (``http://...``, ``mailto:...``)."""
    return bool(SCHEME_RE.match(path))


def split_file_name(name: str) -> tuple[str, str | None, str]:
    """Split a file name into base name, embedded language and extension.

    The base name ends at the first dot. The segment after it is the
    language if it is an ISO 639-1 code and an extension follows it.

    Examples:
        >>> split_file_name("index.de.html")
        ('index', 'de', 'html')

        >>> split_file_name("archive.tar.gz")
        ('archive', None, 'tar.gz')
    """
    basename, _, rest = name.partition(".")
    lang = None
    if rest:
        candidate, sep, ext = rest.partition(".")
        if sep and normalize_language(candidate):
            lang = candidate.lower()
            rest = ext
    return basename, lang, rest


def lcn(cn: str, lang: str | None) -> str:
    """Return the localized canonical name for ``cn`` in language ``lang``.

    Examples:
        >>> lcn("index.html", "de")
        'index.de.html'

        >>> lcn("README", "en")
        'README.en'
    """
    if lang is None:
        return cn
    basename, sep, ext = cn.partition(".")
    if sep:
        return f"{basename}.{lang}.{ext}"
    return f"{cn}.{lang}"


def clean_path(path: str) -> str:
    """Resolve ``.`` and ``..`` segments, keeping trailing slash and fragment."""
    path_part, sep, fragment = path.partition("#")
    if "/." not in path_part:
        return path
    is_dir = path_part.endswith(("/", "/.", "/.."))
    cleaned = posixpath.normpath(path_part)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    if is_dir and cleaned != "/":
        cleaned += "/"
    return cleaned + sep + fragment


def append_path(base: str, path: str) -> str:
    """Make ``path`` absolute by using ``base`` (an absolute alcn) as reference.

    Args:
        base: Absolute path of the referencing node.
        path: Absolute path, relative path or ``#fragment`` reference.

    Returns:
        Absolute, cleaned path.

    Raises:
        ValueError: If ``base`` is not absolute.
    """
    if not base.startswith("/"):
        raise ValueError(f"Base path must be absolute: {base!r}")
    base = base.partition("#")[0]
    if path.startswith("/"):
        result = path
    elif path.startswith("#"):
        result = base + path
    else:
        directory = base if base.endswith("/") else base.rsplit("/", 1)[0] + "/"
        result = directory + path
    return clean_path(result)


def route(source: str, target: str) -> str:
    """Compute the relative reference from destination ``source`` to ``target``.

    Returns an empty string when both denote the same file without fragment.
    External targets are returned unchanged.

    Examples:
        >>> route("/docs/intro.html", "/docs/guide/")
        'guide/'

        >>> route("/docs/intro.html", "/index.html#top")
        '../index.html#top'
    """
    if is_external(target) or is_external(source):
        return target
    target = clean_path(target)
    source_path = source.partition("#")[0]
    target_path, sep, fragment = target.partition("#")
    if target_path == source_path:
        return sep + fragment
    source_dir = source_path if source_path.endswith("/") else source_path.rsplit("/", 1)[0] + "/"
    relative = posixpath.relpath(target_path, source_dir)
    if target_path.endswith("/"):
        relative = relative.rstrip("/") + "/"
    return relative + sep + fragment


class SourcePath:
    """Immutable descriptor of a source path handed to a path handler.

    The path is absolute and ``/``-separated: ``/`` is the root directory,
    ``/dir/`` a directory, ``/dir/file.de.html`` a file and
    ``/file.html#frag`` a fragment of a file.

    Attributes:
        path: The source path string.
        meta_info: Read-only meta information mapping.
        source: Optional file system location the path was read from.
        parent_path: Path of the parent (``""`` for the root).
        basename: Base name without language and extension.
        ext: Extension without leading dot (may be empty).
        cn: Canonical name.
    """

    def __init__(
        self,
        path: str,
        meta_info: Mapping[str, Any] | None = None,
        source: Path | None = None,
    ):
        if not path.startswith("/"):
            raise ValueError(f"Source path must be absolute: {path!r}")
        self.path = path
        self.source = source
        name_lang = self._analyse(path)

        meta: dict[str, Any] = {"version": "default"}
        meta.update(meta_info or {})
        if name_lang and meta.get("lang") is None:
            meta["lang"] = name_lang
        self.meta_info: Mapping[str, Any] = MappingProxyType(meta)

    def _analyse(self, path: str) -> str | None:
        if "#" in path:
            parent, fragment = path.split("#", 1)
            self.parent_path = parent
            self.basename = "#" + fragment
            self.ext = ""
            self.cn = self.basename
            return None
        if path == "/":
            self.parent_path = ""
            self.basename = ""
            self.ext = ""
            self.cn = "/"
            return None
        if path.endswith("/"):
            head, name = path[:-1].rsplit("/", 1)
            self.parent_path = head + "/"
            self.basename = name
            self.ext = ""
            self.cn = name + "/"
            return None
        head, name = path.rsplit("/", 1)
        self.parent_path = head + "/"
        self.basename, lang, self.ext = split_file_name(name)
        self.cn = self.basename + (f".{self.ext}" if self.ext else "")
        return lang

    @property
    def is_directory(self) -> bool:
        return self.cn.endswith("/") and not self.is_fragment

    @property
    def is_fragment(self) -> bool:
        return self.cn.startswith("#")

    @property
    def is_file(self) -> bool:
        return not self.is_directory and not self.is_fragment

    @property
    def lang(self) -> str | None:
        """Language of the path; directories and fragments never have one."""
        if not self.is_file:
            return None
        return normalize_language(self.meta_info.get("lang"))

    @property
    def lcn(self) -> str:
        return lcn(self.cn, self.lang)

    @property
    def acn(self) -> str:
        return self.parent_path + self.cn

    @property
    def alcn(self) -> str:
        return self.parent_path + self.lcn

    def with_meta_info(self, meta_info: Mapping[str, Any]) -> SourcePath:
        """Return a new descriptor with ``meta_info`` merged over the current one."""
        merged = dict(self.meta_info)
        merged.update(meta_info)
        return SourcePath(self.path, merged, self.source)

    def with_ext(self, ext: str) -> SourcePath:
        """Return a new file descriptor whose extension is ``ext``.

        The language embedded in the original file name is kept in the meta
        info.
        """
        if not self.is_file:
            raise ValueError(f"Only file paths have an extension: {self.path!r}")
        name = self.basename + (f".{ext}" if ext else "")
        return SourcePath(self.parent_path + name, self.meta_info, self.source)

    def __str__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return f"SourcePath({self.path!r})"
