"""Canonicalize links found in mirrored content against the crawl scope.

A link resolves to exactly one of:

- ``InScope(path)``: base-path-prefixed, fragment-free, query kept;
- ``OutOfScope(reason)``: another origin, another scheme, or above the base;
- ``Malformed(reason)``: not usable as a link at all.

Example:

    scope = SiteScope.from_url("https://example.com/site/")
    resolve_link(scope, "/site/a/b", "c.html?x=1#top")
    # InScope(path='/site/a/c.html?x=1')
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Tuple, Union
from urllib.parse import SplitResult, urlsplit

_SCHEME_OR_NETWORK = re.compile(r"^(?:[a-z][a-z0-9+.-]*:|//)", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_DIRECTORY_LINK = re.compile(r"\./?$")


@dataclass(frozen=True, slots=True)
class SiteScope:
    """Origin and base path of a crawl."""

    origin: str
    base_path: str

    @classmethod
    def from_url(cls, url: str) -> "SiteScope":
        """Build a scope from the crawl root URL.

        Raises:
            ValueError: If the URL is not an absolute http(s) URL.
        """
        parts = urlsplit(url)
        if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Crawl root must be an http(s) URL: {url!r}")
        base_path = parts.path or "/"
        if not base_path.endswith("/"):
            base_path += "/"
        return cls(origin=f"{parts.scheme.lower()}://{parts.netloc.lower()}", base_path=base_path)

    @property
    def root_url(self) -> str:
        return self.origin + self.base_path

    def absolute_url(self, path: str) -> str:
        return self.origin + path

    def contains(self, path: str) -> bool:
        return path.startswith(self.base_path)


@dataclass(frozen=True, slots=True)
class InScope:
    path: str


@dataclass(frozen=True, slots=True)
class OutOfScope:
    reason: str


@dataclass(frozen=True, slots=True)
class Malformed:
    reason: str


Resolution = Union[InScope, OutOfScope, Malformed]


def normalize_path(path: str) -> str:
    """Collapse ``.``, ``..`` and duplicate separators, keeping a trailing ``/``."""
    if not path:
        return "."
    normalized = posixpath.normpath(path)
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if path.endswith("/") and not normalized.endswith("/"):
        normalized += "/"
    return normalized


def _split_query(link: str) -> Tuple[str, str]:
    index = link.find("?")
    if index < 0:
        return link, ""
    return link[:index], link[index:]


def _same_origin(scope: SiteScope, parts: SplitResult) -> bool:
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}" == scope.origin


def _directory(path: str) -> str:
    if path.endswith("/"):
        return path
    return path[: path.rfind("/") + 1]


def _in_scope(scope: SiteScope, path: str, query: str, link: str) -> Resolution:
    if _DIRECTORY_LINK.search(link) and not path.endswith("/"):
        path += "/"
    if not scope.contains(path):
        return OutOfScope(f"escapes scope: {path}")
    return InScope(path + query)


def resolve_link(scope: SiteScope, current: str, link: str) -> Resolution:
    """Resolve ``link`` found in the resource at ``current``."""
    if _CONTROL_CHARS.search(link):
        return Malformed("control character in link")

    link = link.split("#", 1)[0]
    link, query = _split_query(link)

    if _SCHEME_OR_NETWORK.match(link):
        try:
            parts = urlsplit(link)
        except ValueError as exc:
            return Malformed(f"{exc}: {link}")
        if not _same_origin(scope, parts):
            # Remote hosts are never crawled.
            return OutOfScope(f"remote reference: {link}")
        remainder = parts.path or "/"
        return _in_scope(scope, normalize_path(remainder), query, remainder)

    if link.startswith(scope.base_path):
        return _in_scope(scope, normalize_path(link), query, link)

    if link.startswith("/"):
        return OutOfScope(f"outside base path: {link}")

    current_path, current_query = _split_query(current)
    if not link:
        return _in_scope(scope, current_path, query or current_query, link)

    resolved = normalize_path(_directory(current_path) + link)
    return _in_scope(scope, resolved, query, link)
