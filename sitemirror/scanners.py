"""Content scanners: discover links in fetched bodies.

A scanner takes the raw body of a resource and returns the bytes to store.
Links it finds are resolved against the crawl scope and pushed onto the
frontier handed to it; scanners never fetch anything themselves.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Union

from bs4 import BeautifulSoup

from .frontier import Frontier
from .resolver import InScope, SiteScope, resolve_link

LOGGER = logging.getLogger(__name__)

CSS_URL_RE = re.compile(rb"\burl\s*\(([^)]+)", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(rb"@import\s+([\"'])([^\"']+)\1", re.IGNORECASE)
_PROTOCOL = re.compile(r"^https?://", re.IGNORECASE)


@dataclass
class ScanContext:
    """Everything a scanner needs besides the body itself."""

    scope: SiteScope
    frontier: Frontier
    html_links: Dict[str, List[str]] = field(default_factory=dict)
    remote_match: Optional[Pattern[str]] = None
    verbose: bool = False

    def discover(self, current: str, link: str, source: str) -> bool:
        """Resolve ``link`` and enqueue it when in scope and new."""
        resolution = resolve_link(self.scope, current, link)
        if not isinstance(resolution, InScope):
            return False
        added = self.frontier.enqueue(resolution.path)
        if added and self.verbose:
            LOGGER.debug("%s: %s", source, resolution.path)
        return added


Scanner = Callable[[ScanContext, str, bytes], bytes]


def _attribute_text(value: Union[str, List[str]]) -> str:
    if isinstance(value, list):
        return " ".join(value)
    return value


def scan_html(context: ScanContext, current: str, body: bytes) -> bytes:
    """Enqueue links from configured element attributes.

    Attribute values matching ``remote_match`` are rewritten to
    protocol-relative form. The document is re-serialized only when
    something was rewritten.
    """
    soup = BeautifulSoup(body, "html.parser")
    rewritten = False
    for selector, attributes in context.html_links.items():
        for element in soup.select(selector):
            for attribute in attributes:
                value = element.get(attribute)
                if not value:
                    continue
                href = _attribute_text(value)
                context.discover(current, href, "scanHTML: href")
                if context.remote_match is not None and context.remote_match.search(href):
                    relative = _PROTOCOL.sub("//", href)
                    if relative != href:
                        element[attribute] = relative
                        rewritten = True

    if not rewritten:
        return body
    return soup.encode(soup.original_encoding or "utf-8")


def scan_css(context: ScanContext, current: str, body: bytes) -> bytes:
    """Enqueue ``url(...)`` and ``@import`` references; the body is unchanged."""
    for match in CSS_URL_RE.finditer(body):
        raw = match.group(1).strip()
        if raw[:1] in (b"'", b'"'):
            raw = raw[1:-1] if raw[-1:] == raw[:1] and len(raw) > 1 else raw[1:]
        context.discover(current, raw.strip().decode("utf-8", "replace"), "scanCSS: url")

    for match in CSS_IMPORT_RE.finditer(body):
        context.discover(current, match.group(2).decode("utf-8", "replace"), "scanCSS: import")

    return body


_SCANNERS: Dict[str, Scanner] = {
    "text/html": scan_html,
    "text/css": scan_css,
}


def mime_type(content_type: Optional[str]) -> str:
    """Content type with parameters stripped, lowercased."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def get_scanner(content_type: Optional[str]) -> Optional[Scanner]:
    """Scanner for a response content type, or None for pass-through."""
    return _SCANNERS.get(mime_type(content_type))
