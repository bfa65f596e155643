"""Tests for sitemirror.scanners module."""

from __future__ import annotations

import logging
import re

from sitemirror.config import DEFAULT_HTML_LINKS, DEFAULT_REMOTE_MATCH
from sitemirror.frontier import Frontier
from sitemirror.resolver import SiteScope
from sitemirror.scanners import ScanContext, get_scanner, mime_type, scan_css, scan_html

SCOPE = SiteScope.from_url("https://example.com/site/")

PAGE = b"""<!DOCTYPE html>
<html>
<head>
  <link rel="stylesheet" href="css/main.css">
  <meta property="og:image" content="/site/og.png">
  <meta name="description" content="ignored.png">
</head>
<body>
  <a href="page.html#intro">Intro</a>
  <a href="https://other.example/">Elsewhere</a>
  <a href="mailto:team@example.com">Mail</a>
  <a>No target</a>
  <img src="img/a.png" data-original="img/b.png">
  <script src="/site/app.js"></script>
  <script>var inline = 1;</script>
</body>
</html>
"""


def _context(**kwargs) -> ScanContext:
    options = {
        "scope": SCOPE,
        "frontier": Frontier(),
        "html_links": DEFAULT_HTML_LINKS,
        "remote_match": None,
    }
    options.update(kwargs)
    return ScanContext(**options)


def _pending(frontier: Frontier) -> list:
    return frontier.take(len(frontier))


class TestScanHtml:
    def test_discovers_configured_attributes(self):
        context = _context()
        scan_html(context, "/site/", PAGE)
        assert set(_pending(context.frontier)) == {
            "/site/css/main.css",
            "/site/og.png",
            "/site/page.html",
            "/site/img/a.png",
            "/site/img/b.png",
            "/site/app.js",
        }

    def test_body_returned_unchanged_without_rewrite(self):
        result = scan_html(_context(), "/site/", PAGE)
        assert result is PAGE

    def test_custom_selectors(self):
        context = _context(html_links={"video source": ["src"]})
        body = b'<video><source src="clip.mp4"></video><a href="skipped.html">x</a>'
        scan_html(context, "/site/media/", body)
        assert _pending(context.frontier) == ["/site/media/clip.mp4"]

    def test_remote_references_rewritten(self):
        context = _context(remote_match=re.compile(r"cdn\.example"))
        body = (
            b'<html><body><script src="https://cdn.example/x.js"></script>'
            b'<a href="http://cdn.example/y">y</a>'
            b'<a href="https://other.example/z">z</a></body></html>'
        )
        result = scan_html(context, "/site/", body)
        assert b'src="//cdn.example/x.js"' in result
        assert b'href="//cdn.example/y"' in result
        assert b'href="https://other.example/z"' in result
        assert len(context.frontier) == 0

    def test_default_remote_match(self):
        context = _context(remote_match=re.compile(DEFAULT_REMOTE_MATCH))
        body = b'<link href="https://maxcdn.bootstrapcdn.com/b.css" rel="stylesheet">'
        result = scan_html(context, "/site/", body)
        assert b'href="//maxcdn.bootstrapcdn.com/b.css"' in result

    def test_already_relative_remote_not_reserialized(self):
        context = _context(remote_match=re.compile(r"cdn\.example"))
        body = b'<script src="//cdn.example/x.js"></script>'
        assert scan_html(context, "/site/", body) is body

    def test_unparsable_link_skipped(self):
        context = _context()
        body = b'<a href="http://[broken/x">bad</a><a href="page.html">ok</a>'
        assert scan_html(context, "/site/", body) is body
        assert _pending(context.frontier) == ["/site/page.html"]

    def test_verbose_logs_discoveries(self, caplog):
        caplog.set_level(logging.DEBUG, logger="sitemirror.scanners")
        context = _context(verbose=True)
        scan_html(context, "/site/", b'<a href="page.html">p</a>')
        assert "scanHTML: href: /site/page.html" in caplog.text


class TestScanCss:
    def test_discovers_urls_and_imports(self):
        context = _context()
        body = (
            b"@import \"theme.css\";\n"
            b"body { background: url('img/bg.png') }\n"
            b".up { background: url( \"../up.png\" ) }\n"
            b".plain { background: URL(fonts/a.woff) }\n"
            b".inline { background: url(data:image/png;base64,AAAA) }\n"
            b".remote { background: url(https://cdn.example/x.png) }\n"
        )
        result = scan_css(context, "/site/css/main.css", body)
        assert result is body
        assert set(_pending(context.frontier)) == {
            "/site/css/theme.css",
            "/site/css/img/bg.png",
            "/site/up.png",
            "/site/css/fonts/a.woff",
        }

    def test_duplicates_enqueued_once(self):
        context = _context()
        body = b"a{background:url(x.png)} b{background:url(x.png)}"
        scan_css(context, "/site/", body)
        assert _pending(context.frontier) == ["/site/x.png"]


class TestScannerLookup:
    def test_mime_type(self):
        assert mime_type("Text/HTML; charset=UTF-8") == "text/html"
        assert mime_type(None) == ""

    def test_get_scanner(self):
        assert get_scanner("text/html; charset=utf-8") is scan_html
        assert get_scanner("TEXT/CSS") is scan_css
        assert get_scanner("image/png") is None
        assert get_scanner(None) is None
