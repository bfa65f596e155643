"""End-to-end tests for the mirror and its CLI.

These tests run against a local HTTP test server to keep the suite deterministic
and to avoid external availability dependencies.
"""

from __future__ import annotations

import hashlib
import json
import subprocess
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

import pytest

PAGES: Dict[str, Tuple[str, bytes]] = {
    "/docs/": (
        "text/html; charset=utf-8",
        b"""<html><head><link rel="stylesheet" href="style.css"></head>
<body>
  <a href="guide/intro.html">Guide</a>
  <a href="../outside.html">Outside</a>
  <a href="/outside.html">Also outside</a>
  <img src="img/logo.png">
</body></html>
""",
    ),
    "/docs/style.css": ("text/css", b"h1 { background: url(img/logo.png) }"),
    "/docs/guide/intro.html": (
        "text/html; charset=utf-8",
        b'<html><body><a href="../">Back</a><a href="missing.html">Gone</a></body></html>',
    ),
    "/docs/img/logo.png": ("image/png", b"\x89PNG\r\n\x1a\n"),
    "/docs/robots.txt": ("text/plain", b"User-agent: *\n"),
    "/outside.html": ("text/html", b"<p>not part of the mirror</p>"),
}


class _MirrorHandler(BaseHTTPRequestHandler):
    """Static site with ETags; answers 304 to a matching If-None-Match."""

    requests: List[str] = []

    def log_message(self, format: str, *args) -> None:  # noqa: A003
        return

    def do_GET(self) -> None:  # noqa: N802
        self.requests.append(self.path)
        page = PAGES.get(self.path)
        if page is None:
            body = b"<h1>Not Found</h1>"
            self.send_response(404)
            self.send_header("Content-Type", "text/html")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return

        content_type, body = page
        etag = f'"{hashlib.md5(body).hexdigest()[:12]}"'
        if self.headers.get("If-None-Match") == etag:
            self.send_response(304)
            self.send_header("ETag", etag)
            self.end_headers()
            return

        self.send_response(200)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("ETag", etag)
        self.end_headers()
        self.wfile.write(body)


@pytest.fixture(scope="session")
def local_test_server() -> Iterator[str]:
    """Start one local HTTP server for all E2E tests."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _MirrorHandler)
    host, port = server.server_address
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://{host}:{port}"
    finally:
        server.shutdown()
        thread.join(timeout=5)
        server.server_close()


@pytest.fixture
def server_log(local_test_server: str) -> List[str]:
    _MirrorHandler.requests.clear()
    return _MirrorHandler.requests


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_mirror_then_revalidate(tmp_path: Path, local_test_server: str, server_log):
    """First run downloads everything in scope; the second gets 304s only."""
    from sitemirror import MirrorConfig, mirror_site_async

    def config() -> MirrorConfig:
        return MirrorConfig(
            url=f"{local_test_server}/docs",
            local_path=str(tmp_path / "out"),
            additional_targets=["/robots.txt"],
        )

    first = await mirror_site_async(config())

    assert sorted(server_log) == [
        "/docs/",
        "/docs/guide/intro.html",
        "/docs/guide/missing.html",
        "/docs/img/logo.png",
        "/docs/robots.txt",
        "/docs/style.css",
    ]
    out = tmp_path / "out" / "docs"
    assert (out / "index.html").read_bytes() == PAGES["/docs/"][1]
    assert (out / "img" / "logo.png").read_bytes() == b"\x89PNG\r\n\x1a\n"
    assert not (tmp_path / "out" / "outside.html").exists()
    assert first.stats["saved"] == 5
    assert first.tree.get("/docs/guide/missing.html").errors == 1

    server_log.clear()
    second = await mirror_site_async(config())

    assert sorted(server_log) == ["/docs/", "/docs/robots.txt"]
    assert second.stats["not_modified"] == 2
    root = second.tree.get("/docs/")
    assert root.version == 2
    assert root.fileversion == 1

    saved = json.loads((tmp_path / "out.json").read_text())
    assert saved == second.tree.to_json()


@pytest.mark.e2e
def test_cli_mirror(tmp_path: Path, local_test_server: str, server_log):
    """CLI subprocess: mirror into a directory and write the metadata file."""
    out = tmp_path / "cli-out"
    result = subprocess.run(
        [
            sys.executable,
            "-m",
            "sitemirror.cli",
            f"{local_test_server}/docs/",
            "-o",
            str(out),
            "--target",
            "/robots.txt",
            "--parallel",
            "3",
        ],
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, f"stderr: {result.stderr[:500]}"
    assert (out / "docs" / "index.html").exists()
    assert (out / "docs" / "guide" / "intro.html").exists()
    metadata = json.loads((tmp_path / "cli-out.json").read_text())
    assert "/docs" in metadata[1]


@pytest.mark.e2e
def test_cli_unreachable_server(tmp_path: Path):
    """CLI subprocess: a transport failure exits with status 1."""
    result = subprocess.run(
        [
            sys.executable,
            "-m",
            "sitemirror.cli",
            "http://127.0.0.1:9/docs/",
            "-o",
            str(tmp_path / "out"),
            "--timeout",
            "5",
        ],
        capture_output=True,
        text=True,
        timeout=30,
    )
    assert result.returncode == 1
    assert "Request Error" in result.stderr
    assert not (tmp_path / "out.json").exists()
