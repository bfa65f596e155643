"""Shared fixtures: an in-memory site served through httpx.MockTransport."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from sitemirror.config import MirrorConfig

ORIGIN = "https://example.com"
ROOT_URL = ORIGIN + "/site/"
HTTP_DATE = "Mon, 19 Oct 2026 07:00:00 GMT"


@dataclass
class FakePage:
    status: int = 200
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)


class FakeSite:
    """Serve canned responses; answers 304 when If-None-Match matches."""

    def __init__(self) -> None:
        self.pages: Dict[str, FakePage] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        path: str,
        body: bytes = b"",
        *,
        status: int = 200,
        content_type: str = "text/html; charset=utf-8",
        etag: Optional[str] = None,
    ) -> None:
        headers = {"content-type": content_type, "date": HTTP_DATE}
        if etag:
            headers["etag"] = etag
        self.pages[path] = FakePage(status=status, body=body, headers=headers)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = self.pages.get(request.url.raw_path.decode("ascii"))
        if page is None:
            return httpx.Response(404, headers={"date": HTTP_DATE}, content=b"not found")
        etag = page.headers.get("etag")
        if page.status == 200 and etag and request.headers.get("if-none-match") == etag:
            return httpx.Response(304, headers={"date": HTTP_DATE, "etag": etag})
        return httpx.Response(page.status, headers=page.headers, content=page.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requested(self) -> List[str]:
        return [request.url.raw_path.decode("ascii") for request in self.requests]


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def make_config(tmp_path) -> Callable[..., MirrorConfig]:
    def _make(**overrides) -> MirrorConfig:
        options = {
            "url": ROOT_URL,
            "local_path": str(tmp_path / "mirror"),
            "json_path": str(tmp_path / "mirror.json"),
            "additional_targets": [],
        }
        options.update(overrides)
        return MirrorConfig(**options)

    return _make
