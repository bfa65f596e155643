"""Conditional retrieval of a single resource.

``Fetcher.fetch`` performs one GET, classifies the response, runs the
matching content scanner, stores the body on a 200 and returns the next
metadata record. 404, 401 and 500 are recorded, not raised; any other
unexpected outcome raises a ``FetchError``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, Optional

import httpx

from .errors import MirrorError
from .local_path import LocalPathMapper
from .record import RECORDED_HEADERS, MetadataRecord, utc_timestamp
from .resolver import SiteScope
from .scanners import ScanContext, get_scanner

LOGGER = logging.getLogger(__name__)

# Recorded and counted in ``errors``; the run continues.
RECORDED_ERROR_STATUSES = frozenset({401, 404, 500})


class FetchError(MirrorError):
    """Raised when a resource cannot be fetched or stored."""

    def __init__(self, message: str, url: str):
        self.url = url
        super().__init__(message)


class TransportError(FetchError):
    """DNS, connection, TLS or protocol failure."""


class UnexpectedStatusError(FetchError):
    """The server answered with a status the mirror does not handle."""

    def __init__(self, url: str, status: int):
        self.status = status
        super().__init__(f"Unexpected status {status}: {url}", url)


class WriteError(FetchError):
    """The fetched body could not be written to disk."""


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


class Fetcher:
    """Fetch resources of one site through a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        scope: SiteScope,
        paths: LocalPathMapper,
        scan_context: ScanContext,
        *,
        try_304: bool = True,
        verbose: bool = False,
    ) -> None:
        self.client = client
        self.scope = scope
        self.paths = paths
        self.scan_context = scan_context
        self.try_304 = try_304
        self.verbose = verbose

    async def _conditional_headers(
        self, previous: Optional[MetadataRecord], local_file: Path
    ) -> Dict[str, str]:
        if previous is None or not self.try_304:
            return {}
        # Only worth asking for a 304 if the stored copy is still there.
        if not await asyncio.to_thread(os.path.exists, local_file):
            return {}
        headers: Dict[str, str] = {}
        if previous.date:
            headers["If-Modified-Since"] = previous.date
        if previous.etag:
            headers["If-None-Match"] = previous.etag
        return headers

    def _next_record(
        self, previous: Optional[MetadataRecord], response: httpx.Response, local: str, now: str
    ) -> MetadataRecord:
        if previous is not None:
            record = previous.next_attempt(now)
        else:
            record = MetadataRecord(version=1, created=now, errors=0)
        record.local = local
        record.status = response.status_code
        for name in RECORDED_HEADERS:
            value = response.headers.get(name)
            if value is not None:
                record.set_header(name, value)
        return record

    async def fetch(self, path: str, previous: Optional[MetadataRecord]) -> MetadataRecord:
        """Fetch ``path`` and return its next metadata record.

        Raises:
            TransportError: If no response was received.
            UnexpectedStatusError: For any status other than 200, 304, 401,
                404 and 500.
            WriteError: If the body could not be stored.
        """
        url = path if path.startswith(("http://", "https://")) else self.scope.absolute_url(path)
        local_file = self.paths.local_file(path)
        headers = await self._conditional_headers(previous, local_file)

        if self.verbose:
            LOGGER.debug("fetch: %s", url)
        try:
            response = await self.client.get(url, headers=headers)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise TransportError(f"Request Error: {url}: {exc}", url) from exc

        LOGGER.info("%s -> %d", url, response.status_code)
        now = utc_timestamp()
        record = self._next_record(previous, response, self.paths.relative(local_file), now)
        status = response.status_code

        if status == 200:
            body = response.content
            record.fileversion = ((previous.fileversion or 0) if previous else 0) + 1
            record.fileupdated = now
            record.length = len(body)
            record.errors = 0
            scanner = get_scanner(response.headers.get("content-type"))
            if scanner is not None:
                body = scanner(self.scan_context, path, body)
            try:
                await asyncio.to_thread(_write_file, local_file, body)
            except OSError as exc:
                raise WriteError(f"Failed to write {local_file}: {exc}", url) from exc
            if self.verbose:
                LOGGER.debug("saved: %s", local_file)
            return record

        if status == 304:
            return record

        if status in RECORDED_ERROR_STATUSES:
            record.errors = ((previous.errors or 0) if previous else 0) + 1
            LOGGER.warning("%s recorded as error %d (%d in a row)", url, status, record.errors)
            return record

        raise UnexpectedStatusError(url, status)
