"""Frontier-draining orchestrator for incremental site mirroring."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx

from .config import MirrorConfig
from .errors import MirrorError
from .fetcher import Fetcher
from .frontier import Frontier
from .local_path import LocalPathMapper
from .logs import PACKAGE_LOGGER, CallbackHandler
from .record import MetadataRecord
from .resolver import SiteScope, normalize_path
from .scanners import ScanContext
from .store import load_tree, save_tree
from .tree import MetadataTree

LOGGER = logging.getLogger(__name__)


@dataclass
class MirrorResult:
    """Result of a completed mirror run."""

    tree: MetadataTree
    stats: Dict[str, Any] = field(default_factory=dict)


def seed_paths(scope: SiteScope, additional_targets: List[str]) -> List[str]:
    """Crawl root first, then the additional targets below the base path."""
    seeds = [scope.base_path]
    for target in additional_targets:
        seeds.append(normalize_path(scope.base_path + target.lstrip("/")))
    return seeds


def _build_stats(records: List[MetadataRecord], seen: int) -> Dict[str, Any]:
    return {
        "fetched": len(records),
        "saved": sum(1 for r in records if r.status == 200),
        "not_modified": sum(1 for r in records if r.status == 304),
        "failed": sum(1 for r in records if r.status not in (200, 304)),
        "discovered": seen,
    }


async def _drain_round(
    fetcher: Fetcher,
    batch: List[str],
    previous: MetadataTree,
    current: MetadataTree,
    records: List[MetadataRecord],
) -> None:
    async def fetch_and_merge(path: str) -> MetadataRecord:
        record = await fetcher.fetch(path, previous.get(path))
        current.set(path, record)
        records.append(record)
        return record

    results: List[Union[MetadataRecord, BaseException]] = await asyncio.gather(
        *(fetch_and_merge(path) for path in batch), return_exceptions=True
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result


async def mirror_site_async(
    config: MirrorConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MirrorResult:
    """
    Mirror the site below ``config.url`` into ``config.local_path``.

    Args:
        config: Mirror options.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``).

    Returns:
        MirrorResult with the new metadata tree and run statistics.

    Raises:
        MirrorError: On the first fatal error; the metadata file is then
            left as it was (or as of the last round with
            ``persist_each_round``).
    """
    scope = SiteScope.from_url(config.url)
    previous = await asyncio.to_thread(load_tree, config.json_path)
    current = MetadataTree()
    frontier = Frontier(seed_paths(scope, config.additional_targets))
    records: List[MetadataRecord] = []

    scan_context = ScanContext(
        scope=scope,
        frontier=frontier,
        html_links=config.html_links,
        remote_match=config.remote_match,
        verbose=config.verbose,
    )
    headers = {"User-Agent": config.user_agent, **config.headers}

    LOGGER.info("Mirroring %s into %s (parallel=%d)", scope.root_url, config.local_path, config.parallel)
    async with httpx.AsyncClient(
        headers=headers,
        follow_redirects=True,
        timeout=config.timeout,
        transport=transport,
    ) as client:
        fetcher = Fetcher(
            client,
            scope,
            LocalPathMapper(config.local_path, config.filename),
            scan_context,
            try_304=config.try_304,
            verbose=config.verbose,
        )
        while True:
            batch = frontier.take(config.parallel)
            if not batch:
                break
            await _drain_round(fetcher, batch, previous, current, records)
            if config.persist_each_round:
                await asyncio.to_thread(save_tree, config.json_path, current)

    await asyncio.to_thread(save_tree, config.json_path, current)
    stats = _build_stats(records, frontier.seen_count)
    LOGGER.info(
        "Mirror complete: %d fetched (%d saved, %d not modified, %d failed)",
        stats["fetched"],
        stats["saved"],
        stats["not_modified"],
        stats["failed"],
    )
    return MirrorResult(tree=current, stats=stats)


def mirror_site(
    config: MirrorConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MirrorResult:
    """Synchronous wrapper for mirror_site_async."""
    return asyncio.run(mirror_site_async(config, transport=transport))


async def run_async(
    config: MirrorConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[MirrorResult]:
    """Callback-style entry point.

    Calls ``config.completed()`` after a successful run or
    ``config.error(message)`` on a fatal error, and forwards log messages
    to ``config.log`` while running. Returns the result, or None on error.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    saved_level = package_logger.level
    handler = None
    if config.log is not None:
        handler = CallbackHandler(config.log, logging.DEBUG if config.verbose else logging.INFO)
        package_logger.addHandler(handler)
        if package_logger.getEffectiveLevel() > handler.level:
            package_logger.setLevel(handler.level)
    try:
        result = await mirror_site_async(config, transport=transport)
    except MirrorError as exc:
        if config.error is not None:
            config.error(str(exc))
        else:
            LOGGER.error("ERROR: %s", exc)
        return None
    finally:
        if handler is not None:
            package_logger.removeHandler(handler)
            package_logger.setLevel(saved_level)

    if config.completed is not None:
        config.completed()
    return result


def run(
    config: MirrorConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[MirrorResult]:
    """Synchronous wrapper for run_async."""
    return asyncio.run(run_async(config, transport=transport))
