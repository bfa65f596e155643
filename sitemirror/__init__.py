"""Incremental website mirroring.

This package mirrors every resource reachable below a base URL onto local
storage and keeps per-resource metadata between runs, so that repeated runs
only download what changed. It supports:

- Link discovery in HTML (configurable selectors) and CSS
- Conditional requests (If-Modified-Since / If-None-Match)
- Bounded concurrency per crawl round
- A JSON metadata tree with version and error counters

Example usage:

    from sitemirror import MirrorConfig, mirror_site_async

    config = MirrorConfig(
        url="https://example.com/docs/",
        local_path="./mirror",
        json_path="./mirror.json",
    )
    result = await mirror_site_async(config)
    print(result.stats)

    # Callback style
    from sitemirror import run

    run(MirrorConfig(
        url="https://example.com/docs/",
        local_path="./mirror",
        json_path="./mirror.json",
        completed=lambda: print("done"),
        error=lambda message: print("failed:", message),
    ))
"""

from __future__ import annotations

from .config import ConfigError, MirrorConfig, load_config_from_env, load_config_from_file
from .errors import MirrorError
from .fetcher import FetchError, TransportError, UnexpectedStatusError, WriteError
from .frontier import Frontier
from .local_path import LocalPathMapper, default_filename
from .mirror import MirrorResult, mirror_site, mirror_site_async, run, run_async
from .record import MetadataRecord
from .resolver import InScope, Malformed, OutOfScope, SiteScope, resolve_link
from .store import MetadataStoreError, load_tree, save_tree
from .tree import MetadataTree, TreeNode

__all__ = [
    # Entry points
    "mirror_site",
    "mirror_site_async",
    "run",
    "run_async",
    "MirrorResult",
    # Config
    "MirrorConfig",
    "ConfigError",
    "load_config_from_env",
    "load_config_from_file",
    # Errors
    "MirrorError",
    "FetchError",
    "TransportError",
    "UnexpectedStatusError",
    "WriteError",
    "MetadataStoreError",
    # Engine parts (for advanced usage)
    "Frontier",
    "LocalPathMapper",
    "default_filename",
    "MetadataRecord",
    "MetadataTree",
    "TreeNode",
    "load_tree",
    "save_tree",
    "SiteScope",
    "resolve_link",
    "InScope",
    "OutOfScope",
    "Malformed",
]
