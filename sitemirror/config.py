"""Mirror configuration and the helpers that load it."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Pattern, Union

from .errors import MirrorError
from .local_path import FilenamePolicy, default_filename
from .resolver import SiteScope

LOGGER = logging.getLogger(__name__)

# Element selector -> attributes holding links
DEFAULT_HTML_LINKS: Dict[str, List[str]] = {
    "a": ["href"],
    "link": ["href"],
    "script": ["src"],
    "img": ["src", "data-original"],
    "meta[property='og:image']": ["content"],
}

# Always requested, relative to the base path
DEFAULT_ADDITIONAL_TARGETS: List[str] = [
    "/robots.txt",
    "/sitemap.xml",
]

# References kept remote; rewritten to protocol-relative form in HTML
DEFAULT_REMOTE_MATCH = r"\b(?:maxcdn\.|cdnjs\.|code\.jquery|fonts\.googleapis)\b"

DEFAULT_USER_AGENT = "sitemirror/1.0"

DEFAULT_PARALLEL = 2

DEFAULT_TIMEOUT = 30.0

# camelCase option names accepted in JSON config files
_ALIASES = {
    "localPath": "local_path",
    "jsonPath": "json_path",
    "try304": "try_304",
    "htmlLinks": "html_links",
    "additionalTargets": "additional_targets",
    "remoteMatch": "remote_match",
    "userAgent": "user_agent",
    "persistEachRound": "persist_each_round",
}

_CALLABLE_FIELDS = frozenset({"filename", "log", "error", "completed"})


class ConfigError(MirrorError, ValueError):
    """Raised for an invalid mirror configuration."""


@dataclass
class MirrorConfig:
    """Options for one mirror run.

    Attributes:
        url: Crawl root; a trailing ``/`` is added when missing.
        local_path: Directory receiving the mirrored files.
        json_path: Metadata file carried between runs; defaults to
            ``<local_path>.json``.
        filename: Naming policy ``(path, query) -> filename``.
        parallel: Number of fetches started together per round.
        try_304: Send conditional requests for files already on disk.
        html_links: Selector -> attribute names scanned in HTML.
        additional_targets: Paths always requested, relative to the base.
        remote_match: References matching this are rewritten to ``//host``.
        user_agent: Sent with every request.
        headers: Static extra request headers (e.g. Authorization).
        timeout: Per-request transport timeout in seconds.
        persist_each_round: Also write the metadata after every round.
        verbose: Log every fetch, save and discovered link.
        log, error, completed: Optional hooks used by ``run``.
    """

    url: str
    local_path: str
    json_path: str = ""
    filename: FilenamePolicy = default_filename
    parallel: int = DEFAULT_PARALLEL
    try_304: bool = True
    html_links: Dict[str, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_HTML_LINKS.items()}
    )
    additional_targets: List[str] = field(
        default_factory=lambda: list(DEFAULT_ADDITIONAL_TARGETS)
    )
    remote_match: Union[str, Pattern[str], None] = DEFAULT_REMOTE_MATCH
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    persist_each_round: bool = False
    verbose: bool = False
    log: Optional[Callable[[str], None]] = None
    error: Optional[Callable[[str], None]] = None
    completed: Optional[Callable[[], None]] = None

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("url is required")
        if not self.url.endswith("/"):
            self.url += "/"
        try:
            SiteScope.from_url(self.url)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        if not self.local_path:
            raise ConfigError("local_path is required")
        if not self.json_path:
            self.json_path = str(Path(self.local_path)) + ".json"
        if isinstance(self.parallel, bool) or not isinstance(self.parallel, int) or self.parallel < 1:
            raise ConfigError(f"parallel must be a positive integer, got {self.parallel!r}")
        if isinstance(self.remote_match, str):
            try:
                self.remote_match = re.compile(self.remote_match)
            except re.error as exc:
                raise ConfigError(f"Invalid remote_match pattern: {exc}") from exc


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


def config_from_mapping(data: Mapping[str, Any], **overrides: Any) -> MirrorConfig:
    """Build a MirrorConfig from plain option values.

    Unknown keys are ignored with a warning; ``overrides`` win over ``data``.
    """
    known = {item.name for item in fields(MirrorConfig)} - _CALLABLE_FIELDS
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            LOGGER.warning("Ignoring unknown config option: %s", key)
            continue
        kwargs[name] = value
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return MirrorConfig(**kwargs)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def load_config_from_file(path: str, **overrides: Any) -> MirrorConfig:
    """Load a MirrorConfig from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not a JSON object or holds invalid values.
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise FileNotFoundError(f"Mirror config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Mirror config must be a JSON object: {config_path}")
    LOGGER.info("Loaded mirror config from %s", config_path)
    return config_from_mapping(data, **overrides)


def load_config_from_env(**overrides: Any) -> Optional[MirrorConfig]:
    """Load a MirrorConfig from environment variables.

    Supported variables:
        SITEMIRROR_URL, SITEMIRROR_LOCAL_PATH, SITEMIRROR_JSON_PATH,
        SITEMIRROR_PARALLEL, SITEMIRROR_TRY_304, SITEMIRROR_USER_AGENT.

    Returns:
        MirrorConfig if a URL is available, None otherwise.
    """
    data: Dict[str, Any] = {}
    for name in ("url", "local_path", "json_path", "user_agent"):
        value = os.environ.get(f"SITEMIRROR_{name.upper()}")
        if value:
            data[name] = value

    parallel = os.environ.get("SITEMIRROR_PARALLEL")
    if parallel:
        try:
            data["parallel"] = int(parallel)
        except ValueError as exc:
            raise ConfigError(f"SITEMIRROR_PARALLEL must be an integer: {parallel!r}") from exc

    try_304 = os.environ.get("SITEMIRROR_TRY_304")
    if try_304:
        data["try_304"] = _parse_bool(try_304)

    data.update({k: v for k, v in overrides.items() if v is not None})
    if not data.get("url"):
        return None
    return config_from_mapping(data)
