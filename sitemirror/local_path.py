"""Map canonical resource paths onto files below the local mirror root."""

from __future__ import annotations

import hashlib
import os
import posixpath
import re
from pathlib import Path
from typing import Callable, Optional, Union
from urllib.parse import unquote

FilenamePolicy = Callable[[str, Optional[str]], str]

_ABSOLUTE_URL = re.compile(r"^(https?://[^/]+)(/.*)$", re.IGNORECASE)


def default_filename(path: str, query: Optional[str]) -> str:
    """Default naming policy.

    Directory paths get an ``index.html``; a query string becomes a short
    digest before the extension, so ``/a.php?id=1`` and ``/a.php?id=2`` do
    not collide on disk.
    """
    if path.endswith(("/", os.sep)):
        path = os.path.join(path, "index.html")
    if query:
        root, ext = os.path.splitext(path)
        digest = hashlib.md5(query.encode("utf-8")).hexdigest()[:10]
        path = f"{root}_{digest}{ext}"
    return path


def origin_digest(origin: str) -> str:
    return hashlib.md5(origin.encode("utf-8")).hexdigest()


class LocalPathMapper:
    """Resolve resources to files under ``local_root``."""

    def __init__(
        self,
        local_root: Union[str, os.PathLike],
        filename: Optional[FilenamePolicy] = None,
    ) -> None:
        self.local_root = Path(local_root)
        self.filename = filename or default_filename

    def local_file(self, resource: str) -> Path:
        """File path for a canonical path or an absolute remote URL."""
        match = _ABSOLUTE_URL.match(resource)
        if match:
            resource = "/" + origin_digest(match.group(1)) + match.group(2)

        decoded = unquote(resource.replace("+", "%20"))
        path, sep, query = decoded.partition("?")
        trailing = path.endswith("/")
        path = posixpath.normpath("/" + path.lstrip("/"))
        if trailing and not path.endswith("/"):
            path += "/"

        joined = os.path.join(str(self.local_root), path.lstrip("/"))
        return Path(self.filename(joined, query if sep else None))

    def relative(self, local_file: Union[str, os.PathLike]) -> str:
        """``local_file`` relative to the mirror root, with ``/`` separators."""
        return Path(local_file).relative_to(self.local_root).as_posix()
