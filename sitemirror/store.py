"""Load and save the metadata tree as JSON."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Union

from .errors import MirrorError
from .tree import MetadataTree

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class MetadataStoreError(MirrorError):
    """Raised when the metadata file cannot be read, parsed or written."""

    def __init__(self, message: str, path: PathLike):
        self.path = str(path)
        super().__init__(message)


def load_tree(path: PathLike) -> MetadataTree:
    """Read the previous run's tree; a missing file yields an empty tree.

    Raises:
        MetadataStoreError: If the file exists but is unreadable or does not
            hold a valid tree.
    """
    json_path = Path(path)
    if not json_path.is_file():
        LOGGER.debug("Metadata file does not exist: %s", json_path)
        return MetadataTree()

    LOGGER.debug("Metadata file exists: %s", json_path)
    try:
        with open(json_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return MetadataTree.from_json(data)
    except (OSError, ValueError) as exc:
        raise MetadataStoreError(
            f"Failed to read metadata file {json_path}: {exc}", json_path
        ) from exc


def save_tree(path: PathLike, tree: MetadataTree) -> None:
    """Write ``tree`` to ``path`` through a temporary file."""
    json_path = Path(path)
    tmp_path = json_path.with_name(json_path.name + ".tmp")
    try:
        json_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(tree.to_json(), indent=2), encoding="utf-8")
        os.replace(tmp_path, json_path)
    except OSError as exc:
        raise MetadataStoreError(
            f"Failed to create {json_path}: {exc}", json_path
        ) from exc
    LOGGER.info("created: %s", json_path)
